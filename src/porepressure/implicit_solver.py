"""Theta-method tridiagonal pore-pressure solver for a single column."""

import logging

import numpy as np

from solvers.tridiagonal import get_matrix_coefficients, solve_excess_pore_pressure

from .base_solver import ExcessPorePressureSolver
from .datastructures import ImplicitParameters

log = logging.getLogger(__name__)


class ImplicitPorePressureSolver(ExcessPorePressureSolver):
    """1D column solver with fixed surface pressure and a no-flow base.

    A failed tridiagonal solve resets the column to the surface pressure and
    is counted in ``Metrics.failed_solves``.
    """

    Parameters = ImplicitParameters

    def __init__(self, params=None, **kwargs):
        super().__init__(params, **kwargs)
        p = self.params
        if p.ndim != 1:
            raise ValueError(f"Implicit solver is 1D only, got ndim={p.ndim}")

        self.storage = np.full(self.shape, float(p.storage))
        self.psi[-1] = p.surface_pressure
        self.psi[0] = self.psi[2]
        self._system = None

        log.info(f"Implicit solver: n={p.n}, theta={p.theta}")

    def step(self) -> np.ndarray:
        p = self.params
        self._system = get_matrix_coefficients(
            self.psi, self.kz, self.storage, p.dz, p.dt, p.surface_pressure,
            theta=p.theta, sed_rate=self.sedimentation_rate,
        )

        ok = solve_excess_pore_pressure(
            self.psi, self.kz, self.storage, p.dz, p.dt, p.surface_pressure,
            sed_rate=self.sedimentation_rate, theta=p.theta, system=self._system,
        )
        if not ok:
            self._failed_solves += 1
            self._system = None

        return self.psi

    def residual(self) -> np.ndarray:
        if self._system is None:
            return np.zeros(0)

        lower, diag, upper, rhs = self._system
        x = self.psi[1:-1]
        ax = diag * x
        ax[1:] += lower[1:] * x[:-1]
        ax[:-1] += upper[:-1] * x[1:]
        return rhs - ax
