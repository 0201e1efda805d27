"""Full-multigrid pore-pressure solver for 1D, 2D and 3D grids."""

import logging

import numpy as np

from solvers.multigrid import (
    compute_residual,
    create_boundary_policy,
    create_transfer_operators,
    expand_coefficients,
    n_grid_levels,
    solve_fmg,
)

from .base_solver import ExcessPorePressureSolver
from .datastructures import MultigridParameters

log = logging.getLogger(__name__)


class MultigridPorePressureSolver(ExcessPorePressureSolver):
    """Excess pore pressure by repeated FMG solves per time step.

    Each step forms the forcing ``f = -rate/dt - psi_prev/dt`` once and runs
    ``fmg_passes`` FMG solves on it, each starting from the previous pass.
    """

    Parameters = MultigridParameters

    def __init__(self, params=None, **kwargs):
        super().__init__(params, **kwargs)
        p = self.params

        self.transfer_ops = create_transfer_operators(
            prolongation_method=p.prolongation_method,
            restriction_method=p.restriction_method,
        )
        self.boundary = create_boundary_policy(p.ndim, p.boundary)
        self.forcing = np.zeros(self.shape)

        n_levels = n_grid_levels(p.n)
        log.info(
            f"Multigrid solver: {p.ndim}D, n={p.n} ({n_levels} levels), "
            f"{p.fmg_passes} FMG pass(es)/step, {p.cycles_per_level} V-cycle(s)/level"
        )

    def compute_forcing(self) -> np.ndarray:
        """Forcing of the implicit step from the current pressure."""
        dt = self.params.dt
        rate = self.sedimentation_rate
        if np.ndim(rate) > 0:
            rate = rate[..., np.newaxis]
        return -rate / dt - self.psi / dt

    def step(self) -> np.ndarray:
        p = self.params
        self.forcing[...] = self.compute_forcing()

        for i in range(p.fmg_passes):
            solve_fmg(
                self.psi,
                self.coefficients,
                self.forcing,
                p.spacing,
                p.dt,
                boundary=self.boundary,
                transfer_ops=self.transfer_ops,
                cycles_per_level=p.cycles_per_level,
                pre_smooth=p.pre_smooth,
                post_smooth=p.post_smooth,
                validate=(i == 0),
            )

        return self.psi

    def residual(self) -> np.ndarray:
        p = self.params
        r = compute_residual(
            self.psi,
            expand_coefficients(self.coefficients, p.ndim),
            self.forcing,
            p.spacing,
            p.dt,
            self.boundary,
        )
        return r[(slice(1, -1),) * p.ndim]
