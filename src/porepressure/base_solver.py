"""Abstract base solver for excess pore pressure."""

from abc import ABC, abstractmethod
import logging
import time

import numpy as np
import mlflow

from solvers.metrics import discrete_l2_norm, rms_norm

from .datastructures import TimeSeries, Metrics, Fields

log = logging.getLogger(__name__)


class ExcessPorePressureSolver(ABC):
    """Abstract base solver for excess pore pressure in a sediment body.

    Handles:
    - Parameter management (input configuration)
    - Grid, conductivity and pressure allocation
    - Time-step loop with residual diagnostics
    - Metrics tracking and live MLflow logging

    Subclasses must:
    - Set Parameters class attribute (e.g., MultigridParameters)
    - Implement step() - advance the pressure one time step
    - Implement residual() - defect of the equations solved by the last step
    """

    Parameters = None  # Subclasses set this to MultigridParameters or ImplicitParameters

    log_every = 10

    def __init__(self, params=None, **kwargs):
        """Initialize solver with parameters.

        Parameters
        ----------
        params : Parameters, optional
            Parameters object. If not provided, kwargs are used to create params.
        **kwargs
            Configuration parameters passed to Parameters class if params is None.
        """
        if params is None:
            if self.Parameters is None:
                raise ValueError("Subclass must define Parameters class attribute")
            params = self.Parameters(**kwargs)

        if params.ndim not in (1, 2, 3):
            raise ValueError(f"ndim must be 1, 2 or 3, got {params.ndim}")

        self.params = params
        self.metrics = Metrics()
        self.time_series = None  # Populated by solve()
        self.time = 0.0
        self._failed_solves = 0

        self.shape = (params.n,) * params.ndim
        self.psi = np.full(self.shape, float(params.initial_pressure))

        kz = params.conductivity
        kx = params.horizontal_conductivity
        self.set_conductivity(kz, kx if kx is not None else kz)
        self.sedimentation_rate = params.sedimentation_rate

        self._init_fields()

    @property
    def coefficients(self):
        """Coefficient fields in solver order: ``(kz,)``, or ``(kx, kz)`` in 2D/3D."""
        if self.params.ndim == 1:
            return (self.kz,)
        return (self.kx, self.kz)

    def set_conductivity(self, kz, kx=None):
        """Set vertical (and horizontal) conductivity, scalar or per node.

        Parameters
        ----------
        kz : float or np.ndarray
            Vertical conductivity, broadcast to the grid
        kx : float or np.ndarray, optional
            Horizontal conductivity (defaults to ``kz``)
        """
        if kx is None:
            kx = kz
        self.kz = np.array(np.broadcast_to(kz, self.shape), dtype=np.float64)
        self.kx = np.array(np.broadcast_to(kx, self.shape), dtype=np.float64)

    def set_sedimentation_rate(self, rate):
        """Set the loading rate, a scalar or one value per column."""
        rate = np.asarray(rate, dtype=np.float64)
        columns = self.shape[:-1]
        if rate.ndim and rate.shape != columns:
            raise ValueError(
                f"Sedimentation rate must be scalar or shape {columns}, got {rate.shape}"
            )
        self.sedimentation_rate = rate if rate.ndim else float(rate)

    def _init_fields(self):
        """Pre-allocate the Fields dataclass with the node coordinates."""
        p = self.params
        axes = [np.arange(p.n) * p.dx for _ in range(p.ndim - 1)]
        axes.append(np.arange(p.n) * p.dz)
        coords = np.meshgrid(*axes, indexing="ij")

        zeros = np.zeros(self.psi.size)
        self.fields = Fields(
            psi=zeros.copy(),
            x=coords[0].ravel() if p.ndim > 1 else zeros.copy(),
            y=coords[1].ravel() if p.ndim > 2 else zeros.copy(),
            z=coords[-1].ravel(),
        )

    def _finalize_fields(self):
        """Copy final solution to output fields."""
        self.fields.psi[:] = self.psi.ravel()

    @abstractmethod
    def step(self) -> np.ndarray:
        """Advance the pressure one time step.

        Returns
        -------
        np.ndarray
            Updated pressure field
        """
        pass

    @abstractmethod
    def residual(self) -> np.ndarray:
        """Defect of the discrete equations solved by the last step.

        Returns
        -------
        np.ndarray
            Residual at the unknowns (empty if there is nothing to report)
        """
        pass

    def residual_norm(self) -> float:
        """RMS defect of the last step."""
        return rms_norm(self.residual())

    def residual_l2_norm(self) -> float:
        """Defect of the last step in the discrete L2 norm of the grid."""
        return discrete_l2_norm(self.residual(), self.params.spacing)

    def solve(self, n_steps: int = None):
        """Run ``n_steps`` time steps.

        Stores results in solver attributes:
        - self.fields : Fields dataclass with the final pressure
        - self.time_series : TimeSeries with one entry per step
        - self.metrics : Metrics dataclass with solver metrics

        Parameters
        ----------
        n_steps : int, optional
            Number of steps. If None, uses params.n_steps.
        """
        if n_steps is None:
            n_steps = self.params.n_steps

        self.time_series = TimeSeries()
        time_start = time.time()
        mlflow_time = 0.0  # Track time spent on MLflow logging

        for i in range(n_steps):
            self.psi = self.step()
            self.time += self.params.dt

            residual = self.residual_norm()
            self.time_series.append(self.time, residual, self.psi)

            if i % self.log_every == 0 or i == n_steps - 1:
                log.info(
                    f"Step {i}: t={self.time:.4g}, residual={residual:.3e}, "
                    f"max psi={self.time_series.max_pressure[-1]:.4g}"
                )

                # Live MLflow logging (timed separately)
                if mlflow.active_run():
                    t_log_start = time.time()
                    mlflow.log_metrics(
                        {
                            "residual": residual,
                            "max_pressure": self.time_series.max_pressure[-1],
                        },
                        step=i,
                    )
                    mlflow_time += time.time() - t_log_start

        wall_time = time.time() - time_start - mlflow_time
        log.info(f"Solver finished {n_steps} steps in {wall_time:.2f} seconds.")

        self._finalize_fields()
        self.metrics = Metrics(
            steps=n_steps,
            wall_time_seconds=wall_time,
            final_residual=self.time_series.residual[-1] if n_steps else 0.0,
            final_residual_l2=self.residual_l2_norm() if n_steps else 0.0,
            max_pressure=float(np.max(self.psi)),
            mean_pressure=float(np.mean(self.psi)),
            failed_solves=self._failed_solves,
        )

    def save(self, filepath):
        """Save complete solver state to HDF5 file.

        Saves params, metrics, time_series, and fields for later analysis.

        Parameters
        ----------
        filepath : str or Path
            Output file path (use .h5 extension).
        """
        from pathlib import Path

        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        import pandas as pd
        with pd.HDFStore(filepath, mode='w', complevel=5) as store:
            store['params'] = self.params.to_dataframe()
            store['metrics'] = self.metrics.to_dataframe()
            store['time_series'] = self.time_series.to_dataframe()
            store['fields'] = self.fields.to_dataframe()
