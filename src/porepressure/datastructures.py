"""Data structures for solver configuration and results.

This module defines the configuration and result data structures
for the excess pore-pressure solvers (multigrid and tridiagonal).

Structure:
- Parameters: Input configuration (logged to MLflow at start)
- Metrics: Output results (logged to MLflow at end)
- Fields: Spatial solution data
- TimeSeries: History over time steps
"""

import time
from dataclasses import dataclass, asdict, field
from typing import List, Optional

import numpy as np
import pandas as pd
from mlflow.entities import Metric


# ========================================================
# Parameters (Input Configuration)
# ========================================================


@dataclass
class Parameters:
    """Base solver parameters - input configuration for all solvers.

    ``n`` is the number of nodes per axis; the last axis is vertical with node
    n-1 at the sediment surface.
    """

    n: int = 33
    ndim: int = 1
    dz: float = 1.0
    dx: float = 1.0
    dt: float = 1.0
    n_steps: int = 10
    sedimentation_rate: float = 0.0  # pressure added by loading per step
    conductivity: float = 1.0  # vertical (kz)
    horizontal_conductivity: Optional[float] = None  # kx, defaults to kz
    initial_pressure: float = 0.0
    method: str = ""

    @property
    def spacing(self):
        return (self.dx,) * (self.ndim - 1) + (self.dz,)

    def to_dataframe(self):
        return pd.DataFrame([self.to_mlflow()])

    def to_mlflow(self) -> dict:
        return {k: v for k, v in asdict(self).items() if v is not None}


# ========================================================
# Metrics (Output Results)
# ========================================================


@dataclass
class Metrics:
    """Solver metrics - output results computed during/after solving."""

    steps: int = 0
    wall_time_seconds: float = 0.0
    final_residual: float = 0.0
    final_residual_l2: float = 0.0
    max_pressure: float = 0.0
    mean_pressure: float = 0.0
    failed_solves: int = 0

    def to_dataframe(self):
        return pd.DataFrame([asdict(self)])

    def to_mlflow(self) -> dict:
        return {k: float(v) for k, v in asdict(self).items()}


# ========================================================
# Fields (Spatial Solution Data)
# ========================================================


@dataclass
class Fields:
    """Pressure field and node coordinates, flattened in C order.

    ``z`` is the vertical coordinate (last axis); ``x`` and ``y`` are the
    horizontal ones and stay zero where the grid has no such axis.
    """

    psi: np.ndarray
    x: np.ndarray
    y: np.ndarray
    z: np.ndarray

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame with one row per grid point."""
        return pd.DataFrame(asdict(self))


# ========================================================
# Time Series (History over time steps)
# ========================================================


@dataclass
class TimeSeries:
    """History with one value per time step."""

    time: List[float] = field(default_factory=list)
    residual: List[float] = field(default_factory=list)
    max_pressure: List[float] = field(default_factory=list)
    mean_pressure: List[float] = field(default_factory=list)

    def append(self, t: float, residual: float, psi: np.ndarray):
        self.time.append(t)
        self.residual.append(residual)
        self.max_pressure.append(float(np.max(psi)))
        self.mean_pressure.append(float(np.mean(psi)))

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to DataFrame with one row per time step."""
        return pd.DataFrame(asdict(self))

    def to_mlflow_batch(self) -> List[Metric]:
        """Per-step metrics for ``MlflowClient.log_batch``."""
        timestamp = int(time.time() * 1000)
        metrics = []
        for name in ("residual", "max_pressure", "mean_pressure"):
            for step, value in enumerate(getattr(self, name)):
                metrics.append(Metric(name, float(value), timestamp, step))
        return metrics


# =============================================================
# Multigrid Specific
# ============================================================


@dataclass
class MultigridParameters(Parameters):
    """FMG solver parameters (extends Parameters with the per-step work)."""

    fmg_passes: int = 2  # FMG solves per time step on the same forcing
    cycles_per_level: int = 1
    pre_smooth: int = 1
    post_smooth: int = 1
    prolongation_method: str = "linear"
    restriction_method: str = "full_weighting"
    boundary: str = "sedflux"  # "sedflux" or "dirichlet"
    method: str = "FMG"


# =====================================================
# Tridiagonal Specific
# =====================================================


@dataclass
class ImplicitParameters(Parameters):
    """Theta-method column solver parameters (1D only)."""

    theta: float = 1.0  # 0 explicit, 0.5 Crank-Nicolson, 1 implicit
    storage: float = 1.0  # specific storage c
    surface_pressure: float = 0.0  # psi_top
    method: str = "Implicit-Tridiagonal"
