"""Excess pore-pressure solver framework.

Solver Hierarchy:
-----------------
ExcessPorePressureSolver (abstract base - defines problem)
├── MultigridPorePressureSolver (FMG, 1D/2D/3D)
└── ImplicitPorePressureSolver (theta-method tridiagonal, 1D)
"""

from .base_solver import ExcessPorePressureSolver
from .datastructures import (
    # Base classes (shared by all solvers)
    Parameters,
    Metrics,
    Fields,
    TimeSeries,
    # Solver-specific
    MultigridParameters,
    ImplicitParameters,
)
from .multigrid_solver import MultigridPorePressureSolver
from .implicit_solver import ImplicitPorePressureSolver


__all__ = [
    # Base solver
    "ExcessPorePressureSolver",
    # Shared data structures
    "Parameters",
    "Metrics",
    "Fields",
    "TimeSeries",
    # Solvers
    "MultigridPorePressureSolver",
    "MultigridParameters",
    "ImplicitPorePressureSolver",
    "ImplicitParameters",
]
