"""Full-multigrid solver for transient variable-coefficient diffusion."""

from solvers.multigrid.boundary import (
    BoundaryPolicy,
    FaceType,
    create_boundary_policy,
)
from solvers.multigrid.errors import (
    InvalidGridSizeError,
    MultigridError,
    NonPositiveCoefficientError,
)
from solvers.multigrid.fmg import solve_fmg, validate_inputs
from solvers.multigrid.hierarchy import (
    GridHierarchy,
    GridLevel,
    expand_coefficients,
    expand_spacing,
    grid_sizes,
    n_grid_levels,
)
from solvers.multigrid.smoothers import (
    apply_operator,
    compute_residual,
    direct_solve,
    relax,
)
from solvers.multigrid.transfer_operators import (
    FullWeightingRestriction,
    InjectionRestriction,
    LinearProlongation,
    TransferOperators,
    create_transfer_operators,
)
from solvers.multigrid.vcycle import vcycle

__all__ = [
    # Boundaries
    "BoundaryPolicy",
    "FaceType",
    "create_boundary_policy",
    # Errors
    "MultigridError",
    "InvalidGridSizeError",
    "NonPositiveCoefficientError",
    # Hierarchy
    "GridHierarchy",
    "GridLevel",
    "grid_sizes",
    "n_grid_levels",
    "expand_coefficients",
    "expand_spacing",
    # Transfer operators
    "TransferOperators",
    "LinearProlongation",
    "FullWeightingRestriction",
    "InjectionRestriction",
    "create_transfer_operators",
    # Kernels
    "apply_operator",
    "relax",
    "compute_residual",
    "direct_solve",
    # Cycles
    "vcycle",
    "solve_fmg",
    "validate_inputs",
]
