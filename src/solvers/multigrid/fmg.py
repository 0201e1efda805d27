"""Full multigrid (FMG) driver for the transient pore-pressure equation.

Solves A(u) = f once per call: the hierarchy is built from the caller's
fields, the coarsest grid is solved directly, and every finer level starts
from the interpolated coarser solution followed by a fixed number of V-cycles.
There is no residual-based stopping; the work per call is fixed.
"""

import logging
from typing import Optional

import numpy as np

from solvers.multigrid.boundary import BoundaryPolicy, create_boundary_policy
from solvers.multigrid.errors import InvalidGridSizeError, NonPositiveCoefficientError
from solvers.multigrid.hierarchy import (
    GridHierarchy,
    expand_coefficients,
    expand_spacing,
    n_grid_levels,
)
from solvers.multigrid.smoothers import direct_solve
from solvers.multigrid.transfer_operators import (
    TransferOperators,
    create_transfer_operators,
)
from solvers.multigrid.vcycle import vcycle

log = logging.getLogger(__name__)


def validate_inputs(u: np.ndarray, coefficients, f: np.ndarray, spacing, dt: float) -> None:
    """Check the preconditions of ``solve_fmg``.

    Raises
    ------
    InvalidGridSizeError
        Size not 2^m + 1, non-cubic grid, mismatched shapes, or the wrong
        number of coefficient fields / spacings
    NonPositiveCoefficientError
        Negative or non-finite coefficient entries
    ValueError
        Non-positive ``dt`` or spacing, or a non floating-point ``u``
    """
    if not np.issubdtype(u.dtype, np.floating):
        raise ValueError(f"Solution array must be floating point, got dtype {u.dtype}")
    if u.ndim not in (1, 2, 3):
        raise InvalidGridSizeError(f"Only 1D, 2D and 3D grids are supported, got {u.ndim}D")
    if len(set(u.shape)) != 1:
        raise InvalidGridSizeError(f"Grid must have equal points per axis, got {u.shape}")
    n_grid_levels(u.shape[0])

    if f.shape != u.shape:
        raise InvalidGridSizeError(f"Forcing shape {f.shape} does not match {u.shape}")

    for axis, k in enumerate(expand_coefficients(coefficients, u.ndim)):
        if np.shape(k) != u.shape:
            raise InvalidGridSizeError(
                f"Coefficient field for axis {axis} has shape {np.shape(k)}, "
                f"expected {u.shape}"
            )
        k = np.asarray(k)
        if not np.all(np.isfinite(k)) or np.any(k < 0):
            raise NonPositiveCoefficientError(
                f"Coefficient field for axis {axis} must be finite and non-negative"
            )

    if not dt > 0:
        raise ValueError(f"Time step must be positive, got dt={dt}")
    if any(not h > 0 for h in expand_spacing(spacing, u.ndim)):
        raise ValueError(f"Grid spacing must be positive, got {spacing}")


def solve_fmg(
    u: np.ndarray,
    coefficients,
    f: np.ndarray,
    spacing,
    dt: float,
    boundary: Optional[BoundaryPolicy] = None,
    transfer_ops: Optional[TransferOperators] = None,
    cycles_per_level: int = 1,
    pre_smooth: int = 1,
    post_smooth: int = 1,
    validate: bool = True,
) -> np.ndarray:
    """Solve A(u) = f with one full-multigrid pass, updating ``u`` in place.

    Parameters
    ----------
    u : np.ndarray
        Initial floating-point field, shape (n,) * ndim with n = 2^m + 1. Its
        fixed faces supply the Dirichlet values on every level.
    coefficients : np.ndarray or sequence of np.ndarray
        ``k`` (1D), ``(kx, kz)`` (2D) or ``(kx, kz)`` (3D, kx on both
        horizontal axes)
    f : np.ndarray
        Forcing field, same shape as ``u``
    spacing : float or sequence of float
        Grid spacing per axis on the finest grid
    dt : float
        Time step
    boundary : BoundaryPolicy, optional
        Face treatment (default: last-axis high face fixed, others free)
    transfer_ops : TransferOperators, optional
        Restriction/prolongation pair (default: full weighting + linear)
    cycles_per_level : int
        V-cycles run on every level after interpolation
    pre_smooth, post_smooth : int
        Relaxation sweeps before and after each coarse-grid correction
    validate : bool
        Check the input preconditions first

    Returns
    -------
    np.ndarray
        ``u``
    """
    if validate:
        validate_inputs(u, coefficients, f, spacing, dt)

    if boundary is None:
        boundary = create_boundary_policy(u.ndim)
    if transfer_ops is None:
        transfer_ops = create_transfer_operators()

    with GridHierarchy.build(
        u, coefficients, f, spacing, dt, transfer_ops=transfer_ops, boundary=boundary
    ) as hierarchy:
        coarsest = hierarchy.coarsest
        boundary.apply(coarsest.u, coarsest.boundary_values)
        direct_solve(
            coarsest.u, coarsest.coefficients, coarsest.f, coarsest.spacing, dt, boundary
        )

        for level_idx in range(1, len(hierarchy)):
            level = hierarchy[level_idx]
            level.u[...] = transfer_ops.prolongate(hierarchy[level_idx - 1].u)
            boundary.apply(level.u, level.boundary_values)

            for _ in range(cycles_per_level):
                vcycle(
                    hierarchy,
                    level_idx,
                    pre_smooth=pre_smooth,
                    post_smooth=post_smooth,
                )

            log.debug(
                f"FMG level {level_idx}/{len(hierarchy) - 1} (n={level.n}): "
                f"{cycles_per_level} V-cycle(s)"
            )

        u[...] = hierarchy.finest.u

    return u
