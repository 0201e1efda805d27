"""Recursive correction-scheme V-cycle over a GridHierarchy."""

from typing import Optional

import numpy as np

from solvers.multigrid.hierarchy import GridHierarchy
from solvers.multigrid.smoothers import compute_residual, direct_solve, relax


def vcycle(
    hierarchy: GridHierarchy,
    level_idx: int,
    u: Optional[np.ndarray] = None,
    f: Optional[np.ndarray] = None,
    pre_smooth: int = 1,
    post_smooth: int = 1,
) -> np.ndarray:
    """Perform one V-cycle on ``u`` in place.

    Algorithm:
    1. Pre-smooth on current grid
    2. Compute residual: r = f - A(u)
    3. Restrict residual to the coarser level's rhs
    4. Zero the coarse correction and solve A(e) = rhs there (recurse, or
       direct solve on the 3-point grid)
    5. Prolongate the correction and add it: u = u + P(e)
    6. Post-smooth

    Coarser levels use the restricted coefficient fields stored in the
    hierarchy.

    Parameters
    ----------
    hierarchy : GridHierarchy
        Grid hierarchy (index 0 = coarsest)
    level_idx : int
        Current level index
    u : np.ndarray, optional
        Approximation on this level (default: the level's ``u``)
    f : np.ndarray, optional
        Right-hand side on this level (default: the level's ``f``)
    pre_smooth : int
        Number of pre-smoothing sweeps
    post_smooth : int
        Number of post-smoothing sweeps

    Returns
    -------
    np.ndarray
        ``u``
    """
    level = hierarchy[level_idx]
    if u is None:
        u = level.u
    if f is None:
        f = level.f

    dt = hierarchy.dt
    boundary = hierarchy.boundary

    if level_idx == 0:
        return direct_solve(u, level.coefficients, f, level.spacing, dt, boundary)

    # Pre-smoothing
    for _ in range(pre_smooth):
        relax(u, level.coefficients, f, level.spacing, dt, boundary)

    compute_residual(
        u, level.coefficients, f, level.spacing, dt, boundary, out=level.residual
    )

    coarse = hierarchy[level_idx - 1]
    coarse.rhs[...] = hierarchy.transfer_ops.restrict(level.residual)
    coarse.correction.fill(0.0)

    if coarse.n > 3:
        vcycle(
            hierarchy,
            level_idx - 1,
            u=coarse.correction,
            f=coarse.rhs,
            pre_smooth=pre_smooth,
            post_smooth=post_smooth,
        )
    else:
        direct_solve(
            coarse.correction, coarse.coefficients, coarse.rhs, coarse.spacing, dt, boundary
        )

    hierarchy.transfer_ops.prolongate_add(coarse.correction, u)

    # Post-smoothing
    for _ in range(post_smooth):
        relax(u, level.coefficients, f, level.spacing, dt, boundary)

    return u
