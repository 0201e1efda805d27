"""Relaxation, residual and coarsest-grid solve for the pore-pressure operator.

The discrete operator on a grid with spacing h_a along axis a is

    A(u)_i = sum_a (k_a[i] (u[i-1] - u[i]) + k_a[i+1] (u[i+1] - u[i])) / h_a^2 - u_i / dt

where i-1 and i+1 step along axis a, and the equation solved is A(u) = f.
All kernels work on whole interior slices, so one implementation serves 1D,
2D and 3D grids.
"""

from typing import Sequence, Tuple

import numpy as np

from solvers.multigrid.boundary import BoundaryPolicy


def _interior(ndim: int) -> Tuple[slice, ...]:
    return (slice(1, -1),) * ndim


def _shifted(ndim: int, axis: int, offset: int) -> Tuple[slice, ...]:
    """Interior slice moved by ``offset`` (-1 or +1) along ``axis``."""
    index = [slice(1, -1)] * ndim
    index[axis] = slice(None, -2) if offset < 0 else slice(2, None)
    return tuple(index)


def _point_update(
    u: np.ndarray,
    coefficients: Sequence[np.ndarray],
    f: np.ndarray,
    spacing: Sequence[float],
    dt: float,
) -> np.ndarray:
    """Value solving A(u)_i = f_i for u_i with the neighbours held fixed."""
    ndim = u.ndim
    interior = _interior(ndim)

    numerator = -f[interior]
    denominator = np.full(numerator.shape, 1.0 / dt)
    for axis, (k, h) in enumerate(zip(coefficients, spacing)):
        k_minus = k[interior]
        k_plus = k[_shifted(ndim, axis, +1)]
        h2 = h * h
        numerator = numerator + (
            k_minus * u[_shifted(ndim, axis, -1)] + k_plus * u[_shifted(ndim, axis, +1)]
        ) / h2
        denominator = denominator + (k_minus + k_plus) / h2

    return numerator / denominator


def _colour_masks(shape: Tuple[int, ...]) -> Tuple[np.ndarray, np.ndarray]:
    """Red/black masks over the interior, coloured by parity of the grid index."""
    interior_shape = tuple(n - 2 for n in shape)
    parity = (np.indices(interior_shape).sum(axis=0) + len(shape)) % 2
    return parity == 0, parity == 1


def apply_operator(
    u: np.ndarray,
    coefficients: Sequence[np.ndarray],
    spacing: Sequence[float],
    dt: float,
) -> np.ndarray:
    """Evaluate A(u) at the interior points.

    Parameters
    ----------
    u : np.ndarray
        Field, shape (n,) * ndim
    coefficients : sequence of np.ndarray
        One coefficient field per axis
    spacing : sequence of float
        Grid spacing per axis
    dt : float
        Time step

    Returns
    -------
    np.ndarray
        A(u) on the interior, shape (n - 2,) * ndim
    """
    ndim = u.ndim
    interior = _interior(ndim)
    centre = u[interior]

    result = -centre / dt
    for axis, (k, h) in enumerate(zip(coefficients, spacing)):
        result = result + (
            k[interior] * (u[_shifted(ndim, axis, -1)] - centre)
            + k[_shifted(ndim, axis, +1)] * (u[_shifted(ndim, axis, +1)] - centre)
        ) / (h * h)
    return result


def relax(
    u: np.ndarray,
    coefficients: Sequence[np.ndarray],
    f: np.ndarray,
    spacing: Sequence[float],
    dt: float,
    boundary: BoundaryPolicy,
) -> np.ndarray:
    """One red-black Gauss-Seidel sweep of A(u) = f, in place.

    Points whose index sum is even are updated first, then the odd ones using
    the fresh even values. Boundary entries are then reset by ``boundary``.
    """
    interior = _interior(u.ndim)
    for mask in _colour_masks(u.shape):
        update = _point_update(u, coefficients, f, spacing, dt)
        u[interior] = np.where(mask, update, u[interior])

    boundary.apply(u)
    return u


def compute_residual(
    u: np.ndarray,
    coefficients: Sequence[np.ndarray],
    f: np.ndarray,
    spacing: Sequence[float],
    dt: float,
    boundary: BoundaryPolicy,
    out: np.ndarray = None,
) -> np.ndarray:
    """Defect r = f - A(u).

    Free faces carry ``f``; fixed faces carry zero since the correction there
    must vanish.

    Parameters
    ----------
    out : np.ndarray, optional
        Buffer to write into (allocated if omitted)

    Returns
    -------
    np.ndarray
        Residual on the full grid
    """
    if out is None:
        out = np.empty_like(u)

    interior = _interior(u.ndim)
    out[interior] = f[interior] - apply_operator(u, coefficients, spacing, dt)
    boundary.apply_residual(out, f)
    return out


def direct_solve(
    u: np.ndarray,
    coefficients: Sequence[np.ndarray],
    f: np.ndarray,
    spacing: Sequence[float],
    dt: float,
    boundary: BoundaryPolicy,
) -> np.ndarray:
    """Exact solve on the 3-point grid, in place.

    The single interior unknown is set from its closed form, then the
    boundary policy is applied.
    """
    if u.shape[0] != 3:
        raise ValueError(f"Direct solve needs a 3-point grid, got n={u.shape[0]}")

    u[_interior(u.ndim)] = _point_update(u, coefficients, f, spacing, dt)
    boundary.apply(u)
    return u
