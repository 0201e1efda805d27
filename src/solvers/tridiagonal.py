"""Theta-method tridiagonal solver for excess pore pressure in a 1D column.

Node 0 is the base of the column, node n-1 the sediment surface. The surface
pressure is fixed at ``psi_top``; the base is a no-flow boundary mirrored
through node 2 (``psi[0] = psi[2]``). The interior nodes 1 .. n-2 satisfy

    c (psi_new - psi_old) / dt = L(theta psi_new + (1 - theta) psi_old) + c rate / dt

with the variable-conductivity operator

    L(psi)_i = (a_i^- psi_{i-1} - 2 k_i psi_i + a_i^+ psi_{i+1})
    a_i^-    = (k_i + (k_{i-1} - k_{i+1}) / 2) / dz^2
    a_i^+    = (k_i + (k_{i+1} - k_{i-1}) / 2) / dz^2

theta = 0 is fully explicit, 0.5 Crank-Nicolson, 1 fully implicit.
"""

import logging
from typing import Optional, Tuple

import numpy as np
from scipy.linalg import LinAlgError, solve_banded

log = logging.getLogger(__name__)


def get_matrix_coefficients(
    psi: np.ndarray,
    k: np.ndarray,
    c: np.ndarray,
    dz: float,
    dt: float,
    psi_top: float,
    theta: float = 1.0,
    sed_rate: float = 0.0,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
    """Build the tridiagonal system for the interior nodes 1 .. n-2.

    Parameters
    ----------
    psi : np.ndarray
        Pressure at the previous time step, n nodes
    k : np.ndarray
        Hydraulic conductivity, n nodes
    c : np.ndarray
        Specific storage, n nodes
    dz : float
        Node spacing
    dt : float
        Time step
    psi_top : float
        Fixed surface pressure (moved to the right-hand side)
    theta : float
        Implicitness, 0 <= theta <= 1
    sed_rate : float
        Pressure added by loading over one time step

    Returns
    -------
    lower, diag, upper, rhs : np.ndarray
        Each of length n - 2. ``lower[0]`` and ``upper[-1]`` are unused.
    """
    dz2 = dz * dz
    k_c, k_m, k_p = k[1:-1], k[:-2], k[2:]
    c_c = c[1:-1]

    a_minus = (k_c + 0.5 * (k_m - k_p)) / dz2
    a_plus = (k_c + 0.5 * (k_p - k_m)) / dz2
    centre = 2.0 * k_c / dz2

    # Mirrored base: psi[0] == psi[2], so the first row only couples upward
    a_minus[0] = 0.0
    a_plus[0] = centre[0]

    psi_c = psi[1:-1]
    psi_m = psi[:-2]
    psi_p = psi[2:].copy()
    psi_p[-1] = psi_top

    lower = theta * a_minus
    diag = -theta * centre - c_c / dt
    upper = theta * a_plus

    explicit = a_minus * psi_m - centre * psi_c + a_plus * psi_p
    rhs = -(1.0 - theta) * explicit - c_c * psi_c / dt - c_c * sed_rate / dt
    rhs[-1] -= theta * a_plus[-1] * psi_top

    return lower, diag, upper, rhs


def solve_excess_pore_pressure(
    psi: np.ndarray,
    k: np.ndarray,
    c: np.ndarray,
    dz: float,
    dt: float,
    psi_top: float,
    sed_rate: float = 0.0,
    theta: float = 1.0,
    system: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]] = None,
) -> bool:
    """Advance the column pressure one time step, in place.

    Parameters
    ----------
    psi : np.ndarray
        Pressure at the previous time step (n >= 4 nodes), overwritten
    k, c : np.ndarray
        Conductivity and specific storage at the new time step
    dz, dt : float
        Node spacing and time step
    psi_top : float
        Surface pressure
    sed_rate : float
        Pressure added by loading over one time step
    theta : float
        Implicitness of the time discretisation
    system : tuple of np.ndarray, optional
        ``(lower, diag, upper, rhs)`` from ``get_matrix_coefficients`` for
        these arguments; built here when not given

    Returns
    -------
    bool
        False if the tridiagonal solve failed; the column is then reset to
        ``psi_top``.
    """
    if psi.shape[0] < 4:
        raise ValueError(f"Column needs at least 4 nodes, got {psi.shape[0]}")

    if system is None:
        system = get_matrix_coefficients(
            psi, k, c, dz, dt, psi_top, theta=theta, sed_rate=sed_rate
        )
    lower, diag, upper, rhs = system

    ab = np.zeros((3, diag.size))
    ab[0, 1:] = upper[:-1]
    ab[1] = diag
    ab[2, :-1] = lower[1:]

    success = True
    try:
        interior = solve_banded((1, 1), ab, rhs)
    except LinAlgError as exc:
        log.warning(f"Tridiagonal solve failed ({exc}); resetting column to {psi_top}")
        success = False
    else:
        if not np.all(np.isfinite(interior)):
            log.warning(f"Tridiagonal solve gave non-finite values; resetting column to {psi_top}")
            success = False

    if success:
        psi[1:-1] = interior
    else:
        psi[:] = psi_top

    psi[0] = psi[2]
    psi[-1] = psi_top
    return success
