"""Grid hierarchy for the full-multigrid pore-pressure solver.

The hierarchy is an explicit list of levels, index 0 = coarsest (3 points per
axis), index -1 = finest. Each level owns its own arrays; nothing is aliased
between levels or with the caller's fields. ``GridHierarchy`` is a context
manager that drops every buffer on exit.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from solvers.multigrid.boundary import BoundaryPolicy, create_boundary_policy
from solvers.multigrid.errors import InvalidGridSizeError
from solvers.multigrid.transfer_operators import (
    TransferOperators,
    create_transfer_operators,
)

log = logging.getLogger(__name__)


# =============================================================================
# Grid sizes
# =============================================================================


def n_grid_levels(n_fine: int) -> int:
    """Number of levels for a grid of ``n_fine`` points per axis, log2(n - 1).

    Raises
    ------
    InvalidGridSizeError
        If ``n_fine`` is not 2^m + 1 with m >= 1
    """
    m = n_fine - 1
    if n_fine < 3 or m & (m - 1) != 0:
        raise InvalidGridSizeError(
            f"Grid size must be 2^m + 1 with m >= 1, got n={n_fine}"
        )
    return m.bit_length() - 1


def grid_sizes(n_fine: int) -> List[int]:
    """Points per axis of every level, finest first: [n, (n+1)/2, ..., 3]."""
    sizes = [n_fine]
    for _ in range(n_grid_levels(n_fine) - 1):
        sizes.append((sizes[-1] + 1) // 2)
    return sizes


def expand_coefficients(
    coefficients: Union[np.ndarray, Sequence[np.ndarray]], ndim: int
) -> Tuple[np.ndarray, ...]:
    """Map the caller's coefficient fields onto one field per axis.

    1D takes ``k`` (or ``(k,)``), 2D takes ``(kx, kz)`` and 3D takes
    ``(kx, kz)`` with ``kx`` serving both horizontal axes.
    """
    if isinstance(coefficients, np.ndarray):
        coefficients = (coefficients,)
    coefficients = tuple(coefficients)

    if ndim == 3 and len(coefficients) == 2:
        kx, kz = coefficients
        return (kx, kx, kz)
    if len(coefficients) != ndim:
        raise InvalidGridSizeError(
            f"Expected {ndim} coefficient field(s) for a {ndim}D grid, "
            f"got {len(coefficients)}"
        )
    return coefficients


def expand_spacing(spacing: Union[float, Sequence[float]], ndim: int) -> Tuple[float, ...]:
    """Grid spacing per axis from a scalar or a per-axis sequence."""
    if np.isscalar(spacing):
        return (float(spacing),) * ndim
    spacing = tuple(float(h) for h in spacing)
    if len(spacing) != ndim:
        raise InvalidGridSizeError(
            f"Expected {ndim} grid spacing(s) for a {ndim}D grid, got {len(spacing)}"
        )
    return spacing


# =============================================================================
# GridLevel: Data structure for one multigrid level
# =============================================================================


@dataclass
class GridLevel:
    """Arrays for one multigrid level.

    Attributes
    ----------
    n : int
        Points per axis
    level_idx : int
        Level index (0 = coarsest, increasing = finer)
    """

    n: int
    level_idx: int
    spacing: Tuple[float, ...]

    # Fields restricted from the finest level
    u: np.ndarray
    coefficients: Tuple[np.ndarray, ...]  # one per axis
    f: np.ndarray
    boundary_values: np.ndarray  # restricted u, source of fixed faces

    # Work buffers
    residual: np.ndarray
    correction: np.ndarray
    rhs: np.ndarray

    @property
    def ndim(self) -> int:
        return self.u.ndim

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.u.shape


def build_grid_level(
    n: int,
    level_idx: int,
    spacing: Tuple[float, ...],
    u: np.ndarray,
    coefficients: Tuple[np.ndarray, ...],
    f: np.ndarray,
) -> GridLevel:
    """Construct a GridLevel with zeroed work buffers."""
    return GridLevel(
        n=n,
        level_idx=level_idx,
        spacing=spacing,
        u=u,
        coefficients=coefficients,
        f=f,
        boundary_values=u.copy(),
        residual=np.zeros_like(u),
        correction=np.zeros_like(u),
        rhs=np.zeros_like(u),
    )


# =============================================================================
# Grid Hierarchy
# =============================================================================


class GridHierarchy:
    """All levels of one FMG solve plus the operators shared between them."""

    def __init__(
        self,
        levels: List[GridLevel],
        dt: float,
        transfer_ops: TransferOperators,
        boundary: BoundaryPolicy,
    ):
        self.levels = levels
        self.dt = dt
        self.transfer_ops = transfer_ops
        self.boundary = boundary

    @classmethod
    def build(
        cls,
        u: np.ndarray,
        coefficients,
        f: np.ndarray,
        spacing,
        dt: float,
        transfer_ops: Optional[TransferOperators] = None,
        boundary: Optional[BoundaryPolicy] = None,
    ) -> "GridHierarchy":
        """Build the hierarchy from fine to coarse.

        The caller's ``u``, coefficient fields and ``f`` are copied into the
        finest level, then restricted level by level. Every level keeps its
        restricted ``u`` as its boundary field.

        Parameters
        ----------
        u : np.ndarray
            Solution field on the finest grid, shape (n,) * ndim
        coefficients : np.ndarray or sequence of np.ndarray
            Coefficient field(s), see ``expand_coefficients``
        f : np.ndarray
            Forcing field on the finest grid
        spacing : float or sequence of float
            Finest grid spacing per axis
        dt : float
            Time step
        transfer_ops : TransferOperators, optional
            Restriction/prolongation pair (default: full weighting + linear)
        boundary : BoundaryPolicy, optional
            Face treatment (default: sedflux convention)

        Returns
        -------
        GridHierarchy
            Levels ordered coarsest first
        """
        ndim = u.ndim
        transfer_ops = transfer_ops or create_transfer_operators()
        boundary = boundary or create_boundary_policy(ndim)

        sizes = grid_sizes(u.shape[0])
        fine_spacing = expand_spacing(spacing, ndim)
        axis_fields = expand_coefficients(coefficients, ndim)

        # Restrict each distinct coefficient array once (3D shares kx)
        distinct = {}
        for k in axis_fields:
            distinct.setdefault(id(k), np.array(k, dtype=np.float64))
        field_ids = [id(k) for k in axis_fields]

        u_level = np.array(u, dtype=np.float64)
        f_level = np.array(f, dtype=np.float64)

        levels = []
        for depth, n in enumerate(sizes):
            if depth > 0:
                u_level = transfer_ops.restrict(u_level)
                f_level = transfer_ops.restrict(f_level)
                distinct = {
                    key: transfer_ops.restrict(k) for key, k in distinct.items()
                }

            scale = (sizes[0] - 1) / (n - 1)
            levels.append(
                build_grid_level(
                    n=n,
                    level_idx=len(sizes) - 1 - depth,
                    spacing=tuple(h * scale for h in fine_spacing),
                    u=u_level,
                    coefficients=tuple(distinct[key] for key in field_ids),
                    f=f_level,
                )
            )

        levels.reverse()
        log.info(f"Built {len(levels)}-level {ndim}D hierarchy: n = {sizes[::-1]}")
        return cls(levels, dt, transfer_ops, boundary)

    def __enter__(self) -> "GridHierarchy":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
        return False

    def release(self) -> None:
        """Drop every level and its buffers."""
        self.levels = []

    def __len__(self) -> int:
        return len(self.levels)

    def __getitem__(self, idx: int) -> GridLevel:
        return self.levels[idx]

    @property
    def finest(self) -> GridLevel:
        return self.levels[-1]

    @property
    def coarsest(self) -> GridLevel:
        return self.levels[0]
