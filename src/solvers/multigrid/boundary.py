"""Boundary policies for the pore-pressure multigrid solver.

Every face of the box-shaped grid is either

- FIXED: a Dirichlet face. Relaxation never changes it; the FMG driver restores
  it from the level's boundary field (the caller's field restricted to that
  resolution).
- FREE: an open face. After every sweep it copies the adjacent interior plane,
  i.e. a zero normal gradient.

The sedflux convention fixes the high face of the last (vertical) axis and
leaves every other face free.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

import numpy as np


class FaceType(Enum):
    """Available face treatments."""

    FIXED = "fixed"
    FREE = "free"


def face_slice(ndim: int, axis: int, index: int) -> Tuple:
    """Index tuple selecting the plane ``index`` along ``axis``."""
    sl = [slice(None)] * ndim
    sl[axis] = index
    return tuple(sl)


@dataclass(frozen=True)
class BoundaryPolicy:
    """Treatment of the two faces (low, high) of every axis.

    Attributes
    ----------
    faces : tuple of (FaceType, FaceType)
        One (low, high) pair per axis.
    """

    faces: Tuple[Tuple[FaceType, FaceType], ...]

    @property
    def ndim(self) -> int:
        return len(self.faces)

    @classmethod
    def sedflux(cls, ndim: int) -> "BoundaryPolicy":
        """High face of the last axis fixed, all other faces free."""
        faces = [(FaceType.FREE, FaceType.FREE) for _ in range(ndim - 1)]
        faces.append((FaceType.FREE, FaceType.FIXED))
        return cls(tuple(faces))

    @classmethod
    def dirichlet(cls, ndim: int) -> "BoundaryPolicy":
        """Every face fixed."""
        return cls(tuple((FaceType.FIXED, FaceType.FIXED) for _ in range(ndim)))

    def _sides(self):
        for axis, (low, high) in enumerate(self.faces):
            yield axis, 0, 1, low
            yield axis, -1, -2, high

    def apply(self, u: np.ndarray, reference: Optional[np.ndarray] = None) -> np.ndarray:
        """Reset the boundary entries of ``u`` in place.

        Free faces copy their interior neighbour plane. Fixed faces keep their
        values, or take them from ``reference`` when given; they win on edges
        shared with a free face.
        """
        fixed = [
            face_slice(u.ndim, axis, index)
            for axis, index, _, kind in self._sides()
            if kind is FaceType.FIXED
        ]
        source = reference if reference is not None else u
        saved = [source[sl].copy() for sl in fixed]

        for axis, index, neighbour, kind in self._sides():
            if kind is FaceType.FREE:
                u[face_slice(u.ndim, axis, index)] = u[face_slice(u.ndim, axis, neighbour)]

        for sl, values in zip(fixed, saved):
            u[sl] = values
        return u

    def apply_residual(self, r: np.ndarray, f: np.ndarray) -> np.ndarray:
        """Set boundary residual entries: ``f`` on free faces, zero on fixed faces."""
        for axis, index, _, kind in self._sides():
            if kind is FaceType.FREE:
                sl = face_slice(r.ndim, axis, index)
                r[sl] = f[sl]
        for axis, index, _, kind in self._sides():
            if kind is FaceType.FIXED:
                r[face_slice(r.ndim, axis, index)] = 0.0
        return r


def create_boundary_policy(ndim: int, method: str = "sedflux") -> BoundaryPolicy:
    """Create a boundary policy from configuration.

    Parameters
    ----------
    ndim : int
        Number of spatial dimensions (1, 2 or 3)
    method : str
        "sedflux" (top face fixed, others free) or "dirichlet" (all fixed)

    Returns
    -------
    BoundaryPolicy
        Configured boundary policy
    """
    method_lower = method.lower()

    if method_lower == "sedflux":
        return BoundaryPolicy.sedflux(ndim)
    elif method_lower == "dirichlet":
        return BoundaryPolicy.dirichlet(ndim)
    else:
        raise ValueError(
            f"Unknown boundary method: {method}. Use 'sedflux' or 'dirichlet'."
        )
