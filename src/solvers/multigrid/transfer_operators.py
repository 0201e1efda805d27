"""Transfer operators for vertex-centred multigrid on 2^m + 1 grids.

Implements prolongation (coarse -> fine) and restriction (fine -> coarse)
between a grid of n points per axis and one of (n + 1) / 2 points per axis.
Coarse point i coincides with fine point 2i on every axis.

Two restriction methods are supported:
- Full weighting: half the centre value plus an equal share of the 2*ndim face
  neighbours (0.25 in 1D, 0.125 in 2D, 1/12 in 3D)
- Injection: take the coincident fine value

Prolongation is linear and separable, applied one axis at a time, which gives
bilinear interpolation in 2D and trilinear in 3D.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

import numpy as np


class ProlongationMethod(Enum):
    """Available prolongation methods."""

    LINEAR = "linear"


class RestrictionMethod(Enum):
    """Available restriction methods."""

    FULL_WEIGHTING = "full_weighting"
    INJECTION = "injection"


def _axis_slice(ndim: int, axis: int, sl: slice) -> tuple:
    index = [slice(None)] * ndim
    index[axis] = sl
    return tuple(index)


# =============================================================================
# Abstract Base Classes
# =============================================================================


class Prolongation(ABC):
    """Abstract base class for prolongation operators (coarse -> fine)."""

    @abstractmethod
    def prolongate_1d(self, u_coarse: np.ndarray, axis: int) -> np.ndarray:
        """Interpolate along one axis from n_c to 2*n_c - 1 points.

        Parameters
        ----------
        u_coarse : np.ndarray
            Field with n_c points along ``axis``
        axis : int
            Axis to refine

        Returns
        -------
        np.ndarray
            New array with 2*n_c - 1 points along ``axis``
        """
        pass

    def prolongate(self, u_coarse: np.ndarray) -> np.ndarray:
        """Prolongate an n-dimensional field to the next finer grid.

        Refines axis 0, then axis 1, then axis 2.

        Parameters
        ----------
        u_coarse : np.ndarray
            Field on coarse grid, shape (n_c,) * ndim

        Returns
        -------
        np.ndarray
            Field on fine grid, shape (2*n_c - 1,) * ndim
        """
        result = u_coarse
        for axis in range(u_coarse.ndim):
            result = self.prolongate_1d(result, axis)
        return result


class Restriction(ABC):
    """Abstract base class for restriction operators (fine -> coarse)."""

    @abstractmethod
    def restrict(self, u_fine: np.ndarray) -> np.ndarray:
        """Restrict an n-dimensional field to the next coarser grid.

        Parameters
        ----------
        u_fine : np.ndarray
            Field on fine grid, shape (n_f,) * ndim

        Returns
        -------
        np.ndarray
            Field on coarse grid, shape ((n_f + 1) / 2,) * ndim
        """
        pass


# =============================================================================
# Operators
# =============================================================================


class LinearProlongation(Prolongation):
    """Linear interpolation: even fine points copy, odd points average."""

    def prolongate_1d(self, u_coarse: np.ndarray, axis: int) -> np.ndarray:
        ndim = u_coarse.ndim
        shape = list(u_coarse.shape)
        shape[axis] = 2 * shape[axis] - 1

        u_fine = np.empty(shape, dtype=u_coarse.dtype)
        u_fine[_axis_slice(ndim, axis, slice(None, None, 2))] = u_coarse
        u_fine[_axis_slice(ndim, axis, slice(1, None, 2))] = 0.5 * (
            u_coarse[_axis_slice(ndim, axis, slice(None, -1))]
            + u_coarse[_axis_slice(ndim, axis, slice(1, None))]
        )
        return u_fine


class FullWeightingRestriction(Restriction):
    """Weighted average of the coincident fine point and its face neighbours.

    Coarse boundary points take the coincident fine boundary value.
    """

    def restrict(self, u_fine: np.ndarray) -> np.ndarray:
        ndim = u_fine.ndim
        u_coarse = u_fine[(slice(None, None, 2),) * ndim].copy()

        if u_fine.shape[0] < 5:
            return u_coarse

        weight = 0.5 / (2 * ndim)
        centre = (slice(2, -2, 2),) * ndim

        interior = 0.5 * u_fine[centre]
        for axis in range(ndim):
            minus = list(centre)
            plus = list(centre)
            minus[axis] = slice(1, -3, 2)
            plus[axis] = slice(3, -1, 2)
            interior += weight * (u_fine[tuple(minus)] + u_fine[tuple(plus)])

        u_coarse[(slice(1, -1),) * ndim] = interior
        return u_coarse


class InjectionRestriction(Restriction):
    """Take the coincident fine value at every coarse point."""

    def restrict(self, u_fine: np.ndarray) -> np.ndarray:
        return u_fine[(slice(None, None, 2),) * u_fine.ndim].copy()


# =============================================================================
# Transfer Operator Container
# =============================================================================


@dataclass
class TransferOperators:
    """Container for prolongation and restriction operators.

    Provides the transfers used between adjacent levels of a grid hierarchy.
    """

    prolongation: Prolongation
    restriction: Restriction

    def restrict(self, u_fine: np.ndarray) -> np.ndarray:
        """Restrict a field to the next coarser grid."""
        return self.restriction.restrict(u_fine)

    def prolongate(self, u_coarse: np.ndarray) -> np.ndarray:
        """Interpolate a field to the next finer grid."""
        return self.prolongation.prolongate(u_coarse)

    def prolongate_add(self, u_coarse: np.ndarray, u_fine: np.ndarray) -> np.ndarray:
        """Interpolate a coarse correction and add it to ``u_fine`` in place.

        Parameters
        ----------
        u_coarse : np.ndarray
            Correction on coarse grid
        u_fine : np.ndarray
            Fine-grid field, updated in place

        Returns
        -------
        np.ndarray
            ``u_fine``
        """
        u_fine += self.prolongation.prolongate(u_coarse)
        return u_fine


# =============================================================================
# Factory Function
# =============================================================================


def create_transfer_operators(
    prolongation_method: str = "linear",
    restriction_method: str = "full_weighting",
) -> TransferOperators:
    """Create transfer operators from configuration.

    Parameters
    ----------
    prolongation_method : str
        Method for prolongation: "linear"
    restriction_method : str
        Method for restriction: "full_weighting" or "injection"

    Returns
    -------
    TransferOperators
        Configured transfer operators
    """
    # Create prolongation operator
    if prolongation_method == ProlongationMethod.LINEAR.value:
        prolongation = LinearProlongation()
    else:
        raise ValueError(f"Unknown prolongation method: {prolongation_method}")

    # Create restriction operator
    if restriction_method == RestrictionMethod.FULL_WEIGHTING.value:
        restriction = FullWeightingRestriction()
    elif restriction_method == RestrictionMethod.INJECTION.value:
        restriction = InjectionRestriction()
    else:
        raise ValueError(f"Unknown restriction method: {restriction_method}")

    return TransferOperators(prolongation=prolongation, restriction=restriction)
