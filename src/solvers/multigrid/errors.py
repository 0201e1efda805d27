"""Precondition errors raised by the multigrid solvers.

The numerical kernels never raise on their own; these are only raised by the
input checks of ``solve_fmg`` (and ``GridHierarchy.build``) when validation is
enabled.
"""


class MultigridError(ValueError):
    """Base class for invalid multigrid input."""


class InvalidGridSizeError(MultigridError):
    """Grid size is not 2^m + 1, or fields do not share one grid shape."""


class NonPositiveCoefficientError(MultigridError):
    """A coefficient field holds negative or non-finite entries."""
