"""Shared norms used for solver diagnostics."""

from __future__ import annotations

import numpy as np


# -----------------------------------------------------------------------------
# Norms
# -----------------------------------------------------------------------------


def discrete_l2_norm(values: np.ndarray, h: float | tuple) -> float:
    """Approximate L2 norm using the grid cell volume as quadrature weight."""
    volume = float(np.prod(h))
    return float(np.sqrt(volume * np.sum(np.abs(values) ** 2)))


def rms_norm(values: np.ndarray) -> float:
    """Root-mean-square of all entries (0 for an empty array)."""
    if values.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(np.abs(values) ** 2)))

