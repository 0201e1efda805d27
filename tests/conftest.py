"""Pytest configuration and fixtures for pore-pressure solver tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


@pytest.fixture
def transfer_ops():
    """Default transfer operators (full weighting + linear)."""
    from solvers.multigrid import create_transfer_operators

    return create_transfer_operators(
        prolongation_method="linear",
        restriction_method="full_weighting",
    )


@pytest.fixture
def rng():
    """Seeded random generator."""
    return np.random.default_rng(1234)


@pytest.fixture
def small_column_params():
    """Parameters for a short 1D column."""
    return {
        "n": 17,
        "ndim": 1,
        "dz": 0.5,
        "dt": 1.0,
        "n_steps": 5,
        "sedimentation_rate": 0.1,
        "conductivity": 1.0,
    }
