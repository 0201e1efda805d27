"""Tests for the theta-method tridiagonal column solver."""

import logging

import numpy as np
import pytest

from solvers.tridiagonal import get_matrix_coefficients, solve_excess_pore_pressure


def _operator(psi, k, dz):
    """L(psi) at nodes 1 .. n-2 for a column whose base is already mirrored."""
    k_c, k_m, k_p = k[1:-1], k[:-2], k[2:]
    a_minus = (k_c + 0.5 * (k_m - k_p)) / dz**2
    a_plus = (k_c + 0.5 * (k_p - k_m)) / dz**2
    return a_minus * psi[:-2] - 2.0 * k_c / dz**2 * psi[1:-1] + a_plus * psi[2:]


@pytest.fixture
def column(rng):
    n = 12
    return {
        "psi": rng.random(n),
        "k": 0.5 + rng.random(n),
        "c": 1.0 + rng.random(n),
        "dz": 0.3,
        "dt": 0.05,
        "psi_top": 0.2,
    }


class TestMatrixCoefficients:
    """Tests for get_matrix_coefficients."""

    def test_shapes(self, column):
        lower, diag, upper, rhs = get_matrix_coefficients(**column)
        n_int = column["psi"].size - 2
        for arr in (lower, diag, upper, rhs):
            assert arr.shape == (n_int,)

    def test_mirrored_base_row(self, column):
        lower, diag, upper, _ = get_matrix_coefficients(**column)
        k, c, dz, dt = column["k"], column["c"], column["dz"], column["dt"]

        assert lower[0] == 0.0
        assert np.isclose(upper[0], 2.0 * k[1] / dz**2)
        assert np.isclose(diag[0], -2.0 * k[1] / dz**2 - c[1] / dt)

    def test_rows_sum_to_storage_term(self, column):
        """A constant column only feels storage."""
        lower, diag, upper, _ = get_matrix_coefficients(**column)
        c, dt = column["c"], column["dt"]

        assert np.allclose(lower + diag + upper, -c[1:-1] / dt)

    def test_loading_enters_rhs(self, column):
        _, _, _, rhs0 = get_matrix_coefficients(**column)
        _, _, _, rhs1 = get_matrix_coefficients(**column, sed_rate=0.4)
        c, dt = column["c"], column["dt"]

        assert np.allclose(rhs1 - rhs0, -c[1:-1] * 0.4 / dt)


class TestSolveExcessPorePressure:
    """Tests for solve_excess_pore_pressure."""

    def test_matches_dense_solve(self, column):
        psi_old = column["psi"].copy()
        lower, diag, upper, rhs = get_matrix_coefficients(**column, theta=0.5)
        A = np.diag(diag) + np.diag(lower[1:], -1) + np.diag(upper[:-1], 1)
        expected = np.linalg.solve(A, rhs)

        psi = psi_old.copy()
        ok = solve_excess_pore_pressure(
            psi, column["k"], column["c"], column["dz"], column["dt"],
            column["psi_top"], theta=0.5,
        )

        assert ok
        assert np.allclose(psi[1:-1], expected)
        assert psi[0] == psi[2]
        assert psi[-1] == column["psi_top"]

    def test_implicit_step_satisfies_equation(self, column):
        """theta = 1: c (psi - psi_old) / dt = L(psi) + c rate / dt."""
        psi_old = column["psi"].copy()
        psi = psi_old.copy()
        rate = 0.3

        solve_excess_pore_pressure(
            psi, column["k"], column["c"], column["dz"], column["dt"],
            column["psi_top"], sed_rate=rate,
        )

        c, dt = column["c"][1:-1], column["dt"]
        lhs = c * (psi[1:-1] - psi_old[1:-1]) / dt
        rhs = _operator(psi, column["k"], column["dz"]) + c * rate / dt
        assert np.allclose(lhs, rhs)

    def test_explicit_step(self, column):
        """theta = 0 reduces to forward Euler on the old pressure."""
        psi_old = column["psi"].copy()
        psi_old[-1] = column["psi_top"]
        psi_old[0] = psi_old[2]
        psi = psi_old.copy()

        solve_excess_pore_pressure(
            psi, column["k"], column["c"], column["dz"], column["dt"],
            column["psi_top"], theta=0.0,
        )

        c, dt = column["c"][1:-1], column["dt"]
        expected = psi_old[1:-1] + dt / c * _operator(psi_old, column["k"], column["dz"])
        assert np.allclose(psi[1:-1], expected)

    def test_prebuilt_system_gives_same_step(self, column):
        system = get_matrix_coefficients(**column, theta=0.5, sed_rate=0.1)
        psi_a = column["psi"].copy()
        psi_b = column["psi"].copy()
        args = {k: v for k, v in column.items() if k != "psi"}

        assert solve_excess_pore_pressure(psi_a, **args, theta=0.5, sed_rate=0.1)
        assert solve_excess_pore_pressure(
            psi_b, **args, theta=0.5, sed_rate=0.1, system=system
        )
        assert np.array_equal(psi_a, psi_b)

    def test_uniform_surface_pressure_is_steady(self):
        n = 9
        psi = np.full(n, 1.5)
        ok = solve_excess_pore_pressure(psi, np.ones(n), np.ones(n), 1.0, 1.0, 1.5)

        assert ok
        assert np.allclose(psi, 1.5)

    def test_pure_loading(self):
        """Without conductivity every interior node gains the loading rate."""
        n = 8
        psi = np.zeros(n)
        for _ in range(3):
            solve_excess_pore_pressure(psi, np.zeros(n), np.ones(n), 1.0, 1.0, 0.0, sed_rate=0.25)

        assert np.allclose(psi[1:-1], 0.75)
        assert psi[-1] == 0.0
        assert psi[0] == psi[2]

    def test_failure_clamps_to_surface_pressure(self, caplog):
        n = 6
        psi = np.linspace(1.0, 2.0, n)

        with caplog.at_level(logging.WARNING, logger="solvers.tridiagonal"):
            ok = solve_excess_pore_pressure(psi, np.zeros(n), np.zeros(n), 1.0, 1.0, 0.7)

        assert not ok
        assert np.allclose(psi, 0.7)
        assert "resetting column" in caplog.text

    def test_short_column_rejected(self):
        with pytest.raises(ValueError):
            solve_excess_pore_pressure(np.zeros(3), np.ones(3), np.ones(3), 1.0, 1.0, 0.0)
