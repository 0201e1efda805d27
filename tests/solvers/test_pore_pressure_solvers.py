"""Tests for the time-stepping pore-pressure solvers."""

import numpy as np
import pandas as pd
import pytest

from porepressure import (
    ImplicitParameters,
    ImplicitPorePressureSolver,
    MultigridParameters,
    MultigridPorePressureSolver,
)
import porepressure.implicit_solver as implicit_module
import solvers.tridiagonal as tridiagonal
from solvers.multigrid import InvalidGridSizeError


class TestParameters:
    """Tests for parameter dataclasses."""

    def test_spacing_per_axis(self):
        params = MultigridParameters(ndim=3, dx=2.0, dz=0.5)
        assert params.spacing == (2.0, 2.0, 0.5)

    def test_to_dataframe(self):
        df = MultigridParameters(n=9).to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert df["n"].iloc[0] == 9
        assert df["method"].iloc[0] == "FMG"
        assert "horizontal_conductivity" not in df.columns

    def test_to_mlflow_skips_none(self):
        params = ImplicitParameters(horizontal_conductivity=None)
        assert "horizontal_conductivity" not in params.to_mlflow()
        assert params.to_mlflow()["theta"] == 1.0


class TestMultigridSolver:
    """Tests for MultigridPorePressureSolver."""

    def test_kwargs_create_parameters(self, small_column_params):
        solver = MultigridPorePressureSolver(**small_column_params)
        assert isinstance(solver.params, MultigridParameters)
        assert solver.psi.shape == (17,)

    def test_invalid_grid_size(self):
        with pytest.raises(InvalidGridSizeError):
            MultigridPorePressureSolver(n=20)

    def test_invalid_ndim(self):
        with pytest.raises(ValueError):
            MultigridPorePressureSolver(n=9, ndim=4)

    def test_solve_records_results(self, small_column_params):
        solver = MultigridPorePressureSolver(**small_column_params)
        solver.solve()

        assert solver.metrics.steps == 5
        assert solver.metrics.failed_solves == 0
        assert len(solver.time_series.time) == 5
        assert np.isclose(solver.time, 5.0)
        assert np.allclose(solver.fields.psi, solver.psi.ravel())
        assert np.isclose(solver.metrics.max_pressure, solver.psi.max())
        assert np.all(np.isfinite(solver.time_series.residual))

    def test_residual_norms_recorded(self, small_column_params):
        solver = MultigridPorePressureSolver(**small_column_params)
        solver.solve()

        r = solver.residual()
        assert r.shape == (15,)
        assert np.isclose(solver.metrics.final_residual, np.sqrt(np.mean(r**2)))
        # Node spacing dz = 0.5 is the quadrature weight
        assert np.isclose(solver.metrics.final_residual_l2, np.sqrt(0.5 * np.sum(r**2)))
        assert "final_residual_l2" in solver.metrics.to_mlflow()

    def test_loading_builds_pressure(self, small_column_params):
        solver = MultigridPorePressureSolver(**small_column_params)
        solver.solve()

        max_p = solver.time_series.max_pressure
        assert all(b > a for a, b in zip(max_p[:-1], max_p[1:]))
        assert solver.psi[-1] == 0.0
        # Drained top, so the base holds the highest pressure
        assert np.argmax(solver.psi) in (0, 1)

    def test_pure_loading_without_conductivity(self):
        solver = MultigridPorePressureSolver(
            n=9, conductivity=0.0, sedimentation_rate=0.25, n_steps=4
        )
        solver.solve()

        assert np.allclose(solver.psi[:-1], 1.0)
        assert solver.psi[-1] == 0.0

    @pytest.mark.parametrize("ndim", [2, 3])
    def test_multidimensional_run(self, ndim):
        solver = MultigridPorePressureSolver(
            n=9, ndim=ndim, dx=2.0, dz=0.5, sedimentation_rate=0.1,
            n_steps=2, fmg_passes=5,
        )
        solver.solve()

        assert solver.psi.shape == (9,) * ndim
        assert solver.fields.psi.size == 9**ndim
        assert np.allclose(solver.psi[..., -1], 0.0)
        assert solver.metrics.max_pressure > 0.0
        assert solver.metrics.final_residual < 5e-2

    def test_per_column_sedimentation_rate(self):
        n = 9
        solver = MultigridPorePressureSolver(n=n, ndim=2, conductivity=0.0, n_steps=2)
        rate = np.linspace(0.0, 0.8, n)
        solver.set_sedimentation_rate(rate)
        solver.solve()

        interior = solver.psi[1:-1, 1:-1]
        assert np.allclose(interior, 2.0 * rate[1:-1, np.newaxis])

    def test_bad_rate_shape(self):
        solver = MultigridPorePressureSolver(n=9, ndim=2)
        with pytest.raises(ValueError):
            solver.set_sedimentation_rate(np.ones(5))

    def test_set_conductivity_field(self):
        solver = MultigridPorePressureSolver(n=9, ndim=2)
        kz = np.linspace(1.0, 2.0, 9)
        solver.set_conductivity(kz, kx=0.5)

        assert solver.kz.shape == (9, 9)
        assert np.allclose(solver.kz[3], kz)
        assert np.allclose(solver.kx, 0.5)
        assert solver.coefficients[0] is solver.kx

    def test_save(self, small_column_params, tmp_path):
        solver = MultigridPorePressureSolver(**small_column_params)
        solver.solve()
        path = tmp_path / "out" / "fields.h5"
        solver.save(path)

        with pd.HDFStore(path, mode="r") as store:
            assert set(store.keys()) == {"/params", "/metrics", "/time_series", "/fields"}
            assert len(store["fields"]) == 17
            assert len(store["time_series"]) == 5


class TestImplicitSolver:
    """Tests for ImplicitPorePressureSolver."""

    def test_rejects_multidimensional(self):
        with pytest.raises(ValueError, match="1D only"):
            ImplicitPorePressureSolver(n=9, ndim=2)

    def test_surface_pressure_applied(self):
        solver = ImplicitPorePressureSolver(n=10, surface_pressure=0.3, initial_pressure=1.0)
        assert solver.psi[-1] == 0.3

        solver.solve(n_steps=3)
        assert solver.psi[-1] == 0.3
        assert solver.psi[0] == solver.psi[2]
        assert solver.metrics.steps == 3

    def test_residual_is_small(self, small_column_params):
        solver = ImplicitPorePressureSolver(**small_column_params)
        solver.solve()
        assert solver.metrics.final_residual < 1e-8
        assert solver.metrics.failed_solves == 0

    def test_system_built_once_per_step(self, small_column_params, monkeypatch):
        calls = []
        build = tridiagonal.get_matrix_coefficients

        def counting_build(*args, **kwargs):
            calls.append(1)
            return build(*args, **kwargs)

        monkeypatch.setattr(implicit_module, "get_matrix_coefficients", counting_build)
        monkeypatch.setattr(tridiagonal, "get_matrix_coefficients", counting_build)

        solver = ImplicitPorePressureSolver(**small_column_params)
        solver.solve()

        assert len(calls) == 5
        assert solver.metrics.final_residual < 1e-8

    def test_pure_loading(self):
        solver = ImplicitPorePressureSolver(
            n=8, conductivity=0.0, sedimentation_rate=0.25, n_steps=3
        )
        solver.solve()
        assert np.allclose(solver.psi[1:-1], 0.75)

    def test_failed_solves_counted(self):
        solver = ImplicitPorePressureSolver(
            n=8, conductivity=0.0, storage=0.0, surface_pressure=0.4, n_steps=3
        )
        solver.solve()

        assert solver.metrics.failed_solves == 3
        assert np.allclose(solver.psi, 0.4)
        assert solver.metrics.final_residual == 0.0
        assert solver.metrics.final_residual_l2 == 0.0
