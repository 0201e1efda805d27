"""
Pore-pressure solver runner - Hydra + MLflow integration for the FMG and
tridiagonal solvers.

Single runs:
    python run_solver.py solver=multigrid ndim=2 n=33
    python run_solver.py solver=implicit n=65 n_steps=100

Parameter sweeps (multirun mode):
    python run_solver.py -m solver=multigrid ndim=1,2,3 n=17,33,65

MLflow tracking is off by default:
    python run_solver.py mlflow.enabled=true

Setup for remote MLflow:
    cp .env.template .env
    # Edit .env with your credentials
"""

import logging
import os
import sys
import tempfile
from pathlib import Path

import hydra
import mlflow
from dotenv import load_dotenv
from hydra.utils import instantiate
from mlflow.tracking import MlflowClient
from omegaconf import DictConfig, OmegaConf

# Load .env file (for MLflow credentials)
load_dotenv()

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / "src"))

log = logging.getLogger(__name__)


# =============================================================================
# Solver Factory
# =============================================================================


def create_solver(cfg: DictConfig):
    """Instantiate solver using Hydra's instantiate on solver subtree.

    Common parameters from root config are passed to the solver constructor.
    """
    solver_cfg = OmegaConf.to_container(cfg.solver, resolve=True)
    solver_cfg.pop("name", None)

    return instantiate(
        solver_cfg,
        n=cfg.n,
        ndim=cfg.ndim,
        dz=cfg.dz,
        dx=cfg.dx,
        dt=cfg.dt,
        n_steps=cfg.n_steps,
        sedimentation_rate=cfg.sedimentation_rate,
        conductivity=cfg.conductivity,
        horizontal_conductivity=cfg.horizontal_conductivity,
        initial_pressure=cfg.initial_pressure,
        _convert_="partial",
    )


# =============================================================================
# MLflow Logging
# =============================================================================


def setup_mlflow(cfg: DictConfig) -> str:
    """Setup MLflow tracking and return experiment name."""
    # A remote server from .env takes precedence over the local default
    tracking_uri = os.environ.get("MLFLOW_TRACKING_URI") or cfg.mlflow.get(
        "tracking_uri", "./mlruns"
    )
    os.environ["MLFLOW_TRACKING_URI"] = str(tracking_uri)
    mlflow.set_tracking_uri(tracking_uri)

    # Build experiment name with optional project prefix
    experiment_name = cfg.experiment_name
    project_prefix = cfg.mlflow.get("project_prefix", "")
    if project_prefix and not experiment_name.startswith("/"):
        experiment_name = f"{project_prefix}/{experiment_name}"

    mlflow.set_experiment(experiment_name)
    return experiment_name


def log_params(solver):
    """Log solver params to MLflow using dataclass to_mlflow method."""
    mlflow.log_params(solver.params.to_mlflow())


def log_metrics_and_timeseries(solver, run_id: str):
    """Log final metrics and timeseries to MLflow."""
    # Final metrics (using dataclass to_mlflow method)
    mlflow.log_metrics(solver.metrics.to_mlflow())

    # Timeseries (batch logging using dataclass to_mlflow_batch method)
    if solver.time_series is not None:
        batch_metrics = solver.time_series.to_mlflow_batch()
        if batch_metrics:
            MlflowClient().log_batch(run_id=run_id, metrics=batch_metrics)


def log_fields(solver, filename: str):
    """Save the solver state to HDF5 and log it as an MLflow artifact."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / filename
        solver.save(path)
        mlflow.log_artifact(str(path), artifact_path="fields")

    log.info(f"Logged fields: {filename}")


# =============================================================================
# Main Entry Point
# =============================================================================


@hydra.main(config_path="conf", config_name="config", version_base=None)
def main(cfg: DictConfig) -> None:
    """Hydra entry point - runs solver with optional MLflow tracking."""
    solver_name = cfg.solver.name
    log.info(f"Solver: {solver_name}, {cfg.ndim}D, n={cfg.n}, steps={cfg.n_steps}")

    solver = create_solver(cfg)
    run_name = f"{solver_name}_{cfg.ndim}d_n{cfg.n}"

    if not cfg.mlflow.enabled:
        solver.solve()
        output_dir = Path(hydra.core.hydra_config.HydraConfig.get().runtime.output_dir)
        solver.save(output_dir / cfg.output_file)
        log.info(
            f"Done: {solver.metrics.steps} steps, "
            f"residual={solver.metrics.final_residual:.3e}, "
            f"time={solver.metrics.wall_time_seconds:.2f}s"
        )
        return

    experiment_name = setup_mlflow(cfg)
    log.info(f"MLflow experiment: {experiment_name}")

    with mlflow.start_run(run_name=run_name, tags={"solver": solver_name}) as run:
        log_params(solver)

        # Log Hydra config as artifact
        mlflow.log_dict(OmegaConf.to_container(cfg), "config.yaml")

        log.info("Starting solver...")
        solver.solve()

        log_metrics_and_timeseries(solver, run.info.run_id)
        log_fields(solver, cfg.output_file)

        log.info(
            f"Done: {solver.metrics.steps} steps, "
            f"residual={solver.metrics.final_residual:.3e}, "
            f"failed solves={solver.metrics.failed_solves}, "
            f"time={solver.metrics.wall_time_seconds:.2f}s"
        )


if __name__ == "__main__":
    main()
