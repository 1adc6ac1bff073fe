# scripts/run.py
from __future__ import annotations

import argparse
import logging
import sys
import time
import traceback
from pathlib import Path
from typing import Any

from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.dataloader.postload_handler import LoadResultHandler
from alchemist.dataloader.records_loader import RecordsLoader

# --- Alchemist imports
from alchemist.errors import AlchemistError, ConfigError, DataError
from alchemist.report.writer import (
    EXPORT_DIRNAME,
    is_export_ready,
    write_export_package,
    write_findings_csv,
    write_report,
)
from alchemist.schemas.models import Config, EntityType
from alchemist.validator import ValidationEngine
from alchemist.visualizer.plot import plot_phase_capacity


def _setup_logging() -> None:
    """
    @brief
    Initializes global logging configuration.

    @details
    INFO level with a compact console format shared by every pipeline step.
    """
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    @brief
    Parses command-line arguments for the validation pipeline.

    @details
    Input paths given on the command line override the ones in config.yaml;
    --output overrides output_dir.
    """
    parser = argparse.ArgumentParser(
        prog="alchemist-run",
        description="Validate clients / workers / tasks CSVs: load → validate → report → export gate",
    )

    # (1) Config path argument
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to config YAML (default: config/config.yaml)",
    )

    # (2) Input CSV overrides
    parser.add_argument("--clients", type=str, default=None, help="Path to clients CSV")
    parser.add_argument("--workers", type=str, default=None, help="Path to workers CSV")
    parser.add_argument("--tasks", type=str, default=None, help="Path to tasks CSV")

    # (3) Output directory argument
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for artifacts (default: output_dir from config)",
    )

    return parser.parse_args(argv)


def _input_paths(cfg: Config, overrides: dict[str, str | None]) -> dict[str, Path]:
    """Resolve the three input CSVs from CLI overrides first, then config."""
    from_config = {
        EntityType.CLIENT.value: cfg.clients_csv,
        EntityType.WORKER.value: cfg.workers_csv,
        EntityType.TASK.value: cfg.tasks_csv,
    }
    paths: dict[str, Path] = {}
    for entity, configured in from_config.items():
        chosen = overrides.get(entity) or configured
        if not chosen:
            raise ConfigError(
                message=f"No input CSV configured for {entity}s",
                source="scripts.run",
                suggested_action=f"Set {entity}s_csv in config.yaml or pass --{entity}s.",
            )
        paths[entity] = Path(chosen)
    return paths


def run_pipeline(
    config_path: Path,
    output_dir: Path | None = None,
    *,
    clients: Path | None = None,
    workers: Path | None = None,
    tasks: Path | None = None,
) -> dict[str, Any]:
    """
    @brief
    Executes the full validation pipeline.

    @details
    Performs sequential steps:
    (1) Load configuration and the three entity CSVs.
    (2) Run the validation engine with co-run groups and assignments from config.
    (3) Write validation_report.json, findings.csv and phase_capacity.png
        according to io_policy.
    (4) Evaluate the export gate; when it passes, write the export package
        (cleaned CSVs + export_metadata.json) under <output>/export.
    (5) Return summary metadata.
    Raises AlchemistError on controlled failures.

    @returns
        Dictionary with validity, export readiness, summary and artifact paths.

    @raises
        AlchemistError
            On configuration, input or artifact issues.
    """
    # (1) Start timer and load configuration
    t0 = time.perf_counter()
    logging.info("Loading config: %s", config_path)
    cfg = ConfigLoader().load(config_path)

    output_dir = Path(output_dir or cfg.output_dir or "data/output")
    output_dir.mkdir(parents=True, exist_ok=True)

    # (2) Load entity CSVs
    paths = _input_paths(
        cfg,
        {
            EntityType.CLIENT.value: clients and str(clients),
            EntityType.WORKER.value: workers and str(workers),
            EntityType.TASK.value: tasks and str(tasks),
        },
    )
    results = []
    for entity, path in paths.items():
        logging.info("Loading %ss: %s", entity, path)
        results.append(RecordsLoader(entity).load(path))

    collections = LoadResultHandler(output_dir=output_dir).handle(results)
    if collections is None:
        load_errors_path = output_dir / "load_errors.json"
        raise DataError(
            message=f"Input load failed, see {load_errors_path.as_posix()}",
            source="scripts.run",
            suggested_action="Fix CSV issues reported in load_errors.json and rerun the pipeline.",
        )

    # (3) Validate
    logging.info("Validating…")
    engine = ValidationEngine(cfg.validation)
    result = engine.validate(
        collections[EntityType.CLIENT.value],
        collections[EntityType.WORKER.value],
        collections[EntityType.TASK.value],
        co_run_groups=cfg.co_run_groups,
        assignments=cfg.assignments,
    )

    # (4) Artifacts
    artifacts: dict[str, Path | None] = {
        "validation_report": None,
        "findings_csv": None,
        "phase_plot": None,
        "export_metadata": None,
    }
    if cfg.io_policy.write_report:
        artifacts["validation_report"] = write_report(result, output_dir)
    if cfg.io_policy.write_findings_csv:
        artifacts["findings_csv"] = write_findings_csv(result.findings, output_dir)
    if cfg.io_policy.write_plot:
        logging.info("Rendering phase-capacity plot…")
        artifacts["phase_plot"] = plot_phase_capacity(result, cfg, output_dir / "phase_capacity.png")

    # (5) Export gate
    ready = is_export_ready(result.summary, cfg.validation)
    if ready:
        logging.info("Export gate passed (errors=%d).", result.summary.errors)
        if cfg.io_policy.write_export:
            package = write_export_package(result, output_dir / EXPORT_DIRNAME)
            artifacts["export_metadata"] = package["metadata"]
    else:
        logging.warning(
            "Export gate closed: errors=%d (max %d), warnings=%d%s",
            result.summary.errors,
            cfg.validation.max_errors,
            result.summary.warnings,
            " (fail_on_warnings)" if cfg.validation.fail_on_warnings else "",
        )

    dt = time.perf_counter() - t0
    logging.info("Pipeline finished in %.2f s", dt)

    return {
        "valid": result.is_valid,
        "export_ready": ready,
        "summary": result.summary.model_dump(),
        "runtime_seconds": dt,
        "artifacts": artifacts,
    }


def main(argv: list[str] | None = None) -> int:
    """
    @brief
    CLI entry point for the validation pipeline.

    @details
    Exit codes suitable for shell integration:
      0 – export gate passed
      1 – controlled failure (config/data/report) or export gate closed
      2 – unexpected crash
    """
    _setup_logging()
    args = _parse_args(argv)

    try:
        result = run_pipeline(
            Path(args.config),
            Path(args.output) if args.output else None,
            clients=Path(args.clients) if args.clients else None,
            workers=Path(args.workers) if args.workers else None,
            tasks=Path(args.tasks) if args.tasks else None,
        )
        written = [p.name for p in result["artifacts"].values() if p is not None]
        logging.info("Artifacts: %s", ", ".join(written) or "none")
        return 0 if result.get("export_ready") else 1

    except AlchemistError as e:
        logging.error(str(e))
        return 1
    except Exception:
        logging.error("Unexpected error occurred:")
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
