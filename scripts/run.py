# scripts/run.py
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
import traceback
from pathlib import Path
from typing import Any

from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.dataloader.workspace_loader import WorkspaceLoader
from alchemist.errors import AlchemistError
from alchemist.metrics.quality import (
    atomic_write_text,
    collect_quality_metrics,
    write_quality_metrics,
)
from alchemist.validator import validate_workspace

REPORT_FILENAME = "validation_report.json"
ERROR_FILENAME = "error.json"


def _setup_logging() -> None:
    """Console logging at INFO with a short format."""
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    @brief
    Parses command-line arguments for the validation pipeline.

    @details
    --config is optional (built-in defaults apply); --input points to a
    workspace snapshot (.json/.yaml); --output receives the artifacts.
    """
    parser = argparse.ArgumentParser(
        prog="alchemist-validate",
        description="Validate an allocation workspace: load → validate → report → quality",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config YAML (default: built-in defaults)",
    )
    parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="Path to workspace snapshot (default: workspace_path from config, "
        "else data/samples/workspace.json)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for artifacts (default: output_dir from config)",
    )
    return parser.parse_args(argv)


def run_pipeline(
    config_path: Path | None,
    input_path: Path | None,
    output_dir: Path | None,
) -> dict[str, Any]:
    """
    @brief
    Executes the validation pipeline end to end.

    @details
    (1) Load configuration and the workspace snapshot.
    (2) Run every validation check and build the report.
    (3) Collect the data-quality block and write artifacts.
    Controlled failures surface as AlchemistError.

    @params
        config_path : Path | None
            YAML configuration; None means defaults.
        input_path : Path | None
            Workspace snapshot; None falls back to cfg.workspace_path.
        output_dir : Path | None
            Artifact directory; None falls back to cfg.output_dir.

    @returns
        Dictionary with the validity flag, the finding summary and artifact paths.
    """
    t0 = time.perf_counter()

    # (1) Configuration and inputs
    cfg = ConfigLoader().load_or_default(config_path)
    input_path = input_path or Path(cfg.workspace_path or "data/samples/workspace.json")
    output_dir = output_dir or Path(cfg.output_dir or "data/output")
    output_dir.mkdir(parents=True, exist_ok=True)

    logging.info("Loading workspace: %s", input_path)
    workspace = WorkspaceLoader().load(input_path)

    # (2) Validation
    logging.info("Validating workspace…")
    report = validate_workspace(
        workspace,
        cfg,
        write_report=cfg.validation.write_report,
        out_dir=output_dir,
        filename=REPORT_FILENAME,
    )
    if not report["valid"]:
        logging.warning(
            "Workspace is not valid: %d error(s), %d warning(s)",
            len(report["errors"]),
            len(report["warnings"]),
        )

    # (3) Data-quality block
    quality = collect_quality_metrics(report["findings"], workspace)
    quality_path = write_quality_metrics(quality, output_dir)

    # Listed only when written by this run
    report_path = output_dir / REPORT_FILENAME if cfg.validation.write_report else None
    logging.info("Pipeline finished in %.2f s", time.perf_counter() - t0)

    return {
        "valid": bool(report["valid"]),
        "summary": report["summary"],
        "artifacts": {
            "validation_report": report_path,
            "quality": quality_path,
        },
    }


def _write_error(error: AlchemistError, output_dir: Path) -> Path | None:
    """
    @brief
    Stores a controlled failure as error.json in the output directory.

    @details
    Best effort: if the directory itself is unusable the failure is only
    logged, and the original error still decides the exit code.
    """
    target = output_dir / ERROR_FILENAME
    try:
        atomic_write_text(target, json.dumps(error.to_payload(), indent=2, ensure_ascii=False))
    except AlchemistError as e:
        logging.warning("error.json not written: %s", e)
        return None
    logging.info("Failure details written to %s", target)
    return target


def main(argv: list[str] | None = None) -> int:
    """
    @brief
    CLI entry point.

    @details
    Exit codes:
      0 – workspace valid
      1 – blocking findings, or controlled failure (data/config/report)
      2 – unexpected crash
    """
    _setup_logging()
    args = _parse_args(argv)

    config_path = Path(args.config) if args.config else None
    input_path = Path(args.input) if args.input else None
    output_dir = Path(args.output) if args.output else None

    try:
        result = run_pipeline(config_path, input_path, output_dir)
        summary = result["summary"]
        logging.info(
            "Status: %s (%d errors, %d warnings, %d info)",
            summary["validation_status"],
            summary["total_errors"],
            summary["total_warnings"],
            summary["total_info"],
        )
        return 0 if result["valid"] else 1

    except AlchemistError as e:
        logging.error(str(e))
        if output_dir is not None:
            _write_error(e, output_dir)
        return 1
    except Exception:
        logging.error("Unexpected error occurred:")
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
