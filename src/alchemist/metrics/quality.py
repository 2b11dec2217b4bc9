# src/alchemist/metrics/quality.py
from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd

from alchemist.errors import DataError
from alchemist.schemas.models import Severity, ValidationFinding, Workspace

FINDING_COLUMNS = ["id", "type", "severity", "message", "entity", "field", "suggestion"]


def findings_frame(findings: Iterable[ValidationFinding | Mapping[str, Any]]) -> pd.DataFrame:
    """
    @brief
    Tabulate findings into a DataFrame.

    @details
    Accepts ValidationFinding instances or their payload dicts (as stored in
    validation_report.json). Columns follow FINDING_COLUMNS; optional fields
    missing from a payload become None.

    @raises
        DataError
            If an item is neither a finding nor a mapping.
    """
    rows: list[dict[str, Any]] = []
    for item in findings:
        if isinstance(item, ValidationFinding):
            rows.append(item.model_dump())
        elif isinstance(item, Mapping):
            rows.append({col: item.get(col) for col in FINDING_COLUMNS})
        else:
            raise DataError(
                f"Unsupported finding type: {type(item).__name__}",
                source="quality.findings_frame",
                suggested_action="Pass ValidationFinding objects or their payload dicts.",
            )
    return pd.DataFrame(rows, columns=FINDING_COLUMNS)


def summarize_findings(findings: Iterable[ValidationFinding | Mapping[str, Any]]) -> dict[str, Any]:
    """
    @brief
    Count findings by severity and by type.

    @details
    validation_status is "errors" when any error exists, "warnings" when only
    warnings (and info) exist, "clean" otherwise.
    """
    df = findings_frame(findings)

    # (1) Severity counts
    by_severity = df["severity"].value_counts()
    total_errors = int(by_severity.get(Severity.ERROR.value, 0))
    total_warnings = int(by_severity.get(Severity.WARNING.value, 0))
    total_info = int(by_severity.get(Severity.INFO.value, 0))

    # (2) Per-type counts, sorted by type tag
    by_type = {str(k): int(v) for k, v in df.groupby("type", sort=True).size().items()}

    if total_errors:
        status = "errors"
    elif total_warnings:
        status = "warnings"
    else:
        status = "clean"

    return {
        "validation_status": status,
        "total_errors": total_errors,
        "total_warnings": total_warnings,
        "total_info": total_info,
        "by_type": by_type,
    }


def collect_quality_metrics(
    findings: Iterable[ValidationFinding | Mapping[str, Any]],
    workspace: Workspace | None = None,
) -> dict[str, Any]:
    """
    @brief
    Build the data-quality block attached to exported configurations.

    @details
    Combines the finding summary with entity counts (when a workspace is
    given) and a production-readiness flag (no errors). The result is
    guaranteed to be JSON-serializable.
    """
    summary = summarize_findings(findings)
    metrics: dict[str, Any] = {
        "timestamp": _utc_now_iso(),
        **summary,
        "ready_for_production": summary["total_errors"] == 0,
    }
    if workspace is not None:
        metrics["entity_counts"] = workspace.entity_counts()

    json.dumps(metrics, ensure_ascii=False)
    return metrics


def write_quality_metrics(metrics: dict[str, Any], out_dir: Path) -> Path:
    """
    @brief
    Writes quality.json atomically in UTF-8 encoding.

    @params
        metrics : dict[str, Any]
            Output of collect_quality_metrics().
        out_dir : Path
            Directory where quality.json will be created.

    @returns
        Path to the created quality.json file.

    @raises
        DataError
            If input is not a dict or JSON serialization fails.
    """
    if not isinstance(metrics, dict):
        raise DataError("metrics must be a dict", source="quality.write_quality_metrics")

    # (1) Validate JSON serializability to ensure safe persistence
    try:
        payload = json.dumps(metrics, ensure_ascii=False, sort_keys=True, indent=2)
    except (TypeError, ValueError) as e:
        raise DataError(
            f"metrics not JSON-serializable: {e}",
            source="quality.write_quality_metrics",
            suggested_action="Ensure metric values are primitives (str/float/int/bool).",
        ) from e

    # (2) Atomically write validated payload
    target = Path(out_dir) / "quality.json"
    atomic_write_text(target, payload, encoding="utf-8")
    return target


def atomic_write_text(path: Path, text: str, encoding: str = "utf-8") -> None:
    """
    @brief
    Performs atomic text file writing using a temporary file swap.

    @details
    Writes text to a temporary file within the same directory, then replaces
    the destination in a single filesystem operation.

    @raises
        DataError
            On write or rename failure.
    """
    path = Path(path)
    tmp_path: str | None = None
    try:
        # (1) Create temporary file near the target for atomicity
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=path.name + ".", dir=str(path.parent))
        with open(fd, "w", encoding=encoding, newline="") as f:
            f.write(text)
        os.replace(tmp_path, path)
    except OSError as e:
        # (2) Clean up temp file on error
        if tmp_path is not None and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise DataError(
            f"atomic write failed for {path}: {e}",
            source="quality.atomic_write_text",
            suggested_action="Check output directory permissions and disk space.",
        ) from e


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


__all__ = [
    "FINDING_COLUMNS",
    "findings_frame",
    "summarize_findings",
    "collect_quality_metrics",
    "write_quality_metrics",
    "atomic_write_text",
]
