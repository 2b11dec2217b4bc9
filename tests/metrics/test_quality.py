# tests/metrics/test_quality.py
from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from alchemist.errors import DataError
from alchemist.metrics.quality import (
    FINDING_COLUMNS,
    atomic_write_text,
    collect_quality_metrics,
    findings_frame,
    summarize_findings,
    write_quality_metrics,
)
from alchemist.schemas.models import ValidationFinding, Workspace


def mk_finding(fid: str, kind: str, severity: str) -> ValidationFinding:
    return ValidationFinding(id=fid, type=kind, severity=severity, message=fid, entity="E")


@pytest.fixture()
def findings() -> list[ValidationFinding]:
    return [
        mk_finding("a", "duplicate-id", "error"),
        mk_finding("b", "duplicate-id", "error"),
        mk_finding("c", "overloaded-worker", "warning"),
        mk_finding("d", "co-run-opportunity", "info"),
    ]


def test_findings_frame_accepts_models_and_payloads(findings) -> None:
    """
    @brief
    Models and their wire payloads tabulate identically.
    """
    # --- Act ---
    from_models = findings_frame(findings)
    from_payloads = findings_frame([f.to_payload() for f in findings])

    # --- Assert ---
    assert list(from_models.columns) == FINDING_COLUMNS
    assert len(from_models) == 4
    pd.testing.assert_frame_equal(from_models, from_payloads)


def test_findings_frame_rejects_foreign_items() -> None:
    with pytest.raises(DataError):
        findings_frame(["not a finding"])


def test_summary_counts(findings) -> None:
    # --- Act ---
    summary = summarize_findings(findings)

    # --- Assert ---
    assert summary["validation_status"] == "errors"
    assert (summary["total_errors"], summary["total_warnings"], summary["total_info"]) == (2, 1, 1)
    assert summary["by_type"] == {
        "co-run-opportunity": 1,
        "duplicate-id": 2,
        "overloaded-worker": 1,
    }


def test_summary_status_levels(findings) -> None:
    assert summarize_findings([])["validation_status"] == "clean"
    assert summarize_findings([])["by_type"] == {}
    assert summarize_findings(findings[2:])["validation_status"] == "warnings"
    assert summarize_findings(findings[3:])["validation_status"] == "clean"


def test_collect_quality_metrics_with_workspace(findings) -> None:
    # --- Arrange ---
    ws = Workspace.model_validate({"clients": [{"ClientID": "C1"}], "tasks": [{"TaskID": "T1"}]})

    # --- Act ---
    metrics = collect_quality_metrics(findings[2:], ws)

    # --- Assert ---
    assert metrics["ready_for_production"] is True
    assert metrics["entity_counts"]["total_clients"] == 1
    assert metrics["entity_counts"]["active_rules"] == 0
    assert "timestamp" in metrics
    json.dumps(metrics)


def test_errors_block_production(findings) -> None:
    metrics = collect_quality_metrics(findings)
    assert metrics["ready_for_production"] is False
    assert "entity_counts" not in metrics


def test_write_quality_metrics(tmp_path: Path, findings) -> None:
    # --- Act ---
    path = write_quality_metrics(collect_quality_metrics(findings), tmp_path / "out")

    # --- Assert ---
    assert path.name == "quality.json"
    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["total_errors"] == 2


def test_write_quality_metrics_rejects_bad_payloads(tmp_path: Path) -> None:
    with pytest.raises(DataError):
        write_quality_metrics(["not", "a", "dict"], tmp_path)  # type: ignore[arg-type]
    with pytest.raises(DataError, match="not JSON-serializable"):
        write_quality_metrics({"when": object()}, tmp_path)


def test_atomic_write_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "a.json"

    atomic_write_text(target, "{}")
    atomic_write_text(target, '{"v": 2}')

    assert target.read_text(encoding="utf-8") == '{"v": 2}'
    assert [p.name for p in tmp_path.iterdir()] == ["a.json"]
