import json
from pathlib import Path

import yaml

from scripts import gen_schemas
from scripts.run import main, run_pipeline

ROOT = Path(__file__).resolve().parents[1]
SAMPLE = ROOT / "data" / "samples" / "workspace.json"


def _write_workspace(tmp_path: Path, data: dict) -> Path:
    p = tmp_path / "workspace.json"
    p.write_text(json.dumps(data), encoding="utf-8")
    return p


def test_run_pipeline_on_sample_creates_artifacts(tmp_path: Path):
    """
    @brief
    Smoke test of the full pipeline on the bundled sample workspace.

    @details
    The sample carries a load-limit warning only, so it is valid and both
    artifacts are written.
    """
    # --- Act ---
    result = run_pipeline(None, SAMPLE, tmp_path)
    arts = result["artifacts"]

    # --- Assert ---
    assert result["valid"] is True
    assert result["summary"]["total_errors"] == 0
    assert arts["validation_report"] and Path(arts["validation_report"]).exists()
    quality = json.loads(Path(arts["quality"]).read_text(encoding="utf-8"))
    assert quality["ready_for_production"] is True
    assert quality["entity_counts"]["total_tasks"] == 3


def test_run_pipeline_honours_write_report_flag(tmp_path: Path):
    # --- Arrange ---
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(yaml.safe_dump({"validation": {"write_report": False}}), encoding="utf-8")
    out = tmp_path / "out"

    # --- Act ---
    result = run_pipeline(cfg_path, SAMPLE, out)

    # --- Assert ---
    assert result["artifacts"]["validation_report"] is None
    assert (out / "quality.json").exists()


def test_main_exit_codes(tmp_path: Path):
    """
    @brief
    0 for a valid workspace, 1 for blocking findings or controlled failures.
    """
    # --- Arrange ---
    invalid = _write_workspace(tmp_path, {"clients": [{"ClientID": "C1"}, {"ClientID": "C1"}]})
    out = str(tmp_path / "out")

    # --- Act / Assert ---
    assert main(["--input", str(SAMPLE), "--output", out]) == 0
    assert main(["--input", str(invalid), "--output", out]) == 1
    assert main(["--input", str(tmp_path / "missing.json"), "--output", out]) == 1


def test_main_unexpected_error_returns_2(tmp_path: Path, monkeypatch):
    def boom(*_args, **_kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr("scripts.run.run_pipeline", boom)

    assert main(["--output", str(tmp_path)]) == 2


def test_gen_schemas_writes_one_file_per_contract(tmp_path: Path):
    paths = gen_schemas.main(tmp_path)

    assert sorted(p.name for p in paths) == sorted(
        f"{name}.schema.json" for _, name in gen_schemas.SCHEMAS
    )
    workspace_schema = json.loads((tmp_path / "workspace.schema.json").read_text(encoding="utf-8"))
    assert "priorityWeights" in workspace_schema["properties"]


def test_stale_report_is_not_listed_as_artifact(tmp_path: Path):
    """
    @brief
    A report left by an earlier run is ignored when writing is disabled.
    """
    # --- Arrange ---
    cfg_path = tmp_path / "config.yaml"
    cfg_path.write_text(yaml.safe_dump({"validation": {"write_report": False}}), encoding="utf-8")
    out = tmp_path / "out"
    out.mkdir()
    (out / "validation_report.json").write_text("{}", encoding="utf-8")

    # --- Act ---
    result = run_pipeline(cfg_path, SAMPLE, out)

    # --- Assert ---
    assert result["artifacts"]["validation_report"] is None
    assert (out / "validation_report.json").read_text(encoding="utf-8") == "{}"


def test_controlled_failure_writes_error_json(tmp_path: Path):
    # --- Arrange ---
    out = tmp_path / "out"

    # --- Act ---
    code = main(["--input", str(tmp_path / "missing.json"), "--output", str(out)])

    # --- Assert ---
    assert code == 1
    payload = json.loads((out / "error.json").read_text(encoding="utf-8"))
    assert payload["kind"] == "DataError"
    assert payload["source"] == "WorkspaceLoader._read"
    assert "not found" in payload["message"]
