# tests/dataloader/test_config_loader.py

from pathlib import Path

import pytest
import yaml

from alchemist.dataloader.config_loader import ConfigLoader
from alchemist.errors import ConfigError
from alchemist.schemas.models import Config


@pytest.fixture()
def tmp_yaml(tmp_path: Path) -> Path:
    """Writes a temporary YAML with valid Config fields."""
    path = tmp_path / "config.yaml"
    cfg = {
        "validation": {"priority_max": 10, "include_insights": True},
        "output_dir": "out",
    }
    with path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f)
    return path


def test_load_valid_yaml_returns_config(tmp_yaml: Path):
    """
    @brief
    Verify that valid YAML is parsed and defaults are applied.
    """
    # --- Arrange ---
    loader = ConfigLoader()

    # --- Act ---
    cfg = loader.load(tmp_yaml)

    # --- Assert ---
    assert isinstance(cfg, Config)
    assert cfg.validation.priority_max == 10
    assert cfg.validation.priority_min == 1
    assert cfg.validation.include_insights is True
    assert cfg.output_dir == "out"


def test_load_accepts_string_path(tmp_yaml: Path):
    cfg = ConfigLoader().load(str(tmp_yaml))
    assert cfg.validation.priority_max == 10


def test_load_or_default_without_path():
    cfg = ConfigLoader().load_or_default(None)
    assert cfg == Config()


def test_empty_file_means_defaults(tmp_path: Path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert ConfigLoader().load(path) == Config()


def test_missing_file_raises_configerror(tmp_path: Path):
    """
    @brief
    Missing configuration file triggers ConfigError.
    """
    # --- Arrange ---
    loader = ConfigLoader()
    path = tmp_path / "no_such.yaml"

    # --- Act / Assert ---
    with pytest.raises(ConfigError) as e:
        loader.load(path)

    assert "Configuration file not found" in str(e.value)


def test_wrong_extension_raises_configerror(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text("{}", encoding="utf-8")

    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(path)
    assert "extension" in str(e.value)


def test_invalid_yaml_syntax_raises_configerror(tmp_path: Path):
    path = tmp_path / "broken.yaml"
    path.write_text("validation: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(path)
    assert "YAML parsing failed" in str(e.value)


def test_non_mapping_root_raises_configerror(tmp_path: Path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigLoader().load(path)


def test_unknown_keys_are_rejected(tmp_path: Path):
    """
    @brief
    Extra fields are forbidden at every level.
    """
    # --- Arrange ---
    path = tmp_path / "extra.yaml"
    path.write_text("validation:\n  strictness: high\n", encoding="utf-8")

    # --- Act / Assert ---
    with pytest.raises(ConfigError) as e:
        ConfigLoader().load(path)
    assert e.value.source == "ConfigLoader._validate"
    assert e.value.suggested_action is not None


def test_repository_config_is_valid():
    """The bundled config/config.yaml must always load."""
    cfg_path = Path(__file__).resolve().parents[2] / "config" / "config.yaml"
    cfg = ConfigLoader().load(cfg_path)
    assert cfg.workspace_path == "data/samples/workspace.json"
