# src/alchemist/dataloader/config_loader.py
from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from alchemist.errors import ConfigError
from alchemist.schemas.models import Config

logger = logging.getLogger(__name__)

CONFIG_SUFFIXES = (".yaml", ".yml")


class ConfigLoader:
    """
    @brief
    Reads config.yaml and turns it into a validated Config.

    @details
    The file is optional for callers using load_or_default(); when a path is
    given, every problem with it (missing, wrong suffix, YAML syntax, unknown
    keys, wrong types) is raised as ConfigError carrying a suggested action.
    An empty file is accepted and yields the defaults.
    """

    def load(self, path: Path | str) -> Config:
        """
        @brief
        Load and validate configuration from a YAML file.

        @params
            path : Path | str
                Location of the .yaml / .yml configuration.

        @returns
            Config with defaults applied for omitted keys.

        @raises
            ConfigError
                On any I/O, syntax or schema failure.
        """
        # (1) Raw mapping from disk
        data = self._read_yaml(self._as_path(path))

        # (2) Schema validation
        cfg = self._validate(data)
        logger.info("Configuration loaded: %s", path)
        return cfg

    def load_or_default(self, path: Path | str | None) -> Config:
        """Load the given file, or fall back to built-in defaults when no path is given."""
        if path is None:
            logger.info("No configuration file given, using defaults")
            return Config()
        return self.load(path)

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _as_path(self, path: Any) -> Path:
        if isinstance(path, str):
            return Path(path)
        if isinstance(path, Path):
            return path
        raise ConfigError(
            message=f"Config path must be str or Path, not {type(path).__name__}",
            source="ConfigLoader._as_path",
            suggested_action="Pass the location of config.yaml.",
        )

    def _read_yaml(self, path: Path) -> dict[str, Any]:
        if not path.is_file():
            raise self._fail(
                f"Configuration file not found: {path}",
                "Create config.yaml or point --config at an existing file.",
            )
        if path.suffix.lower() not in CONFIG_SUFFIXES:
            raise self._fail(
                f"Unsupported configuration extension '{path.suffix}' ({path.name})",
                "Rename the file to .yaml or .yml.",
            )

        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            raise self._fail(f"Cannot read {path}: {e}", "Check file permissions.") from e

        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise self._fail(
                f"YAML parsing failed for {path.name}: {e}",
                "Fix YAML syntax and indentation.",
            ) from e

        if data is None:
            return {}
        if not isinstance(data, Mapping):
            raise self._fail(
                f"Configuration root must be a mapping, got {type(data).__name__}",
                "Use top-level 'key: value' entries such as validation: and output_dir:.",
            )
        return dict(data)

    def _validate(self, data: dict[str, Any]) -> Config:
        try:
            return Config.model_validate(data)
        except ValidationError as e:
            raise ConfigError(
                message=f"Invalid configuration structure: {e}",
                source="ConfigLoader._validate",
                suggested_action=(
                    "Compare config.yaml with schemas/config.schema.json; "
                    "unknown keys are rejected."
                ),
            ) from e

    def _fail(self, message: str, action: str) -> ConfigError:
        return ConfigError(message=message, source="ConfigLoader._read_yaml", suggested_action=action)


__all__ = ["ConfigLoader"]
