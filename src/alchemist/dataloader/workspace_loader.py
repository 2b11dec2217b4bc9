# src/alchemist/dataloader/workspace_loader.py
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from alchemist.errors import DataError
from alchemist.schemas.models import (
    Client,
    PriorityWeights,
    Task,
    Worker,
    Workspace,
    parse_rule,
)

logger = logging.getLogger(__name__)


class WorkspaceLoader:
    """
    Snapshot file (.json / .yaml / .yml) → Workspace.

    Layout:
      - root mapping with optional sections: clients, workers, tasks,
        rules (or businessRules), priorityWeights (or priority_weights)
      - entity sections are lists of row mappings keyed by upload column
        names (ClientID, AvailableSlots, ...) or snake_case field names
      - a missing section is an empty collection

    Entity rows are read leniently: malformed values are kept for the
    validator. Fatal problems raise DataError right away:
      - missing / unreadable file, unsupported extension, syntax error
      - root that is not a mapping, section that is not a list
      - row that is not a mapping, rule that fails the tagged union
    """

    SUFFIXES = (".json", ".yaml", ".yml")
    ENTITY_SECTIONS: tuple[tuple[str, type[Any]], ...] = (
        ("clients", Client),
        ("workers", Worker),
        ("tasks", Task),
    )

    def load(self, path: Path | str) -> Workspace:
        data = self._read(Path(path))
        workspace = self._build(data)
        self._report_summary(path, workspace)
        return workspace

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _read(self, path: Path) -> dict[str, Any]:
        if not path.exists():
            raise DataError(
                message=f"Workspace file not found: {path}",
                source="WorkspaceLoader._read",
                suggested_action="Verify file path and ensure the snapshot is present.",
            )
        suffix = path.suffix.lower()
        if suffix not in self.SUFFIXES:
            raise DataError(
                message=f"Unsupported workspace file extension: {path.suffix}",
                source="WorkspaceLoader._read",
                suggested_action="Use a .json, .yaml or .yml snapshot.",
            )

        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f) if suffix == ".json" else yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise DataError(
                message=f"Unable to parse workspace file {path.name}: {e}",
                source="WorkspaceLoader._read",
                suggested_action="Fix the snapshot syntax.",
            ) from e
        except OSError as e:
            raise DataError(
                message=f"Unable to read workspace file: {e}",
                source="WorkspaceLoader._read",
                suggested_action="Check file permissions and that the file is not locked.",
            ) from e

        if data is None:
            return {}
        if not isinstance(data, Mapping):
            raise DataError(
                message="Workspace root must be a mapping of sections.",
                source="WorkspaceLoader._read",
                suggested_action="Use top-level keys clients, workers, tasks, rules.",
            )
        return dict(data)

    def _build(self, data: dict[str, Any]) -> Workspace:
        sections: dict[str, list[Any]] = {}

        # (1) Entity rows
        for name, model in self.ENTITY_SECTIONS:
            rows = self._section(data, name)
            sections[name] = [
                self._row(model, name, index, row) for index, row in enumerate(rows)
            ]

        # (2) Business rules
        rules_key = "rules" if "rules" in data else "businessRules"
        rules = []
        for index, raw in enumerate(self._section(data, rules_key)):
            if not isinstance(raw, Mapping):
                raise self._bad_row(rules_key, index, "expected a mapping")
            try:
                rules.append(parse_rule(dict(raw)))
            except ValidationError as e:
                raise self._bad_row(rules_key, index, str(e)) from e

        # (3) Priority weights
        weights_raw = data.get("priorityWeights", data.get("priority_weights"))
        try:
            weights = PriorityWeights.model_validate(weights_raw or {})
        except ValidationError as e:
            raise DataError(
                message=f"Invalid priorityWeights: {e}",
                source="WorkspaceLoader._build",
                suggested_action="Use non-negative numbers for every weight.",
            ) from e

        return Workspace(
            clients=sections["clients"],
            workers=sections["workers"],
            tasks=sections["tasks"],
            rules=rules,
            priority_weights=weights,
        )

    def _section(self, data: dict[str, Any], name: str) -> list[Any]:
        value = data.get(name)
        if value is None:
            return []
        if not isinstance(value, list):
            raise DataError(
                message=f"Section '{name}' must be a list, got {type(value).__name__}",
                source="WorkspaceLoader._section",
                suggested_action=f"Store {name} as a list of rows.",
            )
        return value

    def _row(self, model: type[Any], section: str, index: int, row: Any) -> Any:
        if not isinstance(row, Mapping):
            raise self._bad_row(section, index, "expected a mapping")
        try:
            return model.model_validate(dict(row))
        except ValidationError as e:
            raise self._bad_row(section, index, str(e)) from e

    def _bad_row(self, section: str, index: int, reason: str) -> DataError:
        return DataError(
            message=f"Invalid entry {section}[{index}]: {reason}",
            source="WorkspaceLoader._build",
            suggested_action=f"Fix or remove entry #{index} of '{section}'.",
        )

    def _report_summary(self, path: Path | str, workspace: Workspace) -> None:
        counts = workspace.entity_counts()
        logger.info(
            "Workspace loaded from %s: %d clients, %d workers, %d tasks, %d active rules",
            path,
            counts["total_clients"],
            counts["total_workers"],
            counts["total_tasks"],
            counts["active_rules"],
        )


__all__ = ["WorkspaceLoader"]
