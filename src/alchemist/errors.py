# src/alchemist/errors.py
"""
@brief
Structured exceptions raised by loaders, the report writer and the CLI.

@details
Data anomalies inside a workspace are never exceptions; they are findings.
These classes cover what stops a run: unreadable configuration, broken
snapshot files and reports that cannot be persisted. Each error carries where
it happened and what the user can do about it, and serializes to a payload
the CLI stores next to the other artifacts.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


class AlchemistError(Exception):
    """
    @brief
    Root of the project's exception hierarchy.

    @params
        message : str
            What went wrong.
        source : str | None
            Component that raised, e.g. "WorkspaceLoader._read".
        suggested_action : str | None
            Hint shown to the user.
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
        suggested_action: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.source = source or "unknown"
        self.suggested_action = suggested_action
        self.raised_at = datetime.now(timezone.utc)

    @property
    def kind(self) -> str:
        return type(self).__name__

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready description of the failure."""
        payload: dict[str, Any] = {
            "kind": self.kind,
            "message": self.message,
            "source": self.source,
            "raised_at": self.raised_at.isoformat(timespec="seconds"),
        }
        if self.suggested_action:
            payload["suggested_action"] = self.suggested_action
        return payload

    def __str__(self) -> str:
        text = f"{self.kind} in {self.source}: {self.message}"
        if self.suggested_action:
            text += f" (hint: {self.suggested_action})"
        return text


class ConfigError(AlchemistError):
    """config.yaml is missing, unreadable or does not match the schema."""


class DataError(AlchemistError):
    """A workspace snapshot or metrics payload is structurally broken."""


class ValidationError(AlchemistError):
    """The validation report could not be persisted."""


__all__ = ["AlchemistError", "ConfigError", "DataError", "ValidationError"]
