"""Validation engine and its co-run / capacity helpers."""

from alchemist.validator.engine import ValidationEngine, validate, validate_workspace

__all__ = ["ValidationEngine", "validate", "validate_workspace"]
