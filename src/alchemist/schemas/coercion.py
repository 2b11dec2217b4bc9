# src/alchemist/schemas/coercion.py
"""
@brief
Lenient value coercion for uploaded workspace rows.

@details
Rows arrive from spreadsheets, the in-memory store or an LLM column mapper, so
list fields may be real lists, JSON list strings ("[1, 2]"), comma separated
strings ("a, b") or phase ranges ("1-3"). These helpers normalize the shapes
that are unambiguous and keep everything else as received, so the validator
can report malformed values instead of the models rejecting them.
"""

from __future__ import annotations

import json
import re
from collections.abc import Mapping
from typing import Any

_RANGE_RE = re.compile(r"^\s*(\d+)\s*-\s*(\d+)\s*$")


def split_list(value: Any) -> list[Any]:
    """
    @brief
    Turn a list-like cell into a Python list.

    @details
    Accepts None, sequences, JSON list strings and comma separated strings.
    A scalar becomes a one-element list. Items are returned untouched.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                text = text.strip("[]")
            else:
                if isinstance(parsed, list):
                    return parsed
                return [parsed]
        return [part.strip() for part in text.split(",") if part.strip()]
    return [value]


def to_str_list(value: Any) -> list[str]:
    """Normalize a list-like cell into a list of non-empty, stripped strings."""
    out: list[str] = []
    for item in split_list(value):
        if item is None:
            continue
        text = str(item).strip()
        if text:
            out.append(text)
    return out


def to_phase_list(value: Any) -> list[Any]:
    """
    @brief
    Normalize a phase list cell.

    @details
    Expands ascending "a-b" range tokens into consecutive integers and converts
    integer-like entries to int. Entries that are not integer-like are kept
    as received (e.g. "x", 2.5, -1, "5-3") for the malformed-list check.
    """
    out: list[Any] = []
    for item in split_list(value):
        if isinstance(item, str):
            match = _RANGE_RE.match(item)
            if match:
                start, end = int(match.group(1)), int(match.group(2))
                if start <= end:
                    out.extend(range(start, end + 1))
                    continue
                # Reversed range: keep the token for the malformed-list check
                out.append(item)
                continue
        out.append(to_int_like(item))
    return out


def to_int_like(value: Any) -> Any:
    """
    @brief
    Convert integer-like values to int, keep anything else as received.

    @details
    "3", " 3 ", 3.0 and "3.0" become 3. Empty strings become None.
    Booleans, fractional numbers and free text are returned unchanged.
    """
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return text
        return int(number) if number.is_integer() else number
    return value


def to_json_text(value: Any) -> str | None:
    """Serialize already-parsed attribute payloads back to a JSON string."""
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (Mapping, list)):
        # Mixed-type keys cannot be sorted but may still serialize unsorted
        for sort_keys in (True, False):
            try:
                return json.dumps(value, ensure_ascii=False, sort_keys=sort_keys)
            except (TypeError, ValueError):
                continue
        # Not representable as JSON: the repr fails to parse and is reported
        return repr(value)
    return str(value)


def is_positive_int(value: Any) -> bool:
    """True for real integers >= 1 (booleans excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def as_int(value: Any, default: int = 0) -> int:
    """Return value if it is a real integer, otherwise the default."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return default


__all__ = [
    "split_list",
    "to_str_list",
    "to_phase_list",
    "to_int_like",
    "to_json_text",
    "is_positive_int",
    "as_int",
]
