import json

import pytest

from alchemist.errors import AlchemistError, ConfigError, DataError, ValidationError


@pytest.mark.parametrize("cls", [ConfigError, DataError, ValidationError])
def test_subclasses_share_structured_fields(cls):
    err = cls("boom", source="unit", suggested_action="retry")

    assert isinstance(err, AlchemistError)
    assert err.kind == cls.__name__
    assert err.raised_at.tzinfo is not None
    assert str(err) == f"{cls.__name__} in unit: boom (hint: retry)"


def test_defaults_when_context_missing():
    err = DataError("bad")

    assert err.source == "unknown"
    assert err.suggested_action is None
    assert str(err) == "DataError in unknown: bad"


def test_payload_is_json_ready():
    payload = ConfigError("missing", source="ConfigLoader", suggested_action="add it").to_payload()

    assert payload["kind"] == "ConfigError"
    assert payload["message"] == "missing"
    assert payload["suggested_action"] == "add it"
    assert payload["raised_at"].endswith("+00:00")
    json.dumps(payload)


def test_payload_omits_missing_hint():
    assert "suggested_action" not in DataError("bad").to_payload()
