import json

import pytest

from alchemist.schemas.coercion import (
    as_int,
    is_positive_int,
    split_list,
    to_int_like,
    to_json_text,
    to_phase_list,
    to_str_list,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (None, []),
        ("", []),
        ("a, b ,c", ["a", "b", "c"]),
        ('["a", "b"]', ["a", "b"]),
        ("[a, b]", ["a", "b"]),
        (("a",), ["a"]),
        (7, [7]),
    ],
)
def test_split_list_shapes(value, expected):
    assert split_list(value) == expected


def test_to_str_list_drops_blanks():
    assert to_str_list(["a", " ", None, 3]) == ["a", "3"]


def test_to_phase_list_expands_ranges_and_keeps_garbage():
    assert to_phase_list("1-3, 5, x") == [1, 2, 3, 5, "x"]
    assert to_phase_list([1.0, "2", 2.5]) == [1, 2, 2.5]


@pytest.mark.parametrize(
    "value, expected",
    [("3", 3), (" 4 ", 4), (3.0, 3), ("3.0", 3), ("", None), ("high", "high"), (2.5, 2.5)],
)
def test_to_int_like(value, expected):
    assert to_int_like(value) == expected


def test_to_int_like_leaves_booleans():
    assert to_int_like(True) is True


def test_to_json_text_serializes_parsed_payloads():
    assert to_json_text({"b": 1, "a": 2}) == '{"a": 2, "b": 1}'
    assert to_json_text("{raw") == "{raw"
    assert to_json_text(None) is None


def test_integer_predicates():
    assert is_positive_int(1)
    assert not is_positive_int(0)
    assert not is_positive_int(True)
    assert as_int("5") == 0
    assert as_int(5) == 5
    assert as_int(None, default=-1) == -1


def test_reversed_range_token_is_kept():
    assert to_phase_list("5-3") == ["5-3"]
    assert to_phase_list("3-3, 6-4") == [3, "6-4"]


def test_to_json_text_never_raises_on_unserializable_values():
    from datetime import date

    text = to_json_text({"since": date(2024, 1, 1)})

    assert "2024" in text
    with pytest.raises(ValueError):
        json.loads(text)


def test_to_json_text_falls_back_to_unsorted_keys():
    assert json.loads(to_json_text({1: "one", "two": 2})) == {"1": "one", "two": 2}
