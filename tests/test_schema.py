from __future__ import annotations

import pandas as pd
import pytest

from waypoint_composer.flight_plan import FieldType
from waypoint_composer.schema import infer_schema, parse_number, to_numbers


def _make_frame(**columns: list[str]) -> pd.DataFrame:
    return pd.DataFrame(columns, dtype=object)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12.5", 12.5),
        ("12,5", 12.5),
        (" -3 ", -3.0),
        (7, 7.0),
        ("", None),
        ("abc", None),
        ("12abc", None),
        ("1_000", None),
        ("0x10", None),
        (" 1e3 ", 1000.0),
        ("inf", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


def test_to_numbers_matches_scalar_parsing():
    numbers = to_numbers(pd.Series(["1,5", "x", "", "2"]))

    assert numbers.iloc[0] == 1.5
    assert pd.isna(numbers.iloc[1])
    assert pd.isna(numbers.iloc[2])
    assert numbers.iloc[3] == 2.0


def test_scalar_and_column_parsing_agree():
    raw = ["1_000", "0x10", " 1e3 ", "12,5", "nan", "-0", "1.2.3", "", "7"]

    numbers = to_numbers(pd.Series(raw))

    for text, number in zip(raw, numbers):
        expected = None if pd.isna(number) else float(number)
        assert parse_number(text) == expected, text


def test_number_wins_over_text_in_mixed_column():
    schema = infer_schema(_make_frame(mixed=["abc", "def", "5"]))

    field = schema.field("mixed")
    assert field.type == FieldType.NUMBER
    assert field.stats.min == 5.0
    assert field.stats.max == 5.0


def test_string_column_collects_unique_values():
    schema = infer_schema(_make_frame(action=["photo", "hover", "photo", ""]))

    field = schema.field("action")
    assert field.type == FieldType.STRING
    assert field.stats.unique_values == frozenset({"photo", "hover", ""})


def test_blank_column_is_other():
    schema = infer_schema(_make_frame(note=["", " ", ""]))

    assert schema.field("note").type == FieldType.OTHER


def test_type_from_sample_stats_from_all_rows():
    frame = _make_frame(alt=["10", "20", "5", "900"])

    schema = infer_schema(frame, sample_size=2)

    field = schema.field("alt")
    assert field.type == FieldType.NUMBER
    assert field.stats.min == 5.0
    assert field.stats.max == 900.0


def test_numbers_beyond_sample_do_not_change_type():
    frame = _make_frame(label=["a", "b", "3"])

    schema = infer_schema(frame, sample_size=2)

    assert schema.field("label").type == FieldType.STRING


def test_schema_follows_header_order():
    frame = _make_frame(b=["1"], a=["x"])

    schema = infer_schema(frame, headers=["a", "b", "missing"])

    assert [f.name for f in schema.fields] == ["a", "b", "missing"]
    assert schema.field("missing").type == FieldType.OTHER
    assert schema.numeric_field_names == ["b"]
