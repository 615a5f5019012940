"""Column type inference and statistics for imported CSV data.

Types are decided from a bounded sample of leading rows; statistics are
computed over every row.  A column is ``number`` as soon as *any* sampled
value parses as a number, even when most sampled values are text.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

import numpy as np
import pandas as pd

from waypoint_composer.config import config
from waypoint_composer.flight_plan import DatasetSchema, FieldStats, FieldType, SchemaField

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Locale-normalized number parsing
# ---------------------------------------------------------------------------


def parse_number(value: object) -> float | None:
    """Parse a single value as a finite float.

    Accepts either ``,`` or ``.`` as the decimal separator.  Returns *None*
    for blanks, booleans, text and non-finite numbers.  Text goes through
    :func:`to_numbers`, so a value parses here exactly when it parses on
    import.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    number = to_numbers(pd.Series([value], dtype=object)).iloc[0]
    return None if pd.isna(number) else float(number)


def to_numbers(values: pd.Series) -> pd.Series:
    """Vectorized :func:`parse_number`; unparsable entries become NaN."""
    text = (
        values.fillna("")
        .astype(str)
        .str.strip()
        .str.replace(",", ".", n=1, regex=False)
    )
    numbers = pd.to_numeric(text, errors="coerce").astype(np.float64)
    return numbers.replace([np.inf, -np.inf], np.nan)


# ---------------------------------------------------------------------------
# Schema inference
# ---------------------------------------------------------------------------


def _infer_field(name: str, raw: pd.Series, sample_size: int) -> SchemaField:
    numbers = to_numbers(raw)

    if numbers.head(sample_size).notna().any():
        parsed = numbers.dropna()
        stats = FieldStats(
            min=float(parsed.min()) if len(parsed) else None,
            max=float(parsed.max()) if len(parsed) else None,
        )
        return SchemaField(name=name, type=FieldType.NUMBER, stats=stats)

    if raw.head(sample_size).str.strip().ne("").any():
        stats = FieldStats(unique_values=frozenset(raw.unique()))
        return SchemaField(name=name, type=FieldType.STRING, stats=stats)

    return SchemaField(name=name, type=FieldType.OTHER)


def infer_schema(
    frame: pd.DataFrame,
    headers: Sequence[str] | None = None,
    sample_size: int | None = None,
) -> DatasetSchema:
    """Derive a :class:`DatasetSchema` from raw (string) CSV rows.

    Parameters
    ----------
    frame:
        One row per CSV record, one column per CSV header, raw string values.
    headers:
        Column order of the resulting schema.  Defaults to ``frame.columns``;
        headers missing from ``frame`` are treated as entirely empty.
    sample_size:
        Number of leading rows used for type inference.  Defaults to
        ``config.SCHEMA_SAMPLE_SIZE``.
    """
    if sample_size is None:
        sample_size = config.SCHEMA_SAMPLE_SIZE
    if headers is None:
        headers = list(frame.columns)

    fields = []
    for name in headers:
        if name in frame.columns:
            raw = frame[name].fillna("").astype(str)
        else:
            raw = pd.Series([""] * len(frame), dtype=object)
        fields.append(_infer_field(name, raw, sample_size))

    schema = DatasetSchema(fields=tuple(fields))
    logger.debug(
        "Inferred schema: "
        + ", ".join(f"{f.name}={f.type.value}" for f in schema.fields)
    )
    return schema
