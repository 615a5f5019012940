"""CSV import and export of waypoint flight plans.

Import turns a CSV file plus a column mapping into :class:`FeaturePoint`
records.  Rows whose coordinates are unparsable or outside the geographic
range are dropped with a diagnostic; the import as a whole only fails when
the coordinate columns themselves are missing.

Export writes the points back with exactly the original header order,
taking the live ``lon``/``lat``/``alt`` values for the coordinate columns.
"""

from __future__ import annotations

import io
import logging
import os
import re
from typing import IO, Mapping, Sequence

import pandas as pd
import pandera.pandas as pa
import pydantic

from waypoint_composer.config import config
from waypoint_composer.errors import ColumnNotFoundError, MissingMappingError
from waypoint_composer.flight_plan import (
    ColumnMapping,
    DatasetSchema,
    FeaturePoint,
    new_point_id,
)
from waypoint_composer.schema import infer_schema, to_numbers

logger = logging.getLogger(__name__)

CsvSource = str | os.PathLike | bytes | IO

# Header aliases used to locate coordinate columns on export
COORD_PATTERNS: dict[str, re.Pattern[str]] = {
    "lon": re.compile(r"^(lon|lng|long|x|longitude)$", re.IGNORECASE),
    "lat": re.compile(r"^(lat|y|latitude)$", re.IGNORECASE),
    "alt": re.compile(r"^(alt|z|height|elev|altitude|altitude\(m\))$", re.IGNORECASE),
}

OPTIONAL_FIELDS = ("alt", "heading", "gimbal_pitch")

# ---------------------------------------------------------------------------
# Typed waypoint frame schema
# ---------------------------------------------------------------------------

waypoint_frame_schema = pa.DataFrameSchema(
    columns={
        "lat": pa.Column(float, checks=pa.Check.in_range(-90.0, 90.0), nullable=False),
        "lon": pa.Column(float, checks=pa.Check.in_range(-180.0, 180.0), nullable=False),
        "alt": pa.Column(float, nullable=False),
        "heading": pa.Column(float, nullable=False),
        "gimbal_pitch": pa.Column(float, nullable=False),
    },
    strict=True,
    coerce=True,
)


class ImportResult(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)

    points: tuple[FeaturePoint, ...]
    headers: tuple[str, ...]
    dataset_schema: DatasetSchema
    column_mapping: ColumnMapping
    dropped_rows: int = 0


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


def read_rows(source: CsvSource) -> pd.DataFrame:
    """Read a CSV with a header row into a frame of raw strings.

    ``source`` is a path, a file-like object or the raw file bytes.  Blank
    lines are skipped; short rows are padded with empty strings.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)

    try:
        frame = pd.read_csv(
            source,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame()

    return frame.fillna("")


def _validated_mapping(mapping: ColumnMapping, headers: Sequence[str]) -> ColumnMapping:
    missing = [column for column in (mapping.lon, mapping.lat) if column not in headers]
    if missing:
        raise ColumnNotFoundError(
            f"Mapped coordinate columns not found in file: {', '.join(missing)}"
        )

    unmapped = {}
    for name in OPTIONAL_FIELDS:
        column = getattr(mapping, name)
        if column and column not in headers:
            logger.warning(f"Column '{column}' mapped to {name} is not in the file; ignoring")
            unmapped[name] = None

    return mapping.model_copy(update=unmapped) if unmapped else mapping


def _attribute_frame(frame: pd.DataFrame, schema: DatasetSchema) -> pd.DataFrame:
    """Raw values, with number-typed columns parsed (unparsable → None)."""
    attributes = frame.astype(object)
    for name in schema.numeric_field_names:
        numbers = to_numbers(frame[name])
        attributes[name] = numbers.astype(object).where(numbers.notna(), None)
    return attributes


def import_csv(
    source: CsvSource, mapping: ColumnMapping | Mapping[str, str | None]
) -> ImportResult:
    """Parse a CSV file into waypoints.

    Raises
    ------
    MissingMappingError
        ``lat`` or ``lon`` is not mapped.
    ColumnNotFoundError
        A mapped ``lat``/``lon`` column is not in the header row.
    """
    if not isinstance(mapping, ColumnMapping):
        mapping = ColumnMapping.model_validate(mapping)
    if not mapping.lat or not mapping.lon:
        raise MissingMappingError("Longitude and latitude columns are required.")

    frame = read_rows(source)
    headers = [str(column) for column in frame.columns]
    mapping = _validated_mapping(mapping, headers)

    schema = infer_schema(frame, headers)

    lat = to_numbers(frame[mapping.lat])
    lon = to_numbers(frame[mapping.lon])
    valid = lat.between(-90.0, 90.0) & lon.between(-180.0, 180.0)

    dropped = frame.index[~valid]
    if len(dropped) > 0:
        logger.warning(
            f"CSV import: dropped {len(dropped)}/{len(frame)} rows "
            f"with missing or out-of-range coordinates."
        )
        for idx in dropped:
            logger.debug(
                f"  row {idx + 2}: {mapping.lat}={frame.at[idx, mapping.lat]!r} "
                f"{mapping.lon}={frame.at[idx, mapping.lon]!r}"
            )

    def optional_numbers(column: str | None) -> pd.Series:
        if column is None:
            return pd.Series(0.0, index=frame.index)
        return to_numbers(frame[column]).fillna(0.0)

    coords = pd.DataFrame(
        {
            "lat": lat,
            "lon": lon,
            "alt": optional_numbers(mapping.alt),
            "heading": optional_numbers(mapping.heading),
            "gimbal_pitch": optional_numbers(mapping.gimbal_pitch),
        },
        index=frame.index,
    )
    coords = waypoint_frame_schema.validate(coords.loc[valid])

    attributes = _attribute_frame(frame, schema).loc[valid].copy()
    for name, column in mapping.typed_columns().items():
        attributes[column] = coords[name].astype(object)

    points = tuple(
        FeaturePoint(
            id=new_point_id(),
            lat=float(row.lat),
            lon=float(row.lon),
            alt=float(row.alt),
            heading=float(row.heading),
            gimbal_pitch=float(row.gimbal_pitch),
            attributes=attrs,
        )
        for row, attrs in zip(
            coords.itertuples(index=False), attributes.to_dict(orient="records")
        )
    )

    logger.info(f"CSV import: {len(points)} points, {len(headers)} columns")
    return ImportResult(
        points=points,
        headers=tuple(headers),
        dataset_schema=schema,
        column_mapping=mapping,
        dropped_rows=len(dropped),
    )


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def identify_coordinate_columns(headers: Sequence[str]) -> dict[str, str]:
    """Find the lon/lat/alt columns among ``headers`` by alias.

    When several headers match the same alias set, the last one wins.
    """
    columns: dict[str, str] = {}
    for header in headers:
        for name, pattern in COORD_PATTERNS.items():
            if pattern.match(header):
                columns[name] = header
    return columns


def export_csv(points: Sequence[FeaturePoint], headers: Sequence[str]) -> str:
    """Serialize ``points`` as CSV with exactly the columns of ``headers``."""
    columns = identify_coordinate_columns(headers)

    rows = []
    for point in points:
        row = dict(point.attributes)
        if "lon" in columns:
            row[columns["lon"]] = point.lon
        if "lat" in columns:
            row[columns["lat"]] = point.lat
        if "alt" in columns:
            row[columns["alt"]] = point.alt
        rows.append([row.get(header) for header in headers])

    frame = pd.DataFrame(rows, columns=list(headers))
    return frame.to_csv(index=False, lineterminator=config.CSV_LINE_TERMINATOR)
