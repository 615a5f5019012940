from __future__ import annotations

import io

import pandas as pd
import pytest

from waypoint_composer.csv_codec import (
    export_csv,
    identify_coordinate_columns,
    import_csv,
    read_rows,
)
from waypoint_composer.errors import ColumnNotFoundError, MissingMappingError
from waypoint_composer.flight_plan import ColumnMapping, FeaturePoint, FieldType

WAYPOINTS_CSV = """\
latitude,longitude,altitude(m),heading(deg),gimbalpitchangle,actiontype1
52.1,20.5,30,90,-45,photo
52.2,20.6,40,180,-90,hover
52.3,20.7,50,270,0,photo
"""

MAPPING = ColumnMapping(
    lat="latitude",
    lon="longitude",
    alt="altitude(m)",
    heading="heading(deg)",
    gimbal_pitch="gimbalpitchangle",
)


def _read(text: str) -> pd.DataFrame:
    return pd.read_csv(io.StringIO(text), dtype=str, keep_default_na=False)


def test_import_maps_typed_fields():
    result = import_csv(io.StringIO(WAYPOINTS_CSV), MAPPING)

    assert len(result.points) == 3
    first = result.points[0]
    assert first.lat == 52.1
    assert first.lon == 20.5
    assert first.alt == 30.0
    assert first.heading == 90.0
    assert first.gimbal_pitch == -45.0
    assert result.dropped_rows == 0
    assert result.headers == (
        "latitude",
        "longitude",
        "altitude(m)",
        "heading(deg)",
        "gimbalpitchangle",
        "actiontype1",
    )


def test_import_keeps_every_column_as_attribute():
    result = import_csv(WAYPOINTS_CSV.encode(), MAPPING)

    attributes = result.points[1].attributes
    assert set(attributes) == set(result.headers)
    assert attributes["actiontype1"] == "hover"
    assert attributes["altitude(m)"] == 40.0
    assert attributes["gimbalpitchangle"] == -90.0


def test_import_assigns_unique_ids():
    result = import_csv(io.StringIO(WAYPOINTS_CSV), MAPPING)

    assert len({p.id for p in result.points}) == 3


def test_import_infers_schema():
    result = import_csv(io.StringIO(WAYPOINTS_CSV), MAPPING)

    assert result.dataset_schema.field("altitude(m)").type == FieldType.NUMBER
    assert result.dataset_schema.field("actiontype1").type == FieldType.STRING


def test_missing_mapping_is_rejected():
    with pytest.raises(MissingMappingError):
        import_csv(io.StringIO(WAYPOINTS_CSV), {"lat": "latitude"})


def test_mapped_column_not_in_header_is_rejected():
    with pytest.raises(ColumnNotFoundError):
        import_csv(io.StringIO(WAYPOINTS_CSV), {"lat": "latitude", "lon": "lng"})


def test_unknown_optional_column_is_ignored():
    result = import_csv(
        io.StringIO(WAYPOINTS_CSV),
        {"lat": "latitude", "lon": "longitude", "alt": "elevation"},
    )

    assert result.column_mapping.alt is None
    assert all(p.alt == 0.0 for p in result.points)


def test_rows_with_bad_coordinates_are_dropped():
    text = "lat,lon,name\n10,20,a\n95,20,b\n,21,c\nx,22,d\n11,190,e\n12,-20,f\n"

    result = import_csv(io.StringIO(text), {"lat": "lat", "lon": "lon"})

    assert [p.attributes["name"] for p in result.points] == ["a", "f"]
    assert result.dropped_rows == 4


def test_comma_decimal_coordinates():
    text = 'lat,lon\n"52,5","20,25"\n'

    result = import_csv(io.StringIO(text), {"lat": "lat", "lon": "lon"})

    assert result.points[0].lat == 52.5
    assert result.points[0].lon == 20.25


def test_zero_valid_rows_gives_empty_collection():
    text = "lat,lon\n100,20\nfoo,bar\n"

    result = import_csv(io.StringIO(text), {"lat": "lat", "lon": "lon"})

    assert result.points == ()
    assert result.headers == ("lat", "lon")


def test_blank_lines_are_skipped():
    text = "lat,lon\n1,2\n\n3,4\n"

    assert len(read_rows(io.StringIO(text))) == 2


def test_identify_coordinate_columns_by_alias():
    columns = identify_coordinate_columns(["Y", "X", "Altitude(m)", "speed"])

    assert columns == {"lat": "Y", "lon": "X", "alt": "Altitude(m)"}


def test_identify_coordinate_columns_last_match_wins():
    columns = identify_coordinate_columns(["lat", "latitude", "lng"])

    assert columns["lat"] == "latitude"
    assert columns["lon"] == "lng"


def test_export_uses_original_header_order():
    result = import_csv(io.StringIO(WAYPOINTS_CSV), MAPPING)

    text = export_csv(result.points, result.headers)

    assert text.splitlines()[0] == ",".join(result.headers)
    frame = _read(text)
    assert len(frame) == 3
    assert list(frame["actiontype1"]) == ["photo", "hover", "photo"]
    assert float(frame.loc[2, "latitude"]) == 52.3


def test_export_writes_live_coordinates():
    point = FeaturePoint(
        id="p1",
        lat=1.5,
        lon=2.5,
        alt=99.0,
        attributes={"lat": 0.0, "lon": 0.0, "height": 0.0, "name": "wp"},
    )

    frame = _read(export_csv([point], ["name", "lon", "lat", "height"]))

    assert list(frame.columns) == ["name", "lon", "lat", "height"]
    assert float(frame.loc[0, "lon"]) == 2.5
    assert float(frame.loc[0, "lat"]) == 1.5
    assert float(frame.loc[0, "height"]) == 99.0
    assert frame.loc[0, "name"] == "wp"


def test_export_of_empty_collection_is_header_only():
    text = export_csv([], ["lat", "lon"])

    assert text == "lat,lon\n"
