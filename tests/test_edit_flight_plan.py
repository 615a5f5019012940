from __future__ import annotations

import sys

import pandas as pd
import pytest

from waypoint_composer.errors import ValidationError
from waypoint_composer.scripts import edit_flight_plan
from waypoint_composer.store import FlightPlanLibrary

CSV_TEXT = """\
latitude,longitude,altitude,gimbalpitchangle
52.0,21.0,30,0
52.1,21.1,40,0
52.2,21.2,50,0
"""


def _run(monkeypatch, tmp_path, *extra: str) -> tuple[int, pd.DataFrame | None]:
    source = tmp_path / "plan.csv"
    source.write_text(CSV_TEXT)
    output = tmp_path / "out" / "edited.csv"
    argv = [
        "edit_flight_plan",
        "--input", str(source),
        "--output", str(output),
        "--lat", "latitude",
        "--lon", "longitude",
        "--alt", "altitude",
        *extra,
    ]
    monkeypatch.setattr(sys, "argv", argv)

    code = edit_flight_plan.main()
    frame = pd.read_csv(output) if output.exists() else None
    return code, frame


def test_translate_range(monkeypatch, tmp_path):
    code, frame = _run(monkeypatch, tmp_path, "--range", "2", "3", "--translate", "0", "0", "10")

    assert code == 0
    assert list(frame["altitude"]) == [30.0, 50.0, 60.0]
    assert list(frame.columns) == ["latitude", "longitude", "altitude", "gimbalpitchangle"]


def test_set_and_reverse(monkeypatch, tmp_path):
    code, frame = _run(monkeypatch, tmp_path, "--set", "gimbalpitchangle=-90", "--reverse")

    assert code == 0
    assert list(frame["gimbalpitchangle"]) == [-90.0, -90.0, -90.0]
    assert list(frame["latitude"]) == [52.2, 52.1, 52.0]


def test_rotate_about_pivot(monkeypatch, tmp_path):
    code, frame = _run(monkeypatch, tmp_path, "--rotate", "180", "--pivot", "21.1", "52.1")

    assert code == 0
    assert frame.loc[0, "longitude"] == pytest.approx(21.2, abs=2e-3)
    assert frame.loc[1, "longitude"] == pytest.approx(21.1)


def test_rejected_edit_exits_with_error(monkeypatch, tmp_path):
    code, frame = _run(monkeypatch, tmp_path, "--set", "altitude=high")

    assert code == 1
    assert frame is None


def test_parse_assignments():
    assert edit_flight_plan.parse_assignments(["a=1", "b = x=y"]) == {"a": "1", "b": " x=y"}

    with pytest.raises(ValidationError):
        edit_flight_plan.parse_assignments(["novalue"])


def test_save_as_stores_plan_in_library(monkeypatch, tmp_path):
    url = f"sqlite:///{tmp_path / 'library.db'}"

    code, _ = _run(monkeypatch, tmp_path, "--reverse", "--save-as", "north field", "--store", url)

    assert code == 0
    plan = FlightPlanLibrary(url=url).get("north field")
    assert [p.lat for p in plan.points] == [52.2, 52.1, 52.0]
    assert plan.headers == ("latitude", "longitude", "altitude", "gimbalpitchangle")
