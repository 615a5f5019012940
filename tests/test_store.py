from __future__ import annotations

import io

import pytest

from waypoint_composer.flight_plan import ColumnMapping, FeaturePoint
from waypoint_composer.session import EditingSession
from waypoint_composer.store import FlightPlanLibrary, PointStore, make_engine

CSV_TEXT = "lat,lon,name\n52.0,21.0,start\n52.1,21.1,end\n"


@pytest.fixture
def engine(tmp_path):
    return make_engine(f"sqlite:///{tmp_path / 'store' / 'waypoints.db'}")


def _make_session() -> EditingSession:
    session = EditingSession()
    session.load_csv(io.StringIO(CSV_TEXT), ColumnMapping(lat="lat", lon="lon"))
    return session


def test_engine_creates_database_directory(tmp_path):
    make_engine(f"sqlite:///{tmp_path / 'nested' / 'dir' / 'w.db'}")

    assert (tmp_path / "nested" / "dir" / "w.db").exists()


def test_points_round_trip_in_order(engine):
    store = PointStore(engine=engine)
    points = [
        FeaturePoint(id="b", lat=1.0, lon=2.0, attributes={"name": "second", "n": 2.5}),
        FeaturePoint(id="a", lat=3.0, lon=4.0, alt=12.0, attributes={"name": None}),
    ]

    store.save_points(points)

    assert store.load_points() == points


def test_save_points_replaces_previous_collection(engine):
    store = PointStore(engine=engine)
    store.save_points([FeaturePoint(id="old", lat=0.0, lon=0.0)])

    store.save_points([FeaturePoint(id="new", lat=1.0, lon=1.0)])

    assert [p.id for p in store.load_points()] == ["new"]
    store.clear()
    assert store.load_points() == []


def test_flight_plan_library(engine):
    library = FlightPlanLibrary(engine=engine)
    session = _make_session()

    saved = library.save(session.to_flight_plan("survey"))
    library.save(session.to_flight_plan("alpha"))

    assert library.list_names() == ["alpha", "survey"]
    loaded = library.get("survey")
    assert loaded.points == session.points
    assert loaded.dataset_schema == session.state.dataset_schema
    assert loaded.saved_at == saved.saved_at
    assert set(library.all()) == {"alpha", "survey"}


def test_saving_same_name_overwrites(engine):
    library = FlightPlanLibrary(engine=engine)
    session = _make_session()
    library.save(session.to_flight_plan("plan"))

    session.reverse_flight_points()
    library.save(session.to_flight_plan("plan"))

    assert library.list_names() == ["plan"]
    assert library.get("plan").points == session.points


def test_delete_flight_plan(engine):
    library = FlightPlanLibrary(engine=engine)
    library.save(_make_session().to_flight_plan("gone"))

    assert library.delete("gone")
    assert not library.delete("gone")
    assert library.get("gone") is None


def test_open_stored_plan_into_session(engine):
    library = FlightPlanLibrary(engine=engine)
    original = _make_session()
    library.save(original.to_flight_plan("survey"))

    session = EditingSession()
    session.open_flight_plan(library.get("survey"))

    assert session.points == original.points
    assert session.export_csv() == original.export_csv()


def test_session_saves_points_on_every_change(engine):
    store = PointStore(engine=engine)
    session = EditingSession(store=store)

    session.load_csv(io.StringIO(CSV_TEXT), ColumnMapping(lat="lat", lon="lon"))
    assert store.load_points() == list(session.points)

    session.reverse_flight_points()
    assert [p.attributes["name"] for p in store.load_points()] == ["end", "start"]

    session.undo()
    assert [p.attributes["name"] for p in store.load_points()] == ["start", "end"]


def test_selection_changes_do_not_touch_store(engine):
    store = PointStore(engine=engine)
    session = EditingSession(store=store)
    session.load_csv(io.StringIO(CSV_TEXT), ColumnMapping(lat="lat", lon="lon"))
    store.clear()

    session.select_all(True)
    session.clear_selection()

    assert store.load_points() == []
