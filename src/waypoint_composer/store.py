"""Local persistence for waypoints and named flight plans.

The engine does not need this module to be correct; it lets an editor
survive reloads.  Points are stored keyed by id together with their
flight-path position, so loading returns them in the saved order.

An :class:`~waypoint_composer.session.EditingSession` created with a
:class:`PointStore` saves its points after every change.  The
``edit_flight_plan`` script saves finished plans to a
:class:`FlightPlanLibrary` with ``--save-as``.
"""

from __future__ import annotations

import datetime
import logging
import pathlib
from typing import Sequence

from sqlalchemy import JSON, Column, DateTime, Integer, String, create_engine, delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from waypoint_composer.config import config
from waypoint_composer.flight_plan import FeaturePoint, FlightPlan

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class StoredPoint(Base):
    __tablename__ = "points"
    id = Column(String, primary_key=True)
    position = Column(Integer, nullable=False, index=True)
    payload = Column(JSON, nullable=False)


class StoredFlightPlan(Base):
    __tablename__ = "flight_plans"
    name = Column(String, primary_key=True)
    saved_at = Column(DateTime(timezone=True), nullable=False)
    payload = Column(JSON, nullable=False)


def make_engine(url: str | None = None) -> Engine:
    """Create the database engine and its tables.

    Defaults to ``config.STORE_URL``; for file-backed SQLite the parent
    directory is created if needed.
    """
    url = url or config.STORE_URL
    is_sqlite = url.startswith("sqlite")

    if url.startswith("sqlite:///") and ":memory:" not in url:
        pathlib.Path(url.removeprefix("sqlite:///")).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        url, connect_args={"check_same_thread": False} if is_sqlite else {}
    )
    Base.metadata.create_all(bind=engine)
    return engine


class PointStore:
    """The current point collection, replaced wholesale on every save."""

    def __init__(self, url: str | None = None, engine: Engine | None = None):
        self._engine = engine or make_engine(url)
        self._sessions = sessionmaker(bind=self._engine, autoflush=False)

    def save_points(self, points: Sequence[FeaturePoint]) -> None:
        with self._sessions.begin() as db:
            db.execute(delete(StoredPoint))
            db.add_all(
                StoredPoint(id=p.id, position=i, payload=p.model_dump(mode="json"))
                for i, p in enumerate(points)
            )
        logger.debug(f"Stored {len(points)} points")

    def load_points(self) -> list[FeaturePoint]:
        with self._sessions() as db:
            rows = db.scalars(select(StoredPoint).order_by(StoredPoint.position)).all()
            return [FeaturePoint.model_validate(row.payload) for row in rows]

    def clear(self) -> None:
        with self._sessions.begin() as db:
            db.execute(delete(StoredPoint))


class FlightPlanLibrary:
    """Named flight plans, saved with a timestamp."""

    def __init__(self, url: str | None = None, engine: Engine | None = None):
        self._engine = engine or make_engine(url)
        self._sessions = sessionmaker(bind=self._engine, autoflush=False)

    def save(self, plan: FlightPlan) -> FlightPlan:
        """Store ``plan`` under its name, replacing any plan of that name."""
        plan = plan.model_copy(
            update={"saved_at": datetime.datetime.now(datetime.timezone.utc)}
        )
        with self._sessions.begin() as db:
            db.merge(
                StoredFlightPlan(
                    name=plan.name,
                    saved_at=plan.saved_at,
                    payload=plan.model_dump(mode="json"),
                )
            )
        logger.info(f"Saved flight plan '{plan.name}' ({len(plan.points)} points)")
        return plan

    def get(self, name: str) -> FlightPlan | None:
        with self._sessions() as db:
            row = db.get(StoredFlightPlan, name)
            if row is None:
                return None
            return FlightPlan.model_validate(row.payload)

    def list_names(self) -> list[str]:
        with self._sessions() as db:
            return list(db.scalars(select(StoredFlightPlan.name).order_by(StoredFlightPlan.name)))

    def all(self) -> dict[str, FlightPlan]:
        with self._sessions() as db:
            rows = db.scalars(select(StoredFlightPlan).order_by(StoredFlightPlan.name)).all()
            return {row.name: FlightPlan.model_validate(row.payload) for row in rows}

    def delete(self, name: str) -> bool:
        with self._sessions.begin() as db:
            row = db.get(StoredFlightPlan, name)
            if row is None:
                return False
            db.delete(row)
        logger.info(f"Deleted flight plan '{name}'")
        return True
