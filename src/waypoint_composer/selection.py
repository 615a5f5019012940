"""Selection strategies over an ordered point collection.

Every function here is pure: it takes points (and the current selection
where relevant) and returns a new frozenset of point ids.  Whether a result
replaces or extends the current selection is decided by :func:`combine`.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Sequence

import numpy as np
import shapely

from waypoint_composer.config import config
from waypoint_composer.flight_plan import (
    AttributeOperator,
    AttributeQuery,
    AttributeValue,
    FeaturePoint,
    LngLat,
)

logger = logging.getLogger(__name__)


def combine(
    current: frozenset[str], found: Iterable[str], add_mode: bool
) -> frozenset[str]:
    """Union ``found`` into ``current`` in add-mode, otherwise replace it."""
    if add_mode:
        return current | frozenset(found)
    return frozenset(found)


# ---------------------------------------------------------------------------
# Pointer pick
# ---------------------------------------------------------------------------


def pick(current: frozenset[str], point_id: str, add_mode: bool) -> frozenset[str]:
    """Selection after clicking ``point_id``.

    Clicking the sole selected point deselects it, unless add-mode is on.
    """
    if add_mode:
        return current | {point_id}
    if current == {point_id}:
        return frozenset()
    return frozenset({point_id})


# ---------------------------------------------------------------------------
# Polygon containment
# ---------------------------------------------------------------------------


def select_in_polygon(
    points: Sequence[FeaturePoint], vertices: Sequence[LngLat]
) -> frozenset[str]:
    """Ids of points inside (or on the boundary of) the drawn polygon.

    The vertex list is closed by repeating its first vertex.  Fewer than
    ``config.MIN_POLYGON_VERTICES`` vertices select nothing.
    """
    if len(vertices) < config.MIN_POLYGON_VERTICES:
        logger.warning(
            f"Polygon needs at least {config.MIN_POLYGON_VERTICES} vertices, "
            f"got {len(vertices)}; nothing selected"
        )
        return frozenset()
    if not points:
        return frozenset()

    ring = [(v.lng, v.lat) for v in vertices]
    ring.append(ring[0])
    polygon = shapely.Polygon(ring)
    if not polygon.is_valid:
        # Self-intersecting outlines are split into their valid parts
        polygon = shapely.make_valid(polygon)

    lon = np.fromiter((p.lon for p in points), dtype=np.float64, count=len(points))
    lat = np.fromiter((p.lat for p in points), dtype=np.float64, count=len(points))
    inside = shapely.covers(polygon, shapely.points(lon, lat))

    return frozenset(p.id for p, hit in zip(points, inside) if hit)


# ---------------------------------------------------------------------------
# Attribute predicate
# ---------------------------------------------------------------------------


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def attribute_text(value: AttributeValue) -> str:
    """String form used for ``eq``/``neq``/``in`` comparisons.

    Integral floats print without a fractional part, so a parsed ``20.0``
    compares equal to the text ``"20"``.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def matches(value: AttributeValue, query: AttributeQuery) -> bool:
    """Evaluate ``query`` against a single attribute value."""
    operator = query.operator

    if operator == AttributeOperator.EQ:
        return attribute_text(value) == attribute_text(query.value)
    if operator == AttributeOperator.NEQ:
        return attribute_text(value) != attribute_text(query.value)
    if operator == AttributeOperator.IN:
        text = attribute_text(value)
        return any(attribute_text(v) == text for v in query.values or ())

    # Numeric operators: non-numeric values never match
    if not _is_number(value):
        return False
    if operator == AttributeOperator.GTE:
        return _is_number(query.value) and value >= query.value
    if operator == AttributeOperator.LTE:
        return _is_number(query.value) and value <= query.value
    if operator == AttributeOperator.BETWEEN:
        return (
            query.min is not None
            and query.max is not None
            and query.min <= value <= query.max
        )
    return False


def select_by_query(
    points: Sequence[FeaturePoint], query: AttributeQuery
) -> frozenset[str]:
    """Ids of points whose ``attributes[query.field]`` satisfies ``query``."""
    return frozenset(
        p.id for p in points if matches(p.attributes.get(query.field), query)
    )


# ---------------------------------------------------------------------------
# Ordinal range
# ---------------------------------------------------------------------------


def select_range(
    points: Sequence[FeaturePoint], first: float, last: float
) -> frozenset[str]:
    """Ids of the 1-based, inclusive position range ``[first, last]``.

    Bounds are clamped to ``[1, len(points)]``; an inverted range is empty.
    """
    lower = max(0, math.floor(first) - 1)
    upper = min(len(points) - 1, math.floor(last) - 1)
    if lower > upper:
        return frozenset()
    return frozenset(p.id for p in points[lower : upper + 1])


def select_all(points: Sequence[FeaturePoint]) -> frozenset[str]:
    return frozenset(p.id for p in points)
