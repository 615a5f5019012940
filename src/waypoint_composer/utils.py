"""Read-only helpers for UI layers displaying an editing session."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from waypoint_composer.flight_plan import FeaturePoint, FlightDataState

Bounds = tuple[tuple[float, float], tuple[float, float]]


def points_bounds(points: Sequence[FeaturePoint]) -> Bounds | None:
    """Return ``((min_lon, min_lat), (max_lon, max_lat))`` or *None* if empty.

    Used by map layers to zoom to all points or to the selection.
    """
    if not points:
        return None

    lon = np.array([p.lon for p in points], dtype=np.float64)
    lat = np.array([p.lat for p in points], dtype=np.float64)
    return (float(lon.min()), float(lat.min())), (float(lon.max()), float(lat.max()))


def selected_points_bounds(state: FlightDataState) -> Bounds | None:
    return points_bounds(state.selected)


def summarize_flight_plan(state: FlightDataState) -> str:
    """Compose a one-line summary of the session.

    Examples: ``"42 points · 5 selected · alt 30.0–120.0 m · mode batch-edit"``,
    ``"No points loaded"``.
    """
    if not state.points:
        return "No points loaded"

    parts: list[str] = []

    # 1. Point count (and selection)
    parts.append(f"{len(state.points)} points")
    if state.selected_points:
        parts.append(f"{len(state.selected_points)} selected")

    # 2. Altitude range
    alts = np.array([p.alt for p in state.points], dtype=np.float64)
    parts.append(f"alt {alts.min():.1f}–{alts.max():.1f} m")

    # 3. Mode, when not the default
    if state.selection_mode != "single":
        parts.append(f"mode {state.selection_mode.value}")

    return " · ".join(parts)
