"""Pointer and keyboard handlers that drive an :class:`EditingSession`.

This is the public entry point for map widgets; nothing inside the package
calls it.  A widget forwards raw events here, and this adapter keeps the
transient drag state (which is not part of the undoable session state) and
turns the events into session commands.
"""

from __future__ import annotations

import logging

from waypoint_composer.config import config
from waypoint_composer.flight_plan import LngLat, SelectionMode
from waypoint_composer.session import EditingSession

logger = logging.getLogger(__name__)


class MapInteraction:
    def __init__(self, session: EditingSession):
        self.session = session
        self._translating = False
        self._rotating = False
        self._drag_origin: LngLat | None = None

    @property
    def is_dragging(self) -> bool:
        return self._translating or self._rotating

    # -----------------------------------------------------------------------
    # Clicks
    # -----------------------------------------------------------------------

    def on_point_click(self, point_id: str) -> bool:
        if self.session.state.is_drawing:
            return False
        return self.session.toggle_point_selection(point_id)

    def on_map_click(self, lng: float, lat: float, point_id: str | None = None) -> bool:
        """Click on the map surface, optionally on a rendered point."""
        if self._translating:
            logger.debug("Ignoring click during translate drag")
            return False

        state = self.session.state
        if state.selection_mode == SelectionMode.SINGLE:
            if point_id is not None:
                return self.on_point_click(point_id)
            if not state.selection_add_mode:
                return self.session.clear_selection()
            return False
        if state.is_drawing:
            return self.session.add_polygon_vertex(lng, lat)
        if state.selection_mode == SelectionMode.ROTATE and state.rotation_center is None:
            logger.info(f"Rotation pivot set at ({lng:.6f}, {lat:.6f})")
            return self.session.set_rotation_center(lng, lat)
        return False

    def on_context_menu(self) -> int | None:
        """Right click: finishes polygon drawing, returning the count found."""
        if not self.session.state.is_drawing:
            return None
        return self.session.finish_polygon_selection()

    # -----------------------------------------------------------------------
    # Drag
    # -----------------------------------------------------------------------

    def on_pointer_down(self, lng: float, lat: float) -> bool:
        """Start a translate or rotate drag; returns True if one started."""
        state = self.session.state
        if state.selection_mode == SelectionMode.TRANSLATE and state.selected_points:
            self._translating = True
            self._drag_origin = LngLat(lng=lng, lat=lat)
            return True
        if state.selection_mode == SelectionMode.ROTATE and state.rotation_center is not None:
            self._rotating = self.session.begin_rotation()
            return self._rotating
        return False

    def on_pointer_move(
        self, lng: float, lat: float, movement_x: float = 0.0, movement_y: float = 0.0
    ) -> bool:
        if self._translating and self._drag_origin is not None:
            moved = self.session.translate_selected_points(
                d_lat=lat - self._drag_origin.lat,
                d_lon=lng - self._drag_origin.lng,
                d_alt=-movement_y * config.ALTITUDE_SENSITIVITY,
            )
            self._drag_origin = LngLat(lng=lng, lat=lat)
            return moved
        if self._rotating:
            return self.session.rotate_selected_points(
                movement_x * config.ROTATION_SENSITIVITY
            )
        return False

    def on_pointer_up(self) -> bool:
        """End the drag.  A rotate drag is committed on release."""
        if self._translating:
            self._translating = False
            self._drag_origin = None
            return True
        if self._rotating:
            self._rotating = False
            return self.session.apply_rotation()
        return False

    # -----------------------------------------------------------------------
    # Keyboard
    # -----------------------------------------------------------------------

    def on_key_down(self, key: str, ctrl: bool = False, meta: bool = False) -> bool:
        """Handle an editor shortcut; returns whether the key was consumed."""
        if key == "Escape":
            self._translating = self._rotating = False
            self._drag_origin = None
            return self.session.escape()
        if ctrl or meta:
            if key.lower() == "z":
                return self.session.undo()
            if key.lower() == "y":
                return self.session.redo()
            return False
        if key == "Delete" and self.session.selected_points:
            return self.session.delete_selected_points() > 0
        return False
