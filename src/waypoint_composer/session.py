"""Editing session: the owner of the flight plan state.

:class:`EditingSession` wires the undo history, CSV codec, selection engine
and transform primitives together and exposes the command set consumed by
UI layers.  Every command replaces the whole :class:`FlightDataState` value.

Two history paths are used:

* edits to the point collection (and mode switches, transform ticks,
  commits and cancels) commit a new undo entry;
* selection bookkeeping (pick, select-all, clear, polygon drawing, batch and
  attribute selection, axis locks, pivot placement) overwrites the current
  entry and never grows the undo stack.

Each translate or rotate preview tick is its own undo entry.  Any command
that moves the mode out of ``translate`` or ``rotate`` without applying the
transaction restores the snapshot; selection commands that do so commit an
undo entry instead of overwriting.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Literal, Mapping, Sequence

from waypoint_composer.config import config
from waypoint_composer.csv_codec import CsvSource, ImportResult, export_csv, import_csv
from waypoint_composer.errors import NumericFieldError, ValidationError
from waypoint_composer.flight_plan import (
    AttributeQuery,
    AttributeValue,
    ColumnMapping,
    FeaturePoint,
    FieldType,
    FlightDataState,
    FlightPlan,
    LngLat,
    LonLat,
    SelectionMode,
    TranslationDelta,
    new_point_id,
)
from waypoint_composer.history import History
from waypoint_composer import selection, transform
from waypoint_composer.schema import parse_number
from waypoint_composer.store import PointStore

logger = logging.getLogger(__name__)

TYPED_FIELDS = ("lat", "lon", "alt", "heading", "gimbal_pitch")

_COORDINATE_RANGES = {"lat": (-90.0, 90.0), "lon": (-180.0, 180.0)}


def _restrict_selection(state: FlightDataState) -> FlightDataState:
    """Drop selected ids that no longer exist in ``state.points``."""
    ids = state.point_ids
    if state.selected_points <= ids:
        return state
    return state.model_copy(update={"selected_points": state.selected_points & ids})


def _leave_transaction(prev: FlightDataState) -> dict[str, Any]:
    """Updates that close an open translate or rotate transaction unapplied.

    Points are restored from the snapshot and the transaction fields are
    cleared.  Empty when ``prev`` is in neither mode.
    """
    update: dict[str, Any] = {}
    if prev.selection_mode == SelectionMode.TRANSLATE:
        if prev.is_translating:
            update["points"] = prev.points_before_translate
            logger.info("Translation cancelled")
        update.update(points_before_translate=None, translation_delta=TranslationDelta())
    elif prev.selection_mode == SelectionMode.ROTATE:
        if prev.is_rotating:
            update["points"] = prev.points_before_rotate
            logger.info("Rotation cancelled")
        update.update(points_before_rotate=None, rotation_center=None)
    return update


class EditingSession:
    """Transactional editing state machine over a waypoint collection.

    With a :class:`~waypoint_composer.store.PointStore`, the point
    collection is saved after every change to it, undo and redo included.
    """

    def __init__(
        self, state: FlightDataState | None = None, store: PointStore | None = None
    ):
        self._history: History[FlightDataState] = History(state or FlightDataState())
        self._store = store

    # -----------------------------------------------------------------------
    # Read-only views
    # -----------------------------------------------------------------------

    @property
    def state(self) -> FlightDataState:
        return self._history.state

    @property
    def points(self) -> tuple[FeaturePoint, ...]:
        return self.state.points

    @property
    def selected_points(self) -> frozenset[str]:
        return self.state.selected_points

    @property
    def selection_mode(self) -> SelectionMode:
        return self.state.selection_mode

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def can_redo(self) -> bool:
        return self._history.can_redo

    @property
    def undo_depth(self) -> int:
        """Number of undo steps available."""
        return self._history.index

    def _persist(self, before: tuple[FeaturePoint, ...]) -> None:
        if self._store is not None and self.points != before:
            self._store.save_points(self.points)

    def _commit(self, new_state: FlightDataState, overwrite: bool = False) -> bool:
        before = self.points
        changed = self._history.set_state(new_state, overwrite=overwrite)
        self._persist(before)
        return changed

    def _commit_selection(self, prev: FlightDataState, update: dict[str, Any]) -> bool:
        """Commit a selection change on the overwrite path.

        A change that moves the mode out of ``translate`` or ``rotate``
        cancels the open transaction first and becomes an undo step.
        """
        mode = update.get("selection_mode", prev.selection_mode)
        leave = _leave_transaction(prev) if mode != prev.selection_mode else {}
        if not leave:
            return self._commit(prev.model_copy(update=update), overwrite=True)
        return self._commit(_restrict_selection(prev.model_copy(update={**leave, **update})))

    # -----------------------------------------------------------------------
    # History
    # -----------------------------------------------------------------------

    def undo(self) -> bool:
        before = self.points
        moved = self._history.undo()
        self._persist(before)
        return moved

    def redo(self) -> bool:
        before = self.points
        moved = self._history.redo()
        self._persist(before)
        return moved

    def reset_history(self, state: FlightDataState) -> None:
        """Replace the state and discard all undo/redo entries."""
        before = self.points
        self._history.reset(state)
        self._persist(before)

    # -----------------------------------------------------------------------
    # Import / export
    # -----------------------------------------------------------------------

    def load_csv(
        self, source: CsvSource, mapping: ColumnMapping | Mapping[str, str | None]
    ) -> ImportResult:
        """Import a CSV file, replacing the whole session (history included)."""
        result = import_csv(source, mapping)
        self.reset_history(
            FlightDataState(
                points=result.points,
                original_headers=result.headers,
                column_mapping=result.column_mapping,
                dataset_schema=result.dataset_schema,
            )
        )
        return result

    def export_csv(self) -> str:
        csv_text = export_csv(self.points, self.state.original_headers)
        logger.info(f"CSV export: {len(self.points)} points")
        return csv_text

    def to_flight_plan(self, name: str) -> FlightPlan:
        state = self.state
        return FlightPlan(
            name=name,
            headers=state.original_headers,
            column_mapping=state.column_mapping,
            dataset_schema=state.dataset_schema,
            points=state.points,
        )

    def open_flight_plan(self, plan: FlightPlan) -> None:
        """Load a stored flight plan, replacing the whole session."""
        self.reset_history(
            FlightDataState(
                points=plan.points,
                original_headers=plan.headers,
                column_mapping=plan.column_mapping,
                dataset_schema=plan.dataset_schema,
            )
        )
        logger.info(f"Opened flight plan '{plan.name}' ({len(plan.points)} points)")

    # -----------------------------------------------------------------------
    # Mode switching
    # -----------------------------------------------------------------------

    def set_selection_mode(self, mode: SelectionMode | str) -> bool:
        """Switch the interaction mode.

        Leaving ``translate`` or ``rotate`` without a commit restores the
        points from the open transaction's snapshot.  Entering ``translate``
        with a non-empty selection opens a translate transaction.
        """
        mode = SelectionMode(mode)
        prev = self.state

        if mode == prev.selection_mode and mode in (
            SelectionMode.TRANSLATE,
            SelectionMode.ROTATE,
        ):
            return False
        if (
            mode == SelectionMode.ROTATE
            and len(prev.selected_points) < config.MIN_ROTATION_SELECTION
        ):
            logger.warning(
                f"Rotation needs at least {config.MIN_ROTATION_SELECTION} selected points, "
                f"{len(prev.selected_points)} selected"
            )
            return False

        update: dict[str, Any] = dict(
            selection_mode=mode,
            is_drawing=mode == SelectionMode.POLYGON,
            drawn_polygon=(),
            points_before_translate=None,
            translation_delta=TranslationDelta(),
            rotation_center=None,
            points_before_rotate=None,
        )
        update.update(_leave_transaction(prev))
        points = update.setdefault("points", prev.points)

        if mode == SelectionMode.POLYGON:
            update["selected_points"] = frozenset()
        elif mode == SelectionMode.TRANSLATE and prev.selected_points:
            update["points_before_translate"] = points
        elif mode == SelectionMode.ATTRIBUTE:
            update["attribute_query"] = None

        return self._commit(_restrict_selection(prev.model_copy(update=update)))

    def escape(self) -> bool:
        """Cancel the current transient mode or open transaction."""
        state = self.state
        if state.is_drawing:
            return self.set_selection_mode(SelectionMode.SINGLE)
        if state.selection_mode == SelectionMode.TRANSLATE:
            return self.cancel_translation()
        if state.selection_mode == SelectionMode.ROTATE:
            return self.cancel_rotation()
        return False

    # -----------------------------------------------------------------------
    # Selection
    # -----------------------------------------------------------------------

    def toggle_point_selection(self, point_id: str) -> bool:
        prev = self.state
        if point_id not in prev.point_ids:
            logger.debug(f"Ignoring pick of unknown point {point_id}")
            return False
        selected = selection.pick(prev.selected_points, point_id, prev.selection_add_mode)
        return self._commit_selection(
            prev, {"selected_points": selected, "selection_mode": SelectionMode.SINGLE}
        )

    def select_all(self, select: bool | None = None) -> bool:
        """Select every point (mode ``all``) or none (mode ``single``).

        With ``select=None`` the selection toggles.
        """
        prev = self.state
        if select is None:
            select = not (prev.points and prev.selected_points == prev.point_ids)

        if select:
            update = {
                "selected_points": selection.select_all(prev.points),
                "selection_mode": SelectionMode.ALL,
            }
        else:
            update = {"selected_points": frozenset(), "selection_mode": SelectionMode.SINGLE}
        return self._commit_selection(prev, update)

    def clear_selection(self) -> bool:
        return self._commit_selection(
            self.state,
            {
                "selected_points": frozenset(),
                "selection_mode": SelectionMode.SINGLE,
                "selection_add_mode": False,
            },
        )

    def set_selection_add_mode(self, add_mode: bool) -> bool:
        return self._commit(
            self.state.model_copy(update={"selection_add_mode": bool(add_mode)}),
            overwrite=True,
        )

    def apply_batch_selection(self, ids: Iterable[str]) -> int:
        """Select ``ids`` (unioned in add-mode); returns the number applied."""
        ids = frozenset(ids)
        if not ids:
            logger.warning("Batch selection is empty; selection unchanged")
            return 0

        prev = self.state
        valid = ids & prev.point_ids
        final = selection.combine(prev.selected_points, valid, prev.selection_add_mode)
        if not final:
            logger.warning("No points selected after batch selection")

        self._commit_selection(
            prev,
            {
                "selected_points": final,
                "selection_mode": SelectionMode.BATCH_EDIT if final else SelectionMode.SINGLE,
            },
        )
        return len(valid)

    def select_range(self, first: float, last: float) -> int:
        """Select points by 1-based, inclusive flight-path position."""
        return self.apply_batch_selection(
            selection.select_range(self.points, first, last)
        )

    # --- polygon ---

    def set_is_drawing(self, is_drawing: bool) -> bool:
        return self._commit(
            self.state.model_copy(update={"is_drawing": bool(is_drawing)}), overwrite=True
        )

    def set_drawn_polygon(self, vertices: Sequence[LngLat | Mapping[str, float]]) -> bool:
        polygon = tuple(LngLat.model_validate(v) for v in vertices)
        return self._commit(
            self.state.model_copy(update={"drawn_polygon": polygon}), overwrite=True
        )

    def add_polygon_vertex(self, lng: float, lat: float) -> bool:
        prev = self.state
        return self._commit(
            prev.model_copy(
                update={"drawn_polygon": (*prev.drawn_polygon, LngLat(lng=lng, lat=lat))}
            ),
            overwrite=True,
        )

    def finish_polygon_selection(self) -> int:
        """Close the drawn polygon and select the points it covers.

        Returns the number of points found inside the polygon.
        """
        prev = self.state
        found = selection.select_in_polygon(prev.points, prev.drawn_polygon)
        if len(prev.drawn_polygon) < config.MIN_POLYGON_VERTICES:
            # Degenerate outline: abort drawing, selection untouched
            self._commit_selection(
                prev,
                {
                    "is_drawing": False,
                    "drawn_polygon": (),
                    "selection_mode": SelectionMode.SINGLE,
                },
            )
            return 0

        final = selection.combine(prev.selected_points, found, prev.selection_add_mode)
        self._commit_selection(
            prev,
            {
                "selected_points": final,
                "drawn_polygon": (),
                "is_drawing": False,
                "selection_mode": SelectionMode.BATCH_EDIT if final else SelectionMode.SINGLE,
            },
        )
        logger.info(f"Polygon selection: {len(found)} points inside")
        return len(found)

    # --- attribute query ---

    def set_attribute_query(
        self, query: AttributeQuery | Mapping[str, Any] | None
    ) -> bool:
        if query is not None and not isinstance(query, AttributeQuery):
            query = AttributeQuery.model_validate(query)
        return self._commit(self.state.model_copy(update={"attribute_query": query}))

    def apply_attribute_selection(self) -> int:
        """Evaluate the pending attribute query; returns the match count."""
        prev = self.state
        query = prev.attribute_query
        if query is None:
            logger.warning("No attribute query to apply")
            return 0

        found = selection.select_by_query(prev.points, query)
        final = selection.combine(prev.selected_points, found, prev.selection_add_mode)
        if not found:
            logger.warning(f"Attribute query on '{query.field}' matched no points")

        self._commit_selection(
            prev,
            {
                "selected_points": final,
                "attribute_query": None,
                "selection_mode": SelectionMode.BATCH_EDIT if final else SelectionMode.SINGLE,
            },
        )
        return len(found)

    # -----------------------------------------------------------------------
    # Translate transaction
    # -----------------------------------------------------------------------

    def set_translation_lock(self, axis: Literal["lat", "lon", "alt"], locked: bool) -> bool:
        if axis not in ("lat", "lon", "alt"):
            raise ValueError(f"Unknown translation axis: {axis!r}")
        prev = self.state
        lock = prev.translation_lock.model_copy(update={axis: bool(locked)})
        return self._commit(prev.model_copy(update={"translation_lock": lock}), overwrite=True)

    def translate_selected_points(
        self, d_lat: float = 0.0, d_lon: float = 0.0, d_alt: float = 0.0
    ) -> bool:
        """Preview tick: shift the selection, honouring the axis locks."""
        prev = self.state
        if prev.selection_mode != SelectionMode.TRANSLATE or not prev.is_translating:
            return False

        delta = transform.apply_locks(
            TranslationDelta(d_lat=d_lat, d_lon=d_lon, d_alt=d_alt), prev.translation_lock
        )
        return self._commit(
            prev.model_copy(
                update={
                    "points": transform.translate_points(
                        prev.points, prev.selected_points, delta, prev.column_mapping
                    ),
                    "translation_delta": transform.accumulate(prev.translation_delta, delta),
                }
            )
        )

    def set_translation_value(self, axis: transform.TranslationAxis, value: float) -> bool:
        """Set the cumulative offset on one axis to an absolute ``value``."""
        if axis not in ("d_lat", "d_lon", "d_alt"):
            raise ValueError(f"Unknown translation axis: {axis!r}")
        prev = self.state
        if prev.selection_mode != SelectionMode.TRANSLATE or not prev.is_translating:
            return False

        delta = transform.incremental_delta(prev.translation_delta, axis, value)
        return self._commit(
            prev.model_copy(
                update={
                    "points": transform.translate_points(
                        prev.points, prev.selected_points, delta, prev.column_mapping
                    ),
                    "translation_delta": prev.translation_delta.model_copy(
                        update={axis: value}
                    ),
                }
            )
        )

    def apply_translation(self) -> bool:
        """Commit the translate transaction."""
        prev = self.state
        if prev.selection_mode != SelectionMode.TRANSLATE:
            return False

        logger.info(f"Translation applied: {prev.translation_delta}")
        return self._commit(
            prev.model_copy(
                update={
                    "points_before_translate": None,
                    "translation_delta": TranslationDelta(),
                    "selection_mode": SelectionMode.SINGLE,
                }
            )
        )

    def cancel_translation(self) -> bool:
        """Restore the points from the translate snapshot."""
        if self.state.selection_mode != SelectionMode.TRANSLATE:
            return False
        return self.set_selection_mode(SelectionMode.SINGLE)

    # -----------------------------------------------------------------------
    # Rotate transaction
    # -----------------------------------------------------------------------

    def set_rotation_center(self, lon: float, lat: float) -> bool:
        return self._commit(
            self.state.model_copy(update={"rotation_center": LonLat(lon=lon, lat=lat)}),
            overwrite=True,
        )

    def clear_rotation_center(self) -> bool:
        return self._commit(
            self.state.model_copy(update={"rotation_center": None}), overwrite=True
        )

    def begin_rotation(self) -> bool:
        """Open the rotate transaction at the start of a drag.

        Requires ``rotate`` mode and a pivot.  Returns whether a transaction
        is open afterwards.
        """
        prev = self.state
        if prev.selection_mode != SelectionMode.ROTATE or prev.rotation_center is None:
            return False
        if prev.is_rotating:
            return True
        self._commit(
            prev.model_copy(update={"points_before_rotate": prev.points}), overwrite=True
        )
        return True

    def rotate_selected_points(self, angle: float) -> bool:
        """Preview tick: rotate the selection ``angle`` degrees about the pivot."""
        prev = self.state
        if (
            prev.selection_mode != SelectionMode.ROTATE
            or prev.rotation_center is None
            or not prev.is_rotating
        ):
            return False
        return self._commit(
            prev.model_copy(
                update={
                    "points": transform.rotate_points(
                        prev.points,
                        prev.selected_points,
                        prev.rotation_center,
                        angle,
                        prev.column_mapping,
                    )
                }
            )
        )

    def apply_rotation(self) -> bool:
        """Commit the rotate transaction."""
        prev = self.state
        if prev.selection_mode != SelectionMode.ROTATE or not prev.is_rotating:
            return False
        logger.info("Rotation applied")
        return self._commit(
            prev.model_copy(
                update={
                    "points_before_rotate": None,
                    "rotation_center": None,
                    "selection_mode": SelectionMode.SINGLE,
                }
            )
        )

    def cancel_rotation(self) -> bool:
        """Restore the points from the rotate snapshot and leave rotate mode."""
        if self.state.selection_mode != SelectionMode.ROTATE:
            return False
        return self.set_selection_mode(SelectionMode.SINGLE)

    # -----------------------------------------------------------------------
    # Point edits
    # -----------------------------------------------------------------------

    def _parse_changes(
        self, changes: Mapping[str, Any]
    ) -> tuple[dict[str, float], dict[str, AttributeValue]]:
        """Split edits into typed fields and attribute columns.

        Blank values mean "leave unchanged".  Typed fields and number-typed
        attribute columns must parse as numbers.
        """
        state = self.state
        column_to_field = {}
        if state.column_mapping is not None:
            column_to_field = {
                column: name for name, column in state.column_mapping.typed_columns().items()
            }

        typed: dict[str, float] = {}
        attributes: dict[str, AttributeValue] = {}
        for key, value in changes.items():
            if key == "id":
                raise ValidationError("Point ids cannot be edited")
            if key == "attributes":
                attributes.update(value or {})
                continue
            if value is None or (isinstance(value, str) and not value.strip()):
                continue

            name = column_to_field.get(key, key)
            if name in TYPED_FIELDS:
                number = parse_number(value)
                if number is None:
                    raise NumericFieldError(key, value)
                if name in _COORDINATE_RANGES:
                    low, high = _COORDINATE_RANGES[name]
                    if not low <= number <= high:
                        raise ValidationError(
                            f"Field '{key}' must be within [{low}, {high}], got {number}"
                        )
                typed[name] = number
                continue

            schema_field = state.dataset_schema.field(key)
            if schema_field is not None and schema_field.type == FieldType.NUMBER:
                number = parse_number(value)
                if number is None:
                    raise NumericFieldError(key, value)
                attributes[key] = number
            else:
                attributes[key] = value

        return typed, attributes

    def _edit(
        self,
        point: FeaturePoint,
        typed: dict[str, float],
        attributes: dict[str, AttributeValue],
    ) -> FeaturePoint:
        if attributes:
            point = point.model_copy(
                update={"attributes": {**point.attributes, **attributes}}
            )
        return point.with_fields(self.state.column_mapping, **typed)

    def update_point(self, point_id: str, changes: Mapping[str, Any]) -> bool:
        """Edit one point's typed fields and/or attribute columns."""
        typed, attributes = self._parse_changes(changes)
        prev = self.state
        points = tuple(
            self._edit(p, typed, attributes) if p.id == point_id else p
            for p in prev.points
        )
        return self._commit(prev.model_copy(update={"points": points}))

    def update_selected_points(self, changes: Mapping[str, Any]) -> bool:
        """Batch edit of every selected point; blank fields are left unchanged."""
        typed, attributes = self._parse_changes(changes)
        prev = self.state
        if not typed and not attributes:
            return False

        points = tuple(
            self._edit(p, typed, attributes) if p.id in prev.selected_points else p
            for p in prev.points
        )
        changed = self._commit(prev.model_copy(update={"points": points}))
        if changed:
            logger.info(
                f"Batch edit of {len(prev.selected_points)} points: "
                f"{sorted(typed) + sorted(attributes)}"
            )
        return changed

    def duplicate_selected_points(self) -> int:
        """Append offset copies of the selected points and select the copies."""
        prev = self.state
        offset = config.DUPLICATE_OFFSET_DEG
        clones = [
            p.model_copy(update={"id": new_point_id()}).with_fields(
                prev.column_mapping, lon=p.lon + offset, lat=p.lat + offset
            )
            for p in prev.points
            if p.id in prev.selected_points
        ]
        if not clones:
            return 0

        self._commit(
            prev.model_copy(
                update={
                    "points": (*prev.points, *clones),
                    "selected_points": frozenset(c.id for c in clones),
                }
            )
        )
        logger.info(f"Duplicated {len(clones)} points")
        return len(clones)

    def delete_selected_points(self) -> int:
        """Remove the selected points; clears the selection and add-mode."""
        prev = self.state
        points = tuple(p for p in prev.points if p.id not in prev.selected_points)
        removed = len(prev.points) - len(points)
        self._commit(
            prev.model_copy(
                update={
                    "points": points,
                    "selected_points": frozenset(),
                    "selection_add_mode": False,
                }
            )
        )
        if removed:
            logger.info(f"Deleted {removed} points")
        return removed

    def reverse_flight_points(self) -> bool:
        """Reverse the flight-path order of all points."""
        prev = self.state
        if len(prev.points) < 2:
            return False
        return self._commit(prev.model_copy(update={"points": prev.points[::-1]}))
