"""Flight plan data models.

A flight plan is an ordered sequence of geo-tagged waypoints imported from a
CSV file.  Every state type here is an immutable pydantic model: editing
commands never change a value in place, they build a copy with
``model_copy(update=...)``.  Equality is structural, which the undo history
uses to skip updates that change nothing.
"""

from __future__ import annotations

import datetime
import uuid
from enum import StrEnum

import pydantic

AttributeValue = bool | int | float | str | None


class _Frozen(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)


def new_point_id() -> str:
    """Mint a fresh point id; ids are never reused within a session."""
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Column mapping
# ---------------------------------------------------------------------------


class ColumnMapping(_Frozen):
    """Names of the CSV columns holding the typed point fields."""

    lat: str | None = None
    lon: str | None = None
    alt: str | None = None
    heading: str | None = None
    gimbal_pitch: str | None = None

    def typed_columns(self) -> dict[str, str]:
        """Map typed field name → CSV column for every mapped field."""
        return {name: column for name, column in self if column}


# ---------------------------------------------------------------------------
# Waypoint
# ---------------------------------------------------------------------------


class FeaturePoint(_Frozen):
    """A single waypoint.

    ``attributes`` mirrors every original CSV column, including the columns
    the typed fields were read from.
    """

    id: str
    lat: float
    lon: float
    alt: float = 0.0
    heading: float = 0.0
    gimbal_pitch: float = 0.0
    attributes: dict[str, AttributeValue] = pydantic.Field(default_factory=dict)

    def with_fields(
        self, mapping: ColumnMapping | None = None, **fields: float
    ) -> FeaturePoint:
        """Return a copy with typed fields replaced.

        When ``mapping`` is given, the mapped attribute columns receive the
        same values so the attribute mirror stays consistent.
        """
        if not fields:
            return self

        attributes = self.attributes
        if mapping is not None:
            mirrored = {
                column: fields[name]
                for name, column in mapping.typed_columns().items()
                if name in fields
            }
            if mirrored:
                attributes = {**self.attributes, **mirrored}

        return self.model_copy(update={**fields, "attributes": attributes})


# ---------------------------------------------------------------------------
# Dataset schema
# ---------------------------------------------------------------------------


class FieldType(StrEnum):
    NUMBER = "number"
    STRING = "string"
    OTHER = "other"


class FieldStats(_Frozen):
    min: float | None = None
    max: float | None = None
    unique_values: frozenset[str] | None = None


class SchemaField(_Frozen):
    name: str
    type: FieldType = FieldType.OTHER
    stats: FieldStats = pydantic.Field(default_factory=FieldStats)


class DatasetSchema(_Frozen):
    fields: tuple[SchemaField, ...] = ()

    def field(self, name: str) -> SchemaField | None:
        for schema_field in self.fields:
            if schema_field.name == name:
                return schema_field
        return None

    @property
    def numeric_field_names(self) -> list[str]:
        return [f.name for f in self.fields if f.type == FieldType.NUMBER]


# ---------------------------------------------------------------------------
# Attribute query
# ---------------------------------------------------------------------------


class AttributeOperator(StrEnum):
    EQ = "eq"
    NEQ = "neq"
    IN = "in"
    GTE = "gte"
    LTE = "lte"
    BETWEEN = "between"


class AttributeQuery(_Frozen):
    """A predicate over a single attribute column."""

    field: str
    operator: AttributeOperator
    value: AttributeValue = None
    values: tuple[AttributeValue, ...] | None = None
    min: float | None = None
    max: float | None = None


# ---------------------------------------------------------------------------
# Editing session state
# ---------------------------------------------------------------------------


class SelectionMode(StrEnum):
    SINGLE = "single"
    POLYGON = "polygon"
    ALL = "all"
    TRANSLATE = "translate"
    BATCH_EDIT = "batch-edit"
    ATTRIBUTE = "attribute"
    ROTATE = "rotate"


class LngLat(_Frozen):
    """A polygon vertex as reported by the map surface."""

    lng: float
    lat: float


class LonLat(_Frozen):
    lon: float
    lat: float


class TranslationLock(_Frozen):
    lat: bool = False
    lon: bool = False
    alt: bool = False


class TranslationDelta(_Frozen):
    d_lat: float = 0.0
    d_lon: float = 0.0
    d_alt: float = 0.0


class FlightDataState(_Frozen):
    """The complete editing session state; the unit stored in undo history."""

    points: tuple[FeaturePoint, ...] = ()
    selected_points: frozenset[str] = frozenset()
    original_headers: tuple[str, ...] = ()
    column_mapping: ColumnMapping | None = None
    selection_mode: SelectionMode = SelectionMode.SINGLE

    drawn_polygon: tuple[LngLat, ...] = ()
    is_drawing: bool = False

    translation_lock: TranslationLock = TranslationLock()
    translation_delta: TranslationDelta = TranslationDelta()
    points_before_translate: tuple[FeaturePoint, ...] | None = None

    rotation_center: LonLat | None = None
    points_before_rotate: tuple[FeaturePoint, ...] | None = None

    dataset_schema: DatasetSchema = DatasetSchema()
    attribute_query: AttributeQuery | None = None
    selection_add_mode: bool = False

    @property
    def point_ids(self) -> set[str]:
        return {p.id for p in self.points}

    @property
    def selected(self) -> list[FeaturePoint]:
        """Selected points in flight-path order."""
        return [p for p in self.points if p.id in self.selected_points]

    @property
    def is_translating(self) -> bool:
        return self.points_before_translate is not None

    @property
    def is_rotating(self) -> bool:
        return self.points_before_rotate is not None


# ---------------------------------------------------------------------------
# Stored flight plan
# ---------------------------------------------------------------------------


class FlightPlan(pydantic.BaseModel):
    """A named, persisted copy of an editing session's data."""

    name: str
    headers: tuple[str, ...] = ()
    column_mapping: ColumnMapping | None = None
    dataset_schema: DatasetSchema = DatasetSchema()
    points: tuple[FeaturePoint, ...] = ()
    saved_at: datetime.datetime = pydantic.Field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
