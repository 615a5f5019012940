"""Exceptions raised by waypoint_composer.

Only rejected operations raise.  Per-row coordinate problems, degenerate
polygons and empty selection applications are recovered where they happen
and reported through logging instead.
"""


class ValidationError(ValueError):
    """An operation was rejected; the message is meant for the operator."""


class MissingMappingError(ValidationError):
    """The latitude or longitude column mapping was not supplied."""


class ColumnNotFoundError(ValidationError):
    """A mapped coordinate column is not present in the CSV header row."""


class NumericFieldError(ValidationError):
    """A numeric point field received a value that does not parse."""

    def __init__(self, field: str, value: object):
        super().__init__(f"Field '{field}' expects a number, got {value!r}")
        self.field = field
        self.value = value
