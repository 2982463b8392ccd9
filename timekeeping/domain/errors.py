"""
Error taxonomy of the timer core.

Validation errors are raised synchronously before any state change or write.
Store errors (WriteError, NotFoundError) travel up the async call chain to
whoever drives the UI; the core never swallows them except in the
reconciliation pass, which logs and moves on.
"""


class TimeTrackingError(Exception):
    """Base class for all timer core errors"""


class ValidationError(TimeTrackingError):
    """Incomplete selection or an invalid time range"""


class WriteError(TimeTrackingError):
    """The record store could not create or update a record"""


class NotFoundError(TimeTrackingError):
    """An update or delete referenced a record that no longer exists"""

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class CacheCorruptionError(TimeTrackingError):
    """The local session cache holds content that cannot be parsed"""


class ConfirmationRequired(TimeTrackingError):
    """A running session must be stopped before this action; ask the user first"""
