"""Domain layer - Pure business entities and logic"""

from .models import (
    Client,
    DayBucket,
    NewTimeEntry,
    Project,
    Task,
    TimeEntry,
    TimeEntryUpdate,
    TimerSession,
    TimerState,
    UserProfile,
)
from .errors import (
    CacheCorruptionError,
    ConfirmationRequired,
    NotFoundError,
    TimeTrackingError,
    ValidationError,
    WriteError,
)
from .duration import DURATION_EPSILON_MINUTES, precise_duration_minutes

__all__ = [
    "Client", "DayBucket", "NewTimeEntry", "Project", "Task", "TimeEntry",
    "TimeEntryUpdate", "TimerSession", "TimerState", "UserProfile",
    "CacheCorruptionError", "ConfirmationRequired", "NotFoundError",
    "TimeTrackingError", "ValidationError", "WriteError",
    "DURATION_EPSILON_MINUTES", "precise_duration_minutes",
]
