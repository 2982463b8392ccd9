"""
Domain Models using Pydantic for validation.

Architecture Decision: Why Pydantic?
The timer session round-trips through a JSON cache file on every tick and the
time entries round-trip through the ORM. Pydantic validates both directions and
gives us cheap copies (model_copy) for the synchronous snapshot taken on stop.
"""

import enum
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, model_validator


class TimerState(str, enum.Enum):
    """Observable state of the stopwatch"""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class Client(BaseModel):
    """A customer the work is billed to."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    company: str = Field(..., min_length=1, max_length=200)
    created_at: datetime = Field(default_factory=datetime.now)


class Project(BaseModel):
    """A project always belongs to a client."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    client_id: int
    name: str = Field(..., min_length=1, max_length=200)
    created_at: datetime = Field(default_factory=datetime.now)


class Task(BaseModel):
    """
    Represents a trackable task inside a project.

    Examples: "Wireframes", "Code review", "Weekly sync"
    """
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    project_id: int
    title: str = Field(..., min_length=1, max_length=200)
    created_at: datetime = Field(default_factory=datetime.now)


class UserProfile(BaseModel):
    """The signed-in user. hourly_rate is only read by reporting."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    full_name: str = Field(..., min_length=1, max_length=200)
    hourly_rate: float = Field(default=0.0, ge=0.0)
    created_at: datetime = Field(default_factory=datetime.now)


class TimerSession(BaseModel):
    """
    The single stopwatch session of a user.

    Lives in memory inside TimerService and is mirrored to the local session
    cache after every mutation, so it survives restarts.

    Selection rule: a project implies a client, a task implies a project.
    """
    is_tracking: bool = False
    elapsed_seconds: int = Field(default=0, ge=0)
    start_time: Optional[datetime] = None

    selected_client_id: Optional[int] = None
    selected_project_id: Optional[int] = None
    selected_task_id: Optional[int] = None
    description: str = ""

    # Minted on start, carried to the committed entry
    session_token: Optional[str] = None
    # Last time the session was written to the cache
    saved_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "TimerSession":
        if self.selected_project_id is not None and self.selected_client_id is None:
            raise ValueError("A project selection requires a client")
        if self.selected_task_id is not None and self.selected_project_id is None:
            raise ValueError("A task selection requires a project")
        if self.is_tracking and (self.start_time is None or not self.has_required_selection):
            raise ValueError("A tracking session requires a start time, a client and a project")
        return self

    @property
    def state(self) -> TimerState:
        if self.start_time is None:
            return TimerState.IDLE
        if self.is_tracking:
            return TimerState.RUNNING
        return TimerState.PAUSED

    @property
    def has_required_selection(self) -> bool:
        return self.selected_client_id is not None and self.selected_project_id is not None


class TimeEntry(BaseModel):
    """
    Represents a single committed block of work.

    duration is stored in fractional minutes and must always agree with
    end_time - start_time (see ReconciliationService). date is the calendar
    day of start_time, even when end_time falls on the next day.
    """
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    user_id: int
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    description: str = ""
    start_time: datetime
    end_time: datetime
    duration: float = 0.0  # minutes
    date: str  # YYYY-MM-DD

    session_token: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)


class NewTimeEntry(BaseModel):
    """Fields accepted when inserting a time entry"""
    user_id: int
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    description: str = ""
    start_time: datetime
    end_time: datetime
    duration: float
    date: str
    session_token: Optional[str] = None


class TimeEntryUpdate(BaseModel):
    """
    Partial update of a time entry.

    Only explicitly set fields are written, so callers build it with keyword
    arguments and the repository uses model_dump(exclude_unset=True).
    """
    project_id: Optional[int] = None
    task_id: Optional[int] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: Optional[float] = None
    date: Optional[str] = None
    session_token: Optional[str] = None


class DayBucket(BaseModel):
    """Result of the cross-day normalization of a (start, end) pair"""
    date: str
    crosses_day: bool = False
