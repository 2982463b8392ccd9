"""
Timer Service - Core time tracking logic.

Architecture Decision: Observer Pattern (Qt Signals)
The service emits signals when state changes, keeping it decoupled from UI.

The service owns the one TimerSession of the signed-in user. Every transition
builds a new session value and writes it to the local session cache in full,
so a restart picks up exactly where the last mutation left off.

States:
    Idle     no start_time
    Running  start_time set, is_tracking
    Paused   start_time set, not tracking
"""

import datetime
import logging
import uuid
from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from timekeeping.domain.duration import format_elapsed
from timekeeping.domain.errors import ConfirmationRequired, ValidationError
from timekeeping.domain.models import TimeEntry, TimerSession, TimerState
from timekeeping.infra.config import TrackerPreferences
from timekeeping.infra.repository import ProjectRepository
from timekeeping.infra.session_cache import LocalSessionCache
from timekeeping.services.commit_service import CommitService

logger = logging.getLogger(__name__)


class TimerService(QObject):
    """
    The stopwatch engine. Manages state but knows nothing about the UI.
    Emits signals when things change (Observer Pattern).
    """

    # Signals
    tick = Signal(str, int)  # (formatted_time, elapsed_seconds)
    session_started = Signal(object)  # TimerSession
    session_paused = Signal(object)  # TimerSession
    session_resumed = Signal(object)  # TimerSession
    session_stopped = Signal(object)  # committed TimeEntry
    commit_failed = Signal(str)  # error message

    def __init__(self, cache: LocalSessionCache, user_id: int,
                 commit_service: Optional[CommitService] = None,
                 project_repo: Optional[ProjectRepository] = None,
                 preferences: Optional[TrackerPreferences] = None,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now):
        super().__init__()
        self.cache = cache
        self.user_id = user_id
        self.preferences = preferences or TrackerPreferences()
        self.clock = clock
        self.commit_service = commit_service or CommitService(preferences=self.preferences, clock=clock)
        self.project_repo = project_repo or ProjectRepository()

        self.session = TimerSession()
        self._manual_stop_in_flight = False

        # Internal timer that fires every second while Running
        self.timer = QTimer()
        self.timer.setInterval(self.preferences.tick_interval_ms)
        self.timer.timeout.connect(self._on_tick)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def state(self) -> TimerState:
        return self.session.state

    def snapshot(self) -> TimerSession:
        """
        Copy of the current session.

        Synchronous on purpose: whatever reads the session across an await
        (stop) takes it from here first, so a tick firing in between cannot
        change what gets committed.
        """
        return self.session.model_copy()

    def is_tracking(self) -> bool:
        """Check if currently tracking time"""
        return self.session.is_tracking

    def should_warn_on_unload(self) -> bool:
        """True when closing now would leave tracked time uncommitted"""
        return (
            self.session.is_tracking
            and self.session.elapsed_seconds > 0
            and not self._manual_stop_in_flight
        )

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select_client(self, client_id: Optional[int]):
        """Choosing another client invalidates project and task"""
        self._ensure_idle()
        self._replace(selected_client_id=client_id, selected_project_id=None, selected_task_id=None)

    def select_project(self, project_id: Optional[int]):
        """Choosing another project invalidates the task"""
        self._ensure_idle()
        if project_id is not None and self.session.selected_client_id is None:
            raise ValidationError("Select a client before choosing a project")
        self._replace(selected_project_id=project_id, selected_task_id=None)

    def select_task(self, task_id: Optional[int]):
        self._ensure_idle()
        if task_id is not None and self.session.selected_project_id is None:
            raise ValidationError("Select a project before choosing a task")
        self._replace(selected_task_id=task_id)

    def set_description(self, description: str):
        self._replace(description=description)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self):
        """
        Idle -> Running.

        Raises:
            ValidationError: client or project missing, or a session is
                already in progress
        """
        if self.state != TimerState.IDLE:
            raise ValidationError("A timer session is already in progress; resume or stop it first")
        if not self.session.has_required_selection:
            raise ValidationError("Please select client and project before starting the timer")

        self._replace(
            is_tracking=True,
            elapsed_seconds=0,
            start_time=self.clock(),
            session_token=uuid.uuid4().hex,
        )
        self._start_ticking()
        logger.info(f"Timer started at {self.session.start_time:%H:%M:%S} for project {self.session.selected_project_id}")
        self.session_started.emit(self.snapshot())

    def pause(self):
        """
        Running -> Paused.
        Elapsed seconds and start time are kept.
        """
        if self.state != TimerState.RUNNING:
            return

        self._stop_ticking()
        self._replace(is_tracking=False)
        logger.info(f"Timer paused at {format_elapsed(self.session.elapsed_seconds)}")
        self.session_paused.emit(self.snapshot())

    def resume(self):
        """
        Paused -> Running.

        The start time is not reset, so the committed duration still spans
        the paused interval (see DESIGN.md); only the displayed counter
        skips it.
        """
        if self.state != TimerState.PAUSED:
            return

        self._replace(is_tracking=True)
        self._start_ticking()
        logger.info(f"Timer resumed at {format_elapsed(self.session.elapsed_seconds)}")
        self.session_resumed.emit(self.snapshot())

    async def stop(self) -> Optional[TimeEntry]:
        """
        (Running | Paused) -> Idle.

        Commits the session and clears it, keeping the selection. If the
        commit fails the session is left Paused with its elapsed time intact
        and the error is re-raised; calling stop again retries.

        Returns:
            The committed entry, or None when there was nothing to stop
        """
        snapshot = self.snapshot()
        if snapshot.start_time is None:
            return None

        self._stop_ticking()
        self._manual_stop_in_flight = True
        try:
            entry = await self.commit_service.commit(snapshot, self.user_id)
        except Exception as e:
            logger.error(f"Commit of session started {snapshot.start_time:%H:%M:%S} failed: {e}")
            if self._is_same_run(snapshot) and self.session.is_tracking:
                self._replace(is_tracking=False)
            self.commit_failed.emit(str(e))
            raise
        finally:
            self._manual_stop_in_flight = False

        # A fresh session may have started while the commit was awaited
        if self._is_same_run(snapshot):
            self._stop_ticking()
            self._replace(
                is_tracking=False,
                elapsed_seconds=0,
                start_time=None,
                description="",
                session_token=None,
            )
        self.session_stopped.emit(entry)
        return entry

    async def resume_from_entry(self, entry: TimeEntry, confirm_stop: bool = False):
        """
        Start a fresh run on the project/task of a past entry.

        A session in progress is committed first, but only when the caller
        confirmed it (the user was asked).

        Raises:
            ConfirmationRequired: a session is in progress and confirm_stop is False
            ValidationError: the entry has no (longer a) project
        """
        if self.state != TimerState.IDLE:
            if not confirm_stop:
                raise ConfirmationRequired("Stop the current timer session first?")
            await self.stop()

        project = await self.project_repo.get_by_id(entry.project_id) if entry.project_id else None
        if project is None:
            raise ValidationError(f"Entry {entry.id} has no project to resume")

        self._replace(
            selected_client_id=project.client_id,
            selected_project_id=project.id,
            selected_task_id=entry.task_id,
            description=entry.description,
            is_tracking=True,
            elapsed_seconds=0,
            start_time=self.clock(),
            session_token=uuid.uuid4().hex,
        )
        self._start_ticking()
        logger.info(f"Resumed work of entry {entry.id} on project {project.id}")
        self.session_started.emit(self.snapshot())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def restore(self) -> TimerSession:
        """
        Rehydrate the session from the cache at start-up.

        A tracking session keeps ticking from its cached elapsed_seconds.
        With recompute_elapsed_on_restore the time the app was closed is
        added first.
        """
        cached = self.cache.read_session()
        if cached is None:
            self.session = TimerSession()
            return self.snapshot()

        if cached.is_tracking and self.preferences.recompute_elapsed_on_restore and cached.saved_at:
            gap = int((self.clock() - cached.saved_at).total_seconds())
            if gap > 0:
                logger.info(f"Adding {gap}s spent closed to the restored session")
                cached = cached.model_copy(update={"elapsed_seconds": cached.elapsed_seconds + gap})

        self.session = cached
        self._persist()
        if self.session.is_tracking:
            self._start_ticking()
            logger.info(f"Restored running session at {format_elapsed(self.session.elapsed_seconds)}")
        return self.snapshot()

    def sign_out(self):
        """Forget the session entirely, cache included"""
        self._stop_ticking()
        self.cache.clear_session()
        self.session = TimerSession()
        logger.info("Timer session cleared on sign-out")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _on_tick(self):
        """Called every second to advance the counter"""
        if not self.session.is_tracking:
            self._stop_ticking()
            return

        self._replace(elapsed_seconds=self.session.elapsed_seconds + 1)
        self.tick.emit(format_elapsed(self.session.elapsed_seconds), self.session.elapsed_seconds)

    def _replace(self, **changes):
        """Swap in a new session value and write it to the cache"""
        self.session = self.session.model_copy(update=changes)
        self._persist()

    def _persist(self):
        self.session.saved_at = self.clock()
        try:
            self.cache.write_session(self.session)
        except OSError as e:
            logger.warning(f"Could not write session cache: {e}")

    def _start_ticking(self):
        # QTimer.start() restarts an active timer, so there is never more than one
        self.timer.start()

    def _stop_ticking(self):
        self.timer.stop()

    def _ensure_idle(self):
        if self.state != TimerState.IDLE:
            raise ValidationError("Selection cannot change while a timer session is in progress")

    def _is_same_run(self, snapshot: TimerSession) -> bool:
        return (
            self.session.start_time == snapshot.start_time
            and self.session.session_token == snapshot.session_token
        )
