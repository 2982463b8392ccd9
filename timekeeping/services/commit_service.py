"""
Commit Service - turns a stopped timer session into a time entry.

Stop can be triggered twice for the same session (a retried click, an
autosave racing a manual stop). The second call must update the entry the
first one wrote instead of inserting a twin, so before inserting we look for
an entry of the same user carrying the session token, then for one that
started at the same instant.
"""

import asyncio
import datetime
import logging
from typing import Callable, Optional

from timekeeping.domain.duration import precise_duration_minutes
from timekeeping.domain.errors import ValidationError
from timekeeping.domain.models import NewTimeEntry, TimeEntry, TimeEntryUpdate, TimerSession
from timekeeping.infra.config import TrackerPreferences
from timekeeping.infra.repository import TimeEntryRepository
from timekeeping.services.calendar_service import CalendarService

logger = logging.getLogger(__name__)


class CommitService:
    """
    Creates or updates the time entry for a session.

    Never mutates the session: clearing it is the TimerService's job, and only
    after the write succeeded.
    """

    def __init__(self, entry_repo: Optional[TimeEntryRepository] = None,
                 preferences: Optional[TrackerPreferences] = None,
                 clock: Callable[[], datetime.datetime] = datetime.datetime.now):
        self.entry_repo = entry_repo or TimeEntryRepository()
        self.preferences = preferences or TrackerPreferences()
        self.clock = clock
        # Look-up and insert must not interleave between two commits
        self._lock = asyncio.Lock()

    async def commit(self, session: TimerSession, user_id: int,
                     now: Optional[datetime.datetime] = None) -> TimeEntry:
        """
        Persist the session as a time entry.

        Args:
            session: Snapshot of the session at the instant stop was invoked
            user_id: Owner of the entry
            now: End of the entry, defaults to the current time

        Returns:
            The created or updated entry

        Raises:
            ValidationError: the session never started
            WriteError, NotFoundError: the record store failed
        """
        if session.start_time is None:
            raise ValidationError("Cannot commit a session that was never started")

        end_time = now or self.clock()
        duration = precise_duration_minutes(session.start_time, end_time)
        bucket = CalendarService.normalize(session.start_time, end_time)

        async with self._lock:
            existing = await self._find_existing(session, user_id)
            if existing is not None:
                logger.info(
                    f"Entry {existing.id} already holds session started {session.start_time:%Y-%m-%d %H:%M:%S}, updating it"
                )
                return await self.entry_repo.update(existing.id, TimeEntryUpdate(
                    end_time=end_time,
                    duration=duration,
                    description=session.description or existing.description,
                ))

            entry = await self.entry_repo.create(NewTimeEntry(
                user_id=user_id,
                project_id=session.selected_project_id,
                task_id=session.selected_task_id,
                description=session.description or self.preferences.default_timer_description,
                start_time=session.start_time,
                end_time=end_time,
                duration=duration,
                date=bucket.date,
                session_token=session.session_token,
            ))
        logger.info(f"Committed entry {entry.id}: {duration:.2f} min on {entry.date}")
        return entry

    async def _find_existing(self, session: TimerSession, user_id: int) -> Optional[TimeEntry]:
        if session.session_token:
            entry = await self.entry_repo.find_by_session_token(session.session_token, user_id)
            if entry is not None:
                return entry
        match = await self.entry_repo.find_by_start_time(
            session.start_time, user_id, self.preferences.duplicate_tolerance_seconds
        )
        # An entry written by another run is never ours, however close it started
        if match is not None and match.session_token not in (None, session.session_token):
            return None
        return match
