"""
Entry Service - manual entries, edits and deletes of committed time.

Any change to start or end re-derives duration and date, so the invariants
the reconciliation pass checks hold from the moment of the write.
"""

import datetime
import logging
from typing import List, Optional

from timekeeping.domain.duration import precise_duration_minutes
from timekeeping.domain.errors import NotFoundError, ValidationError
from timekeeping.domain.models import NewTimeEntry, TimeEntry, TimeEntryUpdate
from timekeeping.infra.config import TrackerPreferences
from timekeeping.infra.repository import ProjectRepository, TaskRepository, TimeEntryRepository
from timekeeping.services.calendar_service import CalendarService
from timekeeping.services.reconciliation_service import ReconciliationReport, ReconciliationService

logger = logging.getLogger(__name__)


class EntryService:
    """
    Write paths for time entries other than the timer commit.
    """

    def __init__(self, entry_repo: Optional[TimeEntryRepository] = None,
                 project_repo: Optional[ProjectRepository] = None,
                 task_repo: Optional[TaskRepository] = None,
                 reconciler: Optional[ReconciliationService] = None,
                 preferences: Optional[TrackerPreferences] = None):
        self.preferences = preferences or TrackerPreferences()
        self.entry_repo = entry_repo or TimeEntryRepository()
        self.project_repo = project_repo or ProjectRepository()
        self.task_repo = task_repo or TaskRepository()
        self.reconciler = reconciler or ReconciliationService(self.entry_repo, self.preferences)
        self.last_report: Optional[ReconciliationReport] = None

    async def load_entries(self, user_id: int, reconcile: bool = True) -> List[TimeEntry]:
        """
        Load the entries of a user and self-heal their durations.

        Returns:
            Entries in listing order, with corrected durations substituted
        """
        entries = await self.entry_repo.list_for_user(user_id)
        if not reconcile:
            return entries

        self.last_report = await self.reconciler.reconcile(entries)
        corrected = {e.id: e for e in self.last_report.corrected}
        return [corrected.get(e.id, e) for e in entries]

    async def add_manual_entry(self, user_id: int, client_id: Optional[int],
                               project_id: Optional[int], task_id: Optional[int],
                               start_time: datetime.datetime, end_time: datetime.datetime,
                               description: str = "") -> TimeEntry:
        """
        Record time that was not tracked with the stopwatch.

        Raises:
            ValidationError: missing client/project/task, mismatched selection
                or end not after start; nothing is written
        """
        if client_id is None or project_id is None or task_id is None:
            raise ValidationError("Please fill in client, project and task")
        CalendarService.validate_range(start_time, end_time)
        await self._check_selection(client_id, project_id, task_id)

        bucket = CalendarService.normalize(start_time, end_time)
        entry = await self.entry_repo.create(NewTimeEntry(
            user_id=user_id,
            project_id=project_id,
            task_id=task_id,
            description=description or self.preferences.default_manual_description,
            start_time=start_time,
            end_time=end_time,
            duration=precise_duration_minutes(start_time, end_time),
            date=bucket.date,
        ))
        logger.info(f"Manual entry {entry.id} added on {entry.date} ({entry.duration:.2f} min)")
        return entry

    async def edit_entry(self, entry_id: int,
                         start_time: Optional[datetime.datetime] = None,
                         end_time: Optional[datetime.datetime] = None,
                         description: Optional[str] = None) -> TimeEntry:
        """
        Change start, end and/or description of an entry.

        Raises:
            NotFoundError: the entry was deleted meanwhile
            ValidationError: the resulting range is empty or inverted
        """
        current = await self.entry_repo.get_by_id(entry_id)
        if current is None:
            logger.warning(f"Edit of vanished entry {entry_id}")
            raise NotFoundError("TimeEntry", entry_id)

        changes = {}
        if description is not None:
            changes["description"] = description

        if start_time is not None or end_time is not None:
            new_start = start_time or current.start_time
            new_end = end_time or current.end_time
            CalendarService.validate_range(new_start, new_end)
            changes.update(
                start_time=new_start,
                end_time=new_end,
                duration=precise_duration_minutes(new_start, new_end),
                date=CalendarService.normalize(new_start, new_end).date,
            )

        if not changes:
            return current
        return await self.entry_repo.update(entry_id, TimeEntryUpdate(**changes))

    async def delete_entry(self, entry_id: int) -> None:
        try:
            await self.entry_repo.delete(entry_id)
        except NotFoundError:
            logger.warning(f"Delete of vanished entry {entry_id}")
            raise
        logger.info(f"Deleted entry {entry_id}")

    async def _check_selection(self, client_id: int, project_id: int, task_id: int):
        project = await self.project_repo.get_by_id(project_id)
        if project is None or project.client_id != client_id:
            raise ValidationError(f"Project {project_id} does not belong to client {client_id}")
        task = await self.task_repo.get_by_id(task_id)
        if task is None or task.project_id != project_id:
            raise ValidationError(f"Task {task_id} does not belong to project {project_id}")
