"""
Repository Pattern Implementation.

Architecture Decision: Why Repository Pattern?
Separates data access logic from business logic. Makes it easy to:
- Switch database implementations
- Mock the record store for testing
- Change data sources (local DB to cloud API)

Every method opens its own session from the factory, so independent writes
(the reconciliation pass) can run concurrently. Driver errors on writes are
translated to WriteError; a missing row on update/delete is NotFoundError.
"""

from datetime import datetime, timedelta
from typing import List, Optional
import logging

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from timekeeping.domain.errors import NotFoundError, WriteError
from timekeeping.domain.models import (
    Client, NewTimeEntry, Project, Task, TimeEntry, TimeEntryUpdate, UserProfile,
)
from timekeeping.infra.db import (
    ClientModel, ProfileModel, ProjectModel, TaskModel, TimeEntryModel, get_engine,
)

logger = logging.getLogger(__name__)


class _BaseRepository:
    """Session handling shared by all repositories"""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.session_factory = session_factory

    def _get_session(self) -> AsyncSession:
        """Get session - either from the injected factory or the global engine"""
        if self.session_factory is not None:
            return self.session_factory()
        return get_engine().get_session()


class ProfileRepository(_BaseRepository):
    """
    Handles user profiles. Authentication is external; the core only needs
    the id to scope time entries.
    """

    async def get_by_id(self, user_id: int) -> Optional[UserProfile]:
        async with self._get_session() as session:
            model = await session.get(ProfileModel, user_id)
            return UserProfile.model_validate(model) if model else None

    async def get_all(self) -> List[UserProfile]:
        async with self._get_session() as session:
            result = await session.execute(select(ProfileModel).order_by(ProfileModel.id))
            return [UserProfile.model_validate(m) for m in result.scalars().all()]

    async def create(self, profile: UserProfile) -> UserProfile:
        async with self._get_session() as session:
            model = ProfileModel(
                full_name=profile.full_name,
                hourly_rate=profile.hourly_rate,
                created_at=profile.created_at
            )
            session.add(model)
            try:
                await session.commit()
            except SQLAlchemyError as e:
                raise WriteError(f"Could not create profile: {e}") from e
            await session.refresh(model)
            return UserProfile.model_validate(model)


class ClientRepository(_BaseRepository):
    """Handles Client lookups"""

    async def get_by_id(self, client_id: int) -> Optional[Client]:
        async with self._get_session() as session:
            model = await session.get(ClientModel, client_id)
            return Client.model_validate(model) if model else None

    async def create(self, client: Client) -> Client:
        async with self._get_session() as session:
            model = ClientModel(company=client.company, created_at=client.created_at)
            session.add(model)
            try:
                await session.commit()
            except SQLAlchemyError as e:
                raise WriteError(f"Could not create client: {e}") from e
            await session.refresh(model)
            return Client.model_validate(model)


class ProjectRepository(_BaseRepository):
    """Handles Project lookups"""

    async def get_by_id(self, project_id: int) -> Optional[Project]:
        async with self._get_session() as session:
            model = await session.get(ProjectModel, project_id)
            return Project.model_validate(model) if model else None

    async def create(self, project: Project) -> Project:
        async with self._get_session() as session:
            model = ProjectModel(
                client_id=project.client_id,
                name=project.name,
                created_at=project.created_at
            )
            session.add(model)
            try:
                await session.commit()
            except SQLAlchemyError as e:
                raise WriteError(f"Could not create project: {e}") from e
            await session.refresh(model)
            return Project.model_validate(model)


class TaskRepository(_BaseRepository):
    """Handles Task lookups"""

    async def get_by_id(self, task_id: int) -> Optional[Task]:
        async with self._get_session() as session:
            model = await session.get(TaskModel, task_id)
            return Task.model_validate(model) if model else None

    async def create(self, task: Task) -> Task:
        async with self._get_session() as session:
            model = TaskModel(
                project_id=task.project_id,
                title=task.title,
                created_at=task.created_at
            )
            session.add(model)
            try:
                await session.commit()
            except SQLAlchemyError as e:
                raise WriteError(f"Could not create task: {e}") from e
            await session.refresh(model)
            return Task.model_validate(model)


class TimeEntryRepository(_BaseRepository):
    """
    Handles all TimeEntry-related database operations.

    Converts between domain models (Pydantic) and ORM models (SQLAlchemy).
    """

    async def create(self, entry: NewTimeEntry) -> TimeEntry:
        """Insert a new time entry"""
        async with self._get_session() as session:
            model = TimeEntryModel(**entry.model_dump())
            session.add(model)
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise WriteError(f"Could not create time entry: {e}") from e
            await session.refresh(model)
            return TimeEntry.model_validate(model)

    async def update(self, entry_id: int, changes: TimeEntryUpdate) -> TimeEntry:
        """
        Apply a partial update.

        Raises:
            NotFoundError: the entry no longer exists
            WriteError: the write failed
        """
        fields = changes.model_dump(exclude_unset=True)
        async with self._get_session() as session:
            try:
                model = await session.get(TimeEntryModel, entry_id)
                if model is None:
                    raise NotFoundError("TimeEntry", entry_id)

                for name, value in fields.items():
                    setattr(model, name, value)
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise WriteError(f"Could not update time entry {entry_id}: {e}") from e
            return TimeEntry.model_validate(model)

    async def get_by_id(self, entry_id: int) -> Optional[TimeEntry]:
        async with self._get_session() as session:
            model = await session.get(TimeEntryModel, entry_id)
            return TimeEntry.model_validate(model) if model else None

    async def find_by_start_time(self, start_time: datetime, user_id: int,
                                 tolerance_seconds: float = 0.0) -> Optional[TimeEntry]:
        """
        Find the entry of a user that started at start_time.

        Stored timestamps may come back with a different precision than the
        in-memory value, so a small window is allowed. The closest match wins.
        """
        window = timedelta(seconds=tolerance_seconds)
        async with self._get_session() as session:
            result = await session.execute(
                select(TimeEntryModel).where(
                    TimeEntryModel.user_id == user_id,
                    TimeEntryModel.start_time >= start_time - window,
                    TimeEntryModel.start_time <= start_time + window,
                )
            )
            candidates = result.scalars().all()
            if not candidates:
                return None
            best = min(candidates, key=lambda m: abs((m.start_time - start_time).total_seconds()))
            return TimeEntry.model_validate(best)

    async def find_by_session_token(self, token: str, user_id: int) -> Optional[TimeEntry]:
        async with self._get_session() as session:
            result = await session.execute(
                select(TimeEntryModel)
                .where(TimeEntryModel.user_id == user_id, TimeEntryModel.session_token == token)
                .limit(1)
            )
            model = result.scalar_one_or_none()
            return TimeEntry.model_validate(model) if model else None

    async def list_for_user(self, user_id: int) -> List[TimeEntry]:
        """All entries of a user, newest day first, newest start first within a day"""
        async with self._get_session() as session:
            result = await session.execute(
                select(TimeEntryModel)
                .where(TimeEntryModel.user_id == user_id)
                .order_by(TimeEntryModel.date.desc(), TimeEntryModel.start_time.desc())
            )
            return [TimeEntry.model_validate(m) for m in result.scalars().all()]

    async def delete(self, entry_id: int) -> None:
        """Delete a time entry by ID"""
        async with self._get_session() as session:
            try:
                result = await session.execute(
                    delete(TimeEntryModel).where(TimeEntryModel.id == entry_id)
                )
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise WriteError(f"Could not delete time entry {entry_id}: {e}") from e

            if result.rowcount == 0:
                raise NotFoundError("TimeEntry", entry_id)
