"""
Pytest configuration and fixtures.
"""

import datetime
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio
from PySide6.QtCore import QCoreApplication
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Add project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from timekeeping.domain.models import Client, Project, Task, UserProfile
from timekeeping.infra.db import Base
from timekeeping.infra.repository import (
    ClientRepository, ProfileRepository, ProjectRepository, TaskRepository, TimeEntryRepository,
)
from timekeeping.infra.session_cache import LocalSessionCache


class FakeClock:
    """Deterministic replacement for datetime.now"""

    def __init__(self, start: datetime.datetime):
        self.now = start

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float) -> datetime.datetime:
        self.now += datetime.timedelta(seconds=seconds)
        return self.now


@pytest.fixture(scope="session")
def qapp():
    """QTimer needs a Qt application object in the process"""
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


@pytest.fixture
def clock():
    return FakeClock(datetime.datetime(2024, 1, 10, 9, 0, 0))


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """
    Create a file-backed SQLite database for testing.

    A file instead of :memory: so that concurrent sessions (reconciliation)
    see the same database.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    """Session factory injected into the repositories"""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def entry_repo(session_factory):
    return TimeEntryRepository(session_factory)


@pytest.fixture
def project_repo(session_factory):
    return ProjectRepository(session_factory)


@pytest.fixture
def task_repo(session_factory):
    return TaskRepository(session_factory)


@pytest_asyncio.fixture
async def seeded(session_factory):
    """One user with one client, two projects and a task"""
    user = await ProfileRepository(session_factory).create(UserProfile(full_name="Dana Doe", hourly_rate=80))
    client = await ClientRepository(session_factory).create(Client(company="Acme"))
    projects = ProjectRepository(session_factory)
    website = await projects.create(Project(client_id=client.id, name="Website"))
    other = await projects.create(Project(client_id=client.id, name="Mobile App"))
    task = await TaskRepository(session_factory).create(Task(project_id=website.id, title="Landing page"))
    return SimpleNamespace(user=user, client=client, project=website, other_project=other, task=task)


@pytest.fixture
def cache(tmp_path):
    return LocalSessionCache(tmp_path / "timer_session.json")
