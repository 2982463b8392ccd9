"""Infrastructure layer - Database, session cache and configuration"""

from .db import DatabaseEngine, get_engine, init_db
from .models import ClientModel, ProfileModel, ProjectModel, TaskModel, TimeEntryModel
from .session_cache import LocalSessionCache

__all__ = [
    "DatabaseEngine", "get_engine", "init_db",
    "ClientModel", "ProfileModel", "ProjectModel", "TaskModel", "TimeEntryModel",
    "LocalSessionCache",
]
