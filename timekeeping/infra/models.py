"""
SQLAlchemy ORM models.
Separated from db.py for cleaner imports.
"""

from .db import Base, ClientModel, ProfileModel, ProjectModel, TaskModel, TimeEntryModel

__all__ = ["Base", "ClientModel", "ProfileModel", "ProjectModel", "TaskModel", "TimeEntryModel"]
