"""Database layer for Reviewflow.

This module handles database connections, session management, and provides
the SQLAlchemy async engine configuration.

Public API:
    get_engine: Create an AsyncEngine from DatabaseConfig.
    get_session_factory: Create an async_sessionmaker from an engine.
    create_schema: Create all tables (local/test databases).
    Base: SQLAlchemy declarative base for all models.
"""

from reviewflow.database.connection import create_schema, get_engine, get_session_factory
from reviewflow.database.models import (
    Base,
    MergeRequest,
    MergeRequestState,
    MRAction,
    MRActionType,
    MRComment,
    Repository,
    TimestampMixin,
    User,
)

__all__ = [
    "get_engine",
    "get_session_factory",
    "create_schema",
    "Base",
    "TimestampMixin",
    "Repository",
    "User",
    "MergeRequest",
    "MergeRequestState",
    "MRComment",
    "MRAction",
    "MRActionType",
]
