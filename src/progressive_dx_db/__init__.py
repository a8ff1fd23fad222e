"""progressive_dx_db — PostgreSQL persistence layer for prediction sessions.

This package provides the ORM model, async engine factory, repository and
the ``SqlSessionStore`` that plugs into ``progressive_dx.SessionManager``.
It is consumed by the FastAPI server and the expiry CLI.
"""

from progressive_dx_db.engine import dispose_engine, get_engine, get_session_factory
from progressive_dx_db.models.session import PredictionSession
from progressive_dx_db.repository import SessionRepository
from progressive_dx_db.store import SqlSessionStore

__all__ = [
    "PredictionSession",
    "SessionRepository",
    "SqlSessionStore",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
]
