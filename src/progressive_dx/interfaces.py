"""Abstract interfaces for the engine's external collaborators.

The engine persists sessions through a ``SessionStore``: a key-value store
of serialized session state (``Session.model_dump(mode="json")``) keyed by
session id, last write wins.  The SDK ships an in-memory implementation
(:class:`progressive_dx.store.InMemorySessionStore`); the PostgreSQL one
lives in ``progressive_dx_db``.

Typical integration flow::

    kb = KnowledgeBase()
    kb.load()

    store: SessionStore = InMemorySessionStore()   # or SqlSessionStore(factory)
    manager = SessionManager(kb, store)

    start = await manager.start_session(PatientContext(age=58, sex="male"))
    step = await manager.submit_responses(start.session_id, [response])
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class SessionStore(ABC):
    """Key-value persistence of serialized session state."""

    @abstractmethod
    async def get(self, session_id: str) -> Optional[dict[str, Any]]:
        """Return the stored state for *session_id*, or None if absent."""
        ...

    @abstractmethod
    async def put(self, session_id: str, state: dict[str, Any]) -> None:
        """Create or overwrite the state stored under *session_id*."""
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        """Remove *session_id*.  Returns False if it did not exist."""
        ...

    @abstractmethod
    async def list_states(
        self,
        *,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        """List stored states, most recently created first.

        Parameters
        ----------
        user_id:
            Only sessions owned by this user.
        status:
            Only sessions in this status (``active``, ``completed``,
            ``abandoned``).
        limit, offset:
            Pagination; ``limit=None`` returns everything.
        """
        ...
