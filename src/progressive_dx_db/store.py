"""SqlSessionStore — PostgreSQL-backed ``SessionStore``.

Each store call opens its own ``AsyncSession``, runs the repository
method(s) and commits, so every call is one transaction.  The session
manager already serialises calls per session id, which is all the
consistency the engine asks of its store (last write wins).
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from progressive_dx.interfaces import SessionStore
from progressive_dx.models.session import Session

from progressive_dx_db.repository import SessionRepository

logger = logging.getLogger(__name__)


class SqlSessionStore(SessionStore):
    """Session store on the ``prediction_sessions`` table.

    Args:
        session_factory: an ``async_sessionmaker`` (see
            :func:`progressive_dx_db.engine.get_session_factory`).
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._factory = session_factory
        self._repo = SessionRepository()

    async def get(self, session_id: str) -> Optional[dict[str, Any]]:
        async with self._factory() as db:
            row = await self._repo.get_by_session_id(db, session_id)
            return dict(row.state) if row is not None else None

    async def put(self, session_id: str, state: dict[str, Any]) -> None:
        # Parse once to pull out the mirrored columns with proper types
        session = Session.model_validate(state)
        top = session.candidates[0].code if session.candidates else None
        urgency = session.report.urgency.value if session.report else None

        async with self._factory() as db:
            try:
                row = await self._repo.get_by_session_id(db, session_id)
                if row is None:
                    await self._repo.create_session(
                        db,
                        session_id=session_id,
                        user_id=session.user_id,
                        kb_version=session.kb_version,
                        status=session.status.value,
                        phase=session.phase.value,
                        state=state,
                        created_at=session.created_at,
                        last_activity_at=session.last_activity_at,
                        completed_at=session.completed_at,
                        top_candidate=top,
                        urgency=urgency,
                    )
                else:
                    await self._repo.save_state(
                        db,
                        row,
                        status=session.status.value,
                        phase=session.phase.value,
                        state=state,
                        last_activity_at=session.last_activity_at,
                        completed_at=session.completed_at,
                        top_candidate=top,
                        urgency=urgency,
                    )
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    async def delete(self, session_id: str) -> bool:
        async with self._factory() as db:
            deleted = await self._repo.delete_session(db, session_id)
            await db.commit()
        return deleted

    async def list_states(
        self,
        *,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[dict[str, Any]]:
        async with self._factory() as db:
            rows = await self._repo.list_sessions(
                db, user_id=user_id, status=status, limit=limit, offset=offset,
            )
            return [dict(r.state) for r in rows]
