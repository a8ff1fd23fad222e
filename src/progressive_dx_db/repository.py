"""Async CRUD repository for PredictionSession.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries.  Methods ``flush()`` but never ``commit()``.

The repository does no engine-level validation; it only mirrors the
listed columns from the state it is handed.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from progressive_dx_db.models.session import PredictionSession


class SessionRepository:
    """Async read/write operations on the ``prediction_sessions`` table."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_session(
        self,
        db: AsyncSession,
        *,
        session_id: str,
        user_id: str | None,
        kb_version: str,
        status: str,
        phase: str,
        state: dict[str, Any],
        created_at: datetime,
        last_activity_at: datetime,
        completed_at: datetime | None = None,
        top_candidate: str | None = None,
        urgency: str | None = None,
    ) -> PredictionSession:
        """Insert a new session row and return it.

        The caller must ``await db.commit()`` to persist.
        """
        row = PredictionSession(
            session_id=session_id,
            user_id=user_id,
            kb_version=kb_version,
            status=status,
            phase=phase,
            state=state,
            created_at=created_at,
            last_activity_at=last_activity_at,
            completed_at=completed_at,
            top_candidate=top_candidate,
            urgency=urgency,
        )
        db.add(row)
        await db.flush()
        return row

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_session_id(
        self, db: AsyncSession, session_id: str
    ) -> PredictionSession | None:
        """Fetch a session by its engine session id."""
        stmt = select(PredictionSession).where(PredictionSession.session_id == session_id)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_sessions(
        self,
        db: AsyncSession,
        *,
        user_id: str | None = None,
        status: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[PredictionSession]:
        """List sessions, most recent first, optionally filtered."""
        stmt = select(PredictionSession)
        if user_id is not None:
            stmt = stmt.where(PredictionSession.user_id == user_id)
        if status is not None:
            stmt = stmt.where(PredictionSession.status == status)
        stmt = stmt.order_by(PredictionSession.created_at.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def save_state(
        self,
        db: AsyncSession,
        row: PredictionSession,
        *,
        status: str,
        phase: str,
        state: dict[str, Any],
        last_activity_at: datetime,
        completed_at: datetime | None = None,
        top_candidate: str | None = None,
        urgency: str | None = None,
    ) -> PredictionSession:
        """Overwrite the stored state and its mirrored columns."""
        row.status = status
        row.phase = phase
        # New dict so SQLAlchemy detects the JSONB change
        row.state = dict(state)
        row.last_activity_at = last_activity_at
        row.completed_at = completed_at
        row.top_candidate = top_candidate
        row.urgency = urgency
        row.updated_at = datetime.now(timezone.utc)
        await db.flush()
        return row

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    async def delete_session(self, db: AsyncSession, session_id: str) -> bool:
        """Hard-delete a session row.  Returns False if no row matched."""
        stmt = delete(PredictionSession).where(PredictionSession.session_id == session_id)
        result = await db.execute(stmt)
        await db.flush()
        return result.rowcount > 0
