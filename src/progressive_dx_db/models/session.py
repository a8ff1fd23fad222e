"""PredictionSession ORM model — one row per analysis session.

The full serialized engine state lives in the ``state`` JSONB column, so a
session is loaded and saved as a single row.  A handful of fields are
mirrored into dedicated columns because history listings and the expiry
sweep filter on them.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from progressive_dx.models.enums import Phase, SessionStatus

from progressive_dx_db.models.base import Base

_PHASE_VALUES = ", ".join(f"'{p.value}'" for p in Phase)


class PredictionSession(Base):
    """One row per prediction session, keyed by the engine's session id."""

    __tablename__ = "prediction_sessions"

    # --- Primary key ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Identity ---
    session_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    # External user id from X-User-ID; null for anonymous sessions
    user_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Lifecycle (mirrored from state) ---
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SessionStatus.ACTIVE.value,
        index=True,
    )
    phase: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=Phase.SCREENING.value,
    )
    kb_version: Mapped[str] = mapped_column(Text, nullable=False)
    top_candidate: Mapped[str | None] = mapped_column(Text, nullable=True)
    urgency: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # --- Engine state ---
    # Session.model_dump(mode="json")
    state: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        server_default=text("'{}'::jsonb"),
    )

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    last_activity_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    __table_args__ = (
        CheckConstraint(f"phase IN ({_PHASE_VALUES})", name="ck_phase_valid"),
        CheckConstraint(
            "status IN ('active', 'completed', 'abandoned')",
            name="ck_status_valid",
        ),
        # Completed sessions always reached FINAL
        CheckConstraint(
            "status != 'completed' OR phase = 'final'",
            name="ck_completed_is_final",
        ),
        # History listings: WHERE user_id = ? ORDER BY created_at DESC
        Index("ix_user_created", "user_id", "created_at"),
        # Expiry sweep over active sessions only
        Index(
            "ix_active_last_activity",
            "last_activity_at",
            postgresql_where=text("status = 'active'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<PredictionSession(id={self.id!s}, session={self.session_id!r}, "
            f"user={self.user_id!r}, status={self.status!r}, phase={self.phase!r})>"
        )
