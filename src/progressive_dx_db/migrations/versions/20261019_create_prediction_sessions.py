"""Create the prediction_sessions table.

One row per analysis session: the serialized engine state in ``state``
(JSONB) plus the mirrored columns used by history listings and the expiry
sweep.

Revision ID: 20261019_prediction_sessions
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261019_prediction_sessions"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "prediction_sessions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("session_id", sa.Text(), nullable=False, unique=True),
        sa.Column("user_id", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("phase", sa.String(20), nullable=False),
        sa.Column("kb_version", sa.Text(), nullable=False),
        sa.Column("top_candidate", sa.Text(), nullable=True),
        sa.Column("urgency", sa.String(20), nullable=True),
        sa.Column(
            "state",
            JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("last_activity_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("completed_at", TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint(
            "phase IN ('screening', 'narrow_10', 'narrow_5', 'narrow_3', 'final')",
            name="ck_phase_valid",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'completed', 'abandoned')",
            name="ck_status_valid",
        ),
        sa.CheckConstraint(
            "status != 'completed' OR phase = 'final'",
            name="ck_completed_is_final",
        ),
    )

    op.create_index("ix_prediction_sessions_status", "prediction_sessions", ["status"])
    op.create_index("ix_user_created", "prediction_sessions", ["user_id", "created_at"])
    # Expiry sweep only ever looks at active sessions
    op.create_index(
        "ix_active_last_activity",
        "prediction_sessions",
        ["last_activity_at"],
        postgresql_where=sa.text("status = 'active'"),
    )


def downgrade() -> None:
    op.drop_index("ix_active_last_activity", table_name="prediction_sessions")
    op.drop_index("ix_user_created", table_name="prediction_sessions")
    op.drop_index("ix_prediction_sessions_status", table_name="prediction_sessions")
    op.drop_table("prediction_sessions")
