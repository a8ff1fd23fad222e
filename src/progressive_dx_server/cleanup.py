"""Session expiry CLI — ``dx-expire``.

Connects to the database and abandons every active session that has been
idle for longer than the inactivity timeout.  Intended for cron jobs; the
server also expires sessions lazily when they are touched, so running this
is only needed to keep the table's status column accurate.

Examples::

    # Expire sessions idle longer than $SESSION_TTL_MINUTES (default 30)
    uv run dx-expire

    # Use a custom timeout
    uv run dx-expire --ttl-minutes 120
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys

logger = logging.getLogger(__name__)


async def run_expiry(
    *,
    ttl_minutes: int | None = None,
    kb_dir: str | None = None,
) -> int:
    """Run one expiry sweep and return the number of abandoned sessions.

    Builds its own ``SessionManager`` on the PostgreSQL store and disposes
    the connection pool afterwards.  Safe to call from a CLI entry point or
    a scheduled task.
    """
    # Lazy imports to avoid loading DB machinery at module import time
    from progressive_dx.knowledge import KnowledgeBase
    from progressive_dx.manager import SessionManager
    from progressive_dx_db.engine import dispose_engine, get_session_factory
    from progressive_dx_db.store import SqlSessionStore

    kb = KnowledgeBase(kb_dir=kb_dir)
    kb.load()
    manager = SessionManager(
        kb, SqlSessionStore(get_session_factory()), ttl_minutes=ttl_minutes,
    )

    try:
        expired = await manager.expire_idle_sessions()
        logger.info("Expiry sweep complete: expired=%d", expired)
        return expired
    finally:
        await dispose_engine()


def cli() -> None:
    """Console-script entry point: ``dx-expire``."""
    parser = argparse.ArgumentParser(
        prog="dx-expire",
        description="Abandon idle prediction sessions in the database.",
    )
    parser.add_argument(
        "--ttl-minutes",
        type=int,
        default=None,
        help="Inactivity timeout in minutes (default: $SESSION_TTL_MINUTES, or 30)",
    )
    parser.add_argument(
        "--kb-dir",
        default=os.getenv("SERVER_KB_DIR") or None,
        help="Knowledge-base directory (default: $SERVER_KB_DIR, or v1/)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    expired = asyncio.run(run_expiry(ttl_minutes=args.ttl_minutes, kb_dir=args.kb_dir))

    print(f"Expired sessions: {expired}")
    sys.exit(0)
