"""Server configuration — reads settings from environment variables.

All settings have sensible defaults for local development.  In production
the values are typically overridden via env vars or a ``.env`` file.
"""

import os
from dataclasses import dataclass, field
from typing import Literal

# Read at import time so FastAPI Query() defaults can reference them
DEFAULT_PAGE_LIMIT = int(os.getenv("DEFAULT_PAGE_LIMIT", "20"))
MAX_PAGE_LIMIT = int(os.getenv("MAX_PAGE_LIMIT", "100"))

StoreBackend = Literal["memory", "postgres"]


@dataclass(frozen=True)
class ServerSettings:
    """Immutable server configuration read from environment at startup."""

    # Network
    host: str = "0.0.0.0"
    port: int = 8080

    # CORS: comma-separated origins, or "*" for wide-open dev mode
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    # Knowledge-base directory (None → v1/ from the repo root)
    kb_dir: str | None = None

    # Logging
    log_level: str = "INFO"

    # Where sessions live: in-process dict or PostgreSQL
    session_store: StoreBackend = "memory"

    # Inactivity timeout in minutes (None → SESSION_TTL_MINUTES, 0 disables)
    session_ttl_minutes: int | None = None

    # Admin API key for the expiry endpoint (None = disabled)
    admin_api_key: str | None = None

    # When set, requests carrying X-User-ID must also carry a matching
    # X-Proxy-Secret injected by the API gateway.
    trusted_proxy_secret: str | None = None


def load_settings() -> ServerSettings:
    """Build settings from ``SERVER_*`` environment variables."""
    raw_origins = os.getenv("SERVER_CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw_origins.split(",") if o.strip()]

    backend = os.getenv("SERVER_SESSION_STORE", "memory").lower()
    if backend not in ("memory", "postgres"):
        raise ValueError(f"SERVER_SESSION_STORE must be 'memory' or 'postgres', got {backend!r}")

    ttl = os.getenv("SESSION_TTL_MINUTES")

    return ServerSettings(
        host=os.getenv("SERVER_HOST", "0.0.0.0"),
        port=int(os.getenv("SERVER_PORT", "8080")),
        cors_origins=origins,
        kb_dir=os.getenv("SERVER_KB_DIR") or None,
        log_level=os.getenv("SERVER_LOG_LEVEL", "INFO").upper(),
        session_store=backend,
        session_ttl_minutes=int(ttl) if ttl else None,
        admin_api_key=os.getenv("ADMIN_API_KEY") or None,
        trusted_proxy_secret=os.getenv("TRUSTED_PROXY_SECRET") or None,
    )
