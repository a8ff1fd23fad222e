"""FastAPI application for the progressive disorder prediction engine.

The knowledge base is loaded and the ``SessionManager`` built once, in the
lifespan handler; the session store backend (in-process dict or PostgreSQL)
comes from ``SERVER_SESSION_STORE``.  Engine errors are turned into HTTP
status codes by the handlers in :mod:`progressive_dx_server.errors`, versioned
routes live under ``/api/v1`` and ``/health`` serves readiness probes.

``cli()`` backs the ``dx-server`` console script.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from progressive_dx.interfaces import SessionStore
from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.manager import SessionManager
from progressive_dx.store import InMemorySessionStore

from progressive_dx_server.config import ServerSettings, load_settings
from progressive_dx_server.errors import register_error_handlers
from progressive_dx_server.routes import register_routes

logger = logging.getLogger(__name__)


def _build_store(settings: ServerSettings) -> SessionStore:
    if settings.session_store == "postgres":
        # Lazy imports so the memory backend never loads DB machinery
        from progressive_dx_db.engine import get_session_factory
        from progressive_dx_db.store import SqlSessionStore

        return SqlSessionStore(get_session_factory())
    return InMemorySessionStore()


# ------------------------------------------------------------------
# Lifespan: runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Initialise shared resources at startup, tear down on shutdown.

    Startup:
      1. Load the YAML knowledge base
      2. Pick the session store (memory or postgres)
      3. Build ``SessionManager`` and stash it on ``app.state``

    Shutdown:
      1. Dispose the database engine's connection pool (postgres only)
    """
    settings: ServerSettings = app.state.settings

    # --- Load knowledge base ---
    kb = KnowledgeBase(kb_dir=settings.kb_dir)
    kb.load()
    logger.info("KnowledgeBase %s loaded successfully", kb.version)

    # --- Build manager ---
    store = _build_store(settings)
    manager = SessionManager(kb, store, ttl_minutes=settings.session_ttl_minutes)
    logger.info("Session store backend: %s", settings.session_store)

    app.state.knowledge_base = kb
    app.state.manager = manager

    yield

    # --- Shutdown ---
    if settings.session_store == "postgres":
        from progressive_dx_db.engine import dispose_engine

        await dispose_engine()
        logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="Progressive Dx API Server",
        description="REST API for the adaptive progressive disorder prediction engine",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    register_error_handlers(app)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — knowledge base loaded and, for postgres, DB reachable."""
        kb: KnowledgeBase | None = getattr(app.state, "knowledge_base", None)
        if kb is None or not kb.loaded:
            return {"status": "error", "detail": "knowledge base not loaded"}
        if settings.session_store == "postgres":
            from progressive_dx_db.engine import ping

            if not await ping():
                return {"status": "error", "detail": "database unreachable"}
        return {"status": "ok", "kb_version": kb.version}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn progressive_dx_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``dx-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "progressive_dx_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
