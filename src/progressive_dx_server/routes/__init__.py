"""Route registration — mounts all routers under ``/api/v1``."""

from fastapi import FastAPI

from progressive_dx_server.routes.admin import router as admin_router
from progressive_dx_server.routes.reference import router as reference_router
from progressive_dx_server.routes.responses import router as responses_router
from progressive_dx_server.routes.sessions import router as sessions_router

API_PREFIX = "/api/v1"


def register_routes(app: FastAPI) -> None:
    """Include all sub-routers under the versioned API prefix."""
    app.include_router(sessions_router, prefix=API_PREFIX)
    app.include_router(responses_router, prefix=API_PREFIX)
    app.include_router(reference_router, prefix=API_PREFIX)
    app.include_router(admin_router, prefix=API_PREFIX)
