"""Admin endpoints — bulk expiry of idle sessions.

Protected by the ``ADMIN_API_KEY`` environment variable.  Every request
must include an ``X-Admin-Key`` header whose value matches the configured
key.  Returns 401 if missing, 403 if wrong.
"""

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from pydantic import BaseModel

from progressive_dx.manager import SessionManager

from progressive_dx_server.dependencies import get_manager

router = APIRouter(prefix="/admin", tags=["admin"])


# ------------------------------------------------------------------
# Auth dependency
# ------------------------------------------------------------------

async def require_admin_key(
    request: Request,
    x_admin_key: str | None = Header(None, alias="X-Admin-Key"),
) -> str:
    """Validate the ``X-Admin-Key`` header against the configured key.

    Raises 403 if no key is configured or the key does not match, 401 if
    the header is missing.
    """
    expected: str | None = request.app.state.settings.admin_api_key
    if not expected:
        raise HTTPException(
            status_code=403,
            detail="Admin endpoints are disabled (ADMIN_API_KEY not configured)",
        )
    if not x_admin_key:
        raise HTTPException(status_code=401, detail="X-Admin-Key header is required")
    if not hmac.compare_digest(x_admin_key, expected):
        raise HTTPException(status_code=403, detail="Invalid admin key")
    return x_admin_key


# ------------------------------------------------------------------
# Response models
# ------------------------------------------------------------------

class ExpiryResult(BaseModel):
    """Response body for the expiry sweep."""
    expired_sessions: int


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/expire-sessions")
async def expire_sessions(
    manager: SessionManager = Depends(get_manager),
    _admin: str = Depends(require_admin_key),
) -> ExpiryResult:
    """Abandon every active session idle beyond the inactivity timeout."""
    return ExpiryResult(expired_sessions=await manager.expire_idle_sessions())
