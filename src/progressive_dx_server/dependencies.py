"""FastAPI dependency injection — provides the manager, KB and user identity.

The manager and knowledge base are built once in the lifespan handler and
stashed on ``app.state``.  Persistence is owned by the manager's
``SessionStore``, so routes never open database sessions themselves.
"""

import hmac

from fastapi import Depends, Header, HTTPException, Request

from progressive_dx.errors import SessionNotFound
from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.manager import SessionManager


# ------------------------------------------------------------------
# Manager & knowledge base: stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_manager(request: Request) -> SessionManager:
    """Return the SessionManager singleton from ``app.state``."""
    return request.app.state.manager


def get_knowledge_base(request: Request) -> KnowledgeBase:
    """Return the KnowledgeBase singleton from ``app.state``."""
    return request.app.state.knowledge_base


# ------------------------------------------------------------------
# User identity: extracted from the X-User-ID header
# ------------------------------------------------------------------

async def get_user_id(
    request: Request,
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_proxy_secret: str | None = Header(None, alias="X-Proxy-Secret"),
) -> str:
    """Extract user identity from the ``X-User-ID`` header.

    Returns 401 if the header is missing.  When ``TRUSTED_PROXY_SECRET``
    is configured, the request must also carry a matching
    ``X-Proxy-Secret`` header.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-ID header is required")

    expected_secret: str | None = request.app.state.settings.trusted_proxy_secret
    if expected_secret:
        if not x_proxy_secret:
            raise HTTPException(status_code=403, detail="X-Proxy-Secret header is required")
        if not hmac.compare_digest(x_proxy_secret, expected_secret):
            raise HTTPException(status_code=403, detail="Invalid proxy secret")

    return x_user_id


async def get_owned_session_id(
    session_id: str,
    user_id: str = Depends(get_user_id),
    manager: SessionManager = Depends(get_manager),
) -> str:
    """Resolve ``session_id`` only if it belongs to the caller.

    A session owned by someone else is reported as not found.
    """
    session = await manager.get_session(session_id)
    if session.user_id != user_id:
        raise SessionNotFound(session_id)
    return session_id
