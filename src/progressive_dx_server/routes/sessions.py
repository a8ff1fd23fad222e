"""Session management endpoints — start, inspect, list and delete sessions.

All endpoints require the ``X-User-ID`` header for user identification.
A session is only visible to the user who started it; anyone else gets
404, exactly as if the session did not exist.
"""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from progressive_dx.manager import SessionManager
from progressive_dx.models.evidence import FamilyDiseaseRecord, PatientContext
from progressive_dx.models.session import SessionInfo, SessionSnapshot, SessionStart

from progressive_dx_server.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from progressive_dx_server.dependencies import (
    get_manager,
    get_owned_session_id,
    get_user_id,
)

router = APIRouter(tags=["sessions"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class CreateSessionRequest(BaseModel):
    """Body for POST /sessions.

    Context fields left out (or null) are treated as unknown; the matching
    risk dimension is then reported as unavailable.
    """
    session_id: str | None = None
    age: int | None = None
    sex: str | None = None
    family_history: list[FamilyDiseaseRecord] | None = None
    medical_history: list[str] | None = None

    def to_context(self) -> PatientContext:
        return PatientContext(
            age=self.age,
            sex=self.sex,
            family_history=self.family_history,
            medical_history=self.medical_history,
        )


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/sessions", status_code=201)
async def create_session(
    body: CreateSessionRequest,
    user_id: str = Depends(get_user_id),
    manager: SessionManager = Depends(get_manager),
) -> SessionStart:
    """Start a new analysis session and return the first screening question.

    Returns 201 on success, 422 if the requested session_id is taken,
    503 if the knowledge base cannot serve questions.
    """
    return await manager.start_session(
        body.to_context(),
        user_id=user_id,
        session_id=body.session_id,
    )


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str = Depends(get_owned_session_id),
    manager: SessionManager = Depends(get_manager),
) -> SessionSnapshot:
    """Current phase, candidates, urgency and history of a session."""
    return await manager.get_session_state(session_id)


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(
    session_id: str = Depends(get_owned_session_id),
    manager: SessionManager = Depends(get_manager),
) -> None:
    """Permanently delete a session.  Returns 204, or 404 if absent."""
    await manager.delete_session(session_id)


@router.get("/sessions")
async def list_sessions(
    user_id: str = Depends(get_user_id),
    manager: SessionManager = Depends(get_manager),
    limit: int = Query(DEFAULT_PAGE_LIMIT, ge=1, le=MAX_PAGE_LIMIT),
    offset: int = Query(0, ge=0),
) -> list[SessionInfo]:
    """List the caller's analysis history, most recent first."""
    return await manager.list_sessions(user_id, limit=limit, offset=offset)
