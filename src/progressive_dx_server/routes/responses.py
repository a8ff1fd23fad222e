"""Response submission and report endpoints.

POST a batch of pre-parsed symptom responses to advance the session; the
reply is a question step, a transition step (interim candidates attached)
or, once FINAL is reached, a completion step carrying the report.
"""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from progressive_dx.manager import SessionManager
from progressive_dx.models.evidence import SymptomResponse
from progressive_dx.models.session import FinalReport, StepResult

from progressive_dx_server.dependencies import get_manager, get_owned_session_id

router = APIRouter(tags=["responses"])


# ------------------------------------------------------------------
# Request models
# ------------------------------------------------------------------

class SubmitResponsesRequest(BaseModel):
    """Body for POST /sessions/{session_id}/responses."""
    responses: list[SymptomResponse] = Field(min_length=1)


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("/sessions/{session_id}/responses")
async def submit_responses(
    body: SubmitResponsesRequest,
    session_id: str = Depends(get_owned_session_id),
    manager: SessionManager = Depends(get_manager),
) -> StepResult:
    """Record responses and advance the session.

    All-or-nothing: on 422 (unknown symptom code, unknown or repeated
    question) the session is left exactly as it was.  A finished session
    answers 409, an expired one 410.
    """
    return await manager.submit_responses(session_id, body.responses)


@router.get("/sessions/{session_id}/report")
async def get_report(
    session_id: str = Depends(get_owned_session_id),
    manager: SessionManager = Depends(get_manager),
) -> FinalReport:
    """Structured final report.  404 until the session reaches FINAL."""
    session = await manager.get_session(session_id)
    if session.report is None:
        raise HTTPException(status_code=404, detail="Report not available yet")
    return session.report


@router.get("/sessions/{session_id}/report.txt", response_class=PlainTextResponse)
async def get_report_text(
    session_id: str = Depends(get_owned_session_id),
    manager: SessionManager = Depends(get_manager),
) -> str:
    """Human-readable rendering of the final report."""
    text = await manager.render_report(session_id)
    if text is None:
        raise HTTPException(status_code=404, detail="Report not available yet")
    return text
