"""Session, report and step models — the contract between the engine and callers.

The ``Session`` model is the whole serialisable state of one analysis run.
It is what the session store persists (``model_dump(mode="json")``) and
what the phase machine mutates.  Callers never receive it directly; they
get the step models and snapshots below.

Step types:
  - QuestionStep: ask the next question
  - TransitionStep: one or more phase transitions happened; carries the
    interim candidates and the next question
  - CompletionStep: FINAL reached; carries the report

The ``StepResult`` union covers all cases so callers can dispatch on ``type``.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

from .enums import Phase, SessionStatus, Urgency
from .evidence import (
    CandidateDisorder,
    PatientContext,
    RiskProfile,
    SymptomEvidence,
    SymptomResponse,
)


class ResponseRecord(BaseModel):
    """A response as recorded in the session, stamped with its phase."""

    qid: str
    phase: Phase
    response: SymptomResponse
    answered_at: datetime


class PhaseTransition(BaseModel):
    """One entry of the phase history."""

    from_phase: Phase
    to_phase: Phase
    # "gate": minimum questions + ceiling met; "exhausted": selector ran dry
    reason: Literal["gate", "exhausted"]
    candidate_codes: List[str]
    urgency: Urgency
    at: datetime


class ConfidenceSummary(BaseModel):
    highest: float
    average_top_10: float
    distribution: dict[str, int]


class AnalysisQuality(BaseModel):
    context_completeness: float
    thoroughness: float
    responses_count: int
    symptoms_count: int


class FinalReport(BaseModel):
    """Terminal report composed on entering FINAL."""

    session_id: str
    top_candidate: Optional[CandidateDisorder]
    confidence: float
    contributing_symptoms: List[str]
    contributing_risk_factors: List[str]
    urgency: Urgency
    recommended_action: str
    phase_history: List[PhaseTransition]
    ranked: dict[str, List[str]] = {}
    confidence_summary: ConfidenceSummary
    analysis_quality: AnalysisQuality
    recommendations: List[str] = []
    next_steps: List[str] = []
    warnings: List[str] = []
    disclaimer: str
    generated_at: datetime


class Session(BaseModel):
    """Complete state of one analysis session."""

    session_id: str
    user_id: Optional[str] = None
    kb_version: str
    context: PatientContext
    risk_profile: RiskProfile
    phase: Phase = Phase.SCREENING
    status: SessionStatus = SessionStatus.ACTIVE
    asked_questions: List[str] = []
    responses: List[ResponseRecord] = []
    evidence: List[SymptomEvidence] = []
    candidates: List[CandidateDisorder] = []
    # Disorder codes admitted at the last phase boundary; None = every disorder
    candidate_pool: Optional[List[str]] = None
    # Question presented to the caller and not answered yet
    pending_qid: Optional[str] = None
    phase_history: List[PhaseTransition] = []
    report: Optional[FinalReport] = None
    created_at: datetime
    last_activity_at: datetime
    completed_at: Optional[datetime] = None

    @property
    def terminal(self) -> bool:
        return self.status in (SessionStatus.COMPLETED, SessionStatus.ABANDONED)

    @property
    def answered_qids(self) -> set[str]:
        return {r.qid for r in self.responses}

    def questions_answered_in(self, phase: Phase) -> int:
        return sum(1 for r in self.responses if r.phase == phase)


# ---------------------------------------------------------------------------
# Caller-facing payloads
# ---------------------------------------------------------------------------

class QuestionPayload(BaseModel):
    """Rendered question for API consumers."""

    qid: str
    text: str
    category: str
    target_symptoms: List[str]
    phase: Phase


class QuestionStep(BaseModel):
    """Engine step: ask the next question."""

    type: Literal["question"] = "question"
    session_id: str
    phase: Phase
    question: QuestionPayload
    urgency: Urgency


class TransitionStep(BaseModel):
    """Engine step: the phase advanced; interim top-N candidates attached."""

    type: Literal["transition"] = "transition"
    session_id: str
    phase: Phase
    transitions: List[PhaseTransition]
    candidates: List[CandidateDisorder]
    urgency: Urgency
    question: Optional[QuestionPayload] = None


class CompletionStep(BaseModel):
    """Engine step: FINAL reached."""

    type: Literal["completed"] = "completed"
    session_id: str
    phase: Phase = Phase.FINAL
    report: FinalReport


StepResult = QuestionStep | TransitionStep | CompletionStep


class SessionStart(BaseModel):
    """Result of starting a session."""

    session_id: str
    phase: Phase
    question: Optional[QuestionPayload]
    warnings: List[str] = []


class SessionSnapshot(BaseModel):
    """Read-only view of session state."""

    session_id: str
    user_id: Optional[str]
    status: SessionStatus
    phase: Phase
    asked_questions: List[str]
    pending_question: Optional[str]
    candidates: List[CandidateDisorder]
    urgency: Urgency
    phase_history: List[PhaseTransition]
    report: Optional[FinalReport]
    created_at: datetime
    last_activity_at: datetime


class SessionInfo(BaseModel):
    """Summary row for history listings."""

    session_id: str
    user_id: Optional[str]
    status: SessionStatus
    phase: Phase
    top_candidate: Optional[str] = None
    confidence: Optional[float] = None
    created_at: datetime
    completed_at: Optional[datetime] = None
