"""progressive_dx — Adaptive progressive disorder prediction SDK.

Public API:
    SessionManager       — session lifecycle: start, submit responses, expire
    PhaseMachine         — 5-phase narrowing state machine
    KnowledgeBase        — loads the versioned YAML knowledge base
    PromptManager        — Jinja2 rendering of questions and reports
    SessionStore         — ABC for session persistence
    InMemorySessionStore — dict-backed SessionStore

Engine functions:
    record_response      — validate and append symptom evidence
    current_evidence     — latest evidence per symptom code
    derive_risk_factors  — risk profile from a patient context
    score_candidates     — ranked candidate disorders (pure)
    select_next_question — most differentiating unasked question
    classify_urgency     — emergency / urgent / routine / monitoring

Step models:
    StepResult           — union returned by submit_responses
    QuestionStep         — step: ask the next question
    TransitionStep       — step: phase advanced, interim candidates attached
    CompletionStep       — step: FINAL reached, report attached
"""

from progressive_dx.errors import (
    DegradedRiskProfile,
    EngineError,
    InvalidResponse,
    KnowledgeBaseUnavailable,
    SessionAlreadyTerminal,
    SessionExpired,
    SessionNotFound,
    UnknownSymptomCode,
)
from progressive_dx.evidence import current_evidence, derive_risk_factors, record_response
from progressive_dx.interfaces import SessionStore
from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.manager import SessionManager
from progressive_dx.models import (
    CandidateDisorder,
    CompletionStep,
    FinalReport,
    PatientContext,
    Phase,
    QuestionStep,
    SessionStart,
    SessionStatus,
    StepResult,
    SymptomAnswer,
    SymptomResponse,
    TransitionStep,
    Urgency,
)
from progressive_dx.phases import PhaseMachine
from progressive_dx.prompt import PromptManager
from progressive_dx.scoring import score_candidates
from progressive_dx.selector import select_next_question
from progressive_dx.store import InMemorySessionStore
from progressive_dx.urgency import classify_urgency

__all__ = [
    # Lifecycle & knowledge base
    "SessionManager",
    "PhaseMachine",
    "KnowledgeBase",
    "PromptManager",
    "SessionStore",
    "InMemorySessionStore",
    # Engine functions
    "record_response",
    "current_evidence",
    "derive_risk_factors",
    "score_candidates",
    "select_next_question",
    "classify_urgency",
    # Models
    "CandidateDisorder",
    "FinalReport",
    "PatientContext",
    "Phase",
    "SessionStart",
    "SessionStatus",
    "SymptomAnswer",
    "SymptomResponse",
    "Urgency",
    # Steps
    "StepResult",
    "QuestionStep",
    "TransitionStep",
    "CompletionStep",
    # Errors
    "EngineError",
    "UnknownSymptomCode",
    "InvalidResponse",
    "DegradedRiskProfile",
    "KnowledgeBaseUnavailable",
    "SessionNotFound",
    "SessionAlreadyTerminal",
    "SessionExpired",
]
