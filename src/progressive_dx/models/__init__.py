"""Public model re-exports for progressive_dx.

Consumers should import from ``progressive_dx.models`` rather than
reaching into sub-modules directly.
"""

# --- Enums ---
from progressive_dx.models.enums import (
    PHASE_ORDER,
    Phase,
    RiskDimension,
    SessionStatus,
    Urgency,
)

# --- Knowledge base ---
from progressive_dx.models.knowledge import (
    AgeBracket,
    DisorderDef,
    PhasePolicy,
    QuestionDef,
    RiskFactorRules,
    SignatureEntry,
    SymptomDef,
)

# --- Evidence ---
from progressive_dx.models.evidence import (
    CandidateDisorder,
    FamilyDiseaseRecord,
    PatientContext,
    RiskFactor,
    RiskProfile,
    SymptomAnswer,
    SymptomEvidence,
    SymptomResponse,
)

# --- Session / step ---
from progressive_dx.models.session import (
    AnalysisQuality,
    CompletionStep,
    ConfidenceSummary,
    FinalReport,
    PhaseTransition,
    QuestionPayload,
    QuestionStep,
    ResponseRecord,
    Session,
    SessionInfo,
    SessionSnapshot,
    SessionStart,
    StepResult,
    TransitionStep,
)

__all__ = [
    # Enums
    "PHASE_ORDER",
    "Phase",
    "RiskDimension",
    "SessionStatus",
    "Urgency",
    # Knowledge base
    "AgeBracket",
    "DisorderDef",
    "PhasePolicy",
    "QuestionDef",
    "RiskFactorRules",
    "SignatureEntry",
    "SymptomDef",
    # Evidence
    "CandidateDisorder",
    "FamilyDiseaseRecord",
    "PatientContext",
    "RiskFactor",
    "RiskProfile",
    "SymptomAnswer",
    "SymptomEvidence",
    "SymptomResponse",
    # Session
    "AnalysisQuality",
    "CompletionStep",
    "ConfidenceSummary",
    "FinalReport",
    "PhaseTransition",
    "QuestionPayload",
    "QuestionStep",
    "ResponseRecord",
    "Session",
    "SessionInfo",
    "SessionSnapshot",
    "SessionStart",
    "StepResult",
    "TransitionStep",
]
