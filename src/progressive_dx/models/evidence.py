"""Evidence-side models: patient context, responses, evidence, risk, candidates.

Everything here is immutable once built.  Candidate lists are replaced
wholesale on every rescoring; nothing patches a score in place.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import RiskDimension, Urgency

Onset = Literal["acute", "subacute", "chronic"]


class FamilyDiseaseRecord(BaseModel):
    """A disorder diagnosed in a relative."""

    model_config = ConfigDict(frozen=True)

    disorder_code: str
    relation: Optional[str] = None
    inheritance_pattern: Optional[str] = None


class PatientContext(BaseModel):
    """Snapshot supplied by the patient context provider at session start.

    ``None`` means "unknown" and marks that risk dimension unavailable;
    an empty list means "known to be none".
    """

    model_config = ConfigDict(frozen=True)

    age: Optional[int] = Field(default=None, ge=0, le=130)
    sex: Optional[str] = None
    family_history: Optional[List[FamilyDiseaseRecord]] = None
    medical_history: Optional[List[str]] = None


class SymptomAnswer(BaseModel):
    """One structured symptom token inside a response."""

    model_config = ConfigDict(frozen=True)

    symptom: str
    present: bool
    # 1 (mild) .. 5 (unable to perform normal activities)
    severity: Optional[int] = Field(default=None, ge=1, le=5)
    onset: Optional[Onset] = None


class SymptomResponse(BaseModel):
    """A pre-parsed answer to one question."""

    model_config = ConfigDict(frozen=True)

    qid: str
    answers: List[SymptomAnswer] = []


class SymptomEvidence(BaseModel):
    """One recorded observation; superseded per symptom by later entries."""

    model_config = ConfigDict(frozen=True)

    symptom: str
    present: bool
    severity: Optional[int] = None
    onset: Optional[Onset] = None
    qid: str
    sequence: int
    recorded_at: datetime


class RiskFactor(BaseModel):
    """A risk factor derived once from the patient context."""

    model_config = ConfigDict(frozen=True)

    code: str
    dimension: RiskDimension


class RiskProfile(BaseModel):
    """All derived risk factors plus the dimensions that could not be derived."""

    model_config = ConfigDict(frozen=True)

    factors: List[RiskFactor] = []
    unavailable: List[RiskDimension] = []

    @property
    def degraded(self) -> bool:
        return bool(self.unavailable)

    @property
    def codes(self) -> set[str]:
        return {f.code for f in self.factors}


class CandidateDisorder(BaseModel):
    """A scored disorder hypothesis."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    confidence: float
    matched_symptom_count: int
    matched_symptoms: List[str]
    contributing_risk_factors: List[str]
    urgency: Urgency
    emergency: bool = False
    symptom_match_score: float
    risk_alignment_score: float
    clinical_consistency_score: float
