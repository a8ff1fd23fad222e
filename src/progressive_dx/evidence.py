"""Evidence model — records symptom evidence and derives risk factors.

Two halves:

  - **Symptom evidence**: :func:`record_response` validates a pre-parsed
    response against the knowledge base and appends one
    :class:`SymptomEvidence` per answer to the session's evidence log.
    :func:`current_evidence` projects the log to "latest entry per
    symptom".
  - **Risk factors**: :func:`derive_risk_factors` is a pure function of the
    patient context, run once at session creation.  A dimension that cannot
    be derived is recorded as unavailable instead of failing the session.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from progressive_dx.errors import DegradedRiskProfile, UnknownSymptomCode
from progressive_dx.knowledge import FAMILY_HISTORY_PREFIX, KnowledgeBase
from progressive_dx.models.enums import RiskDimension
from progressive_dx.models.evidence import (
    PatientContext,
    RiskFactor,
    RiskProfile,
    SymptomEvidence,
    SymptomResponse,
)
from progressive_dx.models.session import Session

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Symptom evidence
# ---------------------------------------------------------------------------

def record_response(
    session: Session,
    response: SymptomResponse,
    knowledge_base: KnowledgeBase,
) -> list[SymptomEvidence]:
    """Append the evidence carried by *response* to the session's log.

    All symptom codes are validated before anything is written, so an
    ``UnknownSymptomCode`` leaves the evidence log untouched.

    Returns:
        The newly recorded entries, in answer order (possibly empty).
    """
    for answer in response.answers:
        if not knowledge_base.has_symptom(answer.symptom):
            raise UnknownSymptomCode(answer.symptom)

    now = datetime.now(timezone.utc)
    start = len(session.evidence)
    recorded = [
        SymptomEvidence(
            symptom=answer.symptom,
            present=answer.present,
            severity=answer.severity,
            onset=answer.onset,
            qid=response.qid,
            sequence=start + i,
            recorded_at=now,
        )
        for i, answer in enumerate(response.answers)
    ]
    session.evidence = [*session.evidence, *recorded]
    return recorded


def current_evidence(session: Session) -> dict[str, SymptomEvidence]:
    """Latest evidence per symptom code; later entries supersede earlier ones."""
    latest: dict[str, SymptomEvidence] = {}
    for entry in session.evidence:
        latest[entry.symptom] = entry
    return latest


# ---------------------------------------------------------------------------
# Risk factors
# ---------------------------------------------------------------------------

def derive_risk_factors(context: PatientContext, knowledge_base: KnowledgeBase) -> RiskProfile:
    """Derive the immutable risk profile for a session.

    Dimensions:
      - age: every matching age bracket from risk_factors.yaml
      - sex: mapped through the ``sex`` table
      - family_history: ``family_history:<disorder>`` per family record,
        plus grouped flags (e.g. family_history_kidney_disease)
      - personal_history: each medical-history item verbatim
    """
    rules = knowledge_base.risk_rules
    factors: list[RiskFactor] = []
    unavailable: list[RiskDimension] = []

    derivations = [
        (RiskDimension.AGE, _age_factors),
        (RiskDimension.SEX, _sex_factors),
        (RiskDimension.FAMILY_HISTORY, _family_factors),
        (RiskDimension.PERSONAL_HISTORY, _personal_factors),
    ]
    for dimension, derive in derivations:
        try:
            codes = derive(context, rules)
        except DegradedRiskProfile as exc:
            logger.warning("Degraded risk profile: %s", exc)
            unavailable.append(dimension)
            continue
        for code in codes:
            factor = RiskFactor(code=code, dimension=dimension)
            if factor not in factors:
                factors.append(factor)

    return RiskProfile(factors=factors, unavailable=unavailable)


def _age_factors(context: PatientContext, rules) -> list[str]:
    if context.age is None:
        raise DegradedRiskProfile(RiskDimension.AGE.value, "age missing from patient context")
    return [b.code for b in rules.age_brackets if b.contains(context.age)]


def _sex_factors(context: PatientContext, rules) -> list[str]:
    if not context.sex:
        raise DegradedRiskProfile(RiskDimension.SEX.value, "sex missing from patient context")
    code = rules.sex.get(context.sex.lower())
    return [code] if code else []


def _family_factors(context: PatientContext, rules) -> list[str]:
    if context.family_history is None:
        raise DegradedRiskProfile(
            RiskDimension.FAMILY_HISTORY.value, "family history not provided"
        )
    codes: list[str] = []
    for record in context.family_history:
        codes.append(f"{FAMILY_HISTORY_PREFIX}{record.disorder_code}")
        codes.extend(rules.family_groups.get(record.disorder_code, []))
    return codes


def _personal_factors(context: PatientContext, rules) -> list[str]:
    if context.medical_history is None:
        raise DegradedRiskProfile(
            RiskDimension.PERSONAL_HISTORY.value, "medical history not provided"
        )
    return [item.strip().lower() for item in context.medical_history if item.strip()]
