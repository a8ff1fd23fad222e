"""Builders for small hand-made knowledge bases and sessions.

The real ``v1/`` knowledge base is too large to reason about numerically,
so scoring and phase tests build a handful of symptoms, disorders and
questions inline and wrap them with ``KnowledgeBase.from_models``.
"""

from datetime import datetime, timezone
from typing import Iterable, Sequence

from progressive_dx.evidence import derive_risk_factors
from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.models import (
    AgeBracket,
    CandidateDisorder,
    DisorderDef,
    PatientContext,
    Phase,
    PhasePolicy,
    QuestionDef,
    RiskFactorRules,
    Session,
    SignatureEntry,
    SymptomDef,
    SymptomEvidence,
)

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def symptom(code: str, category: str = "constitutional", specificity: float = 1.0) -> SymptomDef:
    return SymptomDef(code=code, label=code.replace("_", " ").title(),
                      category=category, specificity=specificity)


def disorder(
    code: str,
    signature: Sequence,
    *,
    urgency: str = "routine",
    emergency: bool = False,
    expected_absent: Iterable[str] = (),
    risk_factors: Iterable[str] = (),
    atypical_pairs: Iterable[Sequence[str]] = (),
) -> DisorderDef:
    """``signature`` items are codes or ``(code, weight)`` tuples."""
    entries = []
    for item in signature:
        if isinstance(item, tuple):
            entries.append(SignatureEntry(symptom=item[0], weight=item[1]))
        else:
            entries.append(SignatureEntry(symptom=item))
    return DisorderDef(
        code=code,
        name=f"Disorder {code}",
        signature=entries,
        expected_absent=list(expected_absent),
        risk_factors=list(risk_factors),
        atypical_pairs=[list(p) for p in atypical_pairs],
        urgency=urgency,
        emergency=emergency,
    )


def question(
    qid: str,
    targets: Sequence[str],
    phases: Sequence[Phase] = (Phase.SCREENING,),
    category: str = "constitutional",
) -> QuestionDef:
    return QuestionDef(
        qid=qid,
        prompt="Do you have {{ symptoms | join(' or ') | lower }}?",
        category=category,
        target_symptoms=list(targets),
        phases=list(phases),
    )


def policies(
    screening_min: int = 5,
    narrow_10_min: int = 3,
    narrow_5_min: int = 2,
    narrow_3_min: int = 2,
) -> list[PhasePolicy]:
    return [
        PhasePolicy(phase=Phase.SCREENING, ceiling=None, min_questions=screening_min),
        PhasePolicy(phase=Phase.NARROW_10, ceiling=10, min_questions=narrow_10_min),
        PhasePolicy(phase=Phase.NARROW_5, ceiling=5, min_questions=narrow_5_min),
        PhasePolicy(phase=Phase.NARROW_3, ceiling=3, min_questions=narrow_3_min),
        PhasePolicy(phase=Phase.FINAL, ceiling=1, min_questions=0),
    ]


DEFAULT_RISK_RULES = RiskFactorRules(
    age_brackets=[
        AgeBracket(code="age_15_45", min_age=15, max_age=45),
        AgeBracket(code="age_over_50", min_age=51),
    ],
    sex={"female": "female_gender", "male": "male_gender"},
    family_groups={"D1": ["family_history_cardiac"]},
)


def build_kb(
    symptoms: Iterable[SymptomDef],
    disorders: Iterable[DisorderDef],
    questions: Iterable[QuestionDef] = (),
    phase_policies: Iterable[PhasePolicy] | None = None,
    risk_rules: RiskFactorRules | None = None,
) -> KnowledgeBase:
    return KnowledgeBase.from_models(
        symptoms=symptoms,
        disorders=disorders,
        questions=questions,
        phase_policies=phase_policies if phase_policies is not None else policies(),
        risk_rules=risk_rules or DEFAULT_RISK_RULES,
        version="test",
    )


def new_session(
    kb: KnowledgeBase,
    context: PatientContext | None = None,
    *,
    session_id: str = "sess1",
    phase: Phase = Phase.SCREENING,
) -> Session:
    """A fresh, unpersisted session on *kb*."""
    context = context or PatientContext(
        age=40, sex="female", family_history=[], medical_history=[],
    )
    return Session(
        session_id=session_id,
        kb_version=kb.version,
        context=context,
        risk_profile=derive_risk_factors(context, kb),
        phase=phase,
        created_at=T0,
        last_activity_at=T0,
    )


def evidence_of(*present: str, absent: Iterable[str] = ()) -> dict[str, SymptomEvidence]:
    """Current-evidence mapping as returned by ``current_evidence``."""
    entries: dict[str, SymptomEvidence] = {}
    for i, code in enumerate([*present, *absent]):
        entries[code] = SymptomEvidence(
            symptom=code,
            present=code in present,
            qid="Q_TEST",
            sequence=i,
            recorded_at=T0,
        )
    return entries


def candidate(
    code: str,
    confidence: float,
    *,
    urgency: str = "routine",
    emergency: bool = False,
    matched: Sequence[str] = ("a",),
    risk_factors: Sequence[str] = (),
) -> CandidateDisorder:
    """A hand-made scored candidate (sub-scores are not consistent)."""
    return CandidateDisorder(
        code=code,
        name=f"Disorder {code}",
        confidence=confidence,
        matched_symptom_count=len(matched),
        matched_symptoms=list(matched),
        contributing_risk_factors=list(risk_factors),
        urgency=urgency,
        emergency=emergency,
        symptom_match_score=confidence,
        risk_alignment_score=50.0,
        clinical_consistency_score=100.0,
    )
