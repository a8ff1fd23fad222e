"""Final report composition.

The report is composed once, when a session enters FINAL.  Besides the
core fields (top candidate, confidence, contributing evidence, urgency,
recommended action, phase history) it carries:

  - ranked snapshots of the candidates that survived NARROW_10, NARROW_5
    and NARROW_3
  - a confidence summary over every scored disorder
  - analysis-quality metrics (context completeness, thoroughness)
  - recommendations (emergency and appointment prompts for the set that
    entered FINAL, self-care advice)
  - next steps, degraded-risk warnings and the medical disclaimer
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Sequence

from progressive_dx import constants
from progressive_dx.evidence import current_evidence
from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.models.enums import PHASE_ORDER, Phase, Urgency
from progressive_dx.models.evidence import CandidateDisorder
from progressive_dx.models.session import (
    AnalysisQuality,
    ConfidenceSummary,
    FinalReport,
    Session,
)

# Phase left -> key of the ranked snapshot taken when it ended
_SNAPSHOT_KEYS: dict[Phase, str] = {
    Phase.NARROW_10: "top_10",
    Phase.NARROW_5: "top_5",
    Phase.NARROW_3: "top_3",
}

# Request diagnostic tests above this confidence
_TESTS_CONFIDENCE = 60.0
# Finalist confidences that trigger the emergency banner / appointment prompt
_EMERGENCY_BANNER_CONFIDENCE = 50.0
_URGENT_VISIT_CONFIDENCE = 40.0


def compose_report(
    session: Session,
    top: Optional[CandidateDisorder],
    urgency: Urgency,
    scored: Sequence[CandidateDisorder],
    knowledge_base: KnowledgeBase,
    now: Optional[datetime] = None,
) -> FinalReport:
    """Build the terminal report for *session*.

    Args:
        top: the single candidate kept in FINAL (None when nothing matched).
        urgency: classification of the set that entered FINAL.
        scored: the full rescoring, used for the confidence summary.
    """
    now = now or datetime.now(timezone.utc)
    ranked = {
        _SNAPSHOT_KEYS[t.from_phase]: list(t.candidate_codes)
        for t in session.phase_history
        if t.from_phase in _SNAPSHOT_KEYS
    }
    warnings = [
        f"Risk dimension '{dim.value}' was unavailable; risk alignment used the remaining dimensions"
        for dim in session.risk_profile.unavailable
    ]

    return FinalReport(
        session_id=session.session_id,
        top_candidate=top,
        confidence=top.confidence if top else 0.0,
        contributing_symptoms=list(top.matched_symptoms) if top else [],
        contributing_risk_factors=list(top.contributing_risk_factors) if top else [],
        urgency=urgency,
        recommended_action=constants.RECOMMENDED_ACTIONS[urgency],
        phase_history=list(session.phase_history),
        ranked=ranked,
        confidence_summary=confidence_summary(scored),
        analysis_quality=analysis_quality(session, knowledge_base),
        recommendations=recommendations(_finalists(session, top, scored)),
        next_steps=next_steps(top),
        warnings=warnings,
        disclaimer=constants.MEDICAL_DISCLAIMER,
        generated_at=now,
    )


def confidence_summary(scored: Sequence[CandidateDisorder]) -> ConfidenceSummary:
    distribution = {"high": 0, "medium": 0, "low": 0}
    for c in scored:
        if c.confidence > constants.HIGH_CONFIDENCE:
            distribution["high"] += 1
        elif c.confidence >= constants.MEDIUM_CONFIDENCE:
            distribution["medium"] += 1
        else:
            distribution["low"] += 1

    top_10 = list(scored[:10])
    average = sum(c.confidence for c in top_10) / len(top_10) if top_10 else 0.0
    return ConfidenceSummary(
        highest=scored[0].confidence if scored else 0.0,
        average_top_10=round(average, 2),
        distribution=distribution,
    )


def analysis_quality(session: Session, knowledge_base: KnowledgeBase) -> AnalysisQuality:
    """Context completeness and thoroughness, each in [0, 1].

    Completeness adds 0.2 for each of: age, sex, family history, medical
    history, derived risk factors.  Thoroughness adds up to 0.3 for the
    number of responses, up to 0.3 for the spread of symptom categories
    and up to 0.4 for phase progress.
    """
    ctx = session.context
    filled = [
        ctx.age is not None,
        bool(ctx.sex),
        bool(ctx.family_history),
        bool(ctx.medical_history),
        bool(session.risk_profile.factors),
    ]
    completeness = 0.2 * sum(filled)

    present = [e.symptom for e in current_evidence(session).values() if e.present]
    categories = {
        knowledge_base.symptoms[code].category for code in present if code in knowledge_base.symptoms
    }
    thoroughness = (
        min(len(session.responses) / 10, 0.3)
        + min(len(categories) / 5, 0.3)
        + (session.phase.index + 1) / len(PHASE_ORDER) * 0.4
    )
    return AnalysisQuality(
        context_completeness=round(completeness, 2),
        thoroughness=round(thoroughness, 2),
        responses_count=len(session.responses),
        symptoms_count=len(present),
    )


def next_steps(top: Optional[CandidateDisorder]) -> list[str]:
    steps: list[str] = []
    if top is not None:
        steps.append(f"Discuss the possibility of {top.name} with your healthcare provider")
        steps.append("Bring this analysis report to your medical appointment")
        if top.confidence > _TESTS_CONFIDENCE:
            steps.append("Request appropriate diagnostic tests or referrals")
    steps.append("Continue monitoring symptoms and note any changes")
    steps.append("Follow up if symptoms worsen or new symptoms develop")
    return steps


def _finalists(
    session: Session,
    top: Optional[CandidateDisorder],
    scored: Sequence[CandidateDisorder],
) -> list[CandidateDisorder]:
    """The candidates that entered FINAL, rescored, best first."""
    if not session.phase_history:
        return [top] if top else []
    entered = set(session.phase_history[-1].candidate_codes)
    return [c for c in scored if c.code in entered]


def recommendations(finalists: Sequence[CandidateDisorder]) -> list[str]:
    if not finalists:
        return [
            "No specific disorder was identified from the current answers; keep monitoring "
            "and consult a healthcare provider if symptoms persist or worsen",
        ]

    top = finalists[0]
    recs = [f"{top.name}: {constants.RECOMMENDED_ACTIONS[top.urgency]}"]
    if any(
        (c.emergency or c.urgency is Urgency.EMERGENCY) and c.confidence > _EMERGENCY_BANNER_CONFIDENCE
        for c in finalists
    ):
        recs.insert(0, "URGENT: seek immediate medical attention to rule out serious conditions")
    if any(
        c.urgency is Urgency.URGENT and c.confidence > _URGENT_VISIT_CONFIDENCE
        for c in finalists
    ):
        recs.append("Schedule an appointment with your healthcare provider within the next few days")
    recs.append("Keep a symptom diary noting triggers, severity and timing")
    recs.append("Stay hydrated and get adequate rest")
    return recs
