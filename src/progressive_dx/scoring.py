"""Scoring engine — ranks candidate disorders from accumulated evidence.

Each disorder in the knowledge base is scored independently:

    confidence = 0.60 * symptom_match
               + 0.30 * risk_alignment
               + 0.10 * clinical_consistency

with every sub-score on a 0-100 scale.  The computation is pure: the same
evidence, risk profile and knowledge base always produce the same list in
the same order.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from progressive_dx import constants
from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.models.evidence import (
    CandidateDisorder,
    RiskProfile,
    SymptomEvidence,
)
from progressive_dx.models.knowledge import DisorderDef

logger = logging.getLogger(__name__)


def score_candidates(
    evidence: Mapping[str, SymptomEvidence],
    risk_profile: RiskProfile,
    knowledge_base: KnowledgeBase,
) -> list[CandidateDisorder]:
    """Score every disorder and return the ranked candidate list.

    Args:
        evidence: current evidence, one entry per symptom code
            (see :func:`progressive_dx.evidence.current_evidence`).
        risk_profile: the session's derived risk profile.
        knowledge_base: loaded knowledge base.

    Returns:
        Candidates sorted by confidence desc, matched-symptom count desc,
        then disorder code asc.  Disorders with no matched symptom are
        left out.
    """
    present = {code for code, e in evidence.items() if e.present}
    candidates: list[CandidateDisorder] = []

    for disorder in knowledge_base.disorders.values():
        candidate = _score_disorder(disorder, present, risk_profile, knowledge_base)
        if candidate is not None:
            candidates.append(candidate)

    candidates.sort(key=lambda c: (-c.confidence, -c.matched_symptom_count, c.code))
    return candidates


def _score_disorder(
    disorder: DisorderDef,
    present: set[str],
    risk_profile: RiskProfile,
    knowledge_base: KnowledgeBase,
) -> Optional[CandidateDisorder]:
    matched = [e.symptom for e in disorder.signature if e.symptom in present]
    if not matched:
        return None

    symptom_match = symptom_match_score(disorder, present, knowledge_base)
    risk_alignment, contributing = risk_alignment_score(disorder, risk_profile, knowledge_base)
    consistency = clinical_consistency_score(disorder, present)

    confidence = (
        constants.SYMPTOM_MATCH_WEIGHT * symptom_match
        + constants.RISK_ALIGNMENT_WEIGHT * risk_alignment
        + constants.CLINICAL_CONSISTENCY_WEIGHT * consistency
    )
    return CandidateDisorder(
        code=disorder.code,
        name=disorder.name,
        confidence=round(confidence, 2),
        matched_symptom_count=len(matched),
        matched_symptoms=matched,
        contributing_risk_factors=contributing,
        urgency=disorder.urgency,
        emergency=disorder.emergency,
        symptom_match_score=round(symptom_match, 2),
        risk_alignment_score=round(risk_alignment, 2),
        clinical_consistency_score=round(consistency, 2),
    )


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------

def symptom_match_score(
    disorder: DisorderDef,
    present: set[str],
    knowledge_base: KnowledgeBase,
) -> float:
    """Specificity-weighted share of the signature present in evidence.

    A symptom recorded absent simply contributes nothing; it never
    subtracts from the score.
    """
    total = 0.0
    hit = 0.0
    for entry in disorder.signature:
        weight = entry.weight
        if weight is None:
            weight = knowledge_base.get_symptom(entry.symptom).specificity
        total += weight
        if entry.symptom in present:
            hit += weight
    if total == 0:
        return 0.0
    return 100.0 * hit / total


def risk_alignment_score(
    disorder: DisorderDef,
    risk_profile: RiskProfile,
    knowledge_base: KnowledgeBase,
) -> tuple[float, list[str]]:
    """Share of the disorder's risk associations found in the profile.

    Associations whose dimension could not be derived are dropped from
    both numerator and denominator.  Returns ``(score, contributing codes)``.
    """
    unavailable = set(risk_profile.unavailable)
    owned = risk_profile.codes
    considered: list[str] = []
    for token in disorder.risk_factors:
        code = knowledge_base.resolve_risk_token(token, disorder.code)
        if knowledge_base.risk_dimension(code) in unavailable:
            continue
        considered.append(code)

    if not considered:
        return constants.NEUTRAL_RISK_SCORE, []

    contributing = [code for code in considered if code in owned]
    return 100.0 * len(contributing) / len(considered), contributing


def clinical_consistency_score(disorder: DisorderDef, present: set[str]) -> float:
    """100 minus a fixed penalty per atypical pair present, floored at 0."""
    hits = sum(1 for a, b in disorder.atypical_pairs if a in present and b in present)
    return max(0.0, 100.0 - constants.ATYPICAL_PAIR_PENALTY * hits)
