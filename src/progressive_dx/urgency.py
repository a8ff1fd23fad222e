"""Urgency classifier — maps a candidate set to an action tier."""

from __future__ import annotations

from typing import Sequence

from progressive_dx import constants
from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.models.enums import Urgency
from progressive_dx.models.evidence import CandidateDisorder


def classify_urgency(
    candidates: Sequence[CandidateDisorder],
    knowledge_base: KnowledgeBase,
) -> Urgency:
    """Classify the urgency of *candidates*.

    Any emergency-flagged disorder in the set forces ``emergency``
    regardless of its rank.  Otherwise the most urgent tier among the top
    three candidates wins.  An empty set is ``monitoring``.
    """
    if not candidates:
        return Urgency.MONITORING

    for c in candidates:
        disorder = knowledge_base.disorders.get(c.code)
        if c.emergency or (disorder is not None and disorder.emergency):
            return Urgency.EMERGENCY

    top = candidates[: constants.URGENCY_TOP_K]
    return min(
        (_tier(c, knowledge_base) for c in top),
        key=constants.URGENCY_PRECEDENCE.index,
    )


def _tier(candidate: CandidateDisorder, knowledge_base: KnowledgeBase) -> Urgency:
    disorder = knowledge_base.disorders.get(candidate.code)
    return disorder.urgency if disorder is not None else candidate.urgency


def recommended_action(urgency: Urgency) -> str:
    return constants.RECOMMENDED_ACTIONS[urgency]
