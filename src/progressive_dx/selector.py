"""Question selector — picks the next question that best splits the candidates.

For every eligible question the selector counts how many reference
disorders the question "splits": a disorder counts when one of the
question's target symptoms sits in exactly one of the disorder's
expected-present (signature) or expected-absent sets.  Answering such a
question moves that disorder's score one way or the other, so higher counts
mean more differential power.

Ordering, most preferred first:

  1. while the phase's category-coverage goal is unmet, questions in a goal
     category not yet covered this phase (breadth before depth)
  2. higher differential value
  3. earlier position in the question bank (determinism)
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from progressive_dx import constants
from progressive_dx.evidence import current_evidence
from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.models.evidence import CandidateDisorder
from progressive_dx.models.knowledge import DisorderDef, PhasePolicy, QuestionDef
from progressive_dx.models.session import Session

logger = logging.getLogger(__name__)


def select_next_question(
    session: Session,
    candidates: Sequence[CandidateDisorder],
    knowledge_base: KnowledgeBase,
    policy: Optional[PhasePolicy] = None,
) -> Optional[QuestionDef]:
    """Return the best unasked question for the session's phase, or None.

    ``None`` means nothing eligible reaches the minimum differential value;
    the phase machine treats that as "exhausted" and forces a transition.
    """
    policy = policy or knowledge_base.policy(session.phase)
    reference = reference_disorders(session, candidates, knowledge_base, policy)
    if not reference:
        return None

    asked = set(session.asked_questions)
    known = set(current_evidence(session))
    covered = covered_categories(session, knowledge_base)
    coverage_open = len(covered & set(policy.category_goal)) < policy.min_category_coverage

    best: Optional[QuestionDef] = None
    best_key: Optional[tuple] = None
    for question in knowledge_base.questions_for_phase(session.phase):
        if question.qid in asked:
            continue
        if all(code in known for code in question.target_symptoms):
            continue
        value = differential_value(question, reference)
        if value < constants.MIN_DIFFERENTIAL_VALUE:
            continue
        breadth = (
            coverage_open
            and question.category in policy.category_goal
            and question.category not in covered
        )
        key = (breadth, value, -knowledge_base.question_order(question.qid))
        if best_key is None or key > best_key:
            best, best_key = question, key

    if best is None:
        logger.debug(
            "No eligible question left: session=%s phase=%s",
            session.session_id, session.phase.value,
        )
    return best


def differential_value(question: QuestionDef, disorders: Sequence[DisorderDef]) -> int:
    """Number of *disorders* the question splits."""
    targets = set(question.target_symptoms)
    count = 0
    for disorder in disorders:
        expected_present = disorder.signature_codes
        expected_absent = set(disorder.expected_absent)
        if any((code in expected_present) != (code in expected_absent) for code in targets):
            count += 1
    return count


def reference_disorders(
    session: Session,
    candidates: Sequence[CandidateDisorder],
    knowledge_base: KnowledgeBase,
    policy: PhasePolicy,
) -> list[DisorderDef]:
    """Disorders a question is measured against.

    The top-N candidates (N = phase ceiling, all when unbounded).  With no
    candidates yet, fall back to the admitted pool, or every disorder when
    no pool has been fixed.
    """
    if candidates:
        top = candidates[: policy.ceiling] if policy.ceiling else candidates
        return [knowledge_base.disorders[c.code] for c in top if c.code in knowledge_base.disorders]
    if session.candidate_pool is not None:
        return [
            knowledge_base.disorders[code]
            for code in session.candidate_pool
            if code in knowledge_base.disorders
        ]
    return list(knowledge_base.disorders.values())


def covered_categories(session: Session, knowledge_base: KnowledgeBase) -> set[str]:
    """Categories of questions answered during the current phase."""
    covered: set[str] = set()
    for record in session.responses:
        if record.phase != session.phase:
            continue
        question = knowledge_base.questions.get(record.qid)
        if question is not None:
            covered.add(question.category)
    return covered
