"""Phase state machine — drives a session through the narrowing phases.

    SCREENING -> NARROW_10 -> NARROW_5 -> NARROW_3 -> FINAL

Each phase has a ``PhasePolicy``: the candidate ceiling it narrows toward,
the minimum number of questions answered before it may end, and a
category-coverage goal used by the selector.

After every accepted response the machine rescores and then checks the
current phase's gate:

  (a) minimum questions answered AND candidate count <= ceiling, or
  (b) the selector has nothing left to ask; the candidate list is then
      force-truncated to the ceiling before advancing.

Transitions may cascade within one call (an exhausted NARROW_5 can fall
straight through to FINAL).  On every boundary the admitted candidate pool
is narrowed to the surviving codes, so later rescoring can never bring a
dropped disorder back.

Urgency, interim or at a boundary, is classified over the phase's top set:
its ceiling, or the top three while SCREENING is unbounded.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Mapping, Optional

from progressive_dx import constants
from progressive_dx.evidence import current_evidence
from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.models.enums import Phase, SessionStatus, Urgency
from progressive_dx.models.evidence import CandidateDisorder
from progressive_dx.models.knowledge import PhasePolicy, QuestionDef
from progressive_dx.models.session import PhaseTransition, Session
from progressive_dx.report import compose_report
from progressive_dx.scoring import score_candidates
from progressive_dx.selector import select_next_question
from progressive_dx.urgency import classify_urgency

logger = logging.getLogger(__name__)


@dataclass
class Advance:
    """Outcome of one :meth:`PhaseMachine.advance` call."""

    transitions: list[PhaseTransition] = field(default_factory=list)
    question: Optional[QuestionDef] = None
    urgency: Urgency = Urgency.MONITORING

    @property
    def completed(self) -> bool:
        return bool(self.transitions) and self.transitions[-1].to_phase is Phase.FINAL


class PhaseMachine:
    """Phase transitions for one knowledge base.

    Args:
        knowledge_base: loaded knowledge base.
        policies: optional per-phase overrides of the KB's phase policies.
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        policies: Optional[Mapping[Phase, PhasePolicy]] = None,
    ) -> None:
        self._kb = knowledge_base
        self._policies = dict(policies or {})

    def policy(self, phase: Phase) -> PhasePolicy:
        return self._policies.get(phase) or self._kb.policy(phase)

    def urgency_window(
        self,
        phase: Phase,
        candidates: list[CandidateDisorder],
    ) -> list[CandidateDisorder]:
        """The top set whose urgency counts while a session is in *phase*.

        That is the phase's top-N; an unbounded phase (SCREENING) only
        looks at its top ``URGENCY_TOP_K`` candidates.
        """
        return candidates[: self.policy(phase).ceiling or constants.URGENCY_TOP_K]

    def interim_urgency(self, session: Session) -> Urgency:
        if session.report is not None:
            return session.report.urgency
        return classify_urgency(self.urgency_window(session.phase, session.candidates), self._kb)

    # ------------------------------------------------------------------
    # Scoring within the admitted pool
    # ------------------------------------------------------------------

    def score_all(self, session: Session) -> list[CandidateDisorder]:
        """Score every disorder against the session's evidence."""
        return score_candidates(current_evidence(session), session.risk_profile, self._kb)

    def rescore(self, session: Session) -> list[CandidateDisorder]:
        """Ranked candidates restricted to the admitted pool."""
        return self._admitted(session, self.score_all(session))

    @staticmethod
    def _admitted(session: Session, scored: list[CandidateDisorder]) -> list[CandidateDisorder]:
        if session.candidate_pool is None:
            return scored
        pool = set(session.candidate_pool)
        return [c for c in scored if c.code in pool]

    # ------------------------------------------------------------------
    # Driving the session
    # ------------------------------------------------------------------

    def first_question(self, session: Session) -> Optional[QuestionDef]:
        """Pick the opening question of a new session."""
        session.candidates = self.rescore(session)
        question = select_next_question(
            session, session.candidates, self._kb, self.policy(session.phase),
        )
        session.pending_qid = question.qid if question else None
        return question

    def advance(self, session: Session, now: Optional[datetime] = None) -> Advance:
        """Rescore, apply phase gates (cascading), and pick the next question.

        Mutates *session* in place; the caller owns persistence.
        """
        now = now or datetime.now(timezone.utc)
        result = Advance()
        session.candidates = self.rescore(session)

        while session.phase is not Phase.FINAL:
            policy = self.policy(session.phase)
            if self._gate_open(session, policy):
                reason: Literal["gate", "exhausted"] = "gate"
            else:
                question = select_next_question(session, session.candidates, self._kb, policy)
                if question is not None:
                    session.pending_qid = question.qid
                    result.question = question
                    result.urgency = self.interim_urgency(session)
                    return result
                reason = "exhausted"
            result.transitions.append(self._transition(session, policy, reason, now))

        session.pending_qid = None
        result.urgency = result.transitions[-1].urgency
        return result

    @staticmethod
    def _gate_open(session: Session, policy: PhasePolicy) -> bool:
        if session.questions_answered_in(session.phase) < policy.min_questions:
            return False
        return policy.ceiling is None or len(session.candidates) <= policy.ceiling

    def _transition(
        self,
        session: Session,
        policy: PhasePolicy,
        reason: Literal["gate", "exhausted"],
        now: datetime,
    ) -> PhaseTransition:
        from_phase = session.phase
        to_phase = from_phase.next()

        survivors = session.candidates
        if policy.ceiling is not None:
            survivors = survivors[: policy.ceiling]
        urgency = classify_urgency(self.urgency_window(from_phase, survivors), self._kb)

        session.phase = to_phase
        session.candidate_pool = [c.code for c in survivors]
        session.candidates = list(survivors)

        record = PhaseTransition(
            from_phase=from_phase,
            to_phase=to_phase,
            reason=reason,
            candidate_codes=[c.code for c in survivors],
            urgency=urgency,
            at=now,
        )
        session.phase_history = [*session.phase_history, record]

        if to_phase is Phase.FINAL:
            self._finalize(session, urgency, now)

        logger.info(
            "Phase transition: session=%s %s -> %s (%s), %d candidates, urgency=%s",
            session.session_id, from_phase.value, to_phase.value, reason,
            len(session.candidates), urgency.value,
        )
        return record

    def _finalize(self, session: Session, urgency: Urgency, now: datetime) -> None:
        """Final rescoring, keep the top candidate, compose the report.

        *urgency* was classified over everything that entered FINAL, so an
        emergency candidate ranked below the top one still dominates.
        """
        scored = self.score_all(session)
        admitted = self._admitted(session, scored)

        ceiling = self.policy(Phase.FINAL).ceiling or 1
        session.candidates = admitted[:ceiling]
        session.candidate_pool = [c.code for c in session.candidates]
        top = session.candidates[0] if session.candidates else None

        session.report = compose_report(session, top, urgency, scored, self._kb, now=now)
        session.status = SessionStatus.COMPLETED
        session.completed_at = now
