"""SessionManager — session lifecycle around the phase machine.

Stateless manager pattern: each call loads the session state from the
``SessionStore``, runs the engine on a deep copy, and writes the copy back
only when the whole call succeeded.  A rejected response therefore leaves
the stored session exactly as it was.

Calls touching the same session id are serialised with a per-session
``asyncio.Lock``; different sessions never contend.

Expiry is lazy: an active session idle for longer than the TTL is marked
``abandoned`` (no report) the next time it is touched, and mutations then
raise ``SessionExpired``.  ``expire_idle_sessions`` applies the same rule in
bulk for the cleanup CLI.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Mapping, Optional, Sequence

from progressive_dx import constants
from progressive_dx.errors import (
    EngineError,
    InvalidResponse,
    KnowledgeBaseUnavailable,
    SessionAlreadyTerminal,
    SessionExpired,
    SessionNotFound,
)
from progressive_dx.evidence import derive_risk_factors, record_response
from progressive_dx.interfaces import SessionStore
from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.models.enums import Phase, SessionStatus
from progressive_dx.models.evidence import PatientContext, SymptomResponse
from progressive_dx.models.knowledge import PhasePolicy
from progressive_dx.models.session import (
    CompletionStep,
    QuestionStep,
    ResponseRecord,
    Session,
    SessionInfo,
    SessionSnapshot,
    SessionStart,
    StepResult,
    TransitionStep,
)
from progressive_dx.phases import Advance, PhaseMachine
from progressive_dx.prompt import PromptManager

logger = logging.getLogger(__name__)


class SessionManager:
    """Creates, advances, expires and deletes analysis sessions.

    Args:
        knowledge_base: a loaded :class:`KnowledgeBase`.
        store: where serialized sessions live.
        ttl_minutes: inactivity timeout; defaults to ``SESSION_TTL_MINUTES``.
            ``0`` disables expiry.
        policies: optional per-phase policy overrides.
    """

    def __init__(
        self,
        knowledge_base: KnowledgeBase,
        store: SessionStore,
        *,
        ttl_minutes: Optional[int] = None,
        policies: Optional[Mapping[Phase, PhasePolicy]] = None,
    ) -> None:
        self._kb = knowledge_base
        self._store = store
        self._machine = PhaseMachine(knowledge_base, policies)
        self._prompts = PromptManager(knowledge_base)

        minutes = constants.SESSION_TTL_MINUTES if ttl_minutes is None else ttl_minutes
        self._ttl: Optional[timedelta] = timedelta(minutes=minutes) if minutes > 0 else None

        # Entries live only while a call holds or waits on them
        self._session_locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @property
    def knowledge_base(self) -> KnowledgeBase:
        return self._kb

    @property
    def prompts(self) -> PromptManager:
        return self._prompts

    @asynccontextmanager
    async def _session_lock(self, session_id: str) -> AsyncIterator[None]:
        """Serialise calls on one session.

        The lock is created by its first user and dropped by its last one,
        so finished, deleted and unknown session ids leave nothing behind.
        """
        lock = self._session_locks.setdefault(session_id, asyncio.Lock())
        self._lock_users[session_id] = self._lock_users.get(session_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[session_id] -= 1
            if not self._lock_users[session_id]:
                del self._lock_users[session_id]
                del self._session_locks[session_id]

    # ==================================================================
    # Session lifecycle
    # ==================================================================

    async def start_session(
        self,
        context: PatientContext,
        *,
        user_id: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> SessionStart:
        """Create a session and present its first screening question.

        Raises ``KnowledgeBaseUnavailable`` when the knowledge base is not
        loaded or offers no opening question; nothing is persisted then.
        """
        self._kb.ensure_available()
        session_id = session_id or uuid.uuid4().hex

        async with self._session_lock(session_id):
            if await self._store.get(session_id) is not None:
                raise InvalidResponse(f"Session id already in use: {session_id}")

            now = datetime.now(timezone.utc)
            session = Session(
                session_id=session_id,
                user_id=user_id,
                kb_version=self._kb.version,
                context=context,
                risk_profile=derive_risk_factors(context, self._kb),
                created_at=now,
                last_activity_at=now,
            )
            question = self._machine.first_question(session)
            if question is None:
                raise KnowledgeBaseUnavailable(
                    f"Knowledge base {self._kb.version} yields no initial screening question"
                )
            session.asked_questions = [question.qid]
            await self._save(session)

        logger.info(
            "Session started: session=%s user=%s kb=%s degraded=%s",
            session_id, user_id, self._kb.version, session.risk_profile.degraded,
        )
        return SessionStart(
            session_id=session_id,
            phase=session.phase,
            question=self._prompts.render_question(question, session.phase),
            warnings=[
                f"Risk dimension '{dim.value}' unavailable"
                for dim in session.risk_profile.unavailable
            ],
        )

    async def submit_responses(
        self,
        session_id: str,
        responses: Sequence[SymptomResponse],
    ) -> StepResult:
        """Record one or more responses and advance the session.

        Either every response is accepted and the session advances, or the
        call raises and the stored session is untouched.

        Raises:
            InvalidResponse: empty submission, unknown qid, or a qid that
                was already answered.
            UnknownSymptomCode: an answer cites a symptom the KB lacks.
            SessionExpired / SessionAlreadyTerminal: the session is over.
            SessionNotFound: no such session.
        """
        if not responses:
            raise InvalidResponse("At least one response is required")

        async with self._session_lock(session_id):
            session = await self._load(session_id)
            now = datetime.now(timezone.utc)
            await self._check_mutable(session, now)

            working = session.model_copy(deep=True)
            try:
                seen: set[str] = set()
                for response in responses:
                    self._accept(working, response, seen, now)
            except EngineError as exc:
                logger.warning("Rejected response: session=%s: %s", session_id, exc)
                raise

            advance = self._machine.advance(working, now)
            if advance.question is not None and advance.question.qid not in working.asked_questions:
                working.asked_questions = [*working.asked_questions, advance.question.qid]
            working.last_activity_at = now
            await self._save(working)

        if advance.completed:
            top = working.report.top_candidate if working.report else None
            logger.info(
                "Session completed: session=%s top=%s urgency=%s",
                session_id, top.code if top else None, working.report.urgency.value,
            )
        return self._to_step(working, advance)

    async def get_session_state(self, session_id: str) -> SessionSnapshot:
        """Read-only snapshot (applies lazy expiry first)."""
        async with self._session_lock(session_id):
            session = await self._load(session_id)
            now = datetime.now(timezone.utc)
            if self._is_idle(session, now):
                session = await self._abandon(session, now)
        return self._to_snapshot(session)

    async def get_session(self, session_id: str) -> Session:
        """Full session model (used by exports and the report renderer)."""
        return await self._load(session_id)

    async def render_report(self, session_id: str) -> Optional[str]:
        """Plain-text final report, or None while the session has none."""
        session = await self._load(session_id)
        if session.report is None:
            return None
        return self._prompts.render_report(session.report)

    async def list_sessions(
        self,
        user_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
    ) -> list[SessionInfo]:
        """Analysis history for a user, most recent first."""
        states = await self._store.list_states(user_id=user_id, limit=limit, offset=offset)
        return [self._to_info(Session.model_validate(s)) for s in states]

    async def delete_session(self, session_id: str) -> None:
        """Delete a session permanently.  Raises ``SessionNotFound``."""
        async with self._session_lock(session_id):
            deleted = await self._store.delete(session_id)
        if not deleted:
            raise SessionNotFound(session_id)
        logger.info("Session deleted: session=%s", session_id)

    async def expire_idle_sessions(self, now: Optional[datetime] = None) -> int:
        """Abandon every active session idle beyond the TTL.  Returns the count."""
        if self._ttl is None:
            return 0
        now = now or datetime.now(timezone.utc)
        expired = 0
        for state in await self._store.list_states(status=SessionStatus.ACTIVE.value):
            session_id = state["session_id"]
            async with self._session_lock(session_id):
                # Re-read under the lock; the session may have moved on
                try:
                    session = await self._load(session_id)
                except SessionNotFound:
                    logger.debug("Session deleted before expiry check: session=%s", session_id)
                    continue
                if self._is_idle(session, now):
                    await self._abandon(session, now)
                    expired += 1
        if expired:
            logger.info("Expired %d idle sessions", expired)
        return expired

    # ==================================================================
    # Internal helpers
    # ==================================================================

    async def _load(self, session_id: str) -> Session:
        """Load a session or raise ``SessionNotFound``."""
        state = await self._store.get(session_id)
        if state is None:
            raise SessionNotFound(session_id)
        session = Session.model_validate(state)
        if session.kb_version != self._kb.version:
            logger.warning(
                "Session %s was created with knowledge base %s, running with %s",
                session_id, session.kb_version, self._kb.version,
            )
        return session

    async def _save(self, session: Session) -> None:
        await self._store.put(session.session_id, session.model_dump(mode="json"))

    def _is_idle(self, session: Session, now: datetime) -> bool:
        if self._ttl is None or session.status is not SessionStatus.ACTIVE:
            return False
        return now - session.last_activity_at > self._ttl

    async def _abandon(self, session: Session, now: datetime) -> Session:
        abandoned = session.model_copy(
            update={"status": SessionStatus.ABANDONED, "pending_qid": None, "completed_at": now},
        )
        await self._save(abandoned)
        logger.info(
            "Session abandoned after inactivity: session=%s phase=%s",
            session.session_id, session.phase.value,
        )
        return abandoned

    async def _check_mutable(self, session: Session, now: datetime) -> None:
        if self._is_idle(session, now):
            await self._abandon(session, now)
            raise SessionExpired(session.session_id)
        if session.status is SessionStatus.ABANDONED:
            raise SessionExpired(session.session_id)
        if session.terminal:
            raise SessionAlreadyTerminal(session.session_id, session.status.value)

    def _accept(
        self,
        session: Session,
        response: SymptomResponse,
        seen: set[str],
        now: datetime,
    ) -> None:
        """Validate and record one response on the working copy."""
        if response.qid not in self._kb.questions:
            raise InvalidResponse(f"Unknown question id: '{response.qid}'")
        if response.qid in seen or response.qid in session.answered_qids:
            raise InvalidResponse(f"Question '{response.qid}' was already answered")
        seen.add(response.qid)

        record_response(session, response, self._kb)
        session.responses = [
            *session.responses,
            ResponseRecord(qid=response.qid, phase=session.phase, response=response, answered_at=now),
        ]
        if response.qid not in session.asked_questions:
            session.asked_questions = [*session.asked_questions, response.qid]
        if session.pending_qid == response.qid:
            session.pending_qid = None

    def _to_step(self, session: Session, advance: Advance) -> StepResult:
        if advance.completed:
            return CompletionStep(session_id=session.session_id, report=session.report)

        payload = (
            self._prompts.render_question(advance.question, session.phase)
            if advance.question is not None
            else None
        )
        if advance.transitions:
            return TransitionStep(
                session_id=session.session_id,
                phase=session.phase,
                transitions=advance.transitions,
                candidates=session.candidates,
                urgency=advance.urgency,
                question=payload,
            )
        return QuestionStep(
            session_id=session.session_id,
            phase=session.phase,
            question=payload,
            urgency=advance.urgency,
        )

    def _to_snapshot(self, session: Session) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=session.session_id,
            user_id=session.user_id,
            status=session.status,
            phase=session.phase,
            asked_questions=list(session.asked_questions),
            pending_question=session.pending_qid,
            candidates=list(session.candidates),
            urgency=self._machine.interim_urgency(session),
            phase_history=list(session.phase_history),
            report=session.report,
            created_at=session.created_at,
            last_activity_at=session.last_activity_at,
        )

    @staticmethod
    def _to_info(session: Session) -> SessionInfo:
        top = session.report.top_candidate if session.report else None
        if top is None and session.candidates:
            top = session.candidates[0]
        return SessionInfo(
            session_id=session.session_id,
            user_id=session.user_id,
            status=session.status,
            phase=session.phase,
            top_candidate=top.code if top else None,
            confidence=top.confidence if top else None,
            created_at=session.created_at,
            completed_at=session.completed_at,
        )
