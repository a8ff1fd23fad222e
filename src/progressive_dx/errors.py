"""Engine exception taxonomy.

Recoverable input errors subclass ``ValueError`` and lookup failures
subclass ``KeyError`` so generic callers keep working; the HTTP layer maps
each class to a status code (see ``progressive_dx_server.errors``).
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for every error raised by the engine."""


class UnknownSymptomCode(EngineError, ValueError):
    """A response cited a symptom code the knowledge base does not define.

    Recoverable: the response is rejected and the session is unchanged.
    """

    def __init__(self, code: str) -> None:
        super().__init__(f"Unknown symptom code: '{code}'")
        self.code = code


class InvalidResponse(EngineError, ValueError):
    """A response was structurally unusable (unknown qid, duplicate answer)."""


class DegradedRiskProfile(EngineError):
    """A risk dimension could not be derived from the patient context.

    Non-fatal: raised and caught inside risk derivation, then surfaced as a
    warning on the final report.
    """

    def __init__(self, dimension: str, detail: str) -> None:
        super().__init__(f"Risk dimension '{dimension}' unavailable: {detail}")
        self.dimension = dimension


class KnowledgeBaseUnavailable(EngineError, RuntimeError):
    """The knowledge base could not be loaded or has nothing to ask."""


class SessionNotFound(EngineError, KeyError):
    """No session exists for the given id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: session_id={session_id}")
        self.session_id = session_id

    def __str__(self) -> str:
        return self.args[0]


class SessionAlreadyTerminal(EngineError):
    """A mutation was attempted on a completed or abandoned session."""

    def __init__(self, session_id: str, status: str) -> None:
        super().__init__(
            f"Session {session_id} is terminal (status '{status}'); start a new session"
        )
        self.session_id = session_id
        self.status = status


class SessionExpired(SessionAlreadyTerminal):
    """The session was abandoned after its inactivity timeout."""

    def __init__(self, session_id: str) -> None:
        super().__init__(session_id, "abandoned")
