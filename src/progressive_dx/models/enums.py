"""Enumerations shared by the engine, the persistence layer and the API."""

import enum


class Phase(str, enum.Enum):
    """Narrowing phases of an analysis session.

    Transitions are monotonic:
        screening -> narrow_10 -> narrow_5 -> narrow_3 -> final
    """

    SCREENING = "screening"
    NARROW_10 = "narrow_10"
    NARROW_5 = "narrow_5"
    NARROW_3 = "narrow_3"
    FINAL = "final"

    @property
    def index(self) -> int:
        return PHASE_ORDER.index(self)

    def next(self) -> "Phase":
        """Return the phase that follows this one (FINAL has no successor)."""
        if self is Phase.FINAL:
            raise ValueError("FINAL is the terminal phase")
        return PHASE_ORDER[self.index + 1]


PHASE_ORDER: list[Phase] = [
    Phase.SCREENING,
    Phase.NARROW_10,
    Phase.NARROW_5,
    Phase.NARROW_3,
    Phase.FINAL,
]


class SessionStatus(str, enum.Enum):
    """Lifecycle states for an analysis session.

    Transitions:
        active -> completed  (FINAL reached, report written)
        active -> abandoned  (inactivity timeout, no report)
    """

    ACTIVE = "active"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class Urgency(str, enum.Enum):
    """Action tier attached to a prediction."""

    EMERGENCY = "emergency"
    URGENT = "urgent"
    ROUTINE = "routine"
    MONITORING = "monitoring"


class RiskDimension(str, enum.Enum):
    """Which part of the patient context a risk factor came from."""

    AGE = "age"
    SEX = "sex"
    FAMILY_HISTORY = "family_history"
    PERSONAL_HISTORY = "personal_history"
