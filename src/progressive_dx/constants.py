"""Engine constants shared across the SDK.

The scoring weights and the urgency vocabulary are part of the engine's
contract and are fixed.  A few tuning values can be overridden via
environment variables so deployments can adjust them without code changes.
"""

import os

from progressive_dx.models.enums import Urgency

# Confidence = weighted sum of three sub-scores, each in [0, 100].
SYMPTOM_MATCH_WEIGHT = 0.60
RISK_ALIGNMENT_WEIGHT = 0.30
CLINICAL_CONSISTENCY_WEIGHT = 0.10

# Risk-alignment score for disorders with no usable risk associations.
NEUTRAL_RISK_SCORE = 50.0

# Clinical-consistency deduction per atypical symptom pairing found.
# Overridable via ATYPICAL_PAIR_PENALTY env var.
ATYPICAL_PAIR_PENALTY = float(os.getenv("ATYPICAL_PAIR_PENALTY", "25"))

# Questions whose differential value falls below this are never selected.
# Overridable via MIN_DIFFERENTIAL_VALUE env var.
MIN_DIFFERENTIAL_VALUE = int(os.getenv("MIN_DIFFERENTIAL_VALUE", "1"))

# Inactivity timeout after which a session is abandoned.
# Overridable via SESSION_TTL_MINUTES env var; 0 disables expiry.
SESSION_TTL_MINUTES = int(os.getenv("SESSION_TTL_MINUTES", "30"))

# Urgency tiers ordered from most to least urgent.
URGENCY_PRECEDENCE: list[Urgency] = [
    Urgency.EMERGENCY,
    Urgency.URGENT,
    Urgency.ROUTINE,
    Urgency.MONITORING,
]

# Number of top candidates inspected when no emergency flag is present.
URGENCY_TOP_K = 3

RECOMMENDED_ACTIONS: dict[Urgency, str] = {
    Urgency.EMERGENCY: "seek immediate emergency care",
    Urgency.URGENT: "same-day provider appointment",
    Urgency.ROUTINE: "discuss at next visit",
    Urgency.MONITORING: "monitor and reassess",
}

# Confidence bands used in the report's confidence distribution.
HIGH_CONFIDENCE = 70.0
MEDIUM_CONFIDENCE = 40.0

MEDICAL_DISCLAIMER = (
    "This analysis is for informational purposes only and is not a substitute "
    "for professional medical advice, diagnosis, or treatment. Always consult "
    "with a healthcare provider for proper medical evaluation."
)
