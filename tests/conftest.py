import pytest

from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.models import PatientContext


@pytest.fixture(scope="session")
def kb():
    """Load the full v1 knowledge base once for the entire test session."""
    k = KnowledgeBase()
    k.load()
    return k


@pytest.fixture
def context():
    """A complete patient context (no degraded risk dimension)."""
    return PatientContext(
        age=58,
        sex="male",
        family_history=[{"disorder_code": "DZ_CAR_001", "relation": "father"}],
        medical_history=["Hypertension", "smoking"],
    )
