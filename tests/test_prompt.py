"""PromptManager tests — question prompt and final report rendering.

Question prompts are the inline Jinja2 templates from ``questions.yaml``;
every template in the v1 bank must render without undefined variables.
"""

import jinja2
import pytest

from progressive_dx.models import Phase, QuestionDef, Urgency
from progressive_dx.prompt import PromptManager
from progressive_dx.report import compose_report

from helpers.kb import T0, candidate, new_session


# =====================================================================
# Fixtures
# =====================================================================

@pytest.fixture
def pm(kb):
    """Fresh PromptManager for each test."""
    return PromptManager(kb)


# =====================================================================
# Question rendering
# =====================================================================

class TestRenderQuestion:

    def test_joined_labels(self, pm, kb):
        payload = pm.render_question(kb.get_question("Q_CON_001"), Phase.SCREENING)
        assert payload.text == "Have you had fever or chills in the last few days?"
        assert payload.qid == "Q_CON_001"
        assert payload.category == "constitutional"
        assert payload.target_symptoms == ["fever", "chills"]
        assert payload.phase is Phase.SCREENING

    def test_single_label(self, pm, kb):
        payload = pm.render_question(kb.get_question("Q_CAR_001"), Phase.NARROW_10)
        assert payload.text == "Are you experiencing chest pain?"
        assert payload.phase is Phase.NARROW_10

    def test_every_bank_question_renders(self, pm, kb):
        for q in kb.questions.values():
            text = pm.render_question(q, q.phases[0]).text
            assert text
            assert "{{" not in text

    def test_undefined_variable_raises(self, pm):
        bad = QuestionDef(
            qid="Q_BAD",
            prompt="Do you have {{ nonexistent }}?",
            category="constitutional",
            target_symptoms=["fever"],
            phases=[Phase.SCREENING],
        )
        with pytest.raises(jinja2.UndefinedError):
            pm.render_question(bad, Phase.SCREENING)


# =====================================================================
# Report rendering
# =====================================================================

class TestRenderReport:

    def test_report_text(self, pm, kb):
        session = new_session(kb, phase=Phase.FINAL)
        top = candidate("DZ_CAR_001", 72.5, urgency="emergency", emergency=True,
                        matched=["chest_pain", "arm_pain"], risk_factors=["age_over_50"])
        report = compose_report(session, top, Urgency.EMERGENCY, [top], kb, now=T0)

        text = pm.render_report(report)

        assert "Most likely: Disorder DZ_CAR_001 (DZ_CAR_001)" in text
        assert "Confidence: 72.5 / 100" in text
        assert "Urgency: emergency" in text
        assert "Recommended action: seek immediate emergency care" in text
        assert "  - Chest pain" in text
        assert "  - age_over_50" in text
        assert "Request appropriate diagnostic tests or referrals" in text
        assert report.disclaimer in text

    def test_report_without_candidate(self, pm, kb):
        session = new_session(kb, phase=Phase.FINAL)
        report = compose_report(session, None, Urgency.MONITORING, [], kb, now=T0)

        text = pm.render_report(report)

        assert "no candidate matched" in text
        assert "Urgency: monitoring" in text
        assert "Contributing symptoms" not in text
