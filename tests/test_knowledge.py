"""Tests for KnowledgeBase loading, validation and lookup helpers.

Covers the real ``v1/`` knowledge base (counts, phase policies, emergency
flags, question eligibility) and the failure modes that surface as
``KnowledgeBaseUnavailable``.
"""

import pytest

from progressive_dx.errors import KnowledgeBaseUnavailable
from progressive_dx.knowledge import KnowledgeBase, find_repo_root, load_yaml
from progressive_dx.models import Phase, RiskDimension, SignatureEntry, Urgency

from helpers.kb import build_kb, disorder, question, symptom


# =====================================================================
# v1 knowledge base
# =====================================================================

class TestV1KnowledgeBase:

    def test_counts(self, kb):
        assert len(kb.symptoms) == 50
        assert len(kb.disorders) == 28
        assert len(kb.questions) == 38
        assert kb.version == "v1"

    def test_loaded_and_available(self, kb):
        assert kb.loaded
        kb.ensure_available()

    def test_phase_policies(self, kb):
        ceilings = {p: kb.policy(p).ceiling for p in Phase}
        assert ceilings == {
            Phase.SCREENING: None,
            Phase.NARROW_10: 10,
            Phase.NARROW_5: 5,
            Phase.NARROW_3: 3,
            Phase.FINAL: 1,
        }
        assert kb.policy(Phase.SCREENING).min_questions == 5

    def test_emergency_disorders(self, kb):
        flagged = {d.code for d in kb.disorders.values() if d.emergency}
        assert flagged == {"DZ_CAR_001", "DZ_CAR_004", "DZ_GAS_003", "DZ_NEU_003"}
        for code in flagged:
            assert kb.get_disorder(code).urgency == Urgency.EMERGENCY

    def test_every_signature_symptom_known(self, kb):
        for d in kb.disorders.values():
            for code in d.signature_codes:
                assert kb.has_symptom(code), f"{d.code} -> {code}"

    def test_signature_entries_use_model_fields(self):
        # Keys the model does not declare would be silently dropped
        raw = load_yaml(find_repo_root() / "v1" / "const" / "disorders.yaml")
        for entry in raw:
            for sig in entry["signature"]:
                assert set(sig) <= set(SignatureEntry.model_fields), f"{entry['code']}: {sig}"

    def test_no_question_in_final(self, kb):
        assert kb.questions_for_phase(Phase.FINAL) == []

    def test_screening_questions_exist(self, kb):
        assert len(kb.questions_for_phase(Phase.SCREENING)) >= 5

    def test_question_order_follows_bank(self, kb):
        qids = list(kb.questions)
        assert kb.question_order(qids[0]) == 0
        assert kb.question_order(qids[-1]) == len(qids) - 1

    def test_lookup_unknown_raises_key_error(self, kb):
        with pytest.raises(KeyError):
            kb.get_disorder("DZ_NOPE_999")
        with pytest.raises(KeyError):
            kb.get_symptom("not_a_symptom")


# =====================================================================
# Risk token helpers
# =====================================================================

class TestRiskTokens:

    def test_family_history_token_resolves_per_disorder(self, kb):
        assert kb.resolve_risk_token("family_history", "DZ_CAR_001") == "family_history:DZ_CAR_001"
        assert kb.resolve_risk_token("smoking", "DZ_CAR_001") == "smoking"

    @pytest.mark.parametrize("code, dimension", [
        ("age_over_50", RiskDimension.AGE),
        ("female_gender", RiskDimension.SEX),
        ("family_history:DZ_CAR_001", RiskDimension.FAMILY_HISTORY),
        ("family_history_kidney_disease", RiskDimension.FAMILY_HISTORY),
        ("hypertension", RiskDimension.PERSONAL_HISTORY),
    ])
    def test_risk_dimension(self, kb, code, dimension):
        assert kb.risk_dimension(code) == dimension


# =====================================================================
# Failure modes
# =====================================================================

class TestUnavailable:

    def test_missing_directory(self, tmp_path):
        k = KnowledgeBase(kb_dir=tmp_path / "v9")
        with pytest.raises(KnowledgeBaseUnavailable):
            k.load()
        assert not k.loaded

    def test_malformed_yaml(self, tmp_path):
        base = tmp_path / "v2"
        (base / "const").mkdir(parents=True)
        (base / "rules").mkdir()
        (base / "const" / "symptoms.yaml").write_text("- code: [unclosed\n")
        with pytest.raises(KnowledgeBaseUnavailable):
            KnowledgeBase(kb_dir=base).load()

    def test_not_loaded(self):
        with pytest.raises(KnowledgeBaseUnavailable):
            KnowledgeBase().ensure_available()

    def test_unresolved_symptom_reference(self):
        with pytest.raises(KnowledgeBaseUnavailable, match="D1 -> ghost"):
            build_kb([symptom("fever")], [disorder("D1", ["fever", "ghost"])])

    def test_unresolved_question_target(self):
        with pytest.raises(KnowledgeBaseUnavailable, match="Q1 -> ghost"):
            build_kb(
                [symptom("fever")],
                [disorder("D1", ["fever"])],
                [question("Q1", ["ghost"])],
            )

    def test_no_questions_is_unavailable(self):
        k = build_kb([symptom("fever")], [disorder("D1", ["fever"])])
        with pytest.raises(KnowledgeBaseUnavailable):
            k.ensure_available()

    def test_question_in_final_rejected(self):
        with pytest.raises(ValueError):
            question("Q1", ["fever"], phases=[Phase.FINAL])
