"""Tests for the question selector.

Small knowledge base::

    D1 = {a, b}          D2 = {a, c}          D3 = {d}, expected absent: a

    Q1 [a]  constitutional   splits D1, D2, D3  -> value 3
    Q2 [b]  cardiovascular   splits D1          -> value 1
    Q3 [e]  constitutional   splits nothing     -> value 0
    Q4 [d]  narrow_10 only
    Q5 [c]  cardiovascular   splits D2          -> value 1
"""

import pytest

from progressive_dx import constants
from progressive_dx.models import Phase, PhasePolicy, ResponseRecord, SymptomResponse
from progressive_dx.scoring import score_candidates
from progressive_dx.selector import (
    differential_value,
    reference_disorders,
    select_next_question,
)

from helpers.kb import T0, build_kb, disorder, evidence_of, new_session, question, symptom


@pytest.fixture
def small_kb():
    return build_kb(
        [symptom(c) for c in "abcde"],
        [
            disorder("D1", ["a", "b"]),
            disorder("D2", ["a", "c"]),
            disorder("D3", ["d"], expected_absent=["a"]),
        ],
        [
            question("Q1", ["a"]),
            question("Q2", ["b"], category="cardiovascular"),
            question("Q3", ["e"]),
            question("Q4", ["d"], phases=[Phase.NARROW_10]),
            question("Q5", ["c"], category="cardiovascular"),
        ],
    )


def _answered(session, qid):
    session.asked_questions = [*session.asked_questions, qid]
    session.responses = [
        *session.responses,
        ResponseRecord(qid=qid, phase=session.phase,
                       response=SymptomResponse(qid=qid), answered_at=T0),
    ]


# =====================================================================
# differential_value / reference_disorders
# =====================================================================

class TestDifferentialValue:

    def test_counts_split_disorders(self, small_kb):
        disorders = list(small_kb.disorders.values())
        assert differential_value(small_kb.get_question("Q1"), disorders) == 3
        assert differential_value(small_kb.get_question("Q2"), disorders) == 1
        assert differential_value(small_kb.get_question("Q3"), disorders) == 0

    def test_reference_is_every_disorder_without_candidates(self, small_kb):
        session = new_session(small_kb)
        ref = reference_disorders(session, [], small_kb, small_kb.policy(Phase.SCREENING))
        assert [d.code for d in ref] == ["D1", "D2", "D3"]

    def test_reference_uses_pool_when_candidates_empty(self, small_kb):
        session = new_session(small_kb, phase=Phase.NARROW_10)
        session.candidate_pool = ["D3"]
        ref = reference_disorders(session, [], small_kb, small_kb.policy(Phase.NARROW_10))
        assert [d.code for d in ref] == ["D3"]

    def test_reference_truncated_to_ceiling(self, small_kb):
        session = new_session(small_kb)
        candidates = score_candidates(evidence_of("a"), session.risk_profile, small_kb)
        policy = PhasePolicy(phase=Phase.NARROW_3, ceiling=1)
        ref = reference_disorders(session, candidates, small_kb, policy)
        assert [d.code for d in ref] == [candidates[0].code]


# =====================================================================
# select_next_question
# =====================================================================

class TestSelectNextQuestion:

    def test_first_question_with_empty_evidence(self, small_kb):
        session = new_session(small_kb)
        assert select_next_question(session, [], small_kb).qid == "Q1"

    def test_skips_asked(self, small_kb):
        session = new_session(small_kb)
        session.asked_questions = ["Q1"]
        assert select_next_question(session, [], small_kb).qid == "Q2"

    def test_skips_questions_with_all_targets_known(self, small_kb):
        session = new_session(small_kb)
        session.evidence = list(evidence_of("a", absent=["b"]).values())
        assert select_next_question(session, [], small_kb).qid == "Q5"

    def test_respects_phase_eligibility(self, small_kb):
        session = new_session(small_kb, phase=Phase.NARROW_10)
        assert select_next_question(session, [], small_kb).qid == "Q4"

    def test_exhausted_returns_none(self, small_kb):
        session = new_session(small_kb)
        session.asked_questions = ["Q1", "Q2", "Q5"]
        # Q3 splits nothing; Q4 is not a screening question
        assert select_next_question(session, [], small_kb) is None

    def test_minimum_differential_value(self, small_kb, monkeypatch):
        monkeypatch.setattr(constants, "MIN_DIFFERENTIAL_VALUE", 4)
        session = new_session(small_kb)
        assert select_next_question(session, [], small_kb) is None

    def test_bank_order_breaks_ties(self, small_kb):
        session = new_session(small_kb)
        session.asked_questions = ["Q1"]
        # Q2 and Q5 both split one disorder
        assert select_next_question(session, [], small_kb).qid == "Q2"

    def test_breadth_before_depth(self, small_kb):
        policy = PhasePolicy(
            phase=Phase.SCREENING,
            min_questions=5,
            category_goal=["cardiovascular", "respiratory"],
            min_category_coverage=1,
        )
        session = new_session(small_kb)
        # Uncovered goal category outranks the higher-value Q1
        assert select_next_question(session, [], small_kb, policy).qid == "Q2"

        _answered(session, "Q2")
        assert select_next_question(session, [], small_kb, policy).qid == "Q1"

    def test_coverage_counts_current_phase_only(self, small_kb):
        policy = PhasePolicy(
            phase=Phase.NARROW_10,
            ceiling=10,
            category_goal=["cardiovascular"],
            min_category_coverage=1,
        )
        session = new_session(small_kb)
        _answered(session, "Q2")
        session.phase = Phase.NARROW_10
        q5 = question("Q5", ["c"], phases=[Phase.NARROW_10], category="cardiovascular")
        k = build_kb(
            small_kb.symptoms.values(),
            small_kb.disorders.values(),
            [small_kb.get_question("Q4"), q5],
        )
        # The screening answer does not cover NARROW_10's goal
        assert select_next_question(session, [], k, policy).qid == "Q5"
