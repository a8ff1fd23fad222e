"""KnowledgeBase — loads the versioned YAML knowledge base into typed models.

This is the single source of truth for reference data at runtime.  The
knowledge base is loaded once at startup and treated as immutable for the
process lifetime, so any number of sessions may read it concurrently.

Usage::

    kb = KnowledgeBase()            # defaults to v1/ relative to repo root
    kb.load()                       # parse all YAML files

    disorder = kb.get_disorder("DZ_CAR_001")
    questions = kb.questions_for_phase(Phase.SCREENING)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Optional

import yaml
from pydantic import ValidationError

from progressive_dx.errors import KnowledgeBaseUnavailable
from progressive_dx.models.enums import PHASE_ORDER, Phase, RiskDimension
from progressive_dx.models.knowledge import (
    DisorderDef,
    PhasePolicy,
    QuestionDef,
    RiskFactorRules,
    SymptomDef,
)

logger = logging.getLogger(__name__)

# Risk-factor token in a disorder's associations meaning "a relative had
# this same disorder"; resolved per disorder at scoring time.
FAMILY_HISTORY_TOKEN = "family_history"
FAMILY_HISTORY_PREFIX = "family_history:"


# ---------------------------------------------------------------------------
# Utility helpers
# ---------------------------------------------------------------------------

def find_repo_root(start: Optional[Path] = None) -> Path:
    """Walk upwards from *start* to find the repo root (dir with pyproject.toml or .git).

    Falls back to cwd if no marker is found.
    """
    p = (start or Path(__file__).resolve()).parent
    for parent in [p, *p.parents]:
        if (parent / "pyproject.toml").exists() or (parent / ".git").exists():
            return parent
    return Path.cwd()


def load_yaml(path: Path | str) -> Any:
    """Load a single YAML file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing YAML file: {path}")
    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


# ---------------------------------------------------------------------------
# KnowledgeBase
# ---------------------------------------------------------------------------

class KnowledgeBase:
    """Loads all YAML from ``v1/`` and provides typed lookup.

    Attributes populated after :meth:`load` (or :meth:`from_models`):

        symptoms       — dict[code, SymptomDef]
        disorders      — dict[code, DisorderDef]   (YAML order preserved)
        questions      — dict[qid, QuestionDef]    (YAML order preserved)
        phase_policies — dict[Phase, PhasePolicy]
        risk_rules     — RiskFactorRules
    """

    def __init__(self, kb_dir: str | Path | None = None) -> None:
        if kb_dir is None:
            kb_dir = find_repo_root() / "v1"
        self._base = Path(kb_dir)
        self.version: str = self._base.name

        self.symptoms: dict[str, SymptomDef] = {}
        self.disorders: dict[str, DisorderDef] = {}
        self.questions: dict[str, QuestionDef] = {}
        self.phase_policies: dict[Phase, PhasePolicy] = {}
        self.risk_rules = RiskFactorRules()
        self._question_index: dict[str, int] = {}
        self._loaded = False

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self) -> None:
        """Parse every YAML file under the knowledge-base directory.

        Raises ``KnowledgeBaseUnavailable`` if a file is missing, malformed,
        or references an unknown symptom.
        """
        try:
            const_dir = self._base / "const"
            rules_dir = self._base / "rules"
            symptoms = [SymptomDef(**raw) for raw in load_yaml(const_dir / "symptoms.yaml")]
            disorders = [DisorderDef(**raw) for raw in load_yaml(const_dir / "disorders.yaml")]
            questions = [QuestionDef(**raw) for raw in load_yaml(rules_dir / "questions.yaml")]
            policies = [PhasePolicy(**raw) for raw in load_yaml(rules_dir / "phases.yaml")]
            risk_rules = RiskFactorRules(**(load_yaml(rules_dir / "risk_factors.yaml") or {}))
        except (FileNotFoundError, yaml.YAMLError, ValidationError, TypeError) as exc:
            raise KnowledgeBaseUnavailable(
                f"Failed to load knowledge base from {self._base}: {exc}"
            ) from exc

        self._populate(symptoms, disorders, questions, policies, risk_rules)
        logger.info(
            "KnowledgeBase %s loaded: %d symptoms, %d disorders, %d questions",
            self.version,
            len(self.symptoms),
            len(self.disorders),
            len(self.questions),
        )

    @classmethod
    def from_models(
        cls,
        *,
        symptoms: Iterable[SymptomDef],
        disorders: Iterable[DisorderDef],
        questions: Iterable[QuestionDef],
        phase_policies: Iterable[PhasePolicy],
        risk_rules: RiskFactorRules | None = None,
        version: str = "inline",
    ) -> "KnowledgeBase":
        """Build a loaded knowledge base from already-parsed models."""
        kb = cls(kb_dir=Path(version))
        kb._populate(
            list(symptoms), list(disorders), list(questions),
            list(phase_policies), risk_rules or RiskFactorRules(),
        )
        return kb

    def _populate(
        self,
        symptoms: list[SymptomDef],
        disorders: list[DisorderDef],
        questions: list[QuestionDef],
        policies: list[PhasePolicy],
        risk_rules: RiskFactorRules,
    ) -> None:
        self.symptoms = {s.code: s for s in symptoms}
        self.disorders = {d.code: d for d in disorders}
        self.questions = {q.qid: q for q in questions}
        self._question_index = {qid: i for i, qid in enumerate(self.questions)}
        self.phase_policies = {p.phase: p for p in policies}
        self.risk_rules = risk_rules
        self._validate_references()
        self._loaded = True

    def _validate_references(self) -> None:
        """Every symptom referenced by a disorder or question must exist."""
        problems: list[str] = []
        for d in self.disorders.values():
            referenced = set(d.signature_codes) | set(d.expected_absent)
            referenced.update(code for pair in d.atypical_pairs for code in pair)
            for code in sorted(referenced - self.symptoms.keys()):
                problems.append(f"disorder {d.code} -> {code}")
        for q in self.questions.values():
            for code in q.target_symptoms:
                if code not in self.symptoms:
                    problems.append(f"question {q.qid} -> {code}")
        missing = [p.value for p in PHASE_ORDER if p not in self.phase_policies]
        if missing:
            problems.append(f"phase policies missing for {missing}")
        if problems:
            raise KnowledgeBaseUnavailable(
                "Knowledge base has unresolved references: " + "; ".join(problems)
            )

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    @property
    def loaded(self) -> bool:
        return self._loaded

    def ensure_available(self) -> None:
        """Raise ``KnowledgeBaseUnavailable`` unless the KB is usable."""
        if not self._loaded:
            raise KnowledgeBaseUnavailable("Knowledge base has not been loaded")
        if not self.disorders or not self.questions:
            raise KnowledgeBaseUnavailable(
                f"Knowledge base {self.version} defines no disorders or no questions"
            )

    # ------------------------------------------------------------------
    # Lookup helpers
    # ------------------------------------------------------------------

    def has_symptom(self, code: str) -> bool:
        return code in self.symptoms

    def get_symptom(self, code: str) -> SymptomDef:
        """Raises KeyError if the symptom is unknown."""
        return self.symptoms[code]

    def get_disorder(self, code: str) -> DisorderDef:
        """Raises KeyError if the disorder is unknown."""
        return self.disorders[code]

    def get_question(self, qid: str) -> QuestionDef:
        """Raises KeyError if the question is unknown."""
        return self.questions[qid]

    def questions_for_phase(self, phase: Phase) -> list[QuestionDef]:
        """Questions eligible in *phase*, in question-bank order."""
        return [q for q in self.questions.values() if phase in q.phases]

    def question_order(self, qid: str) -> int:
        """Position of *qid* in the question bank (used for deterministic ties)."""
        return self._question_index[qid]

    def policy(self, phase: Phase) -> PhasePolicy:
        return self.phase_policies[phase]

    def resolve_risk_token(self, token: str, disorder_code: str) -> str:
        """Map a disorder's risk-factor association to a concrete factor code."""
        if token == FAMILY_HISTORY_TOKEN:
            return f"{FAMILY_HISTORY_PREFIX}{disorder_code}"
        return token

    def risk_dimension(self, code: str) -> RiskDimension:
        """Classify a concrete risk-factor code into its context dimension."""
        if any(b.code == code for b in self.risk_rules.age_brackets):
            return RiskDimension.AGE
        if code in self.risk_rules.sex.values():
            return RiskDimension.SEX
        if code.startswith(FAMILY_HISTORY_PREFIX) or any(
            code in flags for flags in self.risk_rules.family_groups.values()
        ):
            return RiskDimension.FAMILY_HISTORY
        return RiskDimension.PERSONAL_HISTORY
