"""Pydantic models for knowledge-base reference data.

These models mirror the YAML files in ``v1/const/`` and ``v1/rules/``:

  Constants (from v1/const/):
    - SymptomDef: symptom code with label, category and diagnostic specificity
    - DisorderDef: disorder signature, risk associations, urgency class

  Rules (from v1/rules/):
    - QuestionDef: question-bank entry with target symptoms and phase eligibility
    - PhasePolicy: ceiling / minimum questions / category goal per phase
    - RiskFactorRules: how risk factors are derived from a patient context
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .enums import Phase, Urgency


# ---------------------------------------------------------------------------
# Constants: v1/const/*.yaml
# ---------------------------------------------------------------------------

class SymptomDef(BaseModel):
    """Symptom definition from symptoms.yaml.

    ``specificity`` is the diagnostic weight of the symptom when it appears
    in a disorder signature.  Generic symptoms (fatigue, fever) sit at 1.0;
    pathognomonic ones are weighted higher.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    label: str
    category: str
    specificity: float = Field(default=1.0, gt=0)


class SignatureEntry(BaseModel):
    """One symptom of a disorder's defining signature."""

    model_config = ConfigDict(frozen=True)

    symptom: str
    # Overrides the symptom's global specificity for this disorder only
    weight: Optional[float] = Field(default=None, gt=0)


class DisorderDef(BaseModel):
    """Disorder definition from disorders.yaml.

    ``atypical_pairs`` lists symptom pairs whose co-occurrence is unusual
    for this disorder; each pair found in the evidence costs a fixed
    clinical-consistency penalty.
    """

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    icd10: Optional[str] = None
    signature: List[SignatureEntry]
    expected_absent: List[str] = []
    risk_factors: List[str] = []
    atypical_pairs: List[List[str]] = []
    urgency: Urgency
    emergency: bool = False

    @model_validator(mode="after")
    def _chk(self):
        if not self.signature:
            raise ValueError(f"disorder {self.code} has an empty signature")
        for pair in self.atypical_pairs:
            if len(pair) != 2:
                raise ValueError(
                    f"disorder {self.code}: atypical pair must have 2 symptoms, got {pair}"
                )
        return self

    @property
    def signature_codes(self) -> set[str]:
        return {entry.symptom for entry in self.signature}


# ---------------------------------------------------------------------------
# Rules: v1/rules/*.yaml
# ---------------------------------------------------------------------------

class QuestionDef(BaseModel):
    """Question-bank entry from questions.yaml.

    ``prompt`` is a Jinja2 template; it is rendered with the labels of the
    target symptoms (see :mod:`progressive_dx.prompt`).
    """

    model_config = ConfigDict(frozen=True)

    qid: str
    prompt: str
    category: str
    target_symptoms: List[str]
    phases: List[Phase]

    @model_validator(mode="after")
    def _chk(self):
        if not self.target_symptoms:
            raise ValueError(f"question {self.qid} has no target symptoms")
        if Phase.FINAL in self.phases:
            raise ValueError(f"question {self.qid}: no questions are asked in FINAL")
        return self


class PhasePolicy(BaseModel):
    """Gate configuration for one phase from phases.yaml.

    ``ceiling`` is the candidate count the phase narrows toward (None for an
    unbounded screening phase).  ``category_goal`` and
    ``min_category_coverage`` drive breadth-before-depth question ordering.
    """

    model_config = ConfigDict(frozen=True)

    phase: Phase
    ceiling: Optional[int] = Field(default=None, ge=1)
    min_questions: int = Field(default=0, ge=0)
    category_goal: List[str] = []
    min_category_coverage: int = Field(default=0, ge=0)


class AgeBracket(BaseModel):
    """Age bracket -> risk factor code.  Bounds are inclusive; either may be open."""

    model_config = ConfigDict(frozen=True)

    code: str
    min_age: Optional[int] = None
    max_age: Optional[int] = None

    def contains(self, age: int) -> bool:
        if self.min_age is not None and age < self.min_age:
            return False
        if self.max_age is not None and age > self.max_age:
            return False
        return True


class RiskFactorRules(BaseModel):
    """Derivation rules from risk_factors.yaml.

    - age_brackets: every matching bracket emits its code
    - sex: maps the context's sex value to a code
    - family_groups: maps a family disorder code to grouped flags
      (e.g. any kidney disorder -> family_history_kidney_disease)
    """

    age_brackets: List[AgeBracket] = []
    sex: dict[str, str] = {}
    family_groups: dict[str, List[str]] = {}
