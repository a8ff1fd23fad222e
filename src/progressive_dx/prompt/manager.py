"""PromptManager — Jinja2-based rendering of question prompts and reports.

Question prompts live in ``questions.yaml`` as inline Jinja2 templates and
are rendered with the labels of the question's target symptoms::

    prompt: "Have you noticed {{ symptoms | join(' or ') | lower }}?"

Final reports are rendered from ``template/report.jinja2`` into a
plain-text summary for display or export.
"""

from __future__ import annotations

from pathlib import Path

import jinja2

from progressive_dx.knowledge import KnowledgeBase
from progressive_dx.models.enums import Phase
from progressive_dx.models.knowledge import QuestionDef
from progressive_dx.models.session import FinalReport, QuestionPayload


class PromptManager:
    """Renders question-bank prompts and final reports.

    Args:
        knowledge_base: loaded knowledge base used to resolve symptom labels.
        template_dir: optional override for the template directory.
            Defaults to ``template/`` sibling of this module.
    """

    def __init__(self, knowledge_base: KnowledgeBase, template_dir: Path | None = None) -> None:
        if template_dir is None:
            template_dir = Path(__file__).parent / "template"
        self._kb = knowledge_base
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(template_dir)),
            # Undefined variables in a question template are a KB authoring bug
            undefined=jinja2.StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render_question(self, question: QuestionDef, phase: Phase) -> QuestionPayload:
        """Render *question* into the payload handed to API consumers."""
        labels = [self._kb.get_symptom(code).label for code in question.target_symptoms]
        template = self._env.from_string(question.prompt)
        text = template.render(
            symptoms=labels,
            symptom=labels[0],
            category=question.category,
        ).strip()
        return QuestionPayload(
            qid=question.qid,
            text=text,
            category=question.category,
            target_symptoms=list(question.target_symptoms),
            phase=phase,
        )

    def render_report(self, report: FinalReport) -> str:
        """Render a final report as a plain-text summary."""
        symptom_labels = [
            self._kb.symptoms[code].label if code in self._kb.symptoms else code
            for code in report.contributing_symptoms
        ]
        template = self._env.get_template("report.jinja2")
        return template.render(report=report, symptom_labels=symptom_labels)
