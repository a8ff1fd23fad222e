"""Prompt rendering for questions and reports.

Provides ``PromptManager``, a Jinja2-based renderer that turns question-bank
templates into ``QuestionPayload`` objects and final reports into plain-text
summaries.
"""

from progressive_dx.prompt.manager import PromptManager

__all__ = ["PromptManager"]
