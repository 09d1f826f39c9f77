"""
Category analysis: prompts, knowledge-base context and request preparation.
"""  # noqa: D200, D212

from .analyzers import (
    build_request,
    build_tasks,
    sanitize_input,
    validate_analysis_input,
)
from .knowledge import KnowledgeBaseLoader, format_as_prompt_context
from .prompts import build_category_prompt, prompt_builder_for

__all__ = [
    "KnowledgeBaseLoader",
    "build_category_prompt",
    "build_request",
    "build_tasks",
    "format_as_prompt_context",
    "prompt_builder_for",
    "sanitize_input",
    "validate_analysis_input",
]
