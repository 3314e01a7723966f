"""Prompt templates for every text-generation task."""

from .defaults import DEFAULT_PROMPTS
from .templates import fill_template, resolve_prompt, resolve_prompts, tone_instructions

__all__ = [
    "DEFAULT_PROMPTS",
    "fill_template",
    "resolve_prompt",
    "resolve_prompts",
    "tone_instructions",
]
