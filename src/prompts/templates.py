from __future__ import annotations

import re
from typing import Mapping, Optional

from src.errors import ValidationError
from src.prompts.defaults import DEFAULT_PROMPTS, TONE_KEYS

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_]+)\s*\}\}")


def fill_template(template: str, variables: Mapping[str, object]) -> str:
    """Replace every ``{{key}}`` with ``variables[key]``.

    Unknown placeholders are left verbatim. Values are inserted literally, so a
    value containing ``{{other}}`` is not expanded a second time.
    """

    def _sub(match: re.Match) -> str:
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        value = variables[key]
        return "" if value is None else str(value)

    return _PLACEHOLDER_RE.sub(_sub, template or "")


def resolve_prompt(task_key: str, overrides: Optional[Mapping[str, str]] = None) -> str:
    if task_key not in DEFAULT_PROMPTS:
        raise ValidationError(f"Unknown prompt template '{task_key}'")
    custom = (overrides or {}).get(task_key) or ""
    if custom.strip():
        return custom
    return DEFAULT_PROMPTS[task_key]


def resolve_prompts(settings=None) -> dict[str, str]:
    """Return every template with the user's overrides applied.

    ``settings`` is a ``UserSettings`` (or anything with ``prompt_overrides``),
    a plain mapping of overrides, or None.
    """
    if settings is None:
        overrides: Mapping[str, str] = {}
    elif isinstance(settings, Mapping):
        overrides = settings
    else:
        overrides = getattr(settings, "prompt_overrides", None) or {}
    return {key: resolve_prompt(key, overrides) for key in DEFAULT_PROMPTS}


def tone_instructions(tone: str, prompts: Optional[Mapping[str, str]] = None) -> str:
    key = TONE_KEYS.get((tone or "").strip())
    if key is None:
        return ""
    source = prompts if prompts is not None else DEFAULT_PROMPTS
    return source.get(key) or DEFAULT_PROMPTS[key]
