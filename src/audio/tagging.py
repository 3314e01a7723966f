from __future__ import annotations

import logging
import re

from src.errors import MalformedOutputError, require
from src.prompts import fill_template

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"\[[^\]]*\]")
_PAUSE_RE = re.compile(r"\.\.\.|…|—")
_WORD_RE = re.compile(r"[\w']+")


def _words(text: str) -> list[str]:
    text = _TAG_RE.sub(" ", text or "")
    text = _PAUSE_RE.sub(" ", text)
    return [w.lower() for w in _WORD_RE.findall(text)]


def verify_words_preserved(original: str, tagged: str) -> bool:
    """True when removing tags and pause markers from ``tagged`` leaves the original words in order."""
    return _words(original) == _words(tagged)


def tag_script(ctx, script: str) -> str:
    """Add delivery tags and pause markers to a narration script.

    The model may only add ``[tags]``, ``...`` and ``—``; a reply that
    changes, drops or reorders words is rejected.
    """
    script = require((script or "").strip(), "Script is required")
    prompts = ctx.prompts()
    tagged = ctx.gateway.invoke(
        "fast",
        prompts["audio_tagging_system"],
        [{"role": "user", "content": fill_template(prompts["audio_tagging_user"], {"script": script})}],
        max_tokens=8192,
        temperature=0.3,
    ).strip()

    if not verify_words_preserved(script, tagged):
        logger.warning("Audio tagging altered the script wording; rejecting reply")
        raise MalformedOutputError(
            "Audio tagging changed the script text. Tags may only be added; try again.",
            service="Text generation",
            upstream_status=200,
        )
    return tagged
