from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable, List

from src.errors import MalformedOutputError, ValidationError, require
from src.models import Visual
from src.prompts import fill_template
from src.visuals.markers import VisualMarker, check_sequence, parse_markers, strip_markers

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 150
DEFAULT_SECONDS_PER_VISUAL = 8

_STRICT_REMINDER = (
    "Your previous reply could not be used: {problem}. "
    "Return the ENTIRE script again with every original character unchanged. "
    "Only insert markers of the form (VISUAL n: description | KEYWORD: term), "
    "numbered from 1, with (VISUAL 1: ...) first."
)


@dataclass
class TaggedScript:
    text: str
    markers: List[VisualMarker] = field(default_factory=list)
    target_count: int = 0


def estimate_visuals(script: str, seconds_per_visual: float = DEFAULT_SECONDS_PER_VISUAL) -> int:
    """Target visual count for a script narrated at 150 words per minute."""
    if seconds_per_visual <= 0:
        raise ValidationError("Seconds per visual must be positive")
    words = len(strip_markers(script or "").split())
    duration = words / WORDS_PER_MINUTE * 60
    return max(1, math.floor(duration / seconds_per_visual + 0.5))


def _problem_with(original: str, tagged: str, markers: List[VisualMarker]) -> str:
    if not markers:
        return "it contained no visual markers"
    try:
        check_sequence(markers)
    except ValidationError as exc:
        return exc.message
    if strip_markers(tagged).strip() != original.strip():
        return "the script text was changed"
    return ""


def tag_visuals(
    ctx,
    script: str,
    seconds_per_visual: float = DEFAULT_SECONDS_PER_VISUAL,
    max_attempts: int = 2,
) -> TaggedScript:
    """Insert numbered visual markers into a script.

    A reply is accepted only when its markers parse, run 1..n, and removing
    them gives back the original script. Otherwise the model is asked again
    with the problem spelled out, up to ``max_attempts`` in total.
    """
    script = require((script or "").strip(), "Script is required")
    target = estimate_visuals(script, seconds_per_visual)
    prompts = ctx.prompts()
    user_prompt = fill_template(
        prompts["visual_tagging_user"],
        {"script": script, "numberOfVisuals": target, "visualDuration": seconds_per_visual},
    )
    messages = [{"role": "user", "content": user_prompt}]

    problem = ""
    for attempt in range(1, max(1, max_attempts) + 1):
        tagged = ctx.gateway.invoke(
            "fast", prompts["visual_tagging_system"], messages, max_tokens=16384, temperature=0.3
        ).strip()
        markers = parse_markers(tagged)
        problem = _problem_with(script, tagged, markers)
        if not problem:
            logger.info("Tagged script with %d visual(s) (target %d)", len(markers), target)
            return TaggedScript(text=tagged, markers=markers, target_count=target)

        logger.warning("Visual tagging attempt %d rejected: %s", attempt, problem)
        messages = messages + [
            {"role": "assistant", "content": tagged},
            {"role": "user", "content": _STRICT_REMINDER.format(problem=problem)},
        ]

    raise MalformedOutputError(
        f"Visual tagging failed after {max_attempts} attempt(s): {problem}",
        service="Text generation",
        upstream_status=200,
    )


def save_visual_markers(ctx, video_id: str, markers: Iterable) -> List[Visual]:
    """Store markers as the video's visuals, replacing any numbered beyond them."""
    items = [m if isinstance(m, VisualMarker) else VisualMarker(**m) for m in markers]
    if not items:
        raise ValidationError("At least one visual is required")
    check_sequence(items)
    script, _video, _series = ctx.owned_script(video_id)

    visuals = [
        ctx.db.upsert_visual(script.id, m.number, m.description, m.keywords)
        for m in items
    ]
    ctx.db.delete_visuals_after(script.id, len(items))
    logger.info("Saved %d visual(s) for video %s", len(visuals), video_id)
    return visuals
