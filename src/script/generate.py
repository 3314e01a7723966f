from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.errors import ValidationError, require
from src.prompts import fill_template, tone_instructions

logger = logging.getLogger(__name__)

DURATIONS = ("30s", "60s", "2min", "5min", "10min", "15min", "30min", "60min")
TONES = ("mike_duncan", "mark_felton")


@dataclass
class ScriptResult:
    script: str
    video_id: Optional[str] = None
    script_id: Optional[str] = None


def generate_script(
    ctx,
    source_text: str,
    duration: str,
    tone: str = "",
    additional_prompt: str = "",
    video_id: Optional[str] = None,
) -> ScriptResult:
    """Write a narration script from source material.

    Without ``video_id`` the script is only returned (preview). With it, the
    video's ownership is checked before the model is called and the result is
    stored on the video's script row, overwriting any previous version.
    """
    source_text = require((source_text or "").strip(), "Source text is required")
    duration = require((duration or "").strip(), "Duration is required")
    if duration not in DURATIONS:
        raise ValidationError(f"Duration must be one of: {', '.join(DURATIONS)}")

    if video_id:
        video, _series = ctx.owned_video(video_id)

    prompts = ctx.prompts()
    system_prompt = fill_template(prompts["script_system"], {"toneInstructions": tone_instructions(tone, prompts)})
    extra = (additional_prompt or "").strip()
    user_prompt = fill_template(
        prompts["script_user"],
        {
            "duration": duration,
            "sourceText": source_text,
            "additionalPrompt": f"Additional instructions: {extra}" if extra else "",
        },
    )

    script = ctx.gateway.invoke(
        "best",
        system_prompt,
        [{"role": "user", "content": user_prompt}],
        max_tokens=8192,
    ).strip()

    if not video_id:
        return ScriptResult(script=script)

    row = ctx.db.upsert_script(video.id, source_text, script, duration=duration, tone=tone or "")
    ctx.db.update_video(video.id, status="scripting")
    logger.info("Saved %d-character script for video %s", len(script), video.id)
    return ScriptResult(script=script, video_id=video.id, script_id=row.id)


def save_script_edit(ctx, video_id: str, text: str) -> ScriptResult:
    """Persist a manual edit of the script text."""
    text = require((text or "").strip(), "Script text is required")
    video, _series = ctx.owned_video(video_id)
    existing = ctx.db.get_script_for_video(video.id)
    if existing is None:
        row = ctx.db.upsert_script(video.id, "", text)
    else:
        ctx.db.update_script_text(existing.id, text)
        row = existing
    return ScriptResult(script=text, video_id=video.id, script_id=row.id)
