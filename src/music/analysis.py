from __future__ import annotations

import logging

from src.errors import require
from src.models import MusicAnalysis
from src.prompts import fill_template

logger = logging.getLogger(__name__)


def analyze_music(ctx, script: str) -> MusicAnalysis:
    """Mood, tempo, genres and per-section intensity for a narration script."""
    script = require((script or "").strip(), "Script is required")
    prompts = ctx.prompts()
    analysis = ctx.gateway.invoke_structured(
        "fast",
        prompts["music_analysis_system"],
        [{"role": "user", "content": fill_template(prompts["music_analysis_user"], {"script": script})}],
        MusicAnalysis,
        max_tokens=1024,
        temperature=0.5,
    )
    logger.info("Music analysis: mood=%s tempo=%s genres=%s", analysis.mood, analysis.tempo, analysis.genres)
    return analysis
