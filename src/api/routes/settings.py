from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import get_context
from src.context import PipelineContext
from src.errors import ValidationError
from src.prompts import DEFAULT_PROMPTS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])


class SettingsUpdate(BaseModel):
    """Fields left out (None) keep their stored value; an empty string clears it."""

    elevenlabs_api_key: Optional[str] = None
    google_gemini_api_key: Optional[str] = None
    storage_url: Optional[str] = None
    storage_key: Optional[str] = None
    storage_bucket: Optional[str] = None
    music_api_key: Optional[str] = None
    music_api_url: Optional[str] = None
    prompt_overrides: Optional[Dict[str, str]] = None


@router.get("")
def get_settings(ctx: PipelineContext = Depends(get_context)):
    return ctx.settings.redacted()


@router.put("")
def update_settings(body: SettingsUpdate, ctx: PipelineContext = Depends(get_context)):
    changes = body.model_dump(exclude_none=True)
    overrides = changes.pop("prompt_overrides", None)
    merged = ctx.settings.model_copy(update={k: v.strip() for k, v in changes.items()})
    if overrides is not None:
        current = dict(merged.prompt_overrides)
        for key, template in overrides.items():
            if key not in DEFAULT_PROMPTS:
                raise ValidationError(f"Unknown prompt template '{key}'")
            if template.strip():
                current[key] = template
            else:
                current.pop(key, None)
        merged = merged.model_copy(update={"prompt_overrides": current})
    saved = ctx.db.save_user_settings(merged)
    logger.info("Updated settings for user %s (%s)", ctx.user_id, ", ".join(sorted(body.model_dump(exclude_none=True))))
    return saved.redacted()


@router.get("/prompts")
def prompts(ctx: PipelineContext = Depends(get_context)):
    return {"defaults": DEFAULT_PROMPTS, "resolved": ctx.prompts()}


@router.post("/storage/check")
def check_storage(ctx: PipelineContext = Depends(get_context)):
    return {"ok": ctx.require_storage().check_connection()}
