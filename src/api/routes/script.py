from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import get_context
from src.context import PipelineContext
from src.errors import NotFoundError
from src.models import Script
from src.script.generate import generate_script, save_script_edit

router = APIRouter(prefix="/api/script", tags=["script"])


class GenerateRequest(BaseModel):
    source_text: str
    duration: str
    tone: str = ""
    additional_prompt: str = ""
    video_id: Optional[str] = None


class EditRequest(BaseModel):
    script: str


class ScriptResponse(BaseModel):
    script: str
    video_id: Optional[str] = None
    script_id: Optional[str] = None


@router.post("/generate", response_model=ScriptResponse)
def generate(body: GenerateRequest, ctx: PipelineContext = Depends(get_context)):
    result = generate_script(
        ctx,
        body.source_text,
        body.duration,
        tone=body.tone,
        additional_prompt=body.additional_prompt,
        video_id=body.video_id,
    )
    return ScriptResponse(script=result.script, video_id=result.video_id, script_id=result.script_id)


@router.get("/{video_id}", response_model=Script)
def get_script(video_id: str, ctx: PipelineContext = Depends(get_context)):
    video, _series = ctx.owned_video(video_id)
    script = ctx.db.get_script_for_video(video.id)
    if script is None:
        raise NotFoundError("Script not found for this video")
    return script


@router.put("/{video_id}", response_model=ScriptResponse)
def edit(video_id: str, body: EditRequest, ctx: PipelineContext = Depends(get_context)):
    result = save_script_edit(ctx, video_id, body.script)
    return ScriptResponse(script=result.script, video_id=result.video_id, script_id=result.script_id)
