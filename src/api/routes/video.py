from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.deps import current_user, get_context
from src.context import PipelineContext
from src.models import VideoClip
from src.video import (
    CAMERA_MOVEMENTS,
    VIDEO_MODELS,
    check_clip,
    clips_for_video,
    generate_all_clips,
    submit_clip,
    wait_for_clip,
)

router = APIRouter(prefix="/api/video", tags=["video"])


class ClipRequest(BaseModel):
    visual_id: str
    model: str = "veo3.1_fast"
    duration: int = 8
    format: str = "landscape"
    camera_movement: str = "drifting_still"
    prompt: Optional[str] = None


class BatchRequest(BaseModel):
    video_id: str
    model: str = "veo3.1_fast"
    duration: int = 8
    format: str = "landscape"
    camera_movements: Dict[int, str] = Field(default_factory=dict)
    wait: bool = False


@router.get("/options")
def options(_user: str = Depends(current_user)):
    return {"models": list(VIDEO_MODELS), "camera_movements": CAMERA_MOVEMENTS}


@router.post("/generate", response_model=VideoClip)
def generate(body: ClipRequest, ctx: PipelineContext = Depends(get_context)):
    return submit_clip(
        ctx,
        body.visual_id,
        model=body.model,
        duration=body.duration,
        format=body.format,
        camera_movement=body.camera_movement,
        prompt=body.prompt,
    )


@router.get("/status/{clip_id}", response_model=VideoClip)
def status(clip_id: str, ctx: PipelineContext = Depends(get_context)):
    return check_clip(ctx, clip_id)


@router.post("/wait/{clip_id}", response_model=VideoClip)
def wait(clip_id: str, ctx: PipelineContext = Depends(get_context)):
    return wait_for_clip(ctx, clip_id)


@router.post("/generate-all", response_model=List[VideoClip])
def generate_all(body: BatchRequest, ctx: PipelineContext = Depends(get_context)):
    return generate_all_clips(
        ctx,
        body.video_id,
        model=body.model,
        duration=body.duration,
        format=body.format,
        camera_movements=body.camera_movements,
        wait=body.wait,
    )


@router.get("/clips/{video_id}", response_model=List[VideoClip])
def clips(video_id: str, ctx: PipelineContext = Depends(get_context)):
    return clips_for_video(ctx, video_id)
