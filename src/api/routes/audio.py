from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.deps import current_user, get_context
from src.audio import PREMADE_VOICES, list_takes, save_take, synthesize_take, tag_script
from src.audio.elevenlabs import DEFAULT_OUTPUT_FORMAT
from src.context import PipelineContext
from src.models import AudioTake, WordTimestamp

router = APIRouter(prefix="/api/audio", tags=["audio"])


class TagRequest(BaseModel):
    script: str


class SynthesizeRequest(BaseModel):
    text: str
    voice_id: str
    output_format: str = DEFAULT_OUTPUT_FORMAT


class SaveRequest(BaseModel):
    video_id: str
    audio_data: str
    tagged_text: str = ""
    voice_id: str = ""
    stability: Optional[float] = None
    timestamps: List[WordTimestamp] = Field(default_factory=list)
    output_format: str = DEFAULT_OUTPUT_FORMAT


@router.get("/voices")
def voices(_user: str = Depends(current_user)):
    return {"voices": PREMADE_VOICES}


@router.post("/tag")
def tag(body: TagRequest, ctx: PipelineContext = Depends(get_context)):
    return {"tagged_script": tag_script(ctx, body.script)}


@router.post("/generate", response_model=AudioTake)
def generate(body: SynthesizeRequest, ctx: PipelineContext = Depends(get_context)):
    return synthesize_take(ctx, body.text, body.voice_id, output_format=body.output_format)


@router.post("/save", response_model=AudioTake)
def save(body: SaveRequest, ctx: PipelineContext = Depends(get_context)):
    return save_take(
        ctx,
        body.video_id,
        body.audio_data,
        tagged_text=body.tagged_text,
        voice_id=body.voice_id,
        stability=body.stability,
        timestamps=body.timestamps,
        output_format=body.output_format,
    )


@router.get("/takes/{video_id}", response_model=List[AudioTake])
def takes(video_id: str, ctx: PipelineContext = Depends(get_context)):
    return list_takes(ctx, video_id)
