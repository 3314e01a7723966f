from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.deps import get_context
from src.context import PipelineContext
from src.models import MusicAnalysis, MusicTrack
from src.music import analyze_music, music_selection, save_music_selection, search_tracks

router = APIRouter(prefix="/api/music", tags=["music"])


class AnalyzeRequest(BaseModel):
    script: str


class SearchRequest(BaseModel):
    query: str = ""
    analysis: Optional[MusicAnalysis] = None
    limit: int = Field(20, ge=1, le=100)


class SelectionRequest(BaseModel):
    video_id: str
    track_ids: List[str] = Field(default_factory=list)


@router.post("/analyze", response_model=MusicAnalysis)
def analyze(body: AnalyzeRequest, ctx: PipelineContext = Depends(get_context)):
    return analyze_music(ctx, body.script)


@router.post("/search", response_model=List[MusicTrack])
def search(body: SearchRequest, ctx: PipelineContext = Depends(get_context)):
    return search_tracks(ctx, body.query, body.analysis, body.limit)


@router.post("/selection")
def save_selection(body: SelectionRequest, ctx: PipelineContext = Depends(get_context)):
    return {"track_ids": save_music_selection(ctx, body.video_id, body.track_ids)}


@router.get("/selection/{video_id}")
def selection(video_id: str, ctx: PipelineContext = Depends(get_context)):
    return {"track_ids": music_selection(ctx, video_id)}
