from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from src.api.deps import get_context
from src.context import PipelineContext
from src.models import CalendarSlot, Series, Video
from src.planner import (
    build_slots,
    create_series,
    delete_series,
    generate_calendar,
    generate_single,
    lucky_topic,
    platform_breakdown,
)
from src.planner.calendar import HORIZON_WEEKS

router = APIRouter(prefix="/api/planner", tags=["planner"])


class SeriesRequest(BaseModel):
    topic: str = ""


class SlotsRequest(BaseModel):
    platforms: List[str]
    weekly_goal: int = Field(..., ge=1)
    horizon: str = "1_month"
    start: Optional[datetime] = None


class SlotsResponse(BaseModel):
    breakdown: dict[str, int]
    slots: List[CalendarSlot]


class CalendarRequest(SlotsRequest):
    series_id: str
    topic: str
    slots: Optional[List[CalendarSlot]] = None


class SingleRequest(BaseModel):
    series_id: str
    topic: str
    format: str
    scheduled_date: Optional[str] = None
    existing_titles: List[str] = Field(default_factory=list)
    existing_id: Optional[str] = None


@router.get("/series", response_model=List[Series])
def list_series(ctx: PipelineContext = Depends(get_context)):
    return ctx.db.list_series(ctx.user_id)


@router.post("/series", response_model=Series)
def new_series(body: SeriesRequest, ctx: PipelineContext = Depends(get_context)):
    return create_series(ctx, body.topic)


@router.delete("/series/{series_id}")
def remove_series(series_id: str, ctx: PipelineContext = Depends(get_context)):
    delete_series(ctx, series_id)
    return {"deleted": series_id}


@router.get("/series/{series_id}/videos", response_model=List[Video])
def series_videos(series_id: str, ctx: PipelineContext = Depends(get_context)):
    series = ctx.owned_series(series_id)
    return ctx.db.list_videos(series.id)


@router.post("/slots", response_model=SlotsResponse)
def preview_slots(body: SlotsRequest, ctx: PipelineContext = Depends(get_context)):
    total = body.weekly_goal * HORIZON_WEEKS.get(body.horizon, 0)
    slots = build_slots(body.weekly_goal, body.horizon, body.platforms, start=body.start)
    return SlotsResponse(breakdown=platform_breakdown(total, body.platforms), slots=slots)


@router.post("/generate", response_model=List[CalendarSlot])
def generate(body: CalendarRequest, ctx: PipelineContext = Depends(get_context)):
    return generate_calendar(
        ctx,
        body.series_id,
        body.topic,
        body.platforms,
        body.weekly_goal,
        body.horizon,
        slots=body.slots,
        start=body.start,
    )


@router.post("/generate-single", response_model=Video)
def generate_one(body: SingleRequest, ctx: PipelineContext = Depends(get_context)):
    return generate_single(
        ctx,
        body.series_id,
        body.topic,
        body.format,
        body.scheduled_date,
        existing_titles=body.existing_titles,
        existing_id=body.existing_id,
    )


@router.post("/lucky")
def feeling_lucky(ctx: PipelineContext = Depends(get_context)):
    return {"topic": lucky_topic(ctx)}
