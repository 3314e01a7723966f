"""Content calendar planning: platform breakdown, slots and idea generation."""
from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel

from src.errors import AuthorizationError, MalformedOutputError, NotFoundError, ValidationError, require
from src.models import VIDEO_FORMATS, CalendarSlot, Series, Video
from src.prompts import fill_template
from src.storage import new_id

logger = logging.getLogger(__name__)

HORIZON_WEEKS = {"1_week": 1, "1_month": 4, "3_months": 12}

FORMAT_LABELS = {
    "youtube": "YouTube long-form video (10-20 minutes)",
    "youtube_short": "YouTube Short (under 60 seconds)",
    "tiktok": "TikTok video (15-60 seconds)",
}

LUCKY_SYSTEM = (
    "You are a creative documentary producer. Suggest one compelling topic for a YouTube "
    "documentary series. Be specific but not overly narrow. Reply with the topic only, no explanation."
)


class SlotIdea(BaseModel):
    index: int
    title: str
    description: str = ""


class VideoIdea(BaseModel):
    title: str
    description: str = ""


def _split_evenly(total: int, platforms: Sequence[str]) -> dict[str, int]:
    per_platform, remainder = divmod(total, len(platforms))
    return {p: per_platform + (1 if i < remainder else 0) for i, p in enumerate(platforms)}


def platform_breakdown(total: int, platforms: Iterable[str]) -> dict[str, int]:
    """Split ``total`` videos across ``platforms``.

    With youtube and at least one other platform, youtube takes a quarter
    (at least one) and the rest is split evenly, earlier platforms taking the
    remainder. Pure function: the same inputs always give the same counts.
    """
    ordered = list(dict.fromkeys(platforms or []))
    if total < 1:
        raise ValidationError("Total number of videos must be at least 1")
    if not ordered:
        raise ValidationError("Select at least one platform")
    unknown = [p for p in ordered if p not in VIDEO_FORMATS]
    if unknown:
        raise ValidationError(f"Unknown platform(s): {', '.join(unknown)}")

    others = [p for p in ordered if p != "youtube"]
    if "youtube" not in ordered:
        return _split_evenly(total, others)
    if not others:
        return {"youtube": total}

    youtube_count = max(1, math.floor(total / 4 + 0.5))
    breakdown = {"youtube": youtube_count}
    breakdown.update(_split_evenly(total - youtube_count, others))
    return breakdown


def _interleave(breakdown: dict[str, int]) -> list[str]:
    remaining = dict(breakdown)
    formats: list[str] = []
    while any(remaining.values()):
        for fmt in breakdown:
            if remaining[fmt] > 0:
                formats.append(fmt)
                remaining[fmt] -= 1
    return formats


def build_slots(
    weekly_goal: int,
    horizon: str,
    platforms: Iterable[str],
    start: Optional[datetime] = None,
) -> List[CalendarSlot]:
    if horizon not in HORIZON_WEEKS:
        raise ValidationError(f"Unknown time horizon '{horizon}'. Use one of: {', '.join(HORIZON_WEEKS)}")
    if weekly_goal < 1:
        raise ValidationError("Weekly goal must be at least 1")

    weeks = HORIZON_WEEKS[horizon]
    total = weekly_goal * weeks
    formats = _interleave(platform_breakdown(total, platforms))

    start = (start or datetime.now()).replace(second=0, microsecond=0)
    step = timedelta(days=weeks * 7) / total
    slots = [
        CalendarSlot(index=i, format=fmt, scheduled_date=start + step * i)
        for i, fmt in enumerate(formats)
    ]
    return sorted(slots, key=lambda s: s.scheduled_date)


def _placeholder(topic: str, slot: CalendarSlot) -> tuple[str, str]:
    label = FORMAT_LABELS.get(slot.format, slot.format)
    return f"{topic} - Part {slot.index + 1}", f"A {label} about {topic}."


def _check_slot_video(ctx, series: Series, video_id: str) -> Video:
    video = ctx.db.get_video(video_id)
    if video is None:
        raise NotFoundError(f"Video {video_id} not found")
    if video.series_id != series.id:
        raise AuthorizationError("Video does not belong to this series")
    return video


def _persist_slot(ctx, series: Series, slot: CalendarSlot) -> Video:
    scheduled = slot.scheduled_date.isoformat()
    if slot.video_id:
        return ctx.db.update_video(
            slot.video_id,
            title=slot.title,
            description=slot.description,
            format=slot.format,
            scheduled_date=scheduled,
        )
    return ctx.db.insert_video(
        Video(
            id=new_id(),
            series_id=series.id,
            title=slot.title,
            description=slot.description,
            format=slot.format,
            scheduled_date=scheduled,
        )
    )


def _request_ideas(ctx, topic: str, horizon: str, empty: List[CalendarSlot], existing: List[str]) -> dict[int, SlotIdea]:
    prompts = ctx.prompts()
    user_prompt = fill_template(
        prompts["planner_user"],
        {
            "topic": topic,
            "weeks": HORIZON_WEEKS.get(horizon, 1),
            "count": len(empty),
            "slots": "\n".join(
                f"- index {s.index}: {FORMAT_LABELS.get(s.format, s.format)}, scheduled {s.scheduled_date:%Y-%m-%d}"
                for s in empty
            ),
            "existing": "\n".join(f"- {t}" for t in dict.fromkeys(existing)) or "(none)",
        },
    )

    ideas: dict[int, SlotIdea] = {}
    try:
        replies = ctx.gateway.invoke_structured(
            "balanced",
            prompts["planner_system"],
            [{"role": "user", "content": user_prompt}],
            List[SlotIdea],
            max_tokens=8192,
        )
    except MalformedOutputError as exc:
        logger.warning("Planner reply unusable, using placeholder ideas: %s", exc.message)
        return ideas

    wanted = {s.index for s in empty}
    for idea in replies:
        if idea.index in wanted and idea.title.strip() and idea.index not in ideas:
            ideas[idea.index] = idea
    return ideas


def generate_calendar(
    ctx,
    series_id: str,
    topic: str,
    platforms: Iterable[str],
    weekly_goal: int,
    horizon: str,
    slots: Optional[List[CalendarSlot]] = None,
    start: Optional[datetime] = None,
) -> List[CalendarSlot]:
    """Fill every empty slot with an idea and persist one video per slot.

    Slots that already carry a title keep it. All empty slots are covered by a
    single model call; any slot the model leaves out (or a reply that never
    validates) gets placeholder content instead of failing the batch.
    """
    topic = require((topic or "").strip(), "Topic is required")
    require(series_id, "Series ID is required")
    series = ctx.owned_series(series_id)

    if slots is None:
        slots = build_slots(weekly_goal, horizon, list(platforms or []), start=start)
    else:
        slots = [s.model_copy() for s in slots]
    for slot in slots:
        if slot.video_id:
            _check_slot_video(ctx, series, slot.video_id)

    if series.topic != topic:
        ctx.db.update_series_topic(series.id, topic)

    empty = [s for s in slots if s.is_empty]
    ideas: dict[int, SlotIdea] = {}
    if empty:
        existing = [s.title for s in slots if not s.is_empty]
        existing.extend(v.title for v in ctx.db.list_videos(series.id) if v.title)
        ideas = _request_ideas(ctx, topic, horizon, empty, existing)

    for slot in slots:
        needs_row = slot.is_empty or not slot.video_id
        if slot.is_empty:
            idea = ideas.get(slot.index)
            if idea is not None:
                slot.title, slot.description = idea.title.strip(), idea.description.strip()
            else:
                slot.title, slot.description = _placeholder(topic, slot)
        if needs_row:
            slot.video_id = _persist_slot(ctx, series, slot).id

    logger.info(
        "Planned %d slot(s) for series %s (%d from the model, %d placeholders)",
        len(empty),
        series.id,
        len(ideas),
        len(empty) - len(ideas),
    )
    return sorted(slots, key=lambda s: s.scheduled_date)


def generate_single(
    ctx,
    series_id: str,
    topic: str,
    format: str,
    scheduled_date: Optional[str],
    existing_titles: Optional[Iterable[str]] = None,
    existing_id: Optional[str] = None,
) -> Video:
    """Generate one idea, avoiding ``existing_titles``; update or insert a video row."""
    topic = require((topic or "").strip(), "Topic is required")
    require(series_id, "Series ID is required")
    if format not in VIDEO_FORMATS:
        raise ValidationError(f"Unknown format '{format}'")
    series = ctx.owned_series(series_id)
    if existing_id:
        _check_slot_video(ctx, series, existing_id)

    titles = [t for t in (existing_titles or []) if t and t.strip()]
    exclusions = ""
    if titles:
        exclusions = "\n\nIMPORTANT: Do NOT reuse any of these titles or close variations of them:\n" + "\n".join(
            f"- {t}" for t in titles
        )

    prompts = ctx.prompts()
    user_prompt = fill_template(
        prompts["planner_single_user"],
        {"topic": topic, "format": FORMAT_LABELS[format], "exclusions": exclusions},
    )
    try:
        idea = ctx.gateway.invoke_structured(
            "fast",
            prompts["planner_single_system"],
            [{"role": "user", "content": user_prompt}],
            VideoIdea,
            max_tokens=500,
        )
    except MalformedOutputError as exc:
        logger.warning("Single idea reply unusable, using placeholder: %s", exc.message)
        idea = VideoIdea(title=f"{topic} - {format}", description=f"A video about {topic}")

    if existing_id:
        return ctx.db.update_video(existing_id, title=idea.title.strip(), description=idea.description.strip())
    return ctx.db.insert_video(
        Video(
            id=new_id(),
            series_id=series.id,
            title=idea.title.strip(),
            description=idea.description.strip(),
            format=format,
            scheduled_date=scheduled_date,
        )
    )


def lucky_topic(ctx) -> str:
    reply = ctx.gateway.invoke(
        "fast",
        LUCKY_SYSTEM,
        [{"role": "user", "content": "Suggest one interesting documentary topic."}],
        max_tokens=100,
        temperature=1.0,
    )
    return reply.strip().strip('"').strip()


def create_series(ctx, topic: str = "") -> Series:
    series = ctx.db.create_series(ctx.user_id, (topic or "").strip())
    logger.info("Created series %s for user %s", series.id, ctx.user_id)
    return series


def delete_series(ctx, series_id: str) -> None:
    series = ctx.owned_series(series_id)
    ctx.db.delete_series(series.id)
    logger.info("Deleted series %s and all of its videos", series.id)
