from datetime import datetime, timedelta

import pytest

from src.errors import AuthorizationError, MalformedOutputError, ValidationError
from src.models import CalendarSlot
from src.planner import build_slots, create_series, delete_series, generate_calendar, generate_single, lucky_topic, platform_breakdown

START = datetime(2026, 1, 5, 9, 0)
PLATFORMS = ["youtube", "tiktok", "youtube_short"]


def test_platform_breakdown_youtube_takes_a_quarter():
    assert platform_breakdown(16, PLATFORMS) == {"youtube": 4, "tiktok": 6, "youtube_short": 6}


def test_platform_breakdown_remainder_goes_to_earlier_platforms():
    assert platform_breakdown(7, ["tiktok", "youtube_short"]) == {"tiktok": 4, "youtube_short": 3}
    assert platform_breakdown(3, ["youtube"]) == {"youtube": 3}


def test_platform_breakdown_youtube_gets_at_least_one():
    breakdown = platform_breakdown(2, ["youtube", "tiktok"])

    assert breakdown == {"youtube": 1, "tiktok": 1}
    assert sum(breakdown.values()) == 2


def test_platform_breakdown_rounds_half_up():
    # 10 / 4 = 2.5
    assert platform_breakdown(10, ["youtube", "tiktok"])["youtube"] == 3


SUBSETS = [
    ["youtube"],
    ["tiktok"],
    ["youtube_short"],
    ["youtube", "tiktok"],
    ["youtube", "youtube_short"],
    ["tiktok", "youtube_short"],
    ["youtube", "tiktok", "youtube_short"],
]


@pytest.mark.parametrize("platforms", SUBSETS)
@pytest.mark.parametrize("total", range(1, 51))
def test_platform_breakdown_counts_always_add_up(total, platforms):
    breakdown = platform_breakdown(total, platforms)

    assert list(breakdown) == platforms
    assert sum(breakdown.values()) == total
    assert all(count >= 0 for count in breakdown.values())
    if "youtube" in platforms:
        assert breakdown["youtube"] >= 1


def test_month_of_youtube_and_tiktok_at_four_a_week():
    slots = build_slots(4, "1_month", ["youtube", "tiktok"], start=START)
    formats = [s.format for s in slots]

    assert platform_breakdown(16, ["youtube", "tiktok"]) == {"youtube": 4, "tiktok": 12}
    assert formats.count("youtube") == 4
    assert formats.count("tiktok") == 12
    assert len({s.scheduled_date for s in slots}) == 16


@pytest.mark.parametrize("total,platforms", [(0, ["youtube"]), (4, []), (4, ["myspace"])])
def test_platform_breakdown_rejects_bad_input(total, platforms):
    with pytest.raises(ValidationError):
        platform_breakdown(total, platforms)


def test_build_slots_spreads_over_the_horizon():
    slots = build_slots(4, "1_month", PLATFORMS, start=START)

    assert len(slots) == 16
    assert [s.scheduled_date for s in slots] == sorted(s.scheduled_date for s in slots)
    assert slots[0].scheduled_date == START
    assert slots[-1].scheduled_date < START + timedelta(days=28)
    assert (slots[-1].scheduled_date - slots[0].scheduled_date).days == 26
    formats = [s.format for s in slots]
    assert formats.count("youtube") == 4
    assert formats.count("tiktok") == 6
    assert formats[:3] == ["youtube", "tiktok", "youtube_short"]


def test_build_slots_unknown_horizon():
    with pytest.raises(ValidationError):
        build_slots(2, "1_year", ["youtube"], start=START)


def test_generate_calendar_fills_slots_and_persists_videos(ctx, gateway):
    series = create_series(ctx)
    gateway.structured.append(
        [{"index": i, "title": f"Rome part {i}", "description": f"Episode {i}"} for i in range(16) if i != 5]
    )

    slots = generate_calendar(ctx, series.id, "The Roman Empire", PLATFORMS, 4, "1_month", start=START)

    assert len(slots) == 16
    assert all(s.video_id for s in slots)
    by_index = {s.index: s for s in slots}
    assert by_index[0].title == "Rome part 0"
    assert by_index[5].title == "The Roman Empire - Part 6"
    assert ctx.db.get_series(series.id).topic == "The Roman Empire"
    videos = ctx.db.list_videos(series.id)
    assert len(videos) == 16
    assert sum(v.format == "youtube" for v in videos) == 4
    assert len(gateway.calls) == 1
    assert gateway.calls[0]["tier"] == "balanced"


def test_generate_calendar_keeps_titled_slots_and_falls_back_on_malformed_reply(ctx, gateway):
    series = create_series(ctx, "Vikings")
    slots = [
        CalendarSlot(index=0, format="youtube", scheduled_date=START, title="Lindisfarne"),
        CalendarSlot(index=1, format="tiktok", scheduled_date=START + timedelta(days=3)),
    ]
    gateway.structured.append(MalformedOutputError("bad", service="Text generation", upstream_status=200))

    result = generate_calendar(ctx, series.id, "Vikings", ["youtube", "tiktok"], 1, "1_week", slots=slots)

    assert [s.title for s in result] == ["Lindisfarne", "Vikings - Part 2"]
    assert "Lindisfarne" in gateway.calls[0]["messages"][0]["content"]
    assert len(ctx.db.list_videos(series.id)) == 2


def test_generate_calendar_other_users_series_is_forbidden(ctx, gateway):
    other = ctx.db.create_series("someone-else", "Theirs")

    with pytest.raises(AuthorizationError):
        generate_calendar(ctx, other.id, "Mine", ["youtube"], 1, "1_week", start=START)
    assert gateway.calls == []


def test_generate_single_excludes_titles_and_updates_existing(ctx, gateway):
    series = create_series(ctx, "Aztecs")
    gateway.structured.append({"title": "The Fall of Tenochtitlan", "description": "1521"})
    created = generate_single(ctx, series.id, "Aztecs", "tiktok", "2026-02-01", existing_titles=["Moctezuma"])

    assert created.title == "The Fall of Tenochtitlan"
    assert created.format == "tiktok"
    assert "Moctezuma" in gateway.calls[0]["messages"][0]["content"]

    gateway.structured.append({"title": "Chinampas", "description": "Floating gardens"})
    updated = generate_single(ctx, series.id, "Aztecs", "tiktok", None, existing_id=created.id)

    assert updated.id == created.id
    assert updated.title == "Chinampas"
    assert len(ctx.db.list_videos(series.id)) == 1


def test_generate_single_rejects_unknown_format(ctx):
    series = create_series(ctx, "Aztecs")

    with pytest.raises(ValidationError):
        generate_single(ctx, series.id, "Aztecs", "vine", None)


def test_lucky_topic_strips_quotes(ctx, gateway):
    gateway.replies.append('"The Silk Road"\n')

    assert lucky_topic(ctx) == "The Silk Road"


def test_delete_series_requires_ownership(ctx):
    other = ctx.db.create_series("someone-else", "Theirs")

    with pytest.raises(AuthorizationError):
        delete_series(ctx, other.id)
    assert ctx.db.get_series(other.id) is not None
