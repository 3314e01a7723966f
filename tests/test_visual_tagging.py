import pytest

from src.errors import MalformedOutputError, UpstreamError, ValidationError
from src.visuals import estimate_visuals, parse_markers, save_visual_markers, strip_markers, tag_visuals
from src.visuals.markers import VisualMarker

ORIGINAL = "Rome was founded in 753 BC.\nIt grew quickly."
TAGGED = (
    "(VISUAL 1: Romulus and Remus with the she-wolf | KEYWORD: Capitoline Wolf)\n"
    "Rome was founded in 753 BC. (VISUAL 2: The early city on the Palatine | KEYWORDS: Roman Forum, \"Palatine Hill\")\n"
    "It grew quickly."
)


def test_parse_markers_reads_number_description_and_keywords():
    markers = parse_markers(TAGGED)

    assert [m.number for m in markers] == [1, 2]
    assert markers[0].description == "Romulus and Remus with the she-wolf"
    assert markers[0].keyword == "Capitoline Wolf"
    assert markers[1].keywords == ["Roman Forum", "Palatine Hill"]


def test_strip_markers_restores_the_original_script():
    assert strip_markers(TAGGED) == ORIGINAL
    assert strip_markers("Rome (VISUAL 1: a map | KEYWORD: Rome) was founded.") == "Rome was founded."


def test_keyword_may_contain_parentheses():
    tagged = "The king ruled. (VISUAL 1: A royal portrait | KEYWORD: Louis XIV (king)) He died in 1715."

    markers = parse_markers(tagged)

    assert markers[0].keywords == ["Louis XIV (king)"]
    assert strip_markers(tagged) == "The king ruled. He died in 1715."


def test_estimate_visuals_rounds_half_up_with_a_floor_of_one():
    assert estimate_visuals(" ".join(["word"] * 150)) == 8
    assert estimate_visuals("Too short.") == 1
    assert estimate_visuals(" ".join(["word"] * 150), seconds_per_visual=30) == 2
    with pytest.raises(ValidationError):
        estimate_visuals("text", seconds_per_visual=0)


def test_tag_visuals_retries_with_a_stricter_reminder(ctx, gateway):
    gateway.replies.extend(
        [
            "(VISUAL 1: The wolf | KEYWORD: wolf)\nRome was founded long ago.\nIt grew quickly.",
            TAGGED,
        ]
    )

    result = tag_visuals(ctx, ORIGINAL)

    assert result.text == TAGGED
    assert len(result.markers) == 2
    assert result.target_count == 1
    retry = gateway.calls[1]["messages"]
    assert retry[-2]["role"] == "assistant"
    assert "the script text was changed" in retry[-1]["content"]
    assert gateway.calls[0]["tier"] == "fast"


def test_tag_visuals_gives_up_after_two_bad_replies(ctx, gateway):
    gateway.replies.extend(
        [
            "(VISUAL 2: Out of order | KEYWORD: x)\n" + ORIGINAL,
            ORIGINAL,
        ]
    )

    with pytest.raises(MalformedOutputError) as excinfo:
        tag_visuals(ctx, ORIGINAL)

    assert isinstance(excinfo.value, UpstreamError)
    assert len(gateway.calls) == 2


def test_save_visual_markers_replaces_previous_visuals(ctx, project):
    save_visual_markers(ctx, project.video.id, parse_markers(TAGGED))
    saved = save_visual_markers(
        ctx, project.video.id, [{"number": 1, "description": "Only one now", "keywords": ["Rome"]}]
    )

    assert [v.description for v in saved] == ["Only one now"]
    assert [v.sequence_number for v in ctx.db.list_visuals(project.script.id)] == [1]


def test_save_visual_markers_rejects_gaps(ctx, project):
    with pytest.raises(ValidationError):
        save_visual_markers(
            ctx,
            project.video.id,
            [VisualMarker(number=1, description="a"), VisualMarker(number=3, description="c")],
        )
