import pytest

from src.errors import AuthorizationError, ValidationError
from src.models import Video
from src.prompts import DEFAULT_PROMPTS
from src.script.generate import generate_script, save_script_edit
from src.storage import new_id


def test_generate_script_preview_does_not_persist(ctx, gateway):
    gateway.replies.append("  In 1453 the walls fell.  ")

    result = generate_script(ctx, "Constantinople notes", "60s", tone="mike_duncan")

    assert result.script == "In 1453 the walls fell."
    assert result.script_id is None
    call = gateway.calls[0]
    assert call["tier"] == "best"
    assert DEFAULT_PROMPTS["tone_mike_duncan"] in call["system"]
    assert "Constantinople notes" in call["messages"][0]["content"]
    assert "60s" in call["messages"][0]["content"]


def test_generate_script_saves_and_advances_status(ctx, gateway):
    series = ctx.db.create_series(ctx.user_id, "Ottomans")
    video = ctx.db.insert_video(Video(id=new_id(), series_id=series.id, title="1453"))
    gateway.replies.append("First draft.")

    result = generate_script(ctx, "notes", "2min", additional_prompt="Mention Mehmed", video_id=video.id)

    assert result.script_id is not None
    assert ctx.db.get_script_for_video(video.id).generated_script == "First draft."
    assert ctx.db.get_video(video.id).status == "scripting"
    assert "Additional instructions: Mention Mehmed" in gateway.calls[0]["messages"][0]["content"]

    gateway.replies.append("Second draft.")
    again = generate_script(ctx, "notes", "2min", video_id=video.id)

    assert again.script_id == result.script_id
    assert ctx.db.get_script_for_video(video.id).generated_script == "Second draft."


def test_generate_script_checks_ownership_before_calling_model(ctx, gateway):
    series = ctx.db.create_series("another-user", "Theirs")
    video = ctx.db.insert_video(Video(id=new_id(), series_id=series.id))

    with pytest.raises(AuthorizationError):
        generate_script(ctx, "notes", "60s", video_id=video.id)
    assert gateway.calls == []


@pytest.mark.parametrize("source,duration", [("", "60s"), ("notes", ""), ("notes", "3h")])
def test_generate_script_validates_input(ctx, source, duration):
    with pytest.raises(ValidationError):
        generate_script(ctx, source, duration)


def test_save_script_edit_overwrites_text(ctx, project):
    result = save_script_edit(ctx, project.video.id, "Edited by hand.")

    assert result.script_id == project.script.id
    assert ctx.db.get_script_for_video(project.video.id).generated_script == "Edited by hand."
