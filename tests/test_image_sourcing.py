from io import BytesIO
from types import SimpleNamespace

import pytest
from PIL import Image

import src.supabase_storage as storage_mod
import src.visuals.images as images
from src.errors import ConfigurationError, NotFoundError, ValidationError
from src.models import UserSettings
from src.visuals import apply_filter, choose_variant, generate_image, proceed_ready, save_image, save_visual_markers, upload_image
from src.visuals.markers import VisualMarker
from src.visuals.sourcing import inspect_image


def _png(width: int = 64, height: int = 36, color=(120, 80, 40)) -> bytes:
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


class DummyResp:
    def __init__(self, status_code: int, content: bytes = b"", headers: dict | None = None, text: str = ""):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}
        self.text = text


class FakeGenaiClient:
    """Stands in for ``genai.Client``; records every generate_content call."""

    calls: list = []
    image: bytes = b""

    def __init__(self, api_key):
        self.api_key = api_key
        self.models = SimpleNamespace(generate_content=self._generate)

    def _generate(self, model, contents, config):
        FakeGenaiClient.calls.append({"api_key": self.api_key, "model": model, "contents": contents, "config": config})
        part = SimpleNamespace(inline_data=SimpleNamespace(data=FakeGenaiClient.image, mime_type="image/png"))
        return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


@pytest.fixture
def visuals(ctx, project):
    save_visual_markers(
        ctx,
        project.video.id,
        [VisualMarker(1, "Caesar crossing the Rubicon", ["Rubicon"]), VisualMarker(2, "The Senate", ["Curia"])],
    )
    return project


@pytest.fixture
def genai_client(monkeypatch):
    FakeGenaiClient.calls = []
    FakeGenaiClient.image = _png(160, 90, (10, 10, 10))
    monkeypatch.setattr(images.genai, "Client", FakeGenaiClient)
    return FakeGenaiClient


def test_inspect_image_reads_mime_and_size():
    assert inspect_image(_png(64, 36)) == ("image/png", 64, 36)
    with pytest.raises(ValidationError):
        inspect_image(b"definitely not an image")


def test_upload_image_stores_and_selects(ctx, visuals, blob_store):
    variant = upload_image(ctx, visuals.video.id, 1, _png())

    assert variant.is_selected
    assert not variant.is_ai_generated
    path = ctx.blob_store.path_from_url(variant.source_url)
    assert "/images/visual_1_upload_" in path
    assert path.endswith(".png")
    assert blob_store.objects[path][1] == "image/png"
    assert ctx.db.get_video(visuals.video.id).status == "image"


def test_upload_image_unknown_visual(ctx, visuals):
    with pytest.raises(NotFoundError):
        upload_image(ctx, visuals.video.id, 9, _png())


def test_save_image_copies_external_url_into_storage(monkeypatch, ctx, visuals):
    fetched = []

    def fake_get(url, timeout, headers):
        fetched.append(url)
        return DummyResp(200, content=_png(), headers={"Content-Type": "image/jpeg; charset=binary"})

    monkeypatch.setattr(storage_mod.requests, "get", fake_get)

    variant = save_image(ctx, visuals.video.id, 1, "https://upload.wikimedia.org/rubicon.jpg")

    assert fetched == ["https://upload.wikimedia.org/rubicon.jpg"]
    assert ctx.blob_store.path_from_url(variant.source_url).endswith(".jpg")
    assert variant.is_selected


def test_selection_is_exclusive_and_proceed_needs_every_visual(ctx, visuals):
    first = upload_image(ctx, visuals.video.id, 1, _png(color=(1, 2, 3)))
    second = upload_image(ctx, visuals.video.id, 1, _png(color=(4, 5, 6)))

    assert not proceed_ready(ctx, visuals.video.id)
    upload_image(ctx, visuals.video.id, 2, _png())
    assert proceed_ready(ctx, visuals.video.id)

    chosen = choose_variant(ctx, visuals.video.id, 1, first.id)
    visual = ctx.db.get_visual_by_number(visuals.script.id, 1)
    selected = [v.id for v in ctx.db.list_variants(visual.id) if v.is_selected]
    assert chosen.id == first.id
    assert selected == [first.id]
    assert second.id != first.id


def test_generate_image_uses_style_and_marks_ai(ctx, visuals, genai_client, blob_store):
    variant = generate_image(ctx, visuals.video.id, 1, "Caesar at the river", style="map_style", aspect_ratio="4:3")

    assert variant.is_ai_generated
    assert variant.is_selected
    call = genai_client.calls[0]
    assert call["api_key"] == "gem-test-key"
    assert call["model"] == images.IMAGE_MODEL
    assert call["config"]["image_config"] == {"aspect_ratio": "4:3"}
    assert "Caesar at the river" in call["contents"]
    assert images.STYLE_PRESETS["map_style"] in call["contents"]
    assert "/images/visual_1_ai_" in ctx.blob_store.path_from_url(variant.source_url)


def test_generate_image_validates_before_calling_upstream(ctx, visuals, genai_client):
    with pytest.raises(ValidationError):
        generate_image(ctx, visuals.video.id, 1, "Caesar", style="anime")
    with pytest.raises(ValidationError):
        generate_image(ctx, visuals.video.id, 1, "Caesar", aspect_ratio="21:9")

    ctx.settings = UserSettings(user_id=ctx.user_id)
    with pytest.raises(ConfigurationError):
        generate_image(ctx, visuals.video.id, 1, "Caesar")
    assert genai_client.calls == []


def test_apply_filter_records_processed_image(ctx, visuals, genai_client, blob_store):
    original = upload_image(ctx, visuals.video.id, 1, _png(160, 90))

    filtered = apply_filter(ctx, visuals.video.id, 1, image_url=original.source_url, instructions="warm light")

    assert filtered.id == original.id
    assert filtered.source_url == original.source_url
    assert filtered.filters == ["photorealistic"]
    assert filtered.display_url == filtered.processed_url
    assert "/images/visual_1_photo_" in ctx.blob_store.path_from_url(filtered.processed_url)
    call = genai_client.calls[0]
    assert call["config"]["image_config"] == {"aspect_ratio": "16:9"}
    assert "warm light" in call["contents"][1]


def test_apply_filter_requires_the_selected_image(ctx, visuals, genai_client):
    upload_image(ctx, visuals.video.id, 1, _png())

    with pytest.raises(ValidationError):
        apply_filter(ctx, visuals.video.id, 1, image_url="https://elsewhere.test/x.png")
    with pytest.raises(ValidationError):
        apply_filter(ctx, visuals.video.id, 1, filter_type="sepia")
    assert genai_client.calls == []
