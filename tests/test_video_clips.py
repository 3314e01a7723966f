import base64

import pytest

import src.video.clips as clips
from src.errors import UpstreamError, ValidationError
from src.visuals import save_visual_markers
from src.visuals.markers import VisualMarker

OPERATION = "models/veo-3.1-fast-generate-preview/operations/op-123"
VIDEO_URI = "https://generativelanguage.googleapis.com/v1beta/files/clip:download?alt=media"


class DummyResp:
    def __init__(self, status_code: int, body: dict | None = None, text: str = "", content: bytes = b""):
        self.status_code = status_code
        self._body = body or {}
        self.text = text
        self.content = content

    def json(self):
        return self._body


def _done(uri: str = VIDEO_URI) -> dict:
    return {
        "name": OPERATION,
        "done": True,
        "response": {"generateVideoResponse": {"generatedSamples": [{"video": {"uri": uri}}]}},
    }


@pytest.fixture
def visuals(ctx, project, blob_store):
    saved = save_visual_markers(
        ctx,
        project.video.id,
        [VisualMarker(1, "Legions march on Rome", ["Legion"]), VisualMarker(2, "The Senate debates", ["Curia"])],
    )
    for visual in saved:
        url = blob_store.put(f"images/visual_{visual.sequence_number}.png", b"png-bytes", "image/png")
        variant = ctx.db.upsert_variant(visual.id, url)
        ctx.db.select_variant(visual.id, variant.id)
    return saved


@pytest.fixture
def veo(monkeypatch):
    state = {"posts": [], "gets": [], "post": None, "operation": {"name": OPERATION, "done": False}}

    def fake_post(url, json, headers, timeout):
        state["posts"].append({"url": url, "json": json, "headers": headers})
        return state["post"] or DummyResp(200, {"name": OPERATION})

    def fake_get(url, headers=None, timeout=None):
        state["gets"].append(url)
        if url == VIDEO_URI:
            return DummyResp(200, content=b"mp4-bytes")
        return DummyResp(200, state["operation"])

    monkeypatch.setattr(clips.requests, "post", fake_post)
    monkeypatch.setattr(clips.requests, "get", fake_get)
    return state


def test_build_clip_prompt_includes_camera_and_audio_guidance():
    prompt = clips.build_clip_prompt("Legions march on Rome.", "dolly_in")

    assert prompt.startswith("Legions march on Rome. Camera: slow dolly in towards subject.")
    assert "no music" in prompt


def test_submit_clip_posts_image_and_marks_processing(ctx, project, visuals, veo):
    clip = clips.submit_clip(ctx, visuals[0].id, model="veo3.1", duration=6, format="portrait", camera_movement="pan_left")

    assert clip.status == "processing"
    assert clip.operation_id == OPERATION
    assert clip.model == "veo3.1"
    post = veo["posts"][0]
    assert post["url"].endswith("/models/veo-3.1-generate-preview:predictLongRunning")
    assert post["headers"]["x-goog-api-key"] == "gem-test-key"
    instance = post["json"]["instances"][0]
    assert base64.b64decode(instance["image"]["bytesBase64Encoded"]) == b"png-bytes"
    assert instance["image"]["mimeType"] == "image/png"
    assert "slow camera pan from right to left" in instance["prompt"]
    assert post["json"]["parameters"]["aspectRatio"] == "9:16"
    assert post["json"]["parameters"]["durationSeconds"] == 6
    assert ctx.db.get_video(project.video.id).status == "video"


@pytest.mark.parametrize(
    "options",
    [{"model": "sora"}, {"duration": 5}, {"format": "square"}, {"camera_movement": "barrel_roll"}],
)
def test_submit_clip_rejects_bad_options(ctx, visuals, veo, options):
    with pytest.raises(ValidationError):
        clips.submit_clip(ctx, visuals[0].id, **options)
    assert veo["posts"] == []


def test_submit_clip_failure_is_recorded_then_raised(ctx, visuals, veo):
    veo["post"] = DummyResp(429, text="quota exceeded")

    with pytest.raises(UpstreamError) as excinfo:
        clips.submit_clip(ctx, visuals[0].id)

    assert excinfo.value.upstream_status == 429
    stored = ctx.db.get_clip_for_visual(visuals[0].id)
    assert stored.status == "failed"
    assert "quota exceeded" in stored.error


def test_check_clip_progress_then_completion(ctx, project, visuals, veo, blob_store):
    clip = clips.submit_clip(ctx, visuals[0].id)

    pending = clips.check_clip(ctx, clip.id)
    assert pending.status == "processing"
    assert pending.progress == 5

    veo["operation"] = _done()
    done = clips.check_clip(ctx, clip.id)

    assert done.status == "completed"
    assert done.progress == 100
    path = ctx.blob_store.path_from_url(done.url)
    assert path.startswith(f"{ctx.user_id}/series/{project.series.id}/videos/{project.video.id}/clips/clip_1_")
    assert blob_store.objects[path] == (b"mp4-bytes", "video/mp4")

    veo["gets"].clear()
    assert clips.check_clip(ctx, clip.id).status == "completed"
    assert veo["gets"] == []


def test_check_clip_upstream_operation_error(ctx, visuals, veo):
    clip = clips.submit_clip(ctx, visuals[0].id)
    veo["operation"] = {"name": OPERATION, "done": True, "error": {"message": "content policy"}}

    failed = clips.check_clip(ctx, clip.id)

    assert failed.status == "failed"
    assert failed.error == "Video generation failed: content policy"


def test_wait_for_clip_times_out(ctx, visuals, veo):
    clip = clips.submit_clip(ctx, visuals[0].id)
    now = [0.0]
    sleeps = []

    def sleep(seconds):
        sleeps.append(seconds)
        now[0] += seconds

    result = clips.wait_for_clip(ctx, clip.id, interval=10, timeout=60, sleep=sleep, clock=lambda: now[0])

    assert result.status == "failed"
    assert result.error == clips.TIMEOUT_MESSAGE
    assert sleeps == [10] * 6


def test_generate_all_clips_skips_existing_and_waits(ctx, project, visuals, veo):
    ctx.db.upsert_clip(visuals[0].id, status="completed", url="https://done.test/1.mp4", progress=100)
    veo["operation"] = _done()
    sleeps = []

    result = clips.generate_all_clips(ctx, project.video.id, sleep=sleeps.append)

    assert len(veo["posts"]) == 1
    assert [c.status for c in result] == ["completed", "completed"]
    assert result[1].url.startswith("https://store.test/")


def test_submit_clip_connection_error_is_recorded_as_upstream(ctx, visuals, monkeypatch):
    def refuse(*args, **kwargs):
        raise clips.requests.ConnectionError("connection refused")

    monkeypatch.setattr(clips.requests, "post", refuse)

    with pytest.raises(UpstreamError) as excinfo:
        clips.submit_clip(ctx, visuals[0].id)

    assert excinfo.value.upstream_status == 0
    assert excinfo.value.service == "Veo"
    assert ctx.db.get_clip_for_visual(visuals[0].id).status == "failed"


def test_generate_all_clips_marks_clip_failed_when_poll_drops(ctx, project, visuals, veo, monkeypatch):
    def reset(url, headers=None, timeout=None):
        raise clips.requests.ConnectionError("connection reset")

    monkeypatch.setattr(clips.requests, "get", reset)

    result = clips.generate_all_clips(ctx, project.video.id, sleep=lambda _s: None)

    assert len(veo["posts"]) == 2
    assert [c.status for c in result] == ["failed", "failed"]
    assert "unreachable" in result[0].error
