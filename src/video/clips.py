"""Image-to-video clips with Google Veo.

Each visual's selected image is submitted to Veo's ``predictLongRunning``
endpoint. The returned operation is polled until done, and the finished MP4 is
copied into object storage.

Clip states: ``pending -> processing -> completed | failed``.
"""
from __future__ import annotations

import base64
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Mapping, Optional

import requests

from src.errors import HistoryMakerError, NotFoundError, UpstreamError, ValidationError, require
from src.models import VideoClip
from src.supabase_storage import asset_path, read_url

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"

VIDEO_MODELS = {
    "veo3.1_fast": "veo-3.1-fast-generate-preview",
    "veo3.1": "veo-3.1-generate-preview",
}
DURATIONS = (4, 6, 8)
FORMATS = {"landscape": "16:9", "portrait": "9:16"}

CAMERA_MOVEMENTS = {
    "drifting_still": "static camera with subtle drift",
    "dolly_in": "slow dolly in towards subject",
    "dolly_out": "slow dolly out from subject",
    "pan_left": "slow camera pan from right to left",
    "pan_right": "slow camera pan from left to right",
    "tilt_up": "slow camera tilt upward",
    "tilt_down": "slow camera tilt downward",
    "zoom_in": "slow zoom in on subject",
    "zoom_out": "slow zoom out from subject",
}
NEGATIVE_PROMPT = "music, dramatic sounds, text overlay, watermark"
TIMEOUT_MESSAGE = "Generation timed out"

_TERMINAL = {"completed", "failed"}
_EARLY_STATUSES = {"planned", "scripting", "audio", "image"}


def build_clip_prompt(description: str, camera_movement: str = "drifting_still") -> str:
    camera = CAMERA_MOVEMENTS[camera_movement]
    return (
        f"{description.strip().rstrip('.')}. Camera: {camera}. "
        "Realistic physics, ambient sound only, no music, no dramatic sound effects."
    )


def _validate_options(model: str, duration: int, format: str, camera_movement: str) -> None:
    if model not in VIDEO_MODELS:
        raise ValidationError(f"Unknown video model '{model}'")
    if duration not in DURATIONS:
        raise ValidationError(f"Duration must be one of {', '.join(map(str, DURATIONS))} seconds")
    if format not in FORMATS:
        raise ValidationError(f"Format must be one of {', '.join(FORMATS)}")
    if camera_movement not in CAMERA_MOVEMENTS:
        raise ValidationError(f"Unknown camera movement '{camera_movement}'")


def _headers(api_key: str) -> dict[str, str]:
    return {"x-goog-api-key": api_key, "Content-Type": "application/json"}


def _owned_visual(ctx, visual_id: str):
    video_id = ctx.db.video_id_for_visual(visual_id)
    if video_id is None:
        raise NotFoundError("Visual not found")
    _script, video, series = ctx.owned_script(video_id)
    return ctx.db.get_visual(visual_id), video, series


def _video_uri(operation: dict) -> Optional[str]:
    response = operation.get("response") or operation.get("result") or {}
    response = response.get("generateVideoResponse", response)
    samples = response.get("generatedSamples") or []
    if not samples:
        return None
    return ((samples[0] or {}).get("video") or {}).get("uri")


# ---------------------------------------------------------------------------
# Submit / poll
# ---------------------------------------------------------------------------


def submit_clip(
    ctx,
    visual_id: str,
    model: str = "veo3.1_fast",
    duration: int = 8,
    format: str = "landscape",
    camera_movement: str = "drifting_still",
    prompt: Optional[str] = None,
) -> VideoClip:
    """Start generating a clip from the visual's selected image."""
    require(visual_id, "Visual ID is required")
    _validate_options(model, duration, format, camera_movement)
    visual, video, _series = _owned_visual(ctx, visual_id)
    variant = ctx.db.get_selected_variant(visual_id)
    if variant is None:
        raise ValidationError(f"Visual {visual.sequence_number} has no selected image")
    api_key = ctx.settings.require("google_gemini_api_key", "Google Gemini API key")
    store = ctx.require_storage()

    image, mime_type = read_url(store, variant.display_url)
    payload = {
        "instances": [
            {
                "prompt": build_clip_prompt(prompt or visual.description, camera_movement),
                "image": {"bytesBase64Encoded": base64.b64encode(image).decode(), "mimeType": mime_type},
            }
        ],
        "parameters": {
            "aspectRatio": FORMATS[format],
            "sampleCount": 1,
            "durationSeconds": duration,
            "negativePrompt": NEGATIVE_PROMPT,
        },
    }
    settings = {"model": model, "duration": duration, "format": format}

    try:
        resp = requests.post(
            f"{GEMINI_API_URL}/models/{VIDEO_MODELS[model]}:predictLongRunning",
            json=payload,
            headers=_headers(api_key),
            timeout=60,
        )
    except requests.RequestException as exc:
        error = UpstreamError.from_transport("Veo", exc)
        ctx.db.upsert_clip(visual_id, status="failed", operation_id=None, error=error.message, progress=0, **settings)
        logger.error("Veo submit for visual %s failed: %s", visual.sequence_number, exc)
        raise error from exc
    if resp.status_code >= 400:
        error = UpstreamError.from_response("Veo", resp)
        ctx.db.upsert_clip(visual_id, status="failed", operation_id=None, error=error.message, progress=0, **settings)
        logger.error("Veo rejected clip for visual %s: %s", visual.sequence_number, resp.status_code)
        raise error

    operation_id = resp.json().get("name")
    if not operation_id:
        ctx.db.upsert_clip(visual_id, status="failed", operation_id=None, error="Veo returned no operation", **settings)
        raise UpstreamError("Veo did not return an operation name", service="Veo", upstream_status=resp.status_code)

    clip = ctx.db.upsert_clip(
        visual_id, status="processing", operation_id=operation_id, url=None, error=None, progress=0, size_bytes=0, **settings
    )
    if video.status in _EARLY_STATUSES:
        ctx.db.update_video(video.id, status="video")
    logger.info("Submitted clip %s for visual %s (%s, %ss)", clip.id, visual.sequence_number, model, duration)
    return clip


def check_clip(ctx, clip_id: str) -> VideoClip:
    """Poll a clip's operation once and record the outcome."""
    clip = ctx.db.get_clip(require(clip_id, "Clip ID is required"))
    if clip is None:
        raise NotFoundError("Clip not found")
    visual, video, series = _owned_visual(ctx, clip.visual_id)
    if clip.status in _TERMINAL or not clip.operation_id:
        return clip
    api_key = ctx.settings.require("google_gemini_api_key", "Google Gemini API key")

    try:
        resp = requests.get(f"{GEMINI_API_URL}/{clip.operation_id}", headers=_headers(api_key), timeout=30)
    except requests.RequestException as exc:
        raise UpstreamError.from_transport("Veo", exc) from exc
    if resp.status_code >= 400:
        raise UpstreamError.from_response("Veo", resp)
    operation = resp.json()

    if operation.get("error"):
        message = (operation["error"] or {}).get("message") or "Video generation failed"
        logger.warning("Clip %s failed upstream: %s", clip.id, message)
        return ctx.db.update_clip(clip.id, status="failed", error=f"Video generation failed: {message}")

    if not operation.get("done"):
        return ctx.db.update_clip(clip.id, progress=min(95, clip.progress + 5))

    uri = _video_uri(operation)
    if not uri:
        return ctx.db.update_clip(clip.id, status="failed", error="Video generation completed but no video URI found")

    try:
        download = requests.get(uri, headers={"x-goog-api-key": api_key}, timeout=300)
    except requests.RequestException as exc:
        raise UpstreamError.from_transport("Veo download", exc) from exc
    if download.status_code >= 400:
        raise UpstreamError.from_response("Veo download", download)
    path = asset_path(
        ctx.user_id, series.id, video.id, "clips", f"clip_{visual.sequence_number}_{clip.id[:12]}", "mp4"
    )
    url = ctx.blob_store.put(path, download.content, "video/mp4")
    logger.info("Clip %s completed (%d bytes)", clip.id, len(download.content))
    return ctx.db.update_clip(
        clip.id, status="completed", url=url, progress=100, error=None, size_bytes=len(download.content)
    )


def wait_for_clip(
    ctx,
    clip_id: str,
    interval: Optional[float] = None,
    timeout: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> VideoClip:
    """Poll until the clip finishes; past ``timeout`` seconds it is marked failed."""
    interval = ctx.config.clip_poll_interval_s if interval is None else interval
    timeout = ctx.config.clip_timeout_s if timeout is None else timeout
    deadline = clock() + timeout

    while True:
        clip = check_clip(ctx, clip_id)
        if clip.status in _TERMINAL:
            return clip
        if clock() >= deadline:
            logger.warning("Clip %s timed out after %.0fs", clip_id, timeout)
            return ctx.db.update_clip(clip_id, status="failed", error=TIMEOUT_MESSAGE)
        sleep(interval)


def _wait_recording_errors(ctx, clip_id: str, sleep: Callable[[float], None]) -> VideoClip:
    try:
        return wait_for_clip(ctx, clip_id, sleep=sleep)
    except HistoryMakerError as exc:
        logger.error("Polling clip %s failed: %s", clip_id, exc.message)
        return ctx.db.update_clip(clip_id, status="failed", error=exc.message)


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


def generate_all_clips(
    ctx,
    video_id: str,
    model: str = "veo3.1_fast",
    duration: int = 8,
    format: str = "landscape",
    camera_movements: Optional[Mapping[int, str]] = None,
    delay: float = 1.0,
    wait: bool = True,
    sleep: Callable[[float], None] = time.sleep,
) -> list[VideoClip]:
    """Submit a clip for every visual that has none or whose last clip failed.

    Submissions go out one at a time, ``delay`` seconds apart. Polling then
    runs on at most ``clip_workers`` threads.
    """
    _validate_options(model, duration, format, "drifting_still")
    script, _video, _series = ctx.owned_script(video_id)
    ctx.settings.require("google_gemini_api_key", "Google Gemini API key")
    ctx.require_storage()
    camera_movements = camera_movements or {}

    submitted: list[VideoClip] = []
    for visual in ctx.db.list_visuals(script.id):
        existing = ctx.db.get_clip_for_visual(visual.id)
        if existing is not None and existing.status != "failed":
            continue
        if submitted:
            sleep(delay)
        try:
            submitted.append(
                submit_clip(
                    ctx,
                    visual.id,
                    model=model,
                    duration=duration,
                    format=format,
                    camera_movement=camera_movements.get(visual.sequence_number, "drifting_still"),
                )
            )
        except (UpstreamError, ValidationError) as exc:
            logger.warning("Skipping visual %s: %s", visual.sequence_number, exc.message)

    if wait and submitted:
        with ThreadPoolExecutor(max_workers=max(1, ctx.config.clip_workers)) as pool:
            list(pool.map(lambda clip: _wait_recording_errors(ctx, clip.id, sleep), submitted))
    return ctx.db.list_clips(script.id)


def clips_for_video(ctx, video_id: str) -> list[VideoClip]:
    video, _series = ctx.owned_video(video_id)
    script = ctx.db.get_script_for_video(video.id)
    return ctx.db.list_clips(script.id) if script else []
