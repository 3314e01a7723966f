"""Getting image bytes into storage and onto a visual as its selected variant.

Search results, generated images, uploads and filtered images all end in
``persist_variant``: upload under the video's ``images/`` prefix, upsert the
variant row, then select it (which deselects every other variant of that
visual in the same transaction).
"""
from __future__ import annotations

import logging
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

from src.errors import NotFoundError, ValidationError, require
from src.models import Visual, VisualVariant
from src.storage import new_id
from src.supabase_storage import asset_path, fetch_bytes

logger = logging.getLogger(__name__)

_IMAGE_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/gif": "gif",
    "image/webp": "webp",
}
_EARLY_STATUSES = {"planned", "scripting", "audio"}


def image_extension(content_type: str) -> str:
    return _IMAGE_EXTENSIONS.get((content_type or "").split(";")[0].strip().lower(), "jpg")


def inspect_image(data: bytes) -> tuple[str, int, int]:
    """``(mime_type, width, height)`` of encoded image bytes."""
    try:
        with Image.open(BytesIO(data)) as img:
            return Image.MIME.get(img.format or "", "application/octet-stream"), img.width, img.height
    except (UnidentifiedImageError, OSError) as exc:
        raise ValidationError("File is not a readable image") from exc


def visual_for(ctx, video_id: str, visual_number: int):
    script, video, series = ctx.owned_script(video_id)
    visual = ctx.db.get_visual_by_number(script.id, int(visual_number))
    if visual is None:
        raise NotFoundError(f"Visual {visual_number} not found for this video")
    return visual, video, series


def store_image(ctx, video, series, visual_number: int, data: bytes, content_type: str, label: str) -> str:
    """Upload image bytes for one visual and return the durable URL."""
    asset_id = f"visual_{visual_number}_{label}_{new_id()[:12]}"
    path = asset_path(ctx.user_id, series.id, video.id, "images", asset_id, image_extension(content_type))
    return ctx.blob_store.put(path, data, content_type)


def _select(ctx, visual: Visual, video, source_url: str, is_ai_generated: bool, size_bytes: int) -> VisualVariant:
    variant = ctx.db.upsert_variant(visual.id, source_url, is_ai_generated=is_ai_generated, size_bytes=size_bytes)
    selected = ctx.db.select_variant(visual.id, variant.id)
    if video.status in _EARLY_STATUSES:
        ctx.db.update_video(video.id, status="image")
    logger.info("Visual %s now uses variant %s", visual.sequence_number, selected.id)
    return selected


def persist_variant(
    ctx,
    video_id: str,
    visual_number: int,
    data: bytes,
    content_type: str,
    is_ai_generated: bool = False,
    label: str = "source",
) -> VisualVariant:
    if not data:
        raise ValidationError("Image data is empty")
    visual, video, series = visual_for(ctx, video_id, visual_number)
    url = store_image(ctx, video, series, visual.sequence_number, data, content_type, label)
    return _select(ctx, visual, video, url, is_ai_generated, len(data))


def upload_image(ctx, video_id: str, visual_number: int, data: bytes) -> VisualVariant:
    """Store a user-supplied image as-is."""
    require(video_id, "Video ID is required")
    require(visual_number, "Visual number is required")
    content_type, _width, _height = inspect_image(data or b"")
    return persist_variant(ctx, video_id, visual_number, data, content_type, label="upload")


def _is_stored(ctx, url: str) -> bool:
    return ctx.blob_store.path_from_url(url) is not None


def save_image(
    ctx,
    video_id: str,
    visual_number: int,
    original_url: str,
    processed_url: Optional[str] = None,
    is_ai_generated: bool = False,
) -> VisualVariant:
    """Select an image by URL, copying external URLs into storage first."""
    require(video_id, "Video ID is required")
    require(visual_number, "Visual number is required")
    original_url = require((original_url or "").strip(), "Original URL is required")
    visual, video, series = visual_for(ctx, video_id, visual_number)

    size = 0
    source_url = original_url
    if not _is_stored(ctx, original_url):
        data, content_type = fetch_bytes(original_url)
        source_url = store_image(ctx, video, series, visual.sequence_number, data, content_type, "source")
        size = len(data)
    selected = _select(ctx, visual, video, source_url, is_ai_generated, size)

    if processed_url:
        processed_size = 0
        if not _is_stored(ctx, processed_url):
            data, content_type = fetch_bytes(processed_url)
            processed_url = store_image(ctx, video, series, visual.sequence_number, data, content_type, "processed")
            processed_size = len(data)
        ctx.db.update_variant_processed(selected.id, processed_url, selected.filters, processed_size)
        selected = ctx.db.get_selected_variant(visual.id)
    return selected


def choose_variant(ctx, video_id: str, visual_number: int, variant_id: str) -> VisualVariant:
    """Re-select a variant the visual already has."""
    visual, _video, _series = visual_for(ctx, video_id, visual_number)
    return ctx.db.select_variant(visual.id, require(variant_id, "Variant ID is required"))


def visuals_with_variants(ctx, video_id: str) -> list[tuple[Visual, list[VisualVariant]]]:
    video, _series = ctx.owned_video(video_id)
    script = ctx.db.get_script_for_video(video.id)
    if script is None:
        return []
    return [(v, ctx.db.list_variants(v.id)) for v in ctx.db.list_visuals(script.id)]


def proceed_ready(ctx, video_id: str) -> bool:
    """True when the video has visuals and each has exactly one selected variant."""
    visuals = visuals_with_variants(ctx, video_id)
    if not visuals:
        return False
    return all(sum(1 for variant in variants if variant.is_selected) == 1 for _visual, variants in visuals)
