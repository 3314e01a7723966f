"""Generated and filtered images via the Gemini image model (google-genai)."""
from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Any, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from src.errors import UpstreamError, ValidationError, require
from src.models import VisualVariant
from src.supabase_storage import read_url
from src.visuals.sourcing import inspect_image, persist_variant, store_image, visual_for

logger = logging.getLogger(__name__)

IMAGE_MODEL = "gemini-2.5-flash-image"
ASPECT_RATIOS = ("1:1", "16:9", "9:16", "4:3", "3:4")
DEFAULT_STYLE = "18th_century_painting"
FILTER_TYPES = ("photorealistic",)

STYLE_PRESETS = {
    "18th_century_painting": "Oil painting in 18th century European style, historical painting, classical art style",
    "20th_century_modern": "Modern art style, 20th century illustration, clean lines",
    "map_style": "Historical map style, cartographic illustration, aged paper texture",
    "document_style": "Historical document style, aged parchment, handwritten or printed text",
    "photorealistic": "Photorealistic image, high quality photography, natural lighting",
}

IMAGE_PROMPT = """{style}.
Subject: {description}
Composition: one clear focal subject with historically accurate clothing, architecture and setting, framed for a {aspect_ratio} frame.
Do not add captions, labels, watermarks, borders or frames."""

PHOTOREALISTIC_PROMPT = """Convert this image into a photorealistic photograph of the same scene.
Preserve the original composition exactly: the same subjects, poses, positions, framing and aspect ratio.
Do not crop, extend or reframe the image.
Do not add borders, frames, text, captions or watermarks.{instructions}"""


@dataclass
class GeneratedImage:
    data: bytes
    mime_type: str = "image/png"


def closest_aspect_ratio(width: int, height: int) -> str:
    """The supported aspect ratio nearest to ``width:height``."""
    if width <= 0 or height <= 0:
        return "16:9"
    target = width / height

    def distance(ratio: str) -> float:
        w, h = ratio.split(":")
        return abs(int(w) / int(h) - target)

    return min(ASPECT_RATIOS, key=distance)


def _extract_image(result: Any) -> Optional[GeneratedImage]:
    for candidate in getattr(result, "candidates", None) or []:
        parts = getattr(getattr(candidate, "content", None), "parts", None) or []
        for part in parts:
            inline = getattr(part, "inline_data", None)
            data = getattr(inline, "data", None)
            if isinstance(data, str):
                data = base64.b64decode(data)
            if data:
                return GeneratedImage(data=bytes(data), mime_type=getattr(inline, "mime_type", None) or "image/png")
    return None


def _generate(api_key: str, contents: Any, aspect_ratio: str) -> GeneratedImage:
    client = genai.Client(api_key=api_key)
    config = {
        "response_modalities": ["TEXT", "IMAGE"],
        "image_config": {"aspect_ratio": aspect_ratio},
    }
    try:
        result = client.models.generate_content(model=IMAGE_MODEL, contents=contents, config=config)
    except genai_errors.APIError as exc:
        logger.error("Gemini image request failed: %s", exc)
        raise UpstreamError(
            f"Image generation failed: {exc.message or exc}",
            service="Gemini",
            upstream_status=exc.code,
        ) from exc

    image = _extract_image(result)
    if image is None:
        raise UpstreamError("No image generated in response", service="Gemini", upstream_status=200)
    return image


def build_image_prompt(description: str, style: str = DEFAULT_STYLE, aspect_ratio: str = "16:9") -> str:
    style = style or DEFAULT_STYLE
    if style not in STYLE_PRESETS:
        raise ValidationError(f"Unknown image style '{style}'")
    return IMAGE_PROMPT.format(style=STYLE_PRESETS[style], description=description.strip(), aspect_ratio=aspect_ratio)


def generate_image(
    ctx,
    video_id: str,
    visual_number: int,
    description: str,
    style: str = DEFAULT_STYLE,
    aspect_ratio: str = "16:9",
) -> VisualVariant:
    """Generate an image for a visual and make it the selected variant."""
    require(video_id, "Video ID is required")
    require(visual_number, "Visual number is required")
    description = require((description or "").strip(), "Description is required")
    if aspect_ratio not in ASPECT_RATIOS:
        raise ValidationError(f"Aspect ratio must be one of {', '.join(ASPECT_RATIOS)}")
    prompt = build_image_prompt(description, style, aspect_ratio)

    visual_for(ctx, video_id, visual_number)
    api_key = ctx.settings.require("google_gemini_api_key", "Google Gemini API key")
    ctx.require_storage()

    logger.info("Generating %s image for visual %s (%s)", style or DEFAULT_STYLE, visual_number, aspect_ratio)
    image = _generate(api_key, prompt, aspect_ratio)
    return persist_variant(
        ctx, video_id, visual_number, image.data, image.mime_type, is_ai_generated=True, label="ai"
    )


def apply_filter(
    ctx,
    video_id: str,
    visual_number: int,
    image_url: str = "",
    filter_type: str = "photorealistic",
    instructions: str = "",
) -> VisualVariant:
    """Transform the selected image of a visual and record it as that variant's processed image."""
    if filter_type not in FILTER_TYPES:
        raise ValidationError(f"Invalid filter type. Supported: {', '.join(FILTER_TYPES)}")
    visual, video, series = visual_for(ctx, video_id, visual_number)
    selected = ctx.db.get_selected_variant(visual.id)
    if selected is None:
        raise ValidationError("Select an image for this visual before applying a filter")
    if image_url and image_url not in {selected.source_url, selected.processed_url}:
        raise ValidationError("Filters can only be applied to the selected image")

    api_key = ctx.settings.require("google_gemini_api_key", "Google Gemini API key")
    store = ctx.require_storage()

    source, source_type = read_url(store, selected.source_url)
    _mime, width, height = inspect_image(source)
    extra = f"\nAdditional instructions: {instructions.strip()}" if (instructions or "").strip() else ""
    contents = [
        types.Part.from_bytes(data=source, mime_type=source_type),
        PHOTOREALISTIC_PROMPT.format(instructions=extra),
    ]

    logger.info("Applying %s filter to visual %s (%dx%d)", filter_type, visual.sequence_number, width, height)
    image = _generate(api_key, contents, closest_aspect_ratio(width, height))
    url = store_image(ctx, video, series, visual.sequence_number, image.data, image.mime_type, "photo")
    ctx.db.update_variant_processed(selected.id, url, [filter_type], len(image.data))
    return ctx.db.get_selected_variant(visual.id)
