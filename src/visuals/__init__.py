"""Visual tagging and image sourcing."""

from .images import STYLE_PRESETS, apply_filter, generate_image
from .markers import VisualMarker, parse_markers, strip_markers
from .sourcing import choose_variant, persist_variant, proceed_ready, save_image, upload_image
from .tagging import TaggedScript, estimate_visuals, save_visual_markers, tag_visuals
from .wikimedia import ImageResult, search_wikimedia

__all__ = [
    "ImageResult",
    "STYLE_PRESETS",
    "TaggedScript",
    "VisualMarker",
    "apply_filter",
    "choose_variant",
    "estimate_visuals",
    "generate_image",
    "parse_markers",
    "persist_variant",
    "proceed_ready",
    "save_image",
    "save_visual_markers",
    "search_wikimedia",
    "strip_markers",
    "tag_visuals",
    "upload_image",
]
