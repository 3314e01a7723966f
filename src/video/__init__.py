"""Video clip generation for History Maker."""

from .clips import (
    CAMERA_MOVEMENTS,
    VIDEO_MODELS,
    check_clip,
    clips_for_video,
    generate_all_clips,
    submit_clip,
    wait_for_clip,
)

__all__ = [
    "CAMERA_MOVEMENTS",
    "VIDEO_MODELS",
    "check_clip",
    "clips_for_video",
    "generate_all_clips",
    "submit_clip",
    "wait_for_clip",
]
