from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from src.errors import ConfigurationError

VIDEO_FORMATS = ("youtube", "youtube_short", "tiktok")
VIDEO_STATUSES = ("planned", "scripting", "audio", "image", "video", "complete")
CLIP_STATUSES = ("pending", "processing", "completed", "failed")


class Series(BaseModel):
    id: str
    user_id: str
    topic: str = ""
    created_at: Optional[str] = None


class Video(BaseModel):
    id: str
    series_id: str
    title: str = ""
    description: str = ""
    format: str = "youtube"
    status: str = "planned"
    scheduled_date: Optional[str] = None

    @field_validator("format")
    @classmethod
    def validate_format(cls, value: str) -> str:
        if value not in VIDEO_FORMATS:
            raise ValueError(f"format must be one of {', '.join(VIDEO_FORMATS)}")
        return value

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        if value not in VIDEO_STATUSES:
            raise ValueError(f"status must be one of {', '.join(VIDEO_STATUSES)}")
        return value


class Script(BaseModel):
    id: str
    video_id: str
    source_text: str = ""
    generated_script: str = ""
    duration: str = ""
    tone: str = ""


class WordTimestamp(BaseModel):
    text: str
    start_time: float
    end_time: float


class AudioTake(BaseModel):
    """One narration render. ``id`` is None until the take is saved."""

    id: Optional[str] = None
    script_id: Optional[str] = None
    tagged_text: str = ""
    voice_id: str = ""
    stability: float = 0.5
    url: str = ""
    timestamps: List[WordTimestamp] = Field(default_factory=list)
    duration: float = 0.0
    chunk_count: int = 0
    size_bytes: int = 0
    created_at: Optional[str] = None


class Visual(BaseModel):
    id: str
    script_id: str
    sequence_number: int
    description: str = ""
    keywords: List[str] = Field(default_factory=list)


class VisualVariant(BaseModel):
    id: str
    visual_id: str
    source_url: str
    processed_url: Optional[str] = None
    filters: List[str] = Field(default_factory=list)
    is_ai_generated: bool = False
    is_selected: bool = False
    size_bytes: int = 0

    @property
    def display_url(self) -> str:
        return self.processed_url or self.source_url


class VideoClip(BaseModel):
    id: str
    visual_id: str
    status: str = "pending"
    operation_id: Optional[str] = None
    url: Optional[str] = None
    progress: int = 0
    error: Optional[str] = None
    model: str = ""
    duration: int = 8
    format: str = "landscape"
    size_bytes: int = 0

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        if value not in CLIP_STATUSES:
            raise ValueError(f"status must be one of {', '.join(CLIP_STATUSES)}")
        return value


class MusicSection(BaseModel):
    start_position: int = Field(0, alias="startPosition")
    end_position: int = Field(0, alias="endPosition")
    mood: str = ""
    intensity: str = "medium"

    model_config = {"populate_by_name": True}


class MusicAnalysis(BaseModel):
    mood: str
    tempo: str = ""
    genres: List[str] = Field(default_factory=list)
    sections: List[MusicSection] = Field(default_factory=list)


class MusicTrack(BaseModel):
    id: str
    title: str = ""
    artist: str = ""
    duration: float = 0.0
    mood: str = ""
    tempo: str = ""
    genre: str = ""
    preview_url: str = ""
    license_info: str = ""
    score: float = 0.0


class CalendarSlot(BaseModel):
    index: int
    format: str
    scheduled_date: datetime
    title: str = ""
    description: str = ""
    video_id: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.title.strip()


class UserSettings(BaseModel):
    """Per-user credentials and prompt overrides, stored as one record."""

    user_id: str
    elevenlabs_api_key: str = ""
    google_gemini_api_key: str = ""
    storage_url: str = ""
    storage_key: str = ""
    storage_bucket: str = ""
    music_api_key: str = ""
    music_api_url: str = ""
    prompt_overrides: Dict[str, str] = Field(default_factory=dict)

    def require(self, field_name: str, label: str) -> str:
        value = str(getattr(self, field_name, "") or "").strip()
        if not value:
            raise ConfigurationError(f"{label} is not configured. Add it in Settings.")
        return value

    def redacted(self) -> dict:
        """Settings as a dict with every credential reduced to a short prefix."""
        data = self.model_dump()
        for key, value in data.items():
            if key in {"user_id", "prompt_overrides", "storage_url", "storage_bucket", "music_api_url"}:
                continue
            data[key] = f"{value[:4]}***" if value else ""
        return data
