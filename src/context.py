"""Per-request pipeline context.

A ``PipelineContext`` is built once per API request and passed explicitly to
every stage function. It carries the requesting user, the repository, that
user's settings and lazily-built clients for the text gateway and object store.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from src.config import AppConfig, get_secret
from src.errors import AuthorizationError, NotFoundError
from src.llm.gateway import TextGateway, gateway_from_config
from src.models import Script, Series, UserSettings, Video
from src.prompts import resolve_prompts
from src.storage import Database
from src.supabase_storage import SupabaseBlobStore, blob_store_for


@dataclass
class PipelineContext:
    user_id: str
    db: Database
    config: AppConfig
    settings: UserSettings
    gateway_factory: Callable[[], TextGateway] = field(default=lambda: gateway_from_config(get_secret))
    blob_store_factory: Optional[Callable[[UserSettings], SupabaseBlobStore]] = None
    _gateway: Optional[TextGateway] = field(default=None, repr=False)
    _blob_store: Optional[SupabaseBlobStore] = field(default=None, repr=False)

    @classmethod
    def for_user(cls, user_id: str, db: Database, config: AppConfig, **kwargs) -> "PipelineContext":
        return cls(user_id=user_id, db=db, config=config, settings=db.get_user_settings(user_id), **kwargs)

    @property
    def gateway(self) -> TextGateway:
        if self._gateway is None:
            self._gateway = self.gateway_factory()
        return self._gateway

    @property
    def blob_store(self) -> SupabaseBlobStore:
        if self._blob_store is None:
            factory = self.blob_store_factory or blob_store_for
            self._blob_store = factory(self.settings)
        return self._blob_store

    def require_storage(self) -> SupabaseBlobStore:
        """Build the blob store now, so missing storage settings fail before any upstream call."""
        return self.blob_store

    def prompts(self) -> dict[str, str]:
        return resolve_prompts(self.settings)

    # ------------------------------------------------------------------
    # Ownership chain: Video -> Series -> user
    # ------------------------------------------------------------------

    def owned_series(self, series_id: str) -> Series:
        series = self.db.get_series(series_id)
        if series is None:
            raise NotFoundError("Series not found")
        if series.user_id != self.user_id:
            raise AuthorizationError("Series does not belong to the current user")
        return series

    def owned_video(self, video_id: str) -> tuple[Video, Series]:
        video = self.db.get_video(video_id)
        if video is None:
            raise NotFoundError("Video not found")
        return video, self.owned_series(video.series_id)

    def owned_script(self, video_id: str) -> tuple[Script, Video, Series]:
        video, series = self.owned_video(video_id)
        script = self.db.get_script_for_video(video_id)
        if script is None:
            raise NotFoundError("Script not found for this video")
        return script, video, series
