"""Supabase Storage blob store for generated assets.

Every asset lives under a deterministic path:

  {user_id}/series/{series_id}/videos/{video_id}/{asset_type}/{asset_id}.{ext}

with ``asset_type`` one of ``audio``, ``images``, ``clips`` or ``exports``.
Credentials (project URL, service key, bucket) come from the user's settings
record; a missing value is a ``ConfigurationError``.
"""
from __future__ import annotations

import base64
import logging
import posixpath
import re
from typing import Optional

import requests

from src.errors import ConfigurationError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

ASSET_TYPES = ("audio", "images", "clips", "exports")

_CONTENT_TYPES = {
    "mp3_44100_128": "audio/mpeg",
    "mp3_44100_192": "audio/mpeg",
    "pcm_16000": "audio/wav",
    "pcm_22050": "audio/wav",
    "pcm_24000": "audio/wav",
    "pcm_44100": "audio/wav",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "zip": "application/zip",
    "txt": "text/plain",
}

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,(?P<data>.*)$", re.DOTALL)


def content_type_for(fmt: str) -> str:
    """Content type for an output format (``mp3_44100_128``) or file extension."""
    fmt = (fmt or "").lower().lstrip(".")
    if fmt in _CONTENT_TYPES:
        return _CONTENT_TYPES[fmt]
    if fmt.startswith("mp3_"):
        return "audio/mpeg"
    if fmt.startswith("pcm_"):
        return "audio/wav"
    return "application/octet-stream"


def extension_for(fmt: str) -> str:
    fmt = (fmt or "").lower().lstrip(".")
    if fmt.startswith("mp3_"):
        return "mp3"
    if fmt.startswith("pcm_"):
        return "wav"
    return fmt


def _sanitize_segment(value: str) -> str:
    cleaned = str(value or "").replace("\\", "/").strip().strip("/")
    if not cleaned or "/" in cleaned or cleaned in {".", ".."}:
        raise ValidationError(f"Invalid storage path segment: {value!r}")
    return cleaned


def asset_path(user_id: str, series_id: str, video_id: str, asset_type: str, asset_id: str, ext: str) -> str:
    if asset_type not in ASSET_TYPES:
        raise ValidationError(f"Unknown asset type '{asset_type}'")
    return (
        f"{_sanitize_segment(user_id)}/series/{_sanitize_segment(series_id)}"
        f"/videos/{_sanitize_segment(video_id)}/{asset_type}"
        f"/{_sanitize_segment(asset_id)}.{_sanitize_segment(ext.lstrip('.'))}"
    )


def decode_data_url(value: str) -> tuple[bytes, str]:
    """Return ``(bytes, mime_type)`` for a base64 ``data:`` URL."""
    match = _DATA_URL_RE.match(value or "")
    if not match:
        raise ValidationError("Expected a base64 data URL")
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except ValueError as exc:
        raise ValidationError(f"Invalid base64 payload: {exc}") from exc
    return data, match.group("mime") or "application/octet-stream"


def to_data_url(data: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(data).decode()}"


def fetch_bytes(url: str, timeout: int = 120) -> tuple[bytes, str]:
    """Download ``url`` (or decode a ``data:`` URL). Returns ``(bytes, content_type)``."""
    if (url or "").startswith("data:"):
        return decode_data_url(url)
    try:
        resp = requests.get(url, timeout=timeout, headers={"User-Agent": "HistoryMaker/1.0"})
    except requests.RequestException as exc:
        raise UpstreamError.from_transport("Asset download", exc) from exc
    if resp.status_code >= 400:
        raise UpstreamError.from_response("Asset download", resp)
    content_type = (resp.headers.get("Content-Type") or "application/octet-stream").split(";")[0].strip()
    return resp.content, content_type


def read_url(store, url: str) -> tuple[bytes, str]:
    """Bytes behind ``url``, read from ``store`` when the URL points into its bucket."""
    path = store.path_from_url(url)
    if path is None:
        return fetch_bytes(url)
    return store.get(path), content_type_for(posixpath.splitext(path)[1])


class SupabaseBlobStore:
    def __init__(self, url: str, key: str, bucket: str, client=None) -> None:
        self.url = (url or "").rstrip("/")
        self.bucket = bucket
        if client is None:
            from supabase import create_client  # type: ignore

            client = create_client(self.url, key)
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "SupabaseBlobStore":
        url = settings.require("storage_url", "Storage URL")
        key = settings.require("storage_key", "Storage key")
        bucket = settings.require("storage_bucket", "Storage bucket")
        return cls(url, key, bucket)

    def _bucket(self):
        return self._client.storage.from_(self.bucket)

    def put(self, path: str, data: bytes, content_type: str) -> str:
        """Upload ``data`` to ``path`` (overwriting) and return its public URL."""
        logger.info("Uploading %d bytes to storage://%s/%s", len(data), self.bucket, path)
        try:
            self._bucket().upload(path, data, {"content-type": content_type, "upsert": "true"})
            return self._bucket().get_public_url(path)
        except Exception as exc:
            logger.error("Storage upload failed for %s: %s", path, exc)
            raise UpstreamError(f"Storage upload failed: {exc}", service="Storage") from exc

    def get(self, path: str) -> bytes:
        try:
            payload = self._bucket().download(path)
        except Exception as exc:
            raise UpstreamError(f"Storage download failed: {exc}", service="Storage") from exc
        if not isinstance(payload, bytes):
            raise UpstreamError(f"Storage returned no data for {path}", service="Storage")
        return payload

    def path_from_url(self, url: str) -> Optional[str]:
        """Object path for a public URL served from this bucket, else None."""
        marker = f"/storage/v1/object/public/{self.bucket}/"
        if marker not in (url or ""):
            return None
        return url.split(marker, 1)[1].split("?", 1)[0]

    def check_connection(self) -> bool:
        """Round-trip a small probe object; raises ``UpstreamError`` on failure."""
        probe = "_connection_test/probe.txt"
        self.put(probe, b"ok", "text/plain")
        return self.get(probe) == b"ok"


def blob_store_for(settings) -> SupabaseBlobStore:
    try:
        return SupabaseBlobStore.from_settings(settings)
    except ConfigurationError:
        logger.warning("Object storage is not configured for user %s", getattr(settings, "user_id", "?"))
        raise
