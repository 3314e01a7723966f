"""On-demand downloads: script text, single-asset redirects and zip bundles."""
from __future__ import annotations

import logging
import posixpath
import zipfile
from datetime import datetime, timezone
from io import BytesIO
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from src.errors import HistoryMakerError, NotFoundError, ValidationError
from src.export.assets import ASSET_TYPES, Inventory, load_inventory
from src.supabase_storage import asset_path, read_url

logger = logging.getLogger(__name__)

MISSING_FILE = "MISSING.txt"


class DownloadResult(BaseModel):
    """``text`` carries ``content``; ``redirect`` and ``bundle`` carry ``download_url``."""

    kind: str
    filename: str
    content: Optional[str] = None
    download_url: Optional[str] = None
    missing: List[str] = Field(default_factory=list)


def _extension(url: str, default: str) -> str:
    ext = posixpath.splitext(urlparse(url).path)[1].lstrip(".").lower()
    return ext or default


def _entries(inv: Inventory, asset_type: str) -> list[tuple[str, str]]:
    """``(archive_name, url)`` pairs for one asset type."""
    if asset_type == "audio":
        return [
            (f"audio/take_{i:02d}.{_extension(t.url, 'mp3')}", t.url)
            for i, t in enumerate(reversed(inv.takes), start=1)
            if t.url
        ]
    if asset_type == "images":
        return [
            (f"images/visual_{v.sequence_number:02d}.{_extension(url, 'jpg')}", url)
            for v, url in inv.image_entries()
        ]
    if asset_type == "video_clips":
        return [(f"clips/clip_{v.sequence_number:02d}.mp4", url) for v, url in inv.clip_entries()]
    return []


def _music_listing(inv: Inventory) -> str:
    return "\n".join(inv.music) + ("\n" if inv.music else "")


def _fetch(ctx, url: str) -> bytes:
    data, _content_type = read_url(ctx.blob_store, url)
    return data


def build_bundle(ctx, inv: Inventory, asset_types: tuple[str, ...]) -> tuple[bytes, list[str]]:
    """Zip the requested asset types. Entries that cannot be fetched are listed in MISSING.txt."""
    missing: list[str] = []
    buf = BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as z:
        if "script" in asset_types and inv.script and inv.script.generated_script:
            z.writestr("script.txt", inv.script.generated_script)
        if "music" in asset_types and inv.music:
            z.writestr("music.txt", _music_listing(inv))
        for asset_type in asset_types:
            for name, url in _entries(inv, asset_type):
                try:
                    z.writestr(name, _fetch(ctx, url))
                except HistoryMakerError as exc:
                    logger.warning("Export skipped %s: %s", name, exc.message)
                    missing.append(f"{name}: {url} ({exc.message})")
        if missing:
            z.writestr(MISSING_FILE, "\n".join(missing) + "\n")
    return buf.getvalue(), missing


def download_asset(ctx, video_id: str, asset_type: str) -> DownloadResult:
    if asset_type not in ASSET_TYPES and asset_type != "all":
        raise ValidationError(f"Unknown asset type '{asset_type}'")
    inv = load_inventory(ctx, video_id)

    if asset_type == "script":
        if inv.script is None or not inv.script.generated_script.strip():
            raise NotFoundError("No script has been generated for this video")
        return DownloadResult(kind="text", filename="script.txt", content=inv.script.generated_script)
    if asset_type == "music":
        if not inv.music:
            raise NotFoundError("No music has been selected for this video")
        return DownloadResult(kind="text", filename="music.txt", content=_music_listing(inv))

    types = ASSET_TYPES if asset_type == "all" else (asset_type,)
    if asset_type != "all":
        entries = _entries(inv, asset_type)
        if not entries:
            raise NotFoundError(f"No {asset_type.replace('_', ' ')} are ready for this video")
        if len(entries) == 1:
            name, url = entries[0]
            return DownloadResult(kind="redirect", filename=posixpath.basename(name), download_url=url)

    data, missing = build_bundle(ctx, inv, types)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    filename = f"{inv.video.id}_{asset_type}_{stamp}.zip"
    path = asset_path(ctx.user_id, inv.series.id, inv.video.id, "exports", filename[:-4], "zip")
    url = ctx.blob_store.put(path, data, "application/zip")
    logger.info("Built %s export for video %s (%d bytes, %d missing)", asset_type, inv.video.id, len(data), len(missing))
    return DownloadResult(kind="bundle", filename=filename, download_url=url, missing=missing)
