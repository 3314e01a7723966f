"""Per-type readiness and project statistics for a video's assets."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, Field

from src.models import AudioTake, Script, Series, Video, VideoClip, Visual, VisualVariant

ASSET_TYPES = ("script", "audio", "images", "video_clips", "music")

# Rough list prices in USD used for the project cost estimate.
COST_TABLE = {
    "script": 0.05,
    "audio_per_minute": 0.30,
    "ai_image": 0.04,
    "clip_per_second": {"veo3.1_fast": 0.15, "veo3.1": 0.40},
}

FORMATS = {
    "script": [".txt"],
    "audio": [".mp3", ".wav"],
    "images": [".png", ".jpg", ".zip"],
    "video_clips": [".mp4", ".zip"],
    "music": [".txt"],
}


class ExportAsset(BaseModel):
    type: str
    status: str = "pending"
    count: int = 0
    total_count: int = 0
    urls: List[str] = Field(default_factory=list)
    formats: List[str] = Field(default_factory=list)


class ExportStats(BaseModel):
    total_duration: float = 0.0
    asset_count: int = 0
    storage_used: int = 0
    estimated_cost: float = 0.0


class ExportSummary(BaseModel):
    video_id: str
    assets: List[ExportAsset] = Field(default_factory=list)
    stats: ExportStats = Field(default_factory=ExportStats)

    def asset(self, asset_type: str) -> ExportAsset:
        return next(a for a in self.assets if a.type == asset_type)

    @property
    def status(self) -> str:
        return classify(sum(a.status == "ready" for a in self.assets), len(self.assets))


@dataclass
class Inventory:
    """Everything persisted for one video, loaded once."""

    video: Video
    series: Series
    script: Optional[Script] = None
    takes: List[AudioTake] = field(default_factory=list)
    visuals: List[Visual] = field(default_factory=list)
    selected: dict[str, VisualVariant] = field(default_factory=dict)
    variants: List[VisualVariant] = field(default_factory=list)
    clips: List[VideoClip] = field(default_factory=list)
    music: List[str] = field(default_factory=list)

    def image_entries(self) -> list[tuple[Visual, str]]:
        return [(v, self.selected[v.id].display_url) for v in self.visuals if v.id in self.selected]

    def clip_entries(self) -> list[tuple[Visual, str]]:
        by_id = {v.id: v for v in self.visuals}
        return [
            (by_id[c.visual_id], c.url)
            for c in self.clips
            if c.status == "completed" and c.url and c.visual_id in by_id
        ]


def classify(count: int, total: int) -> str:
    """``ready`` when everything expected is present, ``partial`` for some, else ``pending``."""
    if total <= 0 or count <= 0:
        return "pending"
    return "ready" if count >= total else "partial"


def load_inventory(ctx, video_id: str) -> Inventory:
    video, series = ctx.owned_video(video_id)
    inventory = Inventory(video=video, series=series, music=ctx.db.list_music_selection(video.id))
    script = ctx.db.get_script_for_video(video.id)
    if script is None:
        return inventory

    inventory.script = script
    inventory.takes = ctx.db.list_audios(script.id)
    inventory.visuals = ctx.db.list_visuals(script.id)
    for visual in inventory.visuals:
        variants = ctx.db.list_variants(visual.id)
        inventory.variants.extend(variants)
        chosen = [v for v in variants if v.is_selected]
        if chosen:
            inventory.selected[visual.id] = chosen[0]
    inventory.clips = ctx.db.list_clips(script.id)
    return inventory


def _stats(inv: Inventory, asset_count: int) -> ExportStats:
    clips_done = [c for c in inv.clips if c.status == "completed"]
    cost = COST_TABLE["script"] if inv.script and inv.script.generated_script else 0.0
    cost += sum(t.duration for t in inv.takes) / 60 * COST_TABLE["audio_per_minute"]
    cost += sum(1 for v in inv.variants if v.is_ai_generated) * COST_TABLE["ai_image"]
    cost += sum(c.duration * COST_TABLE["clip_per_second"].get(c.model, 0.0) for c in clips_done)
    return ExportStats(
        total_duration=inv.takes[0].duration if inv.takes else 0.0,
        asset_count=asset_count,
        storage_used=sum(t.size_bytes for t in inv.takes)
        + sum(v.size_bytes for v in inv.variants)
        + sum(c.size_bytes for c in inv.clips),
        estimated_cost=round(cost, 2),
    )


def summarize(inv: Inventory) -> ExportSummary:
    has_script = bool(inv.script and inv.script.generated_script.strip())
    images = inv.image_entries()
    clips = inv.clip_entries()
    total_visuals = len(inv.visuals)

    assets = [
        ExportAsset(type="script", status=classify(int(has_script), 1), count=int(has_script), total_count=1),
        ExportAsset(
            type="audio",
            status=classify(len(inv.takes), len(inv.takes)),
            count=len(inv.takes),
            total_count=len(inv.takes),
            urls=[t.url for t in inv.takes if t.url],
        ),
        ExportAsset(
            type="images",
            status=classify(len(images), total_visuals),
            count=len(images),
            total_count=total_visuals,
            urls=[url for _visual, url in images],
        ),
        ExportAsset(
            type="video_clips",
            status=classify(len(clips), total_visuals),
            count=len(clips),
            total_count=total_visuals,
            urls=[url for _visual, url in clips],
        ),
        ExportAsset(
            type="music",
            status=classify(len(inv.music), len(inv.music)),
            count=len(inv.music),
            total_count=len(inv.music),
        ),
    ]
    for asset in assets:
        asset.formats = FORMATS[asset.type]
    return ExportSummary(
        video_id=inv.video.id,
        assets=assets,
        stats=_stats(inv, sum(a.count for a in assets)),
    )


def collect_assets(ctx, video_id: str) -> ExportSummary:
    return summarize(load_inventory(ctx, video_id))
