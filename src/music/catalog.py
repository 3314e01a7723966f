"""Track search against the user's music catalog, ranked by script analysis."""
from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional

import requests

from src.errors import UpstreamError, require
from src.models import MusicAnalysis, MusicTrack

logger = logging.getLogger(__name__)

_BPM_RE = re.compile(r"\d+(?:\.\d+)?")


def _bpm_range(tempo: str) -> Optional[tuple[float, float]]:
    numbers = [float(n) for n in _BPM_RE.findall(tempo or "")]
    if not numbers:
        return None
    return min(numbers), max(numbers)


def score_track(track: MusicTrack, analysis: Optional[MusicAnalysis]) -> float:
    """How well a track fits the analysis: mood 3, genre 2, tempo 1."""
    if analysis is None:
        return 0.0
    score = 0.0
    mood, track_mood = analysis.mood.lower().strip(), track.mood.lower().strip()
    if mood and track_mood and (mood in track_mood or track_mood in mood):
        score += 3.0
    genres = {g.lower().strip() for g in analysis.genres if g.strip()}
    if track.genre and track.genre.lower().strip() in genres:
        score += 2.0

    wanted, actual = _bpm_range(analysis.tempo), _bpm_range(track.tempo)
    if wanted and actual:
        if actual[0] <= wanted[1] and wanted[0] <= actual[1]:
            score += 1.0
    elif analysis.tempo and analysis.tempo.lower().strip() == track.tempo.lower().strip():
        score += 1.0
    return score


def _track_from(item: dict) -> MusicTrack:
    return MusicTrack(
        id=str(item.get("id") or item.get("track_id") or ""),
        title=item.get("title") or "",
        artist=item.get("artist") or "",
        duration=float(item.get("duration") or 0),
        mood=item.get("mood") or "",
        tempo=str(item.get("tempo") or item.get("bpm") or ""),
        genre=item.get("genre") or "",
        preview_url=item.get("preview_url") or item.get("previewUrl") or "",
        license_info=item.get("license_info") or item.get("licenseInfo") or "",
    )


def build_query(query: str, analysis: Optional[MusicAnalysis]) -> str:
    query = (query or "").strip()
    if query or analysis is None:
        return query
    return " ".join([analysis.mood, *analysis.genres]).strip()


def search_tracks(ctx, query: str = "", analysis: Optional[MusicAnalysis] = None, limit: int = 20) -> List[MusicTrack]:
    """Search the catalog and return tracks best-fit first."""
    query = require(build_query(query, analysis), "Search query is required")
    api_url = ctx.settings.require("music_api_url", "Music catalog URL").rstrip("/")
    api_key = ctx.settings.require("music_api_key", "Music catalog API key")

    try:
        resp = requests.get(
            f"{api_url}/tracks/search",
            params={"q": query, "limit": max(1, min(int(limit), 100))},
            headers={"Authorization": f"Bearer {api_key}", "Accept": "application/json"},
            timeout=30,
        )
    except requests.RequestException as exc:
        raise UpstreamError.from_transport("Music catalog", exc) from exc
    if resp.status_code >= 400:
        logger.warning("Music catalog search failed (%s) for %r", resp.status_code, query)
        raise UpstreamError.from_response("Music catalog", resp)

    payload = resp.json()
    items = payload.get("tracks", []) if isinstance(payload, dict) else payload
    tracks = [_track_from(item) for item in items or [] if isinstance(item, dict)]
    tracks = [t.model_copy(update={"score": score_track(t, analysis)}) for t in tracks if t.id]
    tracks.sort(key=lambda t: t.score, reverse=True)
    logger.info("Music catalog returned %d track(s) for %r", len(tracks), query)
    return tracks[:limit]


def save_music_selection(ctx, video_id: str, track_ids: Iterable[str]) -> List[str]:
    """Replace the video's selected tracks."""
    video, _series = ctx.owned_video(require(video_id, "Video ID is required"))
    return ctx.db.replace_music_selection(video.id, [str(t).strip() for t in track_ids or []])


def music_selection(ctx, video_id: str) -> List[str]:
    video, _series = ctx.owned_video(video_id)
    return ctx.db.list_music_selection(video.id)
