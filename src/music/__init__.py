"""Background music: script analysis, catalog search and selection."""

from .analysis import analyze_music
from .catalog import music_selection, save_music_selection, score_track, search_tracks

__all__ = [
    "analyze_music",
    "music_selection",
    "save_music_selection",
    "score_track",
    "search_tracks",
]
