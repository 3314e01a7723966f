"""Narration: tagging, chunked timestamped synthesis and saved takes."""

from .alignment import Alignment, alignment_duration, derive_word_timestamps, merge_alignments
from .chunking import MAX_CHUNK_SIZE, normalize_text, split_into_chunks
from .elevenlabs import PREMADE_VOICES, ChunkResult, ElevenLabsClient
from .pipeline import list_takes, save_take, synthesize_take
from .tagging import tag_script, verify_words_preserved

__all__ = [
    "Alignment",
    "ChunkResult",
    "ElevenLabsClient",
    "MAX_CHUNK_SIZE",
    "PREMADE_VOICES",
    "alignment_duration",
    "derive_word_timestamps",
    "list_takes",
    "merge_alignments",
    "normalize_text",
    "save_take",
    "split_into_chunks",
    "synthesize_take",
    "tag_script",
    "verify_words_preserved",
]
