"""Character-level alignment handling for synthesized narration."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence

from src.models import WordTimestamp

# Characters that end a word; the non-whitespace ones become tokens of their own.
BOUNDARY_CHARS = {" ", "\n", ".", ",", "!", "?"}
_SILENT_BOUNDARIES = {" ", "\n"}


@dataclass
class Alignment:
    characters: List[str] = field(default_factory=list)
    start_times: List[float] = field(default_factory=list)
    end_times: List[float] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: dict) -> "Alignment":
        payload = payload or {}
        return cls(
            characters=list(payload.get("characters") or []),
            start_times=[float(t) for t in payload.get("character_start_times_seconds") or []],
            end_times=[float(t) for t in payload.get("character_end_times_seconds") or []],
        )

    def __len__(self) -> int:
        return len(self.characters)


def alignment_duration(alignment: Alignment) -> float:
    """Duration of a chunk: the end time of its last character."""
    return alignment.end_times[-1] if alignment.end_times else 0.0


def merge_alignments(alignments: Sequence[Alignment], durations: Sequence[float]) -> Alignment:
    """Concatenate chunk alignments, shifting each by the sum of prior durations."""
    merged = Alignment()
    offset = 0.0
    for alignment, duration in zip(alignments, durations):
        merged.characters.extend(alignment.characters)
        merged.start_times.extend(t + offset for t in alignment.start_times)
        merged.end_times.extend(t + offset for t in alignment.end_times)
        offset += duration
    return merged


def derive_word_timestamps(alignment: Alignment) -> List[WordTimestamp]:
    tokens: List[WordTimestamp] = []
    word = ""
    word_start = word_end = 0.0

    for char, start, end in zip(alignment.characters, alignment.start_times, alignment.end_times):
        if char in BOUNDARY_CHARS:
            if word:
                tokens.append(WordTimestamp(text=word, start_time=word_start, end_time=word_end))
                word = ""
            if char not in _SILENT_BOUNDARIES:
                tokens.append(WordTimestamp(text=char, start_time=start, end_time=end))
            continue
        if not word:
            word_start = start
        word += char
        word_end = end

    if word:
        tokens.append(WordTimestamp(text=word, start_time=word_start, end_time=word_end))
    return tokens
