from __future__ import annotations

import re
from typing import List

MAX_CHUNK_SIZE = 4500  # upstream hard limit is 5000 characters

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


def normalize_text(text: str) -> str:
    """Collapse runs of whitespace to single spaces. Bracket tags pass through."""
    return re.sub(r"\s+", " ", text or "").strip()


def split_into_chunks(text: str, max_size: int = MAX_CHUNK_SIZE) -> List[str]:
    """Split ``text`` into ordered chunks of at most ``max_size`` characters.

    Chunks break at sentence boundaries. A sentence longer than ``max_size``
    is broken on word boundaries; a single word longer than ``max_size`` is
    kept whole in its own chunk.
    """
    if len(text) <= max_size:
        return [text]

    chunks: List[str] = []
    current = ""
    for sentence in _SENTENCE_BOUNDARY.split(text):
        if len(current) + len(sentence) + 1 <= max_size:
            current = f"{current} {sentence}" if current else sentence
            continue

        if current:
            chunks.append(current.strip())
        if len(sentence) <= max_size:
            current = sentence
            continue

        current = ""
        for word in sentence.split():
            if len(current) + len(word) + 1 <= max_size:
                current = f"{current} {word}" if current else word
            else:
                if current:
                    chunks.append(current.strip())
                current = word

    if current:
        chunks.append(current.strip())
    return chunks
