"""Inline visual markers: ``(VISUAL n: description | KEYWORD: term)``."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Sequence

from src.errors import ValidationError

MARKER_RE = re.compile(r"\(VISUAL (\d+):([^|]+)\|((?:[^()]|\([^()]*\))+)\)")
_KEYWORD_PREFIX_RE = re.compile(r"^\s*KEYWORDS?\s*:\s*", re.IGNORECASE)
# A marker alone on its line takes the newline with it, one ending a line takes
# the space before it, anything else the single space after it.
_MARKER_LINE_RE = re.compile(r"^[ \t]*" + MARKER_RE.pattern + r"[ \t]*\n", re.MULTILINE)
_MARKER_TRAILING_RE = re.compile(r" " + MARKER_RE.pattern + r"[ \t]*(?=\n|$)")
_MARKER_INLINE_RE = re.compile(MARKER_RE.pattern + r" ?")


@dataclass
class VisualMarker:
    number: int
    description: str
    keywords: List[str] = field(default_factory=list)

    @property
    def keyword(self) -> str:
        return self.keywords[0] if self.keywords else ""


def _split_keywords(raw: str) -> List[str]:
    raw = _KEYWORD_PREFIX_RE.sub("", raw).strip()
    return [k.strip().strip('"') for k in raw.split(",") if k.strip().strip('"')]


def parse_markers(text: str) -> List[VisualMarker]:
    """Every marker in ``text``, in the order they appear."""
    return [
        VisualMarker(
            number=int(match.group(1)),
            description=match.group(2).strip(),
            keywords=_split_keywords(match.group(3)),
        )
        for match in MARKER_RE.finditer(text or "")
    ]


def strip_markers(text: str) -> str:
    """Remove markers so the remainder reads exactly as the untagged script."""
    text = _MARKER_LINE_RE.sub("", text or "")
    text = _MARKER_TRAILING_RE.sub("", text)
    return _MARKER_INLINE_RE.sub("", text)


def check_sequence(markers: Sequence[VisualMarker]) -> None:
    """Raise unless markers are numbered 1..n in order."""
    numbers = [m.number for m in markers]
    expected = list(range(1, len(markers) + 1))
    if numbers != expected:
        raise ValidationError(
            f"Visual markers must be numbered contiguously from 1; got {', '.join(map(str, numbers)) or 'none'}"
        )
