"""Keyword image search against Wikimedia Commons (CirrusSearch)."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

import requests

from src.errors import UpstreamError, ValidationError, require

logger = logging.getLogger(__name__)

COMMONS_API_URL = "https://commons.wikimedia.org/w/api.php"
USER_AGENT = "HistoryMaker/1.0 (https://historymaker.app)"

MEDIA_FILTERS = {
    "paintings": "painting",
    "engravings": "engraving",
    "maps": "map",
    "pre1900": "19th century OR 18th century OR 17th century",
}
QUALITY_FILTERS = {
    "valued": 'incategory:"Valued images"',
    "featured": 'incategory:"Featured pictures"',
}

MIN_WIDTH = 200
MIN_HEIGHT = 150
_EXCLUDED_SUFFIXES = (".svg", ".pdf", ".ogg", ".webm")
_TAG_RE = re.compile(r"<[^>]*>")


@dataclass
class ImageResult:
    url: str
    title: str
    thumbnail: str
    width: int
    height: int
    license: str = ""
    attribution: str = ""
    description: str = ""
    date: str = ""

    @property
    def area(self) -> int:
        return self.width * self.height


def _strip_html(value: str) -> str:
    return _TAG_RE.sub("", value or "").strip()


def _meta(meta: dict, name: str) -> str:
    return str((meta.get(name) or {}).get("value", "") or "")


def build_query(keywords: str, media_filter: str = "all", quality_filter: str = "all") -> str:
    if media_filter != "all" and media_filter not in MEDIA_FILTERS:
        raise ValidationError(f"Unknown media filter '{media_filter}'")
    if quality_filter != "all" and quality_filter not in QUALITY_FILTERS:
        raise ValidationError(f"Unknown quality filter '{quality_filter}'")

    query = keywords.replace(",", " ").strip()
    if media_filter in MEDIA_FILTERS:
        query += f" {MEDIA_FILTERS[media_filter]}"
    if quality_filter in QUALITY_FILTERS:
        query += f" {QUALITY_FILTERS[quality_filter]}"
    return f"{query} filetype:bitmap"


def _to_result(page: dict) -> ImageResult | None:
    info = (page.get("imageinfo") or [None])[0]
    if not info:
        return None
    width, height = int(info.get("width") or 0), int(info.get("height") or 0)
    url = info.get("url") or ""
    if width < MIN_WIDTH or height < MIN_HEIGHT:
        return None
    if url.lower().endswith(_EXCLUDED_SUFFIXES):
        return None

    meta = info.get("extmetadata") or {}
    date = re.split(r"date QS:", _strip_html(_meta(meta, "DateTimeOriginal")), flags=re.IGNORECASE)[0]
    return ImageResult(
        url=url,
        title=(page.get("title") or "").replace("File:", "", 1),
        thumbnail=info.get("thumburl") or url,
        width=width,
        height=height,
        license=_strip_html(_meta(meta, "LicenseShortName") or _meta(meta, "License")),
        attribution=_strip_html(_meta(meta, "Artist")),
        description=_strip_html(_meta(meta, "ImageDescription"))[:200],
        date=date.strip()[:50],
    )


def search_wikimedia(
    keywords: str,
    limit: int = 3,
    media_filter: str = "all",
    quality_filter: str = "all",
) -> list[ImageResult]:
    """Bitmap images for ``keywords``, largest first.

    Vector, document, audio and video files are dropped along with anything
    smaller than 200x150 pixels.
    """
    keywords = require((keywords or "").strip(), "Keywords are required")
    query = build_query(keywords, media_filter, quality_filter)
    try:
        response = requests.get(
            COMMONS_API_URL,
            params={
                "action": "query",
                "generator": "search",
                "gsrnamespace": 6,
                "gsrsearch": query,
                "gsrlimit": 30,
                "gsrsort": "relevance",
                "prop": "imageinfo",
                "iiprop": "url|extmetadata|size",
                "iiurlwidth": 400,
                "format": "json",
                "origin": "*",
            },
            headers={"User-Agent": USER_AGENT},
            timeout=20,
        )
    except requests.RequestException as exc:
        raise UpstreamError.from_transport("Wikimedia Commons", exc) from exc
    if response.status_code >= 400:
        logger.warning("Wikimedia search failed (%s) for %r", response.status_code, query)
        raise UpstreamError.from_response("Wikimedia Commons", response)

    pages = (response.json().get("query") or {}).get("pages") or {}
    results = [r for r in (_to_result(p) for p in pages.values()) if r is not None]
    results.sort(key=lambda r: r.area, reverse=True)
    logger.info("Wikimedia returned %d usable image(s) for %r", len(results), query)
    return results[: max(1, int(limit))]
