from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Iterable

import requests

from src.errors import NotFoundError, UpstreamError, require
from src.llm.gateway import extract_json

logger = logging.getLogger(__name__)

API_URL = "https://en.wikipedia.org/w/api.php"
CACHE_DIR = Path("data/research_cache")
USER_AGENT = "HistoryMakerResearch/1.0 (+https://example.local)"

KEYWORDS_SYSTEM = """You are a research assistant. Suggest search keywords for finding Wikipedia articles about historical topics.
Return ONLY a JSON array of exactly 3 search terms that would surface relevant Wikipedia articles.
Cover the main subject, the key figures and the relevant historical context.
Example: ["Napoleon Bonaparte", "French Revolution military", "Battle of Austerlitz"]"""


@dataclass
class Article:
    pageid: int
    title: str
    extract: str = ""


def _query_hash(query: str) -> str:
    return hashlib.sha256(query.strip().lower().encode("utf-8")).hexdigest()[:16]


def _cache_path(query: str) -> Path:
    return CACHE_DIR / f"wiki_{_query_hash(query)}.json"


def _load_cache(query: str) -> list[Article] | None:
    path = _cache_path(query)
    if not path.exists():
        return None
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    if not isinstance(payload, list):
        return None

    articles: list[Article] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            articles.append(Article(pageid=int(item["pageid"]), title=str(item["title"]), extract=str(item.get("extract", ""))))
        except (KeyError, TypeError, ValueError):
            continue
    return articles or None


def _save_cache(query: str, articles: Iterable[Article]) -> None:
    try:
        CACHE_DIR.mkdir(parents=True, exist_ok=True)
        _cache_path(query).write_text(json.dumps([asdict(a) for a in articles], indent=2), encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not write research cache: %s", exc)


def _api_get(params: dict) -> dict:
    try:
        response = requests.get(
            API_URL,
            params={**params, "format": "json"},
            timeout=20,
            headers={"User-Agent": USER_AGENT},
        )
    except requests.RequestException as exc:
        raise UpstreamError.from_transport("Wikipedia", exc) from exc
    if response.status_code >= 400:
        raise UpstreamError.from_response("Wikipedia", response)
    return response.json()


def search_articles(query: str, limit: int = 10) -> list[Article]:
    """Search Wikipedia and return up to ``limit`` articles with short intro extracts."""
    normalized = require((query or "").strip(), "Query is required")
    limit = max(1, min(int(limit), 20))

    cached = _load_cache(normalized)
    if cached:
        return cached[:limit]

    data = _api_get({"action": "query", "list": "search", "srsearch": normalized, "srlimit": limit})
    results = data.get("query", {}).get("search", [])
    if not results:
        return []

    extracts = _api_get(
        {
            "action": "query",
            "pageids": "|".join(str(r["pageid"]) for r in results),
            "prop": "extracts",
            "exintro": 1,
            "explaintext": 1,
            "exsentences": 3,
        }
    )
    pages = extracts.get("query", {}).get("pages", {})
    articles = [
        Article(
            pageid=int(r["pageid"]),
            title=r.get("title", ""),
            extract=(pages.get(str(r["pageid"])) or {}).get("extract", ""),
        )
        for r in results
    ]
    _save_cache(normalized, articles)
    return articles


def article_content(pageid: int) -> dict[str, str]:
    """Full plain-text body of one article: ``{"title": ..., "content": ...}``."""
    require(pageid, "Page ID is required")
    data = _api_get({"action": "query", "pageids": str(pageid), "prop": "extracts", "explaintext": 1})
    page = data.get("query", {}).get("pages", {}).get(str(pageid))
    if not page or "missing" in page:
        raise NotFoundError("Article not found")
    return {"title": page.get("title", ""), "content": page.get("extract", "") or ""}


def _split_keywords(text: str) -> list[str]:
    cleaned = re.sub(r'[\[\]"]', "", text or "")
    return [part.strip() for part in re.split(r"[,\n]", cleaned) if part.strip()]


def search_keywords(ctx, title: str) -> list[str]:
    """Three Wikipedia search terms for a video title."""
    title = require((title or "").strip(), "Title is required")
    reply = ctx.gateway.invoke(
        "fast",
        KEYWORDS_SYSTEM,
        [{"role": "user", "content": f'Suggest 3 Wikipedia search keywords for this video topic: "{title}"'}],
        max_tokens=256,
        temperature=0.3,
    )
    try:
        parsed = extract_json(reply)
    except ValueError:
        parsed = None
    if isinstance(parsed, list) and all(isinstance(k, str) for k in parsed):
        keywords = [k.strip() for k in parsed if k.strip()]
    else:
        keywords = _split_keywords(reply)
    return keywords[:3]
