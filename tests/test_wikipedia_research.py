import pytest

import src.research.wikipedia as mod
from src.errors import NotFoundError, UpstreamError


class DummyResp:
    def __init__(self, status_code: int, body: dict | None = None, text: str = ""):
        self.status_code = status_code
        self._body = body or {}
        self.text = text

    def json(self):
        return self._body


@pytest.fixture(autouse=True)
def _cache_dir(monkeypatch, tmp_path):
    monkeypatch.setattr(mod, "CACHE_DIR", tmp_path / "cache")


def test_search_articles_joins_extracts_and_caches(monkeypatch):
    calls = []

    def fake_get(url, params, timeout, headers):
        calls.append(params)
        if params.get("list") == "search":
            return DummyResp(200, {"query": {"search": [{"pageid": 1, "title": "Hannibal"}, {"pageid": 2, "title": "Cannae"}]}})
        return DummyResp(200, {"query": {"pages": {"1": {"extract": "Carthaginian general."}, "2": {"extract": "Battle in 216 BC."}}}})

    monkeypatch.setattr(mod.requests, "get", fake_get)

    articles = mod.search_articles("Hannibal Barca", limit=5)

    assert [a.title for a in articles] == ["Hannibal", "Cannae"]
    assert articles[1].extract == "Battle in 216 BC."
    assert calls[1]["pageids"] == "1|2"

    again = mod.search_articles("  hannibal barca ", limit=1)
    assert [a.title for a in again] == ["Hannibal"]
    assert len(calls) == 2


def test_search_articles_upstream_failure(monkeypatch):
    monkeypatch.setattr(mod.requests, "get", lambda url, params, timeout, headers: DummyResp(503, text="down"))

    with pytest.raises(UpstreamError) as excinfo:
        mod.search_articles("Carthage")

    assert excinfo.value.upstream_status == 503


def test_search_articles_connection_error(monkeypatch):
    def refuse(url, params, timeout, headers):
        raise mod.requests.ConnectionError("name resolution failed")

    monkeypatch.setattr(mod.requests, "get", refuse)

    with pytest.raises(UpstreamError) as excinfo:
        mod.search_articles("Carthage")

    assert excinfo.value.upstream_status == 0
    assert excinfo.value.service == "Wikipedia"


def test_article_content_missing_page(monkeypatch):
    monkeypatch.setattr(
        mod.requests,
        "get",
        lambda url, params, timeout, headers: DummyResp(200, {"query": {"pages": {"9": {"missing": ""}}}}),
    )

    with pytest.raises(NotFoundError):
        mod.article_content(9)


def test_search_keywords_accepts_json_or_plain_list(ctx, gateway):
    gateway.replies.append('Here you go: ["Punic Wars", "Hannibal", "Scipio Africanus", "Zama"]')
    assert mod.search_keywords(ctx, "Hannibal at the gates") == ["Punic Wars", "Hannibal", "Scipio Africanus"]

    gateway.replies.append("Punic Wars, Hannibal\nScipio")
    assert mod.search_keywords(ctx, "Hannibal at the gates") == ["Punic Wars", "Hannibal", "Scipio"]
