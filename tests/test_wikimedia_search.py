import pytest

import src.visuals.wikimedia as mod
from src.errors import UpstreamError, ValidationError


class DummyResp:
    def __init__(self, status_code: int, body: dict | None = None, text: str = ""):
        self.status_code = status_code
        self._body = body or {}
        self.text = text

    def json(self):
        return self._body


def _page(title: str, url: str, width: int, height: int, **meta) -> dict:
    return {
        "title": f"File:{title}",
        "imageinfo": [
            {
                "url": url,
                "thumburl": url + "?thumb",
                "width": width,
                "height": height,
                "extmetadata": {k: {"value": v} for k, v in meta.items()},
            }
        ],
    }


def test_build_query_appends_filters_and_bitmap_restriction():
    assert mod.build_query("Napoleon, Austerlitz") == "Napoleon  Austerlitz filetype:bitmap"
    assert (
        mod.build_query("Napoleon", "paintings", "featured")
        == 'Napoleon painting incategory:"Featured pictures" filetype:bitmap'
    )


def test_build_query_rejects_unknown_filter():
    with pytest.raises(ValidationError):
        mod.build_query("Napoleon", media_filter="sculpture")


def test_search_wikimedia_filters_and_sorts_by_area(monkeypatch):
    captured = {}
    pages = {
        "1": _page("Small.jpg", "https://upload.test/small.jpg", 120, 90),
        "2": _page("Vector.svg", "https://upload.test/vector.svg", 2000, 2000),
        "3": _page(
            "Coronation.jpg",
            "https://upload.test/coronation.jpg",
            3000,
            2000,
            Artist='<a href="x">Jacques-Louis David</a>',
            LicenseShortName="Public domain",
            DateTimeOriginal="1807 date QS:P571,+1807",
        ),
        "4": _page("Bridge.png", "https://upload.test/bridge.png", 800, 600),
        "5": {"title": "File:NoInfo.jpg"},
    }

    def fake_get(url, params, headers, timeout):
        captured.update(params)
        return DummyResp(200, {"query": {"pages": pages}})

    monkeypatch.setattr(mod.requests, "get", fake_get)

    results = mod.search_wikimedia("Napoleon coronation", limit=3)

    assert [r.title for r in results] == ["Coronation.jpg", "Bridge.png"]
    assert results[0].attribution == "Jacques-Louis David"
    assert results[0].license == "Public domain"
    assert results[0].date == "1807"
    assert results[0].thumbnail == "https://upload.test/coronation.jpg?thumb"
    assert captured["gsrnamespace"] == 6
    assert captured["gsrsearch"].endswith("filetype:bitmap")


def test_search_wikimedia_respects_limit(monkeypatch):
    pages = {str(i): _page(f"{i}.jpg", f"https://upload.test/{i}.jpg", 400 + i, 300) for i in range(5)}
    monkeypatch.setattr(mod.requests, "get", lambda url, params, headers, timeout: DummyResp(200, {"query": {"pages": pages}}))

    results = mod.search_wikimedia("Rome", limit=2)

    assert [r.title for r in results] == ["4.jpg", "3.jpg"]


def test_search_wikimedia_upstream_error(monkeypatch):
    monkeypatch.setattr(mod.requests, "get", lambda url, params, headers, timeout: DummyResp(500, text="oops"))

    with pytest.raises(UpstreamError):
        mod.search_wikimedia("Rome")


def test_search_wikimedia_timeout_is_upstream_error(monkeypatch):
    def slow(url, params, headers, timeout):
        raise mod.requests.Timeout("read timed out")

    monkeypatch.setattr(mod.requests, "get", slow)

    with pytest.raises(UpstreamError) as excinfo:
        mod.search_wikimedia("Rome")

    assert excinfo.value.upstream_status == 0
