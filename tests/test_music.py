import pytest

import src.music.catalog as catalog
from src.errors import ConfigurationError, UpstreamError, ValidationError
from src.models import MusicAnalysis, MusicTrack, UserSettings
from src.music import analyze_music, music_selection, save_music_selection, score_track, search_tracks


class DummyResp:
    def __init__(self, status_code: int, body=None, text: str = ""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        return self._body


ANALYSIS = MusicAnalysis(mood="epic", tempo="90-110 BPM", genres=["orchestral", "ambient"])


def test_score_track_weights_mood_genre_and_tempo():
    perfect = MusicTrack(id="1", mood="Epic battle", genre="Orchestral", tempo="100 BPM")
    genre_only = MusicTrack(id="2", mood="calm", genre="ambient", tempo="60")
    nothing = MusicTrack(id="3", mood="happy", genre="pop", tempo="fast")

    assert score_track(perfect, ANALYSIS) == 6
    assert score_track(genre_only, ANALYSIS) == 2
    assert score_track(nothing, ANALYSIS) == 0
    assert score_track(perfect, None) == 0


def test_search_tracks_ranks_results(monkeypatch, ctx):
    captured = {}

    def fake_get(url, params, headers, timeout):
        captured.update(url=url, params=params, headers=headers)
        return DummyResp(
            200,
            {
                "tracks": [
                    {"id": "a", "title": "Lullaby", "mood": "calm", "genre": "folk"},
                    {"id": "b", "title": "March of Legions", "mood": "epic", "genre": "orchestral", "bpm": 100, "previewUrl": "https://p/b.mp3"},
                    {"title": "No id"},
                ]
            },
        )

    monkeypatch.setattr(catalog.requests, "get", fake_get)

    tracks = search_tracks(ctx, analysis=ANALYSIS)

    assert [t.id for t in tracks] == ["b", "a"]
    assert tracks[0].score == 6
    assert tracks[0].preview_url == "https://p/b.mp3"
    assert captured["url"] == "https://music.test/v1/tracks/search"
    assert captured["params"]["q"] == "epic orchestral ambient"
    assert captured["headers"]["Authorization"] == "Bearer music-test-key"


def test_search_tracks_errors(monkeypatch, ctx):
    with pytest.raises(ValidationError):
        search_tracks(ctx, query="")

    monkeypatch.setattr(catalog.requests, "get", lambda url, params, headers, timeout: DummyResp(500, text="down"))
    with pytest.raises(UpstreamError):
        search_tracks(ctx, query="drums")

    def refuse(url, params, headers, timeout):
        raise catalog.requests.ConnectionError("connection refused")

    monkeypatch.setattr(catalog.requests, "get", refuse)
    with pytest.raises(UpstreamError) as excinfo:
        search_tracks(ctx, query="drums")
    assert excinfo.value.upstream_status == 0

    ctx.settings = UserSettings(user_id=ctx.user_id)
    with pytest.raises(ConfigurationError):
        search_tracks(ctx, query="drums")


def test_analyze_music_uses_structured_reply(ctx, gateway):
    gateway.structured.append(
        {"mood": "somber", "tempo": "slow", "genres": ["ambient"], "sections": [{"startPosition": 0, "endPosition": 40, "mood": "tense", "intensity": "high"}]}
    )

    analysis = analyze_music(ctx, "The city burned for six days.")

    assert analysis.mood == "somber"
    assert analysis.sections[0].end_position == 40
    assert "The city burned for six days." in gateway.calls[0]["messages"][0]["content"]


def test_music_selection_round_trip(ctx, project):
    save_music_selection(ctx, project.video.id, ["b", " a ", "b"])

    assert music_selection(ctx, project.video.id) == ["b", "a"]
