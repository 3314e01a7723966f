from __future__ import annotations

from types import SimpleNamespace

import pytest
from pydantic import TypeAdapter

from src.config import AppConfig
from src.context import PipelineContext
from src.errors import UpstreamError
from src.models import UserSettings, Video
from src.storage import Database, new_id

USER_ID = "user-1"
STORE_BASE = "https://store.test/storage/v1/object/public/assets/"


class FakeGateway:
    """Scripted replies in call order. An exception in the queue is raised instead."""

    def __init__(self) -> None:
        self.replies: list = []
        self.structured: list = []
        self.calls: list[dict] = []

    def invoke(self, tier, system_prompt, messages, max_tokens=4096, temperature=0.7):
        self.calls.append({"tier": tier, "system": system_prompt, "messages": list(messages), "max_tokens": max_tokens})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    def invoke_structured(self, tier, system_prompt, messages, schema, max_attempts=2, max_tokens=4096, temperature=0.7):
        self.calls.append({"tier": tier, "system": system_prompt, "messages": list(messages), "schema": schema})
        value = self.structured.pop(0)
        if isinstance(value, Exception):
            raise value
        return TypeAdapter(schema).validate_python(value)


class FakeBlobStore:
    def __init__(self) -> None:
        self.objects: dict[str, tuple[bytes, str]] = {}

    def put(self, path, data, content_type):
        self.objects[path] = (data, content_type)
        return STORE_BASE + path

    def get(self, path):
        if path not in self.objects:
            raise UpstreamError(f"Storage download failed: {path}", service="Storage")
        return self.objects[path][0]

    def path_from_url(self, url):
        return url[len(STORE_BASE):] if (url or "").startswith(STORE_BASE) else None

    def check_connection(self):
        return True


@pytest.fixture
def db(tmp_path):
    return Database(tmp_path / "history.db")


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def config(tmp_path):
    return AppConfig(db_path=tmp_path / "history.db", clip_poll_interval_s=1, clip_timeout_s=30, clip_workers=2)


@pytest.fixture
def ctx(db, gateway, blob_store, config):
    db.save_user_settings(
        UserSettings(
            user_id=USER_ID,
            elevenlabs_api_key="el-test-key",
            google_gemini_api_key="gem-test-key",
            music_api_url="https://music.test/v1",
            music_api_key="music-test-key",
        )
    )
    return PipelineContext.for_user(
        USER_ID,
        db,
        config,
        gateway_factory=lambda: gateway,
        blob_store_factory=lambda settings: blob_store,
    )


@pytest.fixture
def project(ctx):
    """A series with one video and a saved script."""
    series = ctx.db.create_series(USER_ID, "The Roman Empire")
    video = ctx.db.insert_video(Video(id=new_id(), series_id=series.id, title="The Fall of Rome", format="youtube"))
    script = ctx.db.upsert_script(
        video.id,
        "Source notes",
        "Rome was not built in a day. Its fall took centuries.",
        duration="2min",
    )
    return SimpleNamespace(series=series, video=video, script=script)
