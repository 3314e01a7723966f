from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

from src.errors import NotFoundError
from src.models import (
    AudioTake,
    Script,
    Series,
    UserSettings,
    Video,
    VideoClip,
    Visual,
    VisualVariant,
    WordTimestamp,
)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS series (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        topic TEXT NOT NULL DEFAULT '',
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS videos (
        id TEXT PRIMARY KEY,
        series_id TEXT NOT NULL REFERENCES series(id) ON DELETE CASCADE,
        title TEXT NOT NULL DEFAULT '',
        description TEXT NOT NULL DEFAULT '',
        format TEXT NOT NULL DEFAULT 'youtube',
        status TEXT NOT NULL DEFAULT 'planned',
        scheduled_date TEXT,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scripts (
        id TEXT PRIMARY KEY,
        video_id TEXT NOT NULL UNIQUE REFERENCES videos(id) ON DELETE CASCADE,
        source_text TEXT NOT NULL DEFAULT '',
        generated_script TEXT NOT NULL DEFAULT '',
        duration TEXT NOT NULL DEFAULT '',
        tone TEXT NOT NULL DEFAULT '',
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS audios (
        id TEXT PRIMARY KEY,
        script_id TEXT NOT NULL REFERENCES scripts(id) ON DELETE CASCADE,
        tagged_text TEXT NOT NULL DEFAULT '',
        voice_id TEXT NOT NULL,
        stability REAL NOT NULL DEFAULT 0.5,
        url TEXT NOT NULL,
        timestamps TEXT NOT NULL DEFAULT '[]',
        duration REAL NOT NULL DEFAULT 0,
        size_bytes INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS visuals (
        id TEXT PRIMARY KEY,
        script_id TEXT NOT NULL REFERENCES scripts(id) ON DELETE CASCADE,
        sequence_number INTEGER NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        keywords TEXT NOT NULL DEFAULT '[]',
        UNIQUE(script_id, sequence_number)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS visual_variants (
        id TEXT PRIMARY KEY,
        visual_id TEXT NOT NULL REFERENCES visuals(id) ON DELETE CASCADE,
        source_url TEXT NOT NULL,
        processed_url TEXT,
        filters TEXT NOT NULL DEFAULT '[]',
        is_ai_generated INTEGER NOT NULL DEFAULT 0,
        is_selected INTEGER NOT NULL DEFAULT 0,
        size_bytes INTEGER NOT NULL DEFAULT 0,
        created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(visual_id, source_url)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS video_clips (
        id TEXT PRIMARY KEY,
        visual_id TEXT NOT NULL UNIQUE REFERENCES visuals(id) ON DELETE CASCADE,
        status TEXT NOT NULL DEFAULT 'pending',
        operation_id TEXT,
        url TEXT,
        progress INTEGER NOT NULL DEFAULT 0,
        error TEXT,
        model TEXT NOT NULL DEFAULT '',
        duration INTEGER NOT NULL DEFAULT 8,
        format TEXT NOT NULL DEFAULT 'landscape',
        size_bytes INTEGER NOT NULL DEFAULT 0,
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS music_selections (
        video_id TEXT NOT NULL REFERENCES videos(id) ON DELETE CASCADE,
        track_id TEXT NOT NULL,
        position INTEGER NOT NULL DEFAULT 0,
        PRIMARY KEY (video_id, track_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_settings (
        user_id TEXT PRIMARY KEY,
        data TEXT NOT NULL DEFAULT '{}',
        updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
)

_VIDEO_COLUMNS = {"title", "description", "format", "status", "scheduled_date"}
_CLIP_COLUMNS = {"status", "operation_id", "url", "progress", "error", "model", "duration", "format", "size_bytes"}


def new_id() -> str:
    return uuid.uuid4().hex


def _video(row: sqlite3.Row) -> Video:
    return Video(**{k: row[k] for k in ("id", "series_id", "title", "description", "format", "status", "scheduled_date")})


def _script(row: sqlite3.Row) -> Script:
    return Script(**{k: row[k] for k in ("id", "video_id", "source_text", "generated_script", "duration", "tone")})


def _audio(row: sqlite3.Row) -> AudioTake:
    return AudioTake(
        id=row["id"],
        script_id=row["script_id"],
        tagged_text=row["tagged_text"],
        voice_id=row["voice_id"],
        stability=row["stability"],
        url=row["url"],
        timestamps=[WordTimestamp(**t) for t in json.loads(row["timestamps"] or "[]")],
        duration=row["duration"],
        size_bytes=row["size_bytes"],
        created_at=row["created_at"],
    )


def _visual(row: sqlite3.Row) -> Visual:
    return Visual(
        id=row["id"],
        script_id=row["script_id"],
        sequence_number=row["sequence_number"],
        description=row["description"],
        keywords=json.loads(row["keywords"] or "[]"),
    )


def _variant(row: sqlite3.Row) -> VisualVariant:
    return VisualVariant(
        id=row["id"],
        visual_id=row["visual_id"],
        source_url=row["source_url"],
        processed_url=row["processed_url"],
        filters=json.loads(row["filters"] or "[]"),
        is_ai_generated=bool(row["is_ai_generated"]),
        is_selected=bool(row["is_selected"]),
        size_bytes=row["size_bytes"],
    )


def _clip(row: sqlite3.Row) -> VideoClip:
    return VideoClip(**{k: row[k] for k in ("id", "visual_id", *sorted(_CLIP_COLUMNS))})


class Database:
    """SQLite repository for every pipeline artifact."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path, timeout=30)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON;")
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")
            for statement in _SCHEMA:
                conn.execute(statement)

    # ------------------------------------------------------------------
    # Series / videos
    # ------------------------------------------------------------------

    def create_series(self, user_id: str, topic: str = "") -> Series:
        series_id = new_id()
        with self._connect() as conn:
            conn.execute("INSERT INTO series (id, user_id, topic) VALUES (?, ?, ?)", (series_id, user_id, topic))
        return self.get_series(series_id)

    def get_series(self, series_id: str) -> Optional[Series]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM series WHERE id = ?", (series_id,)).fetchone()
        if row is None:
            return None
        return Series(id=row["id"], user_id=row["user_id"], topic=row["topic"], created_at=row["created_at"])

    def list_series(self, user_id: str) -> list[Series]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM series WHERE user_id = ? ORDER BY created_at DESC", (user_id,)
            ).fetchall()
        return [Series(id=r["id"], user_id=r["user_id"], topic=r["topic"], created_at=r["created_at"]) for r in rows]

    def update_series_topic(self, series_id: str, topic: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE series SET topic = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (topic, series_id),
            )

    def delete_series(self, series_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM series WHERE id = ?", (series_id,))

    def insert_video(self, video: Video) -> Video:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO videos (id, series_id, title, description, format, status, scheduled_date)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    video.id,
                    video.series_id,
                    video.title,
                    video.description,
                    video.format,
                    video.status,
                    video.scheduled_date,
                ),
            )
        return video

    def update_video(self, video_id: str, **fields) -> Video:
        unknown = set(fields) - _VIDEO_COLUMNS
        if unknown:
            raise ValueError(f"Unknown video field(s): {', '.join(sorted(unknown))}")
        if fields:
            assignments = ", ".join(f"{name} = ?" for name in fields)
            with self._connect() as conn:
                conn.execute(f"UPDATE videos SET {assignments} WHERE id = ?", (*fields.values(), video_id))
        video = self.get_video(video_id)
        if video is None:
            raise NotFoundError("Video not found")
        return video

    def get_video(self, video_id: str) -> Optional[Video]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM videos WHERE id = ?", (video_id,)).fetchone()
        return _video(row) if row else None

    def list_videos(self, series_id: str) -> list[Video]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM videos WHERE series_id = ? ORDER BY scheduled_date, created_at", (series_id,)
            ).fetchall()
        return [_video(r) for r in rows]

    # ------------------------------------------------------------------
    # Scripts / audio takes
    # ------------------------------------------------------------------

    def upsert_script(
        self,
        video_id: str,
        source_text: str,
        generated_script: str,
        duration: str = "",
        tone: str = "",
    ) -> Script:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO scripts (id, video_id, source_text, generated_script, duration, tone)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(video_id) DO UPDATE SET
                    source_text=excluded.source_text,
                    generated_script=excluded.generated_script,
                    duration=excluded.duration,
                    tone=excluded.tone,
                    updated_at=CURRENT_TIMESTAMP
                """,
                (new_id(), video_id, source_text, generated_script, duration, tone),
            )
        return self.get_script_for_video(video_id)

    def update_script_text(self, script_id: str, generated_script: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE scripts SET generated_script = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (generated_script, script_id),
            )

    def get_script_for_video(self, video_id: str) -> Optional[Script]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM scripts WHERE video_id = ?", (video_id,)).fetchone()
        return _script(row) if row else None

    def insert_audio(self, take: AudioTake) -> AudioTake:
        take_id = take.id or new_id()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO audios (id, script_id, tagged_text, voice_id, stability, url, timestamps, duration, size_bytes)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    take_id,
                    take.script_id,
                    take.tagged_text,
                    take.voice_id,
                    take.stability,
                    take.url,
                    json.dumps([t.model_dump() for t in take.timestamps]),
                    take.duration,
                    take.size_bytes,
                ),
            )
        return take.model_copy(update={"id": take_id})

    def list_audios(self, script_id: str) -> list[AudioTake]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM audios WHERE script_id = ? ORDER BY created_at DESC, rowid DESC", (script_id,)
            ).fetchall()
        return [_audio(r) for r in rows]

    # ------------------------------------------------------------------
    # Visuals / variants
    # ------------------------------------------------------------------

    def upsert_visual(self, script_id: str, sequence_number: int, description: str, keywords: Iterable[str]) -> Visual:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO visuals (id, script_id, sequence_number, description, keywords)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(script_id, sequence_number) DO UPDATE SET
                    description=excluded.description,
                    keywords=excluded.keywords
                """,
                (new_id(), script_id, sequence_number, description, json.dumps(list(keywords))),
            )
        return self.get_visual_by_number(script_id, sequence_number)

    def delete_visuals_after(self, script_id: str, sequence_number: int) -> None:
        """Drop visuals numbered above ``sequence_number`` (re-tagging produced fewer)."""
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM visuals WHERE script_id = ? AND sequence_number > ?", (script_id, sequence_number)
            )

    def get_visual(self, visual_id: str) -> Optional[Visual]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM visuals WHERE id = ?", (visual_id,)).fetchone()
        return _visual(row) if row else None

    def get_visual_by_number(self, script_id: str, sequence_number: int) -> Optional[Visual]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM visuals WHERE script_id = ? AND sequence_number = ?", (script_id, sequence_number)
            ).fetchone()
        return _visual(row) if row else None

    def list_visuals(self, script_id: str) -> list[Visual]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM visuals WHERE script_id = ? ORDER BY sequence_number", (script_id,)
            ).fetchall()
        return [_visual(r) for r in rows]

    def upsert_variant(
        self,
        visual_id: str,
        source_url: str,
        is_ai_generated: bool = False,
        size_bytes: int = 0,
    ) -> VisualVariant:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO visual_variants (id, visual_id, source_url, is_ai_generated, size_bytes)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(visual_id, source_url) DO UPDATE SET
                    is_ai_generated=excluded.is_ai_generated,
                    size_bytes=excluded.size_bytes
                """,
                (new_id(), visual_id, source_url, int(bool(is_ai_generated)), size_bytes),
            )
            row = conn.execute(
                "SELECT * FROM visual_variants WHERE visual_id = ? AND source_url = ?", (visual_id, source_url)
            ).fetchone()
        return _variant(row)

    def select_variant(self, visual_id: str, variant_id: str) -> VisualVariant:
        """Atomically make ``variant_id`` the only selected variant of ``visual_id``."""
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT id FROM visual_variants WHERE id = ? AND visual_id = ?", (variant_id, visual_id)
            ).fetchone()
            if row is None:
                raise NotFoundError("Variant not found for this visual")
            conn.execute("UPDATE visual_variants SET is_selected = 0 WHERE visual_id = ?", (visual_id,))
            conn.execute("UPDATE visual_variants SET is_selected = 1 WHERE id = ?", (variant_id,))
            selected = conn.execute("SELECT * FROM visual_variants WHERE id = ?", (variant_id,)).fetchone()
        return _variant(selected)

    def update_variant_processed(
        self, variant_id: str, processed_url: str, filters: Iterable[str], size_bytes: int = 0
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE visual_variants
                SET processed_url = ?, filters = ?, size_bytes = size_bytes + ?
                WHERE id = ?
                """,
                (processed_url, json.dumps(list(filters)), size_bytes, variant_id),
            )

    def list_variants(self, visual_id: str) -> list[VisualVariant]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM visual_variants WHERE visual_id = ? ORDER BY created_at, rowid", (visual_id,)
            ).fetchall()
        return [_variant(r) for r in rows]

    def get_selected_variant(self, visual_id: str) -> Optional[VisualVariant]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM visual_variants WHERE visual_id = ? AND is_selected = 1", (visual_id,)
            ).fetchone()
        return _variant(row) if row else None

    # ------------------------------------------------------------------
    # Video clips
    # ------------------------------------------------------------------

    def upsert_clip(self, visual_id: str, **fields) -> VideoClip:
        unknown = set(fields) - _CLIP_COLUMNS
        if unknown:
            raise ValueError(f"Unknown clip field(s): {', '.join(sorted(unknown))}")
        columns = ["visual_id", *fields]
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(f"{name}=excluded.{name}" for name in fields) or "visual_id=excluded.visual_id"
        with self._connect() as conn:
            conn.execute(
                f"""
                INSERT INTO video_clips (id, {', '.join(columns)})
                VALUES (?, {placeholders})
                ON CONFLICT(visual_id) DO UPDATE SET {updates}, updated_at=CURRENT_TIMESTAMP
                """,
                (new_id(), visual_id, *fields.values()),
            )
        return self.get_clip_for_visual(visual_id)

    def update_clip(self, clip_id: str, **fields) -> VideoClip:
        unknown = set(fields) - _CLIP_COLUMNS
        if unknown:
            raise ValueError(f"Unknown clip field(s): {', '.join(sorted(unknown))}")
        if fields:
            assignments = ", ".join(f"{name} = ?" for name in fields)
            with self._connect() as conn:
                conn.execute(
                    f"UPDATE video_clips SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (*fields.values(), clip_id),
                )
        clip = self.get_clip(clip_id)
        if clip is None:
            raise NotFoundError("Clip not found")
        return clip

    def get_clip(self, clip_id: str) -> Optional[VideoClip]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM video_clips WHERE id = ?", (clip_id,)).fetchone()
        return _clip(row) if row else None

    def get_clip_for_visual(self, visual_id: str) -> Optional[VideoClip]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM video_clips WHERE visual_id = ?", (visual_id,)).fetchone()
        return _clip(row) if row else None

    def list_clips(self, script_id: str) -> list[VideoClip]:
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT c.* FROM video_clips c
                JOIN visuals v ON v.id = c.visual_id
                WHERE v.script_id = ?
                ORDER BY v.sequence_number
                """,
                (script_id,),
            ).fetchall()
        return [_clip(r) for r in rows]

    def video_id_for_visual(self, visual_id: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT s.video_id FROM visuals v JOIN scripts s ON s.id = v.script_id WHERE v.id = ?",
                (visual_id,),
            ).fetchone()
        return row["video_id"] if row else None

    # ------------------------------------------------------------------
    # Music
    # ------------------------------------------------------------------

    def replace_music_selection(self, video_id: str, track_ids: Iterable[str]) -> list[str]:
        unique = list(dict.fromkeys(t for t in track_ids if t))
        with self._connect() as conn:
            conn.execute("DELETE FROM music_selections WHERE video_id = ?", (video_id,))
            conn.executemany(
                "INSERT INTO music_selections (video_id, track_id, position) VALUES (?, ?, ?)",
                [(video_id, track_id, pos) for pos, track_id in enumerate(unique)],
            )
        return unique

    def list_music_selection(self, video_id: str) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT track_id FROM music_selections WHERE video_id = ? ORDER BY position", (video_id,)
            ).fetchall()
        return [r["track_id"] for r in rows]

    # ------------------------------------------------------------------
    # User settings
    # ------------------------------------------------------------------

    def get_user_settings(self, user_id: str) -> UserSettings:
        with self._connect() as conn:
            row = conn.execute("SELECT data FROM user_settings WHERE user_id = ?", (user_id,)).fetchone()
        data = json.loads(row["data"]) if row else {}
        data["user_id"] = user_id
        return UserSettings(**data)

    def save_user_settings(self, settings: UserSettings) -> UserSettings:
        payload = settings.model_dump()
        payload.pop("user_id", None)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO user_settings (user_id, data)
                VALUES (?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    data=excluded.data,
                    updated_at=CURRENT_TIMESTAMP
                """,
                (settings.user_id, json.dumps(payload)),
            )
        return settings
