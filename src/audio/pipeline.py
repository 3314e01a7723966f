"""Narration takes: chunked synthesis, alignment merge and persistence."""
from __future__ import annotations

import logging
import re
import uuid
from typing import Iterable, List, Optional

from src.audio.alignment import alignment_duration, derive_word_timestamps, merge_alignments
from src.audio.chunking import MAX_CHUNK_SIZE, normalize_text, split_into_chunks
from src.audio.elevenlabs import DEFAULT_OUTPUT_FORMAT, ElevenLabsClient
from src.errors import ValidationError, require
from src.models import AudioTake, WordTimestamp
from src.supabase_storage import asset_path, content_type_for, decode_data_url, extension_for, to_data_url

logger = logging.getLogger(__name__)

_BASE64_RE = re.compile(r"^[A-Za-z0-9+/=\s]+$")


def synthesize_take(
    ctx,
    text: str,
    voice_id: str,
    output_format: str = DEFAULT_OUTPUT_FORMAT,
    max_chunk_size: int = MAX_CHUNK_SIZE,
) -> AudioTake:
    """Render ``text`` with one voice and return an unsaved take.

    The text is split into chunks under the upstream size limit and each chunk
    is synthesized in order. Audio is concatenated and the alignments merged
    with cumulative time offsets. Any chunk failing aborts the whole take.
    """
    text = require(normalize_text(text), "Text is required")
    voice_id = require((voice_id or "").strip(), "Voice ID is required")
    client = ElevenLabsClient(ctx.settings.require("elevenlabs_api_key", "ElevenLabs API key"))

    chunks = split_into_chunks(text, max_chunk_size)
    logger.info("Synthesizing %d characters in %d chunk(s) with voice %s", len(text), len(chunks), voice_id)

    results = [client.dialogue_with_timestamps(chunk, voice_id, output_format) for chunk in chunks]
    durations = [alignment_duration(r.alignment) for r in results]
    merged = merge_alignments([r.alignment for r in results], durations)
    audio = b"".join(r.audio for r in results)

    return AudioTake(
        tagged_text=text,
        voice_id=voice_id,
        url=to_data_url(audio, content_type_for(output_format)),
        timestamps=derive_word_timestamps(merged),
        duration=sum(durations),
        chunk_count=len(chunks),
        size_bytes=len(audio),
    )


def _decode_audio(audio_data: str) -> bytes:
    if audio_data.startswith("data:"):
        data, _mime = decode_data_url(audio_data)
        return data
    if not _BASE64_RE.match(audio_data):
        raise ValidationError("Audio data must be base64 or a data URL")
    data, _mime = decode_data_url(f"data:application/octet-stream;base64,{audio_data}")
    return data


def save_take(
    ctx,
    video_id: str,
    audio_data: str,
    tagged_text: str = "",
    voice_id: str = "",
    stability: Optional[float] = None,
    timestamps: Optional[Iterable] = None,
    output_format: str = DEFAULT_OUTPUT_FORMAT,
) -> AudioTake:
    """Persist an unsaved take: upload the audio and record it against the script."""
    require(video_id, "Video ID is required")
    require(audio_data, "Audio data is required")
    script, video, series = ctx.owned_script(video_id)

    audio = _decode_audio(audio_data.strip())
    if not audio:
        raise ValidationError("Audio data is empty")
    words: List[WordTimestamp] = [
        t if isinstance(t, WordTimestamp) else WordTimestamp(**t) for t in (timestamps or [])
    ]

    take_id = uuid.uuid4().hex
    path = asset_path(ctx.user_id, series.id, video.id, "audio", take_id, extension_for(output_format))
    url = ctx.blob_store.put(path, audio, content_type_for(output_format))

    take = ctx.db.insert_audio(
        AudioTake(
            id=take_id,
            script_id=script.id,
            tagged_text=tagged_text or "",
            voice_id=voice_id or "",
            stability=0.5 if stability is None else stability,
            url=url,
            timestamps=words,
            duration=words[-1].end_time if words else 0.0,
            size_bytes=len(audio),
        )
    )
    if video.status in {"planned", "scripting"}:
        ctx.db.update_video(video.id, status="audio")
    logger.info("Saved take %s (%d bytes) for video %s", take.id, len(audio), video.id)
    return take


def list_takes(ctx, video_id: str) -> List[AudioTake]:
    video, _series = ctx.owned_video(video_id)
    script = ctx.db.get_script_for_video(video.id)
    if script is None:
        return []
    return ctx.db.list_audios(script.id)
