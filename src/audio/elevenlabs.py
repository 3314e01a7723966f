"""ElevenLabs text-to-dialogue client (timestamped synthesis) and voice catalog."""
from __future__ import annotations

import base64
import binascii
import logging
from dataclasses import dataclass

import requests

from src.audio.alignment import Alignment
from src.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1"
DIALOGUE_MODEL = "eleven_v3"
DEFAULT_OUTPUT_FORMAT = "mp3_44100_128"

_PREVIEW = "https://storage.googleapis.com/eleven-public-prod/premade/voices"

PREMADE_VOICES = [
    {"voice_id": "onwK4e9ZLuTAKqWW03F9", "name": "Daniel", "category": "male",
     "description": "British male, deep, documentary style",
     "preview_url": f"{_PREVIEW}/onwK4e9ZLuTAKqWW03F9/7eee0236-1a72-4b86-b303-5dcadc007ba9.mp3"},
    {"voice_id": "pNInz6obpgDQGcFmaJgB", "name": "Adam", "category": "male",
     "description": "American male, deep, authoritative",
     "preview_url": f"{_PREVIEW}/pNInz6obpgDQGcFmaJgB/d6905d7a-dd26-4187-bfff-1bd3a5ea7cac.mp3"},
    {"voice_id": "nPczCjzI2devNBz1zQrb", "name": "Brian", "category": "male",
     "description": "American male, deep, narration",
     "preview_url": f"{_PREVIEW}/nPczCjzI2devNBz1zQrb/2dd3e72c-4fd3-42f1-93ea-abc5d4e5aa1d.mp3"},
    {"voice_id": "CwhRBWXzGAHq8TQ4Fs17", "name": "Roger", "category": "male",
     "description": "American male, confident, middle-aged",
     "preview_url": f"{_PREVIEW}/CwhRBWXzGAHq8TQ4Fs17/58ee3ff5-f6f2-4628-93b8-e38eb31806b0.mp3"},
    {"voice_id": "JBFqnCBsd6RMkjVDRZzb", "name": "George", "category": "male",
     "description": "British male, warm, raspy",
     "preview_url": f"{_PREVIEW}/JBFqnCBsd6RMkjVDRZzb/e6206d1a-0721-4787-aafb-06a6e705cac5.mp3"},
    {"voice_id": "N2lVS1w4EtoT3dr4eOWO", "name": "Callum", "category": "male",
     "description": "Transatlantic male, intense, hoarse",
     "preview_url": f"{_PREVIEW}/N2lVS1w4EtoT3dr4eOWO/ac833bd8-ffda-4938-9ebc-b0f99ca25481.mp3"},
    {"voice_id": "pqHfZKP75CvOlQylNhV4", "name": "Bill", "category": "male",
     "description": "American male, trustworthy, documentary",
     "preview_url": f"{_PREVIEW}/pqHfZKP75CvOlQylNhV4/d782b3ff-84ba-4029-848c-acf01285524d.mp3"},
    {"voice_id": "EXAVITQu4vr4xnSDxMaL", "name": "Sarah", "category": "female",
     "description": "American female, soft, news",
     "preview_url": f"{_PREVIEW}/EXAVITQu4vr4xnSDxMaL/01a3e33c-6e99-4ee7-8543-ff2216a32186.mp3"},
    {"voice_id": "pFZP5JQG7iQjIQuC4Bku", "name": "Lily", "category": "female",
     "description": "British female, warm, raspy",
     "preview_url": f"{_PREVIEW}/pFZP5JQG7iQjIQuC4Bku/89b68b35-b3dd-4348-a84a-a3c13a3c2b30.mp3"},
    {"voice_id": "Xb7hH8MSUJpSbSDYk0k2", "name": "Alice", "category": "female",
     "description": "British female, confident, middle-aged",
     "preview_url": f"{_PREVIEW}/Xb7hH8MSUJpSbSDYk0k2/d10f7534-11f6-41fe-a012-2de1e482d336.mp3"},
    {"voice_id": "SAz9YHcvj6GT2YYXdXww", "name": "River", "category": "non-binary",
     "description": "American non-binary, confident, middle-aged",
     "preview_url": f"{_PREVIEW}/SAz9YHcvj6GT2YYXdXww/e6c95f0b-2227-491a-b3d7-2249240decb7.mp3"},
]


@dataclass
class ChunkResult:
    audio: bytes
    alignment: Alignment


class ElevenLabsClient:
    def __init__(self, api_key: str, base_url: str = ELEVENLABS_API_URL, timeout: int = 300) -> None:
        if not (api_key or "").strip():
            raise ConfigurationError("ElevenLabs API key is not configured. Add it in Settings.")
        self.api_key = api_key.strip()
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {"xi-api-key": self.api_key, "Content-Type": "application/json"}

    def dialogue_with_timestamps(
        self, text: str, voice_id: str, output_format: str = DEFAULT_OUTPUT_FORMAT
    ) -> ChunkResult:
        """Synthesize one chunk (at most ~5000 characters) with one voice."""
        try:
            resp = requests.post(
                f"{self.base_url}/text-to-dialogue/with-timestamps",
                params={"output_format": output_format},
                json={"inputs": [{"text": text, "voice_id": voice_id}], "model_id": DIALOGUE_MODEL},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("ElevenLabs request failed for a %d-character chunk: %s", len(text), exc)
            raise UpstreamError.from_transport("ElevenLabs", exc) from exc
        if resp.status_code >= 400:
            logger.error("ElevenLabs returned %s for a %d-character chunk", resp.status_code, len(text))
            raise UpstreamError.from_response("ElevenLabs", resp)

        data = resp.json()
        audio_b64 = data.get("audio_base64")
        if not audio_b64:
            raise UpstreamError("ElevenLabs response contained no audio", service="ElevenLabs", upstream_status=resp.status_code)
        try:
            audio = base64.b64decode(audio_b64)
        except (binascii.Error, ValueError) as exc:
            raise UpstreamError(f"ElevenLabs returned invalid audio data: {exc}", service="ElevenLabs") from exc

        alignment = Alignment.from_payload(data.get("normalized_alignment") or data.get("alignment") or {})
        return ChunkResult(audio=audio, alignment=alignment)
