"""Text generation gateway over the OpenAI chat completions API.

Every pipeline stage talks to the language model through ``TextGateway`` so
that tier selection, error mapping and structured-output validation live in
one place.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Optional

from openai import APIConnectionError, APIStatusError, OpenAI
from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from src.errors import ConfigurationError, MalformedOutputError, UpstreamError, ValidationError
from src.lib.model_config import MODEL_TIERS, ModelTierConfig, resolve_model_tiers

logger = logging.getLogger(__name__)

_SERVICE = "Text generation"

_JSON_REMINDER = (
    "Respond with valid JSON only. Do not wrap it in markdown fences and do not add commentary."
)


def extract_json(text: str) -> Any:
    """Decode the first JSON object or array embedded in ``text``."""
    decoder = json.JSONDecoder()
    raw = text or ""
    for idx, ch in enumerate(raw):
        if ch not in "[{":
            continue
        try:
            value, _ = decoder.raw_decode(raw[idx:])
            return value
        except json.JSONDecodeError:
            continue
    raise ValueError("No JSON value found in model reply")


class TextGateway:
    def __init__(self, api_key: str, models: dict[str, str], client: Optional[Any] = None) -> None:
        if not (api_key or "").strip():
            raise ConfigurationError("Text generation API key is not configured")
        self.models = dict(models)
        self._client = client or OpenAI(api_key=api_key)

    def model_for(self, tier: str) -> str:
        if tier not in MODEL_TIERS or tier not in self.models:
            raise ValidationError(f"Unknown model tier '{tier}'. Use one of: {', '.join(MODEL_TIERS)}")
        return self.models[tier]

    def invoke(
        self,
        tier: str,
        system_prompt: str,
        messages: Iterable[dict],
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> str:
        model = self.model_for(tier)
        chat = [{"role": "system", "content": system_prompt}] if system_prompt else []
        chat.extend({"role": m["role"], "content": m["content"]} for m in messages)

        logger.info("Invoking %s (tier=%s, messages=%d, max_tokens=%d)", model, tier, len(chat), max_tokens)
        try:
            resp = self._client.chat.completions.create(
                model=model,
                messages=chat,
                max_completion_tokens=max_tokens,
                temperature=temperature,
            )
        except APIStatusError as exc:
            body = str(getattr(exc, "body", "") or exc.message)
            logger.warning("%s returned %s: %s", model, exc.status_code, body[:300])
            raise UpstreamError(
                f"{_SERVICE} error {exc.status_code}: {body[:500]}",
                service=_SERVICE,
                upstream_status=exc.status_code,
                body=body,
            ) from exc
        except APIConnectionError as exc:
            logger.warning("Could not reach %s: %s", model, exc)
            raise UpstreamError(
                f"{_SERVICE} connection failed: {exc}",
                service=_SERVICE,
                upstream_status=0,
            ) from exc

        choices = getattr(resp, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content or not str(content).strip():
            raise UpstreamError(f"{_SERVICE} returned an empty reply", service=_SERVICE, upstream_status=200)
        return str(content)

    def invoke_structured(
        self,
        tier: str,
        system_prompt: str,
        messages: Iterable[dict],
        schema: Any,
        max_attempts: int = 2,
        max_tokens: int = 4096,
        temperature: float = 0.7,
    ) -> Any:
        """Invoke the model and validate its reply against ``schema``.

        ``schema`` is any type pydantic's ``TypeAdapter`` accepts (a model,
        ``list[Model]``, ...). A malformed reply is sent back with the
        validation error and the model is asked again, up to ``max_attempts``
        calls in total. Returns the validated value.
        """
        adapter = TypeAdapter(schema)
        system = f"{system_prompt}\n\n{_JSON_REMINDER}" if system_prompt else _JSON_REMINDER
        conversation = list(messages)
        last_error = ""

        for attempt in range(1, max(1, max_attempts) + 1):
            reply = self.invoke(tier, system, conversation, max_tokens=max_tokens, temperature=temperature)
            try:
                return adapter.validate_python(extract_json(reply))
            except (ValueError, SchemaError) as exc:
                last_error = str(exc)
                logger.warning("Structured reply rejected (attempt %d/%d): %s", attempt, max_attempts, last_error[:300])
                conversation = conversation + [
                    {"role": "assistant", "content": reply},
                    {
                        "role": "user",
                        "content": (
                            "Your previous reply could not be used: "
                            f"{last_error[:1000]}\nReply again with only JSON in the requested shape."
                        ),
                    },
                ]

        raise MalformedOutputError(
            f"{_SERVICE} returned malformed structured output after {max_attempts} attempt(s): {last_error[:300]}",
            service=_SERVICE,
            upstream_status=200,
        )


def gateway_from_config(get_secret=None, client: Optional[Any] = None) -> TextGateway:
    """Build a gateway from server secrets; missing key is a configuration error."""
    try:
        tiers: ModelTierConfig = resolve_model_tiers(get_secret)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    return TextGateway(tiers.api_key, tiers.models, client=client)
