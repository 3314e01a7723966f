import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable

MODEL_TIERS = ("fast", "balanced", "best")

DEFAULT_TIER_MODELS = {
    "fast": "gpt-4o-mini",
    "balanced": "gpt-4.1-mini",
    "best": "gpt-4.1",
}

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelTierConfig:
    api_key: str
    models: dict[str, str] = field(default_factory=dict)

    def model_for(self, tier: str) -> str:
        return self.models[tier]


@lru_cache(maxsize=1)
def resolve_model_tiers(get_secret: Callable[[str, str], str] | None = None) -> ModelTierConfig:
    """Resolve and validate the text-generation key and per-tier model ids.

    `get_secret` should have the same signature as src.config.get_secret.
    """

    reader = get_secret or (lambda name, default="": default)

    api_key = reader("openai_api_key", "").strip()
    if not api_key:
        raise ValueError("Missing OPENAI_API_KEY")

    models: dict[str, str] = {}
    for tier in MODEL_TIERS:
        default = DEFAULT_TIER_MODELS[tier]
        model = reader(f"openai_model_{tier}", default).strip() or default
        if "sk-" in model.lower():
            raise ValueError(
                f"Misconfiguration: OPENAI_MODEL_{tier.upper()} is an API key. "
                "Set it to a model id like gpt-4o-mini."
            )
        models[tier] = model

    _logger.info(
        "Text model tiers loaded (fast=%s, balanced=%s, best=%s, api_key_prefix=%s***).",
        models["fast"],
        models["balanced"],
        models["best"],
        api_key[:6],
    )

    return ModelTierConfig(api_key=api_key, models=models)
