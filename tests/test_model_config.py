import pytest

from src.config import get_secret, load_config, normalize_secret
from src.errors import ConfigurationError
from src.lib import model_config
from src.llm.gateway import gateway_from_config


def _secret_reader(mapping):
    def _reader(name, default=""):
        return mapping.get(name, mapping.get(name.upper(), default))

    return _reader


def test_resolve_model_tiers_rejects_api_key_like_model():
    model_config.resolve_model_tiers.cache_clear()
    with pytest.raises(ValueError, match="OPENAI_MODEL_FAST is an API key"):
        model_config.resolve_model_tiers(
            get_secret=_secret_reader(
                {
                    "openai_api_key": "sk-proj-real-key",
                    "openai_model_fast": "sk-proj-abc123",
                }
            )
        )


def test_resolve_model_tiers_uses_defaults():
    model_config.resolve_model_tiers.cache_clear()
    cfg = model_config.resolve_model_tiers(get_secret=_secret_reader({"openai_api_key": "sk-proj-real-key"}))

    assert cfg.models == model_config.DEFAULT_TIER_MODELS
    assert cfg.model_for("best") == "gpt-4.1"


def test_resolve_model_tiers_requires_api_key():
    model_config.resolve_model_tiers.cache_clear()
    with pytest.raises(ValueError, match="Missing OPENAI_API_KEY"):
        model_config.resolve_model_tiers(get_secret=_secret_reader({"openai_model_fast": "gpt-4o-mini"}))


def test_gateway_from_config_missing_key_is_configuration_error():
    model_config.resolve_model_tiers.cache_clear()
    with pytest.raises(ConfigurationError):
        gateway_from_config(_secret_reader({}), client=object())


def test_normalize_secret_rejects_placeholders():
    assert normalize_secret('"sk-live"') == "sk-live"
    assert normalize_secret("paste_your_key_here") == ""
    assert normalize_secret("None") == ""


def test_load_config_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("HISTORY_MAKER_DB", str(tmp_path / "x.db"))
    monkeypatch.setenv("CLIP_TIMEOUT_S", "120")
    monkeypatch.setenv("CLIP_WORKERS", "0")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    cfg = load_config()

    assert cfg.db_path == tmp_path / "x.db"
    assert cfg.clip_timeout_s == 120.0
    assert cfg.clip_workers == 1
    assert cfg.log_level == "DEBUG"
    assert cfg.clip_poll_interval_s == 10.0


def test_get_secret_falls_back_to_default(monkeypatch):
    monkeypatch.delenv("SOME_UNSET_SETTING", raising=False)

    assert get_secret("some_unset_setting", "fallback") == "fallback"
