"""Centralised secret / configuration helpers.

All other modules should import ``get_secret`` and ``load_config`` from here
rather than duplicating the lookup logic.  Server-level values (database path,
text-generation key, model tiers) come from Streamlit secrets or environment
variables; per-user credentials live in the settings store instead
(see ``src.storage.Database.get_user_settings``).
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import streamlit as st

DEFAULT_DB_PATH = "data/history_maker.db"
DEFAULT_CLIP_POLL_INTERVAL_S = 10.0
DEFAULT_CLIP_TIMEOUT_S = 600.0
DEFAULT_CLIP_WORKERS = 4

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _normalize(value: str) -> str:
    """Strip whitespace and surrounding quotes; reject known placeholder strings."""
    v = str(value or "").strip()
    if len(v) >= 2 and v[0] == v[-1] and v[0] in {'"', "'"}:
        v = v[1:-1].strip()
    low = v.lower()
    if low in {"none", "null", ""}:
        return ""
    # Reject any value that looks like an unfilled template placeholder.
    if low.startswith(("paste_", "paste-", "your_", "your-", "replace_me", "changeme", "xxx")):
        return ""
    if low.endswith(("_here", "-here", "_key_here", "_token_here", "_id_here")):
        return ""
    return v


def normalize_secret(value: str) -> str:
    return _normalize(value)


def get_secret(name: str, default: str = "") -> str:
    """Return a secret value, searching Streamlit secrets then env vars.

    Checks ``name``, ``name.lower()``, and ``name.upper()`` in that order.
    """
    candidates = list(dict.fromkeys([name, name.lower(), name.upper()]))

    try:
        for key in candidates:
            if key in st.secrets:
                v = _normalize(str(st.secrets[key]))
                if v:
                    return v
    except FileNotFoundError:
        # No secrets.toml: environment variables only.
        pass

    for key in candidates:
        v = _normalize(os.getenv(key, ""))
        if v:
            return v

    return _normalize(default)


def _float_secret(name: str, default: float) -> float:
    raw = get_secret(name, "")
    try:
        return float(raw) if raw else default
    except ValueError:
        return default


@dataclass(frozen=True)
class AppConfig:
    db_path: Path = Path(DEFAULT_DB_PATH)
    log_level: str = "INFO"
    clip_poll_interval_s: float = DEFAULT_CLIP_POLL_INTERVAL_S
    clip_timeout_s: float = DEFAULT_CLIP_TIMEOUT_S
    clip_workers: int = DEFAULT_CLIP_WORKERS


def load_config() -> AppConfig:
    return AppConfig(
        db_path=Path(get_secret("HISTORY_MAKER_DB", DEFAULT_DB_PATH)),
        log_level=get_secret("LOG_LEVEL", "INFO").upper(),
        clip_poll_interval_s=_float_secret("CLIP_POLL_INTERVAL_S", DEFAULT_CLIP_POLL_INTERVAL_S),
        clip_timeout_s=_float_secret("CLIP_TIMEOUT_S", DEFAULT_CLIP_TIMEOUT_S),
        clip_workers=max(1, int(_float_secret("CLIP_WORKERS", DEFAULT_CLIP_WORKERS))),
    )


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``src`` logger tree."""
    logger = logging.getLogger("src")
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        logger.addHandler(handler)
    return logger
