"""Environment-driven settings.

Every accessor reads ``os.environ`` at call time so a test can flip a value
with ``monkeypatch.setenv`` without reloading modules.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

_PACKAGE_DATA_DIR = Path(__file__).resolve().parent / "data"

DEFAULT_GROQ_MODEL = "llama-3.3-70b-versatile"
DEFAULT_FX_URL = "https://open.er-api.com/v6/latest/USD"
DEFAULT_FX_RATE = 25000.0


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def data_dir() -> Path:
    raw = _env_str("HSLOOKUP_DATA_DIR")
    return Path(raw) if raw else _PACKAGE_DATA_DIR


def vn_data_path() -> Path:
    return data_dir() / (_env_str("HSLOOKUP_VN_DATA_FILE") or "hscode.json")


def us_data_path() -> Path:
    return data_dir() / (_env_str("HSLOOKUP_US_DATA_FILE") or "us-hts.json")


def cas_data_path() -> Path:
    return data_dir() / (_env_str("HSLOOKUP_CAS_DATA_FILE") or "cas.json")


def groq_api_key() -> Optional[str]:
    return _env_str("GROQ_API_KEY")


def groq_model() -> str:
    return _env_str("GROQ_MODEL") or DEFAULT_GROQ_MODEL


def groq_vision_model() -> Optional[str]:
    return _env_str("GROQ_VISION_MODEL")


def ai_refine_enabled() -> bool:
    return _env_flag("HSLOOKUP_AI_REFINE", True)


def ai_headings_enabled() -> bool:
    return _env_flag("HSLOOKUP_AI_HEADINGS", False)


def fuzzy_cutoff() -> int:
    return max(0, min(100, _env_int("HSLOOKUP_FUZZY_CUTOFF", 60)))


def http_timeout() -> float:
    return _env_float("HSLOOKUP_HTTP_TIMEOUT", 10.0)


def llm_timeout() -> float:
    return _env_float("HSLOOKUP_LLM_TIMEOUT", 30.0)


def fx_url() -> str:
    return _env_str("HSLOOKUP_FX_URL") or DEFAULT_FX_URL


def redis_url() -> str:
    return _env_str("REDIS_URL") or "redis://localhost:6379/0"


def redis_cache_enabled() -> bool:
    return _env_flag("HSLOOKUP_REDIS_CACHE", True)


def site_url() -> str:
    return (_env_str("HSLOOKUP_SITE_URL") or "http://localhost:3000").rstrip("/")


def sitemap_page_size() -> int:
    return max(1, _env_int("HSLOOKUP_SITEMAP_PAGE_SIZE", 45000))


def ai_rate_limit_per_minute() -> int:
    return max(1, _env_int("HSLOOKUP_AI_RATE_LIMIT_PER_MINUTE", 30))


def rate_window_seconds() -> int:
    return max(1, _env_int("HSLOOKUP_RATE_WINDOW_SEC", 60))


def log_level() -> str:
    return (_env_str("HSLOOKUP_LOG_LEVEL") or "INFO").upper()
