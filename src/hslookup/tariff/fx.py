"""USD to VND exchange rate used to prefill the tax calculator."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict
from urllib.parse import urlparse

import requests

from hslookup import config
from hslookup.caching.redis_client import cached_call

logger = logging.getLogger(__name__)

FX_CACHE_TTL = 3600


@dataclass(frozen=True)
class FxQuote:
    base: str
    quote: str
    rate: float
    source: str


def default_quote() -> FxQuote:
    return FxQuote(base="USD", quote="VND", rate=config.DEFAULT_FX_RATE, source="default")


def fetch_usd_vnd() -> FxQuote:
    """Fetch the live rate; any upstream failure yields the default quote."""

    url = config.fx_url()
    try:
        response = requests.get(url, timeout=config.http_timeout())
        response.raise_for_status()
        payload = response.json()
        rate = float(payload["rates"]["VND"])
        if rate <= 0:
            raise ValueError(f"non-positive rate {rate}")
    except (requests.RequestException, ValueError, KeyError, TypeError) as exc:
        logger.warning("FX fetch from %s failed, using default rate: %s", url, exc)
        return default_quote()
    return FxQuote(base="USD", quote="VND", rate=rate, source=urlparse(url).netloc or url)


def _quote_dict() -> Dict[str, Any]:
    return asdict(fetch_usd_vnd())


def get_usd_vnd_rate() -> FxQuote:
    """Live rate, cached in Redis for an hour when caching is available."""

    payload = cached_call(
        "fx",
        {"base": "USD", "quote": "VND"},
        _quote_dict,
        ttl=FX_CACHE_TTL,
        should_cache=lambda value: value.get("source") != "default",
    )
    return FxQuote(**payload)
