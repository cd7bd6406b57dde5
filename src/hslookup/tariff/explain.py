"""Short AI explanations of a code and bilingual search-keyword assistance."""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from hslookup.caching.redis_client import cached_call
from hslookup.llm.groq_client import LLMUnavailableError, get_llm_client
from hslookup.tariff.errors import InvalidInputError

logger = logging.getLogger(__name__)

AI_CACHE_TTL = 86400
MAX_KEYWORDS = 5

_BULLET = re.compile(r"^\s*(?:[-*•]+|\d+[.)])\s*")


def _require_client():
    client = get_llm_client()
    if client is None:
        raise LLMUnavailableError("GROQ_API_KEY is not configured")
    return client


def explain_code(hs_code: Optional[str], name_en: Optional[str]) -> str:
    """Plain-language explanation (under 50 words) with one import tip."""

    code = (hs_code or "").strip()
    name = (name_en or "").strip()
    if not code or not name:
        raise InvalidInputError("hs_code and name_en are required")
    client = _require_client()

    def compute() -> str:
        prompt = (
            f"Explain what the commodity '{name}' (HS Code {code}) is in simple terms "
            "and give 1 tip for importing it. Keep it under 50 words."
        )
        return client.complete(
            [{"role": "user", "content": prompt}], temperature=0.3, max_tokens=150
        )

    return cached_call(
        "explain",
        {"hs_code": code, "name_en": name, "model": client.model},
        compute,
        ttl=AI_CACHE_TTL,
        should_cache=bool,
    )


def parse_keywords(raw: str, limit: int = MAX_KEYWORDS) -> List[str]:
    """Split a comma/newline separated model reply into clean keywords."""

    keywords: List[str] = []
    for chunk in re.split(r"[,\n;]", raw or ""):
        word = _BULLET.sub("", chunk).strip().strip("\"'`.").strip()
        if word and word.lower() not in (k.lower() for k in keywords):
            keywords.append(word)
        if len(keywords) >= limit:
            break
    return keywords


def search_assist(query: Optional[str]) -> List[str]:
    """Up to five English/Vietnamese search keywords for a vague product query."""

    text = (query or "").strip()
    if not text:
        raise InvalidInputError("query is required")
    client = _require_client()

    def compute() -> List[str]:
        prompt = (
            "Suggest up to 5 short customs search keywords, mixing English and Vietnamese, "
            f"for this product: '{text}'. Return only a comma-separated list."
        )
        raw = client.complete(
            [{"role": "user", "content": prompt}], temperature=0.2, max_tokens=80
        )
        return parse_keywords(raw)

    return cached_call(
        "assist",
        {"query": text.lower(), "model": client.model},
        compute,
        ttl=AI_CACHE_TTL,
        should_cache=bool,
    )
