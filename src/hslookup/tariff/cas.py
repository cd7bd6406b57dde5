"""Chemical CAS number lookup.

A bundled ``cas.json`` table answers most queries locally, either by exact
CAS registry number or by token overlap with the Vietnamese and English
names. Anything the table misses goes to the LLM, which is asked for up to
five candidate CAS numbers.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from hslookup import config
from hslookup.caching.redis_client import cached_call
from hslookup.llm.groq_client import GroqClient, LLMUnavailableError, get_llm_client, parse_json_safe
from hslookup.observability import log_event
from hslookup.tariff.errors import InvalidInputError
from hslookup.tariff.lexical_index import normalize_text
from hslookup.tariff.models import CasLookupResponseModel, CasSuggestionModel

logger = logging.getLogger(__name__)

MAX_RESULTS = 5
MIN_TOKEN_RATIO = 0.6
AI_CACHE_TTL = 86400

REASON_CAS_NUMBER = "Matched CAS number"
REASON_CAS_LIST = "Matched from CAS list"
REASON_AI_DEFAULT = "Suggested by AI"

_CAS_NUMBER = re.compile(r"\d{2,7}-\d{2}-\d")

_PROMPT = (
    "You are a chemistry assistant. Given a chemical name, return up to 5 likely CAS numbers. "
    'Return ONLY JSON with this shape: {{"suggestions":[{{"cas":"50-00-0","name_en":"Formaldehyde",'
    '"name_vi":"Formaldehyt","reason":"..."}}]}}. Keep reasons under 16 words. Query: {query}'
)
_STRICT_PROMPT = (
    "Return a JSON array of up to 5 objects with fields: cas, name_en, name_vi, reason. Query: {query}"
)


@dataclass(frozen=True)
class CasEntry:
    cas: str
    name_vi: str
    name_en: str
    hs_code: Optional[str] = None
    formula: Optional[str] = None

    @property
    def search_text(self) -> str:
        return normalize_text(f"{self.name_vi} {self.name_en}")


@lru_cache(maxsize=4)
def _load_table(path: str) -> Tuple[CasEntry, ...]:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    entries = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("cas"):
            continue
        entries.append(
            CasEntry(
                cas=str(item["cas"]).strip(),
                name_vi=str(item.get("name_vi") or "").strip(),
                name_en=str(item.get("name_en") or "").strip(),
                hs_code=item.get("hs_code") or None,
                formula=item.get("formula") or None,
            )
        )
    logger.info("Loaded %s CAS entries from %s", len(entries), path)
    return tuple(entries)


def get_cas_table() -> Tuple[CasEntry, ...]:
    return _load_table(str(config.cas_data_path()))


def match_cas_table(query: str, table: Optional[Tuple[CasEntry, ...]] = None) -> List[Tuple[CasEntry, str]]:
    """Local matches for ``query``, best first.

    An exact registry number wins outright. Otherwise an entry qualifies when
    its names contain the whole normalised query, or when enough query tokens
    appear in them (at least ``min(3, n)`` hits and a 0.6 hit ratio).
    """

    entries = get_cas_table() if table is None else table
    stripped = query.strip()
    if _CAS_NUMBER.fullmatch(stripped):
        exact = [(e, REASON_CAS_NUMBER) for e in entries if e.cas == stripped]
        if exact:
            return exact

    normalized = normalize_text(query)
    tokens = normalized.split()
    if not tokens:
        return []
    min_hits = min(3, len(tokens))
    scored = []
    for position, entry in enumerate(entries):
        text = entry.search_text
        hits = sum(1 for token in tokens if token in text)
        ratio = hits / len(tokens)
        full = normalized in text
        if full or (hits >= min_hits and ratio >= MIN_TOKEN_RATIO):
            scored.append((not full, -hits, -ratio, position, entry))
    scored.sort()
    return [(row[-1], REASON_CAS_LIST) for row in scored[:MAX_RESULTS]]


def _entry_suggestion(entry: CasEntry, reason: str) -> CasSuggestionModel:
    return CasSuggestionModel(
        cas=entry.cas,
        name_en=entry.name_en,
        name_vi=entry.name_vi,
        hs_code=entry.hs_code,
        formula=entry.formula,
        reason=reason,
    )


def _extract_suggestions(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, dict):
        if isinstance(payload.get("suggestions"), list):
            payload = payload["suggestions"]
        elif payload.get("cas"):
            payload = [payload]
    if not isinstance(payload, list):
        return []
    rows: List[Dict[str, Any]] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        cas = str(item.get("cas") or "").strip()
        name_en = str(item.get("name_en") or "").strip()
        name_vi = str(item.get("name_vi") or "").strip()
        if not cas or not (name_en or name_vi):
            continue
        rows.append(
            {
                "cas": cas,
                "name_en": name_en or None,
                "name_vi": name_vi or None,
                "reason": str(item.get("reason") or "").strip() or REASON_AI_DEFAULT,
            }
        )
    return rows[:MAX_RESULTS]


def _ask_llm(client: GroqClient, query: str) -> List[Dict[str, Any]]:
    raw = client.complete(
        [
            {"role": "system", "content": "Return only valid JSON. No markdown or extra text."},
            {"role": "user", "content": _PROMPT.format(query=query)},
        ],
        temperature=0.2,
        max_tokens=300,
    )
    rows = _extract_suggestions(parse_json_safe(raw))
    if rows:
        return rows
    logger.warning("Unusable CAS reply, retrying with strict prompt")
    retry = client.complete(
        [
            {"role": "system", "content": "Return only valid JSON array. No markdown or extra text."},
            {"role": "user", "content": _STRICT_PROMPT.format(query=query)},
        ],
        temperature=0.2,
        max_tokens=300,
    )
    return _extract_suggestions(parse_json_safe(retry))


def lookup_cas(query: Optional[str]) -> CasLookupResponseModel:
    """Resolve a chemical name or CAS number to CAS entries with HS codes.

    Raises:
        InvalidInputError: blank query.
        LLMUnavailableError: no local match and no Groq key configured.
        LLMCallError: the Groq call failed.
    """

    text = (query or "").strip()
    if not text:
        raise InvalidInputError("query is required")

    local = match_cas_table(text)
    if local:
        log_event("cas.local", matches=[entry.cas for entry, _ in local])
        return CasLookupResponseModel(
            suggestions=[_entry_suggestion(entry, reason) for entry, reason in local],
            source="local",
        )

    client = get_llm_client()
    if client is None:
        raise LLMUnavailableError("GROQ_API_KEY is not configured")
    rows = cached_call(
        "cas",
        {"query": text.lower(), "model": client.model},
        lambda: _ask_llm(client, text),
        ttl=AI_CACHE_TTL,
        should_cache=bool,
    )
    log_event("cas.ai", matches=[row["cas"] for row in rows])
    return CasLookupResponseModel(
        suggestions=[CasSuggestionModel(**row) for row in rows],
        source="groq",
    )
