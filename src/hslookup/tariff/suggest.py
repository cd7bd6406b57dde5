"""Free-text / image tariff code suggestion.

Flow for one request:

1. Validate input; an optional image is captioned by the vision model and
   the caption is appended to the description.
2. Build, rank and post-filter the candidate pool (optionally narrowed to
   LLM-classified headings).
3. Emit rule-preferred codes when any exist in the dataset. Otherwise, with
   AI disabled or unconfigured, emit the top five ranked records. Otherwise
   ask the model to pick up to five codes *from the pool*, retrying once
   with a stricter prompt before falling back to the ranked list.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from hslookup import config
from hslookup.llm.groq_client import (
    GroqClient,
    LLMCallError,
    LLMUnavailableError,
    get_llm_client,
    parse_json_safe,
)
from hslookup.observability import log_event
from hslookup.tariff.candidates import CandidatePool, generate_candidates
from hslookup.tariff.dataset import get_dataset
from hslookup.tariff.errors import InvalidInputError
from hslookup.tariff.models import Candidate, SuggestionModel, SuggestResponseModel
from hslookup.tariff.ranking import (
    apply_post_filters,
    preferred_suggestions,
    rank_candidates,
    similarity_suggestions,
    to_suggestion,
)

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 5
REASON_AI_DEFAULT = "Selected by AI from matching codes"

_SCHEDULE_NAMES = {"vn": "Vietnam HS", "us": "US HTS"}
_HEADING = re.compile(r"^\d{4}$")


def _candidate_lines(candidates: Sequence[Candidate]) -> str:
    return "\n".join(
        f"{c.record.slug} | {c.record.name_en} | {c.record.name_vi}" for c in candidates
    )


def _refine_messages(text: str, candidates: Sequence[Candidate], market: str) -> List[Dict[str, Any]]:
    schedule = _SCHEDULE_NAMES.get(market, "HS")
    prompt = (
        f"Product input: {text}\n\n"
        "Candidate codes (code | nameEn | nameVi):\n"
        f"{_candidate_lines(candidates)}\n\n"
        f"Pick up to {MAX_SUGGESTIONS} of the most likely codes, ONLY from the candidate list. "
        'Return ONLY JSON with this shape: {"suggestions":[{"code":"40111000","reason":"..."}]}. '
        "Keep reasons under 18 words."
    )
    return [
        {
            "role": "system",
            "content": f"You are a {schedule} code assistant. "
            "Return only valid JSON. Do not include markdown or extra text.",
        },
        {"role": "user", "content": prompt},
    ]


def _strict_retry_messages(text: str, candidates: Sequence[Candidate]) -> List[Dict[str, Any]]:
    allowed = ", ".join(c.record.slug for c in candidates)
    prompt = (
        f"Return a JSON array of up to {MAX_SUGGESTIONS} objects with fields code and reason. "
        f"Every code MUST be one of: {allowed}. Any other code is invalid.\n"
        f"Candidates:\n{_candidate_lines(candidates)}\n"
        f"Input: {text}"
    )
    return [
        {
            "role": "system",
            "content": "Return only a valid JSON array. Do not include markdown or extra text.",
        },
        {"role": "user", "content": prompt},
    ]


def _extract_items(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        items = payload.get("suggestions")
        if isinstance(items, list):
            return [item for item in items if isinstance(item, dict)]
        if payload.get("code") or payload.get("hs_code"):
            return [payload]
    return []


def validate_model_choices(
    payload: Any, candidates: Sequence[Candidate], limit: int = MAX_SUGGESTIONS
) -> List[SuggestionModel]:
    """Keep only model picks that name a pooled code; dedupe and cap."""

    by_slug = {c.record.slug: c.record for c in candidates}
    chosen: List[SuggestionModel] = []
    seen = set()
    for item in _extract_items(payload):
        raw_code = item.get("code") or item.get("hs_code") or item.get("slug") or ""
        slug = re.sub(r"\D", "", str(raw_code))
        record = by_slug.get(slug)
        if record is None or slug in seen:
            continue
        seen.add(slug)
        reason = str(item.get("reason") or "").strip()[:200] or REASON_AI_DEFAULT
        chosen.append(to_suggestion(record, reason))
        if len(chosen) >= limit:
            break
    return chosen


def refine_with_llm(
    client: GroqClient,
    text: str,
    candidates: Sequence[Candidate],
    market: str = "vn",
) -> List[SuggestionModel]:
    """Ask the model to choose from ``candidates``; ``[]`` when unusable."""

    if not candidates:
        return []
    attempts = (
        _refine_messages(text, candidates, market),
        _strict_retry_messages(text, candidates),
    )
    for attempt, messages in enumerate(attempts, start=1):
        try:
            raw = client.complete(messages, temperature=0.2, max_tokens=400)
        except LLMCallError:
            logger.warning("AI refinement call failed; using ranked candidates")
            return []
        chosen = validate_model_choices(parse_json_safe(raw), candidates)
        if chosen:
            return chosen
        logger.info("AI refinement attempt %s returned no usable codes", attempt)
    return []


def classify_headings(client: GroqClient, text: str, market: str = "vn") -> List[str]:
    """Up to three 4-digit headings the model considers plausible."""

    schedule = _SCHEDULE_NAMES.get(market, "HS")
    messages = [
        {"role": "system", "content": "Return only valid JSON. Do not include markdown or extra text."},
        {
            "role": "user",
            "content": (
                f"Which {schedule} 4-digit headings best fit this product? "
                'Return JSON: {"headings":["4011"]} with at most 3 entries.\n'
                f"Product: {text}"
            ),
        },
    ]
    try:
        raw = client.complete(messages, temperature=0.0, max_tokens=60)
    except LLMCallError:
        logger.warning("Heading classification failed; skipping heading filter")
        return []
    payload = parse_json_safe(raw)
    values = payload.get("headings", []) if isinstance(payload, dict) else payload
    if not isinstance(values, list):
        return []
    headings: List[str] = []
    for value in values:
        digits = re.sub(r"\D", "", str(value))[:4]
        if _HEADING.match(digits) and digits not in headings:
            headings.append(digits)
    return headings[:3]


def suggest_codes(
    description: Optional[str] = None,
    image_data_url: Optional[str] = None,
    market: str = "vn",
    *,
    use_ai: bool = True,
) -> SuggestResponseModel:
    """Suggest up to five tariff codes for a product description and/or image.

    Args:
        description: Free-text product description.
        image_data_url: ``data:`` URL of a product photo.
        market: ``"vn"`` for the Vietnamese schedule, ``"us"`` for US HTS.
        use_ai: Set to False to skip every LLM call (CLI ``--no-ai``).

    Returns:
        SuggestResponseModel with suggestions and the image caption, if any.

    Raises:
        InvalidInputError: neither input carries text.
        LLMUnavailableError: an image was given but vision is not configured.
        LLMCallError: the vision call failed.
    """

    text = (description or "").strip()
    image = (image_data_url or "").strip()
    if not text and not image:
        raise InvalidInputError("description or imageDataUrl is required")

    client = get_llm_client() if use_ai else None

    image_hint = ""
    if image:
        if client is None or not client.has_vision:
            raise LLMUnavailableError("Image input requires GROQ_API_KEY and GROQ_VISION_MODEL")
        image_hint = client.describe_image(image)

    search_text = " ".join(part for part in (text, image_hint) if part)
    pool: CandidatePool = generate_candidates(search_text, market)
    hint = image_hint or None

    preferred = preferred_suggestions(pool, get_dataset(market))
    if preferred:
        log_event("suggest.rule", market=market, codes=[s.code for s in preferred])
        return SuggestResponseModel(suggestions=preferred[:MAX_SUGGESTIONS], image_hint=hint)

    ranked = rank_candidates(pool)
    ai_headings: List[str] = []
    if client is not None and config.ai_headings_enabled():
        ai_headings = classify_headings(client, search_text, market)
    filtered = apply_post_filters(ranked, pool, ai_headings)

    if client is None or not config.ai_refine_enabled():
        log_event("suggest.similarity", market=market, pool=len(pool.records))
        return SuggestResponseModel(suggestions=similarity_suggestions(filtered), image_hint=hint)

    refined = refine_with_llm(client, search_text, filtered, market)
    if refined:
        log_event("suggest.ai", market=market, codes=[s.code for s in refined])
        return SuggestResponseModel(suggestions=refined, image_hint=hint)

    log_event("suggest.fallback", market=market, pool=len(pool.records))
    return SuggestResponseModel(suggestions=similarity_suggestions(filtered), image_hint=hint)
