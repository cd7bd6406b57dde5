"""Re-ranking, post-filtering and fallback output for candidate pools."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from hslookup.tariff import rules
from hslookup.tariff.candidates import TIRE_HEADINGS, CandidatePool
from hslookup.tariff.dataset import TariffDataset
from hslookup.tariff.lexical_index import fold_diacritics
from hslookup.tariff.models import Candidate, SuggestionModel, TariffRecord

WHEEL_HEADINGS = ("8708", "8716", "8302")
LIVE_FISH_HEADING = "0301"
FISH_CHAPTER = "03"

REASON_RULE = "Matched by rule"
REASON_SIMILARITY = "Matched by similarity"


def score_record(record: TariffRecord, pool: CandidatePool) -> float:
    """Token overlap + 2 (top chapter) + 3 (top heading) + 0.1 per code digit up to 8."""

    description = fold_diacritics(record.description.lower())
    overlap = sum(1 for token in dict.fromkeys(pool.tokens) if token in description)
    score = float(overlap)
    if record.chapter in pool.top_chapters:
        score += 2
    if record.heading in pool.top_headings:
        score += 3
    score += 0.1 * min(len(record.slug), 8)
    return score


def rank_candidates(pool: CandidatePool) -> List[Candidate]:
    """Score every pooled record; the sort is stable so ties keep pool order."""

    scored = [Candidate(record=record, score=score_record(record, pool)) for record in pool.records]
    return sorted(scored, key=lambda candidate: -candidate.score)


def _restrict(candidates: List[Candidate], prefixes: Iterable[str]) -> Optional[List[Candidate]]:
    wanted = tuple(prefixes)
    if not wanted:
        return None
    kept = [c for c in candidates if c.record.slug.startswith(wanted)]
    return kept or None


def apply_post_filters(
    candidates: Sequence[Candidate],
    pool: CandidatePool,
    ai_headings: Optional[Sequence[str]] = None,
) -> List[Candidate]:
    """Narrow the ranked list; a filter that would empty it is skipped."""

    result = list(candidates)
    query = pool.query.lower()

    if rules.is_fish_query(query):
        narrowed = _restrict(result, (LIVE_FISH_HEADING,)) or _restrict(result, (FISH_CHAPTER,))
        if narrowed:
            result = narrowed

    if rules.is_tire_query(query):
        prefixes = TIRE_HEADINGS
        if rules.mentions_wheel_or_caster(query):
            prefixes = prefixes + WHEEL_HEADINGS
        result = _restrict(result, prefixes) or result

    if ai_headings:
        result = _restrict(result, ai_headings) or result

    if pool.material_prefixes:
        allowed = list(pool.material_prefixes) + [
            p for p in pool.category_prefixes if p not in pool.material_prefixes
        ]
        result = _restrict(result, allowed) or result

    return result


def to_suggestion(record: TariffRecord, reason: str) -> SuggestionModel:
    return SuggestionModel(
        code=record.slug,
        name_en=record.name_en,
        name_vi=record.name_vi,
        reason=reason,
    )


def preferred_suggestions(pool: CandidatePool, dataset: TariffDataset) -> List[SuggestionModel]:
    """Rule-preferred codes that exist in ``dataset``, in rule order."""

    suggestions: List[SuggestionModel] = []
    seen = set()
    for code in pool.preferred_codes:
        record = dataset.resolve(code)
        if record is None or record.slug in seen:
            continue
        seen.add(record.slug)
        suggestions.append(to_suggestion(record, REASON_RULE))
    return suggestions


def similarity_suggestions(candidates: Sequence[Candidate], limit: int = 5) -> List[SuggestionModel]:
    return [to_suggestion(c.record, REASON_SIMILARITY) for c in candidates[:limit]]
