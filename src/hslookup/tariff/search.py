"""Search-box ranking for ``/api/hs-search`` and ``/api/us-hts-search``.

Both searches favour exact structure first (code prefixes, whole-word hits)
and only then fall back to fuzzy matches, deduplicating by slug.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from hslookup.tariff import rules
from hslookup.tariff.candidates import digit_prefix
from hslookup.tariff.dataset import TariffDataset, format_heading, get_dataset
from hslookup.tariff.fuzzy import get_matcher
from hslookup.tariff.lexical_index import normalize_text
from hslookup.tariff.models import SearchResultModel, TariffRecord

VN_LIMIT = 10
US_LIMIT = 15
PREFIX_LIMIT = 20
WORD_LIMIT = 20
VN_FUZZY_LIMIT = 15
US_FUZZY_LIMIT = 30
FISH_LIMIT = 6

_WORD_STOPWORDS = {
    "or", "and", "not", "the", "of", "for", "to", "in", "on", "at",
    "whether", "if", "a", "an",
}


def _query_words(query: str) -> List[str]:
    return [w for w in normalize_text(query).split(" ") if w and w not in _WORD_STOPWORDS]


def _whole_word_matches(dataset: TariffDataset, words: List[str]) -> Iterable[TariffRecord]:
    if not words:
        return []
    patterns = [re.compile(rf"\b{re.escape(word)}\b") for word in words]
    return (
        record
        for record in dataset
        if all(p.search(normalize_text(record.description)) for p in patterns)
    )


class _Results:
    def __init__(self, limit: int) -> None:
        self.limit = limit
        self._items: Dict[str, SearchResultModel] = {}

    @property
    def full(self) -> bool:
        return len(self._items) >= self.limit

    def add(self, item: SearchResultModel) -> None:
        if not self.full and item.slug not in self._items:
            self._items[item.slug] = item

    def extend(self, items: Iterable[SearchResultModel], cap: Optional[int] = None) -> None:
        taken = 0
        for item in items:
            if self.full or (cap is not None and taken >= cap):
                break
            if item.slug not in self._items:
                self.add(item)
                taken += 1

    def items(self) -> List[SearchResultModel]:
        return list(self._items.values())


def _vn_result(record: TariffRecord, lang: str) -> SearchResultModel:
    if lang == "en":
        description = record.name_en or record.name_vi
    else:
        description = record.name_vi or record.name_en
    return SearchResultModel(slug=record.slug, display_code=record.code, description=description)


def _us_result(record: TariffRecord) -> SearchResultModel:
    return SearchResultModel(slug=record.slug, display_code=record.code, description=record.name_en)


def search_vn(query: str, lang: str = "vi", limit: int = VN_LIMIT) -> List[SearchResultModel]:
    """Rank Vietnamese HS records for the search box."""

    q = (query or "").strip()
    if not q:
        return []
    dataset = get_dataset("vn")

    prefix = digit_prefix(q)
    if prefix:
        return [_vn_result(r, lang) for r in dataset.by_prefix(prefix)[:PREFIX_LIMIT]][:limit]

    results = _Results(limit)
    results.extend((_vn_result(r, lang) for r in _whole_word_matches(dataset, _query_words(q))), WORD_LIMIT)
    matcher = get_matcher("vn")
    for variant in rules.expand_variants(q):
        hits = matcher.search(variant, limit=VN_FUZZY_LIMIT)
        results.extend((_vn_result(record, lang) for record, _ in hits), VN_FUZZY_LIMIT)
    return results.items()


def search_us(query: str, limit: int = US_LIMIT) -> List[SearchResultModel]:
    """Rank US HTS records for the search box.

    A 4- or 6-digit query first yields a heading entry pointing at every
    subheading under it; aquarium/fish queries surface live fish early.
    """

    q = (query or "").strip()
    if not q:
        return []
    dataset = get_dataset("us")
    results = _Results(limit)

    digits = re.sub(r"\D", "", q)
    if re.fullmatch(r"[\d.\s]+", q) and len(digits) in (4, 6):
        children = dataset.by_prefix(digits)
        if children:
            display = format_heading(digits)
            results.add(
                SearchResultModel(
                    slug=digits,
                    display_code=display,
                    description=f"Heading {display}: view all subheadings",
                )
            )
            results.extend(_us_result(r) for r in children)
            return results.items()

    prefix = digit_prefix(q)
    if prefix:
        results.extend(_us_result(r) for r in dataset.by_prefix(prefix))
        return results.items()

    if rules.is_fish_query(q.lower()):
        results.extend((_us_result(r) for r in dataset.by_prefix("0301")), FISH_LIMIT)

    results.extend(_us_result(r) for r in _whole_word_matches(dataset, _query_words(q)))
    matcher = get_matcher("us")
    for variant in rules.expand_variants(q):
        results.extend(_us_result(record) for record, _ in matcher.search(variant, limit=US_FUZZY_LIMIT))
    return results.items()
