"""Candidate pool generation for free-text suggestions.

Stages run in a fixed order and write into one slug-keyed pool, so the first
stage to see a record decides its position:

0. digit-only queries (2-6 digits): records under that code prefix
1. category-rule prefixes, or otherwise
2. records in the top chapters sharing a query token
3. records in the top headings sharing a query token
4. tire queries: both rubber-tire headings plus any "tire"/"tyre" text
5. fuzzy hits for the query and each synonym variant
6. tire queries with an empty pool: plain substring filter

The pool is capped at :data:`POOL_CAP` records in insertion order. Nothing
here depends on time or randomness, so the same query over the same dataset
always yields the same ordered pool.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from hslookup.tariff import rules
from hslookup.tariff.dataset import TariffDataset, get_dataset
from hslookup.tariff.fuzzy import FuzzyMatcher, get_matcher
from hslookup.tariff.lexical_index import LexicalIndex, get_index, tokenize
from hslookup.tariff.models import TariffRecord

POOL_CAP = 60
PREFIX_CAP = 120
CATEGORY_CAP = 80
CHAPTER_CAP = 120
HEADING_CAP = 120
TIRE_CAP = 60
FUZZY_CAP = 40

TIRE_HEADINGS = ("4011", "4012")

_DIGIT_QUERY = re.compile(r"^[\d.\s]+$")
_TIRE_TEXT = re.compile(r"tyre|tire|lốp", re.IGNORECASE)


@dataclass
class CandidatePool:
    """Everything later stages need to know about one query."""

    query: str
    tokens: List[str] = field(default_factory=list)
    top_chapters: List[str] = field(default_factory=list)
    top_headings: List[str] = field(default_factory=list)
    category_prefixes: List[str] = field(default_factory=list)
    material_prefixes: List[str] = field(default_factory=list)
    preferred_codes: List[str] = field(default_factory=list)
    records: List[TariffRecord] = field(default_factory=list)

    @property
    def slugs(self) -> List[str]:
        return [record.slug for record in self.records]


def digit_prefix(query: str) -> Optional[str]:
    """The digits of a code-like query of 2 to 6 digits, else ``None``."""

    if not query or not _DIGIT_QUERY.match(query):
        return None
    digits = re.sub(r"\D", "", query)
    if 2 <= len(digits) <= 6:
        return digits
    return None


class _PoolBuilder:
    def __init__(self) -> None:
        self._pool: Dict[str, TariffRecord] = {}

    def add(self, records: Iterable[TariffRecord], cap: int) -> int:
        added = 0
        for record in records:
            if added >= cap:
                break
            if record.slug in self._pool:
                continue
            self._pool[record.slug] = record
            added += 1
        return added

    def __len__(self) -> int:
        return len(self._pool)

    def records(self) -> List[TariffRecord]:
        return list(self._pool.values())


def generate_candidates(
    text: str,
    market: str = "vn",
    *,
    dataset: Optional[TariffDataset] = None,
    index: Optional[LexicalIndex] = None,
    matcher: Optional[FuzzyMatcher] = None,
) -> CandidatePool:
    """Build the deduplicated candidate pool for a free-text query."""

    dataset = dataset or get_dataset(market)
    index = index or get_index(market)
    matcher = matcher or get_matcher(market)

    query = (text or "").strip()
    lowered = query.lower()
    tokens = rules.expand_tokens(tokenize(query))
    chapters = index.top_chapters(tokens, n=3)
    headings = index.top_headings(tokens, n=4, within=chapters)
    pool = CandidatePool(
        query=query,
        tokens=tokens,
        top_chapters=chapters,
        top_headings=headings,
        category_prefixes=rules.get_category_prefixes(lowered),
        material_prefixes=rules.get_material_prefixes(lowered),
        preferred_codes=rules.get_rule_preferred(lowered),
    )
    if not query:
        return pool

    builder = _PoolBuilder()

    prefix = digit_prefix(query)
    if prefix:
        builder.add(dataset.by_prefix(prefix), PREFIX_CAP)

    if pool.category_prefixes:
        wanted = tuple(pool.category_prefixes)
        builder.add((r for r in dataset if r.slug.startswith(wanted)), CATEGORY_CAP)
    elif chapters:
        builder.add(index.records_sharing_tokens(chapters, tokens), CHAPTER_CAP)

    if headings:
        builder.add(index.records_sharing_tokens(headings, tokens), HEADING_CAP)

    tire_query = rules.is_tire_query(lowered)
    if tire_query:
        builder.add(
            (
                r
                for r in dataset
                if r.slug.startswith(TIRE_HEADINGS) or _TIRE_TEXT.search(r.name_en)
            ),
            TIRE_CAP,
        )

    for variant in rules.expand_variants(query):
        builder.add((record for record, _ in matcher.search(variant, limit=FUZZY_CAP)), FUZZY_CAP)

    if not len(builder) and tire_query:
        builder.add((r for r in dataset if _TIRE_TEXT.search(r.description)), TIRE_CAP)

    pool.records = builder.records()[:POOL_CAP]
    return pool
