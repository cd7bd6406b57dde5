"""Typo-tolerant matching over code and description text (rapidfuzz).

One cutoff policy applies to every caller: ``HSLOOKUP_FUZZY_CUTOFF``
(0-100, default 60) against ``fuzz.partial_ratio`` on folded, normalised
text, so a short query can still match inside a long bilingual description.
"""

from __future__ import annotations

from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from rapidfuzz import fuzz, process

from hslookup import config
from hslookup.tariff.dataset import get_dataset
from hslookup.tariff.lexical_index import normalize_text
from hslookup.tariff.models import TariffRecord


class FuzzyMatcher:
    def __init__(self, records: Sequence[TariffRecord]) -> None:
        self._records = tuple(records)
        self._choices = [
            normalize_text(f"{record.slug} {record.code} {record.name_en} {record.name_vi}")
            for record in self._records
        ]

    def search(
        self,
        query: str,
        limit: int = 40,
        cutoff: Optional[float] = None,
    ) -> List[Tuple[TariffRecord, float]]:
        """Best ``limit`` records scoring at least ``cutoff``, stable on ties."""
        needle = normalize_text(query)
        if not needle or not self._choices:
            return []
        threshold = config.fuzzy_cutoff() if cutoff is None else cutoff
        matches = process.extract(
            needle,
            self._choices,
            scorer=fuzz.partial_ratio,
            processor=None,
            limit=None,
            score_cutoff=threshold,
        )
        matches.sort(key=lambda match: (-match[1], match[2]))
        return [(self._records[index], float(score)) for _, score, index in matches[:limit]]


@lru_cache(maxsize=None)
def get_matcher(market: str = "vn") -> FuzzyMatcher:
    return FuzzyMatcher(get_dataset(market).records)
