"""Bilingual TF-IDF index over tariff descriptions.

The index is built once per market from the static dataset and cached. Each
record contributes the tokens of its English and Vietnamese descriptions;
Vietnamese text is folded to ASCII first so ``lốp`` and ``lop`` land on the
same token. Besides per-record term frequencies the index keeps the token
unions of every chapter (2-digit prefix) and heading (4-digit prefix), which
the candidate generator uses to pick the most plausible areas of the schedule
before looking at individual lines.
"""

from __future__ import annotations

import math
import re
import unicodedata
from collections import Counter
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple

from hslookup.tariff.dataset import get_dataset
from hslookup.tariff.models import TariffRecord


# ---------------------------------------------------------------------------
# Stopwords: English function words plus folded Vietnamese ones
# ---------------------------------------------------------------------------

_STOPWORDS: Set[str] = {
    "a", "an", "the", "of", "for", "and", "or", "in", "on", "to", "with",
    "at", "by", "from", "as", "is", "are", "be", "that", "this", "if",
    "not", "whether", "also", "only", "having", "such", "any", "all",
    "its", "their", "other", "kind", "thereof", "nesoi", "including",
    # Vietnamese (diacritics folded)
    "va", "cua", "cho", "cac", "loai", "khac", "hoac", "co", "khong",
    "duoc", "tu", "trong", "chua", "nhung", "la", "mot", "nhu", "ke",
    "voi", "den", "tren", "theo", "hay", "nay",
}

_DASHES = re.compile("[–—]")
_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_SEPARATORS = re.compile(r"[\s-]+")


def fold_diacritics(text: str) -> str:
    """Strip Vietnamese tone and vowel marks: ``Lốp xe đạp`` -> ``Lop xe dap``."""

    text = text.replace("đ", "d").replace("Đ", "D")
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: str) -> str:
    """Lower-case, fold, and reduce to ``[a-z0-9 ]`` separated by single spaces."""

    lowered = fold_diacritics((text or "").lower())
    lowered = _DASHES.sub("-", lowered)
    cleaned = _DISALLOWED.sub(" ", lowered)
    return _SEPARATORS.sub(" ", cleaned).strip()


def tokenize(text: str) -> List[str]:
    """Tokens of ``text`` with short tokens and stopwords removed."""

    return [
        token
        for token in normalize_text(text).split(" ")
        if len(token) >= 2 and token not in _STOPWORDS
    ]


@dataclass
class LexicalIndex:
    """TF-IDF weights plus chapter and heading token unions.

    Attributes:
        records: Dataset records in load order; positions are stable ids.
        term_counts: Per-record token counters (TF).
        token_sets: Per-record unique tokens.
        chapter_tokens: Token union per 2-digit chapter.
        heading_tokens: Token union per 4-digit heading.
    """

    records: Sequence[TariffRecord] = field(default_factory=tuple, repr=False)
    term_counts: List[Counter] = field(default_factory=list, repr=False)
    token_sets: List[FrozenSet[str]] = field(default_factory=list, repr=False)
    chapter_tokens: Dict[str, Set[str]] = field(default_factory=dict, repr=False)
    heading_tokens: Dict[str, Set[str]] = field(default_factory=dict, repr=False)
    _idf: Dict[str, float] = field(default_factory=dict, repr=False)
    _positions: Dict[str, int] = field(default_factory=dict, repr=False)
    total_docs: int = 0

    @classmethod
    def build(cls, records: Iterable[TariffRecord]) -> "LexicalIndex":
        index = cls(records=tuple(records))
        for position, record in enumerate(index.records):
            counts = Counter(tokenize(record.description))
            token_set = frozenset(counts)
            index.term_counts.append(counts)
            index.token_sets.append(token_set)
            index._positions.setdefault(record.slug, position)
            slug = record.slug
            if len(slug) >= 2 and slug[:2].isdigit():
                index.chapter_tokens.setdefault(slug[:2], set()).update(token_set)
            if len(slug) >= 4 and slug[:4].isdigit():
                index.heading_tokens.setdefault(slug[:4], set()).update(token_set)
        index._build_idf()
        return index

    def _build_idf(self) -> None:
        """Smoothed IDF: ``ln((N + 1) / (df + 1)) + 1``."""
        doc_freq: Dict[str, int] = {}
        for token_set in self.token_sets:
            for token in token_set:
                doc_freq[token] = doc_freq.get(token, 0) + 1
        self.total_docs = len(self.token_sets)
        n = self.total_docs
        self._idf = {
            token: math.log((n + 1) / (df + 1)) + 1.0
            for token, df in doc_freq.items()
        }

    def idf(self, token: str) -> float:
        """IDF weight of ``token``; unseen tokens get the ``df = 0`` weight."""
        weight = self._idf.get(token)
        if weight is None:
            weight = math.log(self.total_docs + 1) + 1.0
        return weight

    def position(self, record: TariffRecord) -> Optional[int]:
        return self._positions.get(record.slug)

    def score_at(self, position: int, tokens: Iterable[str]) -> float:
        counts = self.term_counts[position]
        return sum(counts[token] * self.idf(token) for token in set(tokens) if token in counts)

    def score(self, record: TariffRecord, tokens: Iterable[str]) -> float:
        """TF-IDF score of ``record`` for the query ``tokens``."""
        position = self.position(record)
        if position is None:
            return 0.0
        return self.score_at(position, tokens)

    def _rank_groups(
        self, groups: Dict[str, Set[str]], tokens: Iterable[str], n: int
    ) -> List[str]:
        unique = set(tokens)
        scored: List[Tuple[float, str]] = []
        for prefix, vocab in groups.items():
            weight = sum(self.idf(token) for token in unique if token in vocab)
            if weight > 0:
                scored.append((weight, prefix))
        scored.sort(key=lambda item: (-item[0], item[1]))
        return [prefix for _, prefix in scored[: max(0, n)]]

    def top_chapters(self, tokens: Iterable[str], n: int = 3) -> List[str]:
        """Chapters whose token union carries the most query IDF weight."""
        return self._rank_groups(self.chapter_tokens, tokens, n)

    def top_headings(
        self,
        tokens: Iterable[str],
        n: int = 4,
        within: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """Same as :meth:`top_chapters` for headings, optionally limited to chapters."""
        groups = self.heading_tokens
        if within is not None:
            allowed = set(within)
            groups = {h: vocab for h, vocab in groups.items() if h[:2] in allowed}
        return self._rank_groups(groups, tokens, n)

    def records_sharing_tokens(
        self, prefixes: Iterable[str], tokens: Iterable[str]
    ) -> List[TariffRecord]:
        """Records under ``prefixes`` sharing a token, best TF-IDF first."""
        wanted = tuple(prefixes)
        if not wanted:
            return []
        query = frozenset(tokens)
        hits = [
            position
            for position, record in enumerate(self.records)
            if record.slug.startswith(wanted) and self.token_sets[position] & query
        ]
        hits.sort(key=lambda position: (-self.score_at(position, query), position))
        return [self.records[position] for position in hits]


@lru_cache(maxsize=None)
def get_index(market: str = "vn") -> LexicalIndex:
    """Return the process-wide index for ``market``, building it on first use."""

    return LexicalIndex.build(get_dataset(market).records)
