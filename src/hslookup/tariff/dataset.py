"""Static tariff dataset loader.

Two datasets ship with the service: the Vietnamese HS schedule
(``hscode.json``) and the US HTS schedule (``us-hts.json``). Both are JSON
arrays produced offline; line-delimited JSON is accepted as well. Records are
normalised into :class:`TariffRecord` once per process and never mutated.
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from hslookup import config
from hslookup.tariff.models import RateValue, TariffRecord

logger = logging.getLogger(__name__)

MARKETS = ("vn", "us")

# Top-level VN fields folded into ``rates`` next to the ``taxes`` map.
_VN_RATE_FIELDS: Dict[str, str] = {
    "vat": "vat",
    "excise_tax": "ttdb",
    "env_tax": "bvmt",
    "export_tax": "xk",
    "export_cptpp": "xk_cptpp",
    "export_ev": "xk_ev",
    "export_ukv": "xk_ukv",
    "policy": "policy",
    "vat_reduction": "vat_reduction",
}

_NON_DIGIT = re.compile(r"\D")


def slugify_code(code: str) -> str:
    """Digits-only form of a display code: ``0101.21.00`` -> ``01012100``."""

    return _NON_DIGIT.sub("", code or "")


def format_heading(digits: str) -> str:
    """Dotted display form for 4/6/8/10 digit prefixes."""

    if len(digits) <= 4:
        return digits
    parts = [digits[:4]]
    rest = digits[4:]
    while rest:
        parts.append(rest[:2])
        rest = rest[2:]
    return ".".join(parts)


def _read_json_records(path: Path) -> List[Dict[str, Any]]:
    text = path.read_text(encoding="utf-8").strip()
    if not text:
        return []
    if text.startswith("["):
        payload = json.loads(text)
        return [item for item in payload if isinstance(item, dict)]
    records: List[Dict[str, Any]] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip().rstrip(",")
        if not line:
            continue
        try:
            item = json.loads(line)
        except json.JSONDecodeError:
            logger.warning("Skipping malformed line %s in %s", lineno, path)
            continue
        if isinstance(item, dict):
            records.append(item)
    return records


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _vn_record(raw: Dict[str, Any]) -> Optional[TariffRecord]:
    code = _as_text(raw.get("hs_code") or raw.get("code"))
    slug = slugify_code(_as_text(raw.get("slug"))) or slugify_code(code)
    if not slug:
        return None
    rates: Dict[str, RateValue] = {}
    taxes = raw.get("taxes") or {}
    if isinstance(taxes, dict):
        for key, value in taxes.items():
            text = _as_text(value)
            if text:
                rates[str(key)] = text
    for source_key, rate_key in _VN_RATE_FIELDS.items():
        text = _as_text(raw.get(source_key))
        if text:
            rates[rate_key] = text
    return TariffRecord(
        code=code or format_heading(slug),
        slug=slug,
        name_en=_as_text(raw.get("name_en")),
        name_vi=_as_text(raw.get("name_vi")),
        unit=_as_text(raw.get("unit")) or None,
        rates=rates,
        market="vn",
    )


def _us_record(raw: Dict[str, Any]) -> Optional[TariffRecord]:
    code = _as_text(raw.get("display_code") or raw.get("code"))
    slug = slugify_code(_as_text(raw.get("slug"))) or slugify_code(code)
    if not slug:
        return None
    rates: Dict[str, RateValue] = {}
    for key, value in (raw.get("rates") or {}).items():
        if isinstance(value, bool):
            rates[str(key)] = value
        else:
            text = _as_text(value)
            if text:
                rates[str(key)] = text
    units = raw.get("units") or []
    if isinstance(units, str):
        units = [units]
    unit = ", ".join(str(u) for u in units if u) or None
    return TariffRecord(
        code=code or format_heading(slug),
        slug=slug,
        name_en=_as_text(raw.get("description")),
        name_vi="",
        unit=unit,
        rates=rates,
        market="us",
    )


class TariffDataset:
    """Immutable, slug-keyed view over one market's records."""

    def __init__(self, market: str, records: Iterable[TariffRecord]) -> None:
        self.market = market
        by_slug: Dict[str, TariffRecord] = {}
        ordered: List[TariffRecord] = []
        for record in records:
            if record.slug in by_slug:
                logger.warning(
                    "Duplicate slug %s in %s dataset; keeping first record", record.slug, market
                )
                continue
            by_slug[record.slug] = record
            ordered.append(record)
        self._records: Tuple[TariffRecord, ...] = tuple(ordered)
        self._by_slug = by_slug

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[TariffRecord]:
        return iter(self._records)

    @property
    def records(self) -> Sequence[TariffRecord]:
        return self._records

    def get(self, slug: str) -> Optional[TariffRecord]:
        return self._by_slug.get(slugify_code(slug))

    def by_prefix(self, prefix: str) -> List[TariffRecord]:
        digits = slugify_code(prefix)
        if not digits:
            return []
        return [record for record in self._records if record.slug.startswith(digits)]

    def resolve(self, code: str) -> Optional[TariffRecord]:
        """Exact slug match, else the first record whose slug extends ``code``."""

        digits = slugify_code(code)
        if not digits:
            return None
        exact = self._by_slug.get(digits)
        if exact is not None:
            return exact
        for record in self._records:
            if record.slug.startswith(digits):
                return record
        return None

    def chapters(self) -> List[Tuple[str, int]]:
        counts: Dict[str, int] = {}
        for record in self._records:
            if len(record.slug) >= 2:
                counts[record.chapter] = counts.get(record.chapter, 0) + 1
        return sorted(counts.items())

    def chapter(self, chapter: str) -> List[TariffRecord]:
        digits = slugify_code(chapter).zfill(2)[:2]
        return [record for record in self._records if record.chapter == digits]

    def related(self, slug: str, limit: int = 10) -> List[TariffRecord]:
        """Other records in the same chapter, nearest codes first."""

        record = self.get(slug)
        if record is None:
            return []
        anchor = int(record.slug[:8].ljust(8, "0"))

        def distance(other: TariffRecord) -> int:
            return abs(int(other.slug[:8].ljust(8, "0")) - anchor)

        siblings = [r for r in self._records if r.chapter == record.chapter and r.slug != record.slug]
        siblings.sort(key=lambda r: (r.heading != record.heading, distance(r)))
        return siblings[: max(0, limit)]


def load_dataset(market: str, path: Optional[Path] = None) -> TariffDataset:
    """Read and normalise one market's dataset from disk."""

    if market not in MARKETS:
        raise ValueError(f"Unknown market {market!r}; expected one of {MARKETS}")
    if path is None:
        path = config.vn_data_path() if market == "vn" else config.us_data_path()
    builder = _vn_record if market == "vn" else _us_record
    raw_records = _read_json_records(path)
    records = [rec for rec in (builder(raw) for raw in raw_records) if rec is not None]
    dataset = TariffDataset(market, records)
    logger.info(
        "Loaded %s %s records from %s (%s skipped)",
        len(dataset),
        market,
        path,
        len(raw_records) - len(dataset),
    )
    return dataset


@lru_cache(maxsize=None)
def get_dataset(market: str = "vn") -> TariffDataset:
    """Return the process-wide dataset for ``market``, loading it on first use."""

    return load_dataset(market)


def reset_caches() -> None:
    """Drop every lazily built dataset and derived index (tests, reloads)."""

    from hslookup.tariff import fuzzy, lexical_index

    get_dataset.cache_clear()
    lexical_index.get_index.cache_clear()
    fuzzy.get_matcher.cache_clear()
