"""Hand-authored classification rules.

Three tables encode knowledge that lexical scoring alone gets wrong:

* ``PREFERRED_RULES``: ordered ``(pattern, codes)`` pairs. The *first* pattern
  that matches decides the preferred codes; later rules are not consulted.
  A negation such as "not inflatable" switches every preferred rule off.
* ``CATEGORY_RULES``: ``(pattern, prefixes)`` pairs whose prefixes are
  *unioned* over every matching rule.
* ``MATERIAL_RULES``: same union semantics, keyed on raw material.

Patterns run against the lower-cased raw query so Vietnamese terms keep
their diacritics (``đồng`` and ``động`` stay distinct).
"""

from __future__ import annotations

import re
from typing import Iterable, List, Pattern, Sequence, Tuple

from hslookup.tariff.lexical_index import normalize_text

_FLAGS = re.IGNORECASE | re.UNICODE | re.DOTALL


def _rx(pattern: str) -> Pattern[str]:
    return re.compile(pattern, _FLAGS)


def _all_of(*patterns: str) -> Pattern[str]:
    """Match when every alternative group appears somewhere in the text."""
    return _rx("".join(f"(?=.*(?:{p}))" for p in patterns))


_TIRE = r"\b(?:tires?|tyres?)\b|lốp"
_INFLATABLE = r"\binflatable\b|bơm hơi"
_COSTUME = r"\b(?:costumes?|suits?|mascots?)\b|trang phục"
# "cá" alone is fish, but not in compounds such as "cá nhân" (personal).
_FISH_TEXT = (
    r"\b(?:fish(?:es)?|aquariums?|koi|goldfish)\b|cá cảnh|bể cá"
    r"|\bcá\b(?!\s+(?:nhân|thể|biệt|cược|độ|tính)\b)"
)

NEGATION_PATTERN: Pattern[str] = _rx(
    r"\b(?:not|no|non|without)[\s-]+(?:an?\s+)?(?:inflatable|costumes?|mascots?|wearable)\b"
    r"|không\s+(?:phải\s+)?(?:là\s+)?(?:bơm hơi|trang phục|linh vật)"
)

PREFERRED_RULES: Tuple[Tuple[Pattern[str], Tuple[str, ...]], ...] = (
    (_all_of(_TIRE, r"\b(?:motorcycles?|motorbikes?|scooters?)\b|xe máy|mô tô"), ("40114000",)),
    (_all_of(_TIRE, r"\b(?:bicycles?|bikes?)\b|xe đạp"), ("40115000",)),
    (_all_of(_TIRE, r"\b(?:bus|buses|trucks?|lorry|lorries)\b|xe tải|xe buýt|ô tô khách"), ("40112010",)),
    (_all_of(_TIRE, r"\b(?:passenger|cars?|sedans?|suvs?)\b|ô tô con|xe con|xe hơi"), ("40111000",)),
    (_rx(r"\bfire[\s-]?(?:trucks?|engines?|fighting vehicles?)\b|\bfiretrucks?\b|xe cứu hỏa|xe chữa cháy"), ("87053000",)),
    (_rx(r"\bsmart[\s-]?phones?\b|\biphones?\b|điện thoại thông minh"), ("85171300",)),
    (_rx(r"\blaptops?\b|\bnotebook computers?\b|máy tính xách tay"), ("84713020",)),
    (_all_of(_INFLATABLE, _COSTUME), ("95059000",)),
    (_rx(r"\bmascot\b|linh vật"), ("61143090",)),
    (_rx(r"\b(?:green|raw|unroasted) coffee\b|cà phê nhân|cà phê chưa rang"), ("09011110",)),
)

CATEGORY_RULES: Tuple[Tuple[Pattern[str], Tuple[str, ...]], ...] = (
    (_rx(r"\b(?:costumes?|mascots?|garments?|clothing|apparel|dress(?:es)?|t-?shirts?|shirts?)\b|quần áo|trang phục|\báo\b"), ("61", "62", "9505")),
    (_rx(_TIRE), ("4011", "4012")),
    (_rx(_FISH_TEXT), ("03",)),
    (_rx(r"\b(?:toys?|dolls?)\b|đồ chơi|búp bê"), ("9503",)),
    (_rx(r"\b(?:shoes?|footwear|sneakers?|boots?|sandals?)\b|giày|\bdép\b"), ("64",)),
    (_rx(r"\b(?:phones?|smartphones?|telephones?)\b|điện thoại"), ("8517",)),
    (_rx(r"\b(?:laptops?|computers?|notebooks?)\b|máy tính"), ("8471",)),
    (_rx(r"\b(?:cars?|vehicles?|trucks?|lorry|lorries|buses|automobiles?)\b|ô tô|xe tải"), ("8702", "8703", "8704", "8705")),
    (_rx(r"\bmotorcycles?\b|xe máy"), ("8711",)),
    (_rx(r"\bbicycles?\b|xe đạp"), ("8712",)),
    (_rx(r"\bcoffee\b|cà phê"), ("0901",)),
    (_rx(r"\btea\b|\bchè\b|\btrà\b"), ("0902",)),
)

_TEXTILE_CHAPTERS = tuple(str(ch) for ch in range(50, 64))

MATERIAL_RULES: Tuple[Tuple[Pattern[str], Tuple[str, ...]], ...] = (
    (_rx(r"\brubber\b|cao su"), ("40",)),
    (_rx(r"\b(?:plastics?|pvc|polyethylene|polypropylene)\b|nhựa"), ("39",)),
    (_rx(r"\b(?:textiles?|cotton|polyester|fabrics?)\b|\bvải\b|sợi"), _TEXTILE_CHAPTERS),
    (_rx(r"\b(?:steel|iron)\b|thép|\bsắt\b"), ("72", "73")),
    (_rx(r"\balumin(?:i)?um\b|nhôm"), ("76",)),
    (_rx(r"\b(?:copper|brass)\b|đồng thau"), ("74",)),
    (_rx(r"\b(?:wood|wooden|timber)\b|\bgỗ\b"), ("44",)),
    (_rx(r"\b(?:paper|paperboard|cardboard|cartons?)\b|giấy"), ("48",)),
    (_rx(r"\bglass\b|thủy tinh"), ("70",)),
    (_rx(r"\bleather\b|da thuộc"), ("41", "42")),
    (_rx(r"\b(?:ceramics?|porcelain)\b|\bgốm\b|\bsứ\b"), ("69",)),
    (_rx(r"\bsilk\b|\blụa\b"), ("50",)),
    (_rx(r"\bwool\b|\blen\b"), ("51",)),
)

SYNONYM_GROUPS: Tuple[Tuple[str, ...], ...] = (
    ("tire", "tyre"),
    ("tires", "tyres"),
    ("truck", "lorry"),
    ("trucks", "lorries"),
    ("car", "passenger"),
    ("fire", "firefighting"),
    ("suit", "costume", "mascot"),
)

_FISH = _rx(_FISH_TEXT)
_TIRE_QUERY = _rx(r"\b(?:tire|tyre)|lốp")
_WHEEL_OR_CASTER = _rx(r"\b(?:wheels?|casters?|castors?|rims?)\b|bánh xe")


def _union(rules: Sequence[Tuple[Pattern[str], Tuple[str, ...]]], text: str) -> List[str]:
    prefixes: List[str] = []
    for pattern, payload in rules:
        if pattern.search(text):
            for prefix in payload:
                if prefix not in prefixes:
                    prefixes.append(prefix)
    return prefixes


def has_negation(text: str) -> bool:
    return bool(NEGATION_PATTERN.search(text or ""))


def get_rule_preferred(text: str) -> List[str]:
    """Codes of the first matching preferred rule, or ``[]`` when negated."""

    lowered = (text or "").lower()
    if not lowered or has_negation(lowered):
        return []
    for pattern, codes in PREFERRED_RULES:
        if pattern.search(lowered):
            return list(codes)
    return []


def get_category_prefixes(text: str) -> List[str]:
    return _union(CATEGORY_RULES, (text or "").lower())


def get_material_prefixes(text: str) -> List[str]:
    return _union(MATERIAL_RULES, (text or "").lower())


def expand_tokens(tokens: Iterable[str]) -> List[str]:
    """Add synonym group members to ``tokens``, keeping first-seen order."""

    expanded: List[str] = []
    for token in tokens:
        if token not in expanded:
            expanded.append(token)
    for group in SYNONYM_GROUPS:
        if any(word in expanded for word in group):
            for word in group:
                if word not in expanded:
                    expanded.append(word)
    return expanded


def expand_variants(text: str) -> List[str]:
    """Whole-query variants with each synonym swapped in, original first."""

    base = normalize_text(text)
    variants: List[str] = [base] if base else []
    for group in SYNONYM_GROUPS:
        for word in group:
            pattern = re.compile(rf"\b{re.escape(word)}\b")
            if not pattern.search(base):
                continue
            for other in group:
                if other == word:
                    continue
                variant = pattern.sub(other, base)
                if variant not in variants:
                    variants.append(variant)
    return variants


def is_fish_query(text: str) -> bool:
    return bool(_FISH.search(text or ""))


def is_tire_query(text: str) -> bool:
    return bool(_TIRE_QUERY.search(text or ""))


def mentions_wheel_or_caster(text: str) -> bool:
    return bool(_WHEEL_OR_CASTER.search(text or ""))
