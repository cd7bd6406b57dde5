"""Waterfall tax calculator for Vietnamese import and export scenarios.

Statutory order for imports (amounts in VND)::

    taxable_value = unit_price_usd * quantity * fx_rate
    import_duty   = taxable_value * import_rate
    safeguard     = taxable_value * safeguard_rate
    excise        = (taxable_value + import_duty) * excise_rate
    environmental = quantity * env_tax_per_unit
    vat           = (taxable_value + import_duty + excise + safeguard + environmental) * vat_rate

Each later base includes every earlier tax, so the order must not change.
Exports carry only export duty on value plus the per-unit environmental tax.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import List, Mapping, Optional, Sequence, Tuple

from hslookup.i18n import rate_label
from hslookup.tariff.models import TariffRecord

IMPORT_RATE_ORDER: Tuple[str, ...] = (
    "mfn",
    "nk_tt",
    "form_e",
    "form_d",
    "ajcep",
    "vjepa",
    "akfta",
    "aanzfta",
    "aifta",
    "vkfta",
    "vcfta",
    "vn_eaeu",
    "cptpp",
    "ahkfta",
    "eur1",
    "ukv",
    "vn_lao",
    "vifta",
    "rcept",
)

EXPORT_RATE_ORDER: Tuple[str, ...] = ("xk", "xk_cptpp", "xk_ev", "xk_ukv")

_NUMBER = re.compile(r"-?\d+(?:[.,]\d+)?")


@dataclass(frozen=True)
class TaxInputs:
    """User-adjustable waterfall inputs; rates are percentages."""

    unit_price_usd: float
    fx_rate: float
    quantity: float = 1.0
    import_rate_pct: float = 0.0
    excise_rate_pct: float = 0.0
    safeguard_rate_pct: float = 0.0
    env_tax_per_unit: float = 0.0
    vat_rate_pct: float = 0.0
    export_rate_pct: float = 0.0

    def __post_init__(self) -> None:
        for name in (
            "unit_price_usd",
            "fx_rate",
            "quantity",
            "import_rate_pct",
            "excise_rate_pct",
            "safeguard_rate_pct",
            "env_tax_per_unit",
            "vat_rate_pct",
            "export_rate_pct",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @property
    def taxable_value(self) -> float:
        return self.unit_price_usd * self.quantity * self.fx_rate


@dataclass(frozen=True)
class ImportWaterfall:
    taxable_value: float
    import_duty: float
    safeguard: float
    excise: float
    environmental: float
    vat: float
    total_tax: float
    landed_cost: float


@dataclass(frozen=True)
class ExportWaterfall:
    taxable_value: float
    export_duty: float
    environmental: float
    total_tax: float


@dataclass(frozen=True)
class RateOption:
    key: str
    label: str
    raw: str
    rate_pct: Optional[float]


def compute_import_waterfall(inputs: TaxInputs) -> ImportWaterfall:
    tv = inputs.taxable_value
    import_duty = tv * inputs.import_rate_pct / 100
    safeguard = tv * inputs.safeguard_rate_pct / 100
    excise = (tv + import_duty) * inputs.excise_rate_pct / 100
    environmental = inputs.quantity * inputs.env_tax_per_unit
    vat = (tv + import_duty + excise + safeguard + environmental) * inputs.vat_rate_pct / 100
    total = import_duty + safeguard + excise + environmental + vat
    return ImportWaterfall(
        taxable_value=tv,
        import_duty=import_duty,
        safeguard=safeguard,
        excise=excise,
        environmental=environmental,
        vat=vat,
        total_tax=total,
        landed_cost=tv + total,
    )


def compute_export_waterfall(inputs: TaxInputs) -> ExportWaterfall:
    tv = inputs.taxable_value
    export_duty = tv * inputs.export_rate_pct / 100
    environmental = inputs.quantity * inputs.env_tax_per_unit
    return ExportWaterfall(
        taxable_value=tv,
        export_duty=export_duty,
        environmental=environmental,
        total_tax=export_duty + environmental,
    )


def parse_rate(value: object) -> Optional[float]:
    """Turn a schedule rate such as ``"10"``, ``"10%"`` or ``"5,5"`` into a float.

    Placeholders (``""``, ``"*"``, ``"-"``) and booleans give ``None``;
    ``"Free"`` gives ``0.0``.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text or text in {"*", "-", "–"}:
        return None
    if text.lower() in {"free", "miễn", "mien"}:
        return 0.0
    match = _NUMBER.search(text)
    if match is None:
        return None
    return float(match.group(0).replace(",", "."))


def _options(
    record: TariffRecord, order: Sequence[str], lang: str
) -> List[RateOption]:
    options: List[RateOption] = []
    for key in order:
        raw = record.rates.get(key)
        if raw is None or isinstance(raw, bool) or str(raw).strip() == "":
            continue
        options.append(
            RateOption(key=key, label=rate_label(key, lang), raw=str(raw), rate_pct=parse_rate(raw))
        )
    return options


def import_rate_options(record: TariffRecord, lang: str = "vi") -> List[RateOption]:
    """Selectable import schemes present on ``record`` in display order."""

    return _options(record, IMPORT_RATE_ORDER, lang)


def export_rate_options(record: TariffRecord, lang: str = "vi") -> List[RateOption]:
    return _options(record, EXPORT_RATE_ORDER, lang)


def compare_import_scenarios(
    inputs: TaxInputs, options: Sequence[RateOption]
) -> List[Tuple[RateOption, ImportWaterfall]]:
    """One waterfall per option, swapping in that option's import rate."""

    scenarios: List[Tuple[RateOption, ImportWaterfall]] = []
    for option in options:
        if option.rate_pct is None:
            continue
        scenario = replace(inputs, import_rate_pct=option.rate_pct)
        scenarios.append((option, compute_import_waterfall(scenario)))
    return scenarios


def inputs_for_record(
    record: TariffRecord,
    unit_price_usd: float,
    fx_rate: float,
    quantity: float = 1.0,
    scheme: str = "mfn",
) -> TaxInputs:
    """Prefill inputs from a record's own rates (missing rates count as 0)."""

    rates: Mapping[str, object] = record.rates

    def pct(key: str) -> float:
        value = parse_rate(rates.get(key))
        return value if value is not None else 0.0

    return TaxInputs(
        unit_price_usd=unit_price_usd,
        fx_rate=fx_rate,
        quantity=quantity,
        import_rate_pct=pct(scheme),
        excise_rate_pct=pct("ttdb"),
        env_tax_per_unit=pct("bvmt"),
        vat_rate_pct=pct("vat"),
        export_rate_pct=pct("xk"),
    )


CHINA_301_SURCHARGE_PCT = 25.0

# (key, origin, flag in ``rates`` that makes the origin duty-free, status when free, status otherwise)
US_ORIGINS: Tuple[Tuple[str, str, Optional[str], str, str], ...] = (
    ("vn", "Vietnam", None, "Best Value", "Best Value"),
    ("cn", "China", None, "MFN", "MFN"),
    ("mx", "Mexico", "usmca_mx", "USMCA", "Nearshore"),
    ("in", "India", None, "Emerging", "Emerging"),
    ("eu", "European Union", "eu_pref", "Preferential", "High Quality"),
    ("uk", "United Kingdom", None, "Alliance", "Alliance"),
    ("au", "Australia", "au_fta", "Preferential", "Alliance"),
    ("kr", "Korea", "korea_fta", "KORUS", "High Tech"),
    ("jp", "Japan", None, "High Tech", "High Tech"),
    ("ca", "Canada", "ca_usmca", "USMCA", "USMCA"),
    ("ru", "Russia", None, "Standard", "Standard"),
)

_PLAIN_PERCENT = re.compile(r"\d+(?:\.\d+)?\s*%?")


@dataclass(frozen=True)
class OriginDuty:
    key: str
    origin: str
    rate_pct: Optional[float]
    display: str
    status: str
    preferential: bool = False
    penalty: bool = False


def _us_base_pct(mfn: object) -> Optional[float]:
    """General-column rate as a percentage; compound or specific rates give ``None``."""

    text = "" if mfn is None or isinstance(mfn, bool) else str(mfn).strip()
    if not text:
        return 0.0
    if text.lower() != "free" and not _PLAIN_PERCENT.fullmatch(text):
        return None
    return parse_rate(text)


def origin_duty_matrix(record: TariffRecord) -> List[OriginDuty]:
    """Effective US import duty of ``record`` for each sourcing origin.

    China pays the general rate plus the Section 301 surcharge when
    ``china_301`` is set. FTA partners are duty-free when their flag is set.
    Rates that are not plain percentages are shown as published.
    """

    rates: Mapping[str, object] = record.rates
    mfn = rates.get("mfn")
    base = _us_base_pct(mfn)
    china_301 = rates.get("china_301") is True
    rows: List[OriginDuty] = []
    for key, origin, fta_flag, free_status, status in US_ORIGINS:
        preferential = fta_flag is not None and rates.get(fta_flag) is True
        penalty = key == "cn" and china_301
        if preferential:
            pct: Optional[float] = 0.0
        elif base is None:
            pct = None
        else:
            pct = base + CHINA_301_SURCHARGE_PCT if penalty else base
        if pct is None:
            display = str(mfn).strip() if mfn else "-"
        else:
            display = f"{pct:g}%"
        if penalty:
            label = "High Tariff"
        else:
            label = free_status if preferential else status
        rows.append(
            OriginDuty(
                key=key,
                origin=origin,
                rate_pct=pct,
                display=display,
                status=label,
                preferential=preferential,
                penalty=penalty,
            )
        )
    return rows
