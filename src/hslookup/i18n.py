"""Locale handling: supported locales, UI strings and rate-scheme labels."""

from __future__ import annotations

from datetime import date
from typing import Dict, Optional

LOCALES = ("vi", "en")
DEFAULT_LOCALE = "vi"

SITE_YEAR = date.today().year

_STRINGS: Dict[str, Dict[str, str]] = {
    "en": {
        "homeTitle": f"Vietnam Import Tariff Lookup {SITE_YEAR}",
        "searchPlaceholder": "Search HS code or product name",
        "mfn": "MFN Import Duty",
        "evfta": "EVFTA Import Duty",
        "vat": "VAT",
        "unit": "Unit",
        "relatedTitle": "Related HS Codes (Same Chapter)",
        "aiBadge": "AI Insight",
        "notFound": "HS code not found",
        "notAvailable": "N/A",
        "checkPolicy": "Check Policy",
        "taxableValue": "Taxable value",
        "importDuty": "Import duty",
        "excise": "Special consumption tax",
        "safeguard": "Safeguard duty",
        "environmental": "Environmental protection tax",
        "exportDuty": "Export duty",
        "totalTax": "Total tax",
        "landedCost": "Landed cost",
    },
    "vi": {
        "homeTitle": f"Tra cứu thuế nhập khẩu Việt Nam {SITE_YEAR}",
        "searchPlaceholder": "Tìm mã HS hoặc tên hàng hoá",
        "mfn": "Thuế NK ưu đãi (MFN)",
        "evfta": "Thuế EVFTA",
        "vat": "VAT",
        "unit": "Đơn vị tính",
        "relatedTitle": "Mã HS liên quan (cùng Chương)",
        "aiBadge": "AI Insight",
        "notFound": "Không tìm thấy mã HS",
        "notAvailable": "N/A",
        "checkPolicy": "Kiểm tra chính sách",
        "taxableValue": "Trị giá tính thuế",
        "importDuty": "Thuế nhập khẩu",
        "excise": "Thuế tiêu thụ đặc biệt",
        "safeguard": "Thuế tự vệ",
        "environmental": "Thuế bảo vệ môi trường",
        "exportDuty": "Thuế xuất khẩu",
        "totalTax": "Tổng thuế",
        "landedCost": "Tổng chi phí",
    },
}

# Scheme labels that read the same in both locales.
_FTA_LABELS: Dict[str, str] = {
    "form_e": "ACFTA (Form E)",
    "form_d": "ATIGA (Form D)",
    "ajcep": "AJCEP",
    "vjepa": "VJEPA",
    "akfta": "AKFTA",
    "aanzfta": "AANZFTA",
    "aifta": "AIFTA",
    "vkfta": "VKFTA",
    "vcfta": "VCFTA",
    "vn_eaeu": "VN-EAEU",
    "cptpp": "CPTPP",
    "ahkfta": "AHKFTA",
    "eur1": "EVFTA",
    "ukv": "UKVFTA",
    "vn_lao": "VN-LAO",
    "vifta": "VIFTA",
    "rcept": "RCEP",
    # US preference flags
    "china_301": "Section 301 (China)",
    "usmca_mx": "USMCA (Mexico)",
    "ca_usmca": "USMCA (Canada)",
    "korea_fta": "KORUS FTA",
    "au_fta": "Australia FTA",
    "eu_pref": "EU preference",
}

_LOCALISED_LABELS: Dict[str, Dict[str, str]] = {
    "mfn": {"en": "MFN", "vi": "Ưu đãi (MFN)"},
    "nk_tt": {"en": "Ordinary import duty", "vi": "NK thông thường"},
    "vat": {"en": "VAT", "vi": "VAT"},
    "ttdb": {"en": "Special consumption tax", "vi": "Thuế TTĐB"},
    "bvmt": {"en": "Environmental tax", "vi": "Thuế BVMT"},
    "xk": {"en": "Export duty", "vi": "Thuế xuất khẩu"},
    "xk_cptpp": {"en": "Export duty (CPTPP)", "vi": "Thuế XK (CPTPP)"},
    "xk_ev": {"en": "Export duty (EVFTA)", "vi": "Thuế XK (EVFTA)"},
    "xk_ukv": {"en": "Export duty (UKVFTA)", "vi": "Thuế XK (UKVFTA)"},
}


def is_locale(value: Optional[str]) -> bool:
    return value in LOCALES


def normalize_locale(value: Optional[str]) -> str:
    return value if value in LOCALES else DEFAULT_LOCALE


def get_locale_strings(locale: str) -> Dict[str, str]:
    return dict(_STRINGS["en" if locale == "en" else "vi"])


def locale_from_accept_language(header: Optional[str]) -> str:
    """``en`` when the Accept-Language header mentions English, else ``vi``."""

    if not header:
        return DEFAULT_LOCALE
    for part in header.split(","):
        tag = part.split(";")[0].strip().lower()
        if tag == "en" or tag.startswith("en-"):
            return "en"
    return DEFAULT_LOCALE


def rate_label(key: str, lang: str = DEFAULT_LOCALE) -> str:
    if key in _FTA_LABELS:
        return _FTA_LABELS[key]
    localised = _LOCALISED_LABELS.get(key)
    if localised:
        return localised["en" if lang == "en" else "vi"]
    return key.upper()
