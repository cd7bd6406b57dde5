"""Render a tariff record and its rates as a one-page PDF (reportlab)."""

from __future__ import annotations

from datetime import datetime, timezone
from io import BytesIO
from typing import List

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from hslookup.i18n import get_locale_strings, rate_label
from hslookup.tariff.lexical_index import fold_diacritics
from hslookup.tariff.models import TariffRecord
from hslookup.tariff.tax_calculator import export_rate_options, import_rate_options

_WRAP = 95


def _draw_lines(c: canvas.Canvas, lines: List[str], *, start_y: int = 760, step: int = 14) -> int:
    y = start_y
    for line in lines:
        c.drawString(40, y, line)
        y -= step
        if y < 60:
            c.showPage()
            c.setFont("Helvetica", 10)
            y = start_y
    return y


def _ascii(text: str) -> str:
    # Built-in Helvetica has no Vietnamese glyphs.
    return fold_diacritics(text or "")


def _wrap(text: str, width: int = _WRAP) -> List[str]:
    words = text.split()
    lines: List[str] = []
    current = ""
    for word in words:
        candidate = f"{current} {word}".strip()
        if len(candidate) > width and current:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines or [""]


def record_lines(record: TariffRecord, lang: str = "vi") -> List[str]:
    strings = get_locale_strings(lang)
    primary, secondary = (
        (record.name_en, record.name_vi) if lang == "en" else (record.name_vi or record.name_en, record.name_en)
    )
    lines: List[str] = []
    lines.extend(_wrap(_ascii(primary)))
    if secondary and secondary != primary:
        lines.extend(_wrap(f"({_ascii(secondary)})"))
    lines.append("")
    lines.append(f"{_ascii(strings['unit'])}: {_ascii(record.unit or strings['notAvailable'])}")
    lines.append("")

    options = import_rate_options(record, lang) + export_rate_options(record, lang)
    if options:
        for option in options:
            lines.append(f"- {_ascii(option.label)}: {option.raw}")
    for key in ("vat", "ttdb", "bvmt", "policy"):
        value = record.rates.get(key)
        if value:
            lines.append(f"- {_ascii(rate_label(key, lang))}: {_ascii(str(value))}")
    flags = [key for key, value in record.rates.items() if value is True]
    if flags:
        lines.append("- " + ", ".join(rate_label(key, lang) for key in flags))
    if len(lines) and lines[-1] == "":
        lines.pop()
    return lines


def build_record_pdf(record: TariffRecord, lang: str = "vi") -> bytes:
    """PDF bytes for ``record`` localised to ``lang``."""

    buffer = BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    c.setTitle(f"HS {record.code}")
    c.setFont("Helvetica-Bold", 16)
    schedule = "US HTS" if record.market == "us" else "HS"
    c.drawString(40, 800, f"{schedule} {record.code}")
    c.setFont("Helvetica", 9)
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    c.drawString(40, 784, f"Generated {generated}")
    c.setFont("Helvetica", 10)
    _draw_lines(c, record_lines(record, lang), start_y=760)
    c.showPage()
    c.save()
    return buffer.getvalue()
