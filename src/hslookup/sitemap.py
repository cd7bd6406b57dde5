"""Paged XML sitemaps over locale homes, chapters, VN codes and US HTS codes."""

from __future__ import annotations

from typing import List
from xml.sax.saxutils import escape

from hslookup import config
from hslookup.i18n import LOCALES
from hslookup.tariff.dataset import get_dataset

_XMLNS = "http://www.sitemaps.org/schemas/sitemap/0.9"


def sitemap_urls() -> List[str]:
    base = config.site_url()
    vn = get_dataset("vn")
    us = get_dataset("us")
    urls: List[str] = []
    for locale in LOCALES:
        urls.append(f"{base}/{locale}")
        urls.extend(f"{base}/{locale}/chapter/{chapter}" for chapter, _ in vn.chapters())
        urls.extend(f"{base}/{locale}/hs-code/{record.slug}" for record in vn)
        urls.extend(f"{base}/{locale}/us-hts/{record.slug}" for record in us)
    return urls


def page_count(total: int, page_size: int) -> int:
    return max(1, -(-total // page_size))


def sitemap_index_xml() -> str:
    base = config.site_url()
    pages = page_count(len(sitemap_urls()), config.sitemap_page_size())
    entries = "".join(
        f"<sitemap><loc>{escape(f'{base}/sitemap/{n}.xml')}</loc></sitemap>" for n in range(pages)
    )
    return f'<?xml version="1.0" encoding="UTF-8"?><sitemapindex xmlns="{_XMLNS}">{entries}</sitemapindex>'


def sitemap_page_xml(page: int) -> str:
    """URL set for page ``page`` (zero-based); raises IndexError past the end."""

    urls = sitemap_urls()
    size = config.sitemap_page_size()
    if page < 0 or page >= page_count(len(urls), size):
        raise IndexError(page)
    chunk = urls[page * size : (page + 1) * size]
    entries = "".join(f"<url><loc>{escape(url)}</loc></url>" for url in chunk)
    return f'<?xml version="1.0" encoding="UTF-8"?><urlset xmlns="{_XMLNS}">{entries}</urlset>'
