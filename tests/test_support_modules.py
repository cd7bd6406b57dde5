import logging
import re

import pytest

from hslookup import config
from hslookup.i18n import (
    get_locale_strings,
    is_locale,
    locale_from_accept_language,
    normalize_locale,
    rate_label,
)
from hslookup.observability import (
    RunIdFilter,
    bind_run_id,
    client_ip,
    current_run_id,
    redact_api_key,
    reset_run_id,
)
from hslookup.sitemap import page_count, sitemap_index_xml, sitemap_page_xml, sitemap_urls
from hslookup.tariff.dataset import get_dataset


@pytest.mark.parametrize(
    "header, expected",
    [
        ("en-US,en;q=0.9", "en"),
        ("vi-VN,vi;q=0.9,fr;q=0.5", "vi"),
        ("fr-FR, en;q=0.3", "en"),
        ("", "vi"),
        (None, "vi"),
    ],
)
def test_locale_from_accept_language(header, expected):
    assert locale_from_accept_language(header) == expected


def test_locale_helpers_and_strings():
    assert is_locale("en") and is_locale("vi")
    assert not is_locale("fr")
    assert normalize_locale("fr") == "vi"
    assert set(get_locale_strings("en")) == set(get_locale_strings("vi"))
    assert get_locale_strings("en")["notFound"] == "HS code not found"


@pytest.mark.parametrize(
    "key, lang, expected",
    [
        ("eur1", "vi", "EVFTA"),
        ("form_e", "en", "ACFTA (Form E)"),
        ("mfn", "en", "MFN"),
        ("ttdb", "vi", "Thuế TTĐB"),
        ("mystery", "en", "MYSTERY"),
    ],
)
def test_rate_label(key, lang, expected):
    assert rate_label(key, lang) == expected


def test_config_defaults_and_overrides(monkeypatch):
    assert config.fuzzy_cutoff() == 60
    assert config.groq_model() == config.DEFAULT_GROQ_MODEL
    assert config.ai_refine_enabled() is True
    assert config.ai_headings_enabled() is False
    monkeypatch.setenv("HSLOOKUP_FUZZY_CUTOFF", "250")
    assert config.fuzzy_cutoff() == 100
    monkeypatch.setenv("HSLOOKUP_FUZZY_CUTOFF", "abc")
    assert config.fuzzy_cutoff() == 60
    monkeypatch.setenv("HSLOOKUP_SITE_URL", "https://tariff.example/")
    assert config.site_url() == "https://tariff.example"


def test_redact_api_key():
    assert redact_api_key(None) == "<missing>"
    assert redact_api_key("abc") == "***"
    assert redact_api_key("gsk_secret_value") == "gsk_***"


def test_client_ip_prefers_forwarded_header():
    assert client_ip("203.0.113.7, 10.0.0.1", "127.0.0.1") == "203.0.113.7"
    assert client_ip(None, "127.0.0.1") == "127.0.0.1"
    assert client_ip("", None) == "unknown"


def test_run_id_binding_and_filter():
    token = bind_run_id("run-123")
    try:
        assert current_run_id() == "run-123"
        record = logging.LogRecord("hslookup", logging.INFO, __file__, 1, "msg", None, None)
        assert RunIdFilter().filter(record)
        assert record.run_id == "run-123"
    finally:
        reset_run_id(token)
    assert current_run_id() != "run-123"


def test_sitemap_urls_cover_every_page_type(monkeypatch):
    monkeypatch.setenv("HSLOOKUP_SITE_URL", "https://tariff.example")
    urls = sitemap_urls()
    vn = get_dataset("vn")
    per_locale = 1 + len(vn.chapters()) + len(vn) + len(get_dataset("us"))
    assert len(urls) == 2 * per_locale
    assert "https://tariff.example/vi" in urls
    assert "https://tariff.example/en/hs-code/40111000" in urls
    assert "https://tariff.example/vi/chapter/03" in urls
    assert "https://tariff.example/en/us-hts/8705300000" in urls


def test_sitemap_paging(monkeypatch):
    monkeypatch.setenv("HSLOOKUP_SITE_URL", "https://tariff.example")
    monkeypatch.setenv("HSLOOKUP_SITEMAP_PAGE_SIZE", "50")
    total = len(sitemap_urls())
    pages = page_count(total, 50)
    assert pages == -(-total // 50)

    index = sitemap_index_xml()
    assert index.count("<sitemap>") == pages
    assert "https://tariff.example/sitemap/0.xml" in index

    first = sitemap_page_xml(0)
    assert first.count("<url>") == 50
    last = sitemap_page_xml(pages - 1)
    assert len(re.findall("<url>", last)) == total - 50 * (pages - 1)
    with pytest.raises(IndexError):
        sitemap_page_xml(pages)
    with pytest.raises(IndexError):
        sitemap_page_xml(-1)


def test_page_count_never_zero():
    assert page_count(0, 100) == 1
    assert page_count(100, 100) == 1
    assert page_count(101, 100) == 2


def test_rate_limiter_window_rolls_over():
    from fastapi import HTTPException

    from hslookup.api.security import RateLimiter

    now = [120.0]
    limiter = RateLimiter(limit=2, window_seconds=60, clock=lambda: now[0])
    assert limiter.check("10.0.0.1", "/api/explain") == 1
    assert limiter.check("10.0.0.1", "/api/explain") == 0
    assert limiter.check("10.0.0.1", "/api/hs-suggest") == 1
    with pytest.raises(HTTPException) as exc:
        limiter.check("10.0.0.1", "/api/explain")
    assert exc.value.status_code == 429
    assert exc.value.headers == {"Retry-After": "60"}
    now[0] = 180.0
    assert limiter.check("10.0.0.1", "/api/explain") == 1


def test_rate_limiter_drops_expired_buckets():
    from hslookup.api.security import RateLimiter

    now = [0.0]
    limiter = RateLimiter(limit=5, window_seconds=60, clock=lambda: now[0])
    for n in range(200):
        limiter.check(f"203.0.113.{n}", "/api/hs-suggest")
    assert len(limiter) == 200

    now[0] = 60.0
    limiter.check("203.0.113.250", "/api/hs-suggest")
    assert len(limiter) == 1


def test_shared_rate_limiter_reads_environment_at_call_time(monkeypatch):
    from hslookup.api import security

    security.set_rate_limit(None)
    monkeypatch.setenv("HSLOOKUP_AI_RATE_LIMIT_PER_MINUTE", "7")
    assert security.get_rate_limiter().limit == 7
    monkeypatch.setenv("HSLOOKUP_AI_RATE_LIMIT_PER_MINUTE", "3")
    monkeypatch.setenv("HSLOOKUP_RATE_WINDOW_SEC", "10")
    limiter = security.get_rate_limiter()
    assert (limiter.limit, limiter.window_seconds) == (3, 10)

    security.set_rate_limit(2)
    assert security.get_rate_limiter().limit == 2
