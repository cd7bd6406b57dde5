import pytest
import requests

import hslookup.tariff.fx as fx_mod


@pytest.fixture()
def offline_fx(monkeypatch):
    def fail(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(fx_mod.requests, "get", fail)


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["records"] == {"vn": 58, "us": 26}
    assert body["ai"] is False


def test_run_id_header(client):
    generated = client.get("/health")
    assert len(generated.headers["X-Run-ID"]) == 32
    echoed = client.get("/health", headers={"X-Run-ID": "trace-42"})
    assert echoed.headers["X-Run-ID"] == "trace-42"


def test_root_redirects_by_accept_language(client):
    english = client.get("/", headers={"Accept-Language": "en-GB,en;q=0.8"}, follow_redirects=False)
    assert english.status_code == 307
    assert english.headers["location"] == "/en"
    default = client.get("/", follow_redirects=False)
    assert default.headers["location"] == "/vi"


def test_locale_home(client):
    response = client.get("/en")
    assert response.status_code == 200
    assert response.json()["strings"]["notFound"] == "HS code not found"
    assert client.get("/fr").status_code == 404


def test_hs_search_routes(client):
    results = client.get("/api/hs-search", params={"q": "4011"}).json()["results"]
    assert results[0] == {
        "slug": "40111000",
        "displayCode": "4011.10.00",
        "description": results[0]["description"],
    }
    assert client.get("/api/hs-search").json() == {"results": []}
    english = client.get("/api/hs-search", params={"q": "tyres", "lang": "en"}).json()["results"]
    assert english[0]["description"].startswith("New pneumatic tyres")


def test_us_hts_search_route(client):
    results = client.get("/api/us-hts-search", params={"q": "4011"}).json()["results"]
    assert results[0]["slug"] == "4011"
    assert results[0]["description"] == "Heading 4011: view all subheadings"


def test_hs_code_detail(client):
    response = client.get("/api/hs-code/40111000", params={"lang": "en"})
    assert response.status_code == 200
    body = response.json()
    assert body["code"] == "4011.10.00"
    assert body["nameEn"].startswith("New pneumatic tyres")
    assert body["chapter"] == "40"
    assert body["heading"] == "4011"
    assert body["rates"]["vat"] == "10"
    assert body["importOptions"][0] == {"key": "mfn", "label": "MFN", "raw": "25", "rate_pct": 25.0}
    assert body["exportOptions"] == []
    assert client.get("/api/hs-code/4011.10.00").json()["slug"] == "40111000"


def test_unknown_code_is_404(client):
    response = client.get("/api/hs-code/99999999")
    assert response.status_code == 404
    assert response.json() == {"message": "HS code not found"}
    assert client.get("/api/hs-code/99999999/related").status_code == 404
    assert client.get("/api/hs-code/99999999/pdf").status_code == 404
    assert client.get("/api/us-hts/99999999").status_code == 404


def test_related_codes(client):
    body = client.get("/api/hs-code/40111000/related", params={"limit": 3}).json()
    assert body["slug"] == "40111000"
    assert [r["slug"] for r in body["results"]] == ["40112010", "40114000", "40115000"]
    assert client.get("/api/hs-code/40111000/related", params={"limit": 0}).status_code == 422


def test_pdf_export_route(client):
    response = client.get("/api/hs-code/40111000/pdf")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert "hs-40111000.pdf" in response.headers["content-disposition"]
    assert response.content.startswith(b"%PDF")


def test_chapter_routes(client):
    chapters = client.get("/api/chapters").json()
    assert {"chapter": "03", "count": 8} in chapters
    body = client.get("/api/chapter/3").json()
    assert body["chapter"] == "03"
    assert len(body["results"]) == 8
    us = client.get("/api/us-hts/chapter/40").json()
    assert us["results"] and all(r["slug"].startswith("40") for r in us["results"])


def test_us_hts_detail_accepts_eight_digits(client):
    full = client.get("/api/us-hts/4011101010").json()
    assert full["code"] == "4011.10.10.10"
    assert full["rates"]["china_301"] is True
    short = client.get("/api/us-hts/40111010").json()
    assert short["slug"] == "4011101010"


def test_us_hts_detail_carries_origin_duties(client):
    body = client.get("/api/us-hts/4011101010").json()
    rows = {row["key"]: row for row in body["originDuties"]}
    assert rows["cn"] == {
        "key": "cn",
        "origin": "China",
        "ratePct": 29.0,
        "display": "29%",
        "status": "High Tariff",
        "preferential": False,
        "penalty": True,
    }
    assert rows["mx"]["ratePct"] == 0.0
    assert client.get("/api/hs-code/40111000").json()["originDuties"] is None


def test_tax_calculate_reference_case(client):
    response = client.post(
        "/api/tax/calculate",
        json={
            "unit_price_usd": 1000,
            "fx_rate": 25000,
            "import_rate_pct": 10,
            "excise_rate_pct": 5,
            "vat_rate_pct": 10,
        },
    )
    assert response.status_code == 200
    body = response.json()
    assert body["fx_source"] == "request"
    assert body["import"]["import_duty"] == pytest.approx(2_500_000)
    assert body["import"]["excise"] == pytest.approx(1_375_000)
    assert body["import"]["vat"] == pytest.approx(2_887_500)
    assert body["import"]["total_tax"] == pytest.approx(6_762_500)
    assert body["export"]["total_tax"] == 0
    assert "scenarios" not in body


def test_tax_calculate_with_slug_compares_schemes(client):
    body = client.post(
        "/api/tax/calculate",
        json={"unit_price_usd": 1000, "fx_rate": 25000, "slug": "40111000", "lang": "en"},
    ).json()
    by_key = {s["scheme"]["key"]: s["import"] for s in body["scenarios"]}
    assert by_key["mfn"]["import_duty"] == pytest.approx(6_250_000)
    assert by_key["eur1"]["import_duty"] == pytest.approx(2_500_000)
    assert by_key["form_e"]["import_duty"] == 0

    missing = client.post(
        "/api/tax/calculate", json={"unit_price_usd": 1, "fx_rate": 25000, "slug": "99999999"}
    )
    assert missing.status_code == 404


def test_tax_calculate_uses_live_or_default_fx(client, offline_fx):
    body = client.post("/api/tax/calculate", json={"unit_price_usd": 2}).json()
    assert body["fx_rate"] == 25000.0
    assert body["fx_source"] == "default"
    assert body["import"]["taxable_value"] == pytest.approx(50_000)


def test_tax_validation_errors(client):
    response = client.post("/api/tax/calculate", json={"unit_price_usd": -5, "fx_rate": 25000})
    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert [f["path"] for f in body["fields"]] == ["request.unit_price_usd"]

    extra = client.post("/api/tax/calculate", json={"unit_price_usd": 1, "api_key": "x"})
    assert [f["path"] for f in extra.json()["fields"]] == ["request.api_key"]


def test_fx_rate_route(client, offline_fx):
    assert client.get("/api/fx-rate").json() == {
        "base": "USD",
        "quote": "VND",
        "rate": 25000.0,
        "source": "default",
    }


def test_sitemaps(client, monkeypatch):
    monkeypatch.setenv("HSLOOKUP_SITE_URL", "https://tariff.example")
    index = client.get("/sitemap.xml")
    assert index.status_code == 200
    assert index.headers["content-type"].startswith("application/xml")
    assert "https://tariff.example/sitemap/0.xml" in index.text

    page = client.get("/sitemap/0.xml")
    assert page.status_code == 200
    assert "https://tariff.example/vi/hs-code/40111000" in page.text
    assert client.get("/sitemap/7.xml").status_code == 404
