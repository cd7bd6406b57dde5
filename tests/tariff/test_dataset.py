import json
import logging

import pytest

from hslookup.tariff.dataset import (
    format_heading,
    get_dataset,
    load_dataset,
    reset_caches,
    slugify_code,
)


def test_bundled_datasets_load():
    vn = get_dataset("vn")
    us = get_dataset("us")
    assert len(vn) == 58
    assert len(us) == 26
    assert get_dataset("vn") is vn


def test_vn_record_folds_top_level_rates():
    record = get_dataset("vn").get("4011.10.00")
    assert record is not None
    assert record.slug == "40111000"
    assert record.code == "4011.10.00"
    assert record.unit == "chiếc"
    assert record.rates["mfn"] == "25"
    assert record.rates["nk_tt"] == "37.5"
    assert record.rates["vat"] == "10"

    car = get_dataset("vn").get("87032359")
    assert car.rates["ttdb"] == "40"
    bags = get_dataset("vn").get("39232119")
    assert bags.rates["bvmt"] == "50000"


def test_us_record_keeps_boolean_flags_and_units():
    record = get_dataset("us").get("4011101010")
    assert record.code == "4011.10.10.10"
    assert record.rates["china_301"] is True
    assert record.rates["eu_pref"] is False
    assert record.unit == "No."
    assert record.name_vi == ""
    assert get_dataset("us").get("6109100012").unit == "doz., kg"


@pytest.mark.parametrize(
    "code, expected",
    [("0101.21.00", "01012100"), ("4011 10 00", "40111000"), ("", "")],
)
def test_slugify_code(code, expected):
    assert slugify_code(code) == expected


@pytest.mark.parametrize(
    "digits, expected",
    [("4011", "4011"), ("401110", "4011.10"), ("4011101010", "4011.10.10.10")],
)
def test_format_heading(digits, expected):
    assert format_heading(digits) == expected


def test_duplicate_slug_keeps_first_record(tmp_path, caplog):
    path = tmp_path / "hscode.json"
    path.write_text(
        json.dumps(
            [
                {"hs_code": "0101.21.00", "name_en": "First", "name_vi": "Một"},
                {"hs_code": "0101.21.00", "name_en": "Second", "name_vi": "Hai"},
            ]
        ),
        encoding="utf-8",
    )
    with caplog.at_level(logging.WARNING):
        dataset = load_dataset("vn", path)
    assert len(dataset) == 1
    assert dataset.get("01012100").name_en == "First"
    assert "Duplicate slug" in caplog.text


def test_line_delimited_file_and_derived_slug(tmp_path):
    path = tmp_path / "hscode.json"
    path.write_text(
        '{"hs_code": "0301.11.10", "name_en": "Fry", "taxes": {"mfn": "0"}}\n'
        "not json\n"
        '{"hs_code": "0301.19.00", "name_en": "Other ornamental fish"}\n',
        encoding="utf-8",
    )
    dataset = load_dataset("vn", path)
    assert [r.slug for r in dataset] == ["03011110", "03011900"]
    assert dataset.get("03011110").rates == {"mfn": "0"}


def test_data_dir_override(monkeypatch, tmp_path):
    (tmp_path / "hscode.json").write_text(
        json.dumps([{"hs_code": "9503.00.99", "name_en": "Other toys"}]), encoding="utf-8"
    )
    monkeypatch.setenv("HSLOOKUP_DATA_DIR", str(tmp_path))
    reset_caches()
    assert [r.slug for r in get_dataset("vn")] == ["95030099"]


def test_unknown_market_rejected():
    with pytest.raises(ValueError):
        load_dataset("jp")


def test_resolve_prefers_exact_then_first_child():
    vn = get_dataset("vn")
    assert vn.resolve("40111000").slug == "40111000"
    assert vn.resolve("4011").slug == "40111000"
    assert get_dataset("us").resolve("87053000").slug == "8705300000"
    assert vn.resolve("9999") is None
    assert vn.resolve("") is None


def test_chapters_and_chapter_listing():
    vn = get_dataset("vn")
    chapters = dict(vn.chapters())
    assert chapters["03"] == 8
    assert chapters["40"] == 10
    assert [ch for ch, _ in vn.chapters()] == sorted(chapters)
    assert all(r.chapter == "03" for r in vn.chapter("3"))


def test_related_prefers_same_heading_then_nearest_code():
    related = get_dataset("vn").related("40111000", limit=4)
    assert [r.slug for r in related] == ["40112010", "40114000", "40115000", "40117000"]
    assert all(r.chapter == "40" for r in get_dataset("vn").related("40111000", limit=50))
    assert get_dataset("vn").related("99999999") == []


def test_source_slug_is_reduced_to_digits(tmp_path):
    path = tmp_path / "hscode.json"
    path.write_text(
        json.dumps(
            [
                {"hs_code": "4011.10.00", "slug": "4011.10.00", "name_en": "Car tyres"},
                {"hs_code": "4011.40.00", "slug": "hs-40114000", "name_en": "Motorcycle tyres"},
                {"hs_code": "", "slug": "n/a", "name_en": "No code at all"},
            ]
        ),
        encoding="utf-8",
    )
    dataset = load_dataset("vn", path)
    assert [r.slug for r in dataset] == ["40111000", "40114000"]
    assert dataset.get("40114000").name_en == "Motorcycle tyres"
    assert [r.slug for r in dataset.related("40111000")] == ["40114000"]
