import pytest

from hslookup.tariff.dataset import get_dataset
from hslookup.tariff.models import TariffRecord
from hslookup.tariff.tax_calculator import (
    TaxInputs,
    compare_import_scenarios,
    compute_export_waterfall,
    compute_import_waterfall,
    export_rate_options,
    import_rate_options,
    inputs_for_record,
    origin_duty_matrix,
    parse_rate,
)


def test_import_waterfall_reference_case():
    inputs = TaxInputs(
        unit_price_usd=1000,
        fx_rate=25000,
        quantity=1,
        import_rate_pct=10,
        excise_rate_pct=5,
        vat_rate_pct=10,
    )
    result = compute_import_waterfall(inputs)
    assert result.taxable_value == pytest.approx(25_000_000)
    assert result.import_duty == pytest.approx(2_500_000)
    assert result.excise == pytest.approx(1_375_000)
    assert result.vat == pytest.approx(2_887_500)
    assert result.total_tax == pytest.approx(6_762_500)
    assert result.landed_cost == pytest.approx(31_762_500)


def test_each_tax_builds_on_the_earlier_ones():
    inputs = TaxInputs(
        unit_price_usd=12.5,
        fx_rate=25400,
        quantity=40,
        import_rate_pct=25,
        excise_rate_pct=15,
        safeguard_rate_pct=4,
        env_tax_per_unit=3000,
        vat_rate_pct=10,
    )
    r = compute_import_waterfall(inputs)
    tv = 12.5 * 40 * 25400
    assert r.taxable_value == pytest.approx(tv)
    assert r.safeguard == pytest.approx(tv * 0.04)
    assert r.excise == pytest.approx((tv + r.import_duty) * 0.15)
    assert r.environmental == pytest.approx(40 * 3000)
    assert r.vat == pytest.approx(
        (tv + r.import_duty + r.excise + r.safeguard + r.environmental) * 0.10
    )
    assert r.total_tax == pytest.approx(
        r.import_duty + r.safeguard + r.excise + r.environmental + r.vat
    )


def test_zero_rates_give_zero_tax():
    r = compute_import_waterfall(TaxInputs(unit_price_usd=99, fx_rate=25000, quantity=3))
    assert r.total_tax == 0
    assert r.landed_cost == pytest.approx(99 * 3 * 25000)


def test_export_waterfall():
    inputs = TaxInputs(
        unit_price_usd=200, fx_rate=25000, quantity=10, export_rate_pct=2, env_tax_per_unit=500
    )
    r = compute_export_waterfall(inputs)
    assert r.export_duty == pytest.approx(1_000_000)
    assert r.environmental == pytest.approx(5_000)
    assert r.total_tax == pytest.approx(1_005_000)


def test_negative_inputs_rejected():
    with pytest.raises(ValueError):
        TaxInputs(unit_price_usd=-1, fx_rate=25000)
    with pytest.raises(ValueError):
        TaxInputs(unit_price_usd=1, fx_rate=25000, vat_rate_pct=-5)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10", 10.0),
        ("10%", 10.0),
        ("5,5", 5.5),
        ("37.5", 37.5),
        (7, 7.0),
        ("Free", 0.0),
        ("", None),
        ("*", None),
        ("-", None),
        (None, None),
        (True, None),
        ("see note", None),
    ],
)
def test_parse_rate(raw, expected):
    assert parse_rate(raw) == expected


def test_import_options_follow_display_order():
    record = get_dataset("vn").get("40111000")
    options = import_rate_options(record, "en")
    assert [o.key for o in options] == ["mfn", "nk_tt", "form_e", "form_d", "cptpp", "eur1", "ukv"]
    eur1 = next(o for o in options if o.key == "eur1")
    assert eur1.label == "EVFTA"
    assert eur1.rate_pct == 10.0
    assert options[0].label == "MFN"
    assert import_rate_options(record, "vi")[0].label == "Ưu đãi (MFN)"


def test_export_options_only_when_present():
    coffee = get_dataset("vn").get("09011110")
    assert [o.key for o in export_rate_options(coffee)] == ["xk"]
    assert export_rate_options(get_dataset("vn").get("40111000")) == []


def test_compare_scenarios_swaps_import_rate():
    record = get_dataset("vn").get("40122010")
    inputs = TaxInputs(unit_price_usd=100, fx_rate=25000, vat_rate_pct=10)
    scenarios = compare_import_scenarios(inputs, import_rate_options(record))
    by_key = {option.key: waterfall for option, waterfall in scenarios}
    assert by_key["mfn"].import_duty == pytest.approx(625_000)
    assert by_key["form_e"].import_duty == pytest.approx(500_000)
    assert by_key["form_d"].import_duty == 0
    assert by_key["mfn"].vat == pytest.approx((2_500_000 + 625_000) * 0.10)


def test_inputs_for_record_prefills_rates():
    car = get_dataset("vn").get("87032359")
    inputs = inputs_for_record(car, unit_price_usd=20000, fx_rate=25000)
    assert inputs.import_rate_pct == 70
    assert inputs.excise_rate_pct == 40
    assert inputs.vat_rate_pct == 10
    assert inputs.export_rate_pct == 0
    assert inputs_for_record(car, 20000, 25000, scheme="cptpp").import_rate_pct == 35


def _matrix(slug):
    return {row.key: row for row in origin_duty_matrix(get_dataset("us").get(slug))}


def test_origin_matrix_adds_section_301_for_china():
    rows = _matrix("4011101010")
    assert list(rows) == ["vn", "cn", "mx", "in", "eu", "uk", "au", "kr", "jp", "ca", "ru"]
    assert rows["vn"].rate_pct == 4.0
    assert rows["cn"].rate_pct == 29.0
    assert rows["cn"].display == "29%"
    assert rows["cn"].penalty and rows["cn"].status == "High Tariff"

    free_line = _matrix("0301110000")
    assert free_line["cn"].rate_pct == 25.0
    assert free_line["vn"].display == "0%"


def test_origin_matrix_fta_partners_are_free_when_flagged():
    rows = _matrix("6404112010")
    for key in ("mx", "au", "kr", "ca"):
        assert rows[key].rate_pct == 0.0
        assert rows[key].preferential
    assert rows["eu"].rate_pct == 48.0
    assert not rows["eu"].preferential
    assert rows["eu"].status == "High Quality"
    assert rows["jp"].rate_pct == 48.0

    no_fta = _matrix("8517130000")
    assert not any(row.preferential or row.penalty for row in no_fta.values())
    assert {row.rate_pct for row in no_fta.values()} == {0.0}


def test_origin_matrix_keeps_compound_rates_verbatim():
    record = TariffRecord(
        code="0000.00.00.00",
        slug="0000000000",
        name_en="Specific duty line",
        rates={"mfn": "2.2¢/kg + 5%", "china_301": True, "usmca_mx": True},
        market="us",
    )
    rows = {row.key: row for row in origin_duty_matrix(record)}
    assert rows["cn"].rate_pct is None
    assert rows["cn"].display == "2.2¢/kg + 5%"
    assert rows["mx"].rate_pct == 0.0
