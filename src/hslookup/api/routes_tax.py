from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

from fastapi import APIRouter

from hslookup.api.errors import not_found
from hslookup.tariff.dataset import get_dataset
from hslookup.tariff.fx import get_usd_vnd_rate
from hslookup.tariff.models import FxRateModel, TaxCalculateRequestModel
from hslookup.tariff.tax_calculator import (
    TaxInputs,
    compare_import_scenarios,
    compute_export_waterfall,
    compute_import_waterfall,
    import_rate_options,
)

router = APIRouter(prefix="/api", tags=["tax"])


@router.post("/tax/calculate")
def calculate_tax(request: TaxCalculateRequestModel):
    fx_rate = request.fx_rate
    fx_source = "request"
    if fx_rate is None:
        quote = get_usd_vnd_rate()
        fx_rate, fx_source = quote.rate, quote.source

    inputs = TaxInputs(
        unit_price_usd=request.unit_price_usd,
        fx_rate=fx_rate,
        quantity=request.quantity,
        import_rate_pct=request.import_rate_pct,
        excise_rate_pct=request.excise_rate_pct,
        safeguard_rate_pct=request.safeguard_rate_pct,
        env_tax_per_unit=request.env_tax_per_unit,
        vat_rate_pct=request.vat_rate_pct,
        export_rate_pct=request.export_rate_pct,
    )
    payload: Dict[str, Any] = {
        "fx_rate": fx_rate,
        "fx_source": fx_source,
        "import": asdict(compute_import_waterfall(inputs)),
        "export": asdict(compute_export_waterfall(inputs)),
    }

    if request.slug:
        record = get_dataset("vn").get(request.slug)
        if record is None:
            return not_found()
        payload["scenarios"] = [
            {"scheme": asdict(option), "import": asdict(waterfall)}
            for option, waterfall in compare_import_scenarios(
                inputs, import_rate_options(record, request.lang)
            )
        ]
    return payload


@router.get("/fx-rate", response_model=FxRateModel)
def fx_rate() -> FxRateModel:
    quote = get_usd_vnd_rate()
    return FxRateModel(base=quote.base, quote=quote.quote, rate=quote.rate, source=quote.source)
