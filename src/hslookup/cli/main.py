"""Command-line interface for hs-lookup."""

from __future__ import annotations

import json
from dataclasses import asdict

import click

from ..llm.groq_client import LLMCallError, LLMUnavailableError
from ..tariff.dataset import get_dataset
from ..tariff.errors import InvalidInputError
from ..tariff.search import search_us, search_vn
from ..tariff.suggest import suggest_codes
from ..tariff.tax_calculator import (
    TaxInputs,
    compute_export_waterfall,
    compute_import_waterfall,
    export_rate_options,
    import_rate_options,
    origin_duty_matrix,
)


def _echo_json(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@click.group()
def cli() -> None:
    """hs-lookup command suite."""


@cli.command("suggest")
@click.argument("text")
@click.option("--us", "us_market", is_flag=True, help="Use the US HTS dataset.")
@click.option("--no-ai", is_flag=True, help="Skip every LLM call.")
def suggest(text: str, us_market: bool, no_ai: bool) -> None:
    """Suggest tariff codes for a product description."""

    try:
        result = suggest_codes(text, market="us" if us_market else "vn", use_ai=not no_ai)
    except (InvalidInputError, LLMUnavailableError, LLMCallError) as exc:
        raise click.ClickException(str(exc)) from exc
    _echo_json(result.model_dump(by_alias=True, exclude_none=True))


@cli.command("search")
@click.argument("query")
@click.option("--us", "us_market", is_flag=True, help="Use the US HTS dataset.")
@click.option("--lang", default="vi", show_default=True, type=click.Choice(["vi", "en"]))
def search(query: str, us_market: bool, lang: str) -> None:
    """Search codes the way the search box does."""

    results = search_us(query) if us_market else search_vn(query, lang=lang)
    _echo_json([r.model_dump(by_alias=True) for r in results])


@cli.command("tax")
@click.option("--price", "unit_price_usd", type=float, required=True, help="Unit price in USD.")
@click.option("--fx", "fx_rate", type=float, default=25000.0, show_default=True, help="VND per USD.")
@click.option("--qty", "quantity", type=float, default=1.0, show_default=True)
@click.option("--import-rate", "import_rate_pct", type=float, default=0.0, show_default=True)
@click.option("--excise", "excise_rate_pct", type=float, default=0.0, show_default=True)
@click.option("--safeguard", "safeguard_rate_pct", type=float, default=0.0, show_default=True)
@click.option("--env", "env_tax_per_unit", type=float, default=0.0, show_default=True, help="VND per unit.")
@click.option("--vat", "vat_rate_pct", type=float, default=0.0, show_default=True)
@click.option("--export-rate", "export_rate_pct", type=float, default=0.0, show_default=True)
def tax(**kwargs: float) -> None:
    """Print the import and export waterfalls."""

    try:
        inputs = TaxInputs(**kwargs)
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
    _echo_json(
        {
            "import": asdict(compute_import_waterfall(inputs)),
            "export": asdict(compute_export_waterfall(inputs)),
        }
    )


@cli.command("show")
@click.argument("slug")
@click.option("--us", "us_market", is_flag=True, help="Use the US HTS dataset.")
@click.option("--lang", default="vi", show_default=True, type=click.Choice(["vi", "en"]))
def show(slug: str, us_market: bool, lang: str) -> None:
    """Print one record with its rate options."""

    record = get_dataset("us" if us_market else "vn").get(slug)
    if record is None:
        raise click.ClickException(f"HS code not found: {slug}")
    payload = {
        "code": record.code,
        "slug": record.slug,
        "name_en": record.name_en,
        "name_vi": record.name_vi,
        "unit": record.unit,
        "rates": record.rates,
        "import_options": [asdict(o) for o in import_rate_options(record, lang)],
        "export_options": [asdict(o) for o in export_rate_options(record, lang)],
    }
    if us_market:
        payload["origin_duties"] = [asdict(row) for row in origin_duty_matrix(record)]
    _echo_json(payload)


@cli.command("serve")
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
def serve(host: str, port: int) -> None:
    """Run the HTTP API with uvicorn."""

    import uvicorn

    uvicorn.run("hslookup.api.app:app", host=host, port=port)


if __name__ == "__main__":
    cli()
