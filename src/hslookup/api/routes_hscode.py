"""Record detail, chapter browsing and PDF export."""

from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Query
from fastapi.responses import Response

from hslookup.api.errors import not_found
from hslookup.i18n import normalize_locale
from hslookup.tariff.dataset import get_dataset, slugify_code
from hslookup.tariff.models import (
    ChapterSummaryModel,
    OriginDutyModel,
    RateOptionModel,
    RecordDetailModel,
    SearchResultModel,
    TariffRecord,
)
from hslookup.tariff.pdf_export import build_record_pdf
from hslookup.tariff.tax_calculator import (
    RateOption,
    export_rate_options,
    import_rate_options,
    origin_duty_matrix,
)

router = APIRouter(prefix="/api", tags=["hs-code"])


def _option_model(option: RateOption) -> RateOptionModel:
    return RateOptionModel(key=option.key, label=option.label, raw=option.raw, rate_pct=option.rate_pct)


def _origin_duties(record: TariffRecord) -> List[OriginDutyModel]:
    return [
        OriginDutyModel(
            key=row.key,
            origin=row.origin,
            rate_pct=row.rate_pct,
            display=row.display,
            status=row.status,
            preferential=row.preferential,
            penalty=row.penalty,
        )
        for row in origin_duty_matrix(record)
    ]


def record_detail(record: TariffRecord, lang: str = "vi") -> RecordDetailModel:
    return RecordDetailModel(
        slug=record.slug,
        code=record.code,
        name_en=record.name_en,
        name_vi=record.name_vi,
        unit=record.unit,
        chapter=record.chapter,
        heading=record.heading,
        rates=dict(record.rates),
        import_options=[_option_model(o) for o in import_rate_options(record, lang)],
        export_options=[_option_model(o) for o in export_rate_options(record, lang)],
        origin_duties=_origin_duties(record) if record.market == "us" else None,
    )


def _summary(record: TariffRecord, lang: str) -> SearchResultModel:
    description = record.name_en if lang == "en" else (record.name_vi or record.name_en)
    return SearchResultModel(slug=record.slug, display_code=record.code, description=description)


@router.get("/hs-code/{slug}", response_model=RecordDetailModel)
def hs_code_detail(slug: str, lang: str = Query(default="vi")):
    record = get_dataset("vn").get(slug)
    if record is None:
        return not_found()
    return record_detail(record, normalize_locale(lang))


@router.get("/hs-code/{slug}/related")
def hs_code_related(
    slug: str,
    limit: int = Query(default=10, ge=1, le=50),
    lang: str = Query(default="vi"),
):
    dataset = get_dataset("vn")
    if dataset.get(slug) is None:
        return not_found()
    locale = normalize_locale(lang)
    related = [_summary(r, locale).model_dump(by_alias=True) for r in dataset.related(slug, limit)]
    return {"slug": slugify_code(slug), "results": related}


@router.get("/hs-code/{slug}/pdf")
def hs_code_pdf(slug: str, lang: str = Query(default="vi")):
    record = get_dataset("vn").get(slug)
    if record is None:
        return not_found()
    pdf = build_record_pdf(record, normalize_locale(lang))
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="hs-{record.slug}.pdf"'},
    )


@router.get("/chapters", response_model=List[ChapterSummaryModel])
def list_chapters() -> List[ChapterSummaryModel]:
    return [ChapterSummaryModel(chapter=ch, count=n) for ch, n in get_dataset("vn").chapters()]


@router.get("/chapter/{chapter}")
def chapter_records(chapter: str, lang: str = Query(default="vi")) -> Dict[str, Any]:
    digits = slugify_code(chapter).zfill(2)[:2]
    locale = normalize_locale(lang)
    records = get_dataset("vn").chapter(digits)
    return {
        "chapter": digits,
        "results": [_summary(r, locale).model_dump(by_alias=True) for r in records],
    }


@router.get("/us-hts/chapter/{chapter}")
def us_chapter_records(chapter: str) -> Dict[str, Any]:
    digits = slugify_code(chapter).zfill(2)[:2]
    records = get_dataset("us").chapter(digits)
    return {
        "chapter": digits,
        "results": [_summary(r, "en").model_dump(by_alias=True) for r in records],
    }


@router.get("/us-hts/{slug}", response_model=RecordDetailModel)
def us_hts_detail(slug: str):
    dataset = get_dataset("us")
    digits = slugify_code(slug)
    record = dataset.get(digits)
    if record is None and len(digits) == 8:
        record = next((r for r in dataset.by_prefix(digits) if len(r.slug) == 10), None)
    if record is None:
        return not_found()
    return record_detail(record, "en")
