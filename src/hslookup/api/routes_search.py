from __future__ import annotations

from fastapi import APIRouter, Query

from hslookup.tariff.models import SearchResponseModel
from hslookup.tariff.search import search_us, search_vn

router = APIRouter(prefix="/api", tags=["search"])


@router.get("/hs-search", response_model=SearchResponseModel)
def hs_search_endpoint(
    q: str = Query(default=""),
    lang: str = Query(default="vi"),
) -> SearchResponseModel:
    return SearchResponseModel(results=search_vn(q, lang=lang))


@router.get("/us-hts-search", response_model=SearchResponseModel)
def us_hts_search_endpoint(q: str = Query(default="")) -> SearchResponseModel:
    return SearchResponseModel(results=search_us(q))
