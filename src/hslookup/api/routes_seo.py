from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response

from hslookup.api.errors import error_response
from hslookup.sitemap import sitemap_index_xml, sitemap_page_xml

router = APIRouter(tags=["seo"])

_XML = "application/xml"


@router.get("/sitemap.xml", include_in_schema=False)
def sitemap_index() -> Response:
    return Response(content=sitemap_index_xml(), media_type=_XML)


@router.get("/sitemap/{page}.xml", include_in_schema=False)
def sitemap_page(page: int):
    try:
        body = sitemap_page_xml(page)
    except IndexError:
        return error_response(404, "Sitemap page not found")
    return Response(content=body, media_type=_XML)
