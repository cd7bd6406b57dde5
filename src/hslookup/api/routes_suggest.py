from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from hslookup.api.errors import error_response
from hslookup.api.security import enforce_ai_rate_limit
from hslookup.llm.groq_client import LLMCallError, LLMUnavailableError
from hslookup.tariff.errors import InvalidInputError
from hslookup.tariff.models import SuggestRequestModel, SuggestResponseModel
from hslookup.tariff.suggest import suggest_codes

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["suggest"],
    dependencies=[Depends(enforce_ai_rate_limit)],
)


def _suggest(request: SuggestRequestModel, market: str) -> SuggestResponseModel | JSONResponse:
    try:
        return suggest_codes(request.description, request.image_data_url, market)
    except InvalidInputError as exc:
        return error_response(400, str(exc), suggestions=[])
    except LLMUnavailableError as exc:
        return error_response(503, str(exc), suggestions=[])
    except LLMCallError:
        logger.warning("Vision model call failed for %s suggestion", market)
        return error_response(502, "Vision model error", suggestions=[])


@router.post("/hs-suggest", response_model=SuggestResponseModel)
def hs_suggest_endpoint(request: SuggestRequestModel):
    return _suggest(request, "vn")


@router.post("/us-hts-suggest", response_model=SuggestResponseModel)
def us_hts_suggest_endpoint(request: SuggestRequestModel):
    return _suggest(request, "us")
