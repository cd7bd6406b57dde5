from __future__ import annotations

from fastapi import APIRouter, Depends

from hslookup.api.errors import error_response
from hslookup.api.security import enforce_ai_rate_limit
from hslookup.llm.groq_client import LLMCallError, LLMUnavailableError
from hslookup.tariff.cas import lookup_cas
from hslookup.tariff.errors import InvalidInputError
from hslookup.tariff.explain import explain_code, search_assist
from hslookup.tariff.models import (
    CasLookupRequestModel,
    CasLookupResponseModel,
    ExplainRequestModel,
    SearchAssistRequestModel,
)

router = APIRouter(
    prefix="/api",
    tags=["ai"],
    dependencies=[Depends(enforce_ai_rate_limit)],
)


@router.post("/explain")
def explain_endpoint(request: ExplainRequestModel):
    try:
        text = explain_code(request.hs_code, request.name_en)
    except InvalidInputError as exc:
        return error_response(400, str(exc))
    except LLMUnavailableError as exc:
        return error_response(503, str(exc))
    except LLMCallError:
        return error_response(502, "AI service error")
    return {"text": text}


@router.post("/search-assist")
def search_assist_endpoint(request: SearchAssistRequestModel):
    try:
        keywords = search_assist(request.query)
    except InvalidInputError as exc:
        return error_response(400, str(exc), suggestions=[])
    except LLMUnavailableError as exc:
        return error_response(503, str(exc), suggestions=[])
    except LLMCallError:
        return error_response(502, "AI service error", suggestions=[])
    return {"suggestions": keywords}


@router.post("/cas-lookup", response_model=CasLookupResponseModel)
def cas_lookup_endpoint(request: CasLookupRequestModel):
    try:
        return lookup_cas(request.query)
    except InvalidInputError as exc:
        return error_response(400, str(exc), suggestions=[])
    except LLMUnavailableError as exc:
        return error_response(503, str(exc), suggestions=[])
    except LLMCallError:
        return error_response(502, "AI service error", suggestions=[])
