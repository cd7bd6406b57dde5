from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import ValidationError

from hslookup import config
from hslookup.api.errors import error_response
from hslookup.api.routes_assist import router as assist_router
from hslookup.api.routes_hscode import router as hscode_router
from hslookup.api.routes_search import router as search_router
from hslookup.api.routes_seo import router as seo_router
from hslookup.api.routes_suggest import router as suggest_router
from hslookup.api.routes_tax import router as tax_router
from hslookup.i18n import get_locale_strings, is_locale, locale_from_accept_language
from hslookup.observability import (
    bind_run_id,
    configure_logging,
    log_event,
    new_run_id,
    redact_api_key,
    reset_run_id,
)
from hslookup.tariff.dataset import get_dataset
from hslookup.version import __version__

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    for market in ("vn", "us"):
        try:
            get_dataset(market)
        except (OSError, ValueError):
            logger.exception("Failed to preload %s dataset", market)
    key = config.groq_api_key()
    logger.info("AI features %s (key=%s)", "enabled" if key else "disabled", redact_api_key(key))
    yield


app = FastAPI(title="hs-lookup API", version=__version__, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(suggest_router)
app.include_router(search_router)
app.include_router(hscode_router)
app.include_router(tax_router)
app.include_router(assist_router)
app.include_router(seo_router)


@app.middleware("http")
async def attach_run_id(request: Request, call_next):
    run_id = request.headers.get("X-Run-ID") or new_run_id()
    token = bind_run_id(run_id)
    started = time.perf_counter()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        response.headers["X-Run-ID"] = run_id
        return response
    finally:
        log_event(
            "request",
            method=request.method,
            path=request.url.path,
            status=status,
            ms=round((time.perf_counter() - started) * 1000, 1),
        )
        reset_run_id(token)


_SENSITIVE_WORDS = ("key", "token", "secret")


def _field_message(err: Dict[str, Any]) -> str:
    msg = err.get("msg") or "Invalid request"
    prefix = "value error, "
    if msg.lower().startswith(prefix):
        msg = msg[len(prefix):]
    if any(word in msg.lower() for word in _SENSITIVE_WORDS):
        return "Invalid request payload"
    return msg


def _validation_payload(errors: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Flatten pydantic errors into ``{"path": "request.<field>", "message": ...}`` rows."""

    fields = []
    for err in errors:
        parts = [str(p) for p in err.get("loc", ()) if p != "body"]
        fields.append({"path": ".".join(["request", *parts]), "message": _field_message(err)})
    return {"error": "VALIDATION_ERROR", "fields": fields}


@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def handle_validation_error(request: Request, exc: Exception):
    return JSONResponse(status_code=422, content=_validation_payload(exc.errors()))


@app.get("/health")
def health() -> Dict[str, Any]:
    return {
        "ok": True,
        "status": "ok",
        "version": __version__,
        "records": {"vn": len(get_dataset("vn")), "us": len(get_dataset("us"))},
        "ai": bool(config.groq_api_key()),
    }


@app.get("/", include_in_schema=False)
def root_redirect(request: Request) -> RedirectResponse:
    """Redirect to the visitor's locale home."""
    locale = locale_from_accept_language(request.headers.get("accept-language"))
    return RedirectResponse(url=f"/{locale}", status_code=307)


@app.get("/{locale}")
def locale_home(locale: str):
    if not is_locale(locale):
        return error_response(404, "Unknown locale")
    return {"locale": locale, "strings": get_locale_strings(locale)}
