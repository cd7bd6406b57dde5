"""Request-scoped observability helpers for hs-lookup.

Each HTTP request binds a run id (see ``hslookup.api.app``); every log record
emitted while serving it carries that id so a suggestion, its LLM calls and
its fallbacks can be correlated.
"""

from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar
from typing import Optional

from hslookup import config

logger = logging.getLogger(__name__)

_run_id_ctx: ContextVar[Optional[str]] = ContextVar("hslookup_run_id", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(run_id)s] %(name)s: %(message)s"


def new_run_id() -> str:
    return uuid.uuid4().hex


def bind_run_id(value: Optional[str]) -> ContextVar.Token | None:
    """Bind ``value`` for the current context and return the reset token."""

    if value is None:
        return None
    return _run_id_ctx.set(value)


def reset_run_id(token: Optional[ContextVar.Token]) -> None:
    if token is None:
        return
    _run_id_ctx.reset(token)


def current_run_id() -> Optional[str]:
    return _run_id_ctx.get()


class RunIdFilter(logging.Filter):
    """Stamp ``record.run_id`` so formatters can print it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "run_id", None):
            record.run_id = current_run_id() or "-"
        return True


def configure_logging(level: Optional[str] = None) -> None:
    """Install a stream handler with run-id aware formatting once per process."""

    root = logging.getLogger("hslookup")
    if any(isinstance(f, RunIdFilter) for h in root.handlers for f in h.filters):
        return
    handler = logging.StreamHandler()
    handler.addFilter(RunIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel((level or config.log_level()).upper())


def redact_api_key(raw: Optional[str]) -> str:
    """Keep the Groq key prefix (``gsk_``) and mask the rest."""

    if not raw:
        return "<missing>"
    return "***" if len(raw) <= 3 else raw[:4] + "***"


def client_ip(forwarded_for: Optional[str], peer: Optional[str]) -> str:
    """First hop of ``X-Forwarded-For`` when present, else the socket peer."""

    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    return peer or "unknown"


def log_event(event: str, level: int = logging.INFO, **fields: object) -> None:
    """Emit ``event key=value ...`` tagged with the bound run id."""

    if not logger.isEnabledFor(level):
        return
    rendered = " ".join(f"{k}={v!r}" for k, v in sorted(fields.items()))
    logger.log(level, "%s %s", event, rendered, extra={"run_id": current_run_id() or "-", "fields": fields})
