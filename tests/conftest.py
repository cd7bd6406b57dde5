"""Shared fixtures: isolated environment, fresh caches and a fake Groq client."""

from types import SimpleNamespace
from typing import Any, Dict, Iterator, List

import pytest
from fastapi.testclient import TestClient

from hslookup.api.security import set_rate_limit
from hslookup.caching.redis_client import reset_redis_client
from hslookup.llm.groq_client import GroqClient
from hslookup.tariff.dataset import reset_caches

_ENV_VARS = (
    "GROQ_API_KEY",
    "GROQ_MODEL",
    "GROQ_VISION_MODEL",
    "HSLOOKUP_DATA_DIR",
    "HSLOOKUP_VN_DATA_FILE",
    "HSLOOKUP_US_DATA_FILE",
    "HSLOOKUP_AI_REFINE",
    "HSLOOKUP_AI_HEADINGS",
    "HSLOOKUP_FUZZY_CUTOFF",
    "HSLOOKUP_SITE_URL",
    "HSLOOKUP_SITEMAP_PAGE_SIZE",
    "HSLOOKUP_FX_URL",
    "REDIS_URL",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HSLOOKUP_REDIS_CACHE", "false")
    set_rate_limit(1000)
    reset_caches()
    reset_redis_client()
    yield
    reset_caches()
    reset_redis_client()


class FakeCompletions:
    """Stands in for ``Groq().chat.completions``; replies are consumed in order."""

    def __init__(self) -> None:
        self.replies: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeGroq:
    def __init__(self) -> None:
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)

    def queue(self, *replies: Any) -> None:
        self.completions.replies.extend(replies)

    @property
    def calls(self) -> List[Dict[str, Any]]:
        return self.completions.calls


@pytest.fixture()
def client() -> Iterator[TestClient]:
    from hslookup.api.app import app

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def fake_groq() -> FakeGroq:
    return FakeGroq()


@pytest.fixture()
def llm(monkeypatch, fake_groq) -> GroqClient:
    """Route every feature's ``get_llm_client`` to a client backed by ``fake_groq``."""

    import hslookup.tariff.cas as cas_mod
    import hslookup.tariff.explain as explain_mod
    import hslookup.tariff.suggest as suggest_mod

    client = GroqClient(
        api_key="gsk_test_key",
        model="test-model",
        vision_model="test-vision",
        client=fake_groq,
    )
    monkeypatch.setattr(suggest_mod, "get_llm_client", lambda: client)
    monkeypatch.setattr(explain_mod, "get_llm_client", lambda: client)
    monkeypatch.setattr(cas_mod, "get_llm_client", lambda: client)
    return client
