"""Thin wrapper around the Groq chat-completions API.

The wrapper owns three things: configuration (key, text model, vision model,
timeout), error translation into :class:`LLMUnavailableError` /
:class:`LLMCallError`, and tolerant JSON extraction from model replies.
Prompting lives with the features that use it.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

from groq import Groq

from hslookup import config
from hslookup.observability import redact_api_key

logger = logging.getLogger(__name__)

DESCRIBE_IMAGE_PROMPT = (
    "Describe the product in this image in under 30 words. "
    "Include type, material, and use. Mention if it is a costume, inflatable, or wearable."
)

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)


class LLMUnavailableError(RuntimeError):
    """No API key or model is configured for the requested feature."""


class LLMCallError(RuntimeError):
    """The upstream call failed or returned nothing usable."""


def parse_json_safe(value: str) -> Any:
    """Parse a model reply as JSON, tolerating fences and surrounding prose.

    Tries, in order: the whole reply, the first fenced block, then the span
    from the first ``{`` to the last ``}``. Returns ``{}`` when nothing parses.
    """

    text = (value or "").strip()
    if not text:
        return {}
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass
    fenced = _FENCED_JSON.search(text)
    if fenced:
        try:
            return json.loads(fenced.group(1))
        except json.JSONDecodeError:
            return {}
    for opener, closer in (("{", "}"), ("[", "]")):
        start = text.find(opener)
        end = text.rfind(closer)
        if start != -1 and end > start:
            try:
                return json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                continue
    return {}


class GroqClient:
    """Chat-completions client bound to the configured Groq models."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        vision_model: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Any = None,
    ) -> None:
        self.api_key = api_key or config.groq_api_key()
        if not self.api_key and client is None:
            raise LLMUnavailableError("GROQ_API_KEY is not configured")
        self.model = model or config.groq_model()
        self.vision_model = vision_model if vision_model is not None else config.groq_vision_model()
        self.timeout = timeout if timeout is not None else config.llm_timeout()
        self._client = client or Groq(api_key=self.api_key, timeout=self.timeout)

    @property
    def has_vision(self) -> bool:
        return bool(self.vision_model)

    def complete(
        self,
        messages: List[Dict[str, Any]],
        *,
        model: Optional[str] = None,
        temperature: float = 0.2,
        max_tokens: int = 400,
    ) -> str:
        """Run one chat completion and return the stripped reply text."""
        target = model or self.model
        try:
            completion = self._client.chat.completions.create(
                model=target,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except Exception as exc:
            logger.warning(
                "Groq call failed (model=%s, key=%s): %s",
                target,
                redact_api_key(self.api_key),
                exc,
            )
            raise LLMCallError(str(exc)) from exc
        try:
            content = completion.choices[0].message.content
        except (AttributeError, IndexError) as exc:
            raise LLMCallError("Malformed completion payload") from exc
        return (content or "").strip()

    def describe_image(self, image_data_url: str) -> str:
        """Short caption of a product image, used as extra query text."""
        if not self.vision_model:
            raise LLMUnavailableError("GROQ_VISION_MODEL is not configured")
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": DESCRIBE_IMAGE_PROMPT},
                    {"type": "image_url", "image_url": {"url": image_data_url}},
                ],
            }
        ]
        return self.complete(messages, model=self.vision_model, temperature=0.2, max_tokens=120)


def get_llm_client() -> Optional[GroqClient]:
    """A client for the configured key, or ``None`` when AI is not set up."""

    if not config.groq_api_key():
        return None
    return GroqClient()
