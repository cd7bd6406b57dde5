"""LLM access (Groq) shared by suggestion, explain and search-assist."""

from hslookup.llm.groq_client import (
    GroqClient,
    LLMCallError,
    LLMUnavailableError,
    get_llm_client,
    parse_json_safe,
)

__all__ = [
    "GroqClient",
    "LLMCallError",
    "LLMUnavailableError",
    "get_llm_client",
    "parse_json_safe",
]
