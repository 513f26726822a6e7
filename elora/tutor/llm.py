"""
Elora Assistant: LLM Abstraction Layer
One request, one completion. No retries here: the only retry in the
system is the leak rewrite in enforcer.py, and it is deliberate.

The API key and generation settings are passed to the client when it is
built, so tests can hand the pipeline a fake without touching the
environment.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol

import openai
from openai import AsyncOpenAI

from elora.config import (
    OPENAI_API_KEY, LLM_MODEL, LLM_MAX_TOKENS, LLM_TEMPERATURE, LLM_TIMEOUT_SECONDS,
)
from elora.errors import scrub_secret

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    ok: bool
    status_code: int
    text: str = ""
    error_detail: str = ""
    latency_ms: int = 0
    usage: dict = field(default_factory=dict)

    @classmethod
    def failure(cls, status_code: int, detail: str, latency_ms: int = 0) -> "CompletionResult":
        return cls(ok=False, status_code=status_code, error_detail=detail, latency_ms=latency_ms)


class CompletionClient(Protocol):
    async def complete(self, messages: list[dict]) -> CompletionResult: ...


# ─── OpenAI Chat Completions ─────────────────────────────────────────────────

class OpenAICompletionClient:
    def __init__(
        self,
        api_key: str = OPENAI_API_KEY,
        model: str = LLM_MODEL,
        max_tokens: int = LLM_MAX_TOKENS,
        temperature: float = LLM_TEMPERATURE,
        timeout_seconds: float = LLM_TIMEOUT_SECONDS,
        client: Optional[AsyncOpenAI] = None,
    ):
        self._api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.timeout_seconds = timeout_seconds
        self._client = client
        if self._client is None and api_key:
            self._client = AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)

    def _safe(self, text: str) -> str:
        return scrub_secret(str(text or ""), self._api_key)

    async def complete(self, messages: list[dict]) -> CompletionResult:
        """Send one chat completion. Never raises for provider errors."""
        if self._client is None:
            return CompletionResult.failure(500, "Missing OPENAI_API_KEY")

        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature,
                ),
                timeout=self.timeout_seconds,
            )
        except (asyncio.TimeoutError, openai.APITimeoutError):
            elapsed = int((time.perf_counter() - start) * 1000)
            logger.error(f"LLM timeout after {elapsed}ms")
            return CompletionResult.failure(504, "The model took too long to respond.", elapsed)
        except openai.APIStatusError as e:
            elapsed = int((time.perf_counter() - start) * 1000)
            detail = self._safe(_provider_message(e))
            logger.error(f"LLM error {e.status_code} after {elapsed}ms: {detail}")
            return CompletionResult.failure(e.status_code, detail, elapsed)
        except openai.APIConnectionError as e:
            elapsed = int((time.perf_counter() - start) * 1000)
            detail = self._safe(e.message)
            logger.error(f"LLM connection error after {elapsed}ms: {detail}")
            return CompletionResult.failure(502, detail, elapsed)

        elapsed = int((time.perf_counter() - start) * 1000)
        content = response.choices[0].message.content if response.choices else None
        text = (content or "").strip()
        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        logger.info(f"LLM response: {elapsed}ms, {usage.get('total_tokens', 0)} tokens")
        return CompletionResult(ok=True, status_code=200, text=text, latency_ms=elapsed, usage=usage)


def _provider_message(error: "openai.APIStatusError") -> str:
    """The provider's own error message, without request metadata."""
    body = error.body
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
        if body.get("message"):
            return str(body["message"])
    return error.message or f"Model provider error ({error.status_code})"


# ─── Provider Factory ────────────────────────────────────────────────────────

_instance: Optional[OpenAICompletionClient] = None


def get_completion_client() -> OpenAICompletionClient:
    """Get the configured completion client (singleton)."""
    global _instance
    if _instance is None:
        _instance = OpenAICompletionClient()
    return _instance
