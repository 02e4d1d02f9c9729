"""AI-assisted normalization of raw exam text into candidate JSON.

Output is not guaranteed to be valid JSON; invalid output is handed back
as-is for the operator to fix by hand. There is no retry: a failed call
surfaces once as a CompletionError.
"""

from __future__ import annotations
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol, Tuple

import httpx

from .cache import CompletionCache, MemoryCache, derive_key
from .errors import CompletionError
from .gemini_client import GeminiClient
from .prompts import build_completion_prompt
from .settings import settings

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*")
_FENCE_CLOSE_RE = re.compile(r"```$")


def strip_code_fences(output: str) -> str:
    cleaned = _FENCE_OPEN_RE.sub("", output.strip())
    return _FENCE_CLOSE_RE.sub("", cleaned).strip()


def prettify(output: str) -> Tuple[str, bool]:
    try:
        return json.dumps(json.loads(output), indent=2, ensure_ascii=False), True
    except ValueError:
        return output, False


def extract_completion_output(data: Any) -> str:
    """Pull the text out of ``{output}``, ``{text}`` or a choice-array body."""
    output: Any = None
    if isinstance(data, dict):
        output = data.get("output") or data.get("text")
        choices = data.get("choices")
        if not output and isinstance(choices, list) and choices:
            first = choices[0] or {}
            message = first.get("message") or {}
            output = message.get("content") or first.get("text")
    if not isinstance(output, str) or not output.strip():
        raise CompletionError("AI response missing output.")
    return output


class CompletionBackend(Protocol):
    async def complete(self, prompt: str, text: str) -> str: ...


class GeminiCompletion:
    def __init__(self, client_factory: Callable[[], GeminiClient] = GeminiClient, *, json_output: bool = False) -> None:
        self._client_factory = client_factory
        self.json_output = json_output

    async def complete(self, prompt: str, text: str) -> str:
        client = self._client_factory()
        try:
            return await client.generate(build_completion_prompt(prompt, text), json_output=self.json_output)
        finally:
            await client.aclose()


class HttpCompletion:
    def __init__(self, endpoint_url: str, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        self.endpoint_url = endpoint_url
        self._transport = transport

    async def complete(self, prompt: str, text: str) -> str:
        async with httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=self._transport) as client:
            try:
                r = await client.post(self.endpoint_url, json={"prompt": prompt, "text": text})
            except httpx.RequestError as err:
                raise CompletionError(f"Completion request failed: {err}") from err
            if r.status_code >= 400:
                raise CompletionError(f"HTTP error! status: {r.status_code}")
            try:
                data = r.json()
            except ValueError as err:
                raise CompletionError("Completion endpoint returned a non-JSON body") from err
        return extract_completion_output(data)


def default_backend(json_output: bool = False) -> CompletionBackend:
    if settings.completion_endpoint_url:
        return HttpCompletion(settings.completion_endpoint_url)
    return GeminiCompletion(json_output=json_output)


@dataclass
class NormalizationResult:
    output: str
    is_json: bool
    cached: bool = False

    def as_dict(self) -> dict:
        return {"output": self.output, "is_json": self.is_json, "cached": self.cached}


class AINormalizer:
    def __init__(self, backend: Optional[CompletionBackend] = None, cache: Optional[CompletionCache] = None) -> None:
        self.backend = backend or default_backend()
        self.cache = cache if cache is not None else MemoryCache(settings.ai_cache_max_entries)

    async def normalize(self, raw_text: str, prompt: str) -> NormalizationResult:
        key = derive_key(prompt, raw_text)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info("Loaded cached AI output (%s)", key.digest[:12])
            return NormalizationResult(output=cached, is_json=prettify(cached)[1], cached=True)

        raw_output = await self.backend.complete(prompt, raw_text)
        if not isinstance(raw_output, str) or not raw_output.strip():
            raise CompletionError("AI response missing output.")
        output, is_json = prettify(strip_code_fences(raw_output))
        if not is_json:
            logger.info("AI output is not valid JSON; returning raw text for manual edit")
        self.cache.put(key, output)
        return NormalizationResult(output=output, is_json=is_json)


_shared_cache = MemoryCache(settings.ai_cache_max_entries)


def get_normalizer() -> AINormalizer:
    # One cache for the process, so repeat requests for the same input skip the call
    return AINormalizer(backend=default_backend(json_output=True), cache=_shared_cache)
