from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, Optional, Tuple
from .errors import CompletionError
from .settings import settings

logger = logging.getLogger(__name__)

AI_STUDIO_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
VERTEX_URL = (
	"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}"
	"/publishers/google/models/{model}:generateContent"
)


def resolve_endpoint(model: str, provider: Optional[str] = None) -> Tuple[str, bool]:
	"""Return the generateContent URL and whether the key goes in the query string."""
	provider = provider or settings.gemini_provider
	if provider == "vertex":
		# Vertex AI Express takes the API key as a header
		project = settings.vertex_project or "placeholder-project"
		return VERTEX_URL.format(region=settings.vertex_region, project=project, model=model), False
	return AI_STUDIO_URL.format(model=model), True


def candidate_text(data: Dict[str, Any]) -> str:
	feedback = data.get("promptFeedback") or {}
	if feedback.get("blockReason"):
		raise CompletionError(f"Gemini blocked the prompt: {feedback['blockReason']}")
	try:
		parts = data["candidates"][0]["content"]["parts"]
	except (KeyError, IndexError, TypeError):
		raise CompletionError("Gemini response missing text output")
	text = "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()
	if not text:
		raise CompletionError("Gemini response missing text output")
	return text


class GeminiClient:
	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key or settings.gemini_api_key
		if not self.api_key:
			raise CompletionError("GEMINI_API_KEY is not configured")
		self.model = model or settings.gemini_model
		url, self._key_in_query = resolve_endpoint(self.model)
		self.base_url = base_url or url
		self._client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)
		# OpenRouter takes over when Gemini errors and a key is configured
		self._fallback: Optional[httpx.AsyncClient] = None
		if settings.openrouter_api_key:
			self._fallback = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds, transport=transport)

	async def generate(self, prompt: str, *, json_output: bool = False) -> str:
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
		if json_output:
			payload["generationConfig"] = {"responseMimeType": "application/json"}
		params = {"key": self.api_key} if self._key_in_query else {}
		headers = {} if self._key_in_query else {"x-goog-api-key": self.api_key}
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
			return candidate_text(r.json())
		except httpx.HTTPStatusError as http_err:
			error = CompletionError(f"Gemini returned HTTP {http_err.response.status_code}")
		except httpx.RequestError as net_err:
			error = CompletionError(f"Gemini request failed: {net_err}")
		except ValueError:
			error = CompletionError("Gemini returned a non-JSON body")
		except CompletionError as bad_output:
			error = bad_output
		if self._fallback is None:
			raise error
		logger.warning("Gemini call failed (%s); trying OpenRouter fallback", error)
		return await self._openrouter_generate(prompt, error)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback is not None:
			await self._fallback.aclose()

	async def _openrouter_generate(self, prompt: str, primary_error: CompletionError) -> str:
		headers = {
			"Authorization": f"Bearer {settings.openrouter_api_key}",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		payload = {
			"model": settings.openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		try:
			r = await self._fallback.post(settings.openrouter_base_url, headers=headers, json=payload)
			r.raise_for_status()
			return r.json()["choices"][0]["message"]["content"]
		except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as fallback_err:
			raise CompletionError(
				f"{primary_error}; fallback via OpenRouter also failed"
			) from fallback_err
