from __future__ import annotations
import base64
import logging
import httpx
from typing import Any, Dict, List, Optional, Sequence
from .errors import ConfigurationError, OracleError
from .schemas import ImageBlob
from .settings import settings

logger = logging.getLogger(__name__)


def image_part(image: ImageBlob) -> Dict[str, Any]:
	return {"inline_data": {"mime_type": image.media_type, "data": base64.b64encode(image.data).decode("ascii")}}


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
			raise ConfigurationError("GEMINI_API_KEY is not configured", step="oracle")
		self.model = model or settings.gemini_model
		self.provider = settings.gemini_provider
		if self.provider == "vertex":
			region = settings.vertex_region
			project = settings.vertex_project or "placeholder-project"
			# Vertex AI Generative REST endpoint (API key via header)
			self.base_url = base_url or (
				f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/publishers/google/models/{self.model}:generateContent"
			)
			self._auth_in_query = False
		else:
			# Google AI Studio (Generative Language API)
			self.base_url = base_url or f"https://generativelanguage.googleapis.com/v1beta/models/{self.model}:generateContent"
			self._auth_in_query = True
		timeout = settings.oracle_timeout_seconds
		self._client = httpx.AsyncClient(timeout=timeout, transport=transport)
		self._fallback_client: Optional[httpx.AsyncClient] = None
		self._fallback_enabled = bool(settings.openrouter_api_key)
		self._openrouter_api_key = settings.openrouter_api_key
		self._openrouter_model = settings.openrouter_model
		self._openrouter_base_url = settings.openrouter_base_url
		self._openrouter_headers = {
			"Authorization": f"Bearer {self._openrouter_api_key}" if self._openrouter_api_key else "",
			"Content-Type": "application/json",
			"HTTP-Referer": settings.openrouter_referer,
			"X-Title": settings.openrouter_title,
		}
		if self._fallback_enabled:
			self._fallback_client = httpx.AsyncClient(timeout=timeout, transport=transport)

	async def generate(self, prompt: str) -> str:
		payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
		return await self._post_payload(payload, fallback_prompt=prompt)

	async def generate_with_images(self, prompt: str, images: Sequence[ImageBlob]) -> str:
		# Images first, instructions last
		parts: List[Dict[str, Any]] = [image_part(img) for img in images]
		parts.append({"text": prompt})
		payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": parts}]}
		# The fallback route is text-only, so it cannot stand in for a vision call
		return await self._post_payload(payload, fallback_prompt=None, allow_fallback=False)

	async def _post_payload(
		self,
		payload: Dict[str, Any],
		*,
		fallback_prompt: Optional[str],
		allow_fallback: bool = True,
	) -> str:
		params: Dict[str, Any] = {}
		headers: Dict[str, str] = {}
		if self._auth_in_query:
			params["key"] = self.api_key
		else:
			headers["x-goog-api-key"] = self.api_key
		last_error: Optional[OracleError] = None
		r: Optional[httpx.Response] = None
		try:
			r = await self._client.post(self.base_url, params=params, headers=headers, json=payload)
			r.raise_for_status()
		except httpx.HTTPStatusError as http_err:
			logger.warning("Gemini returned HTTP %s", http_err.response.status_code)
			last_error = OracleError(
				f"Scoring service rejected the request (HTTP {http_err.response.status_code})",
				unreachable=True,
			)
		except httpx.RequestError as net_err:
			logger.warning("Gemini request failed: %s", net_err)
			last_error = OracleError(f"Scoring service unreachable: {net_err}", unreachable=True)
		if last_error is None and r is not None:
			try:
				data = r.json()
				return data["candidates"][0]["content"]["parts"][0]["text"]
			except (ValueError, KeyError, IndexError, TypeError):
				last_error = OracleError("Scoring service returned an unexpected response envelope")
		if not allow_fallback or not self._fallback_enabled or fallback_prompt is None:
			raise last_error or OracleError("Scoring call failed")
		return await self._fallback_generate(fallback_prompt, last_error)

	async def aclose(self) -> None:
		await self._client.aclose()
		if self._fallback_client is not None:
			await self._fallback_client.aclose()

	async def _fallback_generate(self, prompt: str, primary_error: Optional[OracleError]) -> str:
		if not self._fallback_client or not self._openrouter_api_key:
			raise primary_error or OracleError("Fallback requested but OpenRouter is not configured")
		logger.info("Falling back to OpenRouter model %s", self._openrouter_model)
		headers = {k: v for k, v in self._openrouter_headers.items() if v}
		payload: Dict[str, Any] = {
			"model": self._openrouter_model,
			"messages": [{"role": "user", "content": prompt}],
		}
		try:
			r = await self._fallback_client.post(
				self._openrouter_base_url,
				headers=headers,
				json=payload,
			)
			r.raise_for_status()
			data = r.json()
			return data["choices"][0]["message"]["content"]
		except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as fallback_err:
			raise OracleError(
				f"Gemini primary call failed ({primary_error}); fallback via OpenRouter also failed",
				unreachable=isinstance(fallback_err, httpx.HTTPError),
			) from fallback_err
