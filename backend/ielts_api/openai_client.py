from __future__ import annotations
import logging
import httpx
from typing import Any, Dict, List, Optional
from .errors import UpstreamError
from .settings import settings

logger = logging.getLogger(__name__)


class OpenAIClient:
	"""Thin async wrapper over the OpenAI chat-completion and transcription endpoints."""

	def __init__(
		self,
		api_key: Optional[str] = None,
		*,
		base_url: Optional[str] = None,
		model: Optional[str] = None,
		transcribe_model: Optional[str] = None,
		timeout: Optional[float] = None,
		transport: Optional[httpx.AsyncBaseTransport] = None,
	) -> None:
		self.api_key = api_key if api_key is not None else (settings.openai_api_key or "")
		self.base_url = (base_url or settings.openai_base_url).rstrip("/")
		self.model = model or settings.openai_model
		self.transcribe_model = transcribe_model or settings.openai_transcribe_model
		self.temperature = settings.openai_temperature
		self.max_tokens = settings.openai_max_tokens
		self._client = httpx.AsyncClient(
			timeout=timeout if timeout is not None else settings.openai_timeout_seconds,
			transport=transport,
		)

	def _auth_headers(self) -> Dict[str, str]:
		return {"Authorization": f"Bearer {self.api_key}"}

	async def chat(
		self,
		messages: List[Dict[str, str]],
		*,
		temperature: Optional[float] = None,
		max_tokens: Optional[int] = None,
	) -> str:
		payload: Dict[str, Any] = {
			"model": self.model,
			"messages": messages,
			"temperature": self.temperature if temperature is None else temperature,
			"max_tokens": self.max_tokens if max_tokens is None else max_tokens,
		}
		try:
			r = await self._client.post(
				f"{self.base_url}/chat/completions",
				headers=self._auth_headers(),
				json=payload,
			)
		except httpx.RequestError as net_err:
			raise UpstreamError(f"OpenAI chat error: {net_err}") from net_err
		if r.is_error:
			raise UpstreamError(f"OpenAI chat error: {r.status_code} {r.text}")
		try:
			data = r.json()
			choices = data.get("choices") or []
			if not choices:
				return ""
			return (choices[0].get("message") or {}).get("content") or ""
		except Exception as err:
			raise UpstreamError(f"Unexpected OpenAI chat response: {r.text}") from err

	async def transcribe(self, audio: bytes, *, filename: str = "upload.wav", content_type: str = "application/octet-stream") -> str:
		files = {"file": (filename, audio, content_type)}
		data = {"model": self.transcribe_model}
		try:
			r = await self._client.post(
				f"{self.base_url}/audio/transcriptions",
				headers=self._auth_headers(),
				files=files,
				data=data,
			)
		except httpx.RequestError as net_err:
			raise UpstreamError(f"Transcription failed: {net_err}") from net_err
		if r.is_error:
			raise UpstreamError(f"Transcription failed: {r.text}")
		try:
			return r.json().get("text") or ""
		except Exception as err:
			raise UpstreamError(f"Unexpected transcription response: {r.text}") from err

	async def aclose(self) -> None:
		await self._client.aclose()
