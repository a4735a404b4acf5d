# app/services/llm_client.py
import asyncio
import logging
from typing import AsyncIterator, Dict, List, Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}

RATE_LIMITED = "Rate limit exceeded. Please retry in a few seconds."
UNAVAILABLE = "AI service unavailable. Please try again."


class UpstreamError(Exception):
    """Remote model unreachable, rate-limited, non-2xx or not configured."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


class LLMClient:
    """
    Streams chat completions from an OpenRouter-compatible endpoint.

    Models are tried in order (never looping back). Per model, 429/5xx and
    network errors are retried with exponential backoff; other 4xx move on to
    the next model. Once bytes have been handed to the caller nothing is retried.
    """

    def __init__(self, api_key: Optional[str] = None, models: Optional[List[str]] = None):
        self._api_key = api_key
        self._models = models

    @property
    def api_key(self) -> Optional[str]:
        return self._api_key or settings.OPENROUTER_API_KEY

    @property
    def models(self) -> List[str]:
        return self._models or settings.LLM_MODELS

    def _timeout(self) -> httpx.Timeout:
        seconds = settings.LLM_TIMEOUT_SECONDS
        return httpx.Timeout(timeout=seconds, connect=5.0, read=seconds, write=seconds)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": "https://nidhisaarthi.ai",
            "X-Title": settings.APP_NAME,
        }

    def _payload(self, model: str, messages: List[Dict[str, str]]) -> Dict:
        return {
            "model": model,
            "messages": messages,
            "stream": True,
            "temperature": settings.LLM_TEMPERATURE,
            "max_tokens": settings.LLM_MAX_TOKENS,
        }

    async def stream_completion(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        if not self.api_key:
            logger.warning("OpenRouter API key not configured")
            raise UpstreamError("AI service is not configured", status_code=503)

        attempts = 1 + max(0, settings.LLM_MAX_RETRIES)
        last_status: Optional[int] = None

        async with httpx.AsyncClient(timeout=self._timeout()) as client:
            for model in self.models:
                for attempt in range(attempts):
                    if attempt:
                        await asyncio.sleep(settings.LLM_BACKOFF_SECONDS * 2 ** (attempt - 1))

                    streamed = False
                    try:
                        async with client.stream(
                            "POST",
                            settings.LLM_API_URL,
                            headers=self._headers(),
                            json=self._payload(model, messages),
                        ) as resp:
                            if resp.status_code != 200:
                                body = await resp.aread()
                                logger.info(
                                    "openrouter: model=%s status=%s body_snippet=%s",
                                    model,
                                    resp.status_code,
                                    body.decode("utf-8", errors="replace")[:300],
                                )
                                last_status = resp.status_code
                                if resp.status_code in RETRYABLE_STATUS:
                                    continue
                                break

                            logger.info("openrouter: model=%s status=200 attempt=%s streaming", model, attempt + 1)
                            async for chunk in resp.aiter_text():
                                streamed = True
                                yield chunk
                            return

                    except httpx.TransportError as exc:
                        if streamed:
                            logger.warning("stream from model %s interrupted: %s", model, exc)
                            raise UpstreamError("AI stream interrupted. Please try again.") from exc
                        logger.warning("network error calling model %s: %s", model, exc)
                        last_status = None
                        continue

        # 🔴 Only reached if ALL models failed
        logger.error("all models failed; last_status=%s", last_status)
        if last_status == 429:
            raise UpstreamError(RATE_LIMITED, status_code=429)
        raise UpstreamError(UNAVAILABLE, status_code=502)
