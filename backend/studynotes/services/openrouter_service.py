"""
StudyNotes Backend — OpenRouter Generation Provider
=====================================================

What:  LLMService implementation for any OpenAI-compatible chat completions
       endpoint (OpenRouter by default).
How:   POST {base_url}/chat/completions with a system + user message and
       return choices[0].message.content. httpx carries the request; tenacity
       retries transport failures and 5xx answers.

Failure mapping:
    transport error / timeout (after retries) → UpstreamError
    5xx (after retries)                       → UpstreamError
    4xx                                       → UpstreamError, no retry
    non-JSON body / missing choices           → UpstreamError
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional

import httpx

from studynotes.exceptions import UpstreamError
from studynotes.services import prompts
from studynotes.services.llm_base import LLMService
from studynotes.services.retry import RetryableProviderError, provider_retrying

logger = logging.getLogger(__name__)


class OpenRouterService(LLMService):
    """Chat-completions client; one instance per application."""

    provider_name = "openrouter"

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str = "https://openrouter.ai/api/v1",
        timeout: float = 60.0,
        max_attempts: int = 2,
        min_wait: float = 1.0,
        max_wait: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            client: Pre-built client (tests pass one with an httpx.MockTransport).
                    When omitted, the service owns its client and closes it in aclose().
        """
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

        logger.info(
            "OpenRouterService initialized with model=%s, base_url=%s, timeout=%.0fs, attempts=%d",
            model, self.base_url, timeout, max_attempts,
        )

    @classmethod
    def from_settings(cls, settings) -> "OpenRouterService":
        return cls(
            api_key=settings.openrouter_api_key,
            model=settings.llm_model,
            base_url=settings.openrouter_base_url,
            timeout=settings.llm_timeout,
            max_attempts=settings.retry_max_attempts,
            min_wait=settings.retry_min_wait,
            max_wait=settings.retry_max_wait,
        )

    @property
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    async def complete(
        self,
        prompt: str,
        system: str = prompts.DEFAULT_SYSTEM,
        *,
        operation: str = "complete",
    ) -> str:
        request_id = str(uuid.uuid4())[:8]
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        }
        start_time = time.time()
        logger.info("[%s] %s: sending %d chars to %s", request_id, operation, len(prompt), self.model)

        try:
            async for attempt in provider_retrying(
                logger, self.max_attempts, self.min_wait, self.max_wait
            ):
                with attempt:
                    response = await self._post(payload, request_id)
        except RetryableProviderError as e:
            logger.error(
                "[%s] %s: all %d attempts failed: %s",
                request_id, operation, self.max_attempts, str(e),
            )
            raise UpstreamError(
                provider=self.provider_name,
                status_code=e.status_code,
                context={"request_id": request_id, "operation": operation, "attempts": self.max_attempts},
            )

        content = self._extract_content(response, request_id, operation)
        logger.info(
            "[%s] %s completed in %.0fms, %d chars",
            request_id, operation, (time.time() - start_time) * 1000, len(content),
        )
        return content

    async def _post(self, payload: Dict[str, Any], request_id: str) -> httpx.Response:
        try:
            response = await self._client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=self._headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("[%s] OpenRouter call timed out: %s", request_id, type(e).__name__)
            raise RetryableProviderError(f"timeout: {type(e).__name__}")
        except httpx.TransportError as e:
            logger.warning("[%s] OpenRouter call failed: %s", request_id, str(e))
            raise RetryableProviderError(f"transport error: {e}")

        if response.status_code >= 500:
            logger.warning("[%s] OpenRouter answered %d", request_id, response.status_code)
            raise RetryableProviderError(
                f"provider answered {response.status_code}", status_code=response.status_code
            )
        if response.status_code >= 400:
            logger.error(
                "[%s] OpenRouter rejected the request with %d: %s",
                request_id, response.status_code, response.text[:200],
            )
            raise UpstreamError(
                provider=self.provider_name,
                status_code=response.status_code,
                context={"request_id": request_id},
            )
        return response

    def _extract_content(self, response: httpx.Response, request_id: str, operation: str) -> str:
        try:
            body = response.json()
            content = body["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            logger.error(
                "[%s] %s: malformed completion body: %s",
                request_id, operation, response.text[:200],
            )
            raise UpstreamError(
                message="The AI service returned a malformed response.",
                provider=self.provider_name,
                status_code=response.status_code,
                context={"request_id": request_id, "operation": operation},
            )
        if not isinstance(content, str):
            raise UpstreamError(
                message="The AI service returned a malformed response.",
                provider=self.provider_name,
                context={"request_id": request_id, "operation": operation},
            )
        return content

    async def health_check(self) -> bool:
        """Lists models (no token cost) to verify connectivity and the API key."""
        try:
            response = await self._client.get(
                f"{self.base_url}/models", headers=self._headers, timeout=10.0
            )
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning("OpenRouter health check failed: %s", str(e))
            return False

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
