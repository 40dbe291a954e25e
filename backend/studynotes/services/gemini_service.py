"""
StudyNotes Backend — Google Gemini Generation Provider
========================================================

What:  LLMService implementation using the Google Generative AI SDK.
Why:   Alternative to OpenRouter selected with LLM_PROVIDER=gemini; the free
       tier is enough for development.
How:   One GenerativeModel per system instruction, generate_content_async with
       a request timeout, tenacity retry on server-side failures.

Failure mapping:
    google ServerError (5xx, deadline) / timeout (after retries) → UpstreamError
    other GoogleAPICallError (4xx, auth)                         → UpstreamError, no retry
    blocked or empty candidate                                   → UpstreamError
"""

import asyncio
import logging
import time
import uuid
from typing import Dict

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from studynotes.exceptions import UpstreamError
from studynotes.services import prompts
from studynotes.services.llm_base import LLMService
from studynotes.services.retry import RetryableProviderError, provider_retrying

logger = logging.getLogger(__name__)


class GeminiService(LLMService):
    """Gemini text generation; one instance per application."""

    provider_name = "gemini"

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-1.5-flash",
        timeout: float = 60.0,
        max_attempts: int = 2,
        min_wait: float = 1.0,
        max_wait: float = 5.0,
    ):
        # The SDK keeps auth in module-level state
        genai.configure(api_key=api_key)
        self.model_name = model
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        # Models are reusable; keyed by system instruction
        self._models: Dict[str, genai.GenerativeModel] = {}

        logger.info(
            "GeminiService initialized with model=%s, timeout=%.0fs, attempts=%d",
            model, timeout, max_attempts,
        )

    @classmethod
    def from_settings(cls, settings) -> "GeminiService":
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.llm_timeout,
            max_attempts=settings.retry_max_attempts,
            min_wait=settings.retry_min_wait,
            max_wait=settings.retry_max_wait,
        )

    def _model(self, system: str) -> genai.GenerativeModel:
        if system not in self._models:
            self._models[system] = genai.GenerativeModel(self.model_name, system_instruction=system)
        return self._models[system]

    async def complete(
        self,
        prompt: str,
        system: str = prompts.DEFAULT_SYSTEM,
        *,
        operation: str = "complete",
    ) -> str:
        request_id = str(uuid.uuid4())[:8]
        model = self._model(system)
        start_time = time.time()
        logger.info("[%s] %s: sending %d chars to Gemini", request_id, operation, len(prompt))

        try:
            async for attempt in provider_retrying(
                logger, self.max_attempts, self.min_wait, self.max_wait
            ):
                with attempt:
                    response = await self._call_gemini(model, prompt, request_id)
        except RetryableProviderError as e:
            logger.error(
                "[%s] %s: all %d Gemini attempts failed: %s",
                request_id, operation, self.max_attempts, str(e),
            )
            raise UpstreamError(
                provider=self.provider_name,
                status_code=e.status_code,
                context={"request_id": request_id, "operation": operation, "attempts": self.max_attempts},
            )

        try:
            # .text raises ValueError when the candidate was blocked or is empty
            text = response.text
        except ValueError as e:
            logger.error("[%s] %s: Gemini returned no usable text: %s", request_id, operation, str(e))
            raise UpstreamError(
                message="The AI service returned no usable content.",
                provider=self.provider_name,
                context={"request_id": request_id, "operation": operation},
            )

        logger.info(
            "[%s] %s completed in %.0fms, %d chars",
            request_id, operation, (time.time() - start_time) * 1000, len(text or ""),
        )
        return text or ""

    async def _call_gemini(self, model: genai.GenerativeModel, prompt: str, request_id: str):
        try:
            return await model.generate_content_async(
                prompt,
                request_options={"timeout": self.timeout},
            )
        except google_exceptions.ServerError as e:
            logger.warning("[%s] Gemini server error: %s", request_id, str(e))
            raise RetryableProviderError(str(e), status_code=getattr(e, "code", None))
        except asyncio.TimeoutError:
            logger.warning("[%s] Gemini call timed out after %.0fs", request_id, self.timeout)
            raise RetryableProviderError("timeout")
        except google_exceptions.GoogleAPICallError as e:
            logger.error("[%s] Gemini rejected the request: %s", request_id, str(e))
            raise UpstreamError(
                provider=self.provider_name,
                status_code=getattr(e, "code", None),
                context={"request_id": request_id},
            )
        except Exception as e:
            # Auth, SDK and transport errors outside GoogleAPICallError
            logger.error(
                "[%s] Gemini call failed: %s: %s", request_id, type(e).__name__, str(e), exc_info=True,
            )
            raise UpstreamError(
                provider=self.provider_name,
                context={"request_id": request_id, "error_type": type(e).__name__},
            )

    async def health_check(self) -> bool:
        """Lists models (no token cost) to verify connectivity and the API key."""
        try:
            models = await asyncio.to_thread(lambda: [m.name for m in genai.list_models()])
            target = f"models/{self.model_name}"
            if target not in models:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
