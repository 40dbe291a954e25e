"""
StudyNotes Backend — Text-to-Speech Provider
==============================================

What:  SpeechService contract and the ElevenLabs implementation.
How:   POST {base_url}/text-to-speech/{voice_id} with the text and fixed voice
       settings; the response body is the audio/mpeg stream.
Who:   POST /api/tts.

Speech is a separate provider from text generation and is configured with
its own key, base URL and timeout.
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from studynotes.exceptions import UpstreamError, ValidationError
from studynotes.services.retry import RetryableProviderError, provider_retrying

logger = logging.getLogger(__name__)

AUDIO_MIME_TYPE = "audio/mpeg"


class SpeechService(ABC):
    """Abstract interface for speech synthesis."""

    provider_name: str = "speech"

    async def synthesize(self, text: str) -> bytes:
        """
        Convert text to audio.

        Returns:
            MP3 bytes (served as audio/mpeg).

        Raises:
            ValidationError: Empty text
            UpstreamError:   Provider unreachable, non-2xx, or empty audio
        """
        if text is None or not text.strip():
            raise ValidationError(message="'text' must not be empty", field="text")
        audio = await self.render(text)
        if not audio:
            raise UpstreamError(
                message="The speech service returned no audio.",
                provider=self.provider_name,
            )
        return audio

    @abstractmethod
    async def render(self, text: str) -> bytes:
        """One provider call for non-empty text; failures raise UpstreamError."""
        ...

    async def aclose(self) -> None:
        return None


class ElevenLabsService(SpeechService):
    """ElevenLabs text-to-speech over httpx."""

    provider_name = "elevenlabs"

    VOICE_SETTINGS = {"stability": 0.5, "similarity_boost": 0.75}

    def __init__(
        self,
        api_key: str,
        voice_id: str,
        model_id: str = "eleven_monolingual_v1",
        base_url: str = "https://api.elevenlabs.io/v1",
        timeout: float = 60.0,
        max_attempts: int = 2,
        min_wait: float = 1.0,
        max_wait: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.voice_id = voice_id
        self.model_id = model_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait
        self._api_key = api_key
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    @classmethod
    def from_settings(cls, settings) -> "ElevenLabsService":
        return cls(
            api_key=settings.elevenlabs_api_key,
            voice_id=settings.elevenlabs_voice_id,
            model_id=settings.elevenlabs_model_id,
            base_url=settings.elevenlabs_base_url,
            timeout=settings.tts_timeout,
            max_attempts=settings.retry_max_attempts,
            min_wait=settings.retry_min_wait,
            max_wait=settings.retry_max_wait,
        )

    async def render(self, text: str) -> bytes:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()
        try:
            async for attempt in provider_retrying(
                logger, self.max_attempts, self.min_wait, self.max_wait
            ):
                with attempt:
                    response = await self._post(text, request_id)
        except RetryableProviderError as e:
            logger.error("[%s] speech synthesis failed after %d attempts: %s", request_id, self.max_attempts, e)
            raise UpstreamError(
                message="The speech service is temporarily unavailable. Please try again later.",
                provider=self.provider_name,
                status_code=e.status_code,
                context={"request_id": request_id},
            )

        audio = response.content
        logger.info(
            "[%s] synthesized %d chars into %d bytes in %.0fms",
            request_id, len(text), len(audio), (time.time() - start_time) * 1000,
        )
        return audio

    async def _post(self, text: str, request_id: str) -> httpx.Response:
        try:
            response = await self._client.post(
                f"{self.base_url}/text-to-speech/{self.voice_id}",
                json={
                    "text": text,
                    "model_id": self.model_id,
                    "voice_settings": self.VOICE_SETTINGS,
                },
                headers={
                    "xi-api-key": self._api_key,
                    "Content-Type": "application/json",
                    "Accept": AUDIO_MIME_TYPE,
                },
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.warning("[%s] ElevenLabs call timed out: %s", request_id, type(e).__name__)
            raise RetryableProviderError(f"timeout: {type(e).__name__}")
        except httpx.TransportError as e:
            logger.warning("[%s] ElevenLabs call failed: %s", request_id, str(e))
            raise RetryableProviderError(f"transport error: {e}")

        if response.status_code >= 500:
            raise RetryableProviderError(
                f"provider answered {response.status_code}", status_code=response.status_code
            )
        if response.status_code >= 400:
            logger.error(
                "[%s] ElevenLabs rejected the request with %d: %s",
                request_id, response.status_code, response.text[:200],
            )
            raise UpstreamError(
                message="The speech service rejected the request.",
                provider=self.provider_name,
                status_code=response.status_code,
                context={"request_id": request_id},
            )
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
