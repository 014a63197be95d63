"""
Whisper transcription client implementation.

HTTP client for the OpenAI-compatible /audio/transcriptions endpoint.
Uploads run in a thread pool so the event loop keeps serving other jobs.
"""

import asyncio
import logging
import time
from pathlib import Path

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ytscribe.config import Settings
from ytscribe.services.ai_clients.base import (
    AIClientConnectionError,
    AIClientResponseError,
    AIClientTimeoutError,
)

logger = logging.getLogger(__name__)

RETRY_DECORATOR = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=60),
    retry=retry_if_exception_type((AIClientConnectionError, AIClientTimeoutError)),
    reraise=True,
)


class WhisperClient:
    """
    HTTP client for the Whisper speech-to-text API.

    Example:
        async with WhisperClient.from_settings(settings) as client:
            text = await client.transcribe(audio_path)
    """

    provider = "whisper"

    def __init__(
        self,
        whisper_url: str,
        api_key: str | None,
        model: str = "whisper-1",
        default_language: str = "en",
        timeout: float = 600.0,
        transport: httpx.BaseTransport | None = None,
    ):
        """
        Initialize Whisper client.

        Args:
            whisper_url: Base URL of the API (".../v1")
            api_key: Bearer token for the provider
            model: Transcription model name
            default_language: Language hint sent with every upload
            timeout: Upload timeout in seconds
            transport: Optional httpx transport (tests use MockTransport)
        """
        self.whisper_url = whisper_url.rstrip("/")
        self.api_key = api_key
        self.model = model
        self.default_language = default_language
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> "WhisperClient":
        """
        Create WhisperClient from application settings.

        Args:
            settings: Application settings

        Returns:
            Configured WhisperClient instance
        """
        return cls(
            whisper_url=settings.whisper_url,
            api_key=settings.openai_api_key,
            model=settings.whisper_model,
            default_language=settings.whisper_language,
            timeout=settings.whisper_timeout,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def __aenter__(self) -> "WhisperClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def close(self) -> None:
        """Nothing to release; each upload opens its own client."""

    def _sync_transcribe(self, file_path: Path, language: str) -> httpx.Response:
        """
        Synchronous file upload to the transcription endpoint.

        Runs in a thread pool to avoid blocking the event loop. The file is
        streamed from disk, not read into memory first.

        Args:
            file_path: Path to audio file
            language: Language code

        Returns:
            httpx.Response from the provider
        """
        headers = {"Authorization": f"Bearer {self.api_key}"}
        with httpx.Client(timeout=self.timeout, transport=self.transport) as sync_client:
            with open(file_path, "rb") as f:
                files = {"file": (file_path.name, f, "application/octet-stream")}
                data = {
                    "model": self.model,
                    "language": language,
                    "response_format": "json",
                }
                return sync_client.post(
                    f"{self.whisper_url}/audio/transcriptions",
                    headers=headers,
                    files=files,
                    data=data,
                )

    @RETRY_DECORATOR
    async def transcribe(self, file_path: Path, language: str | None = None) -> str:
        """
        Transcribe an audio file.

        Args:
            file_path: Path to audio file
            language: Language code (default: from settings)

        Returns:
            Transcribed text (may be empty; the caller decides what that means)

        Raises:
            FileNotFoundError: If file doesn't exist
            AIClientError: If transcription fails
        """
        if language is None:
            language = self.default_language

        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        size_mb = file_path.stat().st_size / 1024 / 1024
        logger.info(f"Transcribing: {file_path.name} ({size_mb:.1f} MB)")
        logger.debug(f"Whisper URL: {self.whisper_url}, model: {self.model}, language: {language}")

        start_time = time.time()

        response = None
        try:
            response = await asyncio.to_thread(self._sync_transcribe, file_path, language)

            elapsed = time.time() - start_time
            logger.debug(f"Whisper response: {response.status_code}, elapsed: {elapsed:.1f}s")

            response.raise_for_status()
            result = response.json()

            text = (result.get("text") or "").strip()
            logger.info(f"Transcription complete: {len(text)} chars, elapsed: {elapsed:.1f}s")
            return text

        except httpx.TimeoutException as e:
            elapsed = time.time() - start_time
            logger.error(f"Transcription timeout after {elapsed:.1f}s: {e}")
            raise AIClientTimeoutError(
                f"Whisper transcription timeout after {elapsed:.1f}s",
                provider=self.provider,
                model=self.model,
                original_error=e,
            ) from e

        except httpx.HTTPStatusError as e:
            elapsed = time.time() - start_time
            logger.error(
                f"Transcription HTTP error after {elapsed:.1f}s: "
                f"{e.response.status_code} - {e.response.text[:200]}"
            )
            raise AIClientResponseError(
                f"Whisper transcription failed: HTTP {e.response.status_code}",
                provider=self.provider,
                model=self.model,
                status_code=e.response.status_code,
                response_body=e.response.text[:2000],
                original_error=e,
            ) from e

        except httpx.TransportError as e:
            elapsed = time.time() - start_time
            logger.error(f"Transcription failed after {elapsed:.1f}s: {type(e).__name__}: {e}")
            raise AIClientConnectionError(
                f"Whisper connection failed: {e}",
                provider=self.provider,
                original_error=e,
            ) from e

        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"Malformed Whisper response: {type(e).__name__}: {e}")
            raise AIClientResponseError(
                f"Malformed transcription response: {type(e).__name__}",
                provider=self.provider,
                model=self.model,
                response_body=response.text[:2000] if response is not None else None,
                original_error=e,
            ) from e
