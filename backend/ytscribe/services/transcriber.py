"""
Speech transcription service.

Sends a downloaded audio artifact to the Whisper API and returns the
source text. Failures come back as a StageOutcome; the error taxonomy
decides how they surface.
"""

import logging
import time
from pathlib import Path

from ytscribe.config import Settings
from ytscribe.services.ai_clients import AIClientError, AIClientResponseError, WhisperClient
from ytscribe.services.errors import STAGE_TRANSCRIPTION
from ytscribe.services.outcome import StageOutcome
from ytscribe.utils.media_utils import file_size_mb

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger("ytscribe.perf")


class SpeechTranscriber:
    """
    Audio-to-text stage backed by Whisper.

    Example:
        transcriber = SpeechTranscriber(WhisperClient.from_settings(settings), settings)
        outcome = await transcriber.transcribe(audio_path)
        if outcome.ok:
            print(outcome.value)
    """

    def __init__(
        self,
        whisper_client: WhisperClient,
        settings: Settings | None = None,
        max_upload_mb: float | None = None,
        language: str | None = None,
    ):
        """
        Initialize transcriber.

        Args:
            whisper_client: Whisper client for transcription API calls
            settings: Application settings (upload cap and language hint)
            max_upload_mb: Upload cap override
            language: Language hint override
        """
        self.whisper_client = whisper_client
        self.max_upload_mb = max_upload_mb or (settings.whisper_max_upload_mb if settings else 25.0)
        self.language = language or (settings.whisper_language if settings else "en")

    async def transcribe(self, audio_path: Path) -> StageOutcome[str]:
        """
        Transcribe an audio file.

        Args:
            audio_path: Path to the downloaded audio artifact

        Returns:
            StageOutcome with non-empty text, or a "transcription" failure
        """
        audio_path = Path(audio_path)

        if not self.whisper_client.is_configured:
            logger.error("Speech provider API key is not configured")
            return StageOutcome.failure(
                STAGE_TRANSCRIPTION,
                "Speech provider not configured",
                AIClientResponseError(
                    "OpenAI API key is not configured",
                    status_code=401,
                    provider="whisper",
                ),
            )

        try:
            size_mb = file_size_mb(audio_path)
        except OSError as e:
            logger.error(f"Audio artifact unreadable: {audio_path}: {e}")
            return StageOutcome.failure(STAGE_TRANSCRIPTION, f"Audio artifact unreadable: {e}", e)

        if size_mb > self.max_upload_mb:
            logger.warning(
                f"Audio too large for speech provider: {size_mb:.1f} MB > {self.max_upload_mb:.0f} MB"
            )
            return StageOutcome.failure(
                STAGE_TRANSCRIPTION,
                f"Audio file too large: {size_mb:.1f} MB exceeds {self.max_upload_mb:.0f}MB limit",
            )

        start_time = time.time()
        try:
            text = await self.whisper_client.transcribe(audio_path, language=self.language)
        except (AIClientError, FileNotFoundError) as e:
            logger.error(f"Transcription failed for {audio_path.name}: {e}")
            return StageOutcome.failure(STAGE_TRANSCRIPTION, str(e), e)

        elapsed = time.time() - start_time

        if not text.strip():
            logger.warning(f"Speech provider returned empty text for {audio_path.name}")
            return StageOutcome.failure(STAGE_TRANSCRIPTION, "Speech provider returned empty transcript")

        perf_logger.info(
            f"PERF | transcribe | size={size_mb:.1f}MB | chars={len(text)} | time={elapsed:.1f}s"
        )
        return StageOutcome.success(text.strip())
