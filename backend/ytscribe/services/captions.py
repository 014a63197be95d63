"""
Caption fetcher.

Looks for an existing caption track (manual or auto-generated) for a video.
A missing track or any provider error means "no captions": the pipeline
then falls back to downloading audio, so nothing here is fatal.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from youtube_transcript_api import (
    CouldNotRetrieveTranscript,
    NoTranscriptFound,
    YouTubeTranscriptApi,
)

from ytscribe.models.schemas import TranscriptionMethod

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger("ytscribe.perf")

PREFERRED_LANGUAGES = ("en", "en-US", "en-GB")


@dataclass
class CaptionResult:
    """Caption track joined into source text."""

    text: str
    segment_count: int
    language: str | None = None
    method: TranscriptionMethod = TranscriptionMethod.CAPTIONS


def join_segments(segments) -> str:
    """Join caption snippets into one space-separated string."""
    parts = []
    for segment in segments:
        text = segment.text if hasattr(segment, "text") else segment.get("text", "")
        text = " ".join(text.split())
        if text:
            parts.append(text)
    return " ".join(parts)


class CaptionFetcher:
    """
    Fetches caption tracks through youtube-transcript-api.

    Example:
        fetcher = CaptionFetcher()
        result = await fetcher.fetch("dQw4w9WgXcQ")
        if result is None:
            ...  # fall back to audio
    """

    def __init__(
        self,
        languages: tuple[str, ...] = PREFERRED_LANGUAGES,
        api_factory: Callable[[], YouTubeTranscriptApi] = YouTubeTranscriptApi,
    ):
        """
        Initialize caption fetcher.

        Args:
            languages: Preferred caption languages, in priority order
            api_factory: Creates the transcript API client
        """
        self.languages = languages
        self.api_factory = api_factory

    def _sync_fetch(self, video_id: str):
        api = self.api_factory()
        try:
            return api.fetch(video_id, languages=self.languages)
        except NoTranscriptFound:
            # No preferred language; take whatever track exists
            transcript = next(iter(api.list(video_id)), None)
            if transcript is None:
                raise
            logger.debug(f"Using {transcript.language_code} captions for {video_id}")
            return transcript.fetch()

    async def fetch(self, video_id: str) -> CaptionResult | None:
        """
        Fetch captions for a video.

        Args:
            video_id: Canonical 11-character video id

        Returns:
            CaptionResult with non-empty text, or None if no captions are available
        """
        start_time = time.time()
        try:
            fetched = await asyncio.to_thread(self._sync_fetch, video_id)
        except CouldNotRetrieveTranscript as e:
            logger.info(f"No captions for {video_id}: {type(e).__name__}")
            return None
        except Exception as e:
            # Provider failures never end the job; audio is the fallback
            logger.warning(f"Caption lookup failed for {video_id}: {type(e).__name__}: {e}")
            return None

        segments = list(fetched)
        text = join_segments(segments)
        elapsed = time.time() - start_time

        if not text:
            logger.info(f"Caption track for {video_id} is empty")
            return None

        language = getattr(fetched, "language_code", None)
        perf_logger.info(
            f"PERF | captions | video={video_id} | segments={len(segments)} | "
            f"chars={len(text)} | time={elapsed:.1f}s"
        )
        return CaptionResult(text=text, segment_count=len(segments), language=language)
