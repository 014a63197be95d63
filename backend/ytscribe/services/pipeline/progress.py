"""
Progress reporting for transcript jobs.

Each pipeline stage maps to a fixed percentage that clients (web and
mobile UIs) key their progress bars on. The numbers are conventions, not
measurements of remaining work.
"""

import logging
from typing import Awaitable, Callable

from ytscribe.models.schemas import PipelineStage, ProgressEvent

logger = logging.getLogger(__name__)

# Type alias for the event sink
# Signature: (payload) -> None, payload already serialized with camelCase keys
EventSink = Callable[[dict], Awaitable[None]]

# Cancellation check run at stage boundaries
CancelCheck = Callable[[], bool]

# Fixed percentages per stage
CAPTIONS_HIT_PERCENT = 40
CAPTIONS_MISS_PERCENT = 30

STAGE_PERCENT = {
    PipelineStage.ADMITTED: 5,
    PipelineStage.ID_RESOLVED: 10,
    PipelineStage.CAPTIONS_ATTEMPTED: 25,
    PipelineStage.AUDIO_ACQUIRING: 45,
    PipelineStage.AUDIO_ACQUIRED: 60,
    PipelineStage.TRANSCRIBING: 75,
    PipelineStage.SOURCE_READY: 80,
    PipelineStage.TRANSLATING: 95,
    PipelineStage.FINALIZING: 100,
}


class ProgressReporter:
    """
    Emits progress events for one job and enforces the stream invariants.

    Progress never goes backwards, and after the terminal payload nothing
    else is emitted.

    Example:
        reporter = ProgressReporter(sink)
        await reporter.update(5, "Initializing...")
        await reporter.finish(result.model_dump(by_alias=True, exclude_none=True))
    """

    def __init__(self, sink: EventSink):
        self.sink = sink
        self.progress = 0
        self.finished = False

    async def update(self, progress: int, message: str) -> None:
        """
        Emit an intermediate (progress, message) event.

        Args:
            progress: Percent; clamped so the stream stays non-decreasing
            message: Human-readable status message
        """
        if self.finished:
            return

        if progress < self.progress:
            logger.debug(f"Progress {progress} below {self.progress}, holding")
        self.progress = max(progress, self.progress)

        event = ProgressEvent(progress=self.progress, message=message)
        try:
            await self.sink(event.model_dump(by_alias=True))
        except Exception as e:
            # Never fail the job because the stream went away
            logger.warning(f"Progress sink error: {e}")

    async def stage(self, stage: PipelineStage, message: str) -> None:
        """Emit the fixed percentage for a stage."""
        await self.update(STAGE_PERCENT[stage], message)

    async def finish(self, payload: dict) -> bool:
        """
        Emit the terminal payload (success or error).

        Returns:
            True if emitted, False if a terminal payload was already sent
        """
        if self.finished:
            logger.warning("Terminal payload already emitted, dropping another")
            return False

        self.finished = True
        try:
            await self.sink(payload)
        except Exception as e:
            logger.warning(f"Progress sink error on terminal payload: {e}")
        return True
