"""
Explicit stage results for the transcript pipeline.

Stage components return a StageOutcome instead of raising, so the driver
picks the next state from the value and cleanup always runs.

Example:
    outcome = await transcriber.transcribe(audio_path)
    if not outcome.ok:
        classified = classify_error(outcome.error)
        ...
    text = outcome.value
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


class StageError(Exception):
    """Failure of one pipeline stage.

    Attributes:
        stage_name: Stage that failed ("download", "transcription", ...)
        message: Error description
        cause: Original exception (if any)
    """

    def __init__(
        self,
        stage_name: str,
        message: str,
        cause: BaseException | None = None,
    ):
        self.stage_name = stage_name
        self.message = message
        self.cause = cause
        super().__init__(f"[{stage_name}] {message}")


@dataclass(frozen=True)
class StageOutcome(Generic[T]):
    """Success carrying a value, or failure carrying a StageError."""

    value: T | None = None
    error: StageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "StageOutcome[T]":
        return cls(value=value)

    @classmethod
    def failure(
        cls,
        stage_name: str,
        message: str,
        cause: BaseException | None = None,
    ) -> "StageOutcome[T]":
        return cls(error=StageError(stage_name, message, cause))
