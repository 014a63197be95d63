"""
Pydantic models for the transcript orchestration service.

Wire models use camelCase aliases (videoUrl, targetLanguage, ...) to match
the web and mobile clients; Python code uses snake_case field names.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class PlanId(str, Enum):
    """Purchasable plans."""
    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"


class PipelineStage(str, Enum):
    """State of a transcript job."""
    ADMITTED = "admitted"
    ID_RESOLVED = "id_resolved"
    CAPTIONS_ATTEMPTED = "captions_attempted"
    AUDIO_ACQUIRING = "audio_acquiring"
    AUDIO_ACQUIRED = "audio_acquired"
    TRANSCRIBING = "transcribing"
    SOURCE_READY = "source_ready"
    TRANSLATING = "translating"
    FINALIZING = "finalizing"
    COMPLETE = "complete"
    FAILED = "failed"


class TranscriptionMethod(str, Enum):
    """How the source text was obtained."""
    CAPTIONS = "captions"
    ASR = "asr"


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class CamelModel(BaseModel):
    """Base model accepting and emitting camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ═══════════════════════════════════════════════════════════════════════════
# Domain records
# ═══════════════════════════════════════════════════════════════════════════


class VideoRequest(BaseModel):
    """Immutable input of a transcript job."""

    model_config = ConfigDict(frozen=True)

    url: str
    video_id: str
    target_language: str | None = None
    session_id: str | None = None

    @property
    def wants_translation(self) -> bool:
        return self.target_language is not None


class EntitlementRecord(CamelModel):
    """Proof that a session paid for (or was granted) one video/language pair."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    session_id: str
    video_id: str
    target_language: str | None = None
    plan: PlanId
    issued_at: datetime
    is_free: bool = False

    @field_validator("target_language", mode="before")
    @classmethod
    def _normalize_language(cls, value: str | None) -> str | None:
        return _blank_to_none(value)

    def authorizes(self, video_id: str, target_language: str | None) -> bool:
        """True only for the exact (video id, target language) pair issued."""
        return self.video_id == video_id and self.target_language == target_language


@dataclass
class PipelineState:
    """
    Per-job state owned by the pipeline driver.

    Lives only for the duration of the streaming response. audio_dir is
    cleared only after the directory has been removed from disk.
    """

    stage: PipelineStage = PipelineStage.ADMITTED
    progress: int = 0
    source_text: str = ""
    method: TranscriptionMethod | None = None
    translated_text: str = ""
    audio_dir: Path | None = None
    audio_path: Path | None = None
    word_count: int = 0
    reading_time: int = 0


# ═══════════════════════════════════════════════════════════════════════════
# Progress stream payloads
# ═══════════════════════════════════════════════════════════════════════════


class ProgressEvent(CamelModel):
    """Intermediate event: progress percent and a human-readable message."""

    progress: int = Field(..., ge=0, le=100)
    message: str


class TranscriptResult(CamelModel):
    """Terminal success payload."""

    success: Literal[True] = True
    original: str
    translated: str
    transcript: str
    word_count: int
    reading_time: int
    video_id: str
    transcription_method: TranscriptionMethod
    target_language: str | None = None


class ErrorPayload(CamelModel):
    """Terminal error payload."""

    error: str
    error_type: str
    hint: str | None = None
    requires_payment: bool | None = None


# ═══════════════════════════════════════════════════════════════════════════
# HTTP request / response models
# ═══════════════════════════════════════════════════════════════════════════


class TranscriptRequest(CamelModel):
    """Body of POST /transcript."""

    video_url: str
    target_language: str | None = None
    session_id: str | None = None

    @field_validator("target_language", "session_id", mode="before")
    @classmethod
    def _blank_is_absent(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class CheckoutRequest(CamelModel):
    """Body of POST /create-checkout-session."""

    video_url: str
    target_language: str | None = None
    plan_id: PlanId

    @field_validator("target_language", mode="before")
    @classmethod
    def _blank_is_absent(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class CheckoutResponse(CamelModel):
    """Checkout session handed back to the client."""

    session_id: str
    url: str | None = None
    is_free: bool | None = None


class PlanInfo(CamelModel):
    """Plan descriptor served by GET /plans."""

    id: PlanId
    name: str
    price: int
    price_formatted: str
    description: str


class LanguageInfo(BaseModel):
    """Target language offered to clients."""

    code: str
    name: str


class SummaryRequest(CamelModel):
    """Body of POST /summary."""

    text: str = Field(..., min_length=1)
    summary_length: Literal["short", "medium", "long"] = "medium"


class SummaryResponse(CamelModel):
    """Generated summary."""

    success: Literal[True] = True
    summary: str
    summary_length: str
