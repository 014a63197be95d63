"""
Pydantic models for the transcript orchestration service.
"""

from ytscribe.models.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    EntitlementRecord,
    ErrorPayload,
    LanguageInfo,
    PipelineStage,
    PipelineState,
    PlanId,
    PlanInfo,
    ProgressEvent,
    SummaryRequest,
    SummaryResponse,
    TranscriptionMethod,
    TranscriptRequest,
    TranscriptResult,
    VideoRequest,
)

__all__ = [
    "CheckoutRequest",
    "CheckoutResponse",
    "EntitlementRecord",
    "ErrorPayload",
    "LanguageInfo",
    "PipelineStage",
    "PipelineState",
    "PlanId",
    "PlanInfo",
    "ProgressEvent",
    "SummaryRequest",
    "SummaryResponse",
    "TranscriptionMethod",
    "TranscriptRequest",
    "TranscriptResult",
    "VideoRequest",
]
