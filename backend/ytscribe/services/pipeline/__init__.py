"""
Transcript pipeline package.

Components:
- TranscriptPipeline: state machine driving one transcript job
- ProgressReporter: fixed per-stage percentages and stream invariants

Usage:
    from ytscribe.services.pipeline import TranscriptPipeline

    state = await pipeline.run(url, target_language, session_id, sink)
"""

from .driver import JobCancelled, TranscriptPipeline
from .progress import (
    CAPTIONS_HIT_PERCENT,
    CAPTIONS_MISS_PERCENT,
    STAGE_PERCENT,
    CancelCheck,
    EventSink,
    ProgressReporter,
)

__all__ = [
    "TranscriptPipeline",
    "JobCancelled",
    "ProgressReporter",
    "EventSink",
    "CancelCheck",
    "STAGE_PERCENT",
    "CAPTIONS_HIT_PERCENT",
    "CAPTIONS_MISS_PERCENT",
]
