"""
Error taxonomy: raw provider failures -> user-facing outcomes.

Every terminal error on the progress stream carries a user message from a
fixed table; the raw technical message only goes to the logs.

Classification looks at, in order:
    1. HTTP status code (from the exception, or a "429 {json}" message prefix)
    2. Provider error code fields ("rate_limit_exceeded", ...)
    3. Case-insensitive message substrings
    4. Transport exception types (timeouts, connection failures)
    5. A default for the stage that failed
The first rule that fires wins.
"""

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum

import httpx

from ytscribe.models.schemas import ErrorPayload
from ytscribe.services.ai_clients.base import (
    AIClientConnectionError,
    AIClientResponseError,
    AIClientTimeoutError,
)
from ytscribe.services.outcome import StageError
from ytscribe.services.video_id import InvalidVideoUrlError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Outcome kinds reported to clients as errorType."""

    INVALID_VIDEO_INPUT = "InvalidVideoInput"
    PAYMENT_REQUIRED = "PaymentRequired"
    PAYMENT_NOT_COMPLETED = "PaymentNotCompleted"
    ENTITLEMENT_MISMATCH = "EntitlementMismatch"
    VERIFICATION_FAILED = "VerificationFailed"
    NO_CAPTIONS_AND_NO_AUDIO = "NoCaptionsAndNoAudio"
    ASR_FAILED = "AsrFailed"
    TRANSLATION_RATE_LIMITED = "TranslationRateLimited"
    TRANSLATION_FAILED = "TranslationFailed"
    SUMMARY_FAILED = "SummaryFailed"
    PROVIDER_UNAUTHORIZED = "ProviderUnauthorized"
    INPUT_TOO_LARGE = "InputTooLarge"
    NETWORK = "Network"
    TIMEOUT = "Timeout"
    UNEXPECTED = "Unexpected"

    @property
    def requires_payment(self) -> bool:
        return self in PAYMENT_KINDS


PAYMENT_KINDS = frozenset(
    {
        ErrorKind.PAYMENT_REQUIRED,
        ErrorKind.PAYMENT_NOT_COMPLETED,
        ErrorKind.ENTITLEMENT_MISMATCH,
        ErrorKind.VERIFICATION_FAILED,
    }
)

USER_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_VIDEO_INPUT: "Please enter a valid YouTube video URL.",
    ErrorKind.PAYMENT_REQUIRED: "Payment is required to process this video. Please choose a plan.",
    ErrorKind.PAYMENT_NOT_COMPLETED: (
        "Your payment has not been completed. Please finish checkout and try again."
    ),
    ErrorKind.ENTITLEMENT_MISMATCH: (
        "Your purchase covers a different video or language. "
        "Please purchase a plan for this request."
    ),
    ErrorKind.VERIFICATION_FAILED: (
        "We could not verify your payment. Please try again or contact support."
    ),
    ErrorKind.NO_CAPTIONS_AND_NO_AUDIO: (
        "This video has no captions and its audio could not be downloaded. "
        "The video might be private, restricted or unavailable."
    ),
    ErrorKind.ASR_FAILED: (
        "No transcript could be generated from this video. "
        "The video might not have audio or captions."
    ),
    ErrorKind.TRANSLATION_RATE_LIMITED: (
        "Translation service rate limit reached. Please try again in {hint}."
    ),
    ErrorKind.TRANSLATION_FAILED: "Translation failed. Please try again in a few moments.",
    ErrorKind.SUMMARY_FAILED: "Summary generation failed. Please try again in a few moments.",
    ErrorKind.PROVIDER_UNAUTHORIZED: (
        "A processing service rejected our credentials. Please contact support."
    ),
    ErrorKind.INPUT_TOO_LARGE: (
        "This video is too long to process. Please try a shorter video (under 25 minutes)."
    ),
    ErrorKind.NETWORK: (
        "Network connection error. Please check your internet connection and try again."
    ),
    ErrorKind.TIMEOUT: (
        "Request timed out. The video might be too long or the service is slow. "
        "Please try again."
    ),
    ErrorKind.UNEXPECTED: (
        "An unexpected error occurred. Please try again or contact support "
        "if the problem persists."
    ),
}

DEFAULT_RETRY_HINT = "about an hour"

# Stage names used as classification context
STAGE_DOWNLOAD = "download"
STAGE_TRANSCRIPTION = "transcription"
STAGE_TRANSLATION = "translation"
STAGE_SUMMARY = "summary"

STAGE_DEFAULTS: dict[str, ErrorKind] = {
    STAGE_DOWNLOAD: ErrorKind.NO_CAPTIONS_AND_NO_AUDIO,
    STAGE_TRANSCRIPTION: ErrorKind.ASR_FAILED,
    STAGE_TRANSLATION: ErrorKind.TRANSLATION_FAILED,
    STAGE_SUMMARY: ErrorKind.SUMMARY_FAILED,
}

# Stages served by chat providers, where throttling is its own outcome
LANGUAGE_STAGES = frozenset({STAGE_TRANSLATION, STAGE_SUMMARY})

RATE_LIMIT_CODES = frozenset({"rate_limit_exceeded", "rate_limit_error"})
UNAUTHORIZED_CODES = frozenset({"invalid_api_key", "authentication_error", "permission_error"})

STATUS_PREFIX_PATTERN = re.compile(r"^\s*(\d{3})\s*(\{.*\})\s*$", re.DOTALL)
RETRY_HINT_PATTERN = re.compile(r"try again in\s+(\d[\dhms.]*[hms])", re.IGNORECASE)


@dataclass(frozen=True)
class ClassifiedError:
    """
    A failure mapped onto the taxonomy.

    Attributes:
        kind: Outcome kind
        message: User-facing message from the fixed table
        technical: Raw technical message (logs only)
        hint: Retry-after hint, e.g. "57m1.44s"
    """

    kind: ErrorKind
    message: str
    technical: str = ""
    hint: str | None = None

    @property
    def requires_payment(self) -> bool:
        return self.kind.requires_payment

    @classmethod
    def of(cls, kind: ErrorKind, technical: str = "", hint: str | None = None) -> "ClassifiedError":
        """Build a ClassifiedError for a known kind."""
        return cls(kind=kind, message=user_message(kind, hint), technical=technical, hint=hint)

    def to_payload(self) -> ErrorPayload:
        """Terminal error payload for the progress stream."""
        return ErrorPayload(
            error=self.message,
            error_type=self.kind.value,
            hint=self.hint,
            requires_payment=True if self.requires_payment else None,
        )


@dataclass
class _ErrorDetails:
    status: int | None
    code: str | None
    message: str


def user_message(kind: ErrorKind, hint: str | None = None) -> str:
    """User-facing message for a kind, with the retry hint filled in."""
    template = USER_MESSAGES[kind]
    if "{hint}" in template:
        return template.format(hint=hint or DEFAULT_RETRY_HINT)
    return template


def extract_retry_hint(message: str) -> str | None:
    """
    Extract a "try again in ..." duration from a provider message.

    Example:
        >>> extract_retry_hint("Please try again in 57m1.44s. Visit ...")
        '57m1.44s'
    """
    match = RETRY_HINT_PATTERN.search(message or "")
    return match.group(1) if match else None


def _parse_json_object(text: str | None) -> dict | None:
    if not text:
        return None
    start, end = text.find("{"), text.rfind("}")
    if start == -1 or end <= start:
        return None
    try:
        parsed = json.loads(text[start : end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _apply_body(details: _ErrorDetails, body: dict) -> None:
    """Pull code and message out of an {"error": {...}} style body."""
    nested = body.get("error")
    if isinstance(nested, dict):
        details.code = details.code or nested.get("code") or nested.get("type")
        if nested.get("message"):
            details.message = f"{nested['message']} ({details.message})"
    elif isinstance(nested, str):
        details.message = f"{nested} ({details.message})"
    elif body.get("message"):
        details.message = f"{body['message']} ({details.message})"


def _inspect(error: BaseException) -> _ErrorDetails:
    """Collect status code, error code and message from an exception."""
    status = getattr(error, "status_code", None)
    if not isinstance(status, int):
        status = getattr(error, "status", None)
    details = _ErrorDetails(
        status=status if isinstance(status, int) else None,
        code=None,
        message=getattr(error, "message", None) or str(error),
    )

    # "<status> {json}" messages carry both the status and the provider body
    prefixed = STATUS_PREFIX_PATTERN.match(str(error))
    if prefixed:
        details.status = details.status or int(prefixed.group(1))
        body = _parse_json_object(prefixed.group(2))
        if body:
            _apply_body(details, body)

    if isinstance(error, AIClientResponseError):
        body = _parse_json_object(error.response_body)
        if body:
            _apply_body(details, body)
        elif error.response_body:
            details.message = f"{details.message}: {error.response_body}"

    if details.code in RATE_LIMIT_CODES and details.status is None:
        details.status = 429

    return details


def _match_kind(error: BaseException, details: _ErrorDetails, stage: str | None) -> ErrorKind:
    in_language_stage = stage in LANGUAGE_STAGES
    lowered = details.message.lower()

    if isinstance(error, InvalidVideoUrlError):
        return ErrorKind.INVALID_VIDEO_INPUT
    if stage == STAGE_DOWNLOAD:
        return ErrorKind.NO_CAPTIONS_AND_NO_AUDIO

    # 1. Status code
    if details.status == 429 and in_language_stage:
        return ErrorKind.TRANSLATION_RATE_LIMITED
    if details.status in (401, 403):
        return ErrorKind.PROVIDER_UNAUTHORIZED
    if details.status == 413:
        return ErrorKind.INPUT_TOO_LARGE

    # 2. Provider error code
    if details.code in RATE_LIMIT_CODES and in_language_stage:
        return ErrorKind.TRANSLATION_RATE_LIMITED
    if details.code in UNAUTHORIZED_CODES:
        return ErrorKind.PROVIDER_UNAUTHORIZED

    # 3. Message substrings
    if in_language_stage and ("rate limit" in lowered or "rate_limit_exceeded" in lowered):
        return ErrorKind.TRANSLATION_RATE_LIMITED
    if "unauthorized" in lowered or "invalid api key" in lowered or "incorrect api key" in lowered:
        return ErrorKind.PROVIDER_UNAUTHORIZED
    if "too large" in lowered or "25mb" in lowered or "maximum content size" in lowered:
        return ErrorKind.INPUT_TOO_LARGE
    if "invalid youtube url" in lowered:
        return ErrorKind.INVALID_VIDEO_INPUT

    # 4. Transport failures
    if isinstance(error, (AIClientTimeoutError, httpx.TimeoutException, TimeoutError)):
        return ErrorKind.TIMEOUT
    if isinstance(error, (AIClientConnectionError, httpx.TransportError, ConnectionError)):
        return ErrorKind.NETWORK

    # 5. Stage default
    return STAGE_DEFAULTS.get(stage or "", ErrorKind.UNEXPECTED)


def classify_error(error: BaseException, stage: str | None = None) -> ClassifiedError:
    """
    Map a raw failure onto the taxonomy.

    A StageError is unwrapped: its stage name is used when no stage is
    given, and its cause is what gets inspected.

    Args:
        error: Raw exception (or StageError wrapping one)
        stage: Stage that failed ("download", "transcription", "translation", "summary")

    Returns:
        ClassifiedError with user message, technical message and optional hint

    Example:
        >>> err = Exception('429 {"error":{"code":"rate_limit_exceeded",'
        ...                 '"message":"Please try again in 57m1.44s."}}')
        >>> classified = classify_error(err, "translation")
        >>> classified.kind, classified.hint
        (<ErrorKind.TRANSLATION_RATE_LIMITED: 'TranslationRateLimited'>, '57m1.44s')
    """
    technical = str(error)
    if isinstance(error, StageError):
        stage = stage or error.stage_name
        if error.cause is not None:
            error = error.cause
            technical = f"{technical}: {error}"

    details = _inspect(error)
    kind = _match_kind(error, details, stage)

    hint = None
    if kind is ErrorKind.TRANSLATION_RATE_LIMITED:
        hint = extract_retry_hint(details.message)

    if details.message not in technical:
        technical = f"{technical} | {details.message}"

    return ClassifiedError.of(kind, technical=technical, hint=hint)


def is_rate_limit_error(error: BaseException) -> bool:
    """
    True if a provider failure is a throttling signal.

    Matches HTTP 429, the "rate_limit_exceeded" code, or a message
    containing "rate limit".
    """
    details = _inspect(error)
    if details.status == 429 or details.code in RATE_LIMIT_CODES:
        return True
    lowered = details.message.lower()
    return "rate limit" in lowered or "rate_limit_exceeded" in lowered
