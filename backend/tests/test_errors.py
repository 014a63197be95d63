"""Tests for error classification."""

import httpx
import pytest

from ytscribe.services.ai_clients import (
    AIClientConnectionError,
    AIClientResponseError,
    AIClientTimeoutError,
)
from ytscribe.services.audio_acquirer import AudioAcquisitionError
from ytscribe.services.errors import (
    DEFAULT_RETRY_HINT,
    ClassifiedError,
    ErrorKind,
    classify_error,
    extract_retry_hint,
    is_rate_limit_error,
)
from ytscribe.services.outcome import StageError
from ytscribe.services.video_id import InvalidVideoUrlError

RATE_LIMIT_BODY = (
    '{"error":{"message":"Rate limit reached for model `llama-3.3-70b-versatile` '
    "on tokens per day (TPD): Limit 100000, Used 99876, Requested 1024. "
    'Please try again in 57m1.44s. Visit https://console.groq.com/docs/rate-limits",'
    '"type":"tokens","code":"rate_limit_exceeded"}}'
)


class TestRateLimit:
    def test_status_prefixed_message(self):
        error = Exception(f"429 {RATE_LIMIT_BODY}")

        classified = classify_error(error, "translation")

        assert classified.kind is ErrorKind.TRANSLATION_RATE_LIMITED
        assert classified.hint == "57m1.44s"
        assert "57m1.44s" in classified.message
        assert "groq" not in classified.message.lower()

    def test_response_error_with_body(self):
        error = AIClientResponseError(
            "Chat failed: HTTP 429",
            status_code=429,
            response_body=RATE_LIMIT_BODY,
            provider="groq",
        )

        classified = classify_error(error, "translation")

        assert classified.kind is ErrorKind.TRANSLATION_RATE_LIMITED
        assert classified.hint == "57m1.44s"

    def test_missing_hint_uses_default_wording(self):
        error = AIClientResponseError("Chat failed: HTTP 429", status_code=429)

        classified = classify_error(error, "translation")

        assert classified.kind is ErrorKind.TRANSLATION_RATE_LIMITED
        assert classified.hint is None
        assert DEFAULT_RETRY_HINT in classified.message

    def test_wrapped_in_stage_error(self):
        cause = AIClientResponseError("Chat failed: HTTP 429", status_code=429, response_body=RATE_LIMIT_BODY)

        classified = classify_error(StageError("translation", str(cause), cause))

        assert classified.kind is ErrorKind.TRANSLATION_RATE_LIMITED
        assert classified.to_payload().hint == "57m1.44s"

    def test_is_rate_limit_error(self):
        assert is_rate_limit_error(AIClientResponseError("HTTP 429", status_code=429))
        assert is_rate_limit_error(Exception("rate_limit_exceeded"))
        assert not is_rate_limit_error(AIClientResponseError("HTTP 500", status_code=500))

    def test_extract_retry_hint(self):
        assert extract_retry_hint("Please try again in 57m1.44s. Visit") == "57m1.44s"
        assert extract_retry_hint("Please try again in 2h.") == "2h"
        assert extract_retry_hint("no hint here") is None


class TestClassification:
    @pytest.mark.parametrize("status", [401, 403])
    def test_unauthorized(self, status):
        error = AIClientResponseError(f"HTTP {status}", status_code=status)

        assert classify_error(error, "transcription").kind is ErrorKind.PROVIDER_UNAUTHORIZED

    def test_payload_too_large(self):
        error = AIClientResponseError("HTTP 413", status_code=413)

        assert classify_error(error, "transcription").kind is ErrorKind.INPUT_TOO_LARGE

    def test_too_large_message(self):
        error = StageError("transcription", "Audio file too large: 31.2 MB exceeds 25MB limit")

        assert classify_error(error).kind is ErrorKind.INPUT_TOO_LARGE

    def test_timeout(self):
        error = AIClientTimeoutError("Chat timeout", provider="claude")

        assert classify_error(error, "translation").kind is ErrorKind.TIMEOUT

    def test_httpx_timeout(self):
        assert classify_error(httpx.ReadTimeout("read timed out")).kind is ErrorKind.TIMEOUT

    def test_network(self):
        error = AIClientConnectionError("Cannot connect to Groq")

        assert classify_error(error, "translation").kind is ErrorKind.NETWORK

    def test_rate_limit_outside_language_stage_is_not_translation(self):
        error = AIClientResponseError("HTTP 429", status_code=429)

        assert classify_error(error, "transcription").kind is ErrorKind.ASR_FAILED

    def test_download_failure(self):
        error = StageError(
            "download",
            "Audio download failed after 4 attempt(s)",
            AudioAcquisitionError("Audio download failed", attempts=4, last_output="HTTP Error 403"),
        )

        assert classify_error(error).kind is ErrorKind.NO_CAPTIONS_AND_NO_AUDIO

    def test_invalid_url(self):
        classified = classify_error(InvalidVideoUrlError("nope"))

        assert classified.kind is ErrorKind.INVALID_VIDEO_INPUT
        assert classified.to_payload().requires_payment is None

    @pytest.mark.parametrize(
        "stage, kind",
        [
            ("transcription", ErrorKind.ASR_FAILED),
            ("translation", ErrorKind.TRANSLATION_FAILED),
            ("summary", ErrorKind.SUMMARY_FAILED),
            (None, ErrorKind.UNEXPECTED),
        ],
    )
    def test_stage_defaults(self, stage, kind):
        assert classify_error(RuntimeError("boom"), stage).kind is kind

    def test_technical_text_not_in_user_message(self):
        classified = classify_error(RuntimeError("KeyError in parser at line 42"))

        assert "KeyError" not in classified.message
        assert "KeyError" in classified.technical


class TestPayload:
    def test_payment_kinds_flag_requires_payment(self):
        payload = ClassifiedError.of(ErrorKind.PAYMENT_REQUIRED).to_payload()
        wire = payload.model_dump(by_alias=True, exclude_none=True)

        assert wire["errorType"] == "PaymentRequired"
        assert wire["requiresPayment"] is True
        assert "hint" not in wire
