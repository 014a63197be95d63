"""Tests for the caption fetcher."""

import pytest
from youtube_transcript_api import NoTranscriptFound, TranscriptsDisabled

from conftest import FakeTranscriptApi, Fetched, ListedTranscript, Snippet
from ytscribe.models.schemas import TranscriptionMethod
from ytscribe.services.captions import CaptionFetcher, join_segments

VIDEO_ID = "dQw4w9WgXcQ"


def fetcher_for(api: FakeTranscriptApi) -> CaptionFetcher:
    return CaptionFetcher(api_factory=lambda: api)


class TestCaptionFetcher:
    @pytest.mark.asyncio
    async def test_joins_snippets(self):
        api = FakeTranscriptApi(
            Fetched([Snippet("Never gonna"), Snippet("  give you\nup "), Snippet("")])
        )

        result = await fetcher_for(api).fetch(VIDEO_ID)

        assert result.text == "Never gonna give you up"
        assert result.segment_count == 3
        assert result.language == "en"
        assert result.method is TranscriptionMethod.CAPTIONS
        assert api.requested_languages == ("en", "en-US", "en-GB")

    @pytest.mark.asyncio
    async def test_disabled_captions_mean_none(self):
        api = FakeTranscriptApi(fetch_error=TranscriptsDisabled(VIDEO_ID))

        assert await fetcher_for(api).fetch(VIDEO_ID) is None

    @pytest.mark.asyncio
    async def test_provider_failure_means_none(self):
        api = FakeTranscriptApi(fetch_error=ConnectionError("reset by peer"))

        assert await fetcher_for(api).fetch(VIDEO_ID) is None

    @pytest.mark.asyncio
    async def test_empty_track_means_none(self):
        api = FakeTranscriptApi(Fetched([Snippet("  "), Snippet("")]))

        assert await fetcher_for(api).fetch(VIDEO_ID) is None

    @pytest.mark.asyncio
    async def test_other_language_track_used(self):
        german = Fetched([Snippet("Hallo Welt")], language_code="de")
        api = FakeTranscriptApi(
            fetch_error=NoTranscriptFound(VIDEO_ID, ["en", "en-US", "en-GB"], None),
            listed=[ListedTranscript(german)],
        )

        result = await fetcher_for(api).fetch(VIDEO_ID)

        assert result.text == "Hallo Welt"
        assert result.language == "de"


class TestJoinSegments:
    def test_accepts_dict_segments(self):
        assert join_segments([{"text": "one"}, {"text": " two "}, {"start": 1.0}]) == "one two"
