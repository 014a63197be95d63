"""
Shared fixtures: fake providers and a fully wired application.

No test talks to YouTube, Stripe or a model provider; every outside
collaborator is replaced by one of the fakes below.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from ytscribe.api.dependencies import AppServices
from ytscribe.config import Settings, load_languages_config, load_plans_config
from ytscribe.main import create_app
from ytscribe.models.schemas import EntitlementRecord, PlanId
from ytscribe.services.admission import PaymentAdmission
from ytscribe.services.ai_clients import ChatUsage
from ytscribe.services.audio_acquirer import AudioAcquirer, DownloadRun
from ytscribe.services.captions import CaptionResult
from ytscribe.services.payment_client import PaymentClient, PaymentSession
from ytscribe.services.pipeline import TranscriptPipeline
from ytscribe.services.session_store import SessionStore
from ytscribe.services.summarizer import SummaryGenerator
from ytscribe.services.transcriber import SpeechTranscriber
from ytscribe.services.translator import Translator

VIDEO_ID = "dQw4w9WgXcQ"
VIDEO_URL = f"https://www.youtube.com/watch?v={VIDEO_ID}"


# ═══════════════════════════════════════════════════════════════════════════
# Fakes
# ═══════════════════════════════════════════════════════════════════════════


class FakeChatClient:
    """Chat provider returning scripted replies (str) or raising (Exception)."""

    def __init__(self, provider: str, replies=None, echo: bool = False):
        self.provider = provider
        self.replies = list(replies or [])
        self.echo = echo
        self.calls: list[list[dict]] = []

    async def chat(self, messages, model=None, temperature=0.7, num_predict=None):
        self.calls.append(messages)
        if self.echo:
            return f"[{self.provider}] {messages[-1]['content']}", ChatUsage(10, 10)
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply, ChatUsage(input_tokens=10, output_tokens=5)

    async def close(self) -> None:
        pass


class FakeCaptions:
    """Caption fetcher returning a fixed text, or None for "no captions"."""

    def __init__(self, text: str | None = None):
        self.text = text
        self.calls: list[str] = []

    async def fetch(self, video_id: str) -> CaptionResult | None:
        self.calls.append(video_id)
        if self.text is None:
            return None
        return CaptionResult(text=self.text, segment_count=1, language="en")


@dataclass
class Snippet:
    text: str
    start: float = 0.0
    duration: float = 1.0


class Fetched(list):
    """Stand-in for FetchedTranscript: iterable snippets plus a language code."""

    def __init__(self, snippets, language_code="en"):
        super().__init__(snippets)
        self.language_code = language_code


class ListedTranscript:
    def __init__(self, fetched: Fetched):
        self.language_code = fetched.language_code
        self._fetched = fetched

    def fetch(self):
        return self._fetched


class FakeTranscriptApi:
    """YouTubeTranscriptApi stand-in serving one fetch result or error."""

    def __init__(self, fetch_result=None, fetch_error=None, listed=()):
        self.fetch_result = fetch_result
        self.fetch_error = fetch_error
        self.listed = list(listed)
        self.requested_languages = None

    def fetch(self, video_id, languages=("en",)):
        self.requested_languages = languages
        if self.fetch_error is not None:
            raise self.fetch_error
        return self.fetch_result

    def list(self, video_id):
        return iter(self.listed)


class FakeWhisper:
    """Whisper client returning a fixed transcript."""

    provider = "whisper"

    def __init__(self, text: str = "", configured: bool = True):
        self.text = text
        self.configured = configured
        self.calls: list[Path] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    async def transcribe(self, file_path: Path, language: str | None = None) -> str:
        self.calls.append(Path(file_path))
        return self.text

    async def close(self) -> None:
        pass


class FakePaymentClient(PaymentClient):
    """PaymentClient whose processor lookups are served from a dict."""

    def __init__(self, sessions: dict[str, PaymentSession] | None = None, configured: bool = True):
        super().__init__(secret_key="sk_test_fake" if configured else None)
        self.sessions = sessions or {}
        self.lookups: list[str] = []

    async def retrieve_session(self, session_id: str) -> PaymentSession:
        self.lookups.append(session_id)
        return self.sessions[session_id]


def downloader_writing(filename: str | None, returncode: int = 0, output: str = ""):
    """Runner stand-in that drops an audio file where yt-dlp would."""
    calls: list[list[str]] = []

    def runner(cmd: list[str], timeout: float) -> DownloadRun:
        calls.append(cmd)
        if filename is not None:
            output_dir = Path(cmd[cmd.index("-o") + 1]).parent
            (output_dir / filename).write_bytes(b"\x00" * 1024)
        return DownloadRun(returncode=returncode, output=output)

    runner.calls = calls
    return runner


class RecordingSleep:
    """Async sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_entitlement(
    session_id: str = "cs_test_123",
    video_id: str = VIDEO_ID,
    target_language: str | None = "Spanish",
    plan: PlanId = PlanId.BASIC,
) -> EntitlementRecord:
    return EntitlementRecord(
        session_id=session_id,
        video_id=video_id,
        target_language=target_language,
        plan=plan,
        issued_at=datetime.now(timezone.utc),
    )


# ═══════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings isolated from the environment and .env files."""
    return Settings(
        _env_file=None,
        payment_required=True,
        stripe_secret_key=None,
        stripe_webhook_secret=None,
        temp_dir=tmp_path / "temp",
    )


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def sink():
    """Event sink collecting payloads in a list (sink.events)."""
    events: list[dict] = []

    async def collect(payload: dict) -> None:
        events.append(payload)

    collect.events = events
    return collect


@pytest.fixture
def build_pipeline(tmp_path, store, recording_sleep):
    """Factory wiring a TranscriptPipeline from fakes."""

    def factory(
        captions_text: str | None = "Hello world. This is a test.",
        whisper_text: str = "Audio transcript text.",
        audio_filename: str | None = f"{VIDEO_ID}.webm",
        primary: FakeChatClient | None = None,
        secondary: FakeChatClient | None = None,
        payment_required: bool = False,
        payment_client: PaymentClient | None = None,
        captions=None,
    ):
        captions = captions or FakeCaptions(captions_text)
        whisper = FakeWhisper(whisper_text)
        runner = downloader_writing(audio_filename)
        admission = PaymentAdmission(store, payment_client, payment_required=payment_required)
        pipeline = TranscriptPipeline(
            admission=admission,
            captions=captions,
            acquirer=AudioAcquirer(runner=runner, settle_delay=0, sleep=recording_sleep),
            transcriber=SpeechTranscriber(whisper),
            translator=Translator(primary or FakeChatClient("groq", echo=True), secondary),
            temp_root=tmp_path / "jobs",
        )
        pipeline.fakes = {"captions": captions, "whisper": whisper, "runner": runner}
        return pipeline

    return factory


@pytest.fixture
def services(settings, store, build_pipeline) -> AppServices:
    """Service container with fake providers and real admission."""
    payment_client = PaymentClient.from_settings(settings)
    admission = PaymentAdmission(store, payment_client, payment_required=True)
    pipeline = build_pipeline()
    pipeline.admission = admission
    summary_client = FakeChatClient("groq", replies=["A short summary."])

    return AppServices(
        settings=settings,
        store=store,
        payment_client=payment_client,
        admission=admission,
        pipeline=pipeline,
        summarizer=SummaryGenerator(summary_client, None, "{length_guidance}\n\n{text}"),
        plans=load_plans_config(settings)["plans"],
        languages=load_languages_config(settings)["languages"],
        providers={"groq": True, "claude": False, "whisper": True, "stripe": False},
    )


@pytest.fixture
def client(services) -> TestClient:
    """Test client for the API (lifespan not run; services are injected)."""
    return TestClient(create_app(services))
