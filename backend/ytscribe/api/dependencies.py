"""
Service container shared by the API routes.

Everything with process lifetime (session store, provider clients, the
pipeline) is built once in the application lifespan and hung on
app.state.services; routes receive it through FastAPI dependencies.
"""

import logging
import time
from dataclasses import dataclass, field

from fastapi import Request

from ytscribe.config import Settings, load_languages_config, load_plans_config
from ytscribe.services.admission import PaymentAdmission
from ytscribe.services.ai_clients import BaseAIClient, ClaudeClient, GroqClient, WhisperClient
from ytscribe.services.audio_acquirer import AudioAcquirer
from ytscribe.services.captions import CaptionFetcher
from ytscribe.services.payment_client import PaymentClient
from ytscribe.services.pipeline import TranscriptPipeline
from ytscribe.services.session_store import SessionStore
from ytscribe.services.summarizer import SummaryGenerator
from ytscribe.services.transcriber import SpeechTranscriber
from ytscribe.services.translator import Translator

logger = logging.getLogger(__name__)


@dataclass
class AppServices:
    """Process-wide collaborators, built once at startup."""

    settings: Settings
    store: SessionStore
    payment_client: PaymentClient
    admission: PaymentAdmission
    pipeline: TranscriptPipeline
    summarizer: SummaryGenerator
    plans: dict
    languages: dict
    providers: dict[str, bool] = field(default_factory=dict)
    chat_clients: list[BaseAIClient] = field(default_factory=list)
    started_at: float = field(default_factory=time.time)

    async def close(self) -> None:
        """Release provider clients."""
        for client in self.chat_clients:
            await client.close()


def build_services(settings: Settings) -> AppServices:
    """
    Construct all services from settings.

    Missing API keys leave the matching provider out instead of failing
    start-up.
    """
    settings.temp_dir.mkdir(parents=True, exist_ok=True)

    groq = GroqClient.from_settings(settings) if settings.groq_api_key else None
    claude = ClaudeClient.from_settings(settings) if settings.anthropic_api_key else None
    whisper = WhisperClient.from_settings(settings)

    if groq is None:
        logger.warning("GROQ_API_KEY not set, primary translator disabled")
    if claude is None:
        logger.warning("ANTHROPIC_API_KEY not set, fallback translator disabled")
    if not whisper.is_configured:
        logger.warning("OPENAI_API_KEY not set, audio transcription will fail")

    store = SessionStore()
    payment_client = PaymentClient.from_settings(settings)
    if settings.payment_required and not payment_client.is_configured:
        logger.warning("Payments required but STRIPE_SECRET_KEY not set; only free sessions will work")

    admission = PaymentAdmission(store, payment_client, settings.payment_required)
    pipeline = TranscriptPipeline(
        admission=admission,
        captions=CaptionFetcher(),
        acquirer=AudioAcquirer.from_settings(settings),
        transcriber=SpeechTranscriber(whisper, settings),
        translator=Translator.from_settings(settings, groq, claude),
        temp_root=settings.temp_dir,
    )

    return AppServices(
        settings=settings,
        store=store,
        payment_client=payment_client,
        admission=admission,
        pipeline=pipeline,
        summarizer=SummaryGenerator.from_settings(settings, groq, claude),
        plans=load_plans_config(settings).get("plans", {}),
        languages=load_languages_config(settings).get("languages", {}),
        providers={
            "groq": groq is not None,
            "claude": claude is not None,
            "whisper": whisper.is_configured,
            "stripe": payment_client.is_configured,
        },
        chat_clients=[c for c in (groq, claude) if c is not None],
    )


def get_services(request: Request) -> AppServices:
    """FastAPI dependency: the application's service container."""
    return request.app.state.services
