"""
Transcript pipeline driver.

Runs one transcript job through its stages:

    admitted -> id resolved -> captions attempted
        -> (captions hit)  -> source ready
        -> (captions miss) -> audio acquiring -> audio acquired -> transcribing -> source ready
    source ready -> translating (if a target language was given) -> finalizing -> complete

Any stage may end in failed. Every job emits exactly one terminal payload,
and the per-job audio directory is removed whatever the outcome.
"""

import logging
import shutil
import tempfile
import time
from pathlib import Path

from ytscribe.models.schemas import (
    PipelineStage,
    PipelineState,
    TranscriptionMethod,
    TranscriptResult,
    VideoRequest,
)
from ytscribe.services.admission import PaymentAdmission
from ytscribe.services.audio_acquirer import AudioAcquirer
from ytscribe.services.captions import CaptionFetcher
from ytscribe.services.errors import ClassifiedError, ErrorKind, classify_error
from ytscribe.services.pipeline.progress import (
    CAPTIONS_HIT_PERCENT,
    CAPTIONS_MISS_PERCENT,
    CancelCheck,
    EventSink,
    ProgressReporter,
)
from ytscribe.services.transcriber import SpeechTranscriber
from ytscribe.services.translator import Translator
from ytscribe.services.video_id import InvalidVideoUrlError, resolve_video_id
from ytscribe.utils.text_utils import count_words, reading_time_minutes

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger("ytscribe.perf")


class JobCancelled(Exception):
    """Raised internally when the client went away between stages."""


def _never_cancelled() -> bool:
    return False


class TranscriptPipeline:
    """
    State machine sequencing the transcript stages for one request at a time.

    One instance is built at startup and shared; all per-job state lives in
    a PipelineState created by run().

    Example:
        pipeline = TranscriptPipeline(admission, captions, acquirer,
                                      transcriber, translator, temp_root)
        state = await pipeline.run(url, "Spanish", session_id, sink)
    """

    def __init__(
        self,
        admission: PaymentAdmission,
        captions: CaptionFetcher,
        acquirer: AudioAcquirer,
        transcriber: SpeechTranscriber,
        translator: Translator,
        temp_root: Path,
    ):
        """
        Initialize pipeline.

        Args:
            admission: Payment admission check
            captions: Caption fetcher
            acquirer: Audio downloader
            transcriber: Speech-to-text stage
            translator: Translation stage
            temp_root: Directory holding per-job audio directories
        """
        self.admission = admission
        self.captions = captions
        self.acquirer = acquirer
        self.transcriber = transcriber
        self.translator = translator
        self.temp_root = Path(temp_root)

    async def run(
        self,
        raw_url: str,
        target_language: str | None,
        session_id: str | None,
        sink: EventSink,
        is_cancelled: CancelCheck = _never_cancelled,
    ) -> PipelineState:
        """
        Run one transcript job, emitting events to sink.

        Never raises: failures become a terminal error payload. If
        is_cancelled() turns true, the job stops at the next stage boundary
        without emitting anything further.

        Args:
            raw_url: User-supplied video URL or id
            target_language: Target language name, or None for transcription only
            session_id: Payment session id (may be None)
            sink: Receives each serialized event
            is_cancelled: Returns True once the client has disconnected

        Returns:
            Final PipelineState (stage is COMPLETE or FAILED)
        """
        state = PipelineState()
        reporter = ProgressReporter(sink)
        start_time = time.time()

        def checkpoint() -> None:
            if is_cancelled():
                raise JobCancelled()

        try:
            await self._run_stages(
                state, reporter, checkpoint, raw_url, target_language, session_id
            )
        except JobCancelled:
            state.stage = PipelineStage.FAILED
            reporter.finished = True
            logger.info(f"Job cancelled by client disconnect at progress {reporter.progress}")
        except Exception as e:
            logger.exception(f"Unexpected pipeline error: {e}")
            await self._fail(state, reporter, classify_error(e))
        finally:
            self._cleanup(state)

        elapsed = time.time() - start_time
        perf_logger.info(
            f"PERF | job | stage={state.stage.value} | "
            f"method={state.method.value if state.method else '-'} | "
            f"words={state.word_count} | total={elapsed:.1f}s"
        )
        return state

    async def _run_stages(
        self,
        state: PipelineState,
        reporter: ProgressReporter,
        checkpoint,
        raw_url: str,
        target_language: str | None,
        session_id: str | None,
    ) -> None:
        # Id first: admission compares the entitlement against it
        try:
            video_id = resolve_video_id(raw_url)
        except InvalidVideoUrlError as e:
            await self._fail(state, reporter, classify_error(e))
            return

        request = VideoRequest(
            url=raw_url.strip(),
            video_id=video_id,
            target_language=target_language or None,
            session_id=session_id or None,
        )

        decision = await self.admission.check(request)
        if not decision.admitted:
            await self._fail(
                state,
                reporter,
                ClassifiedError.of(decision.reason, technical=f"Admission rejected: {decision.reason.value}"),
            )
            return

        state.stage = PipelineStage.ADMITTED
        await reporter.stage(PipelineStage.ADMITTED, "Initializing...")

        state.stage = PipelineStage.ID_RESOLVED
        await reporter.stage(PipelineStage.ID_RESOLVED, f"Video found: {video_id}")
        checkpoint()

        # ─── Source text: captions, else audio + speech recognition ───
        captions = await self.captions.fetch(video_id)
        state.stage = PipelineStage.CAPTIONS_ATTEMPTED
        await reporter.stage(PipelineStage.CAPTIONS_ATTEMPTED, "Checking for captions...")

        if captions is not None:
            state.source_text = captions.text
            state.method = TranscriptionMethod.CAPTIONS
            await reporter.update(CAPTIONS_HIT_PERCENT, "Captions found")
        else:
            await reporter.update(CAPTIONS_MISS_PERCENT, "No captions available, using audio")
            checkpoint()
            if not await self._transcribe_audio(state, reporter, checkpoint, request):
                return

        state.stage = PipelineStage.SOURCE_READY
        await reporter.stage(PipelineStage.SOURCE_READY, "Transcript ready")
        checkpoint()

        # ─── Translation ───
        if request.wants_translation:
            state.stage = PipelineStage.TRANSLATING
            outcome = await self.translator.translate(state.source_text, request.target_language)
            if not outcome.ok:
                await self._fail(state, reporter, classify_error(outcome.error))
                return
            state.translated_text = outcome.value
            await reporter.stage(
                PipelineStage.TRANSLATING, f"Translated to {request.target_language}"
            )
            checkpoint()
        else:
            state.translated_text = state.source_text

        # ─── Finalize ───
        state.stage = PipelineStage.FINALIZING
        state.word_count = count_words(state.translated_text)
        state.reading_time = reading_time_minutes(state.word_count)
        await reporter.stage(PipelineStage.FINALIZING, "Finalizing...")

        result = TranscriptResult(
            original=state.source_text,
            translated=state.translated_text,
            transcript=state.translated_text,
            word_count=state.word_count,
            reading_time=state.reading_time,
            video_id=request.video_id,
            transcription_method=state.method,
            target_language=request.target_language,
        )
        await reporter.finish(result.model_dump(mode="json", by_alias=True, exclude_none=True))
        state.stage = PipelineStage.COMPLETE
        logger.info(
            f"Job complete: {request.video_id} via {state.method.value}, "
            f"{state.word_count} words"
            + (f", translated to {request.target_language}" if request.wants_translation else "")
        )

    async def _transcribe_audio(
        self,
        state: PipelineState,
        reporter: ProgressReporter,
        checkpoint,
        request: VideoRequest,
    ) -> bool:
        """Audio path. Returns False if the job failed."""
        state.stage = PipelineStage.AUDIO_ACQUIRING
        await reporter.stage(PipelineStage.AUDIO_ACQUIRING, "Downloading audio...")

        state.audio_dir = self._create_job_dir(request.video_id)
        outcome = await self.acquirer.acquire(request.url, state.audio_dir)
        if not outcome.ok:
            await self._fail(state, reporter, classify_error(outcome.error))
            return False

        state.audio_path = outcome.value
        state.stage = PipelineStage.AUDIO_ACQUIRED
        await reporter.stage(PipelineStage.AUDIO_ACQUIRED, "Audio downloaded, transcribing...")
        checkpoint()

        state.stage = PipelineStage.TRANSCRIBING
        outcome = await self.transcriber.transcribe(state.audio_path)
        if not outcome.ok:
            await self._fail(state, reporter, classify_error(outcome.error))
            return False

        state.source_text = outcome.value
        state.method = TranscriptionMethod.ASR
        await reporter.stage(PipelineStage.TRANSCRIBING, "Audio transcribed")
        return True

    async def _fail(
        self,
        state: PipelineState,
        reporter: ProgressReporter,
        error: ClassifiedError,
    ) -> None:
        state.stage = PipelineStage.FAILED
        if error.kind is ErrorKind.UNEXPECTED:
            logger.error(f"Job failed [{error.kind.value}]: {error.technical}")
        else:
            logger.warning(f"Job failed [{error.kind.value}]: {error.technical}")
        await reporter.finish(error.to_payload().model_dump(by_alias=True, exclude_none=True))

    def _create_job_dir(self, video_id: str) -> Path:
        """Per-job directory so concurrent jobs never share files."""
        self.temp_root.mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix=f"{video_id}_", dir=self.temp_root))

    def _cleanup(self, state: PipelineState) -> None:
        """Remove the job's audio directory; clear the path only once it is gone."""
        if state.audio_dir is None:
            return

        try:
            shutil.rmtree(state.audio_dir)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to remove job directory {state.audio_dir}: {e}")
            return

        logger.debug(f"Removed job directory {state.audio_dir}")
        state.audio_dir = None
        state.audio_path = None

