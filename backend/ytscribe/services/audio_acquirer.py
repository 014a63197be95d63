"""
Audio acquisition service using yt-dlp.

Downloads the best audio stream of a video into a job directory, retrying
when YouTube answers with bot-detection or throttling.
"""

import asyncio
import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from ytscribe.config import Settings
from ytscribe.services.errors import STAGE_DOWNLOAD
from ytscribe.services.outcome import StageOutcome
from ytscribe.utils.media_utils import file_size_mb, find_audio_file

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger("ytscribe.perf")

# Substrings in downloader output that mean "try again later"
RETRY_MARKERS = ("Sign in to confirm", "bot", "429", "403")

OUTPUT_TEMPLATE = "%(id)s.%(ext)s"


@dataclass
class DownloadRun:
    """Result of one downloader invocation."""

    returncode: int | None
    output: str
    timed_out: bool = False

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0 and not self.timed_out


class AudioAcquisitionError(Exception):
    """Raised (as a failure cause) when no audio could be downloaded.

    Attributes:
        attempts: Number of downloader invocations made
        last_output: Tail of the last downloader output
    """

    def __init__(self, message: str, attempts: int, last_output: str = ""):
        self.attempts = attempts
        self.last_output = last_output
        super().__init__(message)


Runner = Callable[[list[str], float], DownloadRun]
Sleeper = Callable[[float], Awaitable[None]]


def has_retry_marker(output: str) -> bool:
    """True if downloader output shows bot-detection or throttling."""
    return any(marker in output for marker in RETRY_MARKERS)


class AudioAcquirer:
    """
    Downloads video audio with bounded retries.

    Attempts are spaced by backoff_base * 2**n seconds (5, 10, 20 with the
    defaults). Retried: a clean exit with no audio file, or a failure whose
    output contains a retry marker. Anything else aborts.

    Example:
        acquirer = AudioAcquirer.from_settings(settings)
        outcome = await acquirer.acquire(url, job_dir)
        if outcome.ok:
            audio_path = outcome.value
    """

    def __init__(
        self,
        yt_dlp_path: str = "yt-dlp",
        timeout: float = 120.0,
        max_attempts: int = 4,
        backoff_base: float = 5.0,
        settle_delay: float = 1.5,
        output_limit: int = 50 * 1024 * 1024,
        runner: Runner | None = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        """
        Initialize audio acquirer.

        Args:
            yt_dlp_path: Downloader executable
            timeout: Wall-clock budget per attempt, seconds
            max_attempts: Initial attempt plus retries
            backoff_base: First retry delay, doubled per retry
            settle_delay: Wait before scanning the output directory
            output_limit: Characters of downloader output kept per attempt
            runner: Runs one downloader command (default: subprocess)
            sleep: Async sleep used for backoff and settling
        """
        self.yt_dlp_path = yt_dlp_path
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.settle_delay = settle_delay
        self.output_limit = output_limit
        self.runner = runner or self._run_subprocess
        self.sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> "AudioAcquirer":
        """Create AudioAcquirer from application settings."""
        return cls(
            yt_dlp_path=settings.yt_dlp_path,
            timeout=settings.download_timeout,
            max_attempts=settings.download_max_attempts,
            backoff_base=settings.download_backoff_base,
            settle_delay=settings.download_settle_delay,
            output_limit=settings.download_output_limit,
        )

    def build_command(self, url: str, output_dir: Path) -> list[str]:
        """Downloader command line for one attempt."""
        return [
            self.yt_dlp_path,
            "-f", "bestaudio",        # Best audio-only stream
            "--no-playlist",          # Never expand playlists
            "-o", str(output_dir / OUTPUT_TEMPLATE),
            url,
        ]

    def backoff_delay(self, retry_index: int) -> float:
        """Delay before retry number retry_index (zero-based)."""
        return self.backoff_base * 2**retry_index

    def _run_subprocess(self, cmd: list[str], timeout: float) -> DownloadRun:
        """
        Run the downloader with stderr merged into stdout.

        Runs in a thread pool; the caller wraps it with asyncio.to_thread.
        """
        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            output = e.output or ""
            if isinstance(output, bytes):
                output = output.decode("utf-8", errors="replace")
            return DownloadRun(returncode=None, output=output[-self.output_limit:], timed_out=True)

        return DownloadRun(
            returncode=result.returncode,
            output=(result.stdout or "")[-self.output_limit:],
        )

    async def acquire(self, url: str, output_dir: Path) -> StageOutcome[Path]:
        """
        Download audio for a video into output_dir.

        Args:
            url: Full video URL (the downloader needs the URL, not the id)
            output_dir: Job directory; created if missing

        Returns:
            StageOutcome with the absolute path of the audio file,
            or a "download" failure carrying AudioAcquisitionError
        """
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        cmd = self.build_command(url, output_dir)

        start_time = time.time()
        last_output = ""
        attempts = 0

        for attempt in range(self.max_attempts):
            if attempt > 0:
                delay = self.backoff_delay(attempt - 1)
                logger.warning(
                    f"Download retry {attempt}/{self.max_attempts - 1} in {delay:.0f}s: {url}"
                )
                await self.sleep(delay)

            attempts += 1
            logger.debug(f"Download attempt {attempts}: {' '.join(cmd)}")

            try:
                run = await asyncio.to_thread(self.runner, cmd, self.timeout)
            except OSError as e:
                logger.error(f"Cannot start downloader '{self.yt_dlp_path}': {e}")
                return StageOutcome.failure(
                    STAGE_DOWNLOAD,
                    f"Downloader could not be started: {e}",
                    AudioAcquisitionError(str(e), attempts),
                )

            last_output = run.output

            if self.settle_delay > 0:
                await self.sleep(self.settle_delay)

            audio_path = find_audio_file(output_dir)
            if audio_path is not None:
                elapsed = time.time() - start_time
                logger.info(
                    f"Audio downloaded: {audio_path.name} "
                    f"({file_size_mb(audio_path):.1f} MB) after {attempts} attempt(s)"
                )
                perf_logger.info(
                    f"PERF | download | attempts={attempts} | "
                    f"size={file_size_mb(audio_path):.1f}MB | time={elapsed:.1f}s"
                )
                return StageOutcome.success(audio_path)

            if run.succeeded:
                logger.warning(f"Downloader exited cleanly but no audio file appeared in {output_dir}")
                continue

            if has_retry_marker(run.output):
                status = "timed out" if run.timed_out else f"exit code {run.returncode}"
                logger.warning(f"Download blocked or throttled ({status}): {run.output[-300:]}")
                continue

            status = "timed out" if run.timed_out else f"exit code {run.returncode}"
            logger.error(f"Download failed ({status}), not retrying: {run.output[-500:]}")
            break

        logger.error(f"Audio download gave up after {attempts} attempt(s): {url}")
        return StageOutcome.failure(
            STAGE_DOWNLOAD,
            f"Audio download failed after {attempts} attempt(s)",
            AudioAcquisitionError(
                f"Audio download failed after {attempts} attempt(s)",
                attempts=attempts,
                last_output=last_output[-2000:],
            ),
        )
