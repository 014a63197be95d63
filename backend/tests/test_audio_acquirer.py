"""Tests for audio acquisition with retry/backoff."""

from pathlib import Path

import pytest

from conftest import VIDEO_ID, VIDEO_URL, RecordingSleep
from ytscribe.services.audio_acquirer import (
    AudioAcquirer,
    AudioAcquisitionError,
    DownloadRun,
    has_retry_marker,
)
from ytscribe.services.errors import ErrorKind, classify_error
from ytscribe.utils.media_utils import find_audio_file

BOT_CHECK = "ERROR: [youtube] dQw4w9WgXcQ: Sign in to confirm you're not a bot"


def scripted_runner(script: list[tuple[int | None, str, list[str]]]):
    """Runner replaying (returncode, output, files_to_create) per attempt."""
    calls: list[list[str]] = []

    def runner(cmd: list[str], timeout: float) -> DownloadRun:
        returncode, output, files = script[min(len(calls), len(script) - 1)]
        calls.append(cmd)
        output_dir = Path(cmd[cmd.index("-o") + 1]).parent
        for name in files:
            (output_dir / name).write_bytes(b"audio")
        return DownloadRun(returncode=returncode, output=output, timed_out=returncode is None)

    runner.calls = calls
    return runner


def make_acquirer(runner, sleep: RecordingSleep) -> AudioAcquirer:
    return AudioAcquirer(runner=runner, settle_delay=0, sleep=sleep)


class TestAcquire:
    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self, tmp_path, recording_sleep):
        runner = scripted_runner([(0, "", [f"{VIDEO_ID}.webm"])])

        outcome = await make_acquirer(runner, recording_sleep).acquire(VIDEO_URL, tmp_path)

        assert outcome.ok
        assert outcome.value == (tmp_path / f"{VIDEO_ID}.webm").resolve()
        assert outcome.value.is_absolute()
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_bot_check_retried_with_backoff(self, tmp_path, recording_sleep):
        runner = scripted_runner(
            [(1, BOT_CHECK, [])] * 3 + [(0, "", [f"{VIDEO_ID}.m4a"])]
        )

        outcome = await make_acquirer(runner, recording_sleep).acquire(VIDEO_URL, tmp_path)

        assert outcome.ok
        assert len(runner.calls) == 4
        assert recording_sleep.delays == [5, 10, 20]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, tmp_path, recording_sleep):
        runner = scripted_runner([(1, BOT_CHECK, [])])

        outcome = await make_acquirer(runner, recording_sleep).acquire(VIDEO_URL, tmp_path)

        assert not outcome.ok
        assert len(runner.calls) == 4
        assert recording_sleep.delays == [5, 10, 20]
        cause = outcome.error.cause
        assert isinstance(cause, AudioAcquisitionError)
        assert cause.attempts == 4
        assert "Sign in to confirm" in cause.last_output
        assert classify_error(outcome.error).kind is ErrorKind.NO_CAPTIONS_AND_NO_AUDIO

    @pytest.mark.asyncio
    async def test_non_retryable_failure_aborts(self, tmp_path, recording_sleep):
        runner = scripted_runner([(1, "ERROR: [youtube] dQw4w9WgXcQ: Video unavailable", [])])

        outcome = await make_acquirer(runner, recording_sleep).acquire(VIDEO_URL, tmp_path)

        assert not outcome.ok
        assert len(runner.calls) == 1
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_clean_exit_without_file_is_retried(self, tmp_path, recording_sleep):
        runner = scripted_runner([(0, "", []), (0, "", [f"{VIDEO_ID}.opus"])])

        outcome = await make_acquirer(runner, recording_sleep).acquire(VIDEO_URL, tmp_path)

        assert outcome.ok
        assert outcome.value.name == f"{VIDEO_ID}.opus"
        assert recording_sleep.delays == [5]

    @pytest.mark.asyncio
    async def test_timed_out_attempt_without_marker_aborts(self, tmp_path, recording_sleep):
        runner = scripted_runner([(None, "[download]  12.0% of 3.2MiB", [])])

        outcome = await make_acquirer(runner, recording_sleep).acquire(VIDEO_URL, tmp_path)

        assert not outcome.ok
        assert len(runner.calls) == 1

    @pytest.mark.asyncio
    async def test_missing_executable(self, tmp_path, recording_sleep):
        def runner(cmd, timeout):
            raise FileNotFoundError(2, "No such file or directory", cmd[0])

        outcome = await make_acquirer(runner, recording_sleep).acquire(VIDEO_URL, tmp_path)

        assert not outcome.ok
        assert outcome.error.cause.attempts == 1

    @pytest.mark.asyncio
    async def test_settle_delay_uses_sleep(self, tmp_path, recording_sleep):
        runner = scripted_runner([(0, "", [f"{VIDEO_ID}.webm"])])
        acquirer = AudioAcquirer(runner=runner, settle_delay=1.5, sleep=recording_sleep)

        outcome = await acquirer.acquire(VIDEO_URL, tmp_path)

        assert outcome.ok
        assert recording_sleep.delays == [1.5]


class TestCommand:
    def test_build_command(self, tmp_path):
        cmd = AudioAcquirer(yt_dlp_path="/usr/bin/yt-dlp").build_command(VIDEO_URL, tmp_path)

        assert cmd[0] == "/usr/bin/yt-dlp"
        assert cmd[cmd.index("-f") + 1] == "bestaudio"
        assert "--no-playlist" in cmd
        assert cmd[cmd.index("-o") + 1] == str(tmp_path / "%(id)s.%(ext)s")
        assert cmd[-1] == VIDEO_URL

    def test_backoff_delays(self):
        acquirer = AudioAcquirer()

        assert [acquirer.backoff_delay(i) for i in range(3)] == [5, 10, 20]

    @pytest.mark.parametrize(
        "output, expected",
        [
            (BOT_CHECK, True),
            ("ERROR: HTTP Error 429: Too Many Requests", True),
            ("ERROR: HTTP Error 403: Forbidden", True),
            ("ERROR: Video unavailable", False),
        ],
    )
    def test_retry_markers(self, output, expected):
        assert has_retry_marker(output) is expected


class TestFindAudioFile:
    def test_lexicographically_greatest_wins(self, tmp_path):
        for name in ("a.webm", "b.m4a", "c.part", "notes.txt"):
            (tmp_path / name).write_bytes(b"x")
        (tmp_path / "z.webm").mkdir()

        assert find_audio_file(tmp_path) == (tmp_path / "b.m4a").resolve()

    def test_empty_directory(self, tmp_path):
        assert find_audio_file(tmp_path) is None

    def test_missing_directory(self, tmp_path):
        assert find_audio_file(tmp_path / "missing") is None
