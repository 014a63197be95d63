"""
Media utilities for downloaded audio artifacts.

Provides:
- Audio type detection by extension
- Selection of the downloaded artifact from an output directory
- File size helpers for upload limits
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# Containers and codecs yt-dlp may produce for "bestaudio"
AUDIO_EXTENSIONS = frozenset(
    {".webm", ".m4a", ".mp3", ".opus", ".aac", ".flac", ".wav", ".mkv", ".ogg", ".mp4"}
)


def is_audio_file(file_path: Path) -> bool:
    """Check if file is an audio file by extension.

    Args:
        file_path: Path to media file

    Returns:
        True if file has audio extension
    """
    return file_path.suffix.lower() in AUDIO_EXTENSIONS


def find_audio_file(directory: Path) -> Path | None:
    """Pick the audio artifact in a download directory.

    Only regular files with an audio extension count. When several match,
    the lexicographically greatest filename wins.

    Args:
        directory: Downloader output directory

    Returns:
        Absolute path to the chosen file, or None if nothing matched
    """
    if not directory.is_dir():
        return None

    candidates = sorted(
        (p for p in directory.iterdir() if p.is_file() and is_audio_file(p)),
        key=lambda p: p.name,
    )
    if not candidates:
        return None

    if len(candidates) > 1:
        logger.debug(f"Multiple audio files in {directory.name}: {[p.name for p in candidates]}")

    return candidates[-1].resolve()


def file_size_mb(file_path: Path) -> float:
    """File size in megabytes."""
    return file_path.stat().st_size / 1024 / 1024
