"""
YouTube video identity resolver.

Normalizes user input into the canonical 11-character video id.

Recognized inputs:
    https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42s
    https://youtu.be/dQw4w9WgXcQ?si=abc
    https://www.youtube.com/embed/dQw4w9WgXcQ
    https://www.youtube.com/shorts/dQw4w9WgXcQ/
    dQw4w9WgXcQ
"""

import re

VIDEO_ID_CHARS = r"[A-Za-z0-9_-]{11}"

# First matching pattern wins; group 1 is the id.
VIDEO_ID_PATTERNS = (
    re.compile(rf"(?:youtube\.com/watch\?(?:[^#]*?&)?v=)({VIDEO_ID_CHARS})"),
    re.compile(rf"(?:youtu\.be/)({VIDEO_ID_CHARS})"),
    re.compile(rf"(?:youtube(?:-nocookie)?\.com/embed/)({VIDEO_ID_CHARS})"),
    re.compile(rf"(?:youtube\.com/shorts/)({VIDEO_ID_CHARS})"),
    re.compile(rf"^({VIDEO_ID_CHARS})$"),
)


class InvalidVideoUrlError(ValueError):
    """Raised when input is not a recognizable YouTube video reference."""

    def __init__(self, raw: str):
        self.raw = raw
        super().__init__(f"Invalid YouTube URL: {raw!r}")


def extract_video_id(raw: str) -> str | None:
    """
    Extract the canonical video id from a URL or bare id.

    Query-string tails, fragments and trailing slashes after the id are
    ignored. No network I/O.

    Args:
        raw: User-supplied URL or id

    Returns:
        11-character video id, or None if the input is not recognized
    """
    if not raw:
        return None

    candidate = raw.strip()
    for pattern in VIDEO_ID_PATTERNS:
        match = pattern.search(candidate)
        if match:
            return match.group(1)
    return None


def resolve_video_id(raw: str) -> str:
    """
    Like extract_video_id(), but raises on unrecognized input.

    Raises:
        InvalidVideoUrlError: If no pattern matches
    """
    video_id = extract_video_id(raw)
    if video_id is None:
        raise InvalidVideoUrlError(raw)
    return video_id
