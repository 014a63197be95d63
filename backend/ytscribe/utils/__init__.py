"""
Shared utilities.

Modules:
    text_utils: word counting, reading time, sentence-boundary chunking
    media_utils: audio artifact detection and selection
"""

from ytscribe.utils.media_utils import (
    AUDIO_EXTENSIONS,
    file_size_mb,
    find_audio_file,
    is_audio_file,
)
from ytscribe.utils.text_utils import (
    count_words,
    reading_time_minutes,
    split_into_chunks,
    split_sentences,
)

__all__ = [
    # text_utils
    "count_words",
    "reading_time_minutes",
    "split_into_chunks",
    "split_sentences",
    # media_utils
    "AUDIO_EXTENSIONS",
    "file_size_mb",
    "find_audio_file",
    "is_audio_file",
]
