"""
Text helpers shared by the pipeline and the translator.
"""

import math
import re

WORDS_PER_MINUTE = 200

# A sentence is a run of non-terminators followed by terminators,
# or the unterminated tail of the text.
SENTENCE_PATTERN = re.compile(r"[^.!?]+(?:[.!?]+|$)")


def count_words(text: str) -> int:
    """
    Count words in text.

    Args:
        text: Input text

    Returns:
        Number of whitespace-separated words

    Example:
        >>> count_words("Hello world")
        2
    """
    return len(text.split())


def reading_time_minutes(word_count: int, words_per_minute: int = WORDS_PER_MINUTE) -> int:
    """Reading time in whole minutes, rounded up."""
    return math.ceil(word_count / words_per_minute)


def split_sentences(text: str) -> list[str]:
    """Split text into sentences, keeping terminators and leading whitespace."""
    sentences = SENTENCE_PATTERN.findall(text)
    return [s for s in sentences if s.strip()] or ([text] if text.strip() else [])


def split_into_chunks(text: str, max_chars: int) -> list[str]:
    """
    Split text into chunks of at most max_chars, cutting at sentence boundaries.

    Sentences are packed greedily in order. A single sentence longer than
    max_chars is hard-split. Text that already fits is returned as one chunk.

    Args:
        text: Source text
        max_chars: Maximum chunk length in characters

    Returns:
        Ordered list of non-empty, stripped chunks
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")

    if len(text) <= max_chars:
        return [text] if text.strip() else []

    chunks: list[str] = []
    current = ""

    for sentence in split_sentences(text):
        if len(current) + len(sentence) <= max_chars:
            current += sentence
            continue

        if current.strip():
            chunks.append(current.strip())
        current = ""

        while len(sentence) > max_chars:
            chunks.append(sentence[:max_chars].strip())
            sentence = sentence[max_chars:]
        current = sentence

    if current.strip():
        chunks.append(current.strip())

    return [c for c in chunks if c]
