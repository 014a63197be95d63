"""YouTube transcript extraction and translation service."""

__version__ = "0.1.0"
