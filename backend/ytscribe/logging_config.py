"""
Logging setup for the API process.

Environment variables (read through Settings):
- LOG_LEVEL: level of the root logger (default: INFO)
- LOG_FORMAT: "structured" (pipe-separated, default) or "simple"
- LOG_LEVEL_<STAGE>: override for one job stage, e.g. LOG_LEVEL_ACQUIRER=DEBUG

Timing lines from every stage go to the "ytscribe.perf" logger and can be
silenced on their own with LOG_LEVEL_PERF.
"""

import logging
import logging.config
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ytscribe.config import Settings


# LOG_LEVEL_<key> -> logger it controls
STAGE_LOGGERS = {
    "pipeline": "ytscribe.services.pipeline",
    "acquirer": "ytscribe.services.audio_acquirer",
    "transcriber": "ytscribe.services.transcriber",
    "translator": "ytscribe.services.translator",
    "admission": "ytscribe.services.admission",
    "payments": "ytscribe.services.payment_client",
    "perf": "ytscribe.perf",
}

QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "stripe")

SIMPLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def short_logger_name(name: str) -> str:
    """
    Drop the package prefixes that every logger shares.

    >>> short_logger_name("ytscribe.services.pipeline.driver")
    'pipeline.driver'
    >>> short_logger_name("ytscribe.api.sse")
    'api.sse'
    >>> short_logger_name("uvicorn.error")
    'uvicorn.error'
    """
    for prefix in ("ytscribe.services.", "ytscribe."):
        if name.startswith(prefix):
            return name[len(prefix):]
    return name


class StructuredFormatter(logging.Formatter):
    """timestamp | level | logger | message, traceback on following lines."""

    def __init__(self):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = " | ".join(
            (
                self.formatTime(record, self.datefmt),
                f"{record.levelname:8}",
                f"{short_logger_name(record.name):18}",
                record.getMessage(),
            )
        )
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _level(value: str | None, default: str) -> str:
    name = (value or default).upper()
    return name if isinstance(logging.getLevelName(name), int) else default


def build_logging_config(settings: "Settings") -> dict:
    """
    dictConfig schema for the given settings.

    Unknown level names fall back to the root level (or INFO for the root).
    """
    root_level = _level(settings.log_level, "INFO")

    if settings.log_format == "structured":
        formatter = {"()": StructuredFormatter}
    else:
        formatter = {"format": SIMPLE_FORMAT}

    loggers = {name: {"level": "WARNING"} for name in QUIET_LOGGERS}
    for key, logger_name in STAGE_LOGGERS.items():
        override = getattr(settings, f"log_level_{key}", None)
        if override:
            loggers[logger_name] = {"level": _level(override, root_level)}

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": formatter},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "default",
            }
        },
        "loggers": loggers,
        "root": {"level": root_level, "handlers": ["stdout"]},
    }


def setup_logging(settings: "Settings") -> None:
    """Replace the root handlers with one stdout handler configured from settings."""
    logging.config.dictConfig(build_logging_config(settings))
