"""
Application configuration and settings.
"""

from functools import lru_cache
from pathlib import Path

import yaml
from pydantic_settings import BaseSettings

BACKEND_ROOT = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server
    port: int = 3000
    frontend_url: str = "http://localhost:5173"

    # Payments (Stripe)
    payment_required: bool = True
    stripe_secret_key: str | None = None
    stripe_webhook_secret: str | None = None
    stripe_price_basic: str | None = None
    stripe_price_premium: str | None = None
    currency: str = "usd"

    # Translation providers (primary: Groq, secondary: Claude)
    groq_api_key: str | None = None
    groq_url: str = "https://api.groq.com/openai/v1"
    groq_model: str = "llama-3.3-70b-versatile"
    anthropic_api_key: str | None = None
    claude_model: str = "claude-sonnet-4-5"
    translation_temperature: float = 0.3
    translation_max_tokens: int = 32000
    translation_fallback_max_tokens: int = 8192
    translation_chunk_chars: int = 15000
    llm_timeout: int = 300

    # Speech-to-text (OpenAI-compatible Whisper endpoint)
    openai_api_key: str | None = None
    whisper_url: str = "https://api.openai.com/v1"
    whisper_model: str = "whisper-1"
    whisper_language: str = "en"
    whisper_max_upload_mb: float = 25.0
    whisper_timeout: float = 600.0

    # Audio downloader (yt-dlp subprocess)
    yt_dlp_path: str = "yt-dlp"
    download_timeout: float = 120.0
    download_max_attempts: int = 4
    download_backoff_base: float = 5.0
    download_settle_delay: float = 1.5
    download_output_limit: int = 50 * 1024 * 1024

    # Paths
    temp_dir: Path = BACKEND_ROOT / "temp"
    config_dir: Path = BACKEND_ROOT / "config"

    # Logging
    log_level: str = "INFO"
    log_format: str = "structured"  # "simple" or "structured"

    # Per-module log levels (optional overrides)
    log_level_pipeline: str | None = None
    log_level_acquirer: str | None = None
    log_level_transcriber: str | None = None
    log_level_translator: str | None = None
    log_level_admission: str | None = None
    log_level_payments: str | None = None
    log_level_perf: str | None = None

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_prompt(
    stage: str,
    component: str,
    settings: Settings | None = None,
) -> str:
    """
    Load a prompt template from config_dir/prompts/{stage}/{component}.md.

    Args:
        stage: Prompt stage ("translation", "summary")
        component: Prompt component ("user", "system")
        settings: Optional settings instance

    Returns:
        Prompt template content

    Raises:
        FileNotFoundError: If the prompt file does not exist
    """
    if settings is None:
        settings = get_settings()

    path = settings.config_dir / "prompts" / stage / f"{component}.md"
    if not path.exists():
        raise FileNotFoundError(
            f"Prompt not found: stage={stage}, component={component}. Checked: {path}"
        )
    return path.read_text(encoding="utf-8")


def load_plans_config(settings: Settings | None = None) -> dict:
    """
    Load plan table from config/plans.yaml.

    Args:
        settings: Optional settings instance

    Returns:
        Dict with "plans" mapping plan id -> descriptor
    """
    if settings is None:
        settings = get_settings()

    plans_path = settings.config_dir / "plans.yaml"
    with open(plans_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def load_languages_config(settings: Settings | None = None) -> dict:
    """
    Load supported target languages from config/languages.yaml.

    Args:
        settings: Optional settings instance

    Returns:
        Dict with "languages" mapping language code -> display name
    """
    if settings is None:
        settings = get_settings()

    languages_path = settings.config_dir / "languages.yaml"
    with open(languages_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)
