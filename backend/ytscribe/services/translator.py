"""
Translation service.

Translates source text with the primary chat provider and switches to the
secondary provider when the primary is throttled. Long inputs are split
at sentence boundaries and translated chunk by chunk, in order.
"""

import logging
import time

from ytscribe.config import Settings, load_prompt
from ytscribe.services.ai_clients import AIClientError, AIClientResponseError, BaseAIClient
from ytscribe.services.errors import STAGE_TRANSLATION, is_rate_limit_error
from ytscribe.services.outcome import StageOutcome
from ytscribe.utils.text_utils import split_into_chunks

logger = logging.getLogger(__name__)
perf_logger = logging.getLogger("ytscribe.perf")

DEFAULT_PROMPT = (
    "Translate the following text to {target_language}. "
    "Only provide the translation, no explanations:\n\n{text}"
)


class Translator:
    """
    Text translator with rate-limit fallback.

    Once the primary provider signals throttling, the remaining chunks of
    that job go to the secondary provider. If the secondary is throttled
    too, the primary's error is reported so its retry hint survives.

    Example:
        translator = Translator(primary=groq, secondary=claude)
        outcome = await translator.translate(text, "Spanish")
        if outcome.ok:
            print(outcome.value)
    """

    def __init__(
        self,
        primary: BaseAIClient | None,
        secondary: BaseAIClient | None = None,
        prompt_template: str = DEFAULT_PROMPT,
        chunk_chars: int = 15000,
        temperature: float = 0.3,
        max_tokens: int = 32000,
    ):
        """
        Initialize translator.

        Args:
            primary: Primary chat provider (None if not configured)
            secondary: Fallback chat provider (None if not configured)
            prompt_template: Template with {target_language} and {text}
            chunk_chars: Maximum characters sent per request
            temperature: Sampling temperature
            max_tokens: Output token budget per request
        """
        self.primary = primary
        self.secondary = secondary
        self.prompt_template = prompt_template
        self.chunk_chars = chunk_chars
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        primary: BaseAIClient | None,
        secondary: BaseAIClient | None = None,
    ) -> "Translator":
        """Create Translator using prompt and limits from settings."""
        return cls(
            primary=primary,
            secondary=secondary,
            prompt_template=load_prompt("translation", "user", settings),
            chunk_chars=settings.translation_chunk_chars,
            temperature=settings.translation_temperature,
            max_tokens=settings.translation_max_tokens,
        )

    @property
    def is_configured(self) -> bool:
        return self.primary is not None or self.secondary is not None

    def _messages(self, chunk: str, target_language: str) -> list[dict]:
        prompt = self.prompt_template.format(target_language=target_language, text=chunk)
        return [{"role": "user", "content": prompt}]

    async def _call(self, client: BaseAIClient, chunk: str, target_language: str) -> str:
        content, _ = await client.chat(
            self._messages(chunk, target_language),
            temperature=self.temperature,
            num_predict=self.max_tokens,
        )
        return content.strip()

    async def translate(self, text: str, target_language: str) -> StageOutcome[str]:
        """
        Translate text into the target language.

        Args:
            text: Source text
            target_language: Target language name, e.g. "Spanish"

        Returns:
            StageOutcome with translated text, or a "translation" failure
        """
        if not self.is_configured:
            logger.error("No translation provider configured")
            return StageOutcome.failure(
                STAGE_TRANSLATION,
                "No translation provider configured",
                AIClientResponseError("No translation API key configured", status_code=401),
            )

        chunks = split_into_chunks(text, self.chunk_chars)
        if len(chunks) > 1:
            logger.info(f"Text too long ({len(text)} chars), split into {len(chunks)} chunks")

        start_time = time.time()
        use_secondary = self.primary is None
        primary_error: AIClientError | None = None
        translated: list[str] = []

        for i, chunk in enumerate(chunks, 1):
            logger.debug(f"Translating chunk {i}/{len(chunks)} ({len(chunk)} chars) to {target_language}")

            if not use_secondary:
                try:
                    translated.append(await self._call(self.primary, chunk, target_language))
                    continue
                except AIClientError as e:
                    if self.secondary is None or not is_rate_limit_error(e):
                        logger.error(f"Translation failed on chunk {i}/{len(chunks)}: {e}")
                        return StageOutcome.failure(STAGE_TRANSLATION, str(e), e)
                    logger.warning(
                        f"Primary translator ({self.primary.provider}) rate-limited, "
                        f"falling back to {self.secondary.provider}: {e}"
                    )
                    primary_error = e
                    use_secondary = True

            try:
                translated.append(await self._call(self.secondary, chunk, target_language))
            except AIClientError as e:
                if primary_error is not None and is_rate_limit_error(e):
                    logger.error(f"Both translation providers rate-limited: {e}")
                    return StageOutcome.failure(STAGE_TRANSLATION, str(primary_error), primary_error)
                logger.error(f"Fallback translation failed on chunk {i}/{len(chunks)}: {e}")
                return StageOutcome.failure(STAGE_TRANSLATION, str(e), e)

        result = " ".join(part for part in translated if part)
        if not result:
            return StageOutcome.failure(STAGE_TRANSLATION, "Translation provider returned empty text")

        elapsed = time.time() - start_time
        provider = self.secondary.provider if use_secondary else self.primary.provider
        perf_logger.info(
            f"PERF | translate | lang={target_language} | chunks={len(chunks)} | "
            f"chars={len(text)}->{len(result)} | provider={provider} | time={elapsed:.1f}s"
        )
        return StageOutcome.success(result)
