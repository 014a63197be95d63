"""
Summary generator for finished transcripts.

Uses the same provider chain as the translator, but falls back to the
secondary provider on any primary failure.
"""

import logging

from ytscribe.config import Settings, load_prompt
from ytscribe.services.ai_clients import AIClientError, AIClientResponseError, BaseAIClient
from ytscribe.services.errors import STAGE_SUMMARY
from ytscribe.services.outcome import StageOutcome

logger = logging.getLogger(__name__)

LENGTH_GUIDANCE = {
    "short": "Keep the summary concise, around 100-150 words.",
    "medium": "Provide a balanced summary, around 200-300 words.",
    "long": "Provide a detailed summary, around 400-500 words.",
}


class SummaryGenerator:
    """
    Generates a summary of transcript text.

    Example:
        generator = SummaryGenerator.from_settings(settings, groq, claude)
        outcome = await generator.summarize(text, "short")
    """

    def __init__(
        self,
        primary: BaseAIClient | None,
        secondary: BaseAIClient | None,
        prompt_template: str,
        temperature: float = 0.5,
        max_tokens: int = 8192,
    ):
        self.providers = [p for p in (primary, secondary) if p is not None]
        self.prompt_template = prompt_template
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        primary: BaseAIClient | None,
        secondary: BaseAIClient | None = None,
    ) -> "SummaryGenerator":
        return cls(primary, secondary, load_prompt("summary", "user", settings))

    async def summarize(self, text: str, summary_length: str = "medium") -> StageOutcome[str]:
        """
        Summarize text, trying each configured provider in turn.

        Args:
            text: Transcript text
            summary_length: "short", "medium" or "long"

        Returns:
            StageOutcome with the summary, or a "summary" failure
            carrying the last provider error
        """
        if not text.strip():
            return StageOutcome.failure(STAGE_SUMMARY, "No text provided for summarization")
        if not self.providers:
            return StageOutcome.failure(
                STAGE_SUMMARY,
                "No summary provider configured",
                AIClientResponseError("No summary API key configured", status_code=401),
            )

        guidance = LENGTH_GUIDANCE.get(summary_length, LENGTH_GUIDANCE["medium"])
        prompt = self.prompt_template.format(length_guidance=guidance, text=text)
        messages = [{"role": "user", "content": prompt}]

        last_error: AIClientError | None = None
        for client in self.providers:
            try:
                content, usage = await client.chat(
                    messages, temperature=self.temperature, num_predict=self.max_tokens
                )
            except AIClientError as e:
                logger.warning(f"Summary with {client.provider} failed: {e}")
                last_error = e
                continue

            if content.strip():
                logger.info(
                    f"Summary generated by {client.provider}: {len(content)} chars "
                    f"({summary_length}, {usage.total_tokens} tokens)"
                )
                return StageOutcome.success(content.strip())
            logger.warning(f"Summary with {client.provider} returned empty text")

        message = str(last_error) if last_error else "Summary providers returned empty text"
        return StageOutcome.failure(STAGE_SUMMARY, message, last_error)
