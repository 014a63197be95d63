"""
Claude API client implementation.

Async client for Anthropic's Claude API, used as the secondary provider
when the primary translator is throttled or unavailable.
"""

import json
import logging

from anthropic import APIConnectionError, APIStatusError, APITimeoutError, AsyncAnthropic

from ytscribe.config import Settings
from ytscribe.services.ai_clients.base import (
    AIClientConfig,
    AIClientConnectionError,
    AIClientResponseError,
    AIClientTimeoutError,
    BaseAIClientImpl,
    ChatUsage,
)

logger = logging.getLogger(__name__)

# Default Claude model (using alias for auto-updates)
DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-5"
DEFAULT_MAX_TOKENS = 8192


class ClaudeClient(BaseAIClientImpl):
    """
    Async client for Anthropic's Claude API.

    Example:
        async with ClaudeClient.from_settings(settings) as client:
            content, usage = await client.chat([
                {"role": "system", "content": "You are a translator."},
                {"role": "user", "content": "Hello!"},
            ])
    """

    provider = "claude"

    def __init__(
        self,
        config: AIClientConfig,
        default_model: str = DEFAULT_CLAUDE_MODEL,
        default_max_tokens: int = DEFAULT_MAX_TOKENS,
    ):
        """
        Initialize Claude client.

        Args:
            config: AI client configuration with API key
            default_model: Default Claude model to use
            default_max_tokens: Output budget when the caller gives none

        Raises:
            ValueError: If API key is not provided
        """
        super().__init__(config)
        self.default_model = default_model
        self.default_max_tokens = default_max_tokens

        if not config.api_key:
            raise ValueError(
                "ClaudeClient requires API key. "
                "Set ANTHROPIC_API_KEY environment variable."
            )

        self.client = AsyncAnthropic(
            api_key=config.api_key,
            timeout=config.timeout,
            max_retries=config.max_retries,
        )

        logger.info(f"ClaudeClient initialized, model: {default_model}")

    @classmethod
    def from_settings(cls, settings: Settings) -> "ClaudeClient":
        """
        Create ClaudeClient from application settings.

        Raises:
            ValueError: If ANTHROPIC_API_KEY is not set
        """
        config = AIClientConfig(
            base_url="https://api.anthropic.com",
            api_key=settings.anthropic_api_key,
            timeout=settings.llm_timeout,
            max_retries=3,
        )
        return cls(
            config=config,
            default_model=settings.claude_model,
            default_max_tokens=settings.translation_fallback_max_tokens,
        )

    async def close(self) -> None:
        """Close the client and release resources."""
        await self.client.close()
        logger.debug("ClaudeClient closed")

    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        temperature: float = 0.7,
        num_predict: int | None = None,
    ) -> tuple[str, ChatUsage]:
        """
        Chat completion using Claude Messages API.

        OpenAI-style messages are converted: "system" messages become the
        system parameter, the rest are passed as-is. The output budget is
        capped at the client's default.

        Args:
            messages: List of chat messages [{"role": "user", "content": "..."}]
            model: Model name (default: claude-sonnet)
            temperature: Sampling temperature (default: 0.7)
            num_predict: Max tokens to generate (default: client default)

        Returns:
            Tuple of (response_content, ChatUsage)

        Raises:
            AIClientError: If chat completion fails
        """
        if model is None:
            model = self.default_model

        max_tokens = min(num_predict or self.default_max_tokens, self.default_max_tokens)

        system_content = None
        chat_messages = []

        for msg in messages:
            if msg["role"] == "system":
                system_content = msg["content"]
            else:
                chat_messages.append({"role": msg["role"], "content": msg["content"]})

        logger.debug(
            f"Claude chat: model={model}, messages={len(chat_messages)}, "
            f"system={'yes' if system_content else 'no'}, max_tokens={max_tokens}"
        )

        kwargs = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": chat_messages,
        }
        if system_content:
            kwargs["system"] = system_content

        try:
            response = await self.client.messages.create(**kwargs)

        except APITimeoutError as e:
            logger.error(f"Claude timeout: {e}")
            raise AIClientTimeoutError(
                "Claude request timeout",
                provider=self.provider,
                model=model,
                original_error=e,
            ) from e

        except APIConnectionError as e:
            logger.error(f"Claude connection error: {e}")
            raise AIClientConnectionError(
                f"Cannot connect to Claude API: {e}",
                provider=self.provider,
                original_error=e,
            ) from e

        except APIStatusError as e:
            logger.error(f"Claude API error: {e.status_code} - {e.message}")
            body = json.dumps(e.body) if isinstance(e.body, dict) else e.body
            raise AIClientResponseError(
                f"Claude API error: {e.message}",
                provider=self.provider,
                model=model,
                status_code=e.status_code,
                response_body=str(body) if body else None,
                original_error=e,
            ) from e

        content = "".join(
            block.text for block in response.content if getattr(block, "type", "text") == "text"
        )
        usage = ChatUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )

        logger.info(
            f"Claude response: {len(content)} chars, "
            f"tokens: {usage.input_tokens} in / {usage.output_tokens} out"
        )

        return content, usage
