"""
Base AI client protocol for external model providers.

Defines the interface shared by the chat providers (Groq, Claude) so the
translator and summary generator can treat them interchangeably, plus the
exception hierarchy every provider client raises.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass
class AIClientConfig:
    """
    Configuration for AI client instances.

    Attributes:
        base_url: API endpoint URL
        timeout: Request timeout in seconds
        api_key: API key for authenticated services
        max_retries: Number of retry attempts for transient errors
    """

    base_url: str
    timeout: float = 300.0
    api_key: str | None = None
    max_retries: int = 3


@dataclass
class ChatUsage:
    """
    Token usage statistics from an LLM response.

    Attributes:
        input_tokens: Tokens in the input prompt
        output_tokens: Tokens generated in response
    """

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        """Total tokens used."""
        return self.input_tokens + self.output_tokens


@runtime_checkable
class BaseAIClient(Protocol):
    """
    Protocol for chat-completion providers.

    Example:
        async def translate(client: BaseAIClient, text: str) -> str:
            content, usage = await client.chat(
                [{"role": "user", "content": text}], temperature=0.3
            )
            return content
    """

    provider: str

    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        temperature: float = 0.7,
        num_predict: int | None = None,
    ) -> tuple[str, ChatUsage]:
        """
        Chat completion with message history.

        Returns:
            Tuple of (response_content, ChatUsage)

        Raises:
            AIClientError: If chat completion fails
        """
        ...

    async def close(self) -> None:
        """Close the client and release resources."""
        ...


class AIClientError(Exception):
    """
    Base exception for AI client errors.

    Attributes:
        message: Error description
        provider: Provider name (groq, claude, whisper)
        model: Model that caused the error
        original_error: Underlying exception if available
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
        original_error: Exception | None = None,
    ):
        self.message = message
        self.provider = provider
        self.model = model
        self.original_error = original_error
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message]
        if self.provider:
            parts.append(f"provider={self.provider}")
        if self.model:
            parts.append(f"model={self.model}")
        return " | ".join(parts)


class AIClientTimeoutError(AIClientError):
    """Raised when a request times out."""

    pass


class AIClientConnectionError(AIClientError):
    """Raised when connection to the provider fails."""

    pass


class AIClientResponseError(AIClientError):
    """
    Raised when the provider returns an error response.

    Attributes:
        status_code: HTTP status code if available
        response_body: Response body if available (JSON text for most providers)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.response_body = response_body


class BaseAIClientImpl(ABC):
    """
    Abstract base class for chat client implementations.

    Provides the async context manager protocol. Subclasses set
    ``provider`` and implement chat() and close().
    """

    provider: str = "unknown"

    def __init__(self, config: AIClientConfig):
        """
        Initialize AI client with configuration.

        Args:
            config: Client configuration with URL, timeout, etc.
        """
        self.config = config

    @abstractmethod
    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        temperature: float = 0.7,
        num_predict: int | None = None,
    ) -> tuple[str, ChatUsage]:
        """Chat completion with message history."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the client and release resources."""
        pass

    async def __aenter__(self) -> "BaseAIClientImpl":
        """Context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Context manager exit."""
        await self.close()
