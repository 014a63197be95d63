"""
Groq API client implementation.

Async HTTP client for Groq's OpenAI-compatible chat completions endpoint,
used as the primary translation and summary provider.
"""

import logging

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

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

DEFAULT_GROQ_MODEL = "llama-3.3-70b-versatile"

# Transport failures are converted to AIClient errors inside chat(),
# so retry on those; HTTP error responses (429 included) are not retried.
RETRY_DECORATOR = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=60),
    retry=retry_if_exception_type((AIClientConnectionError, AIClientTimeoutError)),
    reraise=True,
)


class GroqClient(BaseAIClientImpl):
    """
    Async HTTP client for the Groq chat completions API.

    Example:
        async with GroqClient.from_settings(settings) as client:
            content, usage = await client.chat(
                [{"role": "user", "content": "Translate: hello"}],
                temperature=0.3,
            )
    """

    provider = "groq"

    def __init__(
        self,
        config: AIClientConfig,
        default_model: str = DEFAULT_GROQ_MODEL,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize Groq client.

        Args:
            config: AI client configuration with API key and base URL
            default_model: Default model for chat completions
            transport: Optional httpx transport (tests use MockTransport)

        Raises:
            ValueError: If API key is not provided
        """
        super().__init__(config)
        self.default_model = default_model

        if not config.api_key:
            raise ValueError("GroqClient requires API key. Set GROQ_API_KEY environment variable.")

        # No global timeout - each request sets its own timeout explicitly
        self.http_client = httpx.AsyncClient(
            timeout=None,
            transport=transport,
            headers={"Authorization": f"Bearer {config.api_key}"},
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GroqClient":
        """
        Create GroqClient from application settings.

        Raises:
            ValueError: If GROQ_API_KEY is not set
        """
        config = AIClientConfig(
            base_url=settings.groq_url.rstrip("/"),
            api_key=settings.groq_api_key,
            timeout=settings.llm_timeout,
        )
        return cls(config=config, default_model=settings.groq_model)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.http_client.aclose()

    @RETRY_DECORATOR
    async def chat(
        self,
        messages: list[dict],
        model: str | None = None,
        temperature: float = 0.7,
        num_predict: int | None = None,
    ) -> tuple[str, ChatUsage]:
        """
        Chat completion using the /chat/completions endpoint.

        Args:
            messages: List of chat messages [{"role": "user", "content": "..."}]
            model: Model name (default: from settings)
            temperature: Sampling temperature (default: 0.7)
            num_predict: Max tokens to generate (default: None = model default)

        Returns:
            Tuple of (response_content, ChatUsage)

        Raises:
            AIClientError: If chat completion fails
        """
        if model is None:
            model = self.default_model

        logger.debug(f"Groq chat with {model}, {len(messages)} messages")

        request_body: dict = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
        }

        if num_predict is not None:
            request_body["max_tokens"] = num_predict

        response = None
        try:
            response = await self.http_client.post(
                f"{self.config.base_url}/chat/completions",
                json=request_body,
                timeout=self.config.timeout,
            )

            response.raise_for_status()
            result = response.json()

            content = result["choices"][0]["message"]["content"] or ""
            usage_data = result.get("usage") or {}
            usage = ChatUsage(
                input_tokens=usage_data.get("prompt_tokens", 0),
                output_tokens=usage_data.get("completion_tokens", 0),
            )
            logger.debug(
                f"Groq response: {len(content)} chars, "
                f"tokens: {usage.input_tokens} in / {usage.output_tokens} out"
            )

            return content, usage

        except httpx.TimeoutException as e:
            logger.error(f"Groq chat timeout with {model}: {e}")
            raise AIClientTimeoutError(
                "Chat timeout",
                provider=self.provider,
                model=model,
                original_error=e,
            ) from e

        except httpx.HTTPStatusError as e:
            logger.error(f"Groq chat HTTP error: {e.response.status_code}")
            raise AIClientResponseError(
                f"Chat failed: HTTP {e.response.status_code}",
                provider=self.provider,
                model=model,
                status_code=e.response.status_code,
                response_body=e.response.text[:2000],
                original_error=e,
            ) from e

        except httpx.ConnectError as e:
            logger.error(f"Cannot connect to Groq: {e}")
            raise AIClientConnectionError(
                f"Cannot connect to Groq at {self.config.base_url}",
                provider=self.provider,
                original_error=e,
            ) from e

        except httpx.TransportError as e:
            logger.error(f"Groq transport error: {type(e).__name__}: {e}")
            raise AIClientConnectionError(
                f"Groq connection failed: {type(e).__name__}: {e}",
                provider=self.provider,
                original_error=e,
            ) from e

        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error(f"Malformed Groq response: {type(e).__name__}: {e}")
            raise AIClientResponseError(
                f"Malformed chat response: {type(e).__name__}",
                provider=self.provider,
                model=model,
                response_body=response.text[:2000] if response is not None else None,
                original_error=e,
            ) from e
