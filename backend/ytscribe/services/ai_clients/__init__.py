"""
AI Clients package for external model providers.

- GroqClient: primary chat provider (translation, summaries)
- ClaudeClient: secondary chat provider
- WhisperClient: speech-to-text uploads

Usage:
    from ytscribe.services.ai_clients import GroqClient, BaseAIClient

    async def process(client: BaseAIClient) -> str:
        content, _ = await client.chat([{"role": "user", "content": "Hello"}])
        return content
"""

from ytscribe.services.ai_clients.base import (
    AIClientConfig,
    AIClientConnectionError,
    AIClientError,
    AIClientResponseError,
    AIClientTimeoutError,
    BaseAIClient,
    BaseAIClientImpl,
    ChatUsage,
)
from ytscribe.services.ai_clients.claude_client import ClaudeClient
from ytscribe.services.ai_clients.groq_client import GroqClient
from ytscribe.services.ai_clients.whisper_client import WhisperClient

__all__ = [
    # Protocol and base classes
    "BaseAIClient",
    "BaseAIClientImpl",
    "AIClientConfig",
    "ChatUsage",
    # Errors
    "AIClientError",
    "AIClientTimeoutError",
    "AIClientConnectionError",
    "AIClientResponseError",
    # Implementations
    "GroqClient",
    "ClaudeClient",
    "WhisperClient",
]
