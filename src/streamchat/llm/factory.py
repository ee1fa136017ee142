from typing import Any

from .base import CompletionClient
from .providers import HTTPCompletionClient, OpenAICompletionClient


def create_completion_client(provider: str = "http", **config: Any) -> CompletionClient:
    """Create a streaming completion client.

    This factory function hides the instantiation logic for different clients.

    Args:
        provider: Client type ('http'/'sse' or 'openai')
        **config: Client-specific configuration
            For http:
                - api_key: str (required)
                - model: str (default: 'gpt-4')
                - base_url: str (default: 'https://api.openai.com/v1')
                - timeout: httpx.Timeout | float | None (default: None)
                - transport: httpx.AsyncBaseTransport | None
            For openai:
                - api_key: str (required)
                - model: str (default: 'gpt-4')
                - base_url: str | None
                - organization: str | None

    Returns:
        Initialized completion client

    Raises:
        ValueError: If provider type is not supported
        TypeError: If required configuration is missing

    Examples:
        >>> client = create_completion_client("http", api_key="sk-...")

        >>> client = create_completion_client(
        ...     "openai",
        ...     api_key="sk-...",
        ...     model="gpt-4o-mini"
        ... )
    """
    provider_lower = provider.lower()

    if provider_lower in ("http", "sse"):
        if "api_key" not in config:
            raise TypeError("HTTP client requires 'api_key' in config")
        return HTTPCompletionClient(**config)

    if provider_lower == "openai":
        if "api_key" not in config:
            raise TypeError("OpenAI client requires 'api_key' in config")
        return OpenAICompletionClient(**config)

    raise ValueError(
        f"Unsupported provider: {provider}. "
        f"Supported providers: 'http', 'openai'"
    )
