"""Provider construction from AISettings."""

import httpx
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from raid_core.ai.anthropic_provider import AnthropicProvider
from raid_core.ai.ollama_provider import OllamaProvider
from raid_core.ai.openai_provider import OpenAIProvider
from raid_core.ai.provider import CompletionProvider
from raid_core.config import AISettings, ProviderKind


def create_provider(
    settings: AISettings,
    *,
    http: httpx.AsyncClient | None = None,
    system_prompt: str | None = None,
) -> CompletionProvider:
    """
    Build the provider selected by settings.provider.

    Args:
        settings: AI settings (credentials are checked here)
        http: httpx client for the local provider, base_url set to the
            Ollama server; required for ProviderKind.LOCAL
        system_prompt: Override of the default system prompt

    Raises:
        ConfigurationError: If an API key is required but missing
    """
    settings.check_credentials()
    model = settings.resolved_model()

    if settings.provider == ProviderKind.ANTHROPIC:
        client = AsyncAnthropic(
            api_key=settings.api_key,
            base_url=settings.resolved_base_url(),
            timeout=settings.request_timeout,
        )
        return AnthropicProvider(
            client,
            model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            system_prompt=system_prompt,
        )

    if settings.provider == ProviderKind.OPENAI:
        client = AsyncOpenAI(
            api_key=settings.api_key,
            base_url=settings.resolved_base_url(),
            timeout=settings.request_timeout,
        )
        return OpenAIProvider(
            client,
            model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            system_prompt=system_prompt,
        )

    if http is None:
        raise ValueError("the local provider needs an httpx.AsyncClient")
    provider = OllamaProvider(
        http=http,
        model=model,
        max_tokens=settings.max_tokens,
        temperature=settings.temperature,
    )
    if system_prompt:
        provider.system_prompt = system_prompt
    return provider
