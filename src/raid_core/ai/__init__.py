"""
AI completion providers.

This module contains:
- provider.py: CompletionProvider protocol and shared rendering helpers
- prompts.py: System prompt and structured reply instructions
- protocol.py: JSON reply protocol for models without native tool calling
- anthropic_provider.py / openai_provider.py / ollama_provider.py: backends
- factory.py: create_provider() from AISettings
"""

from raid_core.ai.provider import ASK_USER_TOOL, CompletionProvider, tool_call_id
from raid_core.ai.anthropic_provider import AnthropicProvider
from raid_core.ai.factory import create_provider
from raid_core.ai.ollama_provider import OllamaProvider
from raid_core.ai.openai_provider import OpenAIProvider
from raid_core.ai.protocol import parse_structured_reply

__all__ = [
    "ASK_USER_TOOL",
    "CompletionProvider",
    "tool_call_id",
    "AnthropicProvider",
    "OpenAIProvider",
    "OllamaProvider",
    "create_provider",
    "parse_structured_reply",
]
