"""
Settings dataclasses for the AI provider and the agent loop.

This module provides plain dataclasses that the CLI fills from command-line
options and environment variables (typer's envvar fallback). The agent core
never reads the environment itself; it receives these objects.

Example:
    ```python
    from raid_core.config import AISettings, AgentSettings, ProviderKind

    ai = AISettings(provider=ProviderKind.ANTHROPIC, api_key="sk-...")
    agent = AgentSettings(max_tool_calls=20, interactive=True)

    ai.resolved_model()      # "claude-3-5-sonnet-20241022"
    agent.initial_budget()   # 20
    ```
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from raid_core.exceptions import ConfigurationError

DEFAULT_STATE_DIR = Path.home() / ".raid"
DEFAULT_SESSIONS_DIR = DEFAULT_STATE_DIR / "sessions"


class ProviderKind(str, Enum):
    """Supported AI completion backends."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    LOCAL = "local"

    @property
    def default_model(self) -> str:
        return _DEFAULT_MODELS[self]

    @property
    def default_base_url(self) -> str | None:
        return _DEFAULT_BASE_URLS[self]

    @property
    def requires_api_key(self) -> bool:
        return self is not ProviderKind.LOCAL


_DEFAULT_MODELS = {
    ProviderKind.OPENAI: "gpt-4o-mini",
    ProviderKind.ANTHROPIC: "claude-3-5-sonnet-20241022",
    ProviderKind.LOCAL: "llama2",
}

# None means "let the SDK decide"
_DEFAULT_BASE_URLS: dict[ProviderKind, str | None] = {
    ProviderKind.OPENAI: "https://api.openai.com/v1",
    ProviderKind.ANTHROPIC: None,
    ProviderKind.LOCAL: "http://localhost:11434",
}


@dataclass
class AISettings:
    """
    Connection settings for the AI completion provider.

    Attributes:
        provider: Which backend to use.
        api_key: API key (required for openai and anthropic).
        model: Model name; provider default when None.
        base_url: Custom endpoint; provider default when None.
        max_tokens: Maximum tokens per completion.
        temperature: Sampling temperature (0.0-2.0).
        request_timeout: HTTP timeout for one completion request, in seconds.
    """

    provider: ProviderKind = ProviderKind.OPENAI
    api_key: str | None = None
    model: str | None = None
    base_url: str | None = None
    max_tokens: int = 1000
    temperature: float = 0.7
    request_timeout: float = 120.0

    def __post_init__(self) -> None:
        self.provider = ProviderKind(self.provider)
        if self.max_tokens <= 0:
            raise ConfigurationError(f"max_tokens must be positive, got {self.max_tokens}")
        if not 0.0 <= self.temperature <= 2.0:
            raise ConfigurationError(
                f"temperature must be between 0.0 and 2.0, got {self.temperature}"
            )

    def resolved_model(self) -> str:
        """Model to use: the explicit one or the provider default."""
        return self.model or self.provider.default_model

    def resolved_base_url(self) -> str | None:
        """Base URL to use: the explicit one or the provider default."""
        return self.base_url or self.provider.default_base_url

    def check_credentials(self) -> None:
        """
        Ensure an API key is present when the provider needs one.

        Raises:
            ConfigurationError: If the key is missing
        """
        if self.provider.requires_api_key and not self.api_key:
            raise ConfigurationError(
                f"No API key for provider '{self.provider.value}'. "
                "Set AI_API_KEY or pass --ai-api-key."
            )


@dataclass
class AgentSettings:
    """
    Settings for one agent session.

    Attributes:
        max_tool_calls: Tool-call budget in interactive agent mode.
        non_interactive_tool_calls: Budget used when not in agent mode.
        tool_timeout: Per-tool execution timeout in seconds (finite).
        max_output_chars: Tool output is truncated beyond this length.
        deadline: Overall session deadline in seconds, None for no deadline.
        interactive: Whether the operator can answer questions and extend
            the budget (--ai-agent-mode).
        sessions_dir: Where paused sessions are saved.
    """

    max_tool_calls: int = 50
    non_interactive_tool_calls: int = 10
    tool_timeout: float = 30.0
    max_output_chars: int = 8000
    deadline: float | None = None
    interactive: bool = False
    sessions_dir: Path = field(default_factory=lambda: DEFAULT_SESSIONS_DIR)

    def __post_init__(self) -> None:
        errors = []
        if self.max_tool_calls < 0:
            errors.append(f"max_tool_calls must be >= 0, got {self.max_tool_calls}")
        if self.non_interactive_tool_calls < 0:
            errors.append(
                f"non_interactive_tool_calls must be >= 0, got {self.non_interactive_tool_calls}"
            )
        if not math.isfinite(self.tool_timeout) or self.tool_timeout <= 0:
            errors.append(f"tool_timeout must be finite and positive, got {self.tool_timeout}")
        if self.max_output_chars <= 0:
            errors.append(f"max_output_chars must be positive, got {self.max_output_chars}")
        if self.deadline is not None and self.deadline <= 0:
            errors.append(f"deadline must be positive, got {self.deadline}")
        if errors:
            raise ConfigurationError("; ".join(errors))

    def initial_budget(self) -> int:
        """Tool-call ceiling for a new session."""
        return self.max_tool_calls if self.interactive else self.non_interactive_tool_calls
