"""
RAID Core Library

AI agent orchestration for system health diagnosis. This package provides:

- AgentSession: iterative diagnosis loop with tool calls, clarification
  pauses and a tool-call budget the operator can extend
- ToolDispatcher / ToolRegistry: validated, time-bounded tool execution
- CompletionProvider implementations for OpenAI, Anthropic and Ollama
- CLI infrastructure: Typer-based `raid` command
"""

__version__ = "0.1.0"

# Re-export public types for convenient imports
from raid_core.agent import (
    AgentSession,
    BudgetTracker,
    ConversationHistory,
    PauseResumeController,
    SessionOutcome,
    SessionStatus,
    SessionStore,
)
from raid_core.config import AgentSettings, AISettings, ProviderKind
from raid_core.exceptions import ErrorKind, RaidError
from raid_core.tools import ToolDispatcher, ToolRegistry, build_default_registry

__all__ = [
    "__version__",
    # Session
    "AgentSession",
    "BudgetTracker",
    "ConversationHistory",
    "PauseResumeController",
    "SessionOutcome",
    "SessionStatus",
    "SessionStore",
    # Tools
    "ToolDispatcher",
    "ToolRegistry",
    "build_default_registry",
    # Configuration
    "AISettings",
    "AgentSettings",
    "ProviderKind",
    # Errors
    "ErrorKind",
    "RaidError",
]
