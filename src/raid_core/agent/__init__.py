"""
Agent orchestration loop.

This module contains:
- types.py: Pydantic models for turns, results, budget and session state
- history.py: Append-only conversation history
- budget.py: Tool-call budget tracking with operator extensions
- session.py: AgentSession, the diagnosis state machine
- controller.py: PauseResumeController for operator decisions at pause points
- store.py: SessionStore for saving and resuming sessions across runs
"""

from raid_core.agent.budget import BudgetTracker
from raid_core.agent.controller import (
    ContinuationAnswer,
    OperatorPrompt,
    PauseResumeController,
    parse_continuation,
)
from raid_core.agent.history import ConversationHistory
from raid_core.agent.session import AgentSession, new_session_id
from raid_core.agent.store import SessionStore
from raid_core.agent.types import (
    AIMessage,
    BudgetState,
    ClarificationNeeded,
    ClarificationRequest,
    Completion,
    ConversationTurn,
    Decision,
    ExtendBudget,
    FinalAnswer,
    ProblemStatement,
    ProvideClarification,
    RequestedToolCall,
    SessionOutcome,
    SessionSnapshot,
    SessionState,
    SessionStatus,
    Terminate,
    ToolCallBatch,
    ToolCallRequest,
    ToolOutcome,
    ToolResult,
    ToolStatus,
    UserClarification,
)

__all__ = [
    # Session
    "AgentSession",
    "new_session_id",
    "BudgetTracker",
    "ConversationHistory",
    # Operator decisions
    "PauseResumeController",
    "OperatorPrompt",
    "ContinuationAnswer",
    "parse_continuation",
    "ProvideClarification",
    "ExtendBudget",
    "Terminate",
    "Decision",
    # Persistence
    "SessionStore",
    "SessionSnapshot",
    # Models
    "AIMessage",
    "BudgetState",
    "ClarificationNeeded",
    "ClarificationRequest",
    "Completion",
    "ConversationTurn",
    "FinalAnswer",
    "ProblemStatement",
    "RequestedToolCall",
    "SessionOutcome",
    "SessionState",
    "SessionStatus",
    "ToolCallBatch",
    "ToolCallRequest",
    "ToolOutcome",
    "ToolResult",
    "ToolStatus",
    "UserClarification",
]
