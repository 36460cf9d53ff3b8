"""
Exception classes for the RAID agent core.

This module defines the error kinds the agent loop distinguishes:
- Tool-level errors (ToolNotFoundError, ToolArgumentInvalidError,
  ToolExecutionTimeoutError, ToolExecutionFailedError) are recovered locally
  and reported back to the AI as tool outcomes.
- Provider errors (AIProviderUnavailableError, AIResponseMalformedError) are
  fatal to the current session.
- Control-flow outcomes (BudgetExhaustedError, OperatorTerminatedError) drive
  the limit_reached and failed states.

Per project patterns:
- Every error carries an ErrorKind for serialization into session state
- Store context data in attributes for error handling
- Include descriptive message with relevant details
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Machine-readable error kinds recorded in tool results and session state."""

    TOOL_NOT_FOUND = "tool_not_found"
    TOOL_ARGUMENT_INVALID = "tool_argument_invalid"
    TOOL_EXECUTION_TIMEOUT = "tool_execution_timeout"
    TOOL_EXECUTION_FAILED = "tool_execution_failed"
    AI_PROVIDER_UNAVAILABLE = "ai_provider_unavailable"
    AI_RESPONSE_MALFORMED = "ai_response_malformed"
    BUDGET_EXHAUSTED = "budget_exhausted"
    OPERATOR_TERMINATED = "operator_terminated"


class RaidError(Exception):
    """Base class for all RAID errors."""

    kind: ErrorKind | None = None


class ToolNotFoundError(RaidError):
    """
    Raised when a tool call names a tool that is not registered.

    Attributes:
        tool_name: The requested tool name
        available: Names of the registered tools
    """

    kind = ErrorKind.TOOL_NOT_FOUND

    def __init__(self, tool_name: str, available: list[str] | None = None) -> None:
        self.tool_name = tool_name
        self.available = available or []
        message = f"unknown tool '{tool_name}'"
        if self.available:
            message += f". Available tools: {', '.join(self.available)}"
        super().__init__(message)


class ToolArgumentInvalidError(RaidError):
    """
    Raised when tool arguments do not match the tool's parameter schema.

    Contains the tool name and a list of all validation errors,
    giving the AI complete feedback rather than the first issue only.

    Attributes:
        tool_name: Name of the tool that failed validation
        errors: List of human-readable error messages
    """

    kind = ErrorKind.TOOL_ARGUMENT_INVALID

    def __init__(self, tool_name: str, errors: list[str]) -> None:
        self.tool_name = tool_name
        self.errors = errors
        super().__init__(str(self))

    def __str__(self) -> str:
        error_list = "; ".join(self.errors)
        return f"Invalid arguments for {self.tool_name}: {error_list}"


class ToolExecutionTimeoutError(RaidError):
    """
    Raised when a tool executor exceeds the dispatcher timeout.

    Attributes:
        tool_name: The tool that timed out
        timeout: The timeout that was exceeded, in seconds
    """

    kind = ErrorKind.TOOL_EXECUTION_TIMEOUT

    def __init__(self, tool_name: str, timeout: float) -> None:
        self.tool_name = tool_name
        self.timeout = timeout
        super().__init__(f"{tool_name} timed out after {timeout}s")


class ToolExecutionFailedError(RaidError):
    """Raised when a tool executor reports failure or raises."""

    kind = ErrorKind.TOOL_EXECUTION_FAILED

    def __init__(self, tool_name: str, detail: str) -> None:
        self.tool_name = tool_name
        self.detail = detail
        super().__init__(f"{tool_name} failed: {detail}")


class AIProviderUnavailableError(RaidError):
    """
    Raised when the AI provider cannot be reached or rejects the request.

    Covers network failures, authentication errors and non-success API
    status codes.

    Attributes:
        provider: Provider name (e.g., "anthropic")
        detail: Underlying error description
    """

    kind = ErrorKind.AI_PROVIDER_UNAVAILABLE

    def __init__(self, provider: str, detail: str) -> None:
        self.provider = provider
        self.detail = detail
        super().__init__(f"AI provider '{provider}' unavailable: {detail}")


class AIResponseMalformedError(RaidError):
    """
    Raised when a provider response cannot be interpreted.

    Examples: tool-call arguments that are not a JSON object, or a reply
    that is neither an answer, a question nor a tool request.
    """

    kind = ErrorKind.AI_RESPONSE_MALFORMED

    def __init__(self, provider: str, detail: str) -> None:
        self.provider = provider
        self.detail = detail
        super().__init__(f"Malformed response from '{provider}': {detail}")


class BudgetExhaustedError(RaidError):
    """
    Raised by BudgetTracker.consume() when a tool call would exceed the budget.

    Not a failure: AgentSession catches it before dispatch and moves to the
    limit_reached state, keeping the refused call pending.

    Attributes:
        used: Tool calls consumed so far
        limit: Current ceiling
    """

    kind = ErrorKind.BUDGET_EXHAUSTED

    def __init__(self, used: int, limit: int) -> None:
        self.used = used
        self.limit = limit
        super().__init__(f"Tool call budget exhausted ({used}/{limit})")


class OperatorTerminatedError(RaidError):
    """Raised when the operator quits at a prompt."""

    kind = ErrorKind.OPERATOR_TERMINATED

    def __init__(self, reason: str = "operator quit") -> None:
        self.reason = reason
        super().__init__(reason)


class InvalidTransitionError(RaidError):
    """
    Raised when a decision is applied in a state that does not accept it.

    Attributes:
        status: Current session status
        action: The attempted action
    """

    def __init__(self, status: str, action: str) -> None:
        self.status = status
        self.action = action
        super().__init__(f"Cannot {action} while session is {status}")


class SessionClosedError(RaidError):
    """Raised when anything tries to change a completed or failed session."""

    def __init__(self, session_id: str, status: str) -> None:
        self.session_id = session_id
        self.status = status
        super().__init__(f"Session {session_id} is {status} and accepts no further changes")


class HistorySealedError(RaidError):
    """Raised when a turn is appended to a sealed conversation history."""


class ConfigurationError(RaidError):
    """Raised for invalid settings (missing API key, bad limits)."""


class SessionNotFoundError(RaidError):
    """Raised when a saved session snapshot does not exist."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Session {session_id} not found")
