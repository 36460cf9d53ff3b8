"""
Data model for the agent orchestration loop.

This module defines the core data structures of a diagnostic session:
- ToolCallRequest / ToolResult: one tool invocation and its outcome
- ConversationTurn: tagged union of everything appended to history
- BudgetState: tool-call accounting
- SessionStatus / SessionState: the session state machine's current state
- Completion: what an AI provider returns for one turn
- SessionOutcome: what AgentSession.run() hands back to its caller

Per project patterns:
- Use str enum for JSON serialization compatibility
- Pydantic BaseModel for validation and serialization
- Field() with descriptions for documentation
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from raid_core.exceptions import ErrorKind


class ToolStatus(str, Enum):
    """Result status of a single tool invocation."""

    SUCCESS = "success"
    FAILED = "failed"


class ToolCallRequest(BaseModel):
    """
    A tool invocation requested by the AI.

    Request ids are assigned by the session, monotonically from 1, and are
    unique within a session.

    Attributes:
        request_id: Session-unique, monotonically assigned id
        tool_name: Name of the requested tool
        arguments: Requested arguments (not yet validated)
    """

    model_config = ConfigDict(frozen=True)

    request_id: int = Field(..., ge=1, description="Session-unique request id")
    tool_name: str = Field(..., description="Requested tool name")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Requested arguments")


class ToolResult(BaseModel):
    """
    Outcome of one tool invocation.

    Tool-level errors never raise out of the dispatcher; they are captured
    here with status FAILED and an error_kind so the AI can adapt.

    Attributes:
        request_id: The ToolCallRequest this result answers
        tool_name: Name of the tool that was requested
        status: SUCCESS or FAILED
        output: Tool output, truncated to the dispatcher's maximum
        error_detail: Error description when FAILED
        error_kind: Which tool error occurred, None on success
        truncated: Whether output or error_detail was cut
        duration_ms: Wall-clock execution time
    """

    model_config = ConfigDict(frozen=True)

    request_id: int
    tool_name: str
    status: ToolStatus
    output: str = ""
    error_detail: str | None = None
    error_kind: ErrorKind | None = None
    truncated: bool = False
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.status == ToolStatus.SUCCESS

    def render(self) -> str:
        """Text shown to the AI for this result."""
        if self.succeeded:
            return self.output or "(no output)"
        text = f"ERROR ({self.error_kind.value if self.error_kind else 'failed'}): {self.error_detail}"
        if self.output:
            text += f"\n{self.output}"
        return text


class _Turn(BaseModel):
    model_config = ConfigDict(frozen=True)

    created_at: datetime = Field(default_factory=datetime.now)


class ProblemStatement(_Turn):
    """The operator's problem description, plus host context."""

    kind: Literal["problem_statement"] = "problem_statement"
    text: str
    context: str = ""


class AIMessage(_Turn):
    """An AI reply, optionally carrying tool-call requests."""

    kind: Literal["ai_message"] = "ai_message"
    text: str = ""
    tool_calls: tuple[ToolCallRequest, ...] = ()


class ToolOutcome(_Turn):
    """The result of one requested tool call."""

    kind: Literal["tool_outcome"] = "tool_outcome"
    result: ToolResult


class ClarificationRequest(_Turn):
    """A question the AI asked the operator."""

    kind: Literal["clarification_request"] = "clarification_request"
    text: str


class UserClarification(_Turn):
    """The operator's answer to a clarification request."""

    kind: Literal["user_clarification"] = "user_clarification"
    text: str


ConversationTurn = Annotated[
    Union[ProblemStatement, AIMessage, ToolOutcome, ClarificationRequest, UserClarification],
    Field(discriminator="kind"),
]


class BudgetState(BaseModel):
    """
    Tool-call budget accounting.

    Attributes:
        used: Tool calls consumed so far
        limit: Current ceiling (grows with extensions)
        initial_limit: Ceiling configured at session start
        extensions_granted: Times the operator chose to continue past a limit
    """

    used: int = Field(default=0, ge=0)
    limit: int = Field(default=50, ge=0)
    initial_limit: int = Field(default=50, ge=0)
    extensions_granted: int = Field(default=0, ge=0)


class SessionStatus(str, Enum):
    """
    Agent session states.

    Sessions flow through these states:
        running -> awaiting_tool_results -> running -> ... -> completed/failed
    with paused and limit_reached as operator suspension points.
    """

    RUNNING = "running"
    """Ready to request the next AI completion."""

    AWAITING_TOOL_RESULTS = "awaiting_tool_results"
    """Dispatching the tool calls of the latest AI message."""

    PAUSED = "paused"
    """AI asked the operator a clarification question."""

    LIMIT_REACHED = "limit_reached"
    """Tool-call budget exhausted; operator must extend or stop."""

    COMPLETED = "completed"
    """AI produced a final answer."""

    FAILED = "failed"
    """Provider failure, deadline, or operator termination."""

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.FAILED)

    @property
    def needs_input(self) -> bool:
        return self in (SessionStatus.PAUSED, SessionStatus.LIMIT_REACHED)


class SessionState(BaseModel):
    """
    The active session state and its payload.

    Exactly one status is active at a time; the payload fields that do not
    belong to the status are None.

    Attributes:
        status: Current status
        clarification: Question text while PAUSED
        final_answer: Answer text once COMPLETED
        failure_reason: Why the session FAILED
        error_kind: Error kind behind a FAILED state
        partial_analysis: Last AI message text, kept for LIMIT_REACHED/FAILED
    """

    status: SessionStatus = SessionStatus.RUNNING
    clarification: str | None = None
    final_answer: str | None = None
    failure_reason: str | None = None
    error_kind: ErrorKind | None = None
    partial_analysis: str | None = None

    @classmethod
    def running(cls) -> "SessionState":
        return cls(status=SessionStatus.RUNNING)

    @classmethod
    def awaiting_tool_results(cls) -> "SessionState":
        return cls(status=SessionStatus.AWAITING_TOOL_RESULTS)

    @classmethod
    def paused(cls, clarification: str) -> "SessionState":
        return cls(status=SessionStatus.PAUSED, clarification=clarification)

    @classmethod
    def limit_reached(cls, partial_analysis: str) -> "SessionState":
        return cls(status=SessionStatus.LIMIT_REACHED, partial_analysis=partial_analysis)

    @classmethod
    def completed(cls, final_answer: str) -> "SessionState":
        return cls(status=SessionStatus.COMPLETED, final_answer=final_answer)

    @classmethod
    def failed(
        cls, reason: str, error_kind: ErrorKind | None, partial_analysis: str | None
    ) -> "SessionState":
        return cls(
            status=SessionStatus.FAILED,
            failure_reason=reason,
            error_kind=error_kind,
            partial_analysis=partial_analysis,
        )


class RequestedToolCall(BaseModel):
    """A tool call as returned by a provider, before the session assigns an id."""

    tool_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class FinalAnswer(BaseModel):
    """Provider reply: the diagnosis is complete."""

    kind: Literal["final_answer"] = "final_answer"
    text: str


class ClarificationNeeded(BaseModel):
    """Provider reply: the AI needs the operator to answer a question."""

    kind: Literal["clarification"] = "clarification"
    question: str
    text: str = ""


class ToolCallBatch(BaseModel):
    """Provider reply: run these tools, in this order."""

    kind: Literal["tool_calls"] = "tool_calls"
    text: str = ""
    calls: list[RequestedToolCall] = Field(..., min_length=1)


Completion = Union[FinalAnswer, ClarificationNeeded, ToolCallBatch]


class SessionOutcome(BaseModel):
    """
    What AgentSession.run() returns.

    The caller inspects state.status: PAUSED and LIMIT_REACHED need operator
    input (see PauseResumeController); COMPLETED and FAILED are final.

    Attributes:
        session_id: Session identifier
        state: State the loop stopped in
        budget: Budget snapshot at that point
        history_length: Number of turns recorded
        pending_calls: Tool calls requested but not executed (LIMIT_REACHED)
    """

    session_id: str
    state: SessionState
    budget: BudgetState
    history_length: int
    pending_calls: tuple[ToolCallRequest, ...] = ()

    @property
    def status(self) -> SessionStatus:
        return self.state.status

    @property
    def needs_input(self) -> bool:
        return self.state.status.needs_input

    @property
    def partial_analysis(self) -> str | None:
        return self.state.partial_analysis


class ProvideClarification(BaseModel):
    """Operator decision: answer the pending clarification question."""

    kind: Literal["clarification"] = "clarification"
    answer: str = Field(..., min_length=1)


class ExtendBudget(BaseModel):
    """Operator decision: raise the tool-call ceiling and continue."""

    kind: Literal["extend"] = "extend"
    amount: int | None = Field(default=None, gt=0, description="Defaults to the initial limit")


class Terminate(BaseModel):
    """Operator decision: stop the session, keeping the analysis so far."""

    kind: Literal["terminate"] = "terminate"
    reason: str = "operator terminated the session"


Decision = Union[ProvideClarification, ExtendBudget, Terminate]


class SessionSnapshot(BaseModel):
    """
    Complete, serialisable state of an AgentSession.

    Restoring a snapshot reconstructs the same history, budget, state,
    pending calls and request-id counter the session left off with.

    Attributes:
        session_id: Session identifier
        created_at: When the session was created
        saved_at: When this snapshot was taken
        provider: Name of the provider the session ran with
        state: Session state at snapshot time
        budget: Budget at snapshot time
        history: All turns, in causal order
        pending_calls: Requested but not yet executed tool calls
        next_request_id: Next request id to assign
    """

    session_id: str
    created_at: datetime
    saved_at: datetime = Field(default_factory=datetime.now)
    provider: str | None = None
    state: SessionState
    budget: BudgetState
    history: list[ConversationTurn]
    pending_calls: list[ToolCallRequest] = Field(default_factory=list)
    next_request_id: int = Field(default=1, ge=1)

    @property
    def problem(self) -> str:
        for turn in self.history:
            if isinstance(turn, ProblemStatement):
                return turn.text
        return ""
