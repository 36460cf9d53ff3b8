"""
AgentSession: the iterative diagnosis state machine.

This module implements the orchestration loop that:
- Requests a completion from the AI provider with the full history and the
  tool catalogue
- Interprets it as a final answer, a clarification request or a batch of
  tool calls
- Dispatches tool calls strictly in the order the AI listed them, checking
  the budget before each one
- Stops at a suspension point (paused, limit_reached) and hands control back
  to the caller instead of blocking for operator input
- Resumes from the exact prior state once the caller applies a decision

The loop is turn-sequential: the next AI turn is never requested until every
tool call of the current turn has its result recorded, because the AI
reasons over the results in the order it asked for them.

State transitions:
    running -> completed                      (final answer)
    running -> paused                         (clarification request)
    running -> awaiting_tool_results -> running
    awaiting_tool_results -> limit_reached    (budget refused a call)
    paused -> running                         (clarification provided)
    limit_reached -> running                  (budget extended)
    any non-terminal -> failed                (provider error, deadline, operator quit)
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

from raid_core.agent.budget import BudgetTracker
from raid_core.agent.history import ConversationHistory
from raid_core.agent.types import (
    AIMessage,
    ClarificationNeeded,
    ClarificationRequest,
    Completion,
    ConversationTurn,
    Decision,
    ExtendBudget,
    FinalAnswer,
    ProblemStatement,
    ProvideClarification,
    SessionOutcome,
    SessionSnapshot,
    SessionState,
    SessionStatus,
    Terminate,
    ToolCallBatch,
    ToolCallRequest,
    ToolOutcome,
    UserClarification,
)
from raid_core.exceptions import (
    AIProviderUnavailableError,
    AIResponseMalformedError,
    BudgetExhaustedError,
    ErrorKind,
    InvalidTransitionError,
    SessionClosedError,
)

if TYPE_CHECKING:
    from raid_core.ai.provider import CompletionProvider
    from raid_core.tools.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)

T = TypeVar("T")

TurnListener = Callable[[ConversationTurn], None]


class _DeadlineExceeded(Exception):
    pass


def new_session_id() -> str:
    """Session ID: {timestamp}-{uuid4[:8]}."""
    timestamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    return f"{timestamp}-{str(uuid.uuid4())[:8]}"


class AgentSession:
    """
    One diagnosis session, from problem statement to terminal state.

    The session exclusively owns its ConversationHistory, BudgetTracker and
    SessionState. The dispatcher and the PauseResumeController only return
    values that the session applies.

    Attributes:
        session_id: Unique session identifier
        provider: AI completion provider
        dispatcher: Tool dispatcher (holds the tool registry)
        budget: Tool-call budget
        deadline: Overall deadline in seconds, measured from the first run()

    Example:
        ```python
        session = AgentSession(
            "my pod is stuck in CrashLoopBackOff",
            provider=provider,
            dispatcher=ToolDispatcher(build_default_registry()),
            budget=BudgetTracker(limit=50),
        )
        outcome = await session.run()
        while outcome.needs_input:
            decision = await controller.decide(outcome)
            session.apply(decision)
            outcome = await session.run()
        ```
    """

    def __init__(
        self,
        problem: str,
        provider: "CompletionProvider",
        dispatcher: "ToolDispatcher",
        budget: BudgetTracker | int = 50,
        *,
        context: str = "",
        deadline: float | None = None,
        session_id: str | None = None,
        history: ConversationHistory | None = None,
        on_turn: TurnListener | None = None,
    ) -> None:
        """
        Create a session.

        Args:
            problem: The operator's problem statement
            provider: AI completion provider
            dispatcher: Tool dispatcher
            budget: BudgetTracker, or a limit to build one from
            context: Host facts appended to the problem statement
            deadline: Overall session deadline in seconds (None: no deadline)
            session_id: Explicit id (generated when None)
            history: Existing history (restore); the problem statement is
                only appended when the history is empty
            on_turn: Called with every turn right after it is appended
        """
        if deadline is not None and deadline <= 0:
            raise ValueError(f"deadline must be positive, got {deadline}")

        self.session_id = session_id or new_session_id()
        self.provider = provider
        self.dispatcher = dispatcher
        self.budget = budget if isinstance(budget, BudgetTracker) else BudgetTracker(budget)
        self.deadline = deadline
        self.created_at = datetime.now()
        self.on_turn = on_turn

        self._history = history if history is not None else ConversationHistory()
        self._state = SessionState.running()
        self._pending: list[ToolCallRequest] = []
        self._next_request_id = 1
        self._deadline_at: float | None = None

        if len(self._history) == 0:
            self._append(ProblemStatement(text=problem, context=context))

    # -- read-only views ---------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def history(self) -> ConversationHistory:
        return self._history

    @property
    def pending_calls(self) -> tuple[ToolCallRequest, ...]:
        return tuple(self._pending)

    def outcome(self) -> SessionOutcome:
        return SessionOutcome(
            session_id=self.session_id,
            state=self._state,
            budget=self.budget.state,
            history_length=len(self._history),
            pending_calls=tuple(self._pending),
        )

    def remaining_time(self) -> float | None:
        """Seconds left before the deadline, or None when no deadline is running."""
        if self._deadline_at is None:
            return None
        return self._deadline_at - asyncio.get_running_loop().time()

    # -- the loop ----------------------------------------------------------

    async def run(self) -> SessionOutcome:
        """
        Drive the loop until it needs operator input or terminates.

        Returns immediately (without contacting the provider) when the
        session is already paused, limit_reached, completed or failed.

        Returns:
            SessionOutcome describing where the loop stopped

        Raises:
            asyncio.CancelledError: Re-raised after the session has been
                moved to failed (operator interrupt)
        """
        if self._state.status.is_terminal or self._state.status.needs_input:
            return self.outcome()

        if self.deadline is not None and self._deadline_at is None:
            self._deadline_at = asyncio.get_running_loop().time() + self.deadline

        try:
            while self._state.status in (SessionStatus.RUNNING, SessionStatus.AWAITING_TOOL_RESULTS):
                if self._pending:
                    await self._dispatch_pending()
                    continue

                completion = await self._request_completion()
                await self._handle_completion(completion)
        except (AIProviderUnavailableError, AIResponseMalformedError) as e:
            logger.error(f"Session {self.session_id}: {e}")
            self._fail(str(e), e.kind)
        except _DeadlineExceeded:
            self._expire()
        except asyncio.CancelledError:
            if not self._state.status.is_terminal:
                self._fail("session interrupted", ErrorKind.OPERATOR_TERMINATED)
            raise

        return self.outcome()

    async def _request_completion(self) -> Completion:
        """
        Ask the provider for the next AI turn.

        Anything the provider raises besides the two provider errors (an SDK
        error it does not map, an unexpected reply shape) is reported as
        ai_provider_unavailable so the session still ends in failed.
        """
        try:
            return await self._bounded(
                self.provider.complete(
                    self._history.turns, self.dispatcher.registry.get_definitions()
                )
            )
        except (AIProviderUnavailableError, AIResponseMalformedError, _DeadlineExceeded):
            raise
        except Exception as e:
            raise AIProviderUnavailableError(
                getattr(self.provider, "name", "unknown"), f"{type(e).__name__}: {e}"
            ) from e

    async def _handle_completion(self, completion: Completion) -> None:
        if isinstance(completion, FinalAnswer):
            self._append(AIMessage(text=completion.text))
            self._transition(SessionState.completed(completion.text))
            self._history.seal()

        elif isinstance(completion, ClarificationNeeded):
            if completion.text.strip():
                self._append(AIMessage(text=completion.text))
            self._append(ClarificationRequest(text=completion.question))
            self._transition(SessionState.paused(completion.question))

        elif isinstance(completion, ToolCallBatch):
            requests = [
                ToolCallRequest(
                    request_id=self._allocate_request_id(),
                    tool_name=call.tool_name,
                    arguments=call.arguments,
                )
                for call in completion.calls
            ]
            self._append(AIMessage(text=completion.text, tool_calls=tuple(requests)))
            self._pending = requests
            await self._dispatch_pending()

        else:
            raise AIResponseMalformedError(
                getattr(self.provider, "name", "unknown"),
                f"unexpected completion type {type(completion).__name__}",
            )

    async def _dispatch_pending(self) -> None:
        """
        Execute pending calls in order until done or the budget refuses one.

        A refused call and everything after it stay pending; they run first
        when the session resumes after an extension.
        """
        self._transition(SessionState.awaiting_tool_results())

        while self._pending:
            request = self._pending[0]
            try:
                self.budget.consume(1)
            except BudgetExhaustedError as e:
                logger.info(f"Session {self.session_id}: #{request.request_id} refused, {e}")
                self._transition(SessionState.limit_reached(self._partial_analysis()))
                return

            logger.debug(
                f"Session {self.session_id}: dispatching #{request.request_id} {request.tool_name} "
                f"({self.budget.used}/{self.budget.limit})"
            )
            result = await self._bounded(self.dispatcher.execute(request))
            self._append(ToolOutcome(result=result))
            self._pending.pop(0)

        self._transition(SessionState.running())

    async def _bounded(self, awaitable: Awaitable[T]) -> T:
        """Await with whatever remains of the session deadline."""
        if self._deadline_at is None:
            return await awaitable

        remaining = self._deadline_at - asyncio.get_running_loop().time()
        if remaining <= 0:
            # Close the coroutine so it is not reported as never awaited
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
            raise _DeadlineExceeded()
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError:
            raise _DeadlineExceeded() from None

    # -- operator decisions ------------------------------------------------

    def apply(self, decision: Decision) -> None:
        """
        Apply an operator decision from the PauseResumeController.

        Args:
            decision: ProvideClarification, ExtendBudget or Terminate

        Raises:
            SessionClosedError: If the session is completed or failed
            InvalidTransitionError: If the decision does not fit the state
        """
        self._ensure_open()

        if isinstance(decision, ProvideClarification):
            self.provide_clarification(decision.answer)
        elif isinstance(decision, ExtendBudget):
            self.extend_budget(decision.amount)
        elif isinstance(decision, Terminate):
            self.terminate(decision.reason)
        else:
            raise TypeError(f"Unknown decision type: {type(decision).__name__}")

    def provide_clarification(self, answer: str) -> None:
        """Answer the pending question and return to running."""
        self._ensure_open()
        if self._state.status != SessionStatus.PAUSED:
            raise InvalidTransitionError(self._state.status.value, "provide a clarification")
        if not answer.strip():
            raise ValueError("clarification answer must not be empty")

        self._append(UserClarification(text=answer))
        self._transition(SessionState.running())

    def extend_budget(self, amount: int | None = None) -> None:
        """Grant an extension (default: the initial limit) and return to running."""
        self._ensure_open()
        if self._state.status != SessionStatus.LIMIT_REACHED:
            raise InvalidTransitionError(self._state.status.value, "extend the budget")

        self.budget.extend(amount)
        self._transition(SessionState.running())

    def terminate(self, reason: str = "operator terminated the session") -> None:
        """Move to failed, preserving history and the partial analysis."""
        self._ensure_open()
        self._fail(reason, ErrorKind.OPERATOR_TERMINATED)

    def expire(self) -> None:
        """
        Fail the session because its deadline ran out.

        Used by the caller when the deadline passes while waiting for the
        operator, where run() is not active to notice it.
        """
        self._ensure_open()
        self._expire()

    # -- persistence -------------------------------------------------------

    def snapshot(self) -> SessionSnapshot:
        """Serialisable copy of everything needed to resume this session."""
        return SessionSnapshot(
            session_id=self.session_id,
            created_at=self.created_at,
            provider=getattr(self.provider, "name", None),
            state=self._state,
            budget=self.budget.state,
            history=list(self._history.turns),
            pending_calls=list(self._pending),
            next_request_id=self._next_request_id,
        )

    @staticmethod
    def check_snapshot(snapshot: SessionSnapshot) -> None:
        """
        Verify that a snapshot's pending calls match its history.

        The pending calls must be exactly the requested calls that have no
        recorded outcome, in request order, and no request id may be reused.

        Raises:
            ValueError: If the snapshot is inconsistent
        """
        history = ConversationHistory(snapshot.history)
        unanswered = [c.request_id for c in history.unanswered_requests()]
        pending = [c.request_id for c in snapshot.pending_calls]
        if pending != unanswered:
            raise ValueError(
                f"Snapshot {snapshot.session_id} is inconsistent: pending calls {pending} "
                f"but unanswered requests {unanswered}"
            )

        requested = [
            call.request_id
            for turn in history
            if isinstance(turn, AIMessage)
            for call in turn.tool_calls
        ]
        if requested and snapshot.next_request_id <= max(requested):
            raise ValueError(
                f"Snapshot {snapshot.session_id} is inconsistent: next request id "
                f"{snapshot.next_request_id} already used"
            )

    @classmethod
    def restore(
        cls,
        snapshot: SessionSnapshot,
        provider: "CompletionProvider",
        dispatcher: "ToolDispatcher",
        *,
        deadline: float | None = None,
        on_turn: TurnListener | None = None,
    ) -> "AgentSession":
        """
        Rebuild a session exactly as it was snapshotted.

        A session snapshotted mid-dispatch (awaiting_tool_results) resumes
        as running; its pending calls are executed before the next AI turn.

        Raises:
            ValueError: If the snapshot fails check_snapshot()
        """
        cls.check_snapshot(snapshot)
        history = ConversationHistory(snapshot.history)
        session = cls(
            snapshot.problem,
            provider=provider,
            dispatcher=dispatcher,
            budget=BudgetTracker.from_state(snapshot.budget),
            deadline=deadline,
            session_id=snapshot.session_id,
            history=history,
            on_turn=on_turn,
        )
        session.created_at = snapshot.created_at
        session._pending = list(snapshot.pending_calls)
        session._next_request_id = snapshot.next_request_id
        if snapshot.state.status == SessionStatus.AWAITING_TOOL_RESULTS:
            session._state = SessionState.running()
        else:
            session._state = snapshot.state
        if session._state.status.is_terminal:
            history.seal()
        return session

    # -- internals ---------------------------------------------------------

    def _append(self, turn: ConversationTurn) -> None:
        self._history.append(turn)
        if self.on_turn is not None:
            self.on_turn(turn)

    def _allocate_request_id(self) -> int:
        request_id = self._next_request_id
        self._next_request_id += 1
        return request_id

    def _transition(self, state: SessionState) -> None:
        if state.status != self._state.status:
            logger.info(
                f"Session {self.session_id}: {self._state.status.value} -> {state.status.value}"
            )
        self._state = state

    def _fail(self, reason: str, error_kind: ErrorKind | None) -> None:
        self._transition(SessionState.failed(reason, error_kind, self._partial_analysis()))
        self._history.seal()

    def _expire(self) -> None:
        logger.error(f"Session {self.session_id}: deadline of {self.deadline}s exceeded")
        self._fail(f"session deadline of {self.deadline}s exceeded", None)

    def _ensure_open(self) -> None:
        if self._state.status.is_terminal:
            raise SessionClosedError(self.session_id, self._state.status.value)

    def _partial_analysis(self) -> str:
        text = self._history.last_ai_text()
        if text:
            return text
        completed = len(self._history.tool_outcomes())
        return f"No analysis yet ({completed} tool call(s) completed)."
