"""
Operator interaction at session suspension points.

AgentSession.run() never blocks for input: it returns an outcome whose status
is paused (the AI asked a question) or limit_reached (the budget refused a
tool call). The PauseResumeController turns such an outcome into a Decision
by asking the operator through an OperatorPrompt, and the session applies it.

Continuation answers use a fixed token set:
    y / yes   continue
    n / no    stop
    quit      stop (reserved at every prompt)
Matching is case-insensitive after trimming whitespace. Anything else is
unrecognised and the question is asked again.
"""

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Callable, Protocol

from raid_core.agent.types import (
    Decision,
    ExtendBudget,
    ProvideClarification,
    SessionOutcome,
    SessionStatus,
    Terminate,
)
from raid_core.exceptions import InvalidTransitionError, OperatorTerminatedError

if TYPE_CHECKING:
    from raid_core.agent.session import AgentSession

logger = logging.getLogger(__name__)

QUIT_TOKEN = "quit"


class ContinuationAnswer(str, Enum):
    YES = "yes"
    NO = "no"
    QUIT = "quit"


_TOKENS = {
    "y": ContinuationAnswer.YES,
    "yes": ContinuationAnswer.YES,
    "n": ContinuationAnswer.NO,
    "no": ContinuationAnswer.NO,
    QUIT_TOKEN: ContinuationAnswer.QUIT,
}


def parse_continuation(text: str) -> ContinuationAnswer | None:
    """Map an operator reply to a continuation answer, None if unrecognised."""
    return _TOKENS.get(text.strip().lower())


class OperatorPrompt(Protocol):
    """
    How the controller talks to the operator.

    Both methods may raise OperatorTerminatedError when the operator quits
    (typed the quit token, or input ended).
    """

    async def ask(self, question: str) -> str:
        """Ask a free-form question and return the answer."""
        ...

    async def confirm(self, message: str) -> bool:
        """Ask a yes/no question."""
        ...


class PauseResumeController:
    """
    Resolves paused and limit_reached outcomes into decisions.

    Attributes:
        prompt: Operator I/O
        extension: Calls granted per continuation (default: the session's
            initial limit, so each "yes" adds one more full budget)
        allow_continuation: False resolves every suspension as Terminate
            without prompting (non-interactive mode)

    Example:
        ```python
        controller = PauseResumeController(ConsoleOperatorPrompt(console))
        outcome = await controller.drive(session)
        print(outcome.state.final_answer or outcome.partial_analysis)
        ```
    """

    def __init__(
        self,
        prompt: OperatorPrompt | None,
        *,
        extension: int | None = None,
        allow_continuation: bool = True,
    ) -> None:
        if extension is not None and extension <= 0:
            raise ValueError(f"extension must be positive, got {extension}")
        if prompt is None and allow_continuation:
            raise ValueError("an operator prompt is required when continuation is allowed")
        self.prompt = prompt
        self.extension = extension
        self.allow_continuation = allow_continuation

    async def decide(self, outcome: SessionOutcome) -> Decision:
        """
        Ask the operator how to continue from a suspension point.

        Args:
            outcome: A paused or limit_reached outcome

        Returns:
            ProvideClarification, ExtendBudget or Terminate

        Raises:
            InvalidTransitionError: If the outcome does not need input
        """
        status = outcome.status
        if not status.needs_input:
            raise InvalidTransitionError(status.value, "ask the operator")

        if not self.allow_continuation:
            if status == SessionStatus.PAUSED:
                return Terminate(reason="clarification needed but input is disabled")
            return Terminate(
                reason=f"tool call limit of {outcome.budget.limit} reached"
            )

        try:
            if status == SessionStatus.PAUSED:
                return await self._clarify(outcome.state.clarification or "")
            return await self._continue(outcome)
        except OperatorTerminatedError as e:
            logger.info(f"Operator terminated session {outcome.session_id}: {e.reason}")
            return Terminate(reason=e.reason)

    async def _clarify(self, question: str) -> Decision:
        while True:
            answer = (await self.prompt.ask(question)).strip()
            if answer:
                return ProvideClarification(answer=answer)

    async def _continue(self, outcome: SessionOutcome) -> Decision:
        budget = outcome.budget
        amount = self.extension or budget.initial_limit or 1
        message = (
            f"Reached the tool call limit ({budget.used}/{budget.limit}). "
            f"Continue with {amount} more tool calls?"
        )
        if await self.prompt.confirm(message):
            return ExtendBudget(amount=amount)
        return Terminate(reason="operator declined to continue")

    async def drive(
        self,
        session: "AgentSession",
        on_suspend: Callable[[SessionOutcome], None] | None = None,
    ) -> SessionOutcome:
        """
        Run a session to a terminal state, resolving every suspension.

        Args:
            session: Session to drive
            on_suspend: Called with each paused or limit_reached outcome
                before the operator is asked (e.g. to snapshot the session)

        Returns:
            The completed or failed outcome. A running session deadline also
            bounds the wait for the operator; when it passes there the
            session fails the same way it would inside run().
        """
        outcome = await session.run()
        while outcome.needs_input:
            if on_suspend is not None:
                on_suspend(outcome)
            remaining = session.remaining_time()
            if remaining is None:
                decision = await self.decide(outcome)
            else:
                try:
                    decision = await asyncio.wait_for(self.decide(outcome), timeout=max(remaining, 0))
                except asyncio.TimeoutError:
                    logger.info(f"Session {session.session_id}: deadline passed waiting for the operator")
                    session.expire()
                    return session.outcome()
            session.apply(decision)
            outcome = await session.run()
        return outcome
