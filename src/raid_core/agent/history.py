"""Append-only conversation history for an agent session."""

import logging
from typing import Iterator, Sequence

from raid_core.agent.types import (
    AIMessage,
    ConversationTurn,
    ToolCallRequest,
    ToolOutcome,
)
from raid_core.exceptions import HistorySealedError

logger = logging.getLogger(__name__)


class ConversationHistory:
    """
    Ordered, append-only log of conversation turns.

    Insertion order is the causal order of the session and is replayed
    verbatim to the AI provider. Turns are never reordered or removed; once
    the owning session reaches a terminal state the history is sealed and
    further appends raise HistorySealedError.

    Example:
        ```python
        history = ConversationHistory()
        history.append(ProblemStatement(text="pod stuck in CrashLoopBackOff"))
        history.append(AIMessage(text="Let me look at the pods."))
        len(history)   # 2
        history.last_ai_text()
        ```
    """

    def __init__(self, turns: Sequence[ConversationTurn] = ()) -> None:
        self._turns: list[ConversationTurn] = list(turns)
        self._sealed = False

    def append(self, turn: ConversationTurn) -> None:
        """
        Append a turn.

        Raises:
            HistorySealedError: If the history has been sealed
        """
        if self._sealed:
            raise HistorySealedError(f"Cannot append {turn.kind}: history is sealed")
        self._turns.append(turn)

    def seal(self) -> None:
        """Reject all further appends."""
        self._sealed = True

    @property
    def sealed(self) -> bool:
        return self._sealed

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        """Immutable view of the turns, in causal order."""
        return tuple(self._turns)

    def replay(self) -> Iterator[ConversationTurn]:
        return iter(tuple(self._turns))

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[ConversationTurn]:
        return self.replay()

    def last_ai_text(self) -> str | None:
        """Text of the most recent non-empty AI message, if any."""
        for turn in reversed(self._turns):
            if isinstance(turn, AIMessage) and turn.text.strip():
                return turn.text
        return None

    def unanswered_requests(self) -> list[ToolCallRequest]:
        """Tool-call requests that have no ToolOutcome yet, in request order."""
        answered = {t.result.request_id for t in self._turns if isinstance(t, ToolOutcome)}
        return [
            call
            for turn in self._turns
            if isinstance(turn, AIMessage)
            for call in turn.tool_calls
            if call.request_id not in answered
        ]

    def tool_outcomes(self) -> list[ToolOutcome]:
        return [t for t in self._turns if isinstance(t, ToolOutcome)]

    def summary(self) -> str:
        """
        One line per turn, for verbose display.

        Returns:
            Multi-line summary of the conversation
        """
        lines = []
        for index, turn in enumerate(self._turns, start=1):
            if isinstance(turn, AIMessage):
                detail = ", ".join(c.tool_name for c in turn.tool_calls) or _preview(turn.text)
            elif isinstance(turn, ToolOutcome):
                detail = f"#{turn.result.request_id} {turn.result.tool_name}: {turn.result.status.value}"
            else:
                detail = _preview(turn.text)
            lines.append(f"{index:3d}. {turn.kind}: {detail}")
        return "\n".join(lines)


def _preview(text: str, width: int = 60) -> str:
    text = " ".join(text.split())
    return text[:width] + "..." if len(text) > width else text
