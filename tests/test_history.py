"""Tests for ConversationHistory."""

import pytest

from raid_core.agent.history import ConversationHistory
from raid_core.agent.types import (
    AIMessage,
    ClarificationRequest,
    ProblemStatement,
    ToolCallRequest,
    ToolOutcome,
    ToolResult,
    ToolStatus,
    UserClarification,
)
from raid_core.exceptions import HistorySealedError


def outcome(request_id, tool_name="disk_usage"):
    return ToolOutcome(
        result=ToolResult(request_id=request_id, tool_name=tool_name, status=ToolStatus.SUCCESS, output="ok")
    )


@pytest.fixture
def history():
    return ConversationHistory([
        ProblemStatement(text="disk fills up overnight"),
        AIMessage(
            text="Checking disk and processes.",
            tool_calls=(
                ToolCallRequest(request_id=1, tool_name="disk_usage"),
                ToolCallRequest(request_id=2, tool_name="ps_aux"),
            ),
        ),
        outcome(1),
    ])


def test_unanswered_requests(history):
    assert [c.request_id for c in history.unanswered_requests()] == [2]

    history.append(outcome(2, "ps_aux"))

    assert history.unanswered_requests() == []


def test_turns_view_is_immutable(history):
    turns = history.turns

    assert isinstance(turns, tuple)
    assert len(turns) == 3


def test_sealed_history_rejects_appends(history):
    history.seal()

    with pytest.raises(HistorySealedError):
        history.append(AIMessage(text="late"))
    assert len(history) == 3


def test_last_ai_text_skips_empty_messages(history):
    history.append(outcome(2, "ps_aux"))
    history.append(AIMessage(text="  "))

    assert history.last_ai_text() == "Checking disk and processes."
    assert ConversationHistory().last_ai_text() is None


def test_clarification_turns_do_not_count_as_requests(history):
    history.append(outcome(2, "ps_aux"))
    history.append(ClarificationRequest(text="Which volume?"))
    history.append(UserClarification(text="/var"))

    assert history.unanswered_requests() == []
    assert history.last_ai_text() == "Checking disk and processes."


def test_summary(history):
    lines = history.summary().splitlines()

    assert lines == [
        "  1. problem_statement: disk fills up overnight",
        "  2. ai_message: disk_usage, ps_aux",
        "  3. tool_outcome: #1 disk_usage: success",
    ]
