"""Tests for terminal prompts and rendering."""

import asyncio
import io
import time
from unittest.mock import patch

import pytest
from rich.console import Console

from raid_core.agent.types import (
    AIMessage,
    BudgetState,
    SessionOutcome,
    SessionState,
    ToolCallRequest,
    ToolOutcome,
    ToolResult,
    ToolStatus,
)
from raid_core.cli.console import ConsoleOperatorPrompt, TurnPrinter, render_outcome, tools_table
from raid_core.exceptions import ErrorKind, OperatorTerminatedError


@pytest.fixture
def console():
    """Console writing to a string buffer, wide enough to avoid wrapping."""
    return Console(file=io.StringIO(), width=200, color_system=None)


def output_of(console):
    return console.file.getvalue()


class FakeTerminal(io.StringIO):
    """stdin stand-in that reports itself as a terminal."""

    def isatty(self):
        return True


class TestConsoleOperatorPrompt:
    """Tests for ConsoleOperatorPrompt reading through Console.input."""

    @pytest.fixture(autouse=True)
    def piped_stdin(self):
        with patch("sys.stdin", io.StringIO()):
            yield

    @pytest.mark.asyncio
    async def test_ask_returns_answer(self, console):
        prompt = ConsoleOperatorPrompt(console)

        with patch.object(console, "input", side_effect=["kube-system"]):
            reply = await prompt.ask("Which namespace?")

        assert reply == "kube-system"
        assert "Which namespace?" in output_of(console)

    @pytest.mark.asyncio
    async def test_quit_at_question_raises(self, console):
        prompt = ConsoleOperatorPrompt(console)

        with patch.object(console, "input", side_effect=[" Quit "]):
            with pytest.raises(OperatorTerminatedError):
                await prompt.ask("Which namespace?")

    @pytest.mark.asyncio
    async def test_end_of_input_raises(self, console):
        """EOF on stdin is treated as the operator quitting."""
        prompt = ConsoleOperatorPrompt(console)

        with patch.object(console, "input", side_effect=EOFError()):
            with pytest.raises(OperatorTerminatedError) as exc_info:
                await prompt.confirm("Continue?")

        assert exc_info.value.reason == "input closed"

    @pytest.mark.asyncio
    async def test_confirm_reasks_unrecognised_answers(self, console):
        """Unrecognised answers are rejected and the question is repeated."""
        prompt = ConsoleOperatorPrompt(console)

        with patch.object(console, "input", side_effect=["sure", "maybe", "Y"]) as mock_input:
            confirmed = await prompt.confirm("Continue with 10 more tool calls?")

        assert confirmed is True
        assert mock_input.call_count == 3
        assert output_of(console).count("Please answer yes, no or quit.") == 2

    @pytest.mark.asyncio
    async def test_confirm_no(self, console):
        prompt = ConsoleOperatorPrompt(console)

        with patch.object(console, "input", side_effect=["no"]):
            assert await prompt.confirm("Continue?") is False


class TestTerminalInput:
    """On a terminal, stdin is polled with select() instead of a blocking read."""

    @pytest.mark.asyncio
    async def test_polls_until_a_line_arrives(self, console):
        stdin = FakeTerminal("kube-system\n")
        ready = ([stdin], [], [])
        idle = ([], [], [])

        with patch("sys.stdin", stdin), patch("select.select", side_effect=[idle, idle, ready]) as mock_select:
            reply = await ConsoleOperatorPrompt(console).ask("Which namespace?")

        assert reply == "kube-system"
        assert mock_select.call_count == 3
        assert all(call.args[3] == 0.3 for call in mock_select.call_args_list)

    @pytest.mark.asyncio
    async def test_end_of_input_raises(self, console):
        stdin = FakeTerminal("")

        with patch("sys.stdin", stdin), patch("select.select", return_value=([stdin], [], [])):
            with pytest.raises(OperatorTerminatedError) as exc_info:
                await ConsoleOperatorPrompt(console).ask("Which namespace?")

        assert exc_info.value.reason == "input closed"

    @pytest.mark.asyncio
    async def test_cancelled_wait_does_not_leave_a_blocked_reader(self, console):
        """Cancelling the prompt returns at once; the worker only ever sleeps in select()."""
        stdin = FakeTerminal("")

        def never_ready(rlist, wlist, xlist, timeout):
            time.sleep(0.01)
            return [], [], []

        with patch("sys.stdin", stdin), patch("select.select", side_effect=never_ready):
            with pytest.raises(asyncio.TimeoutError):
                await asyncio.wait_for(ConsoleOperatorPrompt(console).ask("Which namespace?"), timeout=0.2)


def test_turn_printer_shows_calls_and_failures(console):
    """Tool calls and failed results are printed with markup-like text escaped."""
    printer = TurnPrinter(console)
    printer(
        AIMessage(
            text="Checking logs.",
            tool_calls=(ToolCallRequest(request_id=1, tool_name="journalctl_service", arguments={"service": "[nginx]"}),),
        )
    )
    printer(
        ToolOutcome(
            result=ToolResult(
                request_id=1,
                tool_name="journalctl_service",
                status=ToolStatus.FAILED,
                error_detail="no such unit [nginx]",
                error_kind=ErrorKind.TOOL_EXECUTION_FAILED,
            )
        )
    )

    text = output_of(console)
    assert "#1 journalctl_service" in text
    assert "service='[nginx]'" in text
    assert "tool_execution_failed: no such unit [nginx]" in text


def test_render_outcome_failed_shows_partial_analysis(console):
    outcome = SessionOutcome(
        session_id="s1",
        state=SessionState.failed("operator declined to continue", ErrorKind.OPERATOR_TERMINATED, "Memory looks tight."),
        budget=BudgetState(used=10, limit=10, initial_limit=10),
        history_length=20,
    )

    render_outcome(console, outcome)

    text = output_of(console)
    assert "Session failed:" in text
    assert "Partial analysis" in text
    assert "Memory looks tight." in text
    assert "10 tool call(s) used of 10" in text


def test_tools_table_marks_optional_parameters(console, registry):
    console.print(tools_table(registry))

    text = output_of(console)
    assert "echo" in text
    assert "text" in text
    assert "Always fails" in text
