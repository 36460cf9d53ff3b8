"""Terminal I/O for the CLI: operator prompts, turn rendering and logging setup."""

import asyncio
import logging
import select
import sys
from typing import Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from raid_core.agent.controller import QUIT_TOKEN, ContinuationAnswer, parse_continuation
from raid_core.agent.types import (
    AIMessage,
    ClarificationRequest,
    ConversationTurn,
    SessionOutcome,
    SessionSnapshot,
    SessionStatus,
    ToolOutcome,
    UserClarification,
)
from raid_core.exceptions import OperatorTerminatedError
from raid_core.tools.registry import ToolRegistry

_NOISY_LOGGERS = ("httpx", "httpcore", "anthropic", "openai")


def _format_arguments(arguments: dict) -> str:
    return escape(" ".join(f"{key}={value!r}" for key, value in arguments.items()))


def setup_logging(verbose: bool = False, console: Console | None = None) -> None:
    """Route log records through rich; WARNING by default, DEBUG when verbose."""
    level = logging.DEBUG if verbose else logging.WARNING
    handler = RichHandler(console=console or Console(stderr=True), show_path=verbose)
    logging.basicConfig(level=level, format="%(message)s", datefmt="[%X]", handlers=[handler], force=True)

    quiet_level = logging.WARNING if level < logging.WARNING else level
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def _readline_with_timeout(timeout: float) -> str | None:
    """
    Read a line from stdin if one arrives within timeout.

    Returns:
        The line (empty string at end of input), or None on timeout
    """
    if select.select([sys.stdin], [], [], timeout)[0]:
        return sys.stdin.readline()
    return None


class ConsoleOperatorPrompt:
    """
    OperatorPrompt that reads answers from stdin.

    On a terminal, stdin is polled from the default executor with a short
    select() timeout so the worker thread always returns quickly and Ctrl-C
    can shut the event loop down without waiting for a line. Other inputs
    (pipes, captured consoles) go through Console.input in the executor.
    End of input and the quit token raise OperatorTerminatedError.
    """

    PROMPT = "[bold cyan]> [/bold cyan]"

    def __init__(self, console: Console) -> None:
        self.console = console

    async def _readline(self) -> str:
        loop = asyncio.get_running_loop()
        if not sys.stdin.isatty():
            return await loop.run_in_executor(None, self.console.input, self.PROMPT)

        self.console.print(self.PROMPT, end="")
        while True:
            line = await loop.run_in_executor(None, lambda: _readline_with_timeout(0.3))
            if line is None:
                continue
            if not line:
                raise EOFError()
            return line.rstrip("\n")

    async def _read(self) -> str:
        try:
            line = await self._readline()
        except EOFError:
            raise OperatorTerminatedError("input closed") from None
        if line.strip().lower() == QUIT_TOKEN:
            raise OperatorTerminatedError("operator quit")
        return line

    async def ask(self, question: str) -> str:
        self.console.print(
            Panel(question, title="The assistant needs more information", border_style="yellow")
        )
        self.console.print(f"[dim]Type your answer, or '{QUIT_TOKEN}' to stop.[/dim]")
        return await self._read()

    async def confirm(self, message: str) -> bool:
        self.console.print(f"[yellow]{escape(message)}[/yellow] [dim](yes/no/{QUIT_TOKEN})[/dim]")
        while True:
            answer = parse_continuation(await self._read())
            if answer is None:
                self.console.print("Please answer yes, no or quit.")
                continue
            if answer == ContinuationAnswer.QUIT:
                raise OperatorTerminatedError("operator quit")
            return answer == ContinuationAnswer.YES


class TurnPrinter:
    """Prints conversation turns as they are appended to the history."""

    def __init__(self, console: Console, verbose: bool = False) -> None:
        self.console = console
        self.verbose = verbose

    def __call__(self, turn: ConversationTurn) -> None:
        if isinstance(turn, AIMessage):
            if turn.text.strip() and turn.tool_calls:
                self.console.print(f"[italic]{escape(turn.text.strip())}[/italic]")
            for call in turn.tool_calls:
                self.console.print(
                    f"[cyan]→ #{call.request_id} {call.tool_name}[/cyan] "
                    f"[dim]{_format_arguments(call.arguments)}[/dim]",
                    highlight=False,
                )
        elif isinstance(turn, ToolOutcome):
            result = turn.result
            if result.succeeded:
                note = " (truncated)" if result.truncated else ""
                self.console.print(
                    f"  [green]✓[/green] {result.tool_name} [dim]{result.duration_ms}ms{note}[/dim]"
                )
                if self.verbose:
                    self.console.print(result.output, markup=False, highlight=False)
            else:
                kind = result.error_kind.value if result.error_kind else "failed"
                self.console.print(
                    f"  [red]✗[/red] {result.tool_name} [dim]{kind}: {escape(result.error_detail or '')}[/dim]",
                    highlight=False,
                )
        elif isinstance(turn, ClarificationRequest) and self.verbose:
            self.console.print(f"[yellow]? {escape(turn.text)}[/yellow]")
        elif isinstance(turn, UserClarification) and self.verbose:
            self.console.print(f"[dim]operator: {escape(turn.text)}[/dim]")


def render_outcome(console: Console, outcome: SessionOutcome) -> None:
    """Print the final answer, or the failure and whatever analysis exists."""
    budget = outcome.budget
    footer = f"{budget.used} tool call(s) used of {budget.limit}"
    if budget.extensions_granted:
        footer += f", {budget.extensions_granted} extension(s)"

    state = outcome.state
    if outcome.status == SessionStatus.COMPLETED:
        console.print(
            Panel(Markdown(state.final_answer or ""), title="Diagnosis", border_style="green")
        )
    else:
        console.print(f"[red]Session {outcome.status.value}:[/red] {escape(state.failure_reason or '')}")
        if state.partial_analysis:
            console.print(
                Panel(Markdown(state.partial_analysis), title="Partial analysis", border_style="yellow")
            )
    console.print(f"[dim]{footer}[/dim]")


def tools_table(registry: ToolRegistry) -> Table:
    table = Table(title="Diagnostic tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Parameters")
    table.add_column("Description")

    for definition in registry.get_definitions():
        params = ", ".join(
            name if param.required else escape(f"[{name}]")
            for name, param in definition.parameters.items()
        )
        table.add_row(definition.name, definition.category, params or "-", definition.description)
    return table


def sessions_table(snapshots: Sequence[SessionSnapshot]) -> Table:
    table = Table(title="Saved sessions")
    table.add_column("Session", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Tool calls", justify="right")
    table.add_column("Saved")
    table.add_column("Problem")

    for snapshot in snapshots:
        problem = snapshot.problem
        if len(problem) > 60:
            problem = problem[:57] + "..."
        table.add_row(
            snapshot.session_id,
            snapshot.state.status.value,
            f"{snapshot.budget.used}/{snapshot.budget.limit}",
            snapshot.saved_at.strftime("%Y-%m-%d %H:%M:%S"),
            problem,
        )
    return table
