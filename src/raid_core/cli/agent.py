"""Diagnosis CLI commands.

This module provides CLI commands for the AI diagnosis agent:
- diagnose: Start a new session for a problem description
- resume: Continue a saved (paused or limit-reached) session
- tools: Show the diagnostic tool catalogue

Environment variables mirror the --ai-* options (AI_PROVIDER, AI_API_KEY,
AI_MODEL, AI_BASE_URL, AI_MAX_TOKENS, AI_TEMPERATURE, AI_MAX_TOOL_CALLS).
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import httpx
import typer
from rich.console import Console
from rich.panel import Panel

from raid_core.agent.controller import PauseResumeController
from raid_core.agent.session import AgentSession
from raid_core.agent.store import SessionStore
from raid_core.agent.types import SessionOutcome, SessionStatus
from raid_core.ai.factory import create_provider
from raid_core.ai.provider import CompletionProvider
from raid_core.cli.console import (
    ConsoleOperatorPrompt,
    TurnPrinter,
    render_outcome,
    setup_logging,
    tools_table,
)
from raid_core.config import DEFAULT_SESSIONS_DIR, AgentSettings, AISettings, ProviderKind
from raid_core.exceptions import ConfigurationError, SessionNotFoundError
from raid_core.sysinfo import collect_system_info, format_context
from raid_core.tools.catalog import build_default_registry
from raid_core.tools.dispatcher import ToolDispatcher

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


@asynccontextmanager
async def open_provider(settings: AISettings) -> AsyncIterator[CompletionProvider]:
    """Create the provider, owning the HTTP client the local provider needs."""
    if settings.provider == ProviderKind.LOCAL:
        async with httpx.AsyncClient(
            base_url=settings.resolved_base_url(), timeout=settings.request_timeout
        ) as http:
            yield create_provider(settings, http=http)
    else:
        yield create_provider(settings)


async def drive_session(
    session: AgentSession,
    controller: PauseResumeController,
    store: SessionStore | None,
) -> SessionOutcome:
    """
    Drive a session to completion, snapshotting it at every suspension.

    The snapshot taken at the last suspension stays on disk when the session
    ends without an answer, so it can be resumed; it is removed once the
    session completes.
    """

    def on_suspend(outcome: SessionOutcome) -> None:
        if store is not None:
            store.save(session.snapshot())

    outcome = await controller.drive(session, on_suspend=on_suspend)

    if store is not None and outcome.status == SessionStatus.COMPLETED:
        store.delete(session.session_id)
    return outcome


def _ai_settings(
    console: Console,
    provider: ProviderKind,
    api_key: str | None,
    model: str | None,
    base_url: str | None,
    max_tokens: int,
    temperature: float,
) -> AISettings:
    try:
        settings = AISettings(
            provider=provider,
            api_key=api_key,
            model=model,
            base_url=base_url,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        settings.check_credentials()
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None
    return settings


def _finish(console: Console, outcome: SessionOutcome, store: SessionStore | None) -> None:
    render_outcome(console, outcome)
    if outcome.status == SessionStatus.COMPLETED:
        return
    if store is not None and store.path_for(outcome.session_id).exists():
        console.print(
            f"[dim]Session saved. Continue with:[/dim] raid resume {outcome.session_id} --ai-agent-mode"
        )
    raise typer.Exit(1)


def _interrupted(console: Console, session: AgentSession | None, store: SessionStore | None) -> None:
    """
    Report a Ctrl-C.

    The session is failed (if cancellation has not already done it) and shown
    with its partial analysis. With a store, the full record is saved for
    'raid sessions show'; a failed session cannot be resumed.
    """
    console.print("\n[yellow]Interrupted.[/yellow]")
    if session is None:
        return
    if not session.status.is_terminal:
        session.terminate("session interrupted")
    render_outcome(console, session.outcome())
    if store is not None:
        store.save(session.snapshot())
        console.print(f"[dim]Session saved. Inspect with:[/dim] raid sessions show {session.session_id}")


def diagnose(
    problem: str = typer.Argument(..., help="Describe the problem to diagnose"),
    ai_agent_mode: bool = typer.Option(
        False,
        "--ai-agent-mode",
        help="Interactive mode: answer the assistant's questions and extend the tool call budget",
    ),
    ai_max_tool_calls: int = typer.Option(
        50,
        "--ai-max-tool-calls",
        envvar="AI_MAX_TOOL_CALLS",
        help="Tool call budget in agent mode (10 otherwise)",
    ),
    ai_provider: ProviderKind = typer.Option(
        ProviderKind.OPENAI, "--ai-provider", "-p", envvar="AI_PROVIDER", help="AI provider"
    ),
    ai_api_key: str = typer.Option(
        None, "--ai-api-key", "-k", envvar="AI_API_KEY", help="API key for openai / anthropic"
    ),
    ai_model: str = typer.Option(
        None, "--ai-model", "-m", envvar="AI_MODEL", help="Model name (provider default if unset)"
    ),
    ai_base_url: str = typer.Option(
        None, "--ai-base-url", envvar="AI_BASE_URL", help="Custom API endpoint"
    ),
    ai_max_tokens: int = typer.Option(
        1000, "--ai-max-tokens", envvar="AI_MAX_TOKENS", help="Maximum tokens per completion"
    ),
    ai_temperature: float = typer.Option(
        0.7, "--ai-temperature", envvar="AI_TEMPERATURE", help="Sampling temperature (0.0-2.0)"
    ),
    tool_timeout: float = typer.Option(30.0, "--tool-timeout", help="Per-tool timeout in seconds"),
    deadline: float = typer.Option(
        None, "--deadline", help="Overall session deadline in seconds"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show host facts and available tools without calling the AI"
    ),
    save_session: bool = typer.Option(
        True, "--save-session/--no-save-session", help="Save unfinished sessions for 'raid resume'"
    ),
    sessions_dir: Path = typer.Option(
        DEFAULT_SESSIONS_DIR, "--sessions-dir", help="Where sessions are saved"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and tool output"),
) -> None:
    """
    Diagnose a problem on this machine.

    The assistant runs read-only diagnostic tools (kubectl, journalctl,
    systemctl, ...) until it can explain the problem. Without --ai-agent-mode
    the run is non-interactive with a budget of 10 tool calls.
    """
    console = Console()
    setup_logging(verbose)

    try:
        agent_settings = AgentSettings(
            max_tool_calls=ai_max_tool_calls,
            tool_timeout=tool_timeout,
            deadline=deadline,
            interactive=ai_agent_mode,
            sessions_dir=sessions_dir,
        )
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    context = format_context(collect_system_info())
    registry = build_default_registry()

    if dry_run:
        console.print(Panel(context, title="System information"))
        console.print(tools_table(registry))
        console.print(
            f"[dim]Budget: {agent_settings.initial_budget()} tool calls, "
            f"interactive: {'yes' if agent_settings.interactive else 'no'}[/dim]"
        )
        return

    ai_settings = _ai_settings(
        console, ai_provider, ai_api_key, ai_model, ai_base_url, ai_max_tokens, ai_temperature
    )
    store = SessionStore(agent_settings.sessions_dir) if save_session else None
    dispatcher = ToolDispatcher(
        registry,
        timeout=agent_settings.tool_timeout,
        max_output_chars=agent_settings.max_output_chars,
    )
    controller = PauseResumeController(
        ConsoleOperatorPrompt(console) if agent_settings.interactive else None,
        allow_continuation=agent_settings.interactive,
    )

    console.print(
        f"[bold]Diagnosing with {ai_settings.provider.value} ({ai_settings.resolved_model()})[/bold] "
        f"[dim]budget {agent_settings.initial_budget()} tool calls[/dim]"
    )

    session: AgentSession | None = None

    async def _run() -> SessionOutcome:
        nonlocal session
        async with open_provider(ai_settings) as provider:
            session = AgentSession(
                problem,
                provider=provider,
                dispatcher=dispatcher,
                budget=agent_settings.initial_budget(),
                context=context,
                deadline=agent_settings.deadline,
                on_turn=TurnPrinter(console, verbose=verbose),
            )
            logger.info(f"Started session {session.session_id}")
            return await drive_session(session, controller, store)

    try:
        outcome = asyncio.run(_run())
    except KeyboardInterrupt:
        _interrupted(console, session, store)
        raise typer.Exit(EXIT_INTERRUPTED) from None

    _finish(console, outcome, store)


def resume(
    session_id: str = typer.Argument(..., help="Session ID (see 'raid sessions')"),
    ai_agent_mode: bool = typer.Option(
        True,
        "--ai-agent-mode/--no-ai-agent-mode",
        help="Answer questions and extend the budget interactively",
    ),
    ai_provider: ProviderKind = typer.Option(
        ProviderKind.OPENAI, "--ai-provider", "-p", envvar="AI_PROVIDER", help="AI provider"
    ),
    ai_api_key: str = typer.Option(
        None, "--ai-api-key", "-k", envvar="AI_API_KEY", help="API key for openai / anthropic"
    ),
    ai_model: str = typer.Option(
        None, "--ai-model", "-m", envvar="AI_MODEL", help="Model name (provider default if unset)"
    ),
    ai_base_url: str = typer.Option(
        None, "--ai-base-url", envvar="AI_BASE_URL", help="Custom API endpoint"
    ),
    ai_max_tokens: int = typer.Option(
        1000, "--ai-max-tokens", envvar="AI_MAX_TOKENS", help="Maximum tokens per completion"
    ),
    ai_temperature: float = typer.Option(
        0.7, "--ai-temperature", envvar="AI_TEMPERATURE", help="Sampling temperature (0.0-2.0)"
    ),
    tool_timeout: float = typer.Option(30.0, "--tool-timeout", help="Per-tool timeout in seconds"),
    deadline: float = typer.Option(
        None, "--deadline", help="Session deadline in seconds for this run"
    ),
    sessions_dir: Path = typer.Option(
        DEFAULT_SESSIONS_DIR, "--sessions-dir", help="Where sessions are saved"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging and tool output"),
) -> None:
    """
    Resume a saved session.

    History, budget and pending tool calls are restored exactly; the session
    continues from the question or limit it stopped at.
    """
    console = Console()
    setup_logging(verbose)

    store = SessionStore(sessions_dir)
    try:
        snapshot = store.load(session_id)
        AgentSession.check_snapshot(snapshot)
    except (SessionNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    if snapshot.state.status.is_terminal:
        console.print(
            f"[red]Error:[/red] session {session_id} is {snapshot.state.status.value} "
            "and cannot be resumed"
        )
        raise typer.Exit(1)

    try:
        agent_settings = AgentSettings(
            tool_timeout=tool_timeout, deadline=deadline, interactive=ai_agent_mode
        )
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    ai_settings = _ai_settings(
        console, ai_provider, ai_api_key, ai_model, ai_base_url, ai_max_tokens, ai_temperature
    )
    dispatcher = ToolDispatcher(
        build_default_registry(),
        timeout=agent_settings.tool_timeout,
        max_output_chars=agent_settings.max_output_chars,
    )
    controller = PauseResumeController(
        ConsoleOperatorPrompt(console) if agent_settings.interactive else None,
        allow_continuation=agent_settings.interactive,
    )

    console.print(
        f"[bold]Resuming {snapshot.session_id}[/bold] [dim]({snapshot.state.status.value}, "
        f"{snapshot.budget.used}/{snapshot.budget.limit} tool calls used)[/dim]"
    )
    console.print(f"[dim]Problem:[/dim] {snapshot.problem}", highlight=False)

    session: AgentSession | None = None

    async def _run() -> SessionOutcome:
        nonlocal session
        async with open_provider(ai_settings) as provider:
            session = AgentSession.restore(
                snapshot,
                provider=provider,
                dispatcher=dispatcher,
                deadline=agent_settings.deadline,
                on_turn=TurnPrinter(console, verbose=verbose),
            )
            return await drive_session(session, controller, store)

    try:
        outcome = asyncio.run(_run())
    except KeyboardInterrupt:
        _interrupted(console, session, store)
        raise typer.Exit(EXIT_INTERRUPTED) from None

    _finish(console, outcome, store)


def list_tools() -> None:
    """Show the diagnostic tools the assistant can use."""
    Console().print(tools_table(build_default_registry()))
