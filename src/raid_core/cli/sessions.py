"""Saved session CLI commands.

This module provides CLI commands for snapshots written by diagnose/resume:
- (no subcommand) / list: Display saved sessions in table or JSON format
- show: Print the conversation of one session
- delete: Remove a saved session
"""

import json
from pathlib import Path

import typer
from rich.console import Console

from raid_core.agent.history import ConversationHistory
from raid_core.agent.store import SessionStore
from raid_core.cli.console import sessions_table
from raid_core.config import DEFAULT_SESSIONS_DIR
from raid_core.exceptions import SessionNotFoundError

sessions_app = typer.Typer(help="Manage saved diagnosis sessions")

SessionsDirOption = typer.Option(DEFAULT_SESSIONS_DIR, "--sessions-dir", help="Where sessions are saved")


@sessions_app.callback(invoke_without_command=True)
def sessions_main(
    ctx: typer.Context,
    sessions_dir: Path = SessionsDirOption,
) -> None:
    """List saved sessions (newest first)."""
    if ctx.invoked_subcommand is None:
        list_sessions(sessions_dir=sessions_dir, json_output=False)


@sessions_app.command("list")
def list_sessions(
    sessions_dir: Path = SessionsDirOption,
    json_output: bool = typer.Option(False, "--json", "-j", help="Output as JSON"),
) -> None:
    """List saved sessions."""
    snapshots = SessionStore(sessions_dir).list_sessions()

    if json_output:
        data = [
            {
                "session_id": s.session_id,
                "status": s.state.status.value,
                "used": s.budget.used,
                "limit": s.budget.limit,
                "saved_at": s.saved_at.isoformat(),
                "problem": s.problem,
            }
            for s in snapshots
        ]
        print(json.dumps(data, indent=2))
        return

    console = Console()
    if not snapshots:
        console.print("No saved sessions.")
        return
    console.print(sessions_table(snapshots))


@sessions_app.command("show")
def show_session(
    session_id: str = typer.Argument(..., help="Session ID"),
    sessions_dir: Path = SessionsDirOption,
) -> None:
    """Print the conversation recorded in a saved session."""
    try:
        snapshot = SessionStore(sessions_dir).load(session_id)
    except (SessionNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        raise typer.Exit(1) from None

    history = ConversationHistory(snapshot.history)
    Console().print(history.summary(), markup=False, highlight=False)


@sessions_app.command("delete")
def delete_session(
    session_id: str = typer.Argument(..., help="Session ID to delete"),
    sessions_dir: Path = SessionsDirOption,
) -> None:
    """Delete a saved session."""
    try:
        deleted = SessionStore(sessions_dir).delete(session_id)
    except ValueError as e:
        print(f"Error: {e}")
        raise typer.Exit(1) from None

    if not deleted:
        print(f"Session {session_id} not found")
        raise typer.Exit(1)
    print(f"Deleted session {session_id}")
