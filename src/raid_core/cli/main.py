"""RAID CLI - AI-assisted system health diagnosis."""

import typer

from raid_core.cli.agent import diagnose, list_tools, resume
from raid_core.cli.sessions import sessions_app

app = typer.Typer(
    name="raid",
    help="AI-assisted diagnosis of Linux, systemd and Kubernetes problems",
    no_args_is_help=True,
)

app.command("diagnose")(diagnose)
app.command("resume")(resume)
app.command("tools")(list_tools)

# Add command groups
app.add_typer(sessions_app, name="sessions")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
