"""Async subprocess execution for command-backed diagnostic tools."""

import asyncio
from asyncio.subprocess import PIPE
from typing import Any, Callable, Sequence

from raid_core.tools.registry import ToolExecutor

ArgvBuilder = Callable[[dict[str, Any]], list[str]]


async def run_command(argv: Sequence[str]) -> tuple[str, bool]:
    """Run a command and capture its output.

    This is a pure execution function: no shell, no timeout of its own.
    The ToolDispatcher bounds execution time with asyncio.wait_for; when that
    cancels us, the child process is killed and reaped before the
    cancellation propagates.

    Args:
        argv: Program and arguments (passed to exec directly, never to a shell)

    Returns:
        (output, success) where output is stdout, with stderr and the exit
        code appended when the command fails. A missing binary is reported as
        a failure rather than raised.
    """
    try:
        proc = await asyncio.create_subprocess_exec(*argv, stdout=PIPE, stderr=PIPE)
    except FileNotFoundError:
        return f"command not found: {argv[0]}", False
    except PermissionError as e:
        return f"permission denied running {argv[0]}: {e}", False

    try:
        stdout_bytes, stderr_bytes = await proc.communicate()
    except asyncio.CancelledError:
        # Kill the process and wait for cleanup to prevent zombies
        proc.kill()
        await proc.wait()
        raise

    stdout = stdout_bytes.decode("utf-8", errors="replace") if stdout_bytes else ""
    stderr = stderr_bytes.decode("utf-8", errors="replace") if stderr_bytes else ""

    if proc.returncode != 0:
        output = stdout
        if stderr:
            output += f"\n\nSTDERR: {stderr}"
        output += f"\nExit code: {proc.returncode}"
        return output.lstrip("\n"), False
    return stdout, True


def command_executor(build_argv: ArgvBuilder) -> ToolExecutor:
    """
    Wrap an argv builder into a ToolExecutor.

    Args:
        build_argv: Maps validated arguments to the command line

    Returns:
        Async executor suitable for ToolRegistry.register()
    """

    async def _execute(arguments: dict[str, Any]) -> tuple[str, bool]:
        return await run_command(build_argv(arguments))

    return _execute

