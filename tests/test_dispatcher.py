"""Tests for ToolDispatcher and output truncation."""

import pytest

from raid_core.agent.types import ToolCallRequest, ToolStatus
from raid_core.exceptions import ErrorKind
from raid_core.tools.dispatcher import ToolDispatcher, truncate_output
from raid_core.tools.registry import ParamDef, ToolDefinition


def request(tool_name, arguments=None, request_id=1):
    return ToolCallRequest(request_id=request_id, tool_name=tool_name, arguments=arguments or {})


def test_truncate_output_marks_cut():
    text, truncated = truncate_output("x" * 120, 100)

    assert truncated
    assert text.startswith("x" * 100)
    assert text.endswith("...[truncated 20 characters]")


def test_truncate_output_keeps_short_text():
    assert truncate_output("short", 100) == ("short", False)


@pytest.mark.parametrize("timeout", [0, -1, float("inf"), float("nan")])
def test_rejects_non_finite_timeout(registry, timeout):
    with pytest.raises(ValueError, match="timeout"):
        ToolDispatcher(registry, timeout=timeout)


@pytest.mark.asyncio
async def test_success(dispatcher):
    result = await dispatcher.execute(request("echo", {"text": "hello"}, request_id=7))

    assert result.status == ToolStatus.SUCCESS
    assert result.request_id == 7
    assert result.output == "hello"
    assert result.error_kind is None
    assert not result.truncated


@pytest.mark.asyncio
async def test_long_output_is_truncated(registry):
    dispatcher = ToolDispatcher(registry, max_output_chars=10)

    result = await dispatcher.execute(request("echo", {"text": "a" * 50}))

    assert result.succeeded
    assert result.truncated
    assert result.output.startswith("a" * 10 + "\n...[truncated 40")


@pytest.mark.asyncio
async def test_unknown_tool(dispatcher):
    """Unknown tools fail with the list of available tools, never raise."""
    result = await dispatcher.execute(request("rm_rf"))

    assert result.status == ToolStatus.FAILED
    assert result.error_kind == ErrorKind.TOOL_NOT_FOUND
    assert result.error_detail == "unknown tool 'rm_rf'. Available tools: echo, fail, slow"


@pytest.mark.asyncio
async def test_invalid_arguments(dispatcher):
    result = await dispatcher.execute(request("echo", {"txt": "hello"}))

    assert result.error_kind == ErrorKind.TOOL_ARGUMENT_INVALID
    assert "unknown parameter 'txt'" in result.error_detail
    assert "missing required parameter 'text'" in result.error_detail


@pytest.mark.asyncio
async def test_reported_failure(dispatcher):
    result = await dispatcher.execute(request("fail"))

    assert result.error_kind == ErrorKind.TOOL_EXECUTION_FAILED
    assert result.error_detail == "disk on fire"


@pytest.mark.asyncio
async def test_timeout(registry):
    dispatcher = ToolDispatcher(registry, timeout=0.05)

    result = await dispatcher.execute(request("slow"))

    assert result.error_kind == ErrorKind.TOOL_EXECUTION_TIMEOUT
    assert result.error_detail == "timeout"


@pytest.mark.asyncio
async def test_raising_executor_is_captured(registry):
    async def boom(arguments):
        raise RuntimeError("kaboom")

    registry.register(ToolDefinition(name="boom", description="Raises"), boom)
    dispatcher = ToolDispatcher(registry)

    result = await dispatcher.execute(request("boom"))

    assert result.error_kind == ErrorKind.TOOL_EXECUTION_FAILED
    assert result.error_detail == "RuntimeError: kaboom"


@pytest.mark.asyncio
async def test_defaults_are_filled(registry):
    seen = {}

    async def capture(arguments):
        seen.update(arguments)
        return "ok", True

    registry.register(
        ToolDefinition(
            name="tail",
            description="Tail",
            parameters={"lines": ParamDef(type="int", description="Lines", required=False, default=50)},
        ),
        capture,
    )

    result = await ToolDispatcher(registry).execute(request("tail"))

    assert result.succeeded
    assert seen == {"lines": 50}
