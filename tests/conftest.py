"""Shared fixtures: a scripted AI provider and a small tool registry."""

import asyncio

import pytest

from raid_core.agent.types import (
    ClarificationNeeded,
    FinalAnswer,
    RequestedToolCall,
    ToolCallBatch,
)
from raid_core.tools.dispatcher import ToolDispatcher
from raid_core.tools.registry import ParamDef, ToolDefinition, ToolRegistry


class ScriptedProvider:
    """Returns pre-scripted completions and records the history of each call.

    A scripted entry that is an exception instance is raised instead.
    """

    name = "scripted"

    def __init__(self, replies):
        self.replies = list(replies)
        self.histories = []
        self.tool_names = []

    async def complete(self, history, tools):
        self.histories.append(list(history))
        self.tool_names.append([tool.name for tool in tools])
        if not self.replies:
            raise AssertionError("ScriptedProvider ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    @property
    def call_count(self):
        return len(self.histories)


class BlockingProvider:
    """Never answers; sets `started` once complete() is awaited."""

    name = "blocking"

    def __init__(self):
        self.started = asyncio.Event()

    async def complete(self, history, tools):
        self.started.set()
        await asyncio.Event().wait()


def batch(*calls, text=""):
    """ToolCallBatch from (tool_name, arguments) pairs or bare tool names."""
    requested = []
    for call in calls:
        if isinstance(call, str):
            requested.append(RequestedToolCall(tool_name=call))
        else:
            name, arguments = call
            requested.append(RequestedToolCall(tool_name=name, arguments=arguments))
    return ToolCallBatch(text=text, calls=requested)


def echo(text):
    return ("echo", {"text": text})


def answer(text="All good."):
    return FinalAnswer(text=text)


def question(text, preamble=""):
    return ClarificationNeeded(question=text, text=preamble)


async def _echo(arguments):
    return arguments["text"], True


async def _fail(arguments):
    return "disk on fire", False


async def _slow(arguments):
    await asyncio.sleep(10)
    return "too late", True


def build_test_registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        ToolDefinition(
            name="echo",
            description="Echo the text back",
            parameters={"text": ParamDef(type="str", description="Text to echo")},
        ),
        _echo,
    )
    registry.register(
        ToolDefinition(name="fail", description="Always fails"),
        _fail,
    )
    registry.register(
        ToolDefinition(name="slow", description="Sleeps for ten seconds"),
        _slow,
    )
    return registry


@pytest.fixture
def registry():
    return build_test_registry()


@pytest.fixture
def dispatcher(registry):
    return ToolDispatcher(registry, timeout=1.0)
