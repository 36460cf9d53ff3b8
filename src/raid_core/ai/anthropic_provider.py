"""
Anthropic Messages API provider.

Uses native tool use: every registered tool is offered as a tool definition,
plus an ask_user tool the model calls when it needs the operator. History is
rendered as alternating user / assistant messages; consecutive turns with the
same role are merged into one message because the API requires alternation.
"""

import logging
from typing import Any, Sequence

import anthropic
from anthropic import AsyncAnthropic

from raid_core.agent.types import (
    AIMessage,
    ClarificationRequest,
    Completion,
    ConversationTurn,
    ProblemStatement,
    ToolOutcome,
    UserClarification,
)
from raid_core.ai.prompts import ASK_USER_DESCRIPTION, build_system_prompt
from raid_core.ai.provider import (
    ASK_USER_TOOL,
    ask_user_schema,
    build_completion,
    render_problem,
    tool_call_id,
)
from raid_core.exceptions import AIProviderUnavailableError
from raid_core.tools.registry import ToolDefinition

logger = logging.getLogger(__name__)


def _text(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def render_messages(history: Sequence[ConversationTurn]) -> list[dict[str, Any]]:
    """Render history as Anthropic messages with content block lists."""
    messages: list[dict[str, Any]] = []

    def add(role: str, blocks: list[dict[str, Any]]) -> None:
        if not blocks:
            return
        if messages and messages[-1]["role"] == role:
            messages[-1]["content"].extend(blocks)
        else:
            messages.append({"role": role, "content": blocks})

    for turn in history:
        if isinstance(turn, ProblemStatement):
            add("user", [_text(render_problem(turn))])
        elif isinstance(turn, AIMessage):
            blocks = [_text(turn.text)] if turn.text.strip() else []
            for call in turn.tool_calls:
                blocks.append({
                    "type": "tool_use",
                    "id": tool_call_id(call.request_id),
                    "name": call.tool_name,
                    "input": call.arguments,
                })
            add("assistant", blocks)
        elif isinstance(turn, ToolOutcome):
            add("user", [{
                "type": "tool_result",
                "tool_use_id": tool_call_id(turn.result.request_id),
                "content": turn.result.render(),
                "is_error": not turn.result.succeeded,
            }])
        elif isinstance(turn, ClarificationRequest):
            add("assistant", [_text(turn.text)])
        elif isinstance(turn, UserClarification):
            add("user", [_text(turn.text)])

    return messages


def render_tools(tools: Sequence[ToolDefinition]) -> list[dict[str, Any]]:
    rendered = [
        {"name": tool.name, "description": tool.description, "input_schema": tool.input_schema()}
        for tool in tools
    ]
    rendered.append({
        "name": ASK_USER_TOOL,
        "description": ASK_USER_DESCRIPTION,
        "input_schema": ask_user_schema(),
    })
    return rendered


class AnthropicProvider:
    """
    Completion provider backed by Claude.

    Attributes:
        client: AsyncAnthropic client
        model: Model name
        max_tokens: Maximum tokens per completion
        temperature: Sampling temperature
    """

    name = "anthropic"

    def __init__(
        self,
        client: AsyncAnthropic,
        model: str,
        *,
        max_tokens: int = 1000,
        temperature: float = 0.7,
        system_prompt: str | None = None,
    ) -> None:
        self.client = client
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.system_prompt = system_prompt or build_system_prompt()

    async def complete(
        self,
        history: Sequence[ConversationTurn],
        tools: Sequence[ToolDefinition],
    ) -> Completion:
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                system=self.system_prompt,
                messages=render_messages(history),
                tools=render_tools(tools),
            )
        except anthropic.APIStatusError as e:
            raise AIProviderUnavailableError(self.name, f"HTTP {e.status_code}: {e.message}") from e
        except anthropic.APIConnectionError as e:
            raise AIProviderUnavailableError(self.name, str(e)) from e
        except anthropic.APIError as e:
            raise AIProviderUnavailableError(self.name, f"{type(e).__name__}: {e}") from e

        logger.debug(f"Anthropic stop_reason={response.stop_reason}")

        text_parts = []
        calls = []
        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                calls.append((block.name, block.input))

        return build_completion(self.name, "\n".join(text_parts), calls)
