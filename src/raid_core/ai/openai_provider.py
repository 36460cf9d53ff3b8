"""
OpenAI chat completions provider.

Also serves OpenAI-compatible endpoints through a custom base URL. Tools are
offered as function tools; tool outcomes are sent back as role "tool"
messages keyed by the call id.
"""

import json
import logging
from typing import Any, Sequence

import openai
from openai import AsyncOpenAI

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
from raid_core.exceptions import AIProviderUnavailableError, AIResponseMalformedError
from raid_core.tools.registry import ToolDefinition

logger = logging.getLogger(__name__)


def render_messages(system_prompt: str, history: Sequence[ConversationTurn]) -> list[dict[str, Any]]:
    """Render history as chat messages, system prompt first."""
    messages: list[dict[str, Any]] = [{"role": "system", "content": system_prompt}]

    for turn in history:
        if isinstance(turn, ProblemStatement):
            messages.append({"role": "user", "content": render_problem(turn)})
        elif isinstance(turn, AIMessage):
            message: dict[str, Any] = {"role": "assistant", "content": turn.text or None}
            if turn.tool_calls:
                message["tool_calls"] = [
                    {
                        "id": tool_call_id(call.request_id),
                        "type": "function",
                        "function": {
                            "name": call.tool_name,
                            "arguments": json.dumps(call.arguments),
                        },
                    }
                    for call in turn.tool_calls
                ]
            elif not turn.text:
                continue
            messages.append(message)
        elif isinstance(turn, ToolOutcome):
            messages.append({
                "role": "tool",
                "tool_call_id": tool_call_id(turn.result.request_id),
                "content": turn.result.render(),
            })
        elif isinstance(turn, ClarificationRequest):
            messages.append({"role": "assistant", "content": turn.text})
        elif isinstance(turn, UserClarification):
            messages.append({"role": "user", "content": turn.text})

    return messages


def render_tools(tools: Sequence[ToolDefinition]) -> list[dict[str, Any]]:
    """Convert tool definitions to OpenAI function format."""
    rendered = [
        {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.input_schema(),
            },
        }
        for tool in tools
    ]
    rendered.append({
        "type": "function",
        "function": {
            "name": ASK_USER_TOOL,
            "description": ASK_USER_DESCRIPTION,
            "parameters": ask_user_schema(),
        },
    })
    return rendered


class OpenAIProvider:
    """Completion provider backed by the OpenAI chat completions API."""

    name = "openai"

    def __init__(
        self,
        client: AsyncOpenAI,
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
            response = await self.client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=render_messages(self.system_prompt, history),
                tools=render_tools(tools),
            )
        except openai.APIStatusError as e:
            raise AIProviderUnavailableError(self.name, f"HTTP {e.status_code}: {e.message}") from e
        except openai.APIConnectionError as e:
            raise AIProviderUnavailableError(self.name, str(e)) from e
        except openai.APIError as e:
            raise AIProviderUnavailableError(self.name, f"{type(e).__name__}: {e}") from e

        if not response.choices:
            raise AIResponseMalformedError(self.name, "response has no choices")

        message = response.choices[0].message
        logger.debug(f"OpenAI finish_reason={response.choices[0].finish_reason}")

        calls = [
            (tool_call.function.name, tool_call.function.arguments)
            for tool_call in (message.tool_calls or [])
        ]
        return build_completion(self.name, message.content or "", calls)
