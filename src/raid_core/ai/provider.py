"""
AI completion provider interface.

This module provides:
- CompletionProvider: the one capability the agent loop needs from an AI
  backend, implemented once per provider (Anthropic, OpenAI, local Ollama)
- Shared helpers used by the implementations to render conversation history
  and to build Completion objects from native tool-call replies

A provider receives the full ConversationHistory and the tool catalogue and
returns exactly one Completion: FinalAnswer, ClarificationNeeded or
ToolCallBatch. Network, auth and API status failures raise
AIProviderUnavailableError; replies that cannot be interpreted raise
AIResponseMalformedError.
"""

import json
from typing import Any, Protocol, Sequence, runtime_checkable

from raid_core.agent.types import (
    ClarificationNeeded,
    Completion,
    ConversationTurn,
    FinalAnswer,
    ProblemStatement,
    RequestedToolCall,
    ToolCallBatch,
)
from raid_core.exceptions import AIResponseMalformedError
from raid_core.tools.registry import ToolDefinition

ASK_USER_TOOL = "ask_user"


@runtime_checkable
class CompletionProvider(Protocol):
    """
    Protocol for AI completion backends.

    Example:
        ```python
        class EchoProvider:
            name = "echo"

            async def complete(self, history, tools):
                return FinalAnswer(text=history[-1].text)
        ```
    """

    name: str

    async def complete(
        self,
        history: Sequence[ConversationTurn],
        tools: Sequence[ToolDefinition],
    ) -> Completion:
        """
        Request the next AI turn.

        Args:
            history: Every turn so far, in causal order
            tools: Catalogue of tools the AI may request

        Returns:
            The AI's decision for this turn

        Raises:
            AIProviderUnavailableError: Network, auth or API failure
            AIResponseMalformedError: Reply could not be interpreted
        """
        ...


def tool_call_id(request_id: int) -> str:
    """Provider-facing id of a tool call (stable across process runs)."""
    return f"call_{request_id}"


def render_problem(turn: ProblemStatement) -> str:
    """User-message text for the opening problem statement."""
    if not turn.context:
        return turn.text
    return f"{turn.text}\n\nSystem information:\n{turn.context}"


def ask_user_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "question": {
                "type": "string",
                "description": "The question for the operator",
            }
        },
        "required": ["question"],
    }


def parse_arguments(provider: str, tool_name: str, raw: Any) -> dict[str, Any]:
    """
    Normalise tool-call arguments to a dict.

    Accepts a dict or a JSON object string (OpenAI style). Empty input means
    no arguments.

    Raises:
        AIResponseMalformedError: If arguments are not a JSON object
    """
    if raw is None or raw == "":
        return {}
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise AIResponseMalformedError(
                provider, f"arguments for '{tool_name}' are not valid JSON: {e}"
            ) from e
    if not isinstance(raw, dict):
        raise AIResponseMalformedError(
            provider, f"arguments for '{tool_name}' must be an object, got {type(raw).__name__}"
        )
    return raw


def build_completion(
    provider: str,
    text: str,
    calls: list[tuple[str, Any]],
) -> Completion:
    """
    Turn a native reply (text plus tool calls) into a Completion.

    An ask_user call makes the reply a clarification request; any other
    tool calls bundled with it are dropped so nothing is executed while the
    session waits for the operator.

    Args:
        provider: Provider name, for error messages
        text: Concatenated text content of the reply
        calls: (tool_name, raw_arguments) in the order the AI listed them

    Raises:
        AIResponseMalformedError: Empty reply, nameless call or bad arguments
    """
    requested: list[RequestedToolCall] = []
    for name, raw_arguments in calls:
        if not name:
            raise AIResponseMalformedError(provider, "tool call without a name")
        arguments = parse_arguments(provider, name, raw_arguments)
        if name == ASK_USER_TOOL:
            question = str(arguments.get("question", "")).strip()
            if not question:
                raise AIResponseMalformedError(provider, "ask_user call without a question")
            return ClarificationNeeded(question=question, text=text)
        requested.append(RequestedToolCall(tool_name=name, arguments=arguments))

    if requested:
        return ToolCallBatch(text=text, calls=requested)
    if not text.strip():
        raise AIResponseMalformedError(provider, "empty reply (no text and no tool calls)")
    return FinalAnswer(text=text)
