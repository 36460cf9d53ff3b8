"""
Structured JSON reply protocol for models without native tool calling.

The model is asked to answer with exactly one JSON object:

    {"action": "run_tools", "thought": "...", "tools": [{"name": "...", "arguments": {...}}]}
    {"action": "ask_user", "thought": "...", "question": "..."}
    {"action": "final_answer", "answer": "..."}

parse_structured_reply() turns that object into a Completion and
render_structured_call() renders recorded AI turns back into the same shape
so the model sees its own earlier replies in the format it was asked for.
"""

import json
import re
from typing import Any, Sequence

from raid_core.agent.types import ClarificationNeeded, Completion, FinalAnswer, ToolCallRequest
from raid_core.ai.prompts import STRUCTURED_REPLY_PROMPT
from raid_core.ai.provider import build_completion
from raid_core.exceptions import AIResponseMalformedError
from raid_core.tools.registry import ToolDefinition

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def _load_object(provider: str, text: str) -> dict[str, Any]:
    text = text.strip()
    match = _FENCE.match(text)
    if match:
        text = match.group(1)
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        # Models sometimes wrap the object in prose
        start, end = text.find("{"), text.rfind("}")
        if start == -1 or end <= start:
            raise AIResponseMalformedError(provider, "reply is not a JSON object") from None
        try:
            data = json.loads(text[start : end + 1])
        except json.JSONDecodeError as e:
            raise AIResponseMalformedError(provider, f"reply is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise AIResponseMalformedError(provider, f"reply must be a JSON object, got {type(data).__name__}")
    return data


def parse_structured_reply(provider: str, text: str) -> Completion:
    """
    Parse a structured JSON reply.

    Raises:
        AIResponseMalformedError: Not JSON, unknown action or missing fields
    """
    data = _load_object(provider, text)
    action = data.get("action")
    thought = str(data.get("thought") or "")

    if action == "final_answer":
        answer = data.get("answer")
        if not isinstance(answer, str) or not answer.strip():
            raise AIResponseMalformedError(provider, "final_answer without an answer")
        return FinalAnswer(text=answer)

    if action == "ask_user":
        question = data.get("question")
        if not isinstance(question, str) or not question.strip():
            raise AIResponseMalformedError(provider, "ask_user without a question")
        return ClarificationNeeded(question=question.strip(), text=thought)

    if action == "run_tools":
        tools = data.get("tools")
        if not isinstance(tools, list) or not tools:
            raise AIResponseMalformedError(provider, "run_tools without a non-empty tools list")
        calls = []
        for entry in tools:
            if not isinstance(entry, dict):
                raise AIResponseMalformedError(provider, "each tools entry must be an object")
            calls.append((str(entry.get("name") or ""), entry.get("arguments")))
        return build_completion(provider, thought, calls)

    raise AIResponseMalformedError(provider, f"unknown action {action!r}")


def render_structured_call(text: str, calls: Sequence[ToolCallRequest]) -> str:
    """The JSON reply an AI turn with tool calls corresponds to."""
    return json.dumps({
        "action": "run_tools",
        "thought": text,
        "tools": [{"name": call.tool_name, "arguments": call.arguments} for call in calls],
    })


def build_structured_prompt(tools: Sequence[ToolDefinition]) -> str:
    """Reply-format instructions with the tool catalogue filled in."""
    lines = [
        f"- {tool.name}: {tool.description}; arguments: {json.dumps(tool.input_schema())}"
        for tool in tools
    ]
    return STRUCTURED_REPLY_PROMPT.replace("{tools}", "\n".join(lines))
