"""
Local model provider for Ollama.

Ollama models generally lack reliable native tool calling, so this provider
uses the structured JSON reply protocol (see protocol.py) over /api/chat with
format="json".
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Sequence

import httpx

from raid_core.agent.types import (
    AIMessage,
    ClarificationRequest,
    Completion,
    ConversationTurn,
    ProblemStatement,
    ToolOutcome,
    UserClarification,
)
from raid_core.ai.prompts import build_system_prompt
from raid_core.ai.protocol import (
    build_structured_prompt,
    parse_structured_reply,
    render_structured_call,
)
from raid_core.ai.provider import render_problem, tool_call_id
from raid_core.exceptions import AIProviderUnavailableError, AIResponseMalformedError
from raid_core.tools.registry import ToolDefinition

logger = logging.getLogger(__name__)


def render_messages(system_prompt: str, history: Sequence[ConversationTurn]) -> list[dict[str, str]]:
    """Render history as plain chat messages."""
    messages = [{"role": "system", "content": system_prompt}]

    for turn in history:
        if isinstance(turn, ProblemStatement):
            messages.append({"role": "user", "content": render_problem(turn)})
        elif isinstance(turn, AIMessage):
            if turn.tool_calls:
                content = render_structured_call(turn.text, turn.tool_calls)
            else:
                content = turn.text
            if content:
                messages.append({"role": "assistant", "content": content})
        elif isinstance(turn, ToolOutcome):
            result = turn.result
            messages.append({
                "role": "user",
                "content": (
                    f"Result of {result.tool_name} ({tool_call_id(result.request_id)}):\n"
                    f"{result.render()}"
                ),
            })
        elif isinstance(turn, ClarificationRequest):
            messages.append({"role": "assistant", "content": turn.text})
        elif isinstance(turn, UserClarification):
            messages.append({"role": "user", "content": turn.text})

    return messages


@dataclass
class OllamaProvider:
    """
    Ollama chat provider with injected httpx client.

    Attributes:
        http: Pre-configured httpx.AsyncClient with base_url set to the
            Ollama server.
        model: Model name (e.g., "llama2")
        max_tokens: Passed as num_predict
        temperature: Sampling temperature

    Example:
        async with httpx.AsyncClient(base_url="http://localhost:11434", timeout=120.0) as http:
            provider = OllamaProvider(http=http, model="llama2")
            completion = await provider.complete(history, tools)
    """

    http: httpx.AsyncClient
    model: str
    max_tokens: int = 1000
    temperature: float = 0.7
    system_prompt: str = field(default_factory=build_system_prompt)

    name = "local"

    async def complete(
        self,
        history: Sequence[ConversationTurn],
        tools: Sequence[ToolDefinition],
    ) -> Completion:
        system_prompt = f"{self.system_prompt}\n\n{build_structured_prompt(tools)}"
        body: dict[str, Any] = {
            "model": self.model,
            "messages": render_messages(system_prompt, history),
            "stream": False,
            "format": "json",
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }

        try:
            response = await self.http.post("/api/chat", json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AIProviderUnavailableError(
                self.name, f"HTTP {e.response.status_code} from {e.request.url}"
            ) from e
        except httpx.HTTPError as e:
            raise AIProviderUnavailableError(self.name, f"{type(e).__name__}: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise AIResponseMalformedError(self.name, "response body is not JSON") from e

        content = (data.get("message") or {}).get("content") if isinstance(data, dict) else None
        if not isinstance(content, str):
            raise AIResponseMalformedError(self.name, "response has no message content")

        logger.debug(f"Ollama reply: {content[:200]}")
        return parse_structured_reply(self.name, content)
