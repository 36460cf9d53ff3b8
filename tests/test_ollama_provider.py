"""Tests for the local Ollama provider, using httpx.MockTransport."""

import json

import httpx
import pytest

from raid_core.agent.types import (
    AIMessage,
    FinalAnswer,
    ProblemStatement,
    ToolCallBatch,
    ToolCallRequest,
    ToolOutcome,
    ToolResult,
    ToolStatus,
)
from raid_core.ai.ollama_provider import OllamaProvider, render_messages
from raid_core.exceptions import AIProviderUnavailableError, AIResponseMalformedError

BASE_URL = "http://ollama.test:11434"


def chat_reply(content):
    return httpx.Response(200, json={"model": "llama3", "message": {"role": "assistant", "content": content}})


def make_provider(handler):
    http = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return OllamaProvider(http=http, model="llama3", max_tokens=256, temperature=0.1, system_prompt="Be brief.")


HISTORY = [ProblemStatement(text="ssh is slow")]


@pytest.mark.asyncio
async def test_request_body_and_final_answer(registry):
    seen = []

    def handler(request):
        seen.append(request)
        return chat_reply(json.dumps({"action": "final_answer", "answer": "DNS lookups time out."}))

    provider = make_provider(handler)
    completion = await provider.complete(HISTORY, registry.get_definitions())
    await provider.http.aclose()

    assert completion == FinalAnswer(text="DNS lookups time out.")
    request = seen[0]
    assert request.url.path == "/api/chat"
    body = json.loads(request.content)
    assert body["model"] == "llama3"
    assert body["stream"] is False
    assert body["format"] == "json"
    assert body["options"] == {"temperature": 0.1, "num_predict": 256}
    system = body["messages"][0]
    assert system["role"] == "system"
    assert system["content"].startswith("Be brief.")
    assert "- echo: Echo the text back" in system["content"]
    assert body["messages"][1] == {"role": "user", "content": "ssh is slow"}


@pytest.mark.asyncio
async def test_run_tools_reply(registry):
    reply = {"action": "run_tools", "thought": "Check.", "tools": [{"name": "echo", "arguments": {"text": "x"}}]}
    provider = make_provider(lambda request: chat_reply(json.dumps(reply)))

    completion = await provider.complete(HISTORY, registry.get_definitions())
    await provider.http.aclose()

    assert isinstance(completion, ToolCallBatch)
    assert completion.calls[0].tool_name == "echo"


@pytest.mark.asyncio
async def test_server_error_is_unavailable(registry):
    provider = make_provider(lambda request: httpx.Response(500, text="model not loaded"))

    with pytest.raises(AIProviderUnavailableError, match="HTTP 500"):
        await provider.complete(HISTORY, registry.get_definitions())
    await provider.http.aclose()


@pytest.mark.asyncio
async def test_connection_refused_is_unavailable(registry):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    provider = make_provider(handler)

    with pytest.raises(AIProviderUnavailableError, match="ConnectError"):
        await provider.complete(HISTORY, registry.get_definitions())
    await provider.http.aclose()


@pytest.mark.asyncio
async def test_non_json_body_is_malformed(registry):
    provider = make_provider(lambda request: httpx.Response(200, text="<html>proxy</html>"))

    with pytest.raises(AIResponseMalformedError, match="not JSON"):
        await provider.complete(HISTORY, registry.get_definitions())
    await provider.http.aclose()


@pytest.mark.asyncio
async def test_non_json_content_is_malformed(registry):
    provider = make_provider(lambda request: chat_reply("The disk is probably full."))

    with pytest.raises(AIResponseMalformedError):
        await provider.complete(HISTORY, registry.get_definitions())
    await provider.http.aclose()


def test_render_messages_uses_structured_calls():
    """Earlier AI tool calls are replayed in the JSON format the model must use."""
    history = [
        ProblemStatement(text="ssh is slow"),
        AIMessage(text="Look.", tool_calls=(ToolCallRequest(request_id=1, tool_name="ip_addr"),)),
        ToolOutcome(result=ToolResult(request_id=1, tool_name="ip_addr", status=ToolStatus.SUCCESS, output="lo")),
    ]

    messages = render_messages("sys", history)

    assert json.loads(messages[2]["content"])["tools"] == [{"name": "ip_addr", "arguments": {}}]
    assert messages[3] == {"role": "user", "content": "Result of ip_addr (call_1):\nlo"}
