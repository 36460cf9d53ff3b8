"""
Tool dispatch for AI-requested tool calls.

This module provides the ToolDispatcher, which turns a ToolCallRequest into
a ToolResult:
1. Looks the tool up in the ToolRegistry (unknown -> tool_not_found)
2. Validates arguments against the parameter schema (-> tool_argument_invalid)
3. Runs the executor under a finite timeout (-> tool_execution_timeout)
4. Captures executor failures (-> tool_execution_failed)
5. Truncates output deterministically to bound the AI's context growth

Tool-level errors never raise out of execute(): they are reported back to
the AI as failed results so it can self-correct.
"""

import asyncio
import logging
import math
import time

from raid_core.agent.types import ToolCallRequest, ToolResult, ToolStatus
from raid_core.exceptions import (
    ErrorKind,
    RaidError,
    ToolExecutionFailedError,
    ToolExecutionTimeoutError,
    ToolNotFoundError,
)
from raid_core.tools.registry import ToolRegistry
from raid_core.tools.validation import validate_tool_arguments

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_OUTPUT_CHARS = 8000
TRUNCATION_MARKER = "\n...[truncated {count} characters]"


def truncate_output(text: str, max_chars: int) -> tuple[str, bool]:
    """
    Cut text to max_chars and append an explicit marker.

    Args:
        text: Text to bound
        max_chars: Maximum number of characters kept from the original

    Returns:
        (text, truncated) tuple
    """
    if len(text) <= max_chars:
        return text, False
    dropped = len(text) - max_chars
    return text[:max_chars] + TRUNCATION_MARKER.format(count=dropped), True


class ToolDispatcher:
    """
    Validates and executes tool calls against a ToolRegistry.

    Attributes:
        registry: The tool catalogue
        timeout: Per-call execution timeout in seconds (finite, positive)
        max_output_chars: Output longer than this is truncated

    Example:
        ```python
        dispatcher = ToolDispatcher(registry, timeout=10.0)
        result = await dispatcher.execute(
            ToolCallRequest(request_id=1, tool_name="disk_usage", arguments={})
        )
        if not result.succeeded:
            print(result.error_kind, result.error_detail)
        ```
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_output_chars: int = DEFAULT_MAX_OUTPUT_CHARS,
    ) -> None:
        if not math.isfinite(timeout) or timeout <= 0:
            raise ValueError(f"timeout must be a finite positive number, got {timeout}")
        if max_output_chars <= 0:
            raise ValueError(f"max_output_chars must be positive, got {max_output_chars}")
        self.registry = registry
        self.timeout = timeout
        self.max_output_chars = max_output_chars

    async def execute(self, request: ToolCallRequest) -> ToolResult:
        """
        Execute one tool call.

        Args:
            request: The AI's tool call request

        Returns:
            ToolResult with SUCCESS or FAILED status; never raises for
            tool-level errors
        """
        started = time.monotonic()
        try:
            output = await self._run(request)
        except RaidError as e:
            logger.warning(f"Tool call {request.request_id} ({request.tool_name}) failed: {e}")
            return self._failure(request, e, started)

        text, truncated = truncate_output(output, self.max_output_chars)
        logger.debug(
            f"Tool call {request.request_id} ({request.tool_name}) succeeded, "
            f"{len(output)} chars{' (truncated)' if truncated else ''}"
        )
        return ToolResult(
            request_id=request.request_id,
            tool_name=request.tool_name,
            status=ToolStatus.SUCCESS,
            output=text,
            truncated=truncated,
            duration_ms=self._elapsed_ms(started),
        )

    async def _run(self, request: ToolCallRequest) -> str:
        definition = self.registry.get_definition(request.tool_name)
        executor = self.registry.get_executor(request.tool_name)
        if definition is None or executor is None:
            raise ToolNotFoundError(request.tool_name, self.registry.list_tool_names())

        arguments = validate_tool_arguments(definition, request.arguments)

        logger.debug(f"Dispatching {request.tool_name} with {arguments}")
        try:
            output, success = await asyncio.wait_for(executor(arguments), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise ToolExecutionTimeoutError(request.tool_name, self.timeout) from None
        except RaidError:
            raise
        except Exception as e:
            raise ToolExecutionFailedError(request.tool_name, f"{type(e).__name__}: {e}") from e

        if not success:
            raise ToolExecutionFailedError(request.tool_name, output or "tool reported failure")
        return output

    def _failure(self, request: ToolCallRequest, error: RaidError, started: float) -> ToolResult:
        if isinstance(error, ToolExecutionTimeoutError):
            detail = "timeout"
        elif isinstance(error, ToolExecutionFailedError):
            detail = error.detail
        else:
            detail = str(error)

        detail, truncated = truncate_output(detail, self.max_output_chars)
        return ToolResult(
            request_id=request.request_id,
            tool_name=request.tool_name,
            status=ToolStatus.FAILED,
            error_detail=detail,
            error_kind=error.kind or ErrorKind.TOOL_EXECUTION_FAILED,
            truncated=truncated,
            duration_ms=self._elapsed_ms(started),
        )

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
