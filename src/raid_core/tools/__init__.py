"""Diagnostic tools: registry, argument validation, dispatch and the default catalogue."""

from raid_core.tools.catalog import build_default_registry
from raid_core.tools.dispatcher import ToolDispatcher, truncate_output
from raid_core.tools.registry import ParamDef, ToolDefinition, ToolExecutor, ToolRegistry
from raid_core.tools.validation import validate_tool_arguments

__all__ = [
    "ParamDef",
    "ToolDefinition",
    "ToolExecutor",
    "ToolRegistry",
    "ToolDispatcher",
    "build_default_registry",
    "truncate_output",
    "validate_tool_arguments",
]
