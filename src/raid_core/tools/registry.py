"""
Tool registry for diagnostic tool lookup.

This module provides:
- ParamDef: Parameter definition for tool arguments
- ToolDefinition: Complete, immutable tool specification
- ToolExecutor: Signature of the callable that runs a tool
- ToolRegistry: Name -> (definition, executor) mapping

The registry is the catalogue handed to the AI provider (so it knows which
tools exist and their schemas) and the lookup table the dispatcher uses.

Example:
    ```python
    registry = ToolRegistry()
    registry.register(
        ToolDefinition(
            name="disk_usage",
            description="Show filesystem disk usage",
        ),
        disk_usage_executor,
    )
    registry.get_definition("disk_usage").description
    ```
"""

from typing import Any, Awaitable, Callable, Iterator

from pydantic import BaseModel, ConfigDict, Field

ToolExecutor = Callable[[dict[str, Any]], Awaitable[tuple[str, bool]]]
"""Async callable taking validated arguments, returning (output, success)."""

_JSON_TYPES = {
    "str": "string",
    "int": "integer",
    "float": "number",
    "bool": "boolean",
}


class ParamDef(BaseModel):
    """
    Parameter definition for a tool argument.

    Attributes:
        type: Python type name ("int", "str", "float", "bool")
        description: What this parameter represents
        required: Whether parameter must be provided
        default: Default value if not required
        choices: Allowed values, if restricted
        minimum: Inclusive lower bound for numeric parameters
        maximum: Inclusive upper bound for numeric parameters
    """

    model_config = ConfigDict(frozen=True)

    type: str = Field(..., description="Python type name (int, str, float, bool)")
    description: str = Field(..., description="What this parameter represents")
    required: bool = Field(default=True, description="Whether parameter must be provided")
    default: Any = Field(default=None, description="Default value if not required")
    choices: tuple[Any, ...] | None = Field(default=None, description="Allowed values")
    minimum: float | None = Field(default=None, description="Inclusive lower bound")
    maximum: float | None = Field(default=None, description="Inclusive upper bound")

    def json_schema(self) -> dict[str, Any]:
        """Render this parameter as a JSON Schema property."""
        schema: dict[str, Any] = {
            "type": _JSON_TYPES.get(self.type, "string"),
            "description": self.description,
        }
        if self.choices is not None:
            schema["enum"] = list(self.choices)
        if self.minimum is not None:
            schema["minimum"] = self.minimum
        if self.maximum is not None:
            schema["maximum"] = self.maximum
        if not self.required and self.default is not None:
            schema["default"] = self.default
        return schema


class ToolDefinition(BaseModel):
    """
    Complete definition of a diagnostic tool.

    Definitions are frozen: once registered, a tool's name and schema
    cannot change for the lifetime of the registry.

    Attributes:
        name: Unique tool name (e.g., "kubectl_get_pods")
        description: Human-readable description for prompts
        parameters: Parameter definitions keyed by parameter name
        category: Grouping used for display (e.g., "kubernetes")

    Example:
        ```python
        ToolDefinition(
            name="journalctl_service",
            description="Recent journal entries for one systemd unit",
            parameters={
                "service": ParamDef(type="str", description="Unit name"),
                "lines": ParamDef(type="int", description="Lines", required=False, default=50),
            },
            category="systemd",
        )
        ```
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Unique tool name")
    description: str = Field(..., description="Human-readable description")
    parameters: dict[str, ParamDef] = Field(
        default_factory=dict, description="Parameter definitions keyed by name"
    )
    category: str = Field(default="general", description="Display grouping")

    def input_schema(self) -> dict[str, Any]:
        """
        JSON Schema object describing this tool's arguments.

        Used by providers that support native tool calling.
        """
        return {
            "type": "object",
            "properties": {
                name: param.json_schema() for name, param in self.parameters.items()
            },
            "required": [name for name, param in self.parameters.items() if param.required],
            "additionalProperties": False,
        }


class ToolRegistry:
    """
    Registry mapping tool names to their definitions and executors.

    Lookups are plain dictionary accesses; registration order is preserved
    so the catalogue shown to the AI is stable between turns.

    Example:
        ```python
        registry = ToolRegistry()
        registry.register(definition, executor)

        registry.get_definition("disk_usage")   # ToolDefinition or None
        registry.list_tool_names()              # ["disk_usage"]
        ```
    """

    def __init__(self) -> None:
        self._definitions: dict[str, ToolDefinition] = {}
        self._executors: dict[str, ToolExecutor] = {}

    def register(self, definition: ToolDefinition, executor: ToolExecutor) -> None:
        """
        Register a tool.

        Args:
            definition: The tool definition
            executor: Async callable that runs the tool

        Raises:
            ValueError: If a tool with the same name is already registered
        """
        if definition.name in self._definitions:
            raise ValueError(f"Tool '{definition.name}' is already registered")
        self._definitions[definition.name] = definition
        self._executors[definition.name] = executor

    def get_definition(self, tool_name: str) -> ToolDefinition | None:
        return self._definitions.get(tool_name)

    def get_executor(self, tool_name: str) -> ToolExecutor | None:
        return self._executors.get(tool_name)

    def get_definitions(self) -> list[ToolDefinition]:
        """All definitions in registration order (the catalogue snapshot)."""
        return list(self._definitions.values())

    def list_tool_names(self) -> list[str]:
        return list(self._definitions.keys())

    def __contains__(self, tool_name: object) -> bool:
        return tool_name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._definitions.values())
