"""
Argument validation for tool calls.

Validation is a pure, data-driven check of the AI's requested arguments
against a ToolDefinition's parameter schema. It collects ALL errors before
raising so the AI gets complete feedback in a single tool outcome.

Example:
    ```python
    try:
        arguments = validate_tool_arguments(definition, {"lines": "many"})
    except ToolArgumentInvalidError as e:
        print(e)  # "Invalid arguments for journalctl_service: lines must be int, got str; ..."
    ```
"""

import logging
from typing import Any

from raid_core.exceptions import ToolArgumentInvalidError
from raid_core.tools.registry import ToolDefinition

logger = logging.getLogger(__name__)


# Python's bool is subclass of int, so bool is excluded from int/float checks


def _check_type(value: Any, expected_type: str) -> bool:
    """
    Check if value matches expected type.

    Args:
        value: The value to check
        expected_type: Python type name ("int", "str", "float", "bool")

    Returns:
        True if type matches, False otherwise
    """
    if expected_type == "int":
        return isinstance(value, int) and not isinstance(value, bool)
    elif expected_type == "str":
        return isinstance(value, str)
    elif expected_type == "float":
        # Accept int as float
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    elif expected_type == "bool":
        return isinstance(value, bool)
    else:
        logger.warning(f"Unknown type '{expected_type}' - skipping validation")
        return True


def validate_tool_arguments(
    definition: ToolDefinition,
    arguments: dict[str, Any],
) -> dict[str, Any]:
    """
    Validate arguments against a tool definition.

    Checks:
    1. No unknown parameters provided
    2. All required parameters are present
    3. Parameter types match expected types
    4. Values respect choices / minimum / maximum constraints

    Args:
        definition: The ToolDefinition to validate against
        arguments: The arguments requested by the AI

    Returns:
        The arguments with defaults filled in for omitted optional parameters

    Raises:
        ToolArgumentInvalidError: If validation fails (contains all errors)
    """
    errors: list[str] = []

    unknown = set(arguments) - set(definition.parameters)
    for param_name in sorted(unknown):
        errors.append(f"unknown parameter '{param_name}'")

    resolved: dict[str, Any] = {}
    for param_name, param_def in definition.parameters.items():
        if param_name not in arguments or arguments[param_name] is None:
            if param_def.required:
                errors.append(f"missing required parameter '{param_name}'")
            elif param_def.default is not None:
                resolved[param_name] = param_def.default
            continue

        value = arguments[param_name]
        if not _check_type(value, param_def.type):
            errors.append(
                f"{param_name} must be {param_def.type}, got {type(value).__name__}"
            )
            continue

        if param_def.choices is not None and value not in param_def.choices:
            allowed = ", ".join(str(c) for c in param_def.choices)
            errors.append(f"{param_name} must be one of: {allowed}")
        numeric = isinstance(value, (int, float))
        if numeric and param_def.minimum is not None and value < param_def.minimum:
            errors.append(f"{param_name} must be >= {param_def.minimum:g}, got {value}")
        if numeric and param_def.maximum is not None and value > param_def.maximum:
            errors.append(f"{param_name} must be <= {param_def.maximum:g}, got {value}")

        resolved[param_name] = value

    if errors:
        raise ToolArgumentInvalidError(definition.name, errors)

    return resolved
