"""Tests for tool argument validation."""

import pytest

from raid_core.exceptions import ToolArgumentInvalidError
from raid_core.tools.registry import ParamDef, ToolDefinition
from raid_core.tools.validation import validate_tool_arguments

DEFINITION = ToolDefinition(
    name="journalctl_service",
    description="Journal entries for one unit",
    parameters={
        "service": ParamDef(type="str", description="Unit name"),
        "lines": ParamDef(
            type="int", description="Lines", required=False, default=50, minimum=1, maximum=1000
        ),
        "priority": ParamDef(
            type="str", description="Priority", required=False, choices=("err", "warning")
        ),
        "follow": ParamDef(type="bool", description="Follow", required=False),
    },
)


def test_valid_arguments_get_defaults():
    assert validate_tool_arguments(DEFINITION, {"service": "nginx"}) == {
        "service": "nginx",
        "lines": 50,
    }


def test_none_counts_as_missing():
    assert validate_tool_arguments(DEFINITION, {"service": "nginx", "lines": None}) == {
        "service": "nginx",
        "lines": 50,
    }


def test_all_errors_reported_together():
    """Every problem is listed, not just the first one."""
    with pytest.raises(ToolArgumentInvalidError) as exc_info:
        validate_tool_arguments(
            DEFINITION, {"lines": 5000, "priority": "debug", "colour": "red"}
        )

    errors = exc_info.value.errors
    assert "unknown parameter 'colour'" in errors
    assert "missing required parameter 'service'" in errors
    assert "lines must be <= 1000, got 5000" in errors
    assert "priority must be one of: err, warning" in errors
    assert str(exc_info.value).startswith("Invalid arguments for journalctl_service:")


@pytest.mark.parametrize(
    "arguments,message",
    [
        ({"service": 5}, "service must be str, got int"),
        ({"service": "x", "lines": True}, "lines must be int, got bool"),
        ({"service": "x", "lines": "10"}, "lines must be int, got str"),
        ({"service": "x", "lines": 0}, "lines must be >= 1, got 0"),
        ({"service": "x", "follow": "yes"}, "follow must be bool, got str"),
    ],
)
def test_type_and_range_errors(arguments, message):
    with pytest.raises(ToolArgumentInvalidError) as exc_info:
        validate_tool_arguments(DEFINITION, arguments)

    assert exc_info.value.errors == [message]


def test_float_accepts_int():
    definition = ToolDefinition(
        name="t", description="t", parameters={"ratio": ParamDef(type="float", description="r")}
    )

    assert validate_tool_arguments(definition, {"ratio": 1}) == {"ratio": 1}
