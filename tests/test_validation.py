"""Tests for ToolValidator."""

from agentkit.tools.base import FunctionTool
from agentkit.tools.validation import ToolValidator
from tests.mock_tools import EchoTool, add


def _open_tool(parameters: dict) -> FunctionTool:
    return FunctionTool("open", "", parameters, lambda **kw: kw)


class TestToolValidator:
    """Test suite for ToolValidator.validate()."""

    def test_valid_args_pass(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": "hello"})
        assert ok is True
        assert err is None

    def test_valid_args_multiple_fields(self):
        ok, err = ToolValidator.validate(add, {"a": 1, "b": 2.5})
        assert ok is True
        assert err is None

    def test_missing_required_arg_fails(self):
        ok, err = ToolValidator.validate(EchoTool(), {})
        assert ok is False
        assert "message" in err.lower() or "required" in err.lower()

    def test_extra_unknown_keys_rejected(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": "hello", "rogue": "value"})
        assert ok is False
        assert err is not None

    def test_additional_properties_true_allows_extra_keys(self):
        tool = _open_tool(
            {
                "type": "object",
                "properties": {"base_param": {"type": "string"}},
                "additionalProperties": True,
            }
        )
        ok, err = ToolValidator.validate(tool, {"base_param": "hello", "extra": 42})
        assert ok is True
        assert err is None

    def test_type_mismatch(self):
        ok, err = ToolValidator.validate(EchoTool(), {"message": 12345})
        assert ok is False
        assert err is not None

    def test_empty_dict_for_no_required_fields(self):
        tool = _open_tool({"properties": {"optional_param": {"type": "string"}}})
        ok, err = ToolValidator.validate(tool, {})
        assert ok is True
        assert err is None
