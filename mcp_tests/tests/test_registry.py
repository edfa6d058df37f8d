import json

import pytest
from pydantic import Field, ValidationError

from core.errors import InvalidArguments, RemoteApiError
from core.models import MergeRequestParams
from core.registry import ToolRegistry


class EchoArgs(MergeRequestParams):
    note: str = Field(default="", description="Free text")


def _registry(calls: list, result=None, error: Exception = None) -> ToolRegistry:
    registry = ToolRegistry()

    @registry.tool(name="echo", description="Echo the arguments", input_model=EchoArgs)
    async def echo(args: EchoArgs):
        calls.append(args)
        if error is not None:
            raise error
        return result if result is not None else args

    return registry


@pytest.mark.asyncio
async def test_unknown_tool_is_rejected():
    calls = []
    registry = _registry(calls)

    with pytest.raises(InvalidArguments) as excinfo:
        await registry.dispatch("nope", {})

    assert "Unknown tool: nope" in str(excinfo.value)
    assert calls == []


@pytest.mark.asyncio
async def test_missing_fields_are_listed_and_handler_not_called():
    calls = []
    registry = _registry(calls)

    with pytest.raises(InvalidArguments) as excinfo:
        await registry.dispatch("echo", {"project_id": "42"})

    assert [path for path, _ in excinfo.value.errors] == ["merge_request_iid"]
    assert "merge_request_iid" in str(excinfo.value)
    assert calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("arguments", [["42", "7"], "42", 7])
async def test_non_mapping_arguments_are_rejected(arguments):
    calls = []
    registry = _registry(calls)

    with pytest.raises(InvalidArguments):
        await registry.dispatch("echo", arguments)

    assert calls == []


@pytest.mark.asyncio
async def test_dispatch_returns_one_json_text_item():
    calls = []
    registry = _registry(calls)

    out = await registry.dispatch("echo", {"project_id": 42, "merge_request_iid": 7, "note": "hi"})

    assert len(out) == 1
    assert out[0].type == "text"
    assert json.loads(out[0].text) == {"project_id": "42", "merge_request_iid": "7", "note": "hi"}
    assert calls[0].project_id == "42"


@pytest.mark.asyncio
async def test_plain_results_are_serialized():
    registry = _registry([], result={"raw": "diff --git", "count": 2})

    out = await registry.dispatch("echo", {"project_id": "1", "merge_request_iid": "2"})

    assert json.loads(out[0].text) == {"raw": "diff --git", "count": 2}


@pytest.mark.asyncio
async def test_handler_errors_propagate():
    err = RemoteApiError(status_code=404, reason="Not Found", body="{}")
    registry = _registry([], error=err)

    with pytest.raises(RemoteApiError) as excinfo:
        await registry.dispatch("echo", {"project_id": "1", "merge_request_iid": "2"})

    assert excinfo.value is err


def test_duplicate_registration_raises():
    registry = _registry([])

    with pytest.raises(ValueError):
        @registry.tool(name="echo", description="again", input_model=EchoArgs)
        async def echo_again(args):
            return None


def test_list_tools_publishes_input_schema():
    registry = _registry([])

    [tool] = registry.list_tools()

    assert tool.name == "echo"
    assert tool.description == "Echo the arguments"
    assert set(tool.inputSchema["required"]) == {"project_id", "merge_request_iid"}
    assert "note" in tool.inputSchema["properties"]


def test_validate_returns_frozen_model():
    registry = _registry([])

    spec, args = registry.validate("echo", {"project_id": "1", "merge_request_iid": "2"})

    assert spec.name == "echo"
    with pytest.raises(ValidationError):
        args.project_id = "other"


def test_absent_arguments_are_validated_as_empty_object():
    registry = _registry([])

    with pytest.raises(InvalidArguments) as excinfo:
        registry.validate("echo", None)

    assert {path for path, _ in excinfo.value.errors} == {"project_id", "merge_request_iid"}
