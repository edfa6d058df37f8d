"""Tool registry and dispatcher.

Maps a tool name to its input model and async handler. Dispatch validates
raw arguments at the boundary, awaits the handler with the typed model and
wraps the JSON-serialized result into a single MCP text content item.
Handler errors are not caught here; the MCP server reports them as
tool-execution failures.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Tuple, Type

from mcp.types import TextContent, Tool
from pydantic import BaseModel, ValidationError
from pydantic_core import to_jsonable_python

from core.errors import InvalidArguments, field_errors

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Handler


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: Dict[str, ToolSpec] = {}

    def tool(
        self,
        *,
        name: str,
        description: str,
        input_model: Type[BaseModel],
    ) -> Callable[[Handler], Handler]:
        def _decorator(fn: Handler) -> Handler:
            if name in self._tools:
                raise ValueError(f"Tool already registered: {name}")
            self._tools[name] = ToolSpec(
                name=name,
                description=description,
                input_model=input_model,
                handler=fn,
            )
            return fn

        return _decorator

    @property
    def names(self) -> List[str]:
        return list(self._tools)

    def get(self, name: str) -> ToolSpec:
        spec = self._tools.get(name)
        if spec is None:
            raise InvalidArguments(f"Unknown tool: {name}")
        return spec

    def list_tools(self) -> List[Tool]:
        return [
            Tool(
                name=spec.name,
                description=spec.description,
                inputSchema=spec.input_model.model_json_schema(),
            )
            for spec in self._tools.values()
        ]

    def validate(self, name: str, arguments: Any) -> Tuple[ToolSpec, BaseModel]:
        """Resolve the tool and validate its arguments without side effects."""
        spec = self.get(name)

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            raise InvalidArguments("Invalid arguments", errors=[("", "arguments must be an object")])

        try:
            return spec, spec.input_model.model_validate(dict(arguments))
        except ValidationError as e:
            raise InvalidArguments("Invalid arguments", errors=field_errors(e)) from e

    async def dispatch(self, name: str, arguments: Any) -> List[TextContent]:
        logger.info("Tool called: %s", name)
        try:
            spec, args = self.validate(name, arguments)
        except InvalidArguments as e:
            logger.warning("Rejected call to %s: %s", name, e)
            raise

        result = await spec.handler(args)
        text = json.dumps(to_jsonable_python(result), indent=2)
        return [TextContent(type="text", text=text)]
