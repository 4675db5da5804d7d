"""Tool registration and dispatch for the lint conversation."""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, cast

from openai.types.chat import ChatCompletionToolParam

from ..errors import UnknownToolError
from .read_file import FileResolver, ReadFileTool

__all__ = ["ToolSpec", "ToolRegistry", "build_lint_tools"]

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ToolSpec:
    """A callable the model may invoke, plus the schema it is declared with.

    Attributes:
        name: Function name the model calls.
        impl: Awaitable or plain callable invoked with the decoded arguments.
        description: Declared description; defaults to the implementation's.
        parameters: JSON Schema of the arguments; defaults to ``impl.args_schema``.
    """

    name: str
    impl: Any
    description: str | None = None
    parameters: Mapping[str, Any] | None = None

    def as_openai_tool(self) -> ChatCompletionToolParam:
        """Render the declaration sent in the ``tools`` list of a request."""
        parameters = self.parameters or getattr(self.impl, "args_schema", None)
        if parameters is None:
            parameters = {"type": "object", "properties": {}}

        description = self.description or getattr(self.impl, "description", None) or (
            inspect.getdoc(self.impl) or f"Tool {self.name}"
        )

        function = {"name": self.name, "description": description, "parameters": dict(parameters)}
        return cast(ChatCompletionToolParam, {"type": "function", "function": function})


class ToolRegistry:
    """Name-indexed set of tools that also acts as the pipeline's tool executor."""

    def __init__(self, specs: Iterable[ToolSpec] = ()) -> None:
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs:
            self.register(spec)

    def register(self, spec: ToolSpec) -> None:
        if not spec.name:
            raise ValueError("Tool name is required")
        self._specs[spec.name] = spec

    def names(self) -> list[str]:
        return list(self._specs)

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def openai_tools(self) -> list[ChatCompletionToolParam]:
        return [spec.as_openai_tool() for spec in self._specs.values()]

    async def execute(
        self,
        name: str,
        arguments: Mapping[str, Any],
        *,
        call_id: str = "",
    ) -> Any:
        spec = self._specs.get(name)
        if spec is None:
            LOGGER.warning("Unknown tool call: %s (call_id=%s)", name, call_id or "-")
            raise UnknownToolError(message=f"Unknown tool {name}", tool_name=name)
        result = spec.impl(**dict(arguments))
        if inspect.isawaitable(result):
            result = await result
        return result


def build_lint_tools(document_path: str, resolver: FileResolver | None = None) -> ToolRegistry:
    """Return the registry declared to the model while linting ``document_path``."""

    read_file = ReadFileTool(document_path, resolver)
    return ToolRegistry([ToolSpec(name=read_file.name, impl=read_file)])
