"""Tool dispatch for streamed turns.

A :class:`ToolDispatcher` runs one named tool call at a time.  Its
:meth:`~ToolDispatcher.execute` wrapper guarantees one
:class:`ToolResult` per call: any failure becomes an ``Error: ...``
result instead of propagating.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from chatstream.errors import ToolDispatchError
from chatstream.instrumentation import record_error, tool_span
from chatstream.streaming import ToolCall
from chatstream.tools import Tool

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    """The result of executing a tool call."""

    tool_call_id: str
    content: str
    is_error: bool = False


class ToolDispatcher(ABC):
    """Executes assembled tool calls on behalf of a runner."""

    @property
    def tools(self) -> list[Tool]:
        """Catalogue advertised to the model; empty by default."""
        return []

    @abstractmethod
    async def dispatch(self, call: ToolCall) -> str:
        """Run one call and return its textual output.

        May raise; :meth:`execute_one` converts the failure.
        """

    async def execute_one(self, call: ToolCall) -> ToolResult:
        async with tool_span(call.name, call.id) as span:
            try:
                output = await self.dispatch(call)
                if not isinstance(output, str):
                    output = json.dumps(output, default=str)
            except Exception as e:
                record_error(span, e)
                logger.warning(f"Tool {call.name} ({call.id}) failed: {e}")
                return ToolResult(
                    tool_call_id=call.id, content=f"Error: {e}", is_error=True,
                )
        return ToolResult(tool_call_id=call.id, content=output)

    async def execute(self, calls: list[ToolCall]) -> list[ToolResult]:
        """Dispatch *calls* one after another, in order."""
        return [await self.execute_one(call) for call in calls]


class ToolExecutor(ToolDispatcher):
    """Dispatcher backed by a registry of :class:`Tool` objects."""

    def __init__(self, tools: list[Tool] | None = None):
        self.tool_registry = {t.name: t for t in tools or []}

    @property
    def tools(self) -> list[Tool]:
        return list(self.tool_registry.values())

    def register(self, tool_obj: Tool) -> None:
        self.tool_registry[tool_obj.name] = tool_obj

    async def dispatch(self, call: ToolCall) -> str:
        tool_obj = self.tool_registry.get(call.name)
        if tool_obj is None:
            raise ToolDispatchError(f"Unknown tool: {call.name}", call.name)

        try:
            params = json.loads(call.arguments) if call.arguments.strip() else {}
        except json.JSONDecodeError as e:
            raise ToolDispatchError(
                f"Invalid arguments for {call.name}: {e}", call.name,
            ) from e
        if not isinstance(params, dict):
            raise ToolDispatchError(
                f"Arguments for {call.name} must be a JSON object", call.name,
            )

        logger.info(f"Calling {call.name} with {params}")
        try:
            result = await tool_obj(**params)
        except Exception as e:
            raise ToolDispatchError(
                f"Tool {call.name} failed: {e}", call.name,
            ) from e

        if isinstance(result.output, str):
            return result.output
        return json.dumps(result.output)
