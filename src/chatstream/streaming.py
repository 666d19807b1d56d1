"""Reassembly of tool calls streamed as fragments.

Chat-completion streams deliver each tool call as a series of fragments
keyed by a slot ``index``.  Any field of a fragment may be cut at an
arbitrary point (a function name can arrive as ``get_page`` followed by
``_text``), so every field is merged by concatenation.  The
:class:`ToolCallAccumulator` holds the slots for one round and must be
reset before the next.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ToolCallFragment:
    """A fragment of a tool call from a streaming chunk."""

    index: int
    call_id: str | None = None
    name: str | None = None
    arguments_delta: str | None = None


@dataclass
class ToolCall:
    """A resolved tool call ready for the transcript."""

    id: str = ""
    name: str = ""
    arguments: str = ""

    def to_wire(self) -> dict:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


class ToolCallAccumulator:
    """Assembles complete tool calls from streaming fragments."""

    def __init__(self) -> None:
        self._pending: dict[int, ToolCall] = {}

    @property
    def pending(self) -> int:
        return len(self._pending)

    def reset(self) -> None:
        self._pending = {}

    def feed(self, fragment: ToolCallFragment) -> None:
        if fragment.index not in self._pending:
            self._pending[fragment.index] = ToolCall()
        tc = self._pending[fragment.index]
        if fragment.call_id:
            tc.id += fragment.call_id
        if fragment.name:
            tc.name += fragment.name
        if fragment.arguments_delta:
            tc.arguments += fragment.arguments_delta

    def finalize(self) -> list[ToolCall]:
        """Return completed tool calls in index order.

        Slots without both an id and a name are dropped.  The returned
        calls are copies, so later fragments never alter them.
        """
        calls = []
        for i in sorted(self._pending):
            tc = self._pending[i]
            if not tc.id or not tc.name:
                continue
            calls.append(ToolCall(id=tc.id, name=tc.name, arguments=tc.arguments))
        return calls
