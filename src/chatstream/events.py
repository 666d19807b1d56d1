"""Events produced while streaming a chat turn.

Two layers live here.  Wire events (:class:`ContentDelta`,
:class:`ToolFragmentDelta`, :class:`FinishSignal`, :class:`ErrorEnvelope`,
:class:`Sentinel`) are decoded from single ``data:`` lines and consumed by
the :class:`~chatstream.runner.Runner`.  Run events
(:class:`RawResponseEvent`, :class:`RunItemEvent`,
:class:`RunCompleteEvent`) are what ``Runner.iter()`` yields to callers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from chatstream.streaming import ToolCallFragment


class FinishReason(Enum):
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    NONE = "none"


@dataclass
class StreamEvent:
    """Base for all streaming events."""


@dataclass
class ContentDelta(StreamEvent):
    text: str = ""


@dataclass
class ToolFragmentDelta(StreamEvent):
    fragment: ToolCallFragment = field(
        default_factory=lambda: ToolCallFragment(index=0)
    )


@dataclass
class FinishSignal(StreamEvent):
    reason: FinishReason = FinishReason.NONE


@dataclass
class ErrorEnvelope(StreamEvent):
    message: str = ""


@dataclass
class Sentinel(StreamEvent):
    """``data: [DONE]``; nothing follows in this round."""


@dataclass
class RawResponseEvent(StreamEvent):
    """Token-level delta from the provider stream."""

    content: str = ""


@dataclass
class RunItemEvent(StreamEvent):
    """A discrete step in the turn.

    ``name`` is ``"tool_call"``; ``data`` holds ``tool_name``,
    ``call_id``, ``output`` and ``is_error``.
    """

    name: str = ""
    data: dict = field(default_factory=dict)


@dataclass
class RunCompleteEvent(StreamEvent):
    """Final event; always the last one yielded."""

    result: Any = None
