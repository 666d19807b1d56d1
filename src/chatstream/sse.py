"""Server-Sent Events framing and decoding for chat-completion streams.

The body of a streamed completion is a sequence of UTF-8 lines.  Lines
starting with ``data: `` carry either a JSON chunk or the ``[DONE]``
sentinel; everything else is ignored.  Network chunks may end anywhere,
including inside a line or a multibyte character, so :class:`LineFramer`
keeps the undecoded tail between reads.
"""

from __future__ import annotations

import codecs
import json
import logging
import re
from collections.abc import AsyncIterable, AsyncIterator

from chatstream.errors import TransportError, UpstreamError
from chatstream.events import (
    ContentDelta,
    ErrorEnvelope,
    FinishReason,
    FinishSignal,
    Sentinel,
    StreamEvent,
    ToolFragmentDelta,
)
from chatstream.streaming import ToolCallFragment

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE = "[DONE]"

_ERROR_ENVELOPE = re.compile(r'^\{\s*"error"\s*:')
_FINISH_REASONS = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
}


class LineFramer:
    """Splits a chunked byte stream into complete text lines."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Add a chunk and return every line it completed."""
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return [line[:-1] if line.endswith("\r") else line for line in lines]

    def finish(self) -> None:
        """Drop the unterminated remainder; it can never be completed."""
        self._decoder.decode(b"", final=True)
        if self._buffer:
            logger.debug(
                "Dropping %d characters of unterminated stream data",
                len(self._buffer),
            )
        self._buffer = ""

    async def aiter_lines(
        self, source: AsyncIterable[bytes]
    ) -> AsyncIterator[str]:
        iterator = aiter(source)
        while True:
            try:
                chunk = await anext(iterator)
            except StopAsyncIteration:
                break
            except TransportError:
                raise
            except Exception as e:
                raise TransportError(f"Failed to read response body: {e}") from e
            for line in self.feed(chunk):
                yield line
        self.finish()


def open_lines(
    framer: LineFramer, source: AsyncIterable[bytes] | None
) -> AsyncIterator[str]:
    """Start framing *source*, failing immediately if there is no body."""
    if source is None:
        raise TransportError("Response body is empty")
    return framer.aiter_lines(source)


def _parse_fragment(entry: dict) -> ToolCallFragment | None:
    index = entry.get("index")
    if not isinstance(index, int) or isinstance(index, bool):
        logger.debug("Skipping tool call delta without an index: %r", entry)
        return None
    function = entry.get("function")
    if not isinstance(function, dict):
        function = {}
    return ToolCallFragment(
        index=index,
        call_id=_text(entry.get("id")),
        name=_text(function.get("name")),
        arguments_delta=_text(function.get("arguments")),
    )


def _text(value) -> str | None:
    return value if isinstance(value, str) else None


def _error_message(error) -> str:
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str):
        return error
    return "Upstream API error"


def decode_line(line: str) -> list[StreamEvent]:
    """Decode one framed line into zero or more stream events.

    An error envelope always decodes to a single :class:`ErrorEnvelope`,
    even when the same object also carries choices.
    """
    if not line.startswith(DATA_PREFIX):
        return []
    payload = line[len(DATA_PREFIX):]
    if payload == DONE:
        return [Sentinel()]
    if not payload.startswith("{"):
        return []

    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        if _ERROR_ENVELOPE.match(payload):
            return [ErrorEnvelope(message="Malformed error envelope in stream")]
        logger.debug("Ignoring malformed stream chunk: %s", e)
        return []
    if not isinstance(data, dict):
        return []

    if data.get("error"):
        return [ErrorEnvelope(message=_error_message(data["error"]))]

    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return []
    choice = choices[0] if isinstance(choices[0], dict) else {}
    delta = choice.get("delta")
    if not isinstance(delta, dict):
        delta = {}

    events: list[StreamEvent] = []
    content = delta.get("content")
    if isinstance(content, str) and content:
        events.append(ContentDelta(text=content))
    tool_calls = delta.get("tool_calls")
    for entry in tool_calls if isinstance(tool_calls, list) else []:
        fragment = _parse_fragment(entry) if isinstance(entry, dict) else None
        if fragment is not None:
            events.append(ToolFragmentDelta(fragment=fragment))
    finish_reason = choice.get("finish_reason")
    if isinstance(finish_reason, str):
        events.append(FinishSignal(
            reason=_FINISH_REASONS.get(finish_reason, FinishReason.NONE),
        ))
    return events


async def aiter_events(lines: AsyncIterable[str]) -> AsyncIterator[StreamEvent]:
    """Decode a line stream, stopping at the sentinel.

    Raises:
        UpstreamError: The stream carried an error envelope.
    """
    async for line in lines:
        for event in decode_line(line):
            if isinstance(event, ErrorEnvelope):
                raise UpstreamError(event.message)
            yield event
            if isinstance(event, Sentinel):
                return
