import inspect
import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any

from chatstream.errors import RoundLimitError
from chatstream.events import (
    ContentDelta,
    FinishReason,
    FinishSignal,
    RawResponseEvent,
    RunCompleteEvent,
    RunItemEvent,
    Sentinel,
    StreamEvent,
    ToolFragmentDelta,
)
from chatstream.executor import ToolDispatcher, ToolResult
from chatstream.instrumentation import (
    completion_span,
    record_error,
    record_finish_reason,
    turn_span,
)
from chatstream.message import Message, ToolCallRequestMessage, ToolCallResultMessage
from chatstream.provider import ChatCompletionsProvider
from chatstream.sse import LineFramer, aiter_events, open_lines
from chatstream.streaming import ToolCall, ToolCallAccumulator
from chatstream.tools import Tool

logger = logging.getLogger(__name__)

_ROUND_ENDING = (FinishReason.STOP, FinishReason.LENGTH, FinishReason.TOOL_CALLS)


@dataclass
class RunResult:
    """The result of a single completed turn.

    ``messages`` is the caller's list extended with every tool-call
    request and tool result produced along the way.
    """

    messages: list[Message]
    rounds: int
    finish_reason: FinishReason | None = None


async def _notify(callback: Callable | None, *args: Any) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class Runner:
    """Drives a streamed turn, round after round, until a final answer.

    Each round sends the current transcript, streams content deltas out
    as they arrive and collects tool-call fragments.  When the model
    finishes with ``tool_calls`` the assembled calls are dispatched in
    slot order, the request and results are appended to the transcript
    and a new request is issued.

    ``run()`` drains ``iter()``.  ``iter()`` is the streaming entry point;
    ``run_turn()`` is the callback form.

    Args:
        provider: Transport used to open each round's stream.
        dispatcher: Executes tool calls.  Without one, any requested tool
            call gets an error result.
        tools: Tool catalogue sent with each request.  Defaults to the
            dispatcher's tools.
        max_rounds: Optional bound on rounds per turn; ``None`` is
            unbounded.
    """

    def __init__(
        self,
        provider: ChatCompletionsProvider,
        dispatcher: ToolDispatcher | None = None,
        tools: list[Tool] | None = None,
        max_rounds: int | None = None,
    ):
        if max_rounds is not None and max_rounds < 1:
            raise ValueError("max_rounds must be at least 1")
        self.provider = provider
        self.dispatcher = dispatcher
        if tools is None:
            tools = dispatcher.tools if dispatcher is not None else []
        self.tools = tools
        self.max_rounds = max_rounds

    async def run(self, messages: Sequence[Message]) -> RunResult:
        """Run the turn to completion and return its result."""
        result: RunResult | None = None
        async with aclosing(self.iter(messages)) as events:
            async for event in events:
                if isinstance(event, RunCompleteEvent):
                    result = event.result
        if result is None:
            raise RuntimeError("iter() ended without emitting RunCompleteEvent")
        return result

    async def run_turn(
        self,
        messages: Sequence[Message],
        on_content: Callable[[str], Any],
        on_complete: Callable[[RunResult], Any] | None = None,
        on_error: Callable[[Exception], Any] | None = None,
    ) -> RunResult | None:
        """Run a turn, reporting through callbacks.

        ``on_content`` receives each content delta in arrival order.
        Exactly one of ``on_complete`` / ``on_error`` fires, after which
        this coroutine returns.  Callbacks may be plain or async.
        """
        result: RunResult | None = None
        try:
            async with aclosing(self.iter(messages)) as events:
                async for event in events:
                    if isinstance(event, RawResponseEvent):
                        await _notify(on_content, event.content)
                    elif isinstance(event, RunCompleteEvent):
                        result = event.result
        except Exception as e:
            logger.error(f"Turn failed: {e}")
            await _notify(on_error, e)
            return None
        await _notify(on_complete, result)
        return result

    async def iter(self, messages: Sequence[Message]) -> AsyncIterator[StreamEvent]:
        """Run the turn, yielding events as execution proceeds."""
        transcript = list(messages)
        tool_schemas = [t.model_dump() for t in self.tools]
        accumulator = ToolCallAccumulator()
        framer = LineFramer()
        rounds = 0

        async with turn_span(self.provider.model) as turn:
            try:
                while True:
                    if self.max_rounds is not None and rounds >= self.max_rounds:
                        raise RoundLimitError(self.max_rounds)
                    rounds += 1
                    accumulator.reset()
                    framer.reset()

                    finish_reason = None
                    async with completion_span(self.provider.model, rounds) as span:
                        async with self.provider.stream(transcript, tool_schemas) as body:
                            lines = open_lines(framer, body)
                            async with aclosing(lines), aclosing(aiter_events(lines)) as events:
                                async for event in events:
                                    if isinstance(event, ContentDelta):
                                        yield RawResponseEvent(content=event.text)
                                    elif isinstance(event, ToolFragmentDelta):
                                        accumulator.feed(event.fragment)
                                    elif isinstance(event, FinishSignal):
                                        if event.reason in _ROUND_ENDING:
                                            finish_reason = event.reason
                                            break
                                        logger.debug(f"Ignoring finish reason {event.reason.value}")
                                    elif isinstance(event, Sentinel):
                                        break
                        record_finish_reason(span, finish_reason.value if finish_reason else None)

                    calls: list[ToolCall] = []
                    if finish_reason is FinishReason.TOOL_CALLS:
                        calls = accumulator.finalize()
                        if not calls:
                            logger.info(
                                f"Finish reason tool_calls with no usable calls "
                                f"({accumulator.pending} slots); completing turn"
                            )

                    if not calls:
                        yield RunCompleteEvent(result=RunResult(
                            messages=transcript,
                            rounds=rounds,
                            finish_reason=finish_reason,
                        ))
                        return

                    results = await self._execute_tools(calls)
                    for tc, outcome in zip(calls, results):
                        yield RunItemEvent(name="tool_call", data={
                            "tool_name": tc.name, "call_id": tc.id,
                            "output": outcome.content, "is_error": outcome.is_error,
                        })
                    transcript.append(ToolCallRequestMessage(tool_calls=calls))
                    transcript.extend(
                        ToolCallResultMessage(content=r.content, tool_call_id=r.tool_call_id)
                        for r in results
                    )
                    logger.info(f"Round {rounds} dispatched {len(calls)} tool call(s)")
            except Exception as e:
                record_error(turn, e)
                raise

    # ------------------------------------------------------------------
    # Tool execution
    # ------------------------------------------------------------------

    async def _execute_tools(self, calls: list[ToolCall]) -> list[ToolResult]:
        if self.dispatcher is None:
            logger.warning(f"No dispatcher configured for {len(calls)} tool call(s)")
            return [
                _error_result(tc, f"no tool dispatcher available for {tc.name}")
                for tc in calls
            ]
        try:
            results = await self.dispatcher.execute(calls)
        except Exception as e:
            logger.warning(f"Dispatcher failed on {len(calls)} tool call(s): {e}")
            return [_error_result(tc, str(e)) for tc in calls]

        by_id = {r.tool_call_id: r for r in results}
        if len(by_id) != len(calls):
            logger.warning(
                f"Dispatcher returned {len(results)} results for {len(calls)} calls"
            )
        return [
            by_id.get(tc.id) or _error_result(tc, f"no result returned for {tc.name}")
            for tc in calls
        ]


def _error_result(call: ToolCall, message: str) -> ToolResult:
    return ToolResult(tool_call_id=call.id, content=f"Error: {message}", is_error=True)
