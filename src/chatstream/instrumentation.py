"""OpenTelemetry tracing for streamed turns.

Tracing is off until :func:`instrument` is called, and every helper here
degrades to a no-op while it is off.  Span names and attributes follow the
GenAI semantic conventions: one ``invoke_agent`` span per turn, a ``chat``
span per request round and an ``execute_tool`` span per dispatched call.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "chatstream") -> None:
    """Start emitting spans through the global TracerProvider.

    Configure the provider first; spans are discarded otherwise::

        trace.set_tracer_provider(TracerProvider())
        chatstream.instrument()

    Raises:
        ImportError: ``opentelemetry-api`` is missing
            (``pip install chatstream[otel]``).
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "Tracing needs opentelemetry-api: pip install chatstream[otel]"
        )
    from opentelemetry import trace

    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.info(
            "No TracerProvider configured; chatstream spans will be dropped"
        )
    else:
        logger.info(f"Tracing enabled with tracer {tracer_name}")


def uninstrument() -> None:
    global _tracer
    _tracer = None


@asynccontextmanager
async def _span(name: str, attributes: dict, client: bool = False):
    if _tracer is None:
        yield None
        return
    options = {"attributes": attributes}
    if client:
        from opentelemetry.trace import SpanKind

        options["kind"] = SpanKind.CLIENT
    with _tracer.start_as_current_span(name, **options) as span:
        yield span


def turn_span(model: str):
    """Span covering every round of one turn."""
    return _span("invoke_agent chatstream", {
        "gen_ai.operation.name": "invoke_agent",
        "gen_ai.request.model": model,
    })


def completion_span(model: str, round_index: int):
    """Span covering one request and its streamed response."""
    return _span(f"chat {model}", {
        "gen_ai.operation.name": "chat",
        "gen_ai.provider.name": "openai",
        "gen_ai.request.model": model,
        "chatstream.round": round_index,
    }, client=True)


def tool_span(tool_name: str, call_id: str):
    return _span(f"execute_tool {tool_name}", {
        "gen_ai.operation.name": "execute_tool",
        "gen_ai.tool.name": tool_name,
        "gen_ai.tool.call.id": call_id,
    })


def record_finish_reason(span, finish_reason: str | None) -> None:
    if span is not None and finish_reason is not None:
        span.set_attribute("gen_ai.response.finish_reasons", [finish_reason])


def record_error(span, exception: BaseException) -> None:
    """Mark *span* failed and attach the exception (``error.type`` set)."""
    if span is None:
        return
    from opentelemetry.trace import StatusCode

    span.set_status(StatusCode.ERROR, str(exception))
    span.record_exception(exception)
    span.set_attribute("error.type", type(exception).__qualname__)
