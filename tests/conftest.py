import json

import httpx
import pytest

from chatstream.config import ClientConfig
from chatstream.message import Message, MessageRole
from chatstream.provider import ChatCompletionsProvider


# ---------------------------------------------------------------------------
# Wire helpers (mirror the chat-completions streaming shape)
# ---------------------------------------------------------------------------

DONE = "data: [DONE]\n"


def sse(payload: dict) -> str:
    """One ``data:`` line carrying *payload*."""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n"


def content_chunk(text: str, finish_reason: str | None = None) -> str:
    return sse({"choices": [{
        "delta": {"content": text},
        "finish_reason": finish_reason,
    }]})


def finish_chunk(reason: str) -> str:
    return sse({"choices": [{"delta": {}, "finish_reason": reason}]})


def tool_chunk(
    index: int,
    call_id: str | None = None,
    name: str | None = None,
    arguments: str | None = None,
) -> str:
    entry: dict = {"index": index}
    if call_id is not None:
        entry["id"] = call_id
    function = {}
    if name is not None:
        function["name"] = name
    if arguments is not None:
        function["arguments"] = arguments
    if function:
        entry["function"] = function
    return sse({"choices": [{
        "delta": {"tool_calls": [entry]},
        "finish_reason": None,
    }]})


def text_body(text: str) -> list[bytes]:
    """A plain completion: one content delta, stop, sentinel."""
    return [(content_chunk(text) + finish_chunk("stop") + DONE).encode()]


def tool_call_body(calls: list[tuple[str, str, str]]) -> list[bytes]:
    """A round requesting tool calls, one ``(call_id, name, args)`` per slot."""
    lines = [
        tool_chunk(i, call_id=call_id, name=name, arguments=args)
        for i, (call_id, name, args) in enumerate(calls)
    ]
    return [("".join(lines) + finish_chunk("tool_calls") + DONE).encode()]


def split_every(data: bytes, size: int) -> list[bytes]:
    return [data[i:i + size] for i in range(0, len(data), size)]


# ---------------------------------------------------------------------------
# Mock upstream served through httpx.MockTransport
# ---------------------------------------------------------------------------

class ChunkedStream(httpx.AsyncByteStream):
    """Async body that yields the given chunks, then optionally fails."""

    def __init__(self, chunks: list[bytes], error: Exception | None = None):
        self.chunks = chunks
        self.error = error
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self) -> None:
        self.closed = True


class MockUpstream:
    """Serves queued responses in order and records every request."""

    def __init__(self):
        self.responses: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.streams: list[ChunkedStream] = []

    def queue(
        self,
        chunks: list[bytes] | None = None,
        status: int = 200,
        error: Exception | None = None,
        json_body: dict | None = None,
    ) -> None:
        self.responses.append({
            "chunks": chunks or [],
            "status": status,
            "error": error,
            "json_body": json_body,
        })

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        spec = self.responses.pop(0)
        if spec["json_body"] is not None:
            return httpx.Response(spec["status"], json=spec["json_body"])
        stream = ChunkedStream(spec["chunks"], spec["error"])
        self.streams.append(stream)
        return httpx.Response(spec["status"], stream=stream)

    @property
    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests]


@pytest.fixture
def upstream():
    return MockUpstream()


@pytest.fixture
def make_provider(upstream):
    """Factory fixture building a provider wired to the mock upstream."""
    def _make(**overrides):
        config = ClientConfig(api_key="sk-test", model="test-model", **overrides)
        client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
        return ChatCompletionsProvider(config, http_client=client)
    return _make


@pytest.fixture
def user_messages():
    return [
        Message(role=MessageRole.SYSTEM, content="You are helpful."),
        Message(role=MessageRole.USER, content="What is on this page?"),
    ]


class Collector:
    """Callback sink for ``Runner.run_turn``."""

    def __init__(self):
        self.content: list[str] = []
        self.completed: list = []
        self.errors: list[Exception] = []

    def on_content(self, text: str) -> None:
        self.content.append(text)

    def on_complete(self, result) -> None:
        self.completed.append(result)

    def on_error(self, error: Exception) -> None:
        self.errors.append(error)


@pytest.fixture
def collector():
    return Collector()
