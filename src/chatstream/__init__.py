from chatstream.config import ClientConfig, configure_logging
from chatstream.errors import (
    ApiError,
    ChatStreamError,
    RoundLimitError,
    ToolDispatchError,
    TransportError,
    UpstreamError,
)
from chatstream.executor import ToolDispatcher, ToolExecutor, ToolResult
from chatstream.instrumentation import instrument, uninstrument
from chatstream.message import (
    ImagePart,
    Message,
    MessageRole,
    TextPart,
    ToolCallRequestMessage,
    ToolCallResultMessage,
)
from chatstream.message_builder import HistoryMessage, build_messages
from chatstream.provider import ChatCompletionsProvider
from chatstream.runner import Runner, RunResult
from chatstream.streaming import ToolCall, ToolCallAccumulator, ToolCallFragment
from chatstream.tools import Tool, page_text_tool, tool

__all__ = [
    "ApiError",
    "ChatCompletionsProvider",
    "ChatStreamError",
    "ClientConfig",
    "HistoryMessage",
    "ImagePart",
    "Message",
    "MessageRole",
    "RoundLimitError",
    "RunResult",
    "Runner",
    "TextPart",
    "Tool",
    "ToolCall",
    "ToolCallAccumulator",
    "ToolCallFragment",
    "ToolCallRequestMessage",
    "ToolCallResultMessage",
    "ToolDispatchError",
    "ToolDispatcher",
    "ToolExecutor",
    "ToolResult",
    "TransportError",
    "UpstreamError",
    "build_messages",
    "configure_logging",
    "instrument",
    "page_text_tool",
    "tool",
    "uninstrument",
]
