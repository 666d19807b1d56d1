"""Error taxonomy for streamed chat turns."""

from __future__ import annotations


class ChatStreamError(Exception):
    """Base class for every error raised by chatstream."""


class TransportError(ChatStreamError):
    """The response body could not be opened or read."""


class ApiError(ChatStreamError):
    """The endpoint answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class UpstreamError(ChatStreamError):
    """The stream carried an ``error`` envelope."""


class ToolDispatchError(ChatStreamError):
    """A tool invocation failed.

    Never reaches a turn's error callback: the runner converts it into an
    ``Error: ...`` tool result.
    """

    def __init__(self, message: str, tool_name: str = ""):
        super().__init__(message)
        self.tool_name = tool_name


class RoundLimitError(ChatStreamError):
    """A turn requested more tool rounds than the runner allows."""

    def __init__(self, max_rounds: int):
        super().__init__(
            f"Turn exceeded the maximum of {max_rounds} rounds"
        )
        self.max_rounds = max_rounds
