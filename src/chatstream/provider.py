from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

import httpx

from chatstream.config import ClientConfig
from chatstream.errors import ApiError, TransportError
from chatstream.message import Message

logger = logging.getLogger(__name__)


class ChatCompletionsProvider:
    """Streams chat completions over HTTP.

    Args:
        config: Endpoint, model and credentials.  Defaults to
            ``ClientConfig.from_env()``.
        http_client: Optional ``httpx.AsyncClient`` to send requests with.
            A client passed in is never closed by the provider.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        if config is None:
            config = ClientConfig.from_env()
        if not config.api_key:
            raise ValueError(
                "API key not configured. Set OPENAI_API_KEY or pass api_key."
            )
        self.config = config
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout),
        )

    @property
    def model(self) -> str:
        return self.config.model

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "ChatCompletionsProvider":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def build_request(
        self, messages: list[Message], tools: list[dict] | None = None
    ) -> dict:
        payload = {
            "model": self.config.model,
            "messages": [m.to_wire() for m in messages],
            "stream": True,
        }
        if tools:
            payload["tools"] = tools
            payload["tool_choice"] = "auto"
        return payload

    @asynccontextmanager
    async def stream(
        self, messages: list[Message], tools: list[dict] | None = None
    ) -> AsyncIterator[AsyncIterator[bytes] | None]:
        """Open a streamed completion and yield its raw body chunks.

        Yields ``None`` when a successful response carries no body.

        Raises:
            TransportError: The request could not be sent.
            ApiError: The endpoint answered with a non-2xx status.
        """
        request = self.client.build_request(
            "POST",
            self.config.base_url,
            json=self.build_request(messages, tools),
            headers={
                "Authorization": f"Bearer {self.config.api_key}",
                "Content-Type": "application/json",
            },
        )
        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {self.config.base_url} failed: {e}") from e

        try:
            if not response.is_success:
                raise ApiError(
                    await _describe_failure(response),
                    status_code=response.status_code,
                )
            yield None if _has_no_body(response) else response.aiter_bytes()
        finally:
            await response.aclose()


def _has_no_body(response: httpx.Response) -> bool:
    return (
        response.status_code in (204, 205)
        or response.headers.get("Content-Length") == "0"
    )


async def _describe_failure(response: httpx.Response) -> str:
    message = f"HTTP {response.status_code}: {response.reason_phrase}"
    try:
        await response.aread()
        error = response.json().get("error") or {}
        detail = error.get("message") if isinstance(error, dict) else error
    except (httpx.HTTPError, ValueError, AttributeError):
        return message
    if detail:
        message = f"{message} - {detail}"
    logger.debug(f"Request failed: {message}")
    return message
