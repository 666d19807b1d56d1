import logging
import os

from pydantic import BaseModel, field_validator


DEFAULT_MODEL = "gpt-4.1"
DEFAULT_BASE_URL = "https://api.openai.com/v1/chat/completions"

LOG_FORMAT = '%(asctime)s:%(name)s:%(levelname)s:%(message)s'
LOG_DATEFMT = '%Y-%m-%d %H:%M:%S'


class ClientConfig(BaseModel):
    """Settings for the chat-completions client.

    Args:
        api_key: Bearer token sent with every request.
        model: Model name placed in the request body.
        base_url: Full URL of the chat-completions endpoint.
        timeout: Transport timeout in seconds. ``None`` waits forever,
            which is the default: a silent upstream stalls the turn.
        max_rounds: Upper bound on request rounds per turn, or ``None``
            for no bound.
    """

    api_key: str | None = None
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    timeout: float | None = None
    max_rounds: int | None = None

    @field_validator("max_rounds")
    @classmethod
    def check_max_rounds(cls, value: int | None) -> int | None:
        if value is not None and value < 1:
            raise ValueError("max_rounds must be at least 1")
        return value

    @field_validator("timeout")
    @classmethod
    def check_timeout(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @classmethod
    def from_env(cls, **overrides) -> "ClientConfig":
        """Build a config from environment variables.

        Reads ``OPENAI_API_KEY``, ``CHATSTREAM_MODEL``,
        ``CHATSTREAM_BASE_URL``, ``CHATSTREAM_TIMEOUT`` and
        ``CHATSTREAM_MAX_ROUNDS``.  Keyword arguments that are not
        ``None`` take precedence.
        """
        values = {
            "api_key": os.getenv("OPENAI_API_KEY"),
            "model": os.getenv("CHATSTREAM_MODEL"),
            "base_url": os.getenv("CHATSTREAM_BASE_URL"),
            "timeout": os.getenv("CHATSTREAM_TIMEOUT"),
            "max_rounds": os.getenv("CHATSTREAM_MAX_ROUNDS"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**{k: v for k, v in values.items() if v not in (None, "")})


def configure_logging(
    level: int = logging.INFO, log_file: str | None = None
) -> None:
    """Send chatstream logs to stderr and, optionally, a file."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        handlers=handlers,
    )
