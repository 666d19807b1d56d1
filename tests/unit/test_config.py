import logging

import pytest
from pydantic import ValidationError

from chatstream.config import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    ClientConfig,
    configure_logging,
)

_ENV_VARS = (
    "OPENAI_API_KEY",
    "CHATSTREAM_MODEL",
    "CHATSTREAM_BASE_URL",
    "CHATSTREAM_TIMEOUT",
    "CHATSTREAM_MAX_ROUNDS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = ClientConfig()
    assert config.model == DEFAULT_MODEL == "gpt-4.1"
    assert config.base_url == DEFAULT_BASE_URL
    assert config.timeout is None
    assert config.max_rounds is None


def test_from_env_reads_variables(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("CHATSTREAM_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("CHATSTREAM_BASE_URL", "http://localhost:8000/v1/chat/completions")
    monkeypatch.setenv("CHATSTREAM_TIMEOUT", "30")
    monkeypatch.setenv("CHATSTREAM_MAX_ROUNDS", "4")

    config = ClientConfig.from_env()
    assert config.api_key == "sk-env"
    assert config.model == "gpt-4o-mini"
    assert config.base_url == "http://localhost:8000/v1/chat/completions"
    assert config.timeout == 30.0
    assert config.max_rounds == 4


def test_from_env_overrides_win(monkeypatch):
    monkeypatch.setenv("CHATSTREAM_MODEL", "from-env")
    config = ClientConfig.from_env(model="from-arg", base_url=None)
    assert config.model == "from-arg"
    assert config.base_url == DEFAULT_BASE_URL


def test_from_env_ignores_empty_values(monkeypatch):
    monkeypatch.setenv("CHATSTREAM_MODEL", "")
    assert ClientConfig.from_env().model == DEFAULT_MODEL


@pytest.mark.parametrize("value", [0, -2])
def test_max_rounds_must_be_positive(value):
    with pytest.raises(ValidationError, match="max_rounds"):
        ClientConfig(max_rounds=value)


def test_timeout_must_be_positive():
    with pytest.raises(ValidationError, match="timeout"):
        ClientConfig(timeout=0)


def test_configure_logging_with_file(tmp_path):
    root = logging.getLogger()
    saved, saved_level = root.handlers[:], root.level
    root.handlers = []
    log_file = tmp_path / "chat.log"
    try:
        configure_logging(logging.DEBUG, log_file=str(log_file))
        logging.getLogger("chatstream.test").debug("hello")
        for handler in root.handlers:
            handler.flush()
        assert "chatstream.test:DEBUG:hello" in log_file.read_text()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers = saved
        root.setLevel(saved_level)
