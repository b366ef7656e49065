from __future__ import annotations

import logging

import pytest

import telenotify

_ENV_KEYS = (
    "TELEGRAM_BOT_TOKEN",
    "BOT_TOKEN",
    "TELEGRAM_CHAT_ID",
    "CHAT_ID",
    "TELEGRAM_BOT_NAME",
    "PARSE_MODE",
    "TELEGRAM_PARSE_MODE",
    "TELEGRAM_API_BASE",
    "DISABLE_WEB_PAGE_PREVIEW",
    "HTTP_TIMEOUT",
    "HTTP_CONNECT_TIMEOUT",
    "HTTP_RETRY_TOTAL",
    "HTTP_BACKOFF",
    "HTTP_PROXY_URL",
    "MESSAGE_SOFT_LIMIT",
    "CAPTION_STRATEGY",
    "SEND_RATE_PER_SEC",
    "RETRY_PRESET",
    "RETRY_MAX",
    "RETRY_BASE_DELAY",
    "RETRY_MULTIPLIER",
    "RETRY_MAX_DELAY",
    "LOG_LEVEL",
    "LOG_JSON",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    telenotify.reset_config()
    yield
    telenotify.reset_config()


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)
