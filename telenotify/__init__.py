"""Telegram notification helpers: escaping, splitting, captions and retries."""

from __future__ import annotations

from functools import lru_cache
from importlib import import_module
from typing import TYPE_CHECKING, Tuple

from .errors import CaptionTooLongError, ErrorKind, SendCancelledError, TelegramApiError
from .utils.caption import CaptionResult, CaptionStrategy, max_caption_length, process_caption
from .utils.formatting import (
    MarkupDialect,
    escape_code,
    escape_text,
    format_context,
    format_context_as_json,
    format_timestamp,
)
from .utils.retry import RetryPolicy
from .utils.splitter import safe_split

if TYPE_CHECKING:  # pragma: no cover - imported for type checkers only
    from .config import AppConfig, HttpCfg, LogCfg, SendCfg, TelegramCfg


def _config_module():
    """Return the lazily-imported configuration module."""

    return import_module(__name__ + ".config")


@lru_cache()
def _cached_config() -> "AppConfig":
    return _config_module().load_all()


def telegram_cfg() -> "TelegramCfg":
    return _cached_config().telegram


def http_cfg() -> "HttpCfg":
    return _cached_config().http


def send_cfg() -> "SendCfg":
    return _cached_config().send


def log_cfg() -> "LogCfg":
    return _cached_config().log


def load() -> Tuple["TelegramCfg", "LogCfg"]:
    cfg = _cached_config()
    return cfg.telegram, cfg.log


def reset_config() -> None:
    """Forget cached settings so the next accessor re-reads the environment."""

    _cached_config.cache_clear()
    _config_module().load_all.cache_clear()


__all__ = [
    "CaptionResult",
    "CaptionStrategy",
    "CaptionTooLongError",
    "ErrorKind",
    "MarkupDialect",
    "RetryPolicy",
    "SendCancelledError",
    "TelegramApiError",
    "escape_code",
    "escape_text",
    "format_context",
    "format_context_as_json",
    "format_timestamp",
    "http_cfg",
    "load",
    "log_cfg",
    "max_caption_length",
    "process_caption",
    "reset_config",
    "safe_split",
    "send_cfg",
    "telegram_cfg",
]
