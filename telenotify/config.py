"""Centralised environment configuration helpers for telenotify."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from .utils.caption import CaptionStrategy
from .utils.formatting import DEFAULT_SOFT_LIMIT, TG_TEXT_LIMIT, MarkupDialect
from .utils.retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.telegram.org"


def _getenv(*names: str, default: Optional[str] = None) -> Optional[str]:
    for idx, name in enumerate(names):
        value = os.getenv(name)
        if value:
            if len(names) > 1 and idx != 0:
                logger.warning(
                    "ENV alias %s used for %s; please rename to %s",
                    name,
                    names[0],
                    names[0],
                )
            return value
    return default


def _as_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in {"1", "true", "yes", "y", "on"}


def _as_float(name: str, value: Optional[str], default: float) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None


def _as_int(name: str, value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None


@dataclass(frozen=True)
class TelegramCfg:
    token: str
    chat_id: str
    name: str = "default"
    parse_mode: MarkupDialect = MarkupDialect.HTML
    api_base: str = DEFAULT_API_BASE
    disable_preview: bool = False

    def validate(self) -> None:
        missing = []
        if not self.token:
            missing.append("TELEGRAM_BOT_TOKEN")
        if not self.chat_id:
            missing.append("TELEGRAM_CHAT_ID")
        if missing:
            raise ValueError("Missing Telegram settings: " + ", ".join(missing))


@dataclass(frozen=True)
class HttpCfg:
    timeout: float
    connect_timeout: float
    retry_total: int
    backoff_factor: float
    proxy_url: Optional[str] = None


@dataclass(frozen=True)
class SendCfg:
    soft_limit: int
    caption_strategy: CaptionStrategy
    rate_per_sec: float
    retry: RetryPolicy


@dataclass(frozen=True)
class LogCfg:
    level: str
    json: bool


@dataclass(frozen=True)
class AppConfig:
    telegram: TelegramCfg
    http: HttpCfg
    send: SendCfg
    log: LogCfg


def _load_retry_policy() -> RetryPolicy:
    preset = RetryPolicy.preset(_getenv("RETRY_PRESET", default="default") or "default")
    return RetryPolicy(
        max_retries=_as_int("RETRY_MAX", _getenv("RETRY_MAX"), preset.max_retries),
        base_delay=timedelta(
            seconds=_as_float(
                "RETRY_BASE_DELAY",
                _getenv("RETRY_BASE_DELAY"),
                preset.base_delay.total_seconds(),
            )
        ),
        multiplier=_as_float("RETRY_MULTIPLIER", _getenv("RETRY_MULTIPLIER"), preset.multiplier),
        max_delay=timedelta(
            seconds=_as_float(
                "RETRY_MAX_DELAY",
                _getenv("RETRY_MAX_DELAY"),
                preset.max_delay.total_seconds(),
            )
        ),
    )


@lru_cache()
def load_all() -> AppConfig:
    parse_mode_raw = _getenv("PARSE_MODE", "TELEGRAM_PARSE_MODE", default="HTML") or "HTML"

    telegram_cfg = TelegramCfg(
        token=(_getenv("TELEGRAM_BOT_TOKEN", "BOT_TOKEN", default="") or "").strip(),
        chat_id=(_getenv("TELEGRAM_CHAT_ID", "CHAT_ID", default="") or "").strip(),
        name=(_getenv("TELEGRAM_BOT_NAME", default="default") or "default").strip(),
        parse_mode=MarkupDialect.parse(parse_mode_raw),
        api_base=(_getenv("TELEGRAM_API_BASE", default=DEFAULT_API_BASE) or DEFAULT_API_BASE).rstrip("/"),
        disable_preview=_as_bool(_getenv("DISABLE_WEB_PAGE_PREVIEW"), False),
    )

    http_cfg = HttpCfg(
        timeout=_as_float("HTTP_TIMEOUT", _getenv("HTTP_TIMEOUT"), 10.0),
        connect_timeout=_as_float("HTTP_CONNECT_TIMEOUT", _getenv("HTTP_CONNECT_TIMEOUT"), 5.0),
        retry_total=_as_int("HTTP_RETRY_TOTAL", _getenv("HTTP_RETRY_TOTAL"), 3),
        backoff_factor=_as_float("HTTP_BACKOFF", _getenv("HTTP_BACKOFF"), 0.5),
        proxy_url=_getenv("HTTP_PROXY_URL"),
    )

    soft_limit = _as_int("MESSAGE_SOFT_LIMIT", _getenv("MESSAGE_SOFT_LIMIT"), DEFAULT_SOFT_LIMIT)
    if not 0 < soft_limit < TG_TEXT_LIMIT:
        raise ValueError(f"MESSAGE_SOFT_LIMIT must be between 1 and {TG_TEXT_LIMIT - 1}")
    send_cfg = SendCfg(
        soft_limit=soft_limit,
        caption_strategy=CaptionStrategy.parse(
            _getenv("CAPTION_STRATEGY", default="send_rest_as_message") or "send_rest_as_message"
        ),
        rate_per_sec=_as_float("SEND_RATE_PER_SEC", _getenv("SEND_RATE_PER_SEC"), 0.0),
        retry=_load_retry_policy(),
    )

    log_cfg = LogCfg(
        level=(_getenv("LOG_LEVEL", default="INFO") or "INFO").upper(),
        json=_as_bool(_getenv("LOG_JSON"), False),
    )

    return AppConfig(telegram=telegram_cfg, http=http_cfg, send=send_cfg, log=log_cfg)

