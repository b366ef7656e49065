"""Logging helpers with KV/JSON formatting and secret masking."""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, List, Optional

from . import log_cfg

_SECRET_KEY_PATTERN = re.compile(r"(TOKEN|SECRET|API_KEY|PASSWORD)$", re.IGNORECASE)
_CHAT_KEY_PATTERN = re.compile(r"CHAT_ID$", re.IGNORECASE)
_PUBLIC_CHAT_PREFIXES = ("@",)
_BOT_TOKEN_PATTERN = re.compile(r"bot(\d+):([A-Za-z0-9_-]+)")


def mask_secrets(text: Any) -> Any:
    """Mask Bot API tokens embedded in ``text`` (e.g. in request URLs)."""

    if not isinstance(text, str):
        return text
    return _BOT_TOKEN_PATTERN.sub(lambda m: f"bot{m.group(1)}:***", text)


def _env_secrets() -> List[str]:
    """Return env values that must never appear in log output."""

    secrets = []
    for key, value in os.environ.items():
        if not value:
            continue
        if _SECRET_KEY_PATTERN.search(key):
            secrets.append(value)
        elif _CHAT_KEY_PATTERN.search(key) and not value.startswith(_PUBLIC_CHAT_PREFIXES):
            secrets.append(value)
    # Longest first so a token containing a chat id is masked whole.
    return sorted(secrets, key=len, reverse=True)


def _render_ctx(ctx: Any) -> str:
    if not isinstance(ctx, dict):
        return ""
    return " ".join(f"{key}={value}" for key, value in ctx.items() if value is not None)


class SecretsFilter(logging.Filter):
    """Mask bot tokens, env secrets and private chat ids in every record."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401 - signature mandated by logging
        message = mask_secrets(record.getMessage())
        for secret in _env_secrets():
            message = message.replace(secret, "***")
        record.msg = message
        record.args = ()
        return True


class KVFormatter(logging.Formatter):
    """Append ``| key=value`` pairs from ``record.ctx``; ``None`` values are skipped."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        kv = _render_ctx(getattr(record, "ctx", None))
        return f"{base} | {kv}" if kv else base


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "time": self.formatTime(record, "%Y-%m-%d %H:%M:%S"),
        }
        ctx = getattr(record, "ctx", None)
        if isinstance(ctx, dict):
            payload.update({key: value for key, value in ctx.items() if value is not None})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """Configure root logging handlers according to env settings.

    Explicit ``level`` / ``json_output`` arguments override the environment.
    """

    cfg = log_cfg()
    level_name = (level or cfg.level).upper()
    use_json = cfg.json if json_output is None else json_output
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    handler = logging.StreamHandler()
    handler.addFilter(SecretsFilter())
    if use_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            KVFormatter(
                fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    root.addHandler(handler)

    logging.getLogger("urllib3").setLevel(logging.WARNING)


def log_kv(logger: logging.Logger, level: int, message: str, **ctx: Any) -> None:
    """Emit log record with structured context in ``ctx``."""

    logger.log(level, message, extra={"ctx": ctx})
