"""Thin Telegram Bot API client built on the shared HTTP session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import requests

from . import http_client
from .config import TelegramCfg
from .errors import ErrorKind, TelegramApiError
from .logging_setup import log_kv, mask_secrets
from .rate_limiter import TokenBucket
from .utils.formatting import MarkupDialect

logger = logging.getLogger("telenotify.client")


class MediaKind(str, Enum):
    FILE_ID = "file_id"
    URL = "url"


@dataclass(frozen=True)
class MediaSource:
    """Photo or document already reachable by Telegram (file_id or URL)."""

    kind: MediaKind
    ref: str

    def __post_init__(self) -> None:
        if not self.ref or not self.ref.strip():
            raise ValueError(f"{self.kind.value} cannot be empty")
        object.__setattr__(self, "ref", self.ref.strip())

    @classmethod
    def by_file_id(cls, file_id: str) -> "MediaSource":
        return cls(MediaKind.FILE_ID, file_id)

    @classmethod
    def by_url(cls, url: str) -> "MediaSource":
        return cls(MediaKind.URL, url)

    @classmethod
    def guess(cls, ref: str) -> "MediaSource":
        """Treat http(s) references as URLs and anything else as a file_id."""

        stripped = (ref or "").strip()
        if stripped.lower().startswith(("http://", "https://")):
            return cls.by_url(stripped)
        return cls.by_file_id(stripped)


class TelegramBotApi:
    """Send messages, photos and documents to the configured chat."""

    def __init__(self, cfg: TelegramCfg, *, bucket: Optional[TokenBucket] = None) -> None:
        cfg.validate()
        self.cfg = cfg
        self.bucket = bucket
        self._base_url = f"{cfg.api_base}/bot{cfg.token}"

    @property
    def chat_id(self) -> str:
        return self.cfg.chat_id

    def _payload(self, dialect: MarkupDialect, **fields: Any) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"chat_id": self.cfg.chat_id}
        payload.update({key: value for key, value in fields.items() if value is not None})
        parse_mode = MarkupDialect.parse(dialect).parse_mode
        if parse_mode:
            payload["parse_mode"] = parse_mode
        return payload

    def _call(self, method: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self.bucket is not None:
            waited = self.bucket.consume()
            if waited:
                logger.debug("Paced %s by %.2f s", method, waited)
        url = f"{self._base_url}/{method}"
        try:
            response = http_client.post(url, data=payload, context=method)
        except requests.RequestException as exc:
            raise TelegramApiError.network(
                f"Network error during {method}: {mask_secrets(str(exc))}"
            ) from exc

        status = response.status_code
        try:
            data = response.json()
        except ValueError:
            data = None
        if not 200 <= status < 300 or not isinstance(data, dict) or not data.get("ok"):
            error = TelegramApiError.from_response(status, data if data is not None else response.text)
            log_kv(
                logger,
                logging.WARNING,
                "api call failed",
                method=method,
                status=status,
                kind=error.kind.value,
                retry_after=error.retry_after,
                description=error.description,
            )
            raise error

        result = data.get("result") or {}
        message_id = result.get("message_id") if isinstance(result, dict) else None
        if message_id is None:
            raise TelegramApiError(
                ErrorKind.GENERIC,
                f"{method} response has no message_id",
                status=status,
            )
        log_kv(logger, logging.DEBUG, "api call ok", method=method, message_id=message_id)
        return result

    def send_message(
        self,
        text: str,
        dialect: Union[MarkupDialect, str] = MarkupDialect.HTML,
        *,
        disable_preview: Optional[bool] = None,
    ) -> int:
        if text is None or not text.strip():
            raise ValueError("Message text cannot be empty")
        preview_off = self.cfg.disable_preview if disable_preview is None else disable_preview
        payload = self._payload(
            dialect,
            text=text,
            disable_web_page_preview="true" if preview_off else "false",
        )
        logger.debug("Sending sendMessage to chat %s: %s chars", self.cfg.chat_id, len(text))
        return int(self._call("sendMessage", payload)["message_id"])

    def send_photo(
        self,
        source: MediaSource,
        caption: Optional[str] = None,
        dialect: Union[MarkupDialect, str] = MarkupDialect.HTML,
    ) -> int:
        payload = self._payload(dialect, photo=source.ref, caption=caption or None)
        logger.debug("Sending photo by %s to chat %s", source.kind.value, self.cfg.chat_id)
        return int(self._call("sendPhoto", payload)["message_id"])

    def send_document(
        self,
        source: MediaSource,
        caption: Optional[str] = None,
        dialect: Union[MarkupDialect, str] = MarkupDialect.HTML,
    ) -> int:
        payload = self._payload(dialect, document=source.ref, caption=caption or None)
        logger.debug("Sending document by %s to chat %s", source.kind.value, self.cfg.chat_id)
        return int(self._call("sendDocument", payload)["message_id"])
