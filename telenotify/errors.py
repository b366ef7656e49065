"""Error types raised by the Telegram client and the send pipeline."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Mapping, Optional


class ErrorKind(str, Enum):
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    HTTP = "http"
    GENERIC = "generic"


class TelegramApiError(Exception):
    """Failure reported by (or while talking to) the Bot API.

    One class covers every failure; ``kind`` tells them apart so callers can
    branch on ``exc.kind`` instead of on a subclass.  ``retry_after`` is only
    set for :attr:`ErrorKind.RATE_LIMIT`.
    """

    def __init__(
        self,
        kind: ErrorKind,
        description: str,
        *,
        status: Optional[int] = None,
        error_code: Optional[int] = None,
        retry_after: Optional[int] = None,
    ) -> None:
        super().__init__(description)
        self.kind = kind
        self.description = description
        self.status = status
        self.error_code = error_code if error_code is not None else status
        self.retry_after = retry_after

    @property
    def is_rate_limited(self) -> bool:
        return self.kind is ErrorKind.RATE_LIMIT

    @property
    def has_retry_after(self) -> bool:
        return bool(self.retry_after and self.retry_after > 0)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(kind={self.kind.value}, status={self.status}, "
            f"description={self.description!r}, retry_after={self.retry_after})"
        )

    @classmethod
    def rate_limited(cls, description: str, retry_after: Optional[int] = None) -> "TelegramApiError":
        return cls(ErrorKind.RATE_LIMIT, description, status=429, retry_after=retry_after)

    @classmethod
    def network(cls, description: str) -> "TelegramApiError":
        return cls(ErrorKind.NETWORK, description)

    @classmethod
    def from_response(cls, status: int, body: Any) -> "TelegramApiError":
        """Classify a failed Bot API reply.

        ``body`` may be the raw response text or an already decoded payload.
        """

        payload = _decode(body) or {}
        description = str(payload.get("description") or f"HTTP error: {status}")
        error_code = _as_int(payload.get("error_code"))
        if 200 <= status < 300:
            return cls(ErrorKind.GENERIC, description, status=status, error_code=error_code)
        if status in (401, 403):
            return cls(ErrorKind.AUTH, description, status=status, error_code=error_code)
        if status == 429:
            params = payload.get("parameters") or {}
            retry_after = _as_int(params.get("retry_after")) if isinstance(params, Mapping) else None
            return cls(
                ErrorKind.RATE_LIMIT,
                description,
                status=status,
                error_code=error_code,
                retry_after=retry_after,
            )
        return cls(ErrorKind.HTTP, description, status=status, error_code=error_code)


class CaptionTooLongError(ValueError):
    """Caption exceeds the limit and the strategy forbids shortening it."""

    def __init__(self, length: int, max_length: int) -> None:
        super().__init__(f"Caption length {length} exceeds maximum {max_length} characters")
        self.length = length
        self.max_length = max_length


class SendCancelledError(RuntimeError):
    """A retry wait was interrupted by the caller's cancel event."""


def _decode(body: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(body, Mapping):
        return body
    if isinstance(body, (bytes, bytearray)):
        body = body.decode("utf-8", errors="replace")
    if not isinstance(body, str) or not body.strip():
        return None
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    return payload if isinstance(payload, Mapping) else None


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


__all__ = [
    "CaptionTooLongError",
    "ErrorKind",
    "SendCancelledError",
    "TelegramApiError",
]
