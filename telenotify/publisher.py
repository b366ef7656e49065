"""Send orchestration: split or caption the text, frame parts, retry on 429."""

from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Callable, List, Optional, Protocol, TypeVar, Union

from .errors import SendCancelledError, TelegramApiError
from .logging_setup import log_kv
from .utils.caption import CaptionStrategy, process_caption
from .utils.formatting import DEFAULT_SOFT_LIMIT, TG_TEXT_LIMIT, MarkupDialect
from .utils.retry import RetryPolicy
from .utils.splitter import safe_split

logger = logging.getLogger("telenotify.publisher")

T = TypeVar("T")


class TelegramApi(Protocol):
    def send_message(self, text: str, dialect: MarkupDialect = ..., **kwargs) -> int:
        ...

    def send_photo(self, source, caption: Optional[str] = None, dialect: MarkupDialect = ...) -> int:
        ...

    def send_document(self, source, caption: Optional[str] = None, dialect: MarkupDialect = ...) -> int:
        ...


def frame_parts(parts: List[str]) -> List[str]:
    """Prefix each part with ``Part i/N`` when there is more than one."""

    if len(parts) <= 1:
        return list(parts)
    total = len(parts)
    return [f"Part {idx}/{total}\n\n{part}" for idx, part in enumerate(parts, 1)]


def split_framed(text: str, soft_limit: int, dialect: MarkupDialect) -> List[str]:
    """Split ``text`` and frame the parts so none exceeds the message limit.

    When the ``Part i/N`` prefix would push a part past ``TG_TEXT_LIMIT`` the
    text is split again with a limit that leaves room for it.
    """

    limit = soft_limit
    while True:
        parts = safe_split(text, limit, dialect)
        if len(parts) <= 1:
            return parts
        total = len(parts)
        budget = TG_TEXT_LIMIT - len(f"Part {total}/{total}\n\n")
        if limit <= budget:
            return frame_parts(parts)
        limit = budget


class NotificationPublisher:
    """Deliver formatted notifications through a Bot API client.

    Rate-limit failures are retried according to ``retry_policy``; every
    other failure propagates on the first occurrence.  When retries run out
    the last rate-limit error itself is re-raised.
    """

    def __init__(
        self,
        api: TelegramApi,
        retry_policy: Optional[RetryPolicy] = None,
        *,
        soft_limit: int = DEFAULT_SOFT_LIMIT,
        caption_strategy: Union[CaptionStrategy, str] = CaptionStrategy.SEND_REST_AS_MESSAGE,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if api is None:
            raise ValueError("api is required")
        if not 0 < soft_limit < TG_TEXT_LIMIT:
            raise ValueError(f"soft_limit must be between 1 and {TG_TEXT_LIMIT - 1}")
        self.api = api
        self.retry_policy = retry_policy or RetryPolicy.default()
        self.soft_limit = soft_limit
        self.caption_strategy = CaptionStrategy.parse(caption_strategy)
        self.cancel_event = cancel_event

    @classmethod
    def from_config(cls, *, cancel_event: Optional[threading.Event] = None) -> "NotificationPublisher":
        from . import send_cfg, telegram_cfg
        from .client import TelegramBotApi
        from .rate_limiter import bucket_for_rate

        cfg = send_cfg()
        api = TelegramBotApi(telegram_cfg(), bucket=bucket_for_rate(cfg.rate_per_sec))
        return cls(
            api,
            cfg.retry,
            soft_limit=cfg.soft_limit,
            caption_strategy=cfg.caption_strategy,
            cancel_event=cancel_event,
        )

    # ------------------------------------------------------------------
    # Retry loop
    # ------------------------------------------------------------------

    def _wait(self, delay: timedelta) -> None:
        seconds = delay.total_seconds()
        if self.cancel_event is None:
            if seconds > 0:
                time.sleep(seconds)
            return
        if self.cancel_event.wait(seconds):
            raise SendCancelledError("Interrupted while waiting to retry")

    def send_with_retry(self, action: Callable[[], T], *, label: str = "send") -> T:
        """Run ``action`` and retry it while the Bot API reports rate limiting."""

        policy = self.retry_policy
        attempt = 0
        while True:
            try:
                return action()
            except TelegramApiError as exc:
                if not exc.is_rate_limited:
                    raise
                if not policy.should_retry(attempt):
                    logger.error(
                        "Rate limit retries exhausted for %s after %s calls",
                        label,
                        attempt + 1,
                    )
                    raise
                delay = policy.for_429(attempt, exc.retry_after)
                attempt += 1
                log_kv(
                    logger,
                    logging.WARNING,
                    "rate limited, retrying",
                    op=label,
                    attempt=attempt,
                    max_retries=policy.max_retries,
                    delay=delay.total_seconds(),
                    retry_after=exc.retry_after,
                )
                self._wait(delay)

    # ------------------------------------------------------------------
    # Public senders
    # ------------------------------------------------------------------

    def send_text(self, text: str, dialect: Union[MarkupDialect, str] = MarkupDialect.HTML) -> List[int]:
        """Send ``text`` as one or more ordered messages; return their ids."""

        if text is None or not text.strip():
            raise ValueError("text cannot be empty")
        dialect = MarkupDialect.parse(dialect)
        parts = split_framed(text, self.soft_limit, dialect)
        if len(parts) > 1:
            log_kv(
                logger,
                logging.INFO,
                "message split",
                parts=len(parts),
                dialect=dialect.name,
                length=len(text),
            )
        message_ids: List[int] = []
        for idx, part in enumerate(parts, 1):
            message_id = self.send_with_retry(
                lambda part=part: self.api.send_message(part, dialect),
                label=f"sendMessage part {idx}/{len(parts)}",
            )
            log_kv(
                logger,
                logging.INFO,
                "sent text",
                part=idx,
                parts=len(parts),
                length=len(part),
                message_id=message_id,
            )
            message_ids.append(message_id)
        return message_ids

    def _send_media(self, method: str, source, caption: Optional[str], dialect) -> List[int]:
        dialect = MarkupDialect.parse(dialect)
        result = process_caption(caption, self.caption_strategy, dialect)
        send = getattr(self.api, method)
        message_id = self.send_with_retry(
            lambda: send(source, result.primary, dialect),
            label=method,
        )
        log_kv(
            logger,
            logging.INFO,
            "sent media",
            method=method,
            caption_len=len(result.primary or ""),
            overflow=result.has_overflow,
            message_id=message_id,
        )
        message_ids = [message_id]
        if result.has_overflow:
            for part in safe_split(result.overflow, self.soft_limit, dialect):
                message_ids.append(
                    self.send_with_retry(
                        lambda part=part: self.api.send_message(part, dialect),
                        label=f"{method} overflow",
                    )
                )
        return message_ids

    def send_photo(self, source, caption: Optional[str] = None, dialect=MarkupDialect.HTML) -> List[int]:
        """Send a photo; caption overflow follows as plain messages."""

        return self._send_media("send_photo", source, caption, dialect)

    def send_document(self, source, caption: Optional[str] = None, dialect=MarkupDialect.HTML) -> List[int]:
        return self._send_media("send_document", source, caption, dialect)
