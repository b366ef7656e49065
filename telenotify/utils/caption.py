"""Fit media captions into the Bot API caption limit."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from ..errors import CaptionTooLongError
from .formatting import TG_CAPTION_LIMIT, MarkupDialect

logger = logging.getLogger(__name__)

MAX_CAPTION_LENGTH = TG_CAPTION_LIMIT
# Boundary-aware cuts are accepted only when they keep this share of the limit.
_MIN_SPLIT_RATIO = 0.8
_SENTENCE_TERMINATORS = ".!?"


class CaptionStrategy(str, Enum):
    TRUNCATE = "truncate"
    SEND_REST_AS_MESSAGE = "send_rest_as_message"
    ERROR = "error"

    @classmethod
    def parse(cls, value: Union[str, "CaptionStrategy"]) -> "CaptionStrategy":
        if isinstance(value, CaptionStrategy):
            return value
        key = (value or "").strip().lower().replace("-", "_")
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown caption strategy: {value!r}") from None


@dataclass(frozen=True)
class CaptionResult:
    """Caption to attach to the media plus text to send after it."""

    primary: Optional[str]
    overflow: Optional[str] = None

    @property
    def has_overflow(self) -> bool:
        return bool(self.overflow and self.overflow.strip())


def max_caption_length() -> int:
    return MAX_CAPTION_LENGTH


def _last_sentence_end(text: str, limit: int) -> Optional[int]:
    found = None
    for index in range(min(limit, len(text))):
        if text[index] not in _SENTENCE_TERMINATORS:
            continue
        nxt = index + 1
        if nxt >= len(text) or text[nxt].isspace():
            found = nxt
    return found


def _last_whitespace(text: str, limit: int) -> Optional[int]:
    for index in range(min(limit, len(text)) - 1, 0, -1):
        if text[index].isspace():
            return index
    return None


def _dialect_boundary(text: str, limit: int, dialect: MarkupDialect) -> Optional[int]:
    # TODO: skip positions inside HTML tags and Markdown entities once the
    # caption path gets the splitter's boundary finders.
    return _last_whitespace(text, limit)


def find_caption_split(text: str, limit: int, dialect: MarkupDialect) -> int:
    """Choose where to cut ``text`` so the head fits in ``limit`` characters."""

    if limit >= len(text):
        return len(text)
    threshold = limit * _MIN_SPLIT_RATIO
    for candidate in (
        _last_sentence_end(text, limit),
        _last_whitespace(text, limit),
        _dialect_boundary(text, limit, dialect),
    ):
        if candidate is not None and candidate >= threshold:
            return candidate
    return limit


def process_caption(
    caption: Optional[str],
    strategy: Union[CaptionStrategy, str, None],
    dialect: Union[MarkupDialect, str, None],
) -> CaptionResult:
    """Bound ``caption`` to the caption limit according to ``strategy``.

    ``TRUNCATE`` keeps the first characters verbatim, ``SEND_REST_AS_MESSAGE``
    cuts at a sentence or word boundary and returns the rest as overflow, and
    ``ERROR`` raises :class:`CaptionTooLongError`.  Whitespace at the cut is
    stripped from both halves.
    A remainder that is only whitespace is returned as ``overflow=None``, so
    an over-limit caption can come back with no overflow at all.
    """

    if strategy is None:
        raise TypeError("strategy is required")
    if dialect is None:
        raise TypeError("dialect is required")
    strategy = CaptionStrategy.parse(strategy)
    dialect = MarkupDialect.parse(dialect)

    if caption is None or not caption.strip():
        return CaptionResult(None, None)
    if len(caption) <= MAX_CAPTION_LENGTH:
        return CaptionResult(caption, None)

    logger.warning(
        "Caption length %s exceeds maximum %s, applying strategy %s",
        len(caption),
        MAX_CAPTION_LENGTH,
        strategy.value,
    )
    if strategy is CaptionStrategy.TRUNCATE:
        return CaptionResult(caption[:MAX_CAPTION_LENGTH], None)
    if strategy is CaptionStrategy.ERROR:
        raise CaptionTooLongError(len(caption), MAX_CAPTION_LENGTH)

    point = find_caption_split(caption, MAX_CAPTION_LENGTH, dialect)
    primary = caption[:point].strip()
    overflow = caption[point:].strip()
    logger.debug(
        "Split caption at %s: caption=%s chars, overflow=%s chars",
        point,
        len(primary),
        len(overflow),
    )
    return CaptionResult(primary, overflow or None)


__all__ = [
    "CaptionResult",
    "CaptionStrategy",
    "MAX_CAPTION_LENGTH",
    "find_caption_split",
    "max_caption_length",
    "process_caption",
]
