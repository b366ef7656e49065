"""Markup-aware splitting of long messages into bounded parts.

Each part is cut at the most natural boundary available for the message's
dialect, so that tags, HTML entities, fenced code blocks and backslash escape
pairs survive the split.  When a window holds no usable boundary at all (one
unbroken token longer than the limit) the split is forced at the window end.
"""

from __future__ import annotations

import re
from typing import Callable, List, Pattern, Sequence, Union

from .formatting import MarkupDialect

_BR_TAG_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_BLOCKQUOTE_CLOSE_RE = re.compile(r"</blockquote>", re.IGNORECASE)
_PRE_CLOSE_RE = re.compile(r"</pre>", re.IGNORECASE)
_HTML_ENTITY_RE = re.compile(r"&[a-zA-Z0-9#]+;")
_CODE_FENCE_RE = re.compile(r"```[\s\S]*?```")
_MD_ESCAPE_PAIR_RE = re.compile(r"\\[\\_*\[\]()~`>#+\-=|{}.!]")

_Finder = Callable[[str, int, int], int]


def _last_match_end(content: str, start: int, end: int, pattern: Pattern[str]) -> int:
    """Return the end of the last ``pattern`` match inside ``[start, end)``."""

    last = start
    for match in pattern.finditer(content, start, end):
        last = match.end()
    return last


def _last_substring_end(content: str, start: int, end: int, needle: str) -> int:
    index = content.rfind(needle, start, end)
    if index < 0:
        return start
    return index + len(needle)


def _last_whitespace_end(content: str, start: int, end: int) -> int:
    for index in range(end - 1, start - 1, -1):
        if content[index].isspace():
            return index + 1
    return start


def _entity_boundary(content: str, start: int, end: int) -> int:
    """Retreat before an HTML entity that the window end would cut in half."""

    ampersand = content.rfind("&", start, end)
    if ampersand <= start:
        return start
    entity = _HTML_ENTITY_RE.match(content, ampersand)
    if entity is not None and entity.end() > end:
        return ampersand
    return start


def _escape_boundary(content: str, start: int, end: int) -> int:
    """Retreat before the last escape pair reaching the window boundary."""

    if end >= len(content):
        return start
    last = None
    # A pair starting at end - 1 still reaches the boundary.
    for match in _MD_ESCAPE_PAIR_RE.finditer(content, start, min(end + 1, len(content))):
        if match.start() >= end:
            break
        last = match
    if last is not None and last.end() >= end and last.start() > start:
        return last.start()
    return start


def _pattern(pattern: Pattern[str]) -> _Finder:
    return lambda content, start, end: _last_match_end(content, start, end, pattern)


def _newline(content: str, start: int, end: int) -> int:
    return _last_substring_end(content, start, end, "\n")


_HTML_FINDERS: Sequence[_Finder] = (
    _pattern(_BR_TAG_RE),
    _pattern(_BLOCKQUOTE_CLOSE_RE),
    _pattern(_PRE_CLOSE_RE),
    _newline,
    _last_whitespace_end,
    _entity_boundary,
)

_MARKDOWN_FINDERS: Sequence[_Finder] = (
    _pattern(_CODE_FENCE_RE),
    _newline,
    _last_whitespace_end,
    _escape_boundary,
)

_GENERIC_FINDERS: Sequence[_Finder] = (
    _newline,
    _last_whitespace_end,
)


def _finders_for(dialect: MarkupDialect) -> Sequence[_Finder]:
    if dialect is MarkupDialect.HTML:
        return _HTML_FINDERS
    if dialect in (MarkupDialect.MARKDOWN, MarkupDialect.MARKDOWN_V2):
        return _MARKDOWN_FINDERS
    return _GENERIC_FINDERS


def find_split_point(content: str, start: int, limit: int, dialect: MarkupDialect) -> int:
    """Return where the part beginning at ``start`` should end.

    Boundaries are tried in the dialect's priority order; the first one that
    lands strictly after ``start`` wins.  Without any, the window end is used.
    The last window, clipped to the content end, is searched the same way.
    """

    end = min(start + limit, len(content))
    for finder in _finders_for(dialect):
        point = finder(content, start, end)
        if point > start:
            return point
    return end


def safe_split(
    content: str,
    soft_limit: int,
    dialect: Union[MarkupDialect, str, None],
) -> List[str]:
    """Split ``content`` into ordered parts of at most ``soft_limit`` characters.

    Content already within the limit is returned untouched as a single part.
    Otherwise every part is stripped of boundary whitespace and parts that
    end up empty are dropped.  A forced cut at the window end may break an
    atomic unit (entity, escape pair, code fence) longer than the window.
    """

    if content is None:
        raise ValueError("content cannot be None")
    if soft_limit <= 0:
        raise ValueError("soft_limit must be positive")
    if dialect is None:
        raise TypeError("dialect is required")
    dialect = MarkupDialect.parse(dialect)

    if len(content) <= soft_limit:
        return [content]

    parts: List[str] = []
    cursor = 0
    while cursor < len(content):
        point = find_split_point(content, cursor, soft_limit, dialect)
        if point <= cursor:
            point = min(cursor + soft_limit, len(content))
        part = content[cursor:point].strip()
        if part:
            parts.append(part)
        cursor = point
    return parts


__all__ = ["find_split_point", "safe_split"]
