"""Escaping and context formatting for Telegram markup dialects."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Mapping, Optional, Union

TG_TEXT_LIMIT = 4096
TG_CAPTION_LIMIT = 1024
DEFAULT_SOFT_LIMIT = 3900

_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Backslash sits first in both classes; a single regex pass never re-escapes
# the backslashes it inserts.
_MD_NEED_ESCAPE = r"[\\_*\[\]()]"
_MD2_NEED_ESCAPE = r"[\\_*\[\]()~`>#+\-=|{}.!]"
_MD_CODE_NEED_ESCAPE = r"[\\`]"

_MD_ESCAPE_RE = re.compile(f"({_MD_NEED_ESCAPE})")
_MD2_ESCAPE_RE = re.compile(f"({_MD2_NEED_ESCAPE})")
_MD_CODE_ESCAPE_RE = re.compile(f"({_MD_CODE_NEED_ESCAPE})")

_HTML_REPLACEMENTS = (
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
)


class MarkupDialect(str, Enum):
    """Markup flavours accepted by the Bot API ``parse_mode`` field."""

    HTML = "HTML"
    MARKDOWN = "Markdown"
    MARKDOWN_V2 = "MarkdownV2"
    PLAIN = ""

    @property
    def parse_mode(self) -> Optional[str]:
        return self.value or None

    @classmethod
    def parse(cls, value: Union[str, "MarkupDialect", None]) -> "MarkupDialect":
        """Resolve ``value`` (enum, member name or parse_mode string)."""

        if isinstance(value, MarkupDialect):
            return value
        key = (value or "").strip().replace("-", "_").upper()
        if key in {"", "NONE", "PLAIN", "TEXT"}:
            return cls.PLAIN
        for member in cls:
            if key in {member.name, member.value.upper()}:
                return member
        raise ValueError(f"Unknown parse mode: {value!r}")


def escape_html(text: Optional[str]) -> Optional[str]:
    """Replace ``& < > "`` with HTML entities (ampersand first)."""

    if text is None:
        return None
    for raw, entity in _HTML_REPLACEMENTS:
        text = text.replace(raw, entity)
    return text


def escape_markdown(text: Optional[str]) -> Optional[str]:
    """Escape characters that have special meaning in legacy Markdown."""

    if text is None:
        return None
    return _MD_ESCAPE_RE.sub(r"\\\1", text)


def escape_markdown_v2(text: Optional[str]) -> Optional[str]:
    """Escape characters that have special meaning in MarkdownV2."""

    if text is None:
        return None
    return _MD2_ESCAPE_RE.sub(r"\\\1", text)


def escape_markdown_code(text: Optional[str]) -> Optional[str]:
    """Escape only backslash and backtick for text inside code spans."""

    if text is None:
        return None
    return _MD_CODE_ESCAPE_RE.sub(r"\\\1", text)


def _require_dialect(dialect: Optional[MarkupDialect]) -> MarkupDialect:
    if dialect is None:
        raise TypeError("dialect is required")
    return MarkupDialect.parse(dialect)


def escape_text(text: Optional[str], dialect: MarkupDialect) -> Optional[str]:
    """Return ``text`` with every reserved character of ``dialect`` escaped.

    ``None`` passes through unchanged so optional fields can be escaped
    without a guard at every call site.
    """

    dialect = _require_dialect(dialect)
    if dialect is MarkupDialect.HTML:
        return escape_html(text)
    if dialect is MarkupDialect.MARKDOWN:
        return escape_markdown(text)
    if dialect is MarkupDialect.MARKDOWN_V2:
        return escape_markdown_v2(text)
    return text


def escape_code(text: Optional[str], dialect: MarkupDialect) -> Optional[str]:
    """Escape ``text`` for use inside a code span or block."""

    dialect = _require_dialect(dialect)
    if dialect is MarkupDialect.HTML:
        return escape_html(text)
    if dialect in (MarkupDialect.MARKDOWN, MarkupDialect.MARKDOWN_V2):
        return escape_markdown_code(text)
    return text


def _context_items(context: Optional[Mapping[str, object]], dialect: MarkupDialect):
    for key, value in (context or {}).items():
        rendered = "" if value is None else str(value)
        yield escape_text(str(key), dialect), escape_text(rendered, dialect)


def format_context(context: Optional[Mapping[str, object]], dialect: MarkupDialect) -> str:
    """Render ``context`` as ``key: value`` lines in mapping order."""

    dialect = _require_dialect(dialect)
    return "\n".join(f"{key}: {value}" for key, value in _context_items(context, dialect))


def format_context_as_json(context: Optional[Mapping[str, object]], dialect: MarkupDialect) -> str:
    """Render ``context`` as a one-line JSON-like object.

    Keys and values are escaped for ``dialect``, not JSON-encoded; the output
    is meant for display inside a message, not for machine parsing.
    """

    dialect = _require_dialect(dialect)
    if not context:
        return ""
    body = ", ".join(f'"{key}": "{value}"' for key, value in _context_items(context, dialect))
    return "{" + body + "}"


def format_timestamp(timestamp: Union[str, datetime, None], dialect: MarkupDialect) -> str:
    dialect = _require_dialect(dialect)
    if timestamp is None:
        return ""
    if isinstance(timestamp, datetime):
        timestamp = timestamp.strftime(_TIMESTAMP_FORMAT)
    return escape_text(timestamp, dialect) or ""


def safe_format(text: str, parse_mode: Union[str, MarkupDialect, None]) -> str:
    """Return ``text`` escaped according to ``parse_mode`` rules."""

    return escape_text(text or "", MarkupDialect.parse(parse_mode)) or ""


__all__ = [
    "DEFAULT_SOFT_LIMIT",
    "MarkupDialect",
    "TG_CAPTION_LIMIT",
    "TG_TEXT_LIMIT",
    "escape_code",
    "escape_html",
    "escape_markdown",
    "escape_markdown_code",
    "escape_markdown_v2",
    "escape_text",
    "format_context",
    "format_context_as_json",
    "format_timestamp",
    "safe_format",
]
