"""Command-line entrypoint: ``python -m telenotify``."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from . import reset_config, send_cfg, telegram_cfg
from .errors import TelegramApiError
from .logging_setup import setup_logging
from .utils.formatting import MarkupDialect, escape_text

logger = logging.getLogger("telenotify.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="telenotify",
        description="Send a notification to the configured Telegram chat.",
    )
    parser.add_argument("text", help="Message text (or media caption); '-' reads stdin")
    parser.add_argument(
        "--parse-mode",
        default=None,
        help="HTML, Markdown, MarkdownV2 or plain (default: PARSE_MODE env)",
    )
    parser.add_argument("--soft-limit", type=int, default=None, help="Maximum characters per message part")
    parser.add_argument("--escape", action="store_true", help="Escape TEXT for the parse mode before sending")
    media = parser.add_mutually_exclusive_group()
    media.add_argument("--photo", metavar="REF", help="Photo URL or file_id; TEXT becomes the caption")
    media.add_argument("--document", metavar="REF", help="Document URL or file_id; TEXT becomes the caption")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--env-file", default=".env", help="Read settings from this .env file (real env wins)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    load_dotenv(args.env_file)
    reset_config()
    try:
        setup_logging(level=args.log_level)
        tg_cfg = telegram_cfg()
        tg_cfg.validate()
        dialect = MarkupDialect.parse(args.parse_mode) if args.parse_mode else tg_cfg.parse_mode
        text = sys.stdin.read() if args.text == "-" else args.text
        if args.escape:
            text = escape_text(text, dialect)

        from .client import MediaSource, TelegramBotApi
        from .publisher import NotificationPublisher
        from .rate_limiter import bucket_for_rate

        cfg = send_cfg()
        publisher = NotificationPublisher(
            TelegramBotApi(tg_cfg, bucket=bucket_for_rate(cfg.rate_per_sec)),
            cfg.retry,
            soft_limit=args.soft_limit or cfg.soft_limit,
            caption_strategy=cfg.caption_strategy,
        )
        if args.photo:
            ids = publisher.send_photo(MediaSource.guess(args.photo), text, dialect)
        elif args.document:
            ids = publisher.send_document(MediaSource.guess(args.document), text, dialect)
        else:
            ids = publisher.send_text(text, dialect)
    except ValueError as exc:
        logger.error("Invalid configuration or arguments: %s", exc)
        return 2
    except TelegramApiError as exc:
        logger.error("Telegram API error (%s): %s", exc.kind.value, exc.description)
        return 1
    logger.info("Sent %s message(s): %s", len(ids), ", ".join(str(i) for i in ids))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
