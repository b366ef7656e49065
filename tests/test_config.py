import logging
from datetime import timedelta

import pytest

import telenotify
from telenotify import config
from telenotify.utils.caption import CaptionStrategy
from telenotify.utils.formatting import MarkupDialect
from telenotify.utils.retry import RetryPolicy


def test_defaults(monkeypatch):
    monkeypatch.setenv("TELEGRAM_BOT_TOKEN", " 1:T ")
    monkeypatch.setenv("TELEGRAM_CHAT_ID", "42")
    cfg = config.load_all()

    assert cfg.telegram.token == "1:T"
    assert cfg.telegram.chat_id == "42"
    assert cfg.telegram.parse_mode is MarkupDialect.HTML
    assert cfg.telegram.api_base == "https://api.telegram.org"
    assert cfg.telegram.disable_preview is False
    assert cfg.http.timeout == 10.0
    assert cfg.http.connect_timeout == 5.0
    assert cfg.http.proxy_url is None
    assert cfg.send.soft_limit == 3900
    assert cfg.send.caption_strategy is CaptionStrategy.SEND_REST_AS_MESSAGE
    assert cfg.send.rate_per_sec == 0.0
    assert cfg.send.retry == RetryPolicy.default()
    assert cfg.log.level == "INFO"
    assert cfg.log.json is False


def test_alias_is_used_with_warning(monkeypatch, caplog):
    monkeypatch.setenv("BOT_TOKEN", "1:T")
    monkeypatch.setenv("CHAT_ID", "@channel")
    with caplog.at_level(logging.WARNING, logger="telenotify.config"):
        cfg = config.load_all()
    assert cfg.telegram.token == "1:T"
    assert cfg.telegram.chat_id == "@channel"
    assert "ENV alias BOT_TOKEN used for TELEGRAM_BOT_TOKEN" in caplog.text


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("PARSE_MODE", "MarkdownV2")
    monkeypatch.setenv("TELEGRAM_API_BASE", "http://localhost:8081/")
    monkeypatch.setenv("DISABLE_WEB_PAGE_PREVIEW", "yes")
    monkeypatch.setenv("HTTP_PROXY_URL", "socks5://proxy:1080")
    monkeypatch.setenv("CAPTION_STRATEGY", "error")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("LOG_JSON", "1")
    cfg = config.load_all()

    assert cfg.telegram.parse_mode is MarkupDialect.MARKDOWN_V2
    assert cfg.telegram.api_base == "http://localhost:8081"
    assert cfg.telegram.disable_preview is True
    assert cfg.http.proxy_url == "socks5://proxy:1080"
    assert cfg.send.caption_strategy is CaptionStrategy.ERROR
    assert cfg.log.level == "DEBUG"
    assert cfg.log.json is True


def test_retry_preset_with_overrides(monkeypatch):
    monkeypatch.setenv("RETRY_PRESET", "conservative")
    monkeypatch.setenv("RETRY_MAX", "7")
    monkeypatch.setenv("RETRY_MAX_DELAY", "90")
    retry = config.load_all().send.retry

    assert retry.max_retries == 7
    assert retry.base_delay == timedelta(seconds=2)
    assert retry.multiplier == 1.5
    assert retry.max_delay == timedelta(seconds=90)


@pytest.mark.parametrize(
    "name, value",
    [
        ("MESSAGE_SOFT_LIMIT", "5000"),
        ("MESSAGE_SOFT_LIMIT", "0"),
        ("HTTP_TIMEOUT", "slow"),
        ("RETRY_MAX", "many"),
        ("RETRY_PRESET", "reckless"),
        ("CAPTION_STRATEGY", "drop"),
        ("PARSE_MODE", "bbcode"),
    ],
)
def test_invalid_values_raise(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ValueError):
        config.load_all()


def test_validate_lists_missing_settings():
    cfg = config.load_all()
    with pytest.raises(ValueError) as excinfo:
        cfg.telegram.validate()
    assert str(excinfo.value) == "Missing Telegram settings: TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID"


def test_package_accessors_are_cached_until_reset(monkeypatch):
    monkeypatch.setenv("MESSAGE_SOFT_LIMIT", "1000")
    assert telenotify.send_cfg().soft_limit == 1000

    monkeypatch.setenv("MESSAGE_SOFT_LIMIT", "2000")
    assert telenotify.send_cfg().soft_limit == 1000

    telenotify.reset_config()
    assert telenotify.send_cfg().soft_limit == 2000
    tg, log = telenotify.load()
    assert tg is telenotify.telegram_cfg()
    assert log is telenotify.log_cfg()
    assert telenotify.http_cfg().retry_total == 3


def test_config_module_exposes_load_all_only():
    assert hasattr(config, "load_all")
    assert not hasattr(config, "load")
