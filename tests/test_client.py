import json

import pytest
import requests

from telenotify import client, http_client
from telenotify.client import MediaKind, MediaSource, TelegramBotApi
from telenotify.config import TelegramCfg
from telenotify.errors import ErrorKind, TelegramApiError
from telenotify.utils.formatting import MarkupDialect


class _DummyResponse:
    def __init__(self, status_code, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else json.dumps(payload, ensure_ascii=False)

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


def _cfg(**overrides) -> TelegramCfg:
    params = {"token": "123:ABC", "chat_id": "42"}
    params.update(overrides)
    return TelegramCfg(**params)


def _install(monkeypatch, *responses):
    calls = []
    queue = list(responses)

    def fake_post(url, *, data=None, timeout=None, context=None, **kwargs):  # noqa: D401 - test stub
        calls.append((url, dict(data or {}), context))
        reply = queue.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(http_client, "post", fake_post)
    return calls


def test_send_message_builds_payload(monkeypatch):
    calls = _install(monkeypatch, _DummyResponse(200, {"ok": True, "result": {"message_id": 7}}))
    api = TelegramBotApi(_cfg())

    assert api.send_message("<b>hi</b>") == 7
    url, data, context = calls[0]
    assert url == "https://api.telegram.org/bot123:ABC/sendMessage"
    assert data == {
        "chat_id": "42",
        "text": "<b>hi</b>",
        "parse_mode": "HTML",
        "disable_web_page_preview": "false",
    }
    assert context == "sendMessage"


def test_plain_dialect_omits_parse_mode(monkeypatch):
    calls = _install(monkeypatch, _DummyResponse(200, {"ok": True, "result": {"message_id": "8"}}))
    api = TelegramBotApi(_cfg(disable_preview=True))

    assert api.send_message("hi", MarkupDialect.PLAIN) == 8
    data = calls[0][1]
    assert "parse_mode" not in data
    assert data["disable_web_page_preview"] == "true"


def test_send_message_rejects_empty_text(monkeypatch):
    calls = _install(monkeypatch)
    api = TelegramBotApi(_cfg())
    with pytest.raises(ValueError):
        api.send_message("   ")
    assert calls == []


def test_rate_limit_response_raises_typed_error(monkeypatch):
    body = {"ok": False, "error_code": 429, "description": "Too Many Requests", "parameters": {"retry_after": 3}}
    _install(monkeypatch, _DummyResponse(429, body))
    api = TelegramBotApi(_cfg())

    with pytest.raises(TelegramApiError) as excinfo:
        api.send_message("hi")
    assert excinfo.value.kind is ErrorKind.RATE_LIMIT
    assert excinfo.value.retry_after == 3


def test_non_json_error_body_is_http_error(monkeypatch):
    _install(monkeypatch, _DummyResponse(500, None, text="<html>oops</html>"))
    api = TelegramBotApi(_cfg())

    with pytest.raises(TelegramApiError) as excinfo:
        api.send_message("hi")
    assert excinfo.value.kind is ErrorKind.HTTP
    assert excinfo.value.description == "HTTP error: 500"


def test_transport_failure_is_network_error(monkeypatch):
    _install(monkeypatch, requests.ConnectionError("boom for bot123:ABC"))
    api = TelegramBotApi(_cfg())

    with pytest.raises(TelegramApiError) as excinfo:
        api.send_message("hi")
    assert excinfo.value.kind is ErrorKind.NETWORK
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)
    assert "ABC" not in excinfo.value.description


def test_missing_message_id_is_generic_error(monkeypatch):
    _install(monkeypatch, _DummyResponse(200, {"ok": True, "result": {}}))
    api = TelegramBotApi(_cfg())

    with pytest.raises(TelegramApiError) as excinfo:
        api.send_message("hi")
    assert excinfo.value.kind is ErrorKind.GENERIC


def test_send_photo_and_document(monkeypatch):
    calls = _install(
        monkeypatch,
        _DummyResponse(200, {"ok": True, "result": {"message_id": 1}}),
        _DummyResponse(200, {"ok": True, "result": {"message_id": 2}}),
    )
    api = TelegramBotApi(_cfg())

    assert api.send_photo(MediaSource.by_url("https://example.com/a.png"), "cap", MarkupDialect.MARKDOWN) == 1
    assert api.send_document(MediaSource.by_file_id("FILE"), None) == 2

    photo_url, photo_data, _ = calls[0]
    assert photo_url.endswith("/sendPhoto")
    assert photo_data == {
        "chat_id": "42",
        "photo": "https://example.com/a.png",
        "caption": "cap",
        "parse_mode": "Markdown",
    }
    doc_url, doc_data, _ = calls[1]
    assert doc_url.endswith("/sendDocument")
    assert doc_data == {"chat_id": "42", "document": "FILE", "parse_mode": "HTML"}


def test_bucket_is_consumed_before_each_call(monkeypatch):
    _install(monkeypatch, _DummyResponse(200, {"ok": True, "result": {"message_id": 1}}))

    class _Bucket:
        def __init__(self):
            self.calls = 0

        def consume(self, tokens=1.0):
            self.calls += 1
            return 0.0

    bucket = _Bucket()
    TelegramBotApi(_cfg(), bucket=bucket).send_message("hi")
    assert bucket.calls == 1


def test_client_requires_credentials():
    with pytest.raises(ValueError) as excinfo:
        TelegramBotApi(_cfg(token="", chat_id=""))
    assert "TELEGRAM_BOT_TOKEN" in str(excinfo.value)
    assert "TELEGRAM_CHAT_ID" in str(excinfo.value)


def test_media_source_helpers():
    assert MediaSource.guess(" https://x.org/p.jpg ") == MediaSource(MediaKind.URL, "https://x.org/p.jpg")
    assert MediaSource.guess("AgADBAAD").kind is MediaKind.FILE_ID
    with pytest.raises(ValueError):
        MediaSource.by_file_id("  ")


def test_client_logger_name():
    assert client.logger.name == "telenotify.client"
