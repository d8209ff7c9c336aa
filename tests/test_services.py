"""Tests for the external service clients."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable

import httpx
import pytest

from zap_assistant.core.config import (
    OpenAISettings,
    PortfolioSettings,
    PositionSettings,
    StorageSettings,
    TodoistSettings,
    ZApiSettings,
)
from zap_assistant.core.errors import (
    ExternalServiceError,
    RateLimitError,
    ValidationError,
)
from zap_assistant.services import (
    KVStorageService,
    OpenAIService,
    PortfolioService,
    TodoistService,
    ZApiMessagingService,
)
from zap_assistant.services.http import request_json
from zap_assistant.services.portfolio import format_report

LOGGER = logging.getLogger("zap_assistant.tests")

Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler, base_url: str = "") -> httpx.Client:
    return httpx.Client(base_url=base_url, transport=httpx.MockTransport(handler))


def _zapi_settings(**overrides: object) -> ZApiSettings:
    values: dict[str, object] = {
        "instance_id": "inst",
        "instance_token": "tok",
        "client_token": "client",
    }
    values.update(overrides)
    return ZApiSettings.model_validate(values)


def test_request_json_retries_server_errors() -> None:
    responses = iter([httpx.Response(503), httpx.Response(200, json={"ok": True})])
    sleeps: list[float] = []

    client = _client(lambda request: next(responses), "https://example.test")
    payload = request_json(client, "GET", "/thing", service="example", sleep=sleeps.append)

    assert payload == {"ok": True}
    assert sleeps == [2]


def test_request_json_does_not_retry_client_errors() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(404)

    client = _client(handler, "https://example.test")

    with pytest.raises(ExternalServiceError) as excinfo:
        request_json(client, "GET", "/thing", service="example", sleep=lambda _: None)

    assert len(calls) == 1
    assert excinfo.value.service == "example"
    assert "HTTP 404" in str(excinfo.value)


def test_request_json_gives_up_after_attempts() -> None:
    sleeps: list[float] = []
    client = _client(lambda request: httpx.Response(500), "https://example.test")

    with pytest.raises(ExternalServiceError):
        request_json(
            client, "GET", "/thing", service="example", attempts=2, sleep=sleeps.append
        )

    assert sleeps == [2]


def test_request_json_empty_body_is_none() -> None:
    client = _client(lambda request: httpx.Response(204), "https://example.test")

    assert request_json(client, "DELETE", "/thing", service="example") is None


def test_messaging_sends_text() -> None:
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"messageId": "abc"})

    service = ZApiMessagingService(_zapi_settings(), LOGGER, client=_client(handler))
    result = service.send_text("5511999999999", "Olá")

    assert result == {"messageId": "abc"}
    request = captured[0]
    assert str(request.url) == "https://api.z-api.io/instances/inst/token/tok/send-text"
    assert request.headers["Client-Token"] == "client"
    assert json.loads(request.content) == {"phone": "5511999999999", "message": "Olá"}


def test_messaging_requires_credentials() -> None:
    with pytest.raises(ValidationError):
        ZApiMessagingService(_zapi_settings(client_token=None), LOGGER)


def test_messaging_validates_input() -> None:
    service = ZApiMessagingService(
        _zapi_settings(), LOGGER, client=_client(lambda request: httpx.Response(200))
    )

    with pytest.raises(ValidationError):
        service.send_text("not-a-number", "hi")
    with pytest.raises(ValidationError):
        service.send_text("5511999999999", "   ")


def test_messaging_rate_limit() -> None:
    service = ZApiMessagingService(
        _zapi_settings(rate_limit_per_minute=1),
        LOGGER,
        client=_client(lambda request: httpx.Response(200, json={})),
    )

    service.send_text("5511999999999", "first")
    with pytest.raises(RateLimitError) as excinfo:
        service.send_text("5511999999999", "second")

    assert excinfo.value.retryable


def test_messaging_health_reflects_status_endpoint() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path.endswith("/status")
        return httpx.Response(503)

    service = ZApiMessagingService(_zapi_settings(), LOGGER, client=_client(handler))
    result = service.check_health()

    assert not result.healthy
    assert result.detail == "HTTP 503"


def test_ai_completion() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["messages"][0] == {"role": "system", "content": "Be brief"}
        return httpx.Response(
            200, json={"choices": [{"message": {"content": "  Hello there  "}}]}
        )

    settings = OpenAISettings(api_key="sk-test")
    service = OpenAIService(
        settings, LOGGER, client=_client(handler, settings.base_url)
    )

    assert service.complete("Hi", system="Be brief") == "Hello there"
    assert service.provider_id == "openai:gpt-4-turbo-preview"


def test_ai_transcription_and_malformed_reply() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/audio/transcriptions"):
            return httpx.Response(200, json={"text": " transcribed "})
        return httpx.Response(200, json={"choices": []})

    settings = OpenAISettings(api_key="sk-test")
    service = OpenAIService(
        settings, LOGGER, client=_client(handler, settings.base_url)
    )

    assert service.transcribe(b"\x00\x01") == "transcribed"
    with pytest.raises(ExternalServiceError):
        service.complete("Hi")
    with pytest.raises(ValidationError):
        service.transcribe(b"")


def test_todoist_clamps_priority() -> None:
    bodies: list[dict[str, object]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"id": "42", "content": "Buy milk"})

    settings = TodoistSettings(api_token="todo")
    service = TodoistService(settings, LOGGER, client=_client(handler, settings.base_url))

    task = service.create_task(" Buy milk ", priority=9, due_string="tomorrow")

    assert task["id"] == "42"
    assert bodies == [{"content": "Buy milk", "due_string": "tomorrow", "priority": 4}]


class RecordingMessenger:
    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send_text(self, phone: str, message: str) -> dict[str, object]:
        self.sent.append((phone, message))
        return {}


def _quote_handler(request: httpx.Request) -> httpx.Response:
    assert request.url.path == "/api/quote/list"
    assert request.url.params["token"] == "brapi"
    return httpx.Response(
        200,
        json={
            "stocks": [
                {"stock": "PETR4", "close": 35.0},
                {"stock": "VALE3", "close": 60.0},
            ]
        },
    )


def test_portfolio_valuation_and_report() -> None:
    settings = PortfolioSettings(
        brapi_token="brapi",
        whatsapp_number="5511999999999",
        positions=[PositionSettings(ticker="PETR4", shares=100, avg_price=30.0)],
    )
    messenger = RecordingMessenger()
    service = PortfolioService(
        settings,
        LOGGER,
        messenger,  # type: ignore[arg-type]
        client=_client(_quote_handler, settings.base_url),
    )

    valuation = service.valuate()
    assert valuation.current_value == pytest.approx(3500.0)
    assert valuation.total_pnl == pytest.approx(500.0)
    assert valuation.total_pnl_percent == pytest.approx(16.6667, rel=1e-3)

    report = service.send_report()
    assert "PETR4: 100 x R$ 35.00 = R$ 3,500.00" in report
    assert "P&L: +R$ 500.00 (+16.67%)" in report
    assert messenger.sent == [("5511999999999", report)]


def test_portfolio_missing_ticker_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    settings = PortfolioSettings(brapi_token="brapi")
    service = PortfolioService(
        settings, LOGGER, client=_client(_quote_handler, settings.base_url)
    )

    with caplog.at_level(logging.WARNING, logger="zap_assistant.tests"):
        prices = service.fetch_prices(["PETR4", "ITUB4"])

    assert prices == {"PETR4": 35.0}
    assert "ITUB4" in caplog.text
    assert not service.can_send_reports


def test_empty_portfolio_report() -> None:
    settings = PortfolioSettings(brapi_token="brapi")
    service = PortfolioService(
        settings, LOGGER, client=_client(lambda request: httpx.Response(500))
    )

    assert format_report(service.valuate()) == "📊 Portfolio\nNo positions configured."


def test_storage_namespaces_and_expiry() -> None:
    storage = KVStorageService(StorageSettings(), LOGGER)

    storage.put("user:1", {"name": "Ana"})
    storage.put("user:1", "other", namespace="sessions")
    storage.put("stale", "old", ttl_seconds=-1)

    assert storage.get("user:1") == {"name": "Ana"}
    assert storage.get("user:1", namespace="sessions") == "other"
    assert storage.get("stale") is None
    assert storage.list_keys("user:") == ["user:1"]
    assert storage.delete("user:1")
    assert not storage.delete("user:1")


def test_storage_cleanup_and_health() -> None:
    storage = KVStorageService(StorageSettings(cache_enabled=False), LOGGER)

    storage.put("keep", 1)
    storage.put("drop", 2, ttl_seconds=-1)

    assert storage.cleanup_expired() == 1
    assert storage.size() == 1
    result = storage.check_health()
    assert result.healthy
    assert result.detail == "1 entries"


def test_portfolio_report_without_number_is_not_sent() -> None:
    settings = PortfolioSettings(
        brapi_token="brapi",
        positions=[PositionSettings(ticker="VALE3", shares=10, avg_price=50.0)],
    )
    messenger = RecordingMessenger()
    service = PortfolioService(
        settings,
        LOGGER,
        messenger,  # type: ignore[arg-type]
        client=_client(_quote_handler, settings.base_url),
    )

    report = service.send_report()

    assert "VALE3: 10 x R$ 60.00 = R$ 600.00" in report
    assert messenger.sent == []
    assert not service.can_send_reports
