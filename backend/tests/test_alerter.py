"""Tests for alert copy and delivery channels."""
import json

import httpx
import pytest

from uptime_engine.models import MonitorState
from uptime_engine.services.alerter import AlerterService, UptimeAlert
from uptime_engine.services.email_sender import EmailConfig, EmailSenderService


def make_alert(status=MonitorState.DOWN, error_message="Request timed out") -> UptimeAlert:
    return UptimeAlert(
        monitor_id=7,
        status=status,
        monitor_name="API",
        monitor_url="https://api.example.com",
        project_id="proj-1",
        error_message=error_message,
    )


class FakeEmailSender:
    def __init__(self, result: bool = True):
        self.result = result
        self.sent = []
    
    async def send_email(self, config, subject, body):
        self.sent.append((config, subject, body))
        return self.result


EMAIL = EmailConfig(host="smtp.example.com", port=587, to_address="ops@example.com")


def test_down_alert_copy():
    alert = make_alert()
    assert alert.title == "API is DOWN"
    assert alert.message == 'Your monitor "API" (https://api.example.com) is currently down. Error: Request timed out'
    assert alert.priority == "urgent"


def test_up_and_degraded_copy():
    up = make_alert(MonitorState.UP, None)
    degraded = make_alert(MonitorState.DEGRADED, None)
    assert up.title == "API is back UP"
    assert "recovered" in up.message
    assert up.priority == "normal"
    assert degraded.title == "API is DEGRADED"
    assert degraded.priority == "high"


def test_payload_is_json_ready():
    payload = make_alert().to_payload()
    assert payload["status"] == "down"
    assert payload["monitor_id"] == 7
    assert payload["timestamp"].endswith("Z")
    json.dumps(payload)


@pytest.mark.asyncio
async def test_webhook_delivery():
    received = []
    
    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(204)
    
    alerter = AlerterService(webhook_url="https://hooks.example.com/uptime", transport=httpx.MockTransport(handler))
    
    assert await alerter.send_uptime_alert(make_alert()) is True
    assert received[0]["title"] == "API is DOWN"
    assert received[0]["error_message"] == "Request timed out"


@pytest.mark.asyncio
async def test_webhook_error_status_reports_failure():
    alerter = AlerterService(
        webhook_url="https://hooks.example.com/uptime",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    assert await alerter.send_uptime_alert(make_alert()) is False


@pytest.mark.asyncio
async def test_webhook_connection_error_reports_failure():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)
    
    alerter = AlerterService(webhook_url="https://hooks.example.com/uptime", transport=httpx.MockTransport(handler))
    assert await alerter.send_uptime_alert(make_alert()) is False


@pytest.mark.asyncio
async def test_no_channel_configured():
    assert await AlerterService().send_uptime_alert(make_alert()) is False


@pytest.mark.asyncio
async def test_email_delivery():
    sender = FakeEmailSender()
    alerter = AlerterService(email_config=EMAIL, email_sender=sender)
    
    assert await alerter.send_uptime_alert(make_alert(MonitorState.UP, None)) is True
    
    _, subject, body = sender.sent[0]
    assert subject == "API is back UP"
    assert "URL: https://api.example.com" in body
    assert "Status: UP" in body


@pytest.mark.asyncio
async def test_any_channel_success_counts():
    sender = FakeEmailSender(result=True)
    alerter = AlerterService(
        webhook_url="https://hooks.example.com/uptime",
        email_config=EMAIL,
        email_sender=sender,
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    assert await alerter.send_uptime_alert(make_alert()) is True
    assert len(sender.sent) == 1


@pytest.mark.asyncio
async def test_email_sender_skips_unconfigured():
    config = EmailConfig(host="", port=25)
    assert await EmailSenderService().send_email(config, "subject", "body") is False


def test_parse_recipients():
    sender = EmailSenderService()
    assert sender._parse_recipients("a@example.com, b@example.com,,") == ["a@example.com", "b@example.com"]
    assert sender._parse_recipients("") == []
