"""Alerter service - delivers uptime alerts by webhook and email."""
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional, Protocol

import httpx

from ..config import settings
from ..models import MonitorState
from ..utils.time_utils import utcnow
from .email_sender import EmailConfig, EmailSenderService, email_sender_service

logger = logging.getLogger(__name__)

PRIORITY = {
    MonitorState.DOWN: "urgent",
    MonitorState.DEGRADED: "high",
    MonitorState.UP: "normal",
}


@dataclass
class UptimeAlert:
    """Payload handed to the notifier on a status transition."""
    monitor_id: int
    status: MonitorState
    monitor_name: str
    monitor_url: str
    project_id: str
    error_message: Optional[str] = None
    
    @property
    def title(self) -> str:
        if self.status == MonitorState.DOWN:
            return f"{self.monitor_name} is DOWN"
        if self.status == MonitorState.UP:
            return f"{self.monitor_name} is back UP"
        return f"{self.monitor_name} is DEGRADED"
    
    @property
    def message(self) -> str:
        prefix = f'Your monitor "{self.monitor_name}" ({self.monitor_url})'
        if self.status == MonitorState.DOWN:
            error = f" Error: {self.error_message}" if self.error_message else ""
            return f"{prefix} is currently down.{error}"
        if self.status == MonitorState.UP:
            return f"{prefix} has recovered and is now operational."
        return f"{prefix} is experiencing degraded performance."
    
    @property
    def priority(self) -> str:
        return PRIORITY[MonitorState(self.status)]
    
    def to_payload(self, timestamp: Optional[datetime] = None) -> dict:
        payload = asdict(self)
        payload["status"] = MonitorState(self.status).value
        payload["title"] = self.title
        payload["message"] = self.message
        payload["priority"] = self.priority
        payload["timestamp"] = (timestamp or utcnow()).isoformat() + "Z"
        return payload


class Notifier(Protocol):
    """Anything that can deliver an uptime alert."""
    
    async def send_uptime_alert(self, alert: UptimeAlert) -> bool:
        ...


class AlerterService:
    """Default notifier: JSON webhook plus plain-text email."""
    
    def __init__(
        self,
        webhook_url: Optional[str] = None,
        email_config: Optional[EmailConfig] = None,
        email_sender: EmailSenderService = email_sender_service,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url
        self.email_config = email_config
        self.email_sender = email_sender
        self.transport = transport
    
    @classmethod
    def from_settings(cls) -> "AlerterService":
        email_config = None
        if settings.smtp_host and settings.alert_email_to:
            email_config = EmailConfig(
                host=settings.smtp_host,
                port=settings.smtp_port,
                username=settings.smtp_username or "",
                password=settings.smtp_password or "",
                use_tls=settings.smtp_use_tls,
                from_address=settings.alert_email_from or "",
                to_address=settings.alert_email_to,
            )
        return cls(webhook_url=settings.webhook_url, email_config=email_config)
    
    async def send_uptime_alert(self, alert: UptimeAlert) -> bool:
        """Deliver on every configured channel. True if any channel succeeded."""
        delivered = False
        
        if self.webhook_url:
            delivered = await self._send_webhook(self.webhook_url, alert.to_payload()) or delivered
        
        if self.email_config is not None:
            delivered = await self.email_sender.send_email(
                self.email_config,
                alert.title,
                self._build_email_body(alert),
            ) or delivered
        
        if not self.webhook_url and self.email_config is None:
            logger.info(f"Uptime alert (no channel configured): {alert.title}")
        
        return delivered
    
    def _build_email_body(self, alert: UptimeAlert) -> str:
        lines = [
            alert.title,
            "=" * 40,
            "",
            alert.message,
            "",
            f"Monitor: {alert.monitor_name}",
            f"URL: {alert.monitor_url}",
            f"Status: {MonitorState(alert.status).value.upper()}",
            f"Time: {utcnow().strftime('%Y-%m-%d %H:%M:%S UTC')}",
        ]
        if alert.error_message:
            lines.append(f"Error: {alert.error_message}")
        lines.extend(["", f"Dashboard: {settings.dashboard_url.rstrip('/')}/uptime"])
        return "\n".join(lines)
    
    async def _send_webhook(self, url: str, payload: dict) -> bool:
        """Send a webhook POST request."""
        try:
            async with httpx.AsyncClient(timeout=10, transport=self.transport) as client:
                response = await client.post(url, json=payload)
            if response.status_code < 400:
                logger.info(f"Webhook sent: {payload['status']} for {payload['monitor_name']}")
                return True
            logger.warning(f"Webhook returned {response.status_code}")
            return False
        except httpx.HTTPError as e:
            logger.error(f"Failed to send webhook: {e}")
            return False
