"""
Webhook Notifier

Posts order notifications to an HTTP endpoint. Supports:
- Custom headers
- Request signing (HMAC)
"""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from .base import BaseNotifier, NotificationResult

logger = logging.getLogger(__name__)


@dataclass
class WebhookConfig:
    """Webhook notifier configuration"""
    url: str = ""
    headers: Dict[str, str] = field(default_factory=dict)

    # HMAC signing
    hmac_secret: Optional[str] = None
    hmac_header: str = "X-Signature"
    hmac_algorithm: str = "sha256"

    timeout_seconds: float = 10.0
    verify_ssl: bool = True


class WebhookNotifier(BaseNotifier):
    """
    Notifier delivering to a webhook.

    Usage:
        notifier = WebhookNotifier(WebhookConfig(
            url="https://hooks.example.com/orders",
            hmac_secret="secret_key"
        ))
        await notifier.notify_success(item_id, item, order_id, result)
    """

    def __init__(self, config: WebhookConfig, client: Optional[httpx.AsyncClient] = None):
        if not config.url:
            raise ValueError("Webhook notifier requires a URL")
        self.config = config
        self._client = client

    async def send(self, payload: Dict[str, Any]) -> NotificationResult:
        body = json.dumps(payload, sort_keys=True).encode()
        headers = self._build_headers(body)

        if self._client is not None:
            response = await self._client.post(self.config.url, content=body, headers=headers,
                                               timeout=self.config.timeout_seconds)
        else:
            async with httpx.AsyncClient(timeout=self.config.timeout_seconds,
                                         verify=self.config.verify_ssl) as client:
                response = await client.post(self.config.url, content=body, headers=headers)

        success = 200 <= response.status_code < 300
        if not success:
            logger.warning(f"Webhook {self.config.url} answered HTTP {response.status_code}")

        return NotificationResult(
            success=success,
            status_code=response.status_code,
            error=None if success else f"HTTP {response.status_code}",
            delivered_at=datetime.now(timezone.utc) if success else None,
        )

    def _build_headers(self, body: bytes) -> Dict[str, str]:
        """Build request headers"""
        headers = {'Content-Type': 'application/json', **self.config.headers}
        if self.config.hmac_secret:
            headers[self.config.hmac_header] = self.sign(body)
        return headers

    def sign(self, body: bytes) -> str:
        """Sign a request body with HMAC"""
        algorithm = hashlib.sha512 if self.config.hmac_algorithm == 'sha512' else hashlib.sha256
        signature = hmac.new(self.config.hmac_secret.encode(), body, algorithm).hexdigest()
        return f"{self.config.hmac_algorithm}={signature}"
