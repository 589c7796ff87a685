# asset_importer/core/notify/webhook.py
"""
Best-effort webhook delivery for finished import jobs.

Posts a JSON payload to an external endpoint with a small retry budget.
Delivery problems are logged and reported through the return value; they
are never raised.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ...config import Settings, settings

logger = logging.getLogger("asset_importer.notify.webhook")


class WebhookNotifier:
    """
    Call an external webhook endpoint.

    Example:
        delivered = await notifier.notify(
            "https://shop.example.com/hooks/import",
            {"job_id": "...", "status": "completed"},
        )
    """

    def __init__(self, cfg: Settings = settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = cfg.webhook_timeout
        self.retry_count = cfg.webhook_retry_count
        self._transport = transport

    async def notify(self, url: str, payload: Dict[str, Any]) -> bool:
        """POST ``payload`` to ``url``. Returns True once a 2xx response is received."""
        headers = {"Content-Type": "application/json"}

        last_error = None
        for attempt in range(self.retry_count + 1):
            try:
                async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                    response = await client.post(url, headers=headers, json=payload)

                if response.is_success:
                    logger.info(f"Webhook delivered to {url}: {response.status_code}")
                    return True

                last_error = f"HTTP {response.status_code}: {response.text[:200]}"
            except httpx.TimeoutException as e:
                last_error = f"Timeout: {e}"
            except httpx.HTTPError as e:
                last_error = str(e)

            if attempt < self.retry_count:
                logger.warning(f"Webhook failed (attempt {attempt + 1}): {last_error}")

        logger.error(f"Webhook to {url} failed after {self.retry_count + 1} attempts: {last_error}")
        return False
