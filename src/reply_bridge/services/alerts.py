from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Optional

import httpx

from reply_bridge.services.retry import with_retry

if TYPE_CHECKING:
    from reply_bridge.config import Settings

logger = logging.getLogger(__name__)


class AlertService:
    def __init__(
        self,
        settings: "Settings",
        *,
        client_factory: Optional[Callable[[], httpx.Client]] = None,
    ) -> None:
        self.settings = settings
        self._client_factory = client_factory or (lambda: httpx.Client(timeout=20.0))

    def notify(
        self,
        *,
        alert_type: str,
        summary: str,
        context: dict[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        payload = {
            "event": "bridge_alert",
            "alert_type": alert_type,
            "summary": summary,
            "context": context or {},
            "error": repr(error) if error else "",
        }
        logger.error("Bridge alert", extra=payload)
        self._send_webhook(payload)

    def _send_webhook(self, payload: dict[str, Any]) -> None:
        if not self.settings.alert_webhook_url:
            return

        def _post() -> httpx.Response:
            with self._client_factory() as client:
                return client.post(self.settings.alert_webhook_url, json=payload)

        try:
            with_retry(
                operation="alert_webhook_post",
                call=_post,
                max_attempts=self.settings.api_retry_max_attempts,
                base_delay_seconds=self.settings.api_retry_base_delay_seconds,
                max_delay_seconds=self.settings.api_retry_max_delay_seconds,
                logger=logger,
            )
        except Exception as exc:
            logger.error(
                "Failed to deliver alert webhook",
                extra={"event": "alert_webhook_delivery_failed", "error": repr(exc)},
            )
