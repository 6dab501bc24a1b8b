"""Alerting helpers for execution webhook notifications."""

from __future__ import annotations

import json
import logging
import socket
import threading
import urllib.error
import urllib.request
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.exceptions import AlertDeliveryError
from core.models import ExecutionResult

logger = logging.getLogger(__name__)

ALERT_TYPE = "dca_execution"


@dataclass
class AlertConfig:
    enabled: bool
    webhook_url: Optional[str]
    on_success: bool = False
    on_failure: bool = True
    dry_run: bool = False
    timeout: float = 5.0


class AlertService:
    """
    Fire-and-forget webhook notifications for execution results.

    Each delivery runs on its own daemon thread so a slow webhook never holds
    up the next cycle. Delivery order relative to cycle completion is not
    guaranteed, and delivery failures are logged and swallowed.
    """

    def __init__(self, config: AlertConfig) -> None:
        self._config = config
        self._enabled = bool(config.enabled and config.webhook_url)
        if config.enabled and not config.webhook_url:
            logger.warning("Alerting enabled but no webhook URL set; disabling alerts")
            self._enabled = False

    @classmethod
    def from_config(cls, alerts_config) -> "AlertService":
        """Build from an AlertsConfig model (or None, which disables alerts)."""
        if alerts_config is None:
            return cls(AlertConfig(enabled=False, webhook_url=None))
        return cls(
            AlertConfig(
                enabled=True,
                webhook_url=alerts_config.webhook_url,
                on_success=alerts_config.on_success,
                on_failure=alerts_config.on_failure,
                dry_run=alerts_config.dry_run,
                timeout=alerts_config.timeout_seconds,
            )
        )

    def is_enabled(self) -> bool:
        return self._enabled

    def wants(self, result: ExecutionResult) -> bool:
        if not self._enabled:
            return False
        return self._config.on_success if result.success else self._config.on_failure

    def notify_execution(self, result: ExecutionResult) -> Optional[threading.Thread]:
        """Dispatch an alert for one result. Returns the delivery thread, if any."""
        if not self.wants(result):
            return None

        payload = self.build_payload(result)
        thread = threading.Thread(
            target=self._deliver_quietly,
            args=(payload,),
            name=f"alert-{result.account_id[:10]}",
            daemon=True,
        )
        thread.start()
        return thread

    def _deliver_quietly(self, payload: Dict[str, Any]) -> None:
        try:
            self.deliver(payload)
        except AlertDeliveryError as exc:
            logger.warning("Failed to send alert for %s: %s", payload.get("accountId"), exc)
        except Exception as exc:  # pragma: no cover - a broken alert must never surface
            logger.warning("Unexpected alert failure for %s: %s", payload.get("accountId"), exc, exc_info=True)

    def deliver(self, payload: Dict[str, Any]) -> None:
        """POST the payload to the webhook. Raises AlertDeliveryError on failure."""
        if self._config.dry_run:
            logger.info("[ALERT:%s] %s", payload.get("status"), json.dumps(payload, sort_keys=True))
            return

        webhook_url = self._config.webhook_url
        if not webhook_url:
            raise AlertDeliveryError("no webhook URL configured")

        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(
            webhook_url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        try:
            with urllib.request.urlopen(request, timeout=self._config.timeout) as response:
                if response.status >= 400:
                    raise AlertDeliveryError(f"webhook returned HTTP {response.status}")
        except (urllib.error.URLError, socket.timeout, OSError) as exc:
            raise AlertDeliveryError(str(exc)) from exc

    @staticmethod
    def build_payload(result: ExecutionResult) -> Dict[str, Any]:
        timestamp = datetime.fromtimestamp(result.timestamp_ms / 1000.0, tz=timezone.utc)
        return {
            "type": ALERT_TYPE,
            "status": "success" if result.success else "failure",
            "accountId": result.account_id,
            "txDigest": result.tx_digest,
            "error": result.error,
            "timestamp": timestamp.isoformat().replace("+00:00", "Z"),
        }


__all__ = ["AlertService", "AlertConfig"]
