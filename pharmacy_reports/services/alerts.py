from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Protocol

from ..config import get_config
from ..data.interface import DataAccess
from ..data.models import AlertResult
from ..logging import get_logger
from .dashboard import DashboardMetrics
from .periods import MONTHS, local_now

# single GSM-7 segment
SMS_SEGMENT_LENGTH = 160


class Notifier(Protocol):
    """Message transport (SMS gateway, mailer, ...)."""

    def send(self, recipient: str, text: str) -> bool:
        ...


class AlertLog(Protocol):
    """Record of delivered alerts, used to send at most one per day."""

    def sent_today(self, now: datetime) -> bool:
        ...

    def record(self, now: datetime) -> None:
        ...


class InventoryAlertJob:
    """
    Daily low-stock / expiry alert.
    - Counts come from the dashboard tiles (low stock at the configured
      threshold, batches expiring within the warn window).
    - The host schedules ``run()``; the job itself keeps no state.
    """

    def __init__(
        self,
        store: DataAccess,
        notifier: Notifier,
        alert_log: AlertLog,
        *,
        recipient: Optional[str] = None,
        shop_name: Optional[str] = None,
        timezone: Optional[str] = None,
    ) -> None:
        config = get_config()
        self.notifier = notifier
        self.alert_log = alert_log
        self.recipient = recipient or config.alert_recipient
        self.shop_name = shop_name or config.alert_shop_name
        self.timezone = timezone or config.reporting_timezone
        self.metrics = DashboardMetrics(store, timezone=self.timezone)
        self.logger = get_logger(__name__)

    def compose_message(self, low_stock: int, expiring: int, now: datetime) -> str:
        date_str = f"{MONTHS[now.month - 1]} {now.day}, {now.year}"
        return (
            f"{self.shop_name} ALERT\n"
            f"Low Stock: {low_stock} products\n"
            f"Expiring: {expiring} items\n"
            f"{date_str}"
        )

    def run(self, force: bool = False, now: Any = None) -> AlertResult:
        """Send today's alert; ``force`` resends and sends even when nothing is critical."""
        if not self.recipient:
            self.logger.warning("No alert recipient configured; alert not sent")
            return AlertResult(sent=False, reason="recipient_missing")

        now = local_now(now, self.timezone)
        if not force and self.alert_log.sent_today(now):
            self.logger.info("Alert already sent today; skipping")
            return AlertResult(sent=False, reason="already_sent_today")

        low_stock = self.metrics.low_stock_count().count
        expiring = self.metrics.expiring_counts(now=now).total

        if not force and low_stock == 0 and expiring == 0:
            self.logger.info("No critical inventory items; alert not sent")
            return AlertResult(sent=False, reason="no_critical_items", low_stock=0, expiring=0)

        text = self.compose_message(low_stock, expiring, now)
        if len(text) > SMS_SEGMENT_LENGTH:
            self.logger.warning(f"Alert text is {len(text)} characters, over one {SMS_SEGMENT_LENGTH}-character segment")

        sent = bool(self.notifier.send(self.recipient, text))
        if sent:
            self.alert_log.record(now)
            self.logger.info(f"Alert sent: {low_stock} low stock, {expiring} expiring")
        else:
            self.logger.error("Alert delivery failed")

        return AlertResult(
            sent=sent,
            reason=None if sent else "send_failed",
            low_stock=low_stock,
            expiring=expiring,
            message=text,
        )
