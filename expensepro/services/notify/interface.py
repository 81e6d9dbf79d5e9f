"""
Notifier Interface

The engine decides THAT an alert fires. How it is shown (desktop
notification, push message, log line) is up to the notifier.

Delivery is fire-and-forget: the engine never consumes an acknowledgment
and a failing notifier never fails the engine operation that triggered it.
"""

from abc import ABC, abstractmethod

from expensepro.logs import get_logger
from expensepro.models.alerts import Alert


class Notifier(ABC):
    """Abstract alert sink."""

    @abstractmethod
    async def notify(self, title: str, body: str, dedupe_key: str) -> None:
        """
        Deliver one alert.

        Args:
            title: Short headline
            body: Human-readable detail
            dedupe_key: Alerts sharing a key replace rather than stack
        """
        pass


class LogNotifier(Notifier):
    """Notifier that writes alerts to the structured log."""

    def __init__(self):
        self._logger = get_logger(__name__)

    async def notify(self, title: str, body: str, dedupe_key: str) -> None:
        self._logger.warning("alert", title=title, body=body, dedupe_key=dedupe_key)


async def deliver(notifier: Notifier, alert: Alert) -> None:
    """Send an alert, logging (never raising) delivery failures."""
    try:
        await notifier.notify(alert.title, alert.body, alert.dedupe_key)
    except Exception as e:
        get_logger(__name__).error(
            "alert_delivery_failed",
            kind=alert.kind.value,
            error=str(e),
        )
