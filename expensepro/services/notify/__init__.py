"""Alert notification package."""

from expensepro.services.notify.interface import LogNotifier, Notifier, deliver

__all__ = ["LogNotifier", "Notifier", "deliver"]
