"""
Noop Notification Backend -- drops every match notification.

Use this adapter for development or testing when no delivery channel
is available.

Configuration:
    HARVESTMAN = {
        "NOTIFICATION_BACKEND": "harvestman.adapters.noop.NoopNotificationBackend",
    }
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from harvestman.results import MatchEvent


class NoopNotificationBackend:
    """No-operation implementation of the NotificationBackend protocol."""

    def notify(self, event: MatchEvent) -> None:
        return None
