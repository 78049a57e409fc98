"""
Logging Notification Backend -- writes each match notification to the log.

Configuration:
    HARVESTMAN = {
        "NOTIFICATION_BACKEND": "harvestman.adapters.log.LoggingNotificationBackend",
    }

Records go to the "harvestman.notifications" logger at INFO, with the
event payload in `extra`, so any handler (file, syslog, JSON formatter)
can pick them up.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from harvestman.results import MatchEvent

logger = logging.getLogger("harvestman.notifications")


class LoggingNotificationBackend:
    """NotificationBackend that logs instead of delivering."""

    def notify(self, event: MatchEvent) -> None:
        kind = "partially" if event.partial else "fully"
        logger.info(
            f"Preorder {event.preorder_id} {kind} matched to harvest {event.harvest_id} "
            f"({event.allocated_qty} kg)",
            extra={"match_event": event.as_payload()},
        )
