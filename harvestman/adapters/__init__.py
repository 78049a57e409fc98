"""
Harvestman Adapters.

Implementations of protocols for external systems.
Select one with HARVESTMAN["NOTIFICATION_BACKEND"].
"""

from harvestman.adapters.log import LoggingNotificationBackend
from harvestman.adapters.noop import NoopNotificationBackend

__all__ = [
    "LoggingNotificationBackend",
    "NoopNotificationBackend",
]
