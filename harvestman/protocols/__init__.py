"""
Harvestman Protocols.

Defines interfaces for external integrations.
"""

from harvestman.protocols.notification import NotificationBackend

__all__ = [
    "NotificationBackend",
]
