"""
Notification Protocol -- Interface for match notifications.

Harvestman defines this protocol. External systems (push, e-mail, websocket
broadcasters) implement it to tell consumers and sellers about reservations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from harvestman.results import MatchEvent


@runtime_checkable
class NotificationBackend(Protocol):
    """
    Protocol for delivering match notifications.

    notify() is called once per reserved preorder, only after the matching
    transaction has committed. Implementations may raise; failures are
    logged by the caller and never undo the reservation.
    """

    def notify(self, event: MatchEvent) -> None:
        """
        Deliver one match notification.

        Args:
            event: The committed reservation (see MatchEvent.as_payload())
        """
        ...
