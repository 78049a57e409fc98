"""
Harvestman Signal Handlers.

Connects harvest publishing to matching, and committed matches to the
configured notification backend.

This module is imported in apps.py to register handlers.
"""

import logging

from django.dispatch import receiver

from harvestman.conf import get_notification_backend, get_setting
from harvestman.exceptions import HarvestError
from harvestman.signals import harvest_published, preorder_matched

logger = logging.getLogger(__name__)


@receiver(harvest_published)
def match_published_harvest(sender, harvest, user=None, **kwargs):
    """
    When a harvest is published, match it against pending preorders.

    Runs after the publishing transaction has committed. A failed run is
    logged and left for a retry (manual, admin action or match_harvests);
    publishing itself is never undone.
    """
    if not get_setting("AUTO_MATCH_ON_PUBLISH"):
        logger.info(
            f"Auto-matching disabled, harvest {harvest.pk} left for a manual run",
            extra={"harvest": harvest.pk},
        )
        return

    from harvestman.services.matching import run_matching

    try:
        run_matching(harvest.pk)
    except HarvestError as e:
        logger.error(
            f"Auto-matching failed for harvest {harvest.pk}: {e}",
            extra={"harvest": harvest.pk, "code": e.code, "retriable": e.retriable},
        )


@receiver(preorder_matched)
def forward_match_notification(sender, event, **kwargs):
    """
    Hand a committed reservation to the notification backend.

    The reservation is already committed; delivery errors are logged only.
    """
    backend = get_notification_backend()
    if backend is None:
        return

    try:
        backend.notify(event)
    except Exception as e:
        logger.error(
            f"Failed to notify match of preorder {event.preorder_id}: {e}",
            extra={"harvest": event.harvest_id, "preorder": event.preorder_id},
        )
