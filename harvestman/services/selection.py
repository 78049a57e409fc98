"""
Preorder selection for a harvest.

Eligible = same sku, variation_type and unit_key as the harvest, status
PENDING and not yet linked to any harvest. Ordered FIFO by created_at, with
the primary key as tie-breaker so the order is total and reproducible.
"""

from django.db.models import QuerySet

from harvestman.models import Harvest, Preorder


def eligible_preorders(
    harvest: Harvest,
    *,
    lock: bool = False,
    using: str | None = None,
) -> QuerySet:
    """
    Queryset of preorders the harvest may satisfy, oldest first.

    Args:
        harvest: The supply batch being matched
        lock: If True, rows are locked (SELECT FOR UPDATE); requires an
            open transaction
        using: Database alias
    """
    qs = Preorder.objects.pending().for_harvest(harvest).fifo()
    if using:
        qs = qs.using(using)
    if lock:
        qs = qs.select_for_update()
    return qs


def select_eligible_preorders(harvest: Harvest, **kwargs) -> list[Preorder]:
    """Evaluate eligible_preorders(); empty list when nothing matches."""
    return list(eligible_preorders(harvest, **kwargs))
