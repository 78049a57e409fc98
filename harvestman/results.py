"""
Harvestman Result Types.

Structured results for harvest matching runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from harvestman.models import Harvest, Preorder
    from harvestman.services.allocation import SkippedDemand


@dataclass(frozen=True)
class MatchEvent:
    """
    One preorder reserved against one harvest.

    Built inside the matching transaction, delivered only after commit.
    """

    preorder_id: int
    consumer_id: int
    seller_id: int | None
    sku: str
    variation_type: str
    unit_key: str
    requested_quantity: Decimal
    allocated_qty: Decimal
    partial: bool
    harvest_id: int
    harvest_date: datetime
    matched_at: datetime

    @classmethod
    def from_reservation(cls, preorder: Preorder, harvest: Harvest, partial: bool) -> MatchEvent:
        return cls(
            preorder_id=preorder.pk,
            consumer_id=preorder.consumer_id,
            seller_id=preorder.seller_id or harvest.seller_id,
            sku=preorder.sku,
            variation_type=preorder.variation_type,
            unit_key=preorder.unit_key,
            requested_quantity=preorder.quantity,
            allocated_qty=preorder.allocated_qty,
            partial=partial,
            harvest_id=harvest.pk,
            harvest_date=harvest.harvested_at,
            matched_at=preorder.matched_at,
        )

    def as_payload(self) -> dict:
        """JSON-friendly dict for notification channels."""
        return {
            "preorder_id": self.preorder_id,
            "consumer_id": self.consumer_id,
            "seller_id": self.seller_id,
            "product_id": self.sku,
            "variation_type": self.variation_type,
            "unit_key": self.unit_key,
            "quantity": str(self.requested_quantity),
            "allocated_qty": str(self.allocated_qty),
            "partial": self.partial,
            "harvest_id": self.harvest_id,
            "harvest_date": self.harvest_date.isoformat() if self.harvest_date else None,
            "matched_at": self.matched_at.isoformat() if self.matched_at else None,
        }


@dataclass
class MatchResult:
    """
    Outcome of one matching run.

    reserved: preorders moved to RESERVED by this run (FIFO order)
    events: one MatchEvent per reserved preorder
    skipped: preorders left pending because of malformed quantities
    """

    harvest: Harvest
    reserved: list[Preorder] = field(default_factory=list)
    events: list[MatchEvent] = field(default_factory=list)
    skipped: list[SkippedDemand] = field(default_factory=list)

    @property
    def matched_count(self) -> int:
        return len(self.reserved)

    @property
    def allocated_weight_kg(self) -> Decimal:
        return sum((e.allocated_qty for e in self.events), Decimal("0"))

    @property
    def has_partial(self) -> bool:
        return any(e.partial for e in self.events)
