"""
FIFO allocation of a harvest's available weight to preorders.

Pure computation: takes immutable snapshots and returns an AllocationPlan.
Nothing here touches the database, so the algorithm can be exercised
without Django models.

Rules:
    - Preorders are consumed in the order given (the selector sorts them).
    - required = quantity * unit_weight_kg, quantized to the weight quantum.
    - required <= remaining + tolerance  →  full allocation.
    - otherwise the preorder takes everything left (partial) and the pass
      stops, since nothing remains for later preorders.
    - Preorders with a non-positive or missing quantity/unit weight are
      skipped and stay pending; they do not block the queue.

Usage:
    plan = plan_allocation(
        Decimal("10"),
        [DemandSnapshot(preorder_id=1, quantity=Decimal("2"), unit_weight_kg=Decimal("1"))],
    )
    plan.remaining  # Decimal("8.0000")
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable

WEIGHT_QUANTUM = Decimal("0.0001")
DEFAULT_TOLERANCE = Decimal("0.0001")

ZERO = Decimal("0")

# Skip reasons
INVALID_QUANTITY = "INVALID_QUANTITY"
INVALID_UNIT_WEIGHT = "INVALID_UNIT_WEIGHT"
DUPLICATE_PREORDER = "DUPLICATE_PREORDER"


# ══════════════════════════════════════════════════════════════
# DATA TYPES
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class DemandSnapshot:
    """Read-only view of a pending preorder at selection time."""

    preorder_id: int
    quantity: Decimal | None
    unit_weight_kg: Decimal | None
    version: int = 1

    @classmethod
    def from_preorder(cls, preorder) -> DemandSnapshot:
        return cls(
            preorder_id=preorder.pk,
            quantity=preorder.quantity,
            unit_weight_kg=preorder.unit_weight_kg,
            version=preorder.version,
        )


@dataclass(frozen=True)
class AllocationDecision:
    """Weight assigned to one preorder."""

    preorder_id: int
    required: Decimal
    allocated: Decimal
    is_partial: bool
    version: int = 1

    @property
    def shortfall(self) -> Decimal:
        return max(ZERO, self.required - self.allocated)


@dataclass(frozen=True)
class SkippedDemand:
    """Preorder left pending because its data cannot be allocated."""

    preorder_id: int
    reason: str


@dataclass(frozen=True)
class AllocationPlan:
    """
    Result of one allocation pass.

    available_before - remaining == sum(decision.allocated)
    """

    available_before: Decimal
    remaining: Decimal
    decisions: tuple[AllocationDecision, ...] = field(default_factory=tuple)
    skipped: tuple[SkippedDemand, ...] = field(default_factory=tuple)

    @property
    def allocated_total(self) -> Decimal:
        return self.available_before - self.remaining

    @property
    def is_empty(self) -> bool:
        return not self.decisions

    @property
    def has_partial(self) -> bool:
        return any(d.is_partial for d in self.decisions)


# ══════════════════════════════════════════════════════════════
# ALGORITHM
# ══════════════════════════════════════════════════════════════


def required_weight(
    quantity: Decimal | int | float,
    unit_weight_kg: Decimal | int | float,
    quantum: Decimal = WEIGHT_QUANTUM,
) -> Decimal:
    """quantity * unit_weight_kg, rounded half-up to the weight quantum."""
    product = Decimal(str(quantity)) * Decimal(str(unit_weight_kg))
    return product.quantize(quantum, rounding=ROUND_HALF_UP)


def _invalid_reason(demand: DemandSnapshot) -> str | None:
    try:
        if demand.quantity is None or Decimal(str(demand.quantity)) <= 0:
            return INVALID_QUANTITY
    except InvalidOperation:
        return INVALID_QUANTITY
    try:
        if demand.unit_weight_kg is None or Decimal(str(demand.unit_weight_kg)) <= 0:
            return INVALID_UNIT_WEIGHT
    except InvalidOperation:
        return INVALID_UNIT_WEIGHT
    return None


def plan_allocation(
    available: Decimal | int | float,
    demands: Iterable[DemandSnapshot],
    *,
    tolerance: Decimal = DEFAULT_TOLERANCE,
    quantum: Decimal = WEIGHT_QUANTUM,
) -> AllocationPlan:
    """
    Allocate `available` weight to `demands` in the given order.

    Args:
        available: Harvest weight still unallocated (kg)
        demands: Eligible preorders, already in FIFO order
        tolerance: Slack under which required still fits remaining
        quantum: Rounding step for computed weights

    Returns:
        AllocationPlan with one decision per reserved preorder

    Raises:
        ValueError: If available is negative
    """
    available = Decimal(str(available)).quantize(quantum, rounding=ROUND_HALF_UP)
    if available < 0:
        raise ValueError(f"available weight cannot be negative: {available}")

    remaining = available
    decisions: list[AllocationDecision] = []
    skipped: list[SkippedDemand] = []
    seen: set[int] = set()

    for demand in demands:
        if remaining <= 0:
            break

        if demand.preorder_id in seen:
            skipped.append(SkippedDemand(demand.preorder_id, DUPLICATE_PREORDER))
            continue
        seen.add(demand.preorder_id)

        reason = _invalid_reason(demand)
        if reason:
            skipped.append(SkippedDemand(demand.preorder_id, reason))
            continue

        required = required_weight(demand.quantity, demand.unit_weight_kg, quantum)

        if required <= remaining + tolerance:
            # Within tolerance counts as full; never hand out more than remains
            allocated = min(required, remaining)
            remaining -= allocated
            decisions.append(
                AllocationDecision(
                    preorder_id=demand.preorder_id,
                    required=required,
                    allocated=allocated,
                    is_partial=False,
                    version=demand.version,
                )
            )
        else:
            decisions.append(
                AllocationDecision(
                    preorder_id=demand.preorder_id,
                    required=required,
                    allocated=remaining,
                    is_partial=True,
                    version=demand.version,
                )
            )
            remaining = ZERO.quantize(quantum)
            break

    return AllocationPlan(
        available_before=available,
        remaining=remaining,
        decisions=tuple(decisions),
        skipped=tuple(skipped),
    )
