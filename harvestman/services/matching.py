"""
Matching service -- runs one harvest against the preorder backlog.

One run is one atomic unit:

    1. lock the harvest row (SELECT FOR UPDATE)
    2. select eligible preorders (locked, FIFO)
    3. plan the allocation (pure, see services.allocation)
    4. persist reserved preorders and the harvest totals
    5. commit; then emit one preorder_matched signal per reservation

Any failure in 1-4 rolls the whole run back and is raised to the caller as
HarvestError. Runs are idempotent: a second run finds no eligible preorders
(or no available weight) and changes nothing.

Usage:
    from harvestman import matching

    result = matching.run(harvest.pk)
    for preorder in result.reserved:
        print(preorder.pk, preorder.allocated_qty)
"""

import logging
from functools import partial

from django.db import DEFAULT_DB_ALIAS, DatabaseError, transaction
from django.utils import timezone

from harvestman.conf import get_allocation_tolerance, get_weight_quantum
from harvestman.exceptions import HarvestError
from harvestman.models import Harvest, Preorder, PreorderStatus
from harvestman.results import MatchEvent, MatchResult
from harvestman.services.allocation import (
    AllocationDecision,
    AllocationPlan,
    DemandSnapshot,
    plan_allocation,
)
from harvestman.services.selection import select_eligible_preorders

logger = logging.getLogger(__name__)


class HarvestMatching:
    """
    Transaction coordinator for harvest → preorder matching.

    All methods are @classmethod, like the other harvestman services.
    The transaction boundary is the `using` database alias passed to run().
    """

    @classmethod
    def run(cls, harvest_id: int, *, using: str = DEFAULT_DB_ALIAS) -> MatchResult:
        """
        Match a harvest against all eligible pending preorders.

        Args:
            harvest_id: Primary key of the harvest
            using: Database alias the transaction runs on

        Returns:
            MatchResult with the preorders reserved by this run

        Raises:
            HarvestError: HARVEST_NOT_FOUND, HARVEST_NOT_PUBLISHED,
                PREORDER_NOT_FOUND, CONCURRENT_MODIFICATION,
                INVALID_QUANTITY or PERSISTENCE_FAILURE. Nothing is
                persisted when it is raised.
        """
        logger.info(
            f"Starting harvest matching for harvest {harvest_id}",
            extra={"harvest": harvest_id},
        )

        try:
            with transaction.atomic(using=using):
                result = cls._match(harvest_id, using)
                transaction.on_commit(partial(cls._emit, result), using=using)
        except HarvestError as e:
            logger.error(
                f"Harvest matching failed for harvest {harvest_id}: {e}",
                extra={"harvest": harvest_id, "code": e.code, "retriable": e.retriable},
            )
            raise
        except DatabaseError as e:
            logger.error(
                f"Harvest matching failed for harvest {harvest_id}: {e}",
                extra={"harvest": harvest_id, "code": "PERSISTENCE_FAILURE"},
            )
            raise HarvestError(
                "PERSISTENCE_FAILURE", harvest_id=harvest_id, error=str(e)
            ) from e

        logger.info(
            f"Harvest matching completed for harvest {harvest_id}: "
            f"{result.matched_count} preorders reserved",
            extra={
                "harvest": harvest_id,
                "matched_preorders": result.matched_count,
                "allocated_weight_kg": float(result.allocated_weight_kg),
                "available_weight_kg": float(result.harvest.available_weight_kg),
                "skipped": len(result.skipped),
            },
        )
        return result

    # ══════════════════════════════════════════════════════════════
    # TRANSACTIONAL STEPS
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _match(cls, harvest_id: int, using: str) -> MatchResult:
        harvest = cls._lock_harvest(harvest_id, using)

        if not harvest.published:
            raise HarvestError("HARVEST_NOT_PUBLISHED", harvest_id=harvest_id)

        available = harvest.available_weight_kg
        if available is None or available < 0:
            raise HarvestError(
                "INVALID_QUANTITY",
                harvest_id=harvest_id,
                available=None if available is None else float(available),
            )

        preorders = select_eligible_preorders(harvest, lock=True, using=using)
        plan = plan_allocation(
            available,
            [DemandSnapshot.from_preorder(p) for p in preorders],
            tolerance=get_allocation_tolerance(),
            quantum=get_weight_quantum(),
        )

        for skipped in plan.skipped:
            logger.warning(
                f"Preorder {skipped.preorder_id} skipped: {skipped.reason}",
                extra={
                    "harvest": harvest_id,
                    "preorder": skipped.preorder_id,
                    "reason": skipped.reason,
                },
            )

        matched_at = timezone.now()
        reserved = [
            cls._reserve(decision, harvest, matched_at, using)
            for decision in plan.decisions
        ]
        cls._update_harvest(harvest, plan, matched_at, using)

        events = [
            MatchEvent.from_reservation(preorder, harvest, decision.is_partial)
            for preorder, decision in zip(reserved, plan.decisions)
        ]

        return MatchResult(
            harvest=harvest,
            reserved=reserved,
            events=events,
            skipped=list(plan.skipped),
        )

    @classmethod
    def _lock_harvest(cls, harvest_id: int, using: str) -> Harvest:
        try:
            return Harvest.objects.using(using).select_for_update().get(pk=harvest_id)
        except Harvest.DoesNotExist:
            raise HarvestError("HARVEST_NOT_FOUND", harvest_id=harvest_id)

    @classmethod
    def _reserve(
        cls,
        decision: AllocationDecision,
        harvest: Harvest,
        matched_at,
        using: str,
    ) -> Preorder:
        """Persist one decision; the row must still look like its snapshot."""
        try:
            preorder = (
                Preorder.objects.using(using)
                .select_for_update()
                .get(pk=decision.preorder_id)
            )
        except Preorder.DoesNotExist:
            raise HarvestError(
                "PREORDER_NOT_FOUND",
                harvest_id=harvest.pk,
                preorder_id=decision.preorder_id,
            )

        if preorder.version != decision.version or not preorder.can_be_matched:
            raise HarvestError(
                "CONCURRENT_MODIFICATION",
                harvest_id=harvest.pk,
                preorder_id=preorder.pk,
                expected_version=decision.version,
                current_version=preorder.version,
                status=preorder.status,
            )

        preorder.status = PreorderStatus.RESERVED
        preorder.allocated_qty = decision.allocated
        preorder.harvest = harvest
        preorder.matched_at = matched_at
        preorder.status_updated_at = matched_at
        preorder.version += 1
        preorder.save(
            using=using,
            update_fields=[
                "status",
                "allocated_qty",
                "harvest",
                "matched_at",
                "status_updated_at",
                "version",
                "updated_at",
            ],
        )

        kind = "partially" if decision.is_partial else "fully"
        logger.info(
            f"Preorder {preorder.pk} {kind} allocated from harvest {harvest.pk}",
            extra={
                "harvest": harvest.pk,
                "preorder": preorder.pk,
                "required_weight": float(decision.required),
                "allocated_weight": float(decision.allocated),
                "partial_fulfillment": decision.is_partial,
            },
        )
        return preorder

    @classmethod
    def _update_harvest(
        cls,
        harvest: Harvest,
        plan: AllocationPlan,
        matched_at,
        using: str,
    ) -> None:
        """Apply plan totals; a no-op re-run leaves the row untouched."""
        current = (
            Harvest.objects.using(using)
            .filter(pk=harvest.pk)
            .values_list("available_weight_kg", flat=True)
            .first()
        )
        if current is None:
            raise HarvestError("HARVEST_NOT_FOUND", harvest_id=harvest.pk)
        if current != plan.available_before:
            raise HarvestError(
                "CONCURRENT_MODIFICATION",
                harvest_id=harvest.pk,
                expected_available=float(plan.available_before),
                current_available=float(current),
            )

        update_fields = []
        if not plan.is_empty:
            harvest.allocated_weight_kg += plan.allocated_total
            harvest.available_weight_kg = plan.remaining
            update_fields += ["allocated_weight_kg", "available_weight_kg"]

        if harvest.matching_completed_at is None or not plan.is_empty:
            harvest.matching_completed_at = matched_at
            update_fields.append("matching_completed_at")

        if update_fields:
            harvest.save(using=using, update_fields=[*update_fields, "updated_at"])

    # ══════════════════════════════════════════════════════════════
    # POST-COMMIT
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _emit(cls, result: MatchResult) -> None:
        """Send match signals; receiver failures are logged, never raised."""
        from harvestman.signals import matching_completed, preorder_matched

        for event in result.events:
            responses = preorder_matched.send_robust(sender=cls, event=event)
            cls._log_failures(responses, event.harvest_id, event.preorder_id)

        responses = matching_completed.send_robust(
            sender=cls, harvest=result.harvest, result=result
        )
        cls._log_failures(responses, result.harvest.pk)

    @staticmethod
    def _log_failures(responses, harvest_id: int, preorder_id: int | None = None) -> None:
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    f"Match notification receiver {receiver.__qualname__} failed: {response}",
                    exc_info=response,
                    extra={"harvest": harvest_id, "preorder": preorder_id},
                )


def run_matching(harvest_id: int, *, using: str = DEFAULT_DB_ALIAS) -> MatchResult:
    """Entry point for publish workflows; safe to call repeatedly."""
    return HarvestMatching.run(harvest_id, using=using)
