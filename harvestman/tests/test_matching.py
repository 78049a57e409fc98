"""
Tests for the matching coordinator (harvestman.services.matching).

Covers:
- Reservation outcomes (full, partial, no match, nothing eligible)
- FIFO and no double allocation across runs
- Idempotent re-runs
- Rollback on conflicts and database failures
- Post-commit event delivery
"""

from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import DatabaseError
from django.db.models import F, QuerySet

from harvestman import HarvestError, matching
from harvestman.models import Harvest, Preorder, PreorderStatus
from harvestman.services import matching as matching_module
from harvestman.signals import matching_completed, preorder_matched


@pytest.fixture
def received():
    """Collect preorder_matched events for the duration of a test."""
    events = []

    def _receiver(sender, event, **kwargs):
        events.append(event)

    preorder_matched.connect(_receiver, dispatch_uid="test-received")
    yield events
    preorder_matched.disconnect(dispatch_uid="test-received")


# ═══════════════════════════════════════════════════════════════════
# Reservation outcomes
# ═══════════════════════════════════════════════════════════════════


class TestMatchingOutcomes:
    def test_two_preorders_fully_reserved(
        self, make_harvest, make_preorder, received, django_capture_on_commit_callbacks
    ):
        harvest = make_harvest("10")
        r1 = make_preorder("2")
        r2 = make_preorder("3")

        with django_capture_on_commit_callbacks(execute=True):
            result = matching.run(harvest.pk)

        harvest.refresh_from_db()
        r1.refresh_from_db()
        r2.refresh_from_db()

        assert result.matched_count == 2
        assert r1.status == PreorderStatus.RESERVED
        assert r1.allocated_qty == Decimal("2")
        assert r1.harvest == harvest
        assert r2.allocated_qty == Decimal("3")
        assert harvest.available_weight_kg == Decimal("5")
        assert harvest.allocated_weight_kg == Decimal("5")
        assert harvest.matching_completed_at is not None
        assert [e.preorder_id for e in received] == [r1.pk, r2.pk]
        assert not any(e.partial for e in received)

    def test_partial_reservation(
        self, make_harvest, make_preorder, received, django_capture_on_commit_callbacks
    ):
        harvest = make_harvest("5")
        preorder = make_preorder("8")

        with django_capture_on_commit_callbacks(execute=True):
            result = matching.run(harvest.pk)

        harvest.refresh_from_db()
        preorder.refresh_from_db()

        assert result.has_partial
        assert preorder.status == PreorderStatus.RESERVED
        assert preorder.allocated_qty == Decimal("5")
        assert preorder.is_partial
        assert harvest.available_weight_kg == Decimal("0")
        assert harvest.allocated_weight_kg == Decimal("5")
        assert len(received) == 1
        assert received[0].partial is True

    def test_other_variation_is_not_matched(
        self, make_harvest, make_preorder, received, django_capture_on_commit_callbacks
    ):
        harvest = make_harvest("10", variation_type="premium")
        preorder = make_preorder("2", variation_type="regular")

        with django_capture_on_commit_callbacks(execute=True):
            result = matching.run(harvest.pk)

        preorder.refresh_from_db()
        assert result.matched_count == 0
        assert preorder.status == PreorderStatus.PENDING
        assert preorder.harvest is None
        assert received == []

    def test_already_reserved_preorder_is_ignored(
        self, make_harvest, make_preorder, received, django_capture_on_commit_callbacks
    ):
        harvest = make_harvest("10")
        other = make_harvest("3")
        preorder = make_preorder(
            "2", status=PreorderStatus.RESERVED, harvest=other, allocated_qty=Decimal("2")
        )

        with django_capture_on_commit_callbacks(execute=True):
            matching.run(harvest.pk)

        harvest.refresh_from_db()
        preorder.refresh_from_db()
        assert preorder.harvest == other
        assert preorder.allocated_qty == Decimal("2")
        assert harvest.available_weight_kg == Decimal("10")
        assert harvest.allocated_weight_kg == Decimal("0")
        assert received == []

    def test_no_eligible_preorders_marks_completed(
        self, make_harvest, received, django_capture_on_commit_callbacks
    ):
        harvest = make_harvest("10")

        with django_capture_on_commit_callbacks(execute=True):
            result = matching.run(harvest.pk)

        harvest.refresh_from_db()
        assert result.matched_count == 0
        assert harvest.allocated_weight_kg == Decimal("0")
        assert harvest.available_weight_kg == Decimal("10")
        assert harvest.matching_completed_at is not None
        assert received == []

    def test_malformed_preorder_skipped_others_reserved(self, make_harvest, make_preorder):
        harvest = make_harvest("10")
        bad = make_preorder("2")
        Preorder.objects.filter(pk=bad.pk).update(quantity=Decimal("0"))
        good = make_preorder("2")

        result = matching.run(harvest.pk)

        bad.refresh_from_db()
        good.refresh_from_db()
        assert [s.preorder_id for s in result.skipped] == [bad.pk]
        assert bad.status == PreorderStatus.PENDING
        assert good.status == PreorderStatus.RESERVED

    def test_tolerance_boundary_flags_agree(self, make_harvest, make_preorder):
        """Allocated within tolerance is full for the event and the model alike."""
        harvest = make_harvest("4.9999")
        preorder = make_preorder("5")

        result = matching.run(harvest.pk)

        preorder.refresh_from_db()
        assert preorder.allocated_qty == Decimal("4.9999")
        assert result.events[0].partial is False
        assert preorder.is_partial is False

    def test_reservation_bumps_version(self, make_harvest, make_preorder):
        harvest = make_harvest("10")
        preorder = make_preorder("2")

        matching.run(harvest.pk)

        preorder.refresh_from_db()
        assert preorder.version == 2
        assert preorder.matched_at is not None
        assert preorder.status_updated_at == preorder.matched_at


# ═══════════════════════════════════════════════════════════════════
# Ordering, conservation and idempotency
# ═══════════════════════════════════════════════════════════════════


class TestMatchingProperties:
    def test_fifo_older_preorder_served_first(self, make_harvest, make_preorder):
        harvest = make_harvest("3")
        first = make_preorder("3")
        second = make_preorder("3")

        matching.run(harvest.pk)

        first.refresh_from_db()
        second.refresh_from_db()
        assert first.status == PreorderStatus.RESERVED
        assert second.status == PreorderStatus.PENDING

    def test_conservation(self, make_harvest, make_preorder):
        harvest = make_harvest("7.5")
        for qty in ("1.25", "2.5", "0.75", "9"):
            make_preorder(qty)

        matching.run(harvest.pk)

        harvest.refresh_from_db()
        reserved = Preorder.objects.filter(harvest=harvest)
        total = sum((p.allocated_qty for p in reserved), Decimal("0"))
        assert total == harvest.allocated_weight_kg
        assert harvest.is_balanced
        assert harvest.available_weight_kg >= 0

    def test_run_locks_harvest_row(self, make_harvest, make_preorder):
        harvest = make_harvest("10")
        make_preorder("2")

        with patch.object(
            QuerySet,
            "select_for_update",
            autospec=True,
            side_effect=QuerySet.select_for_update,
        ) as select_for_update:
            matching.run(harvest.pk)

        locked = [c.args[0].model for c in select_for_update.call_args_list]
        assert locked[0] is Harvest
        assert Preorder in locked

    def test_second_harvest_does_not_reallocate(self, make_harvest, make_preorder):
        first = make_harvest("5")
        second = make_harvest("5")
        preorder = make_preorder("2")

        matching.run(first.pk)
        result = matching.run(second.pk)

        preorder.refresh_from_db()
        assert preorder.harvest == first
        assert result.matched_count == 0

    def test_rerun_changes_nothing(self, make_harvest, make_preorder, received, django_capture_on_commit_callbacks):
        harvest = make_harvest("10")
        make_preorder("2")
        matching.run(harvest.pk)
        harvest.refresh_from_db()
        snapshot = (
            harvest.allocated_weight_kg,
            harvest.available_weight_kg,
            harvest.matching_completed_at,
            harvest.history.count(),
        )

        with django_capture_on_commit_callbacks(execute=True):
            result = matching.run(harvest.pk)

        harvest.refresh_from_db()
        assert result.matched_count == 0
        assert received == []
        assert snapshot == (
            harvest.allocated_weight_kg,
            harvest.available_weight_kg,
            harvest.matching_completed_at,
            harvest.history.count(),
        )

    def test_new_preorder_picked_up_by_next_run(self, make_harvest, make_preorder):
        harvest = make_harvest("10")
        make_preorder("2")
        matching.run(harvest.pk)
        late = make_preorder("3")

        matching.run(harvest.pk)

        harvest.refresh_from_db()
        late.refresh_from_db()
        assert late.status == PreorderStatus.RESERVED
        assert harvest.allocated_weight_kg == Decimal("5")
        assert harvest.available_weight_kg == Decimal("5")


# ═══════════════════════════════════════════════════════════════════
# Errors and rollback
# ═══════════════════════════════════════════════════════════════════


class TestMatchingErrors:
    def test_missing_harvest(self, db):
        with pytest.raises(HarvestError) as exc:
            matching.run(999999)

        assert exc.value.code == "HARVEST_NOT_FOUND"
        assert exc.value.retriable

    def test_unpublished_harvest(self, make_harvest, make_preorder):
        harvest = make_harvest("10", published=False)
        preorder = make_preorder("2")

        with pytest.raises(HarvestError) as exc:
            matching.run(harvest.pk)

        preorder.refresh_from_db()
        assert exc.value.code == "HARVEST_NOT_PUBLISHED"
        assert preorder.status == PreorderStatus.PENDING

    def test_negative_available(self, make_harvest):
        harvest = make_harvest("10")
        Harvest.objects.filter(pk=harvest.pk).update(available_weight_kg=Decimal("-1"))

        with pytest.raises(HarvestError) as exc:
            matching.run(harvest.pk)

        assert exc.value.code == "INVALID_QUANTITY"

    def test_concurrent_preorder_change_rolls_back(self, make_harvest, make_preorder):
        harvest = make_harvest("10")
        first = make_preorder("2")
        second = make_preorder("3")
        real_select = matching_module.select_eligible_preorders

        def select_then_touch(*args, **kwargs):
            rows = real_select(*args, **kwargs)
            Preorder.objects.filter(pk=second.pk).update(version=F("version") + 1)
            return rows

        with patch.object(matching_module, "select_eligible_preorders", side_effect=select_then_touch):
            with pytest.raises(HarvestError) as exc:
                matching.run(harvest.pk)

        assert exc.value.code == "CONCURRENT_MODIFICATION"
        first.refresh_from_db()
        harvest.refresh_from_db()
        assert first.status == PreorderStatus.PENDING
        assert first.harvest is None
        assert harvest.allocated_weight_kg == Decimal("0")
        assert harvest.matching_completed_at is None

    def test_preorder_deleted_mid_run(self, make_harvest, make_preorder):
        harvest = make_harvest("10")
        preorder = make_preorder("2")
        real_select = matching_module.select_eligible_preorders

        def select_then_delete(*args, **kwargs):
            rows = real_select(*args, **kwargs)
            Preorder.objects.filter(pk=preorder.pk).delete()
            return rows

        with patch.object(matching_module, "select_eligible_preorders", side_effect=select_then_delete):
            with pytest.raises(HarvestError) as exc:
                matching.run(harvest.pk)

        assert exc.value.code == "PREORDER_NOT_FOUND"

    def test_concurrent_harvest_change_rolls_back(self, make_harvest, make_preorder):
        harvest = make_harvest("10")
        preorder = make_preorder("2")
        real_plan = matching_module.plan_allocation

        def plan_then_touch(*args, **kwargs):
            plan = real_plan(*args, **kwargs)
            Harvest.objects.filter(pk=harvest.pk).update(available_weight_kg=Decimal("4"))
            return plan

        with patch.object(matching_module, "plan_allocation", side_effect=plan_then_touch):
            with pytest.raises(HarvestError) as exc:
                matching.run(harvest.pk)

        assert exc.value.code == "CONCURRENT_MODIFICATION"
        preorder.refresh_from_db()
        assert preorder.status == PreorderStatus.PENDING

    def test_database_error_wrapped_and_rolled_back(
        self, make_harvest, make_preorder, received, django_capture_on_commit_callbacks
    ):
        harvest = make_harvest("10")
        preorder = make_preorder("2")

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            with patch.object(Harvest, "save", side_effect=DatabaseError("disk I/O error")):
                with pytest.raises(HarvestError) as exc:
                    matching.run(harvest.pk)

        assert exc.value.code == "PERSISTENCE_FAILURE"
        assert not exc.value.retriable
        assert isinstance(exc.value.__cause__, DatabaseError)
        preorder.refresh_from_db()
        assert preorder.status == PreorderStatus.PENDING
        assert preorder.version == 1
        assert callbacks == []
        assert received == []


# ═══════════════════════════════════════════════════════════════════
# Post-commit events
# ═══════════════════════════════════════════════════════════════════


class TestMatchEvents:
    def test_events_wait_for_commit(self, make_harvest, make_preorder, received, django_capture_on_commit_callbacks):
        harvest = make_harvest("10")
        make_preorder("2")

        with django_capture_on_commit_callbacks(execute=True) as callbacks:
            matching.run(harvest.pk)
            assert received == []

        assert len(callbacks) == 1
        assert len(received) == 1

    def test_event_payload(self, make_harvest, make_preorder, consumer, seller, received, django_capture_on_commit_callbacks):
        harvest = make_harvest("10")
        preorder = make_preorder("2", unit_weight_kg="1.5")

        with django_capture_on_commit_callbacks(execute=True):
            matching.run(harvest.pk)

        payload = received[0].as_payload()
        assert payload["preorder_id"] == preorder.pk
        assert payload["consumer_id"] == consumer.pk
        assert payload["seller_id"] == seller.pk
        assert payload["product_id"] == "RICE-001"
        assert Decimal(payload["allocated_qty"]) == Decimal("3")
        assert payload["partial"] is False
        assert payload["harvest_id"] == harvest.pk

    def test_seller_falls_back_to_harvest(self, make_harvest, make_preorder, seller, received, django_capture_on_commit_callbacks):
        harvest = make_harvest("10")
        make_preorder("2", seller=None)

        with django_capture_on_commit_callbacks(execute=True):
            matching.run(harvest.pk)

        assert received[0].seller_id == seller.pk

    def test_failing_receiver_does_not_undo_reservation(
        self, make_harvest, make_preorder, django_capture_on_commit_callbacks, caplog
    ):
        harvest = make_harvest("10")
        preorder = make_preorder("2")

        def broken(sender, event, **kwargs):
            raise RuntimeError("push gateway down")

        preorder_matched.connect(broken, dispatch_uid="test-broken")
        try:
            with django_capture_on_commit_callbacks(execute=True):
                matching.run(harvest.pk)
        finally:
            preorder_matched.disconnect(dispatch_uid="test-broken")

        preorder.refresh_from_db()
        assert preorder.status == PreorderStatus.RESERVED
        assert "push gateway down" in caplog.text

    def test_matching_completed_sent_once(self, make_harvest, make_preorder, django_capture_on_commit_callbacks):
        harvest = make_harvest("10")
        make_preorder("2")
        make_preorder("3")
        calls = []

        def on_completed(sender, harvest, result, **kwargs):
            calls.append(result)

        matching_completed.connect(on_completed, dispatch_uid="test-completed")
        try:
            with django_capture_on_commit_callbacks(execute=True):
                matching.run(harvest.pk)
        finally:
            matching_completed.disconnect(dispatch_uid="test-completed")

        assert len(calls) == 1
        assert calls[0].matched_count == 2
