"""
Preorder model.

Preorder = an outstanding request for a product/variation/unit, waiting for
a harvest to satisfy it (the demand side of matching).

Status: PENDING → RESERVED → READY → FULFILLED
                 ↘ CANCELLED
"""

import logging
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

logger = logging.getLogger(__name__)


class PreorderStatus(models.TextChoices):
    """Preorder lifecycle status."""

    PENDING = "pending", _("Pending")
    RESERVED = "reserved", _("Reserved")
    READY = "ready", _("Ready")
    FULFILLED = "fulfilled", _("Fulfilled")
    CANCELLED = "cancelled", _("Cancelled")
    PARTIALLY_FULFILLED = "partially_fulfilled", _("Partially fulfilled")


class PreorderQuerySet(models.QuerySet):
    """Query helpers for preorders."""

    def pending(self):
        return self.filter(status=PreorderStatus.PENDING, harvest__isnull=True)

    def for_harvest(self, harvest):
        """Same product, variation and unit as the harvest."""
        return self.filter(
            sku=harvest.sku,
            variation_type=harvest.variation_type,
            unit_key=harvest.unit_key,
        )

    def fifo(self):
        """Oldest first; id breaks ties between equal timestamps."""
        return self.order_by("created_at", "id")


class Preorder(models.Model):
    """
    A consumer request waiting for a harvest.

    The matching engine only ever moves a preorder from PENDING to RESERVED,
    filling harvest, allocated_qty and matched_at together. Later
    transitions (ready, fulfilled, cancelled) belong to other workflows.
    """

    # UUID for external references
    uuid = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        verbose_name=_("UUID"),
    )

    consumer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="preorders",
        verbose_name=_("Consumer"),
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="received_preorders",
        verbose_name=_("Seller"),
    )

    # Matching key
    sku = models.CharField(
        max_length=100,
        verbose_name=_("Product SKU"),
    )
    variation_type = models.CharField(
        max_length=30,
        default="regular",
        verbose_name=_("Variation"),
    )
    variation_name = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_("Variation name"),
    )
    unit_key = models.CharField(
        max_length=30,
        default="kg",
        verbose_name=_("Unit"),
    )

    # Quantities
    quantity = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        verbose_name=_("Quantity"),
        help_text=_("Requested quantity, in units of unit_key"),
    )
    unit_weight_kg = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal("1"),
        verbose_name=_("Unit weight (kg)"),
        help_text=_("Kilograms per unit, converts quantity into harvest weight"),
    )
    unit_price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_("Unit price"),
    )
    expected_availability_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_("Expected availability"),
    )

    # Status
    status = models.CharField(
        max_length=20,
        choices=PreorderStatus.choices,
        default=PreorderStatus.PENDING,
        db_index=True,
        verbose_name=_("Status"),
    )

    # Allocation (filled by the matching engine)
    harvest = models.ForeignKey(
        "harvestman.Harvest",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="allocated_preorders",
        verbose_name=_("Harvest"),
    )
    allocated_qty = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        null=True,
        blank=True,
        verbose_name=_("Allocated (kg)"),
    )
    matched_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_("Matched at"),
    )
    ready_at = models.DateTimeField(null=True, blank=True, verbose_name=_("Ready at"))

    # Optimistic locking / audit
    version = models.PositiveIntegerField(default=1, verbose_name=_("Version"))
    status_updated_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Status updated at"),
    )

    notes = models.TextField(blank=True, verbose_name=_("Notes"))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Updated at"))

    history = HistoricalRecords()

    objects = PreorderQuerySet.as_manager()

    class Meta:
        db_table = "harvestman_preorder"
        verbose_name = _("Preorder")
        verbose_name_plural = _("Preorders")
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["sku", "variation_type", "unit_key", "status", "created_at"],
                name="harvestman_preorder_matching",
            ),
            models.Index(
                fields=["consumer", "status", "created_at"],
                name="harvestman_preorder_consumer",
            ),
        ]

    def __str__(self) -> str:
        return f"PO-{self.pk} {self.quantity} {self.unit_key} {self.sku} ({self.status})"

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def required_weight_kg(self) -> Decimal:
        """Requested quantity expressed in harvest kilograms."""
        from harvestman.conf import get_weight_quantum
        from harvestman.services.allocation import required_weight

        return required_weight(self.quantity, self.unit_weight_kg, get_weight_quantum())

    @property
    def is_partial(self) -> bool:
        """Short of required by more than the allocation tolerance."""
        from harvestman.conf import get_allocation_tolerance

        if self.allocated_qty is None:
            return False
        return self.allocated_qty + get_allocation_tolerance() < self.required_weight_kg

    @property
    def can_be_matched(self) -> bool:
        return self.status == PreorderStatus.PENDING and self.harvest_id is None

    @property
    def can_be_cancelled(self) -> bool:
        if self.status == PreorderStatus.PENDING:
            return True
        if self.status == PreorderStatus.RESERVED:
            return self.harvest is None or not self.harvest.published
        return False

    # ══════════════════════════════════════════════════════════════
    # EXTERNAL TRANSITIONS
    # ══════════════════════════════════════════════════════════════

    def _transition(self, new_status: str, extra_fields: list[str]):
        self.status = new_status
        self.status_updated_at = timezone.now()
        self.version += 1
        self.save(
            update_fields=["status", "status_updated_at", "version", "updated_at", *extra_fields]
        )

    def mark_ready(self, user=None):
        """Reserved preorder is ready for fulfillment."""
        if self.status != PreorderStatus.RESERVED:
            raise ValidationError(_("Only reserved preorders can be marked ready."))

        self.ready_at = timezone.now()
        self._transition(PreorderStatus.READY, ["ready_at"])

        logger.info(
            f"Preorder {self.pk} ready",
            extra={"preorder": self.pk, "user": user.username if user else None},
        )

    def cancel(self, reason: str = "", user=None):
        """Cancel a preorder that has not been committed to a published harvest."""
        if not self.can_be_cancelled:
            raise ValidationError(
                _("Preorder cannot be cancelled in its current state.")
            )

        if reason:
            self.notes = f"{self.notes}\n[CANCELLED] {reason}".strip()
        self._transition(PreorderStatus.CANCELLED, ["notes"])

        logger.info(
            f"Preorder {self.pk} cancelled: {reason}",
            extra={"preorder": self.pk, "user": user.username if user else None},
        )
