"""
Harvest model.

Harvest = a published lot of harvested goods (the supply side of matching).

Quantity fields are in kilograms:
    actual_weight_kg = allocated_weight_kg + available_weight_kg
"""

import logging
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

logger = logging.getLogger(__name__)


class HarvestQuerySet(models.QuerySet):
    """Query helpers for harvests."""

    def published(self):
        return self.filter(published=True)

    def matchable(self):
        """Published, verified, never matched and with weight left."""
        return self.filter(
            published=True,
            verified=True,
            matching_completed_at__isnull=True,
            available_weight_kg__gt=0,
        )


class Harvest(models.Model):
    """
    A harvested lot available for allocation to preorders.

    Lifecycle: created → verified → published → matched

    Only the matching engine (harvestman.services.matching) mutates
    allocated_weight_kg / available_weight_kg after publication.
    """

    # UUID for external references
    uuid = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        verbose_name=_("UUID"),
    )

    lot_code = models.CharField(
        max_length=50,
        blank=True,
        verbose_name=_("Lot code"),
    )

    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="harvests",
        verbose_name=_("Seller"),
    )

    # Matching key
    sku = models.CharField(
        max_length=100,
        db_index=True,
        verbose_name=_("Product SKU"),
        help_text=_("Reference to the product in the external catalog"),
    )
    variation_type = models.CharField(
        max_length=30,
        default="regular",
        verbose_name=_("Variation"),
        help_text=_("Ex: 'premium', 'type_a', 'type_b', 'regular'"),
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
        help_text=_("Ex: 'kg', 'sack', 'small_sack', 'tali', 'pieces'"),
    )
    quality_grade = models.CharField(
        max_length=10,
        blank=True,
        verbose_name=_("Quality grade"),
    )

    # Quantities
    actual_weight_kg = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        verbose_name=_("Harvested weight (kg)"),
    )
    allocated_weight_kg = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal("0"),
        verbose_name=_("Allocated (kg)"),
    )
    available_weight_kg = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        null=True,
        blank=True,
        verbose_name=_("Available (kg)"),
        help_text=_("Defaults to harvested minus allocated weight"),
    )

    # Lifecycle
    harvested_at = models.DateTimeField(
        default=timezone.now,
        verbose_name=_("Harvested at"),
    )
    verified = models.BooleanField(default=False, verbose_name=_("Verified"))
    verified_at = models.DateTimeField(null=True, blank=True, verbose_name=_("Verified at"))
    published = models.BooleanField(default=False, verbose_name=_("Published"))
    published_at = models.DateTimeField(null=True, blank=True, verbose_name=_("Published at"))
    matching_completed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Matching completed at"),
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_("Metadata"),
    )
    notes = models.TextField(blank=True, verbose_name=_("Notes"))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_("Created at"))
    updated_at = models.DateTimeField(auto_now=True, verbose_name=_("Updated at"))

    history = HistoricalRecords()

    objects = HarvestQuerySet.as_manager()

    class Meta:
        db_table = "harvestman_harvest"
        verbose_name = _("Harvest")
        verbose_name_plural = _("Harvests")
        ordering = ["-harvested_at"]
        indexes = [
            models.Index(
                fields=["sku", "variation_type", "unit_key"],
                name="harvestman_harvest_key_idx",
            ),
            models.Index(
                fields=["published", "matching_completed_at"],
                name="harvestman_harvest_pub_idx",
            ),
        ]

    def __str__(self) -> str:
        label = self.lot_code or f"H-{self.pk}"
        return f"{label} - {self.sku} {self.variation_type}/{self.unit_key}"

    def save(self, *args, **kwargs):
        """Default available weight to whatever has not been allocated yet."""
        if self.available_weight_kg is None and self.actual_weight_kg is not None:
            self.available_weight_kg = self.actual_weight_kg - (
                self.allocated_weight_kg or Decimal("0")
            )
        super().save(*args, **kwargs)

    # ══════════════════════════════════════════════════════════════
    # LIFECYCLE
    # ══════════════════════════════════════════════════════════════

    def verify(self, user=None):
        """Mark harvest as verified."""
        if self.verified:
            raise ValidationError(_("Harvest is already verified."))

        self.verified = True
        self.verified_at = timezone.now()
        self.save(update_fields=["verified", "verified_at", "updated_at"])

        logger.info(
            f"Harvest {self.pk} verified",
            extra={"harvest": self.pk, "user": user.username if user else None},
        )

    def publish(self, user=None):
        """
        Publish the harvest, which triggers preorder matching.

        harvest_published is sent only after the publishing transaction
        commits, so receivers always see the published row.
        """
        if self.published:
            raise ValidationError(_("Harvest is already published."))
        if not self.verified:
            raise ValidationError(_("Harvest must be verified before publishing."))

        self.published = True
        self.published_at = timezone.now()
        self.save(update_fields=["published", "published_at", "updated_at"])

        logger.info(
            f"Harvest {self.pk} published",
            extra={
                "harvest": self.pk,
                "sku": self.sku,
                "variation_type": self.variation_type,
                "unit_key": self.unit_key,
                "actual_weight_kg": float(self.actual_weight_kg),
                "user": user.username if user else None,
            },
        )

        from harvestman.signals import harvest_published

        transaction.on_commit(
            lambda: harvest_published.send(sender=self.__class__, harvest=self, user=user)
        )

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def is_exhausted(self) -> bool:
        return (self.available_weight_kg or Decimal("0")) <= 0

    @property
    def can_be_matched(self) -> bool:
        return (
            self.published
            and self.verified
            and self.matching_completed_at is None
            and not self.is_exhausted
        )

    @property
    def is_balanced(self) -> bool:
        """allocated + available == harvested."""
        available = self.available_weight_kg or Decimal("0")
        return self.allocated_weight_kg + available == self.actual_weight_kg

    @property
    def can_be_modified(self) -> bool:
        """Editable/deletable only before verification and any allocation."""
        return (
            not self.verified
            and not self.published
            and not self.allocated_weight_kg
            and not self.allocated_preorders.exists()
        )

    def set_actual_weight(self, weight: Decimal):
        """Change harvested weight and keep available in step with it."""
        if self.allocated_weight_kg:
            raise ValidationError(_("Weight of a harvest with allocations cannot change."))
        self.actual_weight_kg = weight
        self.available_weight_kg = weight - self.allocated_weight_kg
