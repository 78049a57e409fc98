"""
Harvestman Admin -- Django admin for Harvest and Preorder.

Matching can be re-run from the harvest changelist ("Run matching"); runs
are idempotent, so selecting an already-matched harvest is harmless.
"""

from django.contrib import admin, messages

from harvestman.exceptions import HarvestError
from harvestman.models import Harvest, Preorder


# ── Harvest ──


class AllocatedPreorderInline(admin.TabularInline):
    """Preorders reserved against a harvest (read-only)."""

    model = Preorder
    fk_name = "harvest"
    extra = 0
    can_delete = False
    fields = ("consumer", "quantity", "unit_weight_kg", "allocated_qty", "status", "matched_at")
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Harvest)
class HarvestAdmin(admin.ModelAdmin):
    """Admin for harvests (supply side)."""

    list_display = (
        "__str__",
        "sku",
        "variation_type",
        "unit_key",
        "actual_weight_kg",
        "allocated_weight_kg",
        "available_weight_kg",
        "published",
        "matching_completed_at",
    )
    list_filter = ("published", "verified", "variation_type", "unit_key")
    search_fields = ("lot_code", "sku")
    date_hierarchy = "harvested_at"
    raw_id_fields = ("seller",)
    inlines = [AllocatedPreorderInline]
    readonly_fields = (
        "uuid",
        "allocated_weight_kg",
        "available_weight_kg",
        "verified_at",
        "published_at",
        "matching_completed_at",
        "created_at",
        "updated_at",
    )
    actions = ["run_matching"]

    @admin.action(description="Run matching")
    def run_matching(self, request, queryset):
        from harvestman.services.matching import HarvestMatching

        for harvest in queryset.filter(published=True):
            try:
                result = HarvestMatching.run(harvest.pk)
            except HarvestError as e:
                self.message_user(request, f"{harvest}: {e}", level=messages.ERROR)
                continue
            self.message_user(
                request,
                f"{harvest}: {result.matched_count} preorders reserved "
                f"({result.allocated_weight_kg} kg)",
                level=messages.SUCCESS,
            )


# ── Preorder ──


@admin.register(Preorder)
class PreorderAdmin(admin.ModelAdmin):
    """Admin for preorders (demand side)."""

    list_display = (
        "__str__",
        "consumer",
        "sku",
        "variation_type",
        "unit_key",
        "quantity",
        "allocated_qty",
        "status",
        "created_at",
    )
    list_filter = ("status", "variation_type", "unit_key")
    search_fields = ("sku", "consumer__username")
    raw_id_fields = ("consumer", "seller", "harvest")
    readonly_fields = (
        "uuid",
        "harvest",
        "allocated_qty",
        "matched_at",
        "ready_at",
        "version",
        "status_updated_at",
        "created_at",
        "updated_at",
    )
