"""
Harvestman API Serializers.
"""

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from harvestman.models import Harvest, Preorder, PreorderStatus

# Matching key and demand; frozen once a preorder is reserved
LOCKED_AFTER_MATCH = ("sku", "variation_type", "unit_key", "quantity", "unit_weight_kg")


class HarvestSerializer(serializers.ModelSerializer):
    """Serializer for Harvest model."""

    class Meta:
        model = Harvest
        fields = [
            "id",
            "uuid",
            "lot_code",
            "seller",
            "sku",
            "variation_type",
            "variation_name",
            "unit_key",
            "quality_grade",
            "actual_weight_kg",
            "allocated_weight_kg",
            "available_weight_kg",
            "harvested_at",
            "verified",
            "verified_at",
            "published",
            "published_at",
            "matching_completed_at",
            "metadata",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "uuid",
            "allocated_weight_kg",
            "available_weight_kg",
            "verified",
            "verified_at",
            "published",
            "published_at",
            "matching_completed_at",
            "created_at",
            "updated_at",
        ]

    def validate_actual_weight_kg(self, value):
        if value <= 0:
            raise serializers.ValidationError("Harvest weight must be positive.")
        return value

    def update(self, instance, validated_data):
        weight = validated_data.pop("actual_weight_kg", None)
        if weight is not None and weight != instance.actual_weight_kg:
            try:
                instance.set_actual_weight(weight)
            except DjangoValidationError as e:
                raise serializers.ValidationError({"actual_weight_kg": e.messages})
        return super().update(instance, validated_data)


class PreorderSerializer(serializers.ModelSerializer):
    """Serializer for Preorder model."""

    required_weight_kg = serializers.DecimalField(
        max_digits=16, decimal_places=4, read_only=True
    )
    is_partial = serializers.BooleanField(read_only=True)
    harvest_uuid = serializers.SerializerMethodField()

    class Meta:
        model = Preorder
        fields = [
            "id",
            "uuid",
            "consumer",
            "seller",
            "sku",
            "variation_type",
            "variation_name",
            "unit_key",
            "quantity",
            "unit_weight_kg",
            "required_weight_kg",
            "unit_price",
            "expected_availability_date",
            "status",
            "harvest",
            "harvest_uuid",
            "allocated_qty",
            "is_partial",
            "matched_at",
            "ready_at",
            "version",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "uuid",
            "status",
            "harvest",
            "harvest_uuid",
            "allocated_qty",
            "matched_at",
            "ready_at",
            "version",
            "created_at",
            "updated_at",
        ]

    def get_harvest_uuid(self, obj) -> str | None:
        return str(obj.harvest.uuid) if obj.harvest_id else None

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError("Quantity must be positive.")
        return value

    def validate_unit_weight_kg(self, value):
        if value <= 0:
            raise serializers.ValidationError("Unit weight must be positive.")
        return value

    def validate(self, attrs):
        preorder = self.instance
        if preorder is None or preorder.status == PreorderStatus.PENDING:
            return attrs
        changed = [
            name
            for name in LOCKED_AFTER_MATCH
            if name in attrs and attrs[name] != getattr(preorder, name)
        ]
        if changed:
            raise serializers.ValidationError(
                {name: "Cannot change once the preorder has left pending." for name in changed}
            )
        return attrs


class PreorderCancelSerializer(serializers.Serializer):
    """Input for cancelling a preorder."""

    reason = serializers.CharField(required=False, allow_blank=True, default="")


class MatchEventSerializer(serializers.Serializer):
    """One reservation made by a matching run."""

    preorder_id = serializers.IntegerField()
    consumer_id = serializers.IntegerField()
    allocated_qty = serializers.DecimalField(max_digits=12, decimal_places=4)
    partial = serializers.BooleanField()
    matched_at = serializers.DateTimeField()


class MatchResultSerializer(serializers.Serializer):
    """Output of POST /harvests/{uuid}/match/."""

    matched_count = serializers.IntegerField()
    allocated_weight_kg = serializers.DecimalField(max_digits=12, decimal_places=4)
    available_weight_kg = serializers.DecimalField(
        source="harvest.available_weight_kg", max_digits=12, decimal_places=4
    )
    has_partial = serializers.BooleanField()
    events = MatchEventSerializer(many=True)
    skipped = serializers.SerializerMethodField()

    def get_skipped(self, obj) -> list:
        return [{"preorder_id": s.preorder_id, "reason": s.reason} for s in obj.skipped]
