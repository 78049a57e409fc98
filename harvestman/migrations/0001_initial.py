import decimal
import uuid

import django.db.models.deletion
import django.utils.timezone
import simple_history.models
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Harvest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID")),
                ("lot_code", models.CharField(blank=True, max_length=50, verbose_name="Lot code")),
                ("sku", models.CharField(db_index=True, help_text="Reference to the product in the external catalog", max_length=100, verbose_name="Product SKU")),
                ("variation_type", models.CharField(default="regular", help_text="Ex: 'premium', 'type_a', 'type_b', 'regular'", max_length=30, verbose_name="Variation")),
                ("variation_name", models.CharField(blank=True, max_length=100, verbose_name="Variation name")),
                ("unit_key", models.CharField(default="kg", help_text="Ex: 'kg', 'sack', 'small_sack', 'tali', 'pieces'", max_length=30, verbose_name="Unit")),
                ("quality_grade", models.CharField(blank=True, max_length=10, verbose_name="Quality grade")),
                ("actual_weight_kg", models.DecimalField(decimal_places=4, max_digits=12, verbose_name="Harvested weight (kg)")),
                ("allocated_weight_kg", models.DecimalField(decimal_places=4, default=decimal.Decimal("0"), max_digits=12, verbose_name="Allocated (kg)")),
                ("available_weight_kg", models.DecimalField(blank=True, decimal_places=4, help_text="Defaults to harvested minus allocated weight", max_digits=12, null=True, verbose_name="Available (kg)")),
                ("harvested_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Harvested at")),
                ("verified", models.BooleanField(default=False, verbose_name="Verified")),
                ("verified_at", models.DateTimeField(blank=True, null=True, verbose_name="Verified at")),
                ("published", models.BooleanField(default=False, verbose_name="Published")),
                ("published_at", models.DateTimeField(blank=True, null=True, verbose_name="Published at")),
                ("matching_completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Matching completed at")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadata")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                ("seller", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="harvests", to=settings.AUTH_USER_MODEL, verbose_name="Seller")),
            ],
            options={
                "verbose_name": "Harvest",
                "verbose_name_plural": "Harvests",
                "db_table": "harvestman_harvest",
                "ordering": ["-harvested_at"],
                "indexes": [
                    models.Index(fields=["sku", "variation_type", "unit_key"], name="harvestman_harvest_key_idx"),
                    models.Index(fields=["published", "matching_completed_at"], name="harvestman_harvest_pub_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Preorder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID")),
                ("sku", models.CharField(max_length=100, verbose_name="Product SKU")),
                ("variation_type", models.CharField(default="regular", max_length=30, verbose_name="Variation")),
                ("variation_name", models.CharField(blank=True, max_length=100, verbose_name="Variation name")),
                ("unit_key", models.CharField(default="kg", max_length=30, verbose_name="Unit")),
                ("quantity", models.DecimalField(decimal_places=4, help_text="Requested quantity, in units of unit_key", max_digits=12, verbose_name="Quantity")),
                ("unit_weight_kg", models.DecimalField(decimal_places=4, default=decimal.Decimal("1"), help_text="Kilograms per unit, converts quantity into harvest weight", max_digits=12, verbose_name="Unit weight (kg)")),
                ("unit_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name="Unit price")),
                ("expected_availability_date", models.DateField(blank=True, null=True, verbose_name="Expected availability")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("reserved", "Reserved"), ("ready", "Ready"), ("fulfilled", "Fulfilled"), ("cancelled", "Cancelled"), ("partially_fulfilled", "Partially fulfilled")], db_index=True, default="pending", max_length=20, verbose_name="Status")),
                ("allocated_qty", models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True, verbose_name="Allocated (kg)")),
                ("matched_at", models.DateTimeField(blank=True, db_index=True, null=True, verbose_name="Matched at")),
                ("ready_at", models.DateTimeField(blank=True, null=True, verbose_name="Ready at")),
                ("version", models.PositiveIntegerField(default=1, verbose_name="Version")),
                ("status_updated_at", models.DateTimeField(blank=True, null=True, verbose_name="Status updated at")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                ("consumer", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="preorders", to=settings.AUTH_USER_MODEL, verbose_name="Consumer")),
                ("harvest", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="allocated_preorders", to="harvestman.harvest", verbose_name="Harvest")),
                ("seller", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="received_preorders", to=settings.AUTH_USER_MODEL, verbose_name="Seller")),
            ],
            options={
                "verbose_name": "Preorder",
                "verbose_name_plural": "Preorders",
                "db_table": "harvestman_preorder",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["sku", "variation_type", "unit_key", "status", "created_at"], name="harvestman_preorder_matching"),
                    models.Index(fields=["consumer", "status", "created_at"], name="harvestman_preorder_consumer"),
                ],
            },
        ),
        migrations.CreateModel(
            name="HistoricalHarvest",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("uuid", models.UUIDField(db_index=True, default=uuid.uuid4, editable=False, verbose_name="UUID")),
                ("lot_code", models.CharField(blank=True, max_length=50, verbose_name="Lot code")),
                ("sku", models.CharField(db_index=True, help_text="Reference to the product in the external catalog", max_length=100, verbose_name="Product SKU")),
                ("variation_type", models.CharField(default="regular", help_text="Ex: 'premium', 'type_a', 'type_b', 'regular'", max_length=30, verbose_name="Variation")),
                ("variation_name", models.CharField(blank=True, max_length=100, verbose_name="Variation name")),
                ("unit_key", models.CharField(default="kg", help_text="Ex: 'kg', 'sack', 'small_sack', 'tali', 'pieces'", max_length=30, verbose_name="Unit")),
                ("quality_grade", models.CharField(blank=True, max_length=10, verbose_name="Quality grade")),
                ("actual_weight_kg", models.DecimalField(decimal_places=4, max_digits=12, verbose_name="Harvested weight (kg)")),
                ("allocated_weight_kg", models.DecimalField(decimal_places=4, default=decimal.Decimal("0"), max_digits=12, verbose_name="Allocated (kg)")),
                ("available_weight_kg", models.DecimalField(blank=True, decimal_places=4, help_text="Defaults to harvested minus allocated weight", max_digits=12, null=True, verbose_name="Available (kg)")),
                ("harvested_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Harvested at")),
                ("verified", models.BooleanField(default=False, verbose_name="Verified")),
                ("verified_at", models.DateTimeField(blank=True, null=True, verbose_name="Verified at")),
                ("published", models.BooleanField(default=False, verbose_name="Published")),
                ("published_at", models.DateTimeField(blank=True, null=True, verbose_name="Published at")),
                ("matching_completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Matching completed at")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadata")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="Updated at")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                ("history_type", models.CharField(choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")], max_length=1)),
                ("history_user", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("seller", models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="+", to=settings.AUTH_USER_MODEL, verbose_name="Seller")),
            ],
            options={
                "verbose_name": "historical Harvest",
                "verbose_name_plural": "historical Harvests",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalPreorder",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("uuid", models.UUIDField(db_index=True, default=uuid.uuid4, editable=False, verbose_name="UUID")),
                ("sku", models.CharField(max_length=100, verbose_name="Product SKU")),
                ("variation_type", models.CharField(default="regular", max_length=30, verbose_name="Variation")),
                ("variation_name", models.CharField(blank=True, max_length=100, verbose_name="Variation name")),
                ("unit_key", models.CharField(default="kg", max_length=30, verbose_name="Unit")),
                ("quantity", models.DecimalField(decimal_places=4, help_text="Requested quantity, in units of unit_key", max_digits=12, verbose_name="Quantity")),
                ("unit_weight_kg", models.DecimalField(decimal_places=4, default=decimal.Decimal("1"), help_text="Kilograms per unit, converts quantity into harvest weight", max_digits=12, verbose_name="Unit weight (kg)")),
                ("unit_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name="Unit price")),
                ("expected_availability_date", models.DateField(blank=True, null=True, verbose_name="Expected availability")),
                ("status", models.CharField(choices=[("pending", "Pending"), ("reserved", "Reserved"), ("ready", "Ready"), ("fulfilled", "Fulfilled"), ("cancelled", "Cancelled"), ("partially_fulfilled", "Partially fulfilled")], db_index=True, default="pending", max_length=20, verbose_name="Status")),
                ("allocated_qty", models.DecimalField(blank=True, decimal_places=4, max_digits=12, null=True, verbose_name="Allocated (kg)")),
                ("matched_at", models.DateTimeField(blank=True, db_index=True, null=True, verbose_name="Matched at")),
                ("ready_at", models.DateTimeField(blank=True, null=True, verbose_name="Ready at")),
                ("version", models.PositiveIntegerField(default=1, verbose_name="Version")),
                ("status_updated_at", models.DateTimeField(blank=True, null=True, verbose_name="Status updated at")),
                ("notes", models.TextField(blank=True, verbose_name="Notes")),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="Updated at")),
                ("history_id", models.AutoField(primary_key=True, serialize=False)),
                ("history_date", models.DateTimeField(db_index=True)),
                ("history_change_reason", models.CharField(max_length=100, null=True)),
                ("history_type", models.CharField(choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")], max_length=1)),
                ("consumer", models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="+", to=settings.AUTH_USER_MODEL, verbose_name="Consumer")),
                ("harvest", models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="+", to="harvestman.harvest", verbose_name="Harvest")),
                ("history_user", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("seller", models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.DO_NOTHING, related_name="+", to=settings.AUTH_USER_MODEL, verbose_name="Seller")),
            ],
            options={
                "verbose_name": "historical Preorder",
                "verbose_name_plural": "historical Preorders",
                "ordering": ("-history_date", "-history_id"),
                "get_latest_by": ("history_date", "history_id"),
            },
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
