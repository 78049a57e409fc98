"""
Shared fixtures for Harvestman tests.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from harvestman.conf import reset_notification_backend
from harvestman.models import Harvest, Preorder

User = get_user_model()


@pytest.fixture(autouse=True)
def _fresh_notification_backend():
    reset_notification_backend()
    yield
    reset_notification_backend()


@pytest.fixture
def seller(db):
    return User.objects.create_user(username="seller", password="test123")


@pytest.fixture
def consumer(db):
    return User.objects.create_user(username="consumer", password="test123")


@pytest.fixture
def make_harvest(db, seller):
    """Factory: published, verified harvest with the given weight."""

    def _make(weight="10", *, sku="RICE-001", variation_type="regular", unit_key="kg", published=True, **kwargs):
        return Harvest.objects.create(
            seller=seller,
            sku=sku,
            variation_type=variation_type,
            unit_key=unit_key,
            actual_weight_kg=Decimal(weight),
            verified=True,
            published=published,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_preorder(db, consumer, seller):
    """Factory: pending preorder; unit weight 1 kg unless given."""

    def _make(quantity="1", *, unit_weight_kg="1", sku="RICE-001", variation_type="regular", unit_key="kg", **kwargs):
        kwargs.setdefault("consumer", consumer)
        kwargs.setdefault("seller", seller)
        return Preorder.objects.create(
            sku=sku,
            variation_type=variation_type,
            unit_key=unit_key,
            quantity=Decimal(quantity),
            unit_weight_kg=Decimal(unit_weight_kg),
            **kwargs,
        )

    return _make
