"""
Harvestman Settings.

Supports two formats (dict takes priority):

    # Option 1: Dict
    HARVESTMAN = {
        "ALLOCATION_TOLERANCE": Decimal("0.0001"),
        "NOTIFICATION_BACKEND": "myproject.notifications.PusherBackend",
    }

    # Option 2: Flat
    HARVESTMAN_ALLOCATION_TOLERANCE = Decimal("0.0001")
    HARVESTMAN_AUTO_MATCH_ON_PUBLISH = False

All settings have sensible defaults, zero configuration required.
"""

import threading
from decimal import Decimal

from django.conf import settings


# ── Defaults ──

DEFAULTS = {
    "ALLOCATION_TOLERANCE": Decimal("0.0001"),
    "WEIGHT_DECIMAL_PLACES": 4,
    "AUTO_MATCH_ON_PUBLISH": True,
    "NOTIFICATION_BACKEND": None,
}


# ── Accessors ──

_sentinel = object()


def get_setting(name, default=_sentinel):
    """
    Get a harvestman setting.

    Looks up in order:
    1. HARVESTMAN dict (e.g. HARVESTMAN = {"ALLOCATION_TOLERANCE": ...})
    2. Flat setting (e.g. HARVESTMAN_ALLOCATION_TOLERANCE = ...)
    3. DEFAULTS
    """
    harvestman_dict = getattr(settings, "HARVESTMAN", {})
    if name in harvestman_dict:
        return harvestman_dict[name]

    flat_value = getattr(settings, f"HARVESTMAN_{name}", _sentinel)
    if flat_value is not _sentinel:
        return flat_value

    if default is not _sentinel:
        return default

    return DEFAULTS.get(name)


def get_allocation_tolerance() -> Decimal:
    """Tolerance (kg) under which 'required' still counts as fitting 'remaining'."""
    return Decimal(str(get_setting("ALLOCATION_TOLERANCE")))


def get_weight_quantum() -> Decimal:
    """Smallest weight step, e.g. Decimal("0.0001") for 4 decimal places."""
    places = int(get_setting("WEIGHT_DECIMAL_PLACES"))
    return Decimal(1).scaleb(-places)


_notification_backend_lock = threading.Lock()
_notification_backend_instance = None


def get_notification_backend():
    """
    Return the configured notification backend instance, or None.

    The notification backend receives one MatchEvent per reserved preorder,
    after the matching transaction has committed.
    """
    global _notification_backend_instance

    path = get_setting("NOTIFICATION_BACKEND")
    if not path:
        return None

    if _notification_backend_instance is None:
        with _notification_backend_lock:
            if _notification_backend_instance is None:  # double-checked
                from django.utils.module_loading import import_string

                _notification_backend_instance = import_string(path)()

    return _notification_backend_instance


def reset_notification_backend() -> None:
    """Reset singleton (for tests)."""
    global _notification_backend_instance
    _notification_backend_instance = None
