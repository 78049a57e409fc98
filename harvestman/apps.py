"""
Django Harvestman app configuration.
"""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class HarvestmanConfig(AppConfig):
    """Harvestman application configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "harvestman"
    verbose_name = _("Harvest Matching")

    def ready(self):
        """Import signal handlers when app is ready."""
        # Import handlers to register them
        from harvestman.signals import handlers  # noqa: F401
