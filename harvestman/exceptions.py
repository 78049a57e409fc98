"""
Harvestman Exceptions.

All harvestman errors are wrapped in HarvestError for consistent handling.
"""

from typing import Any


class HarvestError(Exception):
    """
    Base exception for all Harvestman errors.

    Usage:
        raise HarvestError('HARVEST_NOT_FOUND', harvest_id=42)

    Attributes:
        code: Error code (HARVEST_NOT_FOUND, CONCURRENT_MODIFICATION, etc.)
        details: Additional context as keyword arguments
    """

    def __init__(self, code: str, **details: Any):
        self.code = code
        self.details = details
        message = f"{code}: {details}" if details else code
        super().__init__(message)

    @property
    def retriable(self) -> bool:
        """True when re-running against fresh state may succeed."""
        return self.code in RETRIABLE_CODES

    def as_dict(self) -> dict:
        """Return error as dictionary for API responses."""
        return {"code": self.code, **self.details}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"HarvestError({self.code}: {details_str})"
        return f"HarvestError({self.code})"


# Common error codes
# HARVEST_NOT_FOUND: Harvest does not exist (or vanished mid-run)
# PREORDER_NOT_FOUND: Preorder vanished between selection and persistence
# CONCURRENT_MODIFICATION: Another process changed the harvest/preorder
# PERSISTENCE_FAILURE: Database rejected the write or is unreachable
# HARVEST_NOT_PUBLISHED: Matching requested for an unpublished harvest
# INVALID_QUANTITY: Quantity or unit weight is not positive

RETRIABLE_CODES = frozenset(
    {
        "HARVEST_NOT_FOUND",
        "PREORDER_NOT_FOUND",
        "CONCURRENT_MODIFICATION",
    }
)
