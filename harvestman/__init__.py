"""
Django Harvestman - Harvest to Preorder Matching.

Publishes harvests and reserves them against pending preorders, oldest first.

Usage:
    from harvestman import matching, HarvestError

    harvest.publish(user=seller)   # matches automatically after commit

    # Or run it yourself (idempotent)
    try:
        result = matching.run(harvest.pk)
    except HarvestError as e:
        if e.retriable:
            ...

    for event in result.events:
        print(f"{event.preorder_id}: {event.allocated_qty} kg"
              f"{' (partial)' if event.partial else ''}")
"""

from harvestman.exceptions import HarvestError


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in ("matching", "HarvestMatching"):
        from harvestman.services.matching import HarvestMatching

        return HarvestMatching
    if name == "run_matching":
        from harvestman.services.matching import run_matching

        return run_matching
    if name == "MatchResult":
        from harvestman.results import MatchResult

        return MatchResult
    if name == "MatchEvent":
        from harvestman.results import MatchEvent

        return MatchEvent
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["matching", "HarvestMatching", "run_matching", "HarvestError", "MatchResult", "MatchEvent"]
__version__ = "0.1.0"
