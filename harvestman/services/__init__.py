"""
Harvestman Services.

Business logic that doesn't belong in models:
- selection: Eligible pending preorders for a harvest, FIFO
- allocation: Pure FIFO weight allocation (no database access)
- matching: Transactional run that reserves preorders against a harvest
"""

from harvestman.services.allocation import (
    AllocationDecision,
    AllocationPlan,
    DemandSnapshot,
    SkippedDemand,
    plan_allocation,
    required_weight,
)
from harvestman.services.matching import HarvestMatching, run_matching
from harvestman.services.selection import eligible_preorders, select_eligible_preorders

__all__ = [
    "HarvestMatching",
    "run_matching",
    "eligible_preorders",
    "select_eligible_preorders",
    "AllocationDecision",
    "AllocationPlan",
    "DemandSnapshot",
    "SkippedDemand",
    "plan_allocation",
    "required_weight",
]
