"""
Harvestman Models.

Ledger models for harvest-to-preorder matching:
- Harvest: Published lot of harvested goods (supply)
- Preorder: Outstanding consumer request (demand)
"""

from harvestman.models.harvest import Harvest, HarvestQuerySet
from harvestman.models.preorder import Preorder, PreorderQuerySet, PreorderStatus

__all__ = [
    "Harvest",
    "HarvestQuerySet",
    "Preorder",
    "PreorderQuerySet",
    "PreorderStatus",
]
