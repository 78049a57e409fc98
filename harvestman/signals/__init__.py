"""
Harvestman Signals.

All communication with external systems happens via signals.
This ensures decoupling and allows for easy testing.

Signals:
    harvest_published: Harvest became available, matching should run
    preorder_matched: A preorder was reserved against a harvest (post-commit)
    matching_completed: A matching run committed (post-commit)
"""

from django.dispatch import Signal

# Harvest published - matching should run
# Sent by Harvest.publish() after the publishing transaction commits
# Args: harvest, user
harvest_published = Signal()

# Preorder reserved - notify consumer and seller
# Sent once per reserved preorder, after the matching transaction commits
# Args: event (MatchEvent)
preorder_matched = Signal()

# Matching run committed
# Args: harvest, result (MatchResult)
matching_completed = Signal()

__all__ = ["harvest_published", "preorder_matched", "matching_completed"]
