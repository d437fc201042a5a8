"""pointsync - Card reward points tracker with offline-first cloud sync."""

from pointsync.cache import LocalCacheStore
from pointsync.controller import ReconciliationController
from pointsync.models import Transaction
from pointsync.points import compute_milestone_bonus, compute_points

__version__ = "0.1.0"
__all__ = [
    "LocalCacheStore",
    "ReconciliationController",
    "Transaction",
    "compute_milestone_bonus",
    "compute_points",
]
