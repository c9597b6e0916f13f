"""
Manifest/remote reconciliation.
"""

from .engine import ReconciliationEngine, UpdateResult, RemoteState

__all__ = [
    "ReconciliationEngine",
    "UpdateResult",
    "RemoteState"
]
