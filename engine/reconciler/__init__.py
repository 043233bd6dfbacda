"""
Reconciler module

Processor transaction sync, linking and reconciliation
"""

from engine.reconciler.reconciler import Reconciler, SyncResult

__all__ = [
    "Reconciler",
    "SyncResult",
]
