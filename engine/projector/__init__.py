"""
Projector module

Cached scout balances derived from the journal
"""

from engine.projector.projector import BalanceDrift, BalanceProjector

__all__ = [
    "BalanceProjector",
    "BalanceDrift",
]
