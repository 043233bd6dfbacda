"""
Voiding module

Non-destructive correction of billing and payments
"""

from engine.voiding.engine import VoidEngine

__all__ = [
    "VoidEngine",
]
