"""
Transfer module

Funds <-> billing movements and fundraising credits
"""

from engine.transfer.service import FundTransferService

__all__ = [
    "FundTransferService",
]
