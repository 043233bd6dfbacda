"""
Billing module

Fair-share billing records and their per-scout charges
"""

from engine.billing.engine import BillingEngine
from engine.billing.repository import BillingCharge, BillingRecord, BillingRepository

__all__ = [
    "BillingEngine",
    "BillingRepository",
    "BillingRecord",
    "BillingCharge",
]
