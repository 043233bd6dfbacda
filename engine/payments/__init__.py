"""
Payments module

Payment recording, card capture, refunds and processing fees
"""

from engine.payments.adapter import PaymentAdapter
from engine.payments.fees import calculate_fee, fee_for_method
from engine.payments.repository import Payment, PaymentRepository, SquareTransaction

__all__ = [
    "PaymentAdapter",
    "PaymentRepository",
    "Payment",
    "SquareTransaction",
    "calculate_fee",
    "fee_for_method",
]
