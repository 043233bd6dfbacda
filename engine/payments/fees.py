"""
Processing fee calculation
"""

from decimal import ROUND_HALF_UP, Decimal

from core.config.loader import FeePolicy
from core.types import PaymentMethod
from core.utils.money import CENT, ZERO


def calculate_fee(amount: Decimal, policy: FeePolicy) -> Decimal:
    """Card fee: amount x percent + fixed, rounded half-up to the cent

    Example:
        >>> calculate_fee(Decimal("40.00"), FeePolicy(Decimal("0.026"), Decimal("0.10")))
        Decimal('1.14')
    """
    return (amount * policy.percent + policy.fixed).quantize(CENT, rounding=ROUND_HALF_UP)


def fee_for_method(amount: Decimal, method: PaymentMethod, policy: FeePolicy) -> Decimal:
    """Only card payments carry a processing fee"""
    if PaymentMethod(method) != PaymentMethod.CARD:
        return ZERO
    return calculate_fee(amount, policy)
