"""
Money utilities

All ledger amounts are Decimal quantized to the cent.
The card processor speaks integer minor units (cents).
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str) -> Decimal:
    """Convert to a cent-quantized Decimal

    Floats are rejected to avoid binary rounding surprises.

    Args:
        value: Decimal, int or numeric string

    Returns:
        Decimal with two decimal places

    Raises:
        ValueError: float input or a non-numeric string
    """
    if isinstance(value, float):
        raise ValueError("Money values must not be float; use Decimal or str")
    try:
        amount = Decimal(str(value)) if not isinstance(value, Decimal) else value
    except InvalidOperation as e:
        raise ValueError(f"Not a money value: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a money value: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_minor(amount: Decimal) -> int:
    """Dollars -> cents

    Example:
        >>> to_minor(Decimal("40.00"))
        4000
    """
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor(minor: int) -> Decimal:
    """Cents -> dollars

    Example:
        >>> from_minor(3886)
        Decimal('38.86')
    """
    return (Decimal(minor) / 100).quantize(CENT)


def split_fair_share(total: Decimal, count: int) -> list[Decimal]:
    """Split a total evenly to the cent (largest remainder)

    Every share gets floor(total / count) cents; the leftover cents go one
    each to the first shares in input order, so the shares always sum to
    the total exactly.

    Args:
        total: amount to split (> 0)
        count: number of shares (>= 1)

    Returns:
        list of shares, same length as count

    Raises:
        ValueError: non-positive total or count

    Example:
        >>> split_fair_share(Decimal("100.00"), 3)
        [Decimal('33.34'), Decimal('33.33'), Decimal('33.33')]
    """
    if count < 1:
        raise ValueError("count must be at least 1")
    total_minor = to_minor(total)
    if total_minor <= 0:
        raise ValueError("total must be positive")

    base, remainder = divmod(total_minor, count)
    return [
        from_minor(base + (1 if i < remainder else 0))
        for i in range(count)
    ]
