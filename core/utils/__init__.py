"""
Core utilities
"""

from core.utils.money import (
    CENT,
    ZERO,
    from_minor,
    split_fair_share,
    to_minor,
    to_money,
)
from core.utils.timezone import now_utc, parse_iso, to_iso, today_utc

__all__ = [
    "CENT",
    "ZERO",
    "to_money",
    "to_minor",
    "from_minor",
    "split_fair_share",
    "now_utc",
    "to_iso",
    "parse_iso",
    "today_utc",
]
