"""
core/utils/money.py tests

Cent quantization, minor-unit conversion and fair-share splitting.
"""

from decimal import Decimal

import pytest

from core.utils.money import ZERO, from_minor, split_fair_share, to_minor, to_money


class TestToMoney:
    """to_money tests"""

    def test_string_is_quantized(self) -> None:
        assert to_money("40") == Decimal("40.00")
        assert str(to_money("40")) == "40.00"

    def test_int(self) -> None:
        assert to_money(5) == Decimal("5.00")

    def test_rounds_half_up(self) -> None:
        assert to_money("1.005") == Decimal("1.01")
        assert to_money("1.004") == Decimal("1.00")

    def test_float_rejected(self) -> None:
        """Floats never enter the ledger"""
        with pytest.raises(ValueError, match="float"):
            to_money(40.0)

    def test_garbage_rejected(self) -> None:
        with pytest.raises(ValueError):
            to_money("forty")

    def test_infinity_rejected(self) -> None:
        with pytest.raises(ValueError):
            to_money("Infinity")


class TestMinorUnits:
    """to_minor / from_minor tests"""

    def test_to_minor(self) -> None:
        assert to_minor(Decimal("40.00")) == 4000
        assert to_minor(Decimal("0.01")) == 1

    def test_from_minor(self) -> None:
        assert from_minor(3886) == Decimal("38.86")
        assert from_minor(0) == ZERO

    def test_fee_example(self) -> None:
        """$40 card payment at 2.6% + 10c is 114 cents"""
        assert from_minor(114) == Decimal("1.14")


class TestSplitFairShare:
    """split_fair_share tests"""

    def test_even_split(self) -> None:
        shares = split_fair_share(Decimal("320.00"), 8)

        assert shares == [Decimal("40.00")] * 8

    def test_remainder_goes_to_first_shares(self) -> None:
        shares = split_fair_share(Decimal("100.00"), 3)

        assert shares == [Decimal("33.34"), Decimal("33.33"), Decimal("33.33")]

    def test_two_leftover_cents(self) -> None:
        shares = split_fair_share(Decimal("0.05"), 3)

        assert shares == [Decimal("0.02"), Decimal("0.02"), Decimal("0.01")]

    @pytest.mark.parametrize("total,count", [
        ("100.00", 3),
        ("99.99", 7),
        ("0.10", 10),
        ("1234.57", 11),
    ])
    def test_shares_sum_to_total(self, total: str, count: int) -> None:
        shares = split_fair_share(Decimal(total), count)

        assert len(shares) == count
        assert sum(shares, ZERO) == Decimal(total)
        assert max(shares) - min(shares) <= Decimal("0.01")

    def test_single_share(self) -> None:
        assert split_fair_share(Decimal("12.34"), 1) == [Decimal("12.34")]

    def test_zero_count_rejected(self) -> None:
        with pytest.raises(ValueError):
            split_fair_share(Decimal("10.00"), 0)

    def test_non_positive_total_rejected(self) -> None:
        with pytest.raises(ValueError):
            split_fair_share(Decimal("0.00"), 2)
        with pytest.raises(ValueError):
            split_fair_share(Decimal("-5.00"), 2)
