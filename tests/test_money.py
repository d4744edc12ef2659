"""Rounding and arithmetic tests for the Money value type."""

from decimal import Decimal, Inexact

import pytest
from pydantic import BaseModel, ValidationError

from split_ledger.money import MINOR_UNIT, PRECISION, SETTLEMENT_EPSILON, Money


class TestMoneyConstruction:
    """Building Money from different inputs."""

    def test_from_string_is_exact(self):
        assert Money("0.1").amount == Decimal("0.1")

    def test_float_goes_through_str(self):
        """0.1 must not become 0.1000000000000000055511151231257827..."""
        assert Money(0.1).amount == Decimal("0.1")

    def test_of_returns_same_instance(self):
        m = Money("5")
        assert Money.of(m) is m

    def test_rejects_garbage(self):
        with pytest.raises(ValueError, match="Invalid money amount"):
            Money("twelve")

    def test_rejects_non_finite(self):
        with pytest.raises(ValueError, match="finite"):
            Money("NaN")

    def test_rejects_bool(self):
        with pytest.raises(TypeError):
            Money(True)


class TestMoneyArithmetic:
    """Sums, differences and comparisons keep full precision."""

    def test_add_and_subtract(self):
        assert Money("10.10") + Money("0.20") == Money("10.30")
        assert Money("10.10") - Money("0.20") == Money("9.90")

    def test_sum_of_tenths_is_exact(self):
        """The classic float drift case: ten 0.1s sum to exactly 1."""
        assert sum([Money("0.1")] * 10, Money.zero()) == Money("1")

    def test_builtin_sum_starts_from_zero(self):
        assert sum([Money("1.5"), Money("2.5")]) == Money("4")

    def test_no_implicit_quantization(self):
        assert (Money("0.004999") + Money("0")).amount == Decimal("0.004999")

    def test_negation_and_abs(self):
        assert -Money("3") == Money("-3")
        assert abs(Money("-3")) == Money("3")

    def test_ordering(self):
        assert Money("1") < Money("2")
        assert Money("2") > Money("1")
        assert Money("-1") < 0
        assert sorted([Money("3"), Money("-1"), Money("2")]) == [
            Money("-1"),
            Money("2"),
            Money("3"),
        ]

    def test_equal_amounts_hash_equal(self):
        assert hash(Money("1.0")) == hash(Money("1.00"))

    def test_large_amounts_add_exactly(self):
        """Past the default 28-digit context, sums still keep every digit."""
        big = Money("12345678901234567890123456789.01")
        total = big + Money("0.01")
        assert total.amount == Decimal("12345678901234567890123456789.02")
        assert total - Money("0.01") == big

    def test_large_amounts_allocate_exactly(self):
        big = Money("98765432109876543210987654321.00")
        shares = big.allocate(3)
        assert sum(shares, Money.zero()) == big
        assert max(shares) - min(shares) <= Money(MINOR_UNIT)

    def test_negation_keeps_every_digit(self):
        big = Money("1234567890123456789012345678901234.5")
        assert (-big).amount == Decimal("-1234567890123456789012345678901234.5")
        assert abs(-big) == big

    def test_result_beyond_precision_raises(self):
        with pytest.raises(Inexact):
            Money(Decimal(10) ** PRECISION) + Money("0.01")


class TestSettledTolerance:
    """is_settled() uses the shared epsilon."""

    def test_epsilon_value(self):
        assert SETTLEMENT_EPSILON == Decimal("0.000001")

    def test_within_epsilon_is_settled(self):
        assert Money("0.000001").is_settled()
        assert Money("-0.0000005").is_settled()

    def test_half_cent_is_not_settled(self):
        assert not Money("0.004999").is_settled()
        assert not Money("-0.004999").is_settled()


class TestAllocate:
    """Even allocation always sums back to the original amount."""

    def test_even_division(self):
        assert Money("90").allocate(3) == [Money("30"), Money("30"), Money("30")]

    def test_remainder_goes_to_first_share(self):
        shares = Money("100").allocate(3)
        assert shares == [Money("33.34"), Money("33.33"), Money("33.33")]
        assert sum(shares, Money.zero()) == Money("100")

    def test_leftover_cents_spread_over_first_shares(self):
        """200 / 3 truncates to 66.66; the two leftover cents go one each to the first shares."""
        shares = Money("200").allocate(3)
        assert shares == [Money("66.67"), Money("66.67"), Money("66.66")]
        assert sum(shares, Money.zero()) == Money("200")

    def test_half_cent_quotient_truncates(self):
        """0.125 truncates to 0.12, leftover 0.01 goes to the first share."""
        shares = Money("0.25").allocate(2, MINOR_UNIT)
        assert shares == [Money("0.13"), Money("0.12")]

    def test_fewer_cents_than_parts(self):
        """7 cents across 9 people: nobody gets a negative share."""
        shares = Money("0.07").allocate(9)
        assert shares == [Money("0.01")] * 7 + [Money("0")] * 2
        assert sum(shares, Money.zero()) == Money("0.07")

    def test_small_amounts_never_yield_negative_shares(self):
        for cents in range(1, 60):
            amount = Money(Decimal(cents) / 100)
            for parts in range(1, 13):
                shares = amount.allocate(parts)
                assert all(share >= 0 for share in shares), (amount, parts, shares)
                assert sum(shares, Money.zero()) == amount
                assert max(shares) - min(shares) <= Money(MINOR_UNIT)

    def test_residue_finer_than_quantum_goes_to_first_share(self):
        shares = Money("1.005").allocate(2)
        assert shares == [Money("0.505"), Money("0.50")]

    def test_negative_amount_shares_stay_negative(self):
        shares = Money("-0.07").allocate(9)
        assert all(share <= 0 for share in shares)
        assert shares[:7] == [Money("-0.01")] * 7
        assert sum(shares, Money.zero()) == Money("-0.07")

    def test_many_parts(self):
        shares = Money("10").allocate(7)
        assert shares == [Money("1.43")] * 6 + [Money("1.42")]
        assert sum(shares, Money.zero()) == Money("10")

    def test_single_part(self):
        assert Money("40").allocate(1) == [Money("40")]

    def test_custom_quantum(self):
        shares = Money("10").allocate(3, Decimal("1"))
        assert shares == [Money("4"), Money("3"), Money("3")]

    def test_zero_parts_rejected(self):
        with pytest.raises(ValueError, match="0 parts"):
            Money("10").allocate(0)


class TestPydanticIntegration:
    """Money works as a pydantic field type."""

    class Row(BaseModel):
        amount: Money

    def test_validates_from_string(self):
        row = self.Row(amount="12.34")
        assert row.amount == Money("12.34")

    def test_serializes_as_string(self):
        assert self.Row(amount="12.34").model_dump(mode="json") == {"amount": "12.34"}

    def test_invalid_value_raises_validation_error(self):
        with pytest.raises(ValidationError):
            self.Row(amount="abc")

    def test_unsupported_type_raises_validation_error(self):
        with pytest.raises(ValidationError):
            self.Row(amount=[1, 2])
