"""
test_conversion.py - Unit tests for principal/underlying conversion math
"""

import pytest

from principal_ledger import (
    checked_mul, mul_div_down, to_underlying, to_principal,
    ConversionOverflow, RATE_SCALE, UINT256_MAX,
)


class TestCheckedMul:

    def test_product(self):
        assert checked_mul(6, 7) == 42

    def test_boundary_is_allowed(self):
        assert checked_mul(UINT256_MAX, 1) == UINT256_MAX

    def test_overflow(self):
        with pytest.raises(ConversionOverflow):
            checked_mul(2 ** 128, 2 ** 128)

    def test_negative_operand(self):
        with pytest.raises(ValueError):
            checked_mul(-1, 5)


class TestMulDivDown:

    def test_floors(self):
        assert mul_div_down(10, 1, 3) == 3

    def test_zero_denominator(self):
        with pytest.raises(ConversionOverflow, match="zero"):
            mul_div_down(10, 1, 0)

    def test_exact(self):
        assert mul_div_down(100, 3 * RATE_SCALE, 2 * RATE_SCALE) == 150


class TestConversions:

    def test_equal_rates_are_identity(self):
        rate = 2 * RATE_SCALE
        assert to_underlying(100, rate, rate) == 100
        assert to_principal(100, rate, rate) == 100

    def test_growth_after_lock(self):
        assert to_underlying(100, 3 * RATE_SCALE, 2 * RATE_SCALE) == 150
        assert to_principal(150, 3 * RATE_SCALE, 2 * RATE_SCALE) == 100

    def test_rounds_down_against_redeemer(self):
        # 1 * 2 / 3 = 0.66..
        assert to_underlying(1, 2, 3) == 0
        assert to_principal(1, 3, 2) == 0

    def test_overflow_in_numerator(self):
        with pytest.raises(ConversionOverflow):
            to_underlying(2 ** 200, 2 ** 60, 1)

    def test_zero_amount(self):
        assert to_underlying(0, 5, 7) == 0
