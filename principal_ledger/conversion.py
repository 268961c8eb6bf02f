"""
conversion.py - Principal/underlying conversion math

Pure integer functions. Every conversion multiplies before it divides and
floors the quotient, so a round trip never hands the redeemer more than they
started with:

    to_principal(to_underlying(x, r, m), r, m) <= x

Intermediate products above UINT256_MAX raise ConversionOverflow rather than
being silently accepted.
"""

from __future__ import annotations

from .core import ConversionOverflow, UINT256_MAX


def checked_mul(a: int, b: int) -> int:
    """Multiply two non-negative ints, raising ConversionOverflow past UINT256_MAX."""
    if a < 0 or b < 0:
        raise ValueError(f"operands must be non-negative, got {a} and {b}")
    product = a * b
    if product > UINT256_MAX:
        raise ConversionOverflow(f"{a} * {b} exceeds uint256")
    return product


def mul_div_down(x: int, numerator: int, denominator: int) -> int:
    """Return floor(x * numerator / denominator)."""
    if denominator == 0:
        raise ConversionOverflow("division by zero rate")
    return checked_mul(x, numerator) // denominator


def to_underlying(principal_amount: int, rate: int, maturity_rate: int) -> int:
    """Convert a principal amount to underlying: principal * rate / maturity_rate."""
    return mul_div_down(principal_amount, rate, maturity_rate)


def to_principal(underlying_amount: int, rate: int, maturity_rate: int) -> int:
    """Convert an underlying amount to principal: underlying * maturity_rate / rate."""
    return mul_div_down(underlying_amount, maturity_rate, rate)
