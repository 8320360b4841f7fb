# ruff: noqa: S101
from __future__ import annotations

import pytest

from quota_ledger.core.errors import ArithmeticOverflow, InvalidAmount
from quota_ledger.core.units import (
    BYTES_PER_GB,
    MAX_PACKAGE_GB,
    UINT128_MAX,
    add_checked,
    ensure_in_range,
    gb_to_bytes,
    mul_checked,
    sub_saturating,
)


def test_add_checked_returns_sum_within_range() -> None:
    assert add_checked(40, 2) == 42
    assert add_checked(UINT128_MAX - 1, 1) == UINT128_MAX


def test_add_checked_rejects_wrap_around() -> None:
    with pytest.raises(ArithmeticOverflow):
        add_checked(UINT128_MAX, 1)


def test_overflow_is_reported_as_invalid_amount() -> None:
    with pytest.raises(InvalidAmount):
        add_checked(UINT128_MAX, UINT128_MAX)


def test_sub_saturating_clamps_at_zero() -> None:
    assert sub_saturating(10, 3) == 7
    assert sub_saturating(3, 10) == 0
    assert sub_saturating(0, 0) == 0


def test_mul_checked_handles_zero_and_rejects_overflow() -> None:
    assert mul_checked(0, UINT128_MAX) == 0
    assert mul_checked(7, 6) == 42
    with pytest.raises(ArithmeticOverflow):
        mul_checked(1 << 64, 1 << 64)


@pytest.mark.parametrize("value", [-1, 1.5, True, "3"])
def test_guard_rejects_non_unsigned_inputs(value: object) -> None:
    with pytest.raises(InvalidAmount):
        add_checked(value, 1)  # type: ignore[arg-type]


def test_ensure_in_range_rejects_zero_and_values_above_maximum() -> None:
    assert ensure_in_range(5, 5, field_name="size") == 5
    with pytest.raises(InvalidAmount, match="greater than zero"):
        ensure_in_range(0, 5, field_name="size")
    with pytest.raises(InvalidAmount, match="exceeds maximum"):
        ensure_in_range(6, 5, field_name="size")


def test_gb_to_bytes_uses_binary_gigabytes_and_bounds() -> None:
    assert gb_to_bytes(1) == BYTES_PER_GB
    assert gb_to_bytes(MAX_PACKAGE_GB) == MAX_PACKAGE_GB * (1 << 30)
    with pytest.raises(InvalidAmount):
        gb_to_bytes(0)
    with pytest.raises(InvalidAmount):
        gb_to_bytes(MAX_PACKAGE_GB + 1)
