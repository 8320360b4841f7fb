"""Size and price constants plus overflow-checked unsigned arithmetic."""

from __future__ import annotations

from quota_ledger.core.errors import ArithmeticOverflow, InvalidAmount

UINT128_MAX = (1 << 128) - 1
# Largest value a signed BIGINT column can hold.
MAX_STORED_INTEGER = (1 << 63) - 1

BYTES_PER_MB = 1024 * 1024
BYTES_PER_GB = 1024 * BYTES_PER_MB
BYTES_PER_TB = 1024 * BYTES_PER_GB

DEFAULT_QUOTA_BYTES = 100 * BYTES_PER_MB
MAX_FILE_SIZE_BYTES = 5 * BYTES_PER_GB
MAX_QUOTA_BYTES = BYTES_PER_TB

MAX_PACKAGE_GB = 1000
MAX_PACKAGE_BYTES = MAX_PACKAGE_GB * BYTES_PER_GB

MICRO_UNITS_PER_UNIT = 1_000_000
MAX_PACKAGE_PRICE = 100 * MICRO_UNITS_PER_UNIT
MAX_PRICE_PER_GB = 100 * MICRO_UNITS_PER_UNIT


def _require_uint(value: int, *, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"{field_name} must be an integer"
        raise InvalidAmount(msg)
    if value < 0 or value > UINT128_MAX:
        msg = f"{field_name} must be an unsigned 128-bit integer"
        raise InvalidAmount(msg)
    return value


def add_checked(a: int, b: int) -> int:
    """Add two unsigned values, rejecting any wrap-around."""
    _require_uint(a, field_name="a")
    _require_uint(b, field_name="b")
    total = (a + b) & UINT128_MAX
    if total < a or total < b:
        msg = f"addition overflow: {a} + {b}"
        raise ArithmeticOverflow(msg)
    return total


def sub_saturating(a: int, b: int) -> int:
    """Subtract ``b`` from ``a``, clamping at zero."""
    _require_uint(a, field_name="a")
    _require_uint(b, field_name="b")
    return a - b if a > b else 0


def mul_checked(a: int, b: int) -> int:
    """Multiply two unsigned values, rejecting any wrap-around."""
    _require_uint(a, field_name="a")
    _require_uint(b, field_name="b")
    if a == 0 or b == 0:
        return 0
    product = (a * b) & UINT128_MAX
    if product < a or product < b or product // b != a:
        msg = f"multiplication overflow: {a} * {b}"
        raise ArithmeticOverflow(msg)
    return product


def ensure_positive(value: int, *, field_name: str) -> int:
    """Reject zero (and non-integer) amounts."""
    _require_uint(value, field_name=field_name)
    if value == 0:
        msg = f"{field_name} must be greater than zero"
        raise InvalidAmount(msg)
    return value


def ensure_at_most(value: int, maximum: int, *, field_name: str) -> int:
    """Reject amounts above an absolute bound."""
    _require_uint(value, field_name=field_name)
    if value > maximum:
        msg = f"{field_name} exceeds maximum of {maximum}"
        raise InvalidAmount(msg)
    return value


def ensure_in_range(value: int, maximum: int, *, field_name: str) -> int:
    """Require ``0 < value <= maximum``."""
    ensure_positive(value, field_name=field_name)
    return ensure_at_most(value, maximum, field_name=field_name)


def gb_to_bytes(gb: int) -> int:
    """Convert a GB count to bytes, bounded by the package size maximum."""
    ensure_in_range(gb, MAX_PACKAGE_GB, field_name="additional_gb")
    size = mul_checked(gb, BYTES_PER_GB)
    return ensure_at_most(size, MAX_PACKAGE_BYTES, field_name="additional_bytes")
