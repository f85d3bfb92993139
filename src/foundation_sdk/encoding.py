"""
encoding.py – Bit-exact encodings shared by the perpetual and spot venues.

Account id
----------
A bytes32 hex string derived from the wallet address and three numeric
fields, each zero-padded to a fixed number of decimal digits:

    0x<address:40 hex><broker_id:8><0000><product_type:8><subaccount:4>

Order flag
----------
A uint64 packing the order's execution options (bit 63 = MSB):

    63-62  time_in_force index      [default, ioc, fok, post_only]
    61     reduce_only
    60     is_market_order
    59-58  self_trade_behavior index [cancel_provide, decrease_take, expire_both, fill]
    57-0   expires_at (Unix seconds, 0 = no expiry)

Nonce
-----
``((now_ms + 20_000) << 20) | random``: time-derived high bits with a
20 s forward skew, low bits random to make collisions between orders
minted in the same millisecond unlikely (not impossible).
"""

from __future__ import annotations

import secrets
import string
import time
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation, localcontext
from enum import Enum
from typing import Any, Callable, Optional, Union

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from .errors import InvalidArgument
from .types import (
    DEFAULT_ORDER_FLAG,
    EXPIRES_AT_LIMIT,
    OrderFlag,
    ProductType,
    SelfTradeBehavior,
    Side,
    TimeInForce,
)

# ---------------------------------------------------------------------------
# Account id
# ---------------------------------------------------------------------------

_BROKER_ID_LIMIT    = 10 ** 8
_PRODUCT_TYPE_LIMIT = 10 ** 8
_SUBACCOUNT_LIMIT   = 10 ** 4

# Reserved field between broker id and product type
_RESERVED_FILLER = "0000"

# Product type 1 with the reserved filler, as hard-coded by the first
# perpetual deployments
_LEGACY_PERP_FIELD = "000000000001"


def _validate_address(address: str) -> str:
    """Check the address shape and return it with a lowercase ``0x`` prefix."""
    if not isinstance(address, str) or address[:2] not in ("0x", "0X"):
        raise InvalidArgument(f"address must be a 0x-prefixed hex string, got {address!r}")
    body = address[2:]
    if len(body) != 40:
        raise InvalidArgument(f"address must hold 20 bytes, got {len(body) // 2}")
    if not all(c in string.hexdigits for c in body):
        raise InvalidArgument(f"address {address!r} is not valid hex")
    return "0x" + body


def _check_digits(name: str, value: int, limit: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer, got {value!r}")
    if not (0 <= value < limit):
        raise InvalidArgument(f"{name} must be in [0, {limit}), got {value}")
    return value


def build_account_id(
    address: str,
    product_type: Union[ProductType, int],
    broker_id: int,
    subaccount_index: int,
) -> str:
    """
    Derive the bytes32 account id of a wallet's subaccount.

    Raises InvalidArgument if the address is not 20 bytes of hex or a
    numeric field does not fit its digit width.
    """
    address = _validate_address(address)
    _check_digits("product_type", product_type, _PRODUCT_TYPE_LIMIT)
    _check_digits("broker_id", broker_id, _BROKER_ID_LIMIT)
    _check_digits("subaccount_index", subaccount_index, _SUBACCOUNT_LIMIT)
    return (
        f"{address}{broker_id:08d}{_RESERVED_FILLER}"
        f"{int(product_type):08d}{subaccount_index:04d}"
    )


def build_perp_account_id(address: str, broker_id: int, subaccount_index: int) -> str:
    """
    Perpetual account id with the product field written as a literal.

    Equal to ``build_account_id(address, ProductType.PERPETUAL, ...)``.
    """
    address = _validate_address(address)
    _check_digits("broker_id", broker_id, _BROKER_ID_LIMIT)
    _check_digits("subaccount_index", subaccount_index, _SUBACCOUNT_LIMIT)
    return f"{address}{broker_id:08d}{_LEGACY_PERP_FIELD}{subaccount_index:04d}"


# ---------------------------------------------------------------------------
# Order flag
# ---------------------------------------------------------------------------

_TIF_SHIFT         = 62
_REDUCE_ONLY_SHIFT = 61
_MARKET_SHIFT      = 60
_STB_SHIFT         = 58
_UINT64_LIMIT      = 1 << 64

# Override keys accepted by resolve_flag, in snake_case and camelCase
_FLAG_KEYS = frozenset(
    key for name in OrderFlag.model_fields for key in (name, to_camel(name))
)


def _ordinal(enum_cls: type[Enum], value: Any) -> int:
    """Position of ``value`` in the fixed member order of ``enum_cls``."""
    try:
        member = enum_cls(value)
    except ValueError:
        raise InvalidArgument(f"{value!r} is not a valid {enum_cls.__name__}") from None
    return list(enum_cls).index(member)


def encode_flag(flag: OrderFlag) -> int:
    """Pack an OrderFlag into its uint64 representation."""
    tif = _ordinal(TimeInForce, flag.time_in_force)
    stb = _ordinal(SelfTradeBehavior, flag.self_trade_behavior)
    expires_at = flag.expires_at or 0
    if not (0 <= expires_at < EXPIRES_AT_LIMIT):
        raise InvalidArgument(f"expires_at must fit in 58 bits, got {expires_at}")
    return (
        (tif << _TIF_SHIFT)
        | (int(flag.reduce_only) << _REDUCE_ONLY_SHIFT)
        | (int(flag.is_market_order) << _MARKET_SHIFT)
        | (stb << _STB_SHIFT)
        | expires_at
    )


def decode_flag(value: int) -> OrderFlag:
    """Inverse of encode_flag.  An expiry of 0 decodes to None."""
    if not (0 <= value < _UINT64_LIMIT):
        raise InvalidArgument(f"encoded flag must be a uint64, got {value}")
    expires_at = value & (EXPIRES_AT_LIMIT - 1)
    return OrderFlag(
        time_in_force=list(TimeInForce)[(value >> _TIF_SHIFT) & 0b11],
        reduce_only=bool((value >> _REDUCE_ONLY_SHIFT) & 1),
        is_market_order=bool((value >> _MARKET_SHIFT) & 1),
        self_trade_behavior=list(SelfTradeBehavior)[(value >> _STB_SHIFT) & 0b11],
        expires_at=expires_at or None,
    )


def resolve_flag(overrides: Union[None, OrderFlag, Mapping[str, Any]] = None) -> OrderFlag:
    """
    Overlay caller overrides onto DEFAULT_ORDER_FLAG.

    ``overrides`` may be an OrderFlag (used as is) or a mapping using
    either snake_case or camelCase keys.  Unknown keys are rejected.
    """
    if overrides is None:
        return DEFAULT_ORDER_FLAG
    if isinstance(overrides, OrderFlag):
        return overrides
    unknown = sorted(str(key) for key in overrides if key not in _FLAG_KEYS)
    if unknown:
        raise InvalidArgument(f"unknown order flag option(s): {', '.join(unknown)}")
    try:
        return OrderFlag.model_validate(dict(overrides))
    except ValidationError as exc:
        raise InvalidArgument(f"invalid order flag: {exc}") from exc


def flag_to_wire(flag: OrderFlag) -> dict[str, Any]:
    """Order flag as the venue expects it inside trade params."""
    return {
        "time_in_force":       flag.time_in_force.value,
        "reduce_only":         flag.reduce_only,
        "expires_at":          flag.expires_at,
        "is_market_order":     flag.is_market_order,
        "self_trade_behavior": flag.self_trade_behavior.value,
    }


# ---------------------------------------------------------------------------
# Fixed-point amounts
# ---------------------------------------------------------------------------

X18 = 10 ** 18


def to_x18(value: Union[str, int, Decimal]) -> int:
    """Convert a decimal string to an 18-decimal fixed-point integer."""
    if isinstance(value, bool):
        raise InvalidArgument(f"expected a decimal amount, got {value!r}")
    try:
        d = Decimal(str(value).strip())
    except InvalidOperation:
        raise InvalidArgument(f"{value!r} is not a valid decimal string") from None
    if not d.is_finite():
        raise InvalidArgument(f"{value!r} is not a finite decimal")
    with localcontext() as ctx:
        ctx.prec = 100
        scaled = d * X18
        if scaled != scaled.to_integral_value():
            raise InvalidArgument(f"{value!r} has more than 18 decimal places")
    return int(scaled)


def from_x18(value: int) -> str:
    """Format an 18-decimal fixed-point integer without trailing zeros."""
    sign = "-" if value < 0 else ""
    whole, frac = divmod(abs(value), X18)
    frac_digits = f"{frac:018d}".rstrip("0")
    if frac_digits:
        return f"{sign}{whole}.{frac_digits}"
    return f"{sign}{whole}"


def positive_x18(value: Union[str, int, Decimal], name: str = "value") -> int:
    """to_x18, rejecting zero and negative values."""
    scaled = to_x18(value)
    if scaled <= 0:
        raise InvalidArgument(f"{name} must be positive, got {value!r}")
    return scaled


def check_uint64(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgument(f"{name} must be an integer, got {value!r}")
    if not (0 <= value < _UINT64_LIMIT):
        raise InvalidArgument(f"{name} must be a uint64, got {value}")
    return value


def parse_side(side: Union[Side, str]) -> Side:
    try:
        return Side(side)
    except ValueError:
        raise InvalidArgument(f"{side!r} is not a valid Side") from None


def signed_amount(side: Union[Side, str], amount_x18: int) -> int:
    """
    Map (side, amount) to the signed amount carried by an order message.

    The sign is the side: bids are positive, asks negative.  No other
    field of the signed payload encodes the side.
    """
    side = parse_side(side)
    if amount_x18 <= 0:
        raise InvalidArgument(f"amount must be positive, got {from_x18(amount_x18)}")
    return amount_x18 if side is Side.BID else -amount_x18


# ---------------------------------------------------------------------------
# Nonce
# ---------------------------------------------------------------------------

NONCE_SKEW_MS = 20_000
NONCE_SHIFT   = 20

PERP_NONCE_RANGE = (0, 10_000)
SPOT_NONCE_RANGE = (1_000, 30_000)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def make_nonce(now_ms: int, random_part: int) -> int:
    return ((now_ms + NONCE_SKEW_MS) << NONCE_SHIFT) | random_part


class NonceProvider:
    """
    Callable minting a fresh nonce per signed message.

    Parameters
    ----------
    low, high : half-open range of the random low bits
    clock     : returns Unix milliseconds (default: wall clock)
    randbelow : returns an int in [0, n) (default: secrets.randbelow)
    """

    def __init__(
        self,
        low: int = PERP_NONCE_RANGE[0],
        high: int = PERP_NONCE_RANGE[1],
        *,
        clock: Optional[Callable[[], int]] = None,
        randbelow: Optional[Callable[[int], int]] = None,
    ) -> None:
        if not (0 <= low < high <= 1 << NONCE_SHIFT):
            raise InvalidArgument(f"nonce range [{low}, {high}) must lie within 20 bits")
        self.low        = low
        self.high       = high
        self._clock     = clock or _now_ms
        self._randbelow = randbelow or secrets.randbelow

    def __call__(self) -> int:
        return make_nonce(self._clock(), self.low + self._randbelow(self.high - self.low))
