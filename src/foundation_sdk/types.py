"""
types.py – Pydantic v2 models for the Foundation Network RPC and REST schema.

All monetary values (price, amount, fee, balance) travel as decimal
strings to preserve precision; the models keep that convention and store
them as str.  Convert with Decimal (or ``encoding.to_x18``) for arithmetic.

Two venue protocol versions share most of the vocabulary but differ in
their order schema:

  PendingOrder      – perpetual venue (single ``quote_fee`` column)
  SpotPendingOrder  – spot venue (system/broker fee split + fee tiers)

Deserialisation
---------------
Use Model.model_validate(raw_dict) to parse RPC results:

    depth  = Depth.model_validate(result)
    orders = [PendingOrder.model_validate(o) for o in result]
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum, IntEnum, unique
from typing import Any, Optional, Union
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

@unique
class ProductType(IntEnum):
    """Product tag embedded in every account id."""
    UNKNOWN   = 0
    PERPETUAL = 1
    SPOT      = 2


@unique
class Side(str, Enum):
    BID = "bid"
    ASK = "ask"


# Member order is part of the wire format: the index of each member is
# what ends up in the encoded order flag.
@unique
class TimeInForce(str, Enum):
    DEFAULT             = "default"
    IMMEDIATE_OR_CANCEL = "immediate_or_cancel"
    FILL_OR_KILL        = "fill_or_kill"
    POST_ONLY           = "post_only"


@unique
class SelfTradeBehavior(str, Enum):
    CANCEL_PROVIDE = "cancel_provide"   # cancel the maker order, keep filling the taker
    DECREASE_TAKE  = "decrease_take"    # cancel the rest of the taker, stop filling
    EXPIRE_BOTH    = "expire_both"      # revert the fill and cancel the maker
    FILL           = "fill"             # allow self trade


@unique
class OrderStatus(str, Enum):
    PLACED               = "placed"
    FILLED               = "filled"
    PARTIAL_FILLED       = "partial_filled"
    CANCELED             = "canceled"
    CONDITIONAL_CANCELED = "conditional_canceled"


@unique
class OrderTag(str, Enum):
    LIMIT       = "limit"
    MARKET      = "market"
    STOP_LOSS   = "stop_loss"
    TAKE_PROFIT = "take_profit"


# ---------------------------------------------------------------------------
# Shared validator helpers
# ---------------------------------------------------------------------------

# expires_at occupies the low 58 bits of the encoded flag
EXPIRES_AT_LIMIT = 1 << 58


def _validate_decimal_string(v: str, field: str = "value") -> str:
    """Reject empty strings and non-parseable decimals."""
    if not v or not v.strip():
        raise ValueError(f"{field} must be a non-empty decimal string")
    try:
        Decimal(v)
    except InvalidOperation:
        raise ValueError(f"{field} '{v}' is not a valid decimal string")
    return v


def _validate_hex(v: str, field: str = "hash") -> str:
    """Reject strings that are not valid 0x-prefixed hex."""
    stripped = v.removeprefix("0x").removeprefix("0X")
    if not stripped:
        raise ValueError(f"{field} must be a non-empty hex string")
    try:
        int(stripped, 16)
    except ValueError:
        raise ValueError(f"{field} '{v}' is not valid hex")
    return v


# ---------------------------------------------------------------------------
# Order flag
# ---------------------------------------------------------------------------

class OrderFlag(BaseModel):
    """
    Execution options attached to every order.

    Immutable.  Accepts both the wire (snake_case) and the camelCase field
    names, so server payloads and caller overrides parse alike.

    time_in_force        : DEFAULT / IOC / FOK / POST_ONLY
    self_trade_behavior  : policy when matching the account's own resting order
    reduce_only          : can only reduce an existing position
    expires_at           : Unix seconds, or None for no expiry
    is_market_order      : the order was derived from the book (market order)
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    time_in_force:       TimeInForce       = TimeInForce.DEFAULT
    self_trade_behavior: SelfTradeBehavior = SelfTradeBehavior.CANCEL_PROVIDE
    reduce_only:         bool              = False
    expires_at:          Optional[int]     = None
    is_market_order:     bool              = False

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and not (0 <= v < EXPIRES_AT_LIMIT):
            raise ValueError(f"expires_at must fit in 58 bits, got {v}")
        return v


DEFAULT_ORDER_FLAG = OrderFlag()


# ---------------------------------------------------------------------------
# Market / asset metadata
# ---------------------------------------------------------------------------

class MarketConfig(BaseModel):
    """An open perpetual market as returned by ``ob_query_open_markets``."""
    symbol:        str
    ticker:        str
    offchain_book: str
    tick_size:     str
    step_size:     str
    min_amount:    str

    @model_validator(mode="before")
    @classmethod
    def default_min_amount(cls, data: Any) -> Any:
        if isinstance(data, dict) and "min_amount" not in data and "step_size" in data:
            data = {**data, "min_amount": data["step_size"]}
        return data

    @field_validator("symbol", "offchain_book")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        return _validate_hex(v)

    @field_validator("tick_size", "step_size", "min_amount")
    @classmethod
    def validate_decimal(cls, v: str) -> str:
        return _validate_decimal_string(v)


class MarketState(BaseModel):
    symbol:             str
    open_interest:      str = "0"
    cumulative_funding: str = "0"
    available_settle:   str = "0"
    next_funding_rate:  str = "0"
    mark_price:         str = "0"


class AssetInfo(BaseModel):
    """A spot asset listed by the supported-assets REST endpoint."""
    asset_id: int
    name:     str
    ticker:   str


class SpotMarket(BaseModel):
    """A spot market: a numeric id trading ``base`` against ``quote``."""
    id:                int
    ticker:            str
    base:              int
    quote:             int
    tick_size:         str
    step_size:         str
    available_from:    int            = 0
    min_volume:        str            = "0"
    price_floor:       Optional[str]  = None
    price_cap:         Optional[str]  = None
    unavailable_after: Optional[int]  = None

    @field_validator("tick_size", "step_size", "min_volume")
    @classmethod
    def validate_decimal(cls, v: str) -> str:
        return _validate_decimal_string(v)


class SigningConfig(BaseModel):
    endpoint:               str
    offchain_book:          str
    eip712_domain_name:     str
    eip712_domain_version:  str
    eip712_domain_chain_id: int


class FeeTier(BaseModel):
    taker_fee: str
    maker_fee: str


class SpotConfig(BaseModel):
    """
    Venue configuration returned by ``core_get_config``.

    Older deployments return the bare signing config; it is lifted into
    ``signing_config`` with no fee tiers.
    """
    signing_config:   SigningConfig
    system_fee_tiers: list[FeeTier] = []

    @model_validator(mode="before")
    @classmethod
    def lift_flat_config(cls, data: Any) -> Any:
        if isinstance(data, dict) and "signing_config" not in data and "offchain_book" in data:
            return {"signing_config": data, "system_fee_tiers": []}
        return data


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------

class Position(BaseModel):
    base_amount:             str
    quote_amount:            str
    last_cumulative_funding: str  = "0"
    frozen_in_bid_order:     str  = "0"
    frozen_in_ask_order:     str  = "0"
    unsettled_pnl:           str  = "0"
    is_settle_pending:       bool = False

    @field_validator("base_amount", "quote_amount", "unsettled_pnl")
    @classmethod
    def validate_decimal(cls, v: str) -> str:
        return _validate_decimal_string(v)


class AccountInfo(BaseModel):
    """Perpetual account state; positions are keyed by market symbol."""
    positions:               dict[str, Position] = {}
    collateral:              str                 = "0"
    is_in_liquidation_queue: bool                = False

    @field_validator("collateral")
    @classmethod
    def validate_decimal(cls, v: str) -> str:
        return _validate_decimal_string(v, "collateral")


class Balance(BaseModel):
    """Spot balance of one asset."""
    available: str
    frozen:    str = "0"

    @field_validator("available", "frozen")
    @classmethod
    def validate_decimal(cls, v: str) -> str:
        return _validate_decimal_string(v)


# ---------------------------------------------------------------------------
# Order book
# ---------------------------------------------------------------------------

class DepthLevel(BaseModel):
    """One price level; the venue sends it as ``[price, size, (extra)]``."""
    price: str
    size:  str
    extra: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def from_sequence(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)):
            if len(data) < 2:
                raise ValueError(f"depth level needs price and size, got {data!r}")
            return {
                "price": str(data[0]),
                "size":  str(data[1]),
                "extra": str(data[2]) if len(data) > 2 and data[2] is not None else None,
            }
        return data

    @field_validator("price", "size")
    @classmethod
    def validate_decimal(cls, v: str) -> str:
        return _validate_decimal_string(v)


class Depth(BaseModel):
    """Order book snapshot, best price first on both sides."""
    asks:   list[DepthLevel] = []
    bids:   list[DepthLevel] = []
    symbol: Optional[Union[str, int]] = None


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

class PendingOrder(BaseModel):
    """An order on the perpetual venue."""
    order_id:             int
    account_id:           str
    symbol:               str
    side:                 Side
    create_timestamp:     int
    amount:               str
    price:                str
    status:               OrderStatus
    matched_quote_amount: str           = "0"
    matched_base_amount:  str           = "0"
    quote_fee:            str           = "0"
    nonce:                int
    expiration:           OrderFlag     = DEFAULT_ORDER_FLAG
    trigger_condition:    Optional[Any] = None
    is_triggered:         bool          = True
    signature:            str
    signer:               Optional[str] = None
    hash:                 Optional[str] = None
    has_dependency:       bool          = False
    tag:                  OrderTag      = OrderTag.LIMIT

    @field_validator("amount", "price", "matched_quote_amount", "matched_base_amount", "quote_fee")
    @classmethod
    def validate_decimal(cls, v: str) -> str:
        return _validate_decimal_string(v)


class SpotPendingOrder(BaseModel):
    """An order on the spot venue."""
    market_id:            int
    order_id:             int
    account_id:           str
    side:                 Side
    price:                str
    amount:               str
    status:               OrderStatus
    matched_quote_amount: str               = "0"
    matched_base_amount:  str               = "0"
    system_quote_fee:     str               = "0"
    system_base_fee:      str               = "0"
    broker_quote_fee:     str               = "0"
    broker_base_fee:      str               = "0"
    nonce:                int
    expiration:           OrderFlag         = DEFAULT_ORDER_FLAG
    trigger_condition:    Optional[Any]     = None
    created_at:           int               = 0
    is_triggered:         bool              = True
    signature:            str
    signer:               Optional[str]     = None
    tag:                  OrderTag          = OrderTag.LIMIT
    system_fee_tier:      Optional[FeeTier] = None
    broker_fee_tier:      Optional[FeeTier] = None

    @field_validator(
        "price", "amount", "matched_quote_amount", "matched_base_amount",
        "system_quote_fee", "system_base_fee", "broker_quote_fee", "broker_base_fee",
    )
    @classmethod
    def validate_decimal(cls, v: str) -> str:
        return _validate_decimal_string(v)


# ---------------------------------------------------------------------------
# REST history queries
# ---------------------------------------------------------------------------

def _query_value(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    return str(v)


class _HistoryQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    account:    str
    take:       int
    page:       Optional[int]  = None
    start_time: Optional[int]  = None
    end_time:   Optional[int]  = None
    market_id:  Optional[int]  = None
    is_buyer:   Optional[bool] = None

    @field_validator("account")
    @classmethod
    def validate_account(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("account is required")
        return v

    @field_validator("take")
    @classmethod
    def validate_take(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"take must be positive, got {v}")
        return v

    @field_validator("page")
    @classmethod
    def validate_page(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError(f"page must be non-negative, got {v}")
        return v

    def to_query_string(self) -> str:
        """Serialise the set fields as a camelCase query string."""
        params = self.model_dump(by_alias=True, exclude_none=True)
        return urlencode({k: _query_value(v) for k, v in params.items()})


class OrderHistoryQuery(_HistoryQuery):
    status: Optional[str] = None


class TradeHistoryQuery(_HistoryQuery):
    is_maker: Optional[bool] = None
