"""
pricing.py – Limit price for market orders.

A market order is submitted as a limit order priced off the top of the
opposing side of the book with a fixed slippage tolerance:

    sell (ask) : best bid × 105 / 100
    buy  (bid) : best ask ×  95 / 100

Arithmetic is done on 18-decimal fixed-point integers so the result is
exact and matches what the venue would compute.
"""

from __future__ import annotations

from typing import Union

from .encoding import from_x18, parse_side, to_x18
from .errors import EmptyOrderBook
from .types import Depth, Side

SELL_SLIPPAGE_PCT = 105
BUY_SLIPPAGE_PCT  = 95


def market_price(depth: Depth, side: Union[Side, str]) -> str:
    """
    Derive the limit price of a market order from an order book snapshot.

    Raises EmptyOrderBook if the side being crossed has no levels.
    """
    side = parse_side(side)
    if side is Side.ASK:
        levels, pct = depth.bids, SELL_SLIPPAGE_PCT
    else:
        levels, pct = depth.asks, BUY_SLIPPAGE_PCT

    if not levels:
        raise EmptyOrderBook(
            f"cannot price a market {side.value}: no {'bids' if side is Side.ASK else 'asks'} in the book"
        )
    return from_x18(to_x18(levels[0].price) * pct // 100)
