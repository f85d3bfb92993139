"""
perp.py – Client for the Foundation Network perpetual venue.

Markets are addressed by ticker (e.g. ``CRYPTO_BTC_PERP``); the client
resolves a ticker to the market's bytes32 symbol and its offchain-book
contract with one ``ob_query_open_markets`` call, cached for the
lifetime of the client.

Every trading action goes through the multiplexed ``ob_trade`` method:

    ob_trade [account_id, {<bid|ask|cancel>: payload}, signature, nonce, ""]
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from .cache import FetchOnce, no_items
from .client import BaseFoundationClient
from .config import PerpClientOptions
from .encoding import (
    PERP_NONCE_RANGE,
    NonceProvider,
    check_uint64,
    encode_flag,
    flag_to_wire,
    parse_side,
    positive_x18,
    resolve_flag,
    signed_amount,
)
from .errors import UnknownTicker
from .pricing import market_price
from .rpc import RpcTransport
from .signing import PerpCancelMessage, PerpOrderMessage, Signer
from .types import (
    AccountInfo,
    Depth,
    MarketConfig,
    MarketState,
    OrderFlag,
    PendingOrder,
    ProductType,
    Side,
)

logger = logging.getLogger(__name__)

FlagOverrides = Union[None, OrderFlag, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Message / params builders
# ---------------------------------------------------------------------------

def build_order_message(
    account_id: str,
    side: Union[Side, str],
    price: str,
    amount: str,
    flag: OrderFlag,
    nonce: int,
) -> PerpOrderMessage:
    """The signable Order for a perpetual limit order."""
    return PerpOrderMessage(
        subaccount=account_id,
        price=positive_x18(price, "price"),
        amount=signed_amount(side, positive_x18(amount, "amount")),
        nonce=nonce,
        expiration=encode_flag(flag),
    )


def build_order_params(
    account_id: str,
    market: MarketConfig,
    side: Union[Side, str],
    price: str,
    amount: str,
    flag: OrderFlag,
    signature: str,
    nonce: int,
) -> list[Any]:
    """Positional ``ob_trade`` params placing an order."""
    return [
        account_id,
        {
            parse_side(side).value: {
                "symbol":     market.symbol,
                "amount":     amount,
                "price":      price,
                "expiration": flag_to_wire(flag),
            }
        },
        signature,
        str(nonce),
        "",
    ]


def build_cancel_params(
    account_id: str,
    market: MarketConfig,
    order_id: int,
    signature: str,
    nonce: int,
) -> list[Any]:
    """Positional ``ob_trade`` params cancelling one order."""
    return [
        account_id,
        {"cancel": {"symbol": market.symbol, "orderId": str(order_id)}},
        signature,
        str(nonce),
        "",
    ]


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class FoundationPerpClient(BaseFoundationClient):
    """
    Async client for the perpetual venue.

    Parameters
    ----------
    signer         : Signer owning the account (e.g. LocalSigner)
    options        : PerpClientOptions (default: public testnet, broker 1, subaccount 0)
    transport      : JSON-RPC transport override (tests, custom sessions)
    nonce_provider : nonce source override
    """

    product_type = ProductType.PERPETUAL

    def __init__(
        self,
        signer: Signer,
        options: Optional[PerpClientOptions] = None,
        *,
        transport: Optional[RpcTransport] = None,
        nonce_provider: Optional[NonceProvider] = None,
    ) -> None:
        super().__init__(signer, options or PerpClientOptions(), transport=transport)
        self._nonce   = nonce_provider or NonceProvider(*PERP_NONCE_RANGE)
        self._markets: FetchOnce[list[MarketConfig]] = FetchOnce(
            self._fetch_markets, "perpetual markets", is_empty=no_items,
        )

    async def __aenter__(self) -> "FoundationPerpClient":
        return self

    # ------------------------------------------------------------------
    # Account / market reads
    # ------------------------------------------------------------------

    async def get_account_info(self) -> AccountInfo:
        """Positions, collateral and liquidation flag of the account."""
        raw = await self._request("ob_query_account", [self.account_id])
        return AccountInfo.model_validate(raw or {})

    async def get_markets(self) -> list[MarketConfig]:
        """All open markets (fetched once, then cached)."""
        return await self._markets.get()

    async def get_market(self, ticker: str) -> MarketConfig:
        """Resolve a ticker.  Raises UnknownTicker if the venue does not list it."""
        for market in await self.get_markets():
            if market.ticker == ticker:
                return market
        raise UnknownTicker(ticker)

    async def get_market_state(self, ticker: str) -> Optional[MarketState]:
        """Funding / open interest / mark price of one market, None if not reported."""
        market = await self.get_market(ticker)
        states = await self._request("ob_query_markets_state")
        for state in states or []:
            if state.get("symbol") == market.symbol:
                return MarketState.model_validate(state)
        return None

    async def get_orderbook_depth(self, ticker: str, limit: int) -> Depth:
        market = await self.get_market(ticker)
        raw = await self._request("ob_query_depth", [market.symbol, limit])
        return Depth.model_validate(raw)

    async def get_pending_orders(self, ticker: str) -> list[PendingOrder]:
        market = await self.get_market(ticker)
        raw = await self._request("ob_query_user_orders", [market.symbol, self.account_id])
        return [PendingOrder.model_validate(o) for o in raw or []]

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    async def place_limit(
        self,
        ticker: str,
        side: Union[Side, str],
        price: str,
        amount: str,
        flag: FlagOverrides = None,
    ) -> Any:
        """
        Sign and submit a limit order.

        ``flag`` overrides fields of DEFAULT_ORDER_FLAG, either as an
        OrderFlag or a mapping (``{"time_in_force": "post_only"}``).
        """
        market   = await self.get_market(ticker)
        resolved = resolve_flag(flag)
        nonce    = self._nonce()

        message   = build_order_message(self.account_id, side, price, amount, resolved, nonce)
        signature = await self._sign(message, market.offchain_book)

        logger.debug("Placing %s %s %s @ %s nonce=%d", ticker, parse_side(side).value, amount, price, nonce)
        params = build_order_params(self.account_id, market, side, price, amount, resolved, signature, nonce)
        return await self._request("ob_trade", params)

    async def place_market(
        self,
        ticker: str,
        side: Union[Side, str],
        amount: str,
        flag: FlagOverrides = None,
    ) -> Any:
        """
        Place a limit order priced off the top of the opposing book side
        (±5 %).  Raises EmptyOrderBook, submitting nothing, if that side is empty.
        """
        depth = await self.get_orderbook_depth(ticker, 1)
        price = market_price(depth, side)
        return await self.place_limit(ticker, side, price, amount, flag)

    async def cancel_order(self, ticker: str, order_id: int) -> Any:
        """Sign and submit the cancellation of one order."""
        check_uint64("order_id", order_id)
        market = await self.get_market(ticker)
        nonce  = self._nonce()

        message   = PerpCancelMessage(subaccount=self.account_id, nonce=nonce, order_id=order_id)
        signature = await self._sign(message, market.offchain_book)

        logger.debug("Cancelling order %d on %s nonce=%d", order_id, ticker, nonce)
        params = build_cancel_params(self.account_id, market, order_id, signature, nonce)
        return await self._request("ob_trade", params)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fetch_markets(self) -> list[MarketConfig]:
        raw = await self._request("ob_query_open_markets", [])
        return [MarketConfig.model_validate(m) for m in raw or []]
