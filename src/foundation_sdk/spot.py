"""
spot.py – Client for the Foundation Network spot venue.

Assets are addressed by ticker (``BTC``, ``USDC``) and resolved to the
numeric asset ids listed by the REST supported-assets endpoint.  A
market is the pair (base, quote) and carries a numeric market id.  All
orders are signed against the venue's offchain-book contract from
``core_get_config``.

The spot venue splits trading into one RPC method per action:

    ob_place_limit  [{account_id, pair, side, price, amount, ...}, signature]
    ob_cancel       [{account_id, market_id, order_id, nonce}, signature]
    ob_cancel_all   [{account_id, market_id, nonce}, signature]

Asset list, market list and signing config are fetched once per client.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, Union

from .cache import FetchOnce, no_items
from .client import BaseFoundationClient
from .config import SpotClientOptions
from .encoding import (
    SPOT_NONCE_RANGE,
    NonceProvider,
    check_uint64,
    encode_flag,
    parse_side,
    positive_x18,
    resolve_flag,
    signed_amount,
)
from .errors import ConfigurationUnavailable, UnknownMarket, UnknownTicker
from .pricing import market_price
from .rest import AsyncFoundationRestClient
from .rpc import RpcTransport
from .signing import CancelAllMessage, Signer, SpotCancelMessage, SpotOrderMessage
from .types import (
    AssetInfo,
    Balance,
    Depth,
    OrderFlag,
    OrderHistoryQuery,
    ProductType,
    Side,
    SpotConfig,
    SpotMarket,
    SpotPendingOrder,
    TradeHistoryQuery,
)

logger = logging.getLogger(__name__)

FlagOverrides = Union[None, OrderFlag, Mapping[str, Any]]


# ---------------------------------------------------------------------------
# Message / params builders
# ---------------------------------------------------------------------------

def build_order_message(
    account_id: str,
    base: AssetInfo,
    quote: AssetInfo,
    side: Union[Side, str],
    price: str,
    amount: str,
    flag: OrderFlag,
    nonce: int,
) -> SpotOrderMessage:
    """The signable Order for a spot limit order."""
    return SpotOrderMessage(
        account_id=account_id,
        base=base.asset_id,
        quote=quote.asset_id,
        price_x18=positive_x18(price, "price"),
        amount=signed_amount(side, positive_x18(amount, "amount")),
        expiration=encode_flag(flag),
        nonce=nonce,
    )


def build_order_params(
    account_id: str,
    base: AssetInfo,
    quote: AssetInfo,
    side: Union[Side, str],
    price: str,
    amount: str,
    flag: OrderFlag,
    signature: str,
    nonce: int,
) -> list[Any]:
    """Positional ``ob_place_limit`` params.  reduce_only is not sent on spot."""
    return [
        {
            "account_id":          account_id,
            "pair":                [base.asset_id, quote.asset_id],
            "side":                parse_side(side).value,
            "price":               price,
            "amount":              amount,
            "time_in_force":       flag.time_in_force.value,
            "expires_at":          flag.expires_at or None,
            "is_market_order":     flag.is_market_order,
            "self_trade_behavior": flag.self_trade_behavior.value,
            "nonce":               str(nonce),
        },
        signature,
    ]


def build_cancel_params(account_id: str, market_id: int, order_id: int, signature: str, nonce: int) -> list[Any]:
    return [
        {
            "account_id": account_id,
            "market_id":  market_id,
            "order_id":   order_id,
            "nonce":      str(nonce),
        },
        signature,
    ]


def build_cancel_all_params(account_id: str, market_id: int, signature: str, nonce: int) -> list[Any]:
    return [
        {
            "account_id": account_id,
            "market_id":  market_id,
            "nonce":      str(nonce),
        },
        signature,
    ]


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class FoundationSpotClient(BaseFoundationClient):
    """
    Async client for the spot venue.

    Parameters
    ----------
    signer         : Signer owning the account (e.g. LocalSigner)
    options        : SpotClientOptions (default: public testnet, broker 1, subaccount 0)
    transport      : JSON-RPC transport override
    rest           : REST client override (asset list, history)
    nonce_provider : nonce source override
    """

    product_type = ProductType.SPOT

    def __init__(
        self,
        signer: Signer,
        options: Optional[SpotClientOptions] = None,
        *,
        transport: Optional[RpcTransport] = None,
        rest: Optional[AsyncFoundationRestClient] = None,
        nonce_provider: Optional[NonceProvider] = None,
    ) -> None:
        options = options or SpotClientOptions()
        super().__init__(signer, options, transport=transport)
        self.rest     = rest or AsyncFoundationRestClient(options.api_url, timeout=options.timeout)
        self._nonce   = nonce_provider or NonceProvider(*SPOT_NONCE_RANGE)
        self._assets: FetchOnce[list[AssetInfo]] = FetchOnce(
            self.rest.get_supported_assets, "spot assets", is_empty=no_items,
        )
        self._markets: FetchOnce[list[SpotMarket]] = FetchOnce(
            self._fetch_markets, "spot markets", is_empty=no_items,
        )
        self._config: FetchOnce[SpotConfig] = FetchOnce(self._fetch_config, "spot signing config")

    async def __aenter__(self) -> "FoundationSpotClient":
        return self

    async def close(self) -> None:
        """Close the RPC transport and the REST session."""
        await super().close()
        await self.rest.close()

    # ------------------------------------------------------------------
    # Account / metadata reads
    # ------------------------------------------------------------------

    async def get_account_info(self) -> dict[str, Balance]:
        """Balances of the account, keyed by asset."""
        raw = await self._request("account_get_account", [self.account_id])
        return {asset: Balance.model_validate(b) for asset, b in (raw or {}).items()}

    async def get_assets(self) -> list[AssetInfo]:
        """Supported assets (fetched once, then cached)."""
        return await self._assets.get()

    async def get_asset(self, ticker: str) -> AssetInfo:
        for asset in await self.get_assets():
            if asset.ticker == ticker:
                return asset
        raise UnknownTicker(ticker)

    async def get_markets(self) -> list[SpotMarket]:
        """Open spot markets (fetched once, then cached)."""
        return await self._markets.get()

    async def get_market(self, base: str, quote: str) -> SpotMarket:
        """Resolve a base/quote ticker pair.  Raises UnknownMarket if no market trades it."""
        base_asset  = await self.get_asset(base)
        quote_asset = await self.get_asset(quote)
        for market in await self.get_markets():
            if market.base == base_asset.asset_id and market.quote == quote_asset.asset_id:
                return market
        raise UnknownMarket(base, quote)

    async def get_signing_config(self) -> SpotConfig:
        """Offchain-book contract, EIP-712 domain fields and fee tiers."""
        return await self._config.get()

    async def get_orderbook_depth(self, base: str, quote: str, limit: int) -> Depth:
        market = await self.get_market(base, quote)
        raw = await self._request("ob_query_depth", [market.id, limit])
        return Depth.model_validate(raw)

    async def get_pending_orders(self, base: str, quote: str) -> list[SpotPendingOrder]:
        market = await self.get_market(base, quote)
        raw = await self._request("ob_query_user_orders", [market.id, self.account_id])
        return [SpotPendingOrder.model_validate(o) for o in raw or []]

    async def get_order_history(self, query: Union[OrderHistoryQuery, Mapping[str, Any]]) -> Any:
        return await self.rest.get_order_history(query)

    async def get_trade_history(self, query: Union[TradeHistoryQuery, Mapping[str, Any]]) -> Any:
        return await self.rest.get_trade_history(query)

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    async def place_limit(
        self,
        base: str,
        quote: str,
        side: Union[Side, str],
        price: str,
        amount: str,
        flag: FlagOverrides = None,
    ) -> Any:
        """Sign and submit a limit order on the base/quote pair."""
        base_asset  = await self.get_asset(base)
        quote_asset = await self.get_asset(quote)
        contract    = await self._verifying_contract()
        resolved    = resolve_flag(flag)
        nonce       = self._nonce()

        message = build_order_message(
            self.account_id, base_asset, quote_asset, side, price, amount, resolved, nonce,
        )
        signature = await self._sign(message, contract)

        logger.debug("Placing %s/%s %s %s @ %s nonce=%d", base, quote, parse_side(side).value, amount, price, nonce)
        params = build_order_params(
            self.account_id, base_asset, quote_asset, side, price, amount, resolved, signature, nonce,
        )
        return await self._request("ob_place_limit", params)

    async def place_market(
        self,
        base: str,
        quote: str,
        side: Union[Side, str],
        amount: str,
        flag: FlagOverrides = None,
    ) -> Any:
        """Limit order priced ±5 % through the top of the opposing side."""
        depth = await self.get_orderbook_depth(base, quote, 1)
        price = market_price(depth, side)
        return await self.place_limit(base, quote, side, price, amount, flag)

    async def cancel_order(self, base: str, quote: str, order_id: int) -> Any:
        check_uint64("order_id", order_id)
        market   = await self.get_market(base, quote)
        contract = await self._verifying_contract()
        nonce    = self._nonce()

        message = SpotCancelMessage(
            account_id=self.account_id, market_id=market.id, order_id=order_id, nonce=nonce,
        )
        signature = await self._sign(message, contract)

        logger.debug("Cancelling order %d on market %d nonce=%d", order_id, market.id, nonce)
        params = build_cancel_params(self.account_id, market.id, order_id, signature, nonce)
        return await self._request("ob_cancel", params)

    async def cancel_all(self, base: str, quote: str) -> Any:
        """Cancel every open order of the account on the base/quote market."""
        market   = await self.get_market(base, quote)
        contract = await self._verifying_contract()
        nonce    = self._nonce()

        message   = CancelAllMessage(account_id=self.account_id, market_id=market.id, nonce=nonce)
        signature = await self._sign(message, contract)

        logger.debug("Cancelling all orders on market %d nonce=%d", market.id, nonce)
        params = build_cancel_all_params(self.account_id, market.id, signature, nonce)
        return await self._request("ob_cancel_all", params)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _fetch_markets(self) -> list[SpotMarket]:
        raw = await self._request("ob_query_open_markets", [])
        return [SpotMarket.model_validate(m) for m in raw or []]

    async def _fetch_config(self) -> SpotConfig:
        raw = await self._request("core_get_config", [])
        if not raw:
            raise ConfigurationUnavailable("venue returned no signing config")
        return SpotConfig.model_validate(raw)

    async def _verifying_contract(self) -> str:
        config = await self.get_signing_config()
        contract = config.signing_config.offchain_book
        if not contract:
            raise ConfigurationUnavailable("signing config has no offchain_book address")
        return contract
