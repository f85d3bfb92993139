"""
examples/quickstart.py – End-to-end demo of the Foundation SDK.

Walks through both venues:
  1. Perpetual: list markets, read the book, place a post-only bid far
     below the market, then cancel it
  2. Spot: resolve assets, read balances and the book, place and
     cancel-all on BTC/USDC
  3. REST: page through the account's order history

HOW TO RUN
----------
    export FOUNDATION_PRIVATE_KEY="0x..."      # wallet that owns the account
    export FOUNDATION_BROKER_ID="1"
    python examples/quickstart.py

    Everything targets the public testnet.
"""

from __future__ import annotations

import asyncio
import logging
import os

from foundation_sdk import (
    FoundationPerpClient,
    FoundationSpotClient,
    LocalSigner,
    OrderHistoryQuery,
    PerpClientOptions,
    Side,
    SpotClientOptions,
)
from foundation_sdk.errors import EmptyOrderBook, FoundationError

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s – %(message)s",
)
logger = logging.getLogger("quickstart")

# ---------------------------------------------------------------------------
# Config – read from environment variables
# ---------------------------------------------------------------------------

PRIVATE_KEY = os.environ.get("FOUNDATION_PRIVATE_KEY", "0x" + "aa" * 32)
BROKER_ID   = int(os.environ.get("FOUNDATION_BROKER_ID", "1"))

PERP_TICKER = "CRYPTO_BTC_PERP"
SPOT_BASE   = "BTC"
SPOT_QUOTE  = "USDC"


# ---------------------------------------------------------------------------
# Part 1 – Perpetual venue
# ---------------------------------------------------------------------------

async def perp_demo(signer: LocalSigner) -> None:
    logger.info("=== Perpetual demo ===")

    async with FoundationPerpClient(signer, PerpClientOptions(broker_id=BROKER_ID)) as client:
        logger.info("Account id: %s", client.account_id)

        markets = await client.get_markets()
        logger.info("Open markets: %s", ", ".join(m.ticker for m in markets))

        book = await client.get_orderbook_depth(PERP_TICKER, 5)
        if book.bids and book.asks:
            logger.info(
                "Best bid: %s @ %s  |  Best ask: %s @ %s",
                book.bids[0].size, book.bids[0].price,
                book.asks[0].size, book.asks[0].price,
            )
        else:
            logger.info("Orderbook is empty")

        market = await client.get_market(PERP_TICKER)
        try:
            result = await client.place_limit(
                PERP_TICKER, Side.BID, "1000", market.min_amount, {"time_in_force": "post_only"},
            )
            logger.info("Order submitted: %s", result)
        except FoundationError as exc:
            logger.warning("place_limit failed (expected with a placeholder key): %s", exc)

        for order in await client.get_pending_orders(PERP_TICKER):
            await client.cancel_order(PERP_TICKER, order.order_id)
            logger.info("Cancelled order %d", order.order_id)

        info = await client.get_account_info()
        logger.info("Collateral=%s  positions=%d", info.collateral, len(info.positions))


# ---------------------------------------------------------------------------
# Part 2 – Spot venue + REST history
# ---------------------------------------------------------------------------

async def spot_demo(signer: LocalSigner) -> None:
    logger.info("=== Spot demo ===")

    async with FoundationSpotClient(signer, SpotClientOptions(broker_id=BROKER_ID)) as client:
        market = await client.get_market(SPOT_BASE, SPOT_QUOTE)
        logger.info("%s/%s is market %d (tick %s)", SPOT_BASE, SPOT_QUOTE, market.id, market.tick_size)

        balances = await client.get_account_info()
        for asset, balance in balances.items():
            logger.info("[balance]  %s  available=%s  frozen=%s", asset, balance.available, balance.frozen)

        try:
            result = await client.place_market(SPOT_BASE, SPOT_QUOTE, Side.BID, market.step_size)
            logger.info("Market order submitted: %s", result)
        except EmptyOrderBook:
            logger.info("No asks on %s/%s, skipping market order", SPOT_BASE, SPOT_QUOTE)
        except FoundationError as exc:
            logger.warning("place_market failed: %s", exc)

        await client.cancel_all(SPOT_BASE, SPOT_QUOTE)
        logger.info("Cancelled all orders on %s/%s", SPOT_BASE, SPOT_QUOTE)

        history = await client.get_order_history(
            OrderHistoryQuery(account=client.account_id, take=10, market_id=market.id)
        )
        logger.info("Order history: %s", history)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

async def main() -> None:
    signer = LocalSigner(PRIVATE_KEY)
    logger.info("Wallet: %s", signer.address)
    await perp_demo(signer)
    await spot_demo(signer)


if __name__ == "__main__":
    asyncio.run(main())
