"""
tests/test_spot_client.py – FoundationSpotClient against in-memory RPC and REST fakes.
"""

from __future__ import annotations

import pytest

from foundation_sdk.errors import (
    ConfigurationUnavailable,
    EmptyOrderBook,
    InvalidArgument,
    UnknownMarket,
    UnknownTicker,
)
from foundation_sdk.signing import recover_signer
from foundation_sdk.spot import (
    FoundationSpotClient,
    build_cancel_all_params,
    build_cancel_params,
    build_order_message,
    build_order_params,
)
from foundation_sdk.types import AssetInfo, Balance, OrderFlag, OrderHistoryQuery, Side, TimeInForce

CONTRACT = "0x" + "66" * 20

ASSETS = [
    {"asset_id": 1, "name": "Bitcoin",  "ticker": "BTC"},
    {"asset_id": 2, "name": "USD Coin", "ticker": "USDC"},
    {"asset_id": 3, "name": "Ether",    "ticker": "ETH"},
]

MARKETS = [
    {"id": 7, "ticker": "BTC_USDC", "base": 1, "quote": 2, "tick_size": "0.01", "step_size": "0.0001"},
    {"id": 8, "ticker": "ETH_USDC", "base": 3, "quote": 2, "tick_size": "0.01", "step_size": "0.001"},
]

CONFIG = {
    "signing_config": {
        "endpoint":               "https://testnet-rpc.foundation.network/spot",
        "offchain_book":          CONTRACT,
        "eip712_domain_name":     "FOUNDATION",
        "eip712_domain_version":  "0.1.0",
        "eip712_domain_chain_id": 1,
    },
    "system_fee_tiers": [{"taker_fee": "0.001", "maker_fee": "0.0005"}],
}


@pytest.fixture
def transport(make_transport):
    return make_transport({
        "ob_query_open_markets": MARKETS,
        "core_get_config":       CONFIG,
        "ob_query_depth":        {"asks": [["60000", "1"]], "bids": [["59000", "2"]]},
        "ob_place_limit":        {"order_id": 1},
        "ob_cancel":             True,
        "ob_cancel_all":         True,
    })


@pytest.fixture
def rest(make_rest):
    return make_rest(ASSETS)


@pytest.fixture
def client(signer, transport, rest, nonce_provider) -> FoundationSpotClient:
    return FoundationSpotClient(signer, transport=transport, rest=rest, nonce_provider=nonce_provider)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestConstruction:
    def test_account_id_uses_spot_product(self, client, signer) -> None:
        assert client.account_id == signer.address + "00000001" + "0000" + "00000002" + "0000"

    @pytest.mark.asyncio
    async def test_close_closes_rpc_and_rest(self, signer, transport, rest) -> None:
        async with FoundationSpotClient(signer, transport=transport, rest=rest):
            pass
        assert transport.closed
        assert rest.closed


# ---------------------------------------------------------------------------
# Metadata
# ---------------------------------------------------------------------------

class TestMetadata:
    @pytest.mark.asyncio
    async def test_asset_lookup(self, client) -> None:
        asset = await client.get_asset("ETH")
        assert asset == AssetInfo(asset_id=3, name="Ether", ticker="ETH")

    @pytest.mark.asyncio
    async def test_assets_fetched_once(self, client, rest) -> None:
        await client.get_asset("BTC")
        await client.get_asset("USDC")
        await client.get_assets()
        assert rest.asset_calls == 1

    @pytest.mark.asyncio
    async def test_unknown_asset(self, client) -> None:
        with pytest.raises(UnknownTicker):
            await client.get_asset("DOGE")

    @pytest.mark.asyncio
    async def test_market_lookup(self, client, transport) -> None:
        market = await client.get_market("ETH", "USDC")
        assert market.id == 8
        await client.get_market("BTC", "USDC")
        assert transport.methods().count("ob_query_open_markets") == 1

    @pytest.mark.asyncio
    async def test_unknown_market(self, client) -> None:
        with pytest.raises(UnknownMarket) as excinfo:
            await client.get_market("BTC", "ETH")
        assert (excinfo.value.base, excinfo.value.quote) == ("BTC", "ETH")
        assert isinstance(excinfo.value, UnknownTicker)

    @pytest.mark.asyncio
    async def test_empty_asset_list_is_refetched(self, signer, transport, make_rest) -> None:
        rest = make_rest([])
        client = FoundationSpotClient(signer, transport=transport, rest=rest)
        with pytest.raises(UnknownTicker):
            await client.get_asset("BTC")

        rest._assets = ASSETS
        assert (await client.get_asset("BTC")).asset_id == 1
        await client.get_asset("USDC")
        assert rest.asset_calls == 2

    @pytest.mark.asyncio
    async def test_empty_market_list_is_refetched(self, client, transport) -> None:
        replies = iter([[], MARKETS])
        transport.responses["ob_query_open_markets"] = lambda params: next(replies)

        with pytest.raises(UnknownMarket):
            await client.get_market("BTC", "USDC")
        assert (await client.get_market("BTC", "USDC")).id == 7
        await client.get_market("ETH", "USDC")
        assert transport.methods().count("ob_query_open_markets") == 2

    @pytest.mark.asyncio
    async def test_signing_config_cached(self, client, transport) -> None:
        config = await client.get_signing_config()
        await client.get_signing_config()
        assert config.signing_config.offchain_book == CONTRACT
        assert config.system_fee_tiers[0].taker_fee == "0.001"
        assert transport.methods().count("core_get_config") == 1

    @pytest.mark.asyncio
    async def test_flat_signing_config(self, client, transport) -> None:
        transport.responses["core_get_config"] = CONFIG["signing_config"]
        config = await client.get_signing_config()
        assert config.signing_config.offchain_book == CONTRACT
        assert config.system_fee_tiers == []


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

class TestReads:
    @pytest.mark.asyncio
    async def test_account_balances(self, client, transport) -> None:
        transport.responses["account_get_account"] = {
            "BTC":  {"available": "0.5", "frozen": "0.1"},
            "USDC": {"available": "1000"},
        }
        balances = await client.get_account_info()
        assert transport.last("account_get_account") == [client.account_id]
        assert balances["BTC"] == Balance(available="0.5", frozen="0.1")
        assert balances["USDC"].frozen == "0"

    @pytest.mark.asyncio
    async def test_depth_uses_market_id(self, client, transport) -> None:
        depth = await client.get_orderbook_depth("BTC", "USDC", 10)
        assert transport.last("ob_query_depth") == [7, 10]
        assert depth.bids[0].price == "59000"

    @pytest.mark.asyncio
    async def test_pending_orders(self, client, transport) -> None:
        transport.responses["ob_query_user_orders"] = [
            {
                "market_id":  7,
                "order_id":   5,
                "account_id": client.account_id,
                "side":       "ask",
                "price":      "61000",
                "amount":     "0.2",
                "status":     "partial_filled",
                "nonce":      1,
                "signature":  "0xabc",
                "system_fee_tier": {"taker_fee": "0.001", "maker_fee": "0.0005"},
            }
        ]
        orders = await client.get_pending_orders("BTC", "USDC")
        assert transport.last("ob_query_user_orders") == [7, client.account_id]
        assert orders[0].side is Side.ASK
        assert orders[0].system_fee_tier.maker_fee == "0.0005"

    @pytest.mark.asyncio
    async def test_history_delegates_to_rest(self, client, rest) -> None:
        query = OrderHistoryQuery(account=client.account_id, take=20)
        await client.get_order_history(query)
        await client.get_trade_history({"account": client.account_id, "take": 5})
        assert rest.history_queries[0] == ("orders", query)
        assert rest.history_queries[1][0] == "trades"


# ---------------------------------------------------------------------------
# Trading
# ---------------------------------------------------------------------------

class TestPlaceLimit:
    @pytest.mark.asyncio
    async def test_wire_params(self, client, transport, signer, nonce_provider) -> None:
        result = await client.place_limit("BTC", "USDC", Side.BID, "60000", "0.25")
        assert result == {"order_id": 1}
        assert transport.last("ob_place_limit") == [
            {
                "account_id":          client.account_id,
                "pair":                [1, 2],
                "side":                "bid",
                "price":               "60000",
                "amount":              "0.25",
                "time_in_force":       "default",
                "expires_at":          None,
                "is_market_order":     False,
                "self_trade_behavior": "cancel_provide",
                "nonce":               str(nonce_provider()),
            },
            signer.signatures[-1],
        ]

    @pytest.mark.asyncio
    async def test_signed_message(self, client, signer, nonce_provider) -> None:
        await client.place_limit("ETH", "USDC", "ask", "3000.5", "2", {"expiresAt": 1_800_000_000})
        request = signer.requests[-1]
        assert request.primary_type == "Order"
        assert request.domain == {
            "name":              "FOUNDATION",
            "version":           "0.1.0",
            "chainId":           1,
            "verifyingContract": CONTRACT,
        }
        assert request.message == {
            "accountId":        client.account_id,
            "base":             3,
            "quote":            2,
            "priceX18":         3_000_500_000_000_000_000_000,
            "amount":           -2 * 10 ** 18,
            "expiration":       1_800_000_000,
            "nonce":            nonce_provider(),
            "triggerCondition": 0,
        }
        assert recover_signer(request, signer.signatures[-1]) == signer.address

    @pytest.mark.asyncio
    async def test_expiry_sent_on_wire(self, client, transport) -> None:
        await client.place_limit("BTC", "USDC", Side.BID, "1", "1", OrderFlag(expires_at=99))
        assert transport.last("ob_place_limit")[0]["expires_at"] == 99

    @pytest.mark.asyncio
    async def test_unknown_asset_submits_nothing(self, client, transport, signer) -> None:
        with pytest.raises(UnknownTicker):
            await client.place_limit("DOGE", "USDC", Side.BID, "1", "1")
        assert "ob_place_limit" not in transport.methods()
        assert signer.requests == []

    @pytest.mark.asyncio
    async def test_missing_config_submits_nothing(self, client, transport, signer) -> None:
        transport.responses["core_get_config"] = None
        with pytest.raises(ConfigurationUnavailable):
            await client.place_limit("BTC", "USDC", Side.BID, "1", "1")
        assert "ob_place_limit" not in transport.methods()
        assert signer.requests == []

    @pytest.mark.asyncio
    async def test_empty_contract_submits_nothing(self, client, transport, signer) -> None:
        config = {**CONFIG["signing_config"], "offchain_book": ""}
        transport.responses["core_get_config"] = {"signing_config": config}
        with pytest.raises(ConfigurationUnavailable):
            await client.cancel_all("BTC", "USDC")
        assert signer.requests == []

    @pytest.mark.asyncio
    async def test_invalid_amount(self, client, transport) -> None:
        with pytest.raises(InvalidArgument):
            await client.place_limit("BTC", "USDC", Side.BID, "1", "0")
        assert "ob_place_limit" not in transport.methods()


class TestPlaceMarket:
    @pytest.mark.asyncio
    async def test_sell(self, client, transport) -> None:
        await client.place_market("BTC", "USDC", Side.ASK, "0.1")
        assert transport.last("ob_query_depth") == [7, 1]
        assert transport.last("ob_place_limit")[0]["price"] == "61950"

    @pytest.mark.asyncio
    async def test_buy(self, client, transport) -> None:
        await client.place_market("BTC", "USDC", Side.BID, "0.1", {"time_in_force": TimeInForce.IMMEDIATE_OR_CANCEL})
        params = transport.last("ob_place_limit")[0]
        assert params["price"] == "57000"
        assert params["time_in_force"] == "immediate_or_cancel"

    @pytest.mark.asyncio
    async def test_empty_book(self, client, transport) -> None:
        transport.responses["ob_query_depth"] = {"asks": [], "bids": [["1", "1"]]}
        with pytest.raises(EmptyOrderBook):
            await client.place_market("BTC", "USDC", Side.BID, "0.1")
        assert "ob_place_limit" not in transport.methods()


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_order(self, client, transport, signer, nonce_provider) -> None:
        await client.cancel_order("BTC", "USDC", 42)
        assert transport.last("ob_cancel") == [
            {
                "account_id": client.account_id,
                "market_id":  7,
                "order_id":   42,
                "nonce":      str(nonce_provider()),
            },
            signer.signatures[-1],
        ]
        request = signer.requests[-1]
        assert request.primary_type == "Cancel"
        assert list(request.message) == ["accountId", "marketId", "orderId", "nonce"]

    @pytest.mark.asyncio
    async def test_cancel_all(self, client, transport, signer, nonce_provider) -> None:
        await client.cancel_all("ETH", "USDC")
        assert transport.last("ob_cancel_all") == [
            {"account_id": client.account_id, "market_id": 8, "nonce": str(nonce_provider())},
            signer.signatures[-1],
        ]
        request = signer.requests[-1]
        assert request.primary_type == "CancelAll"
        assert request.types["CancelAll"] == [
            {"name": "accountId", "type": "bytes32"},
            {"name": "marketId",  "type": "uint64"},
            {"name": "nonce",     "type": "uint64"},
        ]
        assert request.message == {"accountId": client.account_id, "marketId": 8, "nonce": nonce_provider()}
        assert request.domain["verifyingContract"] == CONTRACT
        assert recover_signer(request, signer.signatures[-1]) == signer.address

    @pytest.mark.asyncio
    async def test_cancel_unknown_market(self, client, transport) -> None:
        with pytest.raises(UnknownMarket):
            await client.cancel_all("BTC", "ETH")
        assert "ob_cancel_all" not in transport.methods()


# ---------------------------------------------------------------------------
# Pure builders
# ---------------------------------------------------------------------------

class TestBuilders:
    account = "0x" + "ab" * 32
    btc  = AssetInfo(asset_id=1, name="Bitcoin", ticker="BTC")
    usdc = AssetInfo(asset_id=2, name="USD Coin", ticker="USDC")

    def test_order_message(self) -> None:
        flag = OrderFlag(time_in_force=TimeInForce.FILL_OR_KILL)
        message = build_order_message(self.account, self.btc, self.usdc, Side.BID, "2", "0.5", flag, 11)
        assert (message.base, message.quote) == (1, 2)
        assert message.price_x18 == 2 * 10 ** 18
        assert message.amount == 5 * 10 ** 17
        assert message.expiration == 2 << 62

    def test_order_params_omit_reduce_only(self) -> None:
        params = build_order_params(
            self.account, self.btc, self.usdc, "ask", "2", "0.5", OrderFlag(reduce_only=True), "0xsig", 11,
        )
        assert "reduce_only" not in params[0]
        assert params[1] == "0xsig"

    def test_cancel_params(self) -> None:
        assert build_cancel_params(self.account, 7, 3, "0xsig", 11) == [
            {"account_id": self.account, "market_id": 7, "order_id": 3, "nonce": "11"}, "0xsig",
        ]

    def test_cancel_all_params(self) -> None:
        assert build_cancel_all_params(self.account, 7, "0xsig", 11) == [
            {"account_id": self.account, "market_id": 7, "nonce": "11"}, "0xsig",
        ]
