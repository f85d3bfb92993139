"""
Foundation SDK – Python SDK for Foundation Network perpetual and spot venues.

Provides:
  - Perpetual client                   (perp.py     → FoundationPerpClient)
  - Spot client                        (spot.py     → FoundationSpotClient)
  - Account id / order flag / nonce    (encoding.py)
  - EIP-712 typed messages + signers   (signing.py  → LocalSigner)
  - JSON-RPC transports                (rpc.py      → HttpRpcTransport, WebSocketRpcTransport)
  - REST history clients               (rest.py     → FoundationRestClient, AsyncFoundationRestClient)
  - Typed Pydantic v2 models           (types.py)

Quickstart
----------
    import asyncio
    from foundation_sdk import FoundationPerpClient, LocalSigner, Side

    async def main() -> None:
        async with FoundationPerpClient(LocalSigner("0x...")) as client:
            await client.place_limit("CRYPTO_BTC_PERP", Side.BID, "50000", "0.01",
                                     {"time_in_force": "post_only"})

    asyncio.run(main())
"""

from .types import (
    # Enums
    ProductType,
    Side,
    TimeInForce,
    SelfTradeBehavior,
    OrderStatus,
    OrderTag,
    # Order flag
    OrderFlag,
    DEFAULT_ORDER_FLAG,
    # Metadata
    MarketConfig,
    MarketState,
    AssetInfo,
    SpotMarket,
    SigningConfig,
    SpotConfig,
    FeeTier,
    # Account
    Position,
    AccountInfo,
    Balance,
    # Book / orders
    DepthLevel,
    Depth,
    PendingOrder,
    SpotPendingOrder,
    # REST queries
    OrderHistoryQuery,
    TradeHistoryQuery,
)
from .errors import (
    FoundationError,
    InvalidArgument,
    UnknownTicker,
    UnknownMarket,
    EmptyOrderBook,
    ConfigurationUnavailable,
    RPCError,
    APIError,
)
from .encoding import (
    build_account_id,
    build_perp_account_id,
    encode_flag,
    decode_flag,
    resolve_flag,
    to_x18,
    from_x18,
    signed_amount,
    NonceProvider,
)
from .signing import (
    TypedMessage,
    PerpOrderMessage,
    SpotOrderMessage,
    PerpCancelMessage,
    SpotCancelMessage,
    CancelAllMessage,
    TypedSigningRequest,
    build_eip712_domain,
    build_signing_request,
    Signer,
    LocalSigner,
    recover_signer,
)
from .pricing import market_price
from .config import (
    PerpClientOptions,
    SpotClientOptions,
    TESTNET_PERP_RPC_URL,
    TESTNET_SPOT_RPC_URL,
    TESTNET_API_URL,
)
from .rpc import RpcTransport, HttpRpcTransport, WebSocketRpcTransport, make_transport
from .rest import FoundationRestClient, AsyncFoundationRestClient
from .perp import FoundationPerpClient
from .spot import FoundationSpotClient

__all__ = [
    # Enums
    "ProductType",
    "Side",
    "TimeInForce",
    "SelfTradeBehavior",
    "OrderStatus",
    "OrderTag",
    # Order flag
    "OrderFlag",
    "DEFAULT_ORDER_FLAG",
    # Metadata
    "MarketConfig",
    "MarketState",
    "AssetInfo",
    "SpotMarket",
    "SigningConfig",
    "SpotConfig",
    "FeeTier",
    # Account
    "Position",
    "AccountInfo",
    "Balance",
    # Book / orders
    "DepthLevel",
    "Depth",
    "PendingOrder",
    "SpotPendingOrder",
    # REST queries
    "OrderHistoryQuery",
    "TradeHistoryQuery",
    # Errors
    "FoundationError",
    "InvalidArgument",
    "UnknownTicker",
    "UnknownMarket",
    "EmptyOrderBook",
    "ConfigurationUnavailable",
    "RPCError",
    "APIError",
    # Encoding
    "build_account_id",
    "build_perp_account_id",
    "encode_flag",
    "decode_flag",
    "resolve_flag",
    "to_x18",
    "from_x18",
    "signed_amount",
    "NonceProvider",
    # Signing
    "TypedMessage",
    "PerpOrderMessage",
    "SpotOrderMessage",
    "PerpCancelMessage",
    "SpotCancelMessage",
    "CancelAllMessage",
    "TypedSigningRequest",
    "build_eip712_domain",
    "build_signing_request",
    "Signer",
    "LocalSigner",
    "recover_signer",
    # Pricing
    "market_price",
    # Config
    "PerpClientOptions",
    "SpotClientOptions",
    "TESTNET_PERP_RPC_URL",
    "TESTNET_SPOT_RPC_URL",
    "TESTNET_API_URL",
    # Transports
    "RpcTransport",
    "HttpRpcTransport",
    "WebSocketRpcTransport",
    "make_transport",
    # REST
    "FoundationRestClient",
    "AsyncFoundationRestClient",
    # Clients
    "FoundationPerpClient",
    "FoundationSpotClient",
]

__version__ = "0.1.0"
