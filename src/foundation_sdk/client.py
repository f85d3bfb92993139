"""
client.py – Shared base of the perpetual and spot clients.

Owns the JSON-RPC transport, the signer and the account id derived from
them, and provides the async context manager.  Each public operation of
the concrete clients is a single encode → sign → call round trip; the
only state kept between calls is the fetch-once metadata caches.

Usage
-----
    import asyncio
    from foundation_sdk import FoundationPerpClient, LocalSigner, Side

    async def main() -> None:
        signer = LocalSigner("0x...")
        async with FoundationPerpClient(signer) as client:
            book = await client.get_orderbook_depth("CRYPTO_BTC_PERP", 5)
            await client.place_limit("CRYPTO_BTC_PERP", Side.BID, "50000", "0.01")

    asyncio.run(main())
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Optional

from .config import _ClientOptions
from .encoding import build_account_id
from .rpc import RpcTransport, make_transport
from .signing import Signer, TypedMessage, build_signing_request
from .types import ProductType

logger = logging.getLogger(__name__)


class BaseFoundationClient:
    """
    Parameters
    ----------
    signer    : Signer whose address owns the account
    options   : connection and account options
    transport : JSON-RPC transport; built from ``options.rpc_url`` if omitted
    """

    product_type: ClassVar[ProductType] = ProductType.UNKNOWN

    def __init__(
        self,
        signer: Signer,
        options: _ClientOptions,
        *,
        transport: Optional[RpcTransport] = None,
    ) -> None:
        self.options    = options
        self._signer    = signer
        self._rpc       = transport or make_transport(options.rpc_url, timeout=options.timeout)
        self.account_id = build_account_id(
            signer.address,
            self.product_type,
            options.broker_id,
            options.subaccount_index,
        )

    # ------------------------------------------------------------------
    # Async context manager
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "BaseFoundationClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the RPC transport."""
        await self._rpc.close()

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------

    @property
    def subaccount(self) -> str:
        """Alias of ``account_id``."""
        return self.account_id

    @property
    def signer(self) -> Signer:
        return self._signer

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _request(self, method: str, params: Optional[list[Any]] = None) -> Any:
        return await self._rpc.request(method, params)

    async def _sign(self, message: TypedMessage, verifying_contract: str) -> str:
        """Build the signing request and hand it to the signer."""
        request = build_signing_request(message, verifying_contract)
        logger.debug("Requesting %s signature from %s", message.primary_type, self._signer.address)
        return await self._signer.sign_typed_data(request)
