"""
rest.py – REST clients (sync and async) for the Foundation Network API.

The REST API is read-only and public: supported assets plus paginated
order and trade history.  Both clients raise APIError on non-2xx
responses and never retry.

Usage – sync
------------
    from foundation_sdk import FoundationRestClient, OrderHistoryQuery

    client = FoundationRestClient()
    assets = client.get_supported_assets()
    orders = client.get_order_history(OrderHistoryQuery(account=account_id, take=20))

Usage – async
-------------
    async with AsyncFoundationRestClient() as client:
        trades = await client.get_trade_history({"account": account_id, "take": 50})
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional, TypeVar, Union

import aiohttp
import requests
from pydantic import ValidationError

from .config import TESTNET_API_URL
from .errors import APIError, InvalidArgument
from .types import AssetInfo, OrderHistoryQuery, TradeHistoryQuery

logger = logging.getLogger(__name__)

_ASSETS_PATH        = "/asset/v1/supported-assets"
_ORDER_HISTORY_PATH = "/order/v1/history"
_TRADE_HISTORY_PATH = "/trade/v1/history"

Q = TypeVar("Q", OrderHistoryQuery, TradeHistoryQuery)


# ---------------------------------------------------------------------------
# Helpers (shared by sync and async clients)
# ---------------------------------------------------------------------------

def _coerce_query(model: type[Q], query: Union[Q, Mapping[str, Any]]) -> Q:
    """Accept a query model or a plain mapping; a missing account is a caller error."""
    if isinstance(query, model):
        return query
    try:
        return model.model_validate(dict(query))
    except ValidationError as exc:
        raise InvalidArgument(f"invalid {model.__name__}: {exc}") from exc


def build_history_path(path: str, query: Union[OrderHistoryQuery, TradeHistoryQuery]) -> str:
    """Path plus the query string of a history query."""
    return f"{path}?{query.to_query_string()}"


def _parse_assets(raw: Any) -> list[AssetInfo]:
    items = raw.get("data", raw) if isinstance(raw, dict) else raw
    return [AssetInfo.model_validate(a) for a in items]


# ---------------------------------------------------------------------------
# Synchronous client
# ---------------------------------------------------------------------------

class FoundationRestClient:
    """
    Synchronous REST client.

    Parameters
    ----------
    api_url : REST base URL (default: public testnet)
    timeout : HTTP timeout in seconds
    """

    def __init__(self, api_url: str = TESTNET_API_URL, timeout: float = 10.0) -> None:
        self.api_url  = api_url.rstrip("/")
        self._timeout = timeout
        self._session: Optional[requests.Session] = None

    def close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def _get(self, path: str) -> Any:
        if self._session is None:
            self._session = requests.Session()

        url = self.api_url + path
        logger.debug("GET %s", url)
        resp = self._session.get(url, timeout=self._timeout)
        if resp.status_code >= 400:
            raise APIError(resp.status_code, resp.text, method="GET", path=path)
        return resp.json()

    def get_supported_assets(self) -> list[AssetInfo]:
        """List the assets tradable on the spot venue."""
        return _parse_assets(self._get(_ASSETS_PATH))

    def get_order_history(self, query: Union[OrderHistoryQuery, Mapping[str, Any]]) -> Any:
        """Paginated order history of an account.  Returns the raw JSON."""
        q = _coerce_query(OrderHistoryQuery, query)
        return self._get(build_history_path(_ORDER_HISTORY_PATH, q))

    def get_trade_history(self, query: Union[TradeHistoryQuery, Mapping[str, Any]]) -> Any:
        """Paginated trade history of an account.  Returns the raw JSON."""
        q = _coerce_query(TradeHistoryQuery, query)
        return self._get(build_history_path(_TRADE_HISTORY_PATH, q))


# ---------------------------------------------------------------------------
# Async client
# ---------------------------------------------------------------------------

class AsyncFoundationRestClient:
    """
    Async REST client (aiohttp-based).

    Used by FoundationSpotClient to resolve asset tickers; shares the
    event loop with the RPC transport.
    """

    def __init__(self, api_url: str = TESTNET_API_URL, timeout: float = 10.0) -> None:
        self.api_url  = api_url.rstrip("/")
        self._timeout = timeout
        self._session: Any = None   # aiohttp.ClientSession, created on first use

    async def __aenter__(self) -> "AsyncFoundationRestClient":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def _get(self, path: str) -> Any:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

        url = self.api_url + path
        logger.debug("GET %s", url)
        async with self._session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        ) as resp:
            if resp.status >= 400:
                body = await resp.text()
                raise APIError(resp.status, body, method="GET", path=path)
            return await resp.json(content_type=None)

    async def get_supported_assets(self) -> list[AssetInfo]:
        return _parse_assets(await self._get(_ASSETS_PATH))

    async def get_order_history(self, query: Union[OrderHistoryQuery, Mapping[str, Any]]) -> Any:
        q = _coerce_query(OrderHistoryQuery, query)
        return await self._get(build_history_path(_ORDER_HISTORY_PATH, q))

    async def get_trade_history(self, query: Union[TradeHistoryQuery, Mapping[str, Any]]) -> Any:
        q = _coerce_query(TradeHistoryQuery, query)
        return await self._get(build_history_path(_TRADE_HISTORY_PATH, q))
