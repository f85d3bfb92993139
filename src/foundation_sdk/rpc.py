"""
rpc.py – JSON-RPC 2.0 channel to the venue.

Two transports implement the same ``request(method, params)`` coroutine:

  HttpRpcTransport       – one aiohttp POST per call
  WebSocketRpcTransport  – a single websockets connection, responses
                           correlated to requests by JSON-RPC ``id``

``make_transport(url)`` picks the WebSocket transport for ``ws://`` and
``wss://`` URLs and HTTP otherwise.

A JSON-RPC error object in the response raises RPCError.  Network
failures are not wrapped or retried; they propagate to the caller as
raised by aiohttp / websockets.  The WebSocket transport does not
reconnect on its own: requests in flight when the socket closes fail
with ConnectionError and the next request opens a new connection.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Optional, Protocol

import aiohttp
import websockets
from websockets.exceptions import ConnectionClosed

from .errors import RPCError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

JSONRPC_VERSION  = "2.0"
_PING_INTERVAL_S = 20
_PONG_TIMEOUT_S  = 10


# ---------------------------------------------------------------------------
# Envelope helpers (shared by both transports)
# ---------------------------------------------------------------------------

def _envelope(request_id: int, method: str, params: Optional[list[Any]]) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id":      request_id,
        "method":  method,
        "params":  params if params is not None else [],
    }


def _unwrap(method: str, response: Any) -> Any:
    """Return ``result`` or raise RPCError for an ``error`` member."""
    if not isinstance(response, dict):
        raise RPCError(-32700, f"malformed JSON-RPC response: {response!r}", method=method)
    error = response.get("error")
    if error is not None:
        if isinstance(error, dict):
            raise RPCError(
                int(error.get("code", 0)),
                str(error.get("message", "")),
                error.get("data"),
                method=method,
            )
        raise RPCError(0, str(error), method=method)
    return response.get("result")


class RpcTransport(Protocol):
    """What the clients need from a JSON-RPC channel."""

    async def request(self, method: str, params: Optional[list[Any]] = None) -> Any: ...

    async def close(self) -> None: ...


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

class HttpRpcTransport:
    """
    JSON-RPC over HTTP POST (aiohttp).

    Parameters
    ----------
    url     : RPC endpoint
    timeout : total timeout per request in seconds
    """

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url      = url
        self._timeout = timeout
        self._session: Any = None   # aiohttp.ClientSession, created on first use
        self._ids     = itertools.count(1)

    async def __aenter__(self) -> "HttpRpcTransport":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def request(self, method: str, params: Optional[list[Any]] = None) -> Any:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

        payload = _envelope(next(self._ids), method, params)
        logger.debug("RPC %s  method=%s  params=%s", self.url, method, payload["params"])

        async with self._session.post(
            self.url,
            json=payload,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        ) as resp:
            resp.raise_for_status()
            body = await resp.json(content_type=None)

        return _unwrap(method, body)


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------

class WebSocketRpcTransport:
    """
    JSON-RPC over a single WebSocket connection (websockets).

    The connection is opened on the first request.  A background task
    reads frames and resolves the future registered for each ``id``.

    Parameters
    ----------
    url     : ``ws://`` or ``wss://`` RPC endpoint
    timeout : seconds to wait for the response to each request
    """

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self.url           = url
        self._timeout      = timeout
        self._ws: Optional[Any]                    = None
        self._reader: Optional[asyncio.Task[None]] = None
        self._pending: dict[int, asyncio.Future[Any]] = {}
        self._ids          = itertools.count(1)
        self._connect_lock = asyncio.Lock()

    async def __aenter__(self) -> "WebSocketRpcTransport":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the connection; pending requests fail with ConnectionError."""
        ws, self._ws = self._ws, None
        reader, self._reader = self._reader, None
        if ws is not None:
            await ws.close()
        if reader is not None:
            await reader
        self._fail_pending(ConnectionError(f"WebSocket connection to {self.url} closed"))

    async def request(self, method: str, params: Optional[list[Any]] = None) -> Any:
        ws = await self._ensure_connected()

        request_id = next(self._ids)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        payload = _envelope(request_id, method, params)
        logger.debug("RPC %s  id=%d  method=%s  params=%s", self.url, request_id, method, payload["params"])
        try:
            await ws.send(json.dumps(payload))
            response = await asyncio.wait_for(future, self._timeout)
        finally:
            self._pending.pop(request_id, None)

        return _unwrap(method, response)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _ensure_connected(self) -> Any:
        if self._ws is not None:
            return self._ws

        async with self._connect_lock:
            if self._ws is None:
                logger.info("Connecting to JSON-RPC WebSocket at %s", self.url)
                ws = await websockets.connect(
                    self.url,
                    ping_interval=_PING_INTERVAL_S,
                    ping_timeout=_PONG_TIMEOUT_S,
                )
                self._ws     = ws
                self._reader = asyncio.create_task(self._recv_loop(ws))
                logger.info("WebSocket connected")
        return self._ws

    async def _recv_loop(self, ws: Any) -> None:
        """Read frames until the socket closes, then fail what is pending."""
        try:
            async for raw in ws:
                self._handle_message(raw)
        except ConnectionClosed as exc:
            logger.info("WebSocket closed: %s", exc)
        finally:
            if self._ws is ws:
                self._ws = None
            self._fail_pending(ConnectionError(f"WebSocket connection to {self.url} closed"))

    def _handle_message(self, raw: Any) -> None:
        try:
            msg = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Received non-JSON WebSocket message: %r", raw)
            return

        if not isinstance(msg, dict):
            logger.warning("Ignoring non-object WebSocket message: %r", msg)
            return

        future = self._pending.get(msg.get("id"))  # type: ignore[arg-type]
        if future is None:
            logger.warning("Response for unknown request id %r", msg.get("id"))
            return
        if not future.done():
            future.set_result(msg)

    def _fail_pending(self, exc: Exception) -> None:
        for future in self._pending.values():
            if not future.done():
                future.set_exception(exc)
        self._pending.clear()


# ---------------------------------------------------------------------------
# Convenience factory
# ---------------------------------------------------------------------------

def make_transport(url: str, timeout: float = 10.0) -> RpcTransport:
    """WebSocket transport for ws:// / wss:// URLs, HTTP otherwise."""
    if url.startswith("ws"):
        return WebSocketRpcTransport(url, timeout=timeout)
    return HttpRpcTransport(url, timeout=timeout)
