"""
errors.py – Exception hierarchy for the Foundation Network SDK.

FoundationError
├── InvalidArgument          – malformed enum value / out-of-range number
├── UnknownTicker            – ticker absent from the fetched market list
│   └── UnknownMarket        – no market for a base/quote asset pair
├── EmptyOrderBook           – market order cannot be priced
├── ConfigurationUnavailable – signing/venue config not resolvable
├── RPCError                 – JSON-RPC error object returned by the venue
└── APIError                 – REST endpoint returned a non-2xx status

Network failures (aiohttp / requests / websockets exceptions) are never
wrapped; they reach the caller as raised by the transport.
"""

from __future__ import annotations

from typing import Any, Optional


class FoundationError(Exception):
    """Base class for every error raised by this SDK."""


class InvalidArgument(FoundationError, ValueError):
    """A caller-supplied value is malformed or out of range."""


class UnknownTicker(FoundationError, LookupError):
    """Raised when a ticker is not present after the market list was fetched."""

    def __init__(self, ticker: str) -> None:
        self.ticker = ticker
        super().__init__(f"unknown ticker {ticker!r}")


class UnknownMarket(UnknownTicker):
    """Raised when no market trades the requested base/quote pair."""

    def __init__(self, base: str, quote: str) -> None:
        self.base  = base
        self.quote = quote
        super().__init__(f"{base}/{quote}")


class EmptyOrderBook(FoundationError):
    """The side of the book a market order would cross has no levels."""


class ConfigurationUnavailable(FoundationError):
    """Venue signing configuration is missing or incomplete."""


class RPCError(FoundationError):
    """The venue answered a JSON-RPC request with an error object."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None, method: str = "") -> None:
        self.code    = code
        self.message = message
        self.data    = data
        self.method  = method
        location = f" {method}" if method else ""
        super().__init__(f"RPC error [{code}]{location}: {message}")


class APIError(FoundationError):
    """Raised when the REST API returns an error response."""

    def __init__(self, status_code: int, body: str, method: str = "", path: str = "") -> None:
        self.status_code = status_code
        self.body        = body
        self.method      = method.upper()
        self.path        = path
        location = f" {self.method} {self.path}" if path else ""
        super().__init__(f"API error [{status_code}]{location}: {body}")
