"""
tests/conftest.py – Offline fakes shared by the client tests.

  FakeTransport   – in-memory JSON-RPC channel: canned result per method,
                    records every (method, params) call
  RecordingSigner – wraps a LocalSigner and keeps every signing request
  FakeRest        – stands in for AsyncFoundationRestClient
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from foundation_sdk.encoding import NonceProvider
from foundation_sdk.signing import LocalSigner, TypedSigningRequest
from foundation_sdk.types import AssetInfo

# Deterministic test private key (DO NOT use with real funds)
TEST_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"

FIXED_NOW_MS = 1_700_000_000_000
FIXED_RANDOM = 7


class FakeTransport:
    """Returns ``responses[method]`` (or ``responses[method](params)`` if callable)."""

    def __init__(self, responses: Optional[dict[str, Any]] = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, Any]] = []
        self.closed = False

    async def request(self, method: str, params: Optional[list[Any]] = None) -> Any:
        self.calls.append((method, params))
        value = self.responses.get(method)
        if callable(value):
            return value(params)
        return value

    async def close(self) -> None:
        self.closed = True

    def methods(self) -> list[str]:
        return [method for method, _ in self.calls]

    def last(self, method: str) -> Any:
        """Params of the most recent call to ``method``."""
        for name, params in reversed(self.calls):
            if name == method:
                return params
        raise AssertionError(f"{method} was never called")


class RecordingSigner:
    def __init__(self, private_key: str = TEST_PRIVATE_KEY) -> None:
        self._inner = LocalSigner(private_key)
        self.requests: list[TypedSigningRequest] = []
        self.signatures: list[str] = []

    @property
    def address(self) -> str:
        return self._inner.address

    async def sign_typed_data(self, request: TypedSigningRequest) -> str:
        self.requests.append(request)
        signature = await self._inner.sign_typed_data(request)
        self.signatures.append(signature)
        return signature


class FakeRest:
    def __init__(self, assets: list[dict[str, Any]]) -> None:
        self._assets = assets
        self.asset_calls = 0
        self.history_queries: list[tuple[str, Any]] = []
        self.closed = False

    async def get_supported_assets(self) -> list[AssetInfo]:
        self.asset_calls += 1
        return [AssetInfo.model_validate(a) for a in self._assets]

    async def get_order_history(self, query: Any) -> Any:
        self.history_queries.append(("orders", query))
        return []

    async def get_trade_history(self, query: Any) -> Any:
        self.history_queries.append(("trades", query))
        return []

    async def close(self) -> None:
        self.closed = True


def fixed_nonce_provider() -> NonceProvider:
    return NonceProvider(clock=lambda: FIXED_NOW_MS, randbelow=lambda n: FIXED_RANDOM)


# ---------------------------------------------------------------------------
# --integration flag
# ---------------------------------------------------------------------------

def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="Run integration tests against the Foundation testnet",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--integration"):
        return
    skip_integration = pytest.mark.skip(reason="pass --integration to run against testnet")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def signer() -> RecordingSigner:
    return RecordingSigner()


@pytest.fixture
def nonce_provider() -> NonceProvider:
    return fixed_nonce_provider()


@pytest.fixture
def make_transport() -> Callable[..., FakeTransport]:
    return FakeTransport


@pytest.fixture
def make_rest() -> Callable[..., FakeRest]:
    return FakeRest
