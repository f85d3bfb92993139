"""
config.py – Client options with defaults pointing at the public testnet.

Options are plain in-memory objects; nothing is read from the
environment.  Override only what differs:

    options = PerpClientOptions(rpc_url="wss://testnet-rpc.foundation.network/perpetual")
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from .errors import InvalidArgument

TESTNET_PERP_RPC_URL = "https://testnet-rpc.foundation.network/perpetual"
TESTNET_SPOT_RPC_URL = "https://testnet-rpc.foundation.network/spot"
TESTNET_API_URL      = "https://testnet-api.foundation.network"


class _ClientOptions(BaseModel):
    rpc_url:          str
    broker_id:        int   = 1
    subaccount_index: int   = 0
    timeout:          float = 10.0

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as exc:
            raise InvalidArgument(f"invalid client options: {exc}") from exc

    @field_validator("rpc_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://", "ws://", "wss://")):
            raise ValueError(f"rpc_url must be an http(s) or ws(s) URL, got '{v}'")
        return v

    @field_validator("broker_id")
    @classmethod
    def validate_broker_id(cls, v: int) -> int:
        if not (0 <= v < 10 ** 8):
            raise ValueError(f"broker_id must fit in 8 decimal digits, got {v}")
        return v

    @field_validator("subaccount_index")
    @classmethod
    def validate_subaccount_index(cls, v: int) -> int:
        if not (0 <= v < 10 ** 4):
            raise ValueError(f"subaccount_index must fit in 4 decimal digits, got {v}")
        return v

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be positive")
        return v


class PerpClientOptions(_ClientOptions):
    """
    rpc_url          : JSON-RPC endpoint; ``ws(s)://`` selects the WebSocket transport
    broker_id        : broker the account trades under
    subaccount_index : subaccount of the signer's wallet
    timeout          : per-request timeout in seconds
    """
    rpc_url: str = TESTNET_PERP_RPC_URL


class SpotClientOptions(_ClientOptions):
    """As PerpClientOptions, plus ``api_url``: base URL of the REST API."""
    rpc_url: str = TESTNET_SPOT_RPC_URL
    api_url: str = TESTNET_API_URL
