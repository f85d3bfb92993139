"""
signing.py – EIP-712 typed messages for Foundation Network.

Every state-changing call (place, cancel, cancel-all) carries an EIP-712
signature that the venue verifies against the market's offchain-book
contract.

How it works
------------
1. Build one of the message variants below.  Each variant owns its exact
   field list and ABI types; the order is the same in ``message`` and in
   the ``types`` schema.
2. ``build_signing_request`` pairs it with the EIP-712 domain (fixed
   name / version / chainId plus the resolved verifying contract).
3. A ``Signer`` turns the request into a hex signature.  ``LocalSigner``
   does this with an eth_account private key; any object with an
   ``address`` and an async ``sign_typed_data`` works (hardware wallets,
   remote signers).

Variants
--------
    PerpOrderMessage   Order      subaccount, price, amount, nonce, expiration, triggerCondition
    SpotOrderMessage   Order      accountId, base, quote, priceX18, amount, expiration, nonce, triggerCondition
    PerpCancelMessage  Cancel     subaccount, nonce, orderId
    SpotCancelMessage  Cancel     accountId, marketId, orderId, nonce
    CancelAllMessage   CancelAll  accountId, marketId, nonce

References
----------
- EIP-712 spec : https://eips.ethereum.org/EIPS/eip-712
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol

from eth_account import Account
from eth_account.messages import SignableMessage, encode_typed_data

from .errors import ConfigurationUnavailable

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Domain
# ---------------------------------------------------------------------------

EIP712_DOMAIN_NAME     = "FOUNDATION"
EIP712_DOMAIN_VERSION  = "0.1.0"
EIP712_DOMAIN_CHAIN_ID = 1

# (eip712 field name, abi type, attribute name)
FieldSpec = tuple[str, str, str]


def build_eip712_domain(
    verifying_contract: str,
    name: str = EIP712_DOMAIN_NAME,
    version: str = EIP712_DOMAIN_VERSION,
    chain_id: int = EIP712_DOMAIN_CHAIN_ID,
) -> dict[str, Any]:
    """
    Construct the EIP-712 domain dict.

    Raises ConfigurationUnavailable if the verifying contract has not been
    resolved, so nothing is ever signed against an empty domain.
    """
    if not verifying_contract:
        raise ConfigurationUnavailable("verifying contract address is not available")
    return {
        "name":              name,
        "version":           version,
        "chainId":           chain_id,
        "verifyingContract": verifying_contract,
    }


# ---------------------------------------------------------------------------
# Message variants
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TypedMessage:
    """Base of the closed set of signable messages."""

    primary_type: ClassVar[str]
    schema:       ClassVar[tuple[FieldSpec, ...]]

    def types(self) -> dict[str, list[dict[str, str]]]:
        return {
            self.primary_type: [{"name": name, "type": abi} for name, abi, _ in self.schema]
        }

    def message(self) -> dict[str, Any]:
        return {name: getattr(self, attr) for name, _, attr in self.schema}


@dataclass(frozen=True)
class PerpOrderMessage(TypedMessage):
    subaccount:        str
    price:             int
    amount:            int
    nonce:             int
    expiration:        int
    trigger_condition: int = 0

    primary_type: ClassVar[str] = "Order"
    schema: ClassVar[tuple[FieldSpec, ...]] = (
        ("subaccount",       "bytes32", "subaccount"),
        ("price",            "int256",  "price"),
        ("amount",           "int256",  "amount"),
        ("nonce",            "uint64",  "nonce"),
        ("expiration",       "uint64",  "expiration"),
        ("triggerCondition", "uint128", "trigger_condition"),
    )


@dataclass(frozen=True)
class SpotOrderMessage(TypedMessage):
    account_id:        str
    base:              int
    quote:             int
    price_x18:         int
    amount:            int
    expiration:        int
    nonce:             int
    trigger_condition: int = 0

    primary_type: ClassVar[str] = "Order"
    schema: ClassVar[tuple[FieldSpec, ...]] = (
        ("accountId",        "bytes32", "account_id"),
        ("base",             "uint64",  "base"),
        ("quote",            "uint64",  "quote"),
        ("priceX18",         "int128",  "price_x18"),
        ("amount",           "int128",  "amount"),
        ("expiration",       "uint64",  "expiration"),
        ("nonce",            "uint64",  "nonce"),
        ("triggerCondition", "uint128", "trigger_condition"),
    )


@dataclass(frozen=True)
class PerpCancelMessage(TypedMessage):
    subaccount: str
    nonce:      int
    order_id:   int

    primary_type: ClassVar[str] = "Cancel"
    schema: ClassVar[tuple[FieldSpec, ...]] = (
        ("subaccount", "bytes32", "subaccount"),
        ("nonce",      "uint64",  "nonce"),
        ("orderId",    "uint64",  "order_id"),
    )


@dataclass(frozen=True)
class SpotCancelMessage(TypedMessage):
    account_id: str
    market_id:  int
    order_id:   int
    nonce:      int

    primary_type: ClassVar[str] = "Cancel"
    schema: ClassVar[tuple[FieldSpec, ...]] = (
        ("accountId", "bytes32", "account_id"),
        ("marketId",  "uint64",  "market_id"),
        ("orderId",   "uint64",  "order_id"),
        ("nonce",     "uint64",  "nonce"),
    )


@dataclass(frozen=True)
class CancelAllMessage(TypedMessage):
    account_id: str
    market_id:  int
    nonce:      int

    primary_type: ClassVar[str] = "CancelAll"
    schema: ClassVar[tuple[FieldSpec, ...]] = (
        ("accountId", "bytes32", "account_id"),
        ("marketId",  "uint64",  "market_id"),
        ("nonce",     "uint64",  "nonce"),
    )


# ---------------------------------------------------------------------------
# Signing request
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TypedSigningRequest:
    """Domain + message + type schema handed to a Signer.  Never persisted."""

    domain:       dict[str, Any]
    primary_type: str
    types:        dict[str, list[dict[str, str]]]
    message:      dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        """The request in the usual ``eth_signTypedData_v4`` JSON shape."""
        return {
            "domain":      self.domain,
            "primaryType": self.primary_type,
            "types":       self.types,
            "message":     self.message,
        }

    def signable(self) -> SignableMessage:
        """Encode for eth_account (bytesN fields are given as 0x-hex)."""
        values: dict[str, Any] = {}
        for field in self.types[self.primary_type]:
            value = self.message[field["name"]]
            if field["type"].startswith("bytes") and isinstance(value, str):
                value = bytes.fromhex(value.removeprefix("0x"))
            values[field["name"]] = value
        return encode_typed_data(
            domain_data=self.domain,
            message_types=self.types,
            message_data=values,
        )


def build_signing_request(message: TypedMessage, verifying_contract: str) -> TypedSigningRequest:
    """Pair a message variant with the domain of ``verifying_contract``."""
    domain = build_eip712_domain(verifying_contract)
    return TypedSigningRequest(
        domain=domain,
        primary_type=message.primary_type,
        types=message.types(),
        message=message.message(),
    )


# ---------------------------------------------------------------------------
# Signers
# ---------------------------------------------------------------------------

class Signer(Protocol):
    """Anything that owns an address and can sign EIP-712 requests."""

    @property
    def address(self) -> str: ...

    async def sign_typed_data(self, request: TypedSigningRequest) -> str: ...


class LocalSigner:
    """
    Signer backed by an in-memory eth_account key.

    Parameters
    ----------
    private_key : hex private key (with or without leading ``0x``)
    """

    def __init__(self, private_key: str) -> None:
        self._account = Account.from_key(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_typed_data(self, request: TypedSigningRequest) -> str:
        logger.debug(
            "Signing %s for %s", request.primary_type, request.domain.get("verifyingContract"),
        )
        signed = self._account.sign_message(request.signable())
        return "0x" + bytes(signed.signature).hex()


def recover_signer(request: TypedSigningRequest, signature: str) -> str:
    """
    Recover the address that produced ``signature`` over ``request``.

    Useful for verification / testing without submitting to the venue.
    """
    if not signature:
        raise ValueError("signature is empty")
    address: str = Account.recover_message(
        request.signable(),
        signature=bytes.fromhex(signature.removeprefix("0x")),
    )
    return address
