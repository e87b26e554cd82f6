"""Payment descriptors: which single asset a receivable token accepts."""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import IntEnum
from typing import Any, Mapping, Optional, Union

from web3 import Web3

from .chain import ZERO_ADDRESS, normalise_address
from .errors import ConfigurationError


class PaymentKind(IntEnum):
    """Payment rails, numbered like the ``tokenType`` field of the deployment struct."""

    NATIVE = 0
    FUNGIBLE = 1
    NON_FUNGIBLE = 2
    SEMI_FUNGIBLE = 3


_KIND_ALIASES = {
    "native": PaymentKind.NATIVE,
    "eth": PaymentKind.NATIVE,
    "fungible": PaymentKind.FUNGIBLE,
    "erc20": PaymentKind.FUNGIBLE,
    "nonfungible": PaymentKind.NON_FUNGIBLE,
    "nft": PaymentKind.NON_FUNGIBLE,
    "erc721": PaymentKind.NON_FUNGIBLE,
    "semifungible": PaymentKind.SEMI_FUNGIBLE,
    "erc1155": PaymentKind.SEMI_FUNGIBLE,
}


def _require_factor(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(f"Conversion factor must be an integer, got {value!r}")
    if value <= 0:
        raise ConfigurationError("Conversion factor must be positive; a zero factor would allow unbounded minting")
    return value


def _require_asset(value: Any) -> str:
    try:
        address = normalise_address(value)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc
    if address == ZERO_ADDRESS:
        raise ConfigurationError("Token payment rails need a non-zero asset address")
    return address


def _require_asset_id(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ConfigurationError(f"Asset id must be a non-negative integer, got {value!r}")
    return value


@dataclass(frozen=True)
class NativeCurrency:
    """Pay in wei; ``conversion_factor`` wei buys one output unit."""

    conversion_factor: int

    kind = PaymentKind.NATIVE

    def __post_init__(self) -> None:
        _require_factor(self.conversion_factor)

    @property
    def asset_address(self) -> str:
        return ZERO_ADDRESS

    @property
    def asset_id(self) -> int:
        return 0


@dataclass(frozen=True)
class FungibleToken:
    """Pull an ERC-20 style token through an allowance."""

    asset_address: str
    conversion_factor: int

    kind = PaymentKind.FUNGIBLE

    def __post_init__(self) -> None:
        object.__setattr__(self, "asset_address", _require_asset(self.asset_address))
        _require_factor(self.conversion_factor)

    @property
    def asset_id(self) -> int:
        return 0


@dataclass(frozen=True)
class NonFungibleToken:
    """Accept one specific ERC-721 token pushed with a safe transfer."""

    asset_address: str
    asset_id: int
    conversion_factor: int = 1

    kind = PaymentKind.NON_FUNGIBLE

    def __post_init__(self) -> None:
        object.__setattr__(self, "asset_address", _require_asset(self.asset_address))
        _require_asset_id(self.asset_id)
        _require_factor(self.conversion_factor)


@dataclass(frozen=True)
class SemiFungibleToken:
    """Accept quantities of one ERC-1155 id pushed with a safe transfer."""

    asset_address: str
    asset_id: int
    conversion_factor: int = 1

    kind = PaymentKind.SEMI_FUNGIBLE

    def __post_init__(self) -> None:
        object.__setattr__(self, "asset_address", _require_asset(self.asset_address))
        _require_asset_id(self.asset_id)
        _require_factor(self.conversion_factor)


PaymentDescriptor = Union[NativeCurrency, FungibleToken, NonFungibleToken, SemiFungibleToken]


def as_config(descriptor: PaymentDescriptor) -> dict[str, Any]:
    """Serialise ``descriptor`` to the deployment struct layout."""

    return {
        "tokenType": int(descriptor.kind),
        "tokenAddress": descriptor.asset_address,
        "tokenId": descriptor.asset_id,
        "aux": descriptor.conversion_factor,
    }


def parse_kind(value: Any) -> PaymentKind:
    if isinstance(value, PaymentKind):
        return value
    if isinstance(value, bool):
        raise ConfigurationError("tokenType must be a payment kind code or name, not a boolean")
    if isinstance(value, int):
        try:
            return PaymentKind(value)
        except ValueError as exc:
            raise ConfigurationError(f"Unknown tokenType {value}") from exc
    if isinstance(value, str):
        text = value.strip().lower().replace("-", "").replace("_", "")
        if text.isdigit():
            return parse_kind(int(text))
        kind = _KIND_ALIASES.get(text)
        if kind is None:
            raise ConfigurationError(f"Unknown tokenType {value!r}")
        return kind
    raise ConfigurationError(f"Unsupported tokenType value {value!r}")


def parse_amount(value: Any) -> int:
    """Return an integer raw amount from an integer or a ``"<n> <unit>"`` string.

    ``"0.02 ether"`` and ``"20 gwei"`` are converted with :meth:`Web3.to_wei`;
    a bare numeric string is taken as raw units.
    """

    if isinstance(value, bool):
        raise ConfigurationError("Amounts must be numeric")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ConfigurationError(f"Unsupported amount {value!r}")

    parts = value.split()
    try:
        if len(parts) == 1:
            return int(parts[0])
        if len(parts) == 2:
            return int(Web3.to_wei(Decimal(parts[0]), parts[1].lower()))
    except (InvalidOperation, ValueError) as exc:
        raise ConfigurationError(f"Cannot parse amount {value!r}: {exc}") from exc
    raise ConfigurationError(f"Cannot parse amount {value!r}")


def _first(config: Mapping[str, Any], *keys: str) -> Optional[Any]:
    for key in keys:
        if key in config and config[key] is not None:
            return config[key]
    return None


def descriptor_from_config(config: Mapping[str, Any]) -> PaymentDescriptor:
    """Build a descriptor from ``{tokenType, tokenAddress, tokenId, aux}``.

    snake_case spellings (``token_type``, ``asset_address``, ``asset_id``,
    ``conversion_factor``) are accepted as well.
    """

    kind = parse_kind(_first(config, "tokenType", "token_type", "kind"))
    raw_factor = _first(config, "aux", "conversion_factor", "conversionFactor")
    if raw_factor is None:
        raise ConfigurationError("Payment config is missing the conversion factor (aux)")
    factor = parse_amount(raw_factor)
    address = _first(config, "tokenAddress", "token_address", "asset_address")
    asset_id = _first(config, "tokenId", "token_id", "asset_id")
    if asset_id is None:
        asset_id = 0
    elif isinstance(asset_id, str) and asset_id.strip().isdigit():
        asset_id = int(asset_id)

    if kind is PaymentKind.NATIVE:
        if address is not None and str(address).lower() != ZERO_ADDRESS:
            raise ConfigurationError("Native currency payments must use the zero address")
        return NativeCurrency(conversion_factor=factor)
    if kind is PaymentKind.FUNGIBLE:
        return FungibleToken(asset_address=address, conversion_factor=factor)
    if kind is PaymentKind.NON_FUNGIBLE:
        return NonFungibleToken(asset_address=address, asset_id=asset_id, conversion_factor=factor)
    if kind is PaymentKind.SEMI_FUNGIBLE:
        return SemiFungibleToken(asset_address=address, asset_id=asset_id, conversion_factor=factor)
    raise ConfigurationError(f"Unhandled payment kind {kind!r}")


__all__ = [
    "FungibleToken",
    "NativeCurrency",
    "NonFungibleToken",
    "PaymentDescriptor",
    "PaymentKind",
    "SemiFungibleToken",
    "as_config",
    "descriptor_from_config",
    "parse_amount",
    "parse_kind",
]
