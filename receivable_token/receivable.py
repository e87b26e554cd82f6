"""Receivable token: mint collectibles in exchange for one configured payment asset.

Four entry paths lead to a mint:

* ``receive``: a plain native-currency transfer to the contract;
* ``mint_token``: an explicit request, paid by pulling an ERC-20 allowance
  (or by the attached native value);
* ``on_erc721_received``: an ERC-721 safe transfer notification;
* ``on_erc1155_received`` / ``on_erc1155_batch_received``: an ERC-1155 safe
  transfer notification for a single id.

Every path validates the payment against the descriptor, converts it to a
unit count, reserves that count from the supply guard and credits the payer
before any further external call is made. All paths share one re-entrancy
lock.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional, Sequence, Set

from .chain import ZERO_ADDRESS, Chain, Event, EventParam, external, non_reentrant, normalise_address
from .conversion import UnderpaymentPolicy, cost_of, resolve_units, units_for
from .descriptor import (
    FungibleToken,
    NativeCurrency,
    NonFungibleToken,
    PaymentDescriptor,
    PaymentKind,
    SemiFungibleToken,
    as_config,
)
from .errors import ConfigurationError, ConfigurationMismatch, InvalidAsset, PaymentRejected, Revert, Unauthorized
from .interfaces import ERC721_RECEIVED, ERC1155_BATCH_RECEIVED, ERC1155_RECEIVED
from .ledger import CollectibleLedger

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .config import DeploymentArguments

_LOGGER = logging.getLogger(__name__)

PAYMENT_RECEIVED = Event(
    "PaymentReceived",
    (
        EventParam("payer", "address", indexed=True),
        EventParam("kind", "uint8"),
        EventParam("amount", "uint256"),
        EventParam("units", "uint256"),
    ),
)
WITHDRAWAL = Event(
    "Withdrawal",
    (
        EventParam("recipient", "address", indexed=True),
        EventParam("amount", "uint256"),
    ),
)

_DESCRIPTOR_TYPES = (NativeCurrency, FungibleToken, NonFungibleToken, SemiFungibleToken)


def _is_count(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class ReceivableToken(CollectibleLedger):
    """Capped collectible that is minted only against the configured payment."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        name: str,
        symbol: str,
        descriptor: PaymentDescriptor,
        max_supply: int,
        base_uri: str = "",
        underpayment_policy: UnderpaymentPolicy = UnderpaymentPolicy.ACCEPT,
    ) -> None:
        if not isinstance(descriptor, _DESCRIPTOR_TYPES):
            raise ConfigurationError(f"Unsupported payment descriptor {descriptor!r}")
        super().__init__(chain, address, name, symbol, max_supply, base_uri)
        self.descriptor = descriptor
        self.underpayment_policy = UnderpaymentPolicy(underpayment_policy)
        self.owner = self.msg.sender
        self._credited_tokens: Set[int] = set()
        self._accounted_quantity = 0
        _LOGGER.info(
            "%s (%s) accepts %s at %s per unit, usable cap %d",
            name,
            symbol,
            descriptor.kind.name,
            descriptor.conversion_factor,
            max_supply - 1,
        )

    @external
    def payment_token(self) -> dict:
        return as_config(self.descriptor)

    # ------------------------------------------------------------------
    # entry paths
    # ------------------------------------------------------------------
    @external
    @non_reentrant
    def receive(self) -> int:
        if self.descriptor.kind is not PaymentKind.NATIVE:
            raise ConfigurationMismatch()
        payer, paid = self.msg.sender, self.msg.value
        units = resolve_units(self.descriptor, paid, self.underpayment_policy)
        return self._settle(payer, paid, units)

    @external
    @non_reentrant
    def mint_token(self, units: Optional[int] = None) -> int:
        """Mint ``units`` for the caller.

        With an ERC-20 descriptor the caller must have approved
        ``units * conversion_factor`` to this contract beforehand. With a
        native descriptor the count follows from the attached value; if
        ``units`` is also given it has to agree with it.
        """

        descriptor = self.descriptor
        payer = self.msg.sender

        if descriptor.kind is PaymentKind.NATIVE:
            paid = self.msg.value
            granted = resolve_units(descriptor, paid, self.underpayment_policy)
            if units is not None and (not _is_count(units) or units != granted):
                raise PaymentRejected("incorrect payment")
            return self._settle(payer, paid, granted)

        if descriptor.kind is PaymentKind.FUNGIBLE:
            if self.msg.value:
                raise ConfigurationMismatch()
            if not _is_count(units) or units == 0:
                raise PaymentRejected("mint count must be positive")
            cost = cost_of(descriptor, units)
            self._settle(payer, cost, units)
            if not self._call(descriptor.asset_address, "transfer_from", payer, self.address, cost):
                raise Revert("fungible payment transfer failed")
            return units

        raise ConfigurationMismatch()

    @external
    @non_reentrant
    def on_erc721_received(self, operator: str, from_: str, token_id: int, data: bytes = b"") -> bytes:
        descriptor = self._require_pushed_asset(PaymentKind.NON_FUNGIBLE, token_id)
        if token_id in self._credited_tokens:
            raise PaymentRejected("payment already credited")
        if self._call(descriptor.asset_address, "owner_of", token_id) != self.address:
            raise PaymentRejected("payment not received")
        self._credited_tokens.add(token_id)
        self._settle(from_, 1, units_for(descriptor))
        return ERC721_RECEIVED

    @external
    @non_reentrant
    def on_erc1155_received(
        self, operator: str, from_: str, token_id: int, quantity: int, data: bytes = b""
    ) -> bytes:
        self._receive_semi_fungible(from_, token_id, quantity)
        return ERC1155_RECEIVED

    @external
    @non_reentrant
    def on_erc1155_batch_received(
        self,
        operator: str,
        from_: str,
        token_ids: Sequence[int],
        quantities: Sequence[int],
        data: bytes = b"",
    ) -> bytes:
        if len(token_ids) != 1 or len(quantities) != 1:
            raise InvalidAsset()
        self._receive_semi_fungible(from_, token_ids[0], quantities[0])
        return ERC1155_BATCH_RECEIVED

    @external
    @non_reentrant
    def withdraw(self, recipient: str) -> int:
        """Send every collected payment to ``recipient``; owner only."""

        if self.msg.sender != self.owner:
            raise Unauthorized()
        recipient = normalise_address(recipient)
        if recipient == ZERO_ADDRESS:
            raise Revert("withdraw to the zero address")

        descriptor = self.descriptor
        kind = descriptor.kind
        if kind is PaymentKind.NATIVE:
            amount = self.chain.balance_of(self.address)
            self._record_withdrawal(recipient, amount)
            if amount:
                self._call(recipient, None, value=amount)
        elif kind is PaymentKind.FUNGIBLE:
            amount = self._call(descriptor.asset_address, "balance_of", self.address)
            self._record_withdrawal(recipient, amount)
            if amount and not self._call(descriptor.asset_address, "transfer", recipient, amount):
                raise Revert("fungible payment transfer failed")
        elif kind is PaymentKind.NON_FUNGIBLE:
            token_ids = sorted(self._credited_tokens)
            self._credited_tokens.clear()
            amount = len(token_ids)
            self._record_withdrawal(recipient, amount)
            for token_id in token_ids:
                self._call(descriptor.asset_address, "transfer_from", self.address, recipient, token_id)
        else:
            amount = self._accounted_quantity
            self._accounted_quantity = 0
            self._record_withdrawal(recipient, amount)
            if amount:
                self._call(
                    descriptor.asset_address,
                    "safe_transfer_from",
                    self.address,
                    recipient,
                    descriptor.asset_id,
                    amount,
                    b"",
                )
        return amount

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    def _require_pushed_asset(self, kind: PaymentKind, token_id: int) -> PaymentDescriptor:
        """Check that the notifying contract and id are exactly the configured asset."""

        descriptor = self.descriptor
        if self.msg.sender != descriptor.asset_address or token_id != descriptor.asset_id:
            raise InvalidAsset()
        if descriptor.kind is not kind:
            raise ConfigurationMismatch()
        return descriptor

    def _receive_semi_fungible(self, from_: str, token_id: int, quantity: int) -> None:
        descriptor = self._require_pushed_asset(PaymentKind.SEMI_FUNGIBLE, token_id)
        held = self._call(descriptor.asset_address, "balance_of", self.address, token_id)
        if held < self._accounted_quantity + quantity:
            raise PaymentRejected("payment not received")
        units = resolve_units(descriptor, quantity, self.underpayment_policy)
        self._accounted_quantity += quantity
        self._settle(from_, quantity, units)

    def _settle(self, payer: str, paid: int, units: int) -> int:
        self._credit(payer, units)
        self._emit(PAYMENT_RECEIVED, payer=normalise_address(payer), kind=int(self.descriptor.kind), amount=paid, units=units)
        return units

    def _record_withdrawal(self, recipient: str, amount: int) -> None:
        self._emit(WITHDRAWAL, recipient=recipient, amount=amount)
        _LOGGER.info("Withdrew %d of %s payment to %s", amount, self.descriptor.kind.name, recipient)


def deploy_receivable(chain: Chain, arguments: "DeploymentArguments", *, deployer: str) -> ReceivableToken:
    """Deploy a :class:`ReceivableToken` described by ``arguments``."""

    return chain.deploy(
        ReceivableToken,
        arguments.name,
        arguments.symbol,
        arguments.descriptor,
        arguments.max_supply,
        arguments.base_uri,
        arguments.underpayment_policy,
        deployer=deployer,
    )


__all__ = ["PAYMENT_RECEIVED", "ReceivableToken", "WITHDRAWAL", "deploy_receivable"]
