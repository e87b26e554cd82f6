"""Collectible (ERC-721 style) ledger the receivable token is built on."""
from __future__ import annotations

import logging
from typing import Dict, Tuple

from .chain import ZERO_ADDRESS, Chain, Contract, Event, EventParam, external, normalise_address
from .errors import Revert
from .interfaces import ERC721_RECEIVED
from .supply import SupplyGuard

_LOGGER = logging.getLogger(__name__)

TRANSFER = Event(
    "Transfer",
    (
        EventParam("from", "address", indexed=True),
        EventParam("to", "address", indexed=True),
        EventParam("tokenId", "uint256", indexed=True),
    ),
)
APPROVAL = Event(
    "Approval",
    (
        EventParam("owner", "address", indexed=True),
        EventParam("approved", "address", indexed=True),
        EventParam("tokenId", "uint256", indexed=True),
    ),
)
APPROVAL_FOR_ALL = Event(
    "ApprovalForAll",
    (
        EventParam("owner", "address", indexed=True),
        EventParam("operator", "address", indexed=True),
        EventParam("approved", "bool"),
    ),
)


class ERC721Ledger(Contract):
    """Ownership records, approvals and transfers for non-fungible tokens."""

    def __init__(self, chain: Chain, address: str, name: str, symbol: str) -> None:
        super().__init__(chain, address)
        self.name = name
        self.symbol = symbol
        self._owners: Dict[int, str] = {}
        self._balances: Dict[str, int] = {}
        self._token_approvals: Dict[int, str] = {}
        self._operator_approvals: Dict[Tuple[str, str], bool] = {}

    @external
    def balance_of(self, owner: str) -> int:
        owner = normalise_address(owner)
        if owner == ZERO_ADDRESS:
            raise Revert("ERC721: address zero is not a valid owner")
        return self._balances.get(owner, 0)

    @external
    def owner_of(self, token_id: int) -> str:
        owner = self._owners.get(token_id)
        if owner is None:
            raise Revert("ERC721: invalid token ID")
        return owner

    def exists(self, token_id: int) -> bool:
        return token_id in self._owners

    @external
    def get_approved(self, token_id: int) -> str:
        self.owner_of(token_id)
        return self._token_approvals.get(token_id, ZERO_ADDRESS)

    @external
    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self._operator_approvals.get((normalise_address(owner), normalise_address(operator)), False)

    @external
    def approve(self, to: str, token_id: int) -> None:
        to = normalise_address(to)
        owner = self.owner_of(token_id)
        if to == owner:
            raise Revert("ERC721: approval to current owner")
        caller = self.msg.sender
        if caller != owner and not self.is_approved_for_all(owner, caller):
            raise Revert("ERC721: approve caller is not token owner or approved for all")
        self._token_approvals[token_id] = to
        self._emit(APPROVAL, owner=owner, approved=to, tokenId=token_id)

    @external
    def set_approval_for_all(self, operator: str, approved: bool) -> None:
        operator = normalise_address(operator)
        caller = self.msg.sender
        if operator == caller:
            raise Revert("ERC721: approve to caller")
        self._operator_approvals[(caller, operator)] = bool(approved)
        self._emit(APPROVAL_FOR_ALL, owner=caller, operator=operator, approved=bool(approved))

    @external
    def transfer_from(self, from_: str, to: str, token_id: int) -> None:
        self._require_approved_or_owner(self.msg.sender, token_id)
        self._transfer(normalise_address(from_), normalise_address(to), token_id)

    @external
    def safe_transfer_from(self, from_: str, to: str, token_id: int, data: bytes = b"") -> None:
        """Transfer, then require a contract recipient to acknowledge the token."""

        operator = self.msg.sender
        self._require_approved_or_owner(operator, token_id)
        from_ = normalise_address(from_)
        to = normalise_address(to)
        self._transfer(from_, to, token_id)
        self._check_on_received(operator, from_, to, token_id, data)

    def _require_approved_or_owner(self, spender: str, token_id: int) -> None:
        owner = self.owner_of(token_id)
        if spender == owner or self.is_approved_for_all(owner, spender):
            return
        if self._token_approvals.get(token_id) == spender:
            return
        raise Revert("ERC721: caller is not token owner or approved")

    def _transfer(self, from_: str, to: str, token_id: int) -> None:
        if self.owner_of(token_id) != from_:
            raise Revert("ERC721: transfer from incorrect owner")
        if to == ZERO_ADDRESS:
            raise Revert("ERC721: transfer to the zero address")
        self._token_approvals.pop(token_id, None)
        self._balances[from_] -= 1
        self._balances[to] = self._balances.get(to, 0) + 1
        self._owners[token_id] = to
        self._emit(TRANSFER, **{"from": from_, "to": to, "tokenId": token_id})

    def _mint(self, to: str, token_id: int) -> None:
        to = normalise_address(to)
        if to == ZERO_ADDRESS:
            raise Revert("ERC721: mint to the zero address")
        if token_id in self._owners:
            raise Revert("ERC721: token already minted")
        self._owners[token_id] = to
        self._balances[to] = self._balances.get(to, 0) + 1
        self._emit(TRANSFER, **{"from": ZERO_ADDRESS, "to": to, "tokenId": token_id})

    def _check_on_received(self, operator: str, from_: str, to: str, token_id: int, data: bytes) -> None:
        receiver = self.chain.contract_at(to)
        if receiver is None:
            return
        if not hasattr(receiver, "on_erc721_received"):
            raise Revert("ERC721: transfer to non ERC721Receiver implementer")
        response = self._call(to, "on_erc721_received", operator, from_, token_id, data)
        if response != ERC721_RECEIVED:
            raise Revert("ERC721: transfer to non ERC721Receiver implementer")


class CollectibleLedger(ERC721Ledger):
    """ERC-721 ledger whose only way to create tokens is the capped credit step."""

    def __init__(
        self,
        chain: Chain,
        address: str,
        name: str,
        symbol: str,
        max_supply: int,
        base_uri: str = "",
    ) -> None:
        super().__init__(chain, address, name, symbol)
        self.base_uri = base_uri
        self._supply = SupplyGuard(max_supply)

    @property
    def max_supply(self) -> int:
        return self._supply.max_supply

    @property
    def issued_count(self) -> int:
        return self._supply.issued_count

    @external
    def total_supply(self) -> int:
        return self._supply.issued_count

    @external
    def remaining_supply(self) -> int:
        return self._supply.remaining()

    @external
    def token_uri(self, token_id: int) -> str:
        self.owner_of(token_id)
        return f"{self.base_uri}{token_id}"

    def _credit(self, recipient: str, units: int) -> range:
        """Issue ``units`` sequential token ids to ``recipient``.

        The supply guard is consulted before anything is written, so a
        rejected request leaves no partial mint behind.
        """

        recipient = normalise_address(recipient)
        if recipient == ZERO_ADDRESS:
            raise Revert("ERC721: mint to the zero address")
        first = self._supply.issued_count
        self._supply.reserve(units)
        for token_id in range(first, first + units):
            self._mint(recipient, token_id)
        if units:
            _LOGGER.info("Credited %d unit(s) to %s (issued %d/%d)", units, recipient, self.issued_count, self._supply.usable_cap)
        return range(first, first + units)


__all__ = ["APPROVAL", "APPROVAL_FOR_ALL", "CollectibleLedger", "ERC721Ledger", "TRANSFER"]
