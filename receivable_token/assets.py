"""Reference payment assets: ERC-20, ERC-721 and ERC-1155 style contracts.

Minting is open to anyone, which makes these suitable for local deployments
and tests; transfer, allowance and receiver-hook behaviour follows the token
standards the receivable token is written against.
"""
from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

from .chain import ZERO_ADDRESS, Chain, Contract, Event, EventParam, external, normalise_address
from .errors import InsufficientAuthorization, Revert
from .interfaces import ERC1155_BATCH_RECEIVED, ERC1155_RECEIVED
from .ledger import ERC721Ledger

ERC20_TRANSFER = Event(
    "Transfer",
    (
        EventParam("from", "address", indexed=True),
        EventParam("to", "address", indexed=True),
        EventParam("value", "uint256"),
    ),
)
ERC20_APPROVAL = Event(
    "Approval",
    (
        EventParam("owner", "address", indexed=True),
        EventParam("spender", "address", indexed=True),
        EventParam("value", "uint256"),
    ),
)
TRANSFER_SINGLE = Event(
    "TransferSingle",
    (
        EventParam("operator", "address", indexed=True),
        EventParam("from", "address", indexed=True),
        EventParam("to", "address", indexed=True),
        EventParam("id", "uint256"),
        EventParam("value", "uint256"),
    ),
)
TRANSFER_BATCH = Event(
    "TransferBatch",
    (
        EventParam("operator", "address", indexed=True),
        EventParam("from", "address", indexed=True),
        EventParam("to", "address", indexed=True),
        EventParam("ids", "uint256[]"),
        EventParam("values", "uint256[]"),
    ),
)


class ERC20Asset(Contract):
    """Fungible token pulled by the receivable token through ``transfer_from``."""

    def __init__(self, chain: Chain, address: str, name: str, symbol: str, decimals: int = 18) -> None:
        super().__init__(chain, address)
        self.name = name
        self.symbol = symbol
        self.decimals = decimals
        self._total_supply = 0
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[Tuple[str, str], int] = {}

    @external
    def total_supply(self) -> int:
        return self._total_supply

    @external
    def balance_of(self, owner: str) -> int:
        return self._balances.get(normalise_address(owner), 0)

    @external
    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((normalise_address(owner), normalise_address(spender)), 0)

    @external
    def mint(self, to: str, amount: int) -> None:
        to = normalise_address(to)
        if to == ZERO_ADDRESS:
            raise Revert("ERC20: mint to the zero address")
        self._total_supply += amount
        self._balances[to] = self._balances.get(to, 0) + amount
        self._emit(ERC20_TRANSFER, **{"from": ZERO_ADDRESS, "to": to, "value": amount})

    @external
    def approve(self, spender: str, amount: int) -> bool:
        owner = self.msg.sender
        spender = normalise_address(spender)
        self._allowances[(owner, spender)] = amount
        self._emit(ERC20_APPROVAL, owner=owner, spender=spender, value=amount)
        return True

    @external
    def transfer(self, to: str, amount: int) -> bool:
        self._transfer(self.msg.sender, normalise_address(to), amount)
        return True

    @external
    def transfer_from(self, from_: str, to: str, amount: int) -> bool:
        spender = self.msg.sender
        from_ = normalise_address(from_)
        allowed = self._allowances.get((from_, spender), 0)
        if allowed < amount:
            raise InsufficientAuthorization("ERC20: insufficient allowance")
        self._allowances[(from_, spender)] = allowed - amount
        self._transfer(from_, normalise_address(to), amount)
        return True

    def _transfer(self, from_: str, to: str, amount: int) -> None:
        if amount < 0:
            raise Revert("ERC20: negative amount")
        if to == ZERO_ADDRESS:
            raise Revert("ERC20: transfer to the zero address")
        balance = self._balances.get(from_, 0)
        if balance < amount:
            raise InsufficientAuthorization("ERC20: transfer amount exceeds balance")
        self._balances[from_] = balance - amount
        self._balances[to] = self._balances.get(to, 0) + amount
        self._emit(ERC20_TRANSFER, **{"from": from_, "to": to, "value": amount})


class ERC721Asset(ERC721Ledger):
    """Non-fungible token pushed to the receivable token with ``safe_transfer_from``."""

    @external
    def mint(self, to: str, token_id: int) -> None:
        self._mint(to, token_id)


class ERC1155Asset(Contract):
    """Multi-token contract whose safe transfers notify contract recipients."""

    def __init__(self, chain: Chain, address: str, uri: str = "") -> None:
        super().__init__(chain, address)
        self.uri = uri
        self._balances: Dict[Tuple[int, str], int] = {}
        self._operator_approvals: Dict[Tuple[str, str], bool] = {}

    @external
    def balance_of(self, owner: str, token_id: int) -> int:
        owner = normalise_address(owner)
        if owner == ZERO_ADDRESS:
            raise Revert("ERC1155: address zero is not a valid owner")
        return self._balances.get((token_id, owner), 0)

    @external
    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        return self._operator_approvals.get((normalise_address(owner), normalise_address(operator)), False)

    @external
    def set_approval_for_all(self, operator: str, approved: bool) -> None:
        owner = self.msg.sender
        operator = normalise_address(operator)
        if owner == operator:
            raise Revert("ERC1155: setting approval status for self")
        self._operator_approvals[(owner, operator)] = bool(approved)

    @external
    def mint(self, to: str, token_id: int, amount: int, data: bytes = b"") -> None:
        to = normalise_address(to)
        if to == ZERO_ADDRESS:
            raise Revert("ERC1155: mint to the zero address")
        operator = self.msg.sender
        self._balances[(token_id, to)] = self._balances.get((token_id, to), 0) + amount
        self._emit(TRANSFER_SINGLE, operator=operator, to=to, id=token_id, value=amount, **{"from": ZERO_ADDRESS})
        self._check_on_received(operator, ZERO_ADDRESS, to, token_id, amount, data)

    @external
    def safe_transfer_from(self, from_: str, to: str, token_id: int, amount: int, data: bytes = b"") -> None:
        operator = self.msg.sender
        from_, to = self._authorise(operator, from_, to)
        self._move(from_, to, token_id, amount)
        self._emit(TRANSFER_SINGLE, operator=operator, to=to, id=token_id, value=amount, **{"from": from_})
        self._check_on_received(operator, from_, to, token_id, amount, data)

    @external
    def safe_batch_transfer_from(
        self,
        from_: str,
        to: str,
        token_ids: Sequence[int],
        amounts: Sequence[int],
        data: bytes = b"",
    ) -> None:
        if len(token_ids) != len(amounts):
            raise Revert("ERC1155: ids and amounts length mismatch")
        operator = self.msg.sender
        from_, to = self._authorise(operator, from_, to)
        for token_id, amount in zip(token_ids, amounts):
            self._move(from_, to, token_id, amount)
        self._emit(
            TRANSFER_BATCH,
            operator=operator,
            to=to,
            ids=list(token_ids),
            values=list(amounts),
            **{"from": from_},
        )
        self._check_on_batch_received(operator, from_, to, list(token_ids), list(amounts), data)

    def _authorise(self, operator: str, from_: str, to: str) -> Tuple[str, str]:
        from_ = normalise_address(from_)
        to = normalise_address(to)
        if operator != from_ and not self.is_approved_for_all(from_, operator):
            raise Revert("ERC1155: caller is not token owner or approved")
        if to == ZERO_ADDRESS:
            raise Revert("ERC1155: transfer to the zero address")
        return from_, to

    def _move(self, from_: str, to: str, token_id: int, amount: int) -> None:
        balance = self._balances.get((token_id, from_), 0)
        if amount < 0 or balance < amount:
            raise Revert("ERC1155: insufficient balance for transfer")
        self._balances[(token_id, from_)] = balance - amount
        self._balances[(token_id, to)] = self._balances.get((token_id, to), 0) + amount

    def _check_on_received(
        self, operator: str, from_: str, to: str, token_id: int, amount: int, data: bytes
    ) -> None:
        receiver = self.chain.contract_at(to)
        if receiver is None:
            return
        if not hasattr(receiver, "on_erc1155_received"):
            raise Revert("ERC1155: transfer to non-ERC1155Receiver implementer")
        response = self._call(to, "on_erc1155_received", operator, from_, token_id, amount, data)
        if response != ERC1155_RECEIVED:
            raise Revert("ERC1155: ERC1155Receiver rejected tokens")

    def _check_on_batch_received(
        self, operator: str, from_: str, to: str, token_ids: List[int], amounts: List[int], data: bytes
    ) -> None:
        receiver = self.chain.contract_at(to)
        if receiver is None:
            return
        if not hasattr(receiver, "on_erc1155_batch_received"):
            raise Revert("ERC1155: transfer to non-ERC1155Receiver implementer")
        response = self._call(to, "on_erc1155_batch_received", operator, from_, token_ids, amounts, data)
        if response != ERC1155_BATCH_RECEIVED:
            raise Revert("ERC1155: ERC1155Receiver rejected tokens")


__all__ = [
    "ERC1155Asset",
    "ERC20Asset",
    "ERC20_APPROVAL",
    "ERC20_TRANSFER",
    "ERC721Asset",
    "TRANSFER_BATCH",
    "TRANSFER_SINGLE",
]
