"""In-process execution host for Python-native contracts.

The host supplies what a contract expects from an EVM-style platform:
checksummed addresses, native balances, ``msg.sender``/``msg.value`` call
frames, event logs with keccak topics, and transactions that either commit in
full or leave no trace. Transactions are serialised behind a single lock, so
no two payment events can interleave.
"""
from __future__ import annotations

import copy
import functools
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, TypeVar

from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector, is_address, keccak, to_checksum_address

from .errors import ReentrantCall, Revert

_LOGGER = logging.getLogger(__name__)

ZERO_ADDRESS = "0x" + "0" * 40
DEFAULT_CHAIN_ID = 31337

F = TypeVar("F", bound=Callable[..., Any])


def normalise_address(value: Any) -> str:
    """Return the checksum form of ``value`` or raise :class:`ValueError`."""

    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"Invalid address: {value!r}")
    return to_checksum_address(value)


def selector(signature: str) -> bytes:
    """Return the 4-byte function selector for a canonical signature."""

    return function_signature_to_4byte_selector(signature)


def external(func: F) -> F:
    """Mark ``func`` as callable through a message call."""

    func.__external__ = True  # type: ignore[attr-defined]
    return func


def non_reentrant(func: F) -> F:
    """Reject any entry into a guarded function while another one is running."""

    @functools.wraps(func)
    def wrapper(self: "Contract", *args: Any, **kwargs: Any) -> Any:
        if self._entered:
            raise ReentrantCall()
        self._entered = True
        try:
            return func(self, *args, **kwargs)
        finally:
            self._entered = False

    return wrapper  # type: ignore[return-value]


@dataclass(frozen=True)
class EventParam:
    name: str
    abi_type: str
    indexed: bool = False


@dataclass(frozen=True)
class LogEntry:
    """A single emitted event, laid out the way an EVM receipt stores it."""

    address: str
    event: str
    args: Mapping[str, Any]
    topics: Tuple[str, ...]
    data: bytes


@dataclass(frozen=True)
class Event:
    name: str
    params: Tuple[EventParam, ...]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(param.abi_type for param in self.params)})"

    @property
    def topic(self) -> str:
        return "0x" + keccak(text=self.signature).hex()

    def build(self, address: str, **values: Any) -> LogEntry:
        missing = [param.name for param in self.params if param.name not in values]
        if missing:
            raise ValueError(f"{self.name} is missing values for {', '.join(missing)}")

        topics = [self.topic]
        data_params: List[EventParam] = []
        for param in self.params:
            if param.indexed:
                topics.append("0x" + encode([param.abi_type], [values[param.name]]).hex())
            else:
                data_params.append(param)
        data = encode(
            [param.abi_type for param in data_params],
            [values[param.name] for param in data_params],
        )
        args = {param.name: values[param.name] for param in self.params}
        return LogEntry(address=address, event=self.name, args=args, topics=tuple(topics), data=data)


@dataclass(frozen=True)
class Message:
    """The call frame visible to a running contract."""

    sender: str
    value: int = 0


class Contract:
    """Base class for contracts hosted on a :class:`Chain`.

    Contracts keep all mutable state in instance attributes. Other contracts
    are referenced by address only, never by object, so a transaction snapshot
    copies exactly one contract's storage.
    """

    _HOST_ATTRIBUTES = ("chain", "address")

    def __init__(self, chain: "Chain", address: str) -> None:
        self.chain = chain
        self.address = address
        self._entered = False

    @property
    def msg(self) -> Message:
        return self.chain.msg

    def _call(self, target: str, method: Optional[str] = None, *args: Any, value: int = 0, **kwargs: Any) -> Any:
        return self.chain.message_call(self.address, target, method, args, kwargs, value=value)

    def _emit(self, event: Event, **values: Any) -> None:
        self.chain.emit(event.build(self.address, **values))

    def storage(self) -> Dict[str, Any]:
        return {key: value for key, value in vars(self).items() if key not in self._HOST_ATTRIBUTES}


class Chain:
    """Serialised, all-or-nothing execution of message calls between contracts."""

    def __init__(self, chain_id: int = DEFAULT_CHAIN_ID) -> None:
        self.chain_id = chain_id
        self.logs: List[LogEntry] = []
        self._balances: Dict[str, int] = {}
        self._contracts: Dict[str, Contract] = {}
        self._nonces: Dict[str, int] = {}
        self._frames: List[Message] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # accounts
    # ------------------------------------------------------------------
    @property
    def msg(self) -> Message:
        if not self._frames:
            raise RuntimeError("No message call is executing")
        return self._frames[-1]

    def fund(self, address: str, amount: int) -> None:
        """Credit ``amount`` wei to ``address`` outside of any transaction."""

        if amount < 0:
            raise ValueError("Funding amount must not be negative")
        address = normalise_address(address)
        with self._lock:
            self._balances[address] = self._balances.get(address, 0) + amount

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalise_address(address), 0)

    def contract_at(self, address: str) -> Optional[Contract]:
        return self._contracts.get(normalise_address(address))

    def is_contract(self, address: str) -> bool:
        return self.contract_at(address) is not None

    # ------------------------------------------------------------------
    # execution
    # ------------------------------------------------------------------
    def deploy(self, factory: Callable[..., Contract], *args: Any, deployer: str, **kwargs: Any) -> Any:
        """Construct a contract at a fresh address derived from ``deployer``'s nonce."""

        deployer = normalise_address(deployer)
        with self._lock:
            nonce = self._nonces.get(deployer, 0)
            digest = keccak(text=f"{self.chain_id}:{deployer}:{nonce}")
            address = to_checksum_address("0x" + digest[-20:].hex())
            with self._frame(Message(sender=deployer)):
                contract = factory(self, address, *args, **kwargs)
            self._nonces[deployer] = nonce + 1
            self._contracts[address] = contract
        _LOGGER.info("Deployed %s at %s", type(contract).__name__, address)
        return contract

    def transact(
        self,
        sender: str,
        target: str,
        method: Optional[str] = None,
        *args: Any,
        value: int = 0,
        **kwargs: Any,
    ) -> Any:
        """Execute one top-level transaction from the account ``sender``.

        Any exception raised while the transaction runs restores every
        contract's storage, all native balances and the event log to the state
        they had before the transaction started, then propagates unchanged.
        """

        sender = normalise_address(sender)
        with self._lock:
            if self._frames:
                raise RuntimeError("Transactions cannot be started from inside a message call")
            try:
                return self.message_call(sender, target, method, args, kwargs, value=value)
            except Exception as exc:
                _LOGGER.warning("Transaction %s -> %s.%s reverted: %s", sender, target, method or "receive", exc)
                raise

    def send(self, sender: str, to: str, value: int) -> None:
        """Plain native-currency transfer, the equivalent of ``sendTransaction``."""

        self.transact(sender, to, None, value=value)

    def message_call(
        self,
        sender: str,
        target: str,
        method: Optional[str],
        args: Sequence[Any] = (),
        kwargs: Optional[Mapping[str, Any]] = None,
        *,
        value: int = 0,
    ) -> Any:
        """Run one call frame; a call that raises leaves no state behind.

        The checkpoint is per frame, so a caller that catches the failure of a
        nested call continues from the state it had before making it.
        """

        if value < 0:
            raise ValueError("Call value must not be negative")
        target = normalise_address(target)
        with self._lock, self._checkpoint():
            if value:
                self._move_native(sender, target, value)

            contract = self._contracts.get(target)
            if contract is None:
                if method is not None:
                    raise Revert(f"call to non-contract account {target}")
                return None

            name = method or "receive"
            handler = getattr(contract, name, None)
            if handler is None or not getattr(handler, "__external__", False):
                if method is None:
                    raise Revert("contract does not accept native currency")
                raise Revert(f"function {name} not found on {type(contract).__name__}")

            _LOGGER.debug("call %s -> %s.%s value=%d", sender, target, name, value)
            with self._frame(Message(sender=sender, value=value)):
                return handler(*args, **dict(kwargs or {}))

    def emit(self, entry: LogEntry) -> None:
        _LOGGER.debug("%s emitted %s %s", entry.address, entry.event, dict(entry.args))
        self.logs.append(entry)

    def logs_for(self, address: Optional[str] = None, event: Optional[str] = None) -> List[LogEntry]:
        """Return the logs emitted by ``address`` (and/or named ``event``)."""

        wanted = normalise_address(address) if address is not None else None
        return [
            entry
            for entry in self.logs
            if (wanted is None or entry.address == wanted) and (event is None or entry.event == event)
        ]

    # ------------------------------------------------------------------
    # internals
    # ------------------------------------------------------------------
    @contextmanager
    def _frame(self, message: Message) -> Iterator[Message]:
        self._frames.append(message)
        try:
            yield message
        finally:
            self._frames.pop()

    def _move_native(self, sender: str, target: str, value: int) -> None:
        available = self._balances.get(sender, 0)
        if available < value:
            raise Revert("insufficient native balance")
        self._balances[sender] = available - value
        self._balances[target] = self._balances.get(target, 0) + value

    @contextmanager
    def _checkpoint(self) -> Iterator[None]:
        snapshot = self._snapshot()
        try:
            yield
        except Exception:
            self._restore(snapshot)
            raise

    def _snapshot(self) -> Tuple[Dict[str, int], Dict[str, Dict[str, Any]], int]:
        storage = {address: copy.deepcopy(contract.storage()) for address, contract in self._contracts.items()}
        return dict(self._balances), storage, len(self.logs)

    def _restore(self, snapshot: Tuple[Dict[str, int], Dict[str, Dict[str, Any]], int]) -> None:
        balances, storage, log_length = snapshot
        self._balances = balances
        for address, state in storage.items():
            attributes = vars(self._contracts[address])
            for key in [key for key in attributes if key not in Contract._HOST_ATTRIBUTES]:
                del attributes[key]
            attributes.update(state)
        del self.logs[log_length:]


__all__ = [
    "Chain",
    "Contract",
    "DEFAULT_CHAIN_ID",
    "Event",
    "EventParam",
    "LogEntry",
    "Message",
    "ZERO_ADDRESS",
    "external",
    "non_reentrant",
    "normalise_address",
    "selector",
]
