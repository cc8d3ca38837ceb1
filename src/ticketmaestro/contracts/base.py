"""
ticketmaestro/contracts/base.py

Shared plumbing for contracts hosted on a LocalChain.

A contract keeps its durable state as instance attributes and
StorageMap fields. Every assignment made inside a transaction is
journaled, and the host replays the journal if the call frame fails, so
contract code never has to undo anything itself. Containers must be
replaced or written through a StorageMap, never mutated in place.

Methods that mutate state are marked with @external (rejects attached
value) or @payable; unmarked methods are side-effect-free views.
"""

import logging
from collections.abc import MutableMapping
from typing import Any, Callable, Dict, Hashable, Iterator, TYPE_CHECKING

from ..chain import CallContext, TransactionReceipt, normalize_address

if TYPE_CHECKING:
    from ..chain import LocalChain

logger = logging.getLogger("ticketmaestro.contracts.base")

_MISSING = object()


def external(func: Callable) -> Callable:
    """Mark a method as a state-changing, non-payable entry point."""
    func._mutability = "nonpayable"
    return func


def payable(func: Callable) -> Callable:
    """Mark a method as a state-changing entry point that accepts value."""
    func._mutability = "payable"
    return func


class Contract:
    """Base class for contracts deployed with LocalChain.deploy()."""

    # Attributes that are wiring, not storage
    _TRANSIENT = ("_chain", "address")

    def __init__(self, chain: "LocalChain", address: str):
        self._chain = chain
        self.address = address

    # ------------------------------------------------------------------
    # Execution environment
    # ------------------------------------------------------------------

    @property
    def msg(self) -> CallContext:
        """Sender and value of the frame currently executing."""
        return self._chain.current_context

    @property
    def block_timestamp(self) -> int:
        return self._chain.current_block.timestamp

    @property
    def balance(self) -> int:
        """Native balance held by this contract."""
        return self._chain.balance_of(self.address)

    def connect(self, sender: str) -> "ContractHandle":
        """Return a handle that sends transactions from `sender`."""
        return ContractHandle(self, sender)

    def _emit(self, event: str, **args: Any) -> None:
        self._chain.emit(self.address, event, args)

    def _send_value(self, to: str, amount: int) -> None:
        """Transfer native value out of this contract."""
        logger.debug(f"{self.address} sending {amount} wei to {to}")
        self._chain.send_value(self.address, to, amount)

    def _contract_at(self, address: str) -> "Contract":
        return self._chain.contract_at(address)

    # ------------------------------------------------------------------
    # Journaled storage (the host replays undo entries on rollback)
    # ------------------------------------------------------------------

    def __setattr__(self, name: str, value: Any) -> None:
        if name not in self._TRANSIENT:
            self._journal_attribute(name)
        object.__setattr__(self, name, value)

    def __delattr__(self, name: str) -> None:
        if name not in self._TRANSIENT:
            self._journal_attribute(name)
        object.__delattr__(self, name)

    def _journal_attribute(self, name: str) -> None:
        state = vars(self)
        previous = state.get(name, _MISSING)

        def undo():
            if previous is _MISSING:
                state.pop(name, None)
            else:
                state[name] = previous

        self._chain.journal(undo)

    def _mapping(self) -> "StorageMap":
        """New empty journaled mapping for keyed contract storage."""
        return StorageMap(self._chain)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


class StorageMap(MutableMapping):
    """
    Dict-like contract storage whose writes are undone on rollback.

    Values must be replaced, never mutated in place; the journal only
    sees assignments and deletions.
    """

    def __init__(self, chain: "LocalChain"):
        self._chain = chain
        self._data: Dict[Hashable, Any] = {}

    def __getitem__(self, key: Hashable) -> Any:
        return self._data[key]

    def __setitem__(self, key: Hashable, value: Any) -> None:
        self._journal(key)
        self._data[key] = value

    def __delitem__(self, key: Hashable) -> None:
        if key not in self._data:
            raise KeyError(key)
        self._journal(key)
        del self._data[key]

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def _journal(self, key: Hashable) -> None:
        data = self._data
        previous = data.get(key, _MISSING)

        def undo():
            if previous is _MISSING:
                data.pop(key, None)
            else:
                data[key] = previous

        self._chain.journal(undo)

    def __repr__(self) -> str:
        return f"StorageMap({self._data!r})"


class ContractHandle:
    """
    A contract bound to a fixed sender.

    Transaction methods are sent through LocalChain.transact() and return a
    receipt; views and attributes pass straight through.

    Usage:
        receipt = ticket.connect(buyer).mint(2, value=2 * regular_fee)
        ticket.connect(buyer).tickets_left()
    """

    def __init__(self, contract: Contract, sender: str):
        self.contract = contract
        self.sender = normalize_address(sender)

    def __getattr__(self, name: str) -> Any:
        attr = getattr(self.contract, name)
        if not callable(attr) or getattr(attr, "_mutability", None) is None:
            return attr

        def send(*args: Any, value: int = 0) -> TransactionReceipt:
            return self.contract._chain.transact(self.sender, attr, *args, value=value)

        send.__name__ = name
        return send

    def __repr__(self) -> str:
        return f"{self.contract!r} as {self.sender}"
