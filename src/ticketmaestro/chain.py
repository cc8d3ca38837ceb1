"""
ticketmaestro/chain.py

In-process execution host for the ticketing contracts.

Models the transaction-serializing environment the contracts are written
for: funded accounts, a coarse block clock, native value transfers, an
event log and all-or-nothing transactions. Every call routed through
transact() either commits completely or leaves balances, contract storage
and the log exactly as they were.

Usage:
    from ticketmaestro.chain import LocalChain
    from ticketmaestro.contracts import Gatekeeper

    chain = LocalChain()
    deployer, buyer = chain.accounts[:2]

    bouncer = chain.deploy(Gatekeeper, deployer, deployer)
    receipt = chain.transact(deployer, bouncer.set_governor, buyer)

    chain.increase_time(3600)
"""

import hashlib
import logging
import re
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Optional, Type, TYPE_CHECKING

from .config import (
    DEFAULT_ACCOUNT_BALANCE,
    DEFAULT_ACCOUNT_COUNT,
    DEFAULT_BLOCK_INTERVAL,
    DEFAULT_GENESIS_TIMESTAMP,
)
from .errors import InsufficientFunds, NonPayable, TransferRejected

if TYPE_CHECKING:
    from .contracts.base import Contract

logger = logging.getLogger("ticketmaestro.chain")

_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(value: str) -> str:
    """
    Validate an address and return its canonical (lowercase) form.

    Raises:
        ValueError: if value is not 0x followed by 40 hex characters
    """
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise ValueError(f"Invalid address: {value!r}")
    return value.lower()


def derive_address(seed: str) -> str:
    """Derive a deterministic address from an arbitrary seed string."""
    return "0x" + hashlib.sha256(seed.encode()).hexdigest()[-40:]


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass
class CallContext:
    """Caller and attached value of the frame currently executing."""
    sender: str
    value: int = 0


@dataclass
class Block:
    number: int
    timestamp: int


@dataclass
class LogEntry:
    """An event emitted by a contract during a committed transaction."""
    address: str
    event: str
    args: Dict[str, Any]
    block_number: int
    log_index: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class TransactionReceipt:
    """Result of a committed transaction."""
    tx_hash: str
    block_number: int
    timestamp: int
    sender: str
    to: str
    method: str
    value: int = 0
    return_value: Any = None
    logs: List[LogEntry] = field(default_factory=list)
    state_changes: int = 0        # storage and balance writes made by the call

    def events(self, name: str) -> List[LogEntry]:
        """Logs of this receipt emitted under the given event name."""
        return [log for log in self.logs if log.event == name]


# ============================================================================
# LOCAL CHAIN
# ============================================================================

class LocalChain:
    """
    Single-writer transaction host.

    Transactions run strictly one after another. Each outermost
    transaction mines one block whose timestamp is the later of
    `latest + block_interval` and the simulated wall clock, unless a
    timestamp was forced with set_next_block_timestamp(). Failed
    transactions still mine their block, but none of their effects.

    Rollback uses an undo journal: every balance write and every contract
    storage write made inside a transaction appends a closure restoring
    the previous value. A failing call frame replays its own entries in
    reverse, so the cost of a call is proportional to what it writes, not
    to the size of the state it could reach.
    """

    def __init__(
        self,
        genesis_timestamp: int = DEFAULT_GENESIS_TIMESTAMP,
        block_interval: int = DEFAULT_BLOCK_INTERVAL,
        account_count: int = DEFAULT_ACCOUNT_COUNT,
        initial_balance: int = DEFAULT_ACCOUNT_BALANCE,
    ):
        """
        Initialize LocalChain.

        Args:
            genesis_timestamp: Timestamp of block 0
            block_interval: Minimum seconds between consecutive blocks
            account_count: Number of pre-funded accounts to create
            initial_balance: Balance (wei) of each pre-funded account
        """
        if block_interval < 0:
            raise ValueError("block_interval must be non-negative")

        self._balances: Dict[str, int] = {}
        self._nonces: Dict[str, int] = defaultdict(int)
        self._contracts: Dict[str, "Contract"] = {}
        self._logs: List[LogEntry] = []
        self._contexts: List[CallContext] = []
        self._journal: List[Callable[[], None]] = []
        self._account_seq = 0

        # Clock
        self._block_interval = block_interval
        self._latest = Block(number=0, timestamp=genesis_timestamp)
        self._pending: Optional[Block] = None
        self._now = genesis_timestamp
        self._forced_timestamp: Optional[int] = None

        # Statistics
        self._tx_counter = 0
        self.transactions_committed = 0
        self.reverts: Dict[str, int] = defaultdict(int)

        self.accounts: List[str] = [
            self.create_account(f"account-{i}", initial_balance)
            for i in range(account_count)
        ]

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def create_account(self, label: Optional[str] = None, balance: int = 0) -> str:
        """
        Create an externally owned account.

        Args:
            label: Seed for the address (defaults to a sequence number)
            balance: Starting balance in wei

        Returns:
            The new account's address
        """
        if label is None:
            label = f"account-{self._account_seq}"
        address = derive_address(f"account:{label}")
        self._account_seq += 1
        if address in self._balances or address in self._contracts:
            raise ValueError(f"Account already exists for label {label!r}")
        self._balances[address] = balance
        return address

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def set_balance(self, address: str, amount: int) -> None:
        """Overwrite an account balance (test helper)."""
        if amount < 0:
            raise ValueError("Balance cannot be negative")
        self._balances[normalize_address(address)] = amount

    def is_contract(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    def contract_at(self, address: str) -> "Contract":
        """Resolve a deployed contract by address."""
        address = normalize_address(address)
        contract = self._contracts.get(address)
        if contract is None:
            raise ValueError(f"No contract deployed at {address}")
        return contract

    # ------------------------------------------------------------------
    # Clock
    # ------------------------------------------------------------------

    @property
    def block_number(self) -> int:
        """Number of the latest mined block."""
        return self._latest.number

    @property
    def timestamp(self) -> int:
        """Timestamp of the latest mined block."""
        return self._latest.timestamp

    @property
    def current_block(self) -> Block:
        """The block being executed, or the latest block outside a transaction."""
        return self._pending or self._latest

    def increase_time(self, seconds: int) -> int:
        """
        Advance the simulated wall clock.

        Returns:
            The new clock value
        """
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards")
        self._now = max(self._now, self._latest.timestamp) + seconds
        return self._now

    def set_next_block_timestamp(self, timestamp: int) -> None:
        """Force the timestamp of the next mined block."""
        if timestamp < self._latest.timestamp:
            raise ValueError(
                f"Timestamp {timestamp} is earlier than latest block timestamp "
                f"{self._latest.timestamp}"
            )
        self._forced_timestamp = timestamp

    def mine(self, blocks: int = 1) -> Block:
        """Mine empty blocks."""
        if self._contexts:
            raise RuntimeError("Cannot mine while a transaction is executing")
        for _ in range(blocks):
            self._seal(self._next_block())
        return self._latest

    def _next_block(self) -> Block:
        if self._forced_timestamp is not None:
            timestamp = self._forced_timestamp
            self._forced_timestamp = None
        else:
            timestamp = max(self._latest.timestamp + self._block_interval, self._now)
        return Block(number=self._latest.number + 1, timestamp=timestamp)

    def _seal(self, block: Block) -> None:
        self._latest = block
        self._now = max(self._now, block.timestamp)
        self._pending = None

    # ------------------------------------------------------------------
    # Call context
    # ------------------------------------------------------------------

    @property
    def current_context(self) -> CallContext:
        if not self._contexts:
            raise RuntimeError(
                "No active call context; send the call through "
                "LocalChain.transact() or contract.connect(sender)"
            )
        return self._contexts[-1]

    @property
    def in_transaction(self) -> bool:
        return bool(self._contexts)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def deploy(self, contract_cls: Type["Contract"], sender: str, *args, **kwargs) -> "Contract":
        """
        Deploy a contract.

        The constructor runs inside a call context whose sender is the
        deployer, so it can read msg.sender like any other operation.

        Returns:
            The deployed contract instance
        """
        sender = normalize_address(sender)
        address = derive_address(f"contract:{sender}:{self._nonces[sender]}")
        self._nonces[sender] += 1

        def construct():
            contract = contract_cls(self, address, *args, **kwargs)
            self._contracts[address] = contract
            self.journal(lambda: self._contracts.pop(address, None))
            return contract

        receipt = self._execute(sender, address, contract_cls.__name__, construct)
        logger.info(f"Deployed {contract_cls.__name__} at {address} (block {receipt.block_number})")
        return receipt.return_value

    def transact(self, sender: str, method: Callable, *args, value: int = 0) -> TransactionReceipt:
        """
        Execute a contract method as one atomic transaction.

        Args:
            sender: Calling account (msg.sender)
            method: Bound method of a deployed contract, marked @external or @payable
            *args: Method arguments
            value: Native value (wei) attached to the call

        Returns:
            TransactionReceipt of the committed transaction

        Raises:
            Revert: any revert reason; all effects are rolled back first
        """
        contract = getattr(method, "__self__", None)
        if contract is None or getattr(contract, "_chain", None) is not self:
            raise TypeError("transact() expects a bound method of a contract deployed on this chain")
        mutability = getattr(method, "_mutability", None)
        if mutability is None:
            raise TypeError(f"{method.__name__} is not a transaction method")
        if value < 0:
            raise ValueError("Attached value cannot be negative")

        def call():
            if value and mutability != "payable":
                raise NonPayable()
            return method(*args)

        return self._execute(normalize_address(sender), contract.address, method.__name__, call, value)

    def send_value(self, sender: str, to: str, amount: int) -> TransactionReceipt:
        """
        Transfer native value.

        A contract recipient's receive() hook runs in its own call frame;
        a contract without one rejects the transfer.
        """
        sender, to = normalize_address(sender), normalize_address(to)
        if amount < 0:
            raise ValueError("Transfer amount cannot be negative")

        def call():
            contract = self._contracts.get(to)
            if contract is None:
                return None
            hook = getattr(contract, "receive", None)
            if hook is None:
                raise TransferRejected()
            return hook()

        return self._execute(sender, to, "receive", call, amount)

    def _execute(
        self,
        sender: str,
        to: str,
        method_name: str,
        call: Callable[[], Any],
        value: int = 0,
    ) -> TransactionReceipt:
        outermost = not self._contexts
        if outermost:
            self._pending = self._next_block()
        block = self.current_block

        # Frame boundary: undo entries and logs recorded after these marks
        # belong to this call
        mark = len(self._journal)
        log_count = len(self._logs)
        self._contexts.append(CallContext(sender=sender, value=value))
        try:
            if value:
                self._move(sender, to, value)
            result = call()
            state_changes = len(self._journal) - mark
        except Exception as e:
            self._rollback(mark, log_count)
            if outermost:
                self.reverts[type(e).__name__] += 1
                logger.warning(f"Transaction reverted: {method_name} from {sender}: {e}")
            raise
        finally:
            self._contexts.pop()
            if outermost:
                self._journal.clear()
                self._seal(block)

        self._tx_counter += 1
        if outermost:
            self.transactions_committed += 1
        tx_hash = "0x" + hashlib.sha256(
            f"{block.number}:{sender}:{to}:{method_name}:{self._tx_counter}".encode()
        ).hexdigest()
        return TransactionReceipt(
            tx_hash=tx_hash,
            block_number=block.number,
            timestamp=block.timestamp,
            sender=sender,
            to=to,
            method=method_name,
            value=value,
            return_value=result,
            logs=self._logs[log_count:],
            state_changes=state_changes,
        )

    def _move(self, sender: str, to: str, amount: int) -> None:
        balance = self._balances.get(sender, 0)
        if balance < amount:
            raise InsufficientFunds()
        self._write_balance(sender, balance - amount)
        self._write_balance(to, self._balances.get(to, 0) + amount)

    def _write_balance(self, address: str, amount: int) -> None:
        previous = self._balances.get(address)

        def undo():
            if previous is None:
                self._balances.pop(address, None)
            else:
                self._balances[address] = previous

        self.journal(undo)
        self._balances[address] = amount

    # ------------------------------------------------------------------
    # Undo journal
    # ------------------------------------------------------------------

    def journal(self, undo: Callable[[], None]) -> None:
        """
        Record how to reverse one state write of the executing transaction.

        Writes made outside a transaction (test setup) are not journaled.
        """
        if self._contexts:
            self._journal.append(undo)

    def _rollback(self, mark: int, log_count: int) -> None:
        while len(self._journal) > mark:
            self._journal.pop()()
        del self._logs[log_count:]

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def emit(self, address: str, event: str, args: Dict[str, Any]) -> LogEntry:
        """Append an event to the log of the executing transaction."""
        entry = LogEntry(
            address=address,
            event=event,
            args=args,
            block_number=self.current_block.number,
            log_index=len(self._logs),
        )
        self._logs.append(entry)
        return entry

    @property
    def logs(self) -> List[LogEntry]:
        return list(self._logs)

    def get_logs(self, address: Optional[str] = None, event: Optional[str] = None) -> List[LogEntry]:
        """Filter committed logs by emitting contract and/or event name."""
        if address is not None:
            address = normalize_address(address)
        return [
            log for log in self._logs
            if (address is None or log.address == address)
            and (event is None or log.event == event)
        ]
