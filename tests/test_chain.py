"""
ticketmaestro/tests/test_chain.py

Unit tests for the local execution host:
- Atomic transactions and rollback (including nested frames)
- Value transfers and receive hooks
- Block clock
- Address helpers and event logs
- Undo journal
"""

import pytest

from ticketmaestro.chain import LocalChain, derive_address, normalize_address
from ticketmaestro.config import (
    DEFAULT_ACCOUNT_BALANCE,
    DEFAULT_GENESIS_TIMESTAMP,
    ZERO_ADDRESS,
    DeploymentConfig,
    parse_ether,
)
from ticketmaestro.contracts import Contract, Gatekeeper, external, payable
from ticketmaestro.deploy import deploy_ticketing
from ticketmaestro.errors import (
    InsufficientFunds,
    InvalidAddress,
    NonPayable,
    Revert,
    TransferRejected,
)


# ============================================================================
# Test contracts
# ============================================================================

class Counter(Contract):
    """Minimal stateful contract for exercising the host."""

    def __init__(self, chain, address, start=0):
        super().__init__(chain, address)
        self.count = start
        self.callers = []

    def peek(self):
        return self.count

    @external
    def bump(self, fail=False):
        self.count += 1
        self.callers = self.callers + [self.msg.sender]
        self._emit("Bumped", count=self.count)
        if fail:
            raise Revert("Counter: failing on purpose")
        return self.count

    @external
    def bump_both(self, other_address, fail_other):
        """Bump self, then try to bump another counter; swallow its failure."""
        self.count += 1
        other = self._contract_at(other_address)
        try:
            self._chain.transact(self.address, other.bump, fail_other)
        except Revert:
            self.callers = self.callers + ["inner-failed"]
        return self.count

    @payable
    def deposit(self):
        return self.msg.value

    @external
    def pay_out(self, to, amount):
        self._send_value(to, amount)


class Sink(Contract):
    """Contract that accepts plain transfers."""

    def __init__(self, chain, address):
        super().__init__(chain, address)
        self.received = 0

    def receive(self):
        self.received += self.msg.value


class Registry(Contract):
    """Contract keeping keyed storage in a journaled mapping."""

    def __init__(self, chain, address):
        super().__init__(chain, address)
        self.entries = self._mapping()

    @external
    def put(self, key, value, fail=False):
        self.entries[key] = value
        if fail:
            raise Revert("Registry: failing on purpose")

    @external
    def drop(self, key, fail=False):
        del self.entries[key]
        self.note = f"dropped {key}"
        if fail:
            raise Revert("Registry: failing on purpose")


class _Uncopyable:
    def __copy__(self):
        raise AssertionError("contract state was copied")

    def __deepcopy__(self, memo):
        raise AssertionError("contract state was copied")


class Vault(Contract):
    """Contract whose storage cannot be copied."""

    def __init__(self, chain, address):
        super().__init__(chain, address)
        self.secret = _Uncopyable()


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def chain():
    return LocalChain()


@pytest.fixture
def alice(chain):
    return chain.accounts[0]


@pytest.fixture
def bob(chain):
    return chain.accounts[1]


@pytest.fixture
def counter(chain, alice):
    return chain.deploy(Counter, alice)


# ============================================================================
# Addresses
# ============================================================================

class TestAddresses:
    """Tests for address helpers."""

    def test_normalize_lowercases(self):
        assert normalize_address("0x000000000000000000000000000000000000FEeD") == \
            "0x000000000000000000000000000000000000feed"

    @pytest.mark.parametrize("value", ["", "0x123", "feed" * 10, None, "0x" + "g" * 40])
    def test_normalize_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            normalize_address(value)

    def test_derive_address_is_deterministic(self):
        assert derive_address("seed") == derive_address("seed")
        assert derive_address("seed") != derive_address("other")
        assert normalize_address(derive_address("seed"))

    def test_accounts_are_funded(self, chain):
        assert len(chain.accounts) == 10
        assert len(set(chain.accounts)) == 10
        for account in chain.accounts:
            assert chain.balance_of(account) == DEFAULT_ACCOUNT_BALANCE

    def test_create_account(self, chain):
        account = chain.create_account("carol", balance=5)
        assert chain.balance_of(account) == 5
        with pytest.raises(ValueError):
            chain.create_account("carol")

    def test_contract_at_unknown_address(self, chain):
        with pytest.raises(ValueError):
            chain.contract_at(derive_address("nothing here"))


# ============================================================================
# Transactions
# ============================================================================

class TestTransactions:
    """Tests for atomic transaction execution."""

    def test_deploy_registers_contract(self, chain, alice, counter):
        assert chain.is_contract(counter.address)
        assert chain.contract_at(counter.address) is counter
        assert counter.peek() == 0

    def test_deploy_addresses_differ_per_nonce(self, chain, alice):
        first = chain.deploy(Counter, alice)
        second = chain.deploy(Counter, alice)
        assert first.address != second.address

    def test_failed_constructor_leaves_nothing_behind(self, chain, alice):
        before = chain.block_number
        with pytest.raises(InvalidAddress):
            chain.deploy(Gatekeeper, alice, ZERO_ADDRESS)
        assert chain.block_number == before + 1
        assert not any(isinstance(c, Gatekeeper) for c in chain._contracts.values())

    def test_transact_returns_receipt(self, chain, alice, counter):
        receipt = chain.transact(alice, counter.bump)

        assert receipt.return_value == 1
        assert receipt.sender == alice
        assert receipt.to == counter.address
        assert receipt.method == "bump"
        assert [log.event for log in receipt.logs] == ["Bumped"]
        assert receipt.events("Bumped")[0].args == {"count": 1}
        assert receipt.tx_hash.startswith("0x")

    def test_revert_rolls_back_storage_and_logs(self, chain, alice, counter):
        chain.transact(alice, counter.bump)
        logs_before = len(chain.logs)

        with pytest.raises(Revert) as exc:
            chain.transact(alice, counter.bump, True)

        assert exc.value.reason == "Counter: failing on purpose"
        assert counter.peek() == 1
        assert counter.callers == [alice]
        assert len(chain.logs) == logs_before

    def test_failed_transaction_still_mines_block(self, chain, alice, counter):
        before = chain.block_number
        with pytest.raises(Revert):
            chain.transact(alice, counter.bump, True)
        assert chain.block_number == before + 1
        assert chain.reverts["Revert"] == 1

    def test_nested_failure_only_undoes_inner_frame(self, chain, alice):
        outer = chain.deploy(Counter, alice)
        inner = chain.deploy(Counter, alice)

        receipt = chain.transact(alice, outer.bump_both, inner.address, True)

        assert receipt.return_value == 1
        assert outer.peek() == 1
        assert outer.callers == ["inner-failed"]
        assert inner.peek() == 0

    def test_nested_success_uses_contract_as_sender(self, chain, alice):
        outer = chain.deploy(Counter, alice)
        inner = chain.deploy(Counter, alice)

        chain.transact(alice, outer.bump_both, inner.address, False)

        assert inner.peek() == 1
        assert inner.callers == [outer.address]

    def test_view_cannot_be_transacted(self, chain, alice, counter):
        with pytest.raises(TypeError):
            chain.transact(alice, counter.peek)

    def test_foreign_callable_rejected(self, chain, alice):
        with pytest.raises(TypeError):
            chain.transact(alice, print)

    def test_mutation_outside_transaction_rejected(self, counter):
        with pytest.raises(RuntimeError):
            counter.bump()

    def test_committed_counter(self, chain, alice, counter):
        before = chain.transactions_committed
        chain.transact(alice, counter.bump)
        assert chain.transactions_committed == before + 1

    def test_connect_handle(self, chain, bob, counter):
        handle = counter.connect(bob)
        receipt = handle.bump()

        assert receipt.sender == bob
        assert handle.peek() == 1
        assert handle.address == counter.address


# ============================================================================
# Value transfers
# ============================================================================

class TestValueTransfers:
    """Tests for native value movement."""

    def test_payable_call_moves_value(self, chain, alice, counter):
        receipt = chain.transact(alice, counter.deposit, value=500)

        assert receipt.return_value == 500
        assert counter.balance == 500
        assert chain.balance_of(alice) == DEFAULT_ACCOUNT_BALANCE - 500

    def test_non_payable_rejects_value(self, chain, alice, counter):
        with pytest.raises(NonPayable):
            chain.transact(alice, counter.bump, value=1)

        assert counter.peek() == 0
        assert counter.balance == 0
        assert chain.balance_of(alice) == DEFAULT_ACCOUNT_BALANCE

    def test_insufficient_funds(self, chain, counter):
        poor = chain.create_account("poor", balance=10)
        with pytest.raises(InsufficientFunds):
            chain.transact(poor, counter.deposit, value=11)
        assert chain.balance_of(poor) == 10

    def test_negative_value_rejected(self, chain, alice, counter):
        with pytest.raises(ValueError):
            chain.transact(alice, counter.deposit, value=-1)

    def test_send_value_between_accounts(self, chain, alice, bob):
        chain.send_value(alice, bob, 42)
        assert chain.balance_of(bob) == DEFAULT_ACCOUNT_BALANCE + 42
        assert chain.balance_of(alice) == DEFAULT_ACCOUNT_BALANCE - 42

    def test_send_value_runs_receive_hook(self, chain, alice):
        sink = chain.deploy(Sink, alice)
        chain.send_value(alice, sink.address, 7)

        assert sink.received == 7
        assert sink.balance == 7

    def test_contract_without_receive_rejects(self, chain, alice, counter):
        with pytest.raises(TransferRejected):
            chain.send_value(alice, counter.address, 1)
        assert counter.balance == 0

    def test_failed_payout_rolls_back(self, chain, alice, bob, counter):
        chain.transact(alice, counter.deposit, value=100)
        with pytest.raises(InsufficientFunds):
            chain.transact(alice, counter.pay_out, bob, 101)

        assert counter.balance == 100
        assert chain.balance_of(bob) == DEFAULT_ACCOUNT_BALANCE


# ============================================================================
# Clock
# ============================================================================

class TestClock:
    """Tests for the block clock."""

    def test_genesis(self, chain):
        assert chain.block_number == 0
        assert chain.timestamp == DEFAULT_GENESIS_TIMESTAMP

    def test_each_transaction_mines_a_block(self, chain, alice, counter):
        first = chain.transact(alice, counter.bump)
        second = chain.transact(alice, counter.bump)

        assert second.block_number == first.block_number + 1
        assert second.timestamp == first.timestamp + 1

    def test_increase_time(self, chain, alice, counter):
        first = chain.transact(alice, counter.bump)
        chain.increase_time(100)
        second = chain.transact(alice, counter.bump)

        assert second.timestamp == first.timestamp + 100

    def test_increase_time_rejects_negative(self, chain):
        with pytest.raises(ValueError):
            chain.increase_time(-1)

    def test_set_next_block_timestamp(self, chain, alice, counter):
        target = chain.timestamp + 5000
        chain.set_next_block_timestamp(target)
        receipt = chain.transact(alice, counter.bump)

        assert receipt.timestamp == target
        assert chain.timestamp == target

    def test_set_next_block_timestamp_rejects_past(self, chain):
        with pytest.raises(ValueError):
            chain.set_next_block_timestamp(chain.timestamp - 1)

    def test_mine(self, chain):
        block = chain.mine(3)
        assert block.number == 3
        assert chain.timestamp == DEFAULT_GENESIS_TIMESTAMP + 3

    def test_zero_interval_allows_equal_timestamps(self):
        chain = LocalChain(block_interval=0)
        first, second = chain.mine(), chain.mine()
        assert first.timestamp == second.timestamp


# ============================================================================
# Logs
# ============================================================================

class TestLogs:
    """Tests for the event log."""

    def test_get_logs_filters(self, chain, alice):
        a = chain.deploy(Counter, alice)
        b = chain.deploy(Counter, alice)
        chain.transact(alice, a.bump)
        chain.transact(alice, b.bump)
        chain.transact(alice, b.bump)

        assert len(chain.get_logs(event="Bumped")) == 3
        assert len(chain.get_logs(address=b.address)) == 2
        assert chain.get_logs(address=a.address)[0].to_dict()["args"] == {"count": 1}


# ============================================================================
# Undo journal
# ============================================================================

class TestUndoJournal:
    """Rollback replays recorded writes instead of copying state."""

    @pytest.fixture
    def registry(self, chain, alice):
        return chain.deploy(Registry, alice)

    def test_receipt_counts_writes(self, chain, alice, counter):
        receipt = chain.transact(alice, counter.bump)
        assert receipt.state_changes == 2

    def test_mapping_overwrite_rolled_back(self, chain, alice, registry):
        chain.transact(alice, registry.put, "a", 1)
        with pytest.raises(Revert):
            chain.transact(alice, registry.put, "a", 2, True)

        assert registry.entries["a"] == 1

    def test_mapping_insert_rolled_back(self, chain, alice, registry):
        with pytest.raises(Revert):
            chain.transact(alice, registry.put, "b", 1, True)
        assert "b" not in registry.entries
        assert len(registry.entries) == 0

    def test_mapping_delete_rolled_back(self, chain, alice, registry):
        chain.transact(alice, registry.put, "a", 1)
        with pytest.raises(Revert):
            chain.transact(alice, registry.drop, "a", True)

        assert registry.entries["a"] == 1
        assert not hasattr(registry, "note")

    def test_mapping_delete_missing_key(self, chain, alice, registry):
        with pytest.raises(KeyError):
            chain.transact(alice, registry.drop, "nothing")

    def test_journal_empty_between_transactions(self, chain, alice, registry):
        chain.transact(alice, registry.put, "a", 1)
        with pytest.raises(Revert):
            chain.transact(alice, registry.put, "a", 2, True)
        assert chain._journal == []

    def test_setup_writes_outside_transactions_are_kept(self, chain, alice, counter):
        counter.count = 41
        chain.transact(alice, counter.bump)
        assert counter.peek() == 42

    def test_mint_leaves_unrelated_state_uncopied(self, chain, alice):
        vault = chain.deploy(Vault, alice)
        sale = deploy_ticketing(chain, alice)
        sale.ticket.connect(alice).set_tickets_left(5)
        buyer = chain.accounts[1]

        sale.ticket.connect(buyer).mint(1, value=parse_ether("0.1"))
        with pytest.raises(Revert):
            sale.ticket.connect(chain.accounts[2]).mint(1, value=1)

        assert isinstance(vault.secret, _Uncopyable)
        assert sale.ticket.tickets_left() == 4

    def test_mint_writes_independent_of_supply(self, chain, alice):
        sale = deploy_ticketing(chain, alice, DeploymentConfig(max_mint=50, mint_cooldown=0))
        ticket = sale.ticket
        ticket.connect(alice).set_tickets_left(200)
        buyer = chain.accounts[1]
        fee = parse_ether("0.1")

        first = ticket.connect(buyer).mint(1, value=fee).state_changes
        for _ in range(3):
            ticket.connect(buyer).mint(50, value=50 * fee)
        later = ticket.connect(buyer).mint(1, value=fee).state_changes

        assert ticket.total_supply() == 152
        assert later == first
