"""
ticketmaestro/contracts/treasury.py

Pro-rata revenue splitter with a re-assignable beneficiary.

Payments accumulate in the Treasury's balance (pull payment; nothing is
pushed to payees when a ticket sells). Each ledger entry is entitled to

    releasable(entry) = total_received * shares(entry) // total_shares - released(entry)

with total_received = balance + total_released. Truncation dust stays in
the contract and becomes claimable once it crosses a whole unit.

The payee list is fixed at construction:
    [admin wallet (75), BENEFICIARY_SLOT (25)]

BENEFICIARY_SLOT is an accounting key, not a wallet. Its payout address
is kept in a separate indirection (`fund_receiver`), so redirecting the
payout never touches the slot's shares or released history.
"""

import logging
from typing import Tuple

from .base import Contract, StorageMap, external
from .gatekeeper import Gatekeeper
from ..chain import normalize_address
from ..config import BENEFICIARY_SLOT, SHARE_WEIGHTS, ZERO_ADDRESS
from ..errors import (
    InvalidAddress,
    NotAuthorizedReceiver,
    NotDuePayment,
    PayeeIndexOutOfRange,
)

logger = logging.getLogger("ticketmaestro.contracts.treasury")

BENEFICIARY_NOT_DUE_REASON = "Accountant: account is not due payment"


class Treasury(Contract):
    """
    Revenue splitter between the admin wallet and the beneficiary slot.

    Usage:
        treasury = chain.deploy(Treasury, deployer, admin_wallet, fund_receiver, bouncer.address)

        treasury.releasable(admin_wallet)
        treasury.connect(anyone).release(admin_wallet)
        treasury.connect(anyone).release_to_beneficiary()
    """

    def __init__(
        self,
        chain,
        address: str,
        admin_wallet: str,
        initial_fund_receiver: str,
        gatekeeper: str,
    ):
        """
        Initialize Treasury.

        Args:
            admin_wallet: Fixed wallet receiving the first payee's share
            initial_fund_receiver: First payout address of the beneficiary slot
            gatekeeper: Address of the Gatekeeper consulted for admin operations
        """
        super().__init__(chain, address)
        admin_wallet = normalize_address(admin_wallet)
        initial_fund_receiver = normalize_address(initial_fund_receiver)
        if ZERO_ADDRESS in (admin_wallet, initial_fund_receiver):
            raise InvalidAddress()

        self._admin_wallet = admin_wallet
        self._gatekeeper = normalize_address(gatekeeper)

        # Ledger entries keyed by stable accounting key
        self._payees: Tuple[str, ...] = ()
        self._shares: StorageMap = self._mapping()
        self._released: StorageMap = self._mapping()
        self._total_shares = 0
        self._total_released = 0

        for payee, weight in zip([admin_wallet, BENEFICIARY_SLOT], SHARE_WEIGHTS):
            self._add_payee(payee, weight)

        # slot -> payout address indirection
        self._fund_receiver = initial_fund_receiver

    def _add_payee(self, account: str, weight: int) -> None:
        if weight <= 0:
            raise ValueError("PaymentSplitter: shares are 0")
        if account in self._shares:
            raise ValueError("PaymentSplitter: account already has shares")

        self._payees = self._payees + (account,)
        self._shares[account] = weight
        self._released[account] = 0
        self._total_shares += weight
        self._emit("PayeeAdded", account=account, shares=weight)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def payee(self, index: int) -> str:
        if not 0 <= index < len(self._payees):
            raise PayeeIndexOutOfRange()
        return self._payees[index]

    def payee_count(self) -> int:
        return len(self._payees)

    def shares(self, account: str) -> int:
        return self._shares.get(normalize_address(account), 0)

    def total_shares(self) -> int:
        return self._total_shares

    def released(self, account: str) -> int:
        return self._released.get(normalize_address(account), 0)

    def total_released(self) -> int:
        return self._total_released

    def total_received(self) -> int:
        return self.balance + self._total_released

    def releasable(self, account: str) -> int:
        """Amount the ledger entry `account` could withdraw right now."""
        account = normalize_address(account)
        return self._pending_payment(account, self.total_received(), self._released.get(account, 0))

    def _pending_payment(self, account: str, total_received: int, already_released: int) -> int:
        return total_received * self._shares.get(account, 0) // self._total_shares - already_released

    def admin_wallet(self) -> str:
        return self._admin_wallet

    def fund_receiver(self) -> str:
        """Current payout address of the beneficiary slot."""
        return self._fund_receiver

    def gatekeeper(self) -> str:
        return self._gatekeeper

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def receive(self) -> None:
        """Accept native value from anyone (ticket sales, donations)."""
        self._emit("PaymentReceived", sender=self.msg.sender, amount=self.msg.value)
        logger.debug(f"Received {self.msg.value} wei from {self.msg.sender}")

    @external
    def release(self, account: str) -> int:
        """
        Pay the admin wallet its accrued share.

        Anyone may trigger the release; funds only ever go to the fixed
        admin wallet.

        Returns:
            Amount transferred (wei)
        """
        account = normalize_address(account)
        if account != self._admin_wallet:
            raise NotAuthorizedReceiver()

        payment = self.releasable(account)
        if payment <= 0:
            raise NotDuePayment()

        self._released[account] += payment
        self._total_released += payment
        self._emit("PaymentReleased", to=account, amount=payment)

        self._send_value(account, payment)
        logger.info(f"Released {payment} wei to admin wallet {account}")
        return payment

    @external
    def release_to_beneficiary(self) -> int:
        """
        Pay the beneficiary slot's accrued share to its current fund receiver.

        Entitlement is computed against the slot's accounting key, whichever
        address currently receives the payout.

        Returns:
            Amount transferred (wei)
        """
        payment = self.releasable(BENEFICIARY_SLOT)
        if payment <= 0:
            raise NotDuePayment(BENEFICIARY_NOT_DUE_REASON)

        receiver = self._fund_receiver
        self._released[BENEFICIARY_SLOT] += payment
        self._total_released += payment
        self._emit("PaymentReleased", to=receiver, amount=payment)

        self._send_value(receiver, payment)
        logger.info(f"Released {payment} wei to beneficiary {receiver}")
        return payment

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    @external
    def set_fund_receiver(self, new_receiver: str) -> None:
        """Redirect the beneficiary slot's payout. Admin or governor only."""
        bouncer: Gatekeeper = self._contract_at(self._gatekeeper)
        bouncer.require_authorized(self.msg.sender)

        new_receiver = normalize_address(new_receiver)
        if new_receiver == ZERO_ADDRESS:
            raise InvalidAddress()

        previous, self._fund_receiver = self._fund_receiver, new_receiver
        self._emit("FundReceiverChanged", previous=previous, current=new_receiver)
        logger.info(f"Fund receiver changed: {previous} -> {new_receiver}")
