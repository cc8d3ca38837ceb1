"""
ticketmaestro/errors.py

Revert reasons raised by the contracts and the local execution host.

Every exception derived from Revert aborts the surrounding transaction;
LocalChain.transact() rolls all state back before re-raising it. The
`reason` attribute carries the string a caller sees for the failed call.
"""

from typing import Optional


class Revert(Exception):
    """Base class for a failed (rolled back) operation."""

    default_reason = "execution reverted"

    def __init__(self, reason: Optional[str] = None):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


# ============================================================================
# ACCESS CONTROL
# ============================================================================

class Unauthorized(Revert):
    """Caller lacks the role required for a privileged operation."""
    default_reason = "B03: Only the admin or the governor can perform this action"


class InvalidAddress(Revert):
    default_reason = "B02: Address cannot be the zero address"


ADMIN_ONLY_REASON = "B01: Only the admin can perform this action"


# ============================================================================
# ISSUANCE
# ============================================================================

class OutOfStock(Revert):
    default_reason = "T01: Not enough tickets left"


class TooManyRequested(Revert):
    default_reason = "T02: Too many tickets requested"


class RateLimited(Revert):
    default_reason = "T03: Mint cooldown has not elapsed"


class InvalidPayment(Revert):
    """Attached payment matches neither count * regular nor count * vip fee."""
    default_reason = "T04: Payment does not match a fee schedule"


class NonexistentToken(Revert):
    default_reason = "T05: Query for nonexistent token"


class InvalidFeeSchedule(Revert):
    default_reason = "T06: Fee does not fit in 128 bits"


class ContractPaused(Revert):
    default_reason = "Pausable: paused"


class NotTokenOwnerOrApproved(Revert):
    default_reason = "ERC721: caller is not token owner or approved"


class InvalidTokenReceiver(Revert):
    default_reason = "ERC721: transfer to the zero address"


# ============================================================================
# TREASURY
# ============================================================================

class NotDuePayment(Revert):
    """Withdrawal attempted while nothing is releasable."""
    default_reason = "PaymentSplitter: account is not due payment"


class NotAuthorizedReceiver(Revert):
    default_reason = "Accountant: only the admin wallet can receive these funds"


class PayeeIndexOutOfRange(Revert):
    default_reason = "PaymentSplitter: payee index out of range"


# ============================================================================
# HOST
# ============================================================================

class InsufficientFunds(Revert):
    default_reason = "sender doesn't have enough funds to send tx"


class NonPayable(Revert):
    default_reason = "non-payable function was called with value"


class TransferRejected(Revert):
    default_reason = "Address: unable to send value, recipient may have reverted"
