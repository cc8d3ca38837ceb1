"""
ticketmaestro/contracts/tokens.py

Non-fungible token ownership: every token id has exactly one owner,
owners may approve a single operator per token or an operator for all
of their tokens, and approved parties may transfer.
"""

import logging

from .base import Contract, StorageMap, external
from ..chain import normalize_address
from ..config import ZERO_ADDRESS
from ..errors import InvalidTokenReceiver, NonexistentToken, NotTokenOwnerOrApproved, Revert

logger = logging.getLogger("ticketmaestro.contracts.tokens")


class NonFungibleToken(Contract):
    """Uniquely identified tokens with standard ownership queries."""

    def __init__(self, chain, address: str, name: str, symbol: str):
        super().__init__(chain, address)
        self._name = name
        self._symbol = symbol
        self._owners: StorageMap = self._mapping()              # token_id -> owner
        self._balances: StorageMap = self._mapping()            # owner -> token count
        self._token_approvals: StorageMap = self._mapping()     # token_id -> approved
        self._operator_approvals: StorageMap = self._mapping()  # (owner, operator) -> True

    def name(self) -> str:
        return self._name

    def symbol(self) -> str:
        return self._symbol

    def exists(self, token_id: int) -> bool:
        return token_id in self._owners

    def _require_minted(self, token_id: int) -> None:
        if token_id not in self._owners:
            raise NonexistentToken()

    def balance_of(self, owner: str) -> int:
        owner = normalize_address(owner)
        if owner == ZERO_ADDRESS:
            raise InvalidTokenReceiver("ERC721: address zero is not a valid owner")
        return self._balances.get(owner, 0)

    def owner_of(self, token_id: int) -> str:
        self._require_minted(token_id)
        return self._owners[token_id]

    def get_approved(self, token_id: int) -> str:
        self._require_minted(token_id)
        return self._token_approvals.get(token_id, ZERO_ADDRESS)

    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        owner, operator = normalize_address(owner), normalize_address(operator)
        return self._operator_approvals.get((owner, operator), False)

    def _is_approved_or_owner(self, spender: str, token_id: int) -> bool:
        owner = self.owner_of(token_id)
        return (
            spender == owner
            or self.is_approved_for_all(owner, spender)
            or self._token_approvals.get(token_id) == spender
        )

    @external
    def approve(self, to: str, token_id: int) -> None:
        to = normalize_address(to)
        owner = self.owner_of(token_id)
        if to == owner:
            raise NotTokenOwnerOrApproved("ERC721: approval to current owner")
        sender = self.msg.sender
        if sender != owner and not self.is_approved_for_all(owner, sender):
            raise NotTokenOwnerOrApproved("ERC721: approve caller is not token owner or approved for all")

        self._token_approvals[token_id] = to
        self._emit("Approval", owner=owner, approved=to, token_id=token_id)

    @external
    def set_approval_for_all(self, operator: str, approved: bool) -> None:
        operator = normalize_address(operator)
        owner = self.msg.sender
        if operator == owner:
            raise NotTokenOwnerOrApproved("ERC721: approve to caller")

        if approved:
            self._operator_approvals[(owner, operator)] = True
        else:
            self._operator_approvals.pop((owner, operator), None)
        self._emit("ApprovalForAll", owner=owner, operator=operator, approved=bool(approved))

    @external
    def transfer_from(self, from_address: str, to: str, token_id: int) -> None:
        """Move a token. Caller must be the owner or approved."""
        from_address, to = normalize_address(from_address), normalize_address(to)
        if not self._is_approved_or_owner(self.msg.sender, token_id):
            raise NotTokenOwnerOrApproved()
        if self._owners[token_id] != from_address:
            raise NotTokenOwnerOrApproved("ERC721: transfer from incorrect owner")
        if to == ZERO_ADDRESS:
            raise InvalidTokenReceiver()

        self._token_approvals.pop(token_id, None)
        self._balances[from_address] -= 1
        self._balances[to] = self._balances.get(to, 0) + 1
        self._owners[token_id] = to
        self._emit("Transfer", from_address=from_address, to=to, token_id=token_id)
        logger.debug(f"Token {token_id} transferred {from_address} -> {to}")

    def _mint(self, to: str, token_id: int) -> None:
        if to == ZERO_ADDRESS:
            raise InvalidTokenReceiver("ERC721: mint to the zero address")
        if token_id in self._owners:
            raise Revert("ERC721: token already minted")

        self._balances[to] = self._balances.get(to, 0) + 1
        self._owners[token_id] = to
        self._emit("Transfer", from_address=ZERO_ADDRESS, to=to, token_id=token_id)
