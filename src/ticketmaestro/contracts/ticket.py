"""
ticketmaestro/contracts/ticket.py

Issuance Ledger: sells uniquely numbered event tickets.

Minting protocol (`mint(count)` with attached payment):
1. count > tickets_left          -> OutOfStock
2. count > max_mint              -> TooManyRequested
3. caller minted < cooldown ago  -> RateLimited
4. payment == count * regular    -> regular tier
   payment == count * vip        -> VIP tier
   anything else (including 0)   -> InvalidPayment
5. commit stock, cooldown and token state, then forward the whole
   payment to the Treasury

State is committed before the outbound transfer, so a re-entrant call
from the Treasury side observes the reduced stock and the fresh cooldown.

Tickets are tagged at mint time with the current event epoch and tier
and never change afterwards; ownership follows NonFungibleToken.
"""

import logging
from dataclasses import dataclass, asdict
from typing import Tuple

from .base import StorageMap, external, payable
from .fees import FeeSchedule, unpack_fee_schedule
from .gatekeeper import Gatekeeper
from .tokens import NonFungibleToken
from ..chain import normalize_address
from ..config import DEFAULT_MINT_COOLDOWN
from ..errors import (
    ContractPaused,
    InvalidPayment,
    OutOfStock,
    RateLimited,
    TooManyRequested,
)

logger = logging.getLogger("ticketmaestro.contracts.ticket")


@dataclass
class TicketInfo:
    """Immutable mint-time metadata of one ticket, plus its current owner."""
    token_id: int
    owner: str
    event_id: int
    vip: bool

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class _TicketTag:
    event_id: int
    vip: bool


class Ticket(NonFungibleToken):
    """
    Ticket minting state machine.

    Usage:
        ticket = chain.deploy(
            Ticket, deployer,
            treasury.address, bouncer.address, "TicketMaestro", "TM",
            pack_fee_schedule(regular, vip), 10,
        )
        ticket.connect(deployer).set_tickets_left(20)

        regular, vip = ticket.get_mint_fee_schedules()
        ticket.connect(buyer).mint(2, value=2 * vip)
        ticket.get_vip_status(0)   # True
    """

    def __init__(
        self,
        chain,
        address: str,
        treasury: str,
        gatekeeper: str,
        name: str,
        symbol: str,
        packed_fee_schedule: int,
        max_mint: int,
        mint_cooldown: int = DEFAULT_MINT_COOLDOWN,
    ):
        """
        Initialize Ticket.

        Args:
            treasury: Address receiving every mint payment
            gatekeeper: Address of the Gatekeeper consulted by setters
            name: Token collection name
            symbol: Token collection symbol
            packed_fee_schedule: (vip << 128) | regular
            max_mint: Maximum tickets per mint call
            mint_cooldown: Seconds a caller must wait between mints
        """
        super().__init__(chain, address, name, symbol)
        self._check_count(max_mint, "max_mint")
        self._check_count(mint_cooldown, "mint_cooldown")

        self._treasury = normalize_address(treasury)
        self._gatekeeper = normalize_address(gatekeeper)
        self._regular_fee, self._vip_fee = unpack_fee_schedule(packed_fee_schedule)
        self._max_mint = max_mint
        self._mint_cooldown = mint_cooldown

        self._tickets_left = 0
        self._current_event = 0
        self._paused = False
        self._next_token_id = 0
        self._vip_minted = 0
        self._tags: StorageMap = self._mapping()        # token_id -> _TicketTag
        self._last_mint: StorageMap = self._mapping()   # buyer -> block timestamp

    @staticmethod
    def _check_count(value: int, label: str) -> None:
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ValueError(f"{label} must be a non-negative integer, got {value!r}")

    def _only_authorized(self) -> None:
        bouncer: Gatekeeper = self._contract_at(self._gatekeeper)
        bouncer.require_authorized(self.msg.sender)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def fee_schedules(self) -> int:
        """Packed fee schedule: (vip << 128) | regular."""
        return FeeSchedule(self._regular_fee, self._vip_fee).packed

    def get_mint_fee_schedules(self) -> Tuple[int, int]:
        """Returns (regular, vip) per-ticket fees."""
        return self._regular_fee, self._vip_fee

    def max_mint(self) -> int:
        return self._max_mint

    def curr_event(self) -> int:
        return self._current_event

    def tickets_left(self) -> int:
        return self._tickets_left

    def paused(self) -> bool:
        return self._paused

    def mint_cooldown(self) -> int:
        return self._mint_cooldown

    def last_mint(self, account: str) -> int:
        """Block timestamp of the account's last mint (0 if never)."""
        return self._last_mint.get(normalize_address(account), 0)

    def total_supply(self) -> int:
        return self._next_token_id

    def vip_minted(self) -> int:
        """Number of tickets minted at the VIP fee."""
        return self._vip_minted

    def treasury(self) -> str:
        return self._treasury

    def bouncer(self) -> str:
        return self._gatekeeper

    def get_vip_status(self, token_id: int) -> bool:
        self._require_minted(token_id)
        return self._tags[token_id].vip

    def get_event_id(self, token_id: int) -> int:
        self._require_minted(token_id)
        return self._tags[token_id].event_id

    def ticket_info(self, token_id: int) -> TicketInfo:
        owner = self.owner_of(token_id)
        tag = self._tags[token_id]
        return TicketInfo(token_id=token_id, owner=owner, event_id=tag.event_id, vip=tag.vip)

    # ------------------------------------------------------------------
    # Minting
    # ------------------------------------------------------------------

    def _resolve_tier(self, count: int, payment: int) -> bool:
        """Returns True for VIP, False for regular; raises on any other amount."""
        if payment == 0:
            raise InvalidPayment()
        if payment == count * self._regular_fee:
            return False
        if payment == count * self._vip_fee:
            return True
        raise InvalidPayment()

    def _check_cooldown(self, caller: str, now: int) -> None:
        last = self._last_mint.get(caller)
        if last is not None and now - last < self._mint_cooldown:
            raise RateLimited()

    @payable
    def mint(self, count: int) -> int:
        """
        Buy `count` tickets with the attached payment.

        Returns:
            Id of the first minted ticket
        """
        if self._paused:
            raise ContractPaused()
        self._check_count(count, "count")

        buyer = self.msg.sender
        payment = self.msg.value
        now = self.block_timestamp

        if count > self._tickets_left:
            raise OutOfStock()
        if count > self._max_mint:
            raise TooManyRequested()
        self._check_cooldown(buyer, now)
        vip = self._resolve_tier(count, payment)

        # Effects
        self._tickets_left -= count
        self._last_mint[buyer] = now
        first_id = self._next_token_id
        for token_id in range(first_id, first_id + count):
            self._mint(buyer, token_id)
            self._tags[token_id] = _TicketTag(event_id=self._current_event, vip=vip)
        self._next_token_id = first_id + count
        if vip:
            self._vip_minted += count
        self._emit(
            "TicketsMinted",
            buyer=buyer,
            first_token_id=first_id,
            count=count,
            event_id=self._current_event,
            vip=vip,
            payment=payment,
        )

        # Interaction
        self._send_value(self._treasury, payment)

        logger.info(
            f"Minted {count} {'VIP' if vip else 'regular'} ticket(s) "
            f"#{first_id}-{first_id + count - 1} for {buyer} (event {self._current_event})"
        )
        return first_id

    # ------------------------------------------------------------------
    # Administration (admin or governor)
    # ------------------------------------------------------------------

    @external
    def set_bouncer(self, new_gatekeeper: str) -> None:
        """Point the ledger at a different Gatekeeper."""
        self._only_authorized()
        new_gatekeeper = normalize_address(new_gatekeeper)
        if not isinstance(self._contract_at(new_gatekeeper), Gatekeeper):
            raise ValueError(f"{new_gatekeeper} is not a Gatekeeper")

        previous, self._gatekeeper = self._gatekeeper, new_gatekeeper
        self._emit("BouncerUpdated", previous=previous, current=new_gatekeeper)
        logger.info(f"Gatekeeper changed: {previous} -> {new_gatekeeper}")

    @external
    def set_mint_fee_schedules(self, regular: int, vip: int) -> None:
        self._only_authorized()
        schedule = FeeSchedule(regular=regular, vip=vip)

        self._regular_fee, self._vip_fee = schedule.as_tuple()
        self._emit("FeeSchedulesUpdated", regular=regular, vip=vip)
        logger.info(f"Fee schedules set: regular={regular} vip={vip}")

    @external
    def set_max_mint(self, max_mint: int) -> None:
        self._only_authorized()
        self._check_count(max_mint, "max_mint")

        self._max_mint = max_mint
        self._emit("MaxMintUpdated", max_mint=max_mint)
        logger.info(f"Max mint per call set to {max_mint}")

    @external
    def set_tickets_left(self, tickets_left: int) -> None:
        self._only_authorized()
        self._check_count(tickets_left, "tickets_left")

        self._tickets_left = tickets_left
        self._emit("TicketsLeftUpdated", tickets_left=tickets_left)
        logger.info(f"Ticket stock set to {tickets_left}")

    @external
    def set_mint_cooldown(self, seconds: int) -> None:
        self._only_authorized()
        self._check_count(seconds, "mint_cooldown")

        self._mint_cooldown = seconds
        self._emit("MintCooldownUpdated", seconds=seconds)
        logger.info(f"Mint cooldown set to {seconds}s")

    @external
    def set_next_event_id(self) -> int:
        """Start the next event epoch. Epochs only ever increase."""
        self._only_authorized()

        self._current_event += 1
        self._emit("EventAdvanced", event_id=self._current_event)
        logger.info(f"Event epoch advanced to {self._current_event}")
        return self._current_event
