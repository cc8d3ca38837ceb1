"""
ticketmaestro/contracts/

Contracts for the ticket sale: role authority, revenue splitter and
the ticket Issuance Ledger.
"""

from .base import Contract, ContractHandle, external, payable
from .gatekeeper import Gatekeeper
from .treasury import Treasury
from .tokens import NonFungibleToken
from .fees import FeeSchedule, pack_fee_schedule, unpack_fee_schedule
from .ticket import Ticket, TicketInfo

__all__ = [
    "Contract",
    "ContractHandle",
    "external",
    "payable",
    "Gatekeeper",
    "Treasury",
    "NonFungibleToken",
    "FeeSchedule",
    "pack_fee_schedule",
    "unpack_fee_schedule",
    "Ticket",
    "TicketInfo",
]
