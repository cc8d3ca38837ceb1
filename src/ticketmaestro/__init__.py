"""
ticketmaestro - Tamper-evident event ticket issuance with revenue splitting

Three cooperating contracts running on an atomic, single-writer host:
- Gatekeeper: admin/governor role authority
- Treasury: pull-payment revenue splitter with a re-assignable beneficiary
- Ticket: Issuance Ledger with stock, fee tiers, cooldown and event epochs

Usage:
    from ticketmaestro import LocalChain, DeploymentConfig, deploy_ticketing

    chain = LocalChain()
    deployer, buyer, admin_wallet, fund_receiver = chain.accounts[:4]

    sale = deploy_ticketing(chain, deployer, DeploymentConfig(
        admin_wallet=admin_wallet,
        initial_fund_receiver=fund_receiver,
    ))
    sale.ticket.connect(deployer).set_tickets_left(20)

    regular, vip = sale.ticket.get_mint_fee_schedules()
    sale.ticket.connect(buyer).mint(2, value=2 * regular)

    sale.treasury.connect(deployer).release(admin_wallet)
    sale.treasury.connect(deployer).release_to_beneficiary()

Metrics Usage:
    from ticketmaestro.metrics import LedgerMetricsCollector

    metrics = LedgerMetricsCollector(sale)
    prometheus_output = metrics.collect()
"""

from .chain import LocalChain, TransactionReceipt, LogEntry, normalize_address
from .config import (
    BENEFICIARY_SLOT,
    DEFAULT_MINT_COOLDOWN,
    ZERO_ADDRESS,
    DeploymentConfig,
    format_ether,
    parse_ether,
)
from .contracts import (
    Gatekeeper,
    Treasury,
    Ticket,
    TicketInfo,
    FeeSchedule,
    pack_fee_schedule,
    unpack_fee_schedule,
)
from .deploy import Deployment, deploy_ticketing
from .metrics import LedgerMetricsCollector
from . import errors

__version__ = "0.1.0"

__all__ = [
    "LocalChain",
    "TransactionReceipt",
    "LogEntry",
    "normalize_address",
    "BENEFICIARY_SLOT",
    "DEFAULT_MINT_COOLDOWN",
    "ZERO_ADDRESS",
    "DeploymentConfig",
    "format_ether",
    "parse_ether",
    "Gatekeeper",
    "Treasury",
    "Ticket",
    "TicketInfo",
    "FeeSchedule",
    "pack_fee_schedule",
    "unpack_fee_schedule",
    "Deployment",
    "deploy_ticketing",
    "LedgerMetricsCollector",
    "errors",
]
