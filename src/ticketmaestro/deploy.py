"""
ticketmaestro/deploy.py

Wires Gatekeeper -> Treasury -> Ticket on a chain, in dependency order.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .chain import LocalChain
from .config import DeploymentConfig
from .contracts import Gatekeeper, Ticket, Treasury

logger = logging.getLogger("ticketmaestro.deploy")


@dataclass
class Deployment:
    """The three deployed contracts of one ticket sale."""
    chain: LocalChain
    gatekeeper: Gatekeeper
    treasury: Treasury
    ticket: Ticket

    def to_dict(self) -> dict:
        return {
            "gatekeeper": self.gatekeeper.address,
            "treasury": self.treasury.address,
            "ticket": self.ticket.address,
        }


def deploy_ticketing(
    chain: LocalChain,
    deployer: str,
    config: Optional[DeploymentConfig] = None,
) -> Deployment:
    """
    Deploy a complete ticket sale.

    The deployer becomes the Gatekeeper admin. Unset wallets in the config
    default to the deployer (admin wallet) and a fresh account (fund
    receiver).

    Args:
        chain: Chain to deploy on
        deployer: Deploying account
        config: Deployment parameters (defaults to DeploymentConfig())

    Returns:
        Deployment holding the three contracts
    """
    config = config or DeploymentConfig()
    admin_wallet = config.admin_wallet or deployer
    fund_receiver = config.initial_fund_receiver or chain.create_account()

    gatekeeper = chain.deploy(Gatekeeper, deployer, deployer)
    treasury = chain.deploy(Treasury, deployer, admin_wallet, fund_receiver, gatekeeper.address)
    ticket = chain.deploy(
        Ticket,
        deployer,
        treasury.address,
        gatekeeper.address,
        config.name,
        config.symbol,
        config.packed_fee_schedule,
        config.max_mint,
        config.mint_cooldown,
    )

    logger.info(
        f"Ticket sale deployed: gatekeeper={gatekeeper.address} "
        f"treasury={treasury.address} ticket={ticket.address}"
    )
    return Deployment(chain=chain, gatekeeper=gatekeeper, treasury=treasury, ticket=ticket)
