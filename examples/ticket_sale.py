"""
ticketmaestro/examples/ticket_sale.py

Example walk-through of one ticket sale on a local chain.

This shows how an organizer uses ticketmaestro to:
1. Deploy the Gatekeeper, Treasury and Ticket contracts
2. Put tickets on sale and sell both fee tiers
3. Start a second event epoch
4. Hand operations to a governor
5. Redirect and release the beneficiary's share

Usage:
    python examples/ticket_sale.py
    python examples/ticket_sale.py rotate
"""

import logging

from ticketmaestro import LocalChain, DeploymentConfig, deploy_ticketing, format_ether
from ticketmaestro.errors import Revert
from ticketmaestro.metrics import LedgerMetricsCollector

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s [SALE] %(levelname)s: %(message)s'
)
logger = logging.getLogger(__name__)


def example_sale():
    """Example: sell regular and VIP tickets across two events."""
    chain = LocalChain()
    organizer, alice, bob, admin_wallet, fund_receiver = chain.accounts[:5]

    sale = deploy_ticketing(chain, organizer, DeploymentConfig(
        admin_wallet=admin_wallet,
        initial_fund_receiver=fund_receiver,
    ))
    ticket = sale.ticket
    ticket.connect(organizer).set_tickets_left(20)
    regular, vip = ticket.get_mint_fee_schedules()

    ticket.connect(alice).mint(2, value=2 * regular)
    ticket.connect(bob).mint(1, value=vip)

    # Second night of the festival
    ticket.connect(organizer).set_next_event_id()
    chain.increase_time(ticket.mint_cooldown())
    ticket.connect(alice).mint(1, value=vip)

    for token_id in range(ticket.total_supply()):
        info = ticket.ticket_info(token_id)
        logger.info(
            f"Ticket #{info.token_id}: owner={info.owner[:10]} "
            f"event={info.event_id} {'VIP' if info.vip else 'regular'}"
        )

    # Too soon for another purchase
    try:
        ticket.connect(alice).mint(1, value=regular)
    except Revert as e:
        logger.info(f"Second purchase refused: {e.reason}")

    treasury = sale.treasury
    logger.info(f"Treasury holds {format_ether(treasury.balance)}")
    treasury.connect(organizer).release(admin_wallet)
    treasury.connect(organizer).release_to_beneficiary()
    logger.info(f"Released {format_ether(treasury.total_released())} in total")

    print(LedgerMetricsCollector(sale).collect())


def example_rotate():
    """Example: governor takes over operations and redirects the beneficiary."""
    chain = LocalChain()
    organizer, ops, buyer, admin_wallet, old_receiver, new_receiver = chain.accounts[:6]

    sale = deploy_ticketing(chain, organizer, DeploymentConfig(
        admin_wallet=admin_wallet,
        initial_fund_receiver=old_receiver,
    ))
    sale.gatekeeper.connect(organizer).set_governor(ops)
    sale.ticket.connect(ops).set_tickets_left(5)

    regular, _ = sale.ticket.get_mint_fee_schedules()
    sale.ticket.connect(buyer).mint(5, value=5 * regular)

    # Unclaimed share follows the slot, not the old address
    sale.treasury.connect(ops).set_fund_receiver(new_receiver)
    paid = sale.treasury.connect(buyer).release_to_beneficiary().return_value
    logger.info(f"{new_receiver[:10]} received {format_ether(paid)} for the beneficiary slot")


if __name__ == "__main__":
    import sys

    mode = sys.argv[1] if len(sys.argv) > 1 else "sale"

    if mode == "rotate":
        example_rotate()
    else:
        example_sale()
