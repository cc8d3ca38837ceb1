"""
ticketmaestro/cli.py

Command line entry point.

Usage:
    ticketmaestro pack-fees 0.1 0.15
    ticketmaestro simulate --buyers 5 --vip-every 2 --metrics
"""

import logging
from dataclasses import replace
from typing import Optional

import click

from .chain import LocalChain
from .config import DEFAULT_ACCOUNT_COUNT, DeploymentConfig, format_ether, parse_ether
from .contracts.fees import pack_fee_schedule
from .deploy import deploy_ticketing
from .errors import Revert
from .metrics import LedgerMetricsCollector

logger = logging.getLogger("ticketmaestro.cli")


def _parse_ether_value(ctx, param, value):
    if value is None:
        return None
    try:
        return parse_ether(value)
    except ValueError as e:
        raise click.BadParameter(str(e))


def _ether_option(*names: str, help_text: str):
    return click.option(*names, default=None, help=help_text, callback=_parse_ether_value)


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
def main(log_level: str):
    """Ticket issuance, revenue split and role management on a local chain."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s [%(name)s] %(levelname)s: %(message)s'
    )


@main.command("pack-fees")
@click.argument("regular")
@click.argument("vip")
def pack_fees(regular: str, vip: str):
    """Print the packed fee schedule for REGULAR and VIP ether amounts."""
    try:
        packed = pack_fee_schedule(parse_ether(regular), parse_ether(vip))
    except (ValueError, Revert) as e:
        raise click.BadParameter(str(e))
    click.echo(packed)
    click.echo(hex(packed))


@main.command()
@click.option("--buyers", default=3, show_default=True, help="Number of buying accounts")
@click.option("--tickets-per-buyer", default=2, show_default=True, help="Tickets each buyer mints")
@click.option("--stock", default=20, show_default=True, help="Ticket stock set before the sale")
@click.option("--vip-every", default=0, show_default=True,
              help="Every Nth buyer pays the VIP fee (0 = nobody)")
@click.option("--max-mint", type=int, default=None, help="Override MAX_MINT")
@_ether_option("--regular-fee", help_text="Override REG_FEE (ether)")
@_ether_option("--vip-fee", help_text="Override VIP_FEE (ether)")
@click.option("--metrics", "show_metrics", is_flag=True, help="Print Prometheus metrics at the end")
def simulate(
    buyers: int,
    tickets_per_buyer: int,
    stock: int,
    vip_every: int,
    max_mint: Optional[int],
    regular_fee: Optional[int],
    vip_fee: Optional[int],
    show_metrics: bool,
):
    """Deploy a sale on a fresh local chain, sell tickets and split revenue."""
    chain = LocalChain(account_count=max(DEFAULT_ACCOUNT_COUNT, buyers + 4))
    deployer, _, admin_wallet, fund_receiver = chain.accounts[:4]

    config = DeploymentConfig.from_env()
    overrides = {
        "max_mint": max_mint,
        "regular_fee": regular_fee,
        "vip_fee": vip_fee,
        "admin_wallet": config.admin_wallet or admin_wallet,
        "initial_fund_receiver": config.initial_fund_receiver or fund_receiver,
    }
    config = replace(config, **{k: v for k, v in overrides.items() if v is not None})

    deployment = deploy_ticketing(chain, deployer, config)
    ticket, treasury = deployment.ticket, deployment.treasury
    metrics = LedgerMetricsCollector(deployment)

    ticket.connect(deployer).set_tickets_left(stock)
    regular, vip = ticket.get_mint_fee_schedules()

    for n, buyer in enumerate(chain.accounts[4:4 + buyers], start=1):
        is_vip = vip_every > 0 and n % vip_every == 0
        fee = vip if is_vip else regular
        try:
            receipt = ticket.connect(buyer).mint(tickets_per_buyer, value=tickets_per_buyer * fee)
        except Revert as e:
            click.echo(f"buyer {n}: mint failed ({e.reason})")
            continue
        metrics.record_mint(tickets_per_buyer, vip=is_vip)
        click.echo(
            f"buyer {n}: {tickets_per_buyer} {'VIP' if is_vip else 'regular'} ticket(s) "
            f"from #{receipt.return_value} for {format_ether(tickets_per_buyer * fee)}"
        )

    click.echo(f"tickets left: {ticket.tickets_left()}")
    click.echo(f"treasury received: {format_ether(treasury.total_received())}")

    if treasury.releasable(treasury.admin_wallet()) > 0:
        paid = treasury.connect(deployer).release(treasury.admin_wallet()).return_value
        click.echo(f"released to admin wallet: {format_ether(paid)}")
    if treasury.releasable(treasury.payee(1)) > 0:
        paid = treasury.connect(deployer).release_to_beneficiary().return_value
        click.echo(f"released to beneficiary: {format_ether(paid)}")

    if show_metrics:
        click.echo(metrics.collect(), nl=False)


if __name__ == "__main__":
    main()
