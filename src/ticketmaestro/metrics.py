"""
ticketmaestro/metrics.py

Prometheus metrics collection for a ticket sale.

Provides metrics for monitoring stock, sales, treasury balances and
failed transactions.
"""

import time
import logging
from typing import TYPE_CHECKING, Dict, Any

from .config import BENEFICIARY_SLOT

if TYPE_CHECKING:
    from .deploy import Deployment

logger = logging.getLogger("ticketmaestro.metrics")


class LedgerMetricsCollector:
    """
    Prometheus metrics collector for ticketmaestro.

    Usage:
        from ticketmaestro.metrics import LedgerMetricsCollector

        deployment = deploy_ticketing(chain, deployer, config)
        metrics = LedgerMetricsCollector(deployment)

        # Get metrics in Prometheus format
        prometheus_output = metrics.collect()
    """

    # Metric definitions
    METRICS = {
        "ticketmaestro_tickets_minted_total": {
            "type": "counter",
            "help": "Total number of tickets minted",
        },
        "ticketmaestro_vip_tickets_minted_total": {
            "type": "counter",
            "help": "Number of tickets minted at the VIP fee",
        },
        "ticketmaestro_recorded_mints_total": {
            "type": "counter",
            "help": "Mint calls reported through record_mint",
        },
        "ticketmaestro_tickets_left": {
            "type": "gauge",
            "help": "Remaining mintable tickets",
        },
        "ticketmaestro_max_mint": {
            "type": "gauge",
            "help": "Maximum tickets per mint call",
        },
        "ticketmaestro_current_event": {
            "type": "gauge",
            "help": "Current event epoch",
        },
        "ticketmaestro_treasury_balance_wei": {
            "type": "gauge",
            "help": "Native balance held by the treasury",
        },
        "ticketmaestro_treasury_received_wei": {
            "type": "counter",
            "help": "Total value ever received by the treasury",
        },
        "ticketmaestro_treasury_released_wei": {
            "type": "counter",
            "help": "Total value released to payees",
        },
        "ticketmaestro_releasable_wei": {
            "type": "gauge",
            "help": "Value currently releasable per payee",
        },
        "ticketmaestro_transactions_total": {
            "type": "counter",
            "help": "Committed transactions on the chain",
        },
        "ticketmaestro_reverts_total": {
            "type": "counter",
            "help": "Reverted transactions by error",
        },
        "ticketmaestro_uptime_seconds": {
            "type": "counter",
            "help": "Collector uptime in seconds",
        },
    }

    def __init__(self, deployment: "Deployment"):
        """
        Initialize metrics collector.

        Args:
            deployment: Deployed contracts to collect metrics from
        """
        self.deployment = deployment
        self._start_time = time.time()

        # Counters (persist across collections)
        self._recorded_mints = 0
        self._recorded_vip_tickets = 0

    def record_mint(self, count: int, vip: bool = False) -> None:
        """Record a mint observed by the caller."""
        self._recorded_mints += 1
        if vip:
            self._recorded_vip_tickets += count

    def _payee_labels(self) -> Dict[str, str]:
        treasury = self.deployment.treasury
        labels = {}
        for index in range(treasury.payee_count()):
            payee = treasury.payee(index)
            labels[payee] = "beneficiary" if payee == BENEFICIARY_SLOT else "admin"
        return labels

    def collect(self) -> str:
        """
        Collect all metrics and return in Prometheus format.

        Returns:
            Prometheus-formatted metrics string
        """
        lines = []
        ticket = self.deployment.ticket
        treasury = self.deployment.treasury
        chain = self.deployment.chain

        def add_header(name: str):
            metric_def = self.METRICS.get(name, {})
            lines.append(f"# HELP {name} {metric_def.get('help', '')}")
            lines.append(f"# TYPE {name} {metric_def.get('type', 'gauge')}")

        def add_metric(name: str, value: float, labels: Dict[str, str] = None):
            add_header(name)
            if labels:
                label_str = ",".join(f'{k}="{v}"' for k, v in labels.items())
                lines.append(f"{name}{{{label_str}}} {value}")
            else:
                lines.append(f"{name} {value}")

        try:
            add_metric("ticketmaestro_tickets_minted_total", ticket.total_supply())
            add_metric("ticketmaestro_vip_tickets_minted_total", ticket.vip_minted())
            add_metric("ticketmaestro_recorded_mints_total", self._recorded_mints)
            add_metric("ticketmaestro_tickets_left", ticket.tickets_left())
            add_metric("ticketmaestro_max_mint", ticket.max_mint())
            add_metric("ticketmaestro_current_event", ticket.curr_event())

            add_metric("ticketmaestro_treasury_balance_wei", treasury.balance)
            add_metric("ticketmaestro_treasury_received_wei", treasury.total_received())
            add_metric("ticketmaestro_treasury_released_wei", treasury.total_released())

            add_header("ticketmaestro_releasable_wei")
            for payee, role in self._payee_labels().items():
                lines.append(
                    f'ticketmaestro_releasable_wei{{payee="{payee}",role="{role}"}} '
                    f"{treasury.releasable(payee)}"
                )

            add_metric("ticketmaestro_transactions_total", chain.transactions_committed)

            if chain.reverts:
                add_header("ticketmaestro_reverts_total")
                for error, count in sorted(chain.reverts.items()):
                    lines.append(f'ticketmaestro_reverts_total{{error="{error}"}} {count}')

            add_metric("ticketmaestro_uptime_seconds", time.time() - self._start_time)

        except Exception as e:
            logger.error(f"Error collecting metrics: {e}")
            lines.append(f"# Error collecting metrics: {e}")

        return "\n".join(lines) + "\n"

    def get_stats(self) -> Dict[str, Any]:
        """
        Get metrics as a dictionary (for JSON output).

        Returns:
            Dictionary of metric values
        """
        ticket = self.deployment.ticket
        treasury = self.deployment.treasury
        try:
            return {
                "tickets_minted": ticket.total_supply(),
                "vip_tickets_minted": ticket.vip_minted(),
                "tickets_left": ticket.tickets_left(),
                "max_mint": ticket.max_mint(),
                "current_event": ticket.curr_event(),
                "recorded_mints": self._recorded_mints,
                "recorded_vip_tickets": self._recorded_vip_tickets,
                "treasury_balance": treasury.balance,
                "treasury_received": treasury.total_received(),
                "treasury_released": treasury.total_released(),
                "releasable": {p: treasury.releasable(p) for p in self._payee_labels()},
                "transactions": self.deployment.chain.transactions_committed,
                "reverts": dict(self.deployment.chain.reverts),
                "uptime_seconds": time.time() - self._start_time,
            }
        except Exception as e:
            logger.error(f"Error getting stats: {e}")
            return {"error": str(e)}

    def reset_counters(self) -> None:
        """Reset all counters (useful for testing)."""
        self._recorded_mints = 0
        self._recorded_vip_tickets = 0
