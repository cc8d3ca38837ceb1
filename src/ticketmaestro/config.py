"""
ticketmaestro/config.py

Configuration constants and data classes for ticketmaestro.
"""

import os
from dataclasses import dataclass, asdict
from decimal import Decimal, DecimalException
from typing import Any, Dict, List, Optional


# Smallest native unit per whole coin (wei per ether)
WEI_PER_ETHER = 10 ** 18

# Minimum seconds between two mints from the same caller
DEFAULT_MINT_COOLDOWN = 3600

# Fee tiers are packed as (vip << FEE_TIER_BITS) | regular
FEE_TIER_BITS = 128
FEE_TIER_MASK = (1 << FEE_TIER_BITS) - 1

# Treasury split: [admin wallet, beneficiary slot]
SHARE_WEIGHTS: List[int] = [75, 25]

# Accounting key of the beneficiary slot. Its payout address lives in a
# separate indirection table and can be redirected.
BENEFICIARY_SLOT = "0x000000000000000000000000000000000000feed"

ZERO_ADDRESS = "0x" + "0" * 40

# Local chain defaults
DEFAULT_GENESIS_TIMESTAMP = 1_700_000_000
DEFAULT_BLOCK_INTERVAL = 1          # seconds between automatically mined blocks
DEFAULT_ACCOUNT_COUNT = 10
DEFAULT_ACCOUNT_BALANCE = 10_000 * WEI_PER_ETHER

# Deployment defaults (mirrors the reference sale)
DEFAULT_TOKEN_NAME = "TicketMaestro"
DEFAULT_TOKEN_SYMBOL = "TM"
DEFAULT_REGULAR_FEE = "0.1"
DEFAULT_VIP_FEE = "0.15"
DEFAULT_MAX_MINT = 10


def parse_ether(value: str) -> int:
    """
    Convert a decimal ether amount to wei without float rounding.

    Args:
        value: Amount as a decimal string, e.g. "0.15"

    Returns:
        Amount in wei
    """
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite():
            raise ValueError(f"Ether amount must be finite: {value!r}")
        wei = amount * WEI_PER_ETHER
    except DecimalException:
        raise ValueError(f"Invalid ether amount: {value!r}")
    if wei != wei.to_integral_value() or wei < 0:
        raise ValueError(f"Ether amount must be a non-negative multiple of 1 wei: {value!r}")
    return int(wei)


def format_ether(wei: int) -> str:
    """Format a wei amount as a decimal ether string."""
    amount = Decimal(wei) / WEI_PER_ETHER
    text = format(amount.normalize(), "f")
    return text if "." in text else f"{text}.0"


@dataclass
class DeploymentConfig:
    """
    Parameters wired into the three contracts at deployment.

    Usage:
        config = DeploymentConfig.from_env()
        deployment = deploy_ticketing(chain, deployer, config)
    """
    admin_wallet: Optional[str] = None           # Receives the 75% share
    initial_fund_receiver: Optional[str] = None  # First payout address of the beneficiary slot
    regular_fee: int = parse_ether(DEFAULT_REGULAR_FEE)
    vip_fee: int = parse_ether(DEFAULT_VIP_FEE)
    name: str = DEFAULT_TOKEN_NAME
    symbol: str = DEFAULT_TOKEN_SYMBOL
    max_mint: int = DEFAULT_MAX_MINT
    mint_cooldown: int = DEFAULT_MINT_COOLDOWN

    @property
    def packed_fee_schedule(self) -> int:
        from .contracts.fees import pack_fee_schedule
        return pack_fee_schedule(self.regular_fee, self.vip_fee)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "DeploymentConfig":
        """
        Build a config from environment variables.

        Recognised: ADMIN_WALLET, INIT_FUND_RECEIVER, REG_FEE, VIP_FEE,
        NFT_NAME, NFT_SYM, MAX_MINT, MINT_COOLDOWN. Missing or blank values
        fall back to the defaults above.
        """
        env = os.environ if environ is None else environ
        return cls(
            admin_wallet=env.get("ADMIN_WALLET") or None,
            initial_fund_receiver=env.get("INIT_FUND_RECEIVER") or None,
            regular_fee=parse_ether(env.get("REG_FEE") or DEFAULT_REGULAR_FEE),
            vip_fee=parse_ether(env.get("VIP_FEE") or DEFAULT_VIP_FEE),
            name=env.get("NFT_NAME") or DEFAULT_TOKEN_NAME,
            symbol=env.get("NFT_SYM") or DEFAULT_TOKEN_SYMBOL,
            max_mint=int(env.get("MAX_MINT") or DEFAULT_MAX_MINT),
            mint_cooldown=int(env.get("MINT_COOLDOWN") or DEFAULT_MINT_COOLDOWN),
        )
