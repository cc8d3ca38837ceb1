"""
ticketmaestro/contracts/fees.py

Dual fee schedule: a regular and a VIP per-ticket price.

Held as two plain fields; packed into one 256-bit value only at the
boundary, with the regular fee in the low 128 bits and the VIP fee in the
high 128 bits.
"""

from dataclasses import dataclass, asdict
from typing import Tuple

from ..config import FEE_TIER_BITS, FEE_TIER_MASK
from ..errors import InvalidFeeSchedule


def _check_fee(fee: int) -> int:
    if not isinstance(fee, int) or isinstance(fee, bool) or fee < 0 or fee > FEE_TIER_MASK:
        raise InvalidFeeSchedule()
    return fee


def pack_fee_schedule(regular: int, vip: int) -> int:
    """Pack (regular, vip) into a single integer."""
    return (_check_fee(vip) << FEE_TIER_BITS) | _check_fee(regular)


def unpack_fee_schedule(packed: int) -> Tuple[int, int]:
    """
    Split a packed schedule.

    Returns:
        (regular, vip)
    """
    if not isinstance(packed, int) or packed < 0 or packed >> (2 * FEE_TIER_BITS):
        raise InvalidFeeSchedule("T06: Packed fee schedule does not fit in 256 bits")
    return packed & FEE_TIER_MASK, packed >> FEE_TIER_BITS


@dataclass(frozen=True)
class FeeSchedule:
    regular: int
    vip: int

    def __post_init__(self):
        _check_fee(self.regular)
        _check_fee(self.vip)

    @property
    def packed(self) -> int:
        return pack_fee_schedule(self.regular, self.vip)

    @classmethod
    def from_packed(cls, packed: int) -> "FeeSchedule":
        regular, vip = unpack_fee_schedule(packed)
        return cls(regular=regular, vip=vip)

    def as_tuple(self) -> Tuple[int, int]:
        return self.regular, self.vip

    def to_dict(self) -> dict:
        return asdict(self)
