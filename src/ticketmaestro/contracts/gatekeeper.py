"""
ticketmaestro/contracts/gatekeeper.py

Role authority shared by the Treasury and the Issuance Ledger.

Two roles exist, each bound to exactly one address at a time:
- admin: may reassign either role, and is authorized for every privileged setter
- governor: optional secondary authority; ZERO_ADDRESS means unset

Dependent contracts hold the Gatekeeper's address and ask it
`is_authorized(caller)` at the top of each privileged operation.
"""

import logging

from .base import Contract, external
from ..chain import normalize_address
from ..config import ZERO_ADDRESS
from ..errors import ADMIN_ONLY_REASON, InvalidAddress, Unauthorized

logger = logging.getLogger("ticketmaestro.contracts.gatekeeper")


class Gatekeeper(Contract):
    """
    Admin/governor role registry.

    Usage:
        bouncer = chain.deploy(Gatekeeper, deployer, deployer)
        bouncer.connect(deployer).set_governor(ops_wallet)

        bouncer.is_authorized(ops_wallet)   # True
    """

    def __init__(self, chain, address: str, initial_admin: str):
        super().__init__(chain, address)
        initial_admin = normalize_address(initial_admin)
        if initial_admin == ZERO_ADDRESS:
            raise InvalidAddress()
        self._admin = initial_admin
        self._governor = ZERO_ADDRESS
        self._emit("AdminChanged", previous=ZERO_ADDRESS, current=initial_admin)

    def admin(self) -> str:
        return self._admin

    def governor(self) -> str:
        return self._governor

    def is_authorized(self, caller: str) -> bool:
        """True iff caller currently holds the admin or the governor role."""
        caller = normalize_address(caller)
        if caller == ZERO_ADDRESS:
            return False
        return caller == self._admin or caller == self._governor

    def require_authorized(self, caller: str) -> None:
        """Raise Unauthorized unless caller is the admin or the governor."""
        if not self.is_authorized(caller):
            raise Unauthorized()

    def _only_admin(self) -> None:
        if self.msg.sender != self._admin:
            raise Unauthorized(ADMIN_ONLY_REASON)

    @external
    def set_admin(self, new_admin: str) -> None:
        """Hand the admin role to another address. Admin only."""
        self._only_admin()
        new_admin = normalize_address(new_admin)
        if new_admin == ZERO_ADDRESS:
            raise InvalidAddress()

        previous, self._admin = self._admin, new_admin
        self._emit("AdminChanged", previous=previous, current=new_admin)
        logger.info(f"Admin changed: {previous} -> {new_admin}")

    @external
    def set_governor(self, new_governor: str) -> None:
        """Set or clear (ZERO_ADDRESS) the governor. Admin only."""
        self._only_admin()
        new_governor = normalize_address(new_governor)

        previous, self._governor = self._governor, new_governor
        self._emit("GovernorChanged", previous=previous, current=new_governor)
        logger.info(f"Governor changed: {previous} -> {new_governor}")
