"""
ticketmaestro/tests/test_gatekeeper.py

Unit tests for the admin/governor role authority.
"""

import pytest

from ticketmaestro.chain import LocalChain
from ticketmaestro.config import ZERO_ADDRESS
from ticketmaestro.contracts.gatekeeper import Gatekeeper
from ticketmaestro.errors import ADMIN_ONLY_REASON, InvalidAddress, Unauthorized


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def chain():
    return LocalChain()


@pytest.fixture
def accounts(chain):
    deployer, governor, outsider, successor = chain.accounts[:4]
    return deployer, governor, outsider, successor


@pytest.fixture
def bouncer(chain, accounts):
    deployer = accounts[0]
    return chain.deploy(Gatekeeper, deployer, deployer)


# ============================================================================
# Tests
# ============================================================================

class TestInitialRoles:
    """Role state right after deployment."""

    def test_admin_is_initial_admin(self, bouncer, accounts):
        assert bouncer.admin() == accounts[0]

    def test_governor_unset(self, bouncer):
        assert bouncer.governor() == ZERO_ADDRESS

    def test_admin_is_authorized(self, bouncer, accounts):
        assert bouncer.is_authorized(accounts[0]) is True

    def test_outsider_not_authorized(self, bouncer, accounts):
        assert bouncer.is_authorized(accounts[2]) is False

    def test_unset_governor_grants_nothing(self, bouncer):
        assert bouncer.is_authorized(ZERO_ADDRESS) is False

    def test_require_authorized(self, bouncer, accounts):
        bouncer.require_authorized(accounts[0])
        with pytest.raises(Unauthorized) as exc:
            bouncer.require_authorized(accounts[2])
        assert exc.value.reason == "B03: Only the admin or the governor can perform this action"

    def test_zero_initial_admin_rejected(self, chain, accounts):
        with pytest.raises(InvalidAddress):
            chain.deploy(Gatekeeper, accounts[0], ZERO_ADDRESS)


class TestGovernor:
    """Tests for set_governor."""

    def test_admin_sets_governor(self, bouncer, accounts):
        deployer, governor = accounts[:2]
        receipt = bouncer.connect(deployer).set_governor(governor)

        assert bouncer.governor() == governor
        assert bouncer.is_authorized(governor)
        assert receipt.events("GovernorChanged")[0].args == {
            "previous": ZERO_ADDRESS,
            "current": governor,
        }

    def test_outsider_cannot_set_governor(self, bouncer, accounts):
        with pytest.raises(Unauthorized) as exc:
            bouncer.connect(accounts[2]).set_governor(accounts[2])

        assert exc.value.reason == ADMIN_ONLY_REASON
        assert bouncer.governor() == ZERO_ADDRESS

    def test_governor_cannot_appoint_governor(self, bouncer, accounts):
        deployer, governor, outsider = accounts[:3]
        bouncer.connect(deployer).set_governor(governor)

        with pytest.raises(Unauthorized):
            bouncer.connect(governor).set_governor(outsider)
        assert bouncer.governor() == governor

    def test_clearing_governor(self, bouncer, accounts):
        deployer, governor = accounts[:2]
        bouncer.connect(deployer).set_governor(governor)
        bouncer.connect(deployer).set_governor(ZERO_ADDRESS)

        assert bouncer.governor() == ZERO_ADDRESS
        assert not bouncer.is_authorized(governor)

    def test_replacing_governor_revokes_previous(self, bouncer, accounts):
        deployer, governor, _, successor = accounts
        bouncer.connect(deployer).set_governor(governor)
        bouncer.connect(deployer).set_governor(successor)

        assert not bouncer.is_authorized(governor)
        assert bouncer.is_authorized(successor)


class TestAdmin:
    """Tests for set_admin."""

    def test_admin_hands_over(self, bouncer, accounts):
        deployer, _, _, successor = accounts
        bouncer.connect(deployer).set_admin(successor)

        assert bouncer.admin() == successor
        assert bouncer.is_authorized(successor)
        assert not bouncer.is_authorized(deployer)

    def test_previous_admin_loses_control(self, bouncer, accounts):
        deployer, _, outsider, successor = accounts
        bouncer.connect(deployer).set_admin(successor)

        with pytest.raises(Unauthorized):
            bouncer.connect(deployer).set_governor(outsider)

    def test_governor_cannot_take_admin(self, bouncer, accounts):
        deployer, governor = accounts[:2]
        bouncer.connect(deployer).set_governor(governor)

        with pytest.raises(Unauthorized) as exc:
            bouncer.connect(governor).set_admin(governor)
        assert exc.value.reason == ADMIN_ONLY_REASON
        assert bouncer.admin() == deployer

    def test_zero_admin_rejected(self, bouncer, accounts):
        with pytest.raises(InvalidAddress):
            bouncer.connect(accounts[0]).set_admin(ZERO_ADDRESS)
        assert bouncer.admin() == accounts[0]

    def test_at_most_one_admin(self, bouncer, accounts):
        deployer, governor, outsider, successor = accounts
        bouncer.connect(deployer).set_admin(successor)
        bouncer.connect(successor).set_admin(outsider)

        holders = [a for a in accounts if a == bouncer.admin()]
        assert holders == [outsider]
