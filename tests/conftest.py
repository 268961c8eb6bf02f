"""
conftest.py - Shared pytest fixtures for principal ledger tests

Provides common fixtures used across unit, conformance and functional tests:
- Basic ledgers (empty, with assets and wallets)
- Principal token ledgers for each custody kind
- Rate sources
- FakeView states for pure function tests
"""

import pytest
from datetime import timedelta

from principal_ledger import (
    Ledger, asset,
    StaticRateSource, TimeSeriesRateSource, YieldProtocol,
    CUSTODY_AUTHORIZED_EXTERNAL, CUSTODY_ADMIN_EXTERNAL, CUSTODY_INTERNAL,
    RATE_SCALE,
)

from tests.builders import (
    START, MATURITY, CUSTODIAN_FUNDING, pt_state, make_ledger, make_token,
)
from tests.fake_view import FakeView


# =============================================================================
# BASIC FIXTURES
# =============================================================================

@pytest.fixture
def empty_ledger():
    """Fresh ledger with no registrations."""
    return Ledger("test", verbose=False, test_mode=True)


@pytest.fixture
def basic_ledger():
    """Ledger with DAI and two wallets."""
    ledger = Ledger("test", START, verbose=False, test_mode=True)
    ledger.register_unit(asset("DAI", "Dai Stablecoin"))
    ledger.register_wallet("alice")
    ledger.register_wallet("bob")
    return ledger


@pytest.fixture
def funded_ledger(basic_ledger):
    """Basic ledger with alice holding 10,000 DAI."""
    basic_ledger.set_balance("alice", "DAI", 10_000)
    return basic_ledger


# =============================================================================
# PRINCIPAL TOKEN FIXTURES
# =============================================================================

@pytest.fixture
def static_rates():
    """Rate source answering 2.0 for cDAI."""
    return StaticRateSource({(YieldProtocol.COMPOUND, "cDAI"): 2 * RATE_SCALE})


@pytest.fixture
def rate_path():
    """cDAI rate rising from 1.5 to 3.0 across maturity."""
    return TimeSeriesRateSource({
        (YieldProtocol.COMPOUND, "cDAI"): [
            (START, 3 * RATE_SCALE // 2),
            (MATURITY, 2 * RATE_SCALE),
            (MATURITY + timedelta(days=30), 3 * RATE_SCALE),
        ],
    })


@pytest.fixture
def pt_ledger():
    """Ledger with an authorized-external principal token and funded custodian."""
    return make_ledger()


@pytest.fixture
def external_token():
    """(token, ledger, rates) for authorized external custody, rate 2.0."""
    return make_token(CUSTODY_AUTHORIZED_EXTERNAL)


@pytest.fixture
def admin_token():
    """(token, ledger, rates) for admin external custody, rate 2.0."""
    return make_token(CUSTODY_ADMIN_EXTERNAL)


@pytest.fixture
def internal_token():
    """(token, ledger, rates) for internal custody (parity)."""
    return make_token(CUSTODY_INTERNAL)


@pytest.fixture
def matured_token(external_token):
    """External token with the ledger clock at maturity, rate not yet locked."""
    token, ledger, rates = external_token
    ledger.advance_time(MATURITY)
    return token, ledger, rates


# =============================================================================
# FAKE VIEW FIXTURES
# =============================================================================

@pytest.fixture
def pre_maturity_view():
    """FakeView one day before maturity."""
    return FakeView(
        balances={"alice": {"PT_DAI": 1000}, "custodian": {"DAI": CUSTODIAN_FUNDING}},
        states={"PT_DAI": pt_state()},
        time=MATURITY - timedelta(days=1),
    )


@pytest.fixture
def maturity_view():
    """FakeView at maturity, rate unset."""
    return FakeView(
        balances={"alice": {"PT_DAI": 1000}, "custodian": {"DAI": CUSTODIAN_FUNDING}},
        states={"PT_DAI": pt_state()},
        time=MATURITY,
    )


@pytest.fixture
def locked_view():
    """FakeView after maturity with the rate locked at 2.0."""
    return FakeView(
        balances={"alice": {"PT_DAI": 1000}, "custodian": {"DAI": CUSTODIAN_FUNDING}},
        states={"PT_DAI": pt_state(maturity_rate=2 * RATE_SCALE)},
        time=MATURITY + timedelta(days=10),
    )
