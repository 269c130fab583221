"""
conftest.py - Shared pytest fixtures for stipend vault tests

Provides common fixtures used across unit and conformance tests:
- A test-mode ledger with the base asset and funded user wallets
- A static price feed and oracle client
- A deployed vault held by alice
- Comparison utilities for all-or-nothing checks
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict

from stipend import (
    Ledger, OracleClient, StaticPriceFeed, Vault,
    native_asset, token, WAD,
)


START = datetime(2025, 1, 1)
ETH_PRICE = Decimal("2000")


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def make_ledger(start: datetime = START) -> Ledger:
    """Ledger with ETH registered and alice, bob, carol funded with 1000 ETH each."""
    ledger = Ledger("test", start, verbose=False, test_mode=True)
    ledger.register_unit(native_asset("ETH", "Ether"))
    for wallet in ("alice", "bob", "carol"):
        ledger.register_wallet(wallet)
        ledger.set_balance(wallet, "ETH", 1_000 * WAD)
    return ledger


def ledger_snapshot(ledger: Ledger) -> Dict[str, Any]:
    """Everything a failed call must leave untouched."""
    return {
        'balances': {
            w: {u: q for u, q in ledger.get_wallet_balances(w).items() if q != 0}
            for w in sorted(ledger.list_wallets())
        },
        'states': {u: ledger.get_unit_state(u) for u in ledger.list_units()},
        'log_length': len(ledger.transaction_log),
    }


def past(ledger: Ledger, when: datetime, seconds: int = 1) -> None:
    """Advance the ledger clock to `seconds` after `when`."""
    ledger.advance_time(when + timedelta(seconds=seconds))


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def ledger():
    return make_ledger()


@pytest.fixture
def feed():
    return StaticPriceFeed({"ETH": ETH_PRICE})


@pytest.fixture
def oracle(feed):
    return OracleClient(feed, "ETH")


@pytest.fixture
def vault(ledger, oracle):
    return Vault(ledger, oracle, holder="alice")


@pytest.fixture
def funded_vault(vault):
    """Vault holding a 10 ETH deposit made at 2000 USD."""
    vault.deposit("alice", 10 * WAD, value=10 * WAD)
    return vault


@pytest.fixture
def usdc(ledger):
    ledger.register_unit(token("USDC", "USD Coin", decimals=6))
    return "USDC"
