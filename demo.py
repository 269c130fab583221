#!/usr/bin/env python3
"""
demo.py - Interactive Tutorial: The Stipend Vault Step by Step

A walk through one vault's life. Each step builds on the previous one.
Press Enter to advance.

WHAT YOU'LL LEARN:
  1-3:   Setup           - Ledger, price feed, vault deployment
  4-7:   Payouts         - Deposits, the monthly gate, USD re-pricing, catch-up
  8-9:   Protection      - Emergency withdrawal, re-entrancy
  10-11: Control         - Two-step handoff, conservation proof

Run:
    python demo.py           # Interactive mode (press Enter for each step)
    python demo.py --quick   # Run all steps without pausing
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
import sys

from stipend import (
    Ledger, Vault, OracleClient, StaticPriceFeed,
    native_asset, SYSTEM_WALLET, WAD, PRICE_SCALE,
    VaultError, ReentrantCall,
)


# ============================================================================
# CONFIGURATION
# ============================================================================

@dataclass
class DemoConfig:
    """Configuration for the tutorial. Modify these to experiment."""
    start_time: datetime = datetime(2025, 1, 1, 9, 0, 0)
    initial_eth: int = 100 * WAD
    deposit: int = 10 * WAD
    start_price: Decimal = Decimal("2000")
    rally_price: Decimal = Decimal("4000")


CONFIG = DemoConfig()

QUICK_MODE = "--quick" in sys.argv


def wait_for_enter():
    """Pause for user input unless in quick mode."""
    if not QUICK_MODE:
        input("\n[Press Enter to continue...]")


def step_header(number: int, title: str, objective: str):
    """Print a step header with learning objective."""
    print(f"\n{'='*70}")
    print(f"STEP {number}: {title}")
    print(f"{'='*70}")
    print(f"\nObjective: {objective}\n")


def section_header(text: str):
    """Print a section header within a step."""
    print(f"\n--- {text} ---\n")


def eth(quantity: int) -> str:
    return f"{Decimal(quantity) / WAD:f} ETH"


def usd(e8: int) -> str:
    return f"${Decimal(e8) / PRICE_SCALE:,.2f}"


def show_vault(vault: Vault):
    state = vault.state
    print(f"Holder:           {state.holder} (pending: {state.pending_holder})")
    print(f"Deployed:         {eth(state.deployed)}")
    print(f"Shares out:       {eth(vault.total_supply())}")
    print(f"Monthly pay:      {usd(state.monthly_pay_usd_e8)}")
    print(f"Withdraw timer:   {state.withdraw_timer}")
    print(f"Catch-up banked:  {state.catch_up_timer}")


# ============================================================================
# PHASE 1: SETUP
# ============================================================================

def step_01_ledger():
    step_header(1, "The Ledger",
        "The vault lives on a double-entry ledger; ETH enters through the system wallet.")
    ledger = Ledger("tutorial", initial_time=CONFIG.start_time, verbose=False, test_mode=True)
    ledger.register_unit(native_asset("ETH", "Ether"))
    for wallet in ("alice", "bob"):
        ledger.register_wallet(wallet)
        ledger.set_balance(wallet, "ETH", CONFIG.initial_eth)
    print(f"Wallets:  {sorted(ledger.list_wallets())}")
    print(f"Alice:    {eth(ledger.get_balance('alice', 'ETH'))}")
    print(f"System:   {eth(ledger.get_balance(SYSTEM_WALLET, 'ETH'))}")
    return ledger


def step_02_price_feed():
    step_header(2, "The Oracle",
        "Prices arrive as Decimal USD quotes and are truncated to 8 decimals.")
    feed = StaticPriceFeed({"ETH": CONFIG.start_price})
    oracle = OracleClient(feed, "ETH")
    print(f">>> oracle.current_price(now) = {oracle.current_price(CONFIG.start_time)}")
    return feed, oracle


def step_03_deploy(ledger: Ledger, oracle: OracleClient):
    step_header(3, "Deploying the Vault",
        "A vault registers its own wallet, an escrow wallet and a share unit.")
    vault = Vault(ledger, oracle, holder="alice", verbose=True)
    show_vault(vault)
    return vault


# ============================================================================
# PHASE 2: PAYOUTS
# ============================================================================

def step_04_deposit(vault: Vault):
    step_header(4, "Deposit",
        "A deposit fixes a USD obligation: 2% of its value at today's price, per month.")
    vault.deposit("bob", CONFIG.deposit, value=CONFIG.deposit)
    show_vault(vault)
    print("\nBob paid, but the shares belong to the holder:")
    print(f"alice shares: {eth(vault.balance_of('alice'))}   bob shares: {eth(vault.balance_of('bob'))}")


def step_05_monthly_gate(ledger: Ledger, vault: Vault):
    step_header(5, "The Monthly Gate",
        "Withdrawals open strictly after 30 days.")
    ledger.advance_time(vault.next_withdrawal_at())
    try:
        vault.withdraw("alice")
    except VaultError as exc:
        print(f"At the deadline: {type(exc).__name__}: {exc}")
    ledger.advance_time(vault.next_withdrawal_at() + timedelta(seconds=1))
    paid = vault.withdraw("alice")
    print(f"One second later: paid {eth(paid)}")


def step_06_repricing(ledger: Ledger, feed: StaticPriceFeed, vault: Vault):
    step_header(6, "USD Re-pricing",
        "The obligation is in dollars: a higher ETH price pays fewer ETH.")
    feed.update_price("ETH", CONFIG.rally_price)
    ledger.advance_time(vault.next_withdrawal_at() + timedelta(seconds=1))
    paid = vault.withdraw("alice")
    print(f"ETH at {CONFIG.rally_price}: paid {eth(paid)} for {usd(vault.state.monthly_pay_usd_e8)} owed")


def step_07_catch_up(ledger: Ledger, vault: Vault):
    step_header(7, "Catch-up",
        "Lateness past the deadline is banked and redeemed one period at a time.")
    ledger.advance_time(vault.next_withdrawal_at() + timedelta(days=45))
    vault.withdraw("alice")
    print(f"Banked: {vault.state.catch_up_timer}")
    while vault.can_withdraw_catch_up():
        paid = vault.withdraw_catch_up("alice")
        print(f"Catch-up paid {eth(paid)}; banked now {vault.state.catch_up_timer}")


# ============================================================================
# PHASE 3: PROTECTION
# ============================================================================

def step_08_emergency(ledger: Ledger, vault: Vault):
    step_header(8, "Emergency Withdrawal",
        "At most 20% of the vault balance, once per emergency delay.")
    ledger.advance_time(vault.next_emergency_at() + timedelta(seconds=1))
    before = vault.state.monthly_pay_usd_e8
    taken = vault.emergency_withdraw("alice", 100 * WAD)
    print(f"Asked for 100 ETH, got {eth(taken)}")
    print(f"Obligation {usd(before)} -> {usd(vault.state.monthly_pay_usd_e8)}")


def step_09_reentrancy(ledger: Ledger, vault: Vault):
    step_header(9, "Re-entrancy",
        "A recipient calling back into the vault mid-payout is refused.")
    attempts = []

    def greedy(l, move):
        if move.unit_symbol == "ETH":
            try:
                vault.withdraw_catch_up("alice")
            except ReentrantCall as exc:
                attempts.append(exc)

    ledger.set_receive_hook("alice", greedy)
    ledger.advance_time(vault.next_withdrawal_at() + timedelta(seconds=1))
    vault.withdraw("alice")
    ledger.set_receive_hook("alice", None)
    print(f"Nested attempt: {attempts[0]!r}")


# ============================================================================
# PHASE 4: CONTROL
# ============================================================================

def step_10_handoff(vault: Vault):
    step_header(10, "Two-step Handoff",
        "Shares wait in escrow until the new holder accepts.")
    vault.transfer_ownership("alice", "bob")
    print(f"Ownership: {vault.ownership}; escrow holds {eth(vault.escrow.held_units())}")
    vault.accept_ownership("bob")
    print(f"Ownership: {vault.ownership}; bob holds {eth(vault.balance_of('bob'))}")


def step_11_conservation(ledger: Ledger, vault: Vault):
    step_header(11, "Conservation",
        "Shares outstanding always equal deployed capital; every unit nets to zero.")
    result = ledger.verify_double_entry()
    print(f"Double entry valid:       {result['valid']}")
    print(f"Deployed == shares out:   {vault.state.deployed == vault.total_supply()}")
    print(f"Transactions logged:      {len(ledger.transaction_log)}")
    print(f"Events emitted:           {[e.name for e in vault.events]}")


def main():
    """Run the complete tutorial."""
    print("=" * 70)
    print("       STIPEND VAULT - INTERACTIVE TUTORIAL")
    print("=" * 70)
    if QUICK_MODE:
        print("Running in QUICK mode (no pauses)")
    else:
        print("Running in INTERACTIVE mode (press Enter to advance)")
    wait_for_enter()

    ledger = step_01_ledger()
    wait_for_enter()
    feed, oracle = step_02_price_feed()
    wait_for_enter()
    vault = step_03_deploy(ledger, oracle)
    wait_for_enter()

    step_04_deposit(vault)
    wait_for_enter()
    step_05_monthly_gate(ledger, vault)
    wait_for_enter()
    step_06_repricing(ledger, feed, vault)
    wait_for_enter()
    step_07_catch_up(ledger, vault)
    wait_for_enter()

    step_08_emergency(ledger, vault)
    wait_for_enter()
    step_09_reentrancy(ledger, vault)
    wait_for_enter()

    step_10_handoff(vault)
    wait_for_enter()
    step_11_conservation(ledger, vault)


if __name__ == "__main__":
    main()
