"""
test_vault_reentrancy.py - Calls back into the vault from a receive hook

A receive hook runs while the vault call that credited the wallet is still in
flight. Any state-mutating vault entry point reached from there must fail
with ReentrantCall.
"""

import pytest
from datetime import timedelta

from stipend import (
    Withdraw, WAD, ReentrantCall, TransferFailed, Failed, NotAvailable,
)
from tests.conftest import START, ledger_snapshot, past


def eth_hook(action, attempts):
    """Receive hook that runs `action` on every ETH credit and records the outcome."""
    def hook(ledger, move):
        if move.unit_symbol != "ETH":
            return
        try:
            action()
        except ReentrantCall as exc:
            attempts.append(exc)
        else:
            attempts.append(None)
    return hook


class TestReentrancy:

    def test_reentrant_withdraw_fails_outer_applies_once(self, funded_vault, ledger):
        attempts = []
        ledger.set_receive_hook("alice", eth_hook(lambda: funded_vault.withdraw("alice"), attempts))
        past(ledger, START + timedelta(days=30))

        paid = funded_vault.withdraw("alice")

        assert len(attempts) == 1
        assert isinstance(attempts[0], ReentrantCall)
        assert paid == WAD // 5
        assert ledger.get_balance("alice", "ETH") == 990 * WAD + WAD // 5
        assert len(funded_vault.log.of_type(Withdraw)) == 1

    @pytest.mark.parametrize("action_name", [
        "withdraw_catch_up", "emergency_withdraw", "deposit", "transfer_ownership",
    ])
    def test_every_entry_point_guarded(self, funded_vault, ledger, action_name):
        actions = {
            "withdraw_catch_up": lambda: funded_vault.withdraw_catch_up("alice"),
            "emergency_withdraw": lambda: funded_vault.emergency_withdraw("alice", WAD),
            "deposit": lambda: funded_vault.deposit("alice", WAD, value=WAD),
            "transfer_ownership": lambda: funded_vault.transfer_ownership("alice", "bob"),
        }
        attempts = []
        ledger.set_receive_hook("alice", eth_hook(actions[action_name], attempts))
        past(ledger, START + timedelta(days=30))

        funded_vault.withdraw("alice")

        assert len(attempts) == 1
        assert isinstance(attempts[0], ReentrantCall)

    def test_propagating_hook_rolls_everything_back(self, funded_vault, ledger):
        def hostile(l, move):
            if move.unit_symbol == "ETH":
                funded_vault.withdraw("alice")

        ledger.set_receive_hook("alice", hostile)
        past(ledger, START + timedelta(days=30))
        before = ledger_snapshot(ledger)

        with pytest.raises(TransferFailed, match="ReentrantCall"):
            funded_vault.withdraw("alice")

        assert ledger_snapshot(ledger) == before
        assert funded_vault.state.withdraw_timer == START
        assert not funded_vault.log.of_type(Withdraw)

    def test_guard_released_after_failure(self, funded_vault, ledger):
        past(ledger, START + timedelta(days=10))
        with pytest.raises(NotAvailable):
            funded_vault.withdraw("alice")
        funded_vault.deposit("alice", WAD, value=WAD)
        assert funded_vault.state.deployed == 11 * WAD

    def test_reentry_during_escrow_release(self, funded_vault, ledger):
        attempts = []

        def on_shares(l, move):
            if move.unit_symbol == "VLT":
                try:
                    funded_vault.transfer_ownership("bob", "carol")
                except ReentrantCall as exc:
                    attempts.append(exc)

        funded_vault.transfer_ownership("alice", "bob")
        ledger.set_receive_hook("bob", on_shares)
        funded_vault.accept_ownership("bob")

        assert len(attempts) == 1
        assert funded_vault.holder == "bob"
        assert funded_vault.pending_holder is None

    def test_reentry_failure_in_escrow_release_aborts_acceptance(self, funded_vault, ledger):
        def hostile(l, move):
            funded_vault.accept_ownership("bob")

        funded_vault.transfer_ownership("alice", "bob")
        ledger.set_receive_hook("bob", hostile)
        with pytest.raises(Failed):
            funded_vault.accept_ownership("bob")
        assert funded_vault.pending_holder == "bob"
        assert funded_vault.escrow.held_units() == 10 * WAD
