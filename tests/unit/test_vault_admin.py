"""
test_vault_admin.py - Foreign asset sweep, queries, events and verbose output
"""

import pytest
from datetime import timedelta

from stipend import (
    Vault, ForeignTransfer, Deposit, Withdraw, EventLog,
    WAD, InvalidEntry, InvalidAmount, ZeroAddress, UnauthorizedAccount, TransferFailed,
)
from tests.conftest import START, past


class TestSweep:

    def test_sweep_foreign_token(self, funded_vault, ledger, usdc):
        ledger.set_balance("vault", usdc, 1_000_000)
        funded_vault.sweep_foreign("alice", usdc, "bob", 400_000)
        assert ledger.get_balance("bob", usdc) == 400_000
        assert ledger.get_balance("vault", usdc) == 600_000
        assert funded_vault.events[-1] == ForeignTransfer(START, usdc, 400_000)

    def test_sweep_more_than_held(self, funded_vault, ledger, usdc):
        ledger.set_balance("vault", usdc, 10)
        with pytest.raises(TransferFailed):
            funded_vault.sweep_foreign("alice", usdc, "bob", 11)
        assert ledger.get_balance("vault", usdc) == 10

    def test_sweep_unknown_asset(self, funded_vault):
        with pytest.raises(TransferFailed, match="unit not registered"):
            funded_vault.sweep_foreign("alice", "DOGE", "bob", 1)

    @pytest.mark.parametrize("asset", ["ETH", "VLT"])
    def test_cannot_sweep_vault_assets(self, funded_vault, asset):
        with pytest.raises(InvalidEntry):
            funded_vault.sweep_foreign("alice", asset, "bob", 1)
        assert funded_vault.asset_balance() == 10 * WAD

    def test_validation(self, funded_vault, usdc):
        with pytest.raises(ZeroAddress):
            funded_vault.sweep_foreign("alice", usdc, "", 1)
        with pytest.raises(InvalidAmount):
            funded_vault.sweep_foreign("alice", usdc, "bob", 0)

    def test_non_holder(self, funded_vault, usdc):
        with pytest.raises(UnauthorizedAccount):
            funded_vault.sweep_foreign("bob", usdc, "bob", 1)


class TestQueries:

    def test_schedule(self, funded_vault, ledger):
        assert funded_vault.next_withdrawal_at() == START + timedelta(days=30)
        assert funded_vault.next_emergency_at() == START + timedelta(days=14)
        assert not funded_vault.can_withdraw()
        past(ledger, START + timedelta(days=30))
        assert funded_vault.can_withdraw()

    def test_terms(self, vault):
        assert vault.terms.asset_symbol == "ETH"
        assert vault.terms.vault_wallet == "vault"

    def test_repr(self, funded_vault):
        assert "holder=alice" in repr(funded_vault)


class TestEvents:

    def test_subscribers_see_successes_only(self, vault, ledger):
        seen = []
        vault.subscribe(seen.append)
        vault.deposit("alice", WAD, value=WAD)
        with pytest.raises(InvalidAmount):
            vault.deposit("alice", 1, value=1)
        assert [e.name for e in seen] == ["Deposit"]

    def test_event_log(self):
        log = EventLog()
        seen = []
        log.subscribe(seen.append)
        log.emit(Deposit(START, "alice", 1))
        log.unsubscribe(seen.append)
        log.emit(Withdraw(START, "alice", 1))
        assert len(log) == 2
        assert len(seen) == 1
        assert log.of_type(Withdraw) == [Withdraw(START, "alice", 1)]
        assert log.last() == Withdraw(START, "alice", 1)

    def test_empty_log(self):
        assert EventLog().last() is None

    def test_verbose_vault_prints_events(self, ledger, oracle, capsys):
        vault = Vault(ledger, oracle, holder="alice", verbose=True)
        vault.deposit("alice", WAD, value=WAD)
        out = capsys.readouterr().out
        assert "[VAULT] Deposit(holder=alice, amount=1000000000000000000)" in out
