"""
test_core_types.py - Unit tests for core immutable types

Tests:
- Move validation (integer quantities, distinct wallets)
- Intent id determinism and sensitivity
- Canonicalization of vault state values
- Unit formatting and factories
- Fixed-point constants
"""

import pytest
from datetime import datetime, timedelta

from stipend import (
    Move, PendingTransaction, TransactionOrigin, OriginType, UnitStateChange,
    native_asset, token, build_transaction, empty_pending_transaction,
    SYSTEM_WALLET, UNIT_TYPE_NATIVE, UNIT_TYPE_TOKEN,
    WAD, PRICE_SCALE, SCALE, WITHDRAW_DELAY, PAY_FACTOR, EMERGENCY_CUT,
    MIN_EMERGENCY_DELAY, MIN_DEPOSIT,
)
from stipend.core import _canonicalize
from tests.fake_view import FakeView


class TestMove:
    """Tests for Move validation."""

    def test_valid_move(self):
        move = Move(WAD, "ETH", "alice", "vault", "deposit")
        assert move.quantity == WAD
        assert move.unit_symbol == "ETH"

    def test_zero_quantity_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            Move(0, "ETH", "alice", "vault", "deposit")

    def test_negative_quantity_rejected(self):
        with pytest.raises(ValueError, match="positive"):
            Move(-1, "ETH", "alice", "vault", "deposit")

    def test_float_quantity_rejected(self):
        with pytest.raises(ValueError, match="int"):
            Move(1.5, "ETH", "alice", "vault", "deposit")

    def test_bool_quantity_rejected(self):
        with pytest.raises(ValueError, match="int"):
            Move(True, "ETH", "alice", "vault", "deposit")

    def test_same_source_and_dest_rejected(self):
        with pytest.raises(ValueError, match="different"):
            Move(1, "ETH", "alice", "alice", "loop")

    @pytest.mark.parametrize("field", ["source", "dest", "unit_symbol", "contract_id"])
    def test_empty_fields_rejected(self, field):
        kwargs = dict(quantity=1, unit_symbol="ETH", source="alice", dest="bob", contract_id="x")
        kwargs[field] = "  "
        with pytest.raises(ValueError, match="empty"):
            Move(**kwargs)

    def test_move_is_frozen(self):
        move = Move(1, "ETH", "alice", "bob", "x")
        with pytest.raises(AttributeError):
            move.quantity = 2


class TestIntentId:
    """Intent ids are content hashes."""

    def _origin(self):
        return TransactionOrigin(OriginType.CONTRACT, "vault", unit_symbol="VLT", event_type="DEPOSIT")

    def test_same_content_same_id(self):
        t = datetime(2025, 1, 1)
        moves = (Move(1, "ETH", "alice", "vault", "d"),)
        a = PendingTransaction(moves, (), self._origin(), t)
        b = PendingTransaction(moves, (), self._origin(), t + timedelta(days=1))
        assert a.intent_id == b.intent_id

    def test_move_order_does_not_matter(self):
        t = datetime(2025, 1, 1)
        m1 = Move(1, "ETH", "alice", "vault", "d")
        m2 = Move(1, "VLT", SYSTEM_WALLET, "alice", "m")
        a = PendingTransaction((m1, m2), (), self._origin(), t)
        b = PendingTransaction((m2, m1), (), self._origin(), t)
        assert a.intent_id == b.intent_id

    def test_state_change_changes_id(self):
        t = datetime(2025, 1, 1)
        base = PendingTransaction((), (UnitStateChange("VLT", {'nonce': 0}, {'nonce': 1}),), self._origin(), t)
        other = PendingTransaction((), (UnitStateChange("VLT", {'nonce': 1}, {'nonce': 2}),), self._origin(), t)
        assert base.intent_id != other.intent_id

    def test_build_transaction_copies_state(self):
        view = FakeView({}, time=datetime(2025, 3, 1))
        old = {'deployed': 1}
        new = {'deployed': 2}
        pending = build_transaction(view, [], [UnitStateChange("VLT", old, new)])
        new['deployed'] = 99
        assert pending.state_changes[0].new_state == {'deployed': 2}
        assert pending.timestamp == datetime(2025, 3, 1)
        assert pending.origin.origin_type == OriginType.CONTRACT

    def test_empty_pending_transaction(self):
        pending = empty_pending_transaction(FakeView({}))
        assert pending.is_empty()


class TestCanonicalize:

    def test_dict_order_independent(self):
        assert _canonicalize({'a': 1, 'b': 2}) == _canonicalize({'b': 2, 'a': 1})

    def test_timedelta_and_datetime(self):
        assert _canonicalize(timedelta(days=1)) != _canonicalize(timedelta(days=1, seconds=1))
        assert _canonicalize(datetime(2025, 1, 1)).startswith("T:")

    def test_bool_is_not_int(self):
        assert _canonicalize(True) != _canonicalize(1)


class TestUnitFactories:

    def test_native_asset(self):
        eth = native_asset("ETH", "Ether")
        assert eth.unit_type == UNIT_TYPE_NATIVE
        assert eth.decimals == 18
        assert eth.min_balance == 0
        assert eth.state == {'issuer': SYSTEM_WALLET}

    def test_token(self):
        usdc = token("USDC", "USD Coin", decimals=6)
        assert usdc.unit_type == UNIT_TYPE_TOKEN
        assert usdc.format(1_500_000) == "1.5 USDC"

    def test_format(self):
        eth = native_asset("ETH", "Ether")
        assert eth.format(WAD) == "1 ETH"
        assert eth.format(WAD // 4) == "0.25 ETH"
        assert eth.format(-WAD) == "-1 ETH"

    def test_state_is_a_copy(self):
        eth = native_asset("ETH", "Ether")
        eth.state['issuer'] = "mallory"
        assert eth.state['issuer'] == SYSTEM_WALLET


class TestConstants:

    def test_fixed_point_constants(self):
        assert WAD == 10 ** 18
        assert PRICE_SCALE == 10 ** 8
        assert SCALE == 10_000
        assert PAY_FACTOR == 200
        assert EMERGENCY_CUT == 2_000
        assert MIN_DEPOSIT == 10 ** 16

    def test_delays(self):
        assert WITHDRAW_DELAY == timedelta(days=30)
        assert MIN_EMERGENCY_DELAY == timedelta(days=14)
