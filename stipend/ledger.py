"""
ledger.py - Stateful Double-Entry Ledger hosting the vault

The Ledger class is the central state manager. It is the only module that
mutates balances and unit state, ensuring controlled and auditable changes.

Key responsibilities:
    - Implements LedgerView protocol for safe read-only access by pure functions
    - Executes transactions atomically (all moves succeed or all fail)
    - Maintains wallet balances and unit definitions (including vault state)
    - Dispatches receive hooks when a hooked wallet is credited
    - Provides savepoints (atomic()) so multi-step operations roll back as one
    - Always validates and always logs
"""

from __future__ import annotations
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterator, List, Set, Optional, Tuple, Any
import copy

from .core import (
    # Types
    Move, Transaction, Unit,
    PendingTransaction,
    ExecuteResult,
    Positions, UnitState, BalanceMap,
    # Constants
    SYSTEM_WALLET,
    # Exceptions
    LedgerError, UnitNotRegistered, WalletNotRegistered,
    # Helper functions
    _freeze_state,
)


# Called as hook(ledger, move) after a move crediting the hooked wallet has been
# applied. Raising refuses the credit and rolls the whole transaction back.
ReceiveHook = Callable[["Ledger", Move], None]


class Ledger:
    """
    Double-entry ledger with full validation and audit trail.

    Implements the LedgerView protocol, allowing the ledger to be passed to pure
    functions that access only read-only methods.

    Design Principles:
        - Always validates: every transaction is checked against registration,
          balance constraints, timestamp and stale unit state.
        - Always logs: every applied transaction is recorded in the audit trail.
        - Receive hooks model control passing to a recipient mid-transaction.
          They run after the transaction's effects are visible, and a failing
          hook undoes everything the transaction (and the hook) did.

    Thread Safety:
        Not thread-safe. Each thread should maintain its own Ledger instance.

    Example:
        ledger = Ledger("main")
        ledger.register_unit(native_asset("ETH", "Ether"))
        ledger.register_wallet("alice")
        ledger.register_wallet("bob")

        tx = build_transaction(ledger, [
            Move(10 ** 18, "ETH", SYSTEM_WALLET, "alice", "funding")
        ])
        result = ledger.execute(tx)
    """

    def __init__(
        self,
        name: str,
        initial_time: Optional[datetime] = None,
        verbose: bool = True,
        test_mode: bool = False
    ):
        """
        Create a ledger.

        Args:
            name: Ledger identifier
            initial_time: Starting time for the ledger (default: 1970-01-01)
            verbose: Enable debug output (default: True)
            test_mode: Enable test mode to allow set_balance() calls (default: False)
        """
        self.name = name
        self.balances: Dict[str, Dict[str, int]] = {}
        self.units: Dict[str, Unit] = {}
        self.registered_wallets: Set[str] = set()
        self.receive_hooks: Dict[str, ReceiveHook] = {}
        self.seen_intent_ids: Set[str] = set()
        self.transaction_log: List[Transaction] = []
        self.last_rejection: Optional[str] = None
        self._current_time: datetime = initial_time or datetime(1970, 1, 1)
        self.verbose = verbose
        self._test_mode = test_mode
        self._next_sequence: int = 0
        # Inverted index mapping unit -> {wallet -> quantity} for O(1) position lookups
        self._positions_by_unit: Dict[str, Dict[str, int]] = defaultdict(dict)

        # Auto-register the system wallet (used for mint / burn)
        self.registered_wallets.add(SYSTEM_WALLET)
        self.balances[SYSTEM_WALLET] = defaultdict(int)

    # ========================================================================
    # LedgerView PROTOCOL IMPLEMENTATION (read-only methods)
    # ========================================================================

    @property
    def current_time(self) -> datetime:
        """Current logical time of the ledger."""
        return self._current_time

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """
        Get the balance of a specific unit in a wallet.

        Raises:
            WalletNotRegistered: If wallet is not registered
            UnitNotRegistered: If unit is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return self.balances[wallet_id].get(unit_symbol, 0)

    def get_unit_state(self, unit_symbol: str) -> UnitState:
        """
        Get a deep copy of a unit's internal state.

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        state = self.units[unit_symbol].state
        return copy.deepcopy(state) if state else {}

    def get_positions(self, unit_symbol: str) -> Positions:
        """Get all non-zero positions for a unit across all wallets (system wallet included)."""
        return dict(self._positions_by_unit.get(unit_symbol, {}))

    def list_wallets(self) -> Set[str]:
        """List all registered wallet IDs."""
        return self.registered_wallets.copy()

    def list_units(self) -> List[str]:
        """List all registered unit symbols."""
        return sorted(self.units.keys())

    def get_unit(self, symbol: str) -> Unit:
        """Return the Unit object for a given symbol."""
        if symbol not in self.units:
            raise UnitNotRegistered(f"Unit {symbol} not registered")
        return self.units[symbol]

    def get_wallet_balances(self, wallet_id: str) -> BalanceMap:
        """Get all balances for a wallet."""
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        return dict(self.balances[wallet_id])

    def total_supply(self, unit_symbol: str) -> int:
        """
        Outstanding supply of a unit: the sum of all balances outside SYSTEM_WALLET.

        Minting moves units out of the system wallet and burning moves them back,
        so this is exactly what has been issued and not yet redeemed.

        Raises:
            UnitNotRegistered: If unit is not registered
        """
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        return sum(
            self.balances[w].get(unit_symbol, 0)
            for w in sorted(self.registered_wallets)
            if w != SYSTEM_WALLET
        )

    def verify_double_entry(self) -> Dict[str, Any]:
        """
        Verify that conservation laws hold for all units.

        Every move debits one wallet and credits another by the same amount,
        so for every unit the sum of all balances, system wallet included,
        must be exactly zero.

        Returns:
            Dict with keys:
            - 'valid': bool - True if all conservation laws hold
            - 'supplies': Dict[str, int] - Outstanding supply of each unit
            - 'discrepancies': List[Dict] - unit and non-zero net sum for violations

        Example:
            result = ledger.verify_double_entry()
            assert result['valid'], f"Conservation violated: {result['discrepancies']}"
        """
        supplies = {}
        discrepancies = []
        for unit_symbol in sorted(self.units):
            supplies[unit_symbol] = self.total_supply(unit_symbol)
            net = supplies[unit_symbol] + self.balances[SYSTEM_WALLET].get(unit_symbol, 0)
            if net != 0:
                discrepancies.append({'unit': unit_symbol, 'net': net})

        return {
            'valid': len(discrepancies) == 0,
            'supplies': supplies,
            'discrepancies': discrepancies,
        }

    def is_registered(self, wallet_id: str) -> bool:
        """Check if a wallet is registered."""
        return wallet_id in self.registered_wallets

    # ========================================================================
    # TIME MANAGEMENT
    # ========================================================================

    def advance_time(self, new_time: datetime) -> None:
        """
        Advance the ledger's logical clock to a new time.

        Time can only move forward, never backward.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._current_time:
            raise ValueError(
                f"Cannot move time backwards: {new_time} < {self._current_time}"
            )
        self._current_time = new_time

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_wallet(self, wallet_id: str, on_receive: Optional[ReceiveHook] = None) -> str:
        """
        Register a new wallet in the ledger.

        Args:
            wallet_id: Unique identifier for the wallet
            on_receive: Optional hook invoked whenever the wallet is credited

        Returns:
            The wallet_id that was registered

        Raises:
            ValueError: If wallet is already registered or the id is empty
        """
        if not wallet_id or not wallet_id.strip():
            raise ValueError("Wallet id cannot be empty")
        if wallet_id in self.registered_wallets:
            raise ValueError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(int)
        if on_receive is not None:
            self.receive_hooks[wallet_id] = on_receive
        return wallet_id

    def set_receive_hook(self, wallet_id: str, on_receive: Optional[ReceiveHook]) -> None:
        """Install (or, with None, remove) the receive hook of a registered wallet."""
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if on_receive is None:
            self.receive_hooks.pop(wallet_id, None)
        else:
            self.receive_hooks[wallet_id] = on_receive

    def register_unit(self, unit: Unit) -> None:
        """
        Register a new unit in the ledger.

        Raises:
            ValueError: If unit symbol is already registered
        """
        if unit.symbol in self.units:
            raise ValueError(f"Unit {unit.symbol} already registered")
        self.units[unit.symbol] = unit
        if self.verbose:
            print(f"Registered: {unit.symbol} ({unit.name}) [{unit.unit_type}]")

    def set_balance(self, wallet_id: str, unit_symbol: str, quantity: int) -> None:
        """
        Set a wallet's balance for a unit directly.

        WARNING: This bypasses double-entry accounting and is only available in
        test mode. The difference is booked against SYSTEM_WALLET so that
        conservation still holds.

        Raises:
            LedgerError: If called when test_mode is False
        """
        if not self._test_mode:
            raise LedgerError(
                "set_balance() is disabled in production mode. "
                "Use build_transaction() and execute() to modify balances. "
                "Set test_mode=True when creating Ledger for testing."
            )
        if wallet_id not in self.registered_wallets:
            raise WalletNotRegistered(f"Wallet {wallet_id} not registered")
        if unit_symbol not in self.units:
            raise UnitNotRegistered(f"Unit {unit_symbol} not registered")
        delta = quantity - self.balances[wallet_id][unit_symbol]
        self.balances[wallet_id][unit_symbol] = quantity
        self._update_position_index(wallet_id, unit_symbol, quantity)
        if wallet_id != SYSTEM_WALLET:
            system_balance = self.balances[SYSTEM_WALLET][unit_symbol] - delta
            self.balances[SYSTEM_WALLET][unit_symbol] = system_balance
            self._update_position_index(SYSTEM_WALLET, unit_symbol, system_balance)

    # ========================================================================
    # SAVEPOINTS
    # ========================================================================

    def _snapshot(self) -> Tuple[Any, ...]:
        return (
            {w: dict(b) for w, b in self.balances.items()},
            dict(self.units),
            {u: dict(p) for u, p in self._positions_by_unit.items()},
            len(self.transaction_log),
            set(self.seen_intent_ids),
            self._next_sequence,
        )

    def _restore(self, snapshot: Tuple[Any, ...]) -> None:
        balances, units, positions, log_length, seen, sequence = snapshot
        self.balances = {w: defaultdict(int, b) for w, b in balances.items()}
        # Wallets registered after the snapshot keep an empty balance sheet
        for wallet in self.registered_wallets:
            self.balances.setdefault(wallet, defaultdict(int))
        self.units = units
        self._positions_by_unit = defaultdict(dict, positions)
        del self.transaction_log[log_length:]
        self.seen_intent_ids = seen
        self._next_sequence = sequence

    @contextmanager
    def atomic(self) -> Iterator["Ledger"]:
        """
        Savepoint: if the block raises, every balance, unit state, log entry and
        idempotency record written inside it is discarded before re-raising.

        Savepoints nest; an inner failure caught by the block leaves the outer
        savepoint intact.

        Example:
            with ledger.atomic():
                ledger.execute(first)
                if ledger.execute(second) != ExecuteResult.APPLIED:
                    raise TransferFailed("second leg rejected")
        """
        snapshot = self._snapshot()
        try:
            yield self
        except Exception:
            self._restore(snapshot)
            raise

    # ========================================================================
    # TRANSACTION EXECUTION (Mutating)
    # ========================================================================

    def _generate_exec_id(self, sequence: int) -> str:
        """
        Generate a unique execution ID.

        Format: exec:{ledger_name}:{sequence:012d}:{timestamp_micros}
        """
        micros = int(self._current_time.timestamp() * 1_000_000)
        return f"exec:{self.name}:{sequence:012d}:{micros}"

    def _reject(self, reason: str) -> ExecuteResult:
        self.last_rejection = reason
        if self.verbose:
            print(f"✗ REJECTED: {reason}")
        return ExecuteResult.REJECTED

    def execute(self, pending: PendingTransaction) -> ExecuteResult:
        """
        Execute a PendingTransaction atomically.

        All moves and state changes succeed together or all fail together.
        Execution is idempotent: a pending transaction with the same intent_id
        will not be applied twice.

        Order of work:
        1. Validate (timestamp, registration, balance limits, stale state)
        2. Apply moves and state changes, append to the transaction log
        3. Invoke receive hooks of credited wallets, in move order

        If a hook raises, everything from step 2 onward (including transactions
        the hook itself executed) is undone and the result is REJECTED.

        Returns:
            ExecuteResult.APPLIED if successful
            ExecuteResult.ALREADY_APPLIED if transaction was already executed
            ExecuteResult.REJECTED if validation failed or a hook refused
        """
        if pending.is_empty():
            return ExecuteResult.APPLIED

        if pending.intent_id in self.seen_intent_ids:
            if self.verbose:
                print(f"ALREADY_APPLIED: intent_id={pending.intent_id}")
            return ExecuteResult.ALREADY_APPLIED

        valid, reason = self._validate_pending(pending)
        if not valid:
            return self._reject(reason)

        snapshot = self._snapshot()

        sequence = self._next_sequence
        self._next_sequence += 1
        tx = Transaction(
            moves=pending.moves,
            state_changes=pending.state_changes,
            origin=pending.origin,
            timestamp=pending.timestamp,
            intent_id=pending.intent_id,
            exec_id=self._generate_exec_id(sequence),
            ledger_name=self.name,
            execution_time=self._current_time,
            sequence_number=sequence,
        )

        self._execute_moves(tx.moves)

        # Since Unit is frozen, we create new Unit instances with updated state
        for sc in tx.state_changes:
            old_unit = self.units[sc.unit]
            new_state = copy.deepcopy(sc.new_state if isinstance(sc.new_state, dict) else {})
            self.units[sc.unit] = replace(old_unit, _frozen_state=_freeze_state(new_state))

        self.transaction_log.append(tx)
        self.seen_intent_ids.add(pending.intent_id)

        for move in tx.moves:
            hook = self.receive_hooks.get(move.dest)
            if hook is None:
                continue
            try:
                hook(self, move)
            except Exception as exc:
                self._restore(snapshot)
                return self._reject(f"receive hook of {move.dest} refused {move!r}: {exc!r}")

        self.last_rejection = None
        if self.verbose:
            self._print_tx_result(tx, "APPLIED", "✓")
        return ExecuteResult.APPLIED

    def _print_tx_result(self, tx: Transaction, result: str, icon: str) -> None:
        """Print transaction details (Transaction.__repr__) followed by a result line."""
        lines = repr(tx).split('\n')
        w = 100
        bar = "─" * w

        def pad(text: str) -> str:
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))
        lines[-1] = f"├{bar}┤"
        lines.append(f"│{pad(' ' + icon + ' ' + result)}│")
        lines.append(f"└{bar}┘")
        print("\n".join(lines))

    def _validate_pending(self, pending: PendingTransaction) -> Tuple[bool, str]:
        """
        Validate pending transaction against all constraints.

        Checks performed:
        1. Timestamp validation (transaction must not be from the future)
        2. Unit and wallet registration
        3. Balance constraint validation (min/max balance limits)
        4. State changes target registered units and their old_state is current

        Returns:
            Tuple of (success: bool, reason: str)
        """
        if pending.timestamp > self._current_time:
            return False, "future timestamp"

        for move in pending.moves:
            if move.unit_symbol not in self.units:
                return False, f"unit not registered: {move.unit_symbol}"
            if not self.is_registered(move.source):
                return False, f"wallet not registered: {move.source}"
            if not self.is_registered(move.dest):
                return False, f"wallet not registered: {move.dest}"

        net: Dict[Tuple[str, str], int] = defaultdict(int)
        for move in pending.moves:
            net[(move.source, move.unit_symbol)] -= move.quantity
            net[(move.dest, move.unit_symbol)] += move.quantity

        # SYSTEM_WALLET is exempt from balance validation (mint / burn)
        for (wallet, unit_sym), delta in net.items():
            if wallet == SYSTEM_WALLET:
                continue
            unit = self.units[unit_sym]
            proposed = self.balances[wallet][unit_sym] + delta
            if proposed < unit.min_balance:
                return False, f"{wallet} {unit_sym}: {proposed} < min {unit.min_balance}"
            if unit.max_balance is not None and proposed > unit.max_balance:
                return False, f"{wallet} {unit_sym}: {proposed} > max {unit.max_balance}"

        # Optimistic concurrency: the state a builder read must still be current
        for sc in pending.state_changes:
            if sc.unit not in self.units:
                return False, f"unit not registered: {sc.unit}"
            if sc.old_state is None:
                continue
            current_state = self.units[sc.unit].state
            old_state = sc.old_state if isinstance(sc.old_state, dict) else {}
            for key in set(old_state.keys()) | set(current_state.keys()):
                if old_state.get(key) != current_state.get(key):
                    return False, f"stale state for {sc.unit}.{key}"

        return True, ""

    def _update_position_index(self, wallet_id: str, unit_symbol: str, quantity: int) -> None:
        """Keep the inverted position index in sync; zero balances are dropped."""
        if quantity != 0:
            self._positions_by_unit[unit_symbol][wallet_id] = quantity
        else:
            self._positions_by_unit[unit_symbol].pop(wallet_id, None)

    def _execute_moves(self, moves) -> None:
        """Apply all moves to wallet balances and update the position index."""
        for move in moves:
            new_src_balance = self.balances[move.source][move.unit_symbol] - move.quantity
            self.balances[move.source][move.unit_symbol] = new_src_balance
            self._update_position_index(move.source, move.unit_symbol, new_src_balance)
            new_dst_balance = self.balances[move.dest][move.unit_symbol] + move.quantity
            self.balances[move.dest][move.unit_symbol] = new_dst_balance
            self._update_position_index(move.dest, move.unit_symbol, new_dst_balance)
