"""
Core types and pure functions for the stipend vault system.

This module provides the foundational data structures and protocols:
1. Protocols: LedgerView for read-only ledger access
2. Immutable data structures: Move, PendingTransaction, Transaction, Unit
3. Exceptions: LedgerError, VaultError and their domain-specific subclasses
4. Type aliases: Positions, BalanceMap, UnitState
5. Fixed-point constants shared by the vault, the oracle client and the escrow
6. Unit factories: Functions to create the base asset and share units

All quantities are integers in the smallest indivisible unit of their asset
(wei-style). All functions in this module are pure and operate on read-only
views. No function can mutate ledger state directly.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_EVEN, getcontext
from enum import Enum
import copy
import hashlib
from typing import (
    Dict, List, Set, Optional, Any, Protocol,
    Tuple, FrozenSet, runtime_checkable,
)


# ============================================================================
# DECIMAL CONTEXT CONFIGURATION
# ============================================================================
#
# Price feeds quote Decimal USD prices which are converted to USD-E8 integers.
# The global context is configured once at module load time so that the
# conversion is deterministic.
#
# PRECONDITION: No other code should modify the global Decimal context.
#
_STIPEND_DECIMAL_CONTEXT = getcontext()
_STIPEND_DECIMAL_CONTEXT.prec = 50
_STIPEND_DECIMAL_CONTEXT.rounding = ROUND_HALF_EVEN


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for issuance and redemption (mint / burn).
# The system wallet is exempt from balance validation and can hold any balance.
SYSTEM_WALLET = "system"

UNIT_TYPE_NATIVE = "NATIVE"
UNIT_TYPE_TOKEN = "TOKEN"
UNIT_TYPE_VAULT_SHARE = "VAULT_SHARE"

# Fixed-point scales.
WAD = 10 ** 18           # base asset native precision (18 decimals)
PRICE_DECIMALS = 8
PRICE_SCALE = 10 ** PRICE_DECIMALS   # USD-E8
SCALE = 10_000           # basis points denominator

# Vault parameters.
WITHDRAW_DELAY = timedelta(days=30)
PAY_FACTOR = 200         # 2% of SCALE
EMERGENCY_CUT = 2_000    # 20% of SCALE
MIN_EMERGENCY_DELAY = timedelta(days=14)
MIN_DEPOSIT = 10 ** 16   # 0.01 whole units


# ============================================================================
# TYPE ALIASES
# ============================================================================

# Mapping from wallet ID to quantity held by that wallet for a specific unit.
Positions = Dict[str, int]

# Mapping from unit symbol to quantity held in a single wallet.
BalanceMap = Dict[str, int]

# Internal state for a unit: term sheet data and contract state.
UnitState = Dict[str, Any]


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class LedgerView(Protocol):
    """
    Read-only interface to ledger state.

    Vault builders, the escrow and the oracle client query ledger state through
    this protocol without the ability to modify it. The Ledger class implements
    it; for testing, FakeView provides a truly immutable implementation.
    """

    @property
    def current_time(self) -> datetime:
        """Return the current logical time of the ledger."""
        ...

    def get_balance(self, wallet_id: str, unit_symbol: str) -> int:
        """
        Return the balance of a specific unit in a wallet.

        Returns 0 if the wallet holds none of the unit.
        """
        ...

    def get_unit_state(self, unit_symbol: str) -> UnitState:
        """Return a copy of the unit's internal state."""
        ...

    def get_positions(self, unit_symbol: str) -> Positions:
        """Return all non-zero positions for a unit across all wallets."""
        ...

    def list_wallets(self) -> Set[str]:
        """Return the set of all registered wallet IDs."""
        ...

    def get_unit(self, symbol: str) -> 'Unit':
        """Return the Unit object for a given symbol."""
        ...


# ============================================================================
# ENUMS
# ============================================================================

class ExecuteResult(Enum):
    """
    Outcome of a transaction execution attempt.

    APPLIED: Transaction was validated and applied to the ledger.
    ALREADY_APPLIED: Transaction intent was previously processed (idempotent behavior).
    REJECTED: Transaction failed validation or a receive hook refused the credit.
    """
    APPLIED = "applied"
    ALREADY_APPLIED = "already_applied"
    REJECTED = "rejected"


class OriginType(Enum):
    """Classification of where a transaction originated."""
    USER_ACTION = "user_action"
    CONTRACT = "contract"
    ESCROW = "escrow"
    SYSTEM = "system"
    EXTERNAL = "external"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class LedgerError(Exception):
    """Base exception for all ledger-related errors."""
    pass


class InsufficientFunds(LedgerError):
    """Raised when a move would cause a wallet balance to fall below the unit's minimum."""
    pass


class BalanceConstraintViolation(LedgerError):
    """Raised when a move would cause a wallet balance to violate the unit's min/max constraints."""
    pass


class UnitNotRegistered(LedgerError):
    """Raised when attempting to operate on a unit that has not been registered with the ledger."""
    pass


class WalletNotRegistered(LedgerError):
    """Raised when attempting to operate on a wallet that has not been registered with the ledger."""
    pass


class VaultError(Exception):
    """Base exception for vault, escrow and oracle failures."""
    pass


class InvalidAmount(VaultError):
    """Zero, undersized or otherwise unusable amount."""
    pass


class ZeroAddress(VaultError):
    """Null wallet or asset identity where one is required."""
    pass


class EtherMismatch(VaultError):
    """Declared deposit amount differs from the value actually sent."""
    pass


class NotAvailable(VaultError):
    """A time gate is not yet satisfied, or there is nothing to act on."""
    pass


class TransferFailed(VaultError):
    """The underlying asset movement was rejected."""
    pass


class OracleError(VaultError):
    """The price feed is unusable (missing or non-positive price)."""
    pass


class InvalidEntry(VaultError):
    """Configuration value out of bounds."""
    pass


class NotAuthorized(VaultError):
    """Escrow release requested by someone other than the bound vault."""
    pass


class Failed(VaultError):
    """Escrow-internal transfer failure."""
    pass


class CantRenounceContract(VaultError):
    """The vault always needs a holder."""
    pass


class UnauthorizedAccount(VaultError):
    """Caller is not the holder (or not the pending holder on acceptance)."""
    pass


class ReentrantCall(VaultError):
    """A state-mutating entry point was re-entered during an in-flight call."""
    pass


# ============================================================================
# TRANSACTION ORIGIN
# ============================================================================

@dataclass(frozen=True, slots=True)
class TransactionOrigin:
    """
    Immutable record of a transaction's origin for audit purposes.

    Attributes:
        origin_type: Classification of the origin source
        source_id: Identifier of the specific source (vault wallet, escrow wallet, user ID)
        unit_symbol: Symbol of the unit that triggered this (if applicable)
        event_type: Specific event within the source (e.g., "DEPOSIT", "WITHDRAW")
    """
    origin_type: OriginType
    source_id: str
    unit_symbol: Optional[str] = None
    event_type: Optional[str] = None

    def __repr__(self) -> str:
        parts = [f"{self.origin_type.value}:{self.source_id}"]
        if self.unit_symbol:
            parts.append(f"unit={self.unit_symbol}")
        if self.event_type:
            parts.append(f"event={self.event_type}")
        return f"Origin({', '.join(parts)})"


# ============================================================================
# UNIT STATE CHANGE
# ============================================================================

@dataclass(frozen=True, slots=True)
class UnitStateChange:
    """
    Record of a unit state change for transaction logging and rollback.

    Stores complete before/after state snapshots. The ledger rejects a change
    whose old_state no longer matches the unit's current state.
    """
    unit: str
    old_state: Any
    new_state: Any

    def changed_fields(self) -> Dict[str, Tuple[Any, Any]]:
        """Return fields that differ between old and new state as (old, new) tuples."""
        old = self.old_state if isinstance(self.old_state, dict) else {}
        new = self.new_state if isinstance(self.new_state, dict) else {}
        changes = {}
        for key in set(old.keys()) | set(new.keys()):
            old_val = old.get(key)
            new_val = new.get(key)
            if old_val != new_val:
                changes[key] = (old_val, new_val)
        return changes


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of value between two wallets.

    Attributes:
        quantity: The amount to transfer, a positive integer in base units.
        unit_symbol: The symbol of the unit being transferred (e.g., "ETH", "VLT").
        source: The wallet ID from which value is debited.
        dest: The wallet ID to which value is credited.
        contract_id: Identifier of the operation generating this move.
        metadata: Optional additional information about the move.

    Minting is a move out of SYSTEM_WALLET, burning a move into it.
    """
    quantity: int
    unit_symbol: str
    source: str
    dest: str
    contract_id: str
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if not self.source or not self.source.strip():
            raise ValueError("Move source cannot be empty")
        if not self.dest or not self.dest.strip():
            raise ValueError("Move dest cannot be empty")
        if not self.unit_symbol or not self.unit_symbol.strip():
            raise ValueError("Move unit_symbol cannot be empty")
        if not self.contract_id or not self.contract_id.strip():
            raise ValueError("Move contract_id cannot be empty")
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(f"Move quantity must be int, got {type(self.quantity)}")
        if self.quantity <= 0:
            raise ValueError(f"Move quantity must be positive, got {self.quantity}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.unit_symbol}: {self.source}→{self.dest})"


def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Deterministic regardless of dict insertion order or nesting depth.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, datetime):
        return f"T:{value.isoformat()}"
    if isinstance(value, timedelta):
        return f"D:{value.days}:{value.seconds}:{value.microseconds}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        serialized = ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items)
        return f"{{{serialized}}}"
    if isinstance(value, (list, tuple)):
        serialized = ",".join(_canonicalize(item) for item in value)
        return f"[{serialized}]"
    return f"R:{repr(value)}"


def _compute_intent_id(
    moves: Tuple[Move, ...],
    state_changes: Tuple[UnitStateChange, ...],
    origin: TransactionOrigin,
) -> str:
    """
    Compute a deterministic content hash for a transaction's intent.

    Based solely on the semantic content of the transaction, never on
    timestamps or ledger-specific data. Used for idempotency checking.
    """
    sorted_moves = tuple(sorted(
        moves,
        key=lambda m: (m.quantity, m.unit_symbol, m.source, m.dest, m.contract_id)
    ))

    content_parts = [f"origin:{origin.origin_type.value}:{origin.source_id}"]
    if origin.unit_symbol:
        content_parts.append(f"unit:{origin.unit_symbol}")
    if origin.event_type:
        content_parts.append(f"event:{origin.event_type}")

    for m in sorted_moves:
        content_parts.append(f"move:{m.quantity}|{m.unit_symbol}|{m.source}|{m.dest}|{m.contract_id}")

    for sc in sorted(state_changes, key=lambda s: s.unit):
        old_canonical = _canonicalize(sc.old_state)
        new_canonical = _canonicalize(sc.new_state)
        content_parts.append(f"state_change:{sc.unit}|{old_canonical}|{new_canonical}")

    content = "|".join(content_parts)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


@dataclass(frozen=True, slots=True)
class PendingTransaction:
    """
    A transaction specification before execution - represents INTENT.

    Created by vault and escrow builders and submitted to the ledger.

    Lifecycle:
    1. Builder creates PendingTransaction with moves, state_changes, origin, timestamp
    2. intent_id is auto-computed from content (deterministic hash)
    3. Ledger.execute() validates and executes, creating a Transaction record
    """
    moves: Tuple[Move, ...]
    state_changes: Tuple[UnitStateChange, ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str = field(default="")

    def __post_init__(self):
        if not self.intent_id:
            computed_id = _compute_intent_id(self.moves, self.state_changes, self.origin)
            object.__setattr__(self, 'intent_id', computed_id)

    def is_empty(self) -> bool:
        """Return True if this pending transaction has no moves and no state deltas."""
        return not self.moves and not self.state_changes

    def __repr__(self) -> str:
        return f"PendingTransaction({len(self.moves)} moves, {len(self.state_changes)} deltas, {self.origin})"


def build_transaction(
    view: LedgerView,
    moves: List[Move],
    state_changes: Optional[List[UnitStateChange]] = None,
    origin: Optional[TransactionOrigin] = None,
) -> PendingTransaction:
    """
    Build a PendingTransaction from moves and state deltas.

    Args:
        view: Read-only ledger view (provides current_time)
        moves: List of moves to include in the transaction
        state_changes: Optional list of UnitStateChange objects
        origin: Transaction origin (defaults to CONTRACT origin)

    Returns:
        A PendingTransaction ready for execution

    Example:
        def compute_payment(view, symbol, holder, amount):
            moves = [Move(amount, "ETH", "vault", holder, "payout")]
            old_state = view.get_unit_state(symbol)
            new_state = {**old_state, "deployed": old_state["deployed"] - amount}
            changes = [UnitStateChange(unit=symbol, old_state=old_state, new_state=new_state)]
            return build_transaction(view, moves, changes)
    """
    if origin is None:
        origin = TransactionOrigin(
            origin_type=OriginType.CONTRACT,
            source_id="contract",
        )

    # Deep copy state changes to prevent mutation
    copied_changes: Tuple[UnitStateChange, ...] = ()
    if state_changes:
        copied_changes = tuple(
            UnitStateChange(
                unit=sc.unit,
                old_state=copy.deepcopy(sc.old_state),
                new_state=copy.deepcopy(sc.new_state),
            )
            for sc in state_changes
        )

    return PendingTransaction(
        moves=tuple(moves),
        state_changes=copied_changes,
        origin=origin,
        timestamp=view.current_time,
    )


def empty_pending_transaction(view: LedgerView) -> PendingTransaction:
    """Create an empty PendingTransaction (no moves, no state changes)."""
    return PendingTransaction(
        moves=(),
        state_changes=(),
        origin=TransactionOrigin(OriginType.CONTRACT, "noop"),
        timestamp=view.current_time,
    )


@dataclass(frozen=True, slots=True)
class Transaction:
    """
    An executed, immutable record of ledger state changes - represents FACT.

    Attributes:
        moves: Tuple of value transfers between wallets
        state_changes: Tuple of unit state changes (with old_state and new_state)
        origin: Who/what created this transaction and why
        timestamp: When the PendingTransaction was created
        intent_id: Content hash from PendingTransaction (for idempotency)
        exec_id: Unique execution identifier (ledger + sequence + time)
        ledger_name: Name of the ledger that executed this
        execution_time: When this was executed and logged
        sequence_number: Monotonic sequence within the ledger
        contract_ids: Set of contract IDs from moves (auto-populated)
    """
    moves: Tuple[Move, ...]
    state_changes: Tuple[UnitStateChange, ...]
    origin: TransactionOrigin
    timestamp: datetime
    intent_id: str
    exec_id: str
    ledger_name: str
    execution_time: datetime
    sequence_number: int
    contract_ids: FrozenSet[str] = None

    def __post_init__(self):
        if not self.moves and not self.state_changes:
            raise ValueError("Transaction must have moves or state_changes")
        if self.contract_ids is None:
            object.__setattr__(
                self, 'contract_ids',
                frozenset(m.contract_id for m in self.moves)
            )

    def __repr__(self) -> str:
        w = 100  # Inner content width
        bar = "─" * w

        def pad(text: str) -> str:
            """Pad or truncate text to exactly w characters."""
            if len(text) > w:
                return text[:w-3] + "..."
            return text + " " * (w - len(text))

        lines = [
            "",
            f"┌{bar}┐",
            f"│{pad(' Transaction: ' + self.exec_id)}│",
            f"├{bar}┤",
            f"│{pad('   intent_id      : ' + self.intent_id)}│",
            f"│{pad('   timestamp      : ' + str(self.timestamp))}│",
            f"│{pad('   ledger_name    : ' + self.ledger_name)}│",
            f"│{pad('   execution_time : ' + str(self.execution_time))}│",
            f"│{pad('   sequence       : ' + str(self.sequence_number))}│",
            f"│{pad('   origin         : ' + str(self.origin))}│",
        ]
        lines.append(f"├{bar}┤")
        lines.append(f"│{pad(' Moves (' + str(len(self.moves)) + '):')}│")
        for i, move in enumerate(self.moves):
            move_str = f"   [{i}] {move.quantity} {move.unit_symbol}: {move.source} → {move.dest}"
            lines.append(f"│{pad(move_str)}│")
        if self.state_changes:
            lines.append(f"├{bar}┤")
            lines.append(f"│{pad(' State Changes (' + str(len(self.state_changes)) + '):')}│")
            for sc in self.state_changes:
                lines.append(f"│{pad('   [' + sc.unit + ']')}│")
                for field_name, (old_val, new_val) in sc.changed_fields().items():
                    lines.append(f"│{pad(f'      {field_name}: {old_val!r} → {new_val!r}')}│")
        lines.append(f"└{bar}┘")
        return "\n".join(lines)


def _freeze_state(state: Optional[UnitState]) -> Tuple[Tuple[str, Any], ...]:
    """Convert a mutable state dict to a frozen tuple of (key, value) pairs, sorted by key."""
    if not state:
        return ()
    return tuple(sorted(state.items()))


def _thaw_state(frozen_state: Tuple[Tuple[str, Any], ...]) -> UnitState:
    """Convert a frozen state representation back to a mutable dict."""
    return dict(frozen_state)


@dataclass(frozen=True, slots=True)
class Unit:
    """
    Definition of a unit (asset type) in the ledger.

    Attributes:
        symbol: Short identifier for the unit (e.g., "ETH", "VLT").
        name: Human-readable name for the unit.
        unit_type: Category of the unit (NATIVE, TOKEN, VAULT_SHARE).
        decimals: Number of decimals of one whole unit (display only).
        min_balance: Minimum allowed balance in any non-system wallet.
        max_balance: Maximum allowed balance in any non-system wallet (None = unbounded).
        _frozen_state: Internal frozen state representation (tuple of key-value pairs).
    """
    symbol: str
    name: str
    unit_type: str
    decimals: int = 18
    min_balance: int = 0
    max_balance: Optional[int] = None
    _frozen_state: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    @property
    def state(self) -> UnitState:
        """Get the unit's state as a new mutable dictionary."""
        return _thaw_state(self._frozen_state)

    def format(self, quantity: int) -> str:
        """Render a base-unit quantity in whole units, e.g. 1500000000000000000 -> '1.5 ETH'."""
        whole, frac = divmod(abs(quantity), 10 ** self.decimals)
        sign = "-" if quantity < 0 else ""
        if not frac:
            return f"{sign}{whole} {self.symbol}"
        digits = str(frac).rjust(self.decimals, "0").rstrip("0")
        return f"{sign}{whole}.{digits} {self.symbol}"


# ============================================================================
# UNIT FACTORIES
# ============================================================================

def native_asset(symbol: str, name: str, decimals: int = 18) -> Unit:
    """
    Create the base (native) asset unit, e.g. ETH.

    Balances may never go negative outside the system wallet, which is the
    issuer of all native supply.
    """
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_NATIVE,
        decimals=decimals,
        _frozen_state=_freeze_state({'issuer': SYSTEM_WALLET}),
    )


def token(symbol: str, name: str, decimals: int = 18) -> Unit:
    """Create a plain fungible token unit (a foreign asset from the vault's point of view)."""
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_TOKEN,
        decimals=decimals,
        _frozen_state=_freeze_state({'issuer': SYSTEM_WALLET}),
    )
