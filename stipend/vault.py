"""
vault.py - Stipend vault: deposits, monthly USD-denominated payouts, catch-up,
emergency withdrawal and two-step ownership handoff.

ARCHITECTURE (Pure Function Pattern):
=====================================

1. FROZEN DATACLASSES (explicit inputs):
   - VaultTerms: Immutable parameters (set at deployment, never change)
   - VaultState: Immutable state snapshot (changes with every operation)
   - Stable / PendingTransfer: the ownership state machine

2. PURE CALCULATION FUNCTIONS (calculate_*):
   - Integer fixed-point arithmetic, multiply before divide
   - No LedgerView, no hidden state

3. ADAPTER FUNCTIONS (load_vault / to_state_dict):
   - The vault state lives in the ledger as the share unit's state
   - load_vault() is the ONLY place that turns a LedgerView read into typed state

4. BUILDERS (compute_*):
   - Take (view, symbol, caller, ...) and return a PendingTransaction that moves
     assets and shares and records the new state in one atomic unit
   - Perform every authorization and time-gate check; raise VaultError subclasses

5. SHELL (Vault):
   - Re-entrancy guard, ledger savepoint, oracle access, escrow coordination,
     TransferFailed on rejection, events

Key Formulas:
    payout_increment = amount * price * PAY_FACTOR // SCALE // WAD      (USD-E8)
    amount_to_pay    = monthly_pay_usd_e8 * WAD // price                (asset units)
    factor           = amount * SCALE // deployed
    obligation_cut   = monthly_pay_usd_e8 * factor // SCALE
    emergency_avail  = balance * EMERGENCY_CUT // SCALE
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import asdict, dataclass, fields, replace
from datetime import datetime, timedelta
from typing import Callable, Iterator, List, Optional, Tuple, Union

from .core import (
    LedgerView, Move, PendingTransaction, Unit, UnitState, UnitStateChange,
    ExecuteResult, OriginType, TransactionOrigin,
    SYSTEM_WALLET, UNIT_TYPE_VAULT_SHARE,
    WAD, SCALE, WITHDRAW_DELAY, PAY_FACTOR, EMERGENCY_CUT,
    MIN_EMERGENCY_DELAY, MIN_DEPOSIT,
    InvalidAmount, ZeroAddress, EtherMismatch, NotAvailable, TransferFailed,
    InvalidEntry, CantRenounceContract, UnauthorizedAccount, ReentrantCall,
    WalletNotRegistered,
    build_transaction, _freeze_state,
)
from .escrow import Escrow
from .events import (
    EventListener, EventLog, VaultEvent,
    Deposit, Withdraw, ForeignTransfer, DelayUpdated,
    OwnershipTransferStarted, OwnershipTransferred,
)
from .ledger import Ledger
from .oracle import OracleClient


# Zero-argument price query (USD-E8); only called once a call is past its gates
PriceQuote = Callable[[], int]


# ============================================================================
# FROZEN DATACLASSES - Explicit Inputs for Pure Functions
# ============================================================================

@dataclass(frozen=True, slots=True)
class VaultTerms:
    """
    Immutable vault parameters - set at deployment, never change.

    Fractions are expressed in parts of SCALE (10 000 = 100%).
    """
    asset_symbol: str = "ETH"
    vault_wallet: str = "vault"
    escrow_wallet: str = "vault_escrow"
    withdraw_delay: timedelta = WITHDRAW_DELAY
    pay_factor: int = PAY_FACTOR
    emergency_cut: int = EMERGENCY_CUT
    min_emergency_delay: timedelta = MIN_EMERGENCY_DELAY
    min_deposit: int = MIN_DEPOSIT

    def __post_init__(self):
        if not self.asset_symbol or not self.asset_symbol.strip():
            raise ValueError("asset_symbol cannot be empty")
        if not self.vault_wallet or not self.escrow_wallet:
            raise ValueError("vault_wallet and escrow_wallet cannot be empty")
        if self.vault_wallet == self.escrow_wallet:
            raise ValueError("vault_wallet and escrow_wallet must be different")
        if SYSTEM_WALLET in (self.vault_wallet, self.escrow_wallet):
            raise ValueError(f"{SYSTEM_WALLET} is reserved")
        if self.withdraw_delay <= timedelta(0):
            raise ValueError(f"withdraw_delay must be positive, got {self.withdraw_delay}")
        if self.min_emergency_delay <= timedelta(0):
            raise ValueError(f"min_emergency_delay must be positive, got {self.min_emergency_delay}")
        if not 0 < self.pay_factor <= SCALE:
            raise ValueError(f"pay_factor must be in (0, {SCALE}], got {self.pay_factor}")
        if not 0 < self.emergency_cut <= SCALE:
            raise ValueError(f"emergency_cut must be in (0, {SCALE}], got {self.emergency_cut}")
        if self.min_deposit <= 0:
            raise ValueError(f"min_deposit must be positive, got {self.min_deposit}")


@dataclass(frozen=True, slots=True)
class Stable:
    """Ownership at rest: one accountable holder."""
    holder: str


@dataclass(frozen=True, slots=True)
class PendingTransfer:
    """Handoff initiated: holder's shares are in escrow until candidate accepts."""
    holder: str
    candidate: str


Ownership = Union[Stable, PendingTransfer]


@dataclass(frozen=True, slots=True)
class VaultState:
    """
    Immutable snapshot of the vault at a point in time.

    Each operation produces a NEW instance (value semantics). Together with
    VaultTerms this is every input any vault calculation needs.
    """
    holder: str
    deployed: int                   # asset units backing the obligation == shares outstanding
    withdraw_timer: datetime        # last ordinary withdrawal (or creation)
    catch_up_timer: timedelta       # banked lateness redeemable as extra withdrawals
    emergency_timer: datetime       # last emergency withdrawal (or creation)
    emergency_delay: timedelta      # >= terms.min_emergency_delay
    monthly_pay_usd_e8: int         # accrued obligation per payout, USD-E8
    pending_holder: Optional[str] = None
    nonce: int = 0                  # bumped on every mutation

    @property
    def ownership(self) -> Ownership:
        if self.pending_holder is None:
            return Stable(self.holder)
        return PendingTransfer(self.holder, self.pending_holder)


def initial_state(terms: VaultTerms, holder: str, created_at: datetime) -> VaultState:
    """State of a freshly deployed vault: all timers at creation, delay at its floor."""
    return VaultState(
        holder=holder,
        deployed=0,
        withdraw_timer=created_at,
        catch_up_timer=timedelta(0),
        emergency_timer=created_at,
        emergency_delay=terms.min_emergency_delay,
        monthly_pay_usd_e8=0,
    )


# ============================================================================
# ADAPTER FUNCTIONS - LedgerView <-> typed state
# ============================================================================

def to_state_dict(terms: VaultTerms, state: VaultState) -> UnitState:
    """Flatten terms and state into the share unit's state dictionary."""
    return {'unit_type': UNIT_TYPE_VAULT_SHARE, **asdict(terms), **asdict(state)}


def load_vault(view: LedgerView, symbol: str) -> Tuple[VaultTerms, VaultState]:
    """
    Load a vault's terms and state from the ledger.

    Raises:
        ValueError: If symbol is not a vault share unit
    """
    data = view.get_unit_state(symbol)
    if data.get('unit_type') != UNIT_TYPE_VAULT_SHARE:
        raise ValueError(f"{symbol} is not a vault share unit")
    terms = VaultTerms(**{f.name: data[f.name] for f in fields(VaultTerms)})
    state = VaultState(**{f.name: data[f.name] for f in fields(VaultState)})
    return terms, state


def create_vault_unit(
    symbol: str,
    name: str,
    terms: VaultTerms,
    holder: str,
    created_at: datetime,
) -> Unit:
    """
    Create the vault's share unit, carrying the vault terms and initial state.

    Shares are minted 1:1 against deposits and burnt 1:1 against payouts;
    non-system balances can never go negative.
    """
    if not symbol or not symbol.strip():
        raise ValueError("symbol cannot be empty")
    if symbol == terms.asset_symbol:
        raise ValueError("share symbol must differ from the asset symbol")
    if not holder:
        raise ZeroAddress("vault holder cannot be empty")
    return Unit(
        symbol=symbol,
        name=name,
        unit_type=UNIT_TYPE_VAULT_SHARE,
        decimals=18,
        _frozen_state=_freeze_state(to_state_dict(terms, initial_state(terms, holder, created_at))),
    )


# ============================================================================
# PURE CALCULATION FUNCTIONS
# ============================================================================

def calculate_payout_increment(amount: int, price: int, pay_factor: int = PAY_FACTOR) -> int:
    """USD-E8 obligation added by a deposit of `amount` at `price` (USD-E8)."""
    return amount * price * pay_factor // SCALE // WAD


def calculate_amount_to_pay(monthly_pay_usd_e8: int, price: int) -> int:
    """
    Re-price the fixed USD obligation into asset units at the current price.

    A higher price pays fewer asset units, a lower price more, so the USD value
    of every payout stays constant.
    """
    if price <= 0:
        raise ValueError(f"price must be positive, got {price}")
    return monthly_pay_usd_e8 * WAD // price


def calculate_proportional_cut(monthly_pay_usd_e8: int, amount: int, deployed: int) -> int:
    """Part of the obligation backed by `amount` out of `deployed` capital."""
    if amount == 0:
        return 0
    factor = amount * SCALE // deployed
    return monthly_pay_usd_e8 * factor // SCALE


def calculate_emergency_available(balance: int, emergency_cut: int = EMERGENCY_CUT) -> int:
    """Most that one emergency withdrawal may take from a vault balance."""
    return balance * emergency_cut // SCALE


def calculate_emergency_obligation_cut(
    monthly_pay_usd_e8: int,
    amount: int,
    available: int,
    deployed: int,
    emergency_cut: int = EMERGENCY_CUT,
) -> int:
    """
    Obligation removed by an emergency withdrawal of `amount`.

    Taking everything available cuts exactly `emergency_cut` of the obligation;
    taking less cuts it pro rata to the deployed capital removed. The two
    branches give different results after repeated partial draws.
    """
    if amount == available:
        return monthly_pay_usd_e8 * emergency_cut // SCALE
    return calculate_proportional_cut(monthly_pay_usd_e8, amount, deployed)


def calculate_withdraw_window(terms: VaultTerms, state: VaultState, now: datetime) -> VaultState:
    """
    Open the ordinary withdrawal window.

    Requires now strictly after withdraw_timer + withdraw_delay. Any lateness
    past that deadline is banked in catch_up_timer.

    Raises:
        NotAvailable: If the deadline has not passed
    """
    deadline = state.withdraw_timer + terms.withdraw_delay
    if now <= deadline:
        raise NotAvailable(f"next withdrawal after {deadline}")
    return replace(
        state,
        catch_up_timer=state.catch_up_timer + (now - deadline),
        withdraw_timer=now,
    )


def calculate_catch_up_window(terms: VaultTerms, state: VaultState) -> VaultState:
    """
    Redeem one withdrawal period of banked lateness.

    Raises:
        NotAvailable: If catch_up_timer is not strictly above one period
    """
    if state.catch_up_timer <= terms.withdraw_delay:
        raise NotAvailable(
            f"catch-up needs more than {terms.withdraw_delay} banked, have {state.catch_up_timer}"
        )
    return replace(state, catch_up_timer=state.catch_up_timer - terms.withdraw_delay)


def calculate_payout(state: VaultState, amount: int) -> VaultState:
    """
    Consume `amount` of deployed capital and the obligation it backs.

    Raises:
        NotAvailable: If amount exceeds the deployed capital
    """
    if amount > state.deployed:
        raise NotAvailable(f"payout {amount} exceeds deployed capital {state.deployed}")
    cut = calculate_proportional_cut(state.monthly_pay_usd_e8, amount, state.deployed)
    return replace(
        state,
        deployed=state.deployed - amount,
        monthly_pay_usd_e8=state.monthly_pay_usd_e8 - cut,
    )


# ============================================================================
# BUILDERS - authorization, gates and PendingTransaction assembly
# ============================================================================

def _require_holder(state: VaultState, caller: str) -> None:
    if caller != state.holder:
        raise UnauthorizedAccount(f"{caller} is not the vault holder")


def _reject_reserved(terms: VaultTerms, wallet: str, role: str) -> None:
    if wallet in (terms.vault_wallet, terms.escrow_wallet, SYSTEM_WALLET):
        raise InvalidEntry(f"{wallet} cannot {role}")


def _emergency_gate(state: VaultState) -> datetime:
    """Emergency withdrawals open strictly after this instant; datetime.max when never."""
    try:
        return state.emergency_timer + state.emergency_delay
    except OverflowError:
        return datetime.max


def _state_transition(
    view: LedgerView,
    symbol: str,
    old: UnitState,
    terms: VaultTerms,
    new_state: VaultState,
    moves: List[Move],
    event_type: str,
) -> PendingTransaction:
    new = to_state_dict(terms, replace(new_state, nonce=new_state.nonce + 1))
    return build_transaction(
        view,
        moves,
        [UnitStateChange(unit=symbol, old_state=old, new_state=new)],
        origin=TransactionOrigin(
            OriginType.CONTRACT, terms.vault_wallet,
            unit_symbol=symbol, event_type=event_type,
        ),
    )


def _payout_moves(terms: VaultTerms, symbol: str, holder: str, amount: int, event_type: str) -> List[Move]:
    """Burn `amount` shares from the holder and pay out the same amount of asset."""
    if amount == 0:
        return []
    tag = event_type.lower()
    return [
        Move(amount, symbol, holder, SYSTEM_WALLET, f"{tag}_burn_{symbol}"),
        Move(amount, terms.asset_symbol, terms.vault_wallet, holder, f"{tag}_pay_{symbol}"),
    ]


def compute_deposit(
    view: LedgerView,
    symbol: str,
    caller: str,
    amount: int,
    value: int,
    quote: PriceQuote,
) -> PendingTransaction:
    """
    Accept a deposit from any caller on behalf of the current holder.

    Args:
        view: Read-only ledger access
        symbol: Vault share symbol
        caller: Wallet paying the deposit
        amount: Declared deposit in asset units
        value: Asset units actually sent with the call
        quote: Price query, called once the deposit is accepted

    Returns:
        PendingTransaction moving `value` asset from caller to the vault,
        minting `amount` shares to the holder and recording the new obligation.

    Raises:
        InvalidEntry: If caller is the vault, its escrow or the system wallet
        InvalidAmount: If amount is zero or below terms.min_deposit
        EtherMismatch: If value differs from amount
        OracleError: If the price is unusable
    """
    old = view.get_unit_state(symbol)
    terms, state = load_vault(view, symbol)

    _reject_reserved(terms, caller, "deposit")
    if amount <= 0 or amount < terms.min_deposit:
        raise InvalidAmount(f"deposit must be at least {terms.min_deposit}, got {amount}")
    if value != amount:
        raise EtherMismatch(f"declared {amount} but sent {value}")

    price = quote()
    increment = calculate_payout_increment(amount, price, terms.pay_factor)
    new_state = replace(
        state,
        deployed=state.deployed + amount,
        monthly_pay_usd_e8=state.monthly_pay_usd_e8 + increment,
    )
    moves = [
        Move(value, terms.asset_symbol, caller, terms.vault_wallet, f"deposit_pay_{symbol}"),
        Move(amount, symbol, SYSTEM_WALLET, state.holder, f"deposit_mint_{symbol}"),
    ]
    return _state_transition(view, symbol, old, terms, new_state, moves, "DEPOSIT")


def compute_withdraw(
    view: LedgerView,
    symbol: str,
    caller: str,
    quote: PriceQuote,
) -> PendingTransaction:
    """
    Ordinary monthly withdrawal.

    Returns:
        PendingTransaction that advances withdraw_timer to now, banks any
        lateness in catch_up_timer, burns the payout in shares and pays it in
        asset units to the holder.

    Raises:
        UnauthorizedAccount: If caller is not the holder
        NotAvailable: If the withdrawal deadline has not passed, or the payout
                      exceeds the deployed capital
        OracleError: If the price is unusable
    """
    old = view.get_unit_state(symbol)
    terms, state = load_vault(view, symbol)
    _require_holder(state, caller)

    opened = calculate_withdraw_window(terms, state, view.current_time)
    return _compute_payout(view, symbol, old, terms, opened, quote, "WITHDRAW")


def compute_withdraw_catch_up(
    view: LedgerView,
    symbol: str,
    caller: str,
    quote: PriceQuote,
) -> PendingTransaction:
    """
    Extra withdrawal paid out of banked lateness; withdraw_timer is untouched.

    Raises:
        UnauthorizedAccount: If caller is not the holder
        NotAvailable: If catch_up_timer is not above one withdrawal period
        OracleError: If the price is unusable
    """
    old = view.get_unit_state(symbol)
    terms, state = load_vault(view, symbol)
    _require_holder(state, caller)

    opened = calculate_catch_up_window(terms, state)
    return _compute_payout(view, symbol, old, terms, opened, quote, "CATCH_UP")


def _compute_payout(
    view: LedgerView,
    symbol: str,
    old: UnitState,
    terms: VaultTerms,
    state: VaultState,
    quote: PriceQuote,
    event_type: str,
) -> PendingTransaction:
    price = quote()
    amount = calculate_amount_to_pay(state.monthly_pay_usd_e8, price)
    new_state = calculate_payout(state, amount)
    moves = _payout_moves(terms, symbol, state.holder, amount, event_type)
    return _state_transition(view, symbol, old, terms, new_state, moves, event_type)


def compute_emergency_withdraw(
    view: LedgerView,
    symbol: str,
    caller: str,
    requested_amount: int,
) -> PendingTransaction:
    """
    Emergency extraction of up to EMERGENCY_CUT of the vault's asset balance.

    The requested amount is clamped to what is available. Taking all of it
    cuts the obligation by exactly the emergency fraction; taking less cuts it
    by the fraction of deployed capital removed.

    Raises:
        UnauthorizedAccount: If caller is not the holder
        InvalidAmount: If requested_amount is not positive
        NotAvailable: If the emergency delay has not passed, the vault holds
                      nothing to extract, or the amount exceeds deployed capital
    """
    old = view.get_unit_state(symbol)
    terms, state = load_vault(view, symbol)
    _require_holder(state, caller)

    if requested_amount <= 0:
        raise InvalidAmount(f"emergency amount must be positive, got {requested_amount}")

    now = view.current_time
    gate = _emergency_gate(state)
    if now <= gate:
        raise NotAvailable(f"next emergency withdrawal after {gate}")

    balance = view.get_balance(terms.vault_wallet, terms.asset_symbol)
    if balance <= 0:
        raise NotAvailable("vault holds no asset")
    available = calculate_emergency_available(balance, terms.emergency_cut)
    if available == 0:
        raise NotAvailable(f"vault balance {balance} too small for an emergency withdrawal")

    amount = min(requested_amount, available)
    if amount > state.deployed:
        raise NotAvailable(f"emergency amount {amount} exceeds deployed capital {state.deployed}")

    cut = calculate_emergency_obligation_cut(
        state.monthly_pay_usd_e8, amount, available, state.deployed, terms.emergency_cut
    )
    new_state = replace(
        state,
        emergency_timer=now,
        monthly_pay_usd_e8=state.monthly_pay_usd_e8 - cut,
        deployed=state.deployed - amount,
    )
    moves = _payout_moves(terms, symbol, state.holder, amount, "EMERGENCY")
    return _state_transition(view, symbol, old, terms, new_state, moves, "EMERGENCY")


def compute_transfer_ownership(
    view: LedgerView,
    symbol: str,
    caller: str,
    new_holder: str,
) -> PendingTransaction:
    """
    Start a handoff: every share of the holder goes into escrow and new_holder
    becomes the pending candidate. Repeating it while pending replaces the
    candidate.

    Raises:
        UnauthorizedAccount: If caller is not the holder
        ZeroAddress: If new_holder is empty
        InvalidEntry: If new_holder is the vault, its escrow or the system wallet
        WalletNotRegistered: If new_holder is unknown to the ledger
    """
    old = view.get_unit_state(symbol)
    terms, state = load_vault(view, symbol)
    _require_holder(state, caller)

    if not new_holder:
        raise ZeroAddress("new holder cannot be empty")
    _reject_reserved(terms, new_holder, "hold the vault")
    if new_holder not in view.list_wallets():
        raise WalletNotRegistered(f"Wallet {new_holder} not registered")

    units = view.get_balance(state.holder, symbol)
    moves = []
    if units > 0:
        moves.append(Move(units, symbol, state.holder, terms.escrow_wallet, f"handoff_escrow_{symbol}"))
    new_state = replace(state, pending_holder=new_holder)
    return _state_transition(view, symbol, old, terms, new_state, moves, "TRANSFER_OWNERSHIP")


def compute_accept_ownership(view: LedgerView, symbol: str, caller: str) -> PendingTransaction:
    """
    Finalize a handoff; only the pending candidate may accept.

    Raises:
        UnauthorizedAccount: If no handoff is pending or caller is not the candidate
    """
    old = view.get_unit_state(symbol)
    terms, state = load_vault(view, symbol)

    ownership = state.ownership
    if not isinstance(ownership, PendingTransfer) or caller != ownership.candidate:
        raise UnauthorizedAccount(f"{caller} is not the pending holder")
    new_state = replace(state, holder=ownership.candidate, pending_holder=None)
    return _state_transition(view, symbol, old, terms, new_state, [], "ACCEPT_OWNERSHIP")


def compute_emergency_delay_update(
    view: LedgerView,
    symbol: str,
    caller: str,
    new_delay: timedelta,
) -> PendingTransaction:
    """
    Raises:
        UnauthorizedAccount: If caller is not the holder
        InvalidEntry: If new_delay is below terms.min_emergency_delay
    """
    old = view.get_unit_state(symbol)
    terms, state = load_vault(view, symbol)
    _require_holder(state, caller)

    if not isinstance(new_delay, timedelta) or new_delay < terms.min_emergency_delay:
        raise InvalidEntry(f"emergency delay must be at least {terms.min_emergency_delay}, got {new_delay}")
    new_state = replace(state, emergency_delay=new_delay)
    return _state_transition(view, symbol, old, terms, new_state, [], "DELAY_UPDATE")


def compute_sweep(
    view: LedgerView,
    symbol: str,
    caller: str,
    asset_symbol: str,
    to: str,
    amount: int,
) -> PendingTransaction:
    """
    Send a foreign asset that landed in the vault wallet to `to`.

    The base asset and the vault's own shares can never be swept.

    Raises:
        UnauthorizedAccount: If caller is not the holder
        ZeroAddress: If asset_symbol or to is empty
        InvalidAmount: If amount is not positive
        InvalidEntry: If asset_symbol is the base asset or the share unit
    """
    old = view.get_unit_state(symbol)
    terms, state = load_vault(view, symbol)
    _require_holder(state, caller)

    if not asset_symbol or not to:
        raise ZeroAddress("sweep needs an asset and a recipient")
    if amount <= 0:
        raise InvalidAmount(f"sweep amount must be positive, got {amount}")
    if asset_symbol in (terms.asset_symbol, symbol):
        raise InvalidEntry(f"{asset_symbol} is not a foreign asset")

    moves = [Move(amount, asset_symbol, terms.vault_wallet, to, f"sweep_{asset_symbol}")]
    return _state_transition(view, symbol, old, terms, state, moves, "SWEEP")


def _deployed_released(pending: PendingTransaction) -> int:
    """Deployed capital removed by a payout transaction."""
    change = pending.state_changes[0]
    return change.old_state['deployed'] - change.new_state['deployed']


# ============================================================================
# SHELL
# ============================================================================

class Vault:
    """
    The stipend vault bound to a ledger and an oracle.

    Every state-mutating method takes the calling wallet first, runs under a
    re-entrancy guard and inside a ledger savepoint, so a failing call leaves
    ledger and vault exactly as they were.

    Example:
        ledger = Ledger("main", datetime(2025, 1, 1), verbose=False)
        ledger.register_unit(native_asset("ETH", "Ether"))
        ledger.register_wallet("alice")
        oracle = OracleClient(StaticPriceFeed({"ETH": Decimal("3000")}), "ETH")
        vault = Vault(ledger, oracle, holder="alice")

        vault.deposit("alice", 10 * WAD, value=10 * WAD)
        ledger.advance_time(datetime(2025, 2, 1))
        vault.withdraw("alice")
    """

    def __init__(
        self,
        ledger: Ledger,
        oracle: OracleClient,
        holder: str,
        symbol: str = "VLT",
        name: str = "Stipend Vault Share",
        terms: Optional[VaultTerms] = None,
        verbose: Optional[bool] = None,
    ):
        terms = terms or VaultTerms(asset_symbol=oracle.asset_symbol)
        if terms.asset_symbol != oracle.asset_symbol:
            raise ValueError(
                f"oracle prices {oracle.asset_symbol}, vault holds {terms.asset_symbol}"
            )
        if not holder:
            raise ZeroAddress("vault holder cannot be empty")
        _reject_reserved(terms, holder, "hold the vault")
        if not ledger.is_registered(holder):
            raise WalletNotRegistered(f"Wallet {holder} not registered")
        ledger.get_unit(terms.asset_symbol)

        self.ledger = ledger
        self.oracle = oracle
        self.symbol = symbol
        self.verbose = ledger.verbose if verbose is None else verbose

        for wallet in (terms.vault_wallet, terms.escrow_wallet):
            if not ledger.is_registered(wallet):
                ledger.register_wallet(wallet)
        ledger.register_unit(create_vault_unit(symbol, name, terms, holder, ledger.current_time))

        self.escrow = Escrow(ledger, terms.vault_wallet, terms.escrow_wallet, symbol)
        self.log = EventLog()
        self._entered = False

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def terms(self) -> VaultTerms:
        return load_vault(self.ledger, self.symbol)[0]

    @property
    def state(self) -> VaultState:
        return load_vault(self.ledger, self.symbol)[1]

    @property
    def holder(self) -> str:
        return self.state.holder

    @property
    def pending_holder(self) -> Optional[str]:
        return self.state.pending_holder

    @property
    def ownership(self) -> Ownership:
        return self.state.ownership

    @property
    def events(self) -> List[VaultEvent]:
        return self.log.events

    def balance_of(self, wallet: str) -> int:
        """Shares held by a wallet."""
        return self.ledger.get_balance(wallet, self.symbol)

    def total_supply(self) -> int:
        """Shares outstanding."""
        return self.ledger.total_supply(self.symbol)

    def asset_balance(self) -> int:
        """Base asset held by the vault wallet."""
        terms = self.terms
        return self.ledger.get_balance(terms.vault_wallet, terms.asset_symbol)

    def next_withdrawal_at(self) -> datetime:
        """Ordinary withdrawals open strictly after this instant."""
        terms, state = load_vault(self.ledger, self.symbol)
        return state.withdraw_timer + terms.withdraw_delay

    def next_emergency_at(self) -> datetime:
        """Emergency withdrawals open strictly after this instant."""
        return _emergency_gate(self.state)

    def can_withdraw(self) -> bool:
        return self.ledger.current_time > self.next_withdrawal_at()

    def can_withdraw_catch_up(self) -> bool:
        terms, state = load_vault(self.ledger, self.symbol)
        return state.catch_up_timer > terms.withdraw_delay

    def subscribe(self, listener: EventListener) -> None:
        """Register an observer called with every emitted event."""
        self.log.subscribe(listener)

    # ========================================================================
    # OPERATIONS
    # ========================================================================

    def deposit(self, caller: str, amount: int, value: int) -> None:
        """Deposit `value` asset units declared as `amount`; shares go to the holder."""
        with self._call():
            holder = self.holder
            self._submit(compute_deposit(self.ledger, self.symbol, caller, amount, value, self._quote))
        self._emit(Deposit(self.ledger.current_time, holder, amount))

    def withdraw(self, caller: str) -> int:
        """Ordinary monthly payout. Returns the asset units paid."""
        with self._call():
            pending = compute_withdraw(self.ledger, self.symbol, caller, self._quote)
            self._submit(pending)
        paid = _deployed_released(pending)
        self._emit(Withdraw(self.ledger.current_time, caller, paid))
        return paid

    def withdraw_catch_up(self, caller: str) -> int:
        """Extra payout redeeming one period of banked lateness. Returns the asset units paid."""
        with self._call():
            pending = compute_withdraw_catch_up(self.ledger, self.symbol, caller, self._quote)
            self._submit(pending)
        paid = _deployed_released(pending)
        self._emit(Withdraw(self.ledger.current_time, caller, paid))
        return paid

    def emergency_withdraw(self, caller: str, requested_amount: int) -> int:
        """Emergency extraction, clamped to the emergency fraction of the balance. Returns the amount taken."""
        with self._call():
            pending = compute_emergency_withdraw(self.ledger, self.symbol, caller, requested_amount)
            self._submit(pending)
        taken = _deployed_released(pending)
        self._emit(Withdraw(self.ledger.current_time, caller, taken))
        return taken

    def transfer_ownership(self, caller: str, new_holder: str) -> None:
        """Start a two-step handoff; the holder's shares move into escrow."""
        with self._call():
            self._submit(compute_transfer_ownership(self.ledger, self.symbol, caller, new_holder))
        self._emit(OwnershipTransferStarted(self.ledger.current_time, caller, new_holder))

    def accept_ownership(self, caller: str) -> None:
        """Finish a handoff; escrowed shares are released to the new holder."""
        with self._call():
            previous = self.holder
            self._submit(compute_accept_ownership(self.ledger, self.symbol, caller))
            held = self.escrow.held_units()
            if held > 0:
                self.escrow.release_shares(self.terms.vault_wallet, caller, held)
        self._emit(OwnershipTransferred(self.ledger.current_time, previous, caller))

    def renounce_ownership(self, caller: str) -> None:
        """Always fails: the payout protocol needs an accountable holder."""
        _require_holder(self.state, caller)
        raise CantRenounceContract("the vault cannot be left without a holder")

    def update_emergency_delay(self, caller: str, new_delay: timedelta) -> None:
        with self._call():
            self._submit(compute_emergency_delay_update(self.ledger, self.symbol, caller, new_delay))
        self._emit(DelayUpdated(self.ledger.current_time, new_delay))

    def sweep_foreign(self, caller: str, asset_symbol: str, to: str, amount: int) -> None:
        """Recover a foreign asset sent to the vault wallet by mistake."""
        with self._call():
            self._submit(compute_sweep(self.ledger, self.symbol, caller, asset_symbol, to, amount))
        self._emit(ForeignTransfer(self.ledger.current_time, asset_symbol, amount))

    # ========================================================================
    # INTERNALS
    # ========================================================================

    @contextmanager
    def _non_reentrant(self) -> Iterator[None]:
        if self._entered:
            raise ReentrantCall(f"vault {self.symbol} re-entered")
        self._entered = True
        try:
            yield
        finally:
            self._entered = False

    @contextmanager
    def _call(self) -> Iterator[None]:
        with self._non_reentrant(), self.ledger.atomic():
            yield

    def _quote(self) -> int:
        return self.oracle.current_price(self.ledger.current_time)

    def _submit(self, pending: PendingTransaction) -> None:
        result = self.ledger.execute(pending)
        if result != ExecuteResult.APPLIED:
            raise TransferFailed(
                f"{pending.origin.event_type} rejected ({result.value}): {self.ledger.last_rejection}"
            )

    def _emit(self, event: VaultEvent) -> None:
        if self.verbose:
            details = ", ".join(
                f"{f.name}={getattr(event, f.name)}" for f in fields(event) if f.name != 'timestamp'
            )
            print(f"[VAULT] {event.name}({details}) at {event.timestamp}")
        self.log.emit(event)

    def __repr__(self):
        state = self.state
        return (
            f"Vault({self.symbol}, holder={state.holder}, deployed={state.deployed}, "
            f"monthly_pay_usd_e8={state.monthly_pay_usd_e8})"
        )
