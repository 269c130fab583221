"""
stipend - USD-denominated stipend vault on a double-entry ledger

A vault accepts deposits of a base asset on behalf of a single holder and pays
the holder a fixed USD amount per month, re-priced in asset units at every
withdrawal.

Usage:
    from datetime import datetime
    from decimal import Decimal
    from stipend import Ledger, Vault, OracleClient, StaticPriceFeed, native_asset, WAD

    ledger = Ledger("main", datetime(2025, 1, 1), test_mode=True)
    ledger.register_unit(native_asset("ETH", "Ether"))
    ledger.register_wallet("alice")
    ledger.set_balance("alice", "ETH", 100 * WAD)

    oracle = OracleClient(StaticPriceFeed({"ETH": Decimal("3000")}), "ETH")
    vault = Vault(ledger, oracle, holder="alice")

    vault.deposit("alice", 10 * WAD, value=10 * WAD)
    ledger.advance_time(datetime(2025, 2, 1))
    paid = vault.withdraw("alice")
"""

# Core types
from .core import (
    LedgerView,
    Move,
    Transaction,
    PendingTransaction,
    TransactionOrigin,
    OriginType,
    build_transaction,
    empty_pending_transaction,
    Unit,
    UnitStateChange,
    ExecuteResult,
    native_asset,
    token,
    SYSTEM_WALLET,
    UNIT_TYPE_NATIVE,
    UNIT_TYPE_TOKEN,
    UNIT_TYPE_VAULT_SHARE,
    WAD,
    PRICE_DECIMALS,
    PRICE_SCALE,
    SCALE,
    WITHDRAW_DELAY,
    PAY_FACTOR,
    EMERGENCY_CUT,
    MIN_EMERGENCY_DELAY,
    MIN_DEPOSIT,
    # Errors
    LedgerError,
    InsufficientFunds,
    BalanceConstraintViolation,
    UnitNotRegistered,
    WalletNotRegistered,
    VaultError,
    InvalidAmount,
    ZeroAddress,
    EtherMismatch,
    NotAvailable,
    TransferFailed,
    OracleError,
    InvalidEntry,
    NotAuthorized,
    Failed,
    CantRenounceContract,
    UnauthorizedAccount,
    ReentrantCall,
)

# Ledger
from .ledger import Ledger, ReceiveHook

# Prices
from .price_feed import PriceFeed, StaticPriceFeed, TimeSeriesPriceFeed
from .oracle import OracleClient

# Events
from .events import (
    VaultEvent,
    Deposit,
    Withdraw,
    ForeignTransfer,
    DelayUpdated,
    OwnershipTransferStarted,
    OwnershipTransferred,
    EventListener,
    EventLog,
)

# Escrow
from .escrow import Escrow

# Vault
from .vault import (
    VaultTerms,
    VaultState,
    Stable,
    PendingTransfer,
    Ownership,
    Vault,
    initial_state,
    load_vault,
    to_state_dict,
    create_vault_unit,
    calculate_payout_increment,
    calculate_amount_to_pay,
    calculate_proportional_cut,
    calculate_emergency_available,
    calculate_emergency_obligation_cut,
    calculate_withdraw_window,
    calculate_catch_up_window,
    calculate_payout,
    compute_deposit,
    compute_withdraw,
    compute_withdraw_catch_up,
    compute_emergency_withdraw,
    compute_transfer_ownership,
    compute_accept_ownership,
    compute_emergency_delay_update,
    compute_sweep,
)

__all__ = [
    # Core
    'LedgerView', 'Move', 'Transaction', 'PendingTransaction', 'TransactionOrigin', 'OriginType',
    'build_transaction', 'empty_pending_transaction',
    'Unit', 'UnitStateChange', 'ExecuteResult',
    'native_asset', 'token',
    'SYSTEM_WALLET', 'UNIT_TYPE_NATIVE', 'UNIT_TYPE_TOKEN', 'UNIT_TYPE_VAULT_SHARE',
    'WAD', 'PRICE_DECIMALS', 'PRICE_SCALE', 'SCALE', 'WITHDRAW_DELAY', 'PAY_FACTOR',
    'EMERGENCY_CUT', 'MIN_EMERGENCY_DELAY', 'MIN_DEPOSIT',
    # Errors
    'LedgerError', 'InsufficientFunds', 'BalanceConstraintViolation',
    'UnitNotRegistered', 'WalletNotRegistered',
    'VaultError', 'InvalidAmount', 'ZeroAddress', 'EtherMismatch', 'NotAvailable',
    'TransferFailed', 'OracleError', 'InvalidEntry', 'NotAuthorized', 'Failed',
    'CantRenounceContract', 'UnauthorizedAccount', 'ReentrantCall',
    # Ledger
    'Ledger', 'ReceiveHook',
    # Prices
    'PriceFeed', 'StaticPriceFeed', 'TimeSeriesPriceFeed', 'OracleClient',
    # Events
    'VaultEvent', 'Deposit', 'Withdraw', 'ForeignTransfer', 'DelayUpdated',
    'OwnershipTransferStarted', 'OwnershipTransferred', 'EventListener', 'EventLog',
    # Escrow
    'Escrow',
    # Vault
    'VaultTerms', 'VaultState', 'Stable', 'PendingTransfer', 'Ownership', 'Vault',
    'initial_state', 'load_vault', 'to_state_dict', 'create_vault_unit',
    'calculate_payout_increment', 'calculate_amount_to_pay', 'calculate_proportional_cut',
    'calculate_emergency_available', 'calculate_emergency_obligation_cut',
    'calculate_withdraw_window', 'calculate_catch_up_window', 'calculate_payout',
    'compute_deposit', 'compute_withdraw', 'compute_withdraw_catch_up',
    'compute_emergency_withdraw', 'compute_transfer_ownership', 'compute_accept_ownership',
    'compute_emergency_delay_update', 'compute_sweep',
]

__version__ = '1.0.0'
