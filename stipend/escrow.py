"""
escrow.py - Escrow custodian for ownership units in transit

During a holder change the outgoing holder's shares sit in the escrow wallet.
Only the vault the escrow was created for may ask it to release them, and
they go only to the recipient the vault names.
"""

from __future__ import annotations
from typing import Optional

from .core import (
    Move, ExecuteResult, OriginType, TransactionOrigin,
    Failed, NotAuthorized, ZeroAddress, InvalidAmount,
    build_transaction,
)
from .ledger import Ledger


class Escrow:
    """
    Custodian bound permanently to one vault.

    Args:
        ledger: Ledger holding the share balances
        vault: Wallet id of the owning vault (the only authorized caller)
        wallet_id: Wallet id of the escrow itself (must be registered)
        share_symbol: Unit symbol of the vault's ownership units

    Raises:
        ZeroAddress: If neither a vault nor a ledger is given
    """

    def __init__(
        self,
        ledger: Optional[Ledger],
        vault: Optional[str],
        wallet_id: str,
        share_symbol: str,
    ):
        if not vault and ledger is None:
            raise ZeroAddress("escrow needs a vault or a ledger")
        self._ledger = ledger
        self._vault = vault
        self.wallet_id = wallet_id
        self.share_symbol = share_symbol
        # Sequence of release requests; keeps repeated identical releases distinct intents
        self._releases = 0

    @property
    def vault(self) -> Optional[str]:
        return self._vault

    def held_units(self) -> int:
        """Shares currently held in escrow."""
        return self._ledger.get_balance(self.wallet_id, self.share_symbol)

    def release_shares(self, caller: str, to: str, amount: int) -> None:
        """
        Transfer held shares to the vault-designated recipient.

        Raises:
            NotAuthorized: If caller is not the bound vault
            ZeroAddress: If the recipient is empty
            InvalidAmount: If amount is not positive
            Failed: If the ledger rejects the transfer
        """
        if caller != self._vault:
            raise NotAuthorized(f"{caller} may not release escrowed shares")
        if not to:
            raise ZeroAddress("escrow release needs a recipient")
        if amount <= 0:
            raise InvalidAmount(f"release amount must be positive, got {amount}")

        self._releases += 1
        contract_id = f"escrow_release_{self.share_symbol}_{self._releases}"
        pending = build_transaction(
            self._ledger,
            [Move(amount, self.share_symbol, self.wallet_id, to, contract_id)],
            origin=TransactionOrigin(
                OriginType.ESCROW, self.wallet_id,
                unit_symbol=self.share_symbol, event_type="RELEASE",
            ),
        )
        if self._ledger.execute(pending) != ExecuteResult.APPLIED:
            raise Failed(
                f"escrow release of {amount} {self.share_symbol} to {to} failed: "
                f"{self._ledger.last_rejection}"
            )

    def __repr__(self):
        return f"Escrow({self.wallet_id}, vault={self._vault})"
