# Overview: Service-layer operations for the dual wallet; secondary-first debit splitting.

from __future__ import annotations

from dataclasses import dataclass

from ..errors import InsufficientFundsError, ValidationError
from ..models import DailySession


WALLET_PRIMARY = "primary"
WALLET_SECONDARY = "secondary"


@dataclass(frozen=True)
class WalletSplit:
    """How a cash debit is drawn: player deposits first, then owner float."""

    from_secondary: int
    from_primary: int

    @property
    def total(self) -> int:
        return self.from_secondary + self.from_primary

    @property
    def wallet_used(self) -> str:
        if self.from_secondary and self.from_primary:
            return "both"
        if self.from_primary:
            return WALLET_PRIMARY
        if self.from_secondary:
            return WALLET_SECONDARY
        return "none"

    def deltas(self) -> dict:
        """Signed wallet effects for the transaction record."""
        return {"primary_delta": -self.from_primary, "secondary_delta": -self.from_secondary}

    def to_dict(self) -> dict:
        return {
            "from_secondary": self.from_secondary,
            "from_primary": self.from_primary,
            "wallet_used": self.wallet_used,
        }


def plan_debit(session: DailySession, amount: int) -> WalletSplit:
    """
    Work out a debit without touching the session.

    Raises:
        InsufficientFundsError: If both wallets together cannot cover the amount
    """
    if amount < 0:
        raise ValueError("Debit amount cannot be negative")
    from_secondary = min(amount, max(session.secondary_wallet, 0))
    from_primary = amount - from_secondary
    if from_primary > session.primary_wallet:
        raise InsufficientFundsError(
            required=amount,
            primary_available=session.primary_wallet,
            secondary_available=session.secondary_wallet,
        )
    return WalletSplit(from_secondary=from_secondary, from_primary=from_primary)


def apply_debit(session: DailySession, split: WalletSplit) -> None:
    session.secondary_wallet -= split.from_secondary
    session.secondary_wallet_withdrawals += split.from_secondary
    session.primary_wallet -= split.from_primary


def debit(session: DailySession, amount: int) -> WalletSplit:
    split = plan_debit(session, amount)
    apply_debit(session, split)
    return split


def credit(session: DailySession, amount: int, target: str) -> dict:
    """
    Add cash to a named wallet.

    Returns the signed deltas for the transaction record.
    """
    if amount < 0:
        raise ValueError("Credit amount cannot be negative")
    if target == WALLET_SECONDARY:
        session.secondary_wallet += amount
        session.secondary_wallet_deposits += amount
        return {"primary_delta": 0, "secondary_delta": amount}
    if target == WALLET_PRIMARY:
        session.primary_wallet += amount
        return {"primary_delta": amount, "secondary_delta": 0}
    raise ValidationError(f"Unknown wallet: {target}", wallet=target)


def availability(session: DailySession) -> dict:
    total = session.primary_wallet + session.secondary_wallet
    return {
        "primary_wallet": session.primary_wallet,
        "secondary_wallet": session.secondary_wallet,
        "total_cash": total,
        "outstanding_credit": session.outstanding_credit,
        "secondary_wallet_deposits": session.secondary_wallet_deposits,
        "secondary_wallet_withdrawals": session.secondary_wallet_withdrawals,
    }
