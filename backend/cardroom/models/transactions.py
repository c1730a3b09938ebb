from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from sqlalchemy import event

from ..extensions import db
from ..chips import ChipBreakdown
from ..errors import ImmutableRecordError
from cardroom.time_utils import to_utc_z


class TransactionKind(str, Enum):
    SESSION_OPEN = "session_open"
    CHIP_INVENTORY_SET = "chip_inventory_set"
    ADD_FLOAT = "add_float"
    BUY_IN = "buy_in"
    CASH_PAYOUT = "cash_payout"
    DEPOSIT_CHIPS = "deposit_chips"
    DEPOSIT_CASH = "deposit_cash"
    REDEEM_STORED = "redeem_stored"
    ISSUE_CREDIT = "issue_credit"
    SETTLE_CREDIT = "settle_credit"
    EXPENSE = "expense"
    PLAYER_EXPENSE = "player_expense"
    DEALER_TIP = "dealer_tip"
    RAKEBACK = "rakeback"
    BALANCE_ADJUSTMENT = "balance_adjustment"


# Wallet effects
WALLET_NONE = "none"
WALLET_PRIMARY_CREDIT = "primary_credit"
WALLET_SECONDARY_CREDIT = "secondary_credit"
WALLET_SPLIT_DEBIT = "split_debit"

# Chip effects on the cashier inventory
CHIPS_NONE = "none"
CHIPS_OPENING = "opening"  # opening += n, current += n
CHIPS_GIVE = "give"        # current -= n, out += n
CHIPS_RECEIVE = "receive"  # current += n, out -= n


@dataclass(frozen=True)
class KindSpec:
    wallet_effect: str
    chip_effect: str
    stat_bucket: str
    # +1 player gains chips_amount, -1 player hands chips over, 0 not a player chip movement
    player_chips: int = 0


TRANSACTION_KINDS: dict[TransactionKind, KindSpec] = {
    TransactionKind.SESSION_OPEN: KindSpec(WALLET_PRIMARY_CREDIT, CHIPS_OPENING, "opening"),
    TransactionKind.CHIP_INVENTORY_SET: KindSpec(WALLET_NONE, CHIPS_OPENING, "opening"),
    TransactionKind.ADD_FLOAT: KindSpec(WALLET_PRIMARY_CREDIT, CHIPS_OPENING, "float_addition"),
    TransactionKind.BUY_IN: KindSpec(WALLET_SECONDARY_CREDIT, CHIPS_GIVE, "buy_in", +1),
    TransactionKind.CASH_PAYOUT: KindSpec(WALLET_SPLIT_DEBIT, CHIPS_RECEIVE, "cash_payout", -1),
    TransactionKind.DEPOSIT_CHIPS: KindSpec(WALLET_NONE, CHIPS_RECEIVE, "chip_deposit", -1),
    TransactionKind.DEPOSIT_CASH: KindSpec(WALLET_SECONDARY_CREDIT, CHIPS_NONE, "cash_deposit"),
    TransactionKind.REDEEM_STORED: KindSpec(WALLET_NONE, CHIPS_GIVE, "stored_redemption", +1),
    TransactionKind.ISSUE_CREDIT: KindSpec(WALLET_NONE, CHIPS_NONE, "credit_issued", +1),
    TransactionKind.SETTLE_CREDIT: KindSpec(WALLET_SECONDARY_CREDIT, CHIPS_NONE, "credit_settled"),
    TransactionKind.EXPENSE: KindSpec(WALLET_SPLIT_DEBIT, CHIPS_NONE, "club_expense"),
    TransactionKind.PLAYER_EXPENSE: KindSpec(WALLET_SPLIT_DEBIT, CHIPS_RECEIVE, "player_expense", -1),
    TransactionKind.DEALER_TIP: KindSpec(WALLET_SPLIT_DEBIT, CHIPS_RECEIVE, "dealer_tip"),
    TransactionKind.RAKEBACK: KindSpec(WALLET_NONE, CHIPS_GIVE, "rakeback", +1),
    # chips_amount is signed: winnings positive, losses negative
    TransactionKind.BALANCE_ADJUSTMENT: KindSpec(WALLET_NONE, CHIPS_NONE, "balance_adjustment", +1),
}


class Transaction(db.Model):
    """
    Immutable ledger entry for one cashier operation.

    WHY: The log is the source of truth for every session total. Dashboards,
    close-time summaries and drift checks replay these rows; the counters on
    DailySession are a cache kept in lock-step inside the same unit of work.

    IMMUTABLE: updates and deletes are rejected at flush time.

    WALLETS: primary_delta / secondary_delta are signed effects on each wallet.
    CHIPS: chip columns hold the physical chips moved; chip_effect says how
    they moved against the cashier inventory (see TRANSACTION_KINDS).
    """
    __tablename__ = "ledger_transactions"
    __table_args__ = (
        db.Index("ix_ledger_transactions_session_kind", "session_id", "kind"),
        db.Index("ix_ledger_transactions_session_player", "session_id", "player_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("daily_sessions.id"), nullable=False, index=True)
    kind = db.Column(db.String(32), nullable=False, index=True)

    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=True, index=True)
    player_name = db.Column(db.String(128), nullable=True)

    amount = db.Column(db.Integer, nullable=False, default=0)  # Cash amount
    chips_amount = db.Column(db.Integer, nullable=False, default=0)  # Chip face value

    chips_100 = db.Column(db.Integer, nullable=False, default=0)
    chips_500 = db.Column(db.Integer, nullable=False, default=0)
    chips_5000 = db.Column(db.Integer, nullable=False, default=0)
    chips_10000 = db.Column(db.Integer, nullable=False, default=0)
    chip_effect = db.Column(db.String(16), nullable=False, default=CHIPS_NONE)

    payment_mode = db.Column(db.String(32), nullable=True)
    category = db.Column(db.String(64), nullable=True)  # Expense category, adjustment type, etc.
    wallet_used = db.Column(db.String(16), nullable=False, default="none")
    primary_delta = db.Column(db.Integer, nullable=False, default=0)
    secondary_delta = db.Column(db.Integer, nullable=False, default=0)
    credit_settled = db.Column(db.Integer, nullable=False, default=0)

    reference_type = db.Column(db.String(32), nullable=True)
    reference_id = db.Column(db.Integer, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    actor_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    session = db.relationship("DailySession", backref=db.backref("transactions", lazy="dynamic"))

    @property
    def kind_spec(self) -> KindSpec:
        return TRANSACTION_KINDS[TransactionKind(self.kind)]

    def chip_breakdown(self) -> ChipBreakdown:
        return ChipBreakdown(self.chips_100, self.chips_500, self.chips_5000, self.chips_10000)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "kind": self.kind,
            "player_id": self.player_id,
            "player_name": self.player_name,
            "amount": self.amount,
            "chips_amount": self.chips_amount,
            "chip_breakdown": self.chip_breakdown().to_dict(),
            "chip_effect": self.chip_effect,
            "payment_mode": self.payment_mode,
            "category": self.category,
            "wallet_used": self.wallet_used,
            "primary_delta": self.primary_delta,
            "secondary_delta": self.secondary_delta,
            "credit_settled": self.credit_settled,
            "reference_type": self.reference_type,
            "reference_id": self.reference_id,
            "notes": self.notes,
            "actor_user_id": self.actor_user_id,
            "created_at": to_utc_z(self.created_at),
        }


@event.listens_for(Transaction, "before_update")
def _reject_transaction_update(mapper, connection, target):
    raise ImmutableRecordError(f"Transaction {target.id} is immutable", transaction_id=target.id)


@event.listens_for(Transaction, "before_delete")
def _reject_transaction_delete(mapper, connection, target):
    raise ImmutableRecordError(f"Transaction {target.id} cannot be deleted", transaction_id=target.id)
