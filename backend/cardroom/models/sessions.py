from __future__ import annotations

from ..extensions import db
from ..chips import ChipBreakdown, DENOMINATION_KEYS
from cardroom.time_utils import to_utc_z


CHIP_STATES = ("opening", "current", "out")


class DailySession(db.Model):
    """
    One cashier session (a business day of the card room).

    WHY: All cash and chip movements of the day are accounted against a
    single aggregate: two wallets, a four-denomination chip inventory in
    three states, and the credit currently extended to players.

    WALLETS (whole rupees):
    - primary_wallet: owner float, replenished by float additions
    - secondary_wallet: net player deposits, drained first on every payout

    CHIPS: for each denomination d, chips_<d>_opening (stock at open plus chip
    float additions), chips_<d>_current (physically in the cashier's hand) and
    chips_<d>_out (with players). current + out == opening always holds;
    out may go negative when players return chips they won from the house.

    LIFECYCLE:
    - OPEN: is_closed = False, at most one per session_date
    - CLOSED: is_closed = True, SessionSummary persisted, no further mutation
    - REOPEN: a fresh row for the same date, linked via reopened_from_session_id
    """
    __tablename__ = "daily_sessions"
    __table_args__ = (
        db.Index(
            "uq_daily_sessions_open_date",
            "session_date",
            unique=True,
            sqlite_where=db.text("is_closed = 0"),
            postgresql_where=db.text("is_closed = false"),
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_date = db.Column(db.Date, nullable=False, index=True)

    # Float tracking
    owner_float = db.Column(db.Integer, nullable=False, default=0)
    opening_float = db.Column(db.Integer, nullable=False, default=0)
    closing_float = db.Column(db.Integer, nullable=True)  # Set when closing

    # Wallets
    primary_wallet = db.Column(db.Integer, nullable=False, default=0)
    secondary_wallet = db.Column(db.Integer, nullable=False, default=0)
    secondary_wallet_deposits = db.Column(db.Integer, nullable=False, default=0)
    secondary_wallet_withdrawals = db.Column(db.Integer, nullable=False, default=0)

    # Float additions (mali)
    total_float_additions = db.Column(db.Integer, nullable=False, default=0)
    float_addition_count = db.Column(db.Integer, nullable=False, default=0)
    last_float_addition_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Credit
    outstanding_credit = db.Column(db.Integer, nullable=False, default=0)
    cashier_credit_limit = db.Column(db.Integer, nullable=False, default=0)

    # Chip inventory
    chip_inventory_set = db.Column(db.Boolean, nullable=False, default=False)
    chips_100_opening = db.Column(db.Integer, nullable=False, default=0)
    chips_100_current = db.Column(db.Integer, nullable=False, default=0)
    chips_100_out = db.Column(db.Integer, nullable=False, default=0)
    chips_500_opening = db.Column(db.Integer, nullable=False, default=0)
    chips_500_current = db.Column(db.Integer, nullable=False, default=0)
    chips_500_out = db.Column(db.Integer, nullable=False, default=0)
    chips_5000_opening = db.Column(db.Integer, nullable=False, default=0)
    chips_5000_current = db.Column(db.Integer, nullable=False, default=0)
    chips_5000_out = db.Column(db.Integer, nullable=False, default=0)
    chips_10000_opening = db.Column(db.Integer, nullable=False, default=0)
    chips_10000_current = db.Column(db.Integer, nullable=False, default=0)
    chips_10000_out = db.Column(db.Integer, nullable=False, default=0)

    # Lifecycle
    is_closed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    opened_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    opened_by_user_id = db.Column(db.Integer, nullable=True)
    closed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    closed_by_user_id = db.Column(db.Integer, nullable=True)
    reopened_from_session_id = db.Column(db.Integer, db.ForeignKey("daily_sessions.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version_id}

    def chips(self, state: str) -> ChipBreakdown:
        """Chip counts for one state: opening, current or out."""
        return ChipBreakdown.from_counts(
            {d: getattr(self, f"{key}_{state}") for d, key in DENOMINATION_KEYS.items()}
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_date": self.session_date.isoformat() if self.session_date else None,
            "owner_float": self.owner_float,
            "opening_float": self.opening_float,
            "closing_float": self.closing_float,
            "primary_wallet": self.primary_wallet,
            "secondary_wallet": self.secondary_wallet,
            "secondary_wallet_deposits": self.secondary_wallet_deposits,
            "secondary_wallet_withdrawals": self.secondary_wallet_withdrawals,
            "total_float_additions": self.total_float_additions,
            "float_addition_count": self.float_addition_count,
            "last_float_addition_at": to_utc_z(self.last_float_addition_at),
            "outstanding_credit": self.outstanding_credit,
            "cashier_credit_limit": self.cashier_credit_limit,
            "chip_inventory_set": self.chip_inventory_set,
            "chips": {state: self.chips(state).to_dict() for state in CHIP_STATES},
            "is_closed": self.is_closed,
            "opened_at": to_utc_z(self.opened_at),
            "opened_by_user_id": self.opened_by_user_id,
            "closed_at": to_utc_z(self.closed_at) if self.closed_at else None,
            "closed_by_user_id": self.closed_by_user_id,
            "reopened_from_session_id": self.reopened_from_session_id,
            "version_id": self.version_id,
        }


class FloatAddition(db.Model):
    """
    Mid-session top-up of the owner float (mali), optionally with chips.

    APPEND-ONLY: rows are never updated or deleted.
    """
    __tablename__ = "float_additions"
    __table_args__ = {"sqlite_autoincrement": True}

    ADDITION_CASH_ONLY = "cash_only"
    ADDITION_CASH_WITH_CHIPS = "cash_with_chips"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("daily_sessions.id"), nullable=False, index=True)

    float_amount = db.Column(db.Integer, nullable=False)
    chips_100 = db.Column(db.Integer, nullable=False, default=0)
    chips_500 = db.Column(db.Integer, nullable=False, default=0)
    chips_5000 = db.Column(db.Integer, nullable=False, default=0)
    chips_10000 = db.Column(db.Integer, nullable=False, default=0)
    total_chips_value = db.Column(db.Integer, nullable=False, default=0)

    addition_type = db.Column(db.String(32), nullable=False, default=ADDITION_CASH_ONLY)
    reason = db.Column(db.String(255), nullable=True)
    added_by_user_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    session = db.relationship("DailySession", backref=db.backref("float_additions", lazy=True))

    def chip_breakdown(self) -> ChipBreakdown:
        return ChipBreakdown(self.chips_100, self.chips_500, self.chips_5000, self.chips_10000)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "float_amount": self.float_amount,
            "chip_breakdown": self.chip_breakdown().to_dict(),
            "total_chips_value": self.total_chips_value,
            "addition_type": self.addition_type,
            "reason": self.reason,
            "added_by_user_id": self.added_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class SessionSummary(db.Model):
    """
    Immutable close-time snapshot of a session.

    One row per closed session (a reopened date gets a new session row and
    therefore its own summary).
    """
    __tablename__ = "session_summaries"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("daily_sessions.id"), nullable=False, unique=True)
    session_date = db.Column(db.Date, nullable=False, index=True)

    opening_float = db.Column(db.Integer, nullable=False)
    closing_float = db.Column(db.Integer, nullable=False)
    total_float_additions = db.Column(db.Integer, nullable=False, default=0)
    total_deposits = db.Column(db.Integer, nullable=False, default=0)
    total_withdrawals = db.Column(db.Integer, nullable=False, default=0)
    total_expenses = db.Column(db.Integer, nullable=False, default=0)
    chips_in_circulation = db.Column(db.Integer, nullable=False, default=0)
    outstanding_credit = db.Column(db.Integer, nullable=False, default=0)
    net_result = db.Column(db.Integer, nullable=False, default=0)
    total_players = db.Column(db.Integer, nullable=False, default=0)
    total_transactions = db.Column(db.Integer, nullable=False, default=0)

    warnings = db.Column(db.JSON, nullable=False, default=list)
    summary_data = db.Column(db.JSON, nullable=False)

    closed_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    session = db.relationship("DailySession", backref=db.backref("summary", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "session_date": self.session_date.isoformat() if self.session_date else None,
            "opening_float": self.opening_float,
            "closing_float": self.closing_float,
            "total_float_additions": self.total_float_additions,
            "total_deposits": self.total_deposits,
            "total_withdrawals": self.total_withdrawals,
            "total_expenses": self.total_expenses,
            "chips_in_circulation": self.chips_in_circulation,
            "outstanding_credit": self.outstanding_credit,
            "net_result": self.net_result,
            "total_players": self.total_players,
            "total_transactions": self.total_transactions,
            "warnings": self.warnings or [],
            "summary_data": self.summary_data,
            "closed_by_user_id": self.closed_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
