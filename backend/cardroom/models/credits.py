from __future__ import annotations

from ..extensions import db
from ..chips import ChipBreakdown
from cardroom.time_utils import to_utc_z


class Credit(db.Model):
    """
    Chips extended to a player against later settlement.

    WHY: Credit chips are conceptually separate from the cashier's physical
    stock; issuing credit moves neither chips nor cash. The player owes
    credit_outstanding until it is settled in cash or from returned chips.

    LIFECYCLE: created on issue, mutated only by settlement, never deleted.
    """
    __tablename__ = "credits"
    __table_args__ = (
        db.Index("ix_credits_player_unsettled", "player_id", "is_fully_settled"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("daily_sessions.id"), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False, index=True)
    credit_request_id = db.Column(db.Integer, db.ForeignKey("credit_requests.id"), nullable=True)

    chips_100 = db.Column(db.Integer, nullable=False, default=0)
    chips_500 = db.Column(db.Integer, nullable=False, default=0)
    chips_5000 = db.Column(db.Integer, nullable=False, default=0)
    chips_10000 = db.Column(db.Integer, nullable=False, default=0)

    credit_issued = db.Column(db.Integer, nullable=False)
    credit_settled = db.Column(db.Integer, nullable=False, default=0)
    credit_outstanding = db.Column(db.Integer, nullable=False)
    is_fully_settled = db.Column(db.Boolean, nullable=False, default=False, index=True)
    settled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    issued_by_user_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)
    issued_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    player = db.relationship("Player", backref=db.backref("credits", lazy=True))

    def chip_breakdown(self) -> ChipBreakdown:
        return ChipBreakdown(self.chips_100, self.chips_500, self.chips_5000, self.chips_10000)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "player_id": self.player_id,
            "player_name": self.player.player_name if self.player else None,
            "credit_request_id": self.credit_request_id,
            "chip_breakdown": self.chip_breakdown().to_dict(),
            "credit_issued": self.credit_issued,
            "credit_settled": self.credit_settled,
            "credit_outstanding": self.credit_outstanding,
            "is_fully_settled": self.is_fully_settled,
            "settled_at": to_utc_z(self.settled_at) if self.settled_at else None,
            "issued_by_user_id": self.issued_by_user_id,
            "issued_at": to_utc_z(self.issued_at),
        }


class CreditSettlement(db.Model):
    """Allocation of one settling transaction onto one credit record."""
    __tablename__ = "credit_settlements"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    credit_id = db.Column(db.Integer, db.ForeignKey("credits.id"), nullable=False, index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("ledger_transactions.id"), nullable=False, index=True)

    amount = db.Column(db.Integer, nullable=False)
    # Proportional share of the credit's original denomination mix (floored)
    chips_100 = db.Column(db.Integer, nullable=False, default=0)
    chips_500 = db.Column(db.Integer, nullable=False, default=0)
    chips_5000 = db.Column(db.Integer, nullable=False, default=0)
    chips_10000 = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    credit = db.relationship("Credit", backref=db.backref("settlements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "credit_id": self.credit_id,
            "transaction_id": self.transaction_id,
            "amount": self.amount,
            "chip_breakdown": ChipBreakdown(
                self.chips_100, self.chips_500, self.chips_5000, self.chips_10000
            ).to_dict(),
            "created_at": to_utc_z(self.created_at),
        }


class CreditRequest(db.Model):
    """
    Credit approval request raised at the cashier desk.

    STATUS:
    - PENDING: waiting for an admin decision (blocks session close)
    - AUTO_APPROVED: within player and session limits, credit issued at once
    - APPROVED: admin approved, credit issued
    - REJECTED: admin rejected, nothing issued
    """
    __tablename__ = "credit_requests"
    __table_args__ = {"sqlite_autoincrement": True}

    STATUS_PENDING = "PENDING"
    STATUS_AUTO_APPROVED = "AUTO_APPROVED"
    STATUS_APPROVED = "APPROVED"
    STATUS_REJECTED = "REJECTED"

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("daily_sessions.id"), nullable=False, index=True)
    player_id = db.Column(db.Integer, db.ForeignKey("players.id"), nullable=False, index=True)

    requested_amount = db.Column(db.Integer, nullable=False)
    chips_100 = db.Column(db.Integer, nullable=False, default=0)
    chips_500 = db.Column(db.Integer, nullable=False, default=0)
    chips_5000 = db.Column(db.Integer, nullable=False, default=0)
    chips_10000 = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)
    notes = db.Column(db.Text, nullable=True)
    requested_by_user_id = db.Column(db.Integer, nullable=True)

    decided_by_user_id = db.Column(db.Integer, nullable=True)
    decided_at = db.Column(db.DateTime(timezone=True), nullable=True)
    decision_notes = db.Column(db.Text, nullable=True)
    credit_id = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    player = db.relationship("Player", backref=db.backref("credit_requests", lazy=True))

    def chip_breakdown(self) -> ChipBreakdown:
        return ChipBreakdown(self.chips_100, self.chips_500, self.chips_5000, self.chips_10000)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "player_id": self.player_id,
            "player_name": self.player.player_name if self.player else None,
            "requested_amount": self.requested_amount,
            "chip_breakdown": self.chip_breakdown().to_dict(),
            "status": self.status,
            "notes": self.notes,
            "requested_by_user_id": self.requested_by_user_id,
            "decided_by_user_id": self.decided_by_user_id,
            "decided_at": to_utc_z(self.decided_at) if self.decided_at else None,
            "decision_notes": self.decision_notes,
            "credit_id": self.credit_id,
            "created_at": to_utc_z(self.created_at),
        }
