from __future__ import annotations

from ..extensions import db
from cardroom.time_utils import to_utc_z


class NotificationEvent(db.Model):
    """
    Outbox of events for the notification dispatcher.

    Rows are written in the same unit of work as the ledger change they
    describe. Delivery (WhatsApp, email) happens elsewhere and flips status.
    """
    __tablename__ = "notification_events"
    __table_args__ = {"sqlite_autoincrement": True}

    STATUS_PENDING = "PENDING"
    STATUS_DISPATCHED = "DISPATCHED"

    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(64), nullable=False, index=True)
    session_id = db.Column(db.Integer, db.ForeignKey("daily_sessions.id"), nullable=True, index=True)
    payload = db.Column(db.JSON, nullable=False)
    status = db.Column(db.String(16), nullable=False, default=STATUS_PENDING, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    dispatched_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "session_id": self.session_id,
            "payload": self.payload,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "dispatched_at": to_utc_z(self.dispatched_at) if self.dispatched_at else None,
        }
