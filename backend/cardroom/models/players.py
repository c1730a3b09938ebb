from __future__ import annotations

from ..extensions import db
from cardroom.time_utils import to_utc_z


class Player(db.Model):
    """
    Player directory record as seen by the cashier ledger.

    credit_limit: 0 means the player may not take credit.
    stored_chips: rupee value of chips the player left with the house.
    """
    __tablename__ = "players"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    player_code = db.Column(db.String(32), nullable=False, unique=True)
    player_name = db.Column(db.String(128), nullable=False)
    phone_number = db.Column(db.String(32), nullable=True, unique=True)

    credit_limit = db.Column(db.Integer, nullable=False, default=0)
    stored_chips = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "player_code": self.player_code,
            "player_name": self.player_name,
            "phone_number": self.phone_number,
            "credit_limit": self.credit_limit,
            "stored_chips": self.stored_chips,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
