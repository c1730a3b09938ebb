# Overview: Service-layer operations for the player directory; resolves identifiers for the ledger.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..errors import PlayerNotFoundError, ValidationError
from ..models import Player
from .concurrency import lock_for_update


PLAYER_CODE_PREFIX = "PC"


def _next_player_code() -> str:
    last_id = db.session.query(func.max(Player.id)).scalar() or 0
    return f"{PLAYER_CODE_PREFIX}{last_id + 1:05d}"


def get_player(player_id: int) -> Player:
    player = db.session.get(Player, player_id)
    if not player:
        raise PlayerNotFoundError(f"Player {player_id} not found", player_id=player_id)
    return player


def get_player_for_update(player_id: int) -> Player:
    player = lock_for_update(db.session.query(Player).filter_by(id=player_id)).first()
    if not player:
        raise PlayerNotFoundError(f"Player {player_id} not found", player_id=player_id)
    return player


def find_by_code(player_code: str) -> Player | None:
    return db.session.query(Player).filter_by(player_code=player_code.strip().upper()).first()


def find_by_phone(phone_number: str) -> Player | None:
    return db.session.query(Player).filter_by(phone_number=phone_number.strip()).first()


def _add_player(player_name: str, phone_number: str | None, credit_limit: int) -> Player:
    name = (player_name or "").strip()
    if not name:
        raise ValidationError("player_name is required", field="player_name")
    if phone_number and find_by_phone(phone_number):
        raise ValidationError(f"Phone number {phone_number} already registered", field="phone_number")
    if credit_limit < 0:
        raise ValidationError("credit_limit cannot be negative", field="credit_limit")

    player = Player(
        player_code=_next_player_code(),
        player_name=name,
        phone_number=phone_number.strip() if phone_number else None,
        credit_limit=credit_limit,
        stored_chips=0,
        is_active=True,
    )
    db.session.add(player)
    db.session.flush()
    return player


def create_player(player_name: str, phone_number: str | None = None, credit_limit: int = 0) -> Player:
    """Register a player in the directory."""
    try:
        player = _add_player(player_name, phone_number, credit_limit)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return player


def resolve_player(
    *,
    player_id: int | None = None,
    player_code: str | None = None,
    phone_number: str | None = None,
    player_name: str | None = None,
) -> Player:
    """
    Find the player a cashier operation refers to.

    Lookup order: id, code, phone. When nothing matches but a name is given,
    an occasional player is created in the caller's unit of work (no commit).

    Raises:
        PlayerNotFoundError: If the identifiers match nobody and no name was given
    """
    if player_id:
        return get_player(player_id)

    if player_code:
        player = find_by_code(player_code)
        if not player:
            raise PlayerNotFoundError(f"Player {player_code} not found", player_code=player_code)
        return player

    if phone_number:
        player = find_by_phone(phone_number)
        if player:
            return player

    if player_name:
        return _add_player(player_name, phone_number, 0)

    raise PlayerNotFoundError("Insufficient player information provided")


def resolve_from_payload(data: dict) -> Player:
    return resolve_player(
        player_id=data.get("player_id"),
        player_code=data.get("player_code"),
        phone_number=data.get("phone_number"),
        player_name=data.get("player_name"),
    )


def list_players(search: str | None = None, limit: int = 100) -> list[Player]:
    query = db.session.query(Player).filter(Player.is_active.is_(True))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(
            db.or_(Player.player_name.ilike(like), Player.player_code.ilike(like), Player.phone_number.ilike(like))
        )
    return query.order_by(Player.player_name).limit(limit).all()
