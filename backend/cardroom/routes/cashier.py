# Overview: Flask API routes for cashier desk operations; parses input and returns JSON responses.

# backend/cardroom/routes/cashier.py
"""
Cashier Desk API Routes

All endpoints act on an explicit session id. Players are resolved from the
request body (player_id, player_code, phone_number, or player_name to
register an occasional player).
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import with_actor, ledger_errors
from ..services import cashier_service, player_service, transaction_service
from ..validation import parse_amount, parse_optional_amount


cashier_bp = Blueprint("cashier", __name__, url_prefix="/api/sessions/<int:session_id>")


def _body() -> dict:
    return request.get_json(silent=True) or {}


@cashier_bp.post("/buy-in")
@with_actor
@ledger_errors("Failed to record buy-in")
def buy_in_route(session_id: int):
    """
    Request body:
    {
        "player_id": 1,  (or player_code / phone_number / player_name)
        "amount": 5000,
        "chips_amount": 5000,  (optional, defaults to amount)
        "chip_breakdown": {"chips_500": 10},  (optional, fewest chips if omitted)
        "payment_mode": "cash"  (cash, online_sbi, online_hdfc, online_icici, online_other)
    }
    """
    data = _body()
    player = player_service.resolve_from_payload(data)
    result = cashier_service.record_buy_in(
        session_id,
        player.id,
        parse_amount(data.get("amount")),
        data.get("chip_breakdown"),
        data.get("payment_mode", transaction_service.PAYMENT_MODE_CASH),
        chips_amount=parse_optional_amount(data.get("chips_amount"), "chips_amount"),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@cashier_bp.post("/cash-payout")
@with_actor
@ledger_errors("Failed to record cash payout")
def cash_payout_route(session_id: int):
    data = _body()
    player = player_service.resolve_from_payload(data)
    result = cashier_service.record_cash_payout(
        session_id,
        player.id,
        data.get("chip_breakdown"),
        chips_amount=parse_optional_amount(data.get("chips_amount"), "chips_amount"),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@cashier_bp.post("/deposit-chips")
@with_actor
@ledger_errors("Failed to deposit chips")
def deposit_chips_route(session_id: int):
    data = _body()
    player = player_service.resolve_from_payload(data)
    result = cashier_service.deposit_chips(
        session_id,
        player.id,
        data.get("chip_breakdown"),
        chips_amount=parse_optional_amount(data.get("chips_amount"), "chips_amount"),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@cashier_bp.post("/deposit-cash")
@with_actor
@ledger_errors("Failed to deposit cash")
def deposit_cash_route(session_id: int):
    data = _body()
    player = player_service.resolve_from_payload(data)
    result = cashier_service.deposit_cash(
        session_id,
        player.id,
        parse_amount(data.get("amount")),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@cashier_bp.post("/redeem-stored")
@with_actor
@ledger_errors("Failed to redeem stored chips")
def redeem_stored_route(session_id: int):
    data = _body()
    player = player_service.resolve_from_payload(data)
    result = cashier_service.redeem_stored_chips(
        session_id,
        player.id,
        data.get("chip_breakdown"),
        amount=parse_optional_amount(data.get("amount")),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@cashier_bp.post("/expenses")
@with_actor
@ledger_errors("Failed to record expense")
def expense_route(session_id: int):
    data = _body()
    result = cashier_service.record_expense(
        session_id,
        parse_amount(data.get("amount")),
        data.get("category", "miscellaneous"),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@cashier_bp.post("/player-expenses")
@with_actor
@ledger_errors("Failed to record player expense")
def player_expense_route(session_id: int):
    data = _body()
    player_id = None
    if any(data.get(k) for k in ("player_id", "player_code", "phone_number")):
        player_id = player_service.resolve_from_payload(data).id
    result = cashier_service.record_player_expense(
        session_id,
        data.get("chip_breakdown"),
        data.get("category", "food_delivery"),
        player_id=player_id,
        player_name=data.get("player_name"),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@cashier_bp.post("/dealer-tips")
@with_actor
@ledger_errors("Failed to record dealer tip")
def dealer_tip_route(session_id: int):
    data = _body()
    if not data.get("dealer_id") or not data.get("dealer_name"):
        return jsonify({"error": "dealer_id and dealer_name required"}), 400
    percentage = data.get("cash_percentage")
    result = cashier_service.record_dealer_tip(
        session_id,
        parse_amount(data.get("dealer_id"), "dealer_id"),
        data["dealer_name"],
        data.get("chip_breakdown"),
        cash_percentage=parse_amount(percentage, "cash_percentage", allow_zero=True) if percentage is not None else None,
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@cashier_bp.post("/rakeback")
@with_actor
@ledger_errors("Failed to record rakeback")
def rakeback_route(session_id: int):
    data = _body()
    player = player_service.resolve_from_payload(data)
    result = cashier_service.record_rakeback(
        session_id,
        player.id,
        data.get("chip_breakdown"),
        data.get("rakeback_type", "rakeback"),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@cashier_bp.post("/adjustments")
@with_actor
@ledger_errors("Failed to adjust player balance")
def adjustment_route(session_id: int):
    data = _body()
    player = player_service.resolve_from_payload(data)
    result = cashier_service.adjust_player_balance(
        session_id,
        player.id,
        parse_amount(data.get("adjustment_amount", data.get("amount")), "adjustment_amount"),
        data.get("adjustment_type"),
        reason=data.get("reason"),
        actor_user_id=g.actor_user_id,
    )
    return jsonify(result), 201


@cashier_bp.get("/players/<int:player_id>/status")
@ledger_errors("Failed to load player status")
def player_status_route(session_id: int, player_id: int):
    player_service.get_player(player_id)
    return jsonify(transaction_service.player_session_status(session_id, player_id)), 200
