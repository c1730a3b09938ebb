# Overview: Flask API routes for player credit; parses input and returns JSON responses.

# backend/cardroom/routes/credits.py
"""
Credit API Routes

DESIGN:
- Direct issue enforces the player's credit limit
- Requests auto-approve within limits (201) or wait for an admin (202)
- Admin approve/reject decides pending requests
- Settlement outside of cash-out goes to the secondary wallet
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import with_actor, ledger_errors
from ..services import credit_service, player_service, transaction_service
from ..validation import parse_amount, parse_optional_amount


credits_bp = Blueprint("credits", __name__, url_prefix="/api/credits")


def _body() -> dict:
    return request.get_json(silent=True) or {}


@credits_bp.post("/issue")
@with_actor
@ledger_errors("Failed to issue credit")
def issue_credit_route():
    """
    Request body:
    {
        "session_id": 1,
        "player_id": 3,
        "chip_breakdown": {"chips_500": 4},
        "amount": 2000  (optional, must match chip value)
    }
    """
    data = _body()
    player = player_service.resolve_from_payload(data)
    result = credit_service.issue_credit(
        parse_amount(data.get("session_id"), "session_id"),
        player.id,
        data.get("chip_breakdown"),
        amount=parse_optional_amount(data.get("amount")),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@credits_bp.post("/settle")
@with_actor
@ledger_errors("Failed to settle credit")
def settle_credit_route():
    data = _body()
    player = player_service.resolve_from_payload(data)
    result = credit_service.settle_credit(
        parse_amount(data.get("session_id"), "session_id"),
        player.id,
        parse_amount(data.get("amount", data.get("settle_amount")), "amount"),
        data.get("payment_mode", transaction_service.PAYMENT_MODE_CASH),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201


@credits_bp.get("/outstanding")
@ledger_errors("Failed to list outstanding credit")
def outstanding_route():
    credits = credit_service.outstanding_credits(
        session_id=request.args.get("session_id", type=int),
        player_id=request.args.get("player_id", type=int),
    )
    return jsonify({
        "credits": [c.to_dict() for c in credits],
        "total_outstanding": sum(c.credit_outstanding for c in credits),
    }), 200


# =============================================================================
# REQUESTS (approval workflow)
# =============================================================================

@credits_bp.post("/requests")
@with_actor
@ledger_errors("Failed to create credit request")
def create_request_route():
    data = _body()
    player = player_service.resolve_from_payload(data)
    result = credit_service.create_credit_request(
        parse_amount(data.get("session_id"), "session_id"),
        player.id,
        data.get("chip_breakdown"),
        amount=parse_optional_amount(data.get("amount")),
        actor_user_id=g.actor_user_id,
        notes=data.get("notes"),
    )
    return jsonify(result), 201 if result["auto_approved"] else 202


@credits_bp.get("/requests")
@ledger_errors("Failed to list credit requests")
def pending_requests_route():
    session_id = request.args.get("session_id", type=int)
    if not session_id:
        return jsonify({"error": "session_id required"}), 400
    requests = credit_service.pending_requests(session_id)
    return jsonify({"requests": [r.to_dict() for r in requests]}), 200


@credits_bp.post("/requests/<int:request_id>/approve")
@with_actor
@ledger_errors("Failed to approve credit request")
def approve_request_route(request_id: int):
    data = _body()
    result = credit_service.approve_credit_request(
        request_id, actor_user_id=g.actor_user_id, notes=data.get("notes")
    )
    return jsonify(result), 200


@credits_bp.post("/requests/<int:request_id>/reject")
@with_actor
@ledger_errors("Failed to reject credit request")
def reject_request_route(request_id: int):
    data = _body()
    result = credit_service.reject_credit_request(
        request_id, actor_user_id=g.actor_user_id, notes=data.get("notes")
    )
    return jsonify(result), 200
