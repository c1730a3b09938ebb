# Overview: Flask API routes for daily sessions; parses input and returns JSON responses.

# backend/cardroom/routes/sessions.py
"""
Daily Session API Routes

DESIGN:
- Session lifecycle: open -> close, explicit reopen for a closed date
- Opening chip inventory (one-time) and float additions
- Dashboard and drift check are read-only
"""

from flask import Blueprint, request, jsonify, g

from ..decorators import with_actor, ledger_errors
from ..services import chip_service, dashboard_service, session_service, transaction_service
from ..chips import ChipBreakdown
from ..validation import parse_amount, parse_flag, parse_optional_amount


sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")


# =============================================================================
# LIFECYCLE
# =============================================================================

@sessions_bp.post("/")
@sessions_bp.post("")
@with_actor
@ledger_errors("Failed to open session")
def open_session_route():
    """
    Start the day's session.

    Request body:
    {
        "owner_float": 100000,
        "chip_inventory": {"chips_100": 50, "chips_500": 20},  (optional)
        "credit_limit": 50000,  (optional)
        "session_date": "2026-10-17",  (optional, defaults to today)
        "reopen": false  (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    result = session_service.open_session(
        parse_amount(data.get("owner_float"), "owner_float"),
        actor_user_id=g.actor_user_id,
        chip_inventory=data.get("chip_inventory"),
        credit_limit=parse_optional_amount(data.get("credit_limit"), "credit_limit", allow_zero=True),
        session_date=data.get("session_date"),
        reopen=parse_flag(data.get("reopen"), "reopen"),
    )
    return jsonify(result), 201


@sessions_bp.post("/reopen")
@with_actor
@ledger_errors("Failed to reopen session")
def reopen_session_route():
    data = request.get_json(silent=True) or {}
    result = session_service.reopen_session(
        parse_amount(data.get("owner_float"), "owner_float"),
        actor_user_id=g.actor_user_id,
        chip_inventory=data.get("chip_inventory"),
        credit_limit=parse_optional_amount(data.get("credit_limit"), "credit_limit", allow_zero=True),
        session_date=data.get("session_date"),
    )
    return jsonify(result), 201


@sessions_bp.get("/active")
@ledger_errors("Failed to load active session")
def active_session_route():
    session = session_service.get_active_session(request.args.get("date"))
    if not session:
        return jsonify({"session": None, "message": "No active session"}), 200
    return jsonify({"session": session.to_dict()}), 200


@sessions_bp.get("/")
@sessions_bp.get("")
@ledger_errors("Failed to list sessions")
def list_sessions_route():
    limit = request.args.get("limit", default=30, type=int)
    return jsonify({"sessions": [s.to_dict() for s in session_service.list_sessions(limit)]}), 200


@sessions_bp.get("/by-date/<session_date>")
@ledger_errors("Failed to load session")
def session_by_date_route(session_date: str):
    session = session_service.get_session_by_date(session_date)
    if not session:
        return jsonify({"error": f"No session for {session_date}"}), 404
    return jsonify({"session": session.to_dict()}), 200


@sessions_bp.get("/<int:session_id>")
@ledger_errors("Failed to load session")
def get_session_route(session_id: int):
    return jsonify({"session": session_service.get_session(session_id).to_dict()}), 200


@sessions_bp.post("/<int:session_id>/close")
@with_actor
@ledger_errors("Failed to close session")
def close_session_route(session_id: int):
    result = session_service.close_session(session_id, actor_user_id=g.actor_user_id)
    return jsonify(result), 200


# =============================================================================
# INVENTORY / FLOAT / LIMITS
# =============================================================================

@sessions_bp.post("/<int:session_id>/chip-inventory")
@with_actor
@ledger_errors("Failed to set chip inventory")
def set_chip_inventory_route(session_id: int):
    data = request.get_json(silent=True) or {}
    breakdown = ChipBreakdown.from_payload(data.get("chip_breakdown", data))
    result = chip_service.set_opening_inventory(session_id, breakdown, actor_user_id=g.actor_user_id)
    return jsonify(result), 200


@sessions_bp.get("/<int:session_id>/chip-inventory")
@ledger_errors("Failed to load chip inventory")
def chip_inventory_route(session_id: int):
    session = session_service.get_session(session_id)
    return jsonify(chip_service.inventory_status(session)), 200


@sessions_bp.post("/<int:session_id>/float")
@with_actor
@ledger_errors("Failed to add float")
def add_float_route(session_id: int):
    """
    Request body:
    {
        "amount": 50000,
        "chip_breakdown": {"chips_5000": 10},  (optional, must equal amount)
        "reason": "Evening top-up"  (optional)
    }
    """
    data = request.get_json(silent=True) or {}
    result = session_service.add_float(
        session_id,
        parse_amount(data.get("amount")),
        chip_breakdown=data.get("chip_breakdown"),
        reason=data.get("reason"),
        actor_user_id=g.actor_user_id,
    )
    return jsonify(result), 201


@sessions_bp.get("/<int:session_id>/float")
@ledger_errors("Failed to load float summary")
def float_summary_route(session_id: int):
    return jsonify(session_service.float_summary(session_id)), 200


@sessions_bp.get("/<int:session_id>/float/history")
@ledger_errors("Failed to load float history")
def float_history_route(session_id: int):
    session_service.get_session(session_id)
    additions = session_service.float_history(session_id)
    return jsonify({"additions": [a.to_dict() for a in additions]}), 200


@sessions_bp.put("/<int:session_id>/credit-limit")
@with_actor
@ledger_errors("Failed to set credit limit")
def set_credit_limit_route(session_id: int):
    data = request.get_json(silent=True) or {}
    result = session_service.set_session_credit_limit(
        session_id,
        parse_amount(data.get("credit_limit"), "credit_limit", allow_zero=True),
        actor_user_id=g.actor_user_id,
    )
    return jsonify(result), 200


# =============================================================================
# READS
# =============================================================================

@sessions_bp.get("/<int:session_id>/dashboard")
@ledger_errors("Failed to build dashboard")
def dashboard_route(session_id: int):
    return jsonify(dashboard_service.get_dashboard(session_id)), 200


@sessions_bp.get("/<int:session_id>/transactions")
@ledger_errors("Failed to list transactions")
def transactions_route(session_id: int):
    txns = transaction_service.session_transactions(
        session_id,
        kind=request.args.get("kind"),
        player_id=request.args.get("player_id", type=int),
    )
    return jsonify({"transactions": [t.to_dict() for t in txns]}), 200


@sessions_bp.get("/<int:session_id>/verify")
@ledger_errors("Failed to verify session")
def verify_route(session_id: int):
    drifts = transaction_service.verify_session(session_service.get_session(session_id))
    return jsonify({"consistent": not drifts, "drifts": drifts}), 200


@sessions_bp.get("/<int:session_id>/summary")
@ledger_errors("Failed to load session summary")
def summary_route(session_id: int):
    summary = session_service.get_session_summary(session_id)
    if not summary:
        return jsonify({"error": "Session summary not found"}), 404
    return jsonify({"summary": summary.to_dict()}), 200


@sessions_bp.get("/summaries")
@ledger_errors("Failed to list session summaries")
def summaries_route():
    limit = request.args.get("limit", default=30, type=int)
    summaries = session_service.list_session_summaries(limit)
    return jsonify({"summaries": [s.to_dict() for s in summaries]}), 200
