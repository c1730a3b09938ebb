# Overview: Flask API routes for the player directory; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g

from ..decorators import with_actor, ledger_errors
from ..services import credit_service, player_service
from ..validation import parse_amount


players_bp = Blueprint("players", __name__, url_prefix="/api/players")


@players_bp.post("/")
@players_bp.post("")
@ledger_errors("Failed to create player")
def create_player_route():
    data = request.get_json(silent=True) or {}
    credit_limit = data.get("credit_limit")
    player = player_service.create_player(
        data.get("player_name"),
        phone_number=data.get("phone_number"),
        credit_limit=parse_amount(credit_limit, "credit_limit", allow_zero=True) if credit_limit is not None else 0,
    )
    return jsonify({"player": player.to_dict()}), 201


@players_bp.get("/")
@players_bp.get("")
@ledger_errors("Failed to list players")
def list_players_route():
    players = player_service.list_players(
        search=request.args.get("search"),
        limit=request.args.get("limit", default=100, type=int),
    )
    return jsonify({"players": [p.to_dict() for p in players]}), 200


@players_bp.get("/<int:player_id>")
@ledger_errors("Failed to load player")
def get_player_route(player_id: int):
    return jsonify({"player": player_service.get_player(player_id).to_dict()}), 200


@players_bp.get("/<int:player_id>/credit-status")
@ledger_errors("Failed to load credit status")
def credit_status_route(player_id: int):
    return jsonify(credit_service.player_credit_status(player_id)), 200


@players_bp.put("/<int:player_id>/credit-limit")
@with_actor
@ledger_errors("Failed to set credit limit")
def set_credit_limit_route(player_id: int):
    data = request.get_json(silent=True) or {}
    player = credit_service.set_player_credit_limit(
        player_id,
        parse_amount(data.get("credit_limit"), "credit_limit", allow_zero=True),
        actor_user_id=g.actor_user_id,
    )
    return jsonify({"player": player.to_dict()}), 200
