# Overview: Request decorators for API routes; acting user and business error mapping.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import LedgerError


def _parse_user_id(raw):
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def with_actor(f):
    """
    Establish the acting user for the ledger audit trail.

    Authentication is handled in front of this API; the gateway forwards the
    user id in the X-User-Id header. Sets g.actor_user_id (None if absent).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.actor_user_id = _parse_user_id(request.headers.get("X-User-Id"))
        return f(*args, **kwargs)

    return decorated_function


def ledger_errors(failure_message: str):
    """
    Translate business errors into JSON responses.

    LedgerError -> {"error", "code", "details"} with the error's HTTP status.
    Anything else is logged with traceback and answered with a 500.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except LedgerError as e:
                return jsonify(e.to_dict()), e.http_status
            except Exception:
                current_app.logger.exception(failure_message)
                return jsonify({"error": "Internal server error"}), 500

        return decorated_function
    return decorator
