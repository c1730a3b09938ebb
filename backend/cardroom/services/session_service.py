# Overview: Service-layer operations for the daily session lifecycle; open, close, reopen, float.

"""
Daily Session Lifecycle

WHY: Every cash and chip movement of the day is accounted against one open
session. Closing it freezes the numbers into an immutable summary.

DESIGN PRINCIPLES:
- At most one open session per business date
- Owner float must be positive to open
- A closed date only reopens explicitly; the reopen is a fresh session row
  with its own opening state, linked to the closed one
- Close never blocks on chips in circulation or outstanding credit (warnings),
  only on pending credit requests
- net result = (primary + secondary at close) - opening float
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..chips import ChipBreakdown
from ..errors import (
    InvalidAmountError,
    NoActiveSessionError,
    PendingCreditRequestsError,
    SessionAlreadyOpenError,
    SessionClosedError,
    ValidationError,
)
from ..models import DailySession, FloatAddition, SessionSummary, TransactionKind
from cardroom.time_utils import business_date, utcnow
from . import chip_service, credit_service, dashboard_service, notification_service, transaction_service, wallet_service
from .concurrency import (
    date_mutex,
    load_open_session_for_update,
    load_session_for_update,
    session_unit_of_work,
    unit_of_work,
)


# =============================================================================
# LOOKUPS
# =============================================================================

def get_session(session_id: int) -> DailySession:
    session = db.session.get(DailySession, session_id)
    if not session:
        raise NoActiveSessionError(f"Session {session_id} not found", session_id=session_id)
    return session


def get_active_session(session_date=None) -> DailySession | None:
    """Open session for a business date (today by default), if any."""
    day = business_date(session_date)
    return db.session.query(DailySession).filter_by(session_date=day, is_closed=False).first()


def require_open_session(session_id: int) -> DailySession:
    session = get_session(session_id)
    if session.is_closed:
        raise SessionClosedError(f"Session {session_id} is closed", session_id=session_id)
    return session


def get_sessions_by_date(session_date) -> list[DailySession]:
    day = business_date(session_date)
    return db.session.query(DailySession).filter_by(session_date=day).order_by(DailySession.id).all()


def get_session_by_date(session_date) -> DailySession | None:
    """Latest session for a business date, open or closed."""
    day = business_date(session_date)
    return db.session.query(DailySession).filter_by(session_date=day).order_by(DailySession.id.desc()).first()


def list_sessions(limit: int = 30) -> list[DailySession]:
    return db.session.query(DailySession).order_by(DailySession.id.desc()).limit(limit).all()


# =============================================================================
# OPEN / REOPEN
# =============================================================================

def open_session(
    owner_float: int,
    *,
    actor_user_id: int | None = None,
    chip_inventory=None,
    credit_limit: int | None = None,
    session_date=None,
    reopen: bool = False,
) -> dict:
    """
    Start the day's session.

    Args:
        owner_float: Cash the owner puts in the primary wallet (must be > 0)
        chip_inventory: Optional opening chip stock; can be set later instead
        credit_limit: Cashier credit limit (defaults to DEFAULT_CASHIER_CREDIT_LIMIT)
        session_date: Business date (defaults to today)
        reopen: Required to start a new session on a date whose session was closed

    Raises:
        InvalidAmountError: If owner_float <= 0 or the chips are worth more than the float
        SessionAlreadyOpenError: If the date already has an open session
        SessionClosedError: If the date's session is closed and reopen is False
    """
    if owner_float is None or owner_float <= 0:
        raise InvalidAmountError("Owner float must be greater than 0", owner_float=owner_float)
    breakdown = ChipBreakdown.from_payload(chip_inventory)
    if breakdown.value() > owner_float:
        raise InvalidAmountError(
            f"Chip value ₹{breakdown.value()} cannot exceed owner float ₹{owner_float}",
            chip_value=breakdown.value(),
            owner_float=owner_float,
        )
    if credit_limit is None:
        credit_limit = current_app.config.get("DEFAULT_CASHIER_CREDIT_LIMIT", 50000)
    if credit_limit < 0:
        raise ValidationError("credit_limit cannot be negative", field="credit_limit")

    day = business_date(session_date)

    with unit_of_work(date_mutex(day)):
        existing_open = db.session.query(DailySession).filter_by(session_date=day, is_closed=False).first()
        if existing_open:
            raise SessionAlreadyOpenError(
                f"Session already open for {day} (session {existing_open.id})",
                session_id=existing_open.id,
            )

        last_closed = db.session.query(DailySession).filter_by(
            session_date=day, is_closed=True
        ).order_by(DailySession.id.desc()).first()
        if last_closed and not reopen:
            raise SessionClosedError(
                f"Session for {day} is already closed. Reopen it to continue.",
                session_id=last_closed.id,
            )
        if reopen and not last_closed:
            raise NoActiveSessionError(f"No closed session for {day} to reopen")

        session = DailySession(
            session_date=day,
            owner_float=owner_float,
            opening_float=owner_float,
            primary_wallet=0,
            secondary_wallet=0,
            cashier_credit_limit=credit_limit,
            chip_inventory_set=False,
            is_closed=False,
            opened_at=utcnow(),
            opened_by_user_id=actor_user_id,
            reopened_from_session_id=last_closed.id if last_closed else None,
        )
        db.session.add(session)
        db.session.flush()

        deltas = wallet_service.credit(session, owner_float, wallet_service.WALLET_PRIMARY)
        if not breakdown.is_empty():
            chip_service.add_to_opening(session, breakdown)
            session.chip_inventory_set = True

        transaction_service.record(
            session,
            TransactionKind.SESSION_OPEN,
            amount=owner_float,
            chips=breakdown,
            reference_type="session" if last_closed else None,
            reference_id=last_closed.id if last_closed else None,
            notes="Session reopened" if last_closed else "Session opened",
            actor_user_id=actor_user_id,
            **deltas,
        )

        current_app.logger.info(
            "Session %s %s for %s with owner float ₹%s",
            session.id, "reopened" if last_closed else "opened", day, owner_float,
        )
        result = {
            "session": session.to_dict(),
            "reopened_from_session_id": session.reopened_from_session_id,
            "message": (
                f"Session {'reopened' if last_closed else 'started'} for {day} "
                f"with owner float ₹{owner_float}"
                + ("" if breakdown.is_empty() else f" and {breakdown.count()} chips")
            ),
        }
    return result


def reopen_session(owner_float: int, **kwargs) -> dict:
    """Start a fresh session on a date whose session was closed."""
    return open_session(owner_float, reopen=True, **kwargs)


# =============================================================================
# FLOAT ADDITIONS
# =============================================================================

def add_float(
    session_id: int,
    amount: int,
    *,
    chip_breakdown=None,
    reason: str | None = None,
    actor_user_id: int | None = None,
) -> dict:
    """
    Top up the owner float mid-session (mali).

    Cash goes to the primary wallet and raises owner and opening float.
    Chips, when given, must be worth exactly the amount and join the opening
    and in-hand stock.

    Raises:
        InvalidAmountError: If amount <= 0
        ChipBreakdownMismatchError: If chips are given and their value differs from amount
    """
    if amount is None or amount <= 0:
        raise InvalidAmountError("Float amount must be greater than 0", amount=amount)
    breakdown = ChipBreakdown.from_payload(chip_breakdown)
    if not breakdown.is_empty():
        breakdown.require_value(amount)
    addition_type = (
        FloatAddition.ADDITION_CASH_ONLY if breakdown.is_empty() else FloatAddition.ADDITION_CASH_WITH_CHIPS
    )

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        now = utcnow()

        deltas = wallet_service.credit(session, amount, wallet_service.WALLET_PRIMARY)
        session.owner_float += amount
        session.opening_float += amount
        session.total_float_additions += amount
        session.float_addition_count += 1
        session.last_float_addition_at = now
        if not breakdown.is_empty():
            chip_service.add_to_opening(session, breakdown)

        addition = FloatAddition(
            session_id=session.id,
            float_amount=amount,
            total_chips_value=breakdown.value(),
            addition_type=addition_type,
            reason=reason,
            added_by_user_id=actor_user_id,
            created_at=now,
            **breakdown.to_dict(),
        )
        db.session.add(addition)
        db.session.flush()

        txn = transaction_service.record(
            session,
            TransactionKind.ADD_FLOAT,
            amount=amount,
            chips=breakdown,
            category=addition_type,
            reference_type="float_addition",
            reference_id=addition.id,
            notes=reason or "Float addition",
            actor_user_id=actor_user_id,
            **deltas,
        )

        current_app.logger.info("Session %s: float addition ₹%s (%s)", session.id, amount, addition_type)
        result = {
            "float_addition": addition.to_dict(),
            "transaction_id": txn.id,
            "new_primary_wallet": session.primary_wallet,
            "new_owner_float": session.owner_float,
            "total_float_additions": session.total_float_additions,
            "message": f"Float of ₹{amount} added"
            + ("" if breakdown.is_empty() else f" with {breakdown.count()} chips"),
        }
    return result


def float_summary(session_id: int) -> dict:
    return dashboard_service.float_block(get_session(session_id))


def float_history(session_id: int) -> list[FloatAddition]:
    return db.session.query(FloatAddition).filter_by(session_id=session_id).order_by(FloatAddition.id).all()


# =============================================================================
# CREDIT LIMIT
# =============================================================================

def set_session_credit_limit(session_id: int, credit_limit: int, *, actor_user_id: int | None = None) -> dict:
    if credit_limit is None or credit_limit < 0:
        raise ValidationError("credit_limit cannot be negative", field="credit_limit")
    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        previous = session.cashier_credit_limit
        session.cashier_credit_limit = credit_limit
        current_app.logger.info(
            "Session %s: cashier credit limit %s -> %s by user %s", session_id, previous, credit_limit, actor_user_id
        )
        result = {
            "session_id": session_id,
            "previous_limit": previous,
            "cashier_credit_limit": credit_limit,
            "message": f"Cashier credit limit set to ₹{credit_limit}",
        }
    return result


# =============================================================================
# CLOSE
# =============================================================================

def _close_warnings(dashboard: dict) -> list[dict]:
    warnings = []
    in_circulation = dashboard["chips_in_circulation"]
    if in_circulation > 0:
        warnings.append({
            "type": "chips_in_circulation",
            "message": f"₹{in_circulation} in chips still with players",
            "amount": in_circulation,
        })
    outstanding = dashboard["session"]["outstanding_credit"]
    if outstanding > 0:
        warnings.append({
            "type": "outstanding_credit",
            "message": f"₹{outstanding} credit outstanding",
            "amount": outstanding,
        })
    drifts = dashboard["reconciliation"]["drifts"]
    if drifts:
        warnings.append({
            "type": "ledger_drift",
            "message": f"{len(drifts)} session counters disagree with the transaction log",
            "drifts": drifts,
        })
    return warnings


def close_session(session_id: int, *, actor_user_id: int | None = None) -> dict:
    """
    Close the session and persist its summary.

    Raises:
        NoActiveSessionError: If the session does not exist
        SessionClosedError: If it is already closed
        PendingCreditRequestsError: If credit requests are still waiting for approval
    """
    with session_unit_of_work(session_id):
        session = load_session_for_update(session_id)
        if not session:
            raise NoActiveSessionError(f"Session {session_id} not found", session_id=session_id)
        if session.is_closed:
            raise SessionClosedError(f"Session {session_id} is already closed", session_id=session_id)

        pending = credit_service.pending_requests(session_id)
        if pending:
            raise PendingCreditRequestsError(
                f"{len(pending)} credit request(s) still pending approval",
                request_ids=[r.id for r in pending],
            )

        dashboard = dashboard_service.build_dashboard(session)
        warnings = _close_warnings(dashboard)
        totals = dashboard["stats"]["totals"]
        closing_float = session.primary_wallet + session.secondary_wallet
        net_result = closing_float - session.opening_float
        now = utcnow()

        summary = SessionSummary(
            session_id=session.id,
            session_date=session.session_date,
            opening_float=session.opening_float,
            closing_float=closing_float,
            total_float_additions=session.total_float_additions,
            total_deposits=totals["total_deposits"],
            total_withdrawals=totals["total_withdrawals"],
            total_expenses=totals["total_expenses"],
            chips_in_circulation=dashboard["chips_in_circulation"],
            outstanding_credit=session.outstanding_credit,
            net_result=net_result,
            total_players=totals["player_count"],
            total_transactions=totals["transaction_count"],
            warnings=warnings,
            summary_data=dashboard,
            closed_by_user_id=actor_user_id,
        )
        db.session.add(summary)

        session.closing_float = closing_float
        session.is_closed = True
        session.closed_at = now
        session.closed_by_user_id = actor_user_id
        db.session.flush()

        notification_service.publish(
            notification_service.EVENT_SESSION_CLOSED,
            summary.to_dict() | {"summary_data": None},
            session_id=session.id,
        )

        for warning in warnings:
            current_app.logger.warning("Session %s closed with warning: %s", session_id, warning["message"])
        current_app.logger.info(
            "Session %s closed: closing float ₹%s, net result ₹%s", session_id, closing_float, net_result
        )

        result = {
            "session": session.to_dict(),
            "summary": summary.to_dict(),
            "warnings": warnings,
            "message": (
                f"Session closed. Net result ₹{net_result}"
                + (f" with {len(warnings)} warning(s)" if warnings else "")
            ),
        }
    return result


# =============================================================================
# SUMMARIES
# =============================================================================

def get_session_summary(session_id: int) -> SessionSummary | None:
    return db.session.query(SessionSummary).filter_by(session_id=session_id).first()


def list_session_summaries(limit: int = 30) -> list[SessionSummary]:
    return db.session.query(SessionSummary).order_by(SessionSummary.id.desc()).limit(limit).all()
