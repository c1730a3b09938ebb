# Overview: Service-layer operations for player credit; issuance, settlement, limits and approvals.

"""
Credit Ledger

WHY: Regular players may take chips on credit and pay later, either in cash
or out of the chips they bring back at cash-out.

DESIGN PRINCIPLES:
- Issuing credit moves no physical chips and no cash
- One Credit row per issuance; outstanding = issued - settled
- Settlement is allocated oldest record first, across all sessions
- Partial settlement records the proportional share of the record's chip mix
- Session outstanding_credit is always re-summed from unsettled rows, never decremented
- Player limit: available = credit_limit - total outstanding; limit 0 = no credit
"""

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..chips import ChipBreakdown
from ..errors import (
    CreditExceedsReturnError,
    CreditLimitExceededError,
    CreditRequestError,
    InvalidAmountError,
    NoOutstandingCreditError,
    ValidationError,
)
from ..models import (
    Credit,
    CreditRequest,
    CreditSettlement,
    DailySession,
    Player,
    Transaction,
    TransactionKind,
)
from cardroom.time_utils import utcnow
from cardroom.validation import require_choice
from . import notification_service, player_service, transaction_service, wallet_service
from .concurrency import (
    load_open_session_for_update,
    lock_for_update,
    session_unit_of_work,
)


# =============================================================================
# LIMITS
# =============================================================================

def player_outstanding(player_id: int) -> int:
    total = db.session.query(func.coalesce(func.sum(Credit.credit_outstanding), 0)).filter(
        Credit.player_id == player_id,
        Credit.is_fully_settled.is_(False),
    ).scalar()
    return int(total or 0)


def player_credit_status(player_id: int) -> dict:
    player = player_service.get_player(player_id)
    outstanding = player_outstanding(player_id)
    available = max(0, player.credit_limit - outstanding)
    return {
        "player_id": player.id,
        "player_name": player.player_name,
        "credit_limit": player.credit_limit,
        "total_outstanding": outstanding,
        "available_credit": available,
        "can_get_credit": player.credit_limit > 0 and available > 0,
        "must_clear_first": player.credit_limit > 0 and available <= 0,
    }


def check_player_limit(player: Player, requested: int) -> None:
    """
    Raises:
        CreditLimitExceededError: If the player has no limit or requested > available
    """
    outstanding = player_outstanding(player.id)
    available = max(0, player.credit_limit - outstanding)
    if player.credit_limit <= 0 or requested > available:
        raise CreditLimitExceededError(
            requested=requested,
            limit=player.credit_limit,
            outstanding=outstanding,
            available=available,
        )


def set_player_credit_limit(player_id: int, credit_limit: int, *, actor_user_id: int | None = None) -> Player:
    if credit_limit < 0:
        raise ValidationError("credit_limit cannot be negative", field="credit_limit")
    try:
        player = player_service.get_player_for_update(player_id)
        player.credit_limit = credit_limit
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    current_app.logger.info(
        "Credit limit for player %s set to %s by user %s", player_id, credit_limit, actor_user_id
    )
    return player


def session_credit_issued(session_id: int) -> int:
    total = db.session.query(func.coalesce(func.sum(Credit.credit_issued), 0)).filter(
        Credit.session_id == session_id
    ).scalar()
    return int(total or 0)


def session_credit_limit_status(session: DailySession) -> dict:
    issued = session_credit_issued(session.id)
    return {
        "cashier_credit_limit": session.cashier_credit_limit,
        "credit_issued": issued,
        "remaining": max(0, session.cashier_credit_limit - issued),
        "outstanding_credit": session.outstanding_credit,
    }


# =============================================================================
# ISSUANCE (inside a unit of work)
# =============================================================================

def refresh_outstanding(session_ids) -> None:
    """Re-sum outstanding credit onto every affected open session."""
    for session_id in sorted(set(session_ids)):
        session = db.session.get(DailySession, session_id)
        if session and not session.is_closed:
            session.outstanding_credit = transaction_service.session_outstanding_credit(session_id)


def _issue_locked(
    session: DailySession,
    player: Player,
    breakdown: ChipBreakdown,
    *,
    actor_user_id: int | None,
    credit_request_id: int | None = None,
    notes: str | None = None,
) -> tuple[Credit, Transaction]:
    value = breakdown.value()
    credit = Credit(
        session_id=session.id,
        player_id=player.id,
        credit_request_id=credit_request_id,
        credit_issued=value,
        credit_settled=0,
        credit_outstanding=value,
        is_fully_settled=False,
        issued_by_user_id=actor_user_id,
        notes=notes,
        issued_at=utcnow(),
        **breakdown.to_dict(),
    )
    db.session.add(credit)
    db.session.flush()

    refresh_outstanding([session.id])

    txn = transaction_service.record(
        session,
        TransactionKind.ISSUE_CREDIT,
        player=player,
        chips=breakdown,
        reference_type="credit",
        reference_id=credit.id,
        notes=notes or f"Credit issued: {breakdown.describe()}",
        actor_user_id=actor_user_id,
    )
    current_app.logger.info(
        "Session %s: credit %s of ₹%s issued to player %s", session.id, credit.id, value, player.id
    )
    return credit, txn


def _validated_breakdown(chip_breakdown, amount: int | None) -> ChipBreakdown:
    breakdown = ChipBreakdown.from_payload(chip_breakdown)
    if breakdown.is_empty():
        if not amount:
            raise InvalidAmountError("Credit requires a chip breakdown or an amount")
        breakdown = ChipBreakdown.optimal_for(amount)
    if amount is not None:
        breakdown.require_value(amount)
    return breakdown


def issue_credit(
    session_id: int,
    player_id: int,
    chip_breakdown=None,
    *,
    amount: int | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
    enforce_limit: bool = True,
) -> dict:
    """
    Give a player chips on credit.

    Does not touch chip inventory or wallets. With enforce_limit the player's
    available credit must cover the value.

    Raises:
        ChipBreakdownMismatchError: If amount is given and differs from the chip value
        CreditLimitExceededError: If the player's available credit is too low
    """
    breakdown = _validated_breakdown(chip_breakdown, amount)

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player_for_update(player_id)
        if enforce_limit:
            check_player_limit(player, breakdown.value())
        credit, txn = _issue_locked(session, player, breakdown, actor_user_id=actor_user_id, notes=notes)
        result = {
            "credit": credit.to_dict(),
            "transaction_id": txn.id,
            "credit_amount": credit.credit_issued,
            "session_outstanding_credit": session.outstanding_credit,
            "message": f"Credit of ₹{credit.credit_issued} issued to {player.player_name}",
        }
    return result


# =============================================================================
# SETTLEMENT
# =============================================================================

@dataclass
class SettlementPlan:
    """Oldest-first allocation of a settlement amount across credit records."""

    player_id: int
    outstanding: int
    allocations: list = field(default_factory=list)  # [(Credit, amount)]

    @property
    def total(self) -> int:
        return sum(amount for _, amount in self.allocations)

    def to_dict(self) -> dict:
        return {
            "total_outstanding": self.outstanding,
            "settled": self.total,
            "remaining_outstanding": self.outstanding - self.total,
            "allocations": [
                {"credit_id": credit.id, "amount": amount} for credit, amount in self.allocations
            ],
        }


def unsettled_credits(player_id: int) -> list[Credit]:
    """Player's open credit records, oldest first, locked for settlement."""
    query = db.session.query(Credit).filter(
        Credit.player_id == player_id,
        Credit.is_fully_settled.is_(False),
    ).order_by(Credit.issued_at, Credit.id)
    return lock_for_update(query).all()


def _allocate(player_id: int, amount: int) -> SettlementPlan:
    credits = unsettled_credits(player_id)
    plan = SettlementPlan(player_id=player_id, outstanding=sum(c.credit_outstanding for c in credits))
    remaining = min(amount, plan.outstanding)
    for credit in credits:
        if remaining <= 0:
            break
        share = min(remaining, credit.credit_outstanding)
        plan.allocations.append((credit, share))
        remaining -= share
    return plan


def plan_auto_settlement(player_id: int, returned_value: int) -> SettlementPlan:
    """
    Settlement taken out of chips returned at cash-out.

    Raises:
        CreditExceedsReturnError: If the returned value cannot cover all outstanding credit
    """
    plan = _allocate(player_id, returned_value)
    if returned_value < plan.outstanding:
        raise CreditExceedsReturnError(returned=returned_value, outstanding=plan.outstanding)
    return plan


def plan_settlement(player_id: int, amount: int) -> SettlementPlan:
    """
    Raises:
        NoOutstandingCreditError: If the player owes nothing
        InvalidAmountError: If amount exceeds what the player owes
    """
    plan = _allocate(player_id, amount)
    if plan.outstanding <= 0:
        raise NoOutstandingCreditError("Player has no outstanding credit", player_id=player_id)
    if amount > plan.outstanding:
        raise InvalidAmountError(
            f"Settlement amount ₹{amount} exceeds outstanding credit ₹{plan.outstanding}",
            amount=amount,
            outstanding=plan.outstanding,
        )
    return plan


def apply_settlement(plan: SettlementPlan, txn: Transaction) -> list[int]:
    """
    Mutate credit records per plan and write the allocation audit rows.

    Returns the ids of the sessions whose outstanding total changed.
    """
    now = utcnow()
    touched = []
    for credit, amount in plan.allocations:
        credit.credit_settled += amount
        credit.credit_outstanding -= amount
        if credit.credit_outstanding <= 0:
            credit.credit_outstanding = 0
            credit.is_fully_settled = True
            credit.settled_at = now

        share = credit.chip_breakdown().prorate(amount, credit.credit_issued)
        db.session.add(CreditSettlement(
            credit_id=credit.id,
            transaction_id=txn.id,
            amount=amount,
            **share.to_dict(),
        ))
        touched.append(credit.session_id)
    db.session.flush()
    return touched


def settle_credit(
    session_id: int,
    player_id: int,
    amount: int,
    payment_mode: str = transaction_service.PAYMENT_MODE_CASH,
    *,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Player pays back credit outside of cash-out.

    The payment lands in the secondary wallet (cash and online alike).

    Raises:
        NoOutstandingCreditError: If the player owes nothing
        InvalidAmountError: If amount exceeds the outstanding credit
    """
    require_choice(payment_mode, transaction_service.VALID_PAYMENT_MODES, "payment_mode")
    if amount <= 0:
        raise InvalidAmountError("Settlement amount must be greater than 0", amount=amount)

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player_for_update(player_id)
        plan = plan_settlement(player.id, amount)

        deltas = wallet_service.credit(session, amount, wallet_service.WALLET_SECONDARY)
        txn = transaction_service.record(
            session,
            TransactionKind.SETTLE_CREDIT,
            player=player,
            amount=amount,
            payment_mode=payment_mode,
            notes=notes or f"Credit settlement via {payment_mode}",
            actor_user_id=actor_user_id,
            **deltas,
        )
        touched = apply_settlement(plan, txn)
        refresh_outstanding(touched + [session.id])

        remaining = plan.outstanding - plan.total
        result = {
            "transaction_id": txn.id,
            "settled_amount": plan.total,
            "remaining_credit": remaining,
            "fully_settled": remaining == 0,
            "settlement": plan.to_dict(),
            "session_outstanding_credit": session.outstanding_credit,
            "message": (
                f"Credit settled: ₹{plan.total}. "
                + ("Fully settled." if remaining == 0 else f"Remaining: ₹{remaining}")
            ),
        }
    return result


def outstanding_credits(session_id: int | None = None, player_id: int | None = None) -> list[Credit]:
    query = db.session.query(Credit).filter(Credit.is_fully_settled.is_(False))
    if session_id:
        query = query.filter(Credit.session_id == session_id)
    if player_id:
        query = query.filter(Credit.player_id == player_id)
    return query.order_by(Credit.issued_at, Credit.id).all()


# =============================================================================
# CREDIT REQUESTS (approval workflow)
# =============================================================================

def _get_request_for_update(request_id: int) -> CreditRequest:
    request = lock_for_update(db.session.query(CreditRequest).filter_by(id=request_id)).first()
    if not request:
        raise CreditRequestError(f"Credit request {request_id} not found", request_id=request_id)
    return request


def create_credit_request(
    session_id: int,
    player_id: int,
    chip_breakdown=None,
    *,
    amount: int | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Raise a credit request at the cashier desk.

    Auto-approved (credit issued at once) when the amount fits both the
    player's available credit and the session's remaining cashier credit
    limit; otherwise left PENDING for an admin, which blocks session close.
    """
    breakdown = _validated_breakdown(chip_breakdown, amount)
    value = breakdown.value()

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player_for_update(player_id)

        request = CreditRequest(
            session_id=session.id,
            player_id=player.id,
            requested_amount=value,
            status=CreditRequest.STATUS_PENDING,
            notes=notes,
            requested_by_user_id=actor_user_id,
            **breakdown.to_dict(),
        )
        db.session.add(request)
        db.session.flush()

        player_available = max(0, player.credit_limit - player_outstanding(player.id))
        session_remaining = session_credit_limit_status(session)["remaining"]
        credit = None

        if player.credit_limit > 0 and value <= player_available and value <= session_remaining:
            credit, _ = _issue_locked(
                session, player, breakdown,
                actor_user_id=actor_user_id,
                credit_request_id=request.id,
                notes=notes,
            )
            request.status = CreditRequest.STATUS_AUTO_APPROVED
            request.decided_at = utcnow()
            request.decided_by_user_id = actor_user_id
            request.credit_id = credit.id
            event_type = notification_service.EVENT_CREDIT_APPROVED
            message = f"Credit of ₹{value} auto-approved for {player.player_name}"
        else:
            event_type = notification_service.EVENT_CREDIT_REQUESTED
            message = f"Credit request of ₹{value} for {player.player_name} sent for approval"

        db.session.flush()
        notification_service.publish(event_type, request.to_dict(), session_id=session.id)

        result = {
            "request": request.to_dict(),
            "credit": credit.to_dict() if credit else None,
            "auto_approved": credit is not None,
            "player_available_credit": player_available,
            "session_remaining_limit": session_remaining,
            "message": message,
        }
    return result


def approve_credit_request(request_id: int, *, actor_user_id: int | None = None, notes: str | None = None) -> dict:
    """
    Admin approval: issues the credit regardless of player and session limits.

    Raises:
        CreditRequestError: If the request is missing or already decided
    """
    session_id = _request_session_id(request_id)
    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        request = _get_request_for_update(request_id)
        if request.status != CreditRequest.STATUS_PENDING:
            raise CreditRequestError(
                f"Credit request {request_id} is already {request.status}", request_id=request_id
            )
        player = player_service.get_player_for_update(request.player_id)

        credit, _ = _issue_locked(
            session, player, request.chip_breakdown(),
            actor_user_id=actor_user_id,
            credit_request_id=request.id,
            notes=notes or request.notes,
        )
        request.status = CreditRequest.STATUS_APPROVED
        request.decided_by_user_id = actor_user_id
        request.decided_at = utcnow()
        request.decision_notes = notes
        request.credit_id = credit.id
        db.session.flush()

        notification_service.publish(
            notification_service.EVENT_CREDIT_APPROVED, request.to_dict(), session_id=session.id
        )
        result = {
            "request": request.to_dict(),
            "credit": credit.to_dict(),
            "message": f"Credit of ₹{credit.credit_issued} approved for {player.player_name}",
        }
    return result


def reject_credit_request(request_id: int, *, actor_user_id: int | None = None, notes: str | None = None) -> dict:
    session_id = _request_session_id(request_id)
    with session_unit_of_work(session_id):
        load_open_session_for_update(session_id)
        request = _get_request_for_update(request_id)
        if request.status != CreditRequest.STATUS_PENDING:
            raise CreditRequestError(
                f"Credit request {request_id} is already {request.status}", request_id=request_id
            )
        request.status = CreditRequest.STATUS_REJECTED
        request.decided_by_user_id = actor_user_id
        request.decided_at = utcnow()
        request.decision_notes = notes
        db.session.flush()

        notification_service.publish(
            notification_service.EVENT_CREDIT_REJECTED, request.to_dict(), session_id=session_id
        )
        result = {"request": request.to_dict(), "message": f"Credit request {request_id} rejected"}
    return result


def _request_session_id(request_id: int) -> int:
    request = db.session.get(CreditRequest, request_id)
    if not request:
        raise CreditRequestError(f"Credit request {request_id} not found", request_id=request_id)
    return request.session_id


def pending_requests(session_id: int) -> list[CreditRequest]:
    return db.session.query(CreditRequest).filter_by(
        session_id=session_id,
        status=CreditRequest.STATUS_PENDING,
    ).order_by(CreditRequest.id).all()
