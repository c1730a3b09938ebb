# Overview: Read-only dashboard over a session and its transaction log.

from __future__ import annotations

from ..extensions import db
from ..errors import NoActiveSessionError
from ..models import DailySession, FloatAddition
from . import chip_service, credit_service, transaction_service, wallet_service


EXPENSE_BUCKETS = ("club_expense", "player_expense", "dealer_tip")
DEBIT_BUCKETS = ("cash_payout",) + EXPENSE_BUCKETS


def float_block(session: DailySession) -> dict:
    additions = db.session.query(FloatAddition).filter_by(
        session_id=session.id
    ).order_by(FloatAddition.id).all()
    return {
        "original_float": session.owner_float - session.total_float_additions,
        "total_additions": session.total_float_additions,
        "addition_count": session.float_addition_count,
        "last_addition_at": session.to_dict()["last_float_addition_at"],
        "current_owner_float": session.owner_float,
        "opening_float": session.opening_float,
        "additions": [a.to_dict() for a in additions],
    }


def _stats(replay: transaction_service.LedgerReplay) -> dict:
    buy_in = replay.bucket("buy_in")
    payout = replay.bucket("cash_payout")
    settled = replay.bucket("credit_settled")
    issued = replay.bucket("credit_issued")
    expenses = {name: replay.bucket(name) for name in EXPENSE_BUCKETS}
    debits = [replay.bucket(name) for name in DEBIT_BUCKETS]

    return {
        "buy_ins": {
            "count": buy_in.count,
            "total": buy_in.amount,
            "cash": buy_in.cash,
            "online": buy_in.online,
        },
        "cash_payouts": {
            "count": payout.count,
            "total_paid": payout.amount,
            "chips_returned": payout.chips_amount,
            "credit_auto_settled": payout.credit_settled,
            "from_secondary": payout.from_secondary,
            "from_primary": payout.from_primary,
        },
        "credits": {
            "issued_count": issued.count,
            "issued_total": issued.chips_amount,
            "settled_by_payment": settled.amount,
            "settled_by_payment_cash": settled.cash,
            "settled_by_payment_online": settled.online,
            "settled_at_cash_out": payout.credit_settled,
        },
        "deposits": {
            "cash": replay.bucket("cash_deposit").amount,
            "chips": replay.bucket("chip_deposit").chips_amount,
            "stored_redeemed": replay.bucket("stored_redemption").chips_amount,
        },
        "expenses": {
            name: {"count": b.count, "total": b.amount, "from_secondary": b.from_secondary, "from_primary": b.from_primary}
            for name, b in expenses.items()
        },
        "rakeback": {
            "count": replay.bucket("rakeback").count,
            "chips": replay.bucket("rakeback").chips_amount,
        },
        "totals": {
            "total_deposits": replay.secondary_wallet_deposits,
            "total_withdrawals": sum(b.from_primary + b.from_secondary for b in debits),
            "total_expenses": sum(b.amount for b in expenses.values()),
            "transaction_count": replay.transaction_count,
            "player_count": len(replay.player_ids),
        },
    }


def build_dashboard(session: DailySession) -> dict:
    """
    Everything the cashier screen shows, computed from the session and its log.

    Pure read: never mutates the session.
    """
    replay = transaction_service.replay(session.id)
    drifts = transaction_service.verify_session(session)
    chips = chip_service.inventory_status(session)

    return {
        "session": session.to_dict(),
        "wallets": wallet_service.availability(session),
        "float": float_block(session),
        "chip_inventory": chips,
        "chips_in_circulation": chips["with_players"]["total_value"],
        "stats": _stats(replay),
        "credit_limit": credit_service.session_credit_limit_status(session),
        "outstanding_credits": [c.to_dict() for c in credit_service.outstanding_credits(session_id=session.id)],
        "pending_credit_requests": [r.to_dict() for r in credit_service.pending_requests(session.id)],
        "net_result": session.primary_wallet + session.secondary_wallet - session.opening_float,
        "reconciliation": {
            "consistent": not drifts,
            "drifts": drifts,
        },
    }


def get_dashboard(session_id: int) -> dict:
    session = db.session.get(DailySession, session_id)
    if not session:
        raise NoActiveSessionError(f"Session {session_id} not found", session_id=session_id)
    return build_dashboard(session)
