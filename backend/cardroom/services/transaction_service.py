# Overview: Service-layer operations for the transaction log; append, query, replay and drift checks.

from __future__ import annotations

"""
Cashier Transaction Log Invariants (authoritative)

- Append-only: one Transaction per ledger-affecting operation.
- Written inside the same unit of work as the wallet/chip/credit mutation it
  records (flush here, commit by the caller).
- Every recorded effect must agree with TRANSACTION_KINDS; that table is the
  only place kinds are interpreted, both here and in the aggregations.
- Session counters are a cache of replay(); verify_session() reports drift.
"""

from collections import defaultdict
from dataclasses import dataclass, field

from sqlalchemy import func

from ..extensions import db
from ..chips import ChipBreakdown, DENOMINATION_KEYS
from ..models import (
    Credit,
    DailySession,
    Player,
    Transaction,
    TransactionKind,
    TRANSACTION_KINDS,
)
from ..models.transactions import (
    CHIPS_GIVE,
    CHIPS_OPENING,
    CHIPS_RECEIVE,
    WALLET_NONE,
    WALLET_PRIMARY_CREDIT,
    WALLET_SECONDARY_CREDIT,
    WALLET_SPLIT_DEBIT,
)


# =============================================================================
# PAYMENT MODES (CONSTANTS)
# =============================================================================

PAYMENT_MODE_CASH = "cash"
PAYMENT_MODE_ONLINE_SBI = "online_sbi"
PAYMENT_MODE_ONLINE_HDFC = "online_hdfc"
PAYMENT_MODE_ONLINE_ICICI = "online_icici"
PAYMENT_MODE_ONLINE_OTHER = "online_other"

VALID_PAYMENT_MODES = [
    PAYMENT_MODE_CASH,
    PAYMENT_MODE_ONLINE_SBI,
    PAYMENT_MODE_ONLINE_HDFC,
    PAYMENT_MODE_ONLINE_ICICI,
    PAYMENT_MODE_ONLINE_OTHER,
]


# =============================================================================
# RECORDING
# =============================================================================

def _wallet_used(primary_delta: int, secondary_delta: int) -> str:
    if primary_delta and secondary_delta:
        return "both"
    if primary_delta:
        return "primary"
    if secondary_delta:
        return "secondary"
    return "none"


def _check_wallet_effect(kind: TransactionKind, wallet_effect: str, primary_delta: int, secondary_delta: int) -> None:
    ok = {
        WALLET_NONE: primary_delta == 0 and secondary_delta == 0,
        WALLET_PRIMARY_CREDIT: primary_delta >= 0 and secondary_delta == 0,
        WALLET_SECONDARY_CREDIT: primary_delta == 0 and secondary_delta >= 0,
        WALLET_SPLIT_DEBIT: primary_delta <= 0 and secondary_delta <= 0,
    }[wallet_effect]
    if not ok:
        raise ValueError(
            f"{kind.value}: wallet deltas (primary {primary_delta}, secondary {secondary_delta}) "
            f"inconsistent with {wallet_effect}"
        )


def record(
    session: DailySession,
    kind: TransactionKind,
    *,
    player: Player | None = None,
    player_name: str | None = None,
    amount: int = 0,
    chips: ChipBreakdown | None = None,
    chips_amount: int | None = None,
    primary_delta: int = 0,
    secondary_delta: int = 0,
    credit_settled: int = 0,
    payment_mode: str | None = None,
    category: str | None = None,
    reference_type: str | None = None,
    reference_id: int | None = None,
    notes: str | None = None,
    actor_user_id: int | None = None,
) -> Transaction:
    """
    Append one immutable Transaction to the session log.

    No commit: the caller's unit of work commits the mutation and the log
    entry together.

    Raises:
        ValueError: If the recorded effects contradict the kind table
    """
    spec = TRANSACTION_KINDS[kind]
    chips = chips or ChipBreakdown()
    if chips_amount is None:
        chips_amount = chips.value()
    if chips_amount < 0 and kind is not TransactionKind.BALANCE_ADJUSTMENT:
        raise ValueError(f"{kind.value}: chips_amount cannot be negative")

    _check_wallet_effect(kind, spec.wallet_effect, primary_delta, secondary_delta)

    txn = Transaction(
        session_id=session.id,
        kind=kind.value,
        player_id=player.id if player else None,
        player_name=player.player_name if player else player_name,
        amount=amount,
        chips_amount=chips_amount,
        chip_effect=spec.chip_effect,
        payment_mode=payment_mode,
        category=category,
        wallet_used=_wallet_used(primary_delta, secondary_delta),
        primary_delta=primary_delta,
        secondary_delta=secondary_delta,
        credit_settled=credit_settled,
        reference_type=reference_type,
        reference_id=reference_id,
        notes=notes,
        actor_user_id=actor_user_id,
        **chips.to_dict(),
    )
    db.session.add(txn)
    db.session.flush()  # ensures txn.id is assigned without committing
    return txn


# =============================================================================
# QUERIES
# =============================================================================

def session_transactions(session_id: int, kind: str | None = None, player_id: int | None = None) -> list[Transaction]:
    query = db.session.query(Transaction).filter_by(session_id=session_id)
    if kind:
        query = query.filter_by(kind=kind)
    if player_id:
        query = query.filter_by(player_id=player_id)
    return query.order_by(Transaction.id).all()


def player_transactions(player_id: int, session_id: int | None = None) -> list[Transaction]:
    query = db.session.query(Transaction).filter_by(player_id=player_id)
    if session_id:
        query = query.filter_by(session_id=session_id)
    return query.order_by(Transaction.id).all()


def get_transaction(transaction_id: int) -> Transaction | None:
    return db.session.get(Transaction, transaction_id)


def has_activity(session_id: int) -> bool:
    """True once anything beyond the session opening has been recorded."""
    return db.session.query(Transaction.id).filter(
        Transaction.session_id == session_id,
        Transaction.kind != TransactionKind.SESSION_OPEN.value,
    ).first() is not None


# =============================================================================
# REPLAY
# =============================================================================

@dataclass
class BucketStats:
    count: int = 0
    amount: int = 0
    chips_amount: int = 0
    credit_settled: int = 0
    from_primary: int = 0
    from_secondary: int = 0
    cash: int = 0
    online: int = 0

    def to_dict(self) -> dict:
        return dict(self.__dict__)


@dataclass
class LedgerReplay:
    """Session state recomputed from the transaction log alone."""

    owner_float: int = 0
    primary_wallet: int = 0
    secondary_wallet: int = 0
    secondary_wallet_deposits: int = 0
    secondary_wallet_withdrawals: int = 0
    total_float_additions: int = 0
    float_addition_count: int = 0
    chips: dict = field(default_factory=lambda: {
        state: {d: 0 for d in DENOMINATION_KEYS} for state in ("opening", "current", "out")
    })
    stats: dict = field(default_factory=lambda: defaultdict(BucketStats))
    transaction_count: int = 0
    player_ids: set = field(default_factory=set)

    def chip_breakdown(self, state: str) -> ChipBreakdown:
        return ChipBreakdown.from_counts(self.chips[state])

    def bucket(self, name: str) -> BucketStats:
        return self.stats[name]


def _apply(replay: LedgerReplay, txn: Transaction) -> None:
    spec = txn.kind_spec
    replay.transaction_count += 1
    if txn.player_id:
        replay.player_ids.add(txn.player_id)

    # Wallets
    replay.primary_wallet += txn.primary_delta
    replay.secondary_wallet += txn.secondary_delta
    if txn.secondary_delta > 0:
        replay.secondary_wallet_deposits += txn.secondary_delta
    elif txn.secondary_delta < 0:
        replay.secondary_wallet_withdrawals += -txn.secondary_delta
    if spec.wallet_effect == WALLET_PRIMARY_CREDIT:
        replay.owner_float += txn.primary_delta
    if txn.kind == TransactionKind.ADD_FLOAT.value:
        replay.total_float_additions += txn.amount
        replay.float_addition_count += 1

    # Chips
    counts = txn.chip_breakdown().counts()
    opening, current, out = replay.chips["opening"], replay.chips["current"], replay.chips["out"]
    for d, n in counts.items():
        if spec.chip_effect == CHIPS_OPENING:
            opening[d] += n
            current[d] += n
        elif spec.chip_effect == CHIPS_GIVE:
            current[d] -= n
            out[d] += n
        elif spec.chip_effect == CHIPS_RECEIVE:
            current[d] += n
            out[d] -= n

    # Stats
    bucket = replay.stats[spec.stat_bucket]
    bucket.count += 1
    bucket.amount += txn.amount
    bucket.chips_amount += txn.chips_amount
    bucket.credit_settled += txn.credit_settled
    if spec.wallet_effect == WALLET_SPLIT_DEBIT:
        bucket.from_primary += -txn.primary_delta
        bucket.from_secondary += -txn.secondary_delta
    if txn.payment_mode == PAYMENT_MODE_CASH:
        bucket.cash += txn.amount
    elif txn.payment_mode and txn.payment_mode.startswith("online_"):
        bucket.online += txn.amount


def replay(session_id: int) -> LedgerReplay:
    result = LedgerReplay()
    for txn in session_transactions(session_id):
        _apply(result, txn)
    return result


def session_outstanding_credit(session_id: int) -> int:
    """Re-sum of unsettled credit issued in this session."""
    total = db.session.query(func.coalesce(func.sum(Credit.credit_outstanding), 0)).filter(
        Credit.session_id == session_id,
        Credit.is_fully_settled.is_(False),
    ).scalar()
    return int(total or 0)


def verify_session(session: DailySession) -> list[dict]:
    """
    Compare stored session counters with the replayed log.

    Returns a list of drifts (field, stored, replayed); empty when consistent.
    """
    result = replay(session.id)
    expected = {
        "owner_float": result.owner_float,
        "primary_wallet": result.primary_wallet,
        "secondary_wallet": result.secondary_wallet,
        "secondary_wallet_deposits": result.secondary_wallet_deposits,
        "secondary_wallet_withdrawals": result.secondary_wallet_withdrawals,
        "total_float_additions": result.total_float_additions,
        "float_addition_count": result.float_addition_count,
    }
    # Closed sessions keep the outstanding total they closed with
    if not session.is_closed:
        expected["outstanding_credit"] = session_outstanding_credit(session.id)
    for state in ("opening", "current", "out"):
        for d, key in DENOMINATION_KEYS.items():
            expected[f"{key}_{state}"] = result.chips[state][d]

    drifts = []
    for name, replayed in expected.items():
        stored = getattr(session, name)
        if stored != replayed:
            drifts.append({"field": name, "stored": stored, "replayed": replayed})
    return drifts


# =============================================================================
# PLAYER VIEW
# =============================================================================

def player_session_status(session_id: int, player_id: int) -> dict:
    """
    A player's position in a session, derived from the log and credit records.

    chips_balance is what the player should be holding: chips received
    (buy-ins, credit, redemptions, rakeback, winnings) minus chips handed back
    (cash-outs, deposits, expenses, losses).
    """
    received = returned = bought_in = cashed_out = credit_taken = credit_settled = 0

    for txn in session_transactions(session_id, player_id=player_id):
        spec = txn.kind_spec
        if spec.player_chips > 0:
            if txn.chips_amount >= 0:
                received += txn.chips_amount
            else:
                returned += -txn.chips_amount
        elif spec.player_chips < 0:
            returned += txn.chips_amount

        if txn.kind == TransactionKind.BUY_IN.value:
            bought_in += txn.amount
        elif txn.kind == TransactionKind.CASH_PAYOUT.value:
            cashed_out += txn.amount
            credit_settled += txn.credit_settled
        elif txn.kind == TransactionKind.ISSUE_CREDIT.value:
            credit_taken += txn.chips_amount
        elif txn.kind == TransactionKind.SETTLE_CREDIT.value:
            credit_settled += txn.amount

    outstanding = db.session.query(func.coalesce(func.sum(Credit.credit_outstanding), 0)).filter(
        Credit.player_id == player_id,
        Credit.is_fully_settled.is_(False),
    ).scalar() or 0

    chips_balance = received - returned
    return {
        "session_id": session_id,
        "player_id": player_id,
        "chips_received": received,
        "chips_returned": returned,
        "chips_balance": chips_balance,
        "bought_in": bought_in,
        "cashed_out": cashed_out,
        "credit_taken": credit_taken,
        "credit_settled": credit_settled,
        "outstanding_credit": int(outstanding),
        "can_cash_out": chips_balance > 0,
        "must_settle_credit_first": int(outstanding) > 0 and chips_balance < int(outstanding),
    }
