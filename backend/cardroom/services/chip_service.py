# Overview: Service-layer operations for the chip inventory; give/receive against cashier stock.

"""
Chip Inventory Ledger

WHY: The cashier holds a finite physical stock of chips in four
denominations. Every chip that leaves the desk must exist in hand, and every
chip that comes back is accepted even if it was never handed out by this
desk (players win chips from each other and from the house).

DESIGN PRINCIPLES:
- give: current[d] -= n, out[d] += n; rejected if any current[d] would go negative
- receive: current[d] += n, out[d] -= n; never blocked
- out[d] is signed: a negative value means more came back than went out.
  Credit chips never leave through give, so the part of a negative out[d]
  covered by this session's credit issues is returned credit, the rest is
  house surplus
- current + out == opening for every denomination, at all times
- Mutators never commit; they run inside the caller's unit of work
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..chips import ChipBreakdown, DENOMINATION_KEYS
from ..errors import ChipInventoryAlreadySetError, InsufficientChipsError, InvalidAmountError
from ..models import Credit, DailySession, TransactionKind
from . import transaction_service
from .concurrency import load_open_session_for_update, session_unit_of_work


# =============================================================================
# INVENTORY MUTATIONS (called inside a unit of work)
# =============================================================================

def shortages(session: DailySession, breakdown: ChipBreakdown) -> list[dict]:
    current = session.chips("current").counts()
    return [
        {"denomination": d, "needed": n, "available": current[d], "short_by": n - current[d]}
        for d, n in sorted(breakdown.counts().items())
        if n > current[d]
    ]


def ensure_available(session: DailySession, breakdown: ChipBreakdown) -> None:
    """
    Raises:
        InsufficientChipsError: Listing every short denomination, not just the first
    """
    short = shortages(session, breakdown)
    if short:
        raise InsufficientChipsError(short)


def give(session: DailySession, breakdown: ChipBreakdown) -> None:
    """Hand chips from the cashier to a player."""
    ensure_available(session, breakdown)
    counts = breakdown.counts()
    for d, key in DENOMINATION_KEYS.items():
        setattr(session, f"{key}_current", getattr(session, f"{key}_current") - counts[d])
        setattr(session, f"{key}_out", getattr(session, f"{key}_out") + counts[d])


def receive(session: DailySession, breakdown: ChipBreakdown) -> None:
    """Take chips back from a player (or dealer). Never blocks."""
    counts = breakdown.counts()
    for d, key in DENOMINATION_KEYS.items():
        setattr(session, f"{key}_current", getattr(session, f"{key}_current") + counts[d])
        setattr(session, f"{key}_out", getattr(session, f"{key}_out") - counts[d])

    surplus = house_surplus(session)
    if surplus:
        current_app.logger.warning(
            "Session %s: more chips returned than issued (house surplus %s)",
            session.id,
            ChipBreakdown.from_counts(surplus).describe(),
        )


def add_to_opening(session: DailySession, breakdown: ChipBreakdown) -> None:
    """New stock entering the desk (session open, inventory set, chip float addition)."""
    counts = breakdown.counts()
    for d, key in DENOMINATION_KEYS.items():
        setattr(session, f"{key}_opening", getattr(session, f"{key}_opening") + counts[d])
        setattr(session, f"{key}_current", getattr(session, f"{key}_current") + counts[d])


def credit_chips_issued(session: DailySession) -> ChipBreakdown:
    """Chips handed out on credit during this session (outside the counters)."""
    columns = [db.func.coalesce(db.func.sum(getattr(Credit, key)), 0) for key in DENOMINATION_KEYS.values()]
    row = db.session.query(*columns).filter(Credit.session_id == session.id).one()
    return ChipBreakdown(*(int(n) for n in row))


def _returned_split(session: DailySession) -> tuple[dict[int, int], dict[int, int]]:
    """Split each negative out[d] into (returned credit chips, house surplus)."""
    issued_on_credit = credit_chips_issued(session).counts()
    returned, surplus = {}, {}
    for d, n in session.chips("out").counts().items():
        excess = max(0, -n)
        returned[d] = min(excess, issued_on_credit[d])
        surplus[d] = excess - returned[d]
    return returned, surplus


def house_surplus(session: DailySession) -> dict[int, int]:
    """Denominations where more came back than the desk handed out, credit chips included."""
    _, surplus = _returned_split(session)
    return {d: n for d, n in surplus.items() if n > 0}


# =============================================================================
# OPENING INVENTORY
# =============================================================================

def set_opening_inventory(session_id: int, breakdown: ChipBreakdown, *, actor_user_id: int | None = None) -> dict:
    """
    Record the chip stock the cashier starts the day with.

    One-time: guarded by chip_inventory_set and only allowed before any
    transaction beyond the session opening.

    Raises:
        ChipInventoryAlreadySetError: If already set or transactions have started
        InvalidAmountError: If the breakdown is empty or worth more than the owner float
    """
    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)

        if session.chip_inventory_set:
            raise ChipInventoryAlreadySetError(
                "Chip inventory already set for this session",
                session_id=session_id,
            )
        if transaction_service.has_activity(session_id):
            raise ChipInventoryAlreadySetError(
                "Chip inventory cannot be set after transactions have started",
                session_id=session_id,
            )
        if breakdown.is_empty():
            raise InvalidAmountError("Opening chip inventory cannot be empty")
        if breakdown.value() > session.owner_float:
            raise InvalidAmountError(
                f"Chip value ₹{breakdown.value()} cannot exceed owner float ₹{session.owner_float}",
                chip_value=breakdown.value(),
                owner_float=session.owner_float,
            )

        add_to_opening(session, breakdown)
        session.chip_inventory_set = True

        transaction_service.record(
            session,
            TransactionKind.CHIP_INVENTORY_SET,
            chips=breakdown,
            notes=f"Opening chip inventory: {breakdown.describe()}",
            actor_user_id=actor_user_id,
        )

        current_app.logger.info("Session %s: opening chip inventory set (%s)", session_id, breakdown.describe())
        result = {
            "session_id": session_id,
            "chip_inventory": breakdown.to_dict(),
            "total_chips": breakdown.count(),
            "total_value": breakdown.value(),
            "message": f"Chip inventory set: {breakdown.count()} chips worth ₹{breakdown.value()}",
        }
    return result


# =============================================================================
# REPORTING
# =============================================================================

def _state_rows(breakdown: ChipBreakdown) -> dict:
    counts = breakdown.counts()
    return {
        "chips_100": counts[100],
        "chips_500": counts[500],
        "chips_5000": counts[5000],
        "chips_10000": counts[10000],
        "total_count": sum(counts.values()),
        "total_value": sum(d * n for d, n in counts.items()),
    }


def inventory_status(session: DailySession) -> dict:
    """
    Opening / in-hand / with-players view of the chip stock.

    with_players floors each denomination at zero. The negative part of out
    is reported as returned_credit (chips issued on credit this session that
    came back) and house_surplus (the rest). discrepancy is the stored
    counters' departure from current + out == opening.
    """
    opening = session.chips("opening")
    current = session.chips("current")
    out = session.chips("out")
    with_players = ChipBreakdown.from_counts({d: max(0, n) for d, n in out.counts().items()})
    returned, surplus = _returned_split(session)

    expected_in_hand = opening.value() - out.value()
    return {
        "chip_inventory_set": session.chip_inventory_set,
        "opening": _state_rows(opening),
        "in_hand": _state_rows(current),
        "with_players": _state_rows(with_players),
        "issued_on_credit": _state_rows(credit_chips_issued(session)),
        "returned_credit": _state_rows(ChipBreakdown.from_counts(returned)),
        "house_surplus": _state_rows(ChipBreakdown.from_counts(surplus)),
        "expected_in_hand_value": expected_in_hand,
        "discrepancy": current.value() - expected_in_hand,
    }
