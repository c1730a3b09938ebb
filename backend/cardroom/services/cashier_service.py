# Overview: Service-layer operations for the cashier desk; buy-ins, cash-outs, deposits, expenses, tips.

"""
Cashier Desk Operations

WHY: These are the day-to-day movements at the cage. Each one touches some
combination of the chip inventory, the two wallets and the credit ledger,
and each is written to the transaction log.

DESIGN PRINCIPLES:
- Explicit session_id on every call (no implicit "today" state)
- Chip breakdowns are validated once, at the top, into ChipBreakdown
- Every check (chips in hand, wallet cover, credit cover) runs before the
  first mutation; the unit of work rolls back anything else
- Exactly one Transaction per operation
- Cash debits always drain the secondary wallet (player money) first
"""

from __future__ import annotations

from flask import current_app

from ..chips import ChipBreakdown
from ..errors import InsufficientStoredChipsError, InvalidAmountError, ValidationError
from ..models import TransactionKind
from cardroom.validation import require_choice
from . import chip_service, credit_service, player_service, transaction_service, wallet_service
from .concurrency import load_open_session_for_update, session_unit_of_work


# =============================================================================
# CATEGORIES (CONSTANTS)
# =============================================================================

EXPENSE_CATEGORY_LABELS = {
    "food_delivery": "Food Delivery",
    "salary_advance": "Salary Advance",
    "utilities": "Utilities",
    "supplies": "Supplies",
    "maintenance": "Maintenance",
    "miscellaneous": "Miscellaneous",
}

ADJUSTMENT_WINNING = "winning"
ADJUSTMENT_LOSS = "loss"


def category_label(category: str) -> str:
    return EXPENSE_CATEGORY_LABELS.get(category, category)


def _chips(chip_breakdown, *, declared: int | None = None, required: bool = True) -> ChipBreakdown:
    breakdown = ChipBreakdown.from_payload(chip_breakdown)
    if required and breakdown.is_empty():
        raise InvalidAmountError("Chip breakdown is required")
    if declared is not None:
        breakdown.require_value(declared)
    return breakdown


def _positive(amount: int, field: str = "amount") -> int:
    if amount is None or amount <= 0:
        raise InvalidAmountError(f"{field} must be greater than 0", field=field, value=amount)
    return amount


# =============================================================================
# BUY-IN / CASH-OUT
# =============================================================================

def record_buy_in(
    session_id: int,
    player_id: int,
    amount: int,
    chip_breakdown=None,
    payment_mode: str = transaction_service.PAYMENT_MODE_CASH,
    *,
    chips_amount: int | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Player pays cash (or online) and receives chips.

    Args:
        amount: Money received from the player
        chip_breakdown: Chips handed over; the fewest chips for chips_amount if omitted
        chips_amount: Face value of chips given (defaults to amount)

    Raises:
        ChipBreakdownMismatchError: If the chips are not worth chips_amount
        InsufficientChipsError: If the desk lacks any denomination
    """
    require_choice(payment_mode, transaction_service.VALID_PAYMENT_MODES, "payment_mode")
    _positive(amount)
    declared = chips_amount if chips_amount is not None else amount
    breakdown = ChipBreakdown.from_payload(chip_breakdown)
    if breakdown.is_empty():
        breakdown = ChipBreakdown.optimal_for(declared)
    breakdown.require_value(declared)

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player(player_id)

        chip_service.give(session, breakdown)
        deltas = wallet_service.credit(session, amount, wallet_service.WALLET_SECONDARY)
        txn = transaction_service.record(
            session,
            TransactionKind.BUY_IN,
            player=player,
            amount=amount,
            chips=breakdown,
            payment_mode=payment_mode,
            notes=notes or f"Buy-in: {breakdown.describe()}",
            actor_user_id=actor_user_id,
            **deltas,
        )

        result = {
            "transaction_id": txn.id,
            "player_id": player.id,
            "player_name": player.player_name,
            "amount": amount,
            "chips_given": breakdown.value(),
            "chip_breakdown": breakdown.to_dict(),
            "payment_mode": payment_mode,
            "secondary_wallet": session.secondary_wallet,
            "message": f"Buy-in of ₹{amount} recorded for {player.player_name}. Chips given: {breakdown.describe()}",
        }
    return result


def record_cash_payout(
    session_id: int,
    player_id: int,
    chip_breakdown,
    *,
    chips_amount: int | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Player returns chips for cash.

    Outstanding credit (all of the player's unsettled records, oldest first)
    is settled out of the returned value before anything is paid; the rest is
    paid secondary wallet first, then primary.

    Raises:
        CreditExceedsReturnError: If the chips do not cover outstanding credit
        InsufficientFundsError: If both wallets cannot cover the net payout
    """
    breakdown = _chips(chip_breakdown, declared=chips_amount)
    returned = breakdown.value()

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player_for_update(player_id)

        plan = credit_service.plan_auto_settlement(player.id, returned)
        net_payout = returned - plan.total
        split = wallet_service.plan_debit(session, net_payout)

        wallet_service.apply_debit(session, split)
        chip_service.receive(session, breakdown)
        txn = transaction_service.record(
            session,
            TransactionKind.CASH_PAYOUT,
            player=player,
            amount=net_payout,
            chips=breakdown,
            credit_settled=plan.total,
            payment_mode=transaction_service.PAYMENT_MODE_CASH,
            notes=notes or (
                f"Cash payout ₹{net_payout}"
                + (f" after settling ₹{plan.total} credit" if plan.total else "")
            ),
            actor_user_id=actor_user_id,
            **split.deltas(),
        )
        touched = credit_service.apply_settlement(plan, txn)
        credit_service.refresh_outstanding(touched + [session.id])

        if plan.total:
            message = (
                f"Returned ₹{returned} in chips. ₹{plan.total} credit auto-settled. "
                f"Net cash payout: ₹{net_payout}"
            )
        else:
            message = f"Cash payout of ₹{net_payout} to {player.player_name}"
        result = {
            "transaction_id": txn.id,
            "player_id": player.id,
            "player_name": player.player_name,
            "chips_returned": returned,
            "chip_breakdown": breakdown.to_dict(),
            "credit_settled": plan.total,
            "net_payout": net_payout,
            "wallet": split.to_dict(),
            "secondary_wallet": session.secondary_wallet,
            "primary_wallet": session.primary_wallet,
            "session_outstanding_credit": session.outstanding_credit,
            "message": message,
        }
    current_app.logger.info("Session %s: %s", session_id, message)
    return result


# =============================================================================
# DEPOSITS
# =============================================================================

def deposit_chips(
    session_id: int,
    player_id: int,
    chip_breakdown,
    *,
    chips_amount: int | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """Player leaves chips with the house; they become stored chips."""
    breakdown = _chips(chip_breakdown, declared=chips_amount)

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player_for_update(player_id)

        chip_service.receive(session, breakdown)
        player.stored_chips += breakdown.value()
        txn = transaction_service.record(
            session,
            TransactionKind.DEPOSIT_CHIPS,
            player=player,
            chips=breakdown,
            notes=notes or f"Chips stored: {breakdown.describe()}",
            actor_user_id=actor_user_id,
        )
        result = {
            "transaction_id": txn.id,
            "player_id": player.id,
            "chips_deposited": breakdown.value(),
            "chip_breakdown": breakdown.to_dict(),
            "total_stored_chips": player.stored_chips,
            "message": f"₹{breakdown.value()} in chips stored for {player.player_name}",
        }
    return result


def deposit_cash(
    session_id: int,
    player_id: int,
    amount: int,
    *,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """Cash handed in by a player; goes to the secondary wallet."""
    _positive(amount)

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player(player_id)

        deltas = wallet_service.credit(session, amount, wallet_service.WALLET_SECONDARY)
        txn = transaction_service.record(
            session,
            TransactionKind.DEPOSIT_CASH,
            player=player,
            amount=amount,
            payment_mode=transaction_service.PAYMENT_MODE_CASH,
            notes=notes or f"Cash deposit by {player.player_name}",
            actor_user_id=actor_user_id,
            **deltas,
        )
        result = {
            "transaction_id": txn.id,
            "amount_deposited": amount,
            "secondary_wallet": session.secondary_wallet,
            "message": f"₹{amount} cash deposited. Added to secondary wallet.",
        }
    return result


def redeem_stored_chips(
    session_id: int,
    player_id: int,
    chip_breakdown=None,
    *,
    amount: int | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Hand stored chips back to the player.

    Raises:
        InsufficientStoredChipsError: If the player has less stored than requested
        InsufficientChipsError: If the desk lacks any denomination
    """
    breakdown = ChipBreakdown.from_payload(chip_breakdown)
    if breakdown.is_empty():
        breakdown = ChipBreakdown.optimal_for(_positive(amount))
    elif amount is not None:
        breakdown.require_value(amount)
    value = breakdown.value()

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player_for_update(player_id)
        if value > player.stored_chips:
            raise InsufficientStoredChipsError(requested=value, available=player.stored_chips)

        chip_service.give(session, breakdown)
        player.stored_chips -= value
        txn = transaction_service.record(
            session,
            TransactionKind.REDEEM_STORED,
            player=player,
            chips=breakdown,
            payment_mode="stored_balance",
            notes=notes or f"Stored chips redeemed: {breakdown.describe()}",
            actor_user_id=actor_user_id,
        )
        result = {
            "transaction_id": txn.id,
            "chips_redeemed": value,
            "chip_breakdown": breakdown.to_dict(),
            "remaining_stored_chips": player.stored_chips,
            "message": f"₹{value} in stored chips returned to {player.player_name}",
        }
    return result


# =============================================================================
# EXPENSES / TIPS / RAKEBACK
# =============================================================================

def record_expense(
    session_id: int,
    amount: int,
    category: str = "miscellaneous",
    *,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Club expense paid in cash from the wallets.

    Raises:
        InsufficientFundsError: If both wallets cannot cover the amount
    """
    _positive(amount)
    if not category:
        raise ValidationError("category is required", field="category")

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        split = wallet_service.debit(session, amount)
        txn = transaction_service.record(
            session,
            TransactionKind.EXPENSE,
            amount=amount,
            category=category,
            notes=notes or f"Club expense ({category_label(category)})",
            actor_user_id=actor_user_id,
            **split.deltas(),
        )
        result = {
            "transaction_id": txn.id,
            "amount": amount,
            "category": category,
            "category_label": category_label(category),
            "wallet": split.to_dict(),
            "message": f"Recorded club expense of ₹{amount} ({category_label(category)})",
        }
    return result


def record_player_expense(
    session_id: int,
    chip_breakdown,
    category: str = "food_delivery",
    *,
    player_id: int | None = None,
    player_name: str | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Player pays a vendor with chips; the desk takes the chips and pays the
    vendor the same value in cash.
    """
    breakdown = _chips(chip_breakdown)
    value = breakdown.value()

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player(player_id) if player_id else None

        split = wallet_service.plan_debit(session, value)
        wallet_service.apply_debit(session, split)
        chip_service.receive(session, breakdown)
        txn = transaction_service.record(
            session,
            TransactionKind.PLAYER_EXPENSE,
            player=player,
            player_name=player_name,
            amount=value,
            chips=breakdown,
            category=category,
            notes=notes or f"Player expense ({category_label(category)})",
            actor_user_id=actor_user_id,
            **split.deltas(),
        )
        result = {
            "transaction_id": txn.id,
            "chip_amount": value,
            "cash_paid_to_vendor": value,
            "chip_breakdown": breakdown.to_dict(),
            "wallet": split.to_dict(),
            "message": f"Player expense of ₹{value} recorded ({category_label(category)})",
        }
    return result


def record_dealer_tip(
    session_id: int,
    dealer_id: int,
    dealer_name: str,
    chip_breakdown,
    *,
    cash_percentage: int | None = None,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """
    Dealer turns in tip chips; a percentage of their value is paid in cash.

    Raises:
        InsufficientFundsError: If both wallets cannot cover the cash share
    """
    breakdown = _chips(chip_breakdown)
    if cash_percentage is None:
        cash_percentage = current_app.config.get("DEFAULT_DEALER_CASH_PERCENTAGE", 50)
    if not 0 <= cash_percentage <= 100:
        raise ValidationError("cash_percentage must be between 0 and 100", field="cash_percentage")
    value = breakdown.value()
    cash_paid = value * cash_percentage // 100

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)

        split = wallet_service.plan_debit(session, cash_paid)
        wallet_service.apply_debit(session, split)
        chip_service.receive(session, breakdown)
        txn = transaction_service.record(
            session,
            TransactionKind.DEALER_TIP,
            player_name=dealer_name,
            amount=cash_paid,
            chips=breakdown,
            category=f"{cash_percentage}%",
            reference_type="dealer",
            reference_id=dealer_id,
            notes=notes or f"Dealer tip: ₹{value} in chips, ₹{cash_paid} paid in cash",
            actor_user_id=actor_user_id,
            **split.deltas(),
        )
        result = {
            "transaction_id": txn.id,
            "dealer_id": dealer_id,
            "dealer_name": dealer_name,
            "chip_value": value,
            "cash_percentage": cash_percentage,
            "cash_paid": cash_paid,
            "wallet": split.to_dict(),
            "message": f"Dealer tip recorded for {dealer_name}: ₹{cash_paid} cash for ₹{value} in chips",
        }
    return result


def record_rakeback(
    session_id: int,
    player_id: int,
    chip_breakdown,
    rakeback_type: str = "rakeback",
    *,
    actor_user_id: int | None = None,
    notes: str | None = None,
) -> dict:
    """Loyalty chips given to a player from the desk."""
    breakdown = _chips(chip_breakdown)

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player(player_id)

        chip_service.give(session, breakdown)
        txn = transaction_service.record(
            session,
            TransactionKind.RAKEBACK,
            player=player,
            chips=breakdown,
            category=rakeback_type,
            notes=notes or f"Rakeback ({rakeback_type}): {breakdown.describe()}",
            actor_user_id=actor_user_id,
        )
        result = {
            "transaction_id": txn.id,
            "player_id": player.id,
            "chips_given": breakdown.value(),
            "chip_breakdown": breakdown.to_dict(),
            "message": f"Rakeback of ₹{breakdown.value()} given to {player.player_name}",
        }
    return result


# =============================================================================
# BALANCE ADJUSTMENT
# =============================================================================

def adjust_player_balance(
    session_id: int,
    player_id: int,
    amount: int,
    adjustment_type: str,
    *,
    reason: str | None = None,
    actor_user_id: int | None = None,
) -> dict:
    """
    Book a table win or loss against the player's chip balance.

    No chips or cash move at the desk.

    Raises:
        InvalidAmountError: If a loss is larger than the player's chip balance
    """
    _positive(amount)
    require_choice(adjustment_type, [ADJUSTMENT_WINNING, ADJUSTMENT_LOSS], "adjustment_type")
    reason = reason or "Gameplay adjustment"

    with session_unit_of_work(session_id):
        session = load_open_session_for_update(session_id)
        player = player_service.get_player(player_id)

        previous = transaction_service.player_session_status(session_id, player.id)["chips_balance"]
        if adjustment_type == ADJUSTMENT_LOSS and amount > previous:
            raise InvalidAmountError(
                f"Player cannot lose ₹{amount}. Only has ₹{previous}",
                amount=amount,
                chips_balance=previous,
            )
        signed = amount if adjustment_type == ADJUSTMENT_WINNING else -amount

        txn = transaction_service.record(
            session,
            TransactionKind.BALANCE_ADJUSTMENT,
            player=player,
            amount=amount,
            chips_amount=signed,
            category=adjustment_type,
            notes=f"{adjustment_type.capitalize()}: ₹{amount} ({reason})",
            actor_user_id=actor_user_id,
        )
        new_balance = previous + signed
        result = {
            "transaction_id": txn.id,
            "adjustment_type": adjustment_type,
            "adjustment_amount": amount,
            "previous_balance": previous,
            "new_balance": new_balance,
            "message": (
                f"Player {'won' if signed > 0 else 'lost'} ₹{amount}. New balance: ₹{new_balance}"
            ),
        }
    return result
