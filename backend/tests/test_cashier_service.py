"""
Cashier desk operations against a session opened with ₹1,00,000 float and
50 x ₹100 + 20 x ₹500 chips.
"""

import pytest

from cardroom.chips import DENOMINATION_KEYS
from cardroom.errors import (
    ChipBreakdownMismatchError,
    CreditExceedsReturnError,
    InsufficientChipsError,
    InsufficientFundsError,
    InsufficientStoredChipsError,
    InvalidAmountError,
    ValidationError,
)
from cardroom.models import Transaction, TransactionKind
from cardroom.services import (
    cashier_service,
    credit_service,
    dashboard_service,
    player_service,
    session_service,
    transaction_service,
)


def _reload(session_id):
    return session_service.get_session(session_id)


def _assert_conserved(session):
    for key in DENOMINATION_KEYS.values():
        opening = getattr(session, f"{key}_opening")
        assert getattr(session, f"{key}_current") + getattr(session, f"{key}_out") == opening, key
    assert transaction_service.verify_session(session) == []


class TestBuyIn:
    def test_buy_in_gives_chips_and_credits_secondary(self, open_session, player_a):
        result = cashier_service.record_buy_in(open_session.id, player_a.id, 5000, {"chips_500": 10})
        assert result["chips_given"] == 5000
        assert result["secondary_wallet"] == 5000

        session = _reload(open_session.id)
        assert session.chips_500_current == 10
        assert session.chips_500_out == 10
        assert session.primary_wallet == 100000
        _assert_conserved(session)

    def test_default_breakdown_is_fewest_chips(self, open_session, player_a):
        result = cashier_service.record_buy_in(open_session.id, player_a.id, 1600)
        assert result["chip_breakdown"] == {"chips_100": 1, "chips_500": 3, "chips_5000": 0, "chips_10000": 0}

    def test_online_payment_still_lands_in_secondary(self, open_session, player_a):
        cashier_service.record_buy_in(open_session.id, player_a.id, 5000, {"chips_500": 10}, "online_sbi")
        session = _reload(open_session.id)
        assert session.secondary_wallet == 5000

        stats = dashboard_service.build_dashboard(session)["stats"]["buy_ins"]
        assert stats == {"count": 1, "total": 5000, "cash": 0, "online": 5000}

    def test_insufficient_chips_lists_every_shortage(self, open_session, player_a):
        with pytest.raises(InsufficientChipsError) as exc:
            cashier_service.record_buy_in(
                open_session.id, player_a.id, 26000, {"chips_100": 60, "chips_500": 40}
            )
        shortages = {s["denomination"]: s for s in exc.value.shortages}
        assert shortages[100]["needed"] == 60 and shortages[100]["available"] == 50
        assert shortages[500]["needed"] == 40 and shortages[500]["available"] == 20

        session = _reload(open_session.id)
        assert session.secondary_wallet == 0
        assert session.chips_500_current == 20
        assert len(transaction_service.session_transactions(open_session.id)) == 1

    def test_breakdown_must_match_chips_amount(self, open_session, player_a):
        with pytest.raises(ChipBreakdownMismatchError):
            cashier_service.record_buy_in(open_session.id, player_a.id, 5000, {"chips_500": 9})

    def test_chips_amount_may_differ_from_cash(self, open_session, player_a):
        result = cashier_service.record_buy_in(
            open_session.id, player_a.id, 4500, {"chips_500": 10}, chips_amount=5000
        )
        assert result["amount"] == 4500
        assert result["chips_given"] == 5000

    def test_invalid_payment_mode(self, open_session, player_a):
        with pytest.raises(ValidationError):
            cashier_service.record_buy_in(open_session.id, player_a.id, 5000, payment_mode="cheque")


class TestCashPayout:
    def test_buy_in_then_cash_out_round_trip(self, open_session, player_a):
        cashier_service.record_buy_in(open_session.id, player_a.id, 5000, {"chips_500": 10})
        result = cashier_service.record_cash_payout(open_session.id, player_a.id, {"chips_500": 10})

        assert result["net_payout"] == 5000
        assert result["credit_settled"] == 0
        assert result["wallet"] == {"from_secondary": 5000, "from_primary": 0, "wallet_used": "secondary"}

        session = _reload(open_session.id)
        assert session.secondary_wallet == 0
        assert session.primary_wallet == 100000
        assert session.chips_500_current == 20
        assert session.chips_500_out == 0
        _assert_conserved(session)

    def test_payout_drains_secondary_then_primary(self, open_session, player_a, player_b):
        cashier_service.record_buy_in(open_session.id, player_a.id, 2000, {"chips_500": 4})
        cashier_service.record_buy_in(open_session.id, player_b.id, 1000, {"chips_500": 2})
        # A won B's chips at the table and returns all six
        result = cashier_service.record_cash_payout(open_session.id, player_a.id, {"chips_500": 6})
        assert result["wallet"]["from_secondary"] == 3000
        assert result["wallet"]["from_primary"] == 0

        cashier_service.record_buy_in(open_session.id, player_b.id, 1000, {"chips_500": 2})
        result = cashier_service.record_cash_payout(open_session.id, player_b.id, {"chips_500": 4})
        assert result["wallet"] == {"from_secondary": 1000, "from_primary": 1000, "wallet_used": "both"}
        assert _reload(open_session.id).primary_wallet == 99000

    def test_more_chips_back_than_issued_is_house_surplus(self, open_session, player_a):
        cashier_service.record_cash_payout(open_session.id, player_a.id, {"chips_100": 55})

        session = _reload(open_session.id)
        assert session.chips_100_current == 105
        assert session.chips_100_out == -55
        _assert_conserved(session)

        inventory = dashboard_service.build_dashboard(session)["chip_inventory"]
        assert inventory["with_players"]["total_value"] == 0
        assert inventory["house_surplus"]["chips_100"] == 55

    def test_auto_settles_outstanding_credit_first(self, open_session, player_b):
        credit_service.issue_credit(open_session.id, player_b.id, {"chips_500": 4})
        assert _reload(open_session.id).outstanding_credit == 2000

        result = cashier_service.record_cash_payout(open_session.id, player_b.id, {"chips_500": 6})
        assert result["chips_returned"] == 3000
        assert result["credit_settled"] == 2000
        assert result["net_payout"] == 1000
        assert result["session_outstanding_credit"] == 0

        session = _reload(open_session.id)
        assert session.outstanding_credit == 0
        assert session.primary_wallet == 99000
        assert credit_service.player_outstanding(player_b.id) == 0
        _assert_conserved(session)

    def test_credit_round_trip_pays_nothing(self, open_session, player_a):
        credit_service.issue_credit(open_session.id, player_a.id, {"chips_500": 6})
        result = cashier_service.record_cash_payout(open_session.id, player_a.id, {"chips_500": 6})
        assert result["net_payout"] == 0
        assert result["wallet"]["wallet_used"] == "none"
        assert credit_service.player_outstanding(player_a.id) == 0

    def test_returned_credit_chips_are_not_house_surplus(self, open_session, player_a):
        credit_service.issue_credit(open_session.id, player_a.id, {"chips_500": 4})
        cashier_service.record_cash_payout(open_session.id, player_a.id, {"chips_500": 4})

        inventory = dashboard_service.build_dashboard(_reload(open_session.id))["chip_inventory"]
        assert inventory["issued_on_credit"]["chips_500"] == 4
        assert inventory["returned_credit"]["chips_500"] == 4
        assert inventory["house_surplus"]["total_value"] == 0
        assert inventory["in_hand"]["chips_500"] == 24
        assert inventory["discrepancy"] == 0

    def test_chips_beyond_credit_are_house_surplus(self, open_session, player_b):
        credit_service.issue_credit(open_session.id, player_b.id, {"chips_500": 4})
        cashier_service.record_cash_payout(open_session.id, player_b.id, {"chips_500": 6})

        inventory = dashboard_service.build_dashboard(_reload(open_session.id))["chip_inventory"]
        assert inventory["returned_credit"]["chips_500"] == 4
        assert inventory["house_surplus"]["chips_500"] == 2

    def test_return_smaller_than_credit_is_rejected_without_mutation(self, open_session, player_b):
        credit_service.issue_credit(open_session.id, player_b.id, amount=800)
        before = _reload(open_session.id).to_dict()
        txn_count = Transaction.query.count()

        with pytest.raises(CreditExceedsReturnError) as exc:
            cashier_service.record_cash_payout(open_session.id, player_b.id, {"chips_500": 1})
        assert exc.value.details["shortfall"] == 300

        assert _reload(open_session.id).to_dict() == before
        assert Transaction.query.count() == txn_count
        assert credit_service.player_outstanding(player_b.id) == 800

    def test_insufficient_funds(self, db_session, player_a):
        session_id = session_service.open_session(1000)["session"]["id"]
        with pytest.raises(InsufficientFundsError):
            cashier_service.record_cash_payout(session_id, player_a.id, {"chips_5000": 1})
        assert _reload(session_id).chips_5000_current == 0


class TestDeposits:
    def test_deposit_and_redeem_stored_chips(self, open_session, player_a):
        cashier_service.record_buy_in(open_session.id, player_a.id, 5000, {"chips_500": 10})
        result = cashier_service.deposit_chips(open_session.id, player_a.id, {"chips_500": 10})
        assert result["total_stored_chips"] == 5000
        assert _reload(open_session.id).chips_500_out == 0

        result = cashier_service.redeem_stored_chips(open_session.id, player_a.id, amount=2000)
        assert result["chips_redeemed"] == 2000
        assert result["remaining_stored_chips"] == 3000
        assert player_service.get_player(player_a.id).stored_chips == 3000
        _assert_conserved(_reload(open_session.id))

    def test_cannot_redeem_more_than_stored(self, open_session, player_a):
        with pytest.raises(InsufficientStoredChipsError):
            cashier_service.redeem_stored_chips(open_session.id, player_a.id, {"chips_500": 1})

    def test_deposit_cash(self, open_session, player_a):
        result = cashier_service.deposit_cash(open_session.id, player_a.id, 3000)
        assert result["secondary_wallet"] == 3000
        assert _reload(open_session.id).secondary_wallet_deposits == 3000


class TestExpensesAndTips:
    def test_club_expense_drains_secondary_first(self, open_session, player_a):
        cashier_service.deposit_cash(open_session.id, player_a.id, 1000)
        result = cashier_service.record_expense(open_session.id, 1500, "supplies")
        assert result["wallet"] == {"from_secondary": 1000, "from_primary": 500, "wallet_used": "both"}
        assert result["category_label"] == "Supplies"

    def test_player_expense_takes_chips_and_pays_vendor(self, open_session, player_a):
        cashier_service.record_buy_in(open_session.id, player_a.id, 1000, {"chips_500": 2})
        result = cashier_service.record_player_expense(
            open_session.id, {"chips_500": 1}, player_id=player_a.id
        )
        assert result["cash_paid_to_vendor"] == 500
        session = _reload(open_session.id)
        assert session.secondary_wallet == 500
        assert session.chips_500_out == 1

    def test_dealer_tip_pays_cash_share(self, open_session):
        result = cashier_service.record_dealer_tip(open_session.id, 7, "Dealer Ravi", {"chips_100": 10})
        assert result["cash_percentage"] == 50
        assert result["cash_paid"] == 500
        session = _reload(open_session.id)
        assert session.primary_wallet == 99500
        assert session.chips_100_current == 60

    def test_dealer_tip_percentage_bounds(self, open_session):
        with pytest.raises(ValidationError):
            cashier_service.record_dealer_tip(
                open_session.id, 7, "Dealer Ravi", {"chips_100": 10}, cash_percentage=120
            )

    def test_rakeback_gives_chips_without_cash(self, open_session, player_a):
        cashier_service.record_rakeback(open_session.id, player_a.id, {"chips_100": 5})
        session = _reload(open_session.id)
        assert session.chips_100_out == 5
        assert session.primary_wallet + session.secondary_wallet == 100000


class TestBalanceAdjustment:
    def test_win_and_loss(self, open_session, player_a):
        cashier_service.record_buy_in(open_session.id, player_a.id, 5000, {"chips_500": 10})
        result = cashier_service.adjust_player_balance(open_session.id, player_a.id, 2000, "winning")
        assert result["new_balance"] == 7000

        result = cashier_service.adjust_player_balance(open_session.id, player_a.id, 3000, "loss")
        assert result["previous_balance"] == 7000
        assert result["new_balance"] == 4000

        status = transaction_service.player_session_status(open_session.id, player_a.id)
        assert status["chips_balance"] == 4000

    def test_loss_cannot_exceed_balance(self, open_session, player_a):
        cashier_service.record_buy_in(open_session.id, player_a.id, 1000, {"chips_500": 2})
        with pytest.raises(InvalidAmountError):
            cashier_service.adjust_player_balance(open_session.id, player_a.id, 1500, "loss")

    def test_adjustment_is_logged_with_signed_chips(self, open_session, player_a):
        cashier_service.record_buy_in(open_session.id, player_a.id, 1000, {"chips_500": 2})
        cashier_service.adjust_player_balance(open_session.id, player_a.id, 500, "loss")
        txns = transaction_service.session_transactions(
            open_session.id, kind=TransactionKind.BALANCE_ADJUSTMENT.value
        )
        assert txns[0].chips_amount == -500
        assert txns[0].amount == 500


def test_full_day_stays_consistent(open_session, player_a, player_b):
    cashier_service.record_buy_in(open_session.id, player_a.id, 5000, {"chips_500": 10})
    cashier_service.record_buy_in(open_session.id, player_b.id, 2000, {"chips_100": 20}, "online_hdfc")
    credit_service.issue_credit(open_session.id, player_b.id, {"chips_500": 2})
    session_service.add_float(open_session.id, 10000, chip_breakdown={"chips_5000": 2})
    cashier_service.record_dealer_tip(open_session.id, 3, "Dealer", {"chips_100": 4})
    cashier_service.deposit_chips(open_session.id, player_a.id, {"chips_500": 2})
    cashier_service.record_cash_payout(open_session.id, player_b.id, {"chips_500": 3, "chips_100": 10})
    cashier_service.record_expense(open_session.id, 700, "utilities")

    session = _reload(open_session.id)
    _assert_conserved(session)

    dashboard = dashboard_service.build_dashboard(session)
    assert dashboard["reconciliation"]["consistent"] is True
    assert dashboard["stats"]["credits"]["settled_at_cash_out"] == 1000
    assert session.outstanding_credit == 0
