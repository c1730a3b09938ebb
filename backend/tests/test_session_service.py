"""
Daily session lifecycle: open, opening inventory, float additions, close, reopen.
"""

import pytest

from cardroom.errors import (
    ChipBreakdownMismatchError,
    ChipInventoryAlreadySetError,
    InvalidAmountError,
    NoActiveSessionError,
    PendingCreditRequestsError,
    SessionAlreadyOpenError,
    SessionClosedError,
)
from cardroom.chips import ChipBreakdown
from cardroom.extensions import db
from cardroom.models import NotificationEvent, SessionSummary, TransactionKind
from cardroom.services import (
    cashier_service,
    chip_service,
    credit_service,
    notification_service,
    session_service,
    transaction_service,
)


OWNER_FLOAT = 100000


class TestOpenSession:
    def test_open_with_chip_inventory(self, open_session):
        assert open_session.owner_float == OWNER_FLOAT
        assert open_session.opening_float == OWNER_FLOAT
        assert open_session.primary_wallet == OWNER_FLOAT
        assert open_session.secondary_wallet == 0
        assert open_session.chip_inventory_set is True
        assert open_session.chips("opening") == ChipBreakdown(chips_100=50, chips_500=20)
        assert open_session.chips("current") == ChipBreakdown(chips_100=50, chips_500=20)
        assert open_session.chips("out").is_empty()

    def test_open_records_transaction(self, open_session):
        txns = transaction_service.session_transactions(open_session.id)
        assert [t.kind for t in txns] == [TransactionKind.SESSION_OPEN.value]
        assert txns[0].primary_delta == OWNER_FLOAT

    def test_cashier_credit_limit_defaults_from_config(self, app, open_session):
        assert open_session.cashier_credit_limit == app.config["DEFAULT_CASHIER_CREDIT_LIMIT"]

    def test_second_open_same_date_rejected(self, open_session):
        with pytest.raises(SessionAlreadyOpenError):
            session_service.open_session(50000)

    def test_float_must_be_positive(self, db_session):
        with pytest.raises(InvalidAmountError):
            session_service.open_session(0)

    def test_chips_cannot_exceed_float(self, db_session):
        with pytest.raises(InvalidAmountError):
            session_service.open_session(1000, chip_inventory={"chips_500": 4})
        assert session_service.get_active_session() is None

    def test_other_date_is_independent(self, open_session):
        result = session_service.open_session(50000, session_date="2020-01-01")
        assert result["session"]["session_date"] == "2020-01-01"
        assert session_service.get_active_session().id == open_session.id


class TestOpeningInventory:
    def test_set_once(self, db_session):
        session_id = session_service.open_session(OWNER_FLOAT)["session"]["id"]
        result = chip_service.set_opening_inventory(session_id, ChipBreakdown(chips_500=20))
        assert result["total_value"] == 10000

        session = session_service.get_session(session_id)
        assert session.chip_inventory_set is True
        assert session.chips_500_opening == 20
        assert session.chips_500_current == 20

        with pytest.raises(ChipInventoryAlreadySetError):
            chip_service.set_opening_inventory(session_id, ChipBreakdown(chips_100=1))

    def test_not_after_activity(self, db_session, player_a):
        session_id = session_service.open_session(OWNER_FLOAT)["session"]["id"]
        cashier_service.deposit_cash(session_id, player_a.id, 1000)
        with pytest.raises(ChipInventoryAlreadySetError):
            chip_service.set_opening_inventory(session_id, ChipBreakdown(chips_500=20))


class TestFloatAdditions:
    def test_cash_only(self, open_session):
        result = session_service.add_float(open_session.id, 20000, reason="Evening top-up")
        assert result["new_primary_wallet"] == OWNER_FLOAT + 20000
        assert result["new_owner_float"] == OWNER_FLOAT + 20000
        assert result["float_addition"]["addition_type"] == "cash_only"

        summary = session_service.float_summary(open_session.id)
        assert summary["original_float"] == OWNER_FLOAT
        assert summary["total_additions"] == 20000
        assert summary["addition_count"] == 1

    def test_with_chips_joins_opening_stock(self, open_session):
        session_service.add_float(open_session.id, 10000, chip_breakdown={"chips_5000": 2})
        session = session_service.get_session(open_session.id)
        assert session.chips_5000_opening == 2
        assert session.chips_5000_current == 2
        assert session.opening_float == OWNER_FLOAT + 10000
        assert transaction_service.verify_session(session) == []

    def test_chip_value_must_match_amount(self, open_session):
        with pytest.raises(ChipBreakdownMismatchError):
            session_service.add_float(open_session.id, 10000, chip_breakdown={"chips_5000": 1})
        assert session_service.get_session(open_session.id).total_float_additions == 0


class TestCloseSession:
    def test_close_balanced_session(self, open_session, player_a):
        cashier_service.record_buy_in(open_session.id, player_a.id, 5000, {"chips_500": 10})
        cashier_service.record_cash_payout(open_session.id, player_a.id, {"chips_500": 10})

        result = session_service.close_session(open_session.id, actor_user_id=1)
        assert result["warnings"] == []
        assert result["summary"]["net_result"] == 0
        assert result["summary"]["closing_float"] == OWNER_FLOAT
        assert result["session"]["is_closed"] is True

        summary = session_service.get_session_summary(open_session.id)
        assert summary.total_transactions == 3
        assert summary.total_players == 1

    def test_close_warns_on_chips_in_circulation(self, open_session, player_a):
        cashier_service.record_buy_in(open_session.id, player_a.id, 5000, {"chips_500": 10})
        result = session_service.close_session(open_session.id)
        assert [w["type"] for w in result["warnings"]] == ["chips_in_circulation"]
        assert result["summary"]["chips_in_circulation"] == 5000
        assert result["summary"]["net_result"] == 5000

    def test_close_warns_on_outstanding_credit(self, open_session, player_a):
        credit_service.issue_credit(open_session.id, player_a.id, {"chips_500": 4})
        result = session_service.close_session(open_session.id)
        types = {w["type"] for w in result["warnings"]}
        assert "outstanding_credit" in types
        assert result["summary"]["outstanding_credit"] == 2000

    def test_pending_request_blocks_close(self, open_session, make_player):
        player = make_player("No Limit")  # limit 0 -> request waits for an admin
        request = credit_service.create_credit_request(open_session.id, player.id, amount=1000)["request"]

        with pytest.raises(PendingCreditRequestsError):
            session_service.close_session(open_session.id)
        assert session_service.get_session(open_session.id).is_closed is False

        credit_service.reject_credit_request(request["id"])
        session_service.close_session(open_session.id)

    def test_close_publishes_summary_event(self, open_session):
        session_service.close_session(open_session.id)
        events = [e for e in notification_service.pending_events()
                  if e.event_type == notification_service.EVENT_SESSION_CLOSED]
        assert len(events) == 1
        assert events[0].payload["session_id"] == open_session.id

    def test_closed_session_rejects_mutation(self, open_session, player_a):
        session_service.close_session(open_session.id)
        with pytest.raises(SessionClosedError):
            cashier_service.record_buy_in(open_session.id, player_a.id, 5000, {"chips_500": 10})
        with pytest.raises(SessionClosedError):
            session_service.close_session(open_session.id)

    def test_close_unknown_session(self, db_session):
        with pytest.raises(NoActiveSessionError):
            session_service.close_session(999)


class TestReopen:
    def test_closed_date_needs_explicit_reopen(self, open_session):
        session_service.close_session(open_session.id)
        with pytest.raises(SessionClosedError):
            session_service.open_session(OWNER_FLOAT)

    def test_reopen_creates_linked_session(self, open_session):
        session_service.close_session(open_session.id)
        result = session_service.reopen_session(60000)

        assert result["reopened_from_session_id"] == open_session.id
        active = session_service.get_active_session()
        assert active.id != open_session.id
        assert active.primary_wallet == 60000
        assert len(session_service.get_sessions_by_date(active.session_date)) == 2

        # each closed session keeps exactly one summary
        session_service.close_session(active.id)
        assert SessionSummary.query.count() == 2

    def test_reopen_without_closed_session(self, db_session):
        with pytest.raises(NoActiveSessionError):
            session_service.reopen_session(OWNER_FLOAT)

    def test_notification_outbox(self, open_session):
        session_service.close_session(open_session.id)
        event = notification_service.pending_events()[-1]
        notification_service.mark_dispatched(event.id)
        assert db.session.get(NotificationEvent, event.id).status == NotificationEvent.STATUS_DISPATCHED


class TestLookups:
    def test_require_open_session(self, open_session):
        assert session_service.require_open_session(open_session.id).id == open_session.id
        session_service.close_session(open_session.id)
        with pytest.raises(SessionClosedError):
            session_service.require_open_session(open_session.id)

    def test_session_by_date_prefers_latest(self, open_session):
        session_service.close_session(open_session.id)
        reopened = session_service.reopen_session(60000)["session"]["id"]
        assert session_service.get_session_by_date(open_session.session_date).id == reopened
        assert session_service.get_session_by_date("2001-01-01") is None

    def test_float_history_in_order(self, open_session):
        session_service.add_float(open_session.id, 5000, reason="first")
        session_service.add_float(open_session.id, 7000, reason="second")
        history = session_service.float_history(open_session.id)
        assert [a.float_amount for a in history] == [5000, 7000]
