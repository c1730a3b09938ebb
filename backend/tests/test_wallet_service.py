"""
Dual wallet: secondary (player money) is always drained before primary (owner float).
"""

import pytest

from cardroom.errors import InsufficientFundsError, ValidationError
from cardroom.models import DailySession
from cardroom.services import wallet_service


def _session(primary, secondary):
    return DailySession(
        primary_wallet=primary,
        secondary_wallet=secondary,
        secondary_wallet_deposits=secondary,
        secondary_wallet_withdrawals=0,
    )


class TestPlanDebit:
    def test_secondary_covers_everything(self):
        split = wallet_service.plan_debit(_session(100000, 5000), 3000)
        assert (split.from_secondary, split.from_primary) == (3000, 0)
        assert split.wallet_used == "secondary"

    def test_split_across_both_wallets(self):
        split = wallet_service.plan_debit(_session(100000, 5000), 8000)
        assert (split.from_secondary, split.from_primary) == (5000, 3000)
        assert split.wallet_used == "both"
        assert split.deltas() == {"primary_delta": -3000, "secondary_delta": -5000}

    def test_primary_only_when_secondary_empty(self):
        split = wallet_service.plan_debit(_session(100000, 0), 2000)
        assert split.wallet_used == "primary"

    def test_zero_debit_touches_nothing(self):
        split = wallet_service.plan_debit(_session(100000, 5000), 0)
        assert split.total == 0
        assert split.wallet_used == "none"

    def test_insufficient_funds_reports_both_wallets(self):
        session = _session(1000, 500)
        with pytest.raises(InsufficientFundsError) as exc:
            wallet_service.plan_debit(session, 2000)
        details = exc.value.details
        assert details["required"] == 2000
        assert details["primary_available"] == 1000
        assert details["secondary_available"] == 500
        assert details["shortfall"] == 500
        # planning never mutates
        assert session.primary_wallet == 1000
        assert session.secondary_wallet == 500


class TestApply:
    def test_debit_updates_withdrawals(self):
        session = _session(100000, 5000)
        wallet_service.debit(session, 8000)
        assert session.secondary_wallet == 0
        assert session.primary_wallet == 97000
        assert session.secondary_wallet_withdrawals == 5000

    def test_credit_to_secondary_tracks_deposits(self):
        session = _session(100000, 0)
        deltas = wallet_service.credit(session, 5000, wallet_service.WALLET_SECONDARY)
        assert deltas == {"primary_delta": 0, "secondary_delta": 5000}
        assert session.secondary_wallet == 5000
        assert session.secondary_wallet_deposits == 5000

    def test_credit_to_primary(self):
        session = _session(100000, 0)
        deltas = wallet_service.credit(session, 20000, wallet_service.WALLET_PRIMARY)
        assert deltas == {"primary_delta": 20000, "secondary_delta": 0}
        assert session.primary_wallet == 120000

    def test_credit_unknown_wallet(self):
        with pytest.raises(ValidationError):
            wallet_service.credit(_session(0, 0), 100, "tertiary")
