"""
Chip breakdown value type and amount parsing.

No database needed.
"""

from datetime import date

import pytest

from cardroom.chips import ChipBreakdown
from cardroom.errors import ChipBreakdownMismatchError, InvalidAmountError, ValidationError
from cardroom.time_utils import business_date
from cardroom.validation import parse_amount, parse_flag, parse_optional_amount, require_choice


class TestChipBreakdown:
    def test_value_and_count(self):
        chips = ChipBreakdown(chips_100=3, chips_500=2, chips_5000=1, chips_10000=1)
        assert chips.value() == 300 + 1000 + 5000 + 10000
        assert chips.count() == 7
        assert not chips.is_empty()

    def test_from_payload_accepts_numeric_strings(self):
        chips = ChipBreakdown.from_payload({"chips_500": "10", "chips_100": 5})
        assert chips.chips_500 == 10
        assert chips.chips_100 == 5
        assert chips.value() == 5500

    def test_from_payload_none_is_empty(self):
        assert ChipBreakdown.from_payload(None).is_empty()

    @pytest.mark.parametrize("payload", [
        {"chips_500": -1},
        {"chips_500": 2.5},
        {"chips_500": "1e3"},
        {"chips_500": True},
        {"chips_250": 4},
        ["chips_500"],
        {"chips_100": 10**19},
        {"chips_10000": 100_000},
        {"chips_100": 9_999_999, "chips_500": 1},
        {"chips_500": "\u00b2"},
    ])
    def test_from_payload_rejects_bad_input(self, payload):
        with pytest.raises(InvalidAmountError):
            ChipBreakdown.from_payload(payload)

    def test_optimal_for_uses_fewest_chips(self):
        chips = ChipBreakdown.optimal_for(16600)
        assert chips.to_dict() == {"chips_100": 1, "chips_500": 3, "chips_5000": 1, "chips_10000": 1}
        assert chips.value() == 16600

    def test_optimal_for_rejects_unrepresentable_amount(self):
        with pytest.raises(InvalidAmountError):
            ChipBreakdown.optimal_for(550)

    def test_require_value_mismatch(self):
        chips = ChipBreakdown(chips_500=10)
        chips.require_value(5000)
        with pytest.raises(ChipBreakdownMismatchError) as exc:
            chips.require_value(4500)
        assert exc.value.details == {"declared": 4500, "chip_value": 5000}

    def test_prorate_floors_each_denomination(self):
        chips = ChipBreakdown(chips_500=4, chips_100=5)  # ₹2,500
        share = chips.prorate(1000, 2500)
        assert share.to_dict() == {"chips_100": 2, "chips_500": 1, "chips_5000": 0, "chips_10000": 0}

    def test_describe(self):
        assert ChipBreakdown(chips_500=10, chips_100=2).describe() == "10×₹500, 2×₹100"
        assert ChipBreakdown().describe() == "no chips"


class TestParseAmount:
    @pytest.mark.parametrize("raw,expected", [(500, 500), ("500", 500), (" 42 ", 42)])
    def test_valid(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, 0, -5, 12.5, "12.5", "1e5", "abc", True, 1_000_000_000])
    def test_invalid(self, raw):
        with pytest.raises(InvalidAmountError):
            parse_amount(raw)

    def test_allow_zero(self):
        assert parse_amount(0, "credit_limit", allow_zero=True) == 0

    def test_optional(self):
        assert parse_optional_amount(None) is None
        assert parse_optional_amount("") is None
        assert parse_optional_amount("100") == 100

    def test_require_choice(self):
        assert require_choice("cash", ["cash", "online_sbi"], "payment_mode") == "cash"
        with pytest.raises(ValidationError):
            require_choice("cheque", ["cash", "online_sbi"], "payment_mode")

    @pytest.mark.parametrize("raw,expected", [(None, False), (True, True), (False, False), ("false", False), (" TRUE ", True)])
    def test_parse_flag(self, raw, expected):
        assert parse_flag(raw, "reopen") is expected

    @pytest.mark.parametrize("raw", ["yes", 1, 0, "0"])
    def test_parse_flag_rejects_non_booleans(self, raw):
        with pytest.raises(ValidationError):
            parse_flag(raw, "reopen")


class TestBusinessDate:
    def test_parses_iso_date(self):
        assert business_date(" 2026-10-17 ") == date(2026, 10, 17)

    def test_blank_means_today(self):
        assert business_date("") == business_date(None)

    @pytest.mark.parametrize("raw", ["not-a-date", "2026-13-45", 20261017, ["2026-10-17"]])
    def test_rejects_malformed(self, raw):
        with pytest.raises(ValidationError) as exc:
            business_date(raw)
        assert exc.value.details["field"] == "session_date"
