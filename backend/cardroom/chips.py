# Overview: Fixed four-denomination chip breakdown value type.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .errors import InvalidAmountError, ChipBreakdownMismatchError
from .validation import MAX_AMOUNT


# Face values, largest first (greedy breakdown order)
DENOMINATIONS = (10000, 5000, 500, 100)

# Payload keys accepted at the API boundary
DENOMINATION_KEYS = {
    100: "chips_100",
    500: "chips_500",
    5000: "chips_5000",
    10000: "chips_10000",
}

_DENOMINATION_BY_KEY = {key: d for d, key in DENOMINATION_KEYS.items()}


def _coerce_count(key: str, value: Any) -> int:
    """Strict non-negative integer coercion (rejects bools, floats, '1e3', '2.5')."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise InvalidAmountError(f"{key} must be an integer", field=key)
    if isinstance(value, int):
        count = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return 0
        if not (stripped.isascii() and stripped.isdigit()):
            raise InvalidAmountError(f"{key} must be a plain non-negative integer", field=key)
        count = int(stripped)
    else:
        raise InvalidAmountError(f"{key} must be an integer", field=key)
    if count < 0:
        raise InvalidAmountError(f"{key} cannot be negative", field=key)
    if count * _DENOMINATION_BY_KEY[key] > MAX_AMOUNT:
        raise InvalidAmountError(f"{key} exceeds maximum allowed amount", field=key, value=count)
    return count


@dataclass(frozen=True)
class ChipBreakdown:
    """
    Count of chips per denomination.

    Validated once when built from a payload; everything downstream can
    trust the counts are non-negative integers.
    """

    chips_100: int = 0
    chips_500: int = 0
    chips_5000: int = 0
    chips_10000: int = 0

    @classmethod
    def from_payload(cls, payload: dict | None) -> "ChipBreakdown":
        if payload is None:
            return cls()
        if isinstance(payload, ChipBreakdown):
            return payload
        if not isinstance(payload, dict):
            raise InvalidAmountError("chip_breakdown must be an object")
        allowed = set(DENOMINATION_KEYS.values())
        unknown = sorted(k for k in payload if k not in allowed)
        if unknown:
            raise InvalidAmountError(f"Unknown chip denominations: {', '.join(unknown)}", unknown=unknown)
        breakdown = cls(**{key: _coerce_count(key, payload.get(key)) for key in allowed})
        if breakdown.value() > MAX_AMOUNT:
            raise InvalidAmountError("chip_breakdown exceeds maximum allowed amount", value=breakdown.value())
        return breakdown

    @classmethod
    def from_counts(cls, counts: dict[int, int]) -> "ChipBreakdown":
        return cls(**{DENOMINATION_KEYS[d]: counts.get(d, 0) for d in DENOMINATION_KEYS})

    @classmethod
    def optimal_for(cls, amount: int) -> "ChipBreakdown":
        """Fewest chips for an amount, largest denomination first."""
        if amount < 0:
            raise InvalidAmountError("Amount cannot be negative", amount=amount)
        if amount % DENOMINATIONS[-1]:
            raise InvalidAmountError(
                f"₹{amount} cannot be represented in chips (must be a multiple of ₹{DENOMINATIONS[-1]})",
                amount=amount,
            )
        remaining = amount
        counts = {}
        for denomination in DENOMINATIONS:
            counts[denomination], remaining = divmod(remaining, denomination)
        return cls.from_counts(counts)

    def counts(self) -> dict[int, int]:
        return {d: getattr(self, key) for d, key in DENOMINATION_KEYS.items()}

    def value(self) -> int:
        return sum(d * n for d, n in self.counts().items())

    def count(self) -> int:
        return sum(self.counts().values())

    def is_empty(self) -> bool:
        return self.count() == 0

    def prorate(self, numerator: int, denominator: int) -> "ChipBreakdown":
        """Proportional share of each denomination, floored."""
        if denominator <= 0:
            return ChipBreakdown()
        return ChipBreakdown.from_counts(
            {d: (n * numerator) // denominator for d, n in self.counts().items()}
        )

    def require_value(self, declared: int) -> None:
        """Raise if the face value differs from the declared amount."""
        if self.value() != declared:
            raise ChipBreakdownMismatchError(declared=declared, chip_value=self.value())

    def describe(self) -> str:
        parts = [f"{n}×₹{d}" for d, n in sorted(self.counts().items(), reverse=True) if n]
        return ", ".join(parts) if parts else "no chips"

    def to_dict(self) -> dict:
        return {key: getattr(self, key) for key in DENOMINATION_KEYS.values()}
