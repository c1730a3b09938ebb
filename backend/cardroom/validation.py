from __future__ import annotations

from typing import Any, Iterable

from .errors import InvalidAmountError, ValidationError


# Maximum single amount: ₹99,99,99,999
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT = 999_999_999


def parse_amount(value: Any, field: str = "amount", *, allow_zero: bool = False) -> int:
    """
    Strict whole-rupee amount.

    Rejects bools, floats, decimals ("12.5"), scientific notation ("1e5"),
    negatives, and (unless allow_zero) zero.
    """
    if value is None:
        raise InvalidAmountError(f"{field} is required", field=field)

    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        amount = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise InvalidAmountError(f"{field} must be an integer", field=field)
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise InvalidAmountError(f"{field} must be a plain integer (scientific notation not allowed)", field=field)
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise InvalidAmountError(f"{field} must be an integer (no decimals)", field=field)
        try:
            amount = int(stripped)
        except ValueError:
            raise InvalidAmountError(f"{field} must be an integer", field=field)
    elif isinstance(value, float):
        raise InvalidAmountError(f"{field} must be an integer, not a decimal", field=field)
    else:
        raise InvalidAmountError(f"{field} must be an integer", field=field)

    if amount < 0 or (amount == 0 and not allow_zero):
        raise InvalidAmountError(f"{field} must be greater than 0", field=field, value=amount)
    if amount > MAX_AMOUNT:
        raise InvalidAmountError(f"{field} exceeds maximum allowed amount", field=field, value=amount)
    return amount


def parse_optional_amount(value: Any, field: str = "amount", *, allow_zero: bool = False) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_amount(value, field, allow_zero=allow_zero)


def require_choice(value: Any, choices: Iterable[str], field: str) -> str:
    options = list(choices)
    if value not in options:
        raise ValidationError(
            f"Invalid {field}: {value}. Must be one of {options}",
            field=field,
            allowed=options,
        )
    return value


def parse_flag(value: Any, field: str, *, default: bool = False) -> bool:
    """JSON boolean, or the strings "true"/"false"; anything else is rejected."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"{field} must be true or false", field=field)
