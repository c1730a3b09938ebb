# Overview: Business error types raised by the ledger services.

"""
Cashier Ledger Errors

Every business rule violation is a LedgerError subclass carrying a stable
code, the HTTP status the API layer answers with, and structured details
(amounts, shortages) so callers never have to parse messages.

None of these are retryable: the unit of work is rolled back and nothing
was mutated.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    """Base class for cashier ledger business errors."""

    code = "LEDGER_ERROR"
    http_status = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(LedgerError):
    """400-level input problem."""

    code = "VALIDATION_ERROR"


# =============================================================================
# SESSION LIFECYCLE
# =============================================================================

class SessionAlreadyOpenError(LedgerError):
    code = "SESSION_ALREADY_OPEN"
    http_status = 409


class NoActiveSessionError(LedgerError):
    code = "NO_ACTIVE_SESSION"
    http_status = 404


class SessionClosedError(LedgerError):
    code = "SESSION_CLOSED"
    http_status = 409


class PendingCreditRequestsError(LedgerError):
    code = "PENDING_CREDIT_REQUESTS"
    http_status = 409


class ChipInventoryAlreadySetError(LedgerError):
    code = "CHIP_INVENTORY_ALREADY_SET"
    http_status = 409


# =============================================================================
# CHIPS AND CASH
# =============================================================================

class InvalidAmountError(LedgerError):
    code = "INVALID_AMOUNT"


class ChipBreakdownMismatchError(LedgerError):
    code = "CHIP_BREAKDOWN_MISMATCH"

    def __init__(self, declared: int, chip_value: int, message: str | None = None):
        super().__init__(
            message or f"Chip breakdown value ₹{chip_value} does not match declared amount ₹{declared}",
            declared=declared,
            chip_value=chip_value,
        )


class InsufficientChipsError(LedgerError):
    """Cashier does not hold enough chips; lists every short denomination."""

    code = "INSUFFICIENT_CHIPS"
    http_status = 409

    def __init__(self, shortages: list[dict]):
        parts = ", ".join(
            f"₹{s['denomination']}: need {s['needed']}, have {s['available']}" for s in shortages
        )
        super().__init__(f"Insufficient chips in inventory ({parts})", shortages=shortages)
        self.shortages = shortages


class InsufficientFundsError(LedgerError):
    code = "INSUFFICIENT_FUNDS"
    http_status = 409

    def __init__(self, required: int, primary_available: int, secondary_available: int):
        total = primary_available + secondary_available
        super().__init__(
            f"Insufficient funds: need ₹{required}, available ₹{total} "
            f"(secondary ₹{secondary_available}, primary ₹{primary_available})",
            required=required,
            primary_available=primary_available,
            secondary_available=secondary_available,
            total_available=total,
            shortfall=required - total,
        )


class InsufficientStoredChipsError(LedgerError):
    code = "INSUFFICIENT_STORED_CHIPS"
    http_status = 409

    def __init__(self, requested: int, available: int):
        super().__init__(
            f"Insufficient stored chips: requested ₹{requested}, stored ₹{available}",
            requested=requested,
            available=available,
        )


# =============================================================================
# CREDIT
# =============================================================================

class CreditLimitExceededError(LedgerError):
    code = "CREDIT_LIMIT_EXCEEDED"
    http_status = 409

    def __init__(self, requested: int, limit: int, outstanding: int, available: int):
        if limit <= 0:
            message = "Player is not allowed credit (no credit limit set)"
        else:
            message = (
                f"Credit limit exceeded: requested ₹{requested}, available ₹{available} "
                f"(limit ₹{limit}, outstanding ₹{outstanding})"
            )
        super().__init__(
            message,
            requested=requested,
            limit=limit,
            outstanding=outstanding,
            available=available,
        )


class CreditExceedsReturnError(LedgerError):
    """Returned chip value cannot cover the player's outstanding credit."""

    code = "CREDIT_EXCEEDS_RETURN"
    http_status = 409

    def __init__(self, returned: int, outstanding: int):
        super().__init__(
            f"Player has outstanding credit of ₹{outstanding}, returned chips worth only ₹{returned}. "
            f"Player must return at least ₹{outstanding} in chips or settle the credit first.",
            returned=returned,
            outstanding=outstanding,
            shortfall=outstanding - returned,
        )


class NoOutstandingCreditError(LedgerError):
    code = "NO_OUTSTANDING_CREDIT"
    http_status = 409


class CreditRequestError(LedgerError):
    code = "CREDIT_REQUEST_ERROR"
    http_status = 409


# =============================================================================
# DIRECTORY / RECORDS
# =============================================================================

class PlayerNotFoundError(LedgerError):
    code = "PLAYER_NOT_FOUND"
    http_status = 404


class ImmutableRecordError(LedgerError):
    code = "IMMUTABLE_RECORD"
    http_status = 409
