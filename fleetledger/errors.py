"""Mini README: Exception hierarchy shared by the ledger and fleet modules.

Structure:
    * FleetLedgerError - base class carrying an HTTP-equivalent status code.
    * InvalidInput / NotFound / Forbidden / BusinessRuleConflict - the four
      caller-facing families.
    * StorageUnavailable - raised when the store gives up on a transaction.

The web interface turns any ``FleetLedgerError`` into a JSON error using
``status_code``; nothing in this hierarchy is retried by the core.
"""

from __future__ import annotations


class FleetLedgerError(Exception):
    """Base exception for all fleet ledger errors."""

    status_code: int = 500

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        if status_code is not None:
            self.status_code = status_code
        self.message = message
        super().__init__(message)


class InvalidInput(FleetLedgerError):
    """Malformed amount, missing field, or unknown enum value."""

    status_code = 400


class InvalidAmount(InvalidInput):
    """Amount is not a positive integer number of minor units."""


class FloatRequired(InvalidInput):
    """An expense was submitted without naming a float."""


class NotFound(FleetLedgerError):
    """Document does not exist."""

    status_code = 404


class FloatMissing(NotFound):
    """Float disappeared before the expense transaction could read it."""


class Forbidden(FleetLedgerError):
    """Document belongs to another organisation or the role lacks access."""

    status_code = 403


class FloatUnauthorized(Forbidden):
    """Float is not owned by the submitting driver inside their organisation."""


class BusinessRuleConflict(FleetLedgerError):
    """A ledger or workflow rule rejected the request."""

    status_code = 400


class ConflictingActiveFloat(BusinessRuleConflict):
    """Driver already holds an active float."""


class AlreadyProcessed(BusinessRuleConflict):
    """Expense is no longer pending."""


class InsufficientFunds(BusinessRuleConflict):
    """Float balance would drop below zero."""


class StorageUnavailable(FleetLedgerError):
    """Document store exhausted its retries or is unreachable."""

    status_code = 503
