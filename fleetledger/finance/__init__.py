"""Mini README: Driver float and expense ledger package.

The ``ledger`` module owns every balance mutation; ``models`` holds the
float and expense records plus the amount validator. Web handlers and
the CLI import from here rather than from the submodules.
"""

from .ledger import BalanceSummary, FloatLedger
from .models import (
    CashFloat,
    Expense,
    ExpenseAction,
    ExpenseCategory,
    ExpenseStatus,
    parse_amount,
)

__all__ = [
    "BalanceSummary",
    "CashFloat",
    "Expense",
    "ExpenseAction",
    "ExpenseCategory",
    "ExpenseStatus",
    "FloatLedger",
    "parse_amount",
]
