"""Mini README: Float and expense records for the driver ledger.

Structure:
    * ExpenseCategory - enum of spend categories, one of which reimburses.
    * ExpenseStatus - pending/approved/rejected review state.
    * ExpenseAction - approve/reject review verbs.
    * CashFloat - cash advance issued to one driver.
    * Expense - spend drawn against exactly one float.
    * parse_amount - validator for integer minor-unit amounts.

Amounts are always ``int`` minor currency units (cents). Both records
round-trip through plain store documents with ``from_document`` and
``as_document``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..errors import InvalidAmount, InvalidInput

FLOATS = "floats"
EXPENSES = "expenses"


class ExpenseCategory(str, Enum):
    """Enumerate the supported expense categories."""

    FUEL = "FUEL"
    TOLLS = "TOLLS"
    PARKING = "PARKING"
    MEALS = "MEALS"
    ACCOMMODATION = "ACCOMMODATION"
    REPAIRS = "REPAIRS"
    WIFI = "WIFI"
    OTHER = "OTHER"

    @classmethod
    def from_str(cls, value: Any) -> "ExpenseCategory":
        """Coerce arbitrary casing into a valid category."""

        try:
            return cls(value.strip().upper())
        except (ValueError, AttributeError) as error:
            raise InvalidInput(f"Unsupported expense category: {value}") from error


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ExpenseAction(str, Enum):
    """Review verbs accepted by ``set_expense_status``."""

    APPROVE = "approve"
    REJECT = "reject"

    @classmethod
    def from_str(cls, value: Any) -> "ExpenseAction":
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError) as error:
            raise InvalidInput(f"Invalid action: {value}") from error

    @property
    def resulting_status(self) -> ExpenseStatus:
        return ExpenseStatus.APPROVED if self is ExpenseAction.APPROVE else ExpenseStatus.REJECTED


def parse_amount(value: Any) -> int:
    """Return ``value`` if it is a positive ``int``; raise ``InvalidAmount`` otherwise.

    Booleans and floats are rejected even when integral, so fractional
    currency never slips into the ledger.
    """

    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidAmount(f"Amount must be a positive integer of minor units, got {value!r}")
    return value


@dataclass(slots=True)
class CashFloat:
    """Cash advance issued to a driver and drawn down by expenses."""

    float_id: str
    organisation_id: str
    driver_id: str
    original_amount: int
    remaining_amount: int
    active: bool
    issued_by: str
    created_at: str
    updated_at: str
    tour_id: Optional[str] = None
    message: Optional[str] = None
    closed_at: Optional[str] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "CashFloat":
        return cls(
            float_id=document["id"],
            organisation_id=document["organisationId"],
            driver_id=document["driverId"],
            original_amount=int(document.get("originalAmount", 0)),
            remaining_amount=int(document.get("remainingAmount", 0)),
            active=bool(document.get("active", False)),
            issued_by=document.get("issuedBy", ""),
            created_at=document.get("createdAt", ""),
            updated_at=document.get("updatedAt", ""),
            tour_id=document.get("tourId"),
            message=document.get("message"),
            closed_at=document.get("closedAt"),
        )

    def as_document(self) -> Dict[str, Any]:
        """Export the float using the store's field names."""

        return {
            "organisationId": self.organisation_id,
            "driverId": self.driver_id,
            "tourId": self.tour_id,
            "originalAmount": self.original_amount,
            "remainingAmount": self.remaining_amount,
            "active": self.active,
            "issuedBy": self.issued_by,
            "message": self.message,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "closedAt": self.closed_at,
        }

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.float_id, **self.as_document()}


@dataclass(slots=True)
class Expense:
    """Spend event charged against a single float."""

    expense_id: str
    organisation_id: str
    driver_id: str
    float_id: str
    category: ExpenseCategory
    amount: int
    status: ExpenseStatus
    created_at: str
    updated_at: str
    tour_id: Optional[str] = None
    description: str = ""
    receipt_url: Optional[str] = None
    vehicle_licence: str = ""
    trailer_licence: str = ""
    driver_name: str = ""
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Expense":
        return cls(
            expense_id=document["id"],
            organisation_id=document["organisationId"],
            driver_id=document["driverId"],
            float_id=document.get("floatId", ""),
            category=ExpenseCategory.from_str(document.get("category", "")),
            amount=int(document.get("amount", 0)),
            status=ExpenseStatus(document.get("status", ExpenseStatus.PENDING.value)),
            created_at=document.get("createdAt", ""),
            updated_at=document.get("updatedAt", ""),
            tour_id=document.get("tourId"),
            description=document.get("description") or "",
            receipt_url=document.get("receiptUrl"),
            vehicle_licence=document.get("vehicleLicence", ""),
            trailer_licence=document.get("trailerLicence", ""),
            driver_name=document.get("driverName", ""),
            approved_by=document.get("approvedBy"),
            approved_at=document.get("approvedAt"),
        )

    def as_document(self) -> Dict[str, Any]:
        """Export the expense using the store's field names."""

        return {
            "organisationId": self.organisation_id,
            "driverId": self.driver_id,
            "floatId": self.float_id,
            "tourId": self.tour_id,
            "category": self.category.value,
            "amount": self.amount,
            "receiptUrl": self.receipt_url,
            "description": self.description,
            "vehicleLicence": self.vehicle_licence,
            "trailerLicence": self.trailer_licence,
            "driverName": self.driver_name,
            "status": self.status.value,
            "approvedBy": self.approved_by,
            "approvedAt": self.approved_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def as_dict(self) -> Dict[str, Any]:
        return {"id": self.expense_id, **self.as_document()}
