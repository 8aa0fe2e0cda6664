"""Mini README: Driver float and expense ledger.

Structure:
    * FloatLedger - issues and closes floats, and commits, reviews, and
      deletes expenses against them.
    * BalanceSummary - reconciliation view of one float.

Every change to ``remainingAmount`` happens inside ``run_transaction`` on
the document store, in the same atomic unit that creates or deletes the
expense responsible for it. The float is always re-read inside that
transaction, so two drivers' submissions cannot both pass a balance check
against the same stale value. Review (approve/reject) never moves money.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ..configuration import FleetLedgerSettings
from ..errors import (
    AlreadyProcessed,
    ConflictingActiveFloat,
    FleetLedgerError,
    FloatMissing,
    FloatRequired,
    FloatUnauthorized,
    Forbidden,
    InsufficientFunds,
    InvalidInput,
    NotFound,
)
from ..identity import ActorContext, Role, require_role
from ..logging_utils import get_logger
from ..notifications import Notification, Notifier, notify_safely
from ..storage import DocumentStore, Filter, Transaction
from ..time_utils import utc_now_iso
from .models import (
    EXPENSES,
    FLOATS,
    CashFloat,
    Expense,
    ExpenseAction,
    ExpenseCategory,
    ExpenseStatus,
    parse_amount,
)

LOGGER = get_logger(__name__)

FLOAT_MANAGERS = (Role.OPS, Role.OWNER, Role.TOUR_MANAGER)
EXPENSE_REVIEWERS = (Role.OPS, Role.OWNER)


@dataclass(slots=True)
class BalanceSummary:
    """Remaining balance compared with the sum of surviving expenses."""

    float_id: str
    original_amount: int
    remaining_amount: int
    debited: int
    credited: int
    expense_count: int

    @property
    def expected_remaining(self) -> int:
        return self.original_amount + self.credited - self.debited

    @property
    def discrepancy(self) -> int:
        """Non-zero when a reversal was skipped or the float was edited directly."""

        return self.remaining_amount - self.expected_remaining


class FloatLedger:
    """Manage driver floats and the expenses charged against them."""

    def __init__(
        self,
        store: DocumentStore,
        settings: FleetLedgerSettings,
        *,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._store = store
        self._settings = settings
        self._notifier = notifier if settings.notifications_enabled else None
        self._clock = clock
        self.reimbursement_category = ExpenseCategory.from_str(settings.reimbursement_category)
        LOGGER.debug(
            "Float ledger initialised (store=%s reimbursement=%s)",
            store.store_name,
            self.reimbursement_category.value,
        )

    def adjustment_for(self, category: ExpenseCategory, amount: int) -> int:
        """Signed effect of an expense on its float's remaining amount."""

        return amount if category is self.reimbursement_category else -amount

    # Floats

    def issue_float(
        self,
        actor: ActorContext,
        driver_id: str,
        amount: Any,
        *,
        tour_id: Optional[str] = None,
        message: Optional[str] = None,
    ) -> str:
        """Issue a float to ``driver_id`` and return its identifier.

        Owners may supersede a driver's active float: every active float for
        that driver is closed in the same transaction that creates the new
        one. Anyone else gets ``ConflictingActiveFloat``. The active-float
        lookup runs before the transaction, so the rule holds for
        sequential issuance only.
        """

        require_role(actor, FLOAT_MANAGERS)
        if not driver_id:
            raise InvalidInput("driverId is required")
        amount = parse_amount(amount)

        active = self._store.query(
            FLOATS,
            [
                Filter("organisationId", "==", actor.organisation_id),
                Filter("driverId", "==", driver_id),
                Filter("active", "==", True),
            ],
        )
        if active and not actor.is_owner:
            LOGGER.warning(
                "Rejected float for driver=%s org=%s: %s active float(s)",
                driver_id,
                actor.organisation_id,
                len(active),
            )
            raise ConflictingActiveFloat("Driver already has an active float")

        now = self._clock()
        cash_float = CashFloat(
            float_id=self._store.new_id(FLOATS),
            organisation_id=actor.organisation_id,
            driver_id=driver_id,
            original_amount=amount,
            remaining_amount=amount,
            active=True,
            issued_by=actor.uid,
            created_at=now,
            updated_at=now,
            tour_id=tour_id,
            message=message or None,
        )

        def _issue(transaction: Transaction) -> List[str]:
            superseded = []
            for document in active:
                fresh = transaction.get(FLOATS, document["id"])
                if fresh is not None and fresh.get("active"):
                    superseded.append(document["id"])
            for float_id in superseded:
                transaction.update(
                    FLOATS, float_id, {"active": False, "closedAt": now, "updatedAt": now}
                )
            transaction.set(FLOATS, cash_float.float_id, cash_float.as_document())
            return superseded

        superseded = self._store.run_transaction(_issue)
        if superseded:
            LOGGER.info("Owner %s superseded floats %s", actor.uid, ", ".join(superseded))
        LOGGER.info(
            "Issued float %s to driver=%s amount=%s", cash_float.float_id, driver_id, amount
        )
        self._notify(
            actor.organisation_id,
            "float.issued",
            f"Float of {amount} issued to driver {driver_id}",
            {"floatId": cash_float.float_id, "superseded": superseded},
        )
        return cash_float.float_id

    def close_float(self, actor: ActorContext, float_id: str) -> None:
        """Deactivate a float; the remaining amount is left untouched."""

        require_role(actor, FLOAT_MANAGERS)
        self.get_float(actor, float_id)
        now = self._clock()
        self._store.update(FLOATS, float_id, {"active": False, "closedAt": now, "updatedAt": now})
        LOGGER.info("Closed float %s by %s", float_id, actor.uid)

    def get_float(self, actor: ActorContext, float_id: str) -> CashFloat:
        """Return the float, enforcing organisation ownership."""

        document = self._store.get(FLOATS, float_id)
        if document is None:
            raise NotFound(f"Float {float_id} not found")
        if document.get("organisationId") != actor.organisation_id:
            raise Forbidden("Float does not belong to organisation")
        return CashFloat.from_document(document)

    def list_floats(self, actor: ActorContext) -> List[CashFloat]:
        """Floats visible to the actor: their own for drivers, else the organisation's."""

        filters = [Filter("organisationId", "==", actor.organisation_id)]
        if actor.role is Role.DRIVER:
            filters.append(Filter("driverId", "==", actor.uid))
        elif actor.role not in FLOAT_MANAGERS:
            raise Forbidden(f"Role '{actor.role.value}' cannot view floats")
        documents = self._store.query(FLOATS, filters)
        return [CashFloat.from_document(document) for document in documents]

    # Expenses

    def submit_expense(
        self,
        actor: ActorContext,
        float_id: Optional[str],
        category: Any,
        amount: Any,
        *,
        tour_id: Optional[str] = None,
        description: Optional[str] = None,
        receipt_url: Optional[str] = None,
    ) -> str:
        """Charge an expense against a float and return the expense id.

        The balance check and both writes run in one store transaction that
        re-reads the float, so concurrent submissions serialise on it.
        """

        require_role(actor, (Role.DRIVER,))
        if not float_id:
            raise FloatRequired("Float ID required")
        category = ExpenseCategory.from_str(category)
        amount = parse_amount(amount)
        adjustment = self.adjustment_for(category, amount)
        labels = self._tour_labels(tour_id)
        expense_id = self._store.new_id(EXPENSES)

        def _submit(transaction: Transaction) -> int:
            fresh = transaction.get(FLOATS, float_id)
            if fresh is None:
                raise FloatMissing(f"Float {float_id} not found")
            if (
                fresh.get("organisationId") != actor.organisation_id
                or fresh.get("driverId") != actor.uid
            ):
                raise FloatUnauthorized("Invalid float or unauthorized")
            remaining = int(fresh.get("remainingAmount", 0))
            if remaining + adjustment < 0:
                raise InsufficientFunds(
                    f"Insufficient float balance: remaining {remaining}, requested {amount}"
                )

            now = self._clock()
            expense = Expense(
                expense_id=expense_id,
                organisation_id=actor.organisation_id,
                driver_id=actor.uid,
                float_id=float_id,
                category=category,
                amount=amount,
                status=ExpenseStatus.PENDING,
                created_at=now,
                updated_at=now,
                tour_id=tour_id,
                description=description or "",
                receipt_url=receipt_url,
                **labels,
            )
            transaction.set(EXPENSES, expense_id, expense.as_document())
            transaction.update(
                FLOATS, float_id, {"remainingAmount": remaining + adjustment, "updatedAt": now}
            )
            return remaining + adjustment

        try:
            balance = self._store.run_transaction(_submit)
        except FleetLedgerError as error:
            LOGGER.warning(
                "Expense rejected for driver=%s float=%s: %s (%s)",
                actor.uid,
                float_id,
                type(error).__name__,
                error,
            )
            raise

        LOGGER.info(
            "Committed expense %s on float %s (%s %+d, remaining %s)",
            expense_id,
            float_id,
            category.value,
            adjustment,
            balance,
        )
        self._notify(
            actor.organisation_id,
            "expense.submitted",
            f"Driver {actor.uid} submitted {category.value} expense of {amount}",
            {"expenseId": expense_id, "floatId": float_id, "remainingAmount": balance},
        )
        return expense_id

    def set_expense_status(self, actor: ActorContext, expense_id: str, action: Any) -> ExpenseStatus:
        """Approve or reject a pending expense; balances are not touched."""

        require_role(actor, EXPENSE_REVIEWERS)
        action = ExpenseAction.from_str(action)

        def _review(transaction: Transaction) -> ExpenseStatus:
            document = self._owned_expense(transaction.get(EXPENSES, expense_id), actor, expense_id)
            if document.get("status") != ExpenseStatus.PENDING.value:
                raise AlreadyProcessed("Expense already processed")
            now = self._clock()
            status = action.resulting_status
            transaction.update(
                EXPENSES,
                expense_id,
                {"status": status.value, "approvedBy": actor.uid, "approvedAt": now, "updatedAt": now},
            )
            return status

        status = self._store.run_transaction(_review)
        LOGGER.info("Expense %s marked %s by %s", expense_id, status.value, actor.uid)
        return status

    def delete_expense(self, actor: ActorContext, expense_id: str) -> None:
        """Delete an expense and reverse its effect on the float.

        If the float has already been deleted the expense still goes, but no
        reversal can be applied. Removing a reimbursement whose credit has
        already been spent would leave the float negative, so that raises
        ``InsufficientFunds`` and nothing changes.
        """

        require_role(actor, (Role.OWNER,))

        def _delete(transaction: Transaction) -> Optional[int]:
            document = self._owned_expense(transaction.get(EXPENSES, expense_id), actor, expense_id)
            float_id = document.get("floatId")
            float_document = transaction.get(FLOATS, float_id) if float_id else None
            reversed_to = None
            if float_document is not None and float_document.get("organisationId") == actor.organisation_id:
                category = ExpenseCategory.from_str(document.get("category", ""))
                reversal = -self.adjustment_for(category, int(document.get("amount") or 0))
                remaining = int(float_document.get("remainingAmount") or 0)
                reversed_to = remaining + reversal
                if reversed_to < 0:
                    raise InsufficientFunds(
                        f"Cannot reverse expense: remaining {remaining}, reversal {reversal}"
                    )
                transaction.update(
                    FLOATS, float_id, {"remainingAmount": reversed_to, "updatedAt": self._clock()}
                )
            transaction.delete(EXPENSES, expense_id)
            return reversed_to

        reversed_to = self._store.run_transaction(_delete)
        if reversed_to is None:
            LOGGER.warning("Deleted expense %s without balance reversal (float gone)", expense_id)
        else:
            LOGGER.info("Deleted expense %s, float balance restored to %s", expense_id, reversed_to)

    def get_expense(self, actor: ActorContext, expense_id: str) -> Expense:
        document = self._owned_expense(self._store.get(EXPENSES, expense_id), actor, expense_id)
        return Expense.from_document(document)

    def list_expenses(self, actor: ActorContext, float_id: Optional[str] = None) -> List[Expense]:
        """Expenses visible to the actor, optionally narrowed to one float."""

        filters = [Filter("organisationId", "==", actor.organisation_id)]
        if float_id:
            filters.append(Filter("floatId", "==", float_id))
        if actor.role is Role.DRIVER:
            filters.append(Filter("driverId", "==", actor.uid))
        elif actor.role not in EXPENSE_REVIEWERS:
            raise Forbidden(f"Role '{actor.role.value}' cannot view expenses")
        documents = self._store.query(EXPENSES, filters)
        return [Expense.from_document(document) for document in documents]

    def balance_summary(self, actor: ActorContext, float_id: str) -> BalanceSummary:
        """Compare the stored balance with the expenses still charged to it."""

        cash_float = self.get_float(actor, float_id)
        expenses = self._store.query(
            EXPENSES,
            [
                Filter("organisationId", "==", actor.organisation_id),
                Filter("floatId", "==", float_id),
            ],
        )
        debited = credited = 0
        for document in expenses:
            expense = Expense.from_document(document)
            adjustment = self.adjustment_for(expense.category, expense.amount)
            if adjustment > 0:
                credited += adjustment
            else:
                debited -= adjustment
        return BalanceSummary(
            float_id=float_id,
            original_amount=cash_float.original_amount,
            remaining_amount=cash_float.remaining_amount,
            debited=debited,
            credited=credited,
            expense_count=len(expenses),
        )

    # Helpers

    @staticmethod
    def _owned_expense(
        document: Optional[Dict[str, Any]], actor: ActorContext, expense_id: str
    ) -> Dict[str, Any]:
        if document is None:
            raise NotFound(f"Expense {expense_id} not found")
        if document.get("organisationId") != actor.organisation_id:
            raise Forbidden("Expense does not belong to organisation")
        return document

    def _tour_labels(self, tour_id: Optional[str]) -> Dict[str, str]:
        """Vehicle and driver labels captured on the expense for reporting."""

        labels = {"vehicle_licence": "", "trailer_licence": "", "driver_name": ""}
        if not tour_id:
            return labels
        tour = self._store.get("tours", tour_id)
        if not tour or not tour.get("vehicleId"):
            return labels
        vehicle = self._store.get("vehicles", tour["vehicleId"])
        if vehicle:
            labels["vehicle_licence"] = vehicle.get("licenceNumber") or ""
            labels["trailer_licence"] = vehicle.get("trailerLicence") or ""
            labels["driver_name"] = vehicle.get("currentDriverName") or ""
        return labels

    def _notify(self, organisation_id: str, topic: str, summary: str, details: Dict[str, object]) -> None:
        notify_safely(
            self._notifier,
            Notification(organisation_id=organisation_id, topic=topic, summary=summary, details=details),
        )
