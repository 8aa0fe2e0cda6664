"""Mini README: FastAPI service exposing the ledger and fleet status core.

Structure:
    * create_application - application factory wiring components and routes.
    * current_actor - dependency reading the gateway's identity headers.
    * Request bodies - Pydantic models mirroring the mobile client payloads.

Authentication happens at the gateway, which forwards ``X-User-Id``,
``X-User-Role`` and ``X-Organisation-Id``. Every ``FleetLedgerError`` is
rendered as ``{"message", "status": 0, "data": null}`` with the error's
status code; successes use ``status: 1``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..configuration import FleetLedgerSettings, get_settings
from ..errors import FleetLedgerError, Forbidden, InvalidInput
from ..finance import FloatLedger
from ..fleet import VehicleStatusMachine
from ..identity import ActorContext, Role
from ..logging_utils import get_logger
from ..maintenance import MaintenanceReporter
from ..notifications import LoggingNotifier, Notifier
from ..storage import DocumentStore, InMemoryDocumentStore

LOGGER = get_logger(__name__)


class IssueFloatBody(BaseModel):
    driverId: Optional[str] = None
    amountCents: Any = None
    tourId: Optional[str] = None
    message: Optional[str] = None


class ExpenseBody(BaseModel):
    floatId: Optional[str] = None
    category: Any = None
    amountCents: Any = None
    tourId: Optional[str] = None
    description: Optional[str] = None
    receiptUrl: Optional[str] = None


class ExpenseStatusBody(BaseModel):
    action: Any = None


class InspectionBody(BaseModel):
    type: Optional[str] = None
    results: Any = None
    tourId: Optional[str] = None
    vehicleId: Optional[str] = None


class IssueBody(BaseModel):
    vehicleId: Optional[str] = None
    severity: Optional[str] = None
    description: Optional[str] = None
    tourId: Optional[str] = None
    imageUrl: Optional[str] = None


class IssueStatusBody(BaseModel):
    status: Any = None
    notes: Optional[str] = None


def _ok(message: str, data: Any = None, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message, "status": 1, "data": data})


def current_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
    x_organisation_id: Optional[str] = Header(None),
) -> ActorContext:
    """Identity asserted by the gateway; all three headers are required."""

    if not x_user_id or not x_user_role or not x_organisation_id:
        raise HTTPException(status_code=401, detail="Unauthorized: missing user context")
    try:
        role = Role.from_str(x_user_role)
    except InvalidInput as error:
        raise Forbidden("Forbidden: insufficient role") from error
    return ActorContext(uid=x_user_id, role=role, organisation_id=x_organisation_id)


def create_application(
    store: Optional[DocumentStore] = None,
    settings: Optional[FleetLedgerSettings] = None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    """Create the FastAPI application with routes and dependencies."""

    settings = settings or get_settings()
    if store is None:
        store = InMemoryDocumentStore(
            max_attempts=settings.transaction_attempts,
            backoff_seconds=settings.transaction_backoff_seconds,
        )
    notifier = notifier or LoggingNotifier()

    ledger = FloatLedger(store, settings, notifier=notifier)
    status_machine = VehicleStatusMachine(store, settings, notifier=notifier)
    reporter = MaintenanceReporter(store, settings)

    app = FastAPI(title="Fleet Float Ledger", version="0.1.0")
    app.state.store = store
    app.state.ledger = ledger
    app.state.status_machine = status_machine
    LOGGER.info("Application created (environment=%s store=%s)", settings.environment, store.store_name)

    @app.exception_handler(FleetLedgerError)
    async def ledger_error(request: Request, error: FleetLedgerError) -> JSONResponse:
        LOGGER.debug("%s %s -> %s: %s", request.method, request.url.path, error.status_code, error)
        return JSONResponse(
            status_code=error.status_code,
            content={"message": error.message, "status": 0, "data": None},
        )

    @app.get("/health")
    def health() -> Dict[str, str]:
        return {"status": "healthy"}

    @app.get("/inspection-items")
    def inspection_items(type: Optional[str] = None) -> JSONResponse:
        registry = status_machine.templates
        if type:
            return _ok("Inspection items fetched", registry.get(type).as_dict())
        data = [registry.get(name).as_dict() for name in registry.available_types()]
        return _ok("Inspection items fetched", data)

    # Floats

    @app.post("/floats")
    def issue_float(body: IssueFloatBody, actor: ActorContext = Depends(current_actor)) -> JSONResponse:
        float_id = ledger.issue_float(
            actor, body.driverId, body.amountCents, tour_id=body.tourId, message=body.message
        )
        return _ok("Float issued", {"id": float_id}, status_code=201)

    @app.patch("/floats/{float_id}/close")
    def close_float(float_id: str, actor: ActorContext = Depends(current_actor)) -> JSONResponse:
        ledger.close_float(actor, float_id)
        return _ok("Float closed", {"id": float_id})

    @app.get("/floats")
    def list_floats(actor: ActorContext = Depends(current_actor)) -> JSONResponse:
        data: List[Dict[str, Any]] = [item.as_dict() for item in ledger.list_floats(actor)]
        return _ok("Floats fetched", data)

    @app.get("/floats/{float_id}/balance")
    def float_balance(float_id: str, actor: ActorContext = Depends(current_actor)) -> JSONResponse:
        summary = ledger.balance_summary(actor, float_id)
        return _ok(
            "Balance fetched",
            {
                "id": float_id,
                "originalAmount": summary.original_amount,
                "remainingAmount": summary.remaining_amount,
                "debited": summary.debited,
                "credited": summary.credited,
                "expenseCount": summary.expense_count,
                "discrepancy": summary.discrepancy,
            },
        )

    # Expenses

    @app.post("/expenses")
    def create_expense(body: ExpenseBody, actor: ActorContext = Depends(current_actor)) -> JSONResponse:
        expense_id = ledger.submit_expense(
            actor,
            body.floatId,
            body.category,
            body.amountCents,
            tour_id=body.tourId,
            description=body.description,
            receipt_url=body.receiptUrl,
        )
        return _ok("Expense created", {"id": expense_id}, status_code=201)

    @app.patch("/expenses/{expense_id}/status")
    def update_expense_status(
        expense_id: str, body: ExpenseStatusBody, actor: ActorContext = Depends(current_actor)
    ) -> JSONResponse:
        status = ledger.set_expense_status(actor, expense_id, body.action)
        return _ok("Expense status updated", {"id": expense_id, "status": status.value})

    @app.delete("/expenses/{expense_id}")
    def delete_expense(expense_id: str, actor: ActorContext = Depends(current_actor)) -> JSONResponse:
        ledger.delete_expense(actor, expense_id)
        return _ok("Expense deleted", {"id": expense_id})

    @app.get("/expenses")
    def list_expenses(
        floatId: Optional[str] = None, actor: ActorContext = Depends(current_actor)
    ) -> JSONResponse:
        data = [item.as_dict() for item in ledger.list_expenses(actor, float_id=floatId)]
        return _ok("Expenses fetched", data)

    # Inspections and issues

    @app.post("/submit-inspection")
    def submit_inspection(body: InspectionBody, actor: ActorContext = Depends(current_actor)) -> JSONResponse:
        outcome = status_machine.submit_inspection(
            actor, body.type, body.results, tour_id=body.tourId, vehicle_id=body.vehicleId
        )
        return _ok(
            "Inspection submitted",
            {
                "id": outcome.inspection_id,
                "safetyFailures": outcome.safety_failures,
                "issueId": outcome.issue_id,
                "vehicleStatus": outcome.vehicle_status.value if outcome.vehicle_status else None,
            },
            status_code=201,
        )

    @app.post("/issues")
    def create_issue(body: IssueBody, actor: ActorContext = Depends(current_actor)) -> JSONResponse:
        issue_id = status_machine.create_issue(
            actor,
            body.vehicleId,
            body.severity,
            body.description,
            tour_id=body.tourId,
            image_url=body.imageUrl,
        )
        return _ok("Issue created", {"id": issue_id}, status_code=201)

    @app.patch("/issues/{issue_id}/status")
    def update_issue_status(
        issue_id: str, body: IssueStatusBody, actor: ActorContext = Depends(current_actor)
    ) -> JSONResponse:
        vehicle_status = status_machine.set_issue_status(actor, issue_id, body.status, notes=body.notes)
        return _ok(
            "Issue status updated",
            {"id": issue_id, "vehicleStatus": vehicle_status.value if vehicle_status else None},
        )

    @app.get("/issues")
    def list_issues(actor: ActorContext = Depends(current_actor)) -> JSONResponse:
        return _ok("Issues fetched", status_machine.list_issues(actor))

    # Reporting

    @app.get("/vehicles/{vehicle_id}/maintenance-indicators")
    def maintenance_indicators(vehicle_id: str, actor: ActorContext = Depends(current_actor)) -> JSONResponse:
        return _ok("Maintenance indicators computed", reporter.indicators_for_vehicle(actor, vehicle_id))

    return app
