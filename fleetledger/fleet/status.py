"""Mini README: Vehicle operational-status state machine.

Structure:
    * VehicleStatus / IssueStatus / IssueSeverity - closed enumerations.
    * StatusEvent - the two automatic triggers (issue reported, issues cleared).
    * next_status - pure transition function.
    * InspectionOutcome - result of a submitted inspection.
    * VehicleStatusMachine - persists inspections and issues and keeps the
      vehicle ``status`` field in step with them.

Automatic transitions only move a vehicle between ``ready`` and ``issue``.
``maintenance_required`` and ``out_of_service`` are set by administrators
elsewhere and are left alone here. A vehicle returns to ``ready`` only once
every issue recorded against it is ``done``; that check runs as a query
followed by a write, so an issue created in between can be missed until the
next resolution.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..configuration import FleetLedgerSettings
from ..errors import Forbidden, InvalidInput, NotFound
from ..identity import ActorContext, Role, require_role
from ..logging_utils import get_logger
from ..notifications import Notification, Notifier, notify_safely
from ..storage import DocumentStore, Filter, Transaction
from ..time_utils import utc_now_iso
from .inspections import (
    DEFAULT_TEMPLATES,
    InspectionItem,
    InspectionTemplateRegistry,
    find_safety_failures,
    normalise_results,
    parse_odometer,
)

LOGGER = get_logger(__name__)

VEHICLES = "vehicles"
ISSUES = "issues"
INSPECTIONS = "inspections"
TOURS = "tours"


class VehicleStatus(str, Enum):
    READY = "ready"
    ISSUE = "issue"
    MAINTENANCE_REQUIRED = "maintenance_required"
    OUT_OF_SERVICE = "out_of_service"

    @classmethod
    def from_document(cls, document: Optional[Dict[str, Any]]) -> "VehicleStatus":
        """Stored status, treating absent or unknown values as ``ready``."""

        try:
            return cls((document or {}).get("status") or cls.READY.value)
        except ValueError:
            LOGGER.warning("Unknown vehicle status %r, treating as ready", document.get("status"))
            return cls.READY


STICKY_STATUSES = frozenset({VehicleStatus.MAINTENANCE_REQUIRED, VehicleStatus.OUT_OF_SERVICE})


class IssueStatus(str, Enum):
    REPORTED = "reported"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    DONE = "done"

    @classmethod
    def from_str(cls, value: Any) -> "IssueStatus":
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError) as error:
            raise InvalidInput(f"Invalid issue status: {value}") from error


class IssueSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def from_str(cls, value: Any) -> "IssueSeverity":
        try:
            return cls(value.strip().lower())
        except (ValueError, AttributeError) as error:
            raise InvalidInput(f"Invalid issue severity: {value}") from error


class StatusEvent(str, Enum):
    ISSUE_REPORTED = "issue_reported"
    ISSUES_CLEARED = "issues_cleared"


def next_status(current: VehicleStatus, event: StatusEvent) -> VehicleStatus:
    """Status after ``event``; sticky administrative states never change."""

    if current in STICKY_STATUSES:
        return current
    if event is StatusEvent.ISSUE_REPORTED:
        return VehicleStatus.ISSUE
    return VehicleStatus.READY


@dataclass(slots=True)
class InspectionOutcome:
    """What an inspection submission stored and triggered."""

    inspection_id: str
    safety_failures: List[str] = field(default_factory=list)
    issue_id: Optional[str] = None
    vehicle_status: Optional[VehicleStatus] = None


class VehicleStatusMachine:
    """Record inspections and issues and derive vehicle availability."""

    def __init__(
        self,
        store: DocumentStore,
        settings: FleetLedgerSettings,
        *,
        templates: InspectionTemplateRegistry = DEFAULT_TEMPLATES,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._store = store
        self._templates = templates
        self._notifier = notifier if settings.notifications_enabled else None
        self._clock = clock

    @property
    def templates(self) -> InspectionTemplateRegistry:
        return self._templates

    # Inspections

    def submit_inspection(
        self,
        actor: ActorContext,
        inspection_type: str,
        results: Any,
        *,
        tour_id: Optional[str] = None,
        vehicle_id: Optional[str] = None,
    ) -> InspectionOutcome:
        """Store a driver's inspection and react to safety-critical failures."""

        require_role(actor, (Role.DRIVER,))
        if not inspection_type or results is None:
            raise InvalidInput("Missing required fields")
        template = self._templates.get(inspection_type)

        tour = None
        if tour_id:
            tour = self._owned(TOURS, tour_id, actor, "Tour")
        if vehicle_id:
            self._owned(VEHICLES, vehicle_id, actor, "Vehicle")
            if tour is not None and tour.get("vehicleId") != vehicle_id:
                raise InvalidInput("Vehicle mismatch for this tour")

        normalised = normalise_results(results)
        failures = find_safety_failures(template, normalised)
        inspection_id = f"{tour_id or 'no_tour'}_{template.inspection_type}_{actor.uid}"
        now = self._clock()
        self._store.set(
            INSPECTIONS,
            inspection_id,
            {
                "tourId": tour_id,
                "vehicleId": vehicle_id,
                "organisationId": actor.organisation_id,
                "driverId": actor.uid,
                "type": template.inspection_type,
                "results": normalised,
                "safetyFailures": [
                    {"key": item.key, "label": item.label, "safetyCritical": True}
                    for item in failures
                ],
                "createdAt": now,
                "updatedAt": now,
            },
        )
        LOGGER.info(
            "Stored inspection %s with %s safety failure(s)", inspection_id, len(failures)
        )

        if vehicle_id:
            odometer = parse_odometer(normalised)
            if odometer is not None:
                self._store.update(VEHICLES, vehicle_id, {"latest_odometer": odometer, "updatedAt": now})

        outcome = InspectionOutcome(
            inspection_id=inspection_id, safety_failures=[item.key for item in failures]
        )
        outcome.issue_id = self.record_inspection_outcome(actor, vehicle_id, tour_id, failures)
        if outcome.issue_id:
            outcome.vehicle_status = self.vehicle_status(vehicle_id)
        return outcome

    def record_inspection_outcome(
        self,
        actor: ActorContext,
        vehicle_id: Optional[str],
        tour_id: Optional[str],
        failing_items: Iterable[Any],
    ) -> Optional[str]:
        """Open a high-severity issue for failed safety items; return its id.

        Nothing happens without a vehicle or without failures.
        """

        keys = [item.key if isinstance(item, InspectionItem) else str(item) for item in failing_items]
        if not keys or not vehicle_id:
            return None
        self._owned(VEHICLES, vehicle_id, actor, "Vehicle")
        issue_id = self._insert_issue(
            actor,
            vehicle_id,
            IssueSeverity.HIGH,
            f"Safety critical items failed: {', '.join(keys)}",
            tour_id=tour_id,
        )
        self._apply(actor.organisation_id, vehicle_id, StatusEvent.ISSUE_REPORTED)
        return issue_id

    # Issues

    def create_issue(
        self,
        actor: ActorContext,
        vehicle_id: str,
        severity: Any,
        description: str,
        *,
        tour_id: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> str:
        """Report an issue against a vehicle; the vehicle moves to ``issue``."""

        require_role(actor, (Role.DRIVER, Role.OWNER, Role.OPS))
        if not vehicle_id or not severity or not description:
            raise InvalidInput("Missing required fields")
        severity = IssueSeverity.from_str(severity)
        self._owned(VEHICLES, vehicle_id, actor, "Vehicle")
        issue_id = self._insert_issue(
            actor, vehicle_id, severity, description, tour_id=tour_id, image_url=image_url
        )
        self._apply(actor.organisation_id, vehicle_id, StatusEvent.ISSUE_REPORTED)
        return issue_id

    def set_issue_status(
        self,
        actor: ActorContext,
        issue_id: str,
        status: Any,
        *,
        notes: Optional[str] = None,
    ) -> Optional[VehicleStatus]:
        """Move an issue through its workflow.

        Marking an issue ``done`` clears the vehicle back to ``ready`` when no
        other issue for it remains open. Returns the vehicle status written,
        or ``None`` when the vehicle was not touched.
        """

        require_role(actor, (Role.OPS, Role.OWNER))
        status = IssueStatus.from_str(status)
        issue = self._owned(ISSUES, issue_id, actor, "Issue")

        now = self._clock()
        updates: Dict[str, Any] = {"status": status.value, "updatedAt": now}
        if notes:
            current = issue.get("description") or ""
            updates["description"] = f"{current}\n\n[{now} - Status: {status.value}]\n{notes}"
        self._store.update(ISSUES, issue_id, updates)
        LOGGER.info("Issue %s moved to %s by %s", issue_id, status.value, actor.uid)

        if status is not IssueStatus.DONE:
            return None
        vehicle_id = issue.get("vehicleId")
        open_issues = self._store.query(
            ISSUES,
            [
                Filter("organisationId", "==", actor.organisation_id),
                Filter("vehicleId", "==", vehicle_id),
                Filter("status", "!=", IssueStatus.DONE.value),
            ],
        )
        if open_issues:
            LOGGER.debug("Vehicle %s still has %s open issue(s)", vehicle_id, len(open_issues))
            return None
        return self._apply(actor.organisation_id, vehicle_id, StatusEvent.ISSUES_CLEARED)

    def list_issues(self, actor: ActorContext, vehicle_id: Optional[str] = None) -> List[Dict[str, Any]]:
        filters = [Filter("organisationId", "==", actor.organisation_id)]
        if vehicle_id:
            filters.append(Filter("vehicleId", "==", vehicle_id))
        if actor.role is Role.DRIVER:
            filters.append(Filter("driverId", "==", actor.uid))
        elif actor.role not in (Role.OPS, Role.OWNER, Role.TOUR_MANAGER):
            raise Forbidden(f"Role '{actor.role.value}' cannot view issues")
        return self._store.query(ISSUES, filters)

    def vehicle_status(self, vehicle_id: str) -> Optional[VehicleStatus]:
        document = self._store.get(VEHICLES, vehicle_id)
        return VehicleStatus.from_document(document) if document else None

    # Helpers

    def _owned(self, collection: str, doc_id: str, actor: ActorContext, label: str) -> Dict[str, Any]:
        document = self._store.get(collection, doc_id)
        if document is None:
            raise NotFound(f"{label} not found")
        if document.get("organisationId") != actor.organisation_id:
            raise Forbidden(f"{label} does not belong to organisation")
        return document

    def _insert_issue(
        self,
        actor: ActorContext,
        vehicle_id: str,
        severity: IssueSeverity,
        description: str,
        *,
        tour_id: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> str:
        issue_id = self._store.new_id(ISSUES)
        now = self._clock()
        self._store.set(
            ISSUES,
            issue_id,
            {
                "organisationId": actor.organisation_id,
                "vehicleId": vehicle_id,
                "driverId": actor.uid,
                "tourId": tour_id,
                "severity": severity.value,
                "description": description,
                "imageUrl": image_url,
                "status": IssueStatus.REPORTED.value,
                "reportedAt": now,
                "createdAt": now,
                "updatedAt": now,
            },
        )
        LOGGER.info("Opened %s issue %s on vehicle %s", severity.value, issue_id, vehicle_id)
        return issue_id

    def _apply(self, organisation_id: str, vehicle_id: str, event: StatusEvent) -> Optional[VehicleStatus]:
        """Recompute and persist the vehicle status for ``event``."""

        def _transition(transaction: Transaction) -> Optional[tuple]:
            document = transaction.get(VEHICLES, vehicle_id)
            if document is None:
                return None
            current = VehicleStatus.from_document(document)
            target = next_status(current, event)
            if target is not current:
                transaction.update(VEHICLES, vehicle_id, {"status": target.value, "updatedAt": self._clock()})
            return current, target

        result = self._store.run_transaction(_transition)
        if result is None:
            LOGGER.warning("Vehicle %s missing; status not updated for %s", vehicle_id, event.value)
            return None
        current, target = result
        if target is current:
            LOGGER.debug("Vehicle %s stays %s on %s", vehicle_id, current.value, event.value)
            return target
        LOGGER.info("Vehicle %s status %s -> %s", vehicle_id, current.value, target.value)
        notify_safely(
            self._notifier,
            Notification(
                organisation_id=organisation_id,
                topic="vehicle.status",
                summary=f"Vehicle {vehicle_id} is now {target.value}",
                details={"vehicleId": vehicle_id, "from": current.value, "to": target.value},
            ),
        )
        return target
