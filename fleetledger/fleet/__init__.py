"""Mini README: Vehicle inspection and operational-status package.

``inspections`` holds checklist templates and result evaluation;
``status`` holds the state machine that turns inspection failures and
issue updates into vehicle availability.
"""

from .inspections import (
    DEFAULT_TEMPLATES,
    InspectionItem,
    InspectionTemplate,
    InspectionTemplateRegistry,
    find_safety_failures,
    normalise_results,
    parse_odometer,
)
from .status import (
    InspectionOutcome,
    IssueSeverity,
    IssueStatus,
    StatusEvent,
    VehicleStatus,
    VehicleStatusMachine,
    next_status,
)

__all__ = [
    "DEFAULT_TEMPLATES",
    "InspectionItem",
    "InspectionOutcome",
    "InspectionTemplate",
    "InspectionTemplateRegistry",
    "IssueSeverity",
    "IssueStatus",
    "StatusEvent",
    "VehicleStatus",
    "VehicleStatusMachine",
    "find_safety_failures",
    "next_status",
    "normalise_results",
    "parse_odometer",
]
