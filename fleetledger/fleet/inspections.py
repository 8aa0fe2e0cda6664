"""Mini README: Inspection templates and result evaluation.

Structure:
    * InspectionItem / InspectionTemplate - checklist definitions.
    * InspectionTemplateRegistry - lookup of templates by inspection type.
    * normalise_results - reshapes raw driver submissions.
    * find_safety_failures - safety-critical items that failed or were skipped.
    * parse_odometer - extracts the odometer reading from a submission.

A safety-critical item fails when its submitted value is exactly ``False``
or when no value was submitted for it. Any other value (numbers, strings,
``0``) counts as passing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from ..errors import InvalidInput
from ..logging_utils import get_logger

LOGGER = get_logger(__name__)

TYRE_POSITIONS = (
    "left_front",
    "right_front",
    "left_rear_inner",
    "left_rear_outer",
    "right_rear_inner",
    "right_rear_outer",
)

_LEADING_NUMBER = re.compile(r"\s*([-+]?(?:\d+\.?\d*|\.\d+))")


@dataclass(frozen=True, slots=True)
class InspectionItem:
    """Single checklist entry."""

    key: str
    label: str
    safety_critical: bool = False


@dataclass(frozen=True, slots=True)
class InspectionTemplate:
    """Ordered checklist for one inspection type."""

    inspection_type: str
    items: tuple

    @property
    def safety_critical_items(self) -> List[InspectionItem]:
        return [item for item in self.items if item.safety_critical]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "type": self.inspection_type,
            "items": [
                {"key": item.key, "label": item.label, "safetyCritical": item.safety_critical}
                for item in self.items
            ],
        }


class InspectionTemplateRegistry:
    """Simple registry mapping inspection types to templates."""

    def __init__(self, templates: Iterable[InspectionTemplate] = ()) -> None:
        self._templates: Dict[str, InspectionTemplate] = {}
        for template in templates:
            self.register(template)

    def register(self, template: InspectionTemplate) -> None:
        identifier = template.inspection_type.lower()
        LOGGER.debug("Registering inspection template '%s'", identifier)
        self._templates[identifier] = template

    def available_types(self) -> List[str]:
        return sorted(self._templates.keys())

    def get(self, inspection_type: str) -> InspectionTemplate:
        template = self._templates.get((inspection_type or "").lower())
        if template is None:
            raise InvalidInput(f"Invalid inspection type: {inspection_type}")
        return template


_VEHICLE_CHECKS = (
    InspectionItem("brakes", "Brakes working", safety_critical=True),
    InspectionItem("tyres_condition", "Tyres free of damage", safety_critical=True),
    InspectionItem("lights", "Head, brake and indicator lights", safety_critical=True),
    InspectionItem("steering", "Steering responsive", safety_critical=True),
    InspectionItem("seatbelts", "Seatbelts functional", safety_critical=True),
    InspectionItem("mirrors", "Mirrors intact"),
    InspectionItem("horn", "Horn working"),
    InspectionItem("fire_extinguisher", "Fire extinguisher present"),
    InspectionItem("first_aid_kit", "First aid kit present"),
    InspectionItem("tyre_tread_depth", "Tyre tread depth (mm)"),
    InspectionItem("odometer_reading", "Odometer reading"),
)

DEFAULT_TEMPLATES = InspectionTemplateRegistry(
    [
        InspectionTemplate("pre_trip", _VEHICLE_CHECKS),
        InspectionTemplate(
            "post_trip",
            _VEHICLE_CHECKS
            + (
                InspectionItem("cleanliness", "Vehicle cleaned"),
                InspectionItem("damage_report", "New damage noted"),
            ),
        ),
    ]
)


def _leading_float(text: str) -> Optional[float]:
    match = _LEADING_NUMBER.match(text)
    return float(match.group(1)) if match else None


def normalise_results(results: Any) -> List[Dict[str, Any]]:
    """Validate raw results and expand tyre tread strings into per-position readings."""

    if not isinstance(results, list):
        raise InvalidInput("Results must be an array")
    normalised = []
    for result in results:
        if not isinstance(result, dict) or not result.get("key"):
            raise InvalidInput("Each result requires a key")
        if result["key"] == "tyre_tread_depth" and isinstance(result.get("value"), str):
            readings = [_leading_float(part) for part in result["value"].split(",")]
            result = {
                **result,
                "value": [
                    {
                        "position": position,
                        "value": readings[index] if index < len(readings) and readings[index] else 0,
                    }
                    for index, position in enumerate(TYRE_POSITIONS)
                ],
            }
        normalised.append(result)
    return normalised


def find_safety_failures(
    template: InspectionTemplate, results: Iterable[Dict[str, Any]]
) -> List[InspectionItem]:
    """Safety-critical items whose result is ``False`` or absent."""

    submitted = {}
    for result in results:
        submitted.setdefault(result["key"], result)
    failures = []
    for item in template.safety_critical_items:
        match = submitted.get(item.key)
        if match is None or match.get("value") is False:
            failures.append(item)
    return failures


def parse_odometer(results: Iterable[Dict[str, Any]]) -> Optional[float]:
    """Odometer reading from the submission, or ``None`` when absent or unreadable."""

    for result in results:
        if result.get("key") != "odometer_reading":
            continue
        value = result.get("value")
        if isinstance(value, str):
            return _leading_float(value)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        return None
    return None
