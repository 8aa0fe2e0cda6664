"""Mini README: Maintenance projection across a vehicle's scheduled tours.

Structure:
    * MaintenanceCategory - tyres, wheels (alignment/balancing), service, brakes.
    * IndicatorColor - traffic-light classification.
    * MaintenanceIntervals / LastServiceOdometers - per-category inputs.
    * TourEstimate - a scheduled tour with its estimated distance.
    * ServiceIndicator - remaining and cumulative distance plus colour.
    * indicator_color - threshold classification.
    * compute_maintenance_indicators - per-tour, per-category projection.
    * compute_service_indicators - single-threshold projection.

Tours are ordered by start date (stable for ties) and walked with a running
distance seeded at the current odometer. A tour's cumulative distance
includes its own estimate; tours without an estimate add nothing. Every
function here is pure and keeps no state between calls.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

import numpy as np

from ..errors import InvalidInput
from ..time_utils import parse_start

Number = Union[int, float]

DEFAULT_AMBER_THRESHOLD = 1000
DEFAULT_GREEN_THRESHOLD = 5000


class MaintenanceCategory(str, Enum):
    TYRES = "tyres"
    WHEELS = "wheels"
    SERVICE = "service"
    BRAKES = "brakes"


class IndicatorColor(str, Enum):
    GREEN = "green"
    AMBER = "amber"
    RED = "red"


def _schedule_value(values: Mapping[str, Any], *keys: str) -> Number:
    """First of ``keys`` present in ``values``; it must be a plain number."""

    for key in keys:
        if key in values:
            value = values[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidInput(f"Maintenance schedule value '{key}' must be a number")
            return value
    raise InvalidInput(f"Maintenance schedule is missing {keys[-1]}")


@dataclass(frozen=True, slots=True)
class MaintenanceIntervals:
    """Distance between services for each category."""

    tyres: Number
    alignment_balancing: Number
    service: Number
    brakes: Number

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "MaintenanceIntervals":
        return cls(
            tyres=_schedule_value(values, "tyres"),
            alignment_balancing=_schedule_value(values, "alignment_balancing", "alignmentBalancing"),
            service=_schedule_value(values, "service"),
            brakes=_schedule_value(values, "brakes"),
        )

    def for_category(self, category: MaintenanceCategory) -> Number:
        if category is MaintenanceCategory.WHEELS:
            return self.alignment_balancing
        return getattr(self, category.value)


@dataclass(frozen=True, slots=True)
class LastServiceOdometers:
    """Odometer reading at the most recent service of each category."""

    tyres: Number
    wheels: Number
    service: Number
    brakes: Number

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "LastServiceOdometers":
        return cls(
            tyres=_schedule_value(values, "tyres"),
            wheels=_schedule_value(values, "wheels"),
            service=_schedule_value(values, "service"),
            brakes=_schedule_value(values, "brakes"),
        )

    def for_category(self, category: MaintenanceCategory) -> Number:
        return getattr(self, category.value)


@dataclass(frozen=True, slots=True)
class TourEstimate:
    """Scheduled tour contributing distance to the projection."""

    tour_id: str
    start_date: Any
    estimated_distance: Optional[Number] = None
    reference: str = ""

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "TourEstimate":
        """Build from a tour document (``id``, ``startDate``, ``estimated_km``)."""

        return cls(
            tour_id=str(values.get("id") or values.get("tour_id")),
            start_date=values.get("startDate", values.get("start_date")),
            estimated_distance=values.get("estimated_km", values.get("estimated_distance")),
            reference=values.get("tour_reference", "") or "",
        )

    @property
    def distance(self) -> Number:
        value = self.estimated_distance
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
            return 0
        return value


@dataclass(frozen=True, slots=True)
class ServiceIndicator:
    """Projected state of one maintenance category after a tour."""

    color: IndicatorColor
    remaining_distance: Number
    cumulative_distance: Number

    def as_dict(self) -> Dict[str, Any]:
        return {
            "color": self.color.value,
            "remainingDistance": self.remaining_distance,
            "cumulativeDistance": self.cumulative_distance,
        }


def indicator_color(
    remaining: Number,
    *,
    amber_threshold: Number = DEFAULT_AMBER_THRESHOLD,
    green_threshold: Number = DEFAULT_GREEN_THRESHOLD,
) -> IndicatorColor:
    """Classify the remaining distance before a service is due."""

    if remaining < 0:
        return IndicatorColor.RED
    if remaining < amber_threshold:
        return IndicatorColor.RED
    if remaining < green_threshold:
        return IndicatorColor.AMBER
    return IndicatorColor.GREEN


def _coerce_tours(tours: Iterable[Union[TourEstimate, Mapping[str, Any]]]) -> List[TourEstimate]:
    return [tour if isinstance(tour, TourEstimate) else TourEstimate.from_mapping(tour) for tour in tours]


def _cumulative_distances(
    tours: Sequence[TourEstimate], current_odometer: Number
) -> List[tuple]:
    """Pair each tour, in start order, with its cumulative distance."""

    try:
        ordered = sorted(tours, key=lambda tour: parse_start(tour.start_date))
    except ValueError as error:
        raise InvalidInput(f"Tour start date is invalid: {error}") from error
    if not ordered:
        return []
    running = np.cumsum(np.asarray([tour.distance for tour in ordered])) + current_odometer
    return list(zip(ordered, running.tolist()))


def compute_maintenance_indicators(
    tours: Iterable[Union[TourEstimate, Mapping[str, Any]]],
    current_odometer: Number,
    intervals: Union[MaintenanceIntervals, Mapping[str, Any]],
    last_service_odometers: Union[LastServiceOdometers, Mapping[str, Any]],
    *,
    amber_threshold: Number = DEFAULT_AMBER_THRESHOLD,
    green_threshold: Number = DEFAULT_GREEN_THRESHOLD,
) -> Dict[str, Dict[MaintenanceCategory, ServiceIndicator]]:
    """Project every maintenance category across the vehicle's tours.

    For a category with interval ``I`` and last-service odometer ``L`` the
    remaining distance at a tour is ``(L + I) - cumulative``.
    """

    if not isinstance(intervals, MaintenanceIntervals):
        intervals = MaintenanceIntervals.from_mapping(intervals)
    if not isinstance(last_service_odometers, LastServiceOdometers):
        last_service_odometers = LastServiceOdometers.from_mapping(last_service_odometers)

    indicators: Dict[str, Dict[MaintenanceCategory, ServiceIndicator]] = {}
    for tour, cumulative in _cumulative_distances(_coerce_tours(tours), current_odometer):
        per_category = {}
        for category in MaintenanceCategory:
            due_at = last_service_odometers.for_category(category) + intervals.for_category(category)
            remaining = due_at - cumulative
            per_category[category] = ServiceIndicator(
                color=indicator_color(
                    remaining, amber_threshold=amber_threshold, green_threshold=green_threshold
                ),
                remaining_distance=remaining,
                cumulative_distance=cumulative,
            )
        indicators[tour.tour_id] = per_category
    return indicators


def compute_service_indicators(
    tours: Iterable[Union[TourEstimate, Mapping[str, Any]]],
    current_odometer: Number,
    next_service_threshold: Number,
    last_service_odometer: Number = 0,
    *,
    amber_threshold: Number = DEFAULT_AMBER_THRESHOLD,
    green_threshold: Number = DEFAULT_GREEN_THRESHOLD,
) -> Dict[str, ServiceIndicator]:
    """Project a single service threshold, for vehicles tracking only one interval."""

    indicators: Dict[str, ServiceIndicator] = {}
    for tour, cumulative in _cumulative_distances(_coerce_tours(tours), current_odometer):
        remaining = next_service_threshold - (cumulative - last_service_odometer)
        indicators[tour.tour_id] = ServiceIndicator(
            color=indicator_color(
                remaining, amber_threshold=amber_threshold, green_threshold=green_threshold
            ),
            remaining_distance=remaining,
            cumulative_distance=cumulative,
        )
    return indicators


def indicators_as_dict(
    indicators: Mapping[str, Mapping[MaintenanceCategory, ServiceIndicator]]
) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """JSON-ready form keyed by tour id then category name."""

    return {
        tour_id: {category.value: indicator.as_dict() for category, indicator in per_category.items()}
        for tour_id, per_category in indicators.items()
    }
