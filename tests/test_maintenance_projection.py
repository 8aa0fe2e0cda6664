"""Mini README: Tests for the maintenance projection engine.

Validates tour ordering, cumulative distance, the colour thresholds
(including the double red branch), the single-threshold variant, schedule
validation, and the stored-vehicle reporter.
"""

from __future__ import annotations

from datetime import date

import pytest

from conftest import OPS
from fleetledger.errors import InvalidInput
from fleetledger.maintenance import (
    IndicatorColor,
    LastServiceOdometers,
    MaintenanceCategory,
    MaintenanceIntervals,
    MaintenanceReporter,
    TourEstimate,
    compute_maintenance_indicators,
    compute_service_indicators,
    indicator_color,
    indicators_as_dict,
)

INTERVALS = MaintenanceIntervals(tyres=40000, alignment_balancing=20000, service=1000, brakes=30000)
LAST_SERVICE = LastServiceOdometers(tyres=0, wheels=0, service=9800, brakes=0)


@pytest.mark.parametrize(
    "remaining, expected",
    [
        (-1, IndicatorColor.RED),
        (0, IndicatorColor.RED),
        (999, IndicatorColor.RED),
        (1000, IndicatorColor.AMBER),
        (4999, IndicatorColor.AMBER),
        (5000, IndicatorColor.GREEN),
    ],
)
def test_indicator_color_thresholds(remaining, expected) -> None:
    assert indicator_color(remaining) is expected


def test_projection_orders_tours_by_start_date() -> None:
    """Input order does not matter; cumulative distance follows the calendar."""

    tours = [
        TourEstimate(tour_id="t2", start_date="2026-01-03", estimated_distance=300),
        TourEstimate(tour_id="t1", start_date="2026-01-01", estimated_distance=500),
    ]

    result = compute_maintenance_indicators(tours, 10000, INTERVALS, LAST_SERVICE)

    first = result["t1"][MaintenanceCategory.SERVICE]
    second = result["t2"][MaintenanceCategory.SERVICE]
    assert first.cumulative_distance == 10500
    assert first.remaining_distance == 300
    assert first.color is IndicatorColor.RED
    assert second.cumulative_distance == 10800
    assert second.remaining_distance == 0
    assert second.color is IndicatorColor.RED
    assert result == compute_maintenance_indicators(list(reversed(tours)), 10000, INTERVALS, LAST_SERVICE)


def test_every_category_is_projected() -> None:
    tours = [TourEstimate(tour_id="t1", start_date=date(2026, 3, 1), estimated_distance=1000)]

    result = compute_maintenance_indicators(tours, 15000, INTERVALS, LAST_SERVICE)["t1"]

    assert set(result) == set(MaintenanceCategory)
    assert result[MaintenanceCategory.TYRES].remaining_distance == 24000
    assert result[MaintenanceCategory.TYRES].color is IndicatorColor.GREEN
    assert result[MaintenanceCategory.WHEELS].remaining_distance == 4000
    assert result[MaintenanceCategory.WHEELS].color is IndicatorColor.AMBER
    assert result[MaintenanceCategory.SERVICE].remaining_distance == -5200
    assert result[MaintenanceCategory.SERVICE].color is IndicatorColor.RED


def test_missing_estimate_adds_no_distance_and_ties_keep_input_order() -> None:
    tours = [
        {"id": "b", "startDate": "2026-02-01T08:00:00Z", "estimated_km": 200},
        {"id": "a", "startDate": "2026-02-01T08:00:00+00:00"},
        {"id": "c", "startDate": "2026-02-02", "estimated_km": None},
    ]
    intervals = {"tyres": 1, "alignmentBalancing": 1, "service": 1, "brakes": 1}
    last = {"tyres": 0, "wheels": 0, "service": 0, "brakes": 0}

    result = compute_maintenance_indicators(tours, 100, intervals, last)

    assert list(result) == ["b", "a", "c"]
    assert [result[key][MaintenanceCategory.BRAKES].cumulative_distance for key in result] == [300, 300, 300]


def test_no_tours_yields_empty_projection() -> None:
    assert compute_maintenance_indicators([], 10000, INTERVALS, LAST_SERVICE) == {}


def test_invalid_start_date_is_rejected() -> None:
    with pytest.raises(InvalidInput):
        compute_maintenance_indicators([{"id": "x"}], 0, INTERVALS, LAST_SERVICE)


def test_custom_thresholds() -> None:
    tours = [TourEstimate(tour_id="t1", start_date="2026-01-01", estimated_distance=0)]
    result = compute_maintenance_indicators(
        tours, 9800, INTERVALS, LAST_SERVICE, amber_threshold=500, green_threshold=800
    )
    assert result["t1"][MaintenanceCategory.SERVICE].color is IndicatorColor.GREEN


def test_single_threshold_projection() -> None:
    tours = [
        TourEstimate(tour_id="t1", start_date="2026-01-01", estimated_distance=2000),
        TourEstimate(tour_id="t2", start_date="2026-01-05", estimated_distance=2500),
    ]

    result = compute_service_indicators(tours, 50000, 10000, last_service_odometer=45000)

    assert result["t1"].remaining_distance == 3000
    assert result["t1"].color is IndicatorColor.AMBER
    assert result["t2"].remaining_distance == 500
    assert result["t2"].color is IndicatorColor.RED


def test_indicators_as_dict_uses_wire_names() -> None:
    tours = [TourEstimate(tour_id="t1", start_date="2026-01-01", estimated_distance=500)]
    payload = indicators_as_dict(compute_maintenance_indicators(tours, 10000, INTERVALS, LAST_SERVICE))

    assert payload["t1"]["service"] == {"color": "red", "remainingDistance": 300, "cumulativeDistance": 10500}


@pytest.mark.parametrize(
    "intervals",
    [
        {"tyres": 40000, "service": 1000, "brakes": 30000},
        {"tyres": 40000, "alignmentBalancing": "20000", "service": 1000, "brakes": 30000},
    ],
)
def test_incomplete_schedule_is_rejected(intervals) -> None:
    tours = [TourEstimate(tour_id="t1", start_date="2026-01-01", estimated_distance=500)]
    with pytest.raises(InvalidInput):
        compute_maintenance_indicators(tours, 10000, intervals, LAST_SERVICE)


def _schedule_vehicle(store, vehicle, intervals) -> None:
    store.update(
        "vehicles",
        vehicle,
        {
            "latest_odometer": 10000,
            "maintenanceIntervals": intervals,
            "lastServiceOdometers": {"tyres": 0, "wheels": 0, "service": 9800, "brakes": 0},
        },
    )


def test_reporter_rejects_vehicle_missing_an_interval(store, settings, vehicle) -> None:
    _schedule_vehicle(store, vehicle, {"tyres": 40000, "service": 1000, "brakes": 30000})

    with pytest.raises(InvalidInput):
        MaintenanceReporter(store, settings).indicators_for_vehicle(OPS, vehicle)


def test_reporter_skips_tours_without_start_date(store, settings, vehicle) -> None:
    _schedule_vehicle(
        store, vehicle, {"tyres": 40000, "alignmentBalancing": 20000, "service": 1000, "brakes": 30000}
    )
    store.set("tours", "t1", {"organisationId": "org1", "vehicleId": vehicle, "startDate": "2026-01-01", "estimated_km": 500})
    store.set("tours", "draft", {"organisationId": "org1", "vehicleId": vehicle, "estimated_km": 900})

    report = MaintenanceReporter(store, settings).indicators_for_vehicle(OPS, vehicle)

    assert list(report) == ["t1"]
    assert report["t1"]["service"]["cumulativeDistance"] == 10500
