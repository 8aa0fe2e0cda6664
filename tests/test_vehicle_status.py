"""Mini README: Tests for inspections, issues and vehicle status transitions.

Structure:
    * transition table - ``next_status`` for every status and event.
    * inspections - safety-critical failure rules, issue creation, odometer
      capture, tyre normalisation and ownership checks.
    * issues - resolution only clears the vehicle once nothing is open.
"""

from __future__ import annotations

import pytest

from conftest import DRIVER, FOREIGN_OPS, OPS, OWNER
from fleetledger.errors import Forbidden, InvalidInput, NotFound
from fleetledger.fleet import (
    DEFAULT_TEMPLATES,
    StatusEvent,
    VehicleStatus,
    find_safety_failures,
    next_status,
    normalise_results,
)

SAFETY_KEYS = ["brakes", "tyres_condition", "lights", "steering", "seatbelts"]


def _passing_results(**overrides):
    results = [{"key": key, "value": True} for key in SAFETY_KEYS]
    for key, value in overrides.items():
        results = [item for item in results if item["key"] != key]
        if value is not ...:
            results.append({"key": key, "value": value})
    return results


@pytest.mark.parametrize(
    "current, event, expected",
    [
        (VehicleStatus.READY, StatusEvent.ISSUE_REPORTED, VehicleStatus.ISSUE),
        (VehicleStatus.ISSUE, StatusEvent.ISSUE_REPORTED, VehicleStatus.ISSUE),
        (VehicleStatus.ISSUE, StatusEvent.ISSUES_CLEARED, VehicleStatus.READY),
        (VehicleStatus.READY, StatusEvent.ISSUES_CLEARED, VehicleStatus.READY),
        (VehicleStatus.MAINTENANCE_REQUIRED, StatusEvent.ISSUE_REPORTED, VehicleStatus.MAINTENANCE_REQUIRED),
        (VehicleStatus.OUT_OF_SERVICE, StatusEvent.ISSUES_CLEARED, VehicleStatus.OUT_OF_SERVICE),
    ],
)
def test_next_status(current, event, expected) -> None:
    assert next_status(current, event) is expected


def test_missing_safety_result_counts_as_failure() -> None:
    template = DEFAULT_TEMPLATES.get("pre_trip")
    failures = find_safety_failures(template, _passing_results(brakes=...))
    assert [item.key for item in failures] == ["brakes"]


def test_only_literal_false_fails_a_present_result() -> None:
    """Numbers and strings never count as failures, even falsy ones."""

    template = DEFAULT_TEMPLATES.get("pre_trip")
    results = _passing_results(brakes=0, lights="no", steering=None, seatbelts=False)

    failures = find_safety_failures(template, results)

    assert [item.key for item in failures] == ["seatbelts"]


def test_tyre_tread_string_is_expanded() -> None:
    [result] = normalise_results([{"key": "tyre_tread_depth", "value": "5.5, 6,x"}])

    assert result["value"][0] == {"position": "left_front", "value": 5.5}
    assert result["value"][1] == {"position": "right_front", "value": 6.0}
    assert result["value"][2] == {"position": "left_rear_inner", "value": 0}
    assert len(result["value"]) == 6


def test_results_must_be_a_list() -> None:
    with pytest.raises(InvalidInput):
        normalise_results({"brakes": True})


def test_failed_inspection_opens_issue_and_flags_vehicle(status_machine, store, vehicle) -> None:
    outcome = status_machine.submit_inspection(
        DRIVER,
        "pre_trip",
        _passing_results(brakes=False, lights=...) + [{"key": "odometer_reading", "value": "120345 km"}],
        vehicle_id=vehicle,
    )

    assert outcome.inspection_id == "no_tour_pre_trip_driver1"
    assert outcome.safety_failures == ["brakes", "lights"]
    assert outcome.vehicle_status is VehicleStatus.ISSUE
    issue = store.get("issues", outcome.issue_id)
    assert issue["severity"] == "high"
    assert issue["status"] == "reported"
    assert issue["description"] == "Safety critical items failed: brakes, lights"
    stored_vehicle = store.get("vehicles", vehicle)
    assert stored_vehicle["status"] == "issue"
    assert stored_vehicle["latest_odometer"] == 120345.0
    inspection = store.get("inspections", outcome.inspection_id)
    assert [item["key"] for item in inspection["safetyFailures"]] == ["brakes", "lights"]


def test_passing_inspection_leaves_vehicle_ready(status_machine, store, vehicle) -> None:
    outcome = status_machine.submit_inspection(DRIVER, "post_trip", _passing_results(), vehicle_id=vehicle)

    assert outcome.issue_id is None
    assert store.query("issues") == []
    assert store.get("vehicles", vehicle)["status"] == "ready"


def test_failed_inspection_without_vehicle_opens_nothing(status_machine, store) -> None:
    outcome = status_machine.submit_inspection(DRIVER, "pre_trip", [])

    assert len(outcome.safety_failures) == len(SAFETY_KEYS)
    assert outcome.issue_id is None
    assert store.query("issues") == []


def test_inspection_validates_tour_and_vehicle(status_machine, store, vehicle) -> None:
    store.set("tours", "tour1", {"organisationId": "org1", "vehicleId": "other"})
    store.set("tours", "tour2", {"organisationId": "org2", "vehicleId": vehicle})

    with pytest.raises(InvalidInput):
        status_machine.submit_inspection(DRIVER, "weekly", [])
    with pytest.raises(NotFound):
        status_machine.submit_inspection(DRIVER, "pre_trip", [], tour_id="ghost")
    with pytest.raises(Forbidden):
        status_machine.submit_inspection(DRIVER, "pre_trip", [], tour_id="tour2")
    with pytest.raises(InvalidInput):
        status_machine.submit_inspection(DRIVER, "pre_trip", [], tour_id="tour1", vehicle_id=vehicle)
    with pytest.raises(Forbidden):
        status_machine.submit_inspection(OPS, "pre_trip", [], vehicle_id=vehicle)


def test_sticky_status_survives_failed_inspection(status_machine, store, vehicle) -> None:
    store.update("vehicles", vehicle, {"status": "out_of_service"})

    outcome = status_machine.submit_inspection(DRIVER, "pre_trip", [], vehicle_id=vehicle)

    assert outcome.issue_id is not None
    assert store.get("vehicles", vehicle)["status"] == "out_of_service"


def test_direct_issue_sets_vehicle_to_issue(status_machine, store, vehicle) -> None:
    issue_id = status_machine.create_issue(DRIVER, vehicle, "low", "Wiper streaks")

    assert store.get("issues", issue_id)["severity"] == "low"
    assert status_machine.vehicle_status(vehicle) is VehicleStatus.ISSUE


def test_create_issue_validation(status_machine, vehicle) -> None:
    with pytest.raises(InvalidInput):
        status_machine.create_issue(DRIVER, vehicle, "", "No severity")
    with pytest.raises(InvalidInput):
        status_machine.create_issue(DRIVER, vehicle, "catastrophic", "Bad severity")
    with pytest.raises(NotFound):
        status_machine.create_issue(DRIVER, "ghost", "low", "Unknown vehicle")
    with pytest.raises(Forbidden):
        status_machine.create_issue(FOREIGN_OPS, vehicle, "low", "Wrong org")


def test_vehicle_returns_to_ready_only_when_all_issues_done(status_machine, vehicle) -> None:
    first = status_machine.create_issue(DRIVER, vehicle, "high", "Brake squeal")
    second = status_machine.create_issue(DRIVER, vehicle, "low", "Loose trim")

    assert status_machine.set_issue_status(OPS, first, "done") is None
    assert status_machine.vehicle_status(vehicle) is VehicleStatus.ISSUE

    assert status_machine.set_issue_status(OWNER, second, "done") is VehicleStatus.READY
    assert status_machine.vehicle_status(vehicle) is VehicleStatus.READY


def test_non_done_status_never_clears_vehicle(status_machine, vehicle) -> None:
    issue_id = status_machine.create_issue(DRIVER, vehicle, "medium", "Oil leak")

    assert status_machine.set_issue_status(OPS, issue_id, "in_progress") is None
    assert status_machine.vehicle_status(vehicle) is VehicleStatus.ISSUE


def test_issue_notes_are_appended(status_machine, store, vehicle) -> None:
    issue_id = status_machine.create_issue(DRIVER, vehicle, "medium", "Oil leak")

    status_machine.set_issue_status(OPS, issue_id, "scheduled", notes="Booked for Tuesday")

    description = store.get("issues", issue_id)["description"]
    assert description.startswith("Oil leak\n\n[")
    assert "Status: scheduled]\nBooked for Tuesday" in description


def test_issue_status_validation(status_machine, vehicle) -> None:
    issue_id = status_machine.create_issue(DRIVER, vehicle, "medium", "Oil leak")

    with pytest.raises(InvalidInput):
        status_machine.set_issue_status(OPS, issue_id, "closed")
    with pytest.raises(Forbidden):
        status_machine.set_issue_status(DRIVER, issue_id, "done")
    with pytest.raises(Forbidden):
        status_machine.set_issue_status(FOREIGN_OPS, issue_id, "done")
    with pytest.raises(NotFound):
        status_machine.set_issue_status(OPS, "ghost", "done")


def test_status_change_notifies(status_machine, notifier, vehicle) -> None:
    status_machine.create_issue(DRIVER, vehicle, "low", "Scratch")
    status_machine.create_issue(DRIVER, vehicle, "low", "Dent")

    assert [item.details["to"] for item in notifier.sent] == ["issue"]
