"""Mini README: Tests for best-effort notification delivery.

A broken channel must be logged and ignored: the ledger and status
changes that triggered it stay committed.
"""

from __future__ import annotations

from conftest import DRIVER, OPS
from fleetledger.finance import FloatLedger
from fleetledger.fleet import VehicleStatus, VehicleStatusMachine
from fleetledger.notifications import Notification, Notifier, RecordingNotifier, notify_safely


class _BrokenNotifier(Notifier):
    channel_name = "broken"

    def send(self, notification: Notification) -> None:
        raise ConnectionError("mail relay down")


def test_notify_safely_reports_failure() -> None:
    notification = Notification(organisation_id="org1", topic="t", summary="s")

    assert notify_safely(_BrokenNotifier(), notification) is False
    assert notify_safely(None, notification) is False

    recorder = RecordingNotifier()
    assert notify_safely(recorder, notification) is True
    assert recorder.sent == [notification]


def test_broken_notifier_does_not_roll_back_ledger(store, settings) -> None:
    ledger = FloatLedger(store, settings, notifier=_BrokenNotifier())

    float_id = ledger.issue_float(OPS, "driver1", 1000)
    ledger.submit_expense(DRIVER, float_id, "FUEL", 400)

    assert store.get("floats", float_id)["remainingAmount"] == 600


def test_broken_notifier_does_not_block_status_change(store, settings, vehicle) -> None:
    machine = VehicleStatusMachine(store, settings, notifier=_BrokenNotifier())

    machine.create_issue(DRIVER, vehicle, "low", "Cracked mirror")

    assert machine.vehicle_status(vehicle) is VehicleStatus.ISSUE


def test_notifications_can_be_disabled(store, settings) -> None:
    recorder = RecordingNotifier()
    quiet = settings.model_copy(update={"notifications_enabled": False})
    ledger = FloatLedger(store, quiet, notifier=recorder)

    ledger.issue_float(OPS, "driver1", 1000)

    assert recorder.sent == []
