"""Mini README: Shared fixtures for the fleet ledger test-suite.

Structure:
    * settings - settings isolated from the developer's ``.env``.
    * store - empty in-memory store with instant retries.
    * ledger / status_machine - components wired to that store.
    * actor constants - drivers, managers and a foreign-organisation user.
"""

from __future__ import annotations

import pytest

from fleetledger.configuration import FleetLedgerSettings
from fleetledger.finance import FloatLedger
from fleetledger.fleet import VehicleStatusMachine
from fleetledger.identity import ActorContext, Role
from fleetledger.notifications import RecordingNotifier
from fleetledger.storage import InMemoryDocumentStore

OWNER = ActorContext(uid="owner1", role=Role.OWNER, organisation_id="org1")
OPS = ActorContext(uid="ops1", role=Role.OPS, organisation_id="org1")
TOUR_MANAGER = ActorContext(uid="tor1", role=Role.TOUR_MANAGER, organisation_id="org1")
MAINTENANCE = ActorContext(uid="mech1", role=Role.MAINTENANCE, organisation_id="org1")
DRIVER = ActorContext(uid="driver1", role=Role.DRIVER, organisation_id="org1")
OTHER_DRIVER = ActorContext(uid="driver2", role=Role.DRIVER, organisation_id="org1")
FOREIGN_OPS = ActorContext(uid="ops9", role=Role.OPS, organisation_id="org2")


@pytest.fixture
def settings() -> FleetLedgerSettings:
    return FleetLedgerSettings(_env_file=None, transaction_backoff_seconds=0)


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(backoff_seconds=0)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def ledger(store, settings, notifier) -> FloatLedger:
    return FloatLedger(store, settings, notifier=notifier)


@pytest.fixture
def status_machine(store, settings, notifier) -> VehicleStatusMachine:
    return VehicleStatusMachine(store, settings, notifier=notifier)


@pytest.fixture
def vehicle(store) -> str:
    store.set(
        "vehicles",
        "veh1",
        {
            "organisationId": "org1",
            "status": "ready",
            "licenceNumber": "CA 123-456",
            "trailerLicence": "TR 99",
            "currentDriverName": "Sam Driver",
        },
    )
    return "veh1"
