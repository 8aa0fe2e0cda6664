"""Mini README: Read-only maintenance report for a stored vehicle.

Structure:
    * MaintenanceReporter - loads a vehicle and its tours from the store and
      runs the projection with thresholds from settings.

Vehicle documents carry ``latest_odometer``, ``maintenanceIntervals``
(``tyres``, ``alignmentBalancing``, ``service``, ``brakes``) and
``lastServiceOdometers`` (``tyres``, ``wheels``, ``service``, ``brakes``).
The reporter never writes. Tours without a usable ``startDate`` are not
yet scheduled and are left out of the projection.
"""

from __future__ import annotations

from typing import Any, Dict

from ..configuration import FleetLedgerSettings
from ..errors import Forbidden, InvalidInput, NotFound
from ..identity import ActorContext
from ..logging_utils import get_logger
from ..storage import DocumentStore, Filter
from ..time_utils import parse_start
from .projection import compute_maintenance_indicators, indicators_as_dict

LOGGER = get_logger(__name__)


class MaintenanceReporter:
    """Compute maintenance indicators for vehicles held in the store."""

    def __init__(self, store: DocumentStore, settings: FleetLedgerSettings) -> None:
        self._store = store
        self._amber_threshold = settings.amber_threshold
        self._green_threshold = settings.green_threshold

    def indicators_for_vehicle(self, actor: ActorContext, vehicle_id: str) -> Dict[str, Dict[str, Any]]:
        vehicle = self._store.get("vehicles", vehicle_id)
        if vehicle is None:
            raise NotFound("Vehicle not found")
        if vehicle.get("organisationId") != actor.organisation_id:
            raise Forbidden("Vehicle does not belong to organisation")
        intervals = vehicle.get("maintenanceIntervals")
        last_service = vehicle.get("lastServiceOdometers")
        if not intervals or not last_service:
            raise InvalidInput("Vehicle has no maintenance schedule configured")

        tours = [
            tour
            for tour in self._store.query("tours", [Filter("vehicleId", "==", vehicle_id)])
            if self._is_scheduled(tour)
        ]
        indicators = compute_maintenance_indicators(
            tours,
            vehicle.get("latest_odometer") or 0,
            intervals,
            last_service,
            amber_threshold=self._amber_threshold,
            green_threshold=self._green_threshold,
        )
        LOGGER.debug("Projected maintenance for vehicle %s across %s tours", vehicle_id, len(tours))
        return indicators_as_dict(indicators)

    @staticmethod
    def _is_scheduled(tour: Dict[str, Any]) -> bool:
        try:
            parse_start(tour.get("startDate"))
        except ValueError:
            LOGGER.debug("Skipping tour %s without a usable start date", tour.get("id"))
            return False
        return True
