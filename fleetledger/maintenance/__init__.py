"""Mini README: Maintenance projection package.

``projection`` holds the pure cumulative-distance engine; ``reporting``
feeds it from stored vehicles and tours for the HTTP report.
"""

from .projection import (
    IndicatorColor,
    LastServiceOdometers,
    MaintenanceCategory,
    MaintenanceIntervals,
    ServiceIndicator,
    TourEstimate,
    compute_maintenance_indicators,
    compute_service_indicators,
    indicator_color,
    indicators_as_dict,
)
from .reporting import MaintenanceReporter

__all__ = [
    "IndicatorColor",
    "LastServiceOdometers",
    "MaintenanceCategory",
    "MaintenanceIntervals",
    "MaintenanceReporter",
    "ServiceIndicator",
    "TourEstimate",
    "compute_maintenance_indicators",
    "compute_service_indicators",
    "indicator_color",
    "indicators_as_dict",
]
