"""Mini README: Core package initializer for the fleet float ledger.

The package bundles the driver float and expense ledger, the vehicle
operational-status state machine, and the maintenance projection engine.
Logging helpers are re-exported here so call sites can grab a logger
without knowing where the helper lives.
"""

from .logging_utils import get_logger

__all__ = ["get_logger"]
