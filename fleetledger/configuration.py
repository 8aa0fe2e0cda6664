"""Mini README: Centralised configuration model for the fleet ledger.

Structure:
    * FleetLedgerSettings - Pydantic model describing runtime configuration.
    * get_settings - cached accessor used by process entry points.

Usage:
    Entry points (the CLI and the web application factory) call
    ``get_settings`` once and hand the resulting object to every component
    they construct. Library code never reaches for the cached accessor
    itself, so tests can build components with bespoke settings.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class FleetLedgerSettings(BaseSettings):
    """Runtime configuration for the ledger, status machine, and projections."""

    environment: str = Field(
        "development",
        description="Environment label controlling debug toggles and logging levels.",
    )
    log_level: str = Field("INFO", description="Root logging level name.")
    interface_host: str = Field(
        "0.0.0.0",
        description="Network interface for the HTTP service to bind to.",
    )
    interface_port: int = Field(
        8000,
        description="Port the HTTP service exposes.",
        ge=1,
        le=65535,
    )
    reimbursement_category: str = Field(
        "WIFI",
        description="Expense category that credits the float instead of debiting it.",
    )
    transaction_attempts: int = Field(
        5,
        description="Attempts made by the store before giving up on a contended transaction.",
        ge=1,
    )
    transaction_backoff_seconds: float = Field(
        0.01,
        description="Base delay for exponential backoff between transaction retries.",
        ge=0,
    )
    amber_threshold: int = Field(
        1000,
        description="Remaining distance below which a maintenance indicator is red.",
    )
    green_threshold: int = Field(
        5000,
        description="Remaining distance at or above which a maintenance indicator is green.",
    )
    notifications_enabled: bool = Field(
        True,
        description="Emit best-effort notifications for ledger and vehicle status changes.",
    )

    class Config:
        env_prefix = "FLEETLEDGER_"
        env_file = ".env"
        case_sensitive = False

    @validator("reimbursement_category", pre=True)
    def _normalise_category(cls, value: str) -> str:
        """Categories are compared upper-cased throughout the ledger."""

        return str(value).strip().upper()

    @validator("green_threshold")
    def _thresholds_ordered(cls, value: int, values: dict) -> int:
        """Green must start at or above the amber boundary."""

        amber = values.get("amber_threshold")
        if amber is not None and value < amber:
            raise ValueError("green_threshold must be >= amber_threshold")
        return value


@lru_cache()
def get_settings() -> FleetLedgerSettings:
    """Return cached settings for process entry points."""

    return FleetLedgerSettings()
