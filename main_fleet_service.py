"""Mini README: Entry point CLI for the fleet float ledger service.

This script exposes a Typer CLI with two commands: ``run`` starts the
FastAPI application under uvicorn, and ``indicators`` projects maintenance
indicators from a JSON file without starting the service. Settings come
from ``FLEETLEDGER_*`` environment variables or a ``.env`` file.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
import uvicorn

from fleetledger.configuration import get_settings
from fleetledger.logging_utils import set_log_level
from fleetledger.maintenance import compute_maintenance_indicators, indicators_as_dict

cli = typer.Typer(help="Run and inspect the fleet float ledger service.")


@cli.command()
def run(
    host: str = typer.Option(None, help="Host interface to bind."),
    port: int = typer.Option(None, help="Port to listen on."),
    production: bool = typer.Option(
        False, help="Use production server settings (disable auto-reload)."
    ),
) -> None:
    """Start the FastAPI application using uvicorn."""

    settings = get_settings()
    effective_host = host or settings.interface_host
    effective_port = port or settings.interface_port
    set_log_level(settings.log_level)

    browser_host = "127.0.0.1" if effective_host in {"0.0.0.0", "::"} else effective_host
    typer.echo(
        f"Starting fleet ledger on {effective_host}:{effective_port} "
        f"(health check: http://{browser_host}:{effective_port}/health)"
    )
    uvicorn.run(
        "fleetledger.interface.web_app:create_application",
        host=effective_host,
        port=effective_port,
        factory=True,
        reload=not production,
    )


@cli.command()
def indicators(
    source: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON projection input."),
) -> None:
    """Print maintenance indicators for the tours described in SOURCE.

    SOURCE holds ``tours``, ``currentOdometer``, ``intervals`` and
    ``lastServiceOdometers`` using the same keys as stored documents.
    """

    settings = get_settings()
    payload = json.loads(source.read_text())
    result = compute_maintenance_indicators(
        payload.get("tours", []),
        payload.get("currentOdometer", 0),
        payload["intervals"],
        payload["lastServiceOdometers"],
        amber_threshold=settings.amber_threshold,
        green_threshold=settings.green_threshold,
    )
    typer.echo(json.dumps(indicators_as_dict(result), indent=2))


if __name__ == "__main__":
    cli()
