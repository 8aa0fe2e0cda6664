"""Mini README: HTTP interface for the fleet float ledger.

Exports the FastAPI application factory. The factory takes an optional
store, settings and notifier so tests and alternative deployments can
inject their own collaborators.
"""

from .web_app import create_application

__all__ = ["create_application"]
