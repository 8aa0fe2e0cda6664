"""Mini README: Document store adapter package.

Re-exports the abstract store contract (``DocumentStore``, ``Transaction``,
``Filter``) and the in-memory implementation used by tests and local
development. Hosted stores plug in by subclassing ``DocumentStore``.
"""

from .base import DocumentStore, Filter, Transaction, TransactionConflict
from .memory import InMemoryDocumentStore

__all__ = [
    "DocumentStore",
    "Filter",
    "InMemoryDocumentStore",
    "Transaction",
    "TransactionConflict",
]
