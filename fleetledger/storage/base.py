"""Mini README: Abstract document store contract.

Structure:
    * Filter - a single ``field op value`` predicate for queries.
    * Transaction - read-then-write handle passed into transaction callbacks.
    * DocumentStore - point reads/writes, filtered queries, and the atomic
      ``run_transaction`` primitive.
    * TransactionConflict - raised at commit when a read went stale.

Documents are plain dictionaries. Every document handed back by a store is
a copy that includes its identifier under ``"id"``; mutating it never
touches stored state. Implementations retry ``TransactionConflict``
themselves and raise ``StorageUnavailable`` once retries run out, so callers
of ``run_transaction`` only ever see their own exceptions or that one.
"""

from __future__ import annotations

import operator
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

T = TypeVar("T")

Document = Dict[str, Any]

_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda left, right: left in right,
}


class TransactionConflict(Exception):
    """A document read inside a transaction changed before commit."""


@dataclass(frozen=True, slots=True)
class Filter:
    """Predicate applied to a single document field."""

    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in _OPERATORS:
            raise ValueError(f"Unsupported filter operator: {self.op}")

    def matches(self, document: Document) -> bool:
        """Return ``True`` when the document satisfies the predicate.

        A missing field never matches, including for ``!=``.
        """

        if self.field not in document:
            return False
        try:
            return bool(_OPERATORS[self.op](document[self.field], self.value))
        except TypeError:
            return False


class Transaction(ABC):
    """Transactional handle; all reads must happen before any write."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Read the current committed document, or ``None`` if absent."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, fields: Document) -> None:
        """Create or replace a document at commit."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Document) -> None:
        """Merge fields into an existing document at commit."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document at commit."""


class DocumentStore(ABC):
    """Base interface for document store integrations."""

    store_name: str = "generic"

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Return a copy of the document or ``None``."""

    @abstractmethod
    def query(self, collection: str, filters: Iterable[Filter] = ()) -> List[Document]:
        """Return copies of every document matching all filters."""

    @abstractmethod
    def set(self, collection: str, doc_id: str, fields: Document) -> None:
        """Create or replace a document."""

    @abstractmethod
    def update(self, collection: str, doc_id: str, fields: Document) -> None:
        """Merge fields into an existing document.

        Raises ``NotFound`` when the document does not exist.
        """

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> None:
        """Remove a document; deleting a missing document is a no-op."""

    @abstractmethod
    def new_id(self, collection: str) -> str:
        """Allocate a fresh document identifier for ``collection``."""

    @abstractmethod
    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        """Run ``fn`` atomically, retrying on conflicting writes."""
