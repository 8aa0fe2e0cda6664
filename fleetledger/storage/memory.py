"""Mini README: In-memory document store with optimistic transactions.

Structure:
    * InMemoryDocumentStore - dictionary-backed ``DocumentStore``.
    * _InMemoryTransaction - buffers writes and records read versions.

Every stored document carries a version drawn from a store-wide counter.
A transaction remembers the version of each document it read (``None``
for absent) and buffers its writes; commit takes the store lock, checks
every recorded version is still current, and only then applies the
buffered writes. A stale read raises ``TransactionConflict`` and the
whole callback is run again from scratch, which is how a hosted store
behaves under contention.
"""

from __future__ import annotations

import copy
import threading
import time
import uuid
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

from ..errors import NotFound, StorageUnavailable
from ..logging_utils import get_logger
from .base import Document, DocumentStore, Filter, Transaction, TransactionConflict

LOGGER = get_logger(__name__)

T = TypeVar("T")

_Key = Tuple[str, str]


def _with_id(doc_id: str, fields: Document) -> Document:
    document = copy.deepcopy(fields)
    document["id"] = doc_id
    return document


def _strip_id(fields: Document) -> Document:
    return {key: copy.deepcopy(value) for key, value in fields.items() if key != "id"}


class _InMemoryTransaction(Transaction):
    """Transaction handle bound to one attempt of ``run_transaction``."""

    def __init__(self, store: "InMemoryDocumentStore") -> None:
        self._store = store
        self._reads: Dict[_Key, Optional[int]] = {}
        self._writes: List[Tuple[str, _Key, Optional[Document]]] = []

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        if self._writes:
            raise RuntimeError("Transactions must perform all reads before any writes")
        version, document = self._store._snapshot(collection, doc_id)
        self._reads[(collection, doc_id)] = version
        return document

    def set(self, collection: str, doc_id: str, fields: Document) -> None:
        self._writes.append(("set", (collection, doc_id), _strip_id(fields)))

    def update(self, collection: str, doc_id: str, fields: Document) -> None:
        self._writes.append(("update", (collection, doc_id), _strip_id(fields)))

    def delete(self, collection: str, doc_id: str) -> None:
        self._writes.append(("delete", (collection, doc_id), None))

    def commit(self) -> None:
        with self._store._lock:
            for (collection, doc_id), version in self._reads.items():
                current = self._store._version(collection, doc_id)
                if current != version:
                    raise TransactionConflict(
                        f"{collection}/{doc_id} changed (read v{version}, now v{current})"
                    )
            present = {}
            for action, key, _ in self._writes:
                exists = present.get(key, self._store._version(*key) is not None)
                if action == "update" and not exists:
                    raise NotFound(f"{key[0]}/{key[1]} does not exist")
                present[key] = action != "delete"
            for action, (collection, doc_id), fields in self._writes:
                if action == "set":
                    self._store._put(collection, doc_id, fields)
                elif action == "update":
                    self._store._merge(collection, doc_id, fields)
                else:
                    self._store._remove(collection, doc_id)


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe dictionary store used for tests and local runs."""

    store_name = "memory"

    def __init__(
        self,
        *,
        max_attempts: int = 5,
        backoff_seconds: float = 0.01,
        seed: Optional[Dict[str, Dict[str, Document]]] = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self._lock = threading.RLock()
        self._last_version = 0
        self._collections: Dict[str, Dict[str, Tuple[int, Document]]] = {}
        for collection, documents in (seed or {}).items():
            for doc_id, fields in documents.items():
                self._put(collection, doc_id, _strip_id(fields))
        LOGGER.debug(
            "Initialised in-memory store with %s collections", len(self._collections)
        )

    # Internal helpers; callers must hold the lock for the mutating ones.

    def _version(self, collection: str, doc_id: str) -> Optional[int]:
        entry = self._collections.get(collection, {}).get(doc_id)
        return entry[0] if entry else None

    def _snapshot(self, collection: str, doc_id: str) -> Tuple[Optional[int], Optional[Document]]:
        with self._lock:
            entry = self._collections.get(collection, {}).get(doc_id)
            if entry is None:
                return None, None
            version, fields = entry
            return version, _with_id(doc_id, fields)

    def _next_version(self) -> int:
        # Versions are store-wide; a recreated document never reuses one.
        self._last_version += 1
        return self._last_version

    def _put(self, collection: str, doc_id: str, fields: Document) -> None:
        self._collections.setdefault(collection, {})[doc_id] = (self._next_version(), fields)

    def _merge(self, collection: str, doc_id: str, fields: Document) -> None:
        entry = self._collections.get(collection, {}).get(doc_id)
        if entry is None:
            raise NotFound(f"{collection}/{doc_id} does not exist")
        merged = dict(entry[1])
        merged.update(fields)
        self._collections[collection][doc_id] = (self._next_version(), merged)

    def _remove(self, collection: str, doc_id: str) -> None:
        self._collections.get(collection, {}).pop(doc_id, None)

    # DocumentStore API

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return self._snapshot(collection, doc_id)[1]

    def query(self, collection: str, filters: Iterable[Filter] = ()) -> List[Document]:
        filters = list(filters)
        with self._lock:
            entries = list(self._collections.get(collection, {}).items())
            matches = [
                _with_id(doc_id, fields)
                for doc_id, (_, fields) in entries
                if all(condition.matches(fields) for condition in filters)
            ]
        LOGGER.debug("Query %s with %s filters -> %s documents", collection, len(filters), len(matches))
        return matches

    def set(self, collection: str, doc_id: str, fields: Document) -> None:
        with self._lock:
            self._put(collection, doc_id, _strip_id(fields))

    def update(self, collection: str, doc_id: str, fields: Document) -> None:
        with self._lock:
            self._merge(collection, doc_id, _strip_id(fields))

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._remove(collection, doc_id)

    def new_id(self, collection: str) -> str:
        return uuid.uuid4().hex[:20]

    def run_transaction(self, fn: Callable[[Transaction], T]) -> T:
        for attempt in range(self.max_attempts):
            transaction = _InMemoryTransaction(self)
            result = fn(transaction)
            try:
                transaction.commit()
            except TransactionConflict as conflict:
                LOGGER.info(
                    "Transaction conflict on attempt %s/%s: %s",
                    attempt + 1,
                    self.max_attempts,
                    conflict,
                )
                if attempt < self.max_attempts - 1:
                    time.sleep(self.backoff_seconds * (2**attempt))
                continue
            return result
        LOGGER.error("Transaction abandoned after %s attempts", self.max_attempts)
        raise StorageUnavailable(
            f"Transaction could not commit after {self.max_attempts} attempts"
        )
