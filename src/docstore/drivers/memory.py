"""In-process document driver.

Keeps every table in a dict keyed by ``_id``. Useful for tests and local
development; behaves like the real store for key uniqueness and for missing
tables, so code exercised against it carries over.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Mapping
from typing import Any

from docstore.drivers import IteratorStream, _delete_keys, _require_key
from docstore.query.builder import Query
from docstore.query.condition import MISSING, field_value

logger = logging.getLogger(__name__)


class DuplicateKeyError(KeyError):
    """Raised by :meth:`InMemoryDocumentStore.insert` when the ``_id`` is taken."""


class TableNotFoundError(LookupError):
    """Raised when a store is requested for a table that was never created."""


def _sort_key(value: Any) -> tuple[int, Any]:
    # Missing and null first, then numbers, then strings, then everything else.
    if value is MISSING or value is None:
        return (0, 0)
    if isinstance(value, (bool, int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, repr(value))


class InMemoryDocumentStore:
    """Handle onto one in-memory table."""

    def __init__(self, path: str, table: dict[Any, dict[str, Any]], lock: threading.RLock) -> None:
        self._path = path
        self._table = table
        self._lock = lock
        self._closed = False

    @property
    def path(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Store {self._path} is closed.")

    def insert(self, document: Mapping[str, Any]) -> None:
        self._check_open()
        key = _require_key(document)
        with self._lock:
            if key in self._table:
                raise DuplicateKeyError(f"Document with _id {key!r} already exists in {self._path}")
            self._table[key] = copy.deepcopy(dict(document))

    def insert_or_replace(self, document: Mapping[str, Any]) -> None:
        self._check_open()
        key = _require_key(document)
        with self._lock:
            self._table[key] = copy.deepcopy(dict(document))

    def find_by_id(self, key: Any) -> dict[str, Any] | None:
        self._check_open()
        with self._lock:
            document = self._table.get(key)
            return copy.deepcopy(document) if document is not None else None

    def find(self, query: Query) -> IteratorStream:
        self._check_open()
        with self._lock:
            documents = [
                copy.deepcopy(document)
                for document in self._table.values()
                if query.condition is None or query.condition.matches(document)
            ]
        for field, descending in reversed(query.order_by):
            documents.sort(key=lambda document: _sort_key(field_value(document, field)), reverse=descending)
        if query.limit is not None:
            documents = documents[: query.limit]
        return IteratorStream(documents)

    def delete(self, target: Any) -> None:
        self._check_open()
        keys = _delete_keys(target)
        with self._lock:
            for key in keys:
                self._table.pop(key, None)

    def flush(self) -> None:
        # Writes are applied immediately; nothing is buffered.
        self._check_open()

    def close(self) -> None:
        self._closed = True


class InMemoryDocumentConnection:
    """A :class:`~docstore.protocols.DocumentConnection` backed by process memory.

    Args:
        auto_create: Create missing tables on :meth:`get_store` instead of
            raising :class:`TableNotFoundError`.
    """

    def __init__(self, *, auto_create: bool = False) -> None:
        self._tables: dict[str, dict[Any, dict[str, Any]]] = {}
        self._lock = threading.RLock()
        self._auto_create = auto_create

    def get_store(self, path: str) -> InMemoryDocumentStore:
        with self._lock:
            table = self._tables.get(path)
            if table is None:
                if not self._auto_create:
                    raise TableNotFoundError(f"Table {path} does not exist.")
                table = self._tables.setdefault(path, {})
        logger.debug("Opened in-memory store %s", path)
        return InMemoryDocumentStore(path, table, self._lock)

    def new_query(self) -> Query:
        return Query()

    def new_document(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return copy.deepcopy(dict(payload))

    def create_table(self, path: str) -> None:
        with self._lock:
            if path in self._tables:
                raise FileExistsError(f"Table {path} already exists.")
            self._tables[path] = {}

    def drop_table(self, path: str) -> None:
        with self._lock:
            if self._tables.pop(path, None) is None:
                raise TableNotFoundError(f"Table {path} does not exist.")

    def table_exists(self, path: str) -> bool:
        with self._lock:
            return path in self._tables

    def close(self) -> None:
        with self._lock:
            self._tables.clear()
