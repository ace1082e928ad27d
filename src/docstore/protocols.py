"""Driver protocols: the document-store interface the template is written against."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Protocol, runtime_checkable

from docstore.query.builder import Query


@runtime_checkable
class DocumentStream(Protocol):
    """A closeable stream of documents returned by :meth:`DocumentStore.find`."""

    def __iter__(self) -> Iterator[dict[str, Any]]: ...

    def close(self) -> None: ...


@runtime_checkable
class DocumentStore(Protocol):
    """A handle bound to one table path.

    Handles are opened per operation group and must be flushed, then closed,
    by whoever opened them.
    """

    @property
    def path(self) -> str: ...

    def insert(self, document: Mapping[str, Any]) -> None:
        """Insert a document. Fails if a document with the same ``_id`` exists."""
        ...

    def insert_or_replace(self, document: Mapping[str, Any]) -> None:
        """Insert a document, replacing any document with the same ``_id``."""
        ...

    def find_by_id(self, key: Any) -> dict[str, Any] | None: ...

    def find(self, query: Query) -> DocumentStream: ...

    def delete(self, target: Any) -> None:
        """Delete by document (its ``_id``), by key, or every document of a stream."""
        ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class DocumentConnection(Protocol):
    """A long-lived connection to a document store."""

    def get_store(self, path: str) -> DocumentStore: ...

    def new_query(self) -> Query: ...

    def new_document(self, payload: Mapping[str, Any]) -> dict[str, Any]: ...

    def create_table(self, path: str) -> None: ...

    def drop_table(self, path: str) -> None: ...

    def table_exists(self, path: str) -> bool: ...

    def close(self) -> None: ...
