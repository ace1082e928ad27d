"""DocumentTemplate: CRUD and query execution against a document store.

The template resolves table paths and identities from entity declarations,
opens one store handle per operation group, and always flushes and closes
that handle before returning, whether the operation succeeded or not.
Bulk operations share a single handle across the whole batch.

Only the ``count`` path translates failures (through
:class:`~docstore.translation.ExceptionTranslator`); everything else a
driver raises propagates unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import sqlalchemy as sa
from pydantic import BaseModel

from docstore.codec import DocumentCodec
from docstore.connections import ConnectionPair
from docstore.drivers import IteratorStream
from docstore.exceptions import ResourceUsageError
from docstore.identity import KEY_FIELD, assign_id, encode_key, require_identity
from docstore.mapping import EntityDescription, describe
from docstore.paths import resolve_absolute_path, resolve_table_path
from docstore.protocols import DocumentConnection, DocumentStore
from docstore.query.builder import Query
from docstore.query.condition import Condition
from docstore.translation import ExceptionTranslator

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

COUNT_SQL = "SELECT COUNT(*) FROM dfs.`{path}`"


class DocumentTemplate:
    """Synchronous operations engine over a :class:`ConnectionPair`.

    Args:
        database_name: Root under which every table path is placed.
        connections: Document and query connections, owned by the template
            until :meth:`close`.
        codec: Entity/document converter.
        translator: Failure translator used by :meth:`count`.
    """

    def __init__(
        self,
        database_name: str,
        connections: ConnectionPair,
        *,
        codec: DocumentCodec | None = None,
        translator: ExceptionTranslator | None = None,
    ) -> None:
        self._database_name = database_name
        self._connections = connections
        self._codec = codec or DocumentCodec()
        self._translator = translator or ExceptionTranslator()

    @property
    def database_name(self) -> str:
        return self._database_name

    @property
    def connection(self) -> DocumentConnection:
        return self._connections.documents

    @property
    def codec(self) -> DocumentCodec:
        return self._codec

    def close(self) -> None:
        """Close the document connection and dispose the query engine."""
        self._connections.close()

    def __enter__(self) -> DocumentTemplate:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- Paths and handles ------------------------------------------------------

    def absolute_path(self, table_name: str) -> str:
        return resolve_absolute_path(self._database_name, table_name)

    def _table_name(self, entity_type: type[BaseModel], table_name: str | None) -> str:
        return table_name if table_name is not None else resolve_table_path(entity_type)

    def get_store(self, target: type[BaseModel] | str) -> DocumentStore:
        """Open a live handle for an entity type or a table name.

        The caller owns the returned handle and must flush and close it.
        """
        table_name = target if isinstance(target, str) else resolve_table_path(target)
        return self._connections.documents.get_store(self.absolute_path(table_name))

    @contextmanager
    def _open_store(self, table_name: str) -> Iterator[DocumentStore]:
        store = self.get_store(table_name)
        try:
            yield store
        except BaseException:
            try:
                store.flush()
            except Exception as flush_exc:
                # The operation's own failure is the one that propagates.
                logger.warning("Flush of %s failed after an earlier error: %s", table_name, type(flush_exc).__name__)
            finally:
                store.close()
            raise
        try:
            store.flush()
        finally:
            store.close()

    # -- Table administration ---------------------------------------------------

    def create_table(self, target: type[BaseModel] | str) -> None:
        table_name = target if isinstance(target, str) else resolve_table_path(target)
        self._connections.documents.create_table(self.absolute_path(table_name))

    def drop_table(self, target: type[BaseModel] | str) -> None:
        table_name = target if isinstance(target, str) else resolve_table_path(target)
        self._connections.documents.drop_table(self.absolute_path(table_name))

    def table_exists(self, target: type[BaseModel] | str) -> bool:
        table_name = target if isinstance(target, str) else resolve_table_path(target)
        return self._connections.documents.table_exists(self.absolute_path(table_name))

    # -- Reads ------------------------------------------------------------------

    def find_by_id(self, id: Any, entity_type: type[T], table_name: str | None = None) -> T | None:
        """Look up one entity by key. Returns ``None`` when no document has that key."""
        description = require_identity(entity_type, "find_by_id")
        key = encode_key(id, description)
        with self._open_store(self._table_name(entity_type, table_name)) as store:
            document = store.find_by_id(key)
        return self._codec.to_entity(document, entity_type) if document is not None else None

    def find_all(self, entity_type: type[T], table_name: str | None = None) -> list[T]:
        return self.execute(self._connections.documents.new_query(), entity_type, table_name)

    def execute(self, query: Query | Condition | None, entity_type: type[T], table_name: str | None = None) -> list[T]:
        """Run *query* (or a bare condition) and convert every match to *entity_type*."""
        query = self._bind(query, describe(entity_type))
        table_name = self._table_name(entity_type, table_name)
        with self._open_store(table_name) as store:
            logger.debug("Executing query: %s in table: %s", query, table_name)
            stream = store.find(query)
            try:
                return [self._codec.to_entity(document, entity_type) for document in stream]
            finally:
                stream.close()

    def count_matching(
        self, query: Query | Condition | None, entity_type: type[BaseModel], table_name: str | None = None
    ) -> int:
        """Count documents matching *query* by streaming them from the store."""
        query = self._bind(query, describe(entity_type))
        with self._open_store(self._table_name(entity_type, table_name)) as store:
            stream = store.find(query)
            try:
                return sum(1 for _ in stream)
            finally:
                stream.close()

    def exists(
        self, query: Query | Condition | None, entity_type: type[BaseModel], table_name: str | None = None
    ) -> bool:
        query = self._bind(query, describe(entity_type)).take(1)
        with self._open_store(self._table_name(entity_type, table_name)) as store:
            stream = store.find(query)
            try:
                return next(iter(stream), None) is not None
            finally:
                stream.close()

    # -- Writes -----------------------------------------------------------------

    def insert(self, entity: T, table_name: str | None = None) -> T:
        """Insert one entity, generating a ``str`` key if it has none.

        Fails at the driver if a document with the same key exists.
        """
        entity_type = type(entity)
        description = require_identity(entity_type, "insert")
        with self._open_store(self._table_name(entity_type, table_name)) as store:
            return self._write(entity, description, store, replace=False)

    def insert_many(self, entities: Iterable[T], entity_type: type[T], table_name: str | None = None) -> list[T]:
        """Insert a batch of *entity_type* entities through one shared handle."""
        return self._write_many(entities, entity_type, table_name, replace=False)

    def save(self, entity: T, table_name: str | None = None) -> T:
        """Insert or replace one entity, generating a ``str`` key if it has none."""
        entity_type = type(entity)
        description = require_identity(entity_type, "save")
        with self._open_store(self._table_name(entity_type, table_name)) as store:
            return self._write(entity, description, store, replace=True)

    def save_many(self, entities: Iterable[T], entity_type: type[T], table_name: str | None = None) -> list[T]:
        """Insert or replace a batch of *entity_type* entities through one shared handle."""
        return self._write_many(entities, entity_type, table_name, replace=True)

    def _write_many(
        self, entities: Iterable[T], entity_type: type[T], table_name: str | None, *, replace: bool
    ) -> list[T]:
        batch = list(entities)
        if not batch:
            return []
        description = require_identity(entity_type, "save_many" if replace else "insert_many")
        with self._open_store(self._table_name(entity_type, table_name)) as store:
            return [self._write(entity, description, store, replace=replace) for entity in batch]

    def _write(self, entity: T, description: EntityDescription, store: DocumentStore, *, replace: bool) -> T:
        operation = "save" if replace else "insert"
        document = self._connections.documents.new_document(self._codec.to_document(entity))
        document = assign_id(document, description, operation)
        if replace:
            store.insert_or_replace(document)
        else:
            store.insert(document)
        return self._codec.to_entity(document, type(entity))

    # -- Removal ----------------------------------------------------------------

    def remove(self, entity: BaseModel, table_name: str | None = None) -> None:
        """Delete the document matching the entity's serialised form."""
        entity_type = type(entity)
        require_identity(entity_type, "remove")
        document = self._connections.documents.new_document(self._codec.to_document(entity))
        with self._open_store(self._table_name(entity_type, table_name)) as store:
            store.delete(document)

    def remove_by_id(self, id: Any, entity_type: type[BaseModel], table_name: str | None = None) -> None:
        description = require_identity(entity_type, "remove_by_id")
        key = encode_key(id, description)
        with self._open_store(self._table_name(entity_type, table_name)) as store:
            store.delete(key)

    def remove_many(self, entities: Iterable[T], entity_type: type[T], table_name: str | None = None) -> None:
        """Delete a batch of entities through one shared handle."""
        batch = list(entities)
        if not batch:
            return
        require_identity(entity_type, "remove_many")
        new_document = self._connections.documents.new_document
        with self._open_store(self._table_name(entity_type, table_name)) as store:
            for entity in batch:
                store.delete(new_document(self._codec.to_document(entity)))

    def remove_all(self, entity_type: type[BaseModel], table_name: str | None = None) -> None:
        """Delete every document in the entity's table."""
        self.remove_matching(self._connections.documents.new_query(), entity_type, table_name)

    def remove_matching(
        self, query: Query | Condition | None, entity_type: type[BaseModel], table_name: str | None = None
    ) -> int:
        """Delete every document matching *query*; returns how many were removed."""
        query = self._bind(query, describe(entity_type))
        with self._open_store(self._table_name(entity_type, table_name)) as store:
            stream = store.find(query)
            try:
                documents = list(stream)
            finally:
                stream.close()
            if documents:
                store.delete(IteratorStream(documents))
            return len(documents)

    # -- Counting ---------------------------------------------------------------

    def count(self, entity_type: type[BaseModel], table_name: str | None = None) -> int:
        """Count every document of the table through the relational query side.

        Raises:
            ResourceUsageError: If the query side is unavailable or fails with a
                recognised resource-access error.
        """
        entity_name = entity_type.__name__
        path = self.absolute_path(self._table_name(entity_type, table_name))
        engine = self._connections.query_engine
        if engine is None:
            raise ResourceUsageError(
                entity_name=entity_name,
                operation="count",
                detail="No relational query connection is available.",
            )
        statement = sa.text(COUNT_SQL.format(path=path).replace(":", r"\:"))
        try:
            with engine.connect() as conn:
                value = conn.execute(statement).scalar_one()
            return int(str(value))
        except Exception as exc:
            translated = self._translator.translate(exc, entity_name=entity_name, operation="count")
            if translated is None:
                raise
            logger.error("Count failed for %s: %s", entity_name, type(exc).__name__)
            raise translated from exc

    # -- Helpers ----------------------------------------------------------------

    def _bind(self, query: Query | Condition | None, description: EntityDescription) -> Query:
        if query is None:
            query = self._connections.documents.new_query()
        elif isinstance(query, Condition):
            query = self._connections.documents.new_query().where(query)
        names = dict(description.stored_names)
        if description.key_field is not None:
            names[description.key_field] = KEY_FIELD
        return query.rename(names) if names else query
