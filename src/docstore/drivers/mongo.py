"""PyMongo document driver.

A table path ``/<database>/<a>/<b>`` maps to database ``<database>`` and
collection ``<a>.<b>``. Conditions are compiled to MongoDB filter documents.

Requires the ``pymongo`` dependency.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any

from pymongo import ASCENDING, DESCENDING, MongoClient

from docstore.drivers import KEY_FIELD, IteratorStream, _delete_keys, _require_key
from docstore.query.builder import Query

logger = logging.getLogger(__name__)


def split_path(path: str) -> tuple[str, str]:
    """Split a table path into ``(database, collection)``.

    Raises:
        ValueError: If the path does not name both a database and a collection.
    """
    parts = [part for part in path.split("/") if part]
    if len(parts) < 2:
        raise ValueError(f"Table path {path!r} must name a database and a collection, e.g. '/db/table'.")
    return parts[0], ".".join(parts[1:])


class MongoDocumentStore:
    """Handle onto one MongoDB collection.

    Writes are acknowledged per call, so :meth:`flush` has nothing to push.
    """

    def __init__(self, path: str, collection: Any) -> None:
        self._path = path
        self._collection = collection
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
        _require_key(document)
        self._collection.insert_one(dict(document))

    def insert_or_replace(self, document: Mapping[str, Any]) -> None:
        self._check_open()
        key = _require_key(document)
        self._collection.replace_one({KEY_FIELD: key}, dict(document), upsert=True)

    def find_by_id(self, key: Any) -> dict[str, Any] | None:
        self._check_open()
        document = self._collection.find_one({KEY_FIELD: key})
        return dict(document) if document is not None else None

    def find(self, query: Query) -> IteratorStream:
        self._check_open()
        filters = query.condition.to_mongo() if query.condition is not None else {}
        cursor = self._collection.find(filters)
        if query.order_by:
            cursor = cursor.sort(
                [(field, DESCENDING if descending else ASCENDING) for field, descending in query.order_by]
            )
        if query.limit is not None:
            cursor = cursor.limit(query.limit)
        return IteratorStream((dict(document) for document in cursor), on_close=cursor.close)

    def delete(self, target: Any) -> None:
        self._check_open()
        keys = _delete_keys(target)
        if not keys:
            return
        if len(keys) == 1:
            self._collection.delete_one({KEY_FIELD: keys[0]})
        else:
            self._collection.delete_many({KEY_FIELD: {"$in": keys}})

    def flush(self) -> None:
        self._check_open()

    def close(self) -> None:
        # The collection object is pooled by the client; only the handle ends.
        self._closed = True


class MongoDocumentConnection:
    """A :class:`~docstore.protocols.DocumentConnection` over a PyMongo client."""

    def __init__(self, client: Any) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> MongoDocumentConnection:
        """Create a connection from a ``mongodb://`` URL. Does not block on connect."""
        return cls(MongoClient(url, **kwargs))

    @property
    def client(self) -> Any:
        return self._client

    def get_store(self, path: str) -> MongoDocumentStore:
        database, collection = split_path(path)
        logger.debug("Opened Mongo store %s (%s.%s)", path, database, collection)
        return MongoDocumentStore(path, self._client[database][collection])

    def new_query(self) -> Query:
        return Query()

    def new_document(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        return copy.deepcopy(dict(payload))

    def create_table(self, path: str) -> None:
        database, collection = split_path(path)
        self._client[database].create_collection(collection)

    def drop_table(self, path: str) -> None:
        database, collection = split_path(path)
        self._client[database].drop_collection(collection)

    def table_exists(self, path: str) -> bool:
        database, collection = split_path(path)
        return collection in self._client[database].list_collection_names()

    def close(self) -> None:
        self._client.close()
