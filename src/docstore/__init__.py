"""Docstore: repository-pattern template for schemaless document stores."""

from docstore.codec import DocumentCodec
from docstore.connections import (
    ConnectionManager,
    ConnectionPair,
    ConnectionProfile,
    InvalidConnectionURL,
    connect_documents,
    connect_query_engine,
)
from docstore.drivers.memory import InMemoryDocumentConnection
from docstore.exceptions import (
    AmbiguousIdentityError,
    InvalidQueryError,
    MissingIdentityError,
    PersistenceError,
    ResourceUsageError,
    UnsupportedIdGenerationError,
)
from docstore.identity import resolve_key_type
from docstore.mapping import DocumentId, EntityDescription, Id, describe, document
from docstore.paths import resolve_absolute_path, resolve_table_path
from docstore.protocols import DocumentConnection, DocumentStore, DocumentStream
from docstore.query import Query, QueryDescriptor, QueryKind, count_query, delete_query, exists_query, query
from docstore.repository import DocumentRepository
from docstore.template import DocumentTemplate
from docstore.translation import ExceptionTranslator

__all__ = [
    "AmbiguousIdentityError",
    "ConnectionManager",
    "ConnectionPair",
    "ConnectionProfile",
    "DocumentCodec",
    "DocumentConnection",
    "DocumentId",
    "DocumentRepository",
    "DocumentStore",
    "DocumentStream",
    "DocumentTemplate",
    "EntityDescription",
    "ExceptionTranslator",
    "Id",
    "InMemoryDocumentConnection",
    "InvalidConnectionURL",
    "InvalidQueryError",
    "MissingIdentityError",
    "PersistenceError",
    "Query",
    "QueryDescriptor",
    "QueryKind",
    "ResourceUsageError",
    "UnsupportedIdGenerationError",
    "connect_documents",
    "connect_query_engine",
    "count_query",
    "delete_query",
    "describe",
    "document",
    "exists_query",
    "query",
    "resolve_absolute_path",
    "resolve_key_type",
    "resolve_table_path",
]
