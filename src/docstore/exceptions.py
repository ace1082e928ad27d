"""Domain exceptions for the document template layer.

Failures detected by this layer itself, and relational failures recognised by
the :class:`~docstore.translation.ExceptionTranslator`, are raised as one of
these exceptions. Anything else raised by a driver propagates unchanged.
"""

from __future__ import annotations


class PersistenceError(Exception):
    """Base exception for all template-layer errors.

    Attributes:
        entity_name: The name of the entity type involved.
        operation: The template operation that failed (e.g. ``"insert"``, ``"count"``).
        detail: A sanitised description of what went wrong.
    """

    def __init__(
        self,
        *,
        entity_name: str,
        operation: str,
        detail: str,
        cause: Exception | None = None,
    ) -> None:
        self.entity_name = entity_name
        self.operation = operation
        self.detail = detail
        msg = f"[{entity_name}] {operation} failed: {detail}"
        super().__init__(msg)
        if cause is not None:
            self.__cause__ = cause


class ResourceUsageError(PersistenceError):
    """Raised when a recognised low-level resource access failure is translated."""


class UnsupportedIdGenerationError(PersistenceError):
    """Raised when an entity has no id value and its key type cannot be generated."""


class MissingIdentityError(PersistenceError):
    """Raised when an entity type declares no identity field."""


class AmbiguousIdentityError(PersistenceError):
    """Raised when an entity type marks more than one field as its identity."""


class InvalidQueryError(ValueError):
    """Raised when predicate text cannot be parsed or its arguments do not match."""
