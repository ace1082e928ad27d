"""Translate raw driver failures into the domain exception taxonomy."""

from __future__ import annotations

import logging

from docstore.exceptions import PersistenceError, ResourceUsageError

logger = logging.getLogger(__name__)

# Class names of relational-side failures (SQLAlchemy DBAPI wrappers and
# JDBC-style bridges) that denote a resource access problem.
RESOURCE_USAGE_ERRORS: frozenset[str] = frozenset(
    {
        "SQLException",
        "DBAPIError",
        "DatabaseError",
        "OperationalError",
        "ProgrammingError",
        "InterfaceError",
        "InternalError",
        "DataError",
        "IntegrityError",
        "NotSupportedError",
    }
)


class ExceptionTranslator:
    """Maps a closed set of low-level failures to :class:`ResourceUsageError`.

    :meth:`translate` returns ``None`` for anything it does not recognise. Such
    failures are assumed to originate in caller code and must propagate as-is.
    Matching uses the most-derived class name only; messages and ``__cause__``
    chains are never inspected.
    """

    def __init__(self, resource_usage_errors: frozenset[str] = RESOURCE_USAGE_ERRORS) -> None:
        self._resource_usage_errors = resource_usage_errors

    def translate(
        self,
        exc: BaseException,
        *,
        entity_name: str = "<unknown>",
        operation: str = "execute",
    ) -> PersistenceError | None:
        if isinstance(exc, PersistenceError):
            return None
        exc_type_name = type(exc).__name__
        if exc_type_name in self._resource_usage_errors:
            logger.debug("Translating %s raised during %s of %s", exc_type_name, operation, entity_name)
            return ResourceUsageError(
                entity_name=entity_name,
                operation=operation,
                detail=str(exc),
                cause=exc if isinstance(exc, Exception) else None,
            )
        return None
