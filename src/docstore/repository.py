"""Generic CRUD repository over a :class:`~docstore.template.DocumentTemplate`."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel

from docstore.query.builder import Query
from docstore.query.method import QueryDescriptor, QueryKind
from docstore.template import DocumentTemplate

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


class DocumentRepository(Generic[T]):
    """CRUD access to one entity type, plus declared query methods.

    The entity type is given explicitly, either as a constructor argument or
    as the ``entity_type`` class attribute of a subclass::

        class UserRepository(DocumentRepository[User]):
            entity_type = User

            @query("enabled = true")
            def find_enabled(self) -> list[User]: ...

    Methods decorated with :func:`~docstore.query.query` and friends are
    executed by :meth:`execute_query_method`.
    """

    entity_type: ClassVar[type[BaseModel] | None] = None

    def __init__(
        self,
        template: DocumentTemplate,
        entity_type: type[T] | None = None,
        *,
        table_name: str | None = None,
    ) -> None:
        resolved = entity_type or type(self).entity_type
        if resolved is None:
            raise TypeError(f"{type(self).__name__} needs an entity_type argument or class attribute.")
        self._template = template
        self._entity_type: type[T] = resolved  # type: ignore[assignment]
        self._table_name = table_name

    @property
    def template(self) -> DocumentTemplate:
        return self._template

    # -- CRUD -------------------------------------------------------------------

    def save(self, entity: T) -> T:
        return self._template.save(entity, self._table_name)

    def save_all(self, entities: Iterable[T]) -> list[T]:
        return self._template.save_many(entities, self._entity_type, self._table_name)

    def insert(self, entity: T) -> T:
        return self._template.insert(entity, self._table_name)

    def insert_all(self, entities: Iterable[T]) -> list[T]:
        return self._template.insert_many(entities, self._entity_type, self._table_name)

    def find_by_id(self, id: Any) -> T | None:
        return self._template.find_by_id(id, self._entity_type, self._table_name)

    def exists_by_id(self, id: Any) -> bool:
        return self.find_by_id(id) is not None

    def find_all(self) -> list[T]:
        return self._template.find_all(self._entity_type, self._table_name)

    def find_all_by_id(self, ids: Iterable[Any]) -> list[T]:
        """Return the entities found for *ids*, in order, skipping missing keys."""
        found = (self.find_by_id(id) for id in ids)
        return [entity for entity in found if entity is not None]

    def count(self) -> int:
        return self._template.count(self._entity_type, self._table_name)

    def delete(self, entity: T) -> None:
        self._template.remove(entity, self._table_name)

    def delete_by_id(self, id: Any) -> None:
        self._template.remove_by_id(id, self._entity_type, self._table_name)

    def delete_all(self, entities: Iterable[T] | None = None) -> None:
        """Delete the given entities, or every entity when called without arguments."""
        if entities is None:
            self._template.remove_all(self._entity_type, self._table_name)
        else:
            self._template.remove_many(entities, self._entity_type, self._table_name)

    # -- Declared queries -------------------------------------------------------

    def execute_query_method(self, descriptor: QueryDescriptor, args: Sequence[Any]) -> Any:
        """Run a declared query with *args* bound to its ``?`` placeholders.

        Returns a list of entities, a count, the number of deleted documents,
        or a bool, depending on ``descriptor.kind``.
        """
        query = Query().where(descriptor.condition(args))
        logger.debug(
            "Dispatching %s query %r on %s", descriptor.kind.value, descriptor.text, self._entity_type.__name__
        )
        if descriptor.kind is QueryKind.COUNT:
            return self._template.count_matching(query, self._entity_type, self._table_name)
        if descriptor.kind is QueryKind.DELETE:
            return self._template.remove_matching(query, self._entity_type, self._table_name)
        if descriptor.kind is QueryKind.EXISTS:
            return self._template.exists(query, self._entity_type, self._table_name)
        return self._template.execute(query, self._entity_type, self._table_name)
