"""Entity declarations: identity markers, storage locations, and the description cache.

An entity is a pydantic model. Its document key is the single field annotated
with :class:`Id` (or the equivalent :class:`DocumentId`)::

    @document("users")
    class User(BaseModel):
        id: Annotated[str | None, Id()] = None
        name: str

Descriptions are built once per type, eagerly for ``@document`` classes and
lazily for plain models, and cached for the life of the process.
"""

from __future__ import annotations

import logging
import threading
import types
import typing
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar, overload

from pydantic import BaseModel

from docstore.exceptions import AmbiguousIdentityError

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=type[BaseModel])

# Attribute set by @document on the decorated class.
LOCATION_ATTRIBUTE = "__document_location__"


class Id:
    """Marks the identity field of an entity."""

    def __repr__(self) -> str:
        return "Id()"


class DocumentId:
    """Marks the identity field of an entity. Equivalent to :class:`Id`."""

    def __repr__(self) -> str:
        return "DocumentId()"


_IDENTITY_MARKERS: tuple[type, ...] = (Id, DocumentId)


@dataclass(frozen=True)
class EntityDescription:
    """Resolved storage metadata for one entity type.

    Attributes:
        entity_type: The described pydantic model class.
        location: The declared storage location, ``""`` when not declared.
        key_field: Name of the identity field, or ``None`` when none is marked.
        key_type: Declared type of the identity field with ``Optional`` removed.
        dump_key: Name the identity field takes in ``model_dump(by_alias=True)``.
        load_key: Name ``model_validate`` expects for the identity field.
        stored_names: Field name to stored document name, for every field whose
            ``model_dump(by_alias=True)`` name differs from its Python name.
    """

    entity_type: type[BaseModel]
    location: str = ""
    key_field: str | None = None
    key_type: Any = None
    dump_key: str | None = None
    load_key: str | None = None
    stored_names: dict[str, str] = field(default_factory=dict, hash=False)

    @property
    def name(self) -> str:
        return self.entity_type.__name__

    @property
    def has_identity(self) -> bool:
        return self.key_field is not None


_descriptions: dict[type, EntityDescription] = {}
_lock = threading.Lock()


def _is_identity_marker(item: Any) -> bool:
    for marker in _IDENTITY_MARKERS:
        if item is marker or isinstance(item, marker):
            return True
    return False


def unwrap_optional(annotation: Any) -> Any:
    """Strip ``Optional[...]`` / ``X | None`` from *annotation*."""
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        args = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return unwrap_optional(args[0])
    return annotation


def _build_description(entity_type: type[BaseModel], location: str) -> EntityDescription:
    if not (isinstance(entity_type, type) and issubclass(entity_type, BaseModel)):
        raise TypeError(f"{entity_type!r} is not a pydantic model class")

    marked = [
        (name, info)
        for name, info in entity_type.model_fields.items()
        if any(_is_identity_marker(item) for item in info.metadata)
    ]
    if len(marked) > 1:
        raise AmbiguousIdentityError(
            entity_name=entity_type.__name__,
            operation="describe",
            detail=f"More than one identity field declared: {[name for name, _ in marked]}",
        )
    stored_names = {
        name: info.serialization_alias or info.alias
        for name, info in entity_type.model_fields.items()
        if (info.serialization_alias or info.alias or name) != name
    }
    if not marked:
        return EntityDescription(entity_type=entity_type, location=location, stored_names=stored_names)

    key_field, info = marked[0]
    dump_key = info.serialization_alias or info.alias or key_field
    load_key = info.validation_alias if isinstance(info.validation_alias, str) else (info.alias or key_field)
    return EntityDescription(
        entity_type=entity_type,
        location=location,
        key_field=key_field,
        key_type=unwrap_optional(info.annotation),
        dump_key=dump_key,
        load_key=load_key,
        stored_names=stored_names,
    )


def describe(entity_type: type[BaseModel]) -> EntityDescription:
    """Return the cached :class:`EntityDescription` for *entity_type*.

    Raises:
        AmbiguousIdentityError: If more than one field carries an identity marker.
        TypeError: If *entity_type* is not a pydantic model class.
    """
    description = _descriptions.get(entity_type)
    if description is not None:
        return description
    location = vars(entity_type).get(LOCATION_ATTRIBUTE, "") if isinstance(entity_type, type) else ""
    description = _build_description(entity_type, location)
    with _lock:
        return _descriptions.setdefault(entity_type, description)


def _register(entity_type: M, location: str) -> M:
    setattr(entity_type, LOCATION_ATTRIBUTE, location)
    description = _build_description(entity_type, location)
    with _lock:
        _descriptions[entity_type] = description
    logger.debug("Registered entity %s (location=%r, key=%s)", entity_type.__name__, location, description.key_field)
    return entity_type


@overload
def document(location: M) -> M: ...


@overload
def document(location: str = "") -> Callable[[M], M]: ...


def document(location: Any = "") -> Any:
    """Declare an entity's storage location and register its description.

    Usable bare (``@document``) or with a location (``@document("users")``).
    An empty location falls back to the lower-cased class name.
    """
    if isinstance(location, type):
        return _register(location, "")

    def decorator(entity_type: M) -> M:
        return _register(entity_type, location or "")

    return decorator
