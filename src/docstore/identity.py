"""Identity resolution, id generation and key encoding."""

from __future__ import annotations

import functools
import logging
import uuid
from typing import Any

from pydantic import BaseModel, TypeAdapter

from docstore.drivers import KEY_FIELD
from docstore.exceptions import MissingIdentityError, UnsupportedIdGenerationError
from docstore.mapping import EntityDescription, describe

logger = logging.getLogger(__name__)


def require_identity(entity_type: type[BaseModel], operation: str = "resolve_identity") -> EntityDescription:
    """Return the description of *entity_type*, failing if it declares no identity field."""
    description = describe(entity_type)
    if not description.has_identity:
        raise MissingIdentityError(
            entity_name=description.name,
            operation=operation,
            detail="No field is marked with Id or DocumentId.",
        )
    return description


def resolve_key_type(entity_type: type[BaseModel]) -> Any:
    """Return the declared type of the identity field of *entity_type*.

    Raises:
        MissingIdentityError: If no field is marked as identity.
        AmbiguousIdentityError: If more than one field is marked.
    """
    return require_identity(entity_type).key_type


def is_textual(key_type: Any) -> bool:
    return isinstance(key_type, type) and issubclass(key_type, str)


def generate_id() -> str:
    """A random 128-bit identifier rendered as 32 lowercase hex characters."""
    return uuid.uuid4().hex


def assign_id(document: dict[str, Any], description: EntityDescription, operation: str) -> dict[str, Any]:
    """Give *document* a generated key when it has none.

    Raises:
        UnsupportedIdGenerationError: If the key is absent and not textual.
    """
    if document.get(KEY_FIELD) is not None:
        return document
    if not is_textual(description.key_type):
        raise UnsupportedIdGenerationError(
            entity_name=description.name,
            operation=operation,
            detail=f"Id auto generation is provided only for str keys, {description.key_type!r} is not supported.",
        )
    key = generate_id()
    logger.debug("Generated id %s for %s", key, description.name)
    return {KEY_FIELD: key, **{k: v for k, v in document.items() if k != KEY_FIELD}}


@functools.lru_cache(maxsize=None)
def _key_adapter(key_type: Any) -> TypeAdapter[Any]:
    return TypeAdapter(key_type)


def encode_key(value: Any, description: EntityDescription) -> Any:
    """Encode an id argument the way the codec stores the identity field.

    ``str`` keys use ``str(value)``. Any other key type is validated against
    the declared type and dumped in JSON mode, so ``"7"`` becomes ``7`` for an
    ``int`` key and a ``UUID`` becomes its canonical string.
    """
    if is_textual(description.key_type):
        return str(value)
    adapter = _key_adapter(description.key_type)
    return adapter.dump_python(adapter.validate_python(value), mode="json")
