"""Conversion between pydantic entities and store documents."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel

from docstore.identity import KEY_FIELD
from docstore.mapping import describe

T = TypeVar("T", bound=BaseModel)


class DocumentCodec:
    """JSON-mode codec keyed on the entity description.

    The identity field travels as ``_id`` in documents and under its own
    (alias) name in entities. Conversion back to an entity is always driven
    by the requested type, never by document content.
    """

    def to_document(self, entity: BaseModel) -> dict[str, Any]:
        description = describe(type(entity))
        payload = entity.model_dump(mode="json", by_alias=True)
        if description.dump_key is None:
            return payload
        key = payload.pop(description.dump_key, None)
        if key is None:
            return payload
        return {KEY_FIELD: key, **payload}

    def to_entity(self, document: Mapping[str, Any], entity_type: type[T]) -> T:
        description = describe(entity_type)
        payload = dict(document)
        key = payload.pop(KEY_FIELD, None)
        if description.load_key is not None and key is not None:
            payload[description.load_key] = key
        return entity_type.model_validate(payload)
