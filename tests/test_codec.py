"""Tests for DocumentCodec entity/document conversion."""

from datetime import datetime, timezone
from typing import Annotated

import pytest
from docstore.codec import DocumentCodec
from docstore.mapping import Id, document
from entities import Address, Counter, Event, Note, User
from pydantic import BaseModel, Field


@document("accounts")
class Account(BaseModel):
    account_id: Annotated[str | None, Field(alias="accountId"), Id()] = None
    owner: str


@pytest.fixture
def codec() -> DocumentCodec:
    return DocumentCodec()


def test_identity_field_becomes_leading_key(codec: DocumentCodec):
    payload = codec.to_document(User(id="u1", name="a", tags=["x"]))
    assert list(payload)[0] == "_id"
    assert payload == {"_id": "u1", "name": "a", "age": 0, "enabled": False, "tags": ["x"]}


def test_missing_identity_value_is_omitted(codec: DocumentCodec):
    payload = codec.to_document(User(name="a"))
    assert "_id" not in payload
    assert "id" not in payload


def test_nested_and_temporal_values_are_json_mode(codec: DocumentCodec):
    event = Event(
        id="e1",
        title="t",
        happened_at=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        address=Address(city="Oslo"),
    )
    payload = codec.to_document(event)
    assert payload["happened_at"] == "2024-01-02T03:04:05Z"
    assert payload["address"] == {"city": "Oslo", "zip_code": None}


def test_to_entity_restores_identity(codec: DocumentCodec):
    entity = codec.to_entity({"_id": "u1", "name": "a"}, User)
    assert entity == User(id="u1", name="a")


def test_to_entity_without_key(codec: DocumentCodec):
    assert codec.to_entity({"name": "a"}, User).id is None


def test_to_entity_is_driven_by_requested_type(codec: DocumentCodec):
    """Documents carry no type hints; the requested type decides the shape."""
    counter = codec.to_entity({"_id": 3, "value": 9}, Counter)
    assert counter == Counter(key=3, value=9)


def test_alias_identity_round_trip(codec: DocumentCodec):
    payload = codec.to_document(Account(accountId="a-1", owner="o"))
    assert payload == {"_id": "a-1", "owner": "o"}
    assert codec.to_entity(payload, Account) == Account(accountId="a-1", owner="o")


def test_entity_without_identity_dumps_as_is(codec: DocumentCodec):
    assert codec.to_document(Note(text="hi")) == {"text": "hi"}
    assert codec.to_entity({"text": "hi"}, Note) == Note(text="hi")
