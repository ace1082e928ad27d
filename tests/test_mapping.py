"""Tests for entity declarations, identity resolution and table paths."""

from typing import Annotated, Optional
from uuid import UUID

import pytest
from docstore.drivers import KEY_FIELD
from docstore.exceptions import AmbiguousIdentityError, MissingIdentityError
from docstore.identity import KEY_FIELD as IDENTITY_KEY_FIELD
from docstore.identity import encode_key, is_textual, require_identity, resolve_key_type
from docstore.mapping import LOCATION_ATTRIBUTE, DocumentId, Id, describe, document, unwrap_optional
from docstore.paths import resolve_absolute_path, resolve_table_path
from entities import Counter, Event, Note, Profile, User
from pydantic import BaseModel, Field


@document("people")
class Person(BaseModel):
    person_id: Annotated[Optional[str], Field(alias="personId"), Id()] = None
    name: str = ""


@document
class Ticket(BaseModel):
    number: Annotated[UUID | None, Id()] = None


def test_describe_decorated_entity():
    description = describe(User)
    assert description.entity_type is User
    assert description.location == "users"
    assert description.key_field == "id"
    assert description.key_type is str
    assert description.dump_key == "id"
    assert description.load_key == "id"
    assert description.has_identity
    assert description.name == "User"


def test_document_id_marker_is_equivalent():
    description = describe(Counter)
    assert description.key_field == "key"
    assert description.key_type is int


def test_marker_class_is_accepted_without_instantiation():
    assert describe(Event).key_field == "id"


def test_describe_is_cached():
    assert describe(User) is describe(User)


def test_undecorated_model_without_identity():
    description = describe(Note)
    assert description.location == ""
    assert description.key_field is None
    assert not description.has_identity


def test_alias_identity_uses_alias_for_document_mapping():
    description = describe(Person)
    assert description.key_field == "person_id"
    assert description.dump_key == "personId"
    assert description.load_key == "personId"


def test_stored_names_cover_every_aliased_field():
    assert describe(Profile).stored_names == {
        "profile_id": "profileId",
        "full_name": "fullName",
        "login_count": "loginCount",
    }
    assert describe(Person).stored_names == {"person_id": "personId"}
    assert describe(User).stored_names == {}


def test_multiple_identity_markers_fail_fast():
    with pytest.raises(AmbiguousIdentityError) as exc_info:

        @document
        class Broken(BaseModel):
            a: Annotated[str, Id()]
            b: Annotated[str, DocumentId()]

    assert exc_info.value.entity_name == "Broken"
    assert "a" in exc_info.value.detail and "b" in exc_info.value.detail


def test_describe_rejects_non_models():
    with pytest.raises(TypeError):
        describe(dict)  # type: ignore[arg-type]


def test_document_sets_location_attribute():
    assert getattr(User, LOCATION_ATTRIBUTE) == "users"
    assert getattr(Counter, LOCATION_ATTRIBUTE) == ""


@pytest.mark.parametrize(
    ("annotation", "expected"),
    [(Optional[int], int), (str | None, str), (int, int), (int | str, int | str)],
)
def test_unwrap_optional(annotation, expected):
    assert unwrap_optional(annotation) == expected


# -- identity --


def test_require_identity_raises_for_missing_identity():
    with pytest.raises(MissingIdentityError) as exc_info:
        require_identity(Note, "insert")
    assert exc_info.value.entity_name == "Note"
    assert exc_info.value.operation == "insert"


def test_resolve_key_type():
    assert resolve_key_type(User) is str
    assert resolve_key_type(Counter) is int
    assert resolve_key_type(Ticket) is UUID
    with pytest.raises(MissingIdentityError):
        resolve_key_type(Note)


def test_key_field_has_one_definition():
    assert KEY_FIELD == "_id"
    assert IDENTITY_KEY_FIELD is KEY_FIELD


def test_is_textual():
    assert is_textual(str)
    assert not is_textual(int)
    assert not is_textual(UUID)


def test_encode_key_by_key_type():
    assert encode_key(7, describe(User)) == "7"
    assert encode_key("7", describe(Counter)) == 7
    value = UUID("12345678-1234-5678-1234-567812345678")
    assert encode_key(value, describe(Ticket)) == "12345678-1234-5678-1234-567812345678"


# -- paths --


@pytest.mark.parametrize(
    ("entity_type", "expected"),
    [(User, "/users"), (Counter, "/counter"), (Event, "/events"), (Note, "/note"), (Person, "/people")],
)
def test_resolve_table_path(entity_type, expected):
    assert resolve_table_path(entity_type) == expected


@pytest.mark.parametrize(
    ("database_name", "table_name", "expected"),
    [
        ("test", "/users", "/test/users"),
        ("/test", "/users", "/test/users"),
        ("/apps/test", "/users", "/apps/test/users"),
        ("test/", "/users", "/test//users"),
    ],
)
def test_resolve_absolute_path(database_name, table_name, expected):
    assert resolve_absolute_path(database_name, table_name) == expected
