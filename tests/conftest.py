"""Shared fixtures."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from docstore.connections import ConnectionPair
from docstore.drivers.memory import InMemoryDocumentConnection
from docstore.template import DocumentTemplate
from entities import Counter, Event, Profile, User


@pytest.fixture
def connection() -> InMemoryDocumentConnection:
    return InMemoryDocumentConnection()


@pytest.fixture
def template(connection: InMemoryDocumentConnection) -> DocumentTemplate:
    tpl = DocumentTemplate("test", ConnectionPair(documents=connection))
    for entity_type in (User, Counter, Event, Profile):
        tpl.create_table(entity_type)
    return tpl


@pytest.fixture
def opened_stores(connection: InMemoryDocumentConnection, monkeypatch: pytest.MonkeyPatch) -> list[MagicMock]:
    """Wrap every store handle the connection hands out so calls can be asserted."""
    stores: list[MagicMock] = []
    real_get_store = connection.get_store

    def get_store(path: str) -> MagicMock:
        store = MagicMock(wraps=real_get_store(path))
        store.opened_path = path
        stores.append(store)
        return store

    monkeypatch.setattr(connection, "get_store", get_store)
    return stores
