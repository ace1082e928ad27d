"""Tests for DocumentTemplate.count: the relational COUNT(*) path and its failure translation."""

from unittest.mock import MagicMock

import pytest
import sqlalchemy as sa
from docstore.connections import ConnectionPair
from docstore.drivers.memory import InMemoryDocumentConnection
from docstore.exceptions import ResourceUsageError
from docstore.template import COUNT_SQL, DocumentTemplate
from entities import Counter, User
from sqlalchemy.pool import StaticPool


@pytest.fixture
def engine() -> sa.Engine:
    """SQLite engine exposing a ``dfs`` schema the way Drill exposes its file system."""
    engine = sa.create_engine("sqlite://", poolclass=StaticPool)

    @sa.event.listens_for(engine, "connect")
    def attach_dfs(dbapi_connection, connection_record):
        dbapi_connection.execute("ATTACH DATABASE ':memory:' AS dfs")

    with engine.begin() as conn:
        conn.exec_driver_sql('CREATE TABLE dfs."/test/users" (_id TEXT PRIMARY KEY)')
        conn.exec_driver_sql("INSERT INTO dfs.\"/test/users\" (_id) VALUES ('a'), ('b'), ('c')")
        conn.exec_driver_sql('CREATE TABLE dfs."/test/empty" (_id TEXT PRIMARY KEY)')
    yield engine
    engine.dispose()


@pytest.fixture
def counting_template(engine: sa.Engine) -> DocumentTemplate:
    return DocumentTemplate("test", ConnectionPair(documents=InMemoryDocumentConnection(), query_engine=engine))


class FakeOperationalError(Exception):
    """Simulates a DBAPI OperationalError raised for a refused connection."""

    pass


FakeOperationalError.__name__ = "OperationalError"


class FakeSQLException(Exception):
    """Simulates a JDBC-style SQLException surfaced by a driver bridge."""

    pass


FakeSQLException.__name__ = "SQLException"


def _template_with_failing_engine(error: Exception) -> DocumentTemplate:
    engine = MagicMock()
    engine.connect.side_effect = error
    return DocumentTemplate("test", ConnectionPair(documents=InMemoryDocumentConnection(), query_engine=engine))


def test_count_sql_format():
    assert COUNT_SQL.format(path="/test/users") == "SELECT COUNT(*) FROM dfs.`/test/users`"


def test_count_returns_row_count(counting_template: DocumentTemplate):
    assert counting_template.count(User) == 3


def test_count_empty_table(counting_template: DocumentTemplate):
    assert counting_template.count(User, "/empty") == 0


def test_count_missing_table_raises_resource_usage(counting_template: DocumentTemplate):
    """Counting a table the query engine does not know raises ResourceUsageError."""
    with pytest.raises(ResourceUsageError) as exc_info:
        counting_template.count(Counter)
    assert exc_info.value.entity_name == "Counter"
    assert exc_info.value.operation == "count"
    assert isinstance(exc_info.value.__cause__, sa.exc.OperationalError)


def test_count_connection_refused_raises_resource_usage():
    template = _template_with_failing_engine(FakeOperationalError("connection refused"))

    with pytest.raises(ResourceUsageError) as exc_info:
        template.count(User)
    assert "connection refused" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, FakeOperationalError)


def test_count_sql_exception_raises_resource_usage():
    template = _template_with_failing_engine(FakeSQLException("io failure"))

    with pytest.raises(ResourceUsageError):
        template.count(User)


def test_count_unrecognised_failure_propagates_unchanged():
    error = RuntimeError("boom")
    template = _template_with_failing_engine(error)

    with pytest.raises(RuntimeError) as exc_info:
        template.count(User)
    assert exc_info.value is error


def test_count_without_query_engine_raises_resource_usage():
    template = DocumentTemplate("test", ConnectionPair(documents=InMemoryDocumentConnection()))

    with pytest.raises(ResourceUsageError, match="No relational query connection"):
        template.count(User)


def test_count_does_not_open_document_store():
    documents = MagicMock()
    engine = MagicMock()
    engine.connect.return_value.__enter__.return_value.execute.return_value.scalar_one.return_value = 5
    template = DocumentTemplate("test", ConnectionPair(documents=documents, query_engine=engine))

    assert template.count(User) == 5
    documents.get_store.assert_not_called()


def test_count_logs_translated_failure(caplog: pytest.LogCaptureFixture):
    template = _template_with_failing_engine(FakeOperationalError("down"))

    with caplog.at_level("ERROR", logger="docstore.template"), pytest.raises(ResourceUsageError):
        template.count(User)
    assert "Count failed for User: OperationalError" in caplog.text
