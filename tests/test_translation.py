"""Tests for ExceptionTranslator: class-name matching of relational failures."""

import pytest
import sqlalchemy as sa
from docstore.exceptions import MissingIdentityError, PersistenceError, ResourceUsageError
from docstore.translation import RESOURCE_USAGE_ERRORS, ExceptionTranslator


def _fake(name: str) -> type[Exception]:
    return type(name, (Exception,), {})


@pytest.fixture
def translator() -> ExceptionTranslator:
    return ExceptionTranslator()


@pytest.mark.parametrize("name", sorted(RESOURCE_USAGE_ERRORS))
def test_recognised_names_translate_to_resource_usage(translator: ExceptionTranslator, name: str):
    error = _fake(name)("driver said no")
    translated = translator.translate(error, entity_name="User", operation="count")

    assert isinstance(translated, ResourceUsageError)
    assert translated.entity_name == "User"
    assert translated.operation == "count"
    assert translated.detail == "driver said no"
    assert translated.__cause__ is error


def test_sqlalchemy_operational_error_is_recognised(translator: ExceptionTranslator):
    error = sa.exc.OperationalError("SELECT 1", {}, Exception("unable to open database"))
    assert isinstance(translator.translate(error), ResourceUsageError)


@pytest.mark.parametrize("error", [RuntimeError("boom"), ValueError("bad"), KeyError("k"), _fake("TimeoutError")("t")])
def test_unrecognised_failures_are_not_translated(translator: ExceptionTranslator, error: Exception):
    assert translator.translate(error) is None


def test_subclass_of_recognised_error_is_matched_by_own_name(translator: ExceptionTranslator):
    """Only the most-derived class name counts."""
    base = _fake("OperationalError")
    derived = type("ConnectionRefused", (base,), {})
    assert translator.translate(derived("refused")) is None


def test_domain_errors_pass_through(translator: ExceptionTranslator):
    error = MissingIdentityError(entity_name="Note", operation="insert", detail="no id")
    assert translator.translate(error) is None


def test_defaults_for_entity_and_operation(translator: ExceptionTranslator):
    translated = translator.translate(_fake("SQLException")("x"))
    assert translated is not None
    assert translated.entity_name == "<unknown>"
    assert translated.operation == "execute"


def test_custom_name_set():
    translator = ExceptionTranslator(frozenset({"Boom"}))
    assert isinstance(translator.translate(_fake("Boom")("b")), PersistenceError)
    assert translator.translate(_fake("OperationalError")("o")) is None
