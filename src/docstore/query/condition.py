"""Predicate conditions for document queries.

Conditions are immutable trees that can be evaluated in-process
(:meth:`Condition.matches`) or compiled to a MongoDB filter document
(:meth:`Condition.to_mongo`). Build them with the helpers in this module::

    eq("enabled", True) & (gt("age", 30) | is_null("age"))

or parse them from predicate text with positional ``?`` arguments::

    parse_condition("name = ? AND age >= ?", ["a", 30])
"""

from __future__ import annotations

import operator
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from docstore.exceptions import InvalidQueryError


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


class Operator(str, Enum):
    """Comparison operators supported by :class:`Comparison`."""

    EQ = "="
    NE = "!="
    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    IN = "in"
    IS_NULL = "is null"
    NOT_NULL = "is not null"


_ORDERING = {
    Operator.LT: operator.lt,
    Operator.LE: operator.le,
    Operator.GT: operator.gt,
    Operator.GE: operator.ge,
}

_MONGO_OPERATORS = {
    Operator.NE: "$ne",
    Operator.LT: "$lt",
    Operator.LE: "$lte",
    Operator.GT: "$gt",
    Operator.GE: "$gte",
}


def field_value(document: Mapping[str, Any], path: str) -> Any:
    """Look up a dotted *path* in *document*, returning :data:`MISSING` if absent."""
    current: Any = document
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return MISSING
    return current


def _equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    # Array fields match when any element matches, as in MongoDB.
    return isinstance(actual, list) and expected in actual


class Condition:
    """Base class of all predicate nodes."""

    def matches(self, document: Mapping[str, Any]) -> bool:
        raise NotImplementedError

    def to_mongo(self) -> dict[str, Any]:
        raise NotImplementedError

    def rename(self, mapping: Mapping[str, str]) -> Condition:
        """Return a copy with field names replaced according to *mapping*."""
        raise NotImplementedError

    def __and__(self, other: Condition) -> Condition:
        return Conjunction(_flatten(Conjunction, (self, other)))

    def __or__(self, other: Condition) -> Condition:
        return Disjunction(_flatten(Disjunction, (self, other)))

    def __invert__(self) -> Condition:
        return Negation(self)


def _flatten(kind: type, terms: Iterable[Condition]) -> tuple[Condition, ...]:
    flat: list[Condition] = []
    for term in terms:
        if isinstance(term, kind):
            flat.extend(term.terms)  # type: ignore[attr-defined]
        else:
            flat.append(term)
    return tuple(flat)


@dataclass(frozen=True)
class Comparison(Condition):
    field: str
    op: Operator
    value: Any = None

    def matches(self, document: Mapping[str, Any]) -> bool:
        actual = field_value(document, self.field)
        if self.op is Operator.IS_NULL:
            return actual is MISSING or actual is None
        if self.op is Operator.NOT_NULL:
            return actual is not MISSING and actual is not None
        if actual is MISSING:
            return self.op is Operator.NE
        if self.op is Operator.EQ:
            return _equals(actual, self.value)
        if self.op is Operator.NE:
            return not _equals(actual, self.value)
        if self.op is Operator.IN:
            return any(_equals(actual, candidate) for candidate in self.value)
        try:
            return bool(_ORDERING[self.op](actual, self.value))
        except TypeError:
            return False

    def to_mongo(self) -> dict[str, Any]:
        if self.op is Operator.EQ:
            return {self.field: self.value}
        if self.op is Operator.IS_NULL:
            return {self.field: None}
        if self.op is Operator.NOT_NULL:
            return {self.field: {"$ne": None}}
        if self.op is Operator.IN:
            return {self.field: {"$in": list(self.value)}}
        return {self.field: {_MONGO_OPERATORS[self.op]: self.value}}

    def rename(self, mapping: Mapping[str, str]) -> Condition:
        head, dot, rest = self.field.partition(".")
        if head not in mapping:
            return self
        return Comparison(mapping[head] + dot + rest, self.op, self.value)


@dataclass(frozen=True)
class Conjunction(Condition):
    terms: tuple[Condition, ...]

    def matches(self, document: Mapping[str, Any]) -> bool:
        return all(term.matches(document) for term in self.terms)

    def to_mongo(self) -> dict[str, Any]:
        return {"$and": [term.to_mongo() for term in self.terms]}

    def rename(self, mapping: Mapping[str, str]) -> Condition:
        return Conjunction(tuple(term.rename(mapping) for term in self.terms))


@dataclass(frozen=True)
class Disjunction(Condition):
    terms: tuple[Condition, ...]

    def matches(self, document: Mapping[str, Any]) -> bool:
        return any(term.matches(document) for term in self.terms)

    def to_mongo(self) -> dict[str, Any]:
        return {"$or": [term.to_mongo() for term in self.terms]}

    def rename(self, mapping: Mapping[str, str]) -> Condition:
        return Disjunction(tuple(term.rename(mapping) for term in self.terms))


@dataclass(frozen=True)
class Negation(Condition):
    term: Condition

    def matches(self, document: Mapping[str, Any]) -> bool:
        return not self.term.matches(document)

    def to_mongo(self) -> dict[str, Any]:
        return {"$nor": [self.term.to_mongo()]}

    def rename(self, mapping: Mapping[str, str]) -> Condition:
        return Negation(self.term.rename(mapping))


def eq(field: str, value: Any) -> Comparison:
    return Comparison(field, Operator.EQ, value)


def ne(field: str, value: Any) -> Comparison:
    return Comparison(field, Operator.NE, value)


def lt(field: str, value: Any) -> Comparison:
    return Comparison(field, Operator.LT, value)


def le(field: str, value: Any) -> Comparison:
    return Comparison(field, Operator.LE, value)


def gt(field: str, value: Any) -> Comparison:
    return Comparison(field, Operator.GT, value)


def ge(field: str, value: Any) -> Comparison:
    return Comparison(field, Operator.GE, value)


def in_(field: str, values: Iterable[Any]) -> Comparison:
    return Comparison(field, Operator.IN, tuple(values))


def is_null(field: str) -> Comparison:
    return Comparison(field, Operator.IS_NULL)


def not_null(field: str) -> Comparison:
    return Comparison(field, Operator.NOT_NULL)


# ---------------------------------------------------------------------------
# Predicate text parser
# ---------------------------------------------------------------------------

_TOKEN_RE = re.compile(
    r"""
    \s*(?:
        (?P<number>-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)(?![A-Za-z_])
      | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
      | (?P<op><=|>=|!=|<>|==|=|<|>)
      | (?P<punct>[(),?])
      | (?P<word>[A-Za-z_][A-Za-z0-9_]*(?:\.[A-Za-z_][A-Za-z0-9_]*)*)
    )
    """,
    re.VERBOSE,
)

_TEXT_OPERATORS = {
    "=": Operator.EQ,
    "==": Operator.EQ,
    "!=": Operator.NE,
    "<>": Operator.NE,
    "<": Operator.LT,
    "<=": Operator.LE,
    ">": Operator.GT,
    ">=": Operator.GE,
}

_KEYWORDS = frozenset({"and", "or", "not", "in", "is", "null", "true", "false"})

_LITERALS = {"true": True, "false": False, "null": None}


def _tokenize(text: str) -> list[tuple[str, str]]:
    tokens: list[tuple[str, str]] = []
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        match = _TOKEN_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise InvalidQueryError(f"Unexpected character {text[pos:].strip()[:1]!r} at offset {pos} in {text!r}")
        kind = match.lastgroup or ""
        value = match.group(kind)
        if kind == "word" and value.lower() in _KEYWORDS:
            kind, value = "keyword", value.lower()
        tokens.append((kind, value))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, text: str, args: Sequence[Any]) -> None:
        self._text = text
        self._tokens = _tokenize(text)
        self._pos = 0
        self._args = args
        self._arg_index = 0

    def parse(self) -> Condition:
        condition = self._disjunction()
        if self._pos != len(self._tokens):
            raise InvalidQueryError(f"Unexpected {self._tokens[self._pos][1]!r} in {self._text!r}")
        if self._arg_index != len(self._args):
            raise InvalidQueryError(
                f"Query {self._text!r} takes {self._arg_index} argument(s), got {len(self._args)}"
            )
        return condition

    def _peek(self) -> tuple[str, str] | None:
        return self._tokens[self._pos] if self._pos < len(self._tokens) else None

    def _next(self) -> tuple[str, str]:
        token = self._peek()
        if token is None:
            raise InvalidQueryError(f"Unexpected end of query {self._text!r}")
        self._pos += 1
        return token

    def _accept(self, kind: str, value: str | None = None) -> bool:
        token = self._peek()
        if token is not None and token[0] == kind and (value is None or token[1] == value):
            self._pos += 1
            return True
        return False

    def _expect(self, kind: str, value: str) -> None:
        if not self._accept(kind, value):
            found = self._peek()
            raise InvalidQueryError(
                f"Expected {value!r} but found {found[1] if found else 'end of query'!r} in {self._text!r}"
            )

    def _disjunction(self) -> Condition:
        terms = [self._conjunction()]
        while self._accept("keyword", "or"):
            terms.append(self._conjunction())
        return terms[0] if len(terms) == 1 else Disjunction(_flatten(Disjunction, terms))

    def _conjunction(self) -> Condition:
        terms = [self._unary()]
        while self._accept("keyword", "and"):
            terms.append(self._unary())
        return terms[0] if len(terms) == 1 else Conjunction(_flatten(Conjunction, terms))

    def _unary(self) -> Condition:
        if self._accept("keyword", "not"):
            return Negation(self._unary())
        if self._accept("punct", "("):
            condition = self._disjunction()
            self._expect("punct", ")")
            return condition
        return self._comparison()

    def _comparison(self) -> Condition:
        kind, name = self._next()
        if kind != "word":
            raise InvalidQueryError(f"Expected a field name but found {name!r} in {self._text!r}")
        if self._accept("keyword", "is"):
            negated = self._accept("keyword", "not")
            self._expect("keyword", "null")
            return not_null(name) if negated else is_null(name)
        if self._accept("keyword", "in"):
            self._expect("punct", "(")
            values = [self._value()]
            while self._accept("punct", ","):
                values.append(self._value())
            self._expect("punct", ")")
            return in_(name, values)
        kind, symbol = self._next()
        if kind != "op":
            raise InvalidQueryError(f"Expected an operator after {name!r} but found {symbol!r} in {self._text!r}")
        return Comparison(name, _TEXT_OPERATORS[symbol], self._value())

    def _value(self) -> Any:
        kind, value = self._next()
        if kind == "punct" and value == "?":
            if self._arg_index >= len(self._args):
                raise InvalidQueryError(f"Not enough arguments for query {self._text!r}")
            arg = self._args[self._arg_index]
            self._arg_index += 1
            return arg
        if kind == "number":
            return float(value) if any(c in value for c in ".eE") else int(value)
        if kind == "string":
            return re.sub(r"\\(.)", r"\1", value[1:-1])
        if kind == "keyword" and value in _LITERALS:
            return _LITERALS[value]
        raise InvalidQueryError(f"Expected a value but found {value!r} in {self._text!r}")


def parse_condition(text: str, args: Sequence[Any] = ()) -> Condition | None:
    """Parse predicate *text*, binding each ``?`` to the next item of *args*.

    Blank text yields ``None`` (match everything) and accepts no arguments.

    Raises:
        InvalidQueryError: On a syntax error or an argument count mismatch.
    """
    if not text or not text.strip():
        if args:
            raise InvalidQueryError(f"Empty query takes no arguments, got {len(args)}")
        return None
    return _Parser(text, args).parse()
