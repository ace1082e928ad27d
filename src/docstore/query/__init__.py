"""Query conditions, query values and declared query methods."""

from docstore.query.builder import Query
from docstore.query.condition import (
    Comparison,
    Condition,
    Conjunction,
    Disjunction,
    Negation,
    Operator,
    eq,
    ge,
    gt,
    in_,
    is_null,
    le,
    lt,
    ne,
    not_null,
    parse_condition,
)
from docstore.query.method import (
    QueryDescriptor,
    QueryKind,
    count_query,
    delete_query,
    exists_query,
    query,
    resolve_query,
)

__all__ = [
    "Comparison",
    "Condition",
    "Conjunction",
    "Disjunction",
    "Negation",
    "Operator",
    "Query",
    "QueryDescriptor",
    "QueryKind",
    "count_query",
    "delete_query",
    "eq",
    "exists_query",
    "ge",
    "gt",
    "in_",
    "is_null",
    "le",
    "lt",
    "ne",
    "not_null",
    "parse_condition",
    "query",
    "resolve_query",
]
