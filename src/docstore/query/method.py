"""Declared query methods and their descriptors.

Repository methods declare their query with a decorator instead of a body::

    class UserRepository(DocumentRepository[User]):
        @query("enabled = true")
        def find_enabled(self) -> list[User]: ...

        @delete_query("name = ?")
        def delete_by_name(self, name: str) -> int: ...

The descriptor is fixed at declaration time; call arguments only fill the
``?`` placeholders, in parameter declaration order (keyword-only parameters
included). Calling the method hands the descriptor and the bound arguments
to ``self.execute_query_method``.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from docstore.query.condition import Condition, parse_condition

F = TypeVar("F", bound=Callable[..., Any])

# Attribute holding the QueryDescriptor on a decorated function.
QUERY_ATTRIBUTE = "__docstore_query__"


class QueryKind(str, Enum):
    """Result shape of a declared query."""

    PLAIN_FIND = "find"
    COUNT = "count"
    DELETE = "delete"
    EXISTS = "exists"


@dataclass(frozen=True)
class QueryDescriptor:
    text: str = ""
    kind: QueryKind = QueryKind.PLAIN_FIND

    @property
    def has_text(self) -> bool:
        return bool(self.text and self.text.strip())

    def condition(self, args: Sequence[Any] = ()) -> Condition | None:
        """Bind *args* to the declared text. ``None`` means "match everything"."""
        return parse_condition(self.text, args)


def _kind_from_flags(count: bool, delete: bool, exists: bool) -> QueryKind:
    declared = ((QueryKind.COUNT, count), (QueryKind.DELETE, delete), (QueryKind.EXISTS, exists))
    flags = [kind for kind, flag in declared if flag]
    if len(flags) > 1:
        raise ValueError(f"A query can be only one of count, delete or exists; got {[f.value for f in flags]}")
    return flags[0] if flags else QueryKind.PLAIN_FIND


def _placeholder_args(signature: inspect.Signature, bound: inspect.BoundArguments) -> tuple[Any, ...]:
    """Flatten bound call arguments, minus ``self``, in declaration order."""
    values: list[Any] = []
    for name, value in list(bound.arguments.items())[1:]:
        if signature.parameters[name].kind is inspect.Parameter.VAR_POSITIONAL:
            values.extend(value)
        else:
            values.append(value)
    return tuple(values)


def _declare(descriptor: QueryDescriptor) -> Callable[[F], F]:
    def decorator(func: F) -> F:
        signature = inspect.signature(func)
        if any(p.kind is inspect.Parameter.VAR_KEYWORD for p in signature.parameters.values()):
            raise TypeError(
                f"Query method {func.__qualname__} cannot take **kwargs: placeholders are bound by position."
            )

        @functools.wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:
            bound = signature.bind(self, *args, **kwargs)
            bound.apply_defaults()
            return self.execute_query_method(descriptor, _placeholder_args(signature, bound))

        setattr(wrapper, QUERY_ATTRIBUTE, descriptor)
        return wrapper  # type: ignore[return-value]

    return decorator


def query(text: Any = "", *, count: bool = False, delete: bool = False, exists: bool = False) -> Any:
    """Declare a query method. At most one of *count*, *delete*, *exists* may be set."""
    if callable(text):
        return _declare(QueryDescriptor())(text)
    return _declare(QueryDescriptor(text=text, kind=_kind_from_flags(count, delete, exists)))


def count_query(text: Any = "") -> Any:
    if callable(text):
        return _declare(QueryDescriptor(kind=QueryKind.COUNT))(text)
    return _declare(QueryDescriptor(text=text, kind=QueryKind.COUNT))


def delete_query(text: Any = "") -> Any:
    if callable(text):
        return _declare(QueryDescriptor(kind=QueryKind.DELETE))(text)
    return _declare(QueryDescriptor(text=text, kind=QueryKind.DELETE))


def exists_query(text: Any = "") -> Any:
    if callable(text):
        return _declare(QueryDescriptor(kind=QueryKind.EXISTS))(text)
    return _declare(QueryDescriptor(text=text, kind=QueryKind.EXISTS))


def resolve_query(method: Callable[..., Any]) -> QueryDescriptor | None:
    """Return the descriptor declared on *method* (bound or not), or ``None``."""
    func = getattr(method, "__func__", method)
    return getattr(func, QUERY_ATTRIBUTE, None)
