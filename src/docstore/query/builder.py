"""Immutable query values handed to document store handles."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace

from docstore.query.condition import Condition

MIN_QUERY_LIMIT = 1


@dataclass(frozen=True)
class Query:
    """A find request: optional condition, ordering and limit.

    ``order_by`` holds ``(field, descending)`` pairs applied left to right.
    Every builder method returns a new ``Query``.
    """

    condition: Condition | None = None
    order_by: tuple[tuple[str, bool], ...] = ()
    limit: int | None = None

    def where(self, condition: Condition | None) -> Query:
        """Add *condition*, AND-ed with any condition already present."""
        if condition is None:
            return self
        if self.condition is not None:
            condition = self.condition & condition
        return replace(self, condition=condition)

    def order(self, field: str, *, descending: bool = False) -> Query:
        return replace(self, order_by=(*self.order_by, (field, descending)))

    def take(self, limit: int) -> Query:
        if limit < MIN_QUERY_LIMIT:
            raise ValueError(f"limit must be >= {MIN_QUERY_LIMIT}, got {limit}")
        return replace(self, limit=limit)

    def rename(self, mapping: Mapping[str, str]) -> Query:
        """Return a copy with condition and ordering fields renamed."""
        condition = self.condition.rename(mapping) if self.condition is not None else None
        order_by = tuple((mapping.get(field, field), descending) for field, descending in self.order_by)
        return replace(self, condition=condition, order_by=order_by)
