"""Table path resolution."""

from __future__ import annotations

from pydantic import BaseModel

from docstore.mapping import describe


def resolve_table_path(entity_type: type[BaseModel]) -> str:
    """Return the ``/``-prefixed table path declared for *entity_type*.

    Uses the ``@document`` location when one is declared, otherwise the
    lower-cased class name.
    """
    name = describe(entity_type).location or entity_type.__name__.lower()
    if name.startswith("/"):
        return name
    return f"/{name}"


def resolve_absolute_path(database_name: str, table_name: str) -> str:
    """Place *table_name* under the *database_name* root.

    Plain concatenation: duplicate slashes and ``..`` segments are passed
    through untouched for the driver to reject.
    """
    if database_name.startswith("/"):
        return f"{database_name}{table_name}"
    return f"/{database_name}{table_name}"
