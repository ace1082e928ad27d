"""Document store drivers."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any

from docstore.protocols import DocumentStream

# Store-side name of the document key.
KEY_FIELD = "_id"


class IteratorStream:
    """A :class:`~docstore.protocols.DocumentStream` over an iterable.

    ``close`` is idempotent and runs *on_close* at most once.
    """

    def __init__(self, documents: Iterable[dict[str, Any]], on_close: Callable[[], None] | None = None) -> None:
        self._documents = iter(documents)
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[dict[str, Any]]:
        if self._closed:
            raise RuntimeError("Document stream is closed.")
        return self._documents

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close is not None:
            self._on_close()

    def __enter__(self) -> IteratorStream:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _require_key(document: Mapping[str, Any]) -> Any:
    """Return the ``_id`` of *document*, raising ``ValueError`` if it has none."""
    key = document.get(KEY_FIELD)
    if key is None:
        raise ValueError("Document has no _id.")
    return key


def _delete_keys(target: Any) -> list[Any]:
    """Normalise a delete target (document, stream, or bare key) to a list of keys."""
    if isinstance(target, Mapping):
        return [_require_key(target)]
    if isinstance(target, DocumentStream):
        return [_require_key(document) for document in target]
    if target is None:
        raise ValueError("Cannot delete a None key.")
    return [target]
