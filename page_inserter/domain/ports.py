from __future__ import annotations

from typing import Callable, Protocol

from page_inserter.domain.models import FitResult, PageSize, ProgressEvent


ProgressSink = Callable[[ProgressEvent], None]
DeliverySink = Callable[[bytes, str], None]


class PageStore(Protocol):
    """Page-indexed view over a loaded document."""

    name: str

    def page_count(self) -> int: ...

    def page_size(self, index: int) -> PageSize:
        """Raise OutOfRange when ``index`` is outside ``[0, page_count())``."""
        ...

    def close(self) -> None: ...


class PageCopier(Protocol):
    def copy_page(self, destination: PageStore, source: PageStore, index: int) -> int:
        """Append a copy of ``source[index]`` to ``destination`` and return its index there."""
        ...

    def resize_page(self, destination: PageStore, index: int, fit: FitResult) -> None: ...


class DocumentBackend(PageCopier, Protocol):
    def load(self, name: str, data: bytes) -> PageStore: ...

    def new_output(self, name: str) -> PageStore: ...

    def serialize(self, document: PageStore) -> bytes: ...

    def release_memory(self) -> None: ...
