from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable

import fitz
import pytest

from page_inserter.domain.errors import (
    DocumentLoadError,
    OutOfRange,
    SerializationError,
    UnsupportedContent,
)
from page_inserter.domain.models import FitResult, PageSize, ProgressEvent
from page_inserter.infrastructure.config import AppConfig


@dataclass(frozen=True)
class FakePage:
    origin: str
    width: float
    height: float
    scale: float = 1.0


class FakeDocument:
    def __init__(self, name: str, pages: list[FakePage]) -> None:
        self.name = name
        self.pages = pages
        self.closed = False

    def page_count(self) -> int:
        return len(self.pages)

    def page_size(self, index: int) -> PageSize:
        if index < 0 or index >= len(self.pages):
            raise OutOfRange(f"Page index {index} is out of range for {self.name}")
        page = self.pages[index]
        return PageSize(width=page.width, height=page.height)

    def close(self) -> None:
        self.closed = True


class FakeBackend:
    """In-memory backend; a document is ``b"pdf:"`` followed by ``WxH`` sizes joined by ``;``."""

    def __init__(self) -> None:
        self.loaded: list[FakeDocument] = []
        self.outputs: list[FakeDocument] = []
        self.release_calls = 0
        self.unsupported_origins: set[str] = set()
        self.unserializable: set[str] = set()

    def load(self, name: str, data: bytes) -> FakeDocument:
        if not data.startswith(b"pdf:"):
            raise DocumentLoadError(f"Unable to read PDF {name}")
        body = data[4:].decode("ascii")
        pages = []
        for index, token in enumerate(item for item in body.split(";") if item):
            width, height = token.split("x")
            pages.append(FakePage(origin=f"{name}#{index}", width=float(width), height=float(height)))
        document = FakeDocument(name, pages)
        self.loaded.append(document)
        return document

    def new_output(self, name: str) -> FakeDocument:
        document = FakeDocument(name, [])
        self.outputs.append(document)
        return document

    def copy_page(self, destination: FakeDocument, source: FakeDocument, index: int) -> int:
        source.page_size(index)
        page = source.pages[index]
        if page.origin in self.unsupported_origins:
            raise UnsupportedContent(f"Unable to copy page {index + 1} of {source.name}")
        destination.pages.append(replace(page))
        return len(destination.pages) - 1

    def resize_page(self, destination: FakeDocument, index: int, fit: FitResult) -> None:
        page = destination.pages[index]
        destination.pages[index] = replace(
            page, width=fit.width, height=fit.height, scale=page.scale * fit.scale_factor
        )

    def serialize(self, document: FakeDocument) -> bytes:
        if document.name in self.unserializable:
            raise SerializationError(f"Unable to serialize {document.name}")
        return repr(document.pages).encode("utf-8")

    def release_memory(self) -> None:
        self.release_calls += 1


def _encode_fake_pdf(*sizes: tuple[float, float]) -> bytes:
    return b"pdf:" + ";".join(f"{w:g}x{h:g}" for w, h in sizes).encode("ascii")


@pytest.fixture
def fake_pdf() -> Callable[..., bytes]:
    return _encode_fake_pdf


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def fake_document() -> Callable[..., FakeDocument]:
    def _build(name: str, *sizes: tuple[float, float]) -> FakeDocument:
        return FakeDocument(
            name,
            [FakePage(origin=f"{name}#{i}", width=w, height=h) for i, (w, h) in enumerate(sizes)],
        )

    return _build


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        max_pdf_size_mb=50,
        max_batch_size_mb=100,
        page_batch_size=50,
        pause_between_batches=True,
        report_every_page=False,
    )


@pytest.fixture
def progress_log() -> tuple[list[ProgressEvent], Callable[[ProgressEvent], None]]:
    events: list[ProgressEvent] = []
    return events, events.append


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    def _build(sizes: list[tuple[float, float]], label: str = "Main") -> bytes:
        document = fitz.open()
        try:
            for index, (width, height) in enumerate(sizes):
                page = document.new_page(width=width, height=height)
                page.insert_text((36, 72), f"{label} page {index + 1}")
            return document.tobytes(deflate=True, garbage=3)
        finally:
            document.close()

    return _build


@pytest.fixture
def filler_pdf_bytes(make_pdf: Callable[..., bytes]) -> bytes:
    return make_pdf([(600, 800)], label="Filler")
