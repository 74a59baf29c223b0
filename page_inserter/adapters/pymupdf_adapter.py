from __future__ import annotations

import logging
from typing import cast

import fitz  # type: ignore[import-untyped]

from page_inserter.domain.errors import (
    DocumentLoadError,
    OutOfRange,
    SerializationError,
    UnsupportedContent,
)
from page_inserter.domain.models import FitResult, PageSize
from page_inserter.domain.ports import PageStore

logger = logging.getLogger(__name__)


def _pdf_number(value: float) -> str:
    if abs(value) < 5e-7:
        return "0"
    return f"{value:.6f}".rstrip("0").rstrip(".")


class PdfDocument:
    """A loaded or freshly created PDF, addressable by page index."""

    def __init__(self, name: str, document: fitz.Document) -> None:
        self.name = name
        self.document = document

    def page_count(self) -> int:
        return int(self.document.page_count)

    def page_size(self, index: int) -> PageSize:
        if index < 0 or index >= self.page_count():
            raise OutOfRange(
                f"Page index {index} is out of range for {self.name} "
                f"({self.page_count()} page(s))"
            )
        mediabox = self.document[index].mediabox
        return PageSize(width=float(mediabox.width), height=float(mediabox.height))

    def close(self) -> None:
        if not self.document.is_closed:
            self.document.close()

    def __enter__(self) -> PdfDocument:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class PyMuPdfAdapter:
    @staticmethod
    def _optimized_bytes(document: fitz.Document) -> bytes:
        return cast(
            bytes,
            document.tobytes(
                garbage=4,
                clean=True,
                deflate=True,
                deflate_images=True,
                deflate_fonts=True,
            ),
        )

    @staticmethod
    def _unwrap(store: PageStore) -> fitz.Document:
        if not isinstance(store, PdfDocument):
            raise UnsupportedContent(f"{store.name} is not a PyMuPDF document")
        return store.document

    def load(self, name: str, data: bytes) -> PdfDocument:
        try:
            document = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            raise DocumentLoadError(f"Unable to read PDF {name}") from exc
        if document.needs_pass:
            document.close()
            raise DocumentLoadError(f"{name} is encrypted and cannot be merged")
        logger.debug(f"Loaded {name} with {document.page_count} page(s)")
        return PdfDocument(name, document)

    def new_output(self, name: str) -> PdfDocument:
        return PdfDocument(name, fitz.open())

    def get_page_count(self, pdf_bytes: bytes) -> int:
        with self.load("upload", pdf_bytes) as document:
            return document.page_count()

    def copy_page(self, destination: PageStore, source: PageStore, index: int) -> int:
        source.page_size(index)
        target = self._unwrap(destination)
        origin = self._unwrap(source)
        try:
            # final=False keeps the graft map so repeated copies share resources
            target.insert_pdf(origin, from_page=index, to_page=index, final=False)
        except Exception as exc:
            raise UnsupportedContent(
                f"Unable to copy page {index + 1} of {source.name}"
            ) from exc
        return int(target.page_count) - 1

    def resize_page(self, destination: PageStore, index: int, fit: FitResult) -> None:
        destination.page_size(index)
        target = self._unwrap(destination)
        try:
            page = target[index]
            x0, y0 = self._mediabox_origin(target, page)
            if fit.scale_factor != 1.0 or x0 != 0 or y0 != 0:
                self._transform_contents(target, page, fit.scale_factor, x0, y0)
            page.set_mediabox(fitz.Rect(0, 0, fit.width, fit.height))
        except Exception as exc:
            raise UnsupportedContent(
                f"Unable to resize page {index + 1} of {destination.name}"
            ) from exc

    @staticmethod
    def _mediabox_origin(document: fitz.Document, page: fitz.Page) -> tuple[float, float]:
        kind, value = document.xref_get_key(page.xref, "MediaBox")
        if kind == "array":
            numbers = [float(item) for item in value.strip("[]").split()]
            if len(numbers) == 4:
                return min(numbers[0], numbers[2]), min(numbers[1], numbers[3])
        mediabox = page.mediabox
        return float(mediabox.x0), float(mediabox.y0)

    @staticmethod
    def _transform_contents(
        document: fitz.Document, page: fitz.Page, scale: float, x0: float, y0: float
    ) -> None:
        # moves the old mediabox origin to (0, 0), then scales about it
        factor = _pdf_number(scale)
        shift_x = _pdf_number(-scale * x0)
        shift_y = _pdf_number(-scale * y0)
        prefix = f"q {factor} 0 0 {factor} {shift_x} {shift_y} cm\n".encode("ascii")
        xref = document.get_new_xref()
        document.update_object(xref, "<<>>")
        document.update_stream(xref, prefix + page.read_contents() + b"\nQ\n")
        page.set_contents(xref)

    def serialize(self, document: PageStore) -> bytes:
        try:
            return self._optimized_bytes(self._unwrap(document))
        except Exception as exc:
            raise SerializationError(f"Unable to serialize {document.name}") from exc

    def release_memory(self) -> None:
        fitz.TOOLS.store_shrink(100)
