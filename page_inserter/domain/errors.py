from __future__ import annotations

from page_inserter.domain.models import ErrorKind


class PageInserterError(Exception):
    kind = ErrorKind.UNEXPECTED


class ValidationError(PageInserterError):
    kind = ErrorKind.VALIDATION


class OutOfRange(PageInserterError):
    kind = ErrorKind.OUT_OF_RANGE


class UnsupportedContent(PageInserterError):
    kind = ErrorKind.UNSUPPORTED_CONTENT


class DocumentLoadError(PageInserterError):
    kind = ErrorKind.DOCUMENT_LOAD


class SerializationError(PageInserterError):
    kind = ErrorKind.SERIALIZATION


class DeliveryError(PageInserterError):
    kind = ErrorKind.DELIVERY


class MissingFiller(PageInserterError):
    kind = ErrorKind.MISSING_FILLER


class NoInput(PageInserterError):
    kind = ErrorKind.NO_INPUT
