from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Status(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    OUT_OF_RANGE = "out_of_range"
    UNSUPPORTED_CONTENT = "unsupported_content"
    DOCUMENT_LOAD = "document_load"
    SERIALIZATION = "serialization"
    DELIVERY = "delivery"
    MISSING_FILLER = "missing_filler"
    NO_INPUT = "no_input"
    UNEXPECTED = "unexpected"


class FitPolicy(str, Enum):
    SCALED_FIT = "scaled_fit"
    STRETCH_FIT = "stretch_fit"


class ProgressPhase(str, Enum):
    DOCUMENTS = "documents"
    PAGES = "pages"


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    PARTIALLY_FAILED = "partially_failed"
    FAILED = "failed"


@dataclass(frozen=True)
class PageSize:
    width: float
    height: float


@dataclass(frozen=True)
class FitResult:
    """Declared page size and uniform content scale for an inserted filler page."""

    width: float
    height: float
    scale_factor: float
    policy: FitPolicy


@dataclass(frozen=True)
class BatchRange:
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def indices(self) -> range:
        return range(self.start, self.end)


@dataclass(frozen=True)
class ProgressEvent:
    phase: ProgressPhase
    position: int
    total: int
    document_name: str
    label: str


@dataclass(frozen=True)
class OperationMessage:
    level: str
    text: str


@dataclass(frozen=True)
class DocumentOutcome:
    source_name: str
    document_index: int
    status: Status
    error_kind: ErrorKind | None = None
    messages: list[OperationMessage] = field(default_factory=list)
    metrics: dict[str, int | str] = field(default_factory=dict)
    artifact_name: str | None = None


@dataclass(frozen=True)
class RunResult:
    items: list[DocumentOutcome]
    state: RunState

    @property
    def success_count(self) -> int:
        return len([item for item in self.items if item.status == Status.SUCCESS])

    @property
    def error_count(self) -> int:
        return len([item for item in self.items if item.status == Status.ERROR])
