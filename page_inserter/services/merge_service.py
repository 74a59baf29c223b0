from __future__ import annotations

import logging

from page_inserter.domain.errors import (
    DeliveryError,
    DocumentLoadError,
    MissingFiller,
    NoInput,
    PageInserterError,
    ValidationError,
)
from page_inserter.domain.models import (
    BatchRange,
    DocumentOutcome,
    ErrorKind,
    FitPolicy,
    OperationMessage,
    ProgressEvent,
    ProgressPhase,
    RunResult,
    RunState,
    Status,
)
from page_inserter.domain.ports import DeliverySink, DocumentBackend, PageStore, ProgressSink
from page_inserter.infrastructure.config import AppConfig
from page_inserter.services.interleave_service import InterleaveService, notify_progress

logger = logging.getLogger(__name__)


def merged_file_name(source_name: str) -> str:
    return f"merged-{source_name}"


class MergeService:
    """Inserts the filler page after every page of each main PDF, one document at a time.

    An instance drives a single run: ``IDLE -> RUNNING -> SUCCEEDED |
    PARTIALLY_FAILED | FAILED``. Discard it and create a new one to run again.
    """

    def __init__(
        self,
        backend: DocumentBackend,
        config: AppConfig,
        interleaver: InterleaveService | None = None,
    ) -> None:
        self.backend = backend
        self.config = config
        self.interleaver = interleaver or InterleaveService(backend)
        self.state = RunState.IDLE
        self.current_document_index: int | None = None
        self.current_batch: BatchRange | None = None

    def run(
        self,
        filler: tuple[str, bytes] | None,
        main_files: list[tuple[str, bytes]],
        deliver: DeliverySink,
        on_progress: ProgressSink | None = None,
        policy: FitPolicy | None = None,
        batch_size: int | None = None,
    ) -> RunResult:
        if self.state != RunState.IDLE:
            raise RuntimeError(f"MergeService runs once; current state is {self.state.value}")

        policy = policy or self.config.fit_policy
        if batch_size is None:
            batch_size = self.config.page_batch_size
        if batch_size < 1:
            self.state = RunState.FAILED
            raise ValidationError(f"Batch size must be at least 1, got {batch_size}")

        try:
            filler_store = self._load_filler(filler)
        except MissingFiller:
            self.state = RunState.FAILED
            raise
        if not main_files:
            filler_store.close()
            self.state = RunState.FAILED
            raise NoInput("Select at least one main PDF.")

        self.state = RunState.RUNNING
        total = len(main_files)
        logger.info(
            f"Merging {total} document(s) with filler {filler_store.name} "
            f"(policy={policy.value}, batch_size={batch_size})"
        )
        items: list[DocumentOutcome] = []
        try:
            for index, (file_name, file_bytes) in enumerate(main_files):
                self.current_document_index = index
                self.current_batch = None
                self._emit(
                    on_progress,
                    index,
                    total,
                    file_name,
                    f"Processing {index + 1} of {total}: {file_name}",
                )
                items.append(
                    self._process_document(
                        index,
                        file_name,
                        file_bytes,
                        filler_store,
                        deliver,
                        on_progress,
                        policy,
                        batch_size,
                    )
                )
                if self.config.pause_between_batches:
                    self.backend.release_memory()
        finally:
            filler_store.close()
            self.current_document_index = None
            self.current_batch = None

        self._emit(on_progress, total, total, "", f"Processed {total} document(s)")
        self.state = self._final_state(items)
        result = RunResult(items=items, state=self.state)
        logger.info(
            f"Run finished: {self.state.value} "
            f"(success={result.success_count}, error={result.error_count})"
        )
        return result

    def _load_filler(self, filler: tuple[str, bytes] | None) -> PageStore:
        if filler is None:
            raise MissingFiller("No filler PDF was provided.")
        name, content = filler
        try:
            store = self.backend.load(name, content)
        except DocumentLoadError as exc:
            raise MissingFiller(f"Filler {name} could not be loaded: {exc}") from exc
        if store.page_count() != 1:
            page_count = store.page_count()
            store.close()
            raise MissingFiller(f"Filler {name} must have exactly one page, has {page_count}")
        return store

    def _process_document(
        self,
        index: int,
        file_name: str,
        file_bytes: bytes,
        filler: PageStore,
        deliver: DeliverySink,
        on_progress: ProgressSink | None,
        policy: FitPolicy,
        batch_size: int,
    ) -> DocumentOutcome:
        main: PageStore | None = None
        output: PageStore | None = None
        try:
            if len(file_bytes) > self.config.max_pdf_size_bytes:
                raise DocumentLoadError(
                    f"{file_name} exceeds per-file limit of {self.config.max_pdf_size_mb} MB"
                )
            main = self.backend.load(file_name, file_bytes)
            artifact_name = merged_file_name(file_name)
            output = self.backend.new_output(artifact_name)

            batches = 0
            for batch in self.interleaver.iter_batches(
                main,
                filler,
                output,
                batch_size,
                policy,
                on_progress,
                self.config.report_every_page,
            ):
                self.current_batch = batch
                batches += 1
                if self.config.pause_between_batches and batch.end < main.page_count():
                    self.backend.release_memory()

            data = self.backend.serialize(output)
            try:
                deliver(data, artifact_name)
            except Exception as exc:
                raise DeliveryError(f"Unable to deliver {artifact_name}") from exc

            main_pages = main.page_count()
            return DocumentOutcome(
                source_name=file_name,
                document_index=index,
                status=Status.SUCCESS,
                messages=[
                    OperationMessage(
                        level="info",
                        text=f"Inserted the filler page after {main_pages} page(s).",
                    )
                ],
                metrics={
                    "main_pages": main_pages,
                    "output_pages": output.page_count(),
                    "batches": batches,
                    "policy": policy.value,
                },
                artifact_name=artifact_name,
            )
        except Exception as exc:
            if isinstance(exc, PageInserterError):
                error_kind = exc.kind
                logger.warning(f"{file_name} failed ({error_kind.value}): {exc}")
            else:
                error_kind = ErrorKind.UNEXPECTED
                logger.exception(f"{file_name} failed unexpectedly")
            return DocumentOutcome(
                source_name=file_name,
                document_index=index,
                status=Status.ERROR,
                error_kind=error_kind,
                messages=[OperationMessage(level="error", text=str(exc))],
            )
        finally:
            if output is not None:
                output.close()
            if main is not None:
                main.close()

    @staticmethod
    def _emit(
        on_progress: ProgressSink | None, position: int, total: int, name: str, label: str
    ) -> None:
        notify_progress(
            on_progress,
            ProgressEvent(
                phase=ProgressPhase.DOCUMENTS,
                position=position,
                total=total,
                document_name=name,
                label=label,
            ),
        )

    @staticmethod
    def _final_state(items: list[DocumentOutcome]) -> RunState:
        failures = len([item for item in items if item.status == Status.ERROR])
        if failures == 0:
            return RunState.SUCCEEDED
        if failures == len(items):
            return RunState.FAILED
        return RunState.PARTIALLY_FAILED
