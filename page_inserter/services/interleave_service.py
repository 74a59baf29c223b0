from __future__ import annotations

import logging
from typing import Callable, Iterator

from page_inserter.domain.errors import MissingFiller, ValidationError
from page_inserter.domain.models import BatchRange, FitPolicy, ProgressEvent, ProgressPhase
from page_inserter.domain.ports import PageCopier, PageStore, ProgressSink
from page_inserter.services.geometry_service import fit_to_page

logger = logging.getLogger(__name__)


def notify_progress(on_progress: ProgressSink | None, event: ProgressEvent) -> None:
    """Deliver an event to the observer; observer failures are logged and never reach the run."""
    if on_progress is None:
        return
    try:
        on_progress(event)
    except Exception:
        logger.exception(
            f"Progress observer failed on {event.phase.value} event "
            f"{event.position}/{event.total}"
        )


def plan_batches(page_count: int, batch_size: int) -> list[BatchRange]:
    """Split ``[0, page_count)`` into contiguous ranges of at most ``batch_size`` pages."""
    if batch_size < 1:
        raise ValidationError(f"Batch size must be at least 1, got {batch_size}")
    if page_count < 0:
        raise ValidationError(f"Page count cannot be negative, got {page_count}")
    return [
        BatchRange(start=start, end=min(start + batch_size, page_count))
        for start in range(0, page_count, batch_size)
    ]


class InterleaveService:
    def __init__(self, copier: PageCopier) -> None:
        self.copier = copier

    @staticmethod
    def _emit(on_progress: ProgressSink | None, main: PageStore, position: int, total: int) -> None:
        notify_progress(
            on_progress,
            ProgressEvent(
                phase=ProgressPhase.PAGES,
                position=position,
                total=total,
                document_name=main.name,
                label=f"Merged {position} of {total} page(s)",
            ),
        )

    def iter_batches(
        self,
        main: PageStore,
        filler: PageStore,
        output: PageStore,
        batch_size: int,
        policy: FitPolicy = FitPolicy.SCALED_FIT,
        on_progress: ProgressSink | None = None,
        report_every_page: bool = False,
    ) -> Iterator[BatchRange]:
        """Append ``main[i]`` then a fitted filler copy to ``output`` for every page.

        Yields each range once its pages are in ``output``; the caller decides
        when to resume with the next range. Any failure propagates and leaves
        ``output`` partially built.
        """
        if filler.page_count() != 1:
            raise MissingFiller(
                f"Filler {filler.name} must have exactly one page, has {filler.page_count()}"
            )

        total = main.page_count()
        filler_size = filler.page_size(0)

        for batch in plan_batches(total, batch_size):
            for index in batch.indices():
                main_index = self.copier.copy_page(output, main, index)
                target = output.page_size(main_index)
                filler_index = self.copier.copy_page(output, filler, 0)
                self.copier.resize_page(
                    output, filler_index, fit_to_page(target, filler_size, policy)
                )
                if report_every_page:
                    self._emit(on_progress, main, index + 1, total)

            if not report_every_page:
                self._emit(on_progress, main, batch.end, total)
            logger.debug(f"{main.name}: merged pages [{batch.start}, {batch.end}) of {total}")
            yield batch

    def interleave(
        self,
        main: PageStore,
        filler: PageStore,
        output: PageStore,
        batch_size: int,
        policy: FitPolicy = FitPolicy.SCALED_FIT,
        on_progress: ProgressSink | None = None,
        report_every_page: bool = False,
        checkpoint: Callable[[], None] | None = None,
    ) -> list[BatchRange]:
        total = main.page_count()
        completed: list[BatchRange] = []
        for batch in self.iter_batches(
            main, filler, output, batch_size, policy, on_progress, report_every_page
        ):
            completed.append(batch)
            if checkpoint is not None and batch.end < total:
                checkpoint()
        return completed
