"""Chunked, cancellable batch classification.

Drives the RuleEngine over large collections (tens of thousands of rows)
without starving the event loop:

- Items are split into macro-batches (default 500). After each macro-batch
  the optional ``on_batch_complete`` sink is awaited before the next one
  starts, so the pipeline never runs ahead of downstream persistence.
- Each macro-batch is processed in micro-batches (default 50). After every
  micro-batch progress, throughput and ETA are updated and control is
  yielded back to the loop with ``await asyncio.sleep(0)``.
- Cancellation is cooperative: it is checked at the start of every
  macro-batch, before every micro-batch and after every sink call. A
  cancelled run returns an empty list; batches already handed to the sink
  stay persisted.

Example:
    classifier = BatchClassifier(on_batch_complete=save_batch)
    results = await classifier.run(products, rules, attributes)
"""
import asyncio
import math
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence

import structlog

from catalog_pipeline.config import batch_settings
from catalog_pipeline.errors.exceptions import PipelineBusyError
from catalog_pipeline.models.classification import BatchStats, ClassifiedItem
from catalog_pipeline.models.progress import BatchProgress
from catalog_pipeline.models.rules import CustomAttribute, Rule
from catalog_pipeline.services.classification.engine import ProductLike, RuleEngine

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[BatchProgress], None]
BatchSink = Callable[[List[ClassifiedItem], int], Awaitable[None]]
CompleteCallback = Callable[[BatchStats], None]
ErrorCallback = Callable[[Exception], None]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_eta(seconds: float) -> str:
    """Format a remaining-time estimate.

    Returns:
        ``"42s"`` under a minute, ``"7min"`` under an hour, else ``"2h 5min"``
    """
    seconds = max(seconds, 0.0)
    if seconds < 60:
        return f"{_round_half_up(seconds)}s"
    if seconds < 3600:
        return f"{_round_half_up(seconds / 60)}min"
    hours, rest = divmod(seconds, 3600)
    minutes = _round_half_up(rest / 60)
    if minutes == 60:
        hours, minutes = hours + 1, 0
    return f"{int(hours)}h {minutes}min"


def estimate_remaining(processed: int, total: int, elapsed: float) -> Optional[str]:
    """ETA text from throughput so far; None until something was processed."""
    if processed <= 0 or elapsed <= 0:
        return None
    rate = processed / elapsed
    return format_eta((total - processed) / rate)


def compute_stats(results: Sequence[ClassifiedItem]) -> BatchStats:
    """Summary statistics of a completed run."""
    total = len(results)
    classified = sum(1 for item in results if item.result.confidence > 0)
    average = (
        sum(item.result.confidence for item in results) / total
        if total else 0.0
    )
    return BatchStats(total=total, classified_count=classified, average_confidence=average)


class BatchClassifier:
    """Cooperative batch driver around RuleEngine.

    One instance runs one classification at a time and owns its progress
    record. Callbacks are plain injected callables:

    - ``on_progress(snapshot)`` after every progress change
    - ``on_batch_complete(batch, index)`` awaited once per macro-batch
    - ``on_complete(stats)`` when the run finishes
    - ``on_error(exc)`` before an unexpected exception is re-raised

    With ``use_worker=True`` micro-batches are classified on a single
    worker thread that lives exactly as long as the ``run()`` call.

    Attributes:
        progress: Live progress record (phase, counts, ETA, throughput)
        results: Items of the last completed run
    """

    def __init__(
        self,
        batch_size: Optional[int] = None,
        micro_batch_size: Optional[int] = None,
        use_worker: Optional[bool] = None,
        on_progress: Optional[ProgressCallback] = None,
        on_batch_complete: Optional[BatchSink] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the driver.

        Args:
            batch_size: Items per macro-batch (default from BATCH_SIZE)
            micro_batch_size: Items per yield (default from BATCH_MICRO_BATCH_SIZE)
            use_worker: Classify on a worker thread (default from BATCH_USE_WORKER)
            on_progress: Receives a progress snapshot after every update
            on_batch_complete: Async sink awaited after every macro-batch
            on_complete: Receives run statistics on completion
            on_error: Receives unexpected exceptions before they propagate
            clock: Monotonic time source in seconds
        """
        self.batch_size = batch_size or batch_settings.batch_size
        self.micro_batch_size = micro_batch_size or batch_settings.micro_batch_size
        self.use_worker = batch_settings.use_worker if use_worker is None else use_worker
        self.on_progress = on_progress
        self.on_batch_complete = on_batch_complete
        self.on_complete = on_complete
        self.on_error = on_error
        self._clock = clock

        self.progress = BatchProgress()
        self.results: List[ClassifiedItem] = []
        self._cancelled = False
        self._running = False
        self._log = logger.bind(component="BatchClassifier")

    @property
    def is_processing(self) -> bool:
        """True while a run is producing results."""
        return self.progress.is_processing

    async def run(
        self,
        items: Sequence[ProductLike],
        rules: Iterable[Rule],
        attributes: Iterable[CustomAttribute] = (),
    ) -> List[ClassifiedItem]:
        """Classify all items.

        Args:
            items: Products, product mappings or bare names
            rules: Classification rules
            attributes: Custom attributes

        Returns:
            Classified items in input order, or an empty list if cancelled

        Raises:
            PipelineBusyError: If this instance is already running
            Exception: Anything raised by classification or the sink, after
                ``on_error`` was notified and the phase set to ``error``
        """
        if self._running:
            raise PipelineBusyError("Batch classification is already running")

        self._running = True
        self._cancelled = False
        self.results = []

        total = len(items)
        total_batches = math.ceil(total / self.batch_size)
        self.progress = BatchProgress(
            phase="classifying",
            total=total,
            total_batches=total_batches,
        )
        self._emit_progress()

        log = self._log.bind(total=total, total_batches=total_batches)
        log.info("batch_classification_started", use_worker=self.use_worker)

        executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="classifier")
            if self.use_worker else None
        )

        try:
            engine = RuleEngine(rules, attributes)
            results = await self._process(items, engine, executor, log)

            if results is None:
                log.info("batch_classification_cancelled", processed=self.progress.processed)
                return []

            stats = compute_stats(results)
            self.results = results
            self.progress.phase = "complete"
            self.progress.processed = len(results)
            self.progress.percent = 100
            self.progress.eta_text = None
            self._emit_progress()

            log.info(
                "batch_classification_completed",
                classified_count=stats.classified_count,
                average_confidence=round(stats.average_confidence, 2),
            )

            if self.on_complete:
                self.on_complete(stats)

            return results

        except Exception as e:
            self.progress.phase = "error"
            self._emit_progress()
            log.error("batch_classification_failed", error=str(e), exc_info=True)
            if self.on_error:
                self.on_error(e)
            raise

        finally:
            if executor is not None:
                executor.shutdown(wait=False, cancel_futures=True)
            self._running = False

    async def _process(
        self,
        items: Sequence[ProductLike],
        engine: RuleEngine,
        executor: Optional[ThreadPoolExecutor],
        log,
    ) -> Optional[List[ClassifiedItem]]:
        """Run all macro-batches; None means the run was cancelled."""
        loop = asyncio.get_running_loop()
        started_at = self._clock()
        total = len(items)
        all_results: List[ClassifiedItem] = []

        for batch_index in range(self.progress.total_batches):
            if self._cancelled:
                return None

            batch_start = batch_index * self.batch_size
            batch = items[batch_start:batch_start + self.batch_size]
            batch_results: List[ClassifiedItem] = []

            for offset in range(0, len(batch), self.micro_batch_size):
                if self._cancelled:
                    break

                micro_batch = batch[offset:offset + self.micro_batch_size]
                if executor is not None:
                    classified = await loop.run_in_executor(
                        executor, engine.classify_many, micro_batch
                    )
                else:
                    classified = engine.classify_many(micro_batch)
                batch_results.extend(classified)

                done_in_batch = offset + len(micro_batch)
                self._update_progress(
                    processed=batch_start + done_in_batch,
                    total=total,
                    batch_index=batch_index,
                    batch_percent=_round_half_up(done_in_batch / len(batch) * 100),
                    elapsed=self._clock() - started_at,
                )

                await asyncio.sleep(0)

            # Unflushed items of a cancelled run are discarded
            if self._cancelled:
                return None

            all_results.extend(batch_results)

            if self.on_batch_complete:
                self.progress.phase = "saving"
                self._emit_progress()
                await self.on_batch_complete(batch_results, batch_index)
                # Flushed batches stay persisted, but the run reports nothing
                if self._cancelled:
                    return None
                self.progress.phase = "classifying"

            self.progress.batches_complete = batch_index + 1
            self._emit_progress()
            log.debug(
                "batch_complete",
                batch_index=batch_index,
                batch_items=len(batch_results),
                items_per_second=self.progress.items_per_second,
            )

        return all_results

    def _update_progress(
        self,
        processed: int,
        total: int,
        batch_index: int,
        batch_percent: int,
        elapsed: float,
    ) -> None:
        rate = processed / elapsed if elapsed > 0 else 0.0

        self.progress.processed = processed
        self.progress.percent = _round_half_up(processed / total * 100) if total else 0
        self.progress.batches_complete = batch_index
        self.progress.eta_text = estimate_remaining(processed, total, elapsed)
        self.progress.items_per_second = _round_half_up(rate)
        self.progress.current_batch_percent = batch_percent
        self._emit_progress()

    def _emit_progress(self) -> None:
        if self.on_progress:
            self.on_progress(self.progress.model_copy())

    def cancel(self) -> None:
        """Request cancellation; takes effect at the next checkpoint."""
        self._cancelled = True
        self.progress.phase = "cancelled"
        self._emit_progress()
        self._log.info("batch_cancel_requested", processed=self.progress.processed)

    def reset(self) -> None:
        """Return to idle and drop results, cancelling any run in progress."""
        if self._running:
            self._cancelled = True
        self.progress = BatchProgress()
        self.results = []
