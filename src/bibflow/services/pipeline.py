"""Streaming conversion pipeline: decode, convert, batch, hand off."""

from __future__ import annotations

import asyncio
import threading
from collections import Counter
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog

from bibflow.services.batch import Batch, Batcher, Converter
from bibflow.services.decoder import StreamDecoder
from bibflow.services.sources import Source
from bibflow.services.writer import BatchWriter

if TYPE_CHECKING:
    from bibflow.formats.base import SourceAdapter

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class RunStats:
    """Per-run counters; a non-zero skip count is normal operation."""

    seen: int = 0
    converted: int = 0
    skipped: int = 0
    errors: int = 0
    batches: int = 0
    malformed: int = 0
    export_failed: int = 0
    skip_reasons: Counter[str] = field(default_factory=Counter)

    def add(self, batch: Batch) -> None:
        self.batches += 1
        for outcome in batch.outcomes:
            self.seen += 1
            if outcome.skip is not None:
                self.skipped += 1
                self.skip_reasons[_reason_key(outcome.skip)] += 1
            elif outcome.error is not None:
                self.errors += 1
            else:
                self.converted += 1

    def as_dict(self) -> dict[str, Any]:
        return {
            "seen": self.seen,
            "converted": self.converted,
            "skipped": self.skipped,
            "errors": self.errors,
            "batches": self.batches,
            "malformed": self.malformed,
            "export_failed": self.export_failed,
            "skip_reasons": dict(self.skip_reasons.most_common()),
        }


def _reason_key(reason: str) -> str:
    # "id too long: ai-48-..." and friends would make one bucket per record
    return reason.split(":", 1)[0].strip()


def convert_stream(stream: Source, adapter: SourceAdapter, batch_size: int) -> Iterator[Batch]:
    """Synchronous variant without a channel, batches are yielded directly."""
    decoder = StreamDecoder(record_tag=adapter.record_tag)
    return Batcher(adapter.convert, batch_size).process(decoder.decode(stream))


class ConversionPipeline:
    """Single producer, bounded channel, one or more consumers.

    The producer runs in a worker thread since stream reads are
    synchronous; it blocks whenever the channel is full. Decode order is
    preserved end to end with a single consumer.
    """

    def __init__(
        self,
        adapter: SourceAdapter,
        writer: BatchWriter,
        *,
        batch_size: int = 2000,
        queue_size: int = 2,
        consumers: int = 1,
        convert: Converter | None = None,
    ) -> None:
        if queue_size < 1 or consumers < 1:
            raise ValueError("queue size and consumer count must be positive")
        self._adapter = adapter
        self._writer = writer
        self._batch_size = batch_size
        self._queue_size = queue_size
        self._consumers = consumers
        self._convert = convert or adapter.convert
        self._done = threading.Event()
        self._failure: BaseException | None = None

    def stop(self) -> None:
        """Ask the producer to stop decoding before its next batch."""
        self._done.set()

    async def run(self, stream: Source) -> RunStats:
        """Convert ``stream`` and feed all batches to the writer.

        Raises:
            StreamFatal: The stream is unreadable; batches already queued
                are still delivered before the error surfaces.
        """
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue[Batch | None] = asyncio.Queue(maxsize=self._queue_size)
        stats = RunStats()
        logger.info(
            "pipeline.start",
            format=self._adapter.name,
            batch_size=self._batch_size,
            queue_size=self._queue_size,
            consumers=self._consumers,
        )
        workers = [
            asyncio.create_task(self._consume(queue, number)) for number in range(self._consumers)
        ]
        try:
            await asyncio.to_thread(self._produce, stream, queue, loop, stats)
        except asyncio.CancelledError:
            self._done.set()
            raise
        finally:
            for _ in workers:
                await queue.put(None)
            await asyncio.gather(*workers)
            logger.info("pipeline.finished", **stats.as_dict())
        if self._failure is not None:
            raise self._failure
        return stats

    def _produce(
        self,
        stream: Source,
        queue: asyncio.Queue[Batch | None],
        loop: asyncio.AbstractEventLoop,
        stats: RunStats,
    ) -> None:
        decoder = StreamDecoder(record_tag=self._adapter.record_tag)
        batches = Batcher(self._convert, self._batch_size).process(decoder.decode(stream))
        try:
            while not self._done.is_set():
                batch = next(batches, None)
                if batch is None:
                    break
                stats.add(batch)
                logger.debug("pipeline.batch", sequence=batch.sequence, size=len(batch))
                asyncio.run_coroutine_threadsafe(queue.put(batch), loop).result()
        finally:
            stats.malformed = decoder.malformed

    async def _consume(self, queue: asyncio.Queue[Batch | None], number: int) -> None:
        while True:
            batch = await queue.get()
            if batch is None:
                return
            if self._failure is not None:
                continue
            try:
                await self._writer.write(batch)
            except Exception as exc:
                logger.error("pipeline.writer_failed", consumer=number, error=str(exc))
                self._failure = exc
                self._done.set()
