"""Batch consumers that hand converted records to an exporter."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any, Protocol, TextIO

import structlog

from bibflow.models import IntermediateRecord
from bibflow.services.batch import Batch, Outcome

logger = structlog.get_logger(__name__)

Exporter = Callable[[IntermediateRecord], dict[str, Any]]


class BatchWriter(Protocol):
    """Consumer side of the batch channel."""

    async def write(self, batch: Batch) -> None:
        ...


class JsonLinesWriter:
    """Export every successful record and write it as one JSON line.

    A record the exporter cannot handle is logged and counted in
    ``failed``; the rest of its batch is still written. Failures of the
    output handle itself propagate and end the run.
    """

    def __init__(self, handle: TextIO, exporter: Exporter) -> None:
        self._handle = handle
        self._exporter = exporter
        self._lock = asyncio.Lock()
        self.written = 0
        self.failed = 0

    async def write(self, batch: Batch) -> None:
        lines: list[str] = []
        for record in batch.records():
            try:
                lines.append(json.dumps(self._exporter(record), ensure_ascii=False, sort_keys=True))
            except Exception as exc:
                self.failed += 1
                logger.warning(
                    "writer.export_failed",
                    id=record.id,
                    sequence=batch.sequence,
                    error=str(exc),
                )
        if not lines:
            return
        async with self._lock:
            await asyncio.to_thread(self._write_sync, lines)
            self.written += len(lines)

    def _write_sync(self, lines: list[str]) -> None:
        self._handle.write("\n".join(lines) + "\n")
        self._handle.flush()


class CollectingWriter:
    """Keeps every batch in memory; for tests and small inputs."""

    def __init__(self) -> None:
        self.batches: list[Batch] = []

    async def write(self, batch: Batch) -> None:
        self.batches.append(batch)

    @property
    def outcomes(self) -> list[Outcome]:
        return [outcome for batch in self.batches for outcome in batch.outcomes]

    @property
    def records(self) -> list[IntermediateRecord]:
        return [record for batch in self.batches for record in batch.records()]
