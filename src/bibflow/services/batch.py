"""Group converted records into bounded batches for downstream transport."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

import structlog

from bibflow.errors import RecordError, Skip, StreamFatal
from bibflow.models import IntermediateRecord

logger = structlog.get_logger(__name__)

Converter = Callable[[Any], IntermediateRecord]


@dataclass(slots=True)
class Outcome:
    """Result of converting one raw record.

    ``record`` may be partial when ``skip`` or ``error`` is set.
    """

    record: IntermediateRecord | None
    skip: str | None = None
    error: RecordError | None = None

    @property
    def ok(self) -> bool:
        return self.skip is None and self.error is None


@dataclass(slots=True)
class Batch:
    sequence: int
    outcomes: list[Outcome] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.outcomes)

    def records(self) -> list[IntermediateRecord]:
        """Successfully converted records, in decode order."""
        return [o.record for o in self.outcomes if o.ok and o.record is not None]


def convert_one(raw: Any, convert: Converter) -> Outcome:
    try:
        return Outcome(record=convert(raw))
    except Skip as skip:
        logger.debug("batch.skip", reason=skip.reason)
        return Outcome(record=skip.record, skip=skip.reason)
    except RecordError as exc:
        logger.warning("batch.record_error", error=str(exc))
        return Outcome(record=exc.record, error=exc)


class Batcher:
    """Apply a conversion function and cut the outcomes into batches.

    Conversion is eager and strictly sequential: a record is converted as
    soon as it is pulled from the decoder, outcomes keep decode order.
    """

    def __init__(self, convert: Converter, batch_size: int) -> None:
        if batch_size < 1:
            raise ValueError(f"batch size must be positive, got {batch_size}")
        self._convert = convert
        self._batch_size = batch_size

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def process(self, records: Iterable[Any]) -> Iterator[Batch]:
        """Yield full batches, then the remainder.

        When the decoder fails with ``StreamFatal`` the batch being filled
        is still yielded before the error propagates.
        """
        sequence = 0
        batch = Batch(sequence=sequence)
        try:
            for raw in records:
                batch.outcomes.append(convert_one(raw, self._convert))
                if len(batch) == self._batch_size:
                    yield batch
                    sequence += 1
                    batch = Batch(sequence=sequence)
        except StreamFatal:
            if batch.outcomes:
                logger.warning("batch.flushed_on_error", sequence=batch.sequence, size=len(batch))
                yield batch
            raise
        if batch.outcomes:
            yield batch


def process(records: Iterable[Any], convert: Converter, batch_size: int) -> Iterator[Batch]:
    """Functional shortcut for ``Batcher(convert, batch_size).process(records)``."""
    return Batcher(convert, batch_size).process(records)
