"""Attach ISIL labels to converted records based on a holdings index."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from bibflow.errors import EmbargoError, Skip
from bibflow.holdings import HoldingsIndex
from bibflow.models import IntermediateRecord
from bibflow.services.batch import Converter


class HoldingsLabeler:
    """Wraps a converter; labels records whose ISSN and date are licensed.

    ``now`` is fixed at construction so that every record of one run is
    measured against the same moving wall.
    """

    def __init__(
        self,
        convert: Converter,
        index: HoldingsIndex,
        isil: str,
        *,
        now: datetime | None = None,
    ) -> None:
        self._convert = convert
        self._index = index
        self._isil = isil
        self._now = now or datetime.now(timezone.utc)

    def __call__(self, raw: Any) -> IntermediateRecord:
        record = self._convert(raw)
        if not record.issn or record.date is None:
            return record
        try:
            covered = self._index.covers(record.issn, record.date, self._now)
        except EmbargoError as exc:
            raise Skip(f"ambiguous moving wall: {exc}", record=record) from exc
        if covered and self._isil not in record.labels:
            record.labels.append(self._isil)
        return record
