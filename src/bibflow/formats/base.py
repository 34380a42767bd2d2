"""Adapter interface and registry for source formats."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import structlog

from bibflow.errors import ConfigFatal, RecordError, Skip
from bibflow.models import IntermediateRecord

logger = structlog.get_logger(__name__)

DEFAULT_KEY_LENGTH_LIMIT = 250
DEFAULT_MAX_TITLE_LENGTH = 2048


@dataclass(frozen=True, slots=True)
class FormatTables:
    """Static lookup tables loaded once and handed to adapters."""

    genios_packages: Mapping[str, tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType({})
    )
    crossref_members: Mapping[int, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def load(cls, assets_dir: Path) -> "FormatTables":
        """Read the JSON assets below ``assets_dir``.

        Raises:
            ConfigFatal: An asset is missing or not the expected shape.
        """
        packages = _load_json(assets_dir / "genios" / "dbmap.json")
        members = _load_json(assets_dir / "crossref" / "members.json")
        try:
            return cls(
                genios_packages=MappingProxyType(
                    {str(db): tuple(str(name) for name in names) for db, names in packages.items()}
                ),
                crossref_members=MappingProxyType(
                    {int(member): str(name) for member, name in members.items()}
                ),
            )
        except (AttributeError, TypeError, ValueError) as exc:
            raise ConfigFatal(f"invalid format tables in {assets_dir}: {exc}") from exc


def _load_json(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigFatal(f"cannot load asset {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigFatal(f"asset {path} must contain a JSON object")
    return payload


class SourceAdapter:
    """Maps one raw record of a source format onto the intermediate schema.

    Subclasses implement ``to_intermediate`` and raise ``Skip`` for records
    that are fine but unusable. Lookup errors escaping the mapping indicate
    that the input does not look like the format promised and become
    ``RecordError``.
    """

    name: str = ""
    source_id: str = ""
    record_tag: str | None = None

    def __init__(
        self,
        *,
        key_length_limit: int = DEFAULT_KEY_LENGTH_LIMIT,
        max_title_length: int = DEFAULT_MAX_TITLE_LENGTH,
    ) -> None:
        self._key_length_limit = key_length_limit
        self._max_title_length = max_title_length

    def to_intermediate(self, raw: Any) -> IntermediateRecord:
        raise NotImplementedError

    def convert(self, raw: Any) -> IntermediateRecord:
        try:
            record = self.to_intermediate(raw)
        except (Skip, RecordError):
            raise
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise RecordError(f"{self.name}: {type(exc).__name__}: {exc}") from exc
        self.check(record)
        return record

    def check(self, record: IntermediateRecord) -> None:
        """Checks shared by every format, run after the mapping."""
        if record.date is None:
            raise Skip("empty/short/invalid date", record=record)
        if len(record.id) > self._key_length_limit:
            raise Skip(f"id too long: {record.id}", record=record)
        title = record.article_title or ""
        if len(title) > self._max_title_length:
            raise Skip(f"article title too long: {len(title)}", record=record)


class AdapterRegistry:
    """Lookup of adapters by format name."""

    def __init__(self, adapters: Iterable[SourceAdapter]) -> None:
        self._adapters = {adapter.name: adapter for adapter in adapters}

    def names(self) -> list[str]:
        return sorted(self._adapters)

    def get(self, name: str) -> SourceAdapter:
        try:
            return self._adapters[name]
        except KeyError:
            raise ConfigFatal(
                f"unknown format {name!r}, expected one of: {', '.join(self.names())}"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._adapters
