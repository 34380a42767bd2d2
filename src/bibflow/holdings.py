"""Holdings files, entitlements and moving wall computation.

A holdings file is an XML document of repeating ``holding`` elements, each
listing ISSNs and one or more ``entitlement`` elements. An entitlement may
carry a relative delay such as ``-6M`` or ``-2Y`` on its ``begin`` or
``end`` boundary, meaning content newer than ``now + delay`` is embargoed.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta, timezone
from types import MappingProxyType
from typing import BinaryIO
from urllib.parse import unquote

import structlog
from lxml import etree
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bibflow.errors import ConfigFatal, DelayFormatError, DelayMismatchError
from bibflow.utils import normalize_issn
from bibflow.xmlutil import child as _child
from bibflow.xmlutil import children as _children
from bibflow.xmlutil import localname
from bibflow.xmlutil import text as _text

logger = structlog.get_logger(__name__)

DELAY_PATTERN = re.compile(r"^-(\d+)(M|Y)$")
MONTH = timedelta(hours=720)
YEAR = timedelta(hours=8760)


def parse_delay(value: str) -> timedelta:
    """Parse ``-<n>M`` or ``-<n>Y`` into a (non-positive) timedelta.

    Months and years are fixed width: 720 and 8760 hours.
    """
    match = DELAY_PATTERN.match(value or "")
    if not match:
        raise DelayFormatError(f"unknown format: {value}")
    amount = int(match.group(1))
    unit = MONTH if match.group(2) == "M" else YEAR
    return -amount * unit


class Entitlement(BaseModel):
    """A single access grant within a holding."""

    model_config = ConfigDict(frozen=True)

    status: str = ""
    url: str = ""
    anchor: str = ""
    from_year: int | None = None
    from_volume: int | None = None
    from_issue: int | None = None
    from_delay: str = ""
    to_year: int | None = None
    to_volume: int | None = None
    to_issue: int | None = None
    to_delay: str = ""

    @property
    def has_delay(self) -> bool:
        return bool(self.from_delay or self.to_delay)

    def delay(self) -> timedelta:
        """The moving wall of this entitlement, zero if none is given.

        Raises:
            DelayFormatError: A delay does not follow the grammar.
            DelayMismatchError: Begin and end delay resolve differently.
        """
        begin = parse_delay(self.from_delay) if self.from_delay else None
        end = parse_delay(self.to_delay) if self.to_delay else None
        if begin is not None and end is not None and begin != end:
            raise DelayMismatchError(
                f"delay mismatch: begin {self.from_delay}, end {self.to_delay}"
            )
        if begin is not None:
            return begin
        if end is not None:
            return end
        return timedelta(0)

    def boundary(self, now: datetime | None = None) -> datetime:
        """Last point in time before the moving wall takes effect."""
        now = now or datetime.now(timezone.utc)
        return now + self.delay()

    def covers(self, published: date, now: datetime | None = None) -> bool:
        if self.from_year is not None and published.year < self.from_year:
            return False
        if self.to_year is not None and published.year > self.to_year:
            return False
        if self.has_delay and published > self.boundary(now).date():
            return False
        return True

    def describe(self) -> str:
        begin = "/".join(str(v or "") for v in (self.from_year, self.from_volume, self.from_issue))
        end = "/".join(str(v or "") for v in (self.to_year, self.to_volume, self.to_issue))
        return f"{self.status} {begin}-{end} {self.from_delay or self.to_delay}".strip()


class Holding(BaseModel):
    """One journal with its ISSNs and entitlements."""

    model_config = ConfigDict(frozen=True)

    ezb_id: int | None = None
    title: str = ""
    publishers: str = ""
    print_issns: tuple[str, ...] = ()
    electronic_issns: tuple[str, ...] = ()
    entitlements: tuple[Entitlement, ...] = Field(default_factory=tuple)

    @property
    def issns(self) -> tuple[str, ...]:
        return self.electronic_issns + self.print_issns


class HoldingsIndex:
    """Read-only ISSN to holdings lookup.

    Built once before conversion starts; safe for concurrent readers since
    nothing mutates it afterwards.
    """

    def __init__(self, holdings: Iterable[Holding]) -> None:
        index: dict[str, list[Holding]] = {}
        count = 0
        for holding in holdings:
            count += 1
            for issn in holding.issns:
                index.setdefault(issn, []).append(holding)
        self._holdings_count = count
        self._index: Mapping[str, tuple[Holding, ...]] = MappingProxyType(
            {issn: tuple(items) for issn, items in index.items()}
        )

    def __len__(self) -> int:
        return self._holdings_count

    def __contains__(self, issn: object) -> bool:
        return issn in self._index

    def issns(self) -> list[str]:
        return sorted(self._index)

    def lookup(self, issn: str) -> tuple[Holding, ...]:
        normalized = normalize_issn(issn) or issn
        return self._index.get(normalized, ())

    def covers(self, issns: Iterable[str], published: date, now: datetime | None = None) -> bool:
        """True if any entitlement of any matching holding covers the date.

        Embargo errors propagate; an ambiguous moving wall is not resolved
        by picking a side.
        """
        for issn in issns:
            for holding in self.lookup(issn):
                for entitlement in holding.entitlements:
                    if entitlement.covers(published, now):
                        return True
        return False


def _int(element: etree._Element | None) -> int | None:
    text = _text(element)
    return int(text) if text else None


def _parse_entitlement(element: etree._Element) -> Entitlement:
    return Entitlement(
        status=element.get("status", "").strip(),
        url=unquote(_text(_child(element, "url"))),
        anchor=_text(_child(element, "anchor")),
        from_year=_int(_child(element, "begin", "year")),
        from_volume=_int(_child(element, "begin", "volume")),
        from_issue=_int(_child(element, "begin", "issue")),
        from_delay=_text(_child(element, "begin", "delay")),
        to_year=_int(_child(element, "end", "year")),
        to_volume=_int(_child(element, "end", "volume")),
        to_issue=_int(_child(element, "end", "issue")),
        to_delay=_text(_child(element, "end", "delay")),
    )


def parse_holding(element: etree._Element) -> Holding:
    """Map one ``holding`` element; raises ``ValueError`` on bad content."""
    issns = _child(element, "EZBIssns")
    ezb_id = element.get("ezb_id", "").strip()

    def _issns(name: str) -> tuple[str, ...]:
        values = [normalize_issn(_text(item)) for item in _children(issns, name)]
        return tuple(value for value in values if value)

    return Holding(
        ezb_id=int(ezb_id) if ezb_id else None,
        title=_text(_child(element, "title")),
        publishers=_text(_child(element, "publishers")),
        print_issns=_issns("p-issn"),
        electronic_issns=_issns("e-issn"),
        entitlements=tuple(
            _parse_entitlement(item)
            for item in _children(_child(element, "entitlements"), "entitlement")
        ),
    )


def iter_holdings(stream: BinaryIO) -> Iterable[Holding]:
    """Stream holdings from a file, skipping elements that fail to map."""
    context = etree.iterparse(stream, events=("end",), recover=True, huge_tree=True)
    for _, element in context:
        if localname(element.tag) != "holding":
            continue
        try:
            yield parse_holding(element)
        except (ValueError, ValidationError) as exc:
            logger.warning("holdings.skip", ezb_id=element.get("ezb_id"), error=str(exc))
        finally:
            element.clear()


def load_holdings(stream: BinaryIO) -> HoldingsIndex:
    """Build the read-only index from a holdings XML stream.

    Raises:
        ConfigFatal: If the file cannot be read or parsed at all.
    """
    try:
        index = HoldingsIndex(iter_holdings(stream))
    except (OSError, etree.XMLSyntaxError) as exc:
        raise ConfigFatal(f"cannot load holdings: {exc}") from exc
    logger.info("holdings.loaded", holdings=len(index), issns=len(index.issns()))
    return index
