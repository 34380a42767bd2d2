"""Incremental decoders turning a byte stream into raw source records."""

from __future__ import annotations

import itertools
import json
import zipfile
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import IO, Any

import structlog
from lxml import etree

from bibflow.errors import StreamFatal
from bibflow.services.sources import ArchiveMembers, Source
from bibflow.xmlutil import localname

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class DecodeCounter:
    """Malformed units skipped by a line based decoder."""

    malformed: int = 0


def iter_json_lines(
    stream: IO[bytes] | IO[str], counter: DecodeCounter | None = None
) -> Iterator[dict[str, Any]]:
    """Yield one JSON object per non-blank line.

    A line that is not valid UTF-8, not valid JSON, or not an object is
    logged, counted and skipped. Only the current line is held in memory.
    """
    counter = counter if counter is not None else DecodeCounter()
    lineno = 0
    while True:
        try:
            line = stream.readline()
        except (OSError, ValueError) as exc:
            raise StreamFatal(f"read failed after line {lineno}: {exc}") from exc
        if not line:
            return
        lineno += 1
        if isinstance(line, bytes):
            try:
                line = line.decode("utf-8")
            except UnicodeDecodeError as exc:
                counter.malformed += 1
                logger.warning("decoder.malformed_line", line=lineno, error=str(exc))
                continue
        if not line.strip():
            continue
        try:
            payload = json.loads(line)
        except json.JSONDecodeError as exc:
            counter.malformed += 1
            logger.warning("decoder.malformed_line", line=lineno, error=str(exc))
            continue
        if not isinstance(payload, dict):
            counter.malformed += 1
            logger.warning("decoder.malformed_line", line=lineno, error="not an object")
            continue
        yield payload


def iter_xml_elements(stream: IO[bytes], tag: str) -> Iterator[etree._Element]:
    """Yield every element whose local name is ``tag``, namespaces ignored.

    An element is cleared, together with already processed siblings, once
    the consumer asks for the next one. Structural XML errors are fatal:
    the rest of the document cannot be trusted.
    """
    context = etree.iterparse(stream, events=("start", "end"), huge_tree=True)
    depth = 0
    try:
        for event, element in context:
            if localname(element.tag) != tag:
                continue
            if event == "start":
                depth += 1
                continue
            depth -= 1
            if depth:
                continue
            yield element
            element.clear(keep_tail=True)
            parent = element.getparent()
            if parent is not None:
                while element.getprevious() is not None:
                    del parent[0]
    except etree.XMLSyntaxError as exc:
        raise StreamFatal(f"malformed XML: {exc}") from exc
    except OSError as exc:
        raise StreamFatal(f"read failed: {exc}") from exc


@dataclass(slots=True)
class StreamDecoder:
    """Binds a decoding strategy to a source format.

    ``record_tag`` selects XML element streaming; without it the stream is
    read as JSON lines. Archive members are decoded one after another, each
    as a document of its own.
    """

    record_tag: str | None = None
    counter: DecodeCounter = field(default_factory=DecodeCounter)

    @property
    def malformed(self) -> int:
        return self.counter.malformed

    def decode(self, source: Source) -> Iterator[Any]:
        if isinstance(source, ArchiveMembers):
            return self._decode_members(source)
        return self._decode_one(source)

    def _decode_one(self, stream: IO[bytes]) -> Iterator[Any]:
        if self.record_tag:
            return iter_xml_elements(stream, self.record_tag)
        return iter_json_lines(stream, self.counter)

    def _decode_members(self, members: ArchiveMembers) -> Iterator[Any]:
        try:
            yield from itertools.chain.from_iterable(self._decode_one(m) for m in members)
        except zipfile.BadZipFile as exc:
            raise StreamFatal(f"corrupt archive member: {exc}") from exc
