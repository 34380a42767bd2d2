"""Crossref works API documents, one JSON object per line."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from bibflow.errors import DateError, Skip
from bibflow.formats.base import SourceAdapter
from bibflow.models import Author, IntermediateRecord
from bibflow.normalize import date_from_parts, dedupe, parse_pages
from bibflow.utils import encode_record_id, extract_doi, normalize_issn


def _first(values: Any) -> str | None:
    if isinstance(values, list) and values:
        return str(values[0]).strip() or None
    return None


def combined_title(payload: Mapping[str, Any]) -> str | None:
    title, subtitle = _first(payload.get("title")), _first(payload.get("subtitle"))
    if title and subtitle:
        return f"{title} : {subtitle}"
    return title or subtitle


def member_id(member: str) -> int:
    """``http://id.crossref.org/member/297`` or ``297`` -> 297."""
    tail = member.rstrip("/").rsplit("/", 1)[-1]
    return int(tail)


class CrossrefAdapter(SourceAdapter):
    name = "crossref"
    source_id = "49"

    def __init__(self, members: Mapping[int, str] | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._members = members or MappingProxyType({})

    def to_intermediate(self, raw: dict[str, Any]) -> IntermediateRecord:
        record = IntermediateRecord(
            source_id=self.source_id,
            format="ElectronicArticle",
            genre="article",
            ref_type="EJOUR",
        )
        issued = (raw.get("issued") or {}).get("date-parts") or []
        try:
            if issued and issued[0] and issued[0][0] is not None:
                record.set_date(date_from_parts(issued[0]))
        except DateError as exc:
            raise Skip(str(exc), record=record) from exc

        url = (raw.get("URL") or "").strip()
        if not url:
            raise Skip("URL is missing", record=record)
        record.url = [url]
        record.record_id = url
        record.id = encode_record_id(self.source_id, url)

        record.article_title = combined_title(raw)
        record.journal_title = _first(raw.get("container-title"))
        record.doi = extract_doi(raw.get("DOI") or "")
        record.issn = dedupe(
            issn for issn in (normalize_issn(v) for v in raw.get("ISSN") or []) if issn
        )
        record.volume = str(raw.get("volume") or "")
        record.issue = str(raw.get("issue") or "")
        record.languages = ["eng"]
        if raw.get("publisher"):
            record.publishers = [raw["publisher"]]
        record.subjects = dedupe(raw.get("subject") or [])

        authors = []
        seen: set[tuple[str, str]] = set()
        for entry in raw.get("author") or []:
            given, family = entry.get("given", "").strip(), entry.get("family", "").strip()
            if not (given or family) or (given, family) in seen:
                continue
            seen.add((given, family))
            authors.append(Author(first_name=given or None, last_name=family or None))
        record.authors = authors

        page = str(raw.get("page") or "")
        pages = parse_pages(page)
        record.pages = page
        record.start_page, record.end_page, record.page_count = pages.start, pages.end, pages.count

        name = self.member_name(raw.get("member"))
        if name:
            record.mega_collections = [f"{name} (CrossRef)"]
        return record

    def member_name(self, member: Any) -> str | None:
        if not member:
            return None
        try:
            return self._members.get(member_id(str(member)))
        except ValueError:
            return None
