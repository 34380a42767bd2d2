"""Search index exporters for intermediate records."""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

import lxml.html
from lxml.etree import ParserError

from bibflow.models import IntermediateRecord

NOT_ASSIGNED = "not assigned"
AI_RECORD_TYPE = "ai"
AI_ACCESS_FACET = "Electronic Resources"

LANGUAGE_NAMES = {
    "deu": "German",
    "ger": "German",
    "eng": "English",
    "fre": "French",
    "fra": "French",
    "ita": "Italian",
    "spa": "Spanish",
}

_AUTHOR_NOISE = re.compile(r"\s+|[{}\[\]]")


def sanitize_html(value: str | None) -> str:
    """Strip markup that sometimes leaks into titles."""
    if not value:
        return ""
    try:
        return lxml.html.fromstring(value).text_content().strip()
    except ParserError:
        return value.strip()


def _author_names(record: IntermediateRecord) -> list[str]:
    names = []
    for author in record.authors:
        name = _AUTHOR_NOISE.sub(" ", author.full_name).strip()
        if name:
            names.append(name)
    return names


def allfields(record: IntermediateRecord) -> str:
    parts = [
        *_author_names(record),
        record.article_title or "",
        record.article_subtitle or "",
        record.journal_title or "",
        record.book_title or "",
        *record.subjects,
        *record.issn,
        *record.publishers,
    ]
    return " ".join(part for part in parts if part)


def to_intermediate(record: IntermediateRecord) -> dict[str, Any]:
    """The intermediate record itself, as JSON compatible data."""
    return record.model_dump(mode="json", exclude_none=True)


def to_solr4_vufind13(record: IntermediateRecord) -> dict[str, Any]:
    """VuFind 1.3 on Solr 4: no ``container_*`` fields."""
    authors = _author_names(record)
    title = sanitize_html(record.article_title)
    document: dict[str, Any] = {
        "access_facet": AI_ACCESS_FACET,
        "allfields": allfields(record),
        "author": authors[0] if authors else NOT_ASSIGNED,
        "author2": authors[1:],
        "author_facet": authors,
        "format": [record.format] if record.format else [],
        "fulltext": record.fulltext,
        "id": record.id,
        "imprint": record.imprint(),
        "institution": record.labels,
        "issn": record.issn,
        "language": [LANGUAGE_NAMES.get(code, code) for code in record.languages],
        "mega_collection": record.mega_collections,
        "publisher": record.publishers,
        "recordtype": AI_RECORD_TYPE,
        "series": [record.journal_title] if record.journal_title else [],
        "source_id": record.source_id,
        "title": title,
        "title_full": title,
        "title_short": title,
        "title_sort": record.sortable_title(),
        "title_sub": record.article_subtitle,
        "topic": record.subjects,
        "url": record.url,
    }
    if record.date is not None:
        document["publishDateSort"] = record.date.year
    return {key: value for key, value in document.items() if value not in (None, "", [])}


def to_solr5_vufind3(record: IntermediateRecord) -> dict[str, Any]:
    """VuFind 3 on Solr 5, with container fields and the full record."""
    document = to_solr4_vufind13(record)
    authors = _author_names(record)
    document.pop("author", None)
    document.pop("author2", None)
    document["author"] = authors or [NOT_ASSIGNED]
    document["vf1_author"] = authors[0] if authors else NOT_ASSIGNED
    if authors[1:]:
        document["vf1_author2"] = authors[1:]
    if record.date is not None:
        document["publishDate"] = [record.raw_date]
    container = {
        "container_issue": record.issue,
        "container_start_page": record.start_page,
        "container_title": record.journal_title,
        "container_volume": record.volume,
    }
    document.update({key: value for key, value in container.items() if value})
    document["fullrecord"] = record.model_dump_json(exclude_none=True)
    return document


EXPORTERS: dict[str, Callable[[IntermediateRecord], dict[str, Any]]] = {
    "intermediate": to_intermediate,
    "solr4vu13": to_solr4_vufind13,
    "solr5vu3": to_solr5_vufind3,
}
