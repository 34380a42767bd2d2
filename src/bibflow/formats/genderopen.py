"""Gender Open repository, OAI-DC ``Record`` elements."""

from __future__ import annotations

from lxml import etree

from bibflow.errors import DateError, RecordError, Skip
from bibflow.formats.base import SourceAdapter
from bibflow.models import Author, IntermediateRecord
from bibflow.normalize import dedupe, disambiguate_title, parse_pages, resolve_date
from bibflow.utils import classify_identifiers, encode_record_id
from bibflow.xmlutil import child, text, texts


class GenderOpenAdapter(SourceAdapter):
    name = "genderopen"
    source_id = "162"
    record_tag = "Record"

    def to_intermediate(self, raw: etree._Element) -> IntermediateRecord:
        record = IntermediateRecord(
            source_id=self.source_id,
            format="ElectronicArticle",
            genre="article",
            ref_type="EJOUR",
            open_access=True,
            mega_collections=["Gender Open"],
        )
        identifier = text(child(raw, "header", "identifier"))
        if not identifier:
            raise RecordError("genderopen: record without OAI identifier", record=record)
        record.id = encode_record_id(self.source_id, identifier)
        record.record_id = identifier
        dc = child(raw, "metadata", "dc")

        language = text(child(dc, "language"))
        record.languages = [language] if language else []
        record.article_title = text(child(dc, "title")) or None
        record.authors = [Author(name=name) for name in dedupe(texts(dc, "creator")) if name]

        identifiers = classify_identifiers(texts(dc, "identifier"))
        record.url = identifiers.urls
        record.issn = identifiers.issns
        record.doi = identifiers.doi

        source = text(child(dc, "source"))
        record.journal_title, record.book_title = disambiguate_title(
            record.article_title, source, record.issn
        )
        record.publishers = [name for name in texts(dc, "publisher") if name]

        raw_date = text(child(dc, "date"))
        if not raw_date:
            raise Skip("empty date", record=record)
        if len(raw_date) < 4:
            raise Skip("short date", record=record)
        try:
            record.set_date(resolve_date(raw_date[:4]))
        except DateError as exc:
            raise Skip(f"invalid date: {raw_date}", record=record) from exc

        record.subjects = dedupe(subject for subject in texts(dc, "subject") if subject)
        pages = parse_pages(source)
        record.start_page, record.end_page, record.page_count = pages.start, pages.end, pages.count
        return record
