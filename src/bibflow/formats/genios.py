"""Genios full-text XML, one ``Document`` element per record."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import structlog
from lxml import etree

from bibflow.errors import DateError, RecordError, Skip
from bibflow.formats.base import SourceAdapter
from bibflow.models import Author, IntermediateRecord
from bibflow.normalize import (
    guess_languages,
    is_nomen_nescio,
    resolve_date,
    split_headings,
    tokenize_authors,
)
from bibflow.utils import encode_record_id, find_issns
from bibflow.xmlutil import child, text, texts

logger = structlog.get_logger(__name__)

TEXT_AS_ABSTRACT_CUTOFF = 200
DOCUMENT_URL = "https://www.wiso-net.de/document/{}"


class GeniosAdapter(SourceAdapter):
    name = "genios"
    source_id = "48"
    record_tag = "Document"

    def __init__(self, packages: Mapping[str, tuple[str, ...]] | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._packages = packages or MappingProxyType({})

    def package_names(self, db: str) -> list[str]:
        # reverse order moves "Genios (LIT)" behind the subject packages
        names = [f"Genios ({name})" for name in self._packages.get(db, ())]
        return sorted(names, reverse=True)

    def to_intermediate(self, raw: etree._Element) -> IntermediateRecord:
        doc_id = (raw.get("ID") or "").strip()
        source = text(child(raw, "Source"))
        record = IntermediateRecord(
            source_id=self.source_id,
            format="ElectronicArticle",
            genre="article",
            ref_type="EJOUR",
        )
        if not doc_id:
            raise RecordError("genios: document without ID attribute", record=record)
        source_and_id = f"{source}__{doc_id}"
        record.id = encode_record_id(self.source_id, source_and_id)
        record.record_id = doc_id
        record.url = [DOCUMENT_URL.format(source_and_id)]

        try:
            record.set_date(resolve_date(text(child(raw, "Year")), text(child(raw, "Date"))))
        except DateError as exc:
            raise Skip(str(exc), record=record) from exc

        body = text(child(raw, "Text"))
        title = text(child(raw, "Title"))
        record.article_title = title or None
        record.journal_title = text(child(raw, "Publication-Title")).replace("\n", " ") or None
        record.authors = [
            Author(name=name) for name in tokenize_authors(texts(child(raw, "Authors"), "Author"))
        ]

        abstract = text(child(raw, "Abstract"))
        if is_nomen_nescio(abstract):
            abstract = body[:TEXT_AS_ABSTRACT_CUTOFF].strip()
        record.abstract = abstract or None
        record.fulltext = body or None

        record.issn = find_issns(text(child(raw, "ISSN")))
        for field in ("Issue", "Volume"):
            value = text(child(raw, field))
            if not is_nomen_nescio(value):
                setattr(record, field.lower(), value)

        record.subjects = split_headings(";".join(texts(child(raw, "Descriptors"), "Descriptor")))
        record.languages = guess_languages([title, body])

        db = (raw.get("DB") or "").strip()
        names = self.package_names(db)
        record.packages = [db, *names, *texts(child(raw, "Modules"), "Module")]
        if names:
            record.mega_collections = [names[0]]
        else:
            logger.info("genios.unknown_db", db=db)
            record.mega_collections = ["Genios"]
        return record
