"""Core data models used throughout bibflow."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

INTERMEDIATE_SCHEMA_VERSION = "0.9"


class Author(BaseModel):
    """Represents a single contributor, either as one string or split."""

    name: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def full_name(self) -> str:
        if self.name:
            return self.name
        if self.first_name and self.last_name:
            return f"{self.last_name}, {self.first_name}"
        return self.last_name or self.first_name or ""


class IntermediateRecord(BaseModel):
    """Canonical, source-agnostic bibliographic record."""

    id: str = ""
    record_id: str = ""
    source_id: str = ""
    version: str = INTERMEDIATE_SCHEMA_VERSION
    format: str = ""
    genre: str = ""
    ref_type: str = ""
    article_title: str | None = None
    article_subtitle: str | None = None
    book_title: str | None = None
    journal_title: str | None = None
    authors: list[Author] = Field(default_factory=list)
    issn: list[str] = Field(default_factory=list)
    doi: str | None = None
    url: list[str] = Field(default_factory=list)
    date: dt.date | None = None
    raw_date: str = ""
    volume: str = ""
    issue: str = ""
    start_page: str = ""
    end_page: str = ""
    page_count: str = ""
    pages: str = ""
    subjects: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    publishers: list[str] = Field(default_factory=list)
    packages: list[str] = Field(default_factory=list)
    mega_collections: list[str] = Field(default_factory=list)
    abstract: str | None = None
    fulltext: str | None = None
    open_access: bool = False
    labels: list[str] = Field(default_factory=list)

    def set_date(self, value: dt.date) -> None:
        self.date = value
        self.raw_date = value.isoformat()

    def sortable_title(self) -> str:
        title = self.article_title or self.book_title or ""
        return title.strip().lower()

    def imprint(self) -> str:
        """Publisher and year, e.g. ``Springer, 2015``."""
        parts = [", ".join(self.publishers)] if self.publishers else []
        if self.date is not None:
            parts.append(str(self.date.year))
        return ", ".join(part for part in parts if part)
