"""Field normalizers shared by the source adapters.

Every helper here is pure: no module level accumulators, no I/O. Adapters
may call them concurrently on independent records.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime

from bibflow.errors import DateError

YEAR_PATTERN = re.compile(r"^[12][0-9]{3}$")
PAGE_RANGE_PATTERN = re.compile(r"([1-9][0-9]*)-([1-9][0-9]*)")
BOOK_TITLE_PATTERN = re.compile(r"([^:]*):([^\(]*)")

_DATE_NOISE = str.maketrans("", "", '"\n\t')

JOURNAL_CUES = ("zeitschrift", "journal")

AUTHOR_DELIMITERS = ";/"
AUTHOR_DELIMITERS_WIDE = ";/,"
AUTHOR_WIDE_THRESHOLD = 60
MIN_AUTHOR_LENGTH = 4
MAX_AUTHOR_LENGTH = 200
AUTHOR_NOISE = (
    "www.",
    "http:",
    "&quot",
    "part 1 of",
    "part 2 of",
    "Copyright",
    "(c)",
    "All rights reserved",
    "he said",
)


def dedupe(values: Iterable[str]) -> list[str]:
    """Drop duplicates, keep first-appearance order."""
    seen: list[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def is_nomen_nescio(value: str | None) -> bool:
    """True if the field is de-facto empty (blank or ``N.N.``)."""
    cleaned = (value or "").strip().lower()
    return cleaned in ("", "n.n.")


def _parse_candidate(raw: str) -> date | None:
    value = raw.translate(_DATE_NOISE).strip()
    if len(value) >= 10:
        try:
            return datetime.strptime(value[:10], "%Y-%m-%d").date()
        except ValueError:
            pass
    if len(value) >= 8 and value[:8].isdigit():
        try:
            return datetime.strptime(value[:8], "%Y%m%d").date()
        except ValueError:
            pass
    if len(value) >= 4 and YEAR_PATTERN.match(value[:4]):
        return date(int(value[:4]), 1, 1)
    return None


def resolve_date(*candidates: str | None) -> date:
    """Return the first parseable date from a chain of raw date fields.

    Each candidate is tried as ``YYYY-MM-DD``, then ``YYYYMMDD`` on its first
    eight characters, then as a bare year on its first four. Year-only values
    resolve to January 1st.

    Raises:
        DateError: If no candidate yields a date.
    """
    for raw in candidates:
        if not raw:
            continue
        parsed = _parse_candidate(raw)
        if parsed is not None:
            return parsed
    raise DateError("empty/short/invalid date")


def date_from_parts(parts: Sequence[int]) -> date:
    """Build a date from ``[year, month?, day?]`` as used by JSON APIs."""
    if not parts:
        raise DateError("empty/short/invalid date")
    year = int(parts[0])
    month = int(parts[1]) if len(parts) > 1 else 1
    day = int(parts[2]) if len(parts) > 2 else 1
    try:
        return date(year, month, day)
    except ValueError as exc:
        raise DateError(f"empty/short/invalid date: {exc}") from exc


@dataclass(frozen=True, slots=True)
class PageRange:
    start: str = ""
    end: str = ""
    count: str = ""


def parse_pages(text: str | None) -> PageRange:
    """Find ``<start>-<end>`` in a citation string.

    Either all three fields are set or none is.
    """
    match = PAGE_RANGE_PATTERN.search(text or "")
    if not match:
        return PageRange()
    start, end = int(match.group(1)), int(match.group(2))
    if end < start:
        return PageRange()
    return PageRange(start=match.group(1), end=match.group(2), count=str(end - start))


def _split(value: str, delimiters: str) -> list[str]:
    pattern = "[" + re.escape(delimiters) + "]"
    return [part for part in re.split(pattern, value) if part]


def tokenize_authors(
    values: Iterable[str],
    *,
    delimiters: str = AUTHOR_DELIMITERS,
    wide_delimiters: str = AUTHOR_DELIMITERS_WIDE,
    wide_threshold: int = AUTHOR_WIDE_THRESHOLD,
    min_length: int = MIN_AUTHOR_LENGTH,
    max_length: int = MAX_AUTHOR_LENGTH,
    noise: Sequence[str] = AUTHOR_NOISE,
) -> list[str]:
    """Split raw author fields into names and filter out the junk.

    A raw value longer than ``wide_threshold`` usually holds several names
    joined by commas, so the wider delimiter set applies to it.
    """
    names: list[str] = []
    for raw in values:
        if raw is None:
            continue
        separators = wide_delimiters if len(raw) > wide_threshold else delimiters
        for token in _split(raw, separators):
            if is_nomen_nescio(token):
                continue
            name = token.strip()
            if len(name) < min_length or len(name) >= max_length:
                continue
            if any(clue in name for clue in noise):
                continue
            if name not in names:
                names.append(name)
    return names


def split_headings(value: str | None) -> list[str]:
    """Subject headings separated by ``;`` or ``/``; commas if that fails."""
    value = value or ""
    fields = _split(value, ";/")
    if len(fields) == 1:
        fields = _split(value, ",")
    return dedupe(field.strip() for field in fields if field.strip())


def looks_like_journal(title: str | None, issns: Sequence[str]) -> bool:
    if issns:
        return True
    lowered = (title or "").lower()
    return any(cue in lowered for cue in JOURNAL_CUES)


def book_title(citation: str | None) -> str:
    """Pull the book title out of ``Editors (Hrsg.): Title (Place, Year), 1-2``."""
    flattened = (citation or "").replace("\n", " ")
    match = BOOK_TITLE_PATTERN.search(flattened)
    if match:
        return match.group(2).strip()
    return flattened


def disambiguate_title(
    title: str | None, citation: str | None, issns: Sequence[str]
) -> tuple[str | None, str | None]:
    """Return ``(journal_title, book_title)``; exactly one of them is set."""
    if looks_like_journal(title, issns):
        return citation or None, None
    return None, book_title(citation) or None


_STOPWORDS = {
    "eng": {"the", "and", "of", "to", "in", "is", "that", "for", "with", "on", "as", "by"},
    "deu": {"der", "die", "das", "und", "ist", "nicht", "mit", "von", "den", "auf", "für", "ein"},
}


def guess_languages(
    texts: Iterable[str | None], accepted: Sequence[str] = ("deu", "eng"), min_length: int = 20
) -> list[str]:
    """Stopword based language guess over several texts.

    Too short strings are ignored. The result keeps first-detected order.
    """
    found: list[str] = []
    for text in texts:
        if not text or len(text) < min_length:
            continue
        tokens = re.findall(r"\w+", text.lower())
        if not tokens:
            continue
        scores = {
            code: sum(1 for token in tokens if token in words)
            for code, words in _STOPWORDS.items()
            if code in accepted
        }
        if not scores:
            continue
        best = max(sorted(scores), key=lambda code: scores[code])
        if scores[best] / len(tokens) < 0.05:
            continue
        if best not in found:
            found.append(best)
    return found
