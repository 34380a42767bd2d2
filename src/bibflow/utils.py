"""Utility helpers for identifier extraction, validation and record ids."""

from __future__ import annotations

import base64
import re
from collections.abc import Iterable
from dataclasses import dataclass, field

DOI_PATTERN = re.compile(r"(10\.\d{4,9}/[\w.;()/:+-]+)", flags=re.IGNORECASE)
ISSN_PATTERN = re.compile(r"[0-9]{4}-?[0-9]{3}[0-9Xx]")
_ISSN_STRICT = re.compile(r"^[0-9]{7}[0-9X]$")

DOI_PREFIXES = (
    "http://dx.doi.org/",
    "https://dx.doi.org/",
    "http://doi.org/",
    "https://doi.org/",
    "urn:DOI:",
    "doi:",
)
ISSN_PREFIX = "urn:ISSN:"


def extract_doi(identifier: str) -> str | None:
    """Return a normalized DOI if the identifier contains one."""
    if not identifier:
        return None
    match = DOI_PATTERN.search(identifier.strip())
    if not match:
        return None
    doi = match.group(1)
    return doi.lower()


def _compact_issn(value: str) -> str:
    return value.replace("-", "").replace(" ", "").strip().upper()


def is_valid_issn(value: str) -> bool:
    """Check the shape of an ISSN, hyphen and whitespace insensitive."""
    return bool(_ISSN_STRICT.match(_compact_issn(value)))


def normalize_issn(value: str) -> str | None:
    """Return ``NNNN-NNNC`` or ``None`` for anything that is not an ISSN."""
    if not is_valid_issn(value):
        return None
    compact = _compact_issn(value)
    return f"{compact[:4]}-{compact[4:]}"


def find_issns(text: str) -> list[str]:
    """All distinct ISSNs mentioned in a free-text field, in order."""
    found: list[str] = []
    for match in ISSN_PATTERN.finditer(text or ""):
        issn = normalize_issn(match.group(0))
        if issn and issn not in found:
            found.append(issn)
    return found


@dataclass(slots=True)
class Identifiers:
    urls: list[str] = field(default_factory=list)
    issns: list[str] = field(default_factory=list)
    dois: list[str] = field(default_factory=list)

    @property
    def doi(self) -> str | None:
        return self.dois[0] if self.dois else None


def classify_identifier(value: str) -> tuple[str, str] | None:
    """Classify one raw identifier as ``url``, ``issn`` or ``doi``.

    DOI resolver links are DOIs, not URLs. Returns ``None`` for anything
    unrecognised.
    """
    value = (value or "").strip()
    for prefix in DOI_PREFIXES:
        if value.lower().startswith(prefix.lower()):
            doi = extract_doi(value[len(prefix):])
            return ("doi", doi) if doi else None
    if value.startswith(ISSN_PREFIX):
        issn = normalize_issn(value[len(ISSN_PREFIX):])
        return ("issn", issn) if issn else None
    if value.startswith(("http://", "https://")):
        return "url", value
    return None


def classify_identifiers(values: Iterable[str]) -> Identifiers:
    result = Identifiers()
    buckets = {"url": result.urls, "issn": result.issns, "doi": result.dois}
    for value in values:
        classified = classify_identifier(value)
        if classified is None:
            continue
        kind, normalized = classified
        if normalized not in buckets[kind]:
            buckets[kind].append(normalized)
    return result


def encode_record_id(source_id: str, natural_id: str) -> str:
    """Compose the global id ``ai-<source>-<urlsafe base64>`` without padding."""
    encoded = base64.urlsafe_b64encode(natural_id.encode("utf-8")).decode("ascii")
    return f"ai-{source_id}-{encoded.rstrip('=')}"
