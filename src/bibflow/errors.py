"""Exception hierarchy shared by decoders, adapters and the pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bibflow.models import IntermediateRecord


class BibflowError(Exception):
    """Base exception for all bibflow failures."""


class Skip(BibflowError):
    """Raised when a record is well-formed but unusable for the index.

    The partially converted record travels with the exception so that
    diagnostics can inspect what was salvaged.
    """

    def __init__(self, reason: str, record: IntermediateRecord | None = None) -> None:
        super().__init__(reason)
        self.reason = reason
        self.record = record


class RecordError(BibflowError):
    """Raised when a single record violates an adapter's structural contract."""

    def __init__(self, message: str, record: IntermediateRecord | None = None) -> None:
        super().__init__(message)
        self.record = record


class StreamFatal(BibflowError):
    """Raised when the byte stream or document structure cannot be read."""


class ConfigFatal(BibflowError):
    """Raised when a required asset or registry entry cannot be loaded."""


class DateError(ValueError):
    """Raised when no usable date survives the fallback chain."""


class EmbargoError(ValueError):
    """Base class for moving wall problems."""


class DelayFormatError(EmbargoError):
    """Raised for delay expressions outside the ``-<n>M`` / ``-<n>Y`` grammar."""


class DelayMismatchError(EmbargoError):
    """Raised when begin and end delay of an entitlement disagree."""
