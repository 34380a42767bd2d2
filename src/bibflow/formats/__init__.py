"""Source format adapters."""

from __future__ import annotations

from bibflow.settings import Settings

from .base import AdapterRegistry, FormatTables, SourceAdapter
from .crossref import CrossrefAdapter
from .genderopen import GenderOpenAdapter
from .genios import GeniosAdapter


def build_registry(settings: Settings, tables: FormatTables | None = None) -> AdapterRegistry:
    """Construct one adapter per supported format.

    Raises:
        ConfigFatal: The format tables cannot be loaded.
    """
    tables = tables or FormatTables.load(settings.assets_dir)
    limits = {
        "key_length_limit": settings.key_length_limit,
        "max_title_length": settings.max_title_length,
    }
    return AdapterRegistry(
        [
            CrossrefAdapter(members=tables.crossref_members, **limits),
            GeniosAdapter(packages=tables.genios_packages, **limits),
            GenderOpenAdapter(**limits),
        ]
    )


__all__ = [
    "AdapterRegistry",
    "CrossrefAdapter",
    "FormatTables",
    "GenderOpenAdapter",
    "GeniosAdapter",
    "SourceAdapter",
    "build_registry",
]
