"""Namespace-agnostic helpers for reading ``lxml`` elements."""

from __future__ import annotations

from lxml import etree


def localname(tag: object) -> str | None:
    """Local part of a tag; ``None`` for comments and processing instructions."""
    if not isinstance(tag, str):
        return None
    return etree.QName(tag).localname


def child(element: etree._Element | None, *path: str) -> etree._Element | None:
    """Follow a path of local names, first match at every step."""
    current = element
    for name in path:
        if current is None:
            return None
        current = next((c for c in current if localname(c.tag) == name), None)
    return current


def children(element: etree._Element | None, name: str) -> list[etree._Element]:
    if element is None:
        return []
    return [c for c in element if localname(c.tag) == name]


def text(element: etree._Element | None) -> str:
    """All text below the element, stripped; empty for a missing element."""
    if element is None:
        return ""
    return "".join(element.itertext()).strip()


def texts(element: etree._Element | None, name: str) -> list[str]:
    return [text(item) for item in children(element, name)]
