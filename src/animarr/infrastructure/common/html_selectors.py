"""CSS-selector HTML helpers with fallback chains.

Every lookup takes a primary selector plus optional fallbacks; the first
selector that yields a match wins, so minor markup changes on a provider
page do not break extraction.
"""

from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag


def parse_html(html: str) -> BeautifulSoup:
    """Parse an HTML string with the ``lxml`` parser."""
    return BeautifulSoup(html, "lxml")


def select_items(
    root: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
) -> list[Tag]:
    """All elements of the first selector that matches anything."""
    for sel in (selector, *fallback_selectors):
        items = root.select(sel)
        if items:
            return items
    return []


def extract_text(
    element: BeautifulSoup | Tag,
    selector: str,
    *fallback_selectors: str,
    default: str = "",
) -> str:
    """Stripped text of the first matching element with non-empty text."""
    for sel in (selector, *fallback_selectors):
        match = element.select_one(sel)
        if match:
            text = match.get_text(strip=True)
            if text:
                return text
    return default


def extract_attr(
    element: BeautifulSoup | Tag,
    selector: str,
    attr: str,
    *fallback_selectors: str,
    default: str = "",
    base_url: str = "",
) -> str:
    """Attribute of the first matching element that carries it.

    Entity references in the value are already decoded by the parser.
    With ``base_url`` the value is resolved as a link.
    """
    for sel in (selector, *fallback_selectors):
        for match in element.select(sel):
            val = match.get(attr)
            if val:
                value = str(val)
                return urljoin(base_url, value) if base_url else value
    return default
