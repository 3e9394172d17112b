# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Page snapshot: the read-only view of a page that analyzers consume.

Analyzers never touch a live browser.  They receive a ``PageSnapshot``
(URL, visible body text, element queries) so the same scoring code runs
against a rendered Playwright page, a saved HTML file, or a test string.

``HtmlSnapshot`` is the lxml-backed implementation; ``capture_snapshot``
builds one from a Playwright page.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import TYPE_CHECKING, Protocol

import lxml.html
from lxml import etree

from .errors import SnapshotError

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger("duedrop.page_snapshot")

# Content of these tags never renders as text
_HIDDEN_TAGS = frozenset({"script", "style", "noscript", "template", "head", "title"})

# Inline tags join their text without a break; everything else is a block
_INLINE_TAGS = frozenset(
    {
        "a",
        "abbr",
        "b",
        "bdi",
        "bdo",
        "cite",
        "code",
        "data",
        "del",
        "dfn",
        "em",
        "i",
        "ins",
        "kbd",
        "label",
        "mark",
        "q",
        "s",
        "samp",
        "small",
        "span",
        "strong",
        "sub",
        "sup",
        "time",
        "u",
        "var",
    }
)

_EMPTY_DOCUMENT = "<html><head></head><body></body></html>"


# ---------------------------------------------------------------------------
# Capability protocols
# ---------------------------------------------------------------------------


class ElementView(Protocol):
    """Minimal element interface. lxml ``HtmlElement`` satisfies it as-is."""

    tag: str

    def get(self, key: str, default: str | None = None) -> str | None: ...

    def text_content(self) -> str: ...

    def iter(self, *tags: str) -> Iterator[ElementView]: ...


class PageSnapshot(Protocol):
    """Everything an analyzer may read about the page."""

    @property
    def url(self) -> str: ...

    def body_text(self) -> str: ...

    def iter_elements(self, *tags: str) -> Iterator[ElementView]: ...

    def meta_description(self) -> str: ...


# ---------------------------------------------------------------------------
# lxml implementation
# ---------------------------------------------------------------------------


def _visible_text_parts(el: lxml.html.HtmlElement, out: list[str]) -> None:
    if el.text:
        out.append(el.text)
    for child in el:
        tag = child.tag.lower() if isinstance(child.tag, str) else ""
        if tag and tag not in _HIDDEN_TAGS:
            block = tag not in _INLINE_TAGS
            if block:
                out.append("\n")
            _visible_text_parts(child, out)
            if block:
                out.append("\n")
        if child.tail:
            out.append(child.tail)


def _parse(source: str) -> lxml.html.HtmlElement:
    parser = lxml.html.HTMLParser(recover=True, encoding="utf-8")
    return lxml.html.document_fromstring(source.encode("utf-8"), parser=parser)


class HtmlSnapshot:
    """Immutable snapshot of one parsed HTML document."""

    __slots__ = ("_url", "_doc", "_body_text")

    def __init__(self, url: str, doc: lxml.html.HtmlElement) -> None:
        self._url = url
        self._doc = doc
        self._body_text: str | None = None

    @classmethod
    def from_html(cls, url: str, html: str) -> HtmlSnapshot:
        """Parse *html* leniently. Blank or rootless input yields an empty document."""
        source = html if html and html.strip() else _EMPTY_DOCUMENT
        try:
            doc = _parse(source)
        except (etree.LxmlError, ValueError) as e:
            # Comment-only or doctype-only input has no root element
            if "Document is empty" not in str(e):
                raise SnapshotError(f"lxml parsing failed: {e}") from e
            logger.debug("no root element in %s; using empty document", url)
            doc = _parse(_EMPTY_DOCUMENT)
        return cls(url, doc)

    @property
    def url(self) -> str:
        return self._url

    @property
    def document(self) -> lxml.html.HtmlElement:
        return self._doc

    def body_text(self) -> str:
        """Rendered-ish text of <body>: hidden tags dropped, blocks line-broken."""
        if self._body_text is None:
            body = self._doc.find("body")
            if body is None:
                self._body_text = ""
            else:
                parts: list[str] = []
                _visible_text_parts(body, parts)
                self._body_text = "".join(parts)
        return self._body_text

    def iter_elements(self, *tags: str) -> Iterator[lxml.html.HtmlElement]:
        """Document-order elements, optionally filtered by tag. Comments skipped."""
        for el in self._doc.iter(*tags):
            if isinstance(el.tag, str):
                yield el

    def meta_description(self) -> str:
        for meta in self._doc.iter("meta"):
            if meta.get("name") == "description":
                return meta.get("content") or ""
        return ""


# ---------------------------------------------------------------------------
# Playwright capture
# ---------------------------------------------------------------------------


async def capture_snapshot(page: Page) -> HtmlSnapshot:
    """Serialize the live DOM of *page* into an ``HtmlSnapshot``."""
    from playwright.async_api import Error as PlaywrightError

    try:
        html = await page.content()
    except PlaywrightError as e:
        raise SnapshotError(f"page content unavailable: {e}") from e
    url = page.url
    logger.debug("captured snapshot url=%s bytes=%d", url, len(html))
    return HtmlSnapshot.from_html(url, html)
