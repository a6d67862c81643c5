"""Typed query abstraction over parsed HTML.

Extractors only talk to :class:`PageTree` and :class:`Node`, so a headless
browser backend could replace the BeautifulSoup one without touching them.
"""

import logging
from typing import Iterable, Protocol

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup
from soupsieve import SelectorSyntaxError

from app.core.errors import ParsingError

logger = logging.getLogger(__name__)


class Node(Protocol):
    """Capability interface for one element."""

    @property
    def tag_name(self) -> str: ...

    def select(self, selector: str) -> list["Node"]: ...

    def select_one(self, selector: str) -> "Node | None": ...

    def text(self) -> str: ...

    def attr(self, name: str) -> str | None: ...

    def classes(self) -> list[str]: ...

    def count(self, selector: str) -> int: ...


class PageTree(Node, Protocol):
    """Capability interface for a whole document."""

    @property
    def title(self) -> str: ...

    @property
    def body(self) -> Node | None: ...

    def without(self, selectors: Iterable[str]) -> "PageTree": ...


class SoupNode:
    """:class:`Node` backed by a BeautifulSoup tag."""

    def __init__(self, tag: Tag):
        self._tag = tag

    @property
    def tag_name(self) -> str:
        return self._tag.name or ""

    def select(self, selector: str) -> list["SoupNode"]:
        return [SoupNode(t) for t in _safe_select(self._tag, selector)]

    def select_one(self, selector: str) -> "SoupNode | None":
        matches = _safe_select(self._tag, selector, limit=1)
        return SoupNode(matches[0]) if matches else None

    def text(self) -> str:
        # Separator keeps words from adjacent inline elements apart
        return self._tag.get_text(separator=" ", strip=True)

    def attr(self, name: str) -> str | None:
        value = self._tag.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def classes(self) -> list[str]:
        value = self._tag.get("class") or []
        return list(value) if isinstance(value, list) else str(value).split()

    def count(self, selector: str) -> int:
        return len(_safe_select(self._tag, selector))

    def __eq__(self, other: object) -> bool:
        return isinstance(other, SoupNode) and other._tag is self._tag

    def __hash__(self) -> int:
        return id(self._tag)

    def __repr__(self) -> str:
        return f"SoupNode(<{self.tag_name}>)"


class SoupPageTree(SoupNode):
    """:class:`PageTree` backed by a BeautifulSoup document parsed with lxml."""

    def __init__(self, soup: BeautifulSoup):
        super().__init__(soup)
        self._soup = soup

    @classmethod
    def from_html(cls, html: str) -> "SoupPageTree":
        """Parse HTML leniently, retrying with the stdlib parser if lxml rejects it.

        Raises:
            ParsingError: If neither parser accepts the markup.
        """
        try:
            return cls(BeautifulSoup(html or "", "lxml"))
        except ParserRejectedMarkup as e:
            logger.warning(f"lxml rejected markup, retrying with html.parser: {e}")
        try:
            return cls(BeautifulSoup(html or "", "html.parser"))
        except ParserRejectedMarkup as e:
            raise ParsingError("Could not parse page markup", detail=str(e)) from e

    @property
    def title(self) -> str:
        if self._soup.title is None:
            return ""
        return self._soup.title.get_text(strip=True)

    @property
    def body(self) -> SoupNode | None:
        body = self._soup.body
        return SoupNode(body) if body is not None else None

    def without(self, selectors: Iterable[str]) -> "SoupPageTree":
        """Return a copy of the document with matching elements removed."""
        clone = BeautifulSoup(str(self._soup), "lxml")
        for selector in selectors:
            for tag in _safe_select(clone, selector):
                tag.decompose()
        return SoupPageTree(clone)


def parse_html(html: str) -> SoupPageTree:
    """Build a queryable tree from raw HTML."""
    return SoupPageTree.from_html(html)


def _safe_select(tag: Tag, selector: str, limit: int = 0) -> list[Tag]:
    try:
        return tag.select(selector, limit=limit)
    except (SelectorSyntaxError, NotImplementedError) as e:
        logger.debug("Unsupported selector %r: %s", selector, e)
        return []
