"""Minimal HTML element tree for scraping upstream pages.

Only enough structure is kept to locate table rows and read cell text; markup
is not preserved. Script and style bodies are dropped so page-embedded JSON
cannot satisfy a text match.
"""
from __future__ import annotations

from html.parser import HTMLParser
from typing import Dict, Iterator, List, Optional

_VOID_TAGS = frozenset(
    {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "param", "source", "track", "wbr"}
)
_RAW_TEXT_TAGS = frozenset({"script", "style", "template", "noscript"})
# Start tags that implicitly close the nearest open element of the listed kinds,
# searching no further than the matching scope barrier.
_IMPLICIT_CLOSE = {
    "td": {"td", "th"},
    "th": {"td", "th"},
    "tr": {"tr"},
    "li": {"li"},
    "p": {"p"},
    "option": {"option"},
}
_SCOPE_BARRIERS = {
    "td": {"tr", "table"},
    "th": {"tr", "table"},
    "tr": {"table", "tbody", "thead", "tfoot"},
    "li": {"ul", "ol"},
    "p": {"div", "td", "th", "body"},
    "option": {"select"},
}


class HtmlElement:
    __slots__ = ("tag", "attrs", "children", "parent")

    def __init__(self, tag: str, attrs: Optional[Dict[str, str]] = None, parent: Optional["HtmlElement"] = None) -> None:
        self.tag = tag
        self.attrs: Dict[str, str] = attrs or {}
        self.children: List[object] = []
        self.parent = parent

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"<HtmlElement {self.tag} {self.attrs}>"

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.attrs.get(name, default)

    @property
    def classes(self) -> List[str]:
        return (self.attrs.get("class") or "").split()

    def elements(self) -> Iterator["HtmlElement"]:
        for child in self.children:
            if isinstance(child, HtmlElement):
                yield child

    def iter(self, tag: Optional[str] = None) -> Iterator["HtmlElement"]:
        """Depth-first, document-order walk over this element and its descendants."""

        if tag is None or self.tag == tag:
            yield self
        for child in self.elements():
            yield from child.iter(tag)

    def find_all(self, tag: str) -> List["HtmlElement"]:
        return [element for element in self.iter(tag) if element is not self]

    def own_text(self) -> str:
        return "".join(child for child in self.children if isinstance(child, str))

    def text_content(self) -> str:
        parts: List[str] = []
        for child in self.children:
            if isinstance(child, str):
                parts.append(child)
            else:
                parts.append(child.text_content())
        return "".join(parts)

    def ancestors(self) -> Iterator["HtmlElement"]:
        node = self.parent
        while node is not None:
            yield node
            node = node.parent

    def closest(self, tag: str) -> Optional["HtmlElement"]:
        if self.tag == tag:
            return self
        for node in self.ancestors():
            if node.tag == tag:
                return node
        return None

    def cells(self) -> List["HtmlElement"]:
        return self.find_all("td")


class _TreeBuilder(HTMLParser):
    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.root = HtmlElement("#document")
        self._stack: List[HtmlElement] = [self.root]
        self._raw_depth = 0

    @property
    def _current(self) -> HtmlElement:
        return self._stack[-1]

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self._raw_depth:
            if tag in _RAW_TEXT_TAGS:
                self._raw_depth += 1
            return
        self._close_implicit(tag)
        element = HtmlElement(tag, {key: value or "" for key, value in attrs}, parent=self._current)
        self._current.children.append(element)
        if tag in _RAW_TEXT_TAGS:
            self._raw_depth = 1
            self._stack.append(element)
            return
        if tag not in _VOID_TAGS:
            self._stack.append(element)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        if self._raw_depth:
            return
        self._close_implicit(tag)
        self._current.children.append(HtmlElement(tag, {key: value or "" for key, value in attrs}, parent=self._current))

    def handle_endtag(self, tag: str) -> None:
        if self._raw_depth:
            if tag in _RAW_TEXT_TAGS:
                self._raw_depth -= 1
                if self._raw_depth == 0:
                    self._pop_to(tag)
            return
        self._pop_to(tag)

    def handle_data(self, data: str) -> None:
        if self._raw_depth or not data:
            return
        self._current.children.append(data)

    def _close_implicit(self, tag: str) -> None:
        closes = _IMPLICIT_CLOSE.get(tag)
        if not closes:
            return
        barriers = _SCOPE_BARRIERS.get(tag, set())
        for index in range(len(self._stack) - 1, 0, -1):
            open_tag = self._stack[index].tag
            if open_tag in barriers:
                return
            if open_tag in closes:
                del self._stack[index:]
                return

    def _pop_to(self, tag: str) -> None:
        # Unmatched end tags are ignored.
        for index in range(len(self._stack) - 1, 0, -1):
            if self._stack[index].tag == tag:
                del self._stack[index:]
                return


def parse_html(markup: str) -> HtmlElement:
    """Parse *markup* into a tree rooted at a synthetic ``#document`` element."""

    builder = _TreeBuilder()
    builder.feed(markup)
    builder.close()
    return builder.root
