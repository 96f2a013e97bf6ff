"""Forward-only token stream over lxml ``iterparse`` events.

The parser never looks back: it asks for the next token, dispatches on
its resolved ``Tag`` and either descends into the element or skips it
with :meth:`TokenStream.skip_subtree`, the one skip primitive. Elements
are cleared as soon as they are consumed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import IO, TYPE_CHECKING

from kml_georef.parse_kml._constants import Tag
from kml_georef.parse_kml._validation import KmlParseError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from lxml.etree import _Element


@dataclass(frozen=True, slots=True)
class Token:
    """One start or end event."""

    start: bool
    tag: Tag
    element: _Element

    @property
    def raw_tag(self) -> str:
        return self.element.tag

    def attribute(self, name: str, default: str = "") -> str:
        return self.element.get(name, default)


class TokenStream:
    """Single-pass cursor over a KML byte stream."""

    def __init__(self, source: IO[bytes]) -> None:
        from lxml import etree  # type: ignore[attr-defined]

        self._events = etree.iterparse(
            source,
            events=("start", "end"),
            resolve_entities=False,
            no_network=True,
            huge_tree=False,
        )

    def next_token(self) -> Token:
        """Return the next token.

        Raises:
            KmlParseError: If the XML is malformed or ends prematurely.
        """
        from lxml import etree  # type: ignore[attr-defined]

        try:
            event, element = next(self._events)
        except StopIteration:
            msg = "Unexpected end of document"
            raise KmlParseError(msg) from None
        except etree.XMLSyntaxError as exc:
            msg = f"Not valid XML: {exc}"
            raise KmlParseError(msg) from exc
        return Token(event == "start", Tag.resolve(element.tag), element)

    def children(self, parent: Token) -> Iterator[Token]:
        """Yield the start token of each direct child of *parent*.

        The consumer must consume each yielded child completely (descend,
        ``read_text`` or ``skip_subtree``) before asking for the next one.
        Iteration stops after *parent*'s end token, and *parent*'s element
        is released.
        """
        while True:
            token = self.next_token()
            if token.start:
                yield token
            elif token.element is parent.element:
                _release(parent.element)
                return

    def skip_subtree(self, start: Token) -> None:
        """Consume everything up to the close of *start* and release it.

        Only elements with the same raw tag name are counted; all other
        tags in between are ignored.
        """
        self._consume(start)
        _release(start.element)

    def read_text(self, start: Token) -> str:
        """Consume a leaf element and return its stripped text content."""
        self._consume(start)
        text = "".join(start.element.itertext()).strip()
        _release(start.element)
        return text

    def _consume(self, start: Token) -> None:
        name = start.raw_tag
        depth = 1
        while depth:
            token = self.next_token()
            if token.raw_tag == name:
                depth += 1 if token.start else -1

    def drain(self) -> None:
        """Consume remaining events so trailing syntax errors surface."""
        from lxml import etree  # type: ignore[attr-defined]

        try:
            for _event in self._events:
                pass
        except etree.XMLSyntaxError as exc:
            msg = f"Not valid XML: {exc}"
            raise KmlParseError(msg) from exc


def _release(element: _Element) -> None:
    """Drop a finished element's content and its already consumed siblings.

    Afterwards only the open ancestors of the current token, and the
    released element itself as an empty shell, remain in the tree.
    """
    element.clear()
    parent = element.getparent()
    if parent is not None:
        while element.getprevious() is not None:
            del parent[0]
