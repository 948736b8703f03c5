from typing import List, Optional, Protocol

from bs4 import BeautifulSoup, Tag


class TreeNode(Protocol):
    """Read-only view of one element in a page snapshot.

    Scan passes only rely on flattened text, children lookups, and link
    targets, so any markup source can be adapted to this protocol.
    """

    def text(self) -> str: ...

    def attr(self, name: str) -> Optional[str]: ...

    def select(self, selector: str) -> List["TreeNode"]: ...

    def closest(self, selector: str) -> Optional["TreeNode"]: ...

    @property
    def parent(self) -> Optional["TreeNode"]: ...


class SoupNode:
    """`TreeNode` backed by a BeautifulSoup tag.

    Equality and hashing follow the identity of the wrapped tag, so the same
    element found by two selectors collapses to one node.
    """

    __slots__ = ("_tag",)

    def __init__(self, tag: Tag):
        self._tag = tag

    def __eq__(self, other) -> bool:
        return isinstance(other, SoupNode) and other._tag is self._tag

    def __hash__(self) -> int:
        return id(self._tag)

    def __repr__(self) -> str:
        return f"<SoupNode {self._tag.name}>"

    @property
    def name(self) -> str:
        return self._tag.name or ""

    def text(self) -> str:
        return self._tag.get_text(" ")

    def attr(self, name: str) -> Optional[str]:
        value = self._tag.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def select(self, selector: str) -> List["SoupNode"]:
        return [SoupNode(t) for t in self._tag.select(selector)]

    def closest(self, selector: str) -> Optional["SoupNode"]:
        found = self._tag.css.closest(selector)
        return SoupNode(found) if found is not None else None

    @property
    def parent(self) -> Optional["SoupNode"]:
        p = self._tag.parent
        if p is None or not isinstance(p, Tag):
            return None
        return SoupNode(p)


def parse_html(html: str) -> SoupNode:
    """Parse an HTML snapshot into the root `TreeNode` of a scan pass."""
    soup = BeautifulSoup(html or "", "lxml")
    return SoupNode(soup)
