from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from lxml import etree, html
from lxml.html import HtmlElement

from .selector_rules import normalize_space

SANDBOX_ATTRIBUTE = "data-locatorsynth-sandbox"


@dataclass(frozen=True, slots=True)
class Context:
    """Evaluation root for every uniqueness check of one synthesis call."""

    root: HtmlElement
    sandbox: bool = False

    @classmethod
    def for_document(cls, node: HtmlElement) -> Context:
        return cls(root=node.getroottree().getroot(), sandbox=False)

    @classmethod
    def for_sandbox(cls, root: HtmlElement) -> Context:
        return cls(root=root, sandbox=True)

    def contains(self, node: HtmlElement) -> bool:
        if node is self.root:
            return True
        for ancestor in node.iterancestors():
            if ancestor is self.root:
                return True
        return False


def parse_document(markup: str) -> HtmlElement:
    return html.document_fromstring(markup)


def parse_fragment(markup: str) -> tuple[HtmlElement, Context]:
    """Render pasted markup inside a sandbox root and return it with its Context."""
    wrapper = html.fragment_fromstring(markup, create_parent="div")
    wrapper.set(SANDBOX_ATTRIBUTE, "")
    for bad in list(wrapper.iter("script", "style")):
        bad.drop_tree()
    return wrapper, Context.for_sandbox(wrapper)


def is_element(node: object) -> bool:
    return isinstance(node, etree.ElementBase) and isinstance(getattr(node, "tag", None), str)


def node_tag(node: HtmlElement) -> str:
    tag = node.tag if isinstance(node.tag, str) else ""
    return tag.lower()


def node_attr(node: HtmlElement, name: str) -> str | None:
    raw = node.get(name)
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


def node_text(node: HtmlElement) -> str:
    return normalize_space(node.text_content())


def node_classes(node: HtmlElement) -> list[str]:
    raw = node.get("class") or ""
    seen: set[str] = set()
    classes: list[str] = []
    for token in raw.split():
        if token in seen:
            continue
        seen.add(token)
        classes.append(token)
    return classes


def element_children(node: HtmlElement) -> list[HtmlElement]:
    return [child for child in node.iterchildren() if isinstance(child.tag, str)]


def parent_element(node: HtmlElement) -> HtmlElement | None:
    parent = node.getparent()
    if parent is None or not isinstance(parent.tag, str):
        return None
    return parent


def iter_ancestors(node: HtmlElement, limit: int | None = None) -> Iterator[HtmlElement]:
    current = parent_element(node)
    steps = 0
    while current is not None:
        if limit is not None and steps >= limit:
            return
        yield current
        steps += 1
        current = parent_element(current)


def iter_descendants(node: HtmlElement) -> Iterator[HtmlElement]:
    for item in node.iterdescendants():
        if isinstance(item.tag, str):
            yield item


def same_tag_index(node: HtmlElement) -> int:
    index = 1
    for sibling in node.itersiblings(preceding=True):
        if isinstance(sibling.tag, str) and sibling.tag == node.tag:
            index += 1
    return index


def child_position(node: HtmlElement) -> int:
    position = 1
    for sibling in node.itersiblings(preceding=True):
        if isinstance(sibling.tag, str):
            position += 1
    return position


def closest(node: HtmlElement, predicate, *, include_self: bool = True) -> HtmlElement | None:
    if include_self and predicate(node):
        return node
    for ancestor in iter_ancestors(node):
        if predicate(ancestor):
            return ancestor
    return None


def depth_of(node: HtmlElement) -> int:
    return sum(1 for _ in iter_ancestors(node))


def outer_html_snapshot(node: HtmlElement, limit: int = 3000) -> str:
    markup = html.tostring(node, encoding="unicode", with_tail=False)
    return markup[:limit]
