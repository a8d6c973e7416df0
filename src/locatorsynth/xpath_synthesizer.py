from __future__ import annotations

import logging
from typing import Iterator

from lxml.cssselect import CSSSelector
from lxml.html import HtmlElement

from .dom import (
    Context,
    element_children,
    iter_descendants,
    node_attr,
    node_classes,
    node_tag,
    node_text,
    parent_element,
)
from .models import MatchResult, SynthesizedLocator
from .selector_rules import is_generic_tag, is_volatile, is_weak_locator, xpath_literal
from .settings import SynthesisSettings
from .text_stabilizer import is_verbatim_stable, stabilize_text
from .validation import count_locator_matches, evaluate_locator

logger = logging.getLogger("locatorsynth.synth")

XPATH_ATTRIBUTE_PRIORITY = (
    "data-testid",
    "data-nexus-id",
    "data-test-id",
    "id",
    "aria-label",
    "name",
    "title",
    "role",
    "placeholder",
    "alt",
    "type",
    "value",
)
ANCHOR_ATTRIBUTES = ("id", "data-testid", "name")
STRONG_ATTRIBUTES = ("id", "data-testid", "name")

_ANCHOR_TEXT_SELECTOR = CSSSelector(
    "h1, h2, h3, h4, h5, h6, b, strong, label, p, span, .title, .name, .content, .header, .label",
    translator="html",
)
_SEMANTIC_SELECTOR = CSSSelector(
    "h1, h2, h3, h4, h5, h6, label, .title, .header, .name",
    translator="html",
)

ANCHOR_TEXT_MIN_LENGTH = 4
ANCHOR_TEXT_MAX_LENGTH = 100
SEMANTIC_TEXT_MIN_LENGTH = 3


class XPathSynthesizer:
    """Two-pass XPath search for one target node.

    The fast pass climbs at most ``fast_max_depth`` ancestors and examines a
    handful of anchor candidates per level; the deep pass only runs when the
    fast result is not unique and widens both bounds.
    """

    def __init__(
        self,
        target: HtmlElement,
        context: Context | None = None,
        settings: SynthesisSettings | None = None,
    ) -> None:
        self.target = target
        self.context = context or Context.for_document(target)
        self.settings = settings or SynthesisSettings()
        self.tag = node_tag(target) or "*"

    def synthesize(self) -> SynthesizedLocator:
        settings = self.settings
        expression, strategy = self._search(settings.fast_max_depth, settings.fast_candidate_limit, deep=False)
        match = self._evaluate(expression)
        if match.unique:
            return self._locator(expression, match, strategy)

        logger.debug("Fast XPath pass ended with %r (%d matches), running deep pass", expression, match.count)
        expression, strategy = self._search(settings.deep_max_depth, settings.deep_candidate_limit, deep=True)
        match = self._evaluate(expression)
        if match.unique:
            return self._locator(expression, match, strategy)

        return self._finalize(expression)

    # -- segments ---------------------------------------------------------

    def segment(self, node: HtmlElement, force_all: bool = False) -> str:
        tag = node_tag(node) or "*"

        if not force_all:
            first = self._attribute_conditions(node, limit=1)
            if first:
                candidate = f"{tag}[{first[0]}]"
                if self._unique_for(f"//{candidate}", node):
                    return candidate

        conditions = self._attribute_conditions(node)
        if conditions:
            candidate = f"{tag}[{' and '.join(conditions)}]"
            if self._unique_for(f"//{candidate}", node):
                return candidate

        text = node_text(node)
        if text and len(text) < self.settings.segment_text_max_length:
            stable = stabilize_text(text)
            text_is_stable = not is_volatile(text, self.settings)
            if stable and is_verbatim_stable(text, stable) and text_is_stable:
                candidate = f"{tag}[normalize-space(.)={xpath_literal(text)}]"
                if self._unique_for(f"//{candidate}", node):
                    return candidate
            if stable:
                candidate = f"{tag}[contains(normalize-space(.), {xpath_literal(stable)})]"
                if self._unique_for(f"//{candidate}", node):
                    return candidate
            elif text_is_stable:
                candidate = f"{tag}[normalize-space(.)={xpath_literal(text)}]"
                if self._unique_for(f"//{candidate}", node):
                    return candidate

        for class_name in node_classes(node):
            if is_volatile(class_name, self.settings):
                continue
            candidate = (
                f"{tag}[contains(concat(' ', normalize-space(@class), ' '), {xpath_literal(f' {class_name} ')})]"
            )
            if self._unique_for(f"//{candidate}", node):
                return candidate

        # No positional fallback here: the ancestor climb disambiguates.
        if conditions:
            return f"{tag}[{' and '.join(conditions)}]"
        return tag

    def padded_segment(self, node: HtmlElement) -> str:
        segment = self.segment(node, force_all=True)
        if "normalize-space(.)" in segment or "normalize-space()" in segment or "text()" in segment:
            return segment

        text = node_text(node)
        if text and len(text) < self.settings.padded_text_max_length and not is_volatile(text, self.settings):
            return f"{segment}[normalize-space()={xpath_literal(text)}]"
        return segment

    def _attribute_conditions(self, node: HtmlElement, limit: int | None = None) -> list[str]:
        conditions: list[str] = []
        for attr in XPATH_ATTRIBUTE_PRIORITY:
            value = node_attr(node, attr)
            if not value or is_volatile(value, self.settings):
                continue
            conditions.append(f"@{attr}={xpath_literal(value)}")
            if limit is not None and len(conditions) >= limit:
                break
        return conditions

    # -- search -----------------------------------------------------------

    def _search(self, max_depth: int, candidate_limit: int, *, deep: bool) -> tuple[str, str]:
        target = self.target
        settings = self.settings

        element_id = node_attr(target, "id")
        if element_id and not is_volatile(element_id, settings):
            expression = f"//*[@id={xpath_literal(element_id)}]"
            if self._unique(expression):
                return expression, "id"

        text = node_text(target)
        if text and len(text) < settings.self_text_max_length:
            found = self._self_text_anchor(text)
            if found:
                return found

        path: list[str] = []
        weak_unique: str | None = None
        current: HtmlElement | None = target
        depth = 0
        while current is not None and depth < max_depth:
            if self.context.sandbox and current is self.context.root:
                break

            segment = self.padded_segment(current) if current is target else self.segment(current, deep)
            path.insert(0, segment)

            direct = "//" + "/".join(path)
            if self._unique(direct):
                generic = current is target and is_generic_tag(self.tag)
                strong = any(node_attr(target, attr) for attr in STRONG_ATTRIBUTES)
                if not generic or strong or len(path) >= 3:
                    jump = self._descendant_jump(current, path)
                    if jump:
                        return jump, "descendant_jump"
                    return direct, "direct_path"

            expression = self._ancestor_text_anchor(current, deep)
            if expression:
                return expression, "ancestor_text"

            anchor_text = self._unique_anchor_text(current, candidate_limit)
            if anchor_text:
                expression = (
                    f"//*[normalize-space(.)={xpath_literal(anchor_text)}]"
                    f"/ancestor::{node_tag(current)}[1]//{self.padded_segment(target)}"
                )
                if self._unique(expression):
                    return expression, "sibling_text"

            expression = self._semantic_anchor(current, candidate_limit)
            if expression:
                return expression, "semantic_anchor"

            current = parent_element(current)
            depth += 1

            climbed = "//" + "/".join(path)
            if self._unique(climbed):
                if not is_weak_locator(climbed, "xpath"):
                    return climbed, "direct_path"
                if weak_unique is None:
                    weak_unique = climbed

        if weak_unique is not None:
            return weak_unique, "weak_path"

        descriptor = self.segment(target, force_all=True)
        expression = f"//{descriptor}"
        if self._unique(expression):
            return expression, "descriptor"

        parent = parent_element(target)
        if parent is not None:
            combined = f"//{self.segment(parent, force_all=True)}/{descriptor}"
            if self._unique(combined):
                return combined, "parent_descriptor"

        return expression, "best_effort"

    def _self_text_anchor(self, text: str) -> tuple[str, str] | None:
        stable = stabilize_text(text)
        text_is_stable = not is_volatile(text, self.settings)
        if stable:
            if is_verbatim_stable(text, stable) and text_is_stable:
                exact = f"//{self.tag}[normalize-space(.)={xpath_literal(text)}]"
                if self._unique(exact):
                    return exact, "text"

            base = f"//{self.tag}[contains(normalize-space(.), {xpath_literal(stable)})]"
            match = self._evaluate(base)
            if match.unique:
                return base, "text"
            if match.count > 1 and match.ordinal is not None:
                indexed = f"({base})[{match.ordinal}]"
                if self._unique(indexed):
                    return indexed, "text_indexed"
        elif text_is_stable:
            exact = f"//{self.tag}[normalize-space(.)={xpath_literal(text)}]"
            if self._unique(exact):
                return exact, "text"
        return None

    def _ancestor_text_anchor(self, current: HtmlElement, deep: bool) -> str | None:
        cursor = current
        for _level in range(self.settings.ancestor_text_levels):
            parent = parent_element(cursor)
            if parent is None:
                break
            cursor = parent
            if self.context.sandbox and cursor is self.context.root:
                break
            container_tag = node_tag(cursor)
            if container_tag in ("body", "html"):
                break

            container_text = node_text(cursor)
            stable = stabilize_text(container_text)
            if not stable:
                continue

            if stable == container_text:
                container = f"{container_tag}[normalize-space(.)={xpath_literal(stable)}]"
            else:
                container = f"{container_tag}[contains(normalize-space(.), {xpath_literal(stable)})]"

            relative: list[str] = []
            walker: HtmlElement | None = self.target
            while walker is not None and walker is not cursor:
                relative.insert(0, self.segment(walker, deep))
                walker = parent_element(walker)

            expression = f"//{container}" + (f"//{'//'.join(relative)}" if relative else "")
            if self._unique(expression):
                return expression
        return None

    def _descendant_jump(self, current: HtmlElement, path: list[str]) -> str | None:
        """Skip the structural segments between an anchored ancestor and the target."""
        if len(path) < 3 or not self._is_anchor(current):
            return None
        expression = f"//{path[0]}//{path[-1]}"
        if self._unique(expression):
            return expression
        return None

    def _is_anchor(self, node: HtmlElement) -> bool:
        for attr in ANCHOR_ATTRIBUTES:
            value = node_attr(node, attr)
            if value and not is_volatile(value, self.settings):
                return True
        return False

    def _unique_anchor_text(self, container: HtmlElement, candidate_limit: int) -> str | None:
        for source in (self._marked_text_nodes(container), iter_descendants(container)):
            examined = 0
            for node in source:
                if examined >= candidate_limit:
                    break
                examined += 1
                text = node_text(node)
                if not (ANCHOR_TEXT_MIN_LENGTH <= len(text) < ANCHOR_TEXT_MAX_LENGTH):
                    continue
                if is_volatile(text, self.settings):
                    continue
                if self._text_unique(text):
                    return text
        return None

    def _marked_text_nodes(self, container: HtmlElement) -> Iterator[HtmlElement]:
        for node in _ANCHOR_TEXT_SELECTOR(container):
            if node is not container:
                yield node

    def _semantic_anchor(self, current: HtmlElement, candidate_limit: int) -> str | None:
        if len(element_children(current)) >= self.settings.semantic_child_limit:
            return None

        examined = 0
        for anchor in _SEMANTIC_SELECTOR(current):
            if anchor is current or anchor is self.target:
                continue
            text = node_text(anchor)
            if not (SEMANTIC_TEXT_MIN_LENGTH <= len(text) < self.settings.padded_text_max_length):
                continue
            if is_volatile(text, self.settings):
                continue
            expression = (
                f"//{node_tag(current)}[.//{node_tag(anchor)}[normalize-space(.)={xpath_literal(text)}]]"
                f"//{self.tag}"
            )
            if self._unique(expression):
                return expression
            examined += 1
            if examined >= candidate_limit:
                break
        return None

    # -- finalization -----------------------------------------------------

    def _finalize(self, expression: str) -> SynthesizedLocator:
        target_segment = self.segment(self.target, force_all=True)
        parent = parent_element(self.target)
        attempts = 0
        while parent is not None and attempts < self.settings.parent_context_attempts:
            if self.context.sandbox and parent is self.context.root:
                break
            candidate = f"//{self.segment(parent, force_all=True)}//{target_segment}"
            match = self._evaluate(candidate)
            if match.unique:
                return self._locator(candidate, match, "parent_context")
            parent = parent_element(parent)
            attempts += 1

        # The index is only valid for the tree as it is right now.
        match = self._evaluate(expression)
        if match.count > 1 and match.ordinal is not None:
            indexed = f"({expression})[{match.ordinal}]"
            return self._locator(indexed, self._evaluate(indexed), "ordinal")

        logger.debug("No unique XPath for <%s>; returning best-effort %r", self.tag, expression)
        return self._locator(expression, match, "best_effort")

    # -- oracle helpers ---------------------------------------------------

    def _locator(self, expression: str, match: MatchResult, strategy: str) -> SynthesizedLocator:
        return SynthesizedLocator(
            expression=expression,
            kind="xpath",
            match=match,
            strategy=strategy,
            disambiguated=strategy in ("text_indexed", "ordinal"),
        )

    def _evaluate(self, expression: str) -> MatchResult:
        return evaluate_locator(expression, self.context, "xpath", self.target)

    def _unique(self, expression: str) -> bool:
        return self._evaluate(expression).unique

    def _unique_for(self, expression: str, node: HtmlElement) -> bool:
        return evaluate_locator(expression, self.context, "xpath", node).unique

    def _text_unique(self, text: str) -> bool:
        expression = f"//*[normalize-space()={xpath_literal(text)}]"
        return count_locator_matches(expression, self.context, "xpath") == 1


def synthesize_xpath(
    node: HtmlElement,
    context: Context | None = None,
    settings: SynthesisSettings | None = None,
) -> SynthesizedLocator:
    return XPathSynthesizer(node, context, settings).synthesize()
