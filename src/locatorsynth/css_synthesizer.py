from __future__ import annotations

import logging

from lxml.html import HtmlElement

from .dom import Context, node_attr, node_tag, parent_element, same_tag_index
from .models import SynthesizedLocator
from .selector_rules import escape_css_identifier, escape_css_string, is_volatile, is_weak_locator
from .settings import SynthesisSettings
from .validation import evaluate_locator

logger = logging.getLogger("locatorsynth.synth")

CSS_ATTRIBUTE_PRIORITY = (
    "name",
    "data-testid",
    "data-test-id",
    "data-automation-id",
    "aria-label",
)


def id_selector(id_value: str) -> str:
    return f"#{escape_css_identifier(id_value)}"


def css_segment(node: HtmlElement, settings: SynthesisSettings | None = None) -> str:
    tag = node_tag(node) or "*"
    for attr in CSS_ATTRIBUTE_PRIORITY:
        value = node_attr(node, attr)
        if value and not is_volatile(value, settings):
            return f'{tag}[{attr}="{escape_css_string(value)}"]'
    return tag


def synthesize_css(
    node: HtmlElement,
    context: Context | None = None,
    settings: SynthesisSettings | None = None,
) -> SynthesizedLocator:
    settings = settings or SynthesisSettings()
    context = context or Context.for_document(node)

    element_id = node_attr(node, "id")
    if element_id and not is_volatile(element_id, settings):
        selector = id_selector(element_id)
        match = evaluate_locator(selector, context, "css", node)
        if match.unique:
            return SynthesizedLocator(selector, "css", match, strategy="id")

    path: list[str] = []
    levels: list[HtmlElement] = []
    current: HtmlElement | None = node
    depth = 0
    while current is not None and depth < settings.deep_max_depth:
        if context.sandbox and current is context.root:
            break
        current_id = node_attr(current, "id")
        if current_id and not is_volatile(current_id, settings):
            path.insert(0, id_selector(current_id))
            levels.insert(0, current)
            break

        path.insert(0, css_segment(current, settings))
        levels.insert(0, current)
        if evaluate_locator(" > ".join(path), context, "css", node).unique:
            break
        current = parent_element(current)
        depth += 1

    if not path:
        path, levels = [node_tag(node)], [node]

    selector = " > ".join(path)
    match = evaluate_locator(selector, context, "css", node)
    if match.unique and not is_weak_locator(selector, "css"):
        return SynthesizedLocator(selector, "css", match, strategy="ascending_path")

    logger.debug("CSS path %r is weak or ambiguous (%d matches), adding positions", selector, match.count)
    fallback: SynthesizedLocator | None = None
    for index in range(len(path) - 1, -1, -1):
        segment = path[index]
        if segment.startswith("#"):
            segment = node_tag(levels[index]) + segment
        path[index] = f"{segment}:nth-of-type({same_tag_index(levels[index])})"
        selector = " > ".join(path)
        match = evaluate_locator(selector, context, "css", node)
        if not match.unique:
            continue
        if not is_weak_locator(selector, "css"):
            return SynthesizedLocator(selector, "css", match, strategy="positional")
        if fallback is None:
            fallback = SynthesizedLocator(selector, "css", match, strategy="positional")

    if fallback is not None:
        return fallback
    return SynthesizedLocator(selector, "css", match, strategy="best_effort")
