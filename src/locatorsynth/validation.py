from __future__ import annotations

import logging
from functools import lru_cache

from cssselect import SelectorError
from cssselect.xpath import ExpressionError
from lxml import etree
from lxml.cssselect import CSSSelector
from lxml.html import HtmlElement

from .dom import Context
from .models import MatchResult, SelectorKind

logger = logging.getLogger("locatorsynth.oracle")


def relative_xpath(expression: str, context: Context) -> str:
    """Rewrite global XPath forms so they only search the sandbox sub-tree."""
    text = expression.strip()
    if not context.sandbox:
        return text
    if text.startswith("//"):
        return "." + text
    if text.startswith("(//"):
        return "(." + text[1:]
    return text


@lru_cache(maxsize=512)
def _compiled_css(expression: str) -> CSSSelector:
    return CSSSelector(expression, translator="html")


@lru_cache(maxsize=1024)
def _compiled_xpath(expression: str) -> etree.XPath:
    return etree.XPath(expression)


def find_matches(expression: str, context: Context, kind: SelectorKind) -> list[HtmlElement]:
    text = str(expression or "").strip()
    if not text:
        return []

    try:
        if kind == "css":
            matches = _compiled_css(text)(context.root)
            if context.sandbox:
                matches = [item for item in matches if item is not context.root]
        else:
            result = _compiled_xpath(relative_xpath(text, context))(context.root)
            if not isinstance(result, list):
                logger.debug("XPath %r evaluated to a non node-set value", text)
                return []
            matches = result
    except (SelectorError, ExpressionError, etree.XPathError, ValueError) as exc:
        logger.debug("Evaluation of %s locator %r failed: %s", kind, text, exc)
        return []

    return [item for item in matches if isinstance(getattr(item, "tag", None), str)]


def evaluate_locator(
    expression: str,
    context: Context,
    kind: SelectorKind,
    target: HtmlElement | None = None,
) -> MatchResult:
    matches = find_matches(expression, context, kind)
    if target is None:
        return MatchResult(count=len(matches))

    ordinal = None
    for index, item in enumerate(matches, start=1):
        if item is target:
            ordinal = index
            break
    return MatchResult(count=len(matches), ordinal=ordinal, targeted=True)


def count_locator_matches(expression: str, context: Context, kind: SelectorKind) -> int:
    return len(find_matches(expression, context, kind))


def ordinal_of(expression: str, context: Context, target: HtmlElement, kind: SelectorKind = "xpath") -> int | None:
    return evaluate_locator(expression, context, kind, target).ordinal


def is_unique(
    expression: str,
    context: Context,
    kind: SelectorKind,
    target: HtmlElement | None = None,
) -> bool:
    return evaluate_locator(expression, context, kind, target).unique
