from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
import re
from typing import Any, Iterable

from lxml.html import HtmlElement

from .css_synthesizer import synthesize_css
from .dom import Context, iter_descendants, node_attr, node_tag, node_text, outer_html_snapshot
from .frameworks import FrameworkConvention, detect_framework_locators, detect_frontend_framework, most_specific
from .models import (
    CandidateKind,
    CandidateMethod,
    FrameBoundary,
    LocatorCandidate,
    SelectorKind,
    Strength,
    SynthesisResult,
    SynthesizedLocator,
)
from .ranking import order_candidates, rank_candidates
from .selector_rules import (
    classify_locator_kind,
    escape_css_string,
    has_attribute_predicate,
    is_volatile,
    locator_strength,
    normalize_space,
    xpath_literal,
)
from .settings import SynthesisSettings
from .validation import count_locator_matches, find_matches
from .xpath_synthesizer import synthesize_xpath

logger = logging.getLogger("locatorsynth.synth")

TEST_ID_ATTRIBUTES = (
    "data-testid",
    "data-nexus-id",
    "data-test-id",
    "test-id",
    "data-automation-id",
    "automation-id",
    "data-cy",
    "data-component",
)
HEADING_TAGS = frozenset({"h1", "h2", "h3", "h4", "h5", "h6"})
BUTTON_INPUT_TYPES = frozenset({"button", "submit", "reset"})

ROLE_NAME_MAX_LENGTH = 50
TEXT_CANDIDATE_MAX_LENGTH = 60

_EMOJI_PATTERN = re.compile("[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF\u2600-\u26FF\u2700-\u27BF]")


@dataclass(slots=True)
class CandidateDraft:
    method: CandidateMethod
    locator: str
    strength: Strength
    kind: CandidateKind
    check: str | None = None
    check_kind: SelectorKind = "xpath"
    match_count: int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CandidateFactory:
    """Builds the Playwright-native candidates for one target node."""

    def __init__(self, node: HtmlElement, context: Context, settings: SynthesisSettings) -> None:
        self.node = node
        self.context = context
        self.settings = settings
        self.tag = node_tag(node) or "*"
        self._drafts: list[CandidateDraft] = []
        self._seen: set[tuple[str, str]] = set()

    def generate(self) -> list[CandidateDraft]:
        self._add_test_id()
        self._add_role()
        self._add_label()
        self._add_placeholder()
        self._add_alt_text()
        self._add_text()
        return list(self._drafts)

    def _add(self, draft: CandidateDraft) -> None:
        key = (draft.method, draft.locator)
        if key in self._seen:
            return
        self._seen.add(key)
        self._drafts.append(draft)

    def _add_test_id(self) -> None:
        for attr in TEST_ID_ATTRIBUTES:
            value = node_attr(self.node, attr)
            if not value or is_volatile(value, self.settings):
                continue
            if attr == "data-testid":
                locator = f"get_by_test_id({_py(value)})"
            else:
                selector = f'[{attr}="{escape_css_string(value)}"]'
                locator = f"locator({_py(selector)})"
            self._add(
                CandidateDraft(
                    method="test_id",
                    locator=locator,
                    strength="strong",
                    kind="attribute",
                    check=f"//*[@{attr}={xpath_literal(value)}]",
                    metadata={"value": value, "source_attr": attr},
                )
            )
            return

    def _add_role(self) -> None:
        role = node_attr(self.node, "role") or implicit_role(self.node)
        if not role:
            return
        name = accessible_name(self.node)
        if name:
            locator = f"get_by_role({_py(role)}, name={_py(name)})"
        else:
            locator = f"get_by_role({_py(role)})"
        self._add(
            CandidateDraft(
                method="role",
                locator=locator,
                strength="strong" if name else "weak",
                kind="attribute",
                match_count=_count_role_matches(self.context, role, name),
                metadata={"value": f"{role}|{name}" if name else role, "role": role, "name": name},
            )
        )

    def _add_label(self) -> None:
        label = label_text(self.node, self.context)
        if not label:
            return
        self._add(
            CandidateDraft(
                method="label",
                locator=f"get_by_label({_py(label)})",
                strength="strong",
                kind="text",
                match_count=_count_label_matches(self.context, label),
                metadata={"value": label},
            )
        )

    def _add_placeholder(self) -> None:
        placeholder = node_attr(self.node, "placeholder")
        if not placeholder:
            return
        self._add(
            CandidateDraft(
                method="placeholder",
                locator=f"get_by_placeholder({_py(placeholder)})",
                strength="strong",
                kind="attribute",
                check=f"//*[@placeholder={xpath_literal(placeholder)}]",
                metadata={"value": placeholder},
            )
        )

    def _add_alt_text(self) -> None:
        alt = node_attr(self.node, "alt")
        if not alt:
            return
        self._add(
            CandidateDraft(
                method="alt_text",
                locator=f"get_by_alt_text({_py(alt)})",
                strength="strong",
                kind="attribute",
                check=f"//*[@alt={xpath_literal(alt)}]",
                metadata={"value": alt},
            )
        )

    def _add_text(self) -> None:
        text = node_text(self.node)
        if not text or len(text) >= TEXT_CANDIDATE_MAX_LENGTH or is_volatile(text, self.settings):
            return
        literal = xpath_literal(text)
        self._add(
            CandidateDraft(
                method="text",
                locator=f"get_by_text({_py(text)}, exact=True)",
                strength="weak",
                kind="text",
                # Innermost elements carrying the text, like Playwright's text engine.
                check=f"//*[normalize-space(.)={literal}][not(*[normalize-space(.)={literal}])]",
                metadata={"value": text},
            )
        )


def implicit_role(node: HtmlElement) -> str | None:
    tag = node_tag(node)
    if tag == "button":
        return "button"
    if tag == "a" and node_attr(node, "href"):
        return "link"
    if tag == "input":
        input_type = (node_attr(node, "type") or "text").lower()
        if input_type in BUTTON_INPUT_TYPES:
            return "button"
        if input_type in ("checkbox", "radio"):
            return input_type
        return "textbox"
    if tag in HEADING_TAGS:
        return "heading"
    return None


def accessible_name(node: HtmlElement) -> str | None:
    raw = node_text(node) or node_attr(node, "aria-label") or node_attr(node, "title") or node_attr(node, "value") or ""
    cleaned = normalize_space(_EMOJI_PATTERN.sub("", raw))
    if cleaned and len(cleaned) < ROLE_NAME_MAX_LENGTH:
        return cleaned
    return None


def label_text(node: HtmlElement, context: Context) -> str | None:
    element_id = node_attr(node, "id")
    if element_id:
        for label in find_matches(f'label[for="{escape_css_string(element_id)}"]', context, "css"):
            text = node_text(label)
            if text:
                return text
    return node_attr(node, "aria-label")


def _count_role_matches(context: Context, role: str, name: str | None) -> int:
    count = 0
    for item in _context_elements(context):
        if (node_attr(item, "role") or implicit_role(item)) != role:
            continue
        if name is not None and accessible_name(item) != name:
            continue
        count += 1
    return count


def _count_label_matches(context: Context, label: str) -> int:
    labelled: set[str] = set()
    for item in find_matches("label[for]", context, "css"):
        if node_text(item) == label:
            labelled.add(node_attr(item, "for") or "")
    count = 0
    for item in _context_elements(context):
        element_id = node_attr(item, "id")
        if element_id and element_id in labelled:
            count += 1
        elif node_attr(item, "aria-label") == label:
            count += 1
    return count


def _context_elements(context: Context) -> Iterable[HtmlElement]:
    if not context.sandbox:
        yield context.root
    yield from iter_descendants(context.root)


def _py(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _validate_drafts(drafts: Iterable[CandidateDraft], context: Context) -> list[LocatorCandidate]:
    candidates: list[LocatorCandidate] = []
    for draft in drafts:
        count = draft.match_count
        if count is None and draft.check:
            count = count_locator_matches(draft.check, context, draft.check_kind)
        metadata = dict(draft.metadata)
        if draft.check:
            metadata["check"] = draft.check
        candidates.append(
            LocatorCandidate(
                method=draft.method,
                locator=draft.locator,
                kind=draft.kind,
                uniqueness_count=count,
                strength=draft.strength,
                metadata=metadata,
            )
        )
    return candidates


def _structural_candidate(
    locator: SynthesizedLocator,
    frame: FrameBoundary | None,
) -> LocatorCandidate:
    metadata: dict[str, Any] = {
        "strategy": locator.strategy,
        "best_effort": locator.best_effort,
        "disambiguated": locator.disambiguated,
    }
    if frame is not None:
        metadata["scoped"] = frame.scoped(locator.expression, locator.kind)
    return LocatorCandidate(
        method=locator.kind,
        locator=locator.expression,
        kind=classify_locator_kind(locator.expression, locator.kind),
        uniqueness_count=locator.match.count,
        strength=locator_strength(locator.expression, locator.kind),
        metadata=metadata,
    )


def _framework_candidates(matches: list[FrameworkConvention], context: Context) -> list[LocatorCandidate]:
    innermost = most_specific(matches)
    ordered = sorted(matches, key=lambda item: item is not innermost)
    candidates: list[LocatorCandidate] = []
    for match in ordered:
        if not match.selector:
            continue
        count: int | None = None
        # Playwright-only pseudo classes cannot be checked against the snapshot.
        if ":has-text(" not in match.selector:
            count = count_locator_matches(match.selector, context, "css")
        candidates.append(
            LocatorCandidate(
                method="framework",
                locator=match.selector,
                kind="attribute" if has_attribute_predicate(match.selector, "css") else "positional",
                uniqueness_count=count,
                strength="strong" if has_attribute_predicate(match.selector, "css") else "weak",
                metadata={
                    "family": match.family,
                    "component": match.component,
                    "most_specific": match is innermost,
                },
            )
        )
    return candidates


def generate_locator_candidates(
    node: HtmlElement,
    context: Context | None = None,
    settings: SynthesisSettings | None = None,
    frame: FrameBoundary | None = None,
) -> SynthesisResult:
    settings = settings or SynthesisSettings()
    context = context or Context.for_document(node)
    tag = node_tag(node)
    input_type = (node_attr(node, "type") or "").lower() if tag in ("input", "button") else ""

    css = synthesize_css(node, context, settings)
    xpath = synthesize_xpath(node, context, settings)
    frameworks = detect_framework_locators(node, settings)

    drafts = CandidateFactory(node, context, settings).generate()
    candidates = _validate_drafts(drafts, context)
    candidates.append(_structural_candidate(css, frame))
    candidates.append(_structural_candidate(xpath, frame))
    candidates.extend(_framework_candidates(frameworks, context))

    ordered = order_candidates(candidates)
    best = rank_candidates(ordered, tag=tag, input_type=input_type)
    logger.debug(
        "Synthesized <%s>: css=%r (%s) xpath=%r (%s) best=%s",
        tag,
        css.expression,
        css.strategy,
        xpath.expression,
        xpath.strategy,
        best.method,
    )

    return SynthesisResult(
        tag=tag,
        element_id=node_attr(node, "id") or "",
        input_type=input_type,
        css=css,
        xpath=xpath,
        candidates=ordered,
        best=best,
        frameworks=frameworks,
        frontend_framework=detect_frontend_framework(node),
        frame=frame,
        snapshot=outer_html_snapshot(node, settings.snapshot_limit),
    )
