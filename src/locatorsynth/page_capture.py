from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING
import uuid

from lxml.html import HtmlElement
from playwright.sync_api import Error as PlaywrightError

from .css_synthesizer import synthesize_css
from .dom import Context, parse_document
from .errors import CaptureError
from .locator_generator import generate_locator_candidates
from .models import FrameBoundary, SelectorKind, SynthesisResult
from .settings import SynthesisSettings
from .validation import find_matches

if TYPE_CHECKING:
    from playwright.sync_api import ElementHandle, Frame, Page

logger = logging.getLogger("locatorsynth.capture")

CAPTURE_MARKER_ATTRIBUTE = "data-locatorsynth-capture"

_MARK_SCRIPT = "(el, [name, value]) => el.setAttribute(name, value)"
_UNMARK_SCRIPT = "(el, name) => el.removeAttribute(name)"


@dataclass(frozen=True, slots=True)
class CapturedElement:
    node: HtmlElement
    context: Context
    frame: FrameBoundary | None = None


def capture_element(element: ElementHandle, settings: SynthesisSettings | None = None) -> CapturedElement:
    """Snapshot the element's frame into lxml and resolve the element inside it."""
    settings = settings or SynthesisSettings()
    frame = element.owner_frame()
    if frame is None:
        raise CaptureError("Element is detached from any frame.")

    node = _snapshot_marked(element, frame)
    context = Context.for_document(node)
    boundary = _frame_boundary(frame, settings)
    return CapturedElement(node=node, context=context, frame=boundary)


def inspect_element(element: ElementHandle, settings: SynthesisSettings | None = None) -> SynthesisResult:
    settings = settings or SynthesisSettings()
    captured = capture_element(element, settings)
    return generate_locator_candidates(captured.node, captured.context, settings, frame=captured.frame)


def count_on_page(target: Page | Frame, expression: str, kind: SelectorKind) -> int:
    text = str(expression or "").strip()
    if not text:
        return 0
    try:
        if kind == "css":
            return len(target.query_selector_all(text))
        return target.locator(f"xpath={text}").count()
    except PlaywrightError as exc:
        logger.debug("Live count of %s locator %r failed: %s", kind, text, exc)
        return 0


def _snapshot_marked(element: ElementHandle, frame: Frame) -> HtmlElement:
    token = uuid.uuid4().hex
    try:
        element.evaluate(_MARK_SCRIPT, [CAPTURE_MARKER_ATTRIBUTE, token])
        try:
            markup = frame.content()
        finally:
            element.evaluate(_UNMARK_SCRIPT, CAPTURE_MARKER_ATTRIBUTE)
    except PlaywrightError as exc:
        raise CaptureError(f"Could not snapshot element: {exc}") from exc

    root = parse_document(markup)
    selector = f'[{CAPTURE_MARKER_ATTRIBUTE}="{token}"]'
    matches = find_matches(selector, Context.for_document(root), "css")
    if len(matches) != 1:
        raise CaptureError(f"Captured element could not be resolved in the snapshot ({len(matches)} matches).")

    node = matches[0]
    # The marker must not leak into generated locators.
    del node.attrib[CAPTURE_MARKER_ATTRIBUTE]
    return node


def _frame_boundary(frame: Frame, settings: SynthesisSettings) -> FrameBoundary | None:
    parent = frame.parent_frame
    if parent is None:
        return None

    try:
        iframe = frame.frame_element()
    except PlaywrightError as exc:
        logger.warning("Could not resolve the iframe element of %s: %s", frame.url, exc)
        return None

    iframe_node = _snapshot_marked(iframe, parent)
    located = synthesize_css(iframe_node, Context.for_document(iframe_node), settings)
    if located.best_effort:
        logger.warning("Frame selector %r is not unique in the parent document", located.expression)
    return FrameBoundary(
        selector=located.expression,
        frame_id=iframe_node.get("id") or "",
        frame_name=iframe_node.get("name") or "",
    )
