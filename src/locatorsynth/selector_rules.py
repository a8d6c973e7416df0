from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .settings import DEFAULT_STABLE_WORDS

if TYPE_CHECKING:
    from .models import CandidateKind, SelectorKind, Strength
    from .settings import SynthesisSettings

FRAMEWORK_PREFIX_PATTERN = re.compile(r"^(ember|ng-|jss|css-|_-|sc-|Mui|v-|dx-|ag-)", re.IGNORECASE)
HEX_RUN_PATTERN = re.compile(r"[a-f0-9]{8,}", re.IGNORECASE)

_VOLATILE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("long-digit-run", re.compile(r"[0-9]{5,}")),
    ("numeric-only", re.compile(r"^[0-9]+$")),
    ("hex-run", HEX_RUN_PATTERN),
    ("framework-prefix", FRAMEWORK_PREFIX_PATTERN),
    ("angular-internal", re.compile(r"(_ngcontent|_nghost)")),
    ("short-dynamic-id", re.compile(r"^[a-z]-[0-9]+$", re.IGNORECASE)),
    ("random-suffix", re.compile(r"[_-][a-z0-9]{5,}$", re.IGNORECASE)),
    ("bracketed-color", re.compile(r"\[#[a-f0-9]{6}\]", re.IGNORECASE)),
)

GENERIC_TAGS = frozenset(
    {
        "div",
        "span",
        "p",
        "a",
        "i",
        "b",
        "svg",
        "path",
        "section",
        "article",
        "li",
        "ul",
        "ol",
        "nav",
        "header",
        "footer",
        "main",
        "aside",
        "details",
        "summary",
    }
)

_XML_WHITESPACE = re.compile(r"[ \t\r\n]+")
_CSS_ATTRIBUTE_PREDICATE = re.compile(r"\[[A-Za-z_][\w:-]*\s*[~|^$*]?=")
_CSS_ID_SELECTOR = re.compile(r"#[^\s>+~]")
_XPATH_ATTRIBUTE_PREDICATE = re.compile(r"@[A-Za-z_][\w:-]*\s*=")
_XPATH_ID_ONLY = re.compile(r"^//\*?\w*\[@id=(['\"])[^'\"]*\1\]$")
_CSS_ID_ONLY = re.compile(r"^#[^\s>+~\[.:]+$")


@dataclass(frozen=True, slots=True)
class VolatilityReport:
    value: str
    volatile: bool
    reasons: tuple[str, ...]


def normalize_space(value: str | None, limit: int | None = None) -> str:
    """Collapse XML whitespace the same way XPath ``normalize-space()`` does."""
    if not value:
        return ""
    compact = _XML_WHITESPACE.sub(" ", str(value)).strip(" ")
    if limit is not None:
        return compact[:limit]
    return compact


def describe_volatility(value: str | None, settings: SynthesisSettings | None = None) -> VolatilityReport:
    text = str(value or "")
    if not text:
        return VolatilityReport(value=text, volatile=False, reasons=("empty",))

    stable_words = settings.stable_words if settings is not None else DEFAULT_STABLE_WORDS
    if text.lower() in stable_words:
        return VolatilityReport(value=text, volatile=False, reasons=("stable-word",))

    reasons: list[str] = []
    aggressive = settings.aggressive_digits if settings is not None else True
    if aggressive and re.search(r"\d", text):
        reasons.append("contains-digit")
    for reason, pattern in _VOLATILE_PATTERNS:
        if pattern.search(text):
            reasons.append(reason)

    return VolatilityReport(value=text, volatile=bool(reasons), reasons=tuple(reasons))


def is_volatile(value: str | None, settings: SynthesisSettings | None = None) -> bool:
    return describe_volatility(value, settings).volatile


def is_stable_value(value: str | None, settings: SynthesisSettings | None = None) -> bool:
    return bool(value) and not is_volatile(value, settings)


def is_generic_tag(tag: str) -> bool:
    return tag.strip().lower() in GENERIC_TAGS


def has_attribute_predicate(expression: str, kind: SelectorKind) -> bool:
    if kind == "css":
        return bool(_CSS_ATTRIBUTE_PREDICATE.search(expression) or _CSS_ID_SELECTOR.search(expression))
    return bool(_XPATH_ATTRIBUTE_PREDICATE.search(expression))


def is_weak_locator(expression: str | None, kind: SelectorKind) -> bool:
    """A locator is weak when it leans only on tag names, order or text."""
    if not expression:
        return True
    return not has_attribute_predicate(expression, kind)


def locator_strength(expression: str | None, kind: SelectorKind) -> Strength:
    return "weak" if is_weak_locator(expression, kind) else "strong"


def is_positional(expression: str, kind: SelectorKind) -> bool:
    if kind == "css":
        return ":nth-of-type(" in expression or ":nth-child(" in expression
    return bool(re.search(r"\[\d+\]", expression))


def classify_locator_kind(expression: str, kind: SelectorKind) -> CandidateKind:
    if kind == "css" and _CSS_ID_ONLY.match(expression):
        return "id"
    if kind == "xpath" and _XPATH_ID_ONLY.match(expression):
        return "id"

    features: list[CandidateKind] = []
    if has_attribute_predicate(expression, kind):
        features.append("attribute")
    if kind == "xpath" and (re.search(r"normalize-space\(\.?\)", expression) or "text()" in expression):
        features.append("text")
    if (kind == "css" and re.search(r"\.[A-Za-z_-][\w-]*", expression)) or "@class" in expression:
        features.append("class")
    if is_positional(expression, kind):
        features.append("positional")

    if len(features) > 1:
        return "compound"
    if features:
        return features[0]
    return "positional"


def xpath_literal(value: str) -> str:
    if "'" not in value:
        return f"'{value}'"
    if '"' not in value:
        return f'"{value}"'
    pieces = value.split("'")
    quoted = [f"'{piece}'" for piece in pieces]
    return "concat(" + ", \"'\", ".join(quoted) + ")"


def escape_css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def escape_css_identifier(value: str) -> str:
    escaped: list[str] = []
    for index, char in enumerate(value):
        leading_digit = char.isdigit() and (index == 0 or (index == 1 and value[0] == "-"))
        if (char.isalnum() or char in ("-", "_")) and not leading_digit and char.isascii():
            escaped.append(char)
        else:
            escaped.append(f"\\{ord(char):x} ")
    return "".join(escaped)
