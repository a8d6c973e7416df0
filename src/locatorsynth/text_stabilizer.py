from __future__ import annotations

import re

from .selector_rules import FRAMEWORK_PREFIX_PATTERN, HEX_RUN_PATTERN, normalize_space

_DELIMITER = "\x1f"
_CURRENCY = "$£€¥₹"
_MONTHS = "Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec"

# Order matters: metrics must be removed before bare digits split "4.1K".
VOLATILE_TEXT_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"[0-9]{5,}"),
    re.compile(r"^[0-9]+$"),
    re.compile(r"[a-f0-9]{8,}", re.IGNORECASE),
    FRAMEWORK_PREFIX_PATTERN,
    re.compile(r"(_ngcontent|_nghost)"),
    re.compile(r"^[a-z]-[0-9]+$", re.IGNORECASE),
    re.compile(r"[_-][a-z0-9]{5,}$", re.IGNORECASE),
    re.compile(r"\[#[a-f0-9]{6}\]", re.IGNORECASE),
    re.compile(r"[0-9]+(\.[0-9]+)?\s*[KMB]\+?(\s|$)", re.IGNORECASE),
    re.compile(r"[0-9]+(\.[0-9]+)?%"),
    re.compile(rf"[{re.escape(_CURRENCY)}]\s?[0-9]+([.,][0-9]+)*"),
    re.compile(rf"[0-9]+([.,][0-9]+)*\s?[{re.escape(_CURRENCY)}]"),
    re.compile(r"\b(ago|today|yesterday|tomorrow)\b", re.IGNORECASE),
    re.compile(r"[0-9]+\s+(min|hour|day|week|month|year)", re.IGNORECASE),
    re.compile(r"[0-9]{1,2}:[0-9]{2}"),
    re.compile(rf"\b[0-9]{{1,2}}\s+({_MONTHS})\b", re.IGNORECASE),
    re.compile(r"\b(19|20)[0-9]{2}\b"),
    re.compile(r"\.[0-9]+"),
    re.compile(r"[0-9]+"),
)

_PUNCTUATION_ONLY = re.compile(r"^[.,!?;:()\[\]{}]+$")
_TRAILING_PUNCTUATION = re.compile(r"[?.!,]+$")
_TRAILING_STOPWORD = re.compile(r"\b(in|at|on|for|with|by|to|of|and|the|a|an)$", re.IGNORECASE)

MIN_CHUNK_LENGTH = 3
CONTEXTUAL_CHUNK_LENGTH = 6
MIN_SEGMENT_LENGTH = 4


def stabilize_text(text: str | None) -> str | None:
    """Return the stable anchor phrase of ``text`` or ``None``.

    Volatile sub-strings (counters, prices, dates, hashes...) are cut out and
    the remaining chunks compete: an early chunk of reasonable length wins
    over a longer one further right, so "Posted 3 days ago by Jane" anchors
    on "Posted" rather than on the author.
    """
    if not text or not isinstance(text, str):
        return None

    current = normalize_space(text)
    if not current:
        return None
    if HEX_RUN_PATTERN.search(current) or FRAMEWORK_PREFIX_PATTERN.search(current):
        return None

    delimited = current
    for pattern in VOLATILE_TEXT_PATTERNS:
        delimited = pattern.sub(_DELIMITER, delimited)

    chunks = [chunk.strip() for chunk in delimited.split(_DELIMITER)]
    chunks = [
        chunk
        for chunk in chunks
        if len(chunk) >= MIN_CHUNK_LENGTH and not _PUNCTUATION_ONLY.match(chunk)
    ]
    if not chunks:
        return None

    best = chunks[0]
    if len(best) < CONTEXTUAL_CHUNK_LENGTH:
        for chunk in chunks:
            if len(chunk) > len(best):
                best = chunk

    stable = _TRAILING_PUNCTUATION.sub("", best).strip()
    stable = _TRAILING_STOPWORD.sub("", stable).strip()

    if len(stable) >= MIN_SEGMENT_LENGTH and any(char.isalpha() for char in stable):
        return stable
    return None


def is_verbatim_stable(text: str | None, stable: str | None) -> bool:
    """True when stabilization kept the whole normalized text."""
    if not text or not stable:
        return False
    return normalize_space(text) == stable
