from __future__ import annotations

from .models import ActionIntent, BestLocator, CandidateMethod, LocatorCandidate

BEST_LOCATOR_PRECEDENCE: tuple[CandidateMethod, ...] = (
    "test_id",
    "role",
    "label",
    "placeholder",
    "text",
    "css",
)
DISPLAY_PRECEDENCE: tuple[CandidateMethod, ...] = BEST_LOCATOR_PRECEDENCE + ("xpath", "alt_text", "framework")

CHECKABLE_INPUT_TYPES = frozenset({"checkbox", "radio"})


def action_intent(tag: str, input_type: str | None = None) -> ActionIntent:
    normalized_tag = (tag or "").strip().lower()
    if normalized_tag == "select":
        return "select"
    if normalized_tag == "textarea":
        return "fill"
    if normalized_tag == "input":
        if (input_type or "").strip().lower() in CHECKABLE_INPUT_TYPES:
            return "check"
        return "fill"
    return "click"


def rank_candidates(
    candidates: list[LocatorCandidate],
    tag: str = "",
    input_type: str | None = None,
) -> BestLocator:
    """Pick the best locator by fixed method precedence.

    A method counts as populated when it produced a locator that matches at
    least one node. The structural XPath only stands in when no CSS locator
    was produced at all.
    """
    action = action_intent(tag, input_type)
    # A bare role without an accessible name is too broad to win.
    by_method = _first_per_method(
        [item for item in candidates if item.method != "role" or item.metadata.get("name")]
    )

    for method in BEST_LOCATOR_PRECEDENCE:
        candidate = by_method.get(method)
        if candidate is not None:
            return BestLocator(method=method, value=candidate.locator, action=action, candidate=candidate)

    xpath = by_method.get("xpath")
    if xpath is not None:
        return BestLocator(method="xpath", value=xpath.locator, action=action, candidate=xpath)

    fallback = next((item for item in candidates if item.locator), None)
    if fallback is not None:
        return BestLocator(method=fallback.method, value=fallback.locator, action=action, candidate=fallback)
    return BestLocator(method="css", value="", action=action)


def order_candidates(candidates: list[LocatorCandidate]) -> list[LocatorCandidate]:
    ranks = {method: index for index, method in enumerate(DISPLAY_PRECEDENCE)}
    indexed = sorted(
        enumerate(candidates),
        key=lambda row: (ranks.get(row[1].method, len(ranks)), not _is_populated(row[1]), row[0]),
    )

    ordered: list[LocatorCandidate] = []
    for position, (_original, candidate) in enumerate(indexed):
        risky = is_risky(candidate)
        label = ""
        if position == 0:
            label = "Recommended"
        elif risky:
            label = "Risky"

        candidate.metadata["recommendation_rank"] = position + 1
        candidate.metadata["recommendation_label"] = label
        candidate.metadata["recommendation_risky"] = risky
        ordered.append(candidate)
    return ordered


def is_risky(candidate: LocatorCandidate) -> bool:
    if candidate.uniqueness_count != 1:
        return True
    if candidate.metadata.get("best_effort") or candidate.metadata.get("disambiguated"):
        return True
    if candidate.kind == "positional":
        return True
    return candidate.method in ("css", "xpath") and candidate.strength == "weak"


def _first_per_method(candidates: list[LocatorCandidate]) -> dict[str, LocatorCandidate]:
    found: dict[str, LocatorCandidate] = {}
    for candidate in candidates:
        if not _is_populated(candidate):
            continue
        found.setdefault(candidate.method, candidate)
    return found


def _is_populated(candidate: LocatorCandidate) -> bool:
    if not candidate.locator:
        return False
    return candidate.uniqueness_count is None or candidate.uniqueness_count > 0
