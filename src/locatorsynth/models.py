from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

SelectorKind = Literal["css", "xpath"]
CandidateKind = Literal["id", "attribute", "text", "class", "compound", "positional"]
CandidateMethod = Literal[
    "test_id",
    "role",
    "label",
    "placeholder",
    "alt_text",
    "text",
    "css",
    "xpath",
    "framework",
]
Strength = Literal["strong", "weak"]
ActionIntent = Literal["click", "fill", "select", "check"]


@dataclass(frozen=True, slots=True)
class MatchResult:
    count: int
    ordinal: int | None = None
    targeted: bool = False

    @property
    def unique(self) -> bool:
        if self.count != 1:
            return False
        # A targeted check is only unique when the single match is the target.
        return self.ordinal == 1 if self.targeted else True


@dataclass(frozen=True, slots=True)
class SynthesizedLocator:
    expression: str
    kind: SelectorKind
    match: MatchResult
    strategy: str
    disambiguated: bool = False

    @property
    def unique(self) -> bool:
        return self.match.unique

    @property
    def best_effort(self) -> bool:
        return not self.match.unique


@dataclass(slots=True)
class LocatorCandidate:
    method: CandidateMethod
    locator: str
    kind: CandidateKind
    uniqueness_count: int | None = None
    strength: Strength = "weak"
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class BestLocator:
    method: CandidateMethod
    value: str
    action: ActionIntent
    candidate: LocatorCandidate | None = None

    @property
    def guaranteed(self) -> bool:
        if self.candidate is None:
            return False
        return self.candidate.uniqueness_count == 1 and not self.candidate.metadata.get("best_effort")


@dataclass(frozen=True, slots=True)
class FrameBoundary:
    selector: str
    frame_id: str = ""
    frame_name: str = ""

    def scoped(self, expression: str, kind: SelectorKind = "css") -> str:
        engine = "xpath=" if kind == "xpath" else ""
        return f"{self.selector} >> internal:control=enter-frame >> {engine}{expression}"


@dataclass(slots=True)
class SynthesisResult:
    tag: str
    element_id: str
    input_type: str
    css: SynthesizedLocator
    xpath: SynthesizedLocator
    candidates: list[LocatorCandidate]
    best: BestLocator
    frameworks: list[Any] = field(default_factory=list)
    frontend_framework: str = "unknown"
    frame: FrameBoundary | None = None
    snapshot: str = ""

    def to_payload(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "id": self.element_id,
            "inputType": self.input_type,
            "css": _locator_payload(self.css),
            "xpath": _locator_payload(self.xpath),
            "candidates": [
                {
                    "method": item.method,
                    "locator": item.locator,
                    "kind": item.kind,
                    "strength": item.strength,
                    "uniqueness_count": item.uniqueness_count,
                    "label": item.metadata.get("recommendation_label", ""),
                }
                for item in self.candidates
            ],
            "best": {
                "method": self.best.method,
                "value": self.best.value,
                "action": self.best.action,
                "guaranteed": self.best.guaranteed,
            },
            "frameworks": [item.to_payload() for item in self.frameworks],
            "framework": self.frontend_framework,
            "frame": (
                {
                    "selector": self.frame.selector,
                    "id": self.frame.frame_id,
                    "name": self.frame.frame_name,
                }
                if self.frame
                else None
            ),
            "outerHTML": self.snapshot,
        }


def _locator_payload(locator: SynthesizedLocator) -> dict[str, Any]:
    return {
        "expression": locator.expression,
        "strategy": locator.strategy,
        "count": locator.match.count,
        "unique": locator.unique,
        "disambiguated": locator.disambiguated,
        "best_effort": locator.best_effort,
    }
