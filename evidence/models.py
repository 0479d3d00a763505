"""Value types shared by the quiz controller, content catalog and views."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

AXES: Tuple[str, ...] = ("chaos", "order", "emotion", "logic")
DIRECTIONS: Tuple[str, ...] = ("left", "right")


@dataclass(frozen=True)
class ScoreVector:
    """Running four-axis tally for one playthrough."""

    chaos: int = 0
    order: int = 0
    emotion: int = 0
    logic: int = 0

    def merged(self, impact: Optional[Mapping[str, int]]) -> "ScoreVector":
        """Return a new vector with every delta in ``impact`` added at once.

        Axes missing from ``impact`` keep their value.
        """
        if not impact:
            return self
        updates = {
            axis: getattr(self, axis) + int(impact[axis]) for axis in AXES if axis in impact
        }
        return replace(self, **updates)

    @property
    def total(self) -> int:
        return self.chaos + self.order + self.emotion + self.logic

    def to_dict(self) -> Dict[str, int]:
        return {axis: getattr(self, axis) for axis in AXES}


@dataclass(frozen=True)
class Choice:
    text: str
    impact: Mapping[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class Scenario:
    question: str
    left: Choice
    right: Choice

    def choice(self, direction: str) -> Choice:
        return self.left if direction == "left" else self.right


@dataclass(frozen=True)
class Archetype:
    title: str
    description: str
    shadow: Optional[str] = None
    traits: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "shadow": self.shadow,
            "traits": list(self.traits),
        }


@dataclass(frozen=True)
class Result:
    """A resolved archetype together with the scores that produced it."""

    archetype: Archetype
    scores: ScoreVector
    completed_at: Optional[str] = None

    @property
    def title(self) -> str:
        return self.archetype.title

    def to_dict(self) -> Dict[str, Any]:
        data = self.archetype.to_dict()
        data["dimensions"] = self.scores.to_dict()
        if self.completed_at is not None:
            data["completed_at"] = self.completed_at
        return data


def _parse_choice(scenario: Mapping[str, Any], direction: str) -> Choice:
    raw = scenario.get(direction)
    if isinstance(raw, Mapping):
        text = raw.get("text", "")
        impact = raw.get("impact")
    else:
        # Legacy shape: "left": "text" with impact under "leftChoice".
        text = raw or ""
        legacy = scenario.get(f"{direction}Choice")
        impact = legacy.get("impact") if isinstance(legacy, Mapping) else None
    if not isinstance(impact, Mapping):
        impact = {}
    return Choice(
        text=str(text),
        impact={axis: int(impact[axis]) for axis in AXES if axis in impact},
    )


def parse_scenario(data: Mapping[str, Any]) -> Scenario:
    return Scenario(
        question=str(data.get("question", "")),
        left=_parse_choice(data, "left"),
        right=_parse_choice(data, "right"),
    )


def parse_archetype(data: Mapping[str, Any]) -> Archetype:
    shadow = data.get("shadow")
    return Archetype(
        title=str(data.get("title", "")),
        description=str(data.get("description", "")),
        shadow=shadow if isinstance(shadow, str) and shadow else None,
        traits=tuple(str(trait) for trait in data.get("traits") or []),
    )
