"""Validation for quiz content documents (text table, scenarios, archetypes)."""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Sequence

from .models import AXES, DIRECTIONS


def path(*parts: object) -> str:
    path_str = ""
    for part in parts:
        if isinstance(part, int):
            path_str = f"{path_str}[{part}]"
            continue
        if not isinstance(part, str):
            part = str(part)
        if part.isidentifier():
            path_str = f"{path_str}.{part}" if path_str else part
        else:
            path_str = f"{path_str}[{json.dumps(part)}]"
    return path_str


def format_validation_message(path_str: str, context: str, message: str) -> str:
    if context:
        return f"{path_str}: {context}: {message}"
    return f"{path_str}: {message}"


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def _is_list(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes, Mapping))


class ValidationContext:
    """Utility container for accumulating validation errors."""

    def __init__(self) -> None:
        self.errors: List[str] = []

    def add(self, context: str, path_str: str, message: str) -> None:
        self.errors.append(format_validation_message(path_str, context, message))


def validate_impact(
    impact: Any, context: str, path_parts: Sequence[object], ctx: ValidationContext
) -> None:
    if impact is None:
        return
    if not isinstance(impact, Mapping):
        ctx.add(context, path(*path_parts), "impact must be an object mapping axes to integers.")
        return
    for axis, delta in impact.items():
        if axis not in AXES:
            ctx.add(
                context,
                path(*path_parts, axis),
                f"unknown axis '{axis}' (expected one of {', '.join(AXES)}).",
            )
            continue
        if isinstance(delta, bool) or not isinstance(delta, int):
            ctx.add(context, path(*path_parts, axis), "impact deltas must be integers.")


def validate_scenario(
    scenario: Any, index: int, path_parts: Sequence[object], ctx: ValidationContext
) -> None:
    context = f"Scenario {index}"
    if not isinstance(scenario, Mapping):
        ctx.add(context, path(*path_parts), "must be an object.")
        return
    if not is_non_empty_str(scenario.get("question")):
        ctx.add(context, path(*path_parts, "question"), "requires a non-empty 'question'.")

    for direction in DIRECTIONS:
        raw = scenario.get(direction)
        if isinstance(raw, Mapping):
            if not is_non_empty_str(raw.get("text")):
                ctx.add(
                    context,
                    path(*path_parts, direction, "text"),
                    f"{direction} choice requires non-empty 'text'.",
                )
            validate_impact(
                raw.get("impact"), context, (*path_parts, direction, "impact"), ctx
            )
            continue
        if not is_non_empty_str(raw):
            ctx.add(
                context,
                path(*path_parts, direction),
                f"requires a '{direction}' choice object.",
            )
            continue
        legacy_key = f"{direction}Choice"
        legacy = scenario.get(legacy_key)
        if legacy is None:
            continue
        if not isinstance(legacy, Mapping):
            ctx.add(context, path(*path_parts, legacy_key), "must be an object.")
            continue
        validate_impact(legacy.get("impact"), context, (*path_parts, legacy_key, "impact"), ctx)


def validate_archetype(
    archetype: Any, index: int, path_parts: Sequence[object], ctx: ValidationContext
) -> None:
    context = f"Archetype {index}"
    if not isinstance(archetype, Mapping):
        ctx.add(context, path(*path_parts), "must be an object.")
        return
    for key in ("title", "description"):
        if not is_non_empty_str(archetype.get(key)):
            ctx.add(context, path(*path_parts, key), f"requires a non-empty '{key}'.")
    shadow = archetype.get("shadow")
    if shadow is not None and not isinstance(shadow, str):
        ctx.add(context, path(*path_parts, "shadow"), "'shadow' must be a string if present.")
    traits = archetype.get("traits", [])
    if not _is_list(traits) or not all(isinstance(trait, str) for trait in traits):
        ctx.add(context, path(*path_parts, "traits"), "'traits' must be a list of strings.")


def validate_content(document: Any, *, allow_empty: bool = True) -> List[str]:
    """Return path-prefixed error messages for a content document.

    With ``allow_empty`` false, empty scenario or archetype lists are errors too.
    """
    ctx = ValidationContext()
    if not isinstance(document, Mapping):
        ctx.add("Content", "$", "document must be a JSON object.")
        return ctx.errors

    for section, validator in (
        ("scenarios", validate_scenario),
        ("archetypes", validate_archetype),
    ):
        entries = document.get(section, [])
        if not _is_list(entries):
            ctx.add("Content", path(section), f"'{section}' must be a list.")
            continue
        if not entries and not allow_empty:
            ctx.add("Content", path(section), f"'{section}' must not be empty.")
        for idx, entry in enumerate(entries, start=1):
            validator(entry, idx, (section, idx - 1), ctx)

    return ctx.errors
