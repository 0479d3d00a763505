"""Map controller state to terminal text. No game logic lives here."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional

from .controller import FINISHED, INTRO, PLAYING, REGISTRATION, ControllerState
from .models import Result
from .storage import IS_WEB

ANSI_RESET = "\033[0m"
INLINE_COLOR_MAP = {
    "title": "\033[1;35m",
    "trait": "\033[36m",
    "axis": "\033[33m",
    "shadow": "\033[2;37m",
    "hint": "\033[2m",
}
INLINE_FORMAT_PATTERN = re.compile(r"\{([a-zA-Z_]+):([^}]+)\}")
BAR_WIDTH = 30


def _tag(kind: str, text: str) -> str:
    return "{%s:%s}" % (kind, text) if text else ""


def format_inline(text: str, *, color: bool = True) -> str:
    if not text or "{" not in text:
        return text

    if IS_WEB or not color:
        return INLINE_FORMAT_PATTERN.sub(lambda match: match.group(2), text)

    def replace(match: re.Match[str]) -> str:
        kind = match.group(1).strip().lower()
        value = match.group(2)
        code = INLINE_COLOR_MAP.get(kind)
        if not code:
            return value
        return f"{code}{value}{ANSI_RESET}"

    return INLINE_FORMAT_PATTERN.sub(replace, text)


def dimension_percent(first: int, second: int) -> float:
    """Share of ``first`` in ``first + second``; 50 when both cancel out."""
    total = first + second
    if total == 0:
        return 50.0
    return max(0.0, min(100.0, first / total * 100))


def progress_percent(state: ControllerState) -> float:
    if state.scenario_count <= 0:
        return 0.0
    return (state.scenario_index + 1) / state.scenario_count * 100


def bar(percent: float, width: int = BAR_WIDTH) -> str:
    filled = int(round(max(0.0, min(100.0, percent)) / 100 * width))
    return "[" + "#" * filled + "-" * (width - filled) + "]"


def format_date(timestamp: Any) -> str:
    if not isinstance(timestamp, str):
        return "?"
    try:
        return datetime.fromisoformat(timestamp).date().isoformat()
    except ValueError:
        return timestamp


def render_history(history: Iterable[Mapping[str, Any]], catalog) -> List[str]:
    lines = [catalog.t("buttons.viewArchetypes", "Your archetypes")]
    for idx, entry in enumerate(history, start=1):
        title = entry.get("title") or "?"
        lines.append(f"  {idx}. {title}  ({format_date(entry.get('completed_at'))})")
    return lines


def render_intro(catalog, history: List[Mapping[str, Any]]) -> List[str]:
    lines = [
        _tag("title", catalog.t("app.title", "Evidence")),
        catalog.t("app.subtitle", ""),
        catalog.t("app.tagline", ""),
        "",
        "[S] " + catalog.t("buttons.startJourney", "Start"),
    ]
    if history:
        lines.append("[H] " + catalog.t("buttons.viewArchetypes", "Your archetypes"))
    lines.append(
        _tag("hint", catalog.t("terminal.introMenu", "[G] Language  [X] Export  [I] Import  [C] Clear data  [Q] Quit"))
    )
    return lines


def render_registration(catalog) -> List[str]:
    return [
        _tag("title", catalog.t("form.title", "Identify yourself")),
        catalog.t("form.subtitle", ""),
        "",
        _tag("hint", catalog.t("terminal.registrationHint", "Leave the name blank to skip.")),
    ]


def render_scenario(state: ControllerState, catalog) -> List[str]:
    scenarios = catalog.scenarios
    if not 0 <= state.scenario_index < len(scenarios):
        return [catalog.t("messages.noScenario", "No scenario available.")]
    scenario = scenarios[state.scenario_index]
    percent = progress_percent(state)
    return [
        f"{bar(percent)} {state.scenario_index + 1}/{state.scenario_count}",
        _tag("hint", catalog.t("game.swipeInstruction", "Choose a side")),
        "",
        scenario.question,
        "",
        f"  [1] <- {scenario.left.text}",
        f"  [2] -> {scenario.right.text}",
        "",
        _tag("hint", catalog.t("game.swipeHint", "")),
    ]


def render_card(result: Result, catalog, *, show_shadow: bool = False) -> List[str]:
    archetype = result.archetype
    if show_shadow:
        label = catalog.t("archetype.shadowLabel", "Your shadow")
        body = archetype.shadow or catalog.t("archetype.shadowNotRevealed", "Not revealed yet.")
        body = _tag("shadow", body)
    else:
        label = catalog.t("archetype.label", "Your archetype")
        body = archetype.description

    scores = result.scores
    chaos_share = dimension_percent(scores.chaos, scores.order)
    emotion_share = dimension_percent(scores.emotion, scores.logic)
    axis_label = "{axis:%s} / {axis:%s}"
    return [
        label,
        _tag("title", archetype.title),
        "",
        body,
        "",
        "  ".join(_tag("trait", trait) for trait in archetype.traits),
        "",
        axis_label % (catalog.t("archetype.chaos", "Chaos"), catalog.t("archetype.order", "Order")),
        f"{bar(chaos_share)} {chaos_share:.0f}%",
        axis_label % (catalog.t("archetype.emotion", "Emotion"), catalog.t("archetype.logic", "Logic")),
        f"{bar(emotion_share)} {emotion_share:.0f}%",
    ]


def render_result(state: ControllerState, catalog) -> List[str]:
    if state.result is None:
        return []
    toggle = (
        catalog.t("buttons.returnToLight", "Return to the light")
        if state.show_shadow
        else catalog.t("buttons.revealShadow", "Reveal your shadow")
    )
    lines = render_card(state.result, catalog, show_shadow=state.show_shadow)
    lines.extend(
        [
            "",
            f"[T] {toggle}",
            f"[C] {catalog.t('buttons.saveCard', 'Save card')}",
            f"[R] {catalog.t('buttons.restart', 'Restart')}",
        ]
    )
    return lines


def render(
    state: ControllerState,
    catalog,
    history: Optional[List[Mapping[str, Any]]] = None,
    *,
    color: bool = True,
) -> str:
    if state.phase == INTRO:
        lines = render_intro(catalog, list(history or []))
    elif state.phase == REGISTRATION:
        lines = render_registration(catalog)
    elif state.phase == PLAYING:
        lines = render_scenario(state, catalog)
    elif state.phase == FINISHED:
        lines = render_result(state, catalog)
    else:
        lines = []
    return "\n".join(format_inline(line, color=color) for line in lines)
