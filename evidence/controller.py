"""Game-progression state machine for one quiz playthrough."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence, Tuple

from .models import DIRECTIONS, Archetype, Result, Scenario, ScoreVector
from .scoring import build_result

logger = logging.getLogger(__name__)

INTRO = "intro"
REGISTRATION = "registration"
PLAYING = "playing"
FINISHED = "finished"


@dataclass
class GameProgress:
    phase: str = INTRO
    scenario_index: int = 0
    scores: ScoreVector = field(default_factory=ScoreVector)
    result: Optional[Result] = None
    show_shadow: bool = False


@dataclass(frozen=True)
class ControllerState:
    """Read-only snapshot handed to the presentation layer."""

    phase: str
    scenario_index: int
    scores: ScoreVector
    result: Optional[Result]
    show_shadow: bool
    registered: bool
    scenario_count: int


class GameController:
    """Drive intro -> (registration) -> playing -> finished -> intro.

    The five user intents (begin, register, choose, toggle_shadow, restart)
    plus ``skip_registration`` are the only writers of progress state.
    """

    def __init__(
        self,
        store,
        scenarios: Sequence[Scenario] = (),
        archetypes: Sequence[Archetype] = (),
    ) -> None:
        self.store = store
        self.scenarios: Tuple[Scenario, ...] = tuple(scenarios)
        self.archetypes: Tuple[Archetype, ...] = tuple(archetypes)
        self._progress = GameProgress()

    # ---------- Read side ----------
    @property
    def state(self) -> ControllerState:
        progress = self._progress
        return ControllerState(
            phase=progress.phase,
            scenario_index=progress.scenario_index,
            scores=progress.scores,
            result=progress.result,
            show_shadow=progress.show_shadow,
            registered=self.store.is_registered(),
            scenario_count=len(self.scenarios),
        )

    @property
    def phase(self) -> str:
        return self._progress.phase

    def current_scenario(self) -> Optional[Scenario]:
        if self._progress.phase != PLAYING:
            return None
        index = self._progress.scenario_index
        if 0 <= index < len(self.scenarios):
            return self.scenarios[index]
        return None

    # ---------- Content ----------
    def set_content(
        self, scenarios: Sequence[Scenario], archetypes: Sequence[Archetype]
    ) -> None:
        self.scenarios = tuple(scenarios)
        self.archetypes = tuple(archetypes)
        if self._progress.phase != PLAYING:
            return
        if self.current_scenario() is None:
            logger.warning(
                "Scenario %d no longer exists after content change; returning to intro.",
                self._progress.scenario_index,
            )
            self.restart()
        elif not self.archetypes:
            logger.warning("No archetypes left after content change; returning to intro.")
            self.restart()

    # ---------- Intents ----------
    def begin(self) -> bool:
        if self._progress.phase != INTRO:
            logger.warning("Ignoring start request while in phase '%s'.", self._progress.phase)
            return False
        if not self.scenarios or not self.archetypes:
            logger.warning(
                "Cannot start: %d scenarios and %d archetypes loaded.",
                len(self.scenarios),
                len(self.archetypes),
            )
            return False
        if not self.store.is_registered():
            self._set_phase(REGISTRATION)
            return True
        self._start_playing()
        return True

    def register(self, identity: Mapping[str, Any]) -> bool:
        if self._progress.phase != REGISTRATION:
            logger.warning("Ignoring registration while in phase '%s'.", self._progress.phase)
            return False
        self.store.save_identity(identity)
        self._start_playing()
        return True

    def skip_registration(self) -> bool:
        if self._progress.phase != REGISTRATION:
            return False
        self._start_playing()
        return True

    def choose(self, direction: str) -> bool:
        if direction not in DIRECTIONS:
            logger.warning("Unknown choice direction %r.", direction)
            return False
        scenario = self.current_scenario()
        if scenario is None:
            logger.warning(
                "Ignoring choice '%s' in phase '%s'.", direction, self._progress.phase
            )
            return False

        progress = self._progress
        progress.scores = progress.scores.merged(scenario.choice(direction).impact)
        if progress.scenario_index < len(self.scenarios) - 1:
            progress.scenario_index += 1
        else:
            self._finish()
        return True

    def toggle_shadow(self) -> bool:
        if self._progress.phase != FINISHED:
            return False
        self._progress.show_shadow = not self._progress.show_shadow
        return True

    def restart(self) -> None:
        self._progress = GameProgress()
        logger.debug("Playthrough reset.")

    # ---------- Internal helpers ----------
    def _set_phase(self, phase: str) -> None:
        logger.debug("Phase %s -> %s", self._progress.phase, phase)
        self._progress.phase = phase

    def _start_playing(self) -> None:
        self._progress.scenario_index = 0
        self._progress.scores = ScoreVector()
        self._progress.result = None
        self._progress.show_shadow = False
        self._set_phase(PLAYING)

    def _finish(self) -> None:
        progress = self._progress
        result = build_result(progress.scores, self.archetypes)
        entry = self.store.append_result(result.to_dict())
        if entry is not None:
            completed_at = entry.get("completed_at")
        else:
            completed_at = datetime.now(timezone.utc).isoformat()
        progress.result = replace(result, completed_at=completed_at)
        progress.show_shadow = False
        self._set_phase(FINISHED)
