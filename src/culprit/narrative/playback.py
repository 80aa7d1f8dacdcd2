"""Cooperative phase cursor for ending cutscenes.

Presentation code shows the content for ``current``, waits for either
``timeout_for(current)`` seconds or a continue input, then calls
``advance()``. A skip input jumps straight to the final, dismissible screen.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Sequence

from culprit import config
from culprit.domain.enums import BadEndingPhase, VictoryPhase
from culprit.domain.errors import ContractViolation

VICTORY_PHASES: tuple[VictoryPhase, ...] = (
    VictoryPhase.CONFESSION,
    VictoryPhase.REACTION,
    VictoryPhase.DOOR_UNLOCK,
    VictoryPhase.SUMMARY,
)

BAD_ENDING_PHASES: tuple[BadEndingPhase, ...] = (
    BadEndingPhase.DESPAIR,
    BadEndingPhase.DOOR_UNLOCK,
    BadEndingPhase.FAILURE_SCREEN,
)


class EndingPlayback:
    def __init__(self, phases: Sequence[StrEnum]) -> None:
        if not phases:
            raise ValueError("Ending playback needs at least one phase.")
        self.phases = tuple(phases)
        self._index = 0
        self.entered: list[StrEnum] = [self.phases[0]]
        self.finished = False
        self.skipped = False

    @classmethod
    def victory(cls) -> "EndingPlayback":
        return cls(VICTORY_PHASES)

    @classmethod
    def bad_ending(cls) -> "EndingPlayback":
        return cls(BAD_ENDING_PHASES)

    @property
    def current(self) -> StrEnum | None:
        if self.finished:
            return None
        return self.phases[self._index]

    @property
    def final_phase(self) -> StrEnum:
        return self.phases[-1]

    @property
    def on_final_screen(self) -> bool:
        return not self.finished and self._index == len(self.phases) - 1

    def timeout_for(self, phase: StrEnum) -> float | None:
        return config.PLAYBACK_TIMEOUTS.get(phase.value)

    def advance(self) -> StrEnum | None:
        """Leave the current phase. The final screen only closes through ``dismiss``."""
        self._require_running()
        if self.on_final_screen:
            return self.current
        self._enter(self._index + 1)
        return self.current

    def skip(self) -> StrEnum:
        self._require_running()
        self.skipped = True
        if not self.on_final_screen:
            self._enter(len(self.phases) - 1)
        return self.current

    def dismiss(self) -> None:
        self._require_running()
        if not self.on_final_screen:
            raise ContractViolation(f"Cannot dismiss during {self.current.value}")
        self.finished = True

    def _enter(self, index: int) -> None:
        phase = self.phases[index]
        if phase in self.entered:
            raise ContractViolation(f"Phase {phase.value} already played")
        self._index = index
        self.entered.append(phase)

    def _require_running(self) -> None:
        if self.finished:
            raise ContractViolation("Ending playback already finished")
