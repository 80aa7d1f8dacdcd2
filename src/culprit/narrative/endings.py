"""Narrative payloads for the victory and bad endings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

from culprit.confrontation.script import ConfrontationSequence

if TYPE_CHECKING:
    from culprit.accusation.loading import AccusationConfig


@dataclass(frozen=True)
class VictoryPayload:
    culprit_id: str
    culprit_name: str
    confession: str
    reaction: str
    motive: str
    key_evidence: tuple[str, ...]
    key_evidence_names: tuple[str, ...]
    bonus_acknowledgment: str | None = None

    def summary_lines(self) -> list[str]:
        lines = [
            "MYSTERY SOLVED",
            "",
            f"The culprit was: {self.culprit_name}",
            "",
            "Motive:",
            self.motive,
            "",
            "Key evidence:",
        ]
        lines.extend(f"- {name}" for name in self.key_evidence_names)
        if self.bonus_acknowledgment:
            lines.extend(["", self.bonus_acknowledgment])
        return lines


@dataclass(frozen=True)
class BadEndingPayload:
    despair_speech: str
    failure_explanation: str
    actual_culprit: str | None = None
    actual_culprit_name: str | None = None

    def summary_lines(self) -> list[str]:
        lines = ["THE CASE GOES COLD", "", self.failure_explanation]
        if self.actual_culprit_name:
            lines.extend(["", f"The real culprit was: {self.actual_culprit_name}"])
        return lines


def _reaction_for(config: AccusationConfig, suspect_id: str) -> str:
    victory = config.endings.victory
    reaction = victory.reaction_by_suspect.get(suspect_id)
    if reaction:
        return reaction
    return victory.default_reaction or "I... I never expected this..."


def build_victory(
    config: AccusationConfig,
    sequence: ConfrontationSequence,
    key_evidence: Sequence[str],
    found_everything: bool,
    used_bonus_evidence: bool,
) -> VictoryPayload:
    """Assemble the victory payload. The bonus line needs every clue and a bonus presentation."""
    evidence = tuple(dict.fromkeys(key_evidence))
    bonus = None
    if found_everything and used_bonus_evidence:
        bonus = config.endings.victory.bonus_acknowledgment
    return VictoryPayload(
        culprit_id=sequence.suspect_id,
        culprit_name=config.display_name(sequence.suspect_id),
        confession=sequence.confession,
        reaction=_reaction_for(config, sequence.suspect_id),
        motive=sequence.motive,
        key_evidence=evidence,
        key_evidence_names=tuple(config.catalogue.name_for(clue_id) for clue_id in evidence),
        bonus_acknowledgment=bonus,
    )


def build_bad_ending(config: AccusationConfig) -> BadEndingPayload:
    bad_ending = config.endings.bad_ending
    culprit = config.guilty_party if bad_ending.reveal_culprit else None
    return BadEndingPayload(
        despair_speech=bad_ending.despair_speech,
        failure_explanation=bad_ending.failure_explanation,
        actual_culprit=culprit,
        actual_culprit_name=config.display_name(culprit) if culprit else None,
    )
