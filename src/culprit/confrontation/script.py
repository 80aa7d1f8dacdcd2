"""Compiled confrontation scripts: statements and their evidence requirements."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from culprit.domain.enums import Speaker


@dataclass(frozen=True)
class Informational:
    """Narration only; the statement advances without evidence."""

    requires_presentation = False
    bonus_evidence = None

    def accepts(self, clue_id: str) -> bool:
        return False

    @property
    def accepted_ids(self) -> frozenset[str]:
        return frozenset()


@dataclass(frozen=True)
class SingleEvidence:
    evidence_id: str
    bonus_evidence: str | None = None

    requires_presentation = True

    def accepts(self, clue_id: str) -> bool:
        return clue_id == self.evidence_id

    @property
    def accepted_ids(self) -> frozenset[str]:
        return frozenset({self.evidence_id})


@dataclass(frozen=True)
class AnyOfEvidence:
    evidence_ids: frozenset[str]
    primary: str | None = None
    bonus_evidence: str | None = None

    requires_presentation = True

    def accepts(self, clue_id: str) -> bool:
        return clue_id in self.evidence_ids

    @property
    def accepted_ids(self) -> frozenset[str]:
        return self.evidence_ids


EvidenceRequirement = Union[Informational, SingleEvidence, AnyOfEvidence]


def build_requirement(
    requires_presentation: bool,
    required_evidence: str | None = None,
    acceptable_evidence: list[str] | None = None,
    bonus_evidence: str | None = None,
) -> EvidenceRequirement:
    """Collapse the authored optional fields into a single requirement.

    Raises ``ValueError`` for combinations the document may not express.
    """
    if not requires_presentation:
        if required_evidence or acceptable_evidence or bonus_evidence:
            raise ValueError("informational statements cannot name evidence")
        return Informational()
    if acceptable_evidence:
        ids = frozenset(acceptable_evidence)
        if required_evidence and required_evidence not in ids:
            raise ValueError(
                f"acceptable_evidence must include required_evidence {required_evidence!r}"
            )
        if bonus_evidence and bonus_evidence in ids:
            raise ValueError(f"bonus evidence {bonus_evidence!r} is already acceptable evidence")
        return AnyOfEvidence(evidence_ids=ids, primary=required_evidence, bonus_evidence=bonus_evidence)
    if required_evidence:
        if bonus_evidence == required_evidence:
            raise ValueError(f"bonus evidence {bonus_evidence!r} is already the required evidence")
        return SingleEvidence(evidence_id=required_evidence, bonus_evidence=bonus_evidence)
    raise ValueError("statement requires evidence but has none defined")


@dataclass(frozen=True)
class ConfrontationStatement:
    id: str
    text: str
    speaker: Speaker
    requirement: EvidenceRequirement
    correct_response: str = ""
    incorrect_response: str = ""
    bonus_response: str | None = None

    @property
    def requires_presentation(self) -> bool:
        return self.requirement.requires_presentation

    @property
    def bonus_evidence(self) -> str | None:
        return self.requirement.bonus_evidence

    def accepts(self, clue_id: str) -> bool:
        return self.requirement.accepts(clue_id)

    def referenced_evidence(self) -> set[str]:
        ids = set(self.requirement.accepted_ids)
        if self.requirement.bonus_evidence:
            ids.add(self.requirement.bonus_evidence)
        return ids


@dataclass(frozen=True)
class ConfrontationSequence:
    suspect_id: str
    motive: str
    confession: str
    statements: tuple[ConfrontationStatement, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.statements)

    def statement_at(self, index: int) -> ConfrontationStatement | None:
        if 0 <= index < len(self.statements):
            return self.statements[index]
        return None
