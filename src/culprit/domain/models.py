"""Document models for the accusation configuration."""

from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field

from culprit.domain.enums import Speaker


class StatementDocument(BaseModel):
    """One statement as authored in ``accusation.yml``.

    The optional evidence fields are compiled into an ``EvidenceRequirement``
    at load time; nothing past the loader reads them directly.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    text: str
    speaker: Speaker = Speaker.SUSPECT
    requires_presentation: bool = True
    required_evidence: str | None = None
    acceptable_evidence: List[str] | None = None
    bonus_evidence: str | None = None
    correct_response: str = ""
    incorrect_response: str = ""
    bonus_response: str | None = None


class SequenceDocument(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    suspect_id: str | None = None
    motive: str
    confession: str
    statements: List[StatementDocument] = Field(default_factory=list)


class RejectionDialog(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    speaker: str = "accuser"
    text: str


DEFAULT_REJECTION = RejectionDialog(
    speaker="accuser",
    text="This is unacceptable! Too many mistakes. Please investigate more thoroughly!",
)


class AccusationRules(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    guilty_party: str = Field(min_length=1)
    minimum_clues_required: int = Field(ge=1)
    allow_partial_evidence: bool = False
    rejection_dialog: RejectionDialog = DEFAULT_REJECTION


class VictoryEnding(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    reaction_by_suspect: Dict[str, str] = Field(default_factory=dict)
    bonus_acknowledgment: str
    default_reaction: str | None = None


class BadEnding(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    despair_speech: str
    failure_explanation: str
    reveal_culprit: bool = True


class Endings(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    victory: VictoryEnding
    bad_ending: BadEnding


class AccusationDocument(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    version: str = "1.0"
    rules: AccusationRules
    accuser: str = "accuser"
    suspects: Dict[str, str] = Field(default_factory=dict)
    confrontations: Dict[str, SequenceDocument]
    endings: Endings
