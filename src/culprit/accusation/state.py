"""Persisted accusation state."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from culprit import config
from culprit.confrontation.machine import ConfrontationProgress
from culprit.domain.enums import Verdict
from culprit.domain.errors import PersistenceFailure


class AccusationState(BaseModel):
    """Cross-session accusation progress.

    ``current_confrontation`` lives only in memory and is never serialized,
    so a restored state always starts outside of any attempt.
    """

    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    failed_accusations: int = Field(default=0, ge=0, le=config.MAX_FAILED_ACCUSATIONS)
    accused_suspects: List[str] = Field(default_factory=list)
    last_attempt_at: datetime | None = None
    verdict: Verdict | None = None
    current_confrontation: ConfrontationProgress | None = Field(default=None, exclude=True)

    @model_validator(mode="after")
    def _bad_ending_is_terminal(self) -> "AccusationState":
        if self.failed_accusations >= config.MAX_FAILED_ACCUSATIONS and self.verdict is None:
            self.verdict = Verdict.BAD_ENDING
        return self

    @property
    def is_closed(self) -> bool:
        return self.verdict is not None

    def record_accused(self, suspect_id: str) -> None:
        if suspect_id not in self.accused_suspects:
            self.accused_suspects.append(suspect_id)

    def copy_for_caller(self) -> "AccusationState":
        clone = self.model_copy(deep=False)
        clone.accused_suspects = list(self.accused_suspects)
        if self.current_confrontation is not None:
            clone.current_confrontation = self.current_confrontation.snapshot()
        return clone

    def to_payload(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_payload(cls, payload: str) -> "AccusationState":
        try:
            return cls.model_validate_json(payload)
        except ValidationError as exc:
            raise PersistenceFailure(f"Stored accusation state is unreadable: {exc}") from exc
