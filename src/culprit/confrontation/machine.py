"""State machine for a single accusation attempt."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import logging
from typing import Collection, Mapping

from culprit import config
from culprit.confrontation import validator
from culprit.confrontation.script import ConfrontationSequence, ConfrontationStatement
from culprit.confrontation.validator import EvidenceResult
from culprit.domain.enums import ConfrontationPhase
from culprit.domain.errors import ConfigurationError, ContractViolation

logger = logging.getLogger(__name__)


@dataclass
class ConfrontationProgress:
    suspect_id: str
    current_statement_index: int = 0
    mistake_count: int = 0
    presented_evidence: list[str] = field(default_factory=list)
    accepted_evidence: list[str] = field(default_factory=list)
    key_evidence: list[str] = field(default_factory=list)
    bonus_evidence_presented: list[str] = field(default_factory=list)
    started_at: datetime | None = None

    def snapshot(self) -> "ConfrontationProgress":
        return ConfrontationProgress(
            suspect_id=self.suspect_id,
            current_statement_index=self.current_statement_index,
            mistake_count=self.mistake_count,
            presented_evidence=list(self.presented_evidence),
            accepted_evidence=list(self.accepted_evidence),
            key_evidence=list(self.key_evidence),
            bonus_evidence_presented=list(self.bonus_evidence_presented),
            started_at=self.started_at,
        )


class ConfrontationMachine:
    """NotStarted -> InProgress -> Succeeded | Failed.

    The machine owns ``ConfrontationProgress`` for one attempt. It asks the
    validator for a verdict and applies it; it never decides what a success
    or failure means for the playthrough.
    """

    def __init__(self, sequences: Mapping[str, ConfrontationSequence]) -> None:
        self._sequences = sequences
        self.phase = ConfrontationPhase.NOT_STARTED
        self.sequence: ConfrontationSequence | None = None
        self.progress: ConfrontationProgress | None = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in (ConfrontationPhase.SUCCEEDED, ConfrontationPhase.FAILED)

    @property
    def is_active(self) -> bool:
        return self.phase == ConfrontationPhase.IN_PROGRESS

    @property
    def statements(self) -> tuple[ConfrontationStatement, ...]:
        return self.sequence.statements if self.sequence else ()

    @property
    def current_statement(self) -> ConfrontationStatement | None:
        if self.sequence is None or self.progress is None:
            return None
        return self.sequence.statement_at(self.progress.current_statement_index)

    def start(self, suspect_id: str, started_at: datetime | None = None) -> ConfrontationStatement:
        if self.phase != ConfrontationPhase.NOT_STARTED:
            raise ContractViolation(f"Confrontation already {self.phase.value}")
        sequence = self._sequences.get(suspect_id)
        if sequence is None:
            raise ConfigurationError([f"No confrontation sequence defined for suspect: {suspect_id}"])
        self.sequence = sequence
        self.progress = ConfrontationProgress(suspect_id=suspect_id, started_at=started_at)
        self.phase = ConfrontationPhase.IN_PROGRESS
        logger.debug("Confrontation with %s started (%d statements)", suspect_id, len(sequence))
        return sequence.statements[0]

    def present_evidence(self, clue_id: str, discovered_ids: Collection[str]) -> EvidenceResult:
        progress = self._require_active()
        statement = self.current_statement
        result = validator.validate(
            statement,
            clue_id,
            progress.mistake_count,
            discovered_ids,
            accepted_history=progress.accepted_evidence,
            statements=self.statements,
            current_index=progress.current_statement_index,
        )
        progress.presented_evidence.append(clue_id)
        progress.mistake_count = result.mistake_count
        if result.should_advance:
            if statement.requires_presentation:
                progress.accepted_evidence.append(clue_id)
                if statement.accepts(clue_id) and clue_id not in progress.key_evidence:
                    progress.key_evidence.append(clue_id)
            if result.is_bonus:
                progress.bonus_evidence_presented.append(clue_id)
            self._advance()
        elif result.confrontation_failed:
            self.phase = ConfrontationPhase.FAILED
        logger.debug(
            "Evidence %s against %s: correct=%s out_of_order=%s mistakes=%d",
            clue_id,
            statement.id,
            result.correct,
            result.out_of_order,
            result.mistake_count,
        )
        return result

    def advance_informational(self) -> None:
        self._require_active()
        statement = self.current_statement
        if statement.requires_presentation:
            raise ContractViolation(f"Statement {statement.id} requires evidence")
        self._advance()

    def skip_statement(self) -> EvidenceResult:
        """Pass a statement without evidence, paying one mistake for it."""
        progress = self._require_active()
        statement = self.current_statement
        if not statement.requires_presentation:
            raise ContractViolation(f"Statement {statement.id} is informational; advance it instead")
        new_count = progress.mistake_count + 1
        failed = new_count >= config.MAX_MISTAKES
        result = EvidenceResult(
            correct=False,
            response_text=validator.penalty_message(new_count, config.SKIP_RESPONSE),
            should_advance=not failed,
            confrontation_failed=failed,
            mistake_count=new_count,
        )
        progress.mistake_count = new_count
        if failed:
            self.phase = ConfrontationPhase.FAILED
        else:
            self._advance()
        return result

    def cancel(self) -> None:
        if self.is_terminal:
            raise ContractViolation(f"Cannot cancel a {self.phase.value} confrontation")
        self.sequence = None
        self.progress = None
        self.phase = ConfrontationPhase.NOT_STARTED

    def _advance(self) -> None:
        progress = self.progress
        progress.current_statement_index += 1
        if progress.current_statement_index >= len(self.sequence):
            self.phase = ConfrontationPhase.SUCCEEDED

    def _require_active(self) -> ConfrontationProgress:
        if self.phase != ConfrontationPhase.IN_PROGRESS or self.progress is None:
            raise ContractViolation("No active confrontation")
        return self.progress
