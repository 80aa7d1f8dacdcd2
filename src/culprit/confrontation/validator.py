"""Evidence validation for confrontation statements.

Everything here is a pure function of its arguments: the same statement,
clue, mistake count and histories always yield the same ``EvidenceResult``.
Callers own all state; this module only judges a single presentation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Collection, Sequence

from culprit import config
from culprit.confrontation.script import ConfrontationStatement
from culprit.domain.errors import EvidenceValidationError


@dataclass(frozen=True)
class EvidenceResult:
    correct: bool
    response_text: str
    should_advance: bool
    confrontation_failed: bool
    mistake_count: int
    is_bonus: bool = False
    out_of_order: bool = False


def acceptable_evidence(statement: ConfrontationStatement) -> frozenset[str]:
    return statement.requirement.accepted_ids


def is_evidence_correct(statement: ConfrontationStatement, clue_id: str) -> bool:
    if not statement.requires_presentation:
        return True
    return statement.accepts(clue_id)


def is_bonus_evidence(statement: ConfrontationStatement, clue_id: str) -> bool:
    return statement.bonus_evidence is not None and statement.bonus_evidence == clue_id


def is_evidence_out_of_order(
    clue_id: str,
    statements: Sequence[ConfrontationStatement],
    current_index: int,
    accepted_history: Collection[str],
) -> bool:
    """True when the clue answers a later statement and has not been used yet."""
    if clue_id in accepted_history:
        return False
    for statement in statements[current_index + 1 :]:
        if statement.accepts(clue_id):
            return True
    return False


def penalty_message(mistake_count: int, base_message: str) -> str:
    tiers = config.PENALTY_TIERS
    severity = max(0, min(mistake_count - 1, len(tiers) - 1))
    return f"{base_message}\n\n{tiers[severity]} (Mistakes: {mistake_count}/{config.MAX_MISTAKES})"


def penalize(statement: ConfrontationStatement, mistake_count: int) -> EvidenceResult:
    new_count = mistake_count + 1
    return EvidenceResult(
        correct=False,
        response_text=penalty_message(new_count, statement.incorrect_response),
        should_advance=False,
        confrontation_failed=new_count >= config.MAX_MISTAKES,
        mistake_count=new_count,
    )


def validate(
    statement: ConfrontationStatement,
    clue_id: str,
    mistake_count: int,
    discovered_ids: Collection[str],
    *,
    accepted_history: Collection[str],
    statements: Sequence[ConfrontationStatement],
    current_index: int,
) -> EvidenceResult:
    if clue_id not in discovered_ids:
        raise EvidenceValidationError(
            "Cannot present undiscovered clue",
            statement_id=statement.id,
            clue_id=clue_id,
        )

    bonus = is_bonus_evidence(statement, clue_id)
    if is_evidence_correct(statement, clue_id) or bonus:
        if bonus and statement.bonus_response:
            response = statement.bonus_response
        else:
            response = statement.correct_response
        return EvidenceResult(
            correct=True,
            response_text=response,
            should_advance=True,
            confrontation_failed=False,
            mistake_count=mistake_count,
            is_bonus=bonus,
        )

    if is_evidence_out_of_order(clue_id, statements, current_index, accepted_history):
        return EvidenceResult(
            correct=False,
            response_text=config.OUT_OF_ORDER_RESPONSE,
            should_advance=False,
            confrontation_failed=False,
            mistake_count=mistake_count,
            out_of_order=True,
        )

    return penalize(statement, mistake_count)
