from __future__ import annotations

import pytest

from culprit import config
from culprit.confrontation import validator
from culprit.confrontation.script import ConfrontationStatement, build_requirement
from culprit.domain.enums import Speaker
from culprit.domain.errors import ContractViolation, EvidenceValidationError

DISCOVERED = {"napkin", "papers", "crumbs", "plate", "hideout"}


def _statement(
    statement_id: str,
    required: str | None = None,
    acceptable: list[str] | None = None,
    bonus: str | None = None,
    requires_presentation: bool = True,
    bonus_response: str | None = None,
) -> ConfrontationStatement:
    return ConfrontationStatement(
        id=statement_id,
        text=f"Statement {statement_id}",
        speaker=Speaker.SUSPECT,
        requirement=build_requirement(requires_presentation, required, acceptable, bonus),
        correct_response="Correct!",
        incorrect_response="X",
        bonus_response=bonus_response,
    )


STATEMENTS = (
    _statement("s1", required="napkin"),
    _statement("s2", required="papers", acceptable=["papers", "hideout"]),
    _statement("s3", required="crumbs", bonus="plate", bonus_response="Bonus!"),
)


def _alone(statement: ConfrontationStatement) -> dict:
    return {"accepted_history": (), "statements": (statement,), "current_index": 0}


def _in_sequence(index: int) -> dict:
    return {"accepted_history": (), "statements": STATEMENTS, "current_index": index}


def test_required_evidence_advances():
    result = validator.validate(STATEMENTS[0], "napkin", 0, DISCOVERED, **_in_sequence(0))

    assert result.correct is True
    assert result.should_advance is True
    assert result.confrontation_failed is False
    assert result.mistake_count == 0
    assert result.response_text == "Correct!"


def test_acceptable_evidence_is_authoritative():
    statement = STATEMENTS[1]

    assert validator.validate(statement, "hideout", 0, DISCOVERED, **_alone(statement)).correct is True
    assert validator.validate(statement, "papers", 0, DISCOVERED, **_alone(statement)).correct is True
    assert validator.acceptable_evidence(statement) == frozenset({"papers", "hideout"})


def test_informational_statement_is_trivially_correct():
    statement = _statement("narration", requires_presentation=False)

    result = validator.validate(statement, "napkin", 1, DISCOVERED, **_alone(statement))

    assert result.correct is True
    assert result.should_advance is True
    assert result.mistake_count == 1


def test_bonus_evidence_selects_bonus_response():
    result = validator.validate(STATEMENTS[2], "plate", 0, DISCOVERED, **_in_sequence(2))

    assert result.correct is True
    assert result.is_bonus is True
    assert result.should_advance is True
    assert result.response_text == "Bonus!"


def test_bonus_without_bonus_response_falls_back_to_correct_response():
    statement = _statement("s", required="crumbs", bonus="plate")

    result = validator.validate(statement, "plate", 0, DISCOVERED, **_alone(statement))

    assert result.is_bonus is True
    assert result.response_text == "Correct!"


def test_future_evidence_is_out_of_order_and_free():
    result = validator.validate(STATEMENTS[0], "crumbs", 0, DISCOVERED, **_in_sequence(0))

    assert result.correct is False
    assert result.should_advance is False
    assert result.confrontation_failed is False
    assert result.out_of_order is True
    assert result.mistake_count == 0
    assert result.response_text == config.OUT_OF_ORDER_RESPONSE


def test_evidence_already_used_is_not_out_of_order():
    result = validator.validate(
        STATEMENTS[0],
        "crumbs",
        0,
        DISCOVERED,
        accepted_history=["crumbs"],
        statements=STATEMENTS,
        current_index=0,
    )

    assert result.out_of_order is False
    assert result.mistake_count == 1


def test_evidence_for_earlier_statement_costs_a_mistake():
    result = validator.validate(STATEMENTS[2], "napkin", 0, DISCOVERED, **_in_sequence(2))

    assert result.out_of_order is False
    assert result.mistake_count == 1


def test_three_wrong_presentations_escalate():
    statement = STATEMENTS[0]
    mistakes = 0
    results = []
    for _ in range(3):
        result = validator.validate(statement, "hideout", mistakes, DISCOVERED, **_alone(statement))
        mistakes = result.mistake_count
        results.append(result)

    assert [r.mistake_count for r in results] == [1, 2, 3]
    assert [r.confrontation_failed for r in results] == [False, False, True]
    for count, (result, tier) in enumerate(zip(results, config.PENALTY_TIERS), start=1):
        assert result.response_text == f"X\n\n{tier} (Mistakes: {count}/3)"


def test_validation_is_deterministic():
    first = validator.validate(STATEMENTS[1], "napkin", 1, DISCOVERED, **_in_sequence(1))
    second = validator.validate(STATEMENTS[1], "napkin", 1, DISCOVERED, **_in_sequence(1))

    assert first == second


def test_undiscovered_evidence_is_a_contract_violation():
    with pytest.raises(EvidenceValidationError) as excinfo:
        validator.validate(STATEMENTS[0], "ribbon", 0, DISCOVERED, **_alone(STATEMENTS[0]))

    assert isinstance(excinfo.value, ContractViolation)
    assert excinfo.value.clue_id == "ribbon"
    assert excinfo.value.statement_id == "s1"


@pytest.mark.parametrize(
    ("requires_presentation", "required", "acceptable", "bonus"),
    [
        (False, "napkin", None, None),
        (False, None, None, "plate"),
        (True, None, None, None),
        (True, "napkin", ["papers"], None),
        (True, "napkin", None, "napkin"),
        (True, None, ["papers", "plate"], "plate"),
    ],
)
def test_illegal_requirement_combinations_are_rejected(requires_presentation, required, acceptable, bonus):
    with pytest.raises(ValueError):
        build_requirement(requires_presentation, required, acceptable, bonus)


def test_penalty_message_clamps_to_final_tier():
    assert validator.penalty_message(5, "base").startswith(f"base\n\n{config.PENALTY_TIERS[-1]}")


def test_sequence_context_must_be_given():
    with pytest.raises(TypeError):
        validator.validate(STATEMENTS[0], "crumbs", 0, DISCOVERED)
