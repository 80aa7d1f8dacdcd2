from __future__ import annotations

from datetime import datetime, timezone

import pytest

from culprit.accusation.coordinator import AccusationCoordinator
from culprit.accusation.loading import parse_accusation_config
from culprit.accusation.notifications import (
    AccusationCancelled,
    AccusationStarted,
    BadEndingTriggered,
    ConfrontationFailed,
    ConfrontationSucceeded,
    EvidencePresented,
    NotificationChannel,
    NotificationLog,
    StateReset,
    StatementAdvanced,
    SuspectSelectionOpened,
    VictoryTriggered,
)
from culprit.clues.catalogue import ClueLedger
from culprit.domain.enums import RejectionReason, ResolutionKind, Verdict
from culprit.domain.errors import ConfigurationError, ContractViolation, EvidenceValidationError
from culprit.persistence.db import MemoryAccusationStore

from conftest import CLUE_IDS, build_document


def _fail(coordinator, suspect_id):
    coordinator.start_accusation(suspect_id)
    outcome = None
    for _ in range(3):
        outcome = coordinator.present_evidence("plate")
    return outcome


@pytest.mark.parametrize("discovered", [0, 1, 2, 3])
def test_gate_refuses_below_minimum(coordinator, discovered):
    gate = coordinator.can_initiate_accusation(discovered)

    assert gate.allowed is False
    assert gate.minimum_required == 4
    assert gate.reason == f"You need at least 4 clues to make an accusation. You have {discovered}."


@pytest.mark.parametrize("discovered", [4, 5, 6])
def test_gate_allows_at_or_above_minimum(coordinator, discovered):
    gate = coordinator.can_initiate_accusation(discovered)

    assert gate.allowed is True
    assert gate.reason is None


def test_gate_reads_the_ledger_by_default(accusation_config, catalogue):
    coordinator = AccusationCoordinator(accusation_config, ClueLedger(catalogue, ["napkin", "papers", "crumbs"]))

    gate = coordinator.can_initiate_accusation()

    assert gate.allowed is False
    assert gate.discovered == 3
    with pytest.raises(ContractViolation):
        coordinator.start_accusation("emma")
    with pytest.raises(ContractViolation):
        coordinator.start_suspect_selection()


def test_suspect_selection_excludes_the_accuser(coordinator, notifications):
    suspects = coordinator.start_suspect_selection()

    assert suspects == ["emma", "luca"]
    assert coordinator.get_available_suspects() == ["emma", "luca"]
    opened = notifications.of_type(SuspectSelectionOpened)
    assert opened == [SuspectSelectionOpened(suspects=("emma", "luca"), accused=())]


def test_start_accusation_records_suspect(coordinator, store, notifications):
    first = coordinator.start_accusation("emma")

    assert first.id == "e1"
    assert coordinator.get_current_statement() == first
    assert coordinator.has_suspect_been_accused("emma")
    assert not coordinator.has_suspect_been_accused("luca")
    assert coordinator.get_state().current_confrontation.suspect_id == "emma"
    assert '"accused_suspects":["emma"]' in store.payload
    assert notifications.of_type(AccusationStarted)[0].suspect_id == "emma"


def test_only_one_confrontation_at_a_time(coordinator):
    coordinator.start_accusation("emma")
    with pytest.raises(ContractViolation):
        coordinator.start_accusation("luca")


def test_unknown_suspect_is_rejected(coordinator):
    with pytest.raises(ConfigurationError):
        coordinator.start_accusation("nobody")
    assert coordinator.get_current_statement() is None
    assert not coordinator.has_suspect_been_accused("nobody")


def test_presenting_without_confrontation_is_a_contract_violation(coordinator):
    with pytest.raises(ContractViolation):
        coordinator.present_evidence("napkin")


def test_presenting_undiscovered_evidence_is_a_contract_violation(coordinator):
    coordinator.start_accusation("emma")
    with pytest.raises(EvidenceValidationError):
        coordinator.present_evidence("ribbon")


def test_correct_run_against_culprit_is_a_victory(coordinator, notifications):
    coordinator.start_accusation("emma")
    outcomes = [coordinator.present_evidence(clue) for clue in ("napkin", "papers", "crumbs")]

    assert [o.result.should_advance for o in outcomes] == [True, True, True]
    assert outcomes[0].next_statement.id == "e2"
    resolution = outcomes[-1].resolution
    assert resolution.kind == ResolutionKind.VICTORY
    assert resolution.victory.culprit_id == "emma"
    assert resolution.victory.confession == "I took it."
    assert resolution.victory.reaction == "Emma? I trusted you!"
    assert resolution.victory.key_evidence == ("napkin", "papers", "crumbs")
    assert resolution.victory.bonus_acknowledgment is None

    state = coordinator.get_state()
    assert state.verdict == Verdict.SOLVED
    assert state.current_confrontation is None
    assert coordinator.is_closed
    assert len(notifications.of_type(StatementAdvanced)) == 2
    assert len(notifications.of_type(ConfrontationSucceeded)) == 1
    assert len(notifications.of_type(VictoryTriggered)) == 1
    assert [n.correct for n in notifications.of_type(EvidencePresented)] == [True, True, True]


def test_bonus_acknowledgment_needs_every_clue(accusation_config, catalogue):
    coordinator = AccusationCoordinator(accusation_config, ClueLedger(catalogue, CLUE_IDS))
    coordinator.start_accusation("emma")
    coordinator.present_evidence("napkin")
    coordinator.present_evidence("papers")
    outcome = coordinator.present_evidence("plate")

    assert outcome.result.is_bonus is True
    assert outcome.resolution.victory.bonus_acknowledgment == "You found every clue!"
    assert outcome.resolution.victory.key_evidence == ("napkin", "papers")


def test_bonus_without_every_clue_is_not_acknowledged(coordinator):
    coordinator.start_accusation("emma")
    coordinator.present_evidence("napkin")
    coordinator.present_evidence("papers")
    outcome = coordinator.present_evidence("plate")

    assert outcome.resolution.kind == ResolutionKind.VICTORY
    assert outcome.resolution.victory.bonus_acknowledgment is None


def test_out_of_order_evidence_is_free(coordinator, notifications):
    coordinator.start_accusation("emma")
    outcome = coordinator.present_evidence("crumbs")

    assert outcome.result.correct is False
    assert outcome.result.should_advance is False
    assert outcome.result.confrontation_failed is False
    assert outcome.resolution is None
    assert outcome.next_statement.id == "e1"
    assert coordinator.get_current_confrontation().mistake_count == 0
    assert notifications.of_type(EvidencePresented)[0].out_of_order is True
    assert notifications.of_type(StatementAdvanced) == []


def test_three_mistakes_reject_the_accusation(coordinator, notifications):
    coordinator.start_accusation("emma")
    outcomes = [coordinator.present_evidence("plate") for _ in range(3)]

    assert [o.result.mistake_count for o in outcomes] == [1, 2, 3]
    assert [o.result.confrontation_failed for o in outcomes] == [False, False, True]
    resolution = outcomes[-1].resolution
    assert resolution.kind == ResolutionKind.REJECTED
    assert resolution.reason == RejectionReason.TOO_MANY_MISTAKES
    assert resolution.failed_accusations == 1
    assert resolution.rejection_dialog.speaker == "valentin"
    assert coordinator.get_state().failed_accusations == 1
    assert not coordinator.is_closed
    assert notifications.of_type(ConfrontationFailed) == [
        ConfrontationFailed(suspect_id="emma", failed_accusations=1, reason=RejectionReason.TOO_MANY_MISTAKES)
    ]


def test_two_failures_trigger_the_bad_ending_once(coordinator, notifications, store):
    first = _fail(coordinator, "emma").resolution
    second = _fail(coordinator, "luca").resolution

    assert first.kind == ResolutionKind.REJECTED
    assert second.kind == ResolutionKind.BAD_ENDING
    assert second.bad_ending.actual_culprit == "emma"
    assert second.bad_ending.despair_speech == "All is lost."
    state = coordinator.get_state()
    assert state.failed_accusations == 2
    assert state.verdict == Verdict.BAD_ENDING
    assert '"verdict":"bad_ending"' in store.payload
    assert len(notifications.of_type(BadEndingTriggered)) == 1

    assert coordinator.can_initiate_accusation().allowed is False
    with pytest.raises(ContractViolation):
        coordinator.start_accusation("emma")
    assert len(notifications.of_type(BadEndingTriggered)) == 1


def test_innocent_suspect_cleared_counts_as_failure(coordinator, notifications):
    coordinator.start_accusation("luca")
    outcome = coordinator.present_evidence("napkin")

    assert outcome.result.should_advance is True
    assert outcome.resolution.kind == ResolutionKind.REJECTED
    assert outcome.resolution.reason == RejectionReason.WRONG_SUSPECT
    assert coordinator.get_state().failed_accusations == 1
    assert len(notifications.of_type(ConfrontationSucceeded)) == 1
    assert notifications.of_type(VictoryTriggered) == []


def test_cancel_leaves_persistent_history_alone(coordinator, notifications, store):
    _fail(coordinator, "luca")
    coordinator.start_accusation("emma")
    coordinator.present_evidence("napkin")
    coordinator.present_evidence("plate")
    before = store.payload

    coordinator.cancel_accusation()

    state = coordinator.get_state()
    assert state.failed_accusations == 1
    assert state.accused_suspects == ["luca", "emma"]
    assert state.current_confrontation is None
    assert coordinator.get_current_statement() is None
    assert store.payload == before
    assert notifications.of_type(AccusationCancelled) == [AccusationCancelled(suspect_id="emma")]

    first = coordinator.start_accusation("emma")
    assert first.id == "e1"
    assert coordinator.get_current_confrontation().mistake_count == 0


def test_cancel_without_confrontation_does_nothing(coordinator, notifications):
    coordinator.cancel_accusation()

    assert notifications.of_type(AccusationCancelled) == []


def test_state_survives_a_new_coordinator(accusation_config, ledger, store):
    first = AccusationCoordinator(accusation_config, ledger, store=store)
    _fail(first, "emma")
    first.start_accusation("luca")

    second = AccusationCoordinator(accusation_config, ledger, store=store)
    state = second.get_state()

    assert state.failed_accusations == 1
    assert state.accused_suspects == ["emma", "luca"]
    assert state.current_confrontation is None
    assert second.get_current_statement() is None


def test_get_state_returns_a_copy(coordinator):
    coordinator.start_accusation("emma")
    state = coordinator.get_state()
    state.accused_suspects.append("luca")
    state.current_confrontation.mistake_count = 3

    assert coordinator.get_state().accused_suspects == ["emma"]
    assert coordinator.get_current_confrontation().mistake_count == 0


def test_reset_state_starts_a_new_playthrough(coordinator, notifications, store):
    _fail(coordinator, "emma")
    _fail(coordinator, "luca")
    assert coordinator.is_closed

    coordinator.reset_state()

    state = coordinator.get_state()
    assert state.failed_accusations == 0
    assert state.accused_suspects == []
    assert state.verdict is None
    assert store.payload is None
    assert len(notifications.of_type(StateReset)) == 1
    assert coordinator.can_initiate_accusation().allowed is True


def test_last_attempt_uses_the_injected_clock(accusation_config, ledger):
    moment = datetime(2024, 3, 1, 20, 30, tzinfo=timezone.utc)
    coordinator = AccusationCoordinator(accusation_config, ledger, clock=lambda: moment)
    coordinator.start_accusation("emma")

    assert coordinator.get_state().last_attempt_at == moment
    assert coordinator.get_current_confrontation().started_at == moment


def test_resolution_hooks_require_a_terminal_confrontation(coordinator):
    with pytest.raises(ContractViolation):
        coordinator.on_confrontation_success("emma")
    coordinator.start_accusation("emma")
    with pytest.raises(ContractViolation):
        coordinator.on_confrontation_failed("emma")


def test_skip_requires_partial_evidence(coordinator):
    coordinator.start_accusation("emma")
    with pytest.raises(ContractViolation):
        coordinator.skip_statement()


def test_skip_statement_when_partial_evidence_allowed(catalogue, ledger):
    config = parse_accusation_config(build_document(allow_partial_evidence=True), catalogue)
    log = NotificationLog()
    channel = NotificationChannel()
    channel.subscribe(log, StatementAdvanced)
    coordinator = AccusationCoordinator(config, ledger, store=MemoryAccusationStore(), channel=channel)
    coordinator.start_accusation("emma")

    outcome = coordinator.skip_statement()

    assert outcome.result.mistake_count == 1
    assert outcome.next_statement.id == "e2"
    assert [n.statement.id for n in log.received] == ["e2"]


def test_advance_informational_through_coordinator(catalogue, ledger):
    document = build_document()
    document["confrontations"]["emma"]["statements"].append(
        {"id": "e4", "text": "Enough.", "speaker": "accuser", "requires_presentation": False}
    )
    coordinator = AccusationCoordinator(parse_accusation_config(document, catalogue), ledger)
    coordinator.start_accusation("emma")
    for clue in ("napkin", "papers", "crumbs"):
        coordinator.present_evidence(clue)

    assert coordinator.get_current_statement().id == "e4"
    outcome = coordinator.advance_informational()
    assert outcome.result is None
    assert outcome.resolution.kind == ResolutionKind.VICTORY
