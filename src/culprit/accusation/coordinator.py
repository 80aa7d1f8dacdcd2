"""Accusation coordinator: the single entry point the presentation layer talks to."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Callable

from culprit import config as defaults
from culprit.accusation.loading import AccusationConfig
from culprit.accusation.notifications import (
    AccusationCancelled,
    AccusationStarted,
    BadEndingTriggered,
    ConfrontationFailed,
    ConfrontationSucceeded,
    EvidencePresented,
    NotificationChannel,
    PersistenceDegraded,
    StateReset,
    StatementAdvanced,
    SuspectSelectionOpened,
    VictoryTriggered,
)
from culprit.accusation.state import AccusationState
from culprit.clues.catalogue import ClueLedger
from culprit.confrontation.machine import ConfrontationMachine, ConfrontationProgress
from culprit.confrontation.script import ConfrontationStatement
from culprit.confrontation.validator import EvidenceResult
from culprit.domain.enums import ConfrontationPhase, RejectionReason, ResolutionKind, Verdict
from culprit.domain.errors import ContractViolation, PersistenceFailure
from culprit.domain.models import RejectionDialog
from culprit.narrative.endings import (
    BadEndingPayload,
    VictoryPayload,
    build_bad_ending,
    build_victory,
)
from culprit.persistence.db import AccusationStore, FallbackStore, MemoryAccusationStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AccusationGate:
    allowed: bool
    minimum_required: int
    discovered: int
    reason: str | None = None


@dataclass(frozen=True)
class AccusationResolution:
    kind: ResolutionKind
    suspect_id: str
    failed_accusations: int
    reason: RejectionReason | None = None
    victory: VictoryPayload | None = None
    bad_ending: BadEndingPayload | None = None
    rejection_dialog: RejectionDialog | None = None


@dataclass(frozen=True)
class PresentationOutcome:
    statement: ConfrontationStatement
    result: EvidenceResult | None = None
    next_statement: ConfrontationStatement | None = None
    resolution: AccusationResolution | None = None


class AccusationCoordinator:
    """Owns the persisted accusation state and drives one confrontation at a time.

    Construct one per playthrough and hand it to every consumer. All writes
    to storage go through ``_save``; storage failures degrade the session to
    memory and are announced with ``PersistenceDegraded``.
    """

    def __init__(
        self,
        config: AccusationConfig,
        clues: ClueLedger,
        store: AccusationStore | None = None,
        channel: NotificationChannel | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.clues = clues
        self.channel = channel or NotificationChannel()
        self._clock = clock or _utc_now
        if isinstance(store, FallbackStore):
            store.on_degraded = self._persistence_degraded
            self.store = store
        else:
            self.store = FallbackStore(
                store or MemoryAccusationStore(), on_degraded=self._persistence_degraded
            )
        if self.store.degraded:
            self._persistence_degraded(self.store.degraded_reason or "storage unavailable")
        self.machine: ConfrontationMachine | None = None
        self.state = self._load_state()

    # Queries

    @property
    def is_closed(self) -> bool:
        return self.state.is_closed

    @property
    def persistence_degraded(self) -> bool:
        return self.store.degraded

    def can_initiate_accusation(self, discovered_count: int | None = None) -> AccusationGate:
        count = self.clues.discovered_count() if discovered_count is None else discovered_count
        minimum = self.config.minimum_clues_required
        if self.state.is_closed:
            return AccusationGate(
                allowed=False,
                minimum_required=minimum,
                discovered=count,
                reason="The case is closed. Start a new game to accuse again.",
            )
        if count < minimum:
            return AccusationGate(
                allowed=False,
                minimum_required=minimum,
                discovered=count,
                reason=(
                    f"You need at least {minimum} clues to make an accusation. "
                    f"You have {count}."
                ),
            )
        return AccusationGate(allowed=True, minimum_required=minimum, discovered=count)

    def get_state(self) -> AccusationState:
        return self.state.copy_for_caller()

    def get_current_confrontation(self) -> ConfrontationProgress | None:
        if self.machine is None or self.machine.progress is None:
            return None
        return self.machine.progress.snapshot()

    def get_current_statement(self) -> ConfrontationStatement | None:
        if self.machine is None or not self.machine.is_active:
            return None
        return self.machine.current_statement

    def get_available_suspects(self) -> list[str]:
        return [suspect_id for suspect_id in self.config.confrontations if suspect_id != self.config.accuser]

    def has_suspect_been_accused(self, suspect_id: str) -> bool:
        return suspect_id in self.state.accused_suspects

    def display_name(self, suspect_id: str) -> str:
        return self.config.display_name(suspect_id)

    # Commands

    def start_suspect_selection(self) -> list[str]:
        self._require_gate()
        suspects = self.get_available_suspects()
        self.channel.publish(
            SuspectSelectionOpened(
                suspects=tuple(suspects), accused=tuple(self.state.accused_suspects)
            )
        )
        logger.debug("Suspect selection opened: %s", ", ".join(suspects))
        return suspects

    def start_accusation(self, suspect_id: str) -> ConfrontationStatement:
        if self.machine is not None and self.machine.is_active:
            raise ContractViolation(
                f"A confrontation with {self.machine.progress.suspect_id} is already active"
            )
        self._require_gate()
        now = self._clock()
        machine = ConfrontationMachine(self.config.confrontations)
        first = machine.start(suspect_id, started_at=now)
        self.machine = machine
        self.state.current_confrontation = machine.progress
        self.state.record_accused(suspect_id)
        self.state.last_attempt_at = now
        self._save()
        logger.info("Accusation started against %s", suspect_id)
        self.channel.publish(AccusationStarted(suspect_id=suspect_id, statement=first))
        return first

    def present_evidence(self, clue_id: str) -> PresentationOutcome:
        machine = self._require_active()
        statement = machine.current_statement
        suspect_id = machine.progress.suspect_id
        result = machine.present_evidence(clue_id, self.clues.discovered_ids())
        self.channel.publish(
            EvidencePresented(
                suspect_id=suspect_id,
                statement_id=statement.id,
                clue_id=clue_id,
                correct=result.correct,
                is_bonus=result.is_bonus,
                out_of_order=result.out_of_order,
                mistake_count=result.mistake_count,
                response_text=result.response_text,
            )
        )
        return self._after_step(machine, statement, result)

    def advance_informational(self) -> PresentationOutcome:
        machine = self._require_active()
        statement = machine.current_statement
        machine.advance_informational()
        return self._after_step(machine, statement, None)

    def skip_statement(self) -> PresentationOutcome:
        if not self.config.rules.allow_partial_evidence:
            raise ContractViolation("Partial evidence is not allowed in this case")
        machine = self._require_active()
        statement = machine.current_statement
        result = machine.skip_statement()
        logger.debug("Statement %s skipped (mistakes=%d)", statement.id, result.mistake_count)
        return self._after_step(machine, statement, result)

    def cancel_accusation(self) -> None:
        if self.machine is None or not self.machine.is_active:
            return
        suspect_id = self.machine.progress.suspect_id
        self.machine.cancel()
        self._finish_attempt()
        logger.debug("Accusation against %s cancelled", suspect_id)
        self.channel.publish(AccusationCancelled(suspect_id=suspect_id))

    def reset_state(self) -> None:
        self.machine = None
        self.state = AccusationState()
        self.store.clear()
        logger.info("Accusation state reset")
        self.channel.publish(StateReset())

    def close(self) -> None:
        self.store.close()

    # Terminal transitions

    def on_confrontation_success(self, suspect_id: str) -> AccusationResolution:
        machine = self._require_terminal(suspect_id, ConfrontationPhase.SUCCEEDED)
        if suspect_id != self.config.guilty_party:
            logger.info("Confrontation with %s completed, but %s is innocent", suspect_id, suspect_id)
            return self._reject(suspect_id, RejectionReason.WRONG_SUSPECT)

        progress = machine.progress
        payload = build_victory(
            self.config,
            machine.sequence,
            progress.key_evidence,
            found_everything=self.clues.found_everything(),
            used_bonus_evidence=bool(progress.bonus_evidence_presented),
        )
        self._finish_attempt()
        self.state.verdict = Verdict.SOLVED
        self.state.last_attempt_at = self._clock()
        self._save()
        logger.info("Victory: %s was the culprit", suspect_id)
        self.channel.publish(VictoryTriggered(payload=payload))
        return AccusationResolution(
            kind=ResolutionKind.VICTORY,
            suspect_id=suspect_id,
            failed_accusations=self.state.failed_accusations,
            victory=payload,
        )

    def on_confrontation_failed(self, suspect_id: str) -> AccusationResolution:
        self._require_terminal(suspect_id, ConfrontationPhase.FAILED)
        return self._reject(suspect_id, RejectionReason.TOO_MANY_MISTAKES)

    def _reject(self, suspect_id: str, reason: RejectionReason) -> AccusationResolution:
        self._finish_attempt()
        self.state.failed_accusations = min(
            self.state.failed_accusations + 1, defaults.MAX_FAILED_ACCUSATIONS
        )
        self.state.last_attempt_at = self._clock()
        failed = self.state.failed_accusations
        bad_ending = failed >= defaults.MAX_FAILED_ACCUSATIONS
        if bad_ending:
            self.state.verdict = Verdict.BAD_ENDING
        self._save()
        logger.info(
            "Accusation against %s failed (%s): %d/%d failures",
            suspect_id,
            reason.value,
            failed,
            defaults.MAX_FAILED_ACCUSATIONS,
        )
        self.channel.publish(
            ConfrontationFailed(suspect_id=suspect_id, failed_accusations=failed, reason=reason)
        )
        if not bad_ending:
            return AccusationResolution(
                kind=ResolutionKind.REJECTED,
                suspect_id=suspect_id,
                failed_accusations=failed,
                reason=reason,
                rejection_dialog=self.config.rules.rejection_dialog,
            )
        payload = build_bad_ending(self.config)
        logger.info("Bad ending triggered after %d failed accusations", failed)
        self.channel.publish(BadEndingTriggered(payload=payload, failed_accusations=failed))
        return AccusationResolution(
            kind=ResolutionKind.BAD_ENDING,
            suspect_id=suspect_id,
            failed_accusations=failed,
            reason=reason,
            bad_ending=payload,
        )

    # Internals

    def _after_step(
        self,
        machine: ConfrontationMachine,
        statement: ConfrontationStatement,
        result: EvidenceResult | None,
    ) -> PresentationOutcome:
        suspect_id = machine.progress.suspect_id
        if machine.phase == ConfrontationPhase.SUCCEEDED:
            self.channel.publish(ConfrontationSucceeded(suspect_id=suspect_id))
            resolution = self.on_confrontation_success(suspect_id)
            return PresentationOutcome(statement=statement, result=result, resolution=resolution)
        if machine.phase == ConfrontationPhase.FAILED:
            resolution = self.on_confrontation_failed(suspect_id)
            return PresentationOutcome(statement=statement, result=result, resolution=resolution)
        next_statement = machine.current_statement
        if result is None or result.should_advance:
            self.channel.publish(
                StatementAdvanced(
                    suspect_id=suspect_id,
                    statement_index=machine.progress.current_statement_index,
                    statement=next_statement,
                )
            )
        return PresentationOutcome(statement=statement, result=result, next_statement=next_statement)

    def _finish_attempt(self) -> None:
        self.machine = None
        self.state.current_confrontation = None

    def _require_gate(self) -> None:
        gate = self.can_initiate_accusation()
        if not gate.allowed:
            raise ContractViolation(gate.reason or "Accusation is not available")

    def _require_active(self) -> ConfrontationMachine:
        if self.machine is None or not self.machine.is_active:
            raise ContractViolation("No active confrontation")
        return self.machine

    def _require_terminal(self, suspect_id: str, phase: ConfrontationPhase) -> ConfrontationMachine:
        machine = self.machine
        if machine is None or machine.phase != phase or machine.progress.suspect_id != suspect_id:
            raise ContractViolation(f"Confrontation with {suspect_id} has not {phase.value}")
        return machine

    def _load_state(self) -> AccusationState:
        payload = self.store.load()
        if payload is None:
            return AccusationState()
        try:
            state = AccusationState.from_payload(payload)
        except PersistenceFailure as exc:
            logger.warning("Discarding stored accusation state: %s", exc)
            return AccusationState()
        logger.info(
            "Accusation state loaded (%d failed accusations)", state.failed_accusations
        )
        return state

    def _save(self) -> None:
        self.store.save(self.state.to_payload())

    def _persistence_degraded(self, reason: str) -> None:
        self.channel.publish(PersistenceDegraded(reason=reason))
