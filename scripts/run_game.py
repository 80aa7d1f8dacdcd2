from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

from culprit import config
from culprit.accusation.coordinator import AccusationCoordinator, AccusationResolution, PresentationOutcome
from culprit.confrontation.script import AnyOfEvidence, ConfrontationStatement, SingleEvidence
from culprit.domain.enums import RejectionReason, ResolutionKind, Speaker
from culprit.domain.errors import ConfigurationError
from culprit.narrative.playback import EndingPlayback
from culprit.session import Session, start_session


def _choose(options: list[str]) -> int | None:
    choice = input("> ").strip()
    if not choice.isdigit():
        return None
    index = int(choice) - 1
    if index < 0 or index >= len(options):
        return None
    return index


def _speaker_name(coordinator: AccusationCoordinator, suspect_id: str, statement: ConfrontationStatement) -> str:
    if statement.speaker == Speaker.ACCUSER:
        return coordinator.display_name(coordinator.config.accuser)
    return coordinator.display_name(suspect_id)


def _print_notebook(session: Session) -> None:
    discovered = session.ledger.discovered_ids()
    if not discovered:
        print("Notebook is empty.")
        return
    for idx, clue_id in enumerate(discovered, start=1):
        clue = session.catalogue.get(clue_id)
        print(f"{idx}) {clue.name}")
        if clue.notebook_note:
            print(f"   {clue.notebook_note}")


def _search(session: Session) -> None:
    hidden = [cid for cid in session.catalogue.ids() if not session.ledger.is_discovered(cid)]
    if not hidden:
        print("There is nothing left to find.")
        return
    print("Where do you search?")
    for idx, clue_id in enumerate(hidden, start=1):
        print(f"{idx}) {session.catalogue.get(clue_id).description or clue_id}")
    selection = _choose(hidden)
    if selection is None:
        print("Invalid choice.")
        return
    clue_id = hidden[selection]
    session.ledger.discover(clue_id)
    print(f"Found: {session.catalogue.name_for(clue_id)}")


def _play_ending(resolution: AccusationResolution, coordinator: AccusationCoordinator) -> None:
    if resolution.kind == ResolutionKind.VICTORY:
        payload = resolution.victory
        playback = EndingPlayback.victory()
        lines = {
            "confession": [f'{payload.culprit_name}: "{payload.confession}"'],
            "reaction": [payload.reaction],
            "door_unlock": ["*click* The study door swings open."],
            "summary": payload.summary_lines(),
        }
    else:
        payload = resolution.bad_ending
        playback = EndingPlayback.bad_ending()
        accuser = coordinator.display_name(coordinator.config.accuser)
        lines = {
            "despair": [f'{accuser}: "{payload.despair_speech}"'],
            "door_unlock": ["*click* The study door swings open. Nobody is satisfied."],
            "failure_screen": payload.summary_lines(),
        }
    while True:
        phase = playback.current
        print("")
        for line in lines.get(phase.value, []):
            print(line)
        if playback.on_final_screen:
            input("(press Enter to dismiss) ")
            playback.dismiss()
            return
        choice = input("(Enter to continue, s to skip) ").strip().lower()
        if choice == "s":
            playback.skip()
        else:
            playback.advance()


def _report_rejection(resolution: AccusationResolution, coordinator: AccusationCoordinator) -> None:
    name = coordinator.display_name(resolution.suspect_id)
    if resolution.reason == RejectionReason.WRONG_SUSPECT:
        print(f"{name} answered everything. They are not the culprit.")
    dialog = resolution.rejection_dialog
    print(f"{coordinator.display_name(dialog.speaker)}: {dialog.text}")
    print(f"Failed accusations: {resolution.failed_accusations}/{config.MAX_FAILED_ACCUSATIONS}")


def _confront(session: Session, suspect_id: str) -> AccusationResolution | None:
    coordinator = session.coordinator
    statement = coordinator.start_accusation(suspect_id)
    allow_skip = coordinator.config.rules.allow_partial_evidence
    while True:
        print("")
        print(f'{_speaker_name(coordinator, suspect_id, statement)}: "{statement.text}"')
        progress = coordinator.get_current_confrontation()
        print(f"(Mistakes {progress.mistake_count}/{config.MAX_MISTAKES})")
        if not statement.requires_presentation:
            input("(press Enter to continue) ")
            outcome = coordinator.advance_informational()
        else:
            options = session.ledger.discovered_ids()
            print("Present evidence:")
            for idx, clue_id in enumerate(options, start=1):
                print(f"{idx}) {session.catalogue.name_for(clue_id)}")
            if allow_skip:
                print("s) Let it pass (costs a mistake)")
            print("c) Back down")
            choice = input("> ").strip().lower()
            if choice == "c":
                coordinator.cancel_accusation()
                print("You back down. The accusation can wait.")
                return None
            if choice == "s" and allow_skip:
                outcome = coordinator.skip_statement()
            elif choice.isdigit() and 1 <= int(choice) <= len(options):
                outcome = coordinator.present_evidence(options[int(choice) - 1])
            else:
                print("Invalid choice.")
                continue
        if outcome.result is not None and outcome.result.response_text:
            print(outcome.result.response_text)
        if outcome.resolution is not None:
            return outcome.resolution
        if outcome.next_statement is not None:
            statement = outcome.next_statement


def _accuse(session: Session) -> None:
    coordinator = session.coordinator
    if coordinator is None:
        print("Accusations are unavailable: the case file failed to load.")
        return
    gate = coordinator.can_initiate_accusation()
    if not gate.allowed:
        print(gate.reason)
        return
    suspects = coordinator.start_suspect_selection()
    print("Who do you accuse?")
    for idx, suspect_id in enumerate(suspects, start=1):
        label = coordinator.display_name(suspect_id)
        if coordinator.has_suspect_been_accused(suspect_id):
            label += " (accused before)"
        print(f"{idx}) {label}")
    selection = _choose(suspects)
    if selection is None:
        print("Invalid choice.")
        return
    resolution = _confront(session, suspects[selection])
    if resolution is None:
        return
    if resolution.kind == ResolutionKind.REJECTED:
        _report_rejection(resolution, coordinator)
        return
    _play_ending(resolution, coordinator)


def _smoke_answer(statement: ConfrontationStatement) -> str | None:
    requirement = statement.requirement
    if isinstance(requirement, SingleEvidence):
        return requirement.evidence_id
    if isinstance(requirement, AnyOfEvidence):
        return requirement.primary or sorted(requirement.evidence_ids)[0]
    return None


def _run_smoke(session: Session) -> None:
    coordinator = session.coordinator
    if coordinator is None:
        print("[smoke] Accusation feature disabled; aborting.")
        return
    coordinator.reset_state()
    for clue_id in session.catalogue.ids():
        session.ledger.discover(clue_id)
    guilty = coordinator.config.guilty_party
    statement = coordinator.start_accusation(guilty)
    print(f"[smoke] Confronting {guilty}.")
    outcome: PresentationOutcome | None = None
    while statement is not None:
        answer = _smoke_answer(statement)
        if answer is None:
            outcome = coordinator.advance_informational()
        else:
            outcome = coordinator.present_evidence(answer)
            print(f"[smoke] {statement.id}: presented {answer}, correct={outcome.result.correct}")
        if outcome.resolution is not None:
            break
        statement = outcome.next_statement
    if outcome is None or outcome.resolution is None:
        print("[smoke] Confrontation did not resolve.")
        return
    print(f"[smoke] Resolution: {outcome.resolution.kind.value}")
    if outcome.resolution.victory is not None:
        for line in outcome.resolution.victory.summary_lines():
            print(f"[smoke] {line}")
    coordinator.reset_state()


def main() -> None:
    parser = argparse.ArgumentParser(description="Accusation playable loop.")
    parser.add_argument("--accusation", type=str, default=str(config.ACCUSATION_PATH))
    parser.add_argument("--clues", type=str, default=str(config.CLUES_PATH))
    parser.add_argument(
        "--state-db",
        type=str,
        default=str(config.STATE_DB_PATH),
        help="SQLite database path for accusation state.",
    )
    parser.add_argument(
        "--no-state-db",
        action="store_true",
        help="Run without persisting accusation state.",
    )
    parser.add_argument(
        "--reset-state",
        action="store_true",
        help="Clear stored accusation state before starting.",
    )
    parser.add_argument(
        "--discover",
        action="append",
        default=[],
        metavar="CLUE_ID",
        help="Start with this clue already discovered (repeatable).",
    )
    parser.add_argument("--log-level", type=str, default="WARNING")
    parser.add_argument(
        "--smoke",
        action="store_true",
        help="Run a short non-interactive path against the guilty party and exit.",
    )
    args = parser.parse_args()
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    state_db = None if args.no_state_db or args.smoke else Path(args.state_db)
    try:
        session = start_session(
            accusation_path=Path(args.accusation),
            clues_path=Path(args.clues),
            state_db=state_db,
            reset_state=args.reset_state,
            discovered=args.discover,
        )
    except ConfigurationError as exc:
        print(exc)
        for error in exc.errors:
            print(f"  - {error}")
        sys.exit(1)
    except KeyError as exc:
        parser.error(f"--discover: {exc.args[0]}")

    if args.smoke:
        _run_smoke(session)
        return

    if session.coordinator is not None and session.coordinator.persistence_degraded:
        print(f"Warning: progress will not be saved ({session.coordinator.store.degraded_reason}).")
    print("You are locked in the study until the culprit is found.")
    print("Type a number to choose an action. Type 'q' to quit.")
    try:
        while True:
            print("")
            print("1) Search for a clue")
            print("2) Review notebook")
            print("3) Make an accusation")
            print("4) Start over (reset accusations)")
            choice = input("> ").strip().lower()
            if choice == "q":
                break
            if choice == "1":
                _search(session)
            elif choice == "2":
                _print_notebook(session)
            elif choice == "3":
                _accuse(session)
            elif choice == "4" and session.coordinator is not None:
                session.coordinator.reset_state()
                print("Accusation history cleared.")
            else:
                print("Invalid choice.")
    finally:
        if session.coordinator is not None:
            session.coordinator.close()


if __name__ == "__main__":
    main()
