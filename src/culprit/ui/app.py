from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from textual.app import App, ComposeResult
from textual.containers import Vertical, VerticalScroll
from textual.timer import Timer
from textual.widgets import Input, RichLog, Static

from culprit import config
from culprit.accusation.coordinator import AccusationResolution, PresentationOutcome
from culprit.accusation.notifications import Notification, PersistenceDegraded, StateReset
from culprit.confrontation.script import ConfrontationStatement
from culprit.domain.enums import RejectionReason, ResolutionKind, Speaker
from culprit.narrative.playback import EndingPlayback
from culprit.session import Session


@dataclass
class PromptState:
    step: str
    data: dict[str, Any] = field(default_factory=dict)
    options: list[Any] = field(default_factory=list)


class AccusationApp(App):
    TITLE = ""
    SUB_TITLE = ""
    BINDINGS = [
        ("f6", "focus_log", "Focus log"),
        ("f7", "focus_detail", "Focus detail"),
        ("f8", "focus_input", "Focus input"),
    ]
    CSS = """
    Screen {
        layout: vertical;
    }
    #header {
        height: auto;
        padding: 1 1;
    }
    #log {
        height: 2fr;
        border: solid $secondary;
        padding: 0 1;
    }
    #detail {
        height: 1fr;
        border: solid $secondary;
        padding: 0 1;
    }
    #detail_view {
        width: 100%;
    }
    #menu {
        height: auto;
        padding: 1 1;
    }
    #command {
        height: 3;
        padding: 0 1;
    }
    """

    def __init__(self, session: Session) -> None:
        super().__init__()
        self.session = session
        self.ledger = session.ledger
        self.coordinator = session.coordinator
        self.prompt_state: PromptState | None = None
        self.playback: EndingPlayback | None = None
        self.ending_lines: dict[str, list[str]] = {}
        self._playback_timer: Timer | None = None
        self._pending: list[str] = []
        self._has_mounted = False
        if self.coordinator is not None:
            self.coordinator.channel.subscribe(self._on_notification, PersistenceDegraded, StateReset)

    def compose(self) -> ComposeResult:
        with Vertical():
            yield Static("", id="header")
            yield RichLog(id="log", wrap=True)
            yield VerticalScroll(Static("", id="detail_view", expand=True), id="detail")
            yield Static(self._menu_text(), id="menu")
            yield Input(placeholder="Enter command (1-4 or q)...", id="command")

    def on_mount(self) -> None:
        self._has_mounted = True
        self._refresh()
        self._write("You are locked in the study until the culprit is found.")
        if self.coordinator is None:
            self._write("Accusations are unavailable: the case file failed to load.")
        elif self.coordinator.persistence_degraded:
            self._write(
                f"Warning: progress will not be saved ({self.coordinator.store.degraded_reason}). "
                "This session is kept in memory."
            )
        for line in self._pending:
            self._write(line)
        self._pending = []
        self._write("Type a number to choose an action. Type 'q' to quit.")
        self._write("Focus: F6 log, F7 detail, F8 input (Tab cycles focus).")
        self.query_one("#command", Input).focus()

    def on_unmount(self) -> None:
        if self.coordinator is not None:
            self.coordinator.close()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        value = event.value.strip()
        event.input.value = ""
        if not value:
            return
        if self.playback is not None:
            self._handle_playback_input(value.lower())
            return
        if self.prompt_state is not None:
            self._handle_prompt_input(value)
            return
        if value.lower() == "q":
            self.exit()
            return
        self._handle_command(value)

    def action_focus_log(self) -> None:
        self.query_one("#log", RichLog).focus()

    def action_focus_detail(self) -> None:
        self.query_one("#detail", VerticalScroll).focus()

    def action_focus_input(self) -> None:
        self.query_one("#command", Input).focus()

    def _menu_text(self) -> str:
        return (
            "Choose action:\n"
            "1) Search for a clue\n"
            "2) Review notebook\n"
            "3) Make an accusation\n"
            "4) Start over (reset accusations)"
        )

    def _write(self, message: str) -> None:
        if not self._has_mounted:
            self._pending.append(message)
            return
        log = self.query_one("#log", RichLog)
        log.write(message)

    def _on_notification(self, notification: Notification) -> None:
        if isinstance(notification, PersistenceDegraded):
            self._write(
                f"Warning: progress can no longer be saved ({notification.reason}). "
                "It is kept until you quit."
            )
        elif isinstance(notification, StateReset):
            self._write("Accusation history cleared.")

    def _refresh(self) -> None:
        if not self._has_mounted:
            return
        self._refresh_header()
        self._refresh_detail()

    def _refresh_header(self) -> None:
        header = self.query_one("#header", Static)
        lines = [f"Clues {self.ledger.discovered_count()}/{self.ledger.total_count()}"]
        if self.coordinator is not None:
            state = self.coordinator.get_state()
            lines[0] += (
                f"  Failed accusations {state.failed_accusations}/{config.MAX_FAILED_ACCUSATIONS}"
            )
            if state.verdict is not None:
                lines[0] += f"  Case closed ({state.verdict.value})"
            progress = self.coordinator.get_current_confrontation()
            if progress is not None:
                sequence = self.coordinator.config.sequence_for(progress.suspect_id)
                lines.append(
                    f"Confronting {self.coordinator.display_name(progress.suspect_id)}  "
                    f"Statement {progress.current_statement_index + 1}/{len(sequence)}  "
                    f"Mistakes {progress.mistake_count}/{config.MAX_MISTAKES}"
                )
        header.update("\n".join(lines))

    def _refresh_detail(self) -> None:
        detail = self.query_one("#detail_view", Static)
        lines = ["Notebook"]
        lines.extend(self._notebook_lines())
        detail.update("\n".join(lines))

    def _notebook_lines(self) -> list[str]:
        discovered = self.ledger.discovered_ids()
        if not discovered:
            return ["(empty)"]
        lines: list[str] = []
        for idx, clue_id in enumerate(discovered, start=1):
            clue = self.ledger.catalogue.get(clue_id)
            lines.append(f"{idx}) {clue.name}")
            if clue.notebook_note:
                lines.append(f"   {clue.notebook_note}")
        return lines

    def _handle_command(self, value: str) -> None:
        if value == "1":
            hidden = [cid for cid in self.ledger.catalogue.ids() if not self.ledger.is_discovered(cid)]
            if not hidden:
                self._write("There is nothing left to find.")
                return
            self._write("Where do you search?")
            for idx, clue_id in enumerate(hidden, start=1):
                self._write(f"{idx}) {self.ledger.catalogue.get(clue_id).description or clue_id}")
            self.prompt_state = PromptState(step="discover", options=hidden)
            return
        if value == "2":
            for line in self._notebook_lines():
                self._write(line)
            return
        if value == "3":
            self._start_accusation_prompt()
            return
        if value == "4":
            if self.coordinator is None:
                self._write("Accusations are unavailable.")
                return
            self.coordinator.reset_state()
            self._refresh()
            return
        self._write("Invalid choice.")

    def _start_accusation_prompt(self) -> None:
        if self.coordinator is None:
            self._write("Accusations are unavailable: the case file failed to load.")
            return
        gate = self.coordinator.can_initiate_accusation()
        if not gate.allowed:
            self._write(gate.reason)
            return
        suspects = self.coordinator.start_suspect_selection()
        self._write("Who do you accuse? (q to back out)")
        for idx, suspect_id in enumerate(suspects, start=1):
            label = self.coordinator.display_name(suspect_id)
            if self.coordinator.has_suspect_been_accused(suspect_id):
                label += " (accused before)"
            self._write(f"{idx}) {label}")
        self.prompt_state = PromptState(step="accuse_suspect", options=suspects)

    def _handle_prompt_input(self, value: str) -> None:
        if self.prompt_state is None:
            return
        step = self.prompt_state.step
        if step == "confront":
            self._handle_confrontation_input(value.lower())
            return
        if value.lower() == "q":
            self._write("Prompt cancelled.")
            self.prompt_state = None
            return
        selection = self._parse_choice(value, len(self.prompt_state.options))
        if selection is None:
            self._write("Invalid choice.")
            return
        choice = self.prompt_state.options[selection]
        self.prompt_state = None
        if step == "discover":
            self.ledger.discover(choice)
            clue = self.ledger.catalogue.get(choice)
            self._write(f"Found: {clue.name}")
            if clue.notebook_note:
                self._write(f"Notebook: {clue.notebook_note}")
            self._refresh()
            return
        if step == "accuse_suspect":
            statement = self.coordinator.start_accusation(choice)
            self.prompt_state = PromptState(step="confront", data={"suspect_id": choice})
            self._write(f"You point at {self.coordinator.display_name(choice)}.")
            self._show_statement(statement)
            self._refresh()

    def _speaker_name(self, statement: ConfrontationStatement) -> str:
        if statement.speaker == Speaker.ACCUSER:
            return self.coordinator.display_name(self.coordinator.config.accuser)
        return self.coordinator.display_name(self.prompt_state.data["suspect_id"])

    def _show_statement(self, statement: ConfrontationStatement) -> None:
        self._write("")
        self._write(f'{self._speaker_name(statement)}: "{statement.text}"')
        if not statement.requires_presentation:
            self._write("n) Continue")
            return
        self._show_evidence_options()

    def _show_evidence_options(self) -> None:
        self._write("Present evidence:")
        for idx, clue_id in enumerate(self.ledger.discovered_ids(), start=1):
            self._write(f"{idx}) {self.ledger.catalogue.name_for(clue_id)}")
        if self.coordinator.config.rules.allow_partial_evidence:
            self._write("s) Let it pass (costs a mistake)")
        self._write("c) Back down")

    def _handle_confrontation_input(self, value: str) -> None:
        statement = self.coordinator.get_current_statement()
        if value == "c":
            self.coordinator.cancel_accusation()
            self.prompt_state = None
            self._write("You back down. The accusation can wait.")
            self._refresh()
            return
        if not statement.requires_presentation:
            if value != "n":
                self._write("Type 'n' to continue.")
                return
            outcome = self.coordinator.advance_informational()
        elif value == "s" and self.coordinator.config.rules.allow_partial_evidence:
            outcome = self.coordinator.skip_statement()
        else:
            options = self.ledger.discovered_ids()
            selection = self._parse_choice(value, len(options))
            if selection is None:
                self._write("Invalid choice.")
                return
            self._write(f"You present: {self.ledger.catalogue.name_for(options[selection])}")
            outcome = self.coordinator.present_evidence(options[selection])
        self._apply_outcome(outcome)

    def _apply_outcome(self, outcome: PresentationOutcome) -> None:
        if outcome.result is not None and outcome.result.response_text:
            self._write(outcome.result.response_text)
        if outcome.resolution is not None:
            self.prompt_state = None
            self._resolve(outcome.resolution)
        elif outcome.result is None or outcome.result.should_advance:
            self._show_statement(outcome.next_statement)
        self._refresh()

    def _resolve(self, resolution: AccusationResolution) -> None:
        coordinator = self.coordinator
        accuser = coordinator.display_name(coordinator.config.accuser)
        if resolution.kind == ResolutionKind.VICTORY:
            payload = resolution.victory
            self.ending_lines = {
                "confession": [f'{payload.culprit_name}: "{payload.confession}"'],
                "reaction": [payload.reaction],
                "door_unlock": ["*click* The study door swings open."],
                "summary": payload.summary_lines(),
            }
            self._start_playback(EndingPlayback.victory())
            return
        if resolution.kind == ResolutionKind.BAD_ENDING:
            payload = resolution.bad_ending
            self.ending_lines = {
                "despair": [f'{accuser}: "{payload.despair_speech}"'],
                "door_unlock": ["*click* The study door swings open. Nobody is satisfied."],
                "failure_screen": payload.summary_lines(),
            }
            self._start_playback(EndingPlayback.bad_ending())
            return
        name = coordinator.display_name(resolution.suspect_id)
        if resolution.reason == RejectionReason.WRONG_SUSPECT:
            self._write(f"{name} answered everything. They are not the culprit.")
        dialog = resolution.rejection_dialog
        self._write(f"{coordinator.display_name(dialog.speaker)}: {dialog.text}")
        self._write(
            f"Failed accusations: {resolution.failed_accusations}/{config.MAX_FAILED_ACCUSATIONS}"
        )

    def _start_playback(self, playback: EndingPlayback) -> None:
        self.playback = playback
        self._show_phase()

    def _show_phase(self) -> None:
        phase = self.playback.current
        self._write("")
        for line in self.ending_lines.get(phase.value, []):
            self._write(line)
        timeout = self.playback.timeout_for(phase)
        if timeout:
            self._playback_timer = self.set_timer(timeout, self._on_playback_timeout)
            self._write("(n to continue, s to skip)")
        else:
            self._write("(d to dismiss)")

    def _on_playback_timeout(self) -> None:
        self._playback_timer = None
        if self.playback is None or self.playback.on_final_screen:
            return
        self.playback.advance()
        self._show_phase()

    def _stop_playback_timer(self) -> None:
        if self._playback_timer is not None:
            self._playback_timer.stop()
            self._playback_timer = None

    def _handle_playback_input(self, value: str) -> None:
        playback = self.playback
        if value == "d":
            if not playback.on_final_screen:
                self._write("Not yet. (n to continue, s to skip)")
                return
            playback.dismiss()
            self.playback = None
            self._write("The case is closed. Type 4 to start over or q to quit.")
            self._refresh()
            return
        if playback.on_final_screen:
            self._write("Type 'd' to dismiss.")
            return
        if value not in ("n", "s"):
            self._write("Type 'n' to continue or 's' to skip.")
            return
        self._stop_playback_timer()
        if value == "s":
            playback.skip()
        else:
            playback.advance()
        self._show_phase()

    def _parse_choice(self, value: str, count: int) -> int | None:
        if not value.isdigit():
            return None
        index = int(value) - 1
        if index < 0 or index >= count:
            return None
        return index
