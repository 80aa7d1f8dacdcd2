"""Typed notifications published on every accusation state transition."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Union

from culprit.domain.enums import RejectionReason

if TYPE_CHECKING:
    from culprit.confrontation.script import ConfrontationStatement
    from culprit.narrative.endings import BadEndingPayload, VictoryPayload


@dataclass(frozen=True)
class SuspectSelectionOpened:
    suspects: tuple[str, ...]
    accused: tuple[str, ...]


@dataclass(frozen=True)
class AccusationStarted:
    suspect_id: str
    statement: "ConfrontationStatement"


@dataclass(frozen=True)
class EvidencePresented:
    suspect_id: str
    statement_id: str
    clue_id: str
    correct: bool
    is_bonus: bool
    out_of_order: bool
    mistake_count: int
    response_text: str


@dataclass(frozen=True)
class StatementAdvanced:
    suspect_id: str
    statement_index: int
    statement: "ConfrontationStatement"


@dataclass(frozen=True)
class ConfrontationSucceeded:
    suspect_id: str


@dataclass(frozen=True)
class ConfrontationFailed:
    suspect_id: str
    failed_accusations: int
    reason: RejectionReason


@dataclass(frozen=True)
class AccusationCancelled:
    suspect_id: str


@dataclass(frozen=True)
class VictoryTriggered:
    payload: "VictoryPayload"


@dataclass(frozen=True)
class BadEndingTriggered:
    payload: "BadEndingPayload"
    failed_accusations: int


@dataclass(frozen=True)
class PersistenceDegraded:
    reason: str


@dataclass(frozen=True)
class StateReset:
    pass


Notification = Union[
    SuspectSelectionOpened,
    AccusationStarted,
    EvidencePresented,
    StatementAdvanced,
    ConfrontationSucceeded,
    ConfrontationFailed,
    AccusationCancelled,
    VictoryTriggered,
    BadEndingTriggered,
    PersistenceDegraded,
    StateReset,
]

Listener = Callable[[Notification], None]


class NotificationChannel:
    """Synchronous fan-out to registered listeners, in registration order."""

    def __init__(self) -> None:
        self._listeners: list[tuple[Listener, tuple[type, ...]]] = []

    def subscribe(self, listener: Listener, *kinds: type) -> Callable[[], None]:
        entry = (listener, tuple(kinds))
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def publish(self, notification: Notification) -> None:
        for listener, kinds in list(self._listeners):
            if kinds and not isinstance(notification, kinds):
                continue
            listener(notification)


class NotificationLog:
    """Listener that keeps everything it hears; handy for scripts and tests."""

    def __init__(self) -> None:
        self.received: list[Notification] = []

    def __call__(self, notification: Notification) -> None:
        self.received.append(notification)

    def of_type(self, kind: type) -> list[Notification]:
        return [item for item in self.received if isinstance(item, kind)]

    def clear(self) -> None:
        self.received.clear()
