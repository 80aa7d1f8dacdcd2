"""Shared enums for the accusation engine."""

from __future__ import annotations

from enum import StrEnum


class Speaker(StrEnum):
    SUSPECT = "suspect"
    ACCUSER = "accuser"


class ConfrontationPhase(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Verdict(StrEnum):
    SOLVED = "solved"
    BAD_ENDING = "bad_ending"


class ResolutionKind(StrEnum):
    VICTORY = "victory"
    REJECTED = "rejected"
    BAD_ENDING = "bad_ending"


class RejectionReason(StrEnum):
    TOO_MANY_MISTAKES = "too_many_mistakes"
    WRONG_SUSPECT = "wrong_suspect"


class VictoryPhase(StrEnum):
    CONFESSION = "confession"
    REACTION = "reaction"
    DOOR_UNLOCK = "door_unlock"
    SUMMARY = "summary"


class BadEndingPhase(StrEnum):
    DESPAIR = "despair"
    DOOR_UNLOCK = "door_unlock"
    FAILURE_SCREEN = "failure_screen"
