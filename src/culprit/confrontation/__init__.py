"""Confrontation scripts, evidence validation and the attempt state machine."""

from culprit.confrontation.machine import ConfrontationMachine, ConfrontationProgress
from culprit.confrontation.script import (
    AnyOfEvidence,
    ConfrontationSequence,
    ConfrontationStatement,
    EvidenceRequirement,
    Informational,
    SingleEvidence,
    build_requirement,
)
from culprit.confrontation.validator import EvidenceResult, validate

__all__ = [
    "AnyOfEvidence",
    "ConfrontationMachine",
    "ConfrontationProgress",
    "ConfrontationSequence",
    "ConfrontationStatement",
    "EvidenceRequirement",
    "EvidenceResult",
    "Informational",
    "SingleEvidence",
    "build_requirement",
    "validate",
]
