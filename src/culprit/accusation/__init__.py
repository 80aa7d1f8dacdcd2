"""Accusation subsystem: configuration, persisted state and the coordinator."""

from culprit.accusation.coordinator import (
    AccusationCoordinator,
    AccusationGate,
    AccusationResolution,
    PresentationOutcome,
)
from culprit.accusation.loading import (
    AccusationConfig,
    load_accusation_config,
    load_accusation_feature,
    parse_accusation_config,
)
from culprit.accusation.notifications import NotificationChannel, NotificationLog
from culprit.accusation.state import AccusationState

__all__ = [
    "AccusationConfig",
    "AccusationCoordinator",
    "AccusationGate",
    "AccusationResolution",
    "AccusationState",
    "NotificationChannel",
    "NotificationLog",
    "PresentationOutcome",
    "load_accusation_config",
    "load_accusation_feature",
    "parse_accusation_config",
]
