"""Wiring shared by the playable front-ends."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Iterable

from culprit.accusation.coordinator import AccusationCoordinator
from culprit.accusation.loading import load_accusation_feature
from culprit.accusation.notifications import NotificationChannel
from culprit.clues.catalogue import ClueCatalogue, ClueLedger, load_clue_catalogue
from culprit.domain.errors import PersistenceFailure
from culprit.persistence.db import (
    AccusationStore,
    FallbackStore,
    MemoryAccusationStore,
    SqliteAccusationStore,
)

logger = logging.getLogger(__name__)


@dataclass
class Session:
    catalogue: ClueCatalogue
    ledger: ClueLedger
    coordinator: AccusationCoordinator | None

    @property
    def accusations_enabled(self) -> bool:
        return self.coordinator is not None


def open_store(path: Path | None) -> AccusationStore:
    """Open the sqlite store.

    When it cannot be opened the returned store is already degraded to
    memory; the coordinator built on it announces ``PersistenceDegraded``.
    """
    if path is None:
        return MemoryAccusationStore()
    try:
        return SqliteAccusationStore(path)
    except PersistenceFailure as exc:
        logger.warning("%s; accusation state will not be saved", exc)
        return FallbackStore.unavailable(exc)


def start_session(
    accusation_path: Path | None = None,
    clues_path: Path | None = None,
    state_db: Path | None = None,
    reset_state: bool = False,
    discovered: Iterable[str] = (),
    channel: NotificationChannel | None = None,
) -> Session:
    """Load the case files and build a coordinator.

    A broken clue catalogue raises ``ConfigurationError``; a broken
    accusation document only disables accusations for the session.
    """
    catalogue = load_clue_catalogue(clues_path)
    ledger = ClueLedger(catalogue, discovered)
    accusation = load_accusation_feature(accusation_path, catalogue)
    if accusation is None:
        return Session(catalogue=catalogue, ledger=ledger, coordinator=None)
    store = open_store(state_db)
    coordinator = AccusationCoordinator(accusation, ledger, store=store, channel=channel)
    if reset_state:
        coordinator.reset_state()
    return Session(catalogue=catalogue, ledger=ledger, coordinator=coordinator)
