from __future__ import annotations

import pytest
import yaml

from culprit.accusation.notifications import (
    NotificationChannel,
    NotificationLog,
    PersistenceDegraded,
    StateReset,
)
from culprit.domain.errors import ConfigurationError
from culprit.session import start_session

from conftest import build_document


def test_session_with_shipped_data():
    session = start_session(discovered=["strudel-crumbs", "desk-papers"])

    assert session.accusations_enabled
    assert session.ledger.discovered_count() == 2
    assert session.coordinator.get_available_suspects() == ["emma", "luca", "greta"]
    assert session.coordinator.can_initiate_accusation().allowed is False


def test_session_persists_to_sqlite(tmp_path):
    db = tmp_path / "state.db"
    clues = ["suspicious-napkin", "desk-papers", "strudel-crumbs", "empty-plate"]
    session = start_session(state_db=db, discovered=clues)
    session.coordinator.start_accusation("greta")
    session.coordinator.close()

    again = start_session(state_db=db)
    assert again.coordinator.has_suspect_been_accused("greta")
    again.coordinator.close()

    log = NotificationLog()
    channel = NotificationChannel()
    channel.subscribe(log)
    fresh = start_session(state_db=db, reset_state=True, channel=channel)
    assert not fresh.coordinator.has_suspect_been_accused("greta")
    assert log.of_type(StateReset)
    fresh.coordinator.close()


def test_invalid_accusation_document_disables_the_feature(tmp_path):
    path = tmp_path / "accusation.yml"
    path.write_text(yaml.safe_dump(build_document()), encoding="utf-8")

    session = start_session(accusation_path=path)

    assert session.coordinator is None
    assert not session.accusations_enabled


def test_invalid_clue_catalogue_is_fatal(tmp_path):
    path = tmp_path / "clues.yml"
    path.write_text("clues: nope\n", encoding="utf-8")

    with pytest.raises(ConfigurationError):
        start_session(clues_path=path)


def test_unknown_discovered_clue_is_rejected():
    with pytest.raises(KeyError):
        start_session(discovered=["napkin"])


def test_unopenable_state_database_is_announced(tmp_path):
    log = NotificationLog()
    channel = NotificationChannel()
    channel.subscribe(log, PersistenceDegraded)

    session = start_session(state_db=tmp_path, channel=channel)

    assert session.accusations_enabled
    assert session.coordinator.persistence_degraded is True
    assert len(log.received) == 1
    assert "Cannot open state database" in log.received[0].reason
