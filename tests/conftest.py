from __future__ import annotations

import copy

import pytest

from culprit.accusation.coordinator import AccusationCoordinator
from culprit.accusation.loading import parse_accusation_config
from culprit.accusation.notifications import NotificationChannel, NotificationLog
from culprit.clues.catalogue import ClueCatalogue, ClueLedger
from culprit.persistence.db import MemoryAccusationStore

CLUE_IDS = ["napkin", "papers", "crumbs", "plate", "hideout", "ribbon"]

BASE_DOCUMENT = {
    "version": "1.0",
    "rules": {
        "guilty_party": "emma",
        "minimum_clues_required": 4,
        "rejection_dialog": {"speaker": "valentin", "text": "Too many mistakes!"},
    },
    "accuser": "valentin",
    "suspects": {"valentin": "Valentin", "emma": "Emma", "luca": "Luca"},
    "confrontations": {
        "emma": {
            "motive": "She wanted the recipe.",
            "confession": "I took it.",
            "statements": [
                {
                    "id": "e1",
                    "text": "I never touched the table.",
                    "required_evidence": "napkin",
                    "correct_response": "The napkin says otherwise.",
                    "incorrect_response": "That proves nothing.",
                },
                {
                    "id": "e2",
                    "text": "I don't care about recipes.",
                    "required_evidence": "papers",
                    "correct_response": "Your handwriting is on these notes.",
                    "incorrect_response": "Irrelevant.",
                },
                {
                    "id": "e3",
                    "text": "I had nowhere to hide it.",
                    "required_evidence": "crumbs",
                    "bonus_evidence": "plate",
                    "correct_response": "The crumbs lead to your chair.",
                    "incorrect_response": "Grasping at straws.",
                    "bonus_response": "And here is the empty plate.",
                },
            ],
        },
        "luca": {
            "motive": "None.",
            "confession": "It wasn't me.",
            "statements": [
                {
                    "id": "l1",
                    "text": "I never used a napkin.",
                    "required_evidence": "napkin",
                    "correct_response": "Someone did.",
                    "incorrect_response": "Not mine.",
                },
            ],
        },
    },
    "endings": {
        "victory": {
            "reaction_by_suspect": {"emma": "Emma? I trusted you!"},
            "bonus_acknowledgment": "You found every clue!",
        },
        "bad_ending": {
            "despair_speech": "All is lost.",
            "failure_explanation": "Too many false accusations.",
        },
    },
}


def build_document(**rules) -> dict:
    document = copy.deepcopy(BASE_DOCUMENT)
    document["rules"].update(rules)
    return document


@pytest.fixture
def catalogue() -> ClueCatalogue:
    return ClueCatalogue.from_ids(CLUE_IDS)


@pytest.fixture
def accusation_config(catalogue):
    return parse_accusation_config(build_document(), catalogue)


@pytest.fixture
def ledger(catalogue) -> ClueLedger:
    return ClueLedger(catalogue, ["napkin", "papers", "crumbs", "plate"])


@pytest.fixture
def store() -> MemoryAccusationStore:
    return MemoryAccusationStore()


@pytest.fixture
def notifications() -> NotificationLog:
    return NotificationLog()


@pytest.fixture
def coordinator(accusation_config, ledger, store, notifications):
    channel = NotificationChannel()
    channel.subscribe(notifications)
    return AccusationCoordinator(accusation_config, ledger, store=store, channel=channel)
