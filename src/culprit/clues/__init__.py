"""Clue catalogue collaborator."""

from culprit.clues.catalogue import (
    ClueCatalogue,
    ClueDefinition,
    ClueLedger,
    load_clue_catalogue,
)

__all__ = [
    "ClueCatalogue",
    "ClueDefinition",
    "ClueLedger",
    "load_clue_catalogue",
]
