"""Clue catalogue and discovery ledger consumed by the accusation engine."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from culprit import config
from culprit.domain.errors import ConfigurationError, describe_validation_errors


class ClueDefinition(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    id: str = Field(min_length=1)
    name: str
    description: str = ""
    notebook_note: str = ""


class CluesDocument(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: str = "1.0"
    clues: List[ClueDefinition] = Field(default_factory=list)


class ClueCatalogue:
    """Every clue the case can yield, keyed by id in document order."""

    def __init__(self, clues: Iterable[ClueDefinition]) -> None:
        self._clues: dict[str, ClueDefinition] = {}
        for clue in clues:
            if clue.id in self._clues:
                raise ValueError(f"Duplicate clue ID: {clue.id}")
            self._clues[clue.id] = clue

    @classmethod
    def from_ids(cls, clue_ids: Iterable[str]) -> "ClueCatalogue":
        return cls(ClueDefinition(id=clue_id, name=clue_id) for clue_id in clue_ids)

    def __len__(self) -> int:
        return len(self._clues)

    def __contains__(self, clue_id: object) -> bool:
        return clue_id in self._clues

    def ids(self) -> list[str]:
        return list(self._clues)

    def get(self, clue_id: str) -> ClueDefinition:
        return self._clues[clue_id]

    def name_for(self, clue_id: str) -> str:
        clue = self._clues.get(clue_id)
        return clue.name if clue else clue_id


def load_clue_catalogue(path: Path | None = None) -> ClueCatalogue:
    clue_path = path or config.CLUES_PATH
    try:
        data = yaml.safe_load(clue_path.read_text(encoding="utf-8")) or {}
    except OSError as exc:
        raise ConfigurationError([f"<root>: cannot read document: {exc}"], source=str(clue_path)) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError([f"<root>: {exc}"], source=str(clue_path)) from exc
    try:
        document = CluesDocument.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(describe_validation_errors(exc), source=str(clue_path)) from exc
    errors: list[str] = []
    seen: set[str] = set()
    for index, clue in enumerate(document.clues):
        if clue.id in seen:
            errors.append(f"clues.{index}: duplicate clue ID {clue.id!r}")
        seen.add(clue.id)
    if not document.clues:
        errors.append("clues: the catalogue must define at least one clue")
    if errors:
        raise ConfigurationError(errors, source=str(clue_path))
    return ClueCatalogue(document.clues)


class ClueLedger:
    """Which catalogue clues the player has discovered so far."""

    def __init__(self, catalogue: ClueCatalogue, discovered: Iterable[str] = ()) -> None:
        self.catalogue = catalogue
        self._discovered: list[str] = []
        for clue_id in discovered:
            self.discover(clue_id)

    def discover(self, clue_id: str) -> bool:
        """Mark a clue as found. Returns False when it was already known."""
        if clue_id not in self.catalogue:
            raise KeyError(f"Unknown clue: {clue_id}")
        if clue_id in self._discovered:
            return False
        self._discovered.append(clue_id)
        return True

    def is_discovered(self, clue_id: str) -> bool:
        return clue_id in self._discovered

    def discovered_ids(self) -> list[str]:
        return list(self._discovered)

    def discovered_count(self) -> int:
        return len(self._discovered)

    def total_count(self) -> int:
        return len(self.catalogue)

    def found_everything(self) -> bool:
        return self.discovered_count() >= self.total_count()
