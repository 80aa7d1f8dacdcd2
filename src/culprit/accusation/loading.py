"""Load and validate the accusation document."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, ValidationError

from culprit import config
from culprit.clues.catalogue import ClueCatalogue, load_clue_catalogue
from culprit.confrontation.script import (
    ConfrontationSequence,
    ConfrontationStatement,
    build_requirement,
)
from culprit.domain.errors import ConfigurationError, describe_validation_errors
from culprit.domain.models import (
    AccusationDocument,
    AccusationRules,
    Endings,
    SequenceDocument,
    StatementDocument,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccusationConfig:
    version: str
    rules: AccusationRules
    accuser: str
    suspects: Mapping[str, str]
    confrontations: Mapping[str, ConfrontationSequence]
    endings: Endings
    catalogue: ClueCatalogue

    @property
    def guilty_party(self) -> str:
        return self.rules.guilty_party

    @property
    def minimum_clues_required(self) -> int:
        return self.rules.minimum_clues_required

    def display_name(self, suspect_id: str) -> str:
        return self.suspects.get(suspect_id) or suspect_id.replace("_", " ").replace("-", " ").title()

    def sequence_for(self, suspect_id: str) -> ConfrontationSequence | None:
        return self.confrontations.get(suspect_id)


def _compile_statement(
    raw: StatementDocument, where: str, catalogue: ClueCatalogue, errors: list[str]
) -> ConfrontationStatement | None:
    try:
        requirement = build_requirement(
            raw.requires_presentation,
            raw.required_evidence,
            raw.acceptable_evidence,
            raw.bonus_evidence,
        )
    except ValueError as exc:
        errors.append(f"{where} ({raw.id}): {exc}")
        return None
    statement = ConfrontationStatement(
        id=raw.id,
        text=raw.text,
        speaker=raw.speaker,
        requirement=requirement,
        correct_response=raw.correct_response,
        incorrect_response=raw.incorrect_response,
        bonus_response=raw.bonus_response,
    )
    for clue_id in sorted(statement.referenced_evidence()):
        if clue_id not in catalogue:
            errors.append(f"{where} ({raw.id}): references unknown clue {clue_id!r}")
    if raw.bonus_response and not raw.bonus_evidence:
        errors.append(f"{where} ({raw.id}): bonus_response given without bonus_evidence")
    return statement


def _compile_sequence(
    suspect_id: str, raw: SequenceDocument, catalogue: ClueCatalogue, errors: list[str]
) -> ConfrontationSequence | None:
    where = f"confrontations.{suspect_id}"
    if raw.suspect_id is not None and raw.suspect_id != suspect_id:
        errors.append(f"{where}: suspect_id {raw.suspect_id!r} does not match its key")
    if not raw.statements:
        errors.append(f"{where}: confrontation has no statements")
        return None
    if not any(statement.requires_presentation for statement in raw.statements):
        errors.append(f"{where}: at least one statement must require evidence")
    seen: set[str] = set()
    statements: list[ConfrontationStatement] = []
    failed = False
    for index, raw_statement in enumerate(raw.statements):
        if raw_statement.id in seen:
            errors.append(f"{where}.statements.{index}: duplicate statement ID {raw_statement.id!r}")
        seen.add(raw_statement.id)
        compiled = _compile_statement(
            raw_statement, f"{where}.statements.{index}", catalogue, errors
        )
        if compiled is None:
            failed = True
            continue
        statements.append(compiled)
    if failed:
        return None
    return ConfrontationSequence(
        suspect_id=suspect_id,
        motive=raw.motive,
        confession=raw.confession,
        statements=tuple(statements),
    )


@dataclass(frozen=True)
class _DocumentParts:
    """The sections of a document that parsed, for the consistency checks.

    ``confrontation_ids`` is None when the ``confrontations`` block itself is
    unusable, so checks that depend on it are skipped instead of misfiring.
    """

    rules: AccusationRules | None
    accuser: str | None
    suspects: Mapping[str, str]
    confrontation_ids: tuple[str, ...] | None
    confrontations: Mapping[str, SequenceDocument]
    endings: Endings | None

    @classmethod
    def from_document(cls, document: AccusationDocument) -> "_DocumentParts":
        return cls(
            rules=document.rules,
            accuser=document.accuser,
            suspects=document.suspects,
            confrontation_ids=tuple(document.confrontations),
            confrontations=document.confrontations,
            endings=document.endings,
        )

    @classmethod
    def salvage(cls, data: Any) -> "_DocumentParts":
        if not isinstance(data, Mapping):
            return cls(None, None, {}, None, {}, None)
        accuser = data.get("accuser", "accuser")
        raw_suspects = data.get("suspects") or {}
        suspects: dict[str, str] = {}
        if isinstance(raw_suspects, Mapping):
            suspects = {
                key: name
                for key, name in raw_suspects.items()
                if isinstance(key, str) and isinstance(name, str)
            }
        raw_confrontations = data.get("confrontations")
        confrontation_ids: tuple[str, ...] | None = None
        confrontations: dict[str, SequenceDocument] = {}
        if isinstance(raw_confrontations, Mapping):
            confrontation_ids = tuple(str(key) for key in raw_confrontations)
            for suspect_id, entry in raw_confrontations.items():
                sequence = _validate_part(SequenceDocument, entry)
                if sequence is not None:
                    confrontations[str(suspect_id)] = sequence
        return cls(
            rules=_validate_part(AccusationRules, data.get("rules")),
            accuser=accuser if isinstance(accuser, str) else None,
            suspects=suspects,
            confrontation_ids=confrontation_ids,
            confrontations=confrontations,
            endings=_validate_part(Endings, data.get("endings")),
        )


def _validate_part(model: type[BaseModel], value: Any) -> Any:
    """Parse one section on its own; its errors are already in the whole-document list."""
    if value is None:
        return None
    try:
        return model.model_validate(value)
    except ValidationError:
        return None


def _document_errors(parts: _DocumentParts, catalogue: ClueCatalogue) -> list[str]:
    errors: list[str] = []
    rules = parts.rules
    ids = parts.confrontation_ids
    victory = parts.endings.victory if parts.endings is not None else None
    if rules is not None:
        guilty = rules.guilty_party
        if ids is not None and guilty not in ids:
            errors.append(f"rules.guilty_party: {guilty!r} has no confrontation defined")
        if victory is not None and guilty not in victory.reaction_by_suspect and not victory.default_reaction:
            errors.append(
                f"endings.victory.reaction_by_suspect: missing reaction for guilty party {guilty!r}"
            )
    if ids is not None:
        if victory is not None:
            for suspect_id in victory.reaction_by_suspect:
                if suspect_id not in ids:
                    errors.append(
                        f"endings.victory.reaction_by_suspect.{suspect_id}: no confrontation for this suspect"
                    )
        for suspect_id in parts.suspects:
            if suspect_id not in ids and suspect_id != parts.accuser:
                errors.append(f"suspects.{suspect_id}: no confrontation for this suspect")
        if parts.accuser is not None and parts.accuser in ids:
            errors.append(f"accuser: {parts.accuser!r} cannot also be a suspect")
    if rules is not None and rules.minimum_clues_required > len(catalogue):
        errors.append(
            "rules.minimum_clues_required: "
            f"{rules.minimum_clues_required} exceeds the {len(catalogue)} clues in the catalogue"
        )
    return errors


def parse_accusation_config(
    data: Any, catalogue: ClueCatalogue, source: str | None = None
) -> AccusationConfig:
    """Validate a parsed document, reporting every violation at once.

    Structural errors do not stop the consistency checks: every section that
    does parse is still checked, so one typo cannot hide the rest.
    """
    errors: list[str] = []
    cause: ValidationError | None = None
    document: AccusationDocument | None = None
    try:
        document = AccusationDocument.model_validate(data or {})
    except ValidationError as exc:
        cause = exc
        errors.extend(describe_validation_errors(exc))
    if document is not None:
        parts = _DocumentParts.from_document(document)
    else:
        parts = _DocumentParts.salvage(data)

    errors.extend(_document_errors(parts, catalogue))
    sequences: dict[str, ConfrontationSequence] = {}
    for suspect_id, raw in parts.confrontations.items():
        compiled = _compile_sequence(suspect_id, raw, catalogue, errors)
        if compiled is not None:
            sequences[suspect_id] = compiled
    if errors or document is None:
        _report(errors, source)
        raise ConfigurationError(errors, source=source) from cause

    logger.info(
        "Accusation configuration loaded: %d confrontations, guilty party %s",
        len(sequences),
        document.rules.guilty_party,
    )
    return AccusationConfig(
        version=document.version,
        rules=document.rules,
        accuser=document.accuser,
        suspects=dict(document.suspects),
        confrontations=sequences,
        endings=document.endings,
        catalogue=catalogue,
    )


def load_accusation_config(
    path: Path | None = None, catalogue: ClueCatalogue | None = None
) -> AccusationConfig:
    accusation_path = path or config.ACCUSATION_PATH
    clue_catalogue = catalogue if catalogue is not None else load_clue_catalogue()
    try:
        data = yaml.safe_load(accusation_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigurationError([f"<root>: cannot read document: {exc}"], source=str(accusation_path)) from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError([f"<root>: {exc}"], source=str(accusation_path)) from exc
    return parse_accusation_config(data, clue_catalogue, source=str(accusation_path))


def load_accusation_feature(
    path: Path | None = None, catalogue: ClueCatalogue | None = None
) -> AccusationConfig | None:
    """Load the document, or return None so the game can run without accusations."""
    try:
        return load_accusation_config(path, catalogue)
    except ConfigurationError as exc:
        logger.error("Accusation feature disabled: %s", exc)
        return None


def _report(errors: list[str], source: str | None) -> None:
    logger.error("Accusation configuration invalid%s:", f" ({source})" if source else "")
    for error in errors:
        logger.error("  - %s", error)
