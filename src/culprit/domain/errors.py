"""Error kinds raised by the accusation engine."""

from __future__ import annotations


class AccusationError(Exception):
    """Base class for every error the accusation engine raises."""


class ConfigurationError(AccusationError):
    """The accusation or clue document is invalid.

    Carries the complete list of violations so authors can fix them in one pass.
    """

    def __init__(self, errors: list[str], source: str | None = None) -> None:
        self.errors = list(errors)
        self.source = source
        where = f" in {source}" if source else ""
        super().__init__(
            f"Invalid accusation configuration{where}: {len(self.errors)} error(s) found"
        )


class ContractViolation(AccusationError, RuntimeError):
    """A caller broke the engine's contract. Never reachable through normal UI input."""


class EvidenceValidationError(ContractViolation):
    def __init__(self, message: str, statement_id: str | None = None, clue_id: str | None = None) -> None:
        self.statement_id = statement_id
        self.clue_id = clue_id
        super().__init__(f"Evidence validation error: {message} (statement={statement_id}, clue={clue_id})")


class PersistenceFailure(AccusationError):
    """Storage was unavailable or rejected a read or write."""


def describe_validation_errors(exc) -> list[str]:
    """Flatten a pydantic ``ValidationError`` into one line per violation."""
    lines: list[str] = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        lines.append(f"{location}: {error.get('msg', 'invalid value')}")
    return lines
