"""
Medication record store boundary.

Key patterns:
- Protocol-based dependency injection (the app's persistence layer plugs in here)
- Generic Result type for explicit handling of expected failures
- Write-time integrity checks: overlapping revisions never reach the store
"""

import logging
from collections.abc import Iterable
from typing import Generic, Protocol, TypeVar

import structlog

from hfcore.domain.errors import DataIntegrityViolation
from hfcore.domain.models import DiureticDose, Medication


def configure_logging(level: str = "INFO", fmt: str = "json") -> None:
    """
    Configure structlog on top of the stdlib logging module.

    Loggers bound after a later call pick up that call's processors.
    """
    logging.basicConfig(format="%(message)s", level=level)
    logging.getLogger().setLevel(level)

    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


configure_logging()

logger = structlog.get_logger(__name__)

# Generic Result type for explicit error handling
ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    Why: Makes error paths visible in type system, forces handling decisions.
    When to use: When failure is expected business logic, not exceptional.
    """

    def __init__(self, value: ValueT | None = None, error: ErrorT | None = None) -> None:
        if value is not None and error is not None:
            raise ValueError("Result cannot have both value and error")
        self._value: ValueT | None = value
        self._error: ErrorT | None = error

    @classmethod
    def ok(cls, value: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(value=value)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        if error is None:
            raise ValueError("Result.err requires an error")
        return cls(error=error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> ValueT:
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore

    def unwrap_or(self, default: ValueT) -> ValueT:
        return self._value if self._error is None else default  # type: ignore

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("Called unwrap_err() on an Ok value")
        return self._error


class MedicationRecordStore(Protocol):
    """
    Read/write capability the core needs from the app's persistence layer.

    Why Protocol over ABC: Structural typing, easier mocking, less coupling.
    The store serializes concurrent access itself; the core adds no locking.
    """

    def all_revisions(self) -> list[Medication]:
        """Every revision of every medication line for this patient."""
        ...

    def revisions_for(self, medication_id: str) -> list[Medication]:
        """Revisions of one line, sorted by effective_from."""
        ...

    def save_revision(self, revision: Medication) -> None:
        """Insert or replace (by revision_id) a revision. Rejects overlaps."""
        ...

    def all_doses(self) -> list[DiureticDose]:
        ...

    def add_dose(self, dose: DiureticDose) -> None:
        ...

    def remove_dose(self, dose_id: str) -> bool:
        """Remove a dose; False if it was not present."""
        ...


def find_overlap(revisions: Iterable[Medication]) -> tuple[Medication, Medication] | None:
    """Return the first pair of overlapping revisions in a single line, if any."""
    ordered = sorted(revisions, key=lambda r: (r.effective_from, r.revision_id))
    for previous, current in zip(ordered, ordered[1:]):
        if previous.overlaps(current):
            return previous, current
    return None


class InMemoryRecordStore:
    """
    Dict-backed record store.

    Used by tests and the demo; production wires in the app's own store.
    Revisions are kept per medication id; doses are kept in insertion order.
    """

    def __init__(
        self,
        revisions: Iterable[Medication] = (),
        doses: Iterable[DiureticDose] = (),
    ) -> None:
        self._revisions: dict[str, dict[str, Medication]] = {}
        self._doses: dict[str, DiureticDose] = {}
        self.logger = logger.bind(component="record_store")

        for revision in revisions:
            self.save_revision(revision)
        for dose in doses:
            self.add_dose(dose)

    def all_revisions(self) -> list[Medication]:
        return [r for line in self._revisions.values() for r in line.values()]

    def revisions_for(self, medication_id: str) -> list[Medication]:
        line = self._revisions.get(medication_id, {})
        return sorted(line.values(), key=lambda r: r.effective_from)

    def save_revision(self, revision: Medication) -> None:
        line = self._revisions.get(revision.id, {})
        others = [r for rid, r in line.items() if rid != revision.revision_id]

        clash = next((r for r in others if r.overlaps(revision)), None)
        if clash is not None:
            self.logger.error(
                "overlapping_revision_rejected",
                medication_id=revision.id,
                revision_id=revision.revision_id,
                existing_revision_id=clash.revision_id,
            )
            raise DataIntegrityViolation(
                f"Revision {revision.revision_id} of {revision.name!r} overlaps "
                f"revision {clash.revision_id}",
                medication_id=revision.id,
            )

        self._revisions.setdefault(revision.id, {})[revision.revision_id] = revision
        self.logger.debug(
            "revision_saved",
            medication_id=revision.id,
            revision_id=revision.revision_id,
            effective_from=revision.effective_from.isoformat(),
            discontinued_at=(
                revision.discontinued_at.isoformat() if revision.discontinued_at else None
            ),
        )

    def all_doses(self) -> list[DiureticDose]:
        return list(self._doses.values())

    def add_dose(self, dose: DiureticDose) -> None:
        if dose.id in self._doses:
            raise DataIntegrityViolation(f"Dose {dose.id} already recorded")
        self._doses[dose.id] = dose

    def remove_dose(self, dose_id: str) -> bool:
        return self._doses.pop(dose_id, None) is not None
