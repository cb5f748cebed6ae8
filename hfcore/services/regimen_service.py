"""
Presentation-facing facade over the regimen core.

This is the complete surface the screens call:
1. Regimen snapshots and the change timeline (history view)
2. Conflicts on today's regimen (conflict banner)
3. Diuretic dose logging (dose entry)
4. Medication add / change / discontinue / reactivate (edit screens)

Every call returns a Result. Expected failures come back as typed errors;
integrity faults are logged under their own event so they can be reported
separately from user mistakes. Conflict dismissal state is not kept here:
the caller owns it as presentation preference.
"""

from collections.abc import Callable
from datetime import date, datetime
from typing import Any, TypeVar

from pydantic import ValidationError

from hfcore.config import AppConfig, get_config
from hfcore.domain.errors import DataIntegrityViolation, InvalidInput, RegimenError
from hfcore.domain.models import (
    DiureticDose,
    Dosage,
    DrugClass,
    Medication,
    MedicationComparison,
    MedicationConflict,
    RegimenSnapshot,
    TimelineEvent,
)
from hfcore.services.conflict_rules import ConflictRuleEngine
from hfcore.services.dose_ledger import DoseLedger
from hfcore.services.drug_catalog import DrugClassCatalog
from hfcore.services.medication_lifecycle import MedicationLifecycle
from hfcore.services.record_store import (
    InMemoryRecordStore,
    MedicationRecordStore,
    Result,
    configure_logging,
    logger,
)
from hfcore.services.regimen_history import Clock, RegimenHistoryReconstructor, utc_now

T = TypeVar("T")


class RegimenService:
    """
    Wires the record store, catalog, history, conflict engine and dose ledger.

    All collaborators share one clock and one patient timezone so "today"
    means the same thing everywhere.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        store: MedicationRecordStore | None = None,
        catalog: DrugClassCatalog | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.config = config or get_config()
        configure_logging(self.config.logging.level, self.config.logging.format)
        self.logger = logger.bind(component="regimen_service")

        self.store = store if store is not None else InMemoryRecordStore()
        self.catalog = catalog or self._load_catalog()
        tz = self.config.clinical.tzinfo

        self.history = RegimenHistoryReconstructor(self.store, clock=clock, tz=tz)
        self.conflicts = ConflictRuleEngine(self.catalog)
        self.ledger = DoseLedger(self.store, clock=clock, tz=tz)
        self.lifecycle = MedicationLifecycle(self.store, self.catalog, clock=clock, tz=tz)

        self.logger.info(
            "regimen_service_initialized",
            environment=self.config.environment,
            patient_timezone=self.config.clinical.patient_timezone,
            catalog_entries=len(self.catalog.entries),
        )

    def _load_catalog(self) -> DrugClassCatalog:
        path = self.config.clinical.drug_catalog_path
        return DrugClassCatalog.from_json(path) if path else DrugClassCatalog.default()

    def today(self) -> date:
        return self.history.today()

    # History view

    def snapshot(self, as_of: date) -> Result[RegimenSnapshot, RegimenError]:
        return self._run("snapshot", self.history.snapshot, as_of)

    def timeline(
        self, start: date | None = None, end: date | None = None
    ) -> Result[list[TimelineEvent], RegimenError]:
        return self._run("timeline", self.history.timeline, start, end)

    def compare(self, start: date, end: date) -> Result[list[MedicationComparison], RegimenError]:
        def _compare() -> list[MedicationComparison]:
            return self.history.compare(self.history.snapshot(start), self.history.snapshot(end))

        return self._run("compare", _compare)

    # Conflict banner

    def current_conflicts(self) -> Result[list[MedicationConflict], RegimenError]:
        """Conflicts on today's regimen. Historical dates are never evaluated."""

        def _evaluate() -> list[MedicationConflict]:
            snapshot = self.history.snapshot(self.today())
            return self.conflicts.evaluate(snapshot.medications)

        return self._run("current_conflicts", _evaluate)

    def check_addition(
        self, candidate: Medication
    ) -> Result[list[MedicationConflict], RegimenError]:
        def _check() -> list[MedicationConflict]:
            snapshot = self.history.snapshot(self.today())
            return self.conflicts.check_addition(candidate, snapshot.medications)

        return self._run("check_addition", _check)

    # Edit screens

    def add_medication(
        self,
        name: str,
        dosage: Dosage,
        schedule: str = "",
        started_on: date | None = None,
        drug_classes: set[DrugClass] | None = None,
        is_diuretic: bool | None = None,
    ) -> Result[Medication, RegimenError]:
        return self._run(
            "add_medication",
            self.lifecycle.add_medication,
            name,
            dosage,
            schedule=schedule,
            started_on=started_on,
            drug_classes=drug_classes,
            is_diuretic=is_diuretic,
        )

    def change_dosage(
        self,
        medication_id: str,
        dosage: Dosage,
        schedule: str | None = None,
        on: date | None = None,
    ) -> Result[Medication, RegimenError]:
        return self._run(
            "change_dosage", self.lifecycle.change_dosage, medication_id, dosage, schedule, on
        )

    def discontinue(
        self, medication_id: str, on: date | None = None
    ) -> Result[Medication, RegimenError]:
        return self._run("discontinue", self.lifecycle.discontinue, medication_id, on)

    def reactivate(
        self,
        medication_id: str,
        dosage: Dosage,
        schedule: str = "",
        on: date | None = None,
    ) -> Result[Medication, RegimenError]:
        return self._run(
            "reactivate", self.lifecycle.reactivate, medication_id, dosage, schedule, on
        )

    # Dose entry

    def active_diuretics(self) -> Result[list[Medication], RegimenError]:
        return self._run("active_diuretics", self.ledger.active_diuretics)

    def log_standard_dose(self, medication: Medication) -> Result[DiureticDose, RegimenError]:
        return self._run("log_standard_dose", self.ledger.log_standard_dose, medication)

    def log_custom_dose(
        self,
        medication: Medication,
        amount: float,
        is_extra: bool,
        timestamp: datetime,
    ) -> Result[DiureticDose, RegimenError]:
        return self._run(
            "log_custom_dose", self.ledger.log_custom_dose, medication, amount, is_extra, timestamp
        )

    def delete_dose(self, dose: DiureticDose) -> Result[None, RegimenError]:
        return self._run("delete_dose", self.ledger.delete_dose, dose)

    def doses_for_day(
        self, medication: Medication, day: date
    ) -> Result[list[DiureticDose], RegimenError]:
        return self._run("doses_for_day", self.ledger.doses_for_day, medication, day)

    def _run(
        self, operation: str, fn: Callable[..., T], *args: Any, **kwargs: Any
    ) -> Result[T, RegimenError]:
        try:
            return Result.ok(fn(*args, **kwargs))
        except DataIntegrityViolation as e:
            self.logger.error(
                "regimen_integrity_violation",
                operation=operation,
                medication_id=e.medication_id,
                error=str(e),
            )
            return Result.err(e)
        except RegimenError as e:
            self.logger.info(
                "regimen_request_rejected", operation=operation, code=e.code, error=str(e)
            )
            return Result.err(e)
        except ValidationError as e:
            error = InvalidInput(f"{e.title}: {e.error_count()} invalid field(s)")
            self.logger.info(
                "regimen_request_rejected",
                operation=operation,
                code=error.code,
                error=str(e),
            )
            return Result.err(error)
