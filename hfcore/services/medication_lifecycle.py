"""
Write side of the medication history.

Adding, re-dosing, discontinuing and reactivating a medication all append or
close revisions; nothing is updated in place once a day has passed under it,
and nothing is ever hard-deleted. Every write passes through the store's
overlap check.
"""

from datetime import UTC, date, tzinfo
from typing import Any

from hfcore.domain.errors import (
    InvalidDate,
    InvalidName,
    MedicationAlreadyActive,
    MedicationInactive,
    NotFound,
)
from hfcore.domain.models import Dosage, DrugClass, Medication, new_id
from hfcore.services.drug_catalog import DrugClassCatalog
from hfcore.services.record_store import MedicationRecordStore, logger
from hfcore.services.regimen_history import Clock, local_today, patient_date, utc_now


def _revise(revision: Medication, **changes: Any) -> Medication:
    """Validated copy of a revision with ``changes`` applied."""
    return Medication(**{**revision.model_dump(), **changes})


class MedicationLifecycle:
    """Creates and closes medication revisions on behalf of the edit screens."""

    def __init__(
        self,
        store: MedicationRecordStore,
        catalog: DrugClassCatalog | None = None,
        clock: Clock = utc_now,
        tz: tzinfo = UTC,
    ) -> None:
        self.store = store
        self.catalog = catalog or DrugClassCatalog.default()
        self.clock = clock
        self.tz = tz
        self.logger = logger.bind(component="medication_lifecycle")

    def add_medication(
        self,
        name: str,
        dosage: Dosage,
        schedule: str = "",
        started_on: date | None = None,
        drug_classes: set[DrugClass] | frozenset[DrugClass] | None = None,
        is_diuretic: bool | None = None,
    ) -> Medication:
        """Start a new medication line. Classes and diuretic flag default from the catalog."""
        name = (name or "").strip()
        if not name:
            raise InvalidName("Medication name is blank")
        day = self._resolve_day(started_on)

        medication = Medication(
            name=name,
            dosage=dosage,
            schedule=schedule.strip(),
            drug_classes=(
                frozenset(drug_classes)
                if drug_classes is not None
                else self.catalog.classes_for(name)
            ),
            is_diuretic=is_diuretic if is_diuretic is not None else self.catalog.is_diuretic(name),
            effective_from=day,
        )
        self.store.save_revision(medication)
        self.logger.info(
            "medication_added",
            medication_id=medication.id,
            name=medication.name,
            drug_classes=sorted(c.value for c in medication.drug_classes),
            effective_from=day.isoformat(),
        )
        return medication

    def current_revision(self, medication_id: str) -> Medication | None:
        """The open revision of a line, or None if the line is discontinued."""
        revisions = self._revisions(medication_id)
        return revisions[-1] if revisions[-1].is_open else None

    def change_dosage(
        self,
        medication_id: str,
        dosage: Dosage,
        schedule: str | None = None,
        on: date | None = None,
    ) -> Medication:
        """
        Close the current revision on ``on`` and open a new one with the new dosage.

        A change dated on the current revision's own start day amends that
        revision instead, since it has not yet covered a completed day.
        """
        current = self._require_current(medication_id)
        day = self._resolve_day(on)
        if day < current.effective_from:
            raise InvalidDate(
                f"Change date {day.isoformat()} is before the current dosage started "
                f"({current.effective_from.isoformat()})"
            )

        new_schedule = current.schedule if schedule is None else schedule.strip()
        if dosage == current.dosage and new_schedule == current.schedule:
            return current

        if day == current.effective_from:
            revision = _revise(current, dosage=dosage, schedule=new_schedule)
            self.store.save_revision(revision)
        else:
            self.store.save_revision(_revise(current, discontinued_at=day))
            revision = _revise(
                current,
                revision_id=new_id(),
                dosage=dosage,
                schedule=new_schedule,
                effective_from=day,
                discontinued_at=None,
            )
            self.store.save_revision(revision)

        self.logger.info(
            "dosage_changed",
            medication_id=medication_id,
            previous_dosage=str(current.dosage),
            new_dosage=str(dosage),
            effective_from=day.isoformat(),
        )
        return revision

    def discontinue(self, medication_id: str, on: date | None = None) -> Medication:
        """Close the current revision; the line stays in history."""
        current = self._require_current(medication_id)
        day = self._resolve_day(on)
        if day <= current.effective_from:
            raise InvalidDate(
                f"{current.name} can be discontinued from the day after "
                f"{current.effective_from.isoformat()}"
            )

        closed = _revise(current, discontinued_at=day)
        self.store.save_revision(closed)
        self.logger.info(
            "medication_discontinued",
            medication_id=medication_id,
            name=current.name,
            discontinued_at=day.isoformat(),
        )
        return closed

    def reactivate(
        self,
        medication_id: str,
        dosage: Dosage,
        schedule: str = "",
        on: date | None = None,
    ) -> Medication:
        """Open a new revision for a discontinued line."""
        revisions = self._revisions(medication_id)
        last = revisions[-1]
        if last.is_open:
            raise MedicationAlreadyActive(f"{last.name} is already active")

        day = self._resolve_day(on)
        if day < last.discontinued_at:
            raise InvalidDate(
                f"{last.name} was taken until {last.discontinued_at.isoformat()}; "
                f"choose a later date"
            )

        revision = _revise(
            last,
            revision_id=new_id(),
            dosage=dosage,
            schedule=schedule.strip(),
            effective_from=day,
            discontinued_at=None,
        )
        self.store.save_revision(revision)
        self.logger.info(
            "medication_reactivated",
            medication_id=medication_id,
            name=last.name,
            dosage=str(dosage),
            effective_from=day.isoformat(),
        )
        return revision

    def _revisions(self, medication_id: str) -> list[Medication]:
        revisions = self.store.revisions_for(medication_id)
        if not revisions:
            raise NotFound(f"Unknown medication {medication_id}")
        return revisions

    def _require_current(self, medication_id: str) -> Medication:
        current = self.current_revision(medication_id)
        if current is None:
            raise MedicationInactive(f"Medication {medication_id} is discontinued")
        return current

    def _resolve_day(self, on: date | None) -> date:
        today = local_today(self.clock, self.tz)
        if on is None:
            return today
        on = patient_date(on, self.tz)
        if on > today:
            raise InvalidDate(f"{on.isoformat()} is in the future")
        return on
