"""
Diuretic dose ledger.

Tracks standard, custom and extra diuretic doses per medication per calendar
day. "Extra" is whatever the patient says it is: it marks a dose taken outside
the day's expected cadence and is never derived from the amount or from how
many doses were already logged.
"""

import math
from datetime import UTC, date, datetime, tzinfo

from hfcore.domain.errors import (
    InvalidAmount,
    InvalidTimestamp,
    MedicationInactive,
    NotDiuretic,
    NotFound,
)
from hfcore.domain.models import DiureticDose, Medication
from hfcore.services.record_store import MedicationRecordStore, logger
from hfcore.services.regimen_history import Clock, local_today, utc_now


class DoseLedger:
    """
    Logs and queries diuretic doses.

    Doses are never updated in place (corrections are delete-then-recreate)
    and never cascade-deleted when their medication is discontinued.
    """

    def __init__(
        self,
        store: MedicationRecordStore,
        clock: Clock = utc_now,
        tz: tzinfo = UTC,
    ) -> None:
        self.store = store
        self.clock = clock
        self.tz = tz
        self.logger = logger.bind(component="dose_ledger")

    def log_standard_dose(self, medication: Medication) -> DiureticDose:
        """Log the medication's current dosage, now, as a regular (non-extra) dose."""
        self._require_diuretic(medication)

        now = self.clock()
        current = self._current_revision(medication, local_today(self.clock, self.tz))
        if current is None:
            raise MedicationInactive(f"{medication.name} is not active today")

        return self._record(
            DiureticDose(
                medication_id=current.id,
                amount=current.dosage.amount,
                unit=current.dosage.unit,
                timestamp=now,
                is_extra_dose=False,
            )
        )

    def log_custom_dose(
        self,
        medication: Medication,
        amount: float,
        is_extra: bool,
        timestamp: datetime,
    ) -> DiureticDose:
        """Log exactly what the patient entered. Naive timestamps are patient-local."""
        self._require_diuretic(medication)

        if amount is None or not math.isfinite(amount) or amount <= 0:
            raise InvalidAmount(f"Dose amount must be greater than zero, got {amount!r}")

        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=self.tz)
        if timestamp > self.clock():
            raise InvalidTimestamp(f"Dose time {timestamp.isoformat()} is in the future")

        return self._record(
            DiureticDose(
                medication_id=medication.id,
                amount=amount,
                unit=medication.dosage.unit,
                timestamp=timestamp,
                is_extra_dose=is_extra,
            )
        )

    def delete_dose(self, dose: DiureticDose) -> None:
        """Remove a dose. Deleting one that is already gone raises NotFound."""
        if not self.store.remove_dose(dose.id):
            self.logger.info("dose_delete_missing", dose_id=dose.id)
            raise NotFound(f"Dose {dose.id} was already removed")
        self.logger.info("dose_deleted", dose_id=dose.id, medication_id=dose.medication_id)

    def doses_for_day(self, medication: Medication, day: date) -> list[DiureticDose]:
        """Doses of ``medication`` taken on the patient's calendar ``day``, earliest first."""
        return [d for d in self.doses_on(day) if d.medication_id == medication.id]

    def doses_on(self, day: date) -> list[DiureticDose]:
        """Every dose taken on ``day`` across medications, earliest first."""
        doses = [
            d for d in self.store.all_doses() if d.timestamp.astimezone(self.tz).date() == day
        ]
        return sorted(doses, key=lambda d: d.timestamp)

    def active_diuretics(self) -> list[Medication]:
        """Diuretic medications active today, sorted by name."""
        today = local_today(self.clock, self.tz)
        active = [
            r for r in self.store.all_revisions() if r.is_diuretic and r.is_active_on(today)
        ]
        return sorted(active, key=lambda m: (m.name.casefold(), m.id))

    def _current_revision(self, medication: Medication, today: date) -> Medication | None:
        return next(
            (r for r in self.store.revisions_for(medication.id) if r.is_active_on(today)),
            None,
        )

    def _require_diuretic(self, medication: Medication) -> None:
        if not medication.is_diuretic:
            raise NotDiuretic(f"{medication.name} is not a diuretic")

    def _record(self, dose: DiureticDose) -> DiureticDose:
        self.store.add_dose(dose)
        self.logger.info(
            "dose_logged",
            dose_id=dose.id,
            medication_id=dose.medication_id,
            amount=dose.amount,
            unit=dose.unit,
            is_extra_dose=dose.is_extra_dose,
            timestamp=dose.timestamp.isoformat(),
        )
        return dose
