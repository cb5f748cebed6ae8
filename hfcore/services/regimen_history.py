"""
Regimen history reconstruction.

Answers "what was the patient taking on day D" from the append-only revision
history in the record store, and derives the change timeline shown on the
history screen. Every query is recomputed from the store; nothing is cached
across mutations.
"""

from collections import defaultdict
from collections.abc import Callable
from datetime import UTC, date, datetime, tzinfo

from hfcore.domain.errors import DataIntegrityViolation, InvalidDate
from hfcore.domain.models import (
    ChangeType,
    Medication,
    MedicationComparison,
    RegimenSnapshot,
    TimelineEvent,
    TimelineEventType,
)
from hfcore.services.record_store import MedicationRecordStore, find_overlap, logger

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


def local_today(clock: Clock, tz: tzinfo) -> date:
    """The patient's calendar date right now."""
    return clock().astimezone(tz).date()


def patient_date(value: date, tz: tzinfo) -> date:
    """Calendar date of ``value`` for the patient. Naive datetimes are patient-local."""
    if not isinstance(value, datetime):
        return value
    if value.tzinfo is None:
        return value.date()
    return value.astimezone(tz).date()


def _name_key(medication: Medication) -> tuple[str, str]:
    return medication.name.casefold(), medication.id


class RegimenHistoryReconstructor:
    """
    Rebuilds point-in-time regimen snapshots from medication revisions.

    Validity intervals are half-open: a revision discontinued on D is not
    active on D. Two revisions of one medication covering the same day are a
    store integrity fault and are reported, never resolved.
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
        self.logger = logger.bind(component="regimen_history")

    def today(self) -> date:
        return local_today(self.clock, self.tz)

    def snapshot(self, as_of: date) -> RegimenSnapshot:
        """All medication revisions active on ``as_of``, ordered by name then id."""
        as_of = patient_date(as_of, self.tz)
        today = self.today()
        if as_of > today:
            raise InvalidDate(
                f"No regimen data for {as_of.isoformat()}; today is {today.isoformat()}"
            )

        selected = []
        for medication_id, revisions in self._lines().items():
            covering = [r for r in revisions if r.is_active_on(as_of)]
            if len(covering) > 1:
                self.logger.error(
                    "regimen_integrity_violation",
                    medication_id=medication_id,
                    as_of=as_of.isoformat(),
                    revision_ids=[r.revision_id for r in covering],
                )
                raise DataIntegrityViolation(
                    f"{len(covering)} revisions of medication {medication_id} "
                    f"cover {as_of.isoformat()}",
                    medication_id=medication_id,
                )
            if covering:
                selected.append(covering[0])

        selected.sort(key=_name_key)
        self.logger.debug("snapshot_built", as_of=as_of.isoformat(), medications=len(selected))
        return RegimenSnapshot(as_of=as_of, medications=selected)

    def verify_integrity(self, medication_id: str | None = None) -> None:
        """Raise DataIntegrityViolation if any line has overlapping revisions."""
        lines = self._lines()
        if medication_id is not None:
            lines = {medication_id: lines.get(medication_id, [])}

        for line_id, revisions in lines.items():
            overlap = find_overlap(revisions)
            if overlap is not None:
                first, second = overlap
                self.logger.error(
                    "regimen_integrity_violation",
                    medication_id=line_id,
                    revision_ids=[first.revision_id, second.revision_id],
                )
                raise DataIntegrityViolation(
                    f"Revisions {first.revision_id} and {second.revision_id} "
                    f"of medication {line_id} overlap",
                    medication_id=line_id,
                )

    def timeline(self, start: date | None = None, end: date | None = None) -> list[TimelineEvent]:
        """
        Regimen change events, most recent first.

        Consecutive revisions that touch are a dose change; a gap between them
        is a discontinuation followed by a reactivation. ``start``/``end``
        filter inclusively.
        """
        events: list[TimelineEvent] = []
        lines = sorted(self._lines().values(), key=lambda revs: _name_key(revs[0]))
        for revisions in lines:
            events.extend(self._line_events(revisions))

        if start is not None:
            events = [e for e in events if e.occurred_on >= start]
        if end is not None:
            events = [e for e in events if e.occurred_on <= end]
        return sorted(events, key=lambda e: e.occurred_on, reverse=True)

    def compare(
        self, start: RegimenSnapshot, end: RegimenSnapshot
    ) -> list[MedicationComparison]:
        """Per-medication differences between two snapshots; changes first, then by name."""
        start_meds = {m.name: m for m in start.medications}
        end_meds = {m.name: m for m in end.medications}

        comparisons = []
        for name in sorted(start_meds.keys() | end_meds.keys()):
            before = start_meds.get(name)
            after = end_meds.get(name)

            if before is not None and after is not None:
                if before.dosage == after.dosage:
                    change_type = ChangeType.NO_CHANGE
                elif before.dosage.unit == after.dosage.unit:
                    change_type = (
                        ChangeType.INCREASED
                        if after.dosage.amount > before.dosage.amount
                        else ChangeType.DECREASED
                    )
                else:
                    change_type = ChangeType.CHANGED
                comparison = MedicationComparison(
                    medication_name=name,
                    start_dosage=str(before.dosage),
                    end_dosage=str(after.dosage),
                    change_type=change_type,
                    drug_classes=before.drug_classes or after.drug_classes,
                )
            elif after is not None:
                comparison = MedicationComparison(
                    medication_name=name,
                    start_dosage="Not taking",
                    end_dosage=str(after.dosage),
                    change_type=ChangeType.STARTED,
                    drug_classes=after.drug_classes,
                )
            else:
                comparison = MedicationComparison(
                    medication_name=name,
                    start_dosage=str(before.dosage),
                    end_dosage="Discontinued",
                    change_type=ChangeType.DISCONTINUED,
                    drug_classes=before.drug_classes,
                )
            comparisons.append(comparison)

        comparisons.sort(key=lambda c: (not c.has_changed, c.medication_name.casefold()))
        return comparisons

    def _lines(self) -> dict[str, list[Medication]]:
        lines: dict[str, list[Medication]] = defaultdict(list)
        for revision in self.store.all_revisions():
            lines[revision.id].append(revision)
        for revisions in lines.values():
            revisions.sort(key=lambda r: (r.effective_from, r.revision_id))
        return dict(lines)

    def _line_events(self, revisions: list[Medication]) -> list[TimelineEvent]:
        def event(revision, kind, occurred_on, previous=None, new=None):
            return TimelineEvent(
                occurred_on=occurred_on,
                medication_id=revision.id,
                medication_name=revision.name,
                event_type=kind,
                previous_dosage=str(previous.dosage) if previous else None,
                new_dosage=str(new.dosage) if new else None,
                drug_classes=revision.drug_classes,
            )

        first = revisions[0]
        events = [event(first, TimelineEventType.STARTED, first.effective_from, new=first)]

        for previous, current in zip(revisions, revisions[1:]):
            ended = previous.discontinued_at
            if ended is not None and ended < current.effective_from:
                events.append(
                    event(previous, TimelineEventType.DISCONTINUED, ended, previous=previous)
                )
                events.append(
                    event(
                        current,
                        TimelineEventType.REACTIVATED,
                        current.effective_from,
                        new=current,
                    )
                )
            else:
                events.append(
                    event(
                        current,
                        TimelineEventType.DOSE_CHANGED,
                        current.effective_from,
                        previous=previous,
                        new=current,
                    )
                )

        last = revisions[-1]
        if last.discontinued_at is not None:
            events.append(
                event(last, TimelineEventType.DISCONTINUED, last.discontinued_at, previous=last)
            )
        return events
